"""
Tests for the entity store: CRUD, ordering, invariants, transactions and
integrity checks.
"""
import pytest

from marketyard.exceptions import ReferentialIntegrityError, ValidationError
from marketyard.schemas import Product
from marketyard.services.storage import EntityKind, generate_id

from conftest import make_listing, make_product, make_shop, make_update, make_user, ts


class TestCrud:

    def test_empty_collections(self, store):
        """Every kind starts empty and lookups return None."""
        for kind in EntityKind:
            assert store.get_all(kind) == []
            assert store.count(kind) == 0
        assert store.get_by_id(EntityKind.USERS, "nope") is None
        assert store.get_user_by_phone("9999999999") is None
        assert store.get_shop_by_owner("nope") is None
        assert store.get_active_subscription("nope") is None

    def test_insertion_order_is_kept(self, store):
        for name in ["Carrot", "apple", "Banana"]:
            make_product(store, f"product_{name.lower()}", name=name)

        names = [p.name for p in store.get_all(EntityKind.PRODUCTS)]
        assert names == ["Carrot", "apple", "Banana"]

    def test_save_replaces_in_place(self, store):
        """Saving an existing id replaces it wholesale without moving it."""
        make_product(store, "product_a", name="A")
        make_product(store, "product_b", name="B")
        make_product(store, "product_a", name="A2", category="fruits")

        products = store.get_all(EntityKind.PRODUCTS)
        assert [p.id for p in products] == ["product_a", "product_b"]
        assert products[0].name == "A2"
        assert products[0].category == "fruits"

    def test_save_schema_instance(self, store):
        product = Product(
            id="product_x", name="Mango", category="fruits", unit="dozen", created_at=ts()
        )
        saved = store.save(product)
        assert saved == store.get_by_id(EntityKind.PRODUCTS, "product_x")
        assert saved.created_at == ts()

    def test_save_mapping_requires_kind(self, store):
        with pytest.raises(ValidationError):
            store.save({"id": "x"})

    def test_delete_is_noop_when_absent(self, store):
        make_product(store, "product_a")
        store.delete(EntityKind.PRODUCTS, "missing")
        store.delete(EntityKind.PRODUCTS, "product_a")
        assert store.get_all(EntityKind.PRODUCTS) == []

    def test_clear_one_kind(self, store):
        make_user(store)
        make_product(store, "product_a")
        store.clear(EntityKind.PRODUCTS)
        assert store.count(EntityKind.PRODUCTS) == 0
        assert store.count(EntityKind.USERS) == 1

    def test_generate_id_shape(self):
        prefix, millis, suffix = generate_id("shop_product").rsplit("_", 2)
        assert prefix == "shop_product"
        assert millis.isdigit()
        assert len(suffix) == 8


class TestValidation:

    def test_missing_required_field_is_named(self, store):
        with pytest.raises(ValidationError) as exc_info:
            store.save({"id": "product_a", "category": "fruits", "unit": "kg", "created_at": ts()}, "products")

        assert exc_info.value.field == "name"
        assert "name" in exc_info.value.message
        assert store.count(EntityKind.PRODUCTS) == 0

    def test_non_positive_price_rejected(self, store):
        with pytest.raises(ValidationError) as exc_info:
            make_update(store, "pu_1", "sp_1", price=0)
        assert exc_info.value.field == "price"

    def test_out_of_range_goodwill_rejected(self, store):
        with pytest.raises(ValidationError):
            make_shop(store, "shop_a", goodwill_score=120)

    def test_unknown_enum_value_rejected(self, store):
        with pytest.raises(ValidationError):
            make_user(store, user_type="superuser")


class TestInvariants:

    def test_phone_number_unique(self, store):
        make_user(store, phone="9876543210")
        with pytest.raises(ValidationError) as exc_info:
            make_user(store, phone="9876543210", id="user_other")
        assert exc_info.value.field == "phone_number"

    def test_one_listing_per_shop_product_pair(self, store):
        make_listing(store, "sp_1", "shop_a", "product_a")
        with pytest.raises(ValidationError):
            make_listing(store, "sp_2", "shop_a", "product_a")
        assert store.count(EntityKind.SHOP_PRODUCTS) == 1

    def test_one_favorite_per_triple(self, store):
        favorite = {"user_id": "user_1", "type": "product", "item_id": "product_a", "created_at": ts()}
        store.save({"id": "fav_1", **favorite}, "favorites")
        with pytest.raises(ValidationError):
            store.save({"id": "fav_2", **favorite}, "favorites")

    def test_one_active_subscription_per_user(self, store):
        subscription = {
            "user_id": "user_1", "status": "active", "amount": 100,
            "started_at": ts(), "expires_at": ts(-30), "created_at": ts(), "updated_at": ts(),
        }
        store.save({"id": "sub_1", **subscription}, "subscriptions")
        with pytest.raises(ValidationError):
            store.save({"id": "sub_2", **subscription}, "subscriptions")

        store.save({"id": "sub_2", **subscription, "status": "cancelled"}, "subscriptions")
        assert store.get_active_subscription("user_1").id == "sub_1"

    def test_product_name_unique_ignoring_case(self, store):
        make_product(store, "product_a", name="Tomato")
        onion = make_product(store, "product_b", name="Onion")

        with pytest.raises(ValidationError) as exc_info:
            store.save(onion.model_copy(update={"name": "TOMATO"}))
        assert exc_info.value.field == "name"
        assert store.get_by_id(EntityKind.PRODUCTS, "product_b").name == "Onion"

        # Renaming a product to a new casing of its own name is fine
        assert store.save(onion.model_copy(update={"name": "onion"})).name == "onion"

    def test_price_update_is_immutable_except_payment_status(self, store):
        update = make_update(store, "pu_1", "sp_1", price=50)

        paid = store.save(update.model_copy(update={"payment_status": "paid"}))
        assert paid.payment_status == "paid"

        with pytest.raises(ValidationError) as exc_info:
            store.save(update.model_copy(update={"price": 60}))
        assert exc_info.value.field == "price"
        assert store.get_by_id(EntityKind.PRICE_UPDATES, "pu_1").price == 50


class TestLookups:

    def test_indexed_lookups(self, store):
        make_user(store, phone="9876543210", id="user_owner", user_type="shop_owner")
        make_shop(store, "shop_a", owner_id="user_owner")
        make_shop(store, "shop_b", owner_id="user_other")
        make_listing(store, "sp_1", "shop_a", "product_a")
        make_listing(store, "sp_2", "shop_b", "product_a")
        make_listing(store, "sp_3", "shop_a", "product_b")
        make_update(store, "pu_1", "sp_1", 10)
        make_update(store, "pu_2", "sp_2", 11)
        make_update(store, "pu_3", "sp_3", 12)

        assert store.get_user_by_phone("9876543210").id == "user_owner"
        assert store.get_shop_by_owner("user_owner").id == "shop_a"
        assert [sp.id for sp in store.get_shop_products_by_shop("shop_a")] == ["sp_1", "sp_3"]
        assert [sp.id for sp in store.get_shop_products_by_product("product_a")] == ["sp_1", "sp_2"]
        assert store.get_shop_product("shop_b", "product_a").id == "sp_2"
        assert store.get_shop_product("shop_b", "product_b") is None
        assert [u.id for u in store.get_price_updates_by_shop("shop_a")] == ["pu_1", "pu_3"]
        assert [u.id for u in store.get_price_updates_by_shop_product("sp_2")] == ["pu_2"]

    def test_favorite_and_notification_filters(self, store):
        store.save({"id": "fav_1", "user_id": "u1", "type": "product", "item_id": "p1", "created_at": ts()}, "favorites")
        store.save({"id": "fav_2", "user_id": "u1", "type": "shop", "item_id": "s1", "created_at": ts()}, "favorites")
        store.save({"id": "n_1", "user_id": "u1", "type": "system", "title": "Hi", "created_at": ts()}, "notifications")
        store.save(
            {"id": "n_2", "user_id": "u1", "type": "system", "title": "Old", "is_read": True, "created_at": ts()},
            "notifications"
        )

        assert len(store.get_favorites_by_user("u1")) == 2
        assert [f.id for f in store.get_favorites_by_user("u1", "shop")] == ["fav_2"]
        assert store.find_favorite("u1", "product", "p1").id == "fav_1"
        assert [n.id for n in store.get_notifications_by_user("u1", unread_only=True)] == ["n_1"]

    def test_payment_metadata_round_trips(self, store):
        store.save({
            "id": "pay_1", "user_id": "u1", "type": "subscription", "amount": 100,
            "metadata": {"plan": "monthly"}, "created_at": ts(), "updated_at": ts(),
        }, "payments")

        payment = store.get_payments_by_user("u1", "subscription")[0]
        assert payment.metadata == {"plan": "monthly"}
        assert payment.currency == "INR"
        assert store.get_payments_by_user("u1", "refund") == []


class TestTransactions:

    def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                make_user(store)
                raise RuntimeError("boom")

        assert store.count(EntityKind.USERS) == 0

    def test_nested_writes_roll_back_together(self, store):
        make_user(store, phone="9000000001", id="user_a")
        with pytest.raises(ValidationError):
            with store.transaction():
                make_user(store, phone="9000000002", id="user_b")
                make_user(store, phone="9000000001", id="user_c")

        assert [u.id for u in store.get_all(EntityKind.USERS)] == ["user_a"]

    def test_caught_inner_failure_undoes_only_inner_writes(self, store):
        with store.transaction():
            make_user(store, phone="9000000001", id="user_a")
            try:
                with store.transaction():
                    make_user(store, phone="9000000002", id="user_b")
                    raise RuntimeError("inner")
            except RuntimeError:
                pass
            make_user(store, phone="9000000003", id="user_c")

        assert [u.id for u in store.get_all(EntityKind.USERS)] == ["user_a", "user_c"]

    def test_caught_failed_replace_leaves_collection_intact(self, store):
        make_product(store, "product_a", name="Tomato")
        replacement = [
            Product(id="product_x", name="Okra", category="vegetables", unit="kg", created_at=ts()),
            Product(id="product_y", name="okra", category="vegetables", unit="kg", created_at=ts()),
        ]

        with store.transaction():
            with pytest.raises(ValidationError):
                store.replace_all(EntityKind.PRODUCTS, replacement)

        assert [p.id for p in store.get_all(EntityKind.PRODUCTS)] == ["product_a"]


class TestSnapshotAndIntegrity:

    def test_snapshot_indexes(self, store):
        make_shop(store, "shop_a")
        make_product(store, "product_a")
        make_listing(store, "sp_1", "shop_a", "product_a", price=10)

        snap = store.snapshot()
        assert snap.shops_by_id["shop_a"].id == "shop_a"
        assert [sp.id for sp in snap.shop_products_by_product["product_a"]] == ["sp_1"]
        assert snap.get(EntityKind.PRODUCTS)[0].id == "product_a"

    def test_dangling_reference_raises(self, store):
        make_user(store, id="user_owner")
        make_shop(store, "shop_a", owner_id="user_owner")
        make_listing(store, "sp_1", "shop_a", "product_missing")

        with pytest.raises(ReferentialIntegrityError) as exc_info:
            store.verify_integrity()
        dangling = exc_info.value.dangling
        assert dangling == [{
            "from": "shop_products:sp_1", "field": "product_id", "kind": "products", "id": "product_missing",
        }]

    def test_orphaned_price_update_is_history_unless_strict(self, store):
        make_user(store, id="user_owner")
        make_shop(store, "shop_a", owner_id="user_owner")
        make_product(store, "product_a")
        make_update(store, "pu_1", "sp_removed", 10)

        notes = store.verify_integrity()
        assert len(notes) == 1
        assert "sp_removed" in notes[0]

        with pytest.raises(ReferentialIntegrityError):
            store.verify_integrity(strict=True)
