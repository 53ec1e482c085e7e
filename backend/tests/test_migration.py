"""
Tests for export and import of the whole store.
"""
import json

import pytest

from marketyard.exceptions import ImportFormatError, ValidationError
from marketyard.services import migration, pricing
from marketyard.services.storage import EntityKind

from conftest import make_product, make_update, make_user, ts


class TestExport:

    def test_document_shape(self, store, market):
        document = migration.export_all(store)

        assert document.version == "1.0.0"
        assert set(document.data) == {
            "users", "shops", "products", "shopProducts", "priceUpdates",
            "subscriptions", "payments", "favorites", "notifications",
        }
        assert document.metadata.totalUsers == 4
        assert document.metadata.totalShops == 3
        assert document.metadata.totalShopProducts == 5
        assert document.metadata.totalPriceUpdates == 4
        assert document.metadata.totalFavorites == 0

    def test_empty_store_exports_empty_lists(self, store):
        document = migration.export_all(store)
        assert all(rows == [] for rows in document.data.values())

    def test_backend_format_uses_table_names(self, store, market):
        document = migration.format_for_backend_migration(store=store)
        assert len(document.tables["shop_products"]) == 5
        assert len(document.tables["price_updates"]) == 4
        assert "shopProducts" not in document.tables

    def test_csv_per_non_empty_table(self, store):
        make_product(store, "product_a", name='Chilli "Hot"')

        tables = migration.export_as_csv(store)
        assert list(tables) == ["products"]
        header, row = tables["products"].strip().split("\n")
        assert header.startswith('"id","name","category","unit"')
        assert '"Chilli ""Hot"""' in row

    def test_sql_inserts(self, store):
        make_product(store, "product_a", name="Farmer's Mix")

        sql = migration.generate_sql_inserts(store)
        assert "-- products (1 rows)" in sql
        assert "INSERT INTO products (id, name, category, unit" in sql
        assert "'Farmer''s Mix'" in sql
        assert sql.rstrip().endswith(");")

    def test_sql_inserts_quote_json_and_null_values(self, store):
        store.save({
            "id": "notif_1", "user_id": "user_1", "type": "system", "title": "Buyer's 10% note",
            "metadata": {"note": "it's fresh"}, "created_at": ts(),
        }, "notifications")

        for dialect in ("postgresql", "sqlite"):
            sql = migration.generate_sql_inserts(store, dialect=dialect)
            assert "-- notifications (1 rows)" in sql
            assert "'Buyer''s 10% note'" in sql
            assert """'{"note": "it''s fresh"}'""" in sql
            assert "NULL" in sql

    def test_sql_inserts_unknown_dialect(self, store):
        with pytest.raises(ValidationError) as exc_info:
            migration.generate_sql_inserts(store, dialect="oracle")
        assert exc_info.value.field == "dialect"

    def test_summary(self, store, market):
        summary = migration.get_migration_summary(store)
        assert summary.total_records == 4 + 3 + 3 + 5 + 4
        assert summary.breakdown["shopProducts"] == 5
        assert summary.estimated_size.endswith("KB")

    def test_format_bytes(self):
        assert migration.format_bytes(0) == "0 Bytes"
        assert migration.format_bytes(512) == "512 Bytes"
        assert migration.format_bytes(1536) == "1.5 KB"
        assert migration.format_bytes(1024 * 1024) == "1 MB"


class TestImport:

    def test_round_trip_restores_store(self, store, market):
        """Export, wipe, import: the same data and the same price view."""
        before = migration.export_all(store)
        summary_before = pricing.get_global_price_summary(store)

        counts = migration.import_all(store, before.model_dump(mode="json"), clear_before_import=True)

        after = migration.export_all(store)
        assert after.data == before.data
        assert counts["priceUpdates"] == 4
        assert counts["shopProducts"] == 5
        assert pricing.get_global_price_summary(store) == summary_before

    def test_replace_only_touches_present_collections(self, store, market):
        document = {"data": {"products": [{
            "id": "product_new", "name": "Okra", "category": "vegetables",
            "unit": "kg", "created_at": "2024-06-01T00:00:00Z",
        }]}}

        counts = migration.import_all(store, document)
        assert counts["products"] == 1
        assert counts["users"] == 4
        assert [p.name for p in store.get_all(EntityKind.PRODUCTS)] == ["Okra"]

    def test_accepts_backend_tables(self, store, market):
        exported = migration.format_for_backend_migration(store=store).model_dump(mode="json")
        store.clear()

        counts = migration.import_all(store, exported)
        assert counts["shopProducts"] == 5

    def test_unknown_collection_is_ignored(self, store):
        counts = migration.import_all(store, {"data": {"widgets": [{"id": "w1"}], "users": []}})
        assert counts["users"] == 0

    @pytest.mark.parametrize("document", [
        [],
        {"version": "1.0.0"},
        {"data": {"users": {"id": "not-a-list"}}},
        {"data": {"users": ["not-an-object"]}},
    ])
    def test_structural_errors(self, store, document):
        with pytest.raises(ImportFormatError):
            migration.import_all(store, document)

    def test_invalid_record_aborts_before_writing(self, store, market):
        document = migration.export_all(store).model_dump(mode="json")
        del document["data"]["shops"][1]["shop_name"]
        products_before = store.get_all(EntityKind.PRODUCTS)

        with pytest.raises(ValidationError) as exc_info:
            migration.import_all(store, document, clear_before_import=True)

        details = exc_info.value.details
        assert details["collection"] == "shops"
        assert details["index"] == 1
        assert details["field"] == "shop_name"
        assert store.get_all(EntityKind.PRODUCTS) == products_before

    def test_merge_by_natural_key(self, store):
        """A user with a known phone keeps the stored id; references follow it."""
        make_user(store, phone="9876543210", id="user_local", name="Local")

        document = {"data": {
            "users": [{
                "id": "user_remote", "phone_number": "9876543210", "name": "Remote",
                "user_type": "shop_owner", "created_at": "2024-06-01T00:00:00Z",
                "updated_at": "2024-06-01T00:00:00Z",
            }],
            "shops": [{
                "id": "shop_remote", "owner_id": "user_remote", "shop_name": "Remote Traders",
                "category": "mixed", "created_at": "2024-06-01T00:00:00Z",
                "updated_at": "2024-06-01T00:00:00Z",
            }],
        }}

        counts = migration.import_all(store, document, merge=True)
        assert counts["users"] == 1
        user = store.get_by_id(EntityKind.USERS, "user_local")
        assert user.name == "Remote"
        assert store.get_by_id(EntityKind.SHOPS, "shop_remote").owner_id == "user_local"

    def test_merge_keeps_unrelated_records(self, store, market):
        document = {"data": {"products": [{
            "id": "product_new", "name": "Okra", "category": "vegetables",
            "unit": "kg", "created_at": "2024-06-01T00:00:00Z",
        }]}}

        counts = migration.import_all(store, document, merge=True)
        assert counts["products"] == 4

    def test_merge_cannot_rewrite_price_update(self, store):
        make_update(store, "pu_1", "sp_1", 50, days_ago=1)
        document = {"data": {"priceUpdates": [{
            "id": "pu_1", "shop_product_id": "sp_1", "price": 55,
            "updated_by_type": "shop_owner", "updated_by_id": "user_owner",
            "created_at": ts(1).isoformat(),
        }]}}

        with pytest.raises(ValidationError):
            migration.import_all(store, document, merge=True)
        assert store.get_by_id(EntityKind.PRICE_UPDATES, "pu_1").price == 50

    def test_merge_cannot_give_two_products_one_name(self, store):
        make_product(store, "product_a", name="Tomato")
        make_product(store, "product_b", name="Onion")
        document = {"data": {"products": [{
            "id": "product_a", "name": "onion", "category": "vegetables", "unit": "kg",
            "created_at": ts(1).isoformat(),
        }]}}

        with pytest.raises(ValidationError) as exc_info:
            migration.import_all(store, document, merge=True)
        assert exc_info.value.field == "name"
        names = [p.name for p in store.get_all(EntityKind.PRODUCTS)]
        assert names == ["Tomato", "Onion"]


class TestFiles:

    def test_write_and_read(self, store, market, tmp_path):
        path = migration.write_export_file(store, tmp_path / "export.json")
        document = migration.read_import_file(path)
        assert document["metadata"]["totalShops"] == 3

        backend = migration.write_export_file(store, tmp_path / "backend.json", backend_format=True)
        assert "tables" in json.loads(backend.read_text())

    def test_bad_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ImportFormatError):
            migration.read_import_file(path)
