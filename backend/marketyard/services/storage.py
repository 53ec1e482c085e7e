"""
Entity Store

Durable, queryable home for the nine entity kinds. Callers never see ORM
rows: reads hand back pydantic entities and every write goes through
save()/delete(), which validate the entity and the store invariants before
anything is flushed.

Insertion order is kept in each table's ``seq`` column; replacing an
entity keeps its position.
"""
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property, lru_cache
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlalchemy import inspect
from sqlalchemy.orm import Session

from marketyard import models, schemas
from marketyard.exceptions import ValidationError, ReferentialIntegrityError

logger = logging.getLogger(__name__)

# Guards writes and snapshot reads across every store instance in the process
_write_lock = threading.RLock()


class EntityKind(str, Enum):
    """The nine entity kinds, in dependency order (parents first)."""
    USERS = "users"
    SHOPS = "shops"
    PRODUCTS = "products"
    SHOP_PRODUCTS = "shop_products"
    PRICE_UPDATES = "price_updates"
    SUBSCRIPTIONS = "subscriptions"
    PAYMENTS = "payments"
    FAVORITES = "favorites"
    NOTIFICATIONS = "notifications"

    @property
    def spec(self) -> "KindSpec":
        return KINDS[self]

    @property
    def document_key(self) -> str:
        return KINDS[self].document_key


@dataclass(frozen=True)
class KindSpec:
    model: type
    schema: type
    document_key: str  # camelCase key used by the export document
    id_prefix: str
    label: str


KINDS: dict[EntityKind, KindSpec] = {
    EntityKind.USERS: KindSpec(models.User, schemas.User, "users", "user", "User"),
    EntityKind.SHOPS: KindSpec(models.Shop, schemas.Shop, "shops", "shop", "Shop"),
    EntityKind.PRODUCTS: KindSpec(models.Product, schemas.Product, "products", "product", "Product"),
    EntityKind.SHOP_PRODUCTS: KindSpec(
        models.ShopProduct, schemas.ShopProduct, "shopProducts", "shop_product", "ShopProduct"
    ),
    EntityKind.PRICE_UPDATES: KindSpec(
        models.PriceUpdate, schemas.PriceUpdate, "priceUpdates", "price_update", "PriceUpdate"
    ),
    EntityKind.SUBSCRIPTIONS: KindSpec(
        models.Subscription, schemas.Subscription, "subscriptions", "subscription", "Subscription"
    ),
    EntityKind.PAYMENTS: KindSpec(models.Payment, schemas.Payment, "payments", "payment", "Payment"),
    EntityKind.FAVORITES: KindSpec(models.Favorite, schemas.Favorite, "favorites", "favorite", "Favorite"),
    EntityKind.NOTIFICATIONS: KindSpec(
        models.Notification, schemas.Notification, "notifications", "notification", "Notification"
    ),
}


def generate_id(prefix: str) -> str:
    """Opaque id: <prefix>_<epoch-ms>_<8 hex>."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


@lru_cache(maxsize=None)
def _columns(model: type) -> tuple[tuple[str, str], ...]:
    """(attribute key, column name) pairs, without the ordering column."""
    return tuple(
        (attr.key, attr.columns[0].name)
        for attr in inspect(model).column_attrs
        if attr.key != "seq"
    )


def _to_entity(kind: EntityKind, row) -> BaseModel:
    spec = KINDS[kind]
    data = {name: getattr(row, key) for key, name in _columns(spec.model)}
    return spec.schema.model_validate(data)


def _apply(row, kind: EntityKind, entity: BaseModel) -> None:
    data = entity.model_dump()
    for key, name in _columns(KINDS[kind].model):
        setattr(row, key, data.get(name))


def validate_entity(kind: EntityKind, data: Any) -> BaseModel:
    """Validate raw data against the kind's schema.

    Raises ValidationError naming the first offending field.
    """
    spec = KINDS[kind]
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        raise ValidationError(f"{spec.label} must be an object, got {type(data).__name__}")

    try:
        return spec.schema.model_validate(dict(data))
    except PydanticValidationError as e:
        errors = e.errors()
        first = errors[0]
        field_name = ".".join(str(part) for part in first["loc"]) or None
        if first["type"] == "missing":
            message = f"{spec.label} is missing required field '{field_name}'"
        else:
            message = f"{spec.label}.{field_name}: {first['msg']}"
        raise ValidationError(
            message,
            field=field_name,
            details={"errors": [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in errors
            ]}
        ) from e


def kind_of(entity: BaseModel) -> EntityKind:
    """Entity kind for a schema instance (subclasses resolve to their base kind)."""
    for klass in type(entity).__mro__:
        for kind, spec in KINDS.items():
            if spec.schema is klass:
                return kind
    raise ValidationError(f"{type(entity).__name__} is not a stored entity kind")


@dataclass
class StoreSnapshot:
    """Point-in-time copy of every collection, with lazily built indexes."""
    users: list = field(default_factory=list)
    shops: list = field(default_factory=list)
    products: list = field(default_factory=list)
    shop_products: list = field(default_factory=list)
    price_updates: list = field(default_factory=list)
    subscriptions: list = field(default_factory=list)
    payments: list = field(default_factory=list)
    favorites: list = field(default_factory=list)
    notifications: list = field(default_factory=list)

    def get(self, kind: EntityKind) -> list:
        return getattr(self, kind.value)

    @cached_property
    def shops_by_id(self) -> dict:
        return {shop.id: shop for shop in self.shops}

    @cached_property
    def products_by_id(self) -> dict:
        return {product.id: product for product in self.products}

    @cached_property
    def shop_products_by_id(self) -> dict:
        return {sp.id: sp for sp in self.shop_products}

    @cached_property
    def shop_products_by_product(self) -> dict:
        grouped: dict[str, list] = {}
        for sp in self.shop_products:
            grouped.setdefault(sp.product_id, []).append(sp)
        return grouped

    @cached_property
    def shop_products_by_shop(self) -> dict:
        grouped: dict[str, list] = {}
        for sp in self.shop_products:
            grouped.setdefault(sp.shop_id, []).append(sp)
        return grouped

    @cached_property
    def price_updates_by_shop_product(self) -> dict:
        grouped: dict[str, list] = {}
        for update in self.price_updates:
            grouped.setdefault(update.shop_product_id, []).append(update)
        return grouped

    def require_shop(self, shop_id: str, referenced_by: str):
        shop = self.shops_by_id.get(shop_id)
        if shop is None:
            raise ReferentialIntegrityError(
                f"{referenced_by} references missing shop '{shop_id}'",
                dangling=[{"from": referenced_by, "kind": "shops", "id": shop_id}]
            )
        return shop

    def require_product(self, product_id: str, referenced_by: str):
        product = self.products_by_id.get(product_id)
        if product is None:
            raise ReferentialIntegrityError(
                f"{referenced_by} references missing product '{product_id}'",
                dangling=[{"from": referenced_by, "kind": "products", "id": product_id}]
            )
        return product


class EntityStore:
    """Generic repository over the nine entity kinds, bound to one session."""

    def __init__(self, db: Session):
        self.db = db
        self._depth = 0

    # ============== Transactions ==============

    @contextmanager
    def transaction(self):
        """Group writes: commit once at the outermost exit, roll back on error.

        Nested blocks run inside a SAVEPOINT, so an inner failure undoes only
        the inner writes even when an outer block catches the error.
        """
        with _write_lock:
            if self._depth == 0:
                self._depth += 1
                try:
                    yield self
                except Exception:
                    self.db.rollback()
                    raise
                else:
                    self.db.commit()
                finally:
                    self._depth -= 1
            else:
                savepoint = self.db.begin_nested()
                self._depth += 1
                try:
                    yield self
                except Exception:
                    savepoint.rollback()
                    raise
                else:
                    savepoint.commit()
                finally:
                    self._depth -= 1

    # ============== Generic CRUD ==============

    def _query(self, kind: EntityKind):
        model = KINDS[kind].model
        return self.db.query(model).order_by(model.seq)

    def _row(self, kind: EntityKind, entity_id: str):
        model = KINDS[kind].model
        return self.db.query(model).filter(model.id == entity_id).first()

    def get_all(self, kind: EntityKind) -> list:
        """All entities of a kind in insertion order."""
        kind = EntityKind(kind)
        return [_to_entity(kind, row) for row in self._query(kind).all()]

    def get_by_id(self, kind: EntityKind, entity_id: str):
        """Entity by id, or None."""
        kind = EntityKind(kind)
        row = self._row(kind, entity_id)
        return _to_entity(kind, row) if row is not None else None

    def count(self, kind: EntityKind) -> int:
        return self.db.query(KINDS[EntityKind(kind)].model).count()

    def save(self, entity, kind: Optional[EntityKind] = None):
        """Upsert by id: replace wholesale if the id exists, else append.

        Accepts a schema instance or a mapping (then ``kind`` is required).
        Returns the validated entity.
        """
        if kind is None:
            if not isinstance(entity, BaseModel):
                raise ValidationError("kind is required when saving a mapping")
            kind = kind_of(entity)
        kind = EntityKind(kind)
        validated = validate_entity(kind, entity)

        with self.transaction():
            row = self._row(kind, validated.id)
            self._check_invariants(kind, validated, row)
            if row is None:
                row = KINDS[kind].model()
                self.db.add(row)
            _apply(row, kind, validated)
            self.db.flush()

        logger.debug(f"Saved {kind.value} {validated.id}")
        return validated

    def delete(self, kind: EntityKind, entity_id: str) -> None:
        """Remove by id; no-op if absent. Never cascades."""
        kind = EntityKind(kind)
        with self.transaction():
            row = self._row(kind, entity_id)
            if row is not None:
                self.db.delete(row)
                self.db.flush()
                logger.debug(f"Deleted {kind.value} {entity_id}")

    def clear(self, kind: Optional[EntityKind] = None) -> None:
        """Wipe one kind, or every kind."""
        kinds = [EntityKind(kind)] if kind is not None else list(EntityKind)
        with self.transaction():
            for k in kinds:
                self.db.query(KINDS[k].model).delete()
            self.db.flush()
        logger.info(f"Cleared {', '.join(k.value for k in kinds)}")

    def replace_all(self, kind: EntityKind, entities: list) -> list:
        """Swap a whole collection; entities keep the given order."""
        kind = EntityKind(kind)
        validated = [validate_entity(kind, entity) for entity in entities]
        with self.transaction():
            self.db.query(KINDS[kind].model).delete()
            self.db.flush()
            for entity in validated:
                self.save(entity, kind)
        return validated

    # ============== Invariants ==============

    def _check_invariants(self, kind: EntityKind, entity, existing_row) -> None:
        if kind is EntityKind.USERS:
            clash = self.db.query(models.User).filter(
                models.User.phone_number == entity.phone_number,
                models.User.id != entity.id
            ).first()
            if clash:
                raise ValidationError(
                    f"Phone number {entity.phone_number} is already registered",
                    field="phone_number"
                )

        elif kind is EntityKind.PRODUCTS:
            name = entity.name.casefold()
            others = self.db.query(models.Product.id, models.Product.name).filter(
                models.Product.id != entity.id
            )
            clash = next((row.id for row in others if row.name.casefold() == name), None)
            if clash:
                raise ValidationError(
                    f"Product name '{entity.name}' is already used by {clash}",
                    field="name"
                )

        elif kind is EntityKind.SHOP_PRODUCTS:
            clash = self.db.query(models.ShopProduct).filter(
                models.ShopProduct.shop_id == entity.shop_id,
                models.ShopProduct.product_id == entity.product_id,
                models.ShopProduct.id != entity.id
            ).first()
            if clash:
                raise ValidationError(
                    f"Shop {entity.shop_id} already lists product {entity.product_id} as {clash.id}",
                    field="product_id"
                )

        elif kind is EntityKind.FAVORITES:
            clash = self.db.query(models.Favorite).filter(
                models.Favorite.user_id == entity.user_id,
                models.Favorite.type == entity.type,
                models.Favorite.item_id == entity.item_id,
                models.Favorite.id != entity.id
            ).first()
            if clash:
                raise ValidationError(
                    f"{entity.type} {entity.item_id} is already a favorite of user {entity.user_id}",
                    field="item_id"
                )

        elif kind is EntityKind.SUBSCRIPTIONS and entity.status == "active":
            clash = self.db.query(models.Subscription).filter(
                models.Subscription.user_id == entity.user_id,
                models.Subscription.status == "active",
                models.Subscription.id != entity.id
            ).first()
            if clash:
                raise ValidationError(
                    f"User {entity.user_id} already has active subscription {clash.id}",
                    field="status"
                )

        elif kind is EntityKind.PRICE_UPDATES and existing_row is not None:
            # Only payment_status may change after creation
            before = _to_entity(kind, existing_row).model_dump(exclude={"payment_status"})
            after = entity.model_dump(exclude={"payment_status"})
            changed = sorted(name for name in after if after[name] != before.get(name))
            if changed:
                raise ValidationError(
                    f"PriceUpdate {entity.id} is immutable; cannot change {', '.join(changed)}",
                    field=changed[0]
                )

    # ============== Indexed lookups ==============

    def get_user_by_phone(self, phone_number: str):
        row = self.db.query(models.User).filter(models.User.phone_number == phone_number).first()
        return _to_entity(EntityKind.USERS, row) if row else None

    def get_shop_by_owner(self, owner_id: str):
        row = self._query(EntityKind.SHOPS).filter(models.Shop.owner_id == owner_id).first()
        return _to_entity(EntityKind.SHOPS, row) if row else None

    def get_shop_products_by_shop(self, shop_id: str) -> list:
        rows = self._query(EntityKind.SHOP_PRODUCTS).filter(models.ShopProduct.shop_id == shop_id).all()
        return [_to_entity(EntityKind.SHOP_PRODUCTS, row) for row in rows]

    def get_shop_products_by_product(self, product_id: str) -> list:
        rows = self._query(EntityKind.SHOP_PRODUCTS).filter(
            models.ShopProduct.product_id == product_id
        ).all()
        return [_to_entity(EntityKind.SHOP_PRODUCTS, row) for row in rows]

    def get_shop_product(self, shop_id: str, product_id: str):
        row = self.db.query(models.ShopProduct).filter(
            models.ShopProduct.shop_id == shop_id,
            models.ShopProduct.product_id == product_id
        ).first()
        return _to_entity(EntityKind.SHOP_PRODUCTS, row) if row else None

    def get_price_updates_by_shop_product(self, shop_product_id: str) -> list:
        rows = self._query(EntityKind.PRICE_UPDATES).filter(
            models.PriceUpdate.shop_product_id == shop_product_id
        ).all()
        return [_to_entity(EntityKind.PRICE_UPDATES, row) for row in rows]

    def get_price_updates_by_shop(self, shop_id: str) -> list:
        listing_ids = self.db.query(models.ShopProduct.id).filter(models.ShopProduct.shop_id == shop_id)
        rows = self._query(EntityKind.PRICE_UPDATES).filter(
            models.PriceUpdate.shop_product_id.in_(listing_ids.scalar_subquery())
        ).all()
        return [_to_entity(EntityKind.PRICE_UPDATES, row) for row in rows]

    def get_subscriptions_by_user(self, user_id: str) -> list:
        rows = self._query(EntityKind.SUBSCRIPTIONS).filter(models.Subscription.user_id == user_id).all()
        return [_to_entity(EntityKind.SUBSCRIPTIONS, row) for row in rows]

    def get_active_subscription(self, user_id: str):
        row = self._query(EntityKind.SUBSCRIPTIONS).filter(
            models.Subscription.user_id == user_id,
            models.Subscription.status == "active"
        ).first()
        return _to_entity(EntityKind.SUBSCRIPTIONS, row) if row else None

    def get_payments_by_user(self, user_id: str, payment_type: Optional[str] = None) -> list:
        query = self._query(EntityKind.PAYMENTS).filter(models.Payment.user_id == user_id)
        if payment_type:
            query = query.filter(models.Payment.type == payment_type)
        return [_to_entity(EntityKind.PAYMENTS, row) for row in query.all()]

    def get_favorites_by_user(self, user_id: str, favorite_type: Optional[str] = None) -> list:
        query = self._query(EntityKind.FAVORITES).filter(models.Favorite.user_id == user_id)
        if favorite_type:
            query = query.filter(models.Favorite.type == favorite_type)
        return [_to_entity(EntityKind.FAVORITES, row) for row in query.all()]

    def find_favorite(self, user_id: str, favorite_type: str, item_id: str):
        row = self.db.query(models.Favorite).filter(
            models.Favorite.user_id == user_id,
            models.Favorite.type == favorite_type,
            models.Favorite.item_id == item_id
        ).first()
        return _to_entity(EntityKind.FAVORITES, row) if row else None

    def delete_favorite(self, user_id: str, favorite_type: str, item_id: str) -> None:
        with self.transaction():
            self.db.query(models.Favorite).filter(
                models.Favorite.user_id == user_id,
                models.Favorite.type == favorite_type,
                models.Favorite.item_id == item_id
            ).delete()
            self.db.flush()

    def get_notifications_by_user(self, user_id: str, unread_only: bool = False) -> list:
        query = self._query(EntityKind.NOTIFICATIONS).filter(models.Notification.user_id == user_id)
        if unread_only:
            query = query.filter(models.Notification.is_read == False)  # noqa: E712
        return [_to_entity(EntityKind.NOTIFICATIONS, row) for row in query.all()]

    # ============== Snapshot & integrity ==============

    def snapshot(self) -> StoreSnapshot:
        """Consistent copy of every collection for an aggregation pass."""
        with _write_lock:
            return StoreSnapshot(**{kind.value: self.get_all(kind) for kind in EntityKind})

    def verify_integrity(self, strict: bool = False) -> list[str]:
        """Check every foreign key.

        Raises ReferentialIntegrityError listing dangling references. Price
        updates whose listing was removed are retained history: they are
        returned as notes, or treated as dangling when ``strict`` is set.
        """
        snap = self.snapshot()
        user_ids = {user.id for user in snap.users}
        dangling = []
        notes = []

        def check(source_kind, entity, field_name, target_kind, target_ids):
            target_id = getattr(entity, field_name)
            if target_id not in target_ids:
                dangling.append({
                    "from": f"{source_kind}:{entity.id}",
                    "field": field_name,
                    "kind": target_kind,
                    "id": target_id,
                })

        for shop in snap.shops:
            check("shops", shop, "owner_id", "users", user_ids)
        for sp in snap.shop_products:
            check("shop_products", sp, "shop_id", "shops", snap.shops_by_id)
            check("shop_products", sp, "product_id", "products", snap.products_by_id)
        for update in snap.price_updates:
            if update.shop_product_id not in snap.shop_products_by_id:
                if strict:
                    check("price_updates", update, "shop_product_id", "shop_products", snap.shop_products_by_id)
                else:
                    notes.append(
                        f"price update {update.id} is retained history of removed listing {update.shop_product_id}"
                    )
        for kind in (EntityKind.SUBSCRIPTIONS, EntityKind.PAYMENTS, EntityKind.FAVORITES, EntityKind.NOTIFICATIONS):
            for entity in snap.get(kind):
                check(kind.value, entity, "user_id", "users", user_ids)
        for favorite in snap.favorites:
            targets = snap.products_by_id if favorite.type == "product" else snap.shops_by_id
            check("favorites", favorite, "item_id", f"{favorite.type}s", targets)

        if dangling:
            logger.error(f"Integrity check found {len(dangling)} dangling references")
            raise ReferentialIntegrityError(
                f"{len(dangling)} dangling reference(s) found",
                dangling=dangling
            )
        return notes
