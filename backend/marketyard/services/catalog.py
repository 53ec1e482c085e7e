"""
Catalog Service

Products, shops and the listings that connect them. Listing prices are
never written here directly: an initial price is recorded as a price
update, like any later change.
"""
import logging
from typing import Optional

from marketyard.database import utcnow
from marketyard.exceptions import NotFoundError, ValidationError
from marketyard.schemas import Product, Shop, ShopProduct, PriceActor
from marketyard.services.price_updates import create_price_update
from marketyard.services.storage import EntityKind, EntityStore, generate_id

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = {"name", "category", "unit", "description", "image_url", "is_active"}
SHOP_FIELDS = {
    "shop_name", "category", "address", "city", "state", "pincode", "latitude", "longitude",
    "phone_number", "description", "image_url", "is_active",
}
# Only record_shop_rating / adjust_goodwill may touch these
SHOP_AGGREGATES = {"goodwill_score", "average_rating", "total_ratings"}


def _clean(value):
    """Trim strings; blank strings become None."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _require(store: EntityStore, kind: EntityKind, entity_id: str):
    entity = store.get_by_id(kind, entity_id)
    if entity is None:
        raise NotFoundError(kind.spec.label, entity_id)
    return entity


# ============== Products ==============

def _check_product_name(store: EntityStore, name: str, product_id: Optional[str] = None) -> None:
    folded = name.casefold()
    for product in store.get_all(EntityKind.PRODUCTS):
        if product.name.casefold() == folded and product.id != product_id:
            raise ValidationError(f"Product '{name}' already exists as {product.id}", field="name")


def create_product(
    store: EntityStore,
    name: str,
    category: str,
    unit: str,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
    is_active: bool = True
) -> Product:
    name = _clean(name) or ""
    with store.transaction():
        _check_product_name(store, name)
        now = utcnow()
        product = store.save({
            "id": generate_id("product"),
            "name": name,
            "category": category,
            "unit": unit,
            "description": _clean(description),
            "image_url": _clean(image_url),
            "is_active": is_active,
            "created_at": now,
            "updated_at": now,
        }, EntityKind.PRODUCTS)
    logger.info(f"Created product {product.id} ({product.name})")
    return product


def update_product(store: EntityStore, product_id: str, **changes) -> Product:
    unknown = set(changes) - PRODUCT_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update product field(s): {', '.join(sorted(unknown))}", field=min(unknown))

    with store.transaction():
        product = _require(store, EntityKind.PRODUCTS, product_id)
        updates = {key: _clean(value) for key, value in changes.items()}
        # Required fields keep their value when blanked
        for key in ("name", "category", "unit", "is_active"):
            if key in updates and updates[key] is None:
                del updates[key]
        if "name" in updates:
            _check_product_name(store, updates["name"], product_id)
        updates["updated_at"] = utcnow()
        product = store.save(product.model_copy(update=updates))
    return product


def get_products(store: EntityStore, category: Optional[str] = None) -> list[Product]:
    """Products sorted by name, optionally within one category."""
    products = store.get_all(EntityKind.PRODUCTS)
    if category:
        products = [p for p in products if p.category == category]
    return sorted(products, key=lambda p: (p.name.casefold(), p.id))


def search_products(store: EntityStore, query: str) -> list[Product]:
    """Case-insensitive match on name, category, unit and description."""
    needle = (query or "").strip().casefold()
    if not needle:
        return get_products(store)

    def haystack(product):
        return " ".join(filter(None, [product.name, product.category, product.unit, product.description])).casefold()

    return [p for p in get_products(store) if needle in haystack(p)]


# ============== Shops ==============

def create_shop(
    store: EntityStore,
    owner_id: str,
    shop_name: str,
    category: str,
    **details
) -> Shop:
    """Open a shop for a shop owner. An owner has at most one shop."""
    unknown = set(details) - SHOP_FIELDS
    if unknown:
        raise ValidationError(f"Cannot set shop field(s): {', '.join(sorted(unknown))}", field=min(unknown))

    with store.transaction():
        owner = _require(store, EntityKind.USERS, owner_id)
        if owner.user_type != "shop_owner":
            raise ValidationError(f"User {owner_id} is not a shop owner", field="owner_id")
        existing = store.get_shop_by_owner(owner_id)
        if existing:
            raise ValidationError(f"User {owner_id} already owns shop {existing.id}", field="owner_id")

        now = utcnow()
        shop = store.save({
            **{key: _clean(value) for key, value in details.items()},
            "id": generate_id("shop"),
            "owner_id": owner_id,
            "shop_name": _clean(shop_name) or "",
            "category": category,
            "goodwill_score": 0,
            "total_ratings": 0,
            "average_rating": 0,
            "created_at": now,
            "updated_at": now,
        }, EntityKind.SHOPS)
    logger.info(f"Created shop {shop.id} ({shop.shop_name}) for owner {owner_id}")
    return shop


def update_shop(store: EntityStore, shop_id: str, **changes) -> Shop:
    aggregates = set(changes) & SHOP_AGGREGATES
    if aggregates:
        raise ValidationError(
            f"{', '.join(sorted(aggregates))} cannot be edited directly",
            field=min(aggregates)
        )
    unknown = set(changes) - SHOP_FIELDS
    if unknown:
        raise ValidationError(f"Cannot update shop field(s): {', '.join(sorted(unknown))}", field=min(unknown))

    with store.transaction():
        shop = _require(store, EntityKind.SHOPS, shop_id)
        updates = {key: _clean(value) for key, value in changes.items()}
        for key in ("shop_name", "category", "is_active"):
            if key in updates and updates[key] is None:
                del updates[key]
        updates["updated_at"] = utcnow()
        shop = store.save(shop.model_copy(update=updates))
    return shop


def record_shop_rating(store: EntityStore, shop_id: str, rating: float) -> Shop:
    """Fold one customer rating (1-5) into the shop's running average."""
    if not 1 <= rating <= 5:
        raise ValidationError(f"Rating must be between 1 and 5, got {rating}", field="rating")

    with store.transaction():
        shop = _require(store, EntityKind.SHOPS, shop_id)
        count = shop.total_ratings + 1
        average = (shop.average_rating * shop.total_ratings + rating) / count
        shop = store.save(shop.model_copy(update={
            "total_ratings": count,
            "average_rating": round(average, 2),
            "updated_at": utcnow(),
        }))
    return shop


def adjust_goodwill(store: EntityStore, shop_id: str, delta: float) -> Shop:
    """Shift the goodwill score, clamped to 0-100."""
    with store.transaction():
        shop = _require(store, EntityKind.SHOPS, shop_id)
        score = min(max(shop.goodwill_score + delta, 0), 100)
        shop = store.save(shop.model_copy(update={"goodwill_score": score, "updated_at": utcnow()}))
    logger.debug(f"Goodwill of shop {shop_id} is now {score}")
    return shop


# ============== Listings ==============

def add_product_to_shop(
    store: EntityStore,
    shop_id: str,
    product_id: str,
    price: Optional[float] = None,
    actor: Optional[PriceActor] = None,
    is_available: bool = True
) -> ShopProduct:
    """List a product at a shop, or refresh the existing listing.

    A given price is recorded through a price update by ``actor``
    (the shop's owner when omitted).
    """
    with store.transaction():
        shop = _require(store, EntityKind.SHOPS, shop_id)
        _require(store, EntityKind.PRODUCTS, product_id)

        now = utcnow()
        listing = store.get_shop_product(shop_id, product_id)
        if listing is None:
            listing = ShopProduct(
                id=generate_id("shop_product"),
                shop_id=shop_id,
                product_id=product_id,
                is_available=is_available,
                created_at=now,
                updated_at=now,
            )
            logger.info(f"Listing product {product_id} at shop {shop_id}")
        else:
            listing = listing.model_copy(update={"is_available": is_available, "updated_at": now})
        listing = store.save(listing)

        if price is not None:
            create_price_update(
                store,
                listing.id,
                price,
                actor or PriceActor(id=shop.owner_id, role="shop_owner"),
            )
            listing = store.get_by_id(EntityKind.SHOP_PRODUCTS, listing.id)
    return listing


def update_shop_product(store: EntityStore, shop_product_id: str, is_available: bool) -> ShopProduct:
    """Toggle availability. Prices change only through price updates."""
    with store.transaction():
        listing = _require(store, EntityKind.SHOP_PRODUCTS, shop_product_id)
        listing = store.save(listing.model_copy(update={"is_available": is_available, "updated_at": utcnow()}))
    return listing


def remove_product_from_shop(store: EntityStore, shop_product_id: str) -> None:
    """Drop a listing. Its price update history is kept."""
    with store.transaction():
        _require(store, EntityKind.SHOP_PRODUCTS, shop_product_id)
        store.delete(EntityKind.SHOP_PRODUCTS, shop_product_id)
    logger.info(f"Removed listing {shop_product_id}")


def get_shop_products(store: EntityStore, shop_id: str) -> list[ShopProduct]:
    return store.get_shop_products_by_shop(shop_id)
