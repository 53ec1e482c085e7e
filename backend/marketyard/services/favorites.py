"""
Favorites

A user can favorite products and shops; each (user, type, item) pair is
stored at most once.
"""
import logging

from marketyard.database import utcnow
from marketyard.exceptions import NotFoundError, ValidationError
from marketyard.schemas import Favorite, FavoriteProduct, FavoriteShop
from marketyard.services.storage import EntityKind, EntityStore, generate_id

logger = logging.getLogger(__name__)

FAVORITE_KINDS = {"product": EntityKind.PRODUCTS, "shop": EntityKind.SHOPS}


def _check_type(favorite_type: str) -> EntityKind:
    if favorite_type not in FAVORITE_KINDS:
        raise ValidationError(f"Unknown favorite type '{favorite_type}'", field="type")
    return FAVORITE_KINDS[favorite_type]


def add_favorite(store: EntityStore, user_id: str, favorite_type: str, item_id: str) -> Favorite:
    """Favorite an item; returns the existing favorite if already there."""
    kind = _check_type(favorite_type)
    with store.transaction():
        existing = store.find_favorite(user_id, favorite_type, item_id)
        if existing:
            return existing
        if store.get_by_id(EntityKind.USERS, user_id) is None:
            raise NotFoundError("User", user_id)
        if store.get_by_id(kind, item_id) is None:
            raise NotFoundError(kind.spec.label, item_id)

        favorite = store.save(Favorite(
            id=generate_id("favorite"),
            user_id=user_id,
            type=favorite_type,
            item_id=item_id,
            created_at=utcnow(),
        ))
    logger.debug(f"User {user_id} favorited {favorite_type} {item_id}")
    return favorite


def remove_favorite(store: EntityStore, user_id: str, favorite_type: str, item_id: str) -> None:
    _check_type(favorite_type)
    store.delete_favorite(user_id, favorite_type, item_id)


def is_favorite(store: EntityStore, user_id: str, favorite_type: str, item_id: str) -> bool:
    return store.find_favorite(user_id, favorite_type, item_id) is not None


def toggle_favorite(store: EntityStore, user_id: str, favorite_type: str, item_id: str) -> bool:
    """Flip the favorite state; returns the new state."""
    with store.transaction():
        if is_favorite(store, user_id, favorite_type, item_id):
            remove_favorite(store, user_id, favorite_type, item_id)
            return False
        add_favorite(store, user_id, favorite_type, item_id)
        return True


def add_product_to_favorites(store: EntityStore, user_id: str, product_id: str) -> Favorite:
    return add_favorite(store, user_id, "product", product_id)


def add_shop_to_favorites(store: EntityStore, user_id: str, shop_id: str) -> Favorite:
    return add_favorite(store, user_id, "shop", shop_id)


def remove_product_from_favorites(store: EntityStore, user_id: str, product_id: str) -> None:
    remove_favorite(store, user_id, "product", product_id)


def remove_shop_from_favorites(store: EntityStore, user_id: str, shop_id: str) -> None:
    remove_favorite(store, user_id, "shop", shop_id)


def get_user_favorites(store: EntityStore, user_id: str, favorite_type: str = None) -> list[Favorite]:
    if favorite_type:
        _check_type(favorite_type)
    return store.get_favorites_by_user(user_id, favorite_type)


def get_favorite_products_with_details(store: EntityStore, user_id: str) -> list[FavoriteProduct]:
    """Favorited products joined with the product, newest favorite first."""
    snap = store.snapshot()
    details = []
    for favorite in store.get_favorites_by_user(user_id, "product"):
        product = snap.require_product(favorite.item_id, referenced_by=f"favorites:{favorite.id}")
        details.append(FavoriteProduct(**product.model_dump(), favorited_at=favorite.created_at))
    return sorted(details, key=lambda d: d.favorited_at, reverse=True)


def get_favorite_shops_with_details(store: EntityStore, user_id: str) -> list[FavoriteShop]:
    """Favorited shops joined with the shop, newest favorite first."""
    snap = store.snapshot()
    details = []
    for favorite in store.get_favorites_by_user(user_id, "shop"):
        shop = snap.require_shop(favorite.item_id, referenced_by=f"favorites:{favorite.id}")
        details.append(FavoriteShop(**shop.model_dump(), favorited_at=favorite.created_at))
    return sorted(details, key=lambda d: d.favorited_at, reverse=True)
