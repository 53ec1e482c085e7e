from fastapi import APIRouter, Depends, status

from marketyard.routers.deps import get_store
from marketyard.schemas import Favorite, FavoriteToggle, FavoriteProduct, FavoriteShop
from marketyard.services import favorites
from marketyard.services.storage import EntityStore

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.post("/toggle")
def toggle(body: FavoriteToggle, store: EntityStore = Depends(get_store)):
    """Flip a favorite and report the new state."""
    is_favorite = favorites.toggle_favorite(store, body.user_id, body.type, body.item_id)
    return {"is_favorite": is_favorite}


@router.post("", response_model=Favorite, status_code=status.HTTP_201_CREATED)
def add(body: FavoriteToggle, store: EntityStore = Depends(get_store)):
    return favorites.add_favorite(store, body.user_id, body.type, body.item_id)


@router.delete("/{user_id}/{favorite_type}/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove(user_id: str, favorite_type: str, item_id: str, store: EntityStore = Depends(get_store)):
    favorites.remove_favorite(store, user_id, favorite_type, item_id)


@router.get("/{user_id}", response_model=list[Favorite])
def list_favorites(user_id: str, type: str | None = None, store: EntityStore = Depends(get_store)):
    return favorites.get_user_favorites(store, user_id, type)


@router.get("/{user_id}/products", response_model=list[FavoriteProduct])
def favorite_products(user_id: str, store: EntityStore = Depends(get_store)):
    return favorites.get_favorite_products_with_details(store, user_id)


@router.get("/{user_id}/shops", response_model=list[FavoriteShop])
def favorite_shops(user_id: str, store: EntityStore = Depends(get_store)):
    return favorites.get_favorite_shops_with_details(store, user_id)
