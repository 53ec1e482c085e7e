from fastapi import APIRouter, Depends, status

from marketyard.exceptions import NotFoundError
from marketyard.routers.deps import get_store
from marketyard.schemas import (
    Product, ProductCreate, ProductUpdate,
    Shop, ShopCreate, ShopUpdate, ShopRating, GoodwillAdjustment,
    ShopProduct, ShopProductCreate, ShopProductUpdate, ShopProductListing,
    CurrentPrice, PriceUpdate, Earnings,
)
from marketyard.services import catalog, pricing, price_updates
from marketyard.services.storage import EntityKind, EntityStore

router = APIRouter(tags=["catalog"])


def _get_or_404(store: EntityStore, kind: EntityKind, entity_id: str):
    entity = store.get_by_id(kind, entity_id)
    if entity is None:
        raise NotFoundError(kind.spec.label, entity_id)
    return entity


# ============== Products ==============

@router.get("/products", response_model=list[Product])
def list_products(
    category: str | None = None,
    q: str | None = None,
    store: EntityStore = Depends(get_store)
):
    """Products by name; ``q`` searches name, category, unit and description."""
    if q:
        products = catalog.search_products(store, q)
        return [p for p in products if not category or p.category == category]
    return catalog.get_products(store, category=category)


@router.post("/products", response_model=Product, status_code=status.HTTP_201_CREATED)
def create_product(body: ProductCreate, store: EntityStore = Depends(get_store)):
    return catalog.create_product(store, **body.model_dump())


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: str, store: EntityStore = Depends(get_store)):
    return _get_or_404(store, EntityKind.PRODUCTS, product_id)


@router.patch("/products/{product_id}", response_model=Product)
def update_product(product_id: str, body: ProductUpdate, store: EntityStore = Depends(get_store)):
    return catalog.update_product(store, product_id, **body.model_dump(exclude_unset=True))


# ============== Shops ==============

@router.get("/shops", response_model=list[Shop])
def list_shops(active_only: bool = True, store: EntityStore = Depends(get_store)):
    shops = store.get_all(EntityKind.SHOPS)
    return [shop for shop in shops if shop.is_active or not active_only]


@router.post("/shops", response_model=Shop, status_code=status.HTTP_201_CREATED)
def create_shop(body: ShopCreate, store: EntityStore = Depends(get_store)):
    return catalog.create_shop(store, **body.model_dump(exclude_unset=True))


@router.get("/shops/{shop_id}", response_model=Shop)
def get_shop(shop_id: str, store: EntityStore = Depends(get_store)):
    return _get_or_404(store, EntityKind.SHOPS, shop_id)


@router.patch("/shops/{shop_id}", response_model=Shop)
def update_shop(shop_id: str, body: ShopUpdate, store: EntityStore = Depends(get_store)):
    return catalog.update_shop(store, shop_id, **body.model_dump(exclude_unset=True))


@router.post("/shops/{shop_id}/ratings", response_model=Shop)
def rate_shop(shop_id: str, body: ShopRating, store: EntityStore = Depends(get_store)):
    return catalog.record_shop_rating(store, shop_id, body.rating)


@router.post("/shops/{shop_id}/goodwill", response_model=Shop)
def adjust_goodwill(shop_id: str, body: GoodwillAdjustment, store: EntityStore = Depends(get_store)):
    return catalog.adjust_goodwill(store, shop_id, body.delta)


@router.get("/shops/{shop_id}/products", response_model=list[ShopProduct])
def list_shop_products(shop_id: str, store: EntityStore = Depends(get_store)):
    return catalog.get_shop_products(store, shop_id)


@router.get("/shops/{shop_id}/current-prices", response_model=list[CurrentPrice])
def current_prices(shop_id: str, store: EntityStore = Depends(get_store)):
    return price_updates.get_current_prices_for_shop(store, shop_id)


@router.get("/shops/{shop_id}/price-updates", response_model=list[PriceUpdate])
def shop_price_updates(shop_id: str, store: EntityStore = Depends(get_store)):
    return price_updates.get_price_updates_by_shop(store, shop_id)


@router.get("/shops/{shop_id}/earnings", response_model=Earnings)
def shop_earnings(shop_id: str, store: EntityStore = Depends(get_store)):
    _get_or_404(store, EntityKind.SHOPS, shop_id)
    return price_updates.calculate_earnings(store, shop_id)


@router.get("/owners/{owner_id}/listings", response_model=list[ShopProductListing])
def owner_listings(owner_id: str, store: EntityStore = Depends(get_store)):
    """The owner's listings with product name and unit."""
    return pricing.get_shop_products_for_owner(store, owner_id)


# ============== Listings ==============

@router.post("/shop-products", response_model=ShopProduct, status_code=status.HTTP_201_CREATED)
def add_shop_product(body: ShopProductCreate, store: EntityStore = Depends(get_store)):
    return catalog.add_product_to_shop(
        store,
        body.shop_id,
        body.product_id,
        price=body.price,
        is_available=body.is_available,
    )


@router.patch("/shop-products/{shop_product_id}", response_model=ShopProduct)
def update_shop_product(shop_product_id: str, body: ShopProductUpdate, store: EntityStore = Depends(get_store)):
    return catalog.update_shop_product(store, shop_product_id, body.is_available)


@router.delete("/shop-products/{shop_product_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_shop_product(shop_product_id: str, store: EntityStore = Depends(get_store)):
    catalog.remove_product_from_shop(store, shop_product_id)
