from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from marketyard.routers.deps import get_store
from marketyard.schemas import (
    GlobalPriceEntry, PriceComparison, PriceUpdate, PriceUpdateCreate, PriceActor,
    PaymentStatusChange, PriceHistoryEntry, PriceStats, Product, Shop,
)
from marketyard.services import pricing, price_history, price_updates
from marketyard.services.storage import EntityStore

router = APIRouter(prefix="/prices", tags=["prices"])


@router.get("/summary", response_model=list[GlobalPriceEntry])
def get_price_summary(
    category: str | None = None,
    search: str | None = None,
    store: EntityStore = Depends(get_store)
):
    """Lowest, highest and average price of every active product across shops."""
    return pricing.get_global_price_summary(store, category=category, search=search)


@router.get("/compare", response_model=PriceComparison)
def compare_prices(
    product_ids: list[str] = Query(default=[]),
    shop_ids: list[str] = Query(default=[]),
    store: EntityStore = Depends(get_store)
):
    """Side-by-side prices for the selected products and shops."""
    return pricing.get_price_comparison(store, product_ids, shop_ids)


@router.get("/shops-selling", response_model=list[Shop])
def shops_selling(
    product_ids: list[str] = Query(default=[]),
    store: EntityStore = Depends(get_store)
):
    return pricing.get_shops_selling_products(store, product_ids)


@router.get("/products-available", response_model=list[Product])
def products_available(
    shop_ids: list[str] = Query(default=[]),
    store: EntityStore = Depends(get_store)
):
    return pricing.get_products_available_at_shops(store, shop_ids)


@router.post("/updates", response_model=PriceUpdate, status_code=status.HTTP_201_CREATED)
def submit_price_update(body: PriceUpdateCreate, store: EntityStore = Depends(get_store)):
    """Report a new price for a listing."""
    return price_updates.create_price_update(
        store,
        body.shop_product_id,
        body.price,
        PriceActor(id=body.updated_by_id, role=body.updated_by_type),
        payment_status=body.payment_status,
        payment_amount=body.payment_amount,
    )


@router.patch("/updates/{price_update_id}/payment", response_model=PriceUpdate)
def change_payment_status(
    price_update_id: str,
    body: PaymentStatusChange,
    store: EntityStore = Depends(get_store)
):
    return price_updates.update_payment_status(store, price_update_id, body.payment_status)


@router.get("/listings/{shop_product_id}/history", response_model=list[PriceUpdate])
def get_listing_history(shop_product_id: str, store: EntityStore = Depends(get_store)):
    """Every update for a listing, newest first."""
    return price_updates.get_price_history(store, shop_product_id)


@router.get("/history/products/{product_id}", response_model=list[PriceHistoryEntry])
def get_product_history(
    product_id: str,
    shop_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    store: EntityStore = Depends(get_store)
):
    return price_history.get_product_price_history(store, product_id, shop_id=shop_id, start=start, end=end)


@router.get("/history/products/{product_id}/by-shop", response_model=dict[str, list[PriceHistoryEntry]])
def get_product_history_by_shop(
    product_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    store: EntityStore = Depends(get_store)
):
    return price_history.get_product_price_history_by_shop(store, product_id, start=start, end=end)


@router.get("/history/shops/{shop_id}", response_model=list[PriceHistoryEntry])
def get_shop_history(
    shop_id: str,
    product_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    store: EntityStore = Depends(get_store)
):
    return price_history.get_shop_price_history(store, shop_id, product_id=product_id, start=start, end=end)


@router.get("/history/shops/{shop_id}/by-product", response_model=dict[str, list[PriceHistoryEntry]])
def get_shop_history_by_product(
    shop_id: str,
    start: datetime | None = None,
    end: datetime | None = None,
    store: EntityStore = Depends(get_store)
):
    return price_history.get_shop_price_history_by_product(store, shop_id, start=start, end=end)


@router.get("/history/products/{product_id}/stats", response_model=PriceStats)
def get_product_price_stats(
    product_id: str,
    shop_id: str | None = None,
    store: EntityStore = Depends(get_store)
):
    entries = price_history.get_product_price_history(store, product_id, shop_id=shop_id)
    return price_history.calculate_price_stats(entries)
