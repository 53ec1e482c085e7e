"""
Price history views: how a product's price moved across shops, or how a
shop's prices moved across products. Entries are oldest first.
"""
from datetime import datetime
from typing import Optional

from marketyard.database import as_utc
from marketyard.schemas import PriceHistoryEntry, PriceStats
from marketyard.services.storage import EntityKind, EntityStore, StoreSnapshot


def _entries(
    snap: StoreSnapshot,
    listings: list,
    start: Optional[datetime],
    end: Optional[datetime]
) -> list[PriceHistoryEntry]:
    start, end = as_utc(start), as_utc(end)
    entries = []
    for sp in listings:
        shop = snap.require_shop(sp.shop_id, referenced_by=f"shop_products:{sp.id}")
        product = snap.require_product(sp.product_id, referenced_by=f"shop_products:{sp.id}")
        for update in snap.price_updates_by_shop_product.get(sp.id, []):
            if start and update.created_at < start:
                continue
            if end and update.created_at > end:
                continue
            entries.append(PriceHistoryEntry(
                date=update.created_at,
                price=update.price,
                shop_id=shop.id,
                shop_name=shop.shop_name,
                product_id=product.id,
                product_name=product.name,
                update_id=update.id,
            ))
    entries.sort(key=lambda e: e.date)
    return entries


def get_product_price_history(
    store: EntityStore,
    product_id: str,
    shop_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> list[PriceHistoryEntry]:
    snap = store.snapshot()
    listings = snap.shop_products_by_product.get(product_id, [])
    if shop_id:
        listings = [sp for sp in listings if sp.shop_id == shop_id]
    return _entries(snap, listings, start, end)


def get_shop_price_history(
    store: EntityStore,
    shop_id: str,
    product_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> list[PriceHistoryEntry]:
    snap = store.snapshot()
    listings = snap.shop_products_by_shop.get(shop_id, [])
    if product_id:
        listings = [sp for sp in listings if sp.product_id == product_id]
    return _entries(snap, listings, start, end)


def get_product_price_history_by_shop(
    store: EntityStore,
    product_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> dict[str, list[PriceHistoryEntry]]:
    grouped: dict[str, list[PriceHistoryEntry]] = {}
    for entry in get_product_price_history(store, product_id, start=start, end=end):
        grouped.setdefault(entry.shop_id, []).append(entry)
    return grouped


def get_shop_price_history_by_product(
    store: EntityStore,
    shop_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> dict[str, list[PriceHistoryEntry]]:
    grouped: dict[str, list[PriceHistoryEntry]] = {}
    for entry in get_shop_price_history(store, shop_id, start=start, end=end):
        grouped.setdefault(entry.product_id, []).append(entry)
    return grouped


def calculate_price_stats(entries: list[PriceHistoryEntry]) -> PriceStats:
    if not entries:
        return PriceStats()
    prices = [entry.price for entry in entries]
    return PriceStats(
        min=min(prices),
        max=max(prices),
        avg=sum(prices) / len(prices),
        count=len(prices),
    )


def get_shops_with_price_history(store: EntityStore, product_id: str) -> list:
    """Active shops that have reported a price for the product."""
    shop_ids = {entry.shop_id for entry in get_product_price_history(store, product_id)}
    return [shop for shop in store.get_all(EntityKind.SHOPS) if shop.is_active and shop.id in shop_ids]


def get_products_with_price_history(store: EntityStore, shop_id: str) -> list:
    """Active products the shop has reported prices for."""
    product_ids = {entry.product_id for entry in get_shop_price_history(store, shop_id)}
    return [p for p in store.get_all(EntityKind.PRODUCTS) if p.is_active and p.id in product_ids]
