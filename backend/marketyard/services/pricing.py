"""
Price Aggregation Engine

Builds the market-wide view of what each product costs across shops.
Everything is computed from one store snapshot on every call; nothing is
cached.
"""
import logging
from typing import Iterable, Optional

from marketyard.schemas import (
    GlobalPriceEntry, PriceComparison, ComparisonCell, ShopProductListing,
)
from marketyard.services.storage import EntityStore, StoreSnapshot

logger = logging.getLogger(__name__)


def priced_offerings(shop_products: Iterable) -> list:
    """Listings that count toward a price: available and carrying a price."""
    return [sp for sp in shop_products if sp.is_available and sp.current_price is not None]


def build_price_entry(snap: StoreSnapshot, product) -> GlobalPriceEntry:
    """Aggregate one product's offerings.

    best_shop is the shop of the first listing (insertion order) whose
    price equals the minimum.
    """
    offerings = priced_offerings(snap.shop_products_by_product.get(product.id, []))
    if not offerings:
        return GlobalPriceEntry(product=product)

    prices = [sp.current_price for sp in offerings]
    min_price = min(prices)
    best = next(sp for sp in offerings if sp.current_price == min_price)
    best_shop = snap.require_shop(best.shop_id, referenced_by=f"shop_products:{best.id}")

    return GlobalPriceEntry(
        product=product,
        shop_count=len(offerings),
        min_price=min_price,
        max_price=max(prices),
        avg_price=sum(prices) / len(prices),
        best_shop=best_shop,
        best_shop_product_id=best.id,
    )


def _matches_search(product, query: str) -> bool:
    haystack = " ".join(filter(None, [product.name, product.category, product.unit]))
    return query in haystack.casefold()


def summarize_prices(
    snap: StoreSnapshot,
    category: Optional[str] = None,
    search: Optional[str] = None
) -> list[GlobalPriceEntry]:
    """Global summary over an already-taken snapshot."""
    products = [p for p in snap.products if p.is_active]
    if category:
        products = [p for p in products if p.category == category]
    if search and search.strip():
        query = search.strip().casefold()
        products = [p for p in products if _matches_search(p, query)]

    products.sort(key=lambda p: (p.name.casefold(), p.id))
    return [build_price_entry(snap, product) for product in products]


def get_global_price_summary(
    store: EntityStore,
    category: Optional[str] = None,
    search: Optional[str] = None
) -> list[GlobalPriceEntry]:
    """One entry per active product, sorted by product name."""
    entries = summarize_prices(store.snapshot(), category=category, search=search)
    logger.debug(f"Global price summary built for {len(entries)} products")
    return entries


def get_shop_products_for_owner(store: EntityStore, owner_id: str) -> list[ShopProductListing]:
    """The owner's shop listings joined with product name and unit."""
    shop = store.get_shop_by_owner(owner_id)
    if shop is None:
        return []

    snap = store.snapshot()
    listings = []
    for sp in snap.shop_products_by_shop.get(shop.id, []):
        product = snap.require_product(sp.product_id, referenced_by=f"shop_products:{sp.id}")
        listings.append(ShopProductListing(
            **sp.model_dump(),
            product_name=product.name,
            unit=product.unit,
        ))
    return listings


def get_price_comparison(
    store: EntityStore,
    product_ids: list[str],
    shop_ids: list[str]
) -> PriceComparison:
    """Product x shop matrix for the selected products and active shops.

    Unknown ids are skipped. A cell is the best price when it is available
    and equals the lowest available price among the selected shops.
    """
    snap = store.snapshot()
    products = [snap.products_by_id[pid] for pid in product_ids if pid in snap.products_by_id]
    shops = [
        snap.shops_by_id[sid] for sid in shop_ids
        if sid in snap.shops_by_id and snap.shops_by_id[sid].is_active
    ]
    if not products or not shops:
        return PriceComparison()

    selected = {shop.id for shop in shops}
    cells = []
    for product in products:
        listings = {
            sp.shop_id: sp
            for sp in snap.shop_products_by_product.get(product.id, [])
            if sp.shop_id in selected
        }
        prices = [sp.current_price for sp in priced_offerings(listings.values())]
        best_price = min(prices) if prices else None

        for shop in shops:
            sp = listings.get(shop.id)
            price = sp.current_price if sp else None
            is_available = sp.is_available if sp else False
            cells.append(ComparisonCell(
                product_id=product.id,
                shop_id=shop.id,
                price=price,
                is_available=is_available,
                is_best_price=(
                    is_available and price is not None and best_price is not None and price == best_price
                ),
            ))

    return PriceComparison(products=products, shops=shops, cells=cells)


def get_shops_selling_products(store: EntityStore, product_ids: list[str]) -> list:
    """Active shops offering at least one of the products, by shop name.

    With no products selected every active shop is returned.
    """
    snap = store.snapshot()
    if not product_ids:
        return [shop for shop in snap.shops if shop.is_active]

    wanted = set(product_ids)
    shop_ids = {sp.shop_id for sp in priced_offerings(snap.shop_products) if sp.product_id in wanted}
    shops = [shop for shop in snap.shops if shop.is_active and shop.id in shop_ids]
    return sorted(shops, key=lambda s: s.shop_name.casefold())


def get_products_available_at_shops(store: EntityStore, shop_ids: list[str]) -> list:
    """Active products offered by at least one of the shops, by name."""
    snap = store.snapshot()
    if not shop_ids:
        return [product for product in snap.products if product.is_active]

    wanted = set(shop_ids)
    product_ids = {sp.product_id for sp in priced_offerings(snap.shop_products) if sp.shop_id in wanted}
    products = [p for p in snap.products if p.is_active and p.id in product_ids]
    return sorted(products, key=lambda p: p.name.casefold())
