"""
Ranking & Insights Engine

Popularity, trend and deal scores plus the recommendation feed. Weights
and caps below are part of the API contract; clients display these scores
and compare them across releases.

Purchase history is not stored here: callers pass PurchaseRecord lists and
every purchase-based view is a pure function of that input.
"""
import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Optional

from marketyard.config import get_settings
from marketyard.database import as_utc, utcnow
from marketyard.schemas import (
    PopularShop, TrendingProduct, BestDeal, PurchaseRecord,
    UserPurchasingPattern, MonthlySpending, Recommendation,
)
from marketyard.services.pricing import build_price_entry, priced_offerings, summarize_prices
from marketyard.services.storage import EntityStore, StoreSnapshot

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 3, "medium": 2, "low": 1}

# Direction threshold, in percent
STABLE_BAND = 2


# ============== Popularity ==============

def popularity_score(average_rating: float, goodwill_score: float, product_count: int, price_updates: int) -> float:
    rating = (average_rating or 0) * 20
    goodwill = goodwill_score or 0
    products = min(product_count * 2, 100)
    updates = min(price_updates * 2, 100)
    return rating * 0.4 + goodwill * 0.2 + products * 0.2 + updates * 0.2


def rank_popular_shops(snap: StoreSnapshot, limit: int = 10) -> list[PopularShop]:
    ranked = []
    for shop in snap.shops:
        if not shop.is_active:
            continue
        listings = snap.shop_products_by_shop.get(shop.id, [])
        update_count = sum(len(snap.price_updates_by_shop_product.get(sp.id, [])) for sp in listings)
        ranked.append(PopularShop(
            shop=shop,
            product_count=len(listings),
            total_price_updates=update_count,
            average_rating=shop.average_rating or 0,
            goodwill_score=shop.goodwill_score or 0,
            popularity_score=popularity_score(
                shop.average_rating, shop.goodwill_score, len(listings), update_count
            ),
        ))

    ranked.sort(key=lambda p: p.popularity_score, reverse=True)
    return ranked[:limit]


def get_most_popular_shops(store: EntityStore, limit: int = 10) -> list[PopularShop]:
    """Active shops ranked by popularity score, highest first."""
    return rank_popular_shops(store.snapshot(), limit=limit)


# ============== Trends ==============

def _mean(values: list[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def trend_score(price_change: float, view_count: int, shop_count: int) -> float:
    change = min(abs(price_change) * 10, 100)
    views = min(view_count, 100)
    shops = min(shop_count * 10, 100)
    return change * 0.4 + views * 0.3 + shops * 0.3


def price_change_direction(price_change: float) -> str:
    if price_change > STABLE_BAND:
        return "up"
    if price_change < -STABLE_BAND:
        return "down"
    return "stable"


def rank_trending_products(
    snap: StoreSnapshot,
    limit: int = 10,
    now: Optional[datetime] = None
) -> list[TrendingProduct]:
    now = as_utc(now) or utcnow()
    window = timedelta(days=get_settings().trend_window_days)
    recent_start = now - window
    prior_start = now - 2 * window

    ranked = []
    for product in snap.products:
        if not product.is_active:
            continue
        listings = snap.shop_products_by_product.get(product.id, [])
        shop_count = len(priced_offerings(listings))
        if shop_count == 0:
            continue

        recent, prior = [], []
        for sp in listings:
            for update in snap.price_updates_by_shop_product.get(sp.id, []):
                if recent_start <= update.created_at <= now:
                    recent.append(update.price)
                elif prior_start <= update.created_at < recent_start:
                    prior.append(update.price)

        recent_avg, prior_avg = _mean(recent), _mean(prior)
        price_change = 0.0
        if recent_avg is not None and prior_avg is not None and prior_avg > 0:
            price_change = (recent_avg - prior_avg) / prior_avg * 100

        view_count = shop_count * 10 + len(recent) * 5
        entry = build_price_entry(snap, product)
        ranked.append(TrendingProduct(
            product=product,
            price_change=price_change,
            price_change_direction=price_change_direction(price_change),
            view_count=view_count,
            shop_count=shop_count,
            min_price=entry.min_price,
            max_price=entry.max_price,
            trend_score=trend_score(price_change, view_count, shop_count),
        ))

    ranked.sort(key=lambda t: t.trend_score, reverse=True)
    return ranked[:limit]


def get_trending_products(
    store: EntityStore,
    limit: int = 10,
    now: Optional[datetime] = None
) -> list[TrendingProduct]:
    """Active, offered products ranked by trend score over the recent window."""
    return rank_trending_products(store.snapshot(), limit=limit, now=now)


# ============== Deals ==============

def deal_score(savings_percentage: float, shop_count: int) -> float:
    return savings_percentage * 10 + (20 if shop_count > 1 else 0)


def rank_best_deals(snap: StoreSnapshot, limit: int = 10) -> list[BestDeal]:
    min_savings = get_settings().deal_min_savings_pct
    deals = []
    for entry in summarize_prices(snap):
        if entry.min_price is None or entry.avg_price is None or entry.min_price == entry.avg_price:
            continue

        savings = entry.avg_price - entry.min_price
        savings_pct = savings / entry.avg_price * 100
        if savings_pct < min_savings:
            continue

        deals.append(BestDeal(
            product=entry.product,
            shop=entry.best_shop,
            price=entry.min_price,
            savings=savings,
            savings_percentage=savings_pct,
            deal_score=deal_score(savings_pct, entry.shop_count),
        ))

    deals.sort(key=lambda d: d.deal_score, reverse=True)
    return deals[:limit]


def get_best_deals(store: EntityStore, limit: int = 10) -> list[BestDeal]:
    """Products whose best price beats the market average by enough to matter."""
    return rank_best_deals(store.snapshot(), limit=limit)


# ============== Purchase history ==============

def _pattern(category: str, records: list[PurchaseRecord]) -> UserPurchasingPattern:
    total = sum(r.amount for r in records)
    shops = Counter(r.shop_id for r in records if r.shop_id)
    products = Counter(r.product_id for r in records)
    return UserPurchasingPattern(
        category=category,
        purchase_count=len(records),
        total_spent=total,
        average_price=total / len(records) if records else 0,
        favorite_shops=[shop_id for shop_id, _ in shops.most_common(3)],
        favorite_products=[product_id for product_id, _ in products.most_common(5)],
    )


def get_user_purchasing_patterns(purchases: Optional[list[PurchaseRecord]]) -> list[UserPurchasingPattern]:
    """Per-category purchase patterns, busiest category first.

    No history yields an empty list.
    """
    if not purchases:
        return []

    grouped = defaultdict(list)
    for record in purchases:
        grouped[record.category].append(record)

    patterns = [_pattern(category, records) for category, records in grouped.items()]
    patterns.sort(key=lambda p: (-p.purchase_count, -p.total_spent, p.category))
    return patterns


def get_dominant_category(purchases: Optional[list[PurchaseRecord]]) -> Optional[str]:
    patterns = get_user_purchasing_patterns(purchases)
    return patterns[0].category if patterns else None


def get_category_distribution(purchases: Optional[list[PurchaseRecord]]) -> dict[str, float]:
    """Share of purchases per category, in percent (one decimal)."""
    if not purchases:
        return {}

    counts = Counter(record.category for record in purchases)
    total = sum(counts.values())
    return {
        category: round(count / total * 100, 1)
        for category, count in sorted(counts.items())
    }


def _month_key(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def get_monthly_spending_trend(
    purchases: Optional[list[PurchaseRecord]],
    months: int = 6,
    now: Optional[datetime] = None
) -> list[MonthlySpending]:
    """Spend per calendar month for the last ``months`` months, oldest first.

    Months without purchases report 0.
    """
    if not purchases:
        return []

    now = as_utc(now) or utcnow()
    keys = []
    year, month = now.year, now.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    keys.reverse()

    totals = dict.fromkeys(keys, 0.0)
    for record in purchases:
        key = _month_key(as_utc(record.purchased_at))
        if key in totals:
            totals[key] += record.amount

    return [MonthlySpending(month=key, amount=amount) for key, amount in totals.items()]


# ============== Recommendations ==============

def _label(category: str) -> str:
    return category.replace("_", " ")


def get_recommendations(
    store: EntityStore,
    user_id: str,
    purchases: Optional[list[PurchaseRecord]] = None,
    now: Optional[datetime] = None
) -> list[Recommendation]:
    """Prioritized suggestions for one user.

    Built in a fixed order (favorite product, popular shop, top deal,
    trending product, dominant-category product) then stably sorted by
    priority.
    """
    snap = store.snapshot()
    summary = summarize_prices(snap)
    recommendations = []

    liked = set()
    for favorite in snap.favorites:
        if favorite.user_id != user_id or favorite.type != "product":
            continue
        snap.require_product(favorite.item_id, referenced_by=f"favorites:{favorite.id}")
        liked.add(favorite.item_id)
    liked.update(record.product_id for record in purchases or [])

    liked_entry = next((entry for entry in summary if entry.product.id in liked), None)
    if liked_entry:
        product = liked_entry.product
        recommendations.append(Recommendation(
            type="product",
            title=f"Check out {product.name}",
            description=(
                f"Based on your preferences, you might like {product.name}. "
                f"Currently available at {liked_entry.shop_count} shops."
            ),
            product_id=product.id,
            priority="high",
        ))

    popular = rank_popular_shops(snap, limit=1)
    if popular:
        top = popular[0]
        recommendations.append(Recommendation(
            type="shop",
            title=f"Visit {top.shop.shop_name}",
            description=(
                f"Highly rated shop with {top.product_count} products "
                f"and a {top.average_rating:.1f} rating."
            ),
            shop_id=top.shop.id,
            priority="high",
        ))

    deals = rank_best_deals(snap, limit=1)
    if deals:
        deal = deals[0]
        recommendations.append(Recommendation(
            type="deal",
            title=f"Great Deal: {deal.product.name}",
            description=(
                f"Save {deal.savings_percentage:.1f}% on {deal.product.name} at {deal.shop.shop_name}."
            ),
            product_id=deal.product.id,
            shop_id=deal.shop.id,
            priority="high",
        ))

    trending = rank_trending_products(snap, limit=1, now=now)
    if trending:
        item = trending[0]
        if item.price_change_direction == "down":
            trend_text = f"Price dropped by {abs(item.price_change):.1f}%"
        elif item.price_change_direction == "up":
            trend_text = f"Price increased by {item.price_change:.1f}%"
        else:
            trend_text = "Price is stable"
        recommendations.append(Recommendation(
            type="product",
            title=f"Trending: {item.product.name}",
            description=(
                f"{item.product.name} is trending. {trend_text}. Available at {item.shop_count} shops."
            ),
            product_id=item.product.id,
            priority="medium",
        ))

    category = get_dominant_category(purchases)
    if category:
        in_category = next((entry for entry in summary if entry.product.category == category), None)
        if in_category:
            product = in_category.product
            recommendations.append(Recommendation(
                type="product",
                title=f"New in {_label(product.category)}",
                description=f"Discover {product.name} in the {_label(product.category)} category.",
                product_id=product.id,
                priority="medium",
            ))

    recommendations.sort(key=lambda r: PRIORITY_ORDER[r.priority], reverse=True)
    logger.debug(f"Built {len(recommendations)} recommendations for user {user_id}")
    return recommendations
