"""
Insights router: rankings, deals and the recommendation feed.

Purchase-based views take the caller's purchase history in the request
body.
"""
from fastapi import APIRouter, Depends, Query

from marketyard.routers.deps import get_store
from marketyard.schemas import (
    PopularShop, TrendingProduct, BestDeal, Recommendation, PurchaseHistory,
    UserPurchasingPattern, MonthlySpending,
)
from marketyard.services import insights
from marketyard.services.storage import EntityStore

router = APIRouter(prefix="/insights", tags=["insights"])


@router.get("/popular-shops", response_model=list[PopularShop])
def popular_shops(limit: int = Query(10, ge=1, le=100), store: EntityStore = Depends(get_store)):
    return insights.get_most_popular_shops(store, limit=limit)


@router.get("/trending-products", response_model=list[TrendingProduct])
def trending_products(limit: int = Query(10, ge=1, le=100), store: EntityStore = Depends(get_store)):
    return insights.get_trending_products(store, limit=limit)


@router.get("/best-deals", response_model=list[BestDeal])
def best_deals(limit: int = Query(10, ge=1, le=100), store: EntityStore = Depends(get_store)):
    return insights.get_best_deals(store, limit=limit)


@router.post("/recommendations/{user_id}", response_model=list[Recommendation])
def recommendations(
    user_id: str,
    body: PurchaseHistory | None = None,
    store: EntityStore = Depends(get_store)
):
    purchases = body.purchases if body else None
    return insights.get_recommendations(store, user_id, purchases=purchases)


@router.post("/purchasing-patterns", response_model=list[UserPurchasingPattern])
def purchasing_patterns(body: PurchaseHistory):
    return insights.get_user_purchasing_patterns(body.purchases)


@router.post("/category-distribution", response_model=dict[str, float])
def category_distribution(body: PurchaseHistory):
    return insights.get_category_distribution(body.purchases)


@router.post("/monthly-spending", response_model=list[MonthlySpending])
def monthly_spending(body: PurchaseHistory, months: int = Query(6, ge=1, le=24)):
    return insights.get_monthly_spending_trend(body.purchases, months=months)
