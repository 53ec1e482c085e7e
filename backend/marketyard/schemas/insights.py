from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

from marketyard.schemas.product import Product
from marketyard.schemas.shop import Shop

TrendDirection = Literal["up", "down", "stable"]
Priority = Literal["high", "medium", "low"]


class PopularShop(BaseModel):
    shop: Shop
    product_count: int
    total_price_updates: int
    average_rating: float
    goodwill_score: float
    popularity_score: float


class TrendingProduct(BaseModel):
    product: Product
    price_change: float  # percent, recent window vs prior window
    price_change_direction: TrendDirection
    view_count: int  # proxy: shop_count*10 + recent updates*5
    shop_count: int
    min_price: float | None = None
    max_price: float | None = None
    trend_score: float


class BestDeal(BaseModel):
    product: Product
    shop: Shop
    price: float
    savings: float  # vs the average price
    savings_percentage: float
    deal_score: float


class PurchaseRecord(BaseModel):
    """One purchase from the caller's purchase-history feed."""
    product_id: str
    shop_id: str | None = None
    category: str
    amount: float = Field(ge=0, allow_inf_nan=False)
    purchased_at: datetime


class UserPurchasingPattern(BaseModel):
    category: str
    purchase_count: int = 0
    total_spent: float = 0
    average_price: float = 0
    favorite_shops: list[str] = []
    favorite_products: list[str] = []


class MonthlySpending(BaseModel):
    month: str  # 'YYYY-MM'
    amount: float


class Recommendation(BaseModel):
    type: Literal["product", "shop", "deal"]
    title: str
    description: str
    product_id: str | None = None
    shop_id: str | None = None
    priority: Priority


class PurchaseHistory(BaseModel):
    """Request body carrying a user's purchase feed."""
    purchases: list[PurchaseRecord] = []
