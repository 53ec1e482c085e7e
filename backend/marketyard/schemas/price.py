from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

from marketyard.schemas.base import Entity
from marketyard.schemas.product import Product
from marketyard.schemas.shop import Shop

ActorRole = Literal["shop_owner", "staff"]
PaymentStatus = Literal["pending", "processing", "paid", "failed"]


class PriceUpdate(Entity):
    shop_product_id: str = Field(min_length=1)
    price: float = Field(gt=0, allow_inf_nan=False)
    updated_by_type: ActorRole
    updated_by_id: str = Field(min_length=1)
    payment_status: PaymentStatus = "pending"
    payment_amount: float = Field(default=1.0, ge=0, allow_inf_nan=False)
    created_at: datetime


class PriceActor(BaseModel):
    """Who submitted a price: the shop owner or a staff member."""
    id: str
    role: ActorRole


class GlobalPriceEntry(BaseModel):
    """Current market view of one product across all shops."""
    product: Product
    shop_count: int = 0
    min_price: float | None = None
    max_price: float | None = None
    avg_price: float | None = None
    best_shop: Shop | None = None
    best_shop_product_id: str | None = None


class ComparisonCell(BaseModel):
    product_id: str
    shop_id: str
    price: float | None = None
    is_available: bool = False
    is_best_price: bool = False  # Best price for this product across the selected shops


class PriceComparison(BaseModel):
    """Product x shop price matrix."""
    products: list[Product] = []
    shops: list[Shop] = []
    cells: list[ComparisonCell] = []


class PriceHistoryEntry(BaseModel):
    date: datetime
    price: float
    shop_id: str
    shop_name: str
    product_id: str
    product_name: str
    update_id: str


class PriceStats(BaseModel):
    min: float = 0
    max: float = 0
    avg: float = 0
    count: int = 0


class Earnings(BaseModel):
    total: float = 0
    pending: float = 0
    paid: float = 0


class PriceUpdateCreate(BaseModel):
    shop_product_id: str
    price: float = Field(gt=0, allow_inf_nan=False)
    updated_by_type: ActorRole
    updated_by_id: str
    payment_status: PaymentStatus | None = None
    payment_amount: float | None = Field(default=None, ge=0, allow_inf_nan=False)


class PaymentStatusChange(BaseModel):
    payment_status: PaymentStatus
