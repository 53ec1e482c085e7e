from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Literal

from marketyard.schemas.base import Entity

PaymentType = Literal["subscription", "price_update_incentive", "refund"]
PaymentState = Literal["pending", "processing", "success", "failed", "refunded"]


class Payment(Entity):
    user_id: str = Field(min_length=1)
    type: PaymentType
    amount: float = Field(ge=0, allow_inf_nan=False)
    currency: str = "INR"
    status: PaymentState = "pending"
    shop_owner_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_order_id: str | None = None
    method: str | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class PaymentCreate(BaseModel):
    user_id: str
    type: PaymentType
    amount: float = Field(ge=0, allow_inf_nan=False)
    currency: str | None = None
    status: PaymentState = "pending"
    shop_owner_id: str | None = None
    method: str | None = None
    description: str | None = None
    metadata: dict[str, Any] | None = None
    razorpay_payment_id: str | None = None
    razorpay_order_id: str | None = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentState
