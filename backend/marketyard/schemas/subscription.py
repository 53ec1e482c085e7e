from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

from marketyard.schemas.base import Entity

SubscriptionStatus = Literal["active", "cancelled", "expired", "paused"]


class Subscription(Entity):
    user_id: str = Field(min_length=1)
    status: SubscriptionStatus
    amount: float = Field(ge=0, allow_inf_nan=False)
    started_at: datetime
    expires_at: datetime
    cancelled_at: datetime | None = None
    auto_renew: bool = True
    created_at: datetime
    updated_at: datetime


class SubscriptionCreate(BaseModel):
    user_id: str
    amount: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    duration_days: int = Field(default=30, gt=0)
    auto_renew: bool = True
