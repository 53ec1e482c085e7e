from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any

from marketyard.schemas.base import Entity


class Notification(Entity):
    user_id: str = Field(min_length=1)
    type: str = Field(min_length=1)  # 'price_drop', 'payment_received', 'subscription_expiring', 'system'
    title: str = Field(min_length=1)
    message: str | None = None
    is_read: bool = False
    read_at: datetime | None = None
    action_url: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime


class NotificationCreate(BaseModel):
    user_id: str
    type: str = Field(min_length=1)
    title: str = Field(min_length=1)
    message: str | None = None
    action_url: str | None = None
    metadata: dict[str, Any] | None = None
