from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

from marketyard.schemas.base import Entity

ShopCategory = Literal["fruits", "vegetables", "farming_materials", "farming_products", "mixed"]


class Shop(Entity):
    owner_id: str = Field(min_length=1)
    shop_name: str = Field(min_length=1, max_length=100)
    category: ShopCategory
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone_number: str | None = None
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    goodwill_score: float = Field(default=0, ge=0, le=100)
    total_ratings: int = Field(default=0, ge=0)
    average_rating: float = Field(default=0, ge=0, le=5)
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class ShopDetails(BaseModel):
    address: str | None = None
    city: str | None = None
    state: str | None = None
    pincode: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone_number: str | None = None
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None


class ShopCreate(ShopDetails):
    owner_id: str
    shop_name: str = Field(min_length=1, max_length=100)
    category: ShopCategory


class ShopUpdate(ShopDetails):
    shop_name: str | None = Field(default=None, max_length=100)
    category: ShopCategory | None = None
    is_active: bool | None = None


class ShopRating(BaseModel):
    rating: float = Field(ge=1, le=5)


class GoodwillAdjustment(BaseModel):
    delta: float
