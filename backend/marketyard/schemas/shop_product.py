from pydantic import BaseModel, Field
from datetime import datetime

from marketyard.schemas.base import Entity


class ShopProduct(Entity):
    shop_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    is_available: bool = True
    current_price: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    last_price_update_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class ShopProductListing(ShopProduct):
    """A shop's listing joined with the product's display fields."""
    product_name: str
    unit: str


class CurrentPrice(BaseModel):
    shop_product_id: str
    product_id: str
    current_price: float | None = None
    last_updated_at: datetime | None = None
    is_available: bool


class ShopProductCreate(BaseModel):
    shop_id: str
    product_id: str
    price: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    is_available: bool = True


class ShopProductUpdate(BaseModel):
    is_available: bool
