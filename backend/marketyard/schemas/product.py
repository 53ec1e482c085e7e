from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

from marketyard.schemas.base import Entity

ProductCategory = Literal["fruits", "vegetables", "farming_materials", "farming_products"]
ProductUnit = Literal["kg", "piece", "pack", "dozen", "bunch", "litre", "gram"]


class Product(Entity):
    name: str = Field(min_length=1, max_length=255)
    category: ProductCategory
    unit: ProductUnit
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime | None = None


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: ProductCategory
    unit: ProductUnit
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    category: ProductCategory | None = None
    unit: ProductUnit | None = None
    description: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    is_active: bool | None = None
