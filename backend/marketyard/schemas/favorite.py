from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

from marketyard.schemas.base import Entity
from marketyard.schemas.product import Product
from marketyard.schemas.shop import Shop

FavoriteType = Literal["product", "shop"]


class Favorite(Entity):
    user_id: str = Field(min_length=1)
    type: FavoriteType
    item_id: str = Field(min_length=1)
    created_at: datetime


class FavoriteProduct(Product):
    favorited_at: datetime


class FavoriteShop(Shop):
    favorited_at: datetime


class FavoriteToggle(BaseModel):
    user_id: str
    type: FavoriteType
    item_id: str
