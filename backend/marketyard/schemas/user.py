from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal

from marketyard.schemas.base import Entity

UserType = Literal["shop_owner", "end_user", "staff", "admin"]


class User(Entity):
    phone_number: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=100)
    user_type: UserType
    email: str | None = None
    password_hash: str | None = None
    is_premium: bool = False
    subscription_expires_at: datetime | None = None
    is_active: bool = True
    is_verified: bool = False
    created_at: datetime
    updated_at: datetime


class UserCreate(BaseModel):
    phone_number: str
    name: str = Field(min_length=1, max_length=100)
    user_type: UserType = "end_user"
    email: str | None = None


class UserUpdate(BaseModel):
    phone_number: str | None = None
    name: str | None = Field(default=None, max_length=100)
    user_type: UserType | None = None
    email: str | None = None
    is_active: bool | None = None
    is_verified: bool | None = None
