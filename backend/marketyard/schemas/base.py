from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, field_validator


class Entity(BaseModel):
    """Common base for the nine persisted entity kinds."""
    id: str

    @field_validator("*", mode="after")
    @classmethod
    def _utc_datetimes(cls, value: Any) -> Any:
        # Naive timestamps are taken to be UTC
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    class Config:
        from_attributes = True
        str_strip_whitespace = True
