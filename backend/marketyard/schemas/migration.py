from pydantic import BaseModel
from datetime import datetime
from typing import Any


class ExportMetadata(BaseModel):
    totalUsers: int = 0
    totalShops: int = 0
    totalProducts: int = 0
    totalShopProducts: int = 0
    totalPriceUpdates: int = 0
    totalSubscriptions: int = 0
    totalPayments: int = 0
    totalFavorites: int = 0
    totalNotifications: int = 0


class ExportDocument(BaseModel):
    """Portable snapshot of the whole store, keyed by camelCase kind name."""
    version: str
    exportedAt: datetime
    metadata: ExportMetadata
    data: dict[str, list[dict[str, Any]]]


class BackendMigrationDocument(BaseModel):
    """Same records keyed by snake_case table name."""
    version: str
    exportedAt: datetime
    tables: dict[str, list[dict[str, Any]]]


class MigrationSummary(BaseModel):
    total_records: int
    breakdown: dict[str, int]
    estimated_size: str
