"""
Data export / import endpoints.
"""
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import PlainTextResponse

from marketyard.routers.deps import get_store
from marketyard.schemas import ExportDocument, BackendMigrationDocument, MigrationSummary
from marketyard.services import migration
from marketyard.services.storage import EntityStore


router = APIRouter(prefix="/migration", tags=["migration"])


@router.get("/export", response_model=ExportDocument)
def export_data(store: EntityStore = Depends(get_store)):
    return migration.export_all(store)


@router.get("/export/backend", response_model=BackendMigrationDocument)
def export_backend_format(store: EntityStore = Depends(get_store)):
    return migration.format_for_backend_migration(store=store)


@router.get("/export/csv")
def export_csv(store: EntityStore = Depends(get_store)) -> dict[str, str]:
    """CSV text per non-empty table."""
    return migration.export_as_csv(store)


@router.get("/export/sql", response_class=PlainTextResponse)
def export_sql(dialect: str = "postgresql", store: EntityStore = Depends(get_store)):
    return migration.generate_sql_inserts(store, dialect=dialect)


@router.get("/summary", response_model=MigrationSummary)
def summary(store: EntityStore = Depends(get_store)):
    return migration.get_migration_summary(store)


@router.post("/import")
def import_data(
    document: Any = Body(...),
    merge: bool = False,
    clear_before_import: bool = False,
    store: EntityStore = Depends(get_store)
) -> dict[str, int]:
    """Restore an export document; returns per-collection counts afterwards."""
    return migration.import_all(store, document, merge=merge, clear_before_import=clear_before_import)


@router.get("/integrity")
def integrity(strict: bool = False, store: EntityStore = Depends(get_store)):
    """Walk every foreign key. Dangling references fail the request."""
    notes = store.verify_integrity(strict=strict)
    return {"ok": True, "notes": notes}
