"""
Import/Export Service

Serializes the whole store to a portable JSON document and restores it,
either replacing collections or merging into them. Also produces the
table-shaped variants used when moving data into another database (CSV
per table, SQL INSERT statements).
"""
import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel
from sqlalchemy import insert, null
from sqlalchemy.dialects import postgresql, sqlite

from marketyard.config import get_settings
from marketyard.database import utcnow
from marketyard.exceptions import ImportFormatError, ValidationError
from marketyard.schemas import ExportDocument, ExportMetadata, BackendMigrationDocument, MigrationSummary
from marketyard.services.storage import EntityKind, EntityStore, validate_entity

logger = logging.getLogger(__name__)

# Secondary identity used by merge imports when the id does not match
NATURAL_KEYS = {
    EntityKind.USERS: lambda e: e.phone_number,
    EntityKind.PRODUCTS: lambda e: e.name.casefold(),
    EntityKind.SHOP_PRODUCTS: lambda e: (e.shop_id, e.product_id),
    EntityKind.FAVORITES: lambda e: (e.user_id, e.type, e.item_id),
}

# Foreign keys per kind: field -> kind it points at
FOREIGN_KEYS = {
    EntityKind.SHOPS: {"owner_id": EntityKind.USERS},
    EntityKind.SHOP_PRODUCTS: {"shop_id": EntityKind.SHOPS, "product_id": EntityKind.PRODUCTS},
    EntityKind.PRICE_UPDATES: {"shop_product_id": EntityKind.SHOP_PRODUCTS},
    EntityKind.SUBSCRIPTIONS: {"user_id": EntityKind.USERS},
    EntityKind.PAYMENTS: {"user_id": EntityKind.USERS, "shop_owner_id": EntityKind.USERS},
    EntityKind.NOTIFICATIONS: {"user_id": EntityKind.USERS},
    EntityKind.FAVORITES: {"user_id": EntityKind.USERS},
}

FAVORITE_TARGETS = {"product": EntityKind.PRODUCTS, "shop": EntityKind.SHOPS}

METADATA_FIELDS = {
    EntityKind.USERS: "totalUsers",
    EntityKind.SHOPS: "totalShops",
    EntityKind.PRODUCTS: "totalProducts",
    EntityKind.SHOP_PRODUCTS: "totalShopProducts",
    EntityKind.PRICE_UPDATES: "totalPriceUpdates",
    EntityKind.SUBSCRIPTIONS: "totalSubscriptions",
    EntityKind.PAYMENTS: "totalPayments",
    EntityKind.FAVORITES: "totalFavorites",
    EntityKind.NOTIFICATIONS: "totalNotifications",
}


# ============== Export ==============

def export_all(store: EntityStore) -> ExportDocument:
    """Every collection plus per-kind counts, keyed by camelCase kind name."""
    snap = store.snapshot()
    data = {
        kind.document_key: [entity.model_dump(mode="json") for entity in snap.get(kind)]
        for kind in EntityKind
    }
    metadata = ExportMetadata(**{
        METADATA_FIELDS[kind]: len(data[kind.document_key]) for kind in EntityKind
    })
    document = ExportDocument(
        version=get_settings().export_version,
        exportedAt=utcnow(),
        metadata=metadata,
        data=data,
    )
    logger.info(f"Exported {sum(len(rows) for rows in data.values())} records")
    return document


def format_for_backend_migration(
    document: Optional[ExportDocument] = None,
    store: Optional[EntityStore] = None
) -> BackendMigrationDocument:
    """Same records keyed by snake_case table name."""
    if document is None:
        if store is None:
            raise ValueError("either document or store is required")
        document = export_all(store)

    return BackendMigrationDocument(
        version=document.version,
        exportedAt=document.exportedAt,
        tables={kind.value: document.data.get(kind.document_key, []) for kind in EntityKind},
    )


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def export_as_csv(store: EntityStore) -> dict[str, str]:
    """One CSV text per non-empty table, header taken from the schema fields."""
    document = export_all(store)
    tables = {}
    for kind in EntityKind:
        rows = document.data[kind.document_key]
        if not rows:
            continue
        headers = list(kind.spec.schema.model_fields)
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(headers)
        for row in rows:
            writer.writerow([_cell(row.get(header)) for header in headers])
        tables[kind.value] = buffer.getvalue()
    return tables


SQL_DIALECTS = {
    "postgresql": postgresql.dialect,
    "sqlite": sqlite.dialect,
}


def generate_sql_inserts(store: EntityStore, dialect: str = "postgresql") -> str:
    """INSERT statements for every non-empty table, in dependency order.

    Statements are compiled by SQLAlchemy with literal values for the
    requested dialect.
    """
    if dialect not in SQL_DIALECTS:
        raise ValidationError(
            f"Unknown SQL dialect '{dialect}'; expected one of {', '.join(SQL_DIALECTS)}",
            field="dialect"
        )
    # Named paramstyle keeps "%" in literals undoubled
    target = SQL_DIALECTS[dialect](paramstyle="named")

    snap = store.snapshot()
    lines = []
    for kind in EntityKind:
        entities = snap.get(kind)
        if not entities:
            continue
        table = kind.spec.model.__table__
        columns = [column.name for column in table.columns if column.name != "seq"]
        rows = []
        for entity in entities:
            data = entity.model_dump()
            rows.append({name: null() if data.get(name) is None else data[name] for name in columns})

        statement = insert(table).values(rows)
        compiled = statement.compile(dialect=target, compile_kwargs={"literal_binds": True})
        lines.append(f"-- {kind.value} ({len(rows)} rows)")
        lines.append(f"{compiled};")
        lines.append("")
    return "\n".join(lines)


def format_bytes(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    while size >= 1024 ** (index + 1) and index < len(units) - 1:
        index += 1
    return f"{round(size / 1024 ** index, 2):g} {units[index]}"


def get_migration_summary(store: EntityStore) -> MigrationSummary:
    document = export_all(store)
    breakdown = {kind.document_key: len(document.data[kind.document_key]) for kind in EntityKind}
    size = len(document.model_dump_json().encode("utf-8"))
    return MigrationSummary(
        total_records=sum(breakdown.values()),
        breakdown=breakdown,
        estimated_size=format_bytes(size),
    )


def write_export_file(store: EntityStore, path, backend_format: bool = False) -> Path:
    """Write the export document (or the table-keyed variant) as JSON."""
    document = export_all(store)
    if backend_format:
        document = format_for_backend_migration(document)
    path = Path(path)
    path.write_text(document.model_dump_json(indent=2), encoding="utf-8")
    logger.info(f"Export written to {path}")
    return path


def read_import_file(path) -> dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Import file {path} is not valid JSON: {e}") from e


# ============== Import ==============

def _collections(document: Any) -> dict[EntityKind, list]:
    """Pull the per-kind record lists out of a document, checking its shape."""
    if isinstance(document, BaseModel):
        document = document.model_dump(mode="json")
    if not isinstance(document, Mapping):
        raise ImportFormatError(f"Import document must be an object, got {type(document).__name__}")

    body = document.get("data", document.get("tables"))
    if not isinstance(body, Mapping):
        raise ImportFormatError("Import document needs a 'data' or 'tables' object")

    by_key = {}
    for kind in EntityKind:
        by_key[kind.document_key] = kind
        by_key[kind.value] = kind

    collections = {}
    for key, records in body.items():
        kind = by_key.get(key)
        if kind is None:
            logger.warning(f"Ignoring unknown collection '{key}' in import document")
            continue
        if not isinstance(records, list):
            raise ImportFormatError(
                f"Collection '{key}' must be a list, got {type(records).__name__}",
                details={"collection": key}
            )
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise ImportFormatError(
                    f"Record {index} of '{key}' must be an object",
                    details={"collection": key, "index": index}
                )
        collections[kind] = records

    # Dependency order, whatever order the document used
    return {kind: collections[kind] for kind in EntityKind if kind in collections}


def _validate_all(collections: dict[EntityKind, list]) -> dict[EntityKind, list]:
    validated = {}
    for kind, records in collections.items():
        entities = []
        for index, record in enumerate(records):
            try:
                entities.append(validate_entity(kind, record))
            except ValidationError as e:
                e.details.update({"collection": kind.document_key, "index": index})
                raise
        validated[kind] = entities
    return validated


def _remap(kind: EntityKind, entity, remap: dict[EntityKind, dict[str, str]]):
    changes = {}
    for field_name, target in FOREIGN_KEYS.get(kind, {}).items():
        value = getattr(entity, field_name)
        if value in remap[target]:
            changes[field_name] = remap[target][value]
    if kind is EntityKind.FAVORITES:
        target = FAVORITE_TARGETS[entity.type]
        if entity.item_id in remap[target]:
            changes["item_id"] = remap[target][entity.item_id]
    return entity.model_copy(update=changes) if changes else entity


def _merge_kind(store: EntityStore, kind: EntityKind, entities: list, remap: dict) -> None:
    natural_key = NATURAL_KEYS.get(kind)
    existing_by_key = {}
    if natural_key:
        existing_by_key = {natural_key(e): e.id for e in store.get_all(kind)}

    for entity in entities:
        entity = _remap(kind, entity, remap)
        if natural_key and store.get_by_id(kind, entity.id) is None:
            kept_id = existing_by_key.get(natural_key(entity))
            if kept_id is not None:
                remap[kind][entity.id] = kept_id
                entity = entity.model_copy(update={"id": kept_id})
        store.save(entity, kind)
        if natural_key:
            existing_by_key[natural_key(entity)] = entity.id


def import_all(
    store: EntityStore,
    document: Any,
    merge: bool = False,
    clear_before_import: bool = False
) -> dict[str, int]:
    """Restore a document into the store.

    The document's shape and every record are checked before anything is
    written; the writes then run in a single transaction. Replace mode swaps
    each collection present in the document and leaves the others alone.
    Merge mode upserts by id, then by natural key, keeping the existing id
    and pointing later records at it.

    Returns post-import counts keyed by document collection name.
    """
    collections = _collections(document)
    validated = _validate_all(collections)

    with store.transaction():
        if clear_before_import:
            store.clear()

        if merge:
            remap = {kind: {} for kind in EntityKind}
            for kind, entities in validated.items():
                _merge_kind(store, kind, entities, remap)
        else:
            for kind, entities in validated.items():
                store.replace_all(kind, entities)

    counts = {kind.document_key: store.count(kind) for kind in EntityKind}
    logger.info(
        f"Imported {sum(len(e) for e in validated.values())} records "
        f"({'merge' if merge else 'replace'}): {counts}"
    )
    return counts
