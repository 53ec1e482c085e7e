"""
Export Data Script

Writes the whole store to a JSON export document (or the table-keyed
backend variant, CSV files, or SQL INSERT statements).
Run with: python -m scripts.export_data --out export.json
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from marketyard.database import SessionLocal, init_db
from marketyard.services.migration import (
    export_as_csv, generate_sql_inserts, get_migration_summary, write_export_file,
)
from marketyard.services.storage import EntityStore


def export_data(out: Path, fmt: str = "json", dialect: str = "postgresql"):
    """Export the store in the requested format."""
    init_db()
    db = SessionLocal()
    try:
        store = EntityStore(db)
        summary = get_migration_summary(store)
        print(f"Exporting {summary.total_records} records ({summary.estimated_size})")
        for key, count in summary.breakdown.items():
            print(f"  {key}: {count}")

        if fmt == "json":
            write_export_file(store, out)
        elif fmt == "backend":
            write_export_file(store, out, backend_format=True)
        elif fmt == "sql":
            out.write_text(generate_sql_inserts(store, dialect=dialect), encoding="utf-8")
        elif fmt == "csv":
            out.mkdir(parents=True, exist_ok=True)
            for table, text in export_as_csv(store).items():
                (out / f"{table}.csv").write_text(text, encoding="utf-8")

        print(f"Done: {out}")
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    parser = argparse.ArgumentParser(description="Export all Market Yard data")
    parser.add_argument("--out", type=Path, required=True, help="Output file (directory for csv)")
    parser.add_argument(
        "--format",
        choices=["json", "backend", "sql", "csv"],
        default="json",
        help="json: export document, backend: table-keyed document"
    )
    parser.add_argument("--dialect", choices=["postgresql", "sqlite"], default="postgresql", help="Dialect for sql output")
    args = parser.parse_args()

    export_data(args.out, args.format, args.dialect)
