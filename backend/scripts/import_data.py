"""
Import Data Script

Restores a JSON export document into the store.
Run with: python -m scripts.import_data export.json [--merge] [--clear]
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

from marketyard.database import SessionLocal, init_db
from marketyard.exceptions import MarketYardError
from marketyard.services.migration import import_all, read_import_file
from marketyard.services.storage import EntityStore


def import_data(path: Path, merge: bool = False, clear: bool = False, check: bool = True):
    """Import a document, then optionally verify referential integrity."""
    init_db()
    db = SessionLocal()
    try:
        store = EntityStore(db)
        document = read_import_file(path)
        counts = import_all(store, document, merge=merge, clear_before_import=clear)

        print(f"Imported {path} ({'merge' if merge else 'replace'})")
        for key, count in counts.items():
            print(f"  {key}: {count}")

        if check:
            for note in store.verify_integrity():
                print(f"  note: {note}")
            print("Integrity check passed")

    except MarketYardError as e:
        print(f"Error: {e.message}")
        if e.details:
            print(f"  details: {e.details}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    import argparse

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    parser = argparse.ArgumentParser(description="Import a Market Yard export document")
    parser.add_argument("path", type=Path, help="Export document (JSON)")
    parser.add_argument("--merge", action="store_true", help="Merge into existing data instead of replacing")
    parser.add_argument("--clear", action="store_true", help="Wipe every collection first")
    parser.add_argument("--skip-check", action="store_true", help="Skip the integrity check")
    args = parser.parse_args()

    import_data(args.path, merge=args.merge, clear=args.clear, check=not args.skip_check)
