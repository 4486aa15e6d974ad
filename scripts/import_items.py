#!/usr/bin/env python3
"""
Importar items desde un CSV al almacén de items
Uso: python scripts/import_items.py items.csv [--sync]
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.config.database import SessionLocal, init_db
from app.config.settings import settings
from app.core.logging_config import setup_logging
from app.modules.ingestion.service import IngestionService
from app.modules.sync.service import SyncService

async def run(csv_path: Path, sync: bool) -> int:
    db = SessionLocal()
    try:
        result = await IngestionService(db).reconcile_csv(csv_path)

        print("\n📊 Import Summary")
        print("-" * 20)
        print(f"Processed: {result.processed}")
        print(f"Inserted:  {result.inserted}")
        print(f"Updated:   {result.updated}")
        print(f"Skipped:   {result.skipped}")
        for error in result.errors:
            print(f"   ❌ {error}")

        if sync:
            print("\n🔄 Syncing pods...")
            sync_result = await SyncService(db).sync_all()
            print(f"Pods: {sync_result.total_pods}")
            print(f"Items synced: {sync_result.total_items_synced}")
            print(f"Errors: {sync_result.total_errors}")
            for error in sync_result.error_details:
                print(f"   ❌ {error}")
            if sync_result.total_errors:
                return 1

        return 1 if result.errors else 0
    finally:
        db.close()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Importar items desde CSV")
    parser.add_argument("csv_path", type=Path, help="Archivo CSV (stockCode/sku, locationKeyRaw/uBinId)")
    parser.add_argument("--sync", action="store_true", help="Sincronizar todos los pods al terminar")
    args = parser.parse_args()

    if not args.csv_path.exists():
        print(f"❌ CSV file not found: {args.csv_path}")
        sys.exit(1)

    setup_logging(settings.debug)
    init_db()
    sys.exit(asyncio.run(run(args.csv_path, args.sync)))
