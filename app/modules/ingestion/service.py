# app/modules/ingestion/service.py
import io
import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Union

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.cache import ResponseCache
from app.core.exceptions import PodTrackerError, ValidationError
from app.modules.items.repository import ItemRepository
from .normalizers import normalize_row
from .schemas import ReconcileResult

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 1000

def load_item_csv(source: Union[str, Path, bytes, BinaryIO]) -> pd.DataFrame:
    """
    Leer un CSV de items como texto plano (sin conversión de NA).

    Intenta utf-8-sig y, si falla la decodificación, latin-1.
    """
    if isinstance(source, bytes):
        source = io.BytesIO(source)

    read_options = {"dtype": str, "keep_default_na": False}
    try:
        return pd.read_csv(source, encoding="utf-8-sig", **read_options)
    except UnicodeDecodeError:
        logger.info("UTF-8 decoding failed for item CSV, retrying with latin-1")
        if hasattr(source, "seek"):
            source.seek(0)
        return pd.read_csv(source, encoding="latin-1", **read_options)

class IngestionService:
    """
    Reconciliación del almacén de items contra filas masivas no confiables
    """

    def __init__(self, db: Session, cache: Optional[ResponseCache] = None):
        self.db = db
        self.cache = cache
        self.repository = ItemRepository(db)

    def _reconcile_row(self, row: Dict[str, Any], result: ReconcileResult) -> None:
        if not row["sku"]:
            result.skipped += 1
            return

        # Clave inválida: el item existente no se toca
        if not row["has_valid_location"]:
            return

        existing = self.repository.get_by_sku(row["sku"])
        if existing is None:
            self.repository.create({"sku": row["sku"], "u_bin_id": row["u_bin_id"]})
            result.inserted += 1
        elif existing.u_bin_id != row["u_bin_id"]:
            # Actualización dirigida: estado, cantidad y usuario se preservan
            self.repository.update_location(row["sku"], row["u_bin_id"])
            result.updated += 1

    async def reconcile(self, rows: Iterable[Dict[str, Any]]) -> ReconcileResult:
        """
        Insertar items nuevos y mover los existentes cuya ubicación cambió.

        Las filas que fallan se revierten, se cuentan como omitidas y el lote continúa.
        """
        rows = list(rows)
        result = ReconcileResult()
        logger.info(f"🔄 Reconciling {len(rows)} rows")

        for raw in rows:
            result.processed += 1
            if result.processed % PROGRESS_EVERY == 0:
                logger.info(f"📈 Processed {result.processed}/{len(rows)} rows...")

            row = normalize_row(raw)
            try:
                self._reconcile_row(row, result)
            except (PodTrackerError, SQLAlchemyError) as e:
                self.db.rollback()
                message = getattr(e, "message", None) or str(e)
                result.skipped += 1
                result.errors.append(f"SKU {row['sku']}: {message}")
                logger.error(f"❌ Error processing SKU {row['sku']}: {message}")

        if (result.inserted or result.updated) and self.cache is not None:
            self.cache.invalidate_items()

        logger.info(
            f"✅ Reconcile finished: {result.processed} processed, {result.inserted} inserted, "
            f"{result.updated} updated, {result.skipped} skipped"
        )
        return result

    async def reconcile_csv(self, source: Union[str, Path, bytes, BinaryIO]) -> ReconcileResult:
        try:
            frame = load_item_csv(source)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise ValidationError(f"Could not parse item CSV: {e}") from e

        logger.info(f"📦 Loaded {len(frame)} records from CSV")
        return await self.reconcile(frame.to_dict(orient="records"))
