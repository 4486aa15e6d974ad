# app/modules/ingestion/schemas.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from app.modules.sync.schemas import SyncAllResult

class ReconcileRequest(BaseModel):
    """Filas crudas, con claves stockCode/sku, locationKeyRaw/uBinId, locationBarcodeRaw/podBarcode"""
    rows: List[Dict[str, Any]] = Field(..., min_length=1)
    sync: bool = Field(default=False, description="Sincronizar todos los pods al terminar")

class ReconcileResult(BaseModel):
    processed: int = 0
    skipped: int = 0
    inserted: int = 0
    updated: int = 0
    errors: List[str] = Field(default_factory=list)

class IngestionResponse(BaseModel):
    """Resultado de la importación y, opcionalmente, de la sincronización posterior"""
    reconcile: ReconcileResult
    sync: Optional[SyncAllResult] = None
