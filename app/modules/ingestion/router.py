# app/modules/ingestion/router.py
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.cache import ResponseCache
from app.core.dependencies import get_response_cache
from app.modules.sync.service import SyncService
from .service import IngestionService
from .schemas import IngestionResponse, ReconcileRequest

router = APIRouter(prefix="/ingestion", tags=["Ingestion"])

@router.post("/items", response_model=IngestionResponse)
async def ingest_items(
    request: ReconcileRequest,
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache)
):
    """
    Reconciliar items desde filas JSON

    - SKU vacío → fila omitida
    - Clave de ubicación válida → inserta o actualiza solo la ubicación
    - Clave inválida → el item existente no se modifica
    """
    result = await IngestionService(db, cache).reconcile(request.rows)
    sync_result = await SyncService(db, cache).sync_all() if request.sync else None
    return IngestionResponse(reconcile=result, sync=sync_result)

@router.post("/items/csv", response_model=IngestionResponse)
async def ingest_items_csv(
    file: UploadFile = File(..., description="CSV con columnas stockCode/sku, locationKeyRaw/uBinId"),
    sync: bool = Query(False, description="Sincronizar todos los pods al terminar"),
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache)
):
    content = await file.read()
    result = await IngestionService(db, cache).reconcile_csv(content)
    sync_result = await SyncService(db, cache).sync_all() if sync else None
    return IngestionResponse(reconcile=result, sync=sync_result)
