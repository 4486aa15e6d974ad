# app/modules/sync/router.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.cache import ResponseCache
from app.core.dependencies import get_response_cache
from .service import SyncService
from .schemas import IntegrityReport, PodSyncResult, SyncAllResult

router = APIRouter(prefix="/sync", tags=["Synchronization"])

def get_sync_service(
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache)
) -> SyncService:
    return SyncService(db, cache)

@router.post("/pods", response_model=SyncAllResult)
async def sync_all_pods(service: SyncService = Depends(get_sync_service)):
    """
    Sincronizar todos los pods

    Si algún pod falla la respuesta es 207 con el detalle por pod.
    """
    result = await service.sync_all()
    result.raise_for_errors()
    return result

@router.post("/pods/{pod_barcode}", response_model=PodSyncResult)
async def sync_pod(
    pod_barcode: str,
    service: SyncService = Depends(get_sync_service)
):
    return await service.sync_pod(pod_barcode)

@router.get("/integrity", response_model=IntegrityReport)
async def check_integrity(service: SyncService = Depends(get_sync_service)):
    """Reporte de divergencias entre items y pods (no corrige nada)"""
    return await service.check_integrity()
