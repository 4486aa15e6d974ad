# app/modules/pods/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.config.database import get_db
from app.core.cache import ResponseCache
from app.core.dependencies import get_response_cache
from .service import PodService
from .schemas import (
    FaceProvision, FaceUpdate, PodCreate, PodListResponse, PodResponse,
    PodStatus, PodStatusUpdate, PodSummary
)

router = APIRouter(prefix="/pods", tags=["Pods"])

def get_pod_service(
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache)
) -> PodService:
    return PodService(db, cache)

# ==================== CONSULTAS ====================

@router.get("", response_model=PodListResponse)
async def list_pods(
    status: Optional[PodStatus] = Query(None, description="Filtrar por estado"),
    name: Optional[str] = Query(None, description="Buscar por nombre"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    service: PodService = Depends(get_pod_service)
):
    return await service.list_pods(
        status=status.value if status else None,
        name=name,
        page=page,
        limit=limit
    )

# Declarado antes de /{pod_barcode}
@router.get("/summary", response_model=PodSummary)
async def get_summary(service: PodService = Depends(get_pod_service)):
    """
    Conteos para dashboard: pods por estado e items por estado
    """
    return await service.get_summary()

@router.get("/{pod_barcode}", response_model=PodResponse)
async def get_pod(
    pod_barcode: str,
    service: PodService = Depends(get_pod_service)
):
    return await service.get_pod(pod_barcode)

# ==================== ALTA Y EDICIÓN ====================

@router.post("", response_model=PodResponse, status_code=201)
async def create_pod(
    pod_data: PodCreate,
    service: PodService = Depends(get_pod_service)
):
    """
    Crear pod con sus caras

    Las caras enviadas sin bins se generan a partir del layout del tipo de pod.
    """
    return await service.create_pod(pod_data)

@router.post("/{pod_barcode}/faces", response_model=PodResponse, status_code=201)
async def provision_face(
    pod_barcode: str,
    face_data: FaceProvision,
    service: PodService = Depends(get_pod_service)
):
    return await service.provision_face(pod_barcode, face_data)

@router.patch("/{pod_barcode}/status", response_model=PodResponse)
async def update_pod_status(
    pod_barcode: str,
    status_data: PodStatusUpdate,
    service: PodService = Depends(get_pod_service)
):
    return await service.update_status(pod_barcode, status_data.pod_status)

@router.patch("/{pod_barcode}/face/{pod_face}", response_model=PodResponse)
async def update_face(
    pod_barcode: str,
    pod_face: str,
    face_data: FaceUpdate,
    service: PodService = Depends(get_pod_service)
):
    """
    Actualizar GCU y/o bins de una cara (los totales se recalculan siempre)
    """
    return await service.update_face(pod_barcode, pod_face, face_data)

@router.delete("/{pod_barcode}")
async def delete_pod(
    pod_barcode: str,
    service: PodService = Depends(get_pod_service)
):
    return await service.delete_pod(pod_barcode)
