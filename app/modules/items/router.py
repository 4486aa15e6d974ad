# app/modules/items/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.config.database import get_db
from app.core.cache import ResponseCache
from app.core.dependencies import get_response_cache
from app.modules.resolver.schemas import ItemLocationResponse
from .service import ItemService
from .schemas import (
    BulkStatusResponse, BulkStatusUpdate, ItemCreate, ItemFilter,
    ItemListResponse, ItemStatus, ItemStatusUpdate, ItemUpdate
)

router = APIRouter(tags=["Items"])

def get_item_service(
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache)
) -> ItemService:
    return ItemService(db, cache)

# ==================== CONSULTAS ====================

@router.get("/items", response_model=ItemListResponse)
async def list_items(
    sku: Optional[str] = Query(None, description="Prefijo de SKU"),
    status: Optional[ItemStatus] = Query(None),
    u_bin_id: Optional[str] = Query(None, alias="uBinId"),
    pod_barcode: Optional[str] = Query(None, alias="podBarcode"),
    face_id: Optional[str] = Query(None, alias="faceId"),
    bin_id: Optional[str] = Query(None, alias="binId"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    service: ItemService = Depends(get_item_service)
):
    """
    Listar items del almacén con su ubicación resuelta
    """
    item_filter = ItemFilter(
        sku=sku, status=status, u_bin_id=u_bin_id,
        pod_barcode=pod_barcode, face_id=face_id, bin_id=bin_id
    )
    return await service.list_items(item_filter, page=page, limit=limit)

@router.get("/bin-items", response_model=List[ItemLocationResponse])
async def get_bin_items(
    sku: Optional[str] = Query(None),
    status: Optional[ItemStatus] = Query(None),
    u_bin_id: Optional[str] = Query(None, alias="uBinId"),
    pod_barcode: Optional[str] = Query(None, alias="podBarcode"),
    face_id: Optional[str] = Query(None, alias="faceId"),
    bin_id: Optional[str] = Query(None, alias="binId"),
    service: ItemService = Depends(get_item_service)
):
    """Items con mapeo de bin, sin paginar (clientes móviles)"""
    item_filter = ItemFilter(
        sku=sku, status=status, u_bin_id=u_bin_id,
        pod_barcode=pod_barcode, face_id=face_id, bin_id=bin_id
    )
    return await service.get_bin_items(item_filter)

@router.get("/items/bin/{bin_id}", response_model=List[ItemLocationResponse])
async def get_items_by_bin(
    bin_id: str,
    status: Optional[ItemStatus] = Query(None),
    service: ItemService = Depends(get_item_service)
):
    return await service.get_items_by_bin(bin_id, status=status)

# ==================== ESCRITURAS ====================

@router.post("/items", response_model=ItemLocationResponse, status_code=201)
async def create_item(
    item_data: ItemCreate,
    service: ItemService = Depends(get_item_service)
):
    return await service.create_item(item_data)

# Declarado antes de /items/{sku} para que "bulk-status" no se tome como SKU
@router.patch("/items/bulk-status", response_model=BulkStatusResponse)
async def bulk_update_status(
    bulk_data: BulkStatusUpdate,
    service: ItemService = Depends(get_item_service)
):
    """
    Cambiar el estado de varios items a la vez
    """
    return await service.bulk_update_status(bulk_data.skus, bulk_data.status)

@router.get("/items/{sku}", response_model=ItemLocationResponse)
async def get_item(
    sku: str,
    service: ItemService = Depends(get_item_service)
):
    return await service.get_item(sku)

@router.patch("/items/{sku}", response_model=ItemLocationResponse)
async def update_item(
    sku: str,
    item_data: ItemUpdate,
    service: ItemService = Depends(get_item_service)
):
    """Actualizar estado, cantidad, asin o usuario"""
    return await service.update_item(sku, item_data)

@router.patch("/items/{sku}/status", response_model=ItemLocationResponse)
async def update_item_status(
    sku: str,
    status_data: ItemStatusUpdate,
    service: ItemService = Depends(get_item_service)
):
    return await service.update_status(sku, status_data.status)

@router.delete("/items/{sku}")
async def delete_item(
    sku: str,
    service: ItemService = Depends(get_item_service)
):
    return await service.delete_item(sku)
