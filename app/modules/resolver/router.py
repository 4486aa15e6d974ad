# app/modules/resolver/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.config.database import get_db
from app.core.cache import ResponseCache
from app.core.dependencies import get_response_cache
from app.modules.items.schemas import ItemFilter, ItemStatus
from .service import LocationResolver
from .schemas import ItemLocationResponse

router = APIRouter(prefix="/pods", tags=["Pod Items"])

def get_resolver(
    db: Session = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache)
) -> LocationResolver:
    return LocationResolver(db, cache)

@router.get("/{pod_barcode}/items", response_model=List[ItemLocationResponse])
async def get_pod_items(
    pod_barcode: str,
    sku: Optional[str] = Query(None, description="Prefijo de SKU"),
    status: Optional[ItemStatus] = Query(None),
    face_id: Optional[str] = Query(None, alias="faceId"),
    bin_id: Optional[str] = Query(None, alias="binId"),
    resolver: LocationResolver = Depends(get_resolver)
):
    """
    Items de un pod con su ubicación

    Pod inexistente → lista vacía.
    """
    item_filter = ItemFilter(sku=sku, status=status, face_id=face_id, bin_id=bin_id)
    items = await resolver.get_pod_items(pod_barcode, item_filter)
    return [ItemLocationResponse.from_resolved(item) for item in items]

@router.get(
    "/{pod_barcode}/face/{pod_face}/bin/{bin_id}/items",
    response_model=List[ItemLocationResponse]
)
async def get_bin_items(
    pod_barcode: str,
    pod_face: str,
    bin_id: str,
    status: Optional[ItemStatus] = Query(None),
    resolver: LocationResolver = Depends(get_resolver)
):
    item_filter = ItemFilter(status=status, face_id=pod_face, bin_id=bin_id)
    items = await resolver.get_pod_items(pod_barcode, item_filter)
    return [ItemLocationResponse.from_resolved(item) for item in items]
