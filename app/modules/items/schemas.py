# app/modules/items/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

from app.shared.schemas import Pagination
from app.modules.resolver.schemas import ItemLocationResponse

class ItemStatus(str, Enum):
    """Estados posibles de un item"""
    AVAILABLE = "available"
    MISSING = "missing"
    HUNTING = "hunting"

# ==================== FILTROS ====================

class ItemFilter(BaseModel):
    """
    Filtros de consulta de items

    sku hace match por prefijo (sin distinguir mayúsculas); el resto por igualdad.
    pod_barcode, face_id y bin_id se aplican sobre la ubicación resuelta.
    """
    sku: Optional[str] = Field(None, description="Prefijo de SKU")
    status: Optional[ItemStatus] = Field(None, description="Estado del item")
    u_bin_id: Optional[str] = Field(None, description="Clave de ubicación exacta")
    pod_barcode: Optional[str] = Field(None, description="Barcode del pod")
    face_id: Optional[str] = Field(None, description="Letra de cara")
    bin_id: Optional[str] = Field(None, description="Identificador de bin")

    @property
    def has_location_filters(self) -> bool:
        return any([self.pod_barcode, self.face_id, self.bin_id])

# ==================== CRUD ====================

class ItemCreate(BaseModel):
    """Crear item en el almacén plano"""
    sku: str = Field(..., min_length=1, description="Código de stock único")
    u_bin_id: str = Field(..., min_length=1, description="Clave única de ubicación")
    status: ItemStatus = Field(default=ItemStatus.AVAILABLE)
    quantity: int = Field(default=1, ge=0)
    asin: Optional[str] = Field(None, description="Código de catálogo secundario")
    user: Optional[str] = Field(None, description="Usuario responsable")

class ItemUpdate(BaseModel):
    """Actualización parcial de detalles"""
    status: Optional[ItemStatus] = None
    quantity: Optional[int] = Field(None, ge=0)
    asin: Optional[str] = None
    user: Optional[str] = None

class ItemStatusUpdate(BaseModel):
    status: ItemStatus

class BulkStatusUpdate(BaseModel):
    skus: List[str] = Field(..., min_length=1)
    status: ItemStatus

class BulkStatusResponse(BaseModel):
    message: str
    modified_count: int

class ItemRecord(BaseModel):
    """Registro plano tal como está en el almacén"""
    model_config = ConfigDict(from_attributes=True)

    sku: str
    u_bin_id: str
    status: str
    quantity: int
    asin: Optional[str] = None
    user: Optional[str] = None
    last_updated: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ItemListResponse(BaseModel):
    """Listado paginado de items con su ubicación resuelta"""
    items: List[ItemLocationResponse]
    pagination: Pagination


