# app/modules/pods/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from datetime import datetime
from enum import Enum

from app.shared.schemas import Pagination

class PodStatus(str, Enum):
    """Ciclo de vida del pod"""
    IN_PROGRESS = "in progress"
    COMPLETED = "completed"

class PodType(str, Enum):
    """Tamaños de pod"""
    H8 = "H8"
    H10 = "H10"
    H11 = "H11"
    H12 = "H12"

class FaceLetter(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"

GCU_PATTERN = r"^\d{1,3}%?$"

# ==================== ENTRADA ====================

class BinCreate(BaseModel):
    """Bin explícito (los items embebidos los escribe solo la sincronización)"""
    bin_id: str = Field(..., min_length=1, max_length=32)
    u_bin_id: Optional[str] = Field(None, max_length=64, description="Clave de cruce con items")
    bin_validated: bool = False

class FaceCreate(BaseModel):
    """Cara de pod; sin bins se generan desde el layout"""
    pod_face: FaceLetter
    gcu: str = Field(default="0%", pattern=GCU_PATTERN)
    bins: Optional[List[BinCreate]] = Field(None, description="Bins explícitos")

class PodCreate(BaseModel):
    """Crear pod"""
    pod_barcode: str = Field(..., description="HB + 11 dígitos")
    pod_name: str = Field(..., min_length=1)
    pod_type: PodType
    pod_status: PodStatus = PodStatus.IN_PROGRESS
    pod_face: List[FaceCreate] = Field(default_factory=list)

class PodStatusUpdate(BaseModel):
    pod_status: PodStatus

class FaceUpdate(BaseModel):
    """Actualizar cara; el total de la cara siempre se recalcula"""
    gcu: Optional[str] = Field(None, pattern=GCU_PATTERN)
    bins: Optional[List[BinCreate]] = None

class FaceProvision(BaseModel):
    """Agregar una cara nueva generada desde el layout"""
    pod_face: FaceLetter
    gcu: str = Field(default="0%", pattern=GCU_PATTERN)

# ==================== RESPUESTAS ====================

class BinResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bin_id: str
    u_bin_id: Optional[str] = None
    bin_item_count: int
    bin_validated: bool
    items: List[Dict[str, str]]

class FaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pod_face: str
    gcu: str
    face_item_total: int
    bins: List[BinResponse]

class PodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    pod_barcode: str
    pod_name: str
    pod_type: str
    pod_status: str
    total_items: int
    completion_percentage: int
    pod_face: List[FaceResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class PodListResponse(BaseModel):
    pods: List[PodResponse]
    pagination: Pagination

class PodCounts(BaseModel):
    total: int
    in_progress: int
    completed: int

class ItemCounts(BaseModel):
    total: int
    available: int
    missing: int
    hunting: int

class PodSummary(BaseModel):
    """Resumen para dashboard"""
    pods: PodCounts
    pod_items: ItemCounts
