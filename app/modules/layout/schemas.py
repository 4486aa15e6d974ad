# app/modules/layout/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List

class LayoutConfig(BaseModel):
    """Dimensiones de la grilla de una cara"""
    model_config = ConfigDict(frozen=True)

    rows: int = Field(..., gt=0, le=26)
    columns: int = Field(..., gt=0, le=9)

    @property
    def total_bins(self) -> int:
        return self.rows * self.columns

class BinSpec(BaseModel):
    """Descriptor de un bin generado a partir del layout"""
    model_config = ConfigDict(frozen=True)

    bin_id: str = Field(..., description="Identificador canónico, ej. a_bin_1a")
    display_name: str = Field(..., description="Forma visible, ej. A1")
    row: str = Field(..., description="Letra de fila en minúscula")
    column: int = Field(..., description="Número de columna")
    face_letter: str = Field(..., description="Letra de cara en minúscula")

class PodGrid(BaseModel):
    """Grilla completa de una cara"""
    pod_type: str
    pod_face: str
    rows: List[str]
    columns: List[int]
    bins: List[BinSpec]
    total_bins: int

class FaceLayoutSummary(BaseModel):
    rows: int
    columns: int
    total_bins: int
    grid_size: str
