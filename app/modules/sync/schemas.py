# app/modules/sync/schemas.py
from pydantic import BaseModel, Field
from typing import List

from app.core.exceptions import PartialFailure

class PodSyncResult(BaseModel):
    """Resultado de sincronizar un pod"""
    pod_barcode: str
    items_synced: int = 0
    bins_processed: int = 0
    faces_processed: int = 0
    persisted: bool = False

class SyncAllResult(BaseModel):
    """Resultado agregado de sincronizar todos los pods"""
    total_pods: int = 0
    total_items_synced: int = 0
    total_errors: int = 0
    error_details: List[str] = Field(default_factory=list)

    def raise_for_errors(self) -> None:
        """Lanzar PartialFailure si algún pod falló"""
        if self.total_errors > 0:
            raise PartialFailure(
                f"{self.total_errors} of {self.total_pods} pods failed to sync",
                errors=list(self.error_details),
                result=self
            )

class IntegrityReport(BaseModel):
    """
    Divergencias entre el almacén de items y la proyección en los pods.
    Solo informa, no corrige.
    """
    duplicate_bin_locations: List[str] = Field(default_factory=list)
    orphan_items: List[str] = Field(default_factory=list)
    stale_bins: List[str] = Field(default_factory=list)
    count_mismatches: List[str] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not (
            self.duplicate_bin_locations or self.orphan_items
            or self.stale_bins or self.count_mismatches
        )
