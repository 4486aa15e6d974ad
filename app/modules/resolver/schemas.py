# app/modules/resolver/schemas.py
from pydantic import BaseModel, ConfigDict
from typing import Optional, Tuple
from datetime import datetime

class BinLocation(BaseModel):
    """Descriptor mínimo de la ubicación física de un item"""
    model_config = ConfigDict(frozen=True)

    pod_barcode: str
    pod_name: str
    face_id: str
    bin_id: str
    u_bin_id: str
    bin_item_count: int

class ResolvedItem(BaseModel):
    """Item del almacén plano anotado con su ubicación"""
    sku: str
    status: str
    quantity: int
    asin: Optional[str] = None
    u_bin_id: str
    user: Optional[str] = None
    last_updated: Optional[datetime] = None
    bin_info: Optional[BinLocation] = None

    @classmethod
    def from_item(cls, item, bin_info: Optional[BinLocation]) -> "ResolvedItem":
        return cls(
            sku=item.sku,
            status=item.status,
            quantity=item.quantity,
            asin=item.asin,
            u_bin_id=item.u_bin_id,
            user=item.user,
            last_updated=item.last_updated,
            bin_info=bin_info,
        )

    def location_key(self) -> Tuple[str, Optional[str], Optional[str], Optional[str]]:
        """(sku, pod, cara, bin) para comparar resultados entre estrategias"""
        if self.bin_info is None:
            return (self.sku, None, None, None)
        return (self.sku, self.bin_info.pod_barcode, self.bin_info.face_id, self.bin_info.bin_id)

class ItemLocationResponse(BaseModel):
    """Forma plana usada por los endpoints"""
    sku: str
    status: str
    quantity: int
    asin: Optional[str] = None
    u_bin_id: str
    bin_id: Optional[str] = None
    face_id: Optional[str] = None
    pod_barcode: Optional[str] = None
    pod_name: Optional[str] = None
    user: Optional[str] = None
    last_updated: Optional[datetime] = None

    @classmethod
    def from_resolved(cls, resolved: ResolvedItem) -> "ItemLocationResponse":
        info = resolved.bin_info
        return cls(
            sku=resolved.sku,
            status=resolved.status,
            quantity=resolved.quantity,
            asin=resolved.asin,
            u_bin_id=resolved.u_bin_id,
            bin_id=info.bin_id if info else None,
            face_id=info.face_id if info else None,
            pod_barcode=info.pod_barcode if info else None,
            pod_name=info.pod_name if info else None,
            user=resolved.user,
            last_updated=resolved.last_updated,
        )
