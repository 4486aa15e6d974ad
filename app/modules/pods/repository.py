# app/modules/pods/repository.py
from typing import Dict, Iterable, List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.core.exceptions import from_integrity_error
from app.shared.database.models import Pod, PodFace, PodBin, POD_STATUSES

class PodRepository:
    """
    Repositorio de la estructura jerárquica de pods
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== CONSULTAS ====================

    def get_by_barcode(self, pod_barcode: str) -> Optional[Pod]:
        """Pod con caras y bins cargados en una sola consulta"""
        return self.db.query(Pod)\
            .options(joinedload(Pod.faces).joinedload(PodFace.bins))\
            .filter(Pod.pod_barcode == pod_barcode.strip().upper())\
            .first()

    def _filtered(self, status: Optional[str] = None, name: Optional[str] = None):
        query = self.db.query(Pod)
        if status:
            query = query.filter(Pod.pod_status == status)
        if name:
            query = query.filter(Pod.pod_name.ilike(f"%{name}%"))
        return query

    def list_pods(
        self,
        status: Optional[str] = None,
        name: Optional[str] = None,
        offset: int = 0,
        limit: int = 50
    ) -> List[Pod]:
        return self._filtered(status, name)\
            .options(selectinload(Pod.faces).selectinload(PodFace.bins))\
            .order_by(Pod.id)\
            .offset(offset)\
            .limit(limit)\
            .all()

    def count_pods(self, status: Optional[str] = None, name: Optional[str] = None) -> int:
        return self._filtered(status, name).count()

    def list_barcodes(self) -> List[str]:
        return [barcode for (barcode,) in self.db.query(Pod.pod_barcode).order_by(Pod.id).all()]

    def count_by_status(self) -> Dict[str, int]:
        rows = self.db.query(Pod.pod_status, func.count(Pod.id))\
            .group_by(Pod.pod_status)\
            .all()
        counts = {status: 0 for status in POD_STATUSES}
        counts.update({status: total for status, total in rows})
        counts["total"] = sum(total for _, total in rows)
        return counts

    def find_bins_by_locations(self, u_bin_ids: Iterable[str]) -> List[PodBin]:
        """Bins de cualquier pod que ya usan alguna de las claves dadas"""
        return self.db.query(PodBin)\
            .filter(PodBin.u_bin_id.in_(list(u_bin_ids)))\
            .all()

    def list_bin_locations(self):
        """
        Todas las filas (pod, cara, bin) en orden de recorrido estructural
        """
        return self.db.query(
                Pod.pod_barcode,
                PodFace.pod_face,
                PodFace.face_item_total,
                PodBin.bin_id,
                PodBin.u_bin_id,
                PodBin.bin_item_count,
                PodBin.items.label("bin_items"),
                PodFace.id.label("face_pk"),
            )\
            .join(PodFace, PodFace.pod_id == Pod.id)\
            .join(PodBin, PodBin.face_id == PodFace.id)\
            .order_by(Pod.id, PodFace.position, PodBin.position)\
            .all()

    # ==================== ESCRITURAS ====================

    def add(self, pod: Pod) -> Pod:
        pod.recalculate_totals()
        self.db.add(pod)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise from_integrity_error(
                e,
                f"Pod {pod.pod_barcode} already exists",
                pod_barcode=pod.pod_barcode
            ) from e
        return self.get_by_barcode(pod.pod_barcode)

    def save(self, pod: Pod) -> Pod:
        """
        Persistir cambios estructurales. Recalcula totales y verifica la versión
        (StaleDataError si otro escritor la cambió).
        """
        pod.recalculate_totals()
        pod.touch()
        self.db.commit()
        return pod

    def delete(self, pod: Pod) -> None:
        self.db.delete(pod)
        self.db.commit()
