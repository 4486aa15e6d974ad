# app/modules/pods/service.py
import logging
import math
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.cache import ResponseCache
from app.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from app.modules.items.repository import ItemRepository
from app.modules.layout.service import generate_layout
from app.shared.database.models import (
    Pod, PodFace, PodBin, FACE_LETTERS, MAX_FACES_PER_POD, MAX_BINS_PER_FACE, POD_TYPES
)
from .repository import PodRepository
from .schemas import (
    BinCreate, FaceCreate, FaceProvision, FaceUpdate, Pagination, PodCreate,
    PodListResponse, PodResponse, PodSummary, PodCounts, ItemCounts
)

logger = logging.getLogger(__name__)

POD_BARCODE_PATTERN = re.compile(r"^HB\d{11}$")

def _value(value):
    return getattr(value, "value", value)

# ==================== VALIDACIÓN ESTRUCTURAL ====================

def validate_pod_structure(pod: Pod) -> None:
    """
    Verificar invariantes del documento jerárquico antes de proyectar items.

    Lanza ValidationError si el pod está mal formado.
    """
    faces = list(pod.faces or [])
    if len(faces) > MAX_FACES_PER_POD:
        raise ValidationError(
            f"Pod {pod.pod_barcode} has {len(faces)} faces (max {MAX_FACES_PER_POD})",
            pod_barcode=pod.pod_barcode
        )

    letters = [face.pod_face for face in faces]
    invalid = [letter for letter in letters if letter not in FACE_LETTERS]
    if invalid:
        raise ValidationError(
            f"Pod {pod.pod_barcode} has invalid face letters: {', '.join(map(str, invalid))}",
            pod_barcode=pod.pod_barcode
        )
    if len(set(letters)) != len(letters):
        raise ValidationError(
            f"Pod {pod.pod_barcode} has duplicated face letters",
            pod_barcode=pod.pod_barcode
        )

    for face in faces:
        if len(face.bins) > MAX_BINS_PER_FACE:
            raise ValidationError(
                f"Face {face.pod_face} of pod {pod.pod_barcode} has {len(face.bins)} bins "
                f"(max {MAX_BINS_PER_FACE})",
                pod_barcode=pod.pod_barcode
            )
        for bin in face.bins:
            if not isinstance(bin.items, list) or not all(isinstance(i, dict) for i in bin.items):
                raise ValidationError(
                    f"Bin {bin.bin_id} of pod {pod.pod_barcode} has a malformed item list",
                    pod_barcode=pod.pod_barcode
                )

def _validate_bins(bins: List[BinCreate], face_letter: str) -> None:
    if len(bins) > MAX_BINS_PER_FACE:
        raise ValidationError(
            f"A face cannot have more than {MAX_BINS_PER_FACE} bins",
            pod_face=face_letter,
            bins=len(bins)
        )
    bin_ids = [b.bin_id for b in bins]
    if len(set(bin_ids)) != len(bin_ids):
        raise ValidationError(f"Duplicated bin ids in face {face_letter}", pod_face=face_letter)

def to_pod_response(pod: Pod) -> PodResponse:
    return PodResponse(
        pod_barcode=pod.pod_barcode,
        pod_name=pod.pod_name,
        pod_type=pod.pod_type,
        pod_status=pod.pod_status,
        total_items=pod.total_items,
        completion_percentage=pod.completion_percentage,
        pod_face=[
            {
                "pod_face": face.pod_face,
                "gcu": face.gcu,
                "face_item_total": face.face_item_total,
                "bins": [
                    {
                        "bin_id": bin.bin_id,
                        "u_bin_id": bin.u_bin_id,
                        "bin_item_count": bin.bin_item_count,
                        "bin_validated": bin.bin_validated,
                        "items": list(bin.items or []),
                    }
                    for bin in face.bins
                ],
            }
            for face in pod.faces
        ],
        created_at=pod.created_at,
        updated_at=pod.updated_at,
    )

class PodService:
    """
    Servicio de la estructura de pods (alta, consulta y edición estructural)
    """

    def __init__(self, db: Session, cache: Optional[ResponseCache] = None):
        self.db = db
        self.cache = cache
        self.repository = PodRepository(db)
        self.item_repository = ItemRepository(db)

    def _get_pod_or_404(self, pod_barcode: str) -> Pod:
        pod = self.repository.get_by_barcode(pod_barcode)
        if not pod:
            raise NotFoundError(f"Pod with barcode {pod_barcode} not found", pod_barcode=pod_barcode)
        return pod

    def _invalidate(self) -> None:
        if self.cache is not None:
            self.cache.invalidate_items()

    def _build_bins(self, pod_type: str, face_letter: str, bins: Optional[List[BinCreate]]) -> List[PodBin]:
        if bins is None:
            bins = [BinCreate(bin_id=spec.bin_id) for spec in generate_layout(pod_type, face_letter)]
        _validate_bins(bins, face_letter)

        return [
            PodBin(
                bin_id=b.bin_id,
                u_bin_id=b.u_bin_id or None,
                bin_validated=b.bin_validated,
                bin_item_count=0,
                items=[],
                position=index,
            )
            for index, b in enumerate(bins)
        ]

    def _check_location_keys(
        self,
        new_keys: List[str],
        pod_keys: List[str] = (),
        exclude_face_id: Optional[int] = None
    ) -> None:
        """uBinId debe ser único entre todos los bins de todos los pods"""
        keys = list(pod_keys) + list(new_keys)
        if len(set(keys)) != len(keys):
            raise DuplicateKeyError("Duplicated u_bin_id within the pod structure")

        if not new_keys:
            return
        clashes = [
            b for b in self.repository.find_bins_by_locations(new_keys)
            if exclude_face_id is None or b.face_id != exclude_face_id
        ]
        if clashes:
            raise DuplicateKeyError(
                f"u_bin_id already assigned to another bin: {clashes[0].u_bin_id}",
                u_bin_id=clashes[0].u_bin_id
            )

    # ==================== ALTA ====================

    async def create_pod(self, pod_data: PodCreate) -> PodResponse:
        """
        Crear pod con sus caras; las caras sin bins se generan desde el layout
        """
        barcode = pod_data.pod_barcode.strip().upper()
        if not POD_BARCODE_PATTERN.match(barcode):
            raise ValidationError(
                f"{pod_data.pod_barcode} is not a valid pod barcode (HB + 11 digits)",
                pod_barcode=pod_data.pod_barcode
            )

        pod_type = _value(pod_data.pod_type)
        if pod_type not in POD_TYPES:
            raise ValidationError(f"Invalid pod type {pod_type}", pod_type=pod_type)

        if len(pod_data.pod_face) > MAX_FACES_PER_POD:
            raise ValidationError(f"Pod cannot have more than {MAX_FACES_PER_POD} faces")
        letters = [_value(face.pod_face) for face in pod_data.pod_face]
        if len(set(letters)) != len(letters):
            raise ValidationError("Face letters must be unique")

        if self.repository.get_by_barcode(barcode):
            raise DuplicateKeyError(f"Pod {barcode} already exists", pod_barcode=barcode)

        faces = [
            PodFace(
                pod_face=_value(face.pod_face),
                gcu=face.gcu,
                face_item_total=0,
                position=index,
                bins=self._build_bins(pod_type, _value(face.pod_face), face.bins),
            )
            for index, face in enumerate(pod_data.pod_face)
        ]
        self._check_location_keys([b.u_bin_id for face in faces for b in face.bins if b.u_bin_id])

        pod = Pod(
            pod_barcode=barcode,
            pod_name=pod_data.pod_name.strip(),
            pod_type=pod_type,
            pod_status=_value(pod_data.pod_status),
            faces=faces,
        )
        pod = self.repository.add(pod)
        self._invalidate()
        logger.info(f"✅ Pod {barcode} creado con {len(faces)} caras")
        return to_pod_response(pod)

    async def provision_face(self, pod_barcode: str, face_data: FaceProvision) -> PodResponse:
        """Agregar una cara nueva al pod a partir del layout de su tipo"""
        pod = self._get_pod_or_404(pod_barcode)
        letter = _value(face_data.pod_face)

        if any(face.pod_face == letter for face in pod.faces):
            raise DuplicateKeyError(f"Face {letter} already exists in pod {pod.pod_barcode}")
        if len(pod.faces) >= MAX_FACES_PER_POD:
            raise ValidationError(f"Pod cannot have more than {MAX_FACES_PER_POD} faces")

        pod.faces.append(
            PodFace(
                pod_face=letter,
                gcu=face_data.gcu,
                face_item_total=0,
                position=max((face.position for face in pod.faces), default=-1) + 1,
                bins=self._build_bins(pod.pod_type, letter, None),
            )
        )
        self.repository.save(pod)
        self._invalidate()
        return to_pod_response(pod)

    # ==================== CONSULTAS ====================

    async def get_pod(self, pod_barcode: str) -> PodResponse:
        return to_pod_response(self._get_pod_or_404(pod_barcode))

    async def list_pods(
        self,
        status: Optional[str] = None,
        name: Optional[str] = None,
        page: int = 1,
        limit: int = 50
    ) -> PodListResponse:
        offset = (page - 1) * limit
        pods = self.repository.list_pods(status=status, name=name, offset=offset, limit=limit)
        total = self.repository.count_pods(status=status, name=name)

        return PodListResponse(
            pods=[to_pod_response(pod) for pod in pods],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if limit else 0,
                has_more=offset + len(pods) < total,
            ),
        )

    async def get_summary(self) -> PodSummary:
        pod_counts = self.repository.count_by_status()
        item_counts = self.item_repository.count_by_status()

        return PodSummary(
            pods=PodCounts(
                total=pod_counts["total"],
                in_progress=pod_counts["in progress"],
                completed=pod_counts["completed"],
            ),
            pod_items=ItemCounts(**item_counts),
        )

    # ==================== EDICIÓN ====================

    async def update_status(self, pod_barcode: str, pod_status: str) -> PodResponse:
        pod = self._get_pod_or_404(pod_barcode)
        pod.pod_status = _value(pod_status)
        self.repository.save(pod)
        return to_pod_response(pod)

    async def update_face(self, pod_barcode: str, face_letter: str, face_data: FaceUpdate) -> PodResponse:
        """
        Actualizar GCU y/o bins de una cara.

        Los bins reemplazados conservan la proyección de items solo si mantienen
        el mismo bin_id y uBinId; el resto queda vacío hasta la próxima sincronización.
        """
        pod = self._get_pod_or_404(pod_barcode)
        face = next((f for f in pod.faces if f.pod_face == face_letter.strip().upper()), None)
        if face is None:
            raise NotFoundError(
                f"Face {face_letter} not found in pod {pod.pod_barcode}",
                pod_barcode=pod.pod_barcode,
                pod_face=face_letter
            )

        if face_data.gcu is not None:
            face.gcu = face_data.gcu

        if face_data.bins is not None:
            _validate_bins(face_data.bins, face.pod_face)
            previous = {(b.bin_id, b.u_bin_id): list(b.items or []) for b in face.bins}

            new_bins = []
            for index, b in enumerate(face_data.bins):
                items = previous.get((b.bin_id, b.u_bin_id or None), [])
                new_bins.append(
                    PodBin(
                        bin_id=b.bin_id,
                        u_bin_id=b.u_bin_id or None,
                        bin_validated=b.bin_validated,
                        items=items,
                        bin_item_count=len(items),
                        position=index,
                    )
                )
            self._check_location_keys(
                [b.u_bin_id for b in new_bins if b.u_bin_id],
                pod_keys=[b.u_bin_id for f in pod.faces if f is not face for b in f.bins if b.u_bin_id],
                exclude_face_id=face.id
            )
            face.bins = new_bins

        self.repository.save(pod)
        self._invalidate()
        return to_pod_response(pod)

    async def delete_pod(self, pod_barcode: str) -> dict:
        pod = self._get_pod_or_404(pod_barcode)
        self.repository.delete(pod)
        self._invalidate()
        logger.info(f"🗑️ Pod {pod_barcode} eliminado")
        return {"message": "Pod deleted successfully"}
