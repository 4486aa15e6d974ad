# tests/factories.py
"""
Constructores de datos de prueba directos sobre el ORM.
"""
from typing import Dict, List, Optional, Sequence, Tuple

from app.shared.database.models import Pod, PodBin, PodFace, PodItem, utcnow

BinRow = Tuple[str, Optional[str]]  # (bin_id, u_bin_id)


def make_pod(
    db,
    barcode: str,
    faces: Dict[str, Sequence[BinRow]],
    pod_type: str = "H8",
    pod_name: Optional[str] = None,
) -> Pod:
    pod = Pod(
        pod_barcode=barcode,
        pod_name=pod_name or f"Pod {barcode[-3:]}",
        pod_type=pod_type,
        pod_status="in progress",
        faces=[
            PodFace(
                pod_face=letter,
                gcu="0%",
                face_item_total=0,
                position=face_position,
                bins=[
                    PodBin(
                        bin_id=bin_id,
                        u_bin_id=u_bin_id,
                        bin_item_count=0,
                        bin_validated=False,
                        items=[],
                        position=bin_position,
                    )
                    for bin_position, (bin_id, u_bin_id) in enumerate(bins)
                ],
            )
            for face_position, (letter, bins) in enumerate(faces.items())
        ],
    )
    db.add(pod)
    db.commit()
    return pod


def make_item(db, sku: str, u_bin_id: str, status: str = "available", quantity: int = 1) -> PodItem:
    item = PodItem(
        sku=sku,
        u_bin_id=u_bin_id,
        status=status,
        quantity=quantity,
        last_updated=utcnow(),
    )
    db.add(item)
    db.commit()
    return item


def bins(face: str, *entries: Tuple[str, Optional[str]]) -> List[BinRow]:
    """bins("a", ("1a", "UB-1"), ("2a", None)) → [("a_bin_1a", "UB-1"), ...]"""
    return [(f"{face}_bin_{suffix}", u_bin_id) for suffix, u_bin_id in entries]
