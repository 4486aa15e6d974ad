from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, JSON,
    UniqueConstraint, CheckConstraint, Index
)
from sqlalchemy.orm import relationship, validates
from app.config.database import Base

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

ITEM_STATUSES = ("available", "missing", "hunting")
POD_STATUSES = ("in progress", "completed")
POD_TYPES = ("H8", "H10", "H11", "H12")
FACE_LETTERS = ("A", "B", "C", "D")
MAX_FACES_PER_POD = 4
MAX_BINS_PER_FACE = 52

class TimestampMixin:
    """Mixin para timestamps automáticos"""
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

# ===== ESTRUCTURA DE PODS (SNAPSHOT JERÁRQUICO) =====

class Pod(Base, TimestampMixin):
    """Pod físico: estructura desnormalizada pod → caras → bins → items"""
    __tablename__ = "pods"

    id = Column(Integer, primary_key=True, index=True)
    pod_barcode = Column(String(13), unique=True, nullable=False, index=True)
    pod_name = Column(String(255), nullable=False, index=True)
    pod_type = Column(String(10), nullable=False, index=True)
    pod_status = Column(String(20), nullable=False, default="in progress", index=True)
    version_id = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_pods_type_status", "pod_type", "pod_status"),
    )

    # Token de concurrencia optimista: cada UPDATE verifica la versión leída
    __mapper_args__ = {"version_id_col": version_id}

    # Relationships
    faces = relationship(
        "PodFace",
        back_populates="pod",
        order_by="PodFace.position",
        cascade="all, delete-orphan"
    )

    @validates("pod_barcode")
    def _normalize_barcode(self, key, value):
        return value.strip().upper() if isinstance(value, str) else value

    def recalculate_totals(self) -> None:
        """Recalcular faceItemTotal de cada cara a partir de sus bins"""
        for face in self.faces:
            face.face_item_total = sum(bin.bin_item_count or 0 for bin in face.bins)

    def touch(self) -> None:
        """Marcar el pod como modificado (incrementa la versión al hacer flush)"""
        self.updated_at = utcnow()

    @property
    def total_items(self) -> int:
        return sum(face.face_item_total or 0 for face in self.faces)

    def get_item_summary(self) -> dict:
        """Resumen de items por estado, total y por cara"""
        summary = {"total_items": 0, "available": 0, "missing": 0, "hunting": 0, "by_face": {}}

        for face in self.faces:
            face_summary = {
                "total_items": 0, "available": 0, "missing": 0, "hunting": 0,
                "bins": len(face.bins)
            }
            for bin in face.bins:
                for item in bin.items or []:
                    face_summary["total_items"] += 1
                    status = item.get("itemStatus")
                    if status in ITEM_STATUSES:
                        face_summary[status] += 1

            for key in ("total_items", "available", "missing", "hunting"):
                summary[key] += face_summary[key]
            summary["by_face"][face.pod_face] = face_summary

        return summary

    @property
    def completion_percentage(self) -> int:
        summary = self.get_item_summary()
        if summary["total_items"] == 0:
            return 100
        completed = summary["available"] + summary["hunting"]
        return round(completed / summary["total_items"] * 100)

class PodFace(Base):
    """Cara de un pod (A-D) con su grilla de bins"""
    __tablename__ = "pod_faces"

    id = Column(Integer, primary_key=True, index=True)
    pod_id = Column(Integer, ForeignKey("pods.id", ondelete="CASCADE"), nullable=False, index=True)
    pod_face = Column(String(1), nullable=False)
    gcu = Column(String(10), nullable=False, default="0%")
    face_item_total = Column(Integer, nullable=False, default=0)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("face_item_total >= 0", name="ck_pod_faces_total_non_negative"),
    )

    # Relationships
    pod = relationship("Pod", back_populates="faces")
    bins = relationship(
        "PodBin",
        back_populates="face",
        order_by="PodBin.position",
        cascade="all, delete-orphan"
    )

    @validates("gcu")
    def _normalize_gcu(self, key, value):
        # El GCU siempre se guarda con sufijo %
        if value is None:
            return "0%"
        value = str(value).strip()
        return value if "%" in value else f"{value}%"

class PodBin(Base):
    """Bin direccionable dentro de una cara"""
    __tablename__ = "pod_bins"

    id = Column(Integer, primary_key=True, index=True)
    face_id = Column(Integer, ForeignKey("pod_faces.id", ondelete="CASCADE"), nullable=False, index=True)
    bin_id = Column(String(32), nullable=False, index=True)
    # Sin índice único: el lado jerárquico es eventualmente consistente
    u_bin_id = Column(String(64), nullable=True, index=True)
    bin_item_count = Column(Integer, nullable=False, default=0)
    bin_validated = Column(Boolean, nullable=False, default=False)
    # Proyección de solo lectura [{"itemSku", "itemStatus"}], escrita por la sincronización
    items = Column(JSON, nullable=False, default=list)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("bin_item_count >= 0", name="ck_pod_bins_count_non_negative"),
    )

    # Relationships
    face = relationship("PodFace", back_populates="bins")

# ===== ITEMS (FUENTE AUTORITATIVA) =====

class PodItem(Base, TimestampMixin):
    """Registro plano y autoritativo de un item de inventario"""
    __tablename__ = "pod_items"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(255), unique=True, nullable=False, index=True)
    u_bin_id = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="available")
    quantity = Column(Integer, nullable=False, default=1)
    asin = Column(String(64), nullable=True)
    last_updated = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    user = Column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_pod_items_quantity_non_negative"),
        Index("ix_pod_items_status_u_bin_id", "status", "u_bin_id"),
        Index("ix_pod_items_last_updated_status", "last_updated", "status"),
        Index("ix_pod_items_user_last_updated", "user", "last_updated"),
    )

    @validates("sku", "u_bin_id", "asin")
    def _strip(self, key, value):
        return value.strip() if isinstance(value, str) else value
