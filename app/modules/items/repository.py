# app/modules/items/repository.py
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import DuplicateKeyError, from_integrity_error
from app.shared.database.models import PodItem, ITEM_STATUSES, utcnow
from .schemas import ItemFilter

def _value(value):
    return value.value if isinstance(value, Enum) else value

def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

class ItemRepository:
    """
    Repositorio del almacén plano de items (fuente autoritativa)
    """

    def __init__(self, db: Session):
        self.db = db

    # ==================== CONSULTAS ====================

    def get_by_sku(self, sku: str) -> Optional[PodItem]:
        return self.db.query(PodItem).filter(PodItem.sku == sku).first()

    def find_by_location(self, u_bin_id: str) -> Optional[PodItem]:
        """Cero o un item por clave de ubicación"""
        return self.db.query(PodItem).filter(PodItem.u_bin_id == u_bin_id).first()

    def find_all_by_location(self, u_bin_id: str) -> List[PodItem]:
        return self.db.query(PodItem)\
            .filter(PodItem.u_bin_id == u_bin_id)\
            .order_by(PodItem.id)\
            .all()

    def find_by_locations(
        self,
        u_bin_ids: Iterable[str],
        status: Optional[str] = None,
        sku: Optional[str] = None
    ) -> List[PodItem]:
        """Consulta IN sobre un conjunto de claves de ubicación"""
        query = self.db.query(PodItem).filter(PodItem.u_bin_id.in_(list(u_bin_ids)))
        if status:
            query = query.filter(PodItem.status == _value(status))
        if sku:
            query = query.filter(PodItem.sku.ilike(f"{_escape_like(sku)}%", escape="\\"))
        return query.order_by(PodItem.id).all()

    def apply_filters(self, query, item_filter: Optional[ItemFilter]):
        if item_filter is None:
            return query
        if item_filter.sku:
            query = query.filter(PodItem.sku.ilike(f"{_escape_like(item_filter.sku)}%", escape="\\"))
        if item_filter.status:
            query = query.filter(PodItem.status == _value(item_filter.status))
        if item_filter.u_bin_id:
            query = query.filter(PodItem.u_bin_id == item_filter.u_bin_id)
        return query

    def list_items(
        self,
        item_filter: Optional[ItemFilter] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[PodItem]:
        query = self.apply_filters(self.db.query(PodItem), item_filter).order_by(PodItem.id)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_items(self, item_filter: Optional[ItemFilter] = None) -> int:
        return self.apply_filters(self.db.query(PodItem), item_filter).count()

    def count_by_status(self) -> Dict[str, int]:
        rows = self.db.query(PodItem.status, func.count(PodItem.id))\
            .group_by(PodItem.status)\
            .all()
        counts = {status: 0 for status in ITEM_STATUSES}
        counts.update({status: total for status, total in rows})
        counts["total"] = sum(total for _, total in rows)
        return counts

    def list_location_keys(self) -> List[Tuple[str, str]]:
        """Pares (sku, u_bin_id) de todo el almacén"""
        return self.db.query(PodItem.sku, PodItem.u_bin_id).order_by(PodItem.id).all()

    # ==================== ESCRITURAS ====================

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise from_integrity_error(e, "Unique constraint violated on sku or u_bin_id") from e

    def create(self, data: dict) -> PodItem:
        """Insertar item nuevo con valores por defecto"""
        quantity = data.get("quantity")
        db_item = PodItem(
            sku=data["sku"],
            u_bin_id=data["u_bin_id"],
            status=_value(data.get("status")) or "available",
            quantity=1 if quantity is None else quantity,
            asin=data.get("asin"),
            user=data.get("user"),
            last_updated=utcnow(),
        )
        self.db.add(db_item)
        self._commit()
        self.db.refresh(db_item)
        return db_item

    def upsert_by_stock_code(self, record: dict) -> Tuple[PodItem, bool]:
        """
        Insertar o actualizar por SKU.

        Falla con DuplicateKeyError si el u_bin_id ya pertenece a otro SKU.
        Devuelve (item, creado).
        """
        holder = self.find_by_location(record["u_bin_id"])
        if holder is not None and holder.sku != record["sku"]:
            raise DuplicateKeyError(
                f"u_bin_id {record['u_bin_id']} already assigned to sku {holder.sku}",
                u_bin_id=record["u_bin_id"],
                sku=holder.sku
            )

        existing = self.get_by_sku(record["sku"])
        if existing is None:
            return self.create(record), True

        for field in ("u_bin_id", "status", "quantity", "asin", "user"):
            if field in record and record[field] is not None:
                setattr(existing, field, _value(record[field]))
        existing.last_updated = utcnow()
        self._commit()
        self.db.refresh(existing)
        return existing, False

    def update_fields(self, sku: str, **fields) -> Optional[PodItem]:
        db_item = self.get_by_sku(sku)
        if db_item is None:
            return None

        for field, value in fields.items():
            setattr(db_item, field, _value(value))
        db_item.last_updated = utcnow()
        self._commit()
        self.db.refresh(db_item)
        return db_item

    def update_location(self, sku: str, u_bin_id: str) -> bool:
        """Actualización dirigida: solo u_bin_id y timestamps, sin tocar el resto"""
        now = utcnow()
        try:
            updated = self.db.query(PodItem)\
                .filter(PodItem.sku == sku)\
                .update(
                    {PodItem.u_bin_id: u_bin_id, PodItem.last_updated: now, PodItem.updated_at: now},
                    synchronize_session=False
                )
        except IntegrityError as e:
            self.db.rollback()
            raise from_integrity_error(
                e,
                f"u_bin_id {u_bin_id} already assigned to another sku",
                sku=sku,
                u_bin_id=u_bin_id
            ) from e
        self._commit()
        return updated > 0

    def bulk_update_status(self, skus: List[str], status: str) -> int:
        now = utcnow()
        updated = self.db.query(PodItem)\
            .filter(PodItem.sku.in_(skus), PodItem.status != _value(status))\
            .update(
                {PodItem.status: _value(status), PodItem.last_updated: now, PodItem.updated_at: now},
                synchronize_session=False
            )
        self._commit()
        return updated

    def delete(self, sku: str) -> bool:
        db_item = self.get_by_sku(sku)
        if db_item is None:
            return False
        self.db.delete(db_item)
        self.db.commit()
        return True
