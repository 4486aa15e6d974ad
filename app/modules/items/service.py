# app/modules/items/service.py
import logging
import math
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.cache import ResponseCache, ITEMS_PREFIX
from app.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from app.modules.resolver.schemas import ItemLocationResponse
from app.modules.resolver.service import LocationResolver
from app.shared.database.models import ITEM_STATUSES
from app.shared.schemas import Pagination
from .repository import ItemRepository
from .schemas import (
    BulkStatusResponse, ItemCreate, ItemFilter, ItemListResponse, ItemUpdate
)

logger = logging.getLogger(__name__)

def _value(value):
    return getattr(value, "value", value)

class ItemService:
    """
    Servicio del almacén plano de items.

    Las lecturas devuelven cada item con su ubicación resuelta (pod, cara, bin);
    toda escritura invalida las respuestas cacheadas de items y de pods.
    """

    def __init__(self, db: Session, cache: Optional[ResponseCache] = None):
        self.db = db
        self.cache = cache
        self.repository = ItemRepository(db)
        self.resolver = LocationResolver(db, cache)

    def _invalidate(self) -> None:
        if self.cache is not None:
            removed = self.cache.invalidate_items()
            logger.debug(f"Cache invalidated: {removed} entries")

    def _validate(self, status=None, quantity=None) -> None:
        if status is not None and _value(status) not in ITEM_STATUSES:
            raise ValidationError(f"Invalid status {status}", status=_value(status))
        if quantity is not None and quantity < 0:
            raise ValidationError("Quantity cannot be negative", quantity=quantity)

    # ==================== CONSULTAS ====================

    async def list_items(
        self,
        item_filter: Optional[ItemFilter] = None,
        page: int = 1,
        limit: int = 50
    ) -> ItemListResponse:
        item_filter = item_filter or ItemFilter()
        cache_key = ResponseCache.make_key(
            ITEMS_PREFIX,
            {"page": page, "limit": limit, **item_filter.model_dump(mode="json", exclude_none=True)}
        )
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        offset = (page - 1) * limit
        if item_filter.has_location_filters:
            # El filtro de ubicación se aplica después del cruce
            resolved = await self.resolver.resolve_by_join(item_filter)
            total = len(resolved)
            resolved = resolved[offset:offset + limit]
        else:
            resolved = await self.resolver.resolve_by_join(item_filter, offset=offset, limit=limit)
            total = self.repository.count_items(item_filter)

        response = ItemListResponse(
            items=[ItemLocationResponse.from_resolved(r) for r in resolved],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit) if limit else 0,
                has_more=offset + len(resolved) < total,
            ),
        )
        if self.cache is not None:
            self.cache.set(cache_key, response)
        return response

    async def get_item(self, sku: str) -> ItemLocationResponse:
        db_item = self.repository.get_by_sku(sku)
        if not db_item:
            raise NotFoundError(f"Item with sku {sku} not found", sku=sku)

        resolved = await self.resolver.resolve_by_join(ItemFilter(u_bin_id=db_item.u_bin_id))
        match = next((r for r in resolved if r.sku == db_item.sku), None)
        if match is None:
            raise NotFoundError(f"Item with sku {sku} not found", sku=sku)
        return ItemLocationResponse.from_resolved(match)

    async def get_bin_items(self, item_filter: ItemFilter) -> List[ItemLocationResponse]:
        """Items con su ubicación, filtrables por sku, estado, pod, cara y bin"""
        resolved = await self.resolver.resolve_by_join(item_filter)
        return [ItemLocationResponse.from_resolved(r) for r in resolved]

    async def get_items_by_bin(self, bin_id: str, status: Optional[str] = None) -> List[ItemLocationResponse]:
        """Items ubicados en cualquier bin con ese bin_id (solo items con bin)"""
        resolved = await self.resolver.resolve_by_join(ItemFilter(bin_id=bin_id, status=status))
        return [ItemLocationResponse.from_resolved(r) for r in resolved]

    # ==================== ESCRITURAS ====================

    async def create_item(self, item_data: ItemCreate) -> ItemLocationResponse:
        sku = item_data.sku.strip()
        self._validate(item_data.status, item_data.quantity)

        if self.repository.get_by_sku(sku):
            raise DuplicateKeyError(f"Item with sku {sku} already exists", sku=sku)

        self.repository.create({**item_data.model_dump(), "sku": sku})
        self._invalidate()
        logger.info(f"✅ Item {sku} creado en {item_data.u_bin_id}")
        return await self.get_item(sku)

    async def update_item(self, sku: str, item_data: ItemUpdate) -> ItemLocationResponse:
        fields = item_data.model_dump(exclude_unset=True)
        for field in ("status", "quantity"):
            if field in fields and fields[field] is None:
                raise ValidationError(f"{field} cannot be null", sku=sku, field=field)
        self._validate(fields.get("status"), fields.get("quantity"))

        if not self.repository.update_fields(sku, **fields):
            raise NotFoundError(f"Item with sku {sku} not found", sku=sku)
        self._invalidate()
        return await self.get_item(sku)

    async def update_status(self, sku: str, status: str) -> ItemLocationResponse:
        self._validate(status)

        if not self.repository.update_fields(sku, status=status):
            raise NotFoundError(f"Item with sku {sku} not found", sku=sku)
        self._invalidate()
        return await self.get_item(sku)

    async def bulk_update_status(self, skus: List[str], status: str) -> BulkStatusResponse:
        self._validate(status)

        modified = self.repository.bulk_update_status(skus, status)
        if modified:
            self._invalidate()
        logger.info(f"Bulk status update to {_value(status)}: {modified}/{len(skus)} items modified")
        return BulkStatusResponse(
            message=f"{modified} items updated to {_value(status)}",
            modified_count=modified,
        )

    async def delete_item(self, sku: str) -> dict:
        if not self.repository.delete(sku):
            raise NotFoundError(f"Item with sku {sku} not found", sku=sku)
        self._invalidate()
        logger.info(f"🗑️ Item {sku} eliminado")
        return {"message": "Item deleted successfully"}
