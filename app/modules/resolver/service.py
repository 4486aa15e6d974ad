# app/modules/resolver/service.py
"""
Resolución de ubicaciones: "¿en qué pod/cara/bin está este item?"

Dos estrategias observablemente equivalentes:

- ``resolve_by_join``: parte del almacén plano y cruza contra la estructura
  de pods por uBinId (sirve para filtros globales).
- ``resolve_by_pod``: parte de un único pod, arma un mapa uBinId → bin en
  memoria y consulta los items con un IN. Siempre 2 viajes a la base.
"""
import logging
import time
from collections import OrderedDict
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.cache import ResponseCache, POD_ITEMS_PREFIX
from app.config.settings import settings
from app.modules.items.repository import ItemRepository
from app.modules.items.schemas import ItemFilter
from app.modules.pods.repository import PodRepository
from app.shared.database.models import Pod, PodFace, PodBin, PodItem
from .schemas import BinLocation, ResolvedItem

logger = logging.getLogger(__name__)

def _matches_location(resolved: ResolvedItem, item_filter: ItemFilter) -> bool:
    if not item_filter.has_location_filters:
        return True

    info = resolved.bin_info
    if info is None:
        return False
    if item_filter.pod_barcode and info.pod_barcode != item_filter.pod_barcode.strip().upper():
        return False
    if item_filter.face_id and info.face_id != item_filter.face_id.strip().upper():
        return False
    if item_filter.bin_id and info.bin_id != item_filter.bin_id:
        return False
    return True

class LocationResolver:
    """
    Resolver de ubicaciones de items sobre ambos almacenes
    """

    def __init__(self, db: Session, cache: Optional[ResponseCache] = None):
        self.db = db
        self.cache = cache
        self.item_repository = ItemRepository(db)
        self.pod_repository = PodRepository(db)
        self.ambiguous_matches = 0

    # ==================== ESTRATEGIA JOIN ====================

    async def resolve_by_join(
        self,
        item_filter: Optional[ItemFilter] = None,
        offset: int = 0,
        limit: Optional[int] = None
    ) -> List[ResolvedItem]:
        """
        Items filtrados primero y luego cruzados con bins por uBinId.

        Si un uBinId aparece en más de un bin gana el primero en orden
        estructural (pod, cara, bin) y se registra una advertencia.
        """
        start_time = time.perf_counter()
        item_filter = item_filter or ItemFilter()

        query = self.db.query(
                PodItem,
                Pod.pod_barcode,
                Pod.pod_name,
                PodFace.pod_face,
                PodBin.bin_id,
                PodBin.u_bin_id,
                PodBin.bin_item_count,
            )\
            .outerjoin(PodBin, PodBin.u_bin_id == PodItem.u_bin_id)\
            .outerjoin(PodFace, PodFace.id == PodBin.face_id)\
            .outerjoin(Pod, Pod.id == PodFace.pod_id)
        query = self.item_repository.apply_filters(query, item_filter)

        if offset or limit is not None:
            page = self.item_repository.apply_filters(self.db.query(PodItem.id), item_filter)\
                .order_by(PodItem.id)
            if offset:
                page = page.offset(offset)
            if limit is not None:
                page = page.limit(limit)
            query = query.filter(PodItem.id.in_(select(page.subquery().c.id)))

        rows = query.order_by(PodItem.id, Pod.id, PodFace.position, PodBin.position).all()

        resolved: Dict[int, ResolvedItem] = OrderedDict()
        for item, pod_barcode, pod_name, face_id, bin_id, bin_u_bin_id, bin_item_count in rows:
            bin_info = None
            if bin_u_bin_id is not None:
                bin_info = BinLocation(
                    pod_barcode=pod_barcode,
                    pod_name=pod_name,
                    face_id=face_id,
                    bin_id=bin_id,
                    u_bin_id=bin_u_bin_id,
                    bin_item_count=bin_item_count,
                )

            if item.id in resolved:
                if bin_info is not None:
                    self.ambiguous_matches += 1
                    first = resolved[item.id].bin_info
                    logger.warning(
                        f"⚠️ u_bin_id {item.u_bin_id} (sku {item.sku}) matches more than one bin: "
                        f"keeping {first.pod_barcode}/{first.face_id}/{first.bin_id}, "
                        f"ignoring {pod_barcode}/{face_id}/{bin_id}"
                    )
                continue
            resolved[item.id] = ResolvedItem.from_item(item, bin_info)

        result = [r for r in resolved.values() if _matches_location(r, item_filter)]

        query_ms = (time.perf_counter() - start_time) * 1000
        if query_ms > settings.slow_query_ms:
            logger.warning(f"⚠️ Join query took {query_ms:.0f}ms for {len(result)} items")
        else:
            logger.debug(f"⚡ Fast join: {query_ms:.0f}ms for {len(result)} items")

        return result

    # ==================== ESTRATEGIA POR POD ====================

    async def resolve_by_pod(
        self,
        pod_barcode: str,
        item_filter: Optional[ItemFilter] = None
    ) -> List[ResolvedItem]:
        """
        Lectura del pod + consulta IN de items. Pod inexistente → lista vacía.
        """
        start_time = time.perf_counter()
        item_filter = item_filter or ItemFilter()

        # 1. Estructura del pod (una consulta)
        pod = self.pod_repository.get_by_barcode(pod_barcode)
        if pod is None:
            return []

        # 2. Mapa uBinId → ubicación
        bin_mapping: Dict[str, BinLocation] = {}
        for face in pod.faces:
            for bin in face.bins:
                if bin.u_bin_id and bin.u_bin_id not in bin_mapping:
                    bin_mapping[bin.u_bin_id] = BinLocation(
                        pod_barcode=pod.pod_barcode,
                        pod_name=pod.pod_name,
                        face_id=face.pod_face,
                        bin_id=bin.bin_id,
                        u_bin_id=bin.u_bin_id,
                        bin_item_count=bin.bin_item_count,
                    )

        # 3. Filtros de cara/bin sobre el mapa, antes de consultar
        face_filter = item_filter.face_id.strip().upper() if item_filter.face_id else None
        u_bin_ids = [
            key for key, info in bin_mapping.items()
            if (face_filter is None or info.face_id == face_filter)
            and (item_filter.bin_id is None or info.bin_id == item_filter.bin_id)
            and (item_filter.u_bin_id is None or key == item_filter.u_bin_id)
        ]

        # 4. Items (una consulta)
        items = self.item_repository.find_by_locations(
            u_bin_ids,
            status=item_filter.status,
            sku=item_filter.sku
        )

        # 5. Anotar ubicación
        result = [ResolvedItem.from_item(item, bin_mapping[item.u_bin_id]) for item in items]

        query_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"⚡ Fast pod query: {query_ms:.0f}ms for {len(result)} items (pod_barcode: {pod.pod_barcode})"
        )
        return result

    # ==================== CONSULTA CON FALLBACK ====================

    async def get_pod_items(
        self,
        pod_barcode: str,
        item_filter: Optional[ItemFilter] = None
    ) -> List[ResolvedItem]:
        """
        Items de un pod por la estrategia rápida; ante un error se degrada a la
        estrategia join restringida al pod. Resultados cacheados con TTL.
        """
        item_filter = item_filter or ItemFilter()
        cache_key = ResponseCache.make_key(
            POD_ITEMS_PREFIX,
            {"pod_barcode": pod_barcode, **item_filter.model_dump(mode="json", exclude_none=True)}
        )
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache HIT for pod {pod_barcode} items")
                return cached

        try:
            items = await self.resolve_by_pod(pod_barcode, item_filter)
        except Exception as e:
            logger.warning(f"⚠️ Fast pod query failed for {pod_barcode}: {e}. Falling back to join strategy")
            self.db.rollback()
            items = await self.resolve_by_join(
                item_filter.model_copy(update={"pod_barcode": pod_barcode})
            )

        if self.cache is not None:
            self.cache.set(cache_key, items)
        return items
