# app/modules/sync/service.py
"""
Motor de sincronización: proyecta el almacén plano de items sobre la
estructura de pods (listas embebidas por bin y totales por cara).

La proyección es una vista materializada: solo este servicio escribe las
listas ``items`` de los bins.
"""
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.config.settings import settings
from app.core.cache import ResponseCache
from app.core.exceptions import ConflictError, NotFoundError
from app.modules.items.repository import ItemRepository
from app.modules.pods.repository import PodRepository
from app.modules.pods.service import validate_pod_structure
from .schemas import IntegrityReport, PodSyncResult, SyncAllResult

logger = logging.getLogger(__name__)

def _project(items) -> List[Dict[str, str]]:
    return [{"itemSku": item.sku, "itemStatus": item.status} for item in items]

class SyncService:
    """
    Sincronización item store → pods
    """

    def __init__(self, db: Session, cache: Optional[ResponseCache] = None):
        self.db = db
        self.cache = cache
        self.pod_repository = PodRepository(db)
        self.item_repository = ItemRepository(db)

    # ==================== UN POD ====================

    async def sync_pod(self, pod_barcode: str) -> PodSyncResult:
        """
        Sincronizar un pod. Ante un conflicto de versión se recarga y reintenta
        hasta ``settings.sync_max_retries`` veces.
        """
        attempts = max(1, settings.sync_max_retries)
        for attempt in range(1, attempts + 1):
            try:
                return self._sync_pod_once(pod_barcode)
            except StaleDataError:
                self.db.rollback()
                logger.warning(
                    f"⚠️ Version conflict syncing pod {pod_barcode} (attempt {attempt}/{attempts})"
                )

        raise ConflictError(
            f"Pod {pod_barcode} kept changing during sync after {attempts} attempts",
            pod_barcode=pod_barcode
        )

    def _sync_pod_once(self, pod_barcode: str) -> PodSyncResult:
        pod = self.pod_repository.get_by_barcode(pod_barcode)
        if pod is None:
            raise NotFoundError(f"Pod with barcode {pod_barcode} not found", pod_barcode=pod_barcode)

        validate_pod_structure(pod)

        result = PodSyncResult(pod_barcode=pod.pod_barcode)
        changed = False

        for face in pod.faces:
            for bin in face.bins:
                if not bin.u_bin_id:
                    continue

                projected = _project(self.item_repository.find_all_by_location(bin.u_bin_id))
                if projected != list(bin.items or []) or bin.bin_item_count != len(projected):
                    changed = True
                # Reemplazo completo: las entradas obsoletas desaparecen
                bin.items = projected
                bin.bin_item_count = len(projected)

                result.items_synced += len(projected)
                result.bins_processed += 1
            result.faces_processed += 1

        previous_totals = [face.face_item_total for face in pod.faces]
        pod.recalculate_totals()
        if previous_totals != [face.face_item_total for face in pod.faces]:
            changed = True

        if result.items_synced > 0 or changed:
            self.pod_repository.save(pod)
            result.persisted = True
            if self.cache is not None:
                self.cache.invalidate_items()
            logger.info(
                f"✅ Pod {pod.pod_barcode} synced: {result.items_synced} items, "
                f"{result.bins_processed} bins, {result.faces_processed} faces"
            )
        else:
            # Pod vacío que sigue vacío: sin escritura
            self.db.rollback()
            logger.debug(f"Pod {pod.pod_barcode} unchanged, nothing to persist")

        return result

    # ==================== TODOS LOS PODS ====================

    async def sync_all(self) -> SyncAllResult:
        """
        Sincronizar todos los pods en secuencia; el fallo de un pod no detiene
        al resto y queda registrado en ``error_details``.
        """
        barcodes = self.pod_repository.list_barcodes()
        result = SyncAllResult(total_pods=len(barcodes))
        logger.info(f"🔄 Syncing {len(barcodes)} pods")

        for barcode in barcodes:
            try:
                pod_result = await self.sync_pod(barcode)
                result.total_items_synced += pod_result.items_synced
            except Exception as e:
                self.db.rollback()
                result.total_errors += 1
                result.error_details.append(f"Pod {barcode}: {e}")
                logger.error(f"❌ Error syncing pod {barcode}: {e}")

        logger.info(
            f"Sync finished: {result.total_pods} pods, {result.total_items_synced} items, "
            f"{result.total_errors} errors"
        )
        return result

    # ==================== INTEGRIDAD ====================

    async def check_integrity(self) -> IntegrityReport:
        """
        Comparar la proyección de los pods contra el almacén de items.
        """
        report = IntegrityReport()

        expected: Dict[str, List[Dict[str, str]]] = defaultdict(list)
        for item in self.item_repository.list_items():
            expected[item.u_bin_id].append({"itemSku": item.sku, "itemStatus": item.status})

        rows = self.pod_repository.list_bin_locations()

        bins_by_location: Dict[str, List[str]] = defaultdict(list)
        face_totals: Dict[int, dict] = {}
        for row in rows:
            location = f"{row.pod_barcode}/{row.pod_face}/{row.bin_id}"
            embedded = list(row.bin_items or [])

            if row.u_bin_id:
                bins_by_location[row.u_bin_id].append(location)
                if embedded != expected.get(row.u_bin_id, []):
                    report.stale_bins.append(location)

            if row.bin_item_count != len(embedded):
                report.count_mismatches.append(
                    f"{location}: bin_item_count {row.bin_item_count} != {len(embedded)} items"
                )

            face = face_totals.setdefault(
                row.face_pk,
                {"label": f"{row.pod_barcode}/{row.pod_face}", "stored": row.face_item_total, "sum": 0}
            )
            face["sum"] += row.bin_item_count

        for face in face_totals.values():
            if face["stored"] != face["sum"]:
                report.count_mismatches.append(
                    f"{face['label']}: face_item_total {face['stored']} != {face['sum']}"
                )

        report.duplicate_bin_locations = [
            f"{u_bin_id}: {', '.join(locations)}"
            for u_bin_id, locations in bins_by_location.items()
            if len(locations) > 1
        ]
        report.orphan_items = [
            entry["itemSku"]
            for u_bin_id, entries in expected.items()
            if u_bin_id not in bins_by_location
            for entry in entries
        ]

        if report.is_consistent:
            logger.info("✅ Integrity check passed")
        else:
            logger.warning(
                f"⚠️ Integrity check: {len(report.duplicate_bin_locations)} duplicated locations, "
                f"{len(report.orphan_items)} orphan items, {len(report.stale_bins)} stale bins, "
                f"{len(report.count_mismatches)} count mismatches"
            )
        return report
