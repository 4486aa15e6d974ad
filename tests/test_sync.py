# tests/test_sync.py
import pytest
from sqlalchemy.orm.exc import StaleDataError

from app.core.exceptions import ConflictError, NotFoundError, PartialFailure
from app.modules.items.repository import ItemRepository
from app.modules.pods.repository import PodRepository
from app.modules.sync.service import SyncService
from app.shared.database.models import PodFace
from tests.factories import bins, make_item, make_pod


def snapshot(db, barcode):
    db.expire_all()
    pod = PodRepository(db).get_by_barcode(barcode)
    return [
        (face.pod_face, face.face_item_total, [(b.bin_id, b.bin_item_count, b.items) for b in face.bins])
        for face in pod.faces
    ]


@pytest.fixture
def stocked_pod(db):
    make_pod(db, "HB00000000001", {
        "A": bins("a", ("1a", "UB-0001"), ("2a", "UB-0002"), ("3a", None)),
        "C": bins("c", ("1a", "UB-0003")),
    })
    make_item(db, "X001", "UB-0001")
    make_item(db, "X002", "UB-0002", status="missing")
    make_item(db, "X003", "UB-0003", status="hunting")
    return "HB00000000001"


@pytest.mark.asyncio
async def test_sync_pod_projects_items(db, cache, stocked_pod):
    result = await SyncService(db, cache).sync_pod(stocked_pod)

    assert result.items_synced == 3
    assert result.bins_processed == 3
    assert result.faces_processed == 2
    assert result.persisted

    faces = snapshot(db, stocked_pod)
    assert faces[0][1] == 2
    assert faces[0][2][0] == ("a_bin_1a", 1, [{"itemSku": "X001", "itemStatus": "available"}])
    assert faces[0][2][1] == ("a_bin_2a", 1, [{"itemSku": "X002", "itemStatus": "missing"}])
    assert faces[0][2][2] == ("a_bin_3a", 0, [])
    assert faces[1][1] == 1


@pytest.mark.asyncio
async def test_sync_pod_is_idempotent(db, stocked_pod):
    service = SyncService(db)
    await service.sync_pod(stocked_pod)
    first = snapshot(db, stocked_pod)

    await service.sync_pod(stocked_pod)
    assert snapshot(db, stocked_pod) == first


@pytest.mark.asyncio
async def test_counts_match_items_after_sync(db, stocked_pod):
    await SyncService(db).sync_pod(stocked_pod)

    db.expire_all()
    pod = PodRepository(db).get_by_barcode(stocked_pod)
    for face in pod.faces:
        assert face.face_item_total == sum(b.bin_item_count for b in face.bins)
        for b in face.bins:
            assert b.bin_item_count == len(b.items)


@pytest.mark.asyncio
async def test_stale_entries_are_removed(db, stocked_pod):
    service = SyncService(db)
    await service.sync_pod(stocked_pod)

    # Los items salen del almacén y el pod queda vacío
    for sku in ("X001", "X002", "X003"):
        assert ItemRepository(db).delete(sku)

    result = await service.sync_pod(stocked_pod)
    assert result.items_synced == 0
    assert result.persisted

    faces = snapshot(db, stocked_pod)
    assert all(total == 0 for _, total, _ in faces)
    assert all(items == [] for _, _, rows in faces for _, _, items in rows)


@pytest.mark.asyncio
async def test_empty_pod_is_not_written(db):
    make_pod(db, "HB00000000001", {"A": bins("a", ("1a", "UB-0001"))})
    db.expire_all()
    version = PodRepository(db).get_by_barcode("HB00000000001").version_id

    result = await SyncService(db).sync_pod("HB00000000001")
    assert not result.persisted

    db.expire_all()
    assert PodRepository(db).get_by_barcode("HB00000000001").version_id == version


@pytest.mark.asyncio
async def test_sync_unknown_pod(db):
    with pytest.raises(NotFoundError):
        await SyncService(db).sync_pod("HB99999999999")


@pytest.mark.asyncio
async def test_sync_retries_on_version_conflict(db, stocked_pod, monkeypatch):
    service = SyncService(db)
    real_save = service.pod_repository.save
    calls = {"count": 0}

    def flaky_save(pod):
        calls["count"] += 1
        if calls["count"] == 1:
            raise StaleDataError("pods row was updated by another writer")
        return real_save(pod)

    monkeypatch.setattr(service.pod_repository, "save", flaky_save)

    result = await service.sync_pod(stocked_pod)
    assert calls["count"] == 2
    assert result.items_synced == 3


@pytest.mark.asyncio
async def test_sync_gives_up_after_max_retries(db, stocked_pod, monkeypatch):
    service = SyncService(db)

    def always_stale(pod):
        raise StaleDataError("pods row was updated by another writer")

    monkeypatch.setattr(service.pod_repository, "save", always_stale)
    monkeypatch.setattr("app.modules.sync.service.settings.sync_max_retries", 2)

    with pytest.raises(ConflictError):
        await service.sync_pod(stocked_pod)


# ==================== TODOS LOS PODS ====================

@pytest.mark.asyncio
async def test_sync_all_isolates_malformed_pod(db, cache):
    make_pod(db, "HB00000000001", {"A": bins("a", ("1a", "UB-0001"))})
    broken = make_pod(db, "HB00000000002", {"A": bins("a", ("1a", "UB-0002"))})
    make_pod(db, "HB00000000003", {"A": bins("a", ("1a", "UB-0003"))})
    for n in (1, 2, 3):
        make_item(db, f"X00{n}", f"UB-000{n}")

    broken.faces.append(PodFace(pod_face="Z", gcu="0%", position=1, bins=[]))
    db.commit()

    result = await SyncService(db, cache).sync_all()

    assert result.total_pods == 3
    assert result.total_items_synced == 2
    assert result.total_errors == 1
    assert result.error_details[0].startswith("Pod HB00000000002: ")

    with pytest.raises(PartialFailure) as exc_info:
        result.raise_for_errors()
    assert exc_info.value.result is result

    assert snapshot(db, "HB00000000003")[0][1] == 1


# ==================== INTEGRIDAD ====================

@pytest.mark.asyncio
async def test_check_integrity(db, stocked_pod):
    service = SyncService(db)

    report = await service.check_integrity()
    assert set(report.stale_bins) == {
        "HB00000000001/A/a_bin_1a", "HB00000000001/A/a_bin_2a", "HB00000000001/C/c_bin_1a"
    }

    await service.sync_pod(stocked_pod)
    assert (await service.check_integrity()).is_consistent

    make_pod(db, "HB00000000002", {"A": bins("a", ("1a", "UB-0001"))})
    make_item(db, "X100", "UB-0100")

    report = await service.check_integrity()
    assert report.duplicate_bin_locations == [
        "UB-0001: HB00000000001/A/a_bin_1a, HB00000000002/A/a_bin_1a"
    ]
    assert report.orphan_items == ["X100"]
    assert "HB00000000002/A/a_bin_1a" in report.stale_bins
