# tests/test_items.py
import pytest

from app.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from app.modules.items.repository import ItemRepository
from app.modules.items.schemas import ItemCreate, ItemFilter, ItemStatus, ItemUpdate
from app.modules.items.service import ItemService
from app.core.cache import ResponseCache, ITEMS_PREFIX
from tests.factories import bins, make_item, make_pod


# ==================== REPOSITORIO ====================

def test_create_defaults(db):
    item = ItemRepository(db).create({"sku": " X001 ", "u_bin_id": "P-6-R326Q053"})
    assert item.sku == "X001"
    assert item.status == "available"
    assert item.quantity == 1
    assert item.last_updated is not None


def test_unique_constraints_raise_duplicate_key(db):
    repo = ItemRepository(db)
    repo.create({"sku": "X001", "u_bin_id": "UB-0001"})

    with pytest.raises(DuplicateKeyError):
        repo.create({"sku": "X001", "u_bin_id": "UB-0002"})
    with pytest.raises(DuplicateKeyError):
        repo.create({"sku": "X002", "u_bin_id": "UB-0001"})

    # La sesión sigue usable tras el rollback
    assert repo.count_items() == 1


def test_upsert_by_stock_code(db):
    repo = ItemRepository(db)

    item, created = repo.upsert_by_stock_code({"sku": "X001", "u_bin_id": "UB-0001"})
    assert created
    assert item.status == "available"

    item, created = repo.upsert_by_stock_code({"sku": "X001", "u_bin_id": "UB-0009", "status": "missing"})
    assert not created
    assert item.u_bin_id == "UB-0009"
    assert item.status == "missing"

    repo.create({"sku": "X002", "u_bin_id": "UB-0002"})
    with pytest.raises(DuplicateKeyError):
        repo.upsert_by_stock_code({"sku": "X001", "u_bin_id": "UB-0002"})


def test_update_location_is_targeted(db):
    repo = ItemRepository(db)
    repo.create({"sku": "X001", "u_bin_id": "UB-0001", "status": "hunting", "quantity": 3})

    assert repo.update_location("X001", "UB-0005")
    db.expire_all()
    item = repo.get_by_sku("X001")
    assert item.u_bin_id == "UB-0005"
    assert item.status == "hunting"
    assert item.quantity == 3

    assert not repo.update_location("NOPE", "UB-0006")


def test_update_location_collision(db):
    repo = ItemRepository(db)
    repo.create({"sku": "X001", "u_bin_id": "UB-0001"})
    repo.create({"sku": "X002", "u_bin_id": "UB-0002"})

    with pytest.raises(DuplicateKeyError):
        repo.update_location("X001", "UB-0002")


def test_find_and_filters(db):
    repo = ItemRepository(db)
    make_item(db, "ABC-1", "UB-0001")
    make_item(db, "ABC-2", "UB-0002", status="missing")
    make_item(db, "XYZ-1", "UB-0003")

    assert repo.find_by_location("UB-0002").sku == "ABC-2"
    assert repo.find_by_location("UB-9999") is None

    found = repo.find_by_locations(["UB-0001", "UB-0002", "UB-0003"], sku="abc")
    assert [i.sku for i in found] == ["ABC-1", "ABC-2"]
    found = repo.find_by_locations(["UB-0001", "UB-0002"], status=ItemStatus.MISSING)
    assert [i.sku for i in found] == ["ABC-2"]
    assert repo.find_by_locations([]) == []

    assert repo.count_items(ItemFilter(sku="abc")) == 2
    assert [i.sku for i in repo.list_items(offset=1, limit=1)] == ["ABC-2"]


def test_sku_prefix_escapes_wildcards(db):
    make_item(db, "A_1", "UB-0001")
    make_item(db, "AB1", "UB-0002")
    assert [i.sku for i in ItemRepository(db).list_items(ItemFilter(sku="A_"))] == ["A_1"]


def test_bulk_update_status_counts_modified(db):
    repo = ItemRepository(db)
    make_item(db, "X001", "UB-0001")
    make_item(db, "X002", "UB-0002", status="missing")
    make_item(db, "X003", "UB-0003")

    assert repo.bulk_update_status(["X001", "X002", "NOPE"], "missing") == 1
    assert repo.count_by_status() == {"available": 1, "missing": 2, "hunting": 0, "total": 3}


# ==================== SERVICIO ====================

@pytest.mark.asyncio
async def test_get_item_includes_location(db, cache):
    make_pod(db, "HB00000000001", {"A": bins("a", ("1a", "UB-0001"))})
    make_item(db, "X001", "UB-0001")
    make_item(db, "X002", "UB-0099")

    service = ItemService(db, cache)
    located = await service.get_item("X001")
    assert located.pod_barcode == "HB00000000001"
    assert located.face_id == "A"
    assert located.bin_id == "a_bin_1a"

    unlocated = await service.get_item("X002")
    assert unlocated.pod_barcode is None

    with pytest.raises(NotFoundError):
        await service.get_item("NOPE")


@pytest.mark.asyncio
async def test_create_item_rejects_existing_sku(db, cache):
    service = ItemService(db, cache)
    await service.create_item(ItemCreate(sku="X001", u_bin_id="UB-0001"))

    with pytest.raises(DuplicateKeyError):
        await service.create_item(ItemCreate(sku="X001", u_bin_id="UB-0002"))


@pytest.mark.asyncio
async def test_mutations_invalidate_cached_lists(db, cache):
    service = ItemService(db, cache)
    make_item(db, "X001", "UB-0001")

    first = await service.list_items()
    assert first.pagination.total == 1
    assert len(cache) == 1

    await service.update_item("X001", ItemUpdate(quantity=4))
    assert len(cache) == 0

    refreshed = await service.list_items()
    assert refreshed.items[0].quantity == 4


@pytest.mark.asyncio
async def test_update_item_rejects_null_quantity_and_status(db, cache):
    service = ItemService(db, cache)
    make_item(db, "X001", "UB-0001", quantity=3)

    with pytest.raises(ValidationError):
        await service.update_item("X001", ItemUpdate(quantity=None))
    with pytest.raises(ValidationError):
        await service.update_item("X001", ItemUpdate(status=None))

    db.expire_all()
    assert ItemRepository(db).get_by_sku("X001").quantity == 3


def test_not_null_violation_is_validation_error(db):
    repo = ItemRepository(db)
    repo.create({"sku": "X001", "u_bin_id": "UB-0001"})

    with pytest.raises(ValidationError):
        repo.update_fields("X001", quantity=None)

    # La sesión sigue usable tras el rollback
    assert repo.get_by_sku("X001").quantity == 1


@pytest.mark.asyncio
async def test_list_items_with_location_filter_paginates(db, cache):
    make_pod(db, "HB00000000001", {"A": bins("a", ("1a", "UB-0001"), ("2a", "UB-0002"), ("3a", "UB-0003"))})
    for n in range(1, 4):
        make_item(db, f"X00{n}", f"UB-000{n}")
    make_item(db, "X009", "UB-0009")

    page = await ItemService(db, cache).list_items(ItemFilter(pod_barcode="hb00000000001"), page=1, limit=2)
    assert [i.sku for i in page.items] == ["X001", "X002"]
    assert page.pagination.total == 3
    assert page.pagination.has_more


@pytest.mark.asyncio
async def test_update_status_and_delete(db, cache):
    service = ItemService(db, cache)
    make_item(db, "X001", "UB-0001")

    updated = await service.update_status("X001", ItemStatus.HUNTING)
    assert updated.status == "hunting"

    assert (await service.bulk_update_status(["X001"], ItemStatus.HUNTING)).modified_count == 0

    await service.delete_item("X001")
    with pytest.raises(NotFoundError):
        await service.delete_item("X001")


def test_cache_prefix_invalidation():
    cache = ResponseCache(ttl_seconds=60, max_entries=2)
    cache.set(ResponseCache.make_key(ITEMS_PREFIX, {"page": 1}), "a")
    cache.set(ResponseCache.make_key("other", {}), "b")
    cache.set(ResponseCache.make_key(ITEMS_PREFIX, {"page": 2}), "c")

    # Máximo 2 entradas: se descartó la más antigua
    assert len(cache) == 2
    assert cache.invalidate_items() == 1
    assert cache.get(ResponseCache.make_key("other", {})) == "b"


def test_cache_entries_expire():
    cache = ResponseCache(ttl_seconds=0)
    cache.set("items:x", 1)
    assert cache.get("items:x") is None
