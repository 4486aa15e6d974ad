# tests/test_resolver.py
import pytest

from app.modules.items.schemas import ItemFilter, ItemStatus
from app.modules.resolver.service import LocationResolver
from app.modules.sync.service import SyncService
from tests.factories import bins, make_item, make_pod


@pytest.fixture
def warehouse(db):
    make_pod(db, "HB00000000001", {
        "A": bins("a", ("1a", "UB-0001"), ("2a", "UB-0002"), ("3a", None)),
        "C": bins("c", ("1a", "UB-0003"), ("2a", "UB-0004")),
    })
    make_pod(db, "HB00000000002", {"A": bins("a", ("1a", "UB-0005"))})
    make_item(db, "ABC-1", "UB-0001")
    make_item(db, "ABC-2", "UB-0002", status="missing")
    make_item(db, "XYZ-3", "UB-0003", status="hunting")
    make_item(db, "XYZ-4", "UB-0004")
    make_item(db, "ABC-5", "UB-0005")
    make_item(db, "ABC-9", "UB-0099")  # sin bin
    return db


def keys(resolved):
    return sorted(r.location_key() for r in resolved)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "item_filter",
    [
        ItemFilter(),
        ItemFilter(sku="abc"),
        ItemFilter(status=ItemStatus.AVAILABLE),
        ItemFilter(face_id="C"),
        ItemFilter(face_id="a", bin_id="a_bin_2a"),
        ItemFilter(u_bin_id="UB-0004"),
    ],
)
async def test_strategies_agree(warehouse, item_filter):
    resolver = LocationResolver(warehouse)

    fast = await resolver.resolve_by_pod("HB00000000001", item_filter)
    joined = await resolver.resolve_by_join(
        item_filter.model_copy(update={"pod_barcode": "HB00000000001"})
    )

    assert keys(fast) == keys(joined)


@pytest.mark.asyncio
async def test_join_keeps_items_without_bin(warehouse):
    resolved = await LocationResolver(warehouse).resolve_by_join(ItemFilter(sku="ABC"))
    by_sku = {r.sku: r for r in resolved}

    assert set(by_sku) == {"ABC-1", "ABC-2", "ABC-5", "ABC-9"}
    assert by_sku["ABC-9"].bin_info is None
    assert by_sku["ABC-5"].bin_info.pod_barcode == "HB00000000002"


@pytest.mark.asyncio
async def test_join_pagination(warehouse):
    resolver = LocationResolver(warehouse)
    page = await resolver.resolve_by_join(offset=2, limit=2)
    assert [r.sku for r in page] == ["XYZ-3", "XYZ-4"]


@pytest.mark.asyncio
async def test_join_first_match_wins(warehouse):
    # Mismo uBinId en un segundo pod: defecto de datos
    make_pod(warehouse, "HB00000000003", {"A": bins("a", ("1a", "UB-0001"))})
    resolver = LocationResolver(warehouse)

    resolved = await resolver.resolve_by_join(ItemFilter(sku="ABC-1"))

    assert len(resolved) == 1
    assert resolved[0].bin_info.pod_barcode == "HB00000000001"
    assert resolver.ambiguous_matches == 1


@pytest.mark.asyncio
async def test_bin_info_carries_projected_count(warehouse):
    await SyncService(warehouse).sync_pod("HB00000000001")
    resolved = await LocationResolver(warehouse).resolve_by_pod("HB00000000001", ItemFilter(sku="ABC-1"))

    info = resolved[0].bin_info
    assert (info.face_id, info.bin_id, info.bin_item_count) == ("A", "a_bin_1a", 1)


@pytest.mark.asyncio
async def test_unknown_pod_yields_empty(warehouse):
    assert await LocationResolver(warehouse).resolve_by_pod("HB99999999999") == []
    assert await LocationResolver(warehouse).get_pod_items("HB99999999999") == []


@pytest.mark.asyncio
async def test_fast_strategy_uses_two_round_trips(warehouse, session_maker, statements):
    session = session_maker()
    try:
        resolver = LocationResolver(session)
        statements.clear()

        resolved = await resolver.resolve_by_pod("HB00000000001", ItemFilter(status=ItemStatus.AVAILABLE))

        assert len(statements) == 2
        assert [r.sku for r in resolved] == ["ABC-1", "XYZ-4"]
    finally:
        session.close()


@pytest.mark.asyncio
async def test_get_pod_items_falls_back_to_join(warehouse, cache, monkeypatch):
    resolver = LocationResolver(warehouse, cache)

    async def broken(*args, **kwargs):
        raise RuntimeError("pod document unreadable")

    monkeypatch.setattr(resolver, "resolve_by_pod", broken)

    items = await resolver.get_pod_items("HB00000000001", ItemFilter(face_id="A"))
    assert sorted(r.sku for r in items) == ["ABC-1", "ABC-2"]


@pytest.mark.asyncio
async def test_get_pod_items_is_cached(warehouse, cache):
    resolver = LocationResolver(warehouse, cache)
    first = await resolver.get_pod_items("HB00000000001")
    assert len(cache) == 1

    assert await resolver.get_pod_items("HB00000000001") is first

    cache.invalidate_items()
    assert len(cache) == 0
