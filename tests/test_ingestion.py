# tests/test_ingestion.py
import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ValidationError
from app.modules.ingestion.normalizers import (
    clean_location_barcode, clean_value, is_valid_location_key, normalize_row
)
from app.modules.ingestion.service import IngestionService
from app.modules.items.repository import ItemRepository
from tests.factories import make_item


# ==================== NORMALIZACIÓN ====================

def test_clean_value():
    assert clean_value("N/A") is None
    assert clean_value(" none ") is None
    assert clean_value("NONE") is None
    assert clean_value("   ") is None
    assert clean_value(None) is None
    assert clean_value("P-6-R326Q053") == "P-6-R326Q053"
    assert clean_value("  X001 ") == "X001"
    assert clean_value(12345) == "12345"
    assert clean_value(12345.0) == "12345"
    assert clean_value(True) is None
    assert clean_value(float("nan")) is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("P-6-R326Q053", True),
        ("0", False),
        ("AB", False),
        ("ABC", False),
        ("ABCD", True),
        ("null", False),
        ("NULL", False),
        ("n/a", False),
        ("None", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_location_key(value, expected):
    assert is_valid_location_key(value) is expected


def test_clean_location_barcode():
    assert clean_location_barcode("HB00000000001 (old)") == "HB00000000001"
    assert clean_location_barcode("  HB00000000001") == "HB00000000001"
    assert clean_location_barcode("N/A") is None


def test_normalize_row_accepts_both_key_styles():
    raw = normalize_row({"stockCode": "X001", "locationKeyRaw": "P-6-R326Q053", "locationBarcodeRaw": "HB1 x"})
    assert raw == {"sku": "X001", "u_bin_id": "P-6-R326Q053", "pod_barcode": "HB1", "has_valid_location": True}

    legacy = normalize_row({"sku": "X002", "uBinId": "0"})
    assert legacy["sku"] == "X002"
    assert legacy["has_valid_location"] is False


# ==================== RECONCILIACIÓN ====================

@pytest.mark.asyncio
async def test_reconcile_scenario(db, cache):
    make_item(db, "X002", "P-6-R326Q999", status="missing", quantity=2)
    service = IngestionService(db, cache)

    result = await service.reconcile([
        {"stockCode": "X001", "locationKeyRaw": "P-6-R326Q053"},
        {"stockCode": "X001", "locationKeyRaw": "P-6-R326Q053"},
        {"stockCode": "X002", "locationKeyRaw": "P-6-R326Q054"},
        {"stockCode": "X003", "locationKeyRaw": "N/A"},
        {"stockCode": "  ", "locationKeyRaw": "P-6-R326Q055"},
    ])

    assert result.processed == 5
    assert result.inserted == 1
    assert result.updated == 1
    assert result.skipped == 1
    assert result.errors == []

    repo = ItemRepository(db)
    db.expire_all()
    inserted = repo.get_by_sku("X001")
    assert (inserted.u_bin_id, inserted.status, inserted.quantity) == ("P-6-R326Q053", "available", 1)

    moved = repo.get_by_sku("X002")
    assert (moved.u_bin_id, moved.status, moved.quantity) == ("P-6-R326Q054", "missing", 2)

    assert repo.get_by_sku("X003") is None


@pytest.mark.asyncio
async def test_reconcile_continues_after_row_failure(db):
    make_item(db, "X001", "P-6-R326Q053")

    result = await IngestionService(db).reconcile([
        {"sku": "X002", "uBinId": "P-6-R326Q053"},
        {"sku": "X003", "uBinId": "P-6-R326Q060"},
    ])

    assert result.inserted == 1
    assert result.skipped == 1
    assert result.errors[0].startswith("SKU X002")
    assert ItemRepository(db).get_by_sku("X003") is not None


@pytest.mark.asyncio
async def test_reconcile_skips_row_on_database_error(db, monkeypatch):
    original_create = ItemRepository.create

    def create(self, data):
        if data["sku"] == "BAD":
            raise OperationalError("INSERT INTO pod_items", {}, Exception("database is locked"))
        return original_create(self, data)

    monkeypatch.setattr(ItemRepository, "create", create)

    result = await IngestionService(db).reconcile([
        {"sku": "BAD", "uBinId": "P-6-R326Q053"},
        {"sku": "GOOD", "uBinId": "P-6-R326Q054"},
    ])

    assert result.processed == 2
    assert result.inserted == 1
    assert result.skipped == 1
    assert result.errors[0].startswith("SKU BAD")
    assert ItemRepository(db).get_by_sku("GOOD") is not None


@pytest.mark.asyncio
async def test_reconcile_accepts_numeric_stock_codes(db):
    result = await IngestionService(db).reconcile([
        {"stockCode": 12345, "locationKeyRaw": "P-6-R326Q053"},
    ])

    assert result.inserted == 1
    assert result.skipped == 0
    assert ItemRepository(db).get_by_sku("12345").u_bin_id == "P-6-R326Q053"


@pytest.mark.asyncio
async def test_reconcile_csv(db, tmp_path):
    csv_path = tmp_path / "items.csv"
    csv_path.write_text(
        "stockCode,locationKeyRaw,locationBarcodeRaw\n"
        "X001,P-6-R326Q053,HB00000000001 A\n"
        "X002,N/A,\n"
        "X003,NA,\n",
        encoding="utf-8"
    )

    result = await IngestionService(db).reconcile_csv(csv_path)

    assert result.processed == 3
    assert result.inserted == 1
    assert ItemRepository(db).get_by_sku("X002") is None


@pytest.mark.asyncio
async def test_reconcile_csv_latin1(db):
    content = "sku,uBinId\nCAFÉ-1,P-6-R326Q053\n".encode("latin-1")
    result = await IngestionService(db).reconcile_csv(content)

    assert result.inserted == 1
    assert ItemRepository(db).get_by_sku("CAFÉ-1") is not None


@pytest.mark.asyncio
async def test_reconcile_csv_empty(db):
    with pytest.raises(ValidationError):
        await IngestionService(db).reconcile_csv(b"")
