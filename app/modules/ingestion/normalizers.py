# app/modules/ingestion/normalizers.py
"""
Limpieza de filas de entrada no confiables (exportes CSV, planillas).
"""
import math
from typing import Any, Dict, Optional

SKU_KEYS = ("stockCode", "sku")
LOCATION_KEY_KEYS = ("locationKeyRaw", "uBinId")
LOCATION_BARCODE_KEYS = ("locationBarcodeRaw", "podBarcode")

INVALID_LOCATION_KEYS = {"n/a", "none", "null"}

def _as_text(value: Any) -> Optional[str]:
    """Texto de la celda; los números se convierten ("12345", no "12345.0")"""
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        if value.is_integer():
            return str(int(value))
    return str(value)

def clean_value(value: Any) -> Optional[str]:
    """
    Valor recortado, o None si está vacío, es "N/A" o es "none" (sin
    distinguir mayúsculas). Los números llegan como texto.

    >>> clean_value(" none ") is None
    True
    >>> clean_value("P-6-R326Q053")
    'P-6-R326Q053'
    >>> clean_value(12345)
    '12345'
    """
    text = _as_text(value)
    if text is None:
        return None
    cleaned = text.strip()
    if not cleaned or cleaned == "N/A" or cleaned.lower() == "none":
        return None
    return cleaned

def is_valid_location_key(value: Any) -> bool:
    """
    Una clave de ubicación real tiene más de 3 caracteres y no es un marcador
    de vacío (N/A, none, null, 0).
    """
    text = _as_text(value)
    if text is None:
        return False
    cleaned = text.strip()
    if not cleaned or cleaned.lower() in INVALID_LOCATION_KEYS or cleaned == "0":
        return False
    return len(cleaned) > 3

def clean_location_barcode(value: Any) -> Optional[str]:
    """Primer token del barcode ("HB00000000001 extra" → "HB00000000001")"""
    cleaned = clean_value(value)
    if cleaned is None:
        return None
    return cleaned.split()[0]

def _first_present(row: Dict[str, Any], keys) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None

def normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Fila cruda → {sku, u_bin_id, pod_barcode, has_valid_location}"""
    u_bin_id = clean_value(_first_present(row, LOCATION_KEY_KEYS))
    return {
        "sku": clean_value(_first_present(row, SKU_KEYS)),
        "u_bin_id": u_bin_id,
        "pod_barcode": clean_location_barcode(_first_present(row, LOCATION_BARCODE_KEYS)),
        "has_valid_location": is_valid_location_key(u_bin_id),
    }
