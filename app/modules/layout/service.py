# app/modules/layout/service.py
"""
Generador de layouts de bins.

Cada combinación (tipo de pod, cara) tiene una grilla fija de filas × columnas.
Los identificadores se forman como ``{cara}_bin_{columna}{fila}`` (ej. ``a_bin_1a``)
y deben coincidir exactamente entre la estructura persistida y cualquier
regeneración ad hoc, por eso todas las funciones son puras.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional

from app.core.exceptions import InvalidLayoutError
from .schemas import BinSpec, FaceLayoutSummary, LayoutConfig, PodGrid

logger = logging.getLogger(__name__)

BIN_SEPARATOR = "_bin_"

POD_TYPE_CONFIGS: Dict[str, Dict[str, LayoutConfig]] = {
    "H8": {
        "A": LayoutConfig(rows=10, columns=4),   # a-j × 1-4 = 40 bins
        "C": LayoutConfig(rows=11, columns=4),   # a-k × 1-4 = 44 bins
    },
    "H10": {
        "A": LayoutConfig(rows=12, columns=4),   # a-l × 1-4 = 48 bins
        "C": LayoutConfig(rows=11, columns=4),   # a-k × 1-4 = 44 bins
    },
    "H11": {
        "A": LayoutConfig(rows=13, columns=4),   # a-m × 1-4 = 52 bins
        "C": LayoutConfig(rows=12, columns=4),   # a-l × 1-4 = 48 bins
    },
    "H12": {
        "A": LayoutConfig(rows=8, columns=3),    # a-h × 1-3 = 24 bins
        "C": LayoutConfig(rows=8, columns=3),    # a-h × 1-3 = 24 bins
    },
}

BIN_ID_PATTERN = re.compile(r"^([a-d])_bin_(\d)([a-m])$")

def _normalize(value) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip().upper()

def get_pod_layout(pod_type: str, pod_face: str) -> Optional[LayoutConfig]:
    """Configuración de la grilla, o None si la combinación no existe"""
    normalized_type = _normalize(pod_type)
    normalized_face = _normalize(pod_face)
    if normalized_type is None or normalized_face is None:
        return None

    return POD_TYPE_CONFIGS.get(normalized_type, {}).get(normalized_face)

def generate_rows(row_count: int) -> List[str]:
    """Letras de fila en minúscula, invertidas para que la 'a' quede abajo"""
    return [chr(ord("a") + i) for i in range(row_count)][::-1]

def generate_columns(column_count: int) -> List[int]:
    return list(range(1, column_count + 1))

def generate_bin_id(face_letter: str, column: int, row: str) -> str:
    return f"{face_letter.lower()}{BIN_SEPARATOR}{column}{row.lower()}"

def generate_bin_display_name(column: int, row: str) -> str:
    return f"{row.upper()}{column}"

def generate_layout(pod_type: str, pod_face: str) -> List[BinSpec]:
    """
    Generar el conjunto ordenado de bins para (tipo, cara).

    Las filas salen en orden visual (la última letra primero). Quien necesite
    un orden estructural debe usar ``sort_bins``.
    """
    layout = get_pod_layout(pod_type, pod_face)
    if layout is None:
        logger.warning(f"⚠️ Layout desconocido para tipo={pod_type!r} cara={pod_face!r}")
        raise InvalidLayoutError(
            f"No layout for pod type {pod_type!r} face {pod_face!r}",
            pod_type=pod_type,
            pod_face=pod_face,
            available=sorted(f"{t}-{f}" for t, faces in POD_TYPE_CONFIGS.items() for f in faces),
        )

    face_letter = pod_face.strip().lower()
    return [
        BinSpec(
            bin_id=generate_bin_id(face_letter, column, row),
            display_name=generate_bin_display_name(column, row),
            row=row,
            column=column,
            face_letter=face_letter,
        )
        for row in generate_rows(layout.rows)
        for column in generate_columns(layout.columns)
    ]

def generate_pod_grid(pod_type: str, pod_face: str) -> PodGrid:
    bins = generate_layout(pod_type, pod_face)
    layout = get_pod_layout(pod_type, pod_face)
    return PodGrid(
        pod_type=pod_type.strip().upper(),
        pod_face=pod_face.strip().upper(),
        rows=generate_rows(layout.rows),
        columns=generate_columns(layout.columns),
        bins=bins,
        total_bins=len(bins),
    )

def get_all_bin_ids(pod_type: str, pod_face: str) -> List[str]:
    return [spec.bin_id for spec in generate_layout(pod_type, pod_face)]

def is_valid_bin_id(bin_id: str, pod_type: str, pod_face: str) -> bool:
    if get_pod_layout(pod_type, pod_face) is None:
        return False
    return bin_id in get_all_bin_ids(pod_type, pod_face)

def parse_bin_id(bin_id: str) -> Optional[BinSpec]:
    """Descomponer un binId canónico; None si el formato no es válido"""
    match = BIN_ID_PATTERN.match(bin_id or "")
    if not match:
        return None

    face_letter, column, row = match.groups()
    return BinSpec(
        bin_id=bin_id,
        display_name=generate_bin_display_name(int(column), row),
        row=row,
        column=int(column),
        face_letter=face_letter,
    )

def sort_bins(bins: Iterable[BinSpec]) -> List[BinSpec]:
    """Orden estructural explícito: fila ascendente, luego columna"""
    return sorted(bins, key=lambda spec: (spec.row, spec.column))

def get_layout_summary() -> Dict[str, Dict[str, FaceLayoutSummary]]:
    return {
        pod_type: {
            face: FaceLayoutSummary(
                rows=config.rows,
                columns=config.columns,
                total_bins=config.total_bins,
                grid_size=f"{config.rows} rows × {config.columns} columns",
            )
            for face, config in faces.items()
        }
        for pod_type, faces in POD_TYPE_CONFIGS.items()
    }
