"""
Módulo Layout - Generación determinística de identificadores de bins

- service.py: tabla de grillas y generador puro
- schemas.py: descriptores de bins y grillas
- router.py: endpoints de consulta de layouts
"""

from .router import router as layout_router
from .service import generate_layout, get_pod_layout, parse_bin_id, sort_bins

__all__ = [
    "layout_router",
    "generate_layout",
    "get_pod_layout",
    "parse_bin_id",
    "sort_bins"
]
