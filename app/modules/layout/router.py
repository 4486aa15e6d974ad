# app/modules/layout/router.py
from fastapi import APIRouter
from typing import Dict

from . import service
from .schemas import FaceLayoutSummary, PodGrid

router = APIRouter(prefix="/layouts", tags=["Layouts"])

@router.get("", response_model=Dict[str, Dict[str, FaceLayoutSummary]])
async def get_layout_summary():
    """Resumen de todas las grillas por tipo de pod y cara"""
    return service.get_layout_summary()

@router.get("/{pod_type}/{pod_face}", response_model=PodGrid)
async def get_pod_grid(pod_type: str, pod_face: str):
    """
    Grilla completa de bins para un tipo de pod y cara

    Devuelve 404 si la combinación no tiene layout definido.
    """
    return service.generate_pod_grid(pod_type, pod_face)
