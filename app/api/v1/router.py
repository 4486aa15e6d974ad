# app/api/v1/router.py
from fastapi import APIRouter

from app.config.settings import settings
from app.modules.layout import layout_router
from app.modules.items.router import router as items_router
from app.modules.pods.router import router as pods_router
from app.modules.resolver.router import router as pod_items_router
from app.modules.sync.router import router as sync_router
from app.modules.ingestion.router import router as ingestion_router

# Crear router principal de la API v1
api_router = APIRouter()

# ==================== MÓDULOS ====================

api_router.include_router(layout_router)
api_router.include_router(items_router)
api_router.include_router(pods_router)
api_router.include_router(pod_items_router)
api_router.include_router(sync_router)
api_router.include_router(ingestion_router)

# ==================== ENDPOINTS RAÍZ ====================

@api_router.get("/")
async def api_root():
    """Root endpoint de la API"""
    return {
        "message": f"{settings.app_name} v1",
        "version": settings.version,
        "status": "active",
        "docs": "/docs",
        "available_endpoints": {
            "layouts": "/api/v1/layouts",
            "items": "/api/v1/items",
            "bin_items": "/api/v1/bin-items",
            "pods": "/api/v1/pods",
            "pod_items": "/api/v1/pods/{pod_barcode}/items",
            "sync": "/api/v1/sync",
            "ingestion": "/api/v1/ingestion"
        }
    }
