from fastapi import Request

from app.core.cache import ResponseCache

def get_response_cache(request: Request) -> ResponseCache:
    """Caché de respuestas del proceso, creada en el lifespan de la app"""
    return request.app.state.response_cache
