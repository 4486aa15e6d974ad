import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# ==================== TAXONOMÍA DE ERRORES ====================

class PodTrackerError(Exception):
    """Error base del dominio"""
    status_code = 500
    error_code = "internal_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }

class NotFoundError(PodTrackerError):
    """Barcode, SKU o cara inexistente"""
    status_code = 404
    error_code = "not_found"

class InvalidLayoutError(NotFoundError):
    """Combinación tipo de pod / cara sin layout definido"""
    error_code = "invalid_layout"

class DuplicateKeyError(PodTrackerError):
    """Violación de unicidad (sku, uBinId o barcode)"""
    status_code = 409
    error_code = "duplicate_key"

class ValidationError(PodTrackerError):
    """Identificadores mal formados o conteos fuera de rango"""
    status_code = 422
    error_code = "validation_error"

class ConflictError(PodTrackerError):
    """Conflicto de versión del pod que persiste tras los reintentos"""
    status_code = 409
    error_code = "version_conflict"

class PartialFailure(PodTrackerError):
    """Operación por lotes con fallos por unidad"""
    status_code = 207
    error_code = "partial_failure"

    def __init__(self, message: str, errors: List[str], result: Optional[Any] = None):
        super().__init__(message, errors=errors)
        self.errors = errors
        self.result = result

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.result is not None and hasattr(self.result, "model_dump"):
            payload["result"] = self.result.model_dump(mode="json")
        return payload

def is_unique_violation(error: Exception) -> bool:
    """IntegrityError de índice único (sqlite "UNIQUE", postgres 23505)"""
    orig = getattr(error, "orig", error)
    if getattr(orig, "pgcode", None) == "23505":
        return True
    text = str(orig).lower()
    return "unique" in text or "duplicate" in text

def from_integrity_error(error: Exception, message: str, **context: Any) -> PodTrackerError:
    """Solo las violaciones de unicidad son 409; el resto (NOT NULL, CHECK) es 422"""
    detail = str(getattr(error, "orig", error))
    if is_unique_violation(error):
        return DuplicateKeyError(message, detail=detail, **context)
    return ValidationError("Invalid field values", detail=detail, **context)

# ==================== HANDLERS HTTP ====================

def register_exception_handlers(app: FastAPI) -> None:
    """Traducir errores del dominio a respuestas JSON"""

    @app.exception_handler(PodTrackerError)
    async def handle_pod_tracker_error(request: Request, exc: PodTrackerError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} - {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} - {exc.error_code}: {exc.message}")

        payload = exc.to_dict()
        payload["context"] = {
            "path": request.url.path,
            "method": request.method,
            **payload.get("context", {}),
        }
        return JSONResponse(status_code=exc.status_code, content=payload)
