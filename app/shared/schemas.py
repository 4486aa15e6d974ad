from pydantic import BaseModel

class Pagination(BaseModel):
    """Metadatos de paginación de listados"""
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool
