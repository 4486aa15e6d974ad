from pydantic import Field
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # App Info
    app_name: str = "PodTracker API"
    version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./podtracker.db"

    # CORS
    allowed_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Orígenes permitidos para el cliente web"
    )

    # Response cache
    cache_ttl_seconds: int = Field(default=60, description="TTL de respuestas cacheadas")
    cache_max_entries: int = Field(default=100, description="Entradas máximas en caché")

    # Sincronización y consultas
    sync_max_retries: int = Field(default=3, description="Reintentos ante conflicto de versión del pod")
    slow_query_ms: int = Field(default=200, description="Umbral para loguear consultas lentas")
    slow_request_ms: int = Field(default=500, description="Umbral para loguear requests lentos")

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
