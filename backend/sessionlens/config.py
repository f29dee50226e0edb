"""Application configuration using Pydantic settings."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "sqlite:///./sessionlens.db"
    auto_create_tables: bool = True

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    environment: str = "development"

    # Logging: empty means DEBUG in development, INFO otherwise
    log_level: str = ""
    sdk_log_level: str = "WARNING"

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # Redis (for ARQ worker and distributed session locks)
    redis_url: str = "redis://127.0.0.1:6379"

    # Per-session ingest serialization: "local" or "redis"
    session_lock_backend: str = "local"
    session_lock_timeout_seconds: float = 10.0

    # Pass-through dashboard data (metrics, alerts, users)
    dashboard_data_path: str = "data.json"

    # Sessions without updates for this long are finalized by the worker
    stale_session_minutes: int = 30

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
