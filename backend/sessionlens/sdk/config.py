"""Recorder SDK configuration using Pydantic settings."""
from pydantic_settings import BaseSettings
from typing import Optional


class RecorderSettings(BaseSettings):
    """Recorder settings loaded from SESSIONLENS_* environment variables."""

    # Collector base URL; batches go to <collector_url>/sessions
    collector_url: str = "http://localhost:4000"

    flush_interval_ms: int = 3000
    request_timeout_seconds: float = 10.0

    # Throttle windows for high-frequency signals
    pointer_move_throttle_ms: int = 50
    scroll_throttle_ms: int = 100

    # None keeps every event between flushes
    max_buffer_size: Optional[int] = None

    @property
    def endpoint_url(self) -> str:
        """Collector ingest endpoint."""
        return f"{self.collector_url.rstrip('/')}/sessions"

    class Config:
        env_prefix = "SESSIONLENS_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
