"""Schemas for session read endpoints."""
from pydantic import BaseModel
from typing import Optional, Dict, Any, List


class SessionStats(BaseModel):
    """Statistics derived from a session's events on every read."""
    clicks: int = 0
    scrollDepth: float = 0
    totalEvents: int = 0


class SessionSummary(BaseModel):
    """A stored session as returned by GET /sessions and GET /sessions/{id}."""
    id: str
    startedAt: Optional[str] = None
    endedAt: Optional[str] = None
    updatedAt: Optional[str] = None
    duration: int = 0
    completed: bool = False
    metadata: Dict[str, Any] = {}
    events: List[Dict[str, Any]] = []
    stats: SessionStats
