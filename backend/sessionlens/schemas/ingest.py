"""Schemas for event ingestion."""
from dataclasses import dataclass
from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional


class IngestRequest(BaseModel):
    """Request schema for POST /sessions."""
    # Optional here so a missing id is reported as a ValidationError, not a schema error
    sessionId: Optional[str] = Field(None, description="Session ID from SDK")
    events: Optional[List[Any]] = Field(None, description="Batch of recorded events")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Session metadata, merged field by field")
    completed: Optional[bool] = Field(False, description="True on the final flush of a session")
    startedAt: Optional[datetime] = Field(None, description="Absolute session start")
    endedAt: Optional[datetime] = Field(None, description="Absolute session end")


class IngestResponse(BaseModel):
    """Response schema for POST /sessions."""
    status: str = "ok"


@dataclass
class IngestContext:
    """Request headers used to fill metadata defaults."""
    origin: Optional[str] = None
    accept_language: Optional[str] = None
    user_agent: Optional[str] = None
