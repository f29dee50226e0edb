"""Pydantic schemas for request/response validation."""
from sessionlens.schemas.ingest import IngestRequest, IngestResponse, IngestContext
from sessionlens.schemas.session import SessionStats, SessionSummary
from sessionlens.schemas.analytics import FlowNode, FlowTransition, HeatmapBucket, HeatmapResponse, ClickedTarget

__all__ = [
    "IngestRequest",
    "IngestResponse",
    "IngestContext",
    "SessionStats",
    "SessionSummary",
    "FlowNode",
    "FlowTransition",
    "HeatmapBucket",
    "HeatmapResponse",
    "ClickedTarget",
]
