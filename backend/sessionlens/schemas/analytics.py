"""Schemas for the flow and heatmap aggregations."""
from pydantic import BaseModel
from typing import List, Optional


class FlowTransition(BaseModel):
    """Share of a page's outbound transitions going to one target."""
    target: str
    percent: int


class FlowNode(BaseModel):
    """Aggregated navigation behaviour for one normalized route."""
    page: str
    users: int
    next: List[FlowTransition]


class HeatmapBucket(BaseModel):
    """
    One heatmap cell in canvas coordinates.

    Click and hover cells are squares centred on (x, y). Scroll buckets are
    horizontal bands spanning the canvas width, starting at y.
    """
    x: float
    y: float
    width: float
    height: float
    count: float
    intensity: float
    band: Optional[int] = None


class ClickedTarget(BaseModel):
    """A click target label and how often it was clicked."""
    selector: str
    count: int


class HeatmapResponse(BaseModel):
    """Heatmap buckets plus the summary figures shown beside the canvas."""
    type: str
    canvasWidth: int
    canvasHeight: int
    buckets: List[HeatmapBucket]
    sessionsCount: int
    totalClicks: int
    totalHovers: int
    averageScrollDepth: float
    topTargets: List[ClickedTarget]
    availableUrls: List[str]
