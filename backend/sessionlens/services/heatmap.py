"""Heatmap aggregation over stored sessions.

Pointer coordinates are first divided by the session's own viewport so that
sessions recorded at different screen sizes land on the same canvas.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sessionlens.constants import EventType, HoverPhase
from sessionlens.schemas.analytics import ClickedTarget, HeatmapBucket, HeatmapResponse
from sessionlens.services.merge import compute_stats, is_number
from sessionlens.utils.serialization import round_half_up

CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 800
FALLBACK_SCREEN_WIDTH = 1280
FALLBACK_SCREEN_HEIGHT = 720

CLICK_BUCKET_SIZE = 60
HOVER_BUCKET_SIZE = 70
SCROLL_BAND_HEIGHT = 50
MIN_SCROLL_BANDS = 10
HOVER_LEAVE_WEIGHT = 0.6
TOP_TARGETS_LIMIT = 5


@dataclass
class PointSample:
    """A pointer sample normalized to [0, 1] in both axes."""
    x: float
    y: float
    weight: float = 1.0


@dataclass
class HeatmapInput:
    """Samples and totals collected from the filtered sessions."""
    clicks: List[PointSample] = field(default_factory=list)
    hovers: List[PointSample] = field(default_factory=list)
    scroll_values: List[float] = field(default_factory=list)
    target_counts: Dict[str, int] = field(default_factory=dict)
    max_scroll: float = 0
    scroll_depth_total: float = 0


def _clamp(value: float, low: float, high: float) -> float:
    if math.isnan(value):
        return low
    return min(max(value, low), high)


def _viewport(metadata: Dict[str, Any]) -> Tuple[float, float]:
    screen = metadata.get("screen") or {}
    width = screen.get("width") if isinstance(screen, dict) else None
    height = screen.get("height") if isinstance(screen, dict) else None
    if not is_number(width) or width <= 0:
        width = FALLBACK_SCREEN_WIDTH
    if not is_number(height) or height <= 0:
        height = FALLBACK_SCREEN_HEIGHT
    return width, height


def _normalize_point(event: Dict[str, Any], width: float, height: float, weight: float) -> Optional[PointSample]:
    if not is_number(event.get("x")) or not is_number(event.get("y")):
        return None
    return PointSample(x=event["x"] / width, y=event["y"] / height, weight=weight)


def filter_sessions(records: Iterable[Any], url: Optional[str] = None, session_id: Optional[str] = None) -> List[Any]:
    """Sessions matching the URL and id filters that have at least one event."""
    selected = []
    for record in records:
        if url and (record.session_metadata or {}).get("url") != url:
            continue
        if session_id and record.id != session_id:
            continue
        if not record.events:
            continue
        selected.append(record)
    return selected


def collect_samples(records: Iterable[Any]) -> HeatmapInput:
    """Normalize every click, hover and scroll event of the given sessions."""
    collected = HeatmapInput()
    for record in records:
        metadata = record.session_metadata or {}
        width, height = _viewport(metadata)
        stats = compute_stats(record.events or [])
        collected.max_scroll = max(collected.max_scroll, stats.scrollDepth)
        collected.scroll_depth_total += stats.scrollDepth

        for event in record.events or []:
            event_type = event.get("type")
            if event_type == EventType.CLICK:
                point = _normalize_point(event, width, height, 1.0)
                if point:
                    collected.clicks.append(point)
                target = event.get("target")
                if isinstance(target, str) and target.strip():
                    label = target.strip()
                    collected.target_counts[label] = collected.target_counts.get(label, 0) + 1
            elif event_type == EventType.HOVER:
                weight = HOVER_LEAVE_WEIGHT if event.get("phase") == HoverPhase.LEAVE else 1.0
                point = _normalize_point(event, width, height, weight)
                if point:
                    collected.hovers.append(point)
            elif event_type == EventType.SCROLL and is_number(event.get("scrollY")):
                value = max(0, event["scrollY"])
                collected.scroll_values.append(value)
                collected.max_scroll = max(collected.max_scroll, value)
    return collected


def bucket_points(points: Iterable[PointSample], bucket_size: int) -> List[HeatmapBucket]:
    """Accumulate weighted points into square canvas cells."""
    counts: Dict[Tuple[int, int], float] = {}
    for point in points:
        px = _clamp(point.x, 0, 1) * CANVAS_WIDTH
        py = _clamp(point.y, 0, 1) * CANVAS_HEIGHT
        key = (round_half_up(px / bucket_size), round_half_up(py / bucket_size))
        counts[key] = counts.get(key, 0) + point.weight

    max_count = max(counts.values(), default=0)
    if max_count <= 0:
        return []
    return [
        HeatmapBucket(
            x=cell_x * bucket_size,
            y=cell_y * bucket_size,
            width=bucket_size,
            height=bucket_size,
            count=count,
            intensity=_clamp(count / max_count, 0, 1),
        )
        for (cell_x, cell_y), count in counts.items()
        if count > 0
    ]


def bucket_scroll_depths(depths: Iterable[float]) -> List[HeatmapBucket]:
    """Accumulate scroll depths (already in [0, 1]) into horizontal bands."""
    band_count = max(MIN_SCROLL_BANDS, round_half_up(CANVAS_HEIGHT / SCROLL_BAND_HEIGHT))
    counts = [0.0] * band_count
    for depth in depths:
        index = min(band_count - 1, int(math.floor(_clamp(depth, 0, 1) * band_count)))
        counts[index] += 1

    max_count = max(counts)
    if max_count <= 0:
        return []
    band_height = CANVAS_HEIGHT / band_count
    return [
        HeatmapBucket(
            x=0,
            y=index * band_height,
            width=CANVAS_WIDTH,
            height=band_height,
            count=count,
            intensity=_clamp(count / max_count, 0, 1),
            band=index,
        )
        for index, count in enumerate(counts)
        if count > 0
    ]


def top_targets(target_counts: Dict[str, int], limit: int = TOP_TARGETS_LIMIT) -> List[ClickedTarget]:
    """Most clicked target labels; ties keep first-seen order."""
    ranked = sorted(target_counts.items(), key=lambda item: item[1], reverse=True)
    return [ClickedTarget(selector=selector, count=count) for selector, count in ranked[:limit]]


def build_heatmap(
    records: Iterable[Any],
    heatmap_type: str,
    url: Optional[str] = None,
    session_id: Optional[str] = None,
) -> HeatmapResponse:
    """
    Compute heatmap buckets for one signal type over the filtered sessions.

    Args:
        records: Stored sessions
        heatmap_type: "click", "scroll" or "hover"
        url: Only sessions whose metadata URL equals this value
        session_id: Only the session with this id

    Returns:
        Buckets with intensity relative to the busiest bucket, plus totals
    """
    records = list(records)
    available_urls = sorted({
        (record.session_metadata or {}).get("url")
        for record in records
        if isinstance((record.session_metadata or {}).get("url"), str)
    })
    selected = filter_sessions(records, url=url, session_id=session_id)
    samples = collect_samples(selected)

    if heatmap_type == EventType.CLICK:
        buckets = bucket_points(samples.clicks, CLICK_BUCKET_SIZE)
    elif heatmap_type == EventType.HOVER:
        buckets = bucket_points(samples.hovers, HOVER_BUCKET_SIZE)
    else:
        max_scroll = samples.max_scroll or FALLBACK_SCREEN_HEIGHT * 3
        buckets = bucket_scroll_depths(min(value / max_scroll, 1) for value in samples.scroll_values)

    average_depth = samples.scroll_depth_total / len(selected) if selected else 0
    return HeatmapResponse(
        type=heatmap_type,
        canvasWidth=CANVAS_WIDTH,
        canvasHeight=CANVAS_HEIGHT,
        buckets=buckets,
        sessionsCount=len(selected),
        totalClicks=len(samples.clicks),
        totalHovers=len(samples.hovers),
        averageScrollDepth=average_depth,
        topTargets=top_targets(samples.target_counts),
        availableUrls=available_urls,
    )
