"""Merge rules for incoming session batches.

Everything here is a pure function over plain dicts and lists so it can be
exercised without a database or an HTTP request.
"""
import math
import numbers
from datetime import timedelta
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from sessionlens.constants import (
    DEFAULT_SCREEN,
    NUMERIC_EVENT_FIELDS,
    UNKNOWN_BROWSER,
    UNKNOWN_LOCALE,
    UNKNOWN_URL,
    DeviceClass,
    EventType,
)
from sessionlens.schemas.session import SessionStats, SessionSummary
from sessionlens.utils.serialization import ensure_utc, round_half_up, serialize_datetime

Rule = Tuple[Callable[[str], bool], str]

# Order matters: "mobile" is checked before "tablet", Firefox and Edge before Chrome
DEVICE_RULES: List[Rule] = [
    (lambda ua: "mobile" in ua, DeviceClass.MOBILE),
    (lambda ua: "tablet" in ua or "ipad" in ua, DeviceClass.TABLET),
]

BROWSER_RULES: List[Rule] = [
    (lambda ua: "firefox" in ua, "Firefox"),
    (lambda ua: "edg" in ua, "Edge"),
    (lambda ua: "chrome" in ua, "Chrome"),
    (lambda ua: "safari" in ua, "Safari"),
]


def _match_rules(rules: List[Rule], user_agent: Optional[str], fallback: str) -> str:
    ua = (user_agent or "").lower()
    for predicate, label in rules:
        if predicate(ua):
            return label
    return fallback


def detect_device(user_agent: Optional[str]) -> str:
    """Derive the device class from a user-agent string."""
    return _match_rules(DEVICE_RULES, user_agent, DeviceClass.DESKTOP)


def detect_browser(user_agent: Optional[str]) -> str:
    """Derive the browser family from a user-agent string."""
    return _match_rules(BROWSER_RULES, user_agent, UNKNOWN_BROWSER)


def is_number(value: Any) -> bool:
    """True for finite real numbers that fit in a float; bools are not numbers."""
    if not isinstance(value, numbers.Real) or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        return False


def _coerce_timestamp(value: Any) -> float:
    if is_number(value):
        return value
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return 0
        return parsed if math.isfinite(parsed) else 0
    return 0


def normalize_events(raw_events: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    """
    Clean a raw batch before it is merged.

    Entries that are not objects or carry no ``type`` are dropped. The
    timestamp is coerced to a number (0 when missing or not numeric) and the
    positional fields are kept only when the client already sent numbers.
    """
    normalized = []
    for raw in raw_events or []:
        if not isinstance(raw, Mapping) or not raw.get("type"):
            continue
        event = {
            key: value
            for key, value in raw.items()
            if key not in NUMERIC_EVENT_FIELDS and key != "timestamp"
        }
        event["timestamp"] = _coerce_timestamp(raw.get("timestamp"))
        for field in NUMERIC_EVENT_FIELDS:
            if is_number(raw.get(field)):
                event[field] = raw[field]
        normalized.append(event)
    return normalized


def sort_events(events: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Order events by timestamp; equal timestamps keep their arrival order."""
    return sorted(events, key=lambda event: _coerce_timestamp(event.get("timestamp")))


def merge_events(existing: List[Dict[str, Any]], incoming: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Append a normalized batch to the stored events and restore ordering.

    The stored list is already sorted, so the stable sort only does real work
    on the appended tail.
    """
    return sort_events(list(existing) + list(incoming))


def build_metadata_defaults(
    incoming: Mapping[str, Any],
    existing: Mapping[str, Any],
    origin: Optional[str] = None,
    accept_language: Optional[str] = None,
    user_agent_header: Optional[str] = None,
) -> Dict[str, Any]:
    """Compute the fallback value for every metadata field that has one."""
    user_agent = incoming.get("userAgent") or existing.get("userAgent") or user_agent_header
    return {
        "url": origin or UNKNOWN_URL,
        "userId": None,
        "device": detect_device(user_agent),
        "browser": detect_browser(user_agent),
        "language": accept_language or UNKNOWN_LOCALE,
        "screen": dict(DEFAULT_SCREEN),
    }


def merge_metadata(
    incoming: Mapping[str, Any],
    existing: Mapping[str, Any],
    defaults: Mapping[str, Any],
) -> Dict[str, Any]:
    """
    Merge request metadata into the stored metadata.

    Per field: the request value wins, then the stored value, then the
    default. ``None`` in the request counts as absent.
    """
    merged = dict(existing)
    for key, value in incoming.items():
        if value is not None:
            merged[key] = value
    for key, value in defaults.items():
        if merged.get(key) is None:
            merged[key] = value
    return merged


def compute_stats(events: List[Dict[str, Any]]) -> SessionStats:
    """Click count, deepest scroll and event count for a list of events."""
    clicks = 0
    scroll_depth = 0
    for event in events:
        if event.get("type") == EventType.CLICK:
            clicks += 1
        elif event.get("type") == EventType.SCROLL and is_number(event.get("scrollY")):
            scroll_depth = max(scroll_depth, event["scrollY"])
    return SessionStats(clicks=clicks, scrollDepth=scroll_depth, totalEvents=len(events))


def summarize(record) -> SessionSummary:
    """
    Build the read view of a stored session.

    ``record`` is a ``SessionRecording`` (or anything with the same
    attributes). The stored events are not mutated.
    """
    events = sort_events(record.events or [])
    last_event_timestamp = _coerce_timestamp(events[-1].get("timestamp")) if events else 0
    started_at = ensure_utc(record.started_at)

    end_timestamp = ensure_utc(record.ended_at)
    if end_timestamp is None and record.completed and started_at is not None:
        end_timestamp = started_at + timedelta(milliseconds=last_event_timestamp)

    if end_timestamp is not None and started_at is not None:
        elapsed_ms = (end_timestamp - started_at).total_seconds() * 1000
    else:
        elapsed_ms = last_event_timestamp
    duration = max(0, round_half_up(elapsed_ms / 1000))

    return SessionSummary(
        id=record.id,
        startedAt=serialize_datetime(started_at),
        endedAt=serialize_datetime(end_timestamp),
        updatedAt=serialize_datetime(record.updated_at),
        duration=duration,
        completed=bool(record.completed),
        metadata=dict(record.session_metadata or {}),
        events=events,
        stats=compute_stats(events),
    )
