"""Serialization utilities for converting stored values to API responses."""
import math
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

_datetime_adapter = TypeAdapter(datetime)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes.

    SQLite drops tzinfo on the way back out, so every datetime read from the
    store goes through here before arithmetic or serialization.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO string, epoch number or datetime into an aware UTC datetime.

    Returns:
        The parsed datetime, or None when the value is missing or unparsable
    """
    if value is None or value == "":
        return None
    try:
        return ensure_utc(_datetime_adapter.validate_python(value))
    except PydanticValidationError:
        return None


def serialize_datetime(value: Optional[datetime]) -> Optional[str]:
    """
    Serialize datetime to ISO format string.

    Args:
        value: Datetime value or None

    Returns:
        ISO format string or None
    """
    value = ensure_utc(value)
    return value.isoformat().replace("+00:00", "Z") if value else None


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)
