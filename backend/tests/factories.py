"""Helpers for building session records without going through ingest."""
from datetime import datetime, timezone

from sessionlens.models import SessionRecording

DEFAULT_START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_record(
    session_id="s1",
    events=None,
    metadata=None,
    completed=False,
    started_at=DEFAULT_START,
    ended_at=None,
    updated_at=DEFAULT_START,
) -> SessionRecording:
    """Build a transient SessionRecording."""
    return SessionRecording(
        id=session_id,
        started_at=started_at,
        ended_at=ended_at,
        session_metadata=metadata if metadata is not None else {},
        events=events if events is not None else [],
        completed=completed,
        updated_at=updated_at,
    )
