"""Models package."""
from sessionlens.models.session import SessionRecording

__all__ = ["SessionRecording"]
