"""Session recording model."""
from sqlalchemy import Column, String, Boolean, DateTime, JSON, func
from sessionlens.database import Base


class SessionRecording(Base):
    """One monitored browsing session, stored as a single document row."""
    __tablename__ = "session_recordings"

    id = Column(String, primary_key=True)  # From SDK
    started_at = Column(DateTime(timezone=True), nullable=False)
    ended_at = Column(DateTime(timezone=True), nullable=True)
    # "metadata" is reserved on declarative classes
    session_metadata = Column("metadata", JSON, nullable=False, default=dict)
    events = Column(JSON, nullable=False, default=list)  # Sorted by timestamp
    completed = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)
