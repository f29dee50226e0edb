"""Session collector and read endpoints."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from sessionlens.database import get_db
from sessionlens.schemas.ingest import IngestContext, IngestRequest, IngestResponse
from sessionlens.schemas.session import SessionSummary
from sessionlens.services.session_store import SessionStore, session_store
from sessionlens.utils.url import decode_session_id

router = APIRouter(tags=["sessions"])


def get_session_store() -> SessionStore:
    """Dependency for the session store."""
    return session_store


@router.get("/sessions", response_model=List[SessionSummary])
async def list_sessions(
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> List[SessionSummary]:
    """
    List every stored session.

    Summaries (duration, click count, scroll depth, event count) are
    recomputed from the stored events on every call.
    """
    return store.list_summaries(db)


@router.get("/sessions/{session_id}", response_model=SessionSummary)
async def get_session(
    session_id: str,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> SessionSummary:
    """Get one session summary; 404 when the id is unknown."""
    return store.get_summary(db, decode_session_id(session_id))


@router.post("/sessions", response_model=IngestResponse)
async def ingest_session_batch(
    request: IngestRequest,
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
    origin: Optional[str] = Header(None),
    accept_language: Optional[str] = Header(None, alias="Accept-Language"),
    user_agent: Optional[str] = Header(None, alias="User-Agent"),
) -> IngestResponse:
    """
    Merge a batch delivered by the recorder SDK.

    Creates the session on the first batch for an unseen id. Metadata is
    merged field by field, events are appended and re-sorted by timestamp,
    and ``completed`` never reverts once set.

    Args:
        request: Batch with session ID, events, metadata and completion flag
        db: Database session
        store: Session store
        origin: Default for metadata.url
        accept_language: Default for metadata.language
        user_agent: Fallback for device and browser detection

    Returns:
        ``{"status": "ok"}``
    """
    context = IngestContext(origin=origin, accept_language=accept_language, user_agent=user_agent)
    await store.ingest(db, request, context)
    return IngestResponse()
