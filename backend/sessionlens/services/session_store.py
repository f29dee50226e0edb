"""Session store: ingest batches into per-session documents and read them back."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sessionlens.models.session import SessionRecording
from sessionlens.schemas.ingest import IngestContext, IngestRequest
from sessionlens.schemas.session import SessionSummary
from sessionlens.services.merge import (
    build_metadata_defaults,
    merge_events,
    merge_metadata,
    normalize_events,
    summarize,
)
from sessionlens.utils.exceptions import ValidationError, handle_database_error, not_found_error
from sessionlens.utils.logger import logger
from sessionlens.utils.serialization import ensure_utc, parse_datetime, utc_now
from sessionlens.utils.session_locks import create_session_locks


class SessionStore:
    """Merge engine and read access for stored session recordings."""

    def __init__(self, locks=None):
        self.locks = locks if locks is not None else create_session_locks()

    async def ingest(
        self,
        db: Session,
        request: IngestRequest,
        context: Optional[IngestContext] = None,
    ) -> SessionRecording:
        """
        Merge one delivered batch into its session.

        Ingests for the same session id are serialized so that concurrent
        batches cannot overwrite each other's events.

        Args:
            db: Database session
            request: Parsed POST /sessions body
            context: Request headers used for metadata defaults

        Returns:
            The updated session record

        Raises:
            ValidationError: If the session id is missing or blank
            StorageError: If the record cannot be read or written
        """
        session_id = (request.sessionId or "").strip()
        if not session_id:
            raise ValidationError("sessionId is required")

        context = context or IngestContext()
        events = normalize_events(request.events)

        async with self.locks.hold(session_id):
            try:
                record = self._apply(db, session_id, request, context, events)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to ingest batch for session {session_id}: {e}", exc_info=True)
                raise handle_database_error(e, f"ingest for session {session_id}")

        logger.debug(
            f"Ingested {len(events)} events for session {session_id} "
            f"(total {len(record.events)}, completed={record.completed})"
        )
        return record

    def _apply(
        self,
        db: Session,
        session_id: str,
        request: IngestRequest,
        context: IngestContext,
        events: list,
    ) -> SessionRecording:
        now = utc_now()
        record = (
            db.query(SessionRecording)
            .filter(SessionRecording.id == session_id)
            .with_for_update()
            .first()
        )

        if record is None:
            metadata_started_at = parse_datetime((request.metadata or {}).get("startedAt"))
            record = SessionRecording(
                id=session_id,
                started_at=ensure_utc(request.startedAt) or metadata_started_at or now,
                session_metadata={},
                events=[],
                completed=False,
                updated_at=now,
            )
            db.add(record)
            logger.info(f"Created session {session_id}")

        if request.metadata is not None:
            existing = record.session_metadata or {}
            defaults = build_metadata_defaults(
                request.metadata,
                existing,
                origin=context.origin,
                accept_language=context.accept_language,
                user_agent_header=context.user_agent,
            )
            record.session_metadata = merge_metadata(request.metadata, existing, defaults)

        if events:
            # JSON columns only notice reassignment, not in-place mutation
            record.events = merge_events(record.events or [], events)

        if request.completed and not record.completed:
            logger.info(f"Session {session_id} completed")
        record.completed = bool(record.completed or request.completed)

        if request.endedAt is not None:
            record.ended_at = ensure_utc(request.endedAt)
        elif request.completed and record.ended_at is None:
            record.ended_at = now

        record.updated_at = now
        return record

    def get(self, db: Session, session_id: str) -> SessionRecording:
        """Fetch one stored session or raise NotFoundError."""
        try:
            record = db.query(SessionRecording).filter(SessionRecording.id == session_id).first()
        except SQLAlchemyError as e:
            raise handle_database_error(e, f"read of session {session_id}")
        if record is None:
            raise not_found_error("Session", session_id)
        return record

    def load_all(self, db: Session) -> List[SessionRecording]:
        """Every stored session, newest first."""
        try:
            return db.query(SessionRecording).order_by(SessionRecording.started_at.desc()).all()
        except SQLAlchemyError as e:
            raise handle_database_error(e, "session listing")

    def get_summary(self, db: Session, session_id: str) -> SessionSummary:
        return summarize(self.get(db, session_id))

    def list_summaries(self, db: Session) -> List[SessionSummary]:
        return [summarize(record) for record in self.load_all(db)]

    def finalize_stale(self, db: Session, older_than: datetime) -> int:
        """
        Mark sessions without updates since ``older_than`` as completed.

        The end time of a finalized session is its last update. Returns the
        number of sessions finalized.
        """
        try:
            stale = (
                db.query(SessionRecording)
                .filter(
                    SessionRecording.completed.is_(False),
                    SessionRecording.updated_at < older_than,
                )
                .with_for_update()
                .all()
            )
            for record in stale:
                record.completed = True
                if record.ended_at is None:
                    record.ended_at = record.updated_at
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise handle_database_error(e, "stale session finalization")
        return len(stale)


session_store = SessionStore()
