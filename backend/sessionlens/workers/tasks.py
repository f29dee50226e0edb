"""ARQ background tasks for session housekeeping."""
from datetime import timedelta
from typing import Dict, Any

from sessionlens.config import settings
from sessionlens.database import SessionLocal
from sessionlens.services.session_store import session_store
from sessionlens.utils.exceptions import StorageError
from sessionlens.utils.logger import logger
from sessionlens.utils.serialization import utc_now


async def finalize_stale_sessions(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """
    Complete sessions whose recorder went away without a final flush.

    A session is stale when it is not completed and has not been updated for
    ``stale_session_minutes``. Its end time becomes its last update.

    Returns:
        Dict with count of sessions finalized
    """
    db = SessionLocal()

    try:
        threshold = utc_now() - timedelta(minutes=settings.stale_session_minutes)
        finalized = session_store.finalize_stale(db, threshold)
        if finalized:
            logger.info(f"Finalized {finalized} stale sessions")
        return {"success": True, "sessions_finalized": finalized}

    except StorageError as e:
        logger.error(f"Stale session finalization failed: {e}", exc_info=True)
        return {"success": False, "error": str(e)}

    finally:
        db.close()
