"""Aggregated analytics endpoints: user flow and heatmaps."""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from sessionlens.api.sessions import get_session_store
from sessionlens.constants import HEATMAP_TYPES
from sessionlens.database import get_db
from sessionlens.schemas.analytics import FlowNode, HeatmapResponse
from sessionlens.services.flow import build_user_flow
from sessionlens.services.heatmap import build_heatmap
from sessionlens.services.session_store import SessionStore
from sessionlens.utils.exceptions import ValidationError

router = APIRouter(tags=["analytics"])


@router.get("/userflow", response_model=List[FlowNode])
async def get_user_flow(
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> List[FlowNode]:
    """Page transition graph across all stored sessions."""
    return build_user_flow(store.load_all(db))


@router.get("/heatmap", response_model=HeatmapResponse)
async def get_heatmap(
    type: str = Query("click", description="click, scroll or hover"),
    url: Optional[str] = Query(None, description="Only sessions recorded on this URL"),
    session_id: Optional[str] = Query(None, alias="sessionId", description="Only this session"),
    db: Session = Depends(get_db),
    store: SessionStore = Depends(get_session_store),
) -> HeatmapResponse:
    """Heatmap buckets for one signal type, computed fresh over the filtered sessions."""
    if type not in HEATMAP_TYPES:
        raise ValidationError(f"Unsupported heatmap type: {type}")
    return build_heatmap(store.load_all(db), type, url=url or None, session_id=session_id or None)
