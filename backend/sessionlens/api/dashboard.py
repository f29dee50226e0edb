"""Pass-through dashboard data (metrics, alerts, users).

These lists are produced by other systems and written to a JSON document;
the collector only serves them to the dashboard.
"""
import json
from pathlib import Path
from typing import Any, Dict, List
from fastapi import APIRouter

from sessionlens.config import settings
from sessionlens.utils.exceptions import StorageError
from sessionlens.utils.logger import logger

router = APIRouter(tags=["dashboard"])


def load_dashboard_data(path: str) -> Dict[str, Any]:
    """
    Read the dashboard document.

    Returns:
        The parsed document, or an empty dict when the file does not exist
    """
    data_path = Path(path)
    if not data_path.exists():
        return {}
    try:
        data = json.loads(data_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to read dashboard data from {path}: {e}", exc_info=True)
        raise StorageError(f"Failed to read dashboard data: {e}")
    return data if isinstance(data, dict) else {}


def _section(name: str) -> List[Any]:
    section = load_dashboard_data(settings.dashboard_data_path).get(name)
    return section if isinstance(section, list) else []


@router.get("/metrics")
async def list_metrics() -> List[Any]:
    """Dashboard metric cards."""
    return _section("metrics")


@router.get("/alerts")
async def list_alerts() -> List[Any]:
    """Dashboard alerts."""
    return _section("alerts")


@router.get("/users")
async def list_users() -> List[Any]:
    """Dashboard users."""
    return _section("users")
