"""Logging configuration for the application."""
import logging
import sys
from typing import Optional

from sessionlens.config import settings


def resolve_level(level: Optional[str], environment: str) -> int:
    """
    Map a configured level name to a logging level.

    An empty or unknown name falls back to DEBUG in development and INFO
    everywhere else.
    """
    if level:
        resolved = logging.getLevelName(level.strip().upper())
        if isinstance(resolved, int):
            return resolved
    return logging.DEBUG if environment == "development" else logging.INFO


# Configure root logger
logger = logging.getLogger("sessionlens")
logger.setLevel(resolve_level(settings.log_level, settings.environment))

# The recorder runs inside host processes; keep it quieter than the API
sdk_logger = logger.getChild("sdk")
sdk_logger.setLevel(resolve_level(settings.sdk_log_level, settings.environment))

# Create console handler
handler = logging.StreamHandler(sys.stdout)
handler.setLevel(logging.DEBUG)

# Create formatter
formatter = logging.Formatter(
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
handler.setFormatter(formatter)

# Add handler to logger if not already added
if not logger.handlers:
    logger.addHandler(handler)

# Prevent duplicate logs
logger.propagate = False

__all__ = ["logger", "sdk_logger", "resolve_level"]
