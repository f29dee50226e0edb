"""ARQ worker configuration."""
from arq.connections import RedisSettings
from arq.cron import cron
from sessionlens.config import settings
from sessionlens.utils.logger import logger
from urllib.parse import urlparse

from sessionlens.workers.tasks import finalize_stale_sessions


def parse_redis_url(url: str) -> RedisSettings:
    """Parse Redis URL into RedisSettings."""
    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        password=parsed.password,
        database=int(parsed.path[1:]) if parsed.path and len(parsed.path) > 1 else 0,
    )


redis_settings = parse_redis_url(settings.redis_url)


async def startup(ctx):
    """Worker startup hook."""
    logger.info("ARQ worker starting up...")
    ctx["startup_complete"] = True


async def shutdown(ctx):
    """Worker shutdown hook."""
    logger.info("ARQ worker shutting down...")


class WorkerSettings:
    """ARQ worker settings."""

    functions = [
        finalize_stale_sessions,
    ]

    cron_jobs = [
        # Run finalization every 5 minutes
        cron(
            finalize_stale_sessions,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
        ),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = redis_settings

    max_jobs = 5
    job_timeout = 300
    keep_result = 3600
