"""Per-session locks that serialize the ingest read-modify-write.

Two backends are available:

- ``LocalSessionLocks`` keeps one ``asyncio.Lock`` per session id inside the
  process. This is enough when a single API worker serves the collector.
- ``RedisSessionLocks`` uses ``SET NX PX`` on a per-session key so several
  API workers (or hosts) can share the same guarantee.

Both expose ``hold(session_id)`` as an async context manager.
"""
import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, Optional

import redis.asyncio as redis

from sessionlens.config import settings
from sessionlens.utils.exceptions import StorageError
from sessionlens.utils.logger import logger

# Compare-and-delete so a lock that expired and was re-taken is not released by the old holder
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def _lock_key(session_id: str) -> str:
    """Generate Redis key for the session ingest lock."""
    return f"session_ingest_lock:{session_id}"


class LocalSessionLocks:
    """In-process lock table keyed by session id."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._waiters[session_id] = self._waiters.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[session_id] -= 1
            if self._waiters[session_id] == 0:
                # Nobody else is queued on this key
                del self._waiters[session_id]
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)


class RedisSessionLocks:
    """Distributed lock table backed by Redis."""

    def __init__(
        self,
        redis_url: str,
        timeout_seconds: float,
        poll_interval: float = 0.05,
        client_factory: Optional[Callable[[], redis.Redis]] = None,
    ):
        self.redis_url = redis_url
        self.timeout_seconds = timeout_seconds
        self.poll_interval = poll_interval
        self.client_factory = client_factory or self._connect

    def _connect(self) -> redis.Redis:
        return redis.from_url(self.redis_url, decode_responses=True)

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        client = self.client_factory()
        key = _lock_key(session_id)
        token = uuid.uuid4().hex
        ttl_ms = int(self.timeout_seconds * 1000)
        try:
            loop = asyncio.get_running_loop()
            deadline = loop.time() + self.timeout_seconds
            try:
                while not await client.set(key, token, px=ttl_ms, nx=True):
                    if loop.time() >= deadline:
                        raise StorageError(f"Timed out waiting for ingest lock on session {session_id}")
                    await asyncio.sleep(self.poll_interval)
            except redis.RedisError as e:
                raise StorageError(f"Failed to acquire ingest lock for session {session_id}: {e}") from e
            try:
                yield
            finally:
                try:
                    await client.eval(_RELEASE_SCRIPT, 1, key, token)
                except redis.RedisError as e:
                    # The TTL frees the key eventually
                    logger.error(f"Failed to release ingest lock for {session_id}: {e}", exc_info=True)
        finally:
            await client.aclose()


def create_session_locks():
    """Build the lock table selected by ``SESSION_LOCK_BACKEND``."""
    if settings.session_lock_backend == "redis":
        logger.info("Using Redis session locks")
        return RedisSessionLocks(settings.redis_url, settings.session_lock_timeout_seconds)
    return LocalSessionLocks()
