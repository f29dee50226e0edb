"""Delivery client: ships buffered events to the collector.

Delivery is at-least-once. A batch whose request fails is put back at the
front of the buffer and sent again on the next flush, so the collector may
see the same batch twice when only the response was lost.
"""
import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Set

import httpx

from sessionlens.sdk.buffer import EventBuffer
from sessionlens.utils.logger import sdk_logger
from sessionlens.utils.serialization import serialize_datetime, utc_now

log = sdk_logger.getChild("delivery")

Beacon = Callable[[str, bytes], bool]


class DeliveryFailure(Exception):
    """Raised when a request to the collector fails or is rejected."""
    pass


class TaskBeacon:
    """
    Fire-and-forget transport for the final flush.

    The POST runs as a background task on the running loop and the caller
    does not wait for the response. Reports itself unavailable (returns
    False) when no loop is running.
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client
        self._tasks: Set[asyncio.Task] = set()

    def __call__(self, url: str, body: bytes) -> bool:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        task = loop.create_task(self._send(url, body))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _send(self, url: str, body: bytes) -> None:
        try:
            response = await self.client.post(url, content=body, headers={"Content-Type": "application/json"})
            if response.status_code >= 300:
                log.warning(f"Beacon rejected by collector: {response.status_code}")
        except httpx.HTTPError as e:
            log.warning(f"Beacon delivery failed: {e}")

    async def wait(self) -> None:
        """Wait for beacons still in flight."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class DeliveryClient:
    """Sends session metadata and event batches for one session."""

    def __init__(
        self,
        session_id: str,
        endpoint_url: str,
        buffer: EventBuffer,
        metadata: Optional[Dict[str, Any]] = None,
        started_at: Optional[str] = None,
        timeout: float = 10.0,
        beacon: Optional[Beacon] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session_id = session_id
        self.endpoint_url = endpoint_url
        self.buffer = buffer
        self.metadata = metadata or {}
        self.started_at = started_at
        self.metadata_sent = False
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.beacon = beacon if beacon is not None else TaskBeacon(self._client)
        self._pending_metadata: Optional[asyncio.Task] = None

    def _payload(self, events: List[Dict[str, Any]]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"sessionId": self.session_id, "events": events}
        if self.started_at:
            payload["startedAt"] = self.started_at
        return payload

    async def _post(self, payload: Dict[str, Any]) -> None:
        try:
            response = await self._client.post(self.endpoint_url, json=payload)
        except httpx.HTTPError as e:
            raise DeliveryFailure(f"Request to {self.endpoint_url} failed: {e}") from e
        if response.status_code >= 300:
            raise DeliveryFailure(f"Collector rejected batch: {response.status_code} - {response.text}")

    async def _send_metadata(self) -> None:
        payload = self._payload([])
        payload["metadata"] = self.metadata
        await self._post(payload)
        self.metadata_sent = True
        log.debug(f"Metadata accepted for session {self.session_id}")

    async def ensure_metadata(self) -> None:
        """
        Make sure the collector has accepted the session metadata.

        Concurrent callers share one in-flight request. On failure every
        waiting caller gets DeliveryFailure and the next call tries again.
        """
        if self.metadata_sent:
            return
        if self._pending_metadata is None:
            self._pending_metadata = asyncio.ensure_future(self._send_metadata())
        task = self._pending_metadata
        try:
            await asyncio.shield(task)
        finally:
            if task.done() and self._pending_metadata is task:
                self._pending_metadata = None

    async def flush(self, completed: bool = False, use_beacon: bool = False) -> bool:
        """
        Send everything in the buffer.

        Args:
            completed: Mark the session complete (final flush)
            use_beacon: Hand the batch to the beacon instead of waiting for a response

        Returns:
            True when the batch was handed off or there was nothing to send
        """
        if not use_beacon:
            try:
                await self.ensure_metadata()
            except DeliveryFailure as e:
                log.warning(f"Metadata delivery failed for session {self.session_id}, will retry: {e}")
                return False

        if not self.buffer and not completed:
            return True

        events = self.buffer.drain()
        payload = self._payload(events)
        include_metadata = not self.metadata_sent
        if include_metadata:
            payload["metadata"] = self.metadata
        if completed:
            payload["completed"] = True
            payload["endedAt"] = serialize_datetime(utc_now())

        try:
            if use_beacon and self.beacon(self.endpoint_url, json.dumps(payload).encode("utf-8")):
                self.metadata_sent = True
                return True
            await self._post(payload)
        except DeliveryFailure as e:
            log.warning(f"Delivery failed for session {self.session_id}, re-queued {len(events)} events: {e}")
            self.buffer.requeue(events)
            return False
        except Exception:
            self.buffer.requeue(events)
            raise

        if include_metadata:
            self.metadata_sent = True
        return True

    async def aclose(self) -> None:
        """Wait for in-flight beacons and close the HTTP client."""
        if isinstance(self.beacon, TaskBeacon):
            await self.beacon.wait()
        await self._client.aclose()
