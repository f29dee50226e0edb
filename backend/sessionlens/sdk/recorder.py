"""Session recorder: turns page interaction signals into a buffered event log.

The host (a browser bridge, an automation driver, a test) calls the
``record_*`` methods as signals arrive and the lifecycle ``handle_*`` methods
when the page is hidden, loses focus or unloads. The recorder never performs
I/O from a capture call; the delivery client drains the buffer on flush.
"""
import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from sessionlens.constants import EventType, HoverPhase
from sessionlens.sdk.buffer import EventBuffer
from sessionlens.sdk.config import RecorderSettings
from sessionlens.sdk.delivery import Beacon, DeliveryClient
from sessionlens.sdk.dom import Element, resolve_target_label
from sessionlens.utils.logger import sdk_logger
from sessionlens.utils.serialization import round_half_up, serialize_datetime, utc_now

log = sdk_logger.getChild("recorder")


@dataclass
class PageContext:
    """What the host knows about the monitored page at session start."""
    url: str
    user_agent: str
    referrer: str = ""
    language: Optional[str] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    timezone: Optional[str] = None
    device_pixel_ratio: float = 1.0
    user_id: Optional[str] = None


class SessionRecorder:
    """
    Records one monitored page load.

    Timestamps are milliseconds since ``start()`` on a monotonic clock, so
    delivery latency never affects event ordering.
    """

    def __init__(
        self,
        page: PageContext,
        settings: Optional[RecorderSettings] = None,
        session_id: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        beacon: Optional[Beacon] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.page = page
        self.settings = settings or RecorderSettings()
        self.session_id = session_id or str(uuid.uuid4())
        self.clock = clock
        self.buffer = EventBuffer(max_size=self.settings.max_buffer_size)
        self.delivery = DeliveryClient(
            session_id=self.session_id,
            endpoint_url=self.settings.endpoint_url,
            buffer=self.buffer,
            timeout=self.settings.request_timeout_seconds,
            beacon=beacon,
            transport=transport,
        )
        self._started_ms: Optional[float] = None
        self._last_pointer_move_ms: Optional[float] = None
        self._last_scroll_ms: Optional[float] = None
        self._flush_task: Optional[asyncio.Task] = None

    @property
    def is_recording(self) -> bool:
        return self._started_ms is not None

    def _now_ms(self) -> float:
        return self.clock() * 1000

    def _relative_timestamp(self, now_ms: float) -> int:
        return max(0, round_half_up(now_ms - self._started_ms))

    def collect_metadata(self, started_at: str) -> Dict[str, Any]:
        """Session metadata sent with the first delivery."""
        metadata: Dict[str, Any] = {
            "startedAt": started_at,
            "userAgent": self.page.user_agent,
            "url": self.page.url,
            "referrer": self.page.referrer,
            "language": self.page.language,
            "timezone": self.page.timezone,
            "devicePixelRatio": self.page.device_pixel_ratio,
        }
        if self.page.screen_width and self.page.screen_height:
            metadata["screen"] = {"width": self.page.screen_width, "height": self.page.screen_height}
        if self.page.user_id is not None:
            metadata["userId"] = self.page.user_id
        return metadata

    # Capture

    def _record(self, event: Dict[str, Any]) -> None:
        self.buffer.append(event)

    def record_pointer_move(self, x: float, y: float) -> bool:
        """Record a pointer position; samples closer than the throttle window are dropped."""
        if not self.is_recording:
            return False
        now = self._now_ms()
        last = self._last_pointer_move_ms
        if last is not None and now - last < self.settings.pointer_move_throttle_ms:
            return False
        self._last_pointer_move_ms = now
        self._record({"type": EventType.MOUSEMOVE, "timestamp": self._relative_timestamp(now), "x": x, "y": y})
        return True

    def record_click(self, x: float, y: float, button: int = 0, element: Optional[Element] = None) -> bool:
        if not self.is_recording:
            return False
        event = {
            "type": EventType.CLICK,
            "timestamp": self._relative_timestamp(self._now_ms()),
            "x": x,
            "y": y,
            "button": button,
        }
        target = resolve_target_label(element)
        if target is not None:
            event["target"] = target
        self._record(event)
        return True

    def record_scroll(self, scroll_x: float, scroll_y: float) -> bool:
        """Record the scroll offset; samples closer than the throttle window are dropped."""
        if not self.is_recording:
            return False
        now = self._now_ms()
        last = self._last_scroll_ms
        if last is not None and now - last < self.settings.scroll_throttle_ms:
            return False
        self._last_scroll_ms = now
        self._record({
            "type": EventType.SCROLL,
            "timestamp": self._relative_timestamp(now),
            "scrollX": scroll_x,
            "scrollY": scroll_y,
        })
        return True

    def record_hover(self, x: float, y: float, element: Optional[Element], phase: str = HoverPhase.ENTER) -> bool:
        """Record entering or leaving an interactive element."""
        if not self.is_recording:
            return False
        if phase not in (HoverPhase.ENTER, HoverPhase.LEAVE):
            raise ValueError(f"Unknown hover phase: {phase}")
        target = resolve_target_label(element)
        if target is None:
            return False
        self._record({
            "type": EventType.HOVER,
            "timestamp": self._relative_timestamp(self._now_ms()),
            "x": x,
            "y": y,
            "target": target,
            "phase": phase,
        })
        return True

    def record_navigation(self, url: str) -> bool:
        """Record an in-page route change."""
        if not self.is_recording:
            return False
        self._record({"type": EventType.NAVIGATION, "timestamp": self._relative_timestamp(self._now_ms()), "url": url})
        return True

    # Lifecycle

    async def start(self) -> None:
        """Begin recording and start the periodic flush loop."""
        if self.is_recording:
            return
        self._started_ms = self._now_ms()
        started_at = serialize_datetime(utc_now())
        self.delivery.started_at = started_at
        self.delivery.metadata = self.collect_metadata(started_at)
        self._flush_task = asyncio.create_task(self._flush_loop())
        log.info(f"Recording session {self.session_id} on {self.page.url}")

    async def _flush_loop(self) -> None:
        interval = self.settings.flush_interval_ms / 1000
        while True:
            try:
                await self.delivery.flush()
            except Exception as e:
                # Keep recording; the next tick retries with the buffer intact
                log.error(f"Unexpected flush failure for session {self.session_id}: {e}", exc_info=True)
            await asyncio.sleep(interval)

    async def _cancel_flush_loop(self) -> None:
        task, self._flush_task = self._flush_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def flush_now(self) -> bool:
        """Deliver the buffer immediately."""
        if not self.is_recording:
            return False
        return await self.delivery.flush()

    async def stop(self) -> None:
        """Stop recording, send the final batch and release the HTTP client."""
        if not self.is_recording:
            return
        await self._cancel_flush_loop()
        try:
            await self.delivery.flush(completed=True)
        finally:
            self._started_ms = None
            await self.close()
        log.info(f"Stopped recording session {self.session_id}")

    async def close(self) -> None:
        """Wait for in-flight beacons and release the HTTP client."""
        await self.delivery.aclose()

    async def handle_visibility_change(self, state: str) -> None:
        if state == "hidden":
            await self.flush_now()

    async def handle_blur(self) -> None:
        await self.flush_now()

    async def handle_unload(self) -> None:
        """
        Final flush through the beacon, then release the HTTP client.

        The host does not wait for a collector response; closing only waits
        for a beacon that is still in flight on this loop.
        """
        if not self.is_recording:
            return
        await self._cancel_flush_loop()
        try:
            await self.delivery.flush(completed=True, use_beacon=True)
        finally:
            self._started_ms = None
            await self.close()
