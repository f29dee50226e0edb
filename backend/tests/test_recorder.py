"""Tests for the capture agent: throttling, labels, buffering and lifecycle."""
import asyncio
import json

import httpx
import pytest

from sessionlens.database import SessionLocal
from sessionlens.main import app
from sessionlens.sdk import Element, PageContext, RecorderSettings, SessionRecorder
from sessionlens.services.session_store import session_store


class FakeClock:
    """Monotonic clock the test advances by hand (seconds)."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class Collector:
    def __init__(self):
        self.bodies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"status": "ok"})


def _page(**overrides):
    values = {
        "url": "https://shop.example.com/products",
        "user_agent": "Mozilla/5.0 (X11; Linux x86_64) Firefox/121.0",
        "language": "en-US",
        "screen_width": 1200,
        "screen_height": 800,
    }
    values.update(overrides)
    return PageContext(**values)


def _recorder(collector=None, clock=None, transport=None, beacon=None, **settings):
    settings.setdefault("collector_url", "http://collector.test")
    settings.setdefault("flush_interval_ms", 60000)
    if transport is None:
        transport = httpx.MockTransport(collector or Collector())
    return SessionRecorder(
        _page(),
        settings=RecorderSettings(**settings),
        session_id="rec-1",
        clock=clock or FakeClock(),
        transport=transport,
        beacon=beacon,
    )


def _buffered(recorder):
    return list(recorder.buffer._events)


class TestCapture:

    def test_nothing_recorded_before_start(self):
        recorder = _recorder()
        assert recorder.record_click(1, 1) is False
        assert recorder.record_scroll(0, 10) is False
        assert len(recorder.buffer) == 0

    @pytest.mark.asyncio
    async def test_pointer_moves_throttled(self):
        clock = FakeClock()
        recorder = _recorder(clock=clock)
        await recorder.start()

        assert recorder.record_pointer_move(10, 10) is True
        clock.now = 0.02
        assert recorder.record_pointer_move(11, 11) is False
        clock.now = 0.075
        assert recorder.record_pointer_move(12, 12) is True

        assert [(e["timestamp"], e["x"]) for e in _buffered(recorder)] == [(0, 10), (75, 12)]
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_scroll_throttled(self):
        clock = FakeClock()
        recorder = _recorder(clock=clock)
        await recorder.start()

        assert recorder.record_scroll(0, 100) is True
        clock.now = 0.05
        assert recorder.record_scroll(0, 150) is False
        clock.now = 0.15
        assert recorder.record_scroll(0, 400) is True

        events = _buffered(recorder)
        assert [e["scrollY"] for e in events] == [100, 400]
        assert events[1] == {"type": "scroll", "timestamp": 150, "scrollX": 0, "scrollY": 400}
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_click_target_labels(self):
        recorder = _recorder()
        await recorder.start()

        button = Element("button", id="buy")
        labelled = Element("div", attributes={"data-recorder-label": "hero-cta"})
        recorder.record_click(5, 5, element=Element("span", parent=button))
        recorder.record_click(6, 6, element=Element("img", parent=labelled))
        recorder.record_click(7, 7, element=Element("div"))
        recorder.record_click(8, 8, button=2, element=Element("A"))

        events = _buffered(recorder)
        assert [e.get("target") for e in events] == ["button#buy", "hero-cta", None, "a"]
        assert events[3]["button"] == 2
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_hover_requires_a_label(self):
        recorder = _recorder()
        await recorder.start()

        assert recorder.record_hover(1, 1, Element("div")) is False
        assert recorder.record_hover(1, 1, None) is False
        assert recorder.record_hover(2, 2, Element("input", id="email"), phase="leave") is True
        with pytest.raises(ValueError):
            recorder.record_hover(2, 2, Element("button"), phase="hovering")

        [event] = _buffered(recorder)
        assert event["target"] == "input#email"
        assert event["phase"] == "leave"
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_navigation(self):
        clock = FakeClock()
        recorder = _recorder(clock=clock)
        await recorder.start()
        clock.now = 1.5
        recorder.record_navigation("https://shop.example.com/cart")

        assert _buffered(recorder) == [{"type": "navigation", "timestamp": 1500, "url": "https://shop.example.com/cart"}]
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_buffer_cap_drops_oldest(self):
        recorder = _recorder(max_buffer_size=3)
        await recorder.start()
        for index in range(5):
            recorder.record_click(index, 0)

        assert [e["x"] for e in _buffered(recorder)] == [2, 3, 4]
        assert recorder.buffer.dropped == 2
        await recorder.stop()


class TestMetadata:

    def test_collect_metadata(self):
        recorder = SessionRecorder(_page(user_id="u-7", timezone="Europe/Berlin"), transport=httpx.MockTransport(Collector()))
        metadata = recorder.collect_metadata("2024-01-01T00:00:00Z")
        assert metadata["startedAt"] == "2024-01-01T00:00:00Z"
        assert metadata["url"] == "https://shop.example.com/products"
        assert metadata["screen"] == {"width": 1200, "height": 800}
        assert metadata["userId"] == "u-7"
        assert metadata["timezone"] == "Europe/Berlin"

    def test_screen_omitted_when_unknown(self):
        recorder = SessionRecorder(_page(screen_width=None), transport=httpx.MockTransport(Collector()))
        metadata = recorder.collect_metadata("2024-01-01T00:00:00Z")
        assert "screen" not in metadata
        assert "userId" not in metadata

    def test_generated_session_ids_are_unique(self):
        first = SessionRecorder(_page(), transport=httpx.MockTransport(Collector()))
        second = SessionRecorder(_page(), transport=httpx.MockTransport(Collector()))
        assert first.session_id != second.session_id


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_then_stop(self):
        collector = Collector()
        recorder = _recorder(collector)
        await recorder.start()
        recorder.record_click(10, 20)
        await recorder.stop()

        assert recorder.is_recording is False
        metadata_request, final = collector.bodies
        assert metadata_request["events"] == []
        assert metadata_request["metadata"]["url"] == "https://shop.example.com/products"
        assert "metadata" not in final
        assert final["completed"] is True
        assert [e["type"] for e in final["events"]] == ["click"]

    @pytest.mark.asyncio
    async def test_flush_loop_delivers_periodically(self):
        collector = Collector()
        recorder = _recorder(collector, flush_interval_ms=10)
        await recorder.start()
        recorder.record_click(1, 1)

        for _ in range(50):
            await asyncio.sleep(0.01)
            if any(body["events"] for body in collector.bodies):
                break

        batches = [body for body in collector.bodies if body["events"]]
        assert batches and batches[0].get("completed") is None
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_visibility_and_blur_flush(self):
        collector = Collector()
        recorder = _recorder(collector)
        await recorder.start()

        recorder.record_click(1, 1)
        await recorder.handle_visibility_change("visible")
        assert collector.bodies == []

        await recorder.handle_visibility_change("hidden")
        assert [len(body["events"]) for body in collector.bodies] == [0, 1]

        recorder.record_click(2, 2)
        await recorder.handle_blur()
        assert len(collector.bodies) == 3
        await recorder.stop()

    @pytest.mark.asyncio
    async def test_unload_uses_beacon(self):
        sent = []

        def beacon(url, body):
            sent.append(json.loads(body))
            return True

        collector = Collector()
        recorder = _recorder(collector, beacon=beacon)
        await recorder.start()
        recorder.record_click(3, 3)
        await recorder.handle_unload()

        assert recorder.is_recording is False
        assert collector.bodies == []
        [payload] = sent
        assert payload["completed"] is True
        assert payload["metadata"]["userAgent"].endswith("Firefox/121.0")
        assert len(payload["events"]) == 1
        assert recorder.delivery._client.is_closed

    @pytest.mark.asyncio
    async def test_failing_beacon_keeps_events_and_closes(self):
        def beacon(url, body):
            raise RuntimeError("bridge gone")

        recorder = _recorder(beacon=beacon)
        await recorder.start()
        recorder.record_click(3, 3)
        with pytest.raises(RuntimeError):
            await recorder.handle_unload()

        assert recorder.is_recording is False
        assert len(recorder.buffer) == 1
        assert recorder.delivery._client.is_closed

    @pytest.mark.asyncio
    async def test_flush_loop_survives_unexpected_errors(self):
        collector = Collector()
        calls = []

        def flaky(request):
            calls.append(request)
            if len(calls) == 1:
                raise RuntimeError("transport bug")
            return collector(request)

        recorder = _recorder(transport=httpx.MockTransport(flaky), flush_interval_ms=10)
        await recorder.start()
        recorder.record_click(1, 1)

        for _ in range(50):
            await asyncio.sleep(0.01)
            if any(body["events"] for body in collector.bodies):
                break

        assert [len(body["events"]) for body in collector.bodies][:2] == [0, 1]
        await recorder.stop()
        assert recorder.delivery._client.is_closed

    @pytest.mark.asyncio
    async def test_flush_now_when_idle(self):
        recorder = _recorder()
        assert await recorder.flush_now() is False
        await recorder.close()


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_recorded_session_reaches_the_store(self):
        clock = FakeClock()
        recorder = _recorder(
            clock=clock,
            transport=httpx.ASGITransport(app=app),
            collector_url="http://testserver",
        )
        await recorder.start()
        recorder.record_click(600, 400, element=Element("button", id="buy"))
        clock.now = 0.5
        recorder.record_scroll(0, 900)
        clock.now = 2.0
        recorder.record_navigation("https://shop.example.com/cart")
        assert await recorder.flush_now() is True
        await recorder.stop()

        db = SessionLocal()
        try:
            summary = session_store.get_summary(db, "rec-1")
        finally:
            db.close()
        assert summary.completed is True
        assert summary.stats.totalEvents == 3
        assert summary.stats.clicks == 1
        assert summary.stats.scrollDepth == 900
        assert summary.metadata["url"] == "https://shop.example.com/products"
        assert summary.metadata["browser"] == "Firefox"
        assert [e["timestamp"] for e in summary.events] == [0, 500, 2000]
