"""In-memory event buffer shared by the recorder and the delivery client."""
from collections import deque
from typing import Any, Deque, Dict, Iterable, List, Optional

from sessionlens.utils.logger import sdk_logger

log = sdk_logger.getChild("buffer")


class EventBuffer:
    """
    FIFO of recorded events waiting for delivery.

    With ``max_size`` set, the oldest events are dropped once the buffer is
    full and ``dropped`` counts how many were lost.
    """

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size
        self.dropped = 0
        self._events: Deque[Dict[str, Any]] = deque()

    def append(self, event: Dict[str, Any]) -> None:
        self._events.append(event)
        self._trim()

    def drain(self) -> List[Dict[str, Any]]:
        """Remove and return every buffered event."""
        events = list(self._events)
        self._events.clear()
        return events

    def requeue(self, events: Iterable[Dict[str, Any]]) -> None:
        """Put a failed batch back in front of anything recorded since."""
        self._events.extendleft(reversed(list(events)))
        self._trim()

    def _trim(self) -> None:
        if self.max_size is None:
            return
        overflow = len(self._events) - self.max_size
        if overflow <= 0:
            return
        for _ in range(overflow):
            self._events.popleft()
        self.dropped += overflow
        log.warning(f"Event buffer full, dropped {overflow} oldest events ({self.dropped} total)")

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)
