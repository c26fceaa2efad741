"""
Bounded hand-off between the poller and the streak tracker.
"""

import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional

from autoheal.docker_client import ContainerRef

# How often blocked producers/consumers re-check stop and close signals
_WAKE_INTERVAL = 0.25


class StreamClosed(Exception):
    """Raised when pushing onto a closed stream"""


@dataclass(frozen=True)
class HealthEvent:
    """One observation that a container was unhealthy at poll time"""

    container: ContainerRef
    observed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventStream:
    """Single-consumer queue of HealthEvents with capacity `maxsize`.

    A push blocks until the consumer has taken enough events to make room,
    so a burst of unhealthy containers never piles up in memory.
    """

    def __init__(self, maxsize: int = 1):
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._queue: "queue.Queue[HealthEvent]" = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def put(self, event: HealthEvent, stop_event: Optional[threading.Event] = None) -> bool:
        """Push an event, waiting for room. Returns False if stopped first."""
        while True:
            if self._closed.is_set():
                raise StreamClosed("event stream is closed")
            try:
                self._queue.put(event, timeout=_WAKE_INTERVAL)
                return True
            except queue.Full:
                if stop_event is not None and stop_event.is_set():
                    return False

    def close(self) -> None:
        self._closed.set()

    def __iter__(self) -> Iterator[HealthEvent]:
        """Yield events in arrival order until closed and drained"""
        while True:
            try:
                yield self._queue.get(timeout=_WAKE_INTERVAL)
            except queue.Empty:
                if self._closed.is_set():
                    return
