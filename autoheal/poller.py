"""Timer-driven poller: asks Docker for unhealthy containers and emits events.

Polls run single-flight on a fixed-rate ticker. A failed poll is logged and
skipped; it produces no events and says nothing about container health.
"""

import threading
import time
from typing import Callable, List, Optional

from autoheal import metrics
from autoheal.config import Config
from autoheal.docker_client import ContainerRef, DockerRuntimeClient, QueryError
from autoheal.logger import WatchdogLogger
from autoheal.stream import EventStream, HealthEvent


class PollerError(Exception):
    """Too many consecutive polls failed"""


class Ticker:
    """Fixed-rate schedule. Ticks missed during a slow poll are dropped."""

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self._clock = clock
        self._next = clock() + interval

    def wait(self, stop_event: threading.Event) -> bool:
        """Block until the next tick. Returns False if stopped first."""
        remaining = self._next - self._clock()
        if remaining > 0:
            if stop_event.wait(remaining):
                return False
        elif stop_event.is_set():
            return False

        now = self._clock()
        missed = int((now - self._next) // self.interval) + 1
        self._next += max(missed, 1) * self.interval
        return True


class Poller:
    def __init__(self, client: DockerRuntimeClient, events: EventStream, config: Config,
                 logger: Optional[WatchdogLogger] = None):
        self.client = client
        self.events = events
        self.config = config
        self.logger = logger or WatchdogLogger("autoheal.poller")
        self.consecutive_failures = 0

    def poll_once(self) -> List[ContainerRef]:
        """Query the runtime once for unhealthy containers"""
        try:
            containers = self.client.list_unhealthy(self.config.label_filter)
        except QueryError:
            metrics.POLLS.labels(result="error").inc()
            raise
        metrics.POLLS.labels(result="ok").inc()
        self.logger.log_poll(len(containers), self.config.label_filter)
        return containers

    def run(self, stop_event: threading.Event) -> None:
        """Poll now and on every tick until stop_event is set"""
        ticker = Ticker(self.config.interval)
        while not stop_event.is_set():
            try:
                containers = self.poll_once()
            except QueryError as e:
                self.consecutive_failures += 1
                self.logger.log_poll_failed(e, self.consecutive_failures)
                limit = self.config.max_poll_failures
                if limit and self.consecutive_failures >= limit:
                    raise PollerError(f"{self.consecutive_failures} consecutive polls failed") from e
            else:
                self.consecutive_failures = 0
                for container in containers:
                    if not self.events.put(HealthEvent(container), stop_event):
                        return

            if not ticker.wait(stop_event):
                return
