"""Streak tracker: turns unhealthy sightings into restart decisions.

Each container id moves through three states:

* absent - no entry in the counter map
* counting(n) - seen unhealthy n times, 1 <= n < threshold
* restart-triggered - the n-th sighting reached the threshold; the entry is
  dropped and a restart is issued, whatever its outcome

The counter map is only ever touched from the thread draining the event
stream, so it is not locked. Containers that stop being reported keep their
count until they are seen again.
"""

from typing import Dict, Iterable, Optional

from autoheal import metrics
from autoheal.docker_client import DockerRuntimeClient, RestartError
from autoheal.logger import WatchdogLogger
from autoheal.notifications import NotificationManager
from autoheal.stream import HealthEvent


class StreakTracker:
    def __init__(self, client: DockerRuntimeClient, threshold: int, restart_timeout: float,
                 notifier: Optional[NotificationManager] = None,
                 logger: Optional[WatchdogLogger] = None):
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")
        self.client = client
        self.threshold = threshold
        self.restart_timeout = restart_timeout
        self.notifier = notifier
        self.logger = logger or WatchdogLogger("autoheal.tracker")
        self._counts: Dict[str, int] = {}

    @property
    def counts(self) -> Dict[str, int]:
        return dict(self._counts)

    def handle(self, event: HealthEvent) -> bool:
        """Record one sighting. Returns True if it triggered a restart."""
        container = event.container
        metrics.UNHEALTHY_EVENTS.inc()

        count = self._counts.get(container.id, 0) + 1
        self.logger.log_unhealthy(container.id, container.name, count, self.threshold)

        if count < self.threshold:
            self._counts[container.id] = count
            metrics.TRACKED_CONTAINERS.set(len(self._counts))
            return False

        self._counts.pop(container.id, None)
        metrics.TRACKED_CONTAINERS.set(len(self._counts))
        self._restart(event)
        return True

    def _restart(self, event: HealthEvent) -> None:
        container = event.container
        self.logger.log_restart(container.id, container.name)
        try:
            self.client.restart(container.id, self.restart_timeout)
        except RestartError as e:
            metrics.RESTARTS.labels(result="error").inc()
            self.logger.log_restart_failed(container.id, container.name, e)
            if self.notifier is not None:
                self.notifier.send_notification(container, str(e), observed_at=event.observed_at)
            return
        metrics.RESTARTS.labels(result="ok").inc()

    def run(self, events: Iterable[HealthEvent]) -> None:
        """Process events in arrival order until the stream ends"""
        for event in events:
            self.handle(event)
