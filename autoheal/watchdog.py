import threading
from typing import Callable, Optional

from autoheal.config import Config
from autoheal.docker_client import DockerRuntimeClient
from autoheal.logger import WatchdogLogger
from autoheal.notifications import NotificationManager
from autoheal.poller import Poller
from autoheal.stream import EventStream, StreamClosed
from autoheal.tracker import StreakTracker

# Extra time given to threads on shutdown on top of the runtime call timeout
_JOIN_GRACE = 5.0


class TaskExited(Exception):
    """A background task returned although no stop was requested"""


class Watchdog:
    """Runs the poller and the tracker as supervised threads.

    If either thread ends for any reason other than a requested stop, the
    whole watchdog shuts down and reports failure.
    """

    def __init__(self, config: Config, client: DockerRuntimeClient,
                 notifier: Optional[NotificationManager] = None,
                 logger: Optional[WatchdogLogger] = None):
        self.config = config
        self.client = client
        self.logger = logger or WatchdogLogger()
        self.events = EventStream(maxsize=1)
        self.poller = Poller(client, self.events, config)
        self.tracker = StreakTracker(
            client,
            threshold=config.unhealthy_count,
            restart_timeout=config.timeout,
            notifier=notifier,
        )

        self.failure: Optional[BaseException] = None
        self._stop = threading.Event()
        self._finished = threading.Event()
        self._lock = threading.Lock()
        self._poller_thread: Optional[threading.Thread] = None
        self._tracker_thread: Optional[threading.Thread] = None

    @classmethod
    def create(cls, config: Config) -> "Watchdog":
        """Build a watchdog against the real daemon; raises RuntimeClientError"""
        client = DockerRuntimeClient.from_config(config)
        return cls(config, client, notifier=NotificationManager.from_config(config))

    def start(self) -> None:
        self._poller_thread = self._spawn("poller", lambda: self.poller.run(self._stop))
        self._tracker_thread = self._spawn("tracker", lambda: self.tracker.run(self.events))

    def stop(self) -> None:
        """Request an orderly shutdown"""
        self._stop.set()
        self._finished.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait until a stop is requested or a task ends"""
        return self._finished.wait(timeout)

    def run(self) -> int:
        self.start()
        while not self.wait(1.0):
            pass
        return self.shutdown()

    def shutdown(self) -> int:
        """Stop both tasks and return the process exit code"""
        self._stop.set()
        join_timeout = self.config.timeout + _JOIN_GRACE

        if self._poller_thread is not None:
            self._poller_thread.join(join_timeout)
        self.events.close()
        if self._tracker_thread is not None:
            self._tracker_thread.join(join_timeout)
        self.client.close()

        exit_code = 1 if self.failure is not None else 0
        self.logger.log_shutdown(exit_code)
        return exit_code

    def _spawn(self, name: str, target: Callable[[], None]) -> threading.Thread:
        thread = threading.Thread(
            target=self._supervise, args=(name, target), name=f"autoheal-{name}", daemon=True
        )
        thread.start()
        return thread

    def _supervise(self, name: str, target: Callable[[], None]) -> None:
        try:
            target()
        except StreamClosed as e:
            # A push that outlived the shutdown join hits the closed stream
            if not self._stop.is_set():
                self._record_failure(name, e)
        except Exception as e:
            self._record_failure(name, e)
        else:
            if not self._stop.is_set():
                self._record_failure(name, TaskExited(f"{name} loop exited"))
        finally:
            self._finished.set()

    def _record_failure(self, name: str, error: BaseException) -> None:
        with self._lock:
            if self.failure is None:
                self.failure = error
        self.logger.log_task_exited(name, error)
