#!/usr/bin/env python3
"""
Tests for the supervising watchdog and the entry point
"""

import os
import sys
import threading
from unittest.mock import MagicMock, patch

import pytest

# Add the project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from autoheal.config import Config
from autoheal.docker_client import ContainerRef, QueryError, RuntimeClientError
from autoheal.main import main
from autoheal.stream import HealthEvent, StreamClosed
from autoheal.watchdog import TaskExited, Watchdog

WEB = ContainerRef(id="abc123", name="web-1")


@pytest.fixture
def client():
    return MagicMock()


def test_restarts_after_threshold_then_stops_cleanly(client):
    restarted = threading.Event()
    client.list_unhealthy.return_value = [WEB]
    client.restart.side_effect = lambda container_id, timeout: restarted.set()

    watchdog = Watchdog(Config(interval=0.01, unhealthy_count=3, timeout=1.0), client)
    watchdog.start()
    assert restarted.wait(5)
    watchdog.stop()

    assert watchdog.shutdown() == 0
    client.restart.assert_any_call("abc123", 1.0)
    client.close.assert_called_once()


def test_poller_crash_is_fatal(client):
    client.list_unhealthy.side_effect = RuntimeError("boom")
    watchdog = Watchdog(Config(interval=0.01, timeout=1.0), client)

    assert watchdog.run() == 1
    assert isinstance(watchdog.failure, RuntimeError)


def test_repeated_poll_failures_are_fatal(client):
    client.list_unhealthy.side_effect = QueryError("socket unavailable")
    watchdog = Watchdog(Config(interval=0.01, timeout=1.0, max_poll_failures=2), client)

    assert watchdog.run() == 1
    assert client.list_unhealthy.call_count == 2


def test_poller_returning_without_stop_is_fatal(client):
    watchdog = Watchdog(Config(interval=0.01, timeout=1.0), client)
    watchdog.poller.run = lambda stop_event: None

    assert watchdog.run() == 1
    assert isinstance(watchdog.failure, TaskExited)


def test_late_push_after_shutdown_is_not_a_failure(client):
    watchdog = Watchdog(Config(interval=0.01, timeout=1.0), client)
    watchdog.stop()
    watchdog.events.close()

    watchdog._supervise("poller", lambda: watchdog.events.put(HealthEvent(WEB)))

    assert watchdog.failure is None


def test_closed_stream_before_stop_is_fatal(client):
    watchdog = Watchdog(Config(interval=0.01, timeout=1.0), client)
    watchdog.events.close()

    watchdog._supervise("poller", lambda: watchdog.events.put(HealthEvent(WEB)))

    assert isinstance(watchdog.failure, StreamClosed)


def test_tracker_crash_is_fatal(client):
    client.list_unhealthy.return_value = [WEB]
    watchdog = Watchdog(Config(interval=0.01, timeout=1.0), client)
    watchdog.tracker.handle = MagicMock(side_effect=KeyError("abc123"))

    assert watchdog.run() == 1
    assert isinstance(watchdog.failure, KeyError)


@patch("autoheal.main.setup_logging")
@patch("autoheal.main.Watchdog")
def test_main_startup_failure(watchdog_cls, setup_logging):
    watchdog_cls.create.side_effect = RuntimeClientError("no socket")
    assert main(["--socket", "/missing.sock"]) == 1


def test_main_rejects_bad_config():
    assert main(["--unhealthy_count", "0"]) == 2


@patch("autoheal.main.signal.signal")
@patch("autoheal.main.setup_logging")
@patch("autoheal.main.Watchdog")
def test_main_returns_watchdog_exit_code(watchdog_cls, setup_logging, signal_fn):
    watchdog_cls.create.return_value.run.return_value = 1
    assert main([]) == 1
