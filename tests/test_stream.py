#!/usr/bin/env python3
"""
Tests for the poller -> tracker event stream
"""

import os
import sys
import threading
import time

import pytest

# Add the project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from autoheal.docker_client import ContainerRef
from autoheal.stream import EventStream, HealthEvent, StreamClosed

WEB = HealthEvent(ContainerRef(id="abc123", name="web-1"))


def test_push_blocks_until_consumer_takes():
    events = EventStream(maxsize=1)
    assert events.put(WEB)

    pushed = threading.Event()

    def producer():
        events.put(WEB)
        pushed.set()

    thread = threading.Thread(target=producer)
    thread.start()
    assert not pushed.wait(0.4)

    consumer = iter(events)
    assert next(consumer) is WEB
    assert pushed.wait(2)
    thread.join(2)


def test_put_returns_false_when_stopped_while_full():
    events = EventStream(maxsize=1)
    events.put(WEB)
    stop = threading.Event()
    stop.set()
    assert events.put(WEB, stop) is False


def test_put_after_close_raises():
    events = EventStream()
    events.close()
    with pytest.raises(StreamClosed):
        events.put(WEB)


def test_iteration_drains_then_ends_after_close():
    events = EventStream(maxsize=3)
    events.put(WEB)
    events.put(WEB)
    assert events.closed is False
    events.close()
    events.close()
    assert events.closed is True

    started = time.monotonic()
    assert len(list(events)) == 2
    assert time.monotonic() - started < 2


def test_invalid_capacity():
    with pytest.raises(ValueError):
        EventStream(maxsize=0)
