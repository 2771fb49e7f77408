"""
Shared test fixtures for the SoilMonitor test suite.

Provides:
- An in-memory key-value store
- A DummyClient factory standing in for paho-mqtt clients
- A recording timer factory so reconnect backoff runs without sleeping
- A fixed clock

Usage:
    def test_example(manager, client_factory):
        manager.connect()
        client = client_factory.clients[-1]
        client.on_connect(client, None, {}, 0)
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from soilmonitor.hardware.mqtt.connection_manager import ConnectionManager
from soilmonitor.utils.persistent_store import InMemoryStore

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("soilmonitor").setLevel(logging.WARNING)

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class DummyMessage:
    def __init__(self, topic: str, payload: bytes):
        self.topic = topic
        self.payload = payload


class DummyClient:
    """Records every call the connection manager makes on a paho client."""

    def __init__(self, client_id: str, connect_error: Exception | None = None):
        self.client_id = client_id
        self.connect_error = connect_error
        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None
        self.credentials = None
        self.connect_calls = []
        self.subscriptions = []
        self.loop_started = False
        self.loop_stopped = False
        self.disconnected = False

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def connect(self, host, port=1883, keepalive=60):
        self.connect_calls.append((host, port, keepalive))
        if self.connect_error is not None:
            raise self.connect_error
        return 0

    def subscribe(self, topic, qos=0):
        self.subscriptions.append((topic, qos))
        return (0, len(self.subscriptions))

    def loop_start(self):
        self.loop_started = True

    def loop_stop(self):
        self.loop_stopped = True

    def disconnect(self):
        self.disconnected = True

    # Simulated transport events
    def fire_connack(self, rc: int = 0):
        self.on_connect(self, None, {}, rc)

    def fire_disconnect(self, rc: int = 1):
        self.on_disconnect(self, None, rc)

    def fire_message(self, payload: bytes, topic: str = "BBW/SoilMoisture"):
        self.on_message(self, None, DummyMessage(topic, payload))


class DummyClientFactory:
    """Callable client factory; queue exceptions in ``connect_errors`` to fail upcoming connects."""

    def __init__(self):
        self.clients: list[DummyClient] = []
        self.connect_errors: list[Exception] = []

    def __call__(self, client_id: str) -> DummyClient:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        client = DummyClient(client_id, connect_error=error)
        self.clients.append(client)
        return client

    @property
    def last(self) -> DummyClient:
        return self.clients[-1]


class RecordingTimer:
    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


class TimerRecorder:
    """``threading.Timer`` stand-in that records timers instead of running them."""

    def __init__(self):
        self.timers: list[RecordingTimer] = []

    def __call__(self, interval, function):
        timer = RecordingTimer(interval, function)
        self.timers.append(timer)
        return timer

    @property
    def delays(self) -> list:
        return [timer.interval for timer in self.timers]

    @property
    def last(self) -> RecordingTimer:
        return self.timers[-1]


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def client_factory():
    return DummyClientFactory()


@pytest.fixture
def timer_recorder():
    return TimerRecorder()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def manager(client_factory, timer_recorder, fixed_clock):
    return ConnectionManager(
        broker="broker.test",
        port=1883,
        topic="BBW/SoilMoisture",
        username="public",
        password="public",
        client_factory=client_factory,
        timer_factory=timer_recorder,
        clock=fixed_clock,
    )


@pytest.fixture
def events(manager):
    """Attach recording hooks to ``manager`` and return the event log."""
    log = SimpleNamespace(readings=[], connectivity=[])
    manager.on_data_received = log.readings.append
    manager.on_connection_changed = log.connectivity.append
    return log
