"""
    This module owns the MQTT session that carries soil telemetry. It opens the
    session, subscribes to the sensor topic, decodes inbound payloads into
    SoilReading objects and, when the link drops, runs an exponential-backoff
    reconnect state machine.

    States::

        DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED -> ...
        DISCONNECTED -> (backoff timer: 2, 4, 8, 16, 32 s) -> CONNECTING

    paho-mqtt calls back on its network thread and reconnect timers fire on
    their own threads, so every state transition runs under one re-entrant
    lock. Presentation callbacks are invoked while that lock is held, which is
    what makes them dead once ``disconnect()`` returns.
"""

from __future__ import annotations

import functools
import json
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING, Any, Callable

from pydantic import ValidationError as PydanticValidationError

from soilmonitor.constants import MAX_RECONNECT_ATTEMPTS, MQTT_QOS_AT_LEAST_ONCE
from soilmonitor.domain.exceptions import PayloadDecodeError, TransportError
from soilmonitor.domain.soil_reading import SoilReading
from soilmonitor.enums.connection import ConnectionState
from soilmonitor.hardware.mqtt.client_factory import create_mqtt_client, generate_client_id
from soilmonitor.schemas.payloads import ConnectivityStatePayload, SoilPayload
from soilmonitor.utils.time import iso_now, utc_now

if TYPE_CHECKING:
    from soilmonitor.services.protocols import MQTTTransport

_mqtt_logger = logging.getLogger("soilmonitor.mqtt")

_LOG_MQTT_PAYLOADS = os.getenv("SOILMON_LOG_MQTT_PAYLOADS", "").lower() in {"1", "true", "t", "yes", "on"}


def configure_mqtt_logger(log_dir: str = "logs") -> None:
    """Attach a rotating file handler to the MQTT logger (once)."""
    if any(getattr(h, "name", "") == "soilmonitor_mqtt_file" for h in _mqtt_logger.handlers):
        return
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, "mqtt.log"),
        maxBytes=10 * 1024 * 1024,  # 10MB max per file
        backupCount=3,
        encoding="utf-8",
    )
    handler.name = "soilmonitor_mqtt_file"
    handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    _mqtt_logger.addHandler(handler)
    _mqtt_logger.setLevel(logging.INFO)
    _mqtt_logger.propagate = False  # Don't duplicate to root logger


def backoff_delay(reconnect_attempts: int) -> int:
    """Seconds to wait before the next reconnect, given attempts made so far."""
    return 2 ** (reconnect_attempts + 1)


def decode_soil_payload(payload: bytes, received_at: datetime) -> SoilReading:
    """
    Decode a raw MQTT payload into a SoilReading stamped with local receipt time.

    Args:
        payload: Message bytes (UTF-8 JSON object).
        received_at: Timestamp to attach; any time field on the wire is ignored.

    Raises:
        PayloadDecodeError: If the bytes are not UTF-8, not a JSON object, or
            carry fields of the wrong type.
    """
    try:
        text = payload.decode("utf-8")
        data = json.loads(text)
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise PayloadDecodeError(f"Payload is not UTF-8 JSON: {e}") from e

    if not isinstance(data, dict):
        raise PayloadDecodeError(
            f"Payload must be a JSON object, got {type(data).__name__}", detail={"payload": text[:200]}
        )

    try:
        soil_payload = SoilPayload.model_validate(data)
    except PydanticValidationError as e:
        raise PayloadDecodeError(
            f"Payload fields are invalid: {e.error_count()} error(s)", detail={"payload": text[:200]}
        ) from e

    return SoilReading.from_payload(soil_payload, timestamp=received_at)


@dataclass
class HealthStatus:
    """
    Tracks the health of the telemetry connection.
    """

    is_connected: bool = False
    last_error: str | None = None
    last_error_time: datetime | None = None
    connection_attempts: int = 0
    messages_received: int = 0
    messages_dropped: int = 0

    @property
    def decode_success_rate(self) -> float:
        """Percentage of inbound messages that decoded cleanly"""
        total = self.messages_received + self.messages_dropped
        if total == 0:
            return 0.0
        return (self.messages_received / total) * 100

    def mark_connected(self):
        """Mark the client as successfully connected."""
        self.is_connected = True
        self.last_error = None
        self.last_error_time = None

    def mark_disconnected(self):
        """Mark the client as disconnected."""
        self.is_connected = False

    def record_error(self, error: Exception | str):
        """Record a connection or decode error."""
        self.last_error = str(error)
        self.last_error_time = utc_now()

    def to_dict(self):
        """Return health status as a dictionary."""
        return {
            "is_connected": self.is_connected,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "connection_attempts": self.connection_attempts,
            "messages_received": self.messages_received,
            "messages_dropped": self.messages_dropped,
            "decode_success_rate": round(self.decode_success_rate, 2),
        }


class ConnectionManager:
    """
    Owns one MQTT session for a single sensor topic.

    Consumers attach exactly two hooks: ``on_data_received(SoilReading)`` and
    ``on_connection_changed(bool)``. Transport failures never propagate out of
    this class; they surface only through ``on_connection_changed(False)``.
    """

    def __init__(
        self,
        broker: str,
        port: int,
        topic: str,
        username: str | None = None,
        password: str | None = None,
        *,
        keepalive: int = 60,
        client_prefix: str = "soilmonitor",
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        client_factory: Callable[[str], "MQTTTransport"] = create_mqtt_client,
        timer_factory: Callable[..., Any] = threading.Timer,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initializes the connection manager without connecting.

        Args:
            broker (str): The MQTT broker address.
            port (int): The MQTT broker port.
            topic (str): Topic the sensor node publishes to.
            username (str, optional): Broker username.
            password (str, optional): Broker password.
            keepalive (int): MQTT keepalive in seconds.
            client_prefix (str): Prefix of the random client id.
            max_reconnect_attempts (int): Automatic reconnects before giving up.
            client_factory: Builds a transport client from a client id.
            timer_factory: ``threading.Timer``-compatible factory for reconnect timers.
            clock: Source of receipt timestamps.
        """
        self.broker = broker
        self.port = port
        self.topic = topic
        self.keepalive = keepalive
        self.client_prefix = client_prefix
        self.max_reconnect_attempts = max_reconnect_attempts
        self._username = username
        self._password = password
        self._client_factory = client_factory
        self._timer_factory = timer_factory
        self._clock = clock

        self.on_data_received: Callable[[SoilReading], None] | None = None
        self.on_connection_changed: Callable[[bool], None] | None = None
        self.health_status = HealthStatus()

        self._lock = threading.RLock()
        self._client: "MQTTTransport | None" = None
        self._client_id: str | None = None
        self._state = ConnectionState.DISCONNECTED
        self._reconnect_attempts = 0
        self._disposed = False
        self._timer: Any = None
        self._timer_generation = 0

    @classmethod
    def from_config(cls, config, **kwargs) -> "ConnectionManager":
        """Build a manager from an ``AppConfig``."""
        return cls(
            broker=config.mqtt_broker_host,
            port=config.mqtt_broker_port,
            topic=config.mqtt_topic,
            username=config.mqtt_username or None,
            password=config.mqtt_password or None,
            keepalive=config.mqtt_keepalive,
            client_prefix=config.mqtt_client_prefix,
            max_reconnect_attempts=config.max_reconnect_attempts,
            **kwargs,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def client_id(self) -> str | None:
        return self._client_id

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def has_pending_reconnect(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """
        Open a new session. Also the way out of the give-up state and of a
        previous ``disconnect()``: the retry budget starts from zero.
        """
        with self._lock:
            if self._state != ConnectionState.DISCONNECTED:
                _mqtt_logger.debug("connect() ignored: session already %s", self._state)
                return
            self._disposed = False
            self._cancel_timer()
            self._reconnect_attempts = 0
            self._open_session()

    def disconnect(self) -> None:
        """
        Close the session for good. Safe to call in any state; after it
        returns no callback runs and no reconnect timer fires.
        """
        with self._lock:
            self._disposed = True
            self._cancel_timer()
            self._reconnect_attempts = 0
            client = self._client
            self._state = ConnectionState.DISCONNECTED
            self.health_status.mark_disconnected()

        # paho's loop_stop joins the network thread, which may be waiting on our lock.
        if client is not None:
            try:
                client.disconnect()
                client.loop_stop()
            except Exception as e:
                _mqtt_logger.error("Error closing MQTT session: %s", e)
        _mqtt_logger.info("Disconnected from MQTT broker %s:%s", self.broker, self.port)

    # ------------------------------------------------------------------
    # Session lifecycle (lock held)
    # ------------------------------------------------------------------

    def _open_session(self) -> None:
        client_id = generate_client_id(self.client_prefix)
        client = self._client_factory(client_id)
        if self._username:
            client.username_pw_set(self._username, self._password)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect

        self._client = client
        self._client_id = client_id
        self._state = ConnectionState.CONNECTING
        self.health_status.connection_attempts += 1
        self._log_connectivity()

        try:
            _mqtt_logger.info("Connecting to MQTT broker %s:%s as %s", self.broker, self.port, client_id)
            client.connect(self.broker, self.port, self.keepalive)
            client.loop_start()  # CONNACK and messages arrive on paho's network thread
        except Exception as e:
            _mqtt_logger.error("Error connecting to MQTT broker: %s", e)
            self.health_status.record_error(TransportError(str(e)))
            self._handle_disconnected(client)

    def _handle_disconnected(self, client: Any) -> None:
        if self._state == ConnectionState.DISCONNECTED:
            return
        self._state = ConnectionState.DISCONNECTED
        self.health_status.mark_disconnected()
        self._stop_loop(client)
        self._log_connectivity()
        self._notify_connection(False)

        if self._disposed:
            return
        if self._reconnect_attempts < self.max_reconnect_attempts:
            self._schedule_reconnect()
        else:
            _mqtt_logger.warning(
                "Max reconnection attempts (%s) reached. Giving up until connect() is called.",
                self.max_reconnect_attempts,
            )

    def _schedule_reconnect(self) -> None:
        self._cancel_timer()

        delay = backoff_delay(self._reconnect_attempts)
        self._reconnect_attempts += 1
        _mqtt_logger.info(
            "Scheduling reconnect attempt %s/%s in %s seconds",
            self._reconnect_attempts,
            self.max_reconnect_attempts,
            delay,
        )

        timer = self._timer_factory(delay, functools.partial(self._reconnect, self._timer_generation))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _reconnect(self, generation: int) -> None:
        with self._lock:
            # A cancelled timer may already be running and waiting for the lock.
            if self._disposed or generation != self._timer_generation:
                return
            self._timer = None
            if self._state != ConnectionState.DISCONNECTED:
                return
            _mqtt_logger.info("Attempting reconnection (attempt %s)", self._reconnect_attempts)
            self._open_session()

    def _cancel_timer(self) -> None:
        self._timer_generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _stop_loop(self, client: Any) -> None:
        # From the network thread loop_stop only flags the loop; it does not join.
        try:
            client.loop_stop()
        except Exception as e:
            _mqtt_logger.debug("loop_stop failed for retired client: %s", e)

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, rc, properties=None) -> None:
        with self._lock:
            if self._disposed or client is not self._client:
                return
            if self._state != ConnectionState.CONNECTING:
                # Late CONNACK for a session already marked lost; the backoff timer owns recovery.
                _mqtt_logger.debug("Ignoring CONNACK (rc=%s) while %s", rc, self._state)
                return
            if rc != 0:
                _mqtt_logger.error("MQTT broker refused connection: result code %s", rc)
                self.health_status.record_error(TransportError(f"CONNACK rc={rc}"))
                self._handle_disconnected(client)
                return

            self._state = ConnectionState.CONNECTED
            self._reconnect_attempts = 0
            self.health_status.mark_connected()
            _mqtt_logger.info("Connected to MQTT broker %s:%s", self.broker, self.port)

            try:
                result, _mid = client.subscribe(self.topic, qos=MQTT_QOS_AT_LEAST_ONCE)
                if result == 0:
                    _mqtt_logger.info("Subscribed to topic %s (QoS %s)", self.topic, MQTT_QOS_AT_LEAST_ONCE)
                else:
                    _mqtt_logger.error("Failed to subscribe to topic %s: result code %s", self.topic, result)
            except Exception as e:
                self.health_status.record_error(e)
                _mqtt_logger.error("Error subscribing to MQTT topic %s: %s", self.topic, e)
            client.on_message = self._on_message

            self._log_connectivity()
            self._notify_connection(True)

    def _on_disconnect(self, client, userdata, rc, properties=None) -> None:
        with self._lock:
            if client is not self._client:
                return
            if rc != 0:
                _mqtt_logger.warning("Unexpected MQTT disconnection (rc: %s)", rc)
            self._handle_disconnected(client)

    def _on_message(self, client, userdata, msg) -> None:
        if _LOG_MQTT_PAYLOADS:
            _mqtt_logger.debug("MQTT message on %s: %r", msg.topic, msg.payload[:200])

        try:
            reading = decode_soil_payload(msg.payload, self._clock())
        except PayloadDecodeError as e:
            with self._lock:
                self.health_status.messages_dropped += 1
                self.health_status.record_error(e)
            _mqtt_logger.warning("Dropping malformed payload on %s: %s", msg.topic, e)
            return

        with self._lock:
            if self._disposed or client is not self._client:
                return
            self.health_status.messages_received += 1
            callback = self.on_data_received
            if callback is None:
                return
            try:
                callback(reading)
            except Exception as e:
                _mqtt_logger.error("Error in data callback for topic %s: %s", msg.topic, e, exc_info=True)

    # ------------------------------------------------------------------
    # Notifications (lock held)
    # ------------------------------------------------------------------

    def _notify_connection(self, connected: bool) -> None:
        if self._disposed:
            return
        callback = self.on_connection_changed
        if callback is None:
            return
        try:
            callback(connected)
        except Exception as e:
            _mqtt_logger.error("Error in connection callback: %s", e, exc_info=True)

    def _log_connectivity(self) -> None:
        payload = ConnectivityStatePayload(
            status=self._state.value,
            endpoint=f"{self.broker}:{self.port}",
            topic=self.topic,
            client_id=self._client_id,
            reconnect_attempts=self._reconnect_attempts,
            timestamp=iso_now(),
        )
        _mqtt_logger.info("Connectivity: %s", payload.model_dump_json())
