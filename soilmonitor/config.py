"""
Configuration for SoilMonitor
=============================
Runtime settings for the telemetry client, loaded from environment variables.
Sets up the logging configuration as well.

The broker address, credentials and topic are consumed as opaque values; how
they get into the environment (shell, systemd unit, container secret) is up to
the deployment.
"""

import logging
import os
import sys
from contextlib import suppress
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler

from soilmonitor.constants import HISTORY_MAX_ENTRIES, MAX_RECONNECT_ATTEMPTS
from soilmonitor.domain.exceptions import ConfigurationError


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("SOILMON_ENV", "development"))

    # MQTT broker (the sensor node publishes to the same public broker)
    mqtt_broker_host: str = field(default_factory=lambda: os.getenv("SOILMON_MQTT_HOST", "public.cloud.shiftr.io"))
    mqtt_broker_port: int = field(default_factory=lambda: _env_int("SOILMON_MQTT_PORT", 1883))
    mqtt_username: str = field(default_factory=lambda: os.getenv("SOILMON_MQTT_USERNAME", "public"))
    mqtt_password: str = field(default_factory=lambda: os.getenv("SOILMON_MQTT_PASSWORD", "public"))
    mqtt_topic: str = field(default_factory=lambda: os.getenv("SOILMON_MQTT_TOPIC", "BBW/SoilMoisture"))
    mqtt_keepalive: int = field(default_factory=lambda: _env_int("SOILMON_MQTT_KEEPALIVE", 60))
    mqtt_client_prefix: str = field(default_factory=lambda: os.getenv("SOILMON_MQTT_CLIENT_PREFIX", "soilmonitor"))
    max_reconnect_attempts: int = field(
        default_factory=lambda: _env_int("SOILMON_MAX_RECONNECT_ATTEMPTS", MAX_RECONNECT_ATTEMPTS)
    )

    # Persistence
    data_dir: str = field(default_factory=lambda: os.getenv("SOILMON_DATA_DIR", "var"))
    history_max_entries: int = field(
        default_factory=lambda: _env_int("SOILMON_HISTORY_MAX_ENTRIES", HISTORY_MAX_ENTRIES)
    )

    # Logging
    DEBUG: bool = field(default_factory=lambda: _env_bool("SOILMON_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("SOILMON_LOG_LEVEL", "INFO"))
    log_dir: str = field(default_factory=lambda: os.getenv("SOILMON_LOG_DIR", "logs"))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not (1 <= self.mqtt_broker_port <= 65535):
            raise ConfigurationError(
                f"MQTT port must be between 1 and 65535, got {self.mqtt_broker_port}",
                detail={"field": "mqtt_broker_port"},
            )
        if not self.mqtt_topic:
            raise ConfigurationError("MQTT topic must not be empty", detail={"field": "mqtt_topic"})
        if self.history_max_entries < 1:
            raise ConfigurationError(
                f"History cap must be positive, got {self.history_max_entries}",
                detail={"field": "history_max_entries"},
            )
        if self.max_reconnect_attempts < 0:
            raise ConfigurationError(
                f"Reconnect attempts must not be negative, got {self.max_reconnect_attempts}",
                detail={"field": "max_reconnect_attempts"},
            )

    @property
    def broker_endpoint(self) -> str:
        return f"{self.mqtt_broker_host}:{self.mqtt_broker_port}"


def setup_logging(debug: bool = False, log_dir: str = "logs", level_name: str = "INFO") -> None:
    """Setup logging configuration. ``debug`` wins over ``level_name``."""
    log_level = logging.DEBUG if debug else logging.getLevelName(level_name.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    # Root logger
    root = logging.getLogger()
    root.setLevel(log_level)

    # Keep existing handlers but avoid adding duplicates when called multiple times
    has_console = any(getattr(h, "name", "") == "soilmonitor_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "soilmonitor_file" for h in root.handlers)
    added_handler = False

    # Console handler (force UTF-8 so German plant names survive any terminal)
    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "soilmonitor_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if not has_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "soilmonitor.log"),
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "soilmonitor_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    # Ensure handler levels follow the desired log level
    for handler in root.handlers:
        if getattr(handler, "name", "") in {"soilmonitor_console", "soilmonitor_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))

    # paho logs every PINGREQ at DEBUG
    if _env_bool("SOILMON_SILENCE_PAHO", True):
        logging.getLogger("paho").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    return AppConfig()
