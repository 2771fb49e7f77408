"""
Telemetry Pipeline
==================
Wires the connection manager's two hooks to the history store, the active
calibration and the selected plant profile, and publishes a
``TelemetrySnapshot`` to observers whenever something changes.

Hooks run on the MQTT network thread while the connection manager holds its
lock; observers should hand work off rather than block.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from soilmonitor.domain.calibration import DEFAULT_CALIBRATION, SensorCalibration
from soilmonitor.domain.plant_thresholds import PlantThreshold, default_plant
from soilmonitor.domain.soil_reading import SoilReading
from soilmonitor.enums.plants import PlantWaterStatus
from soilmonitor.hardware.mqtt.connection_manager import ConnectionManager
from soilmonitor.services.history_store import HistoryStore
from soilmonitor.services.preferences import PreferencesService
from soilmonitor.utils.persistent_store import JsonFileStore
from soilmonitor.utils.time import to_iso

logger = logging.getLogger(__name__)

SnapshotObserver = Callable[["TelemetrySnapshot"], None]


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Everything a presentation layer needs to render the current state."""

    reading: Optional[SoilReading]
    calibrated_percent: Optional[int]
    water_status: Optional[PlantWaterStatus]
    sensor_error: bool
    plant: PlantThreshold
    calibration: SensorCalibration
    is_connected: bool

    @property
    def node_percent(self) -> Optional[int]:
        """Percentage computed by the sensor node itself."""
        return self.reading.percent if self.reading else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "raw": self.reading.raw if self.reading else None,
            "node_percent": self.node_percent,
            "calibrated_percent": self.calibrated_percent,
            "state": self.reading.state if self.reading else None,
            "timestamp": to_iso(self.reading.timestamp) if self.reading else None,
            "water_status": self.water_status.value if self.water_status else None,
            "sensor_error": self.sensor_error,
            "plant": self.plant.name,
            "optimal_range": list(self.plant.optimal_range),
            "calibration": self.calibration.name,
            "is_connected": self.is_connected,
        }


class TelemetryPipeline:
    """Single subscriber of a ConnectionManager's data and connectivity hooks."""

    def __init__(
        self,
        connection: ConnectionManager,
        history: HistoryStore,
        preferences: Optional[PreferencesService] = None,
        *,
        calibration: Optional[SensorCalibration] = None,
        plant: Optional[PlantThreshold] = None,
    ):
        self.connection = connection
        self.history = history
        self.preferences = preferences

        if calibration is None:
            calibration = preferences.load_calibration() if preferences else DEFAULT_CALIBRATION
        if plant is None:
            plant = preferences.load_selected_plant() if preferences else default_plant()

        self._lock = threading.RLock()
        self._calibration = calibration
        self._plant = plant
        self._is_connected = False
        self._observers: List[SnapshotObserver] = []

    # ==================== Lifecycle ====================

    def start(self) -> None:
        """Restore history, attach to the connection and open the session."""
        count = self.history.load()
        if count == 0:
            self.history.seed_mock_history()

        self.connection.on_data_received = self._handle_reading
        self.connection.on_connection_changed = self._handle_connection_changed
        logger.info(
            "Telemetry pipeline started (plant=%s, calibration=%s, history=%s)",
            self._plant.name,
            self._calibration.name,
            len(self.history),
        )
        self.connection.connect()

    def stop(self) -> None:
        """Close the session and wait for queued history writes."""
        self.connection.disconnect()
        self.connection.on_data_received = None
        self.connection.on_connection_changed = None
        self.history.close()
        with self._lock:
            self._is_connected = False
        logger.info("Telemetry pipeline stopped; transport health: %s", self.connection.health_status.to_dict())

    # ==================== Observers ====================

    def add_observer(self, observer: SnapshotObserver) -> None:
        with self._lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def remove_observer(self, observer: SnapshotObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _publish(self) -> None:
        with self._lock:
            observers = list(self._observers)
        snapshot = self.snapshot()
        for observer in observers:
            try:
                observer(snapshot)
            except Exception as e:
                logger.error("Telemetry observer %r failed: %s", observer, e, exc_info=True)

    # ==================== Connection hooks ====================

    def _handle_reading(self, reading: SoilReading) -> None:
        self.history.append(reading)
        self.history.save_async()
        if self._calibration.is_sensor_error(reading.raw):
            logger.warning("Raw value %s is at an ADC rail; check the probe wiring", reading.raw)
        self._publish()

    def _handle_connection_changed(self, connected: bool) -> None:
        with self._lock:
            self._is_connected = connected
        logger.info("Telemetry connection %s", "established" if connected else "lost")
        self._publish()

    # ==================== Settings ====================

    @property
    def calibration(self) -> SensorCalibration:
        return self._calibration

    @property
    def plant(self) -> PlantThreshold:
        return self._plant

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    def set_calibration(self, calibration: SensorCalibration) -> None:
        """Replace the calibration wholesale and persist it."""
        with self._lock:
            self._calibration = calibration
        if self.preferences is not None:
            self.preferences.save_calibration(calibration)
        logger.info("Calibration set to %s (%s)", calibration.name, calibration.description)
        self._publish()

    def set_plant(self, plant: PlantThreshold) -> None:
        """Select a plant profile and persist the choice."""
        with self._lock:
            self._plant = plant
        if self.preferences is not None:
            self.preferences.save_selected_plant(plant)
        logger.info("Plant profile set to %s", plant.name)
        self._publish()

    # ==================== Derived state ====================

    def snapshot(self) -> TelemetrySnapshot:
        with self._lock:
            calibration = self._calibration
            plant = self._plant
            is_connected = self._is_connected

        reading = self.history.latest()
        if reading is None:
            return TelemetrySnapshot(
                reading=None,
                calibrated_percent=None,
                water_status=None,
                sensor_error=False,
                plant=plant,
                calibration=calibration,
                is_connected=is_connected,
            )

        calibrated = calibration.raw_to_percent(reading.raw)
        return TelemetrySnapshot(
            reading=reading,
            calibrated_percent=calibrated,
            water_status=plant.get_status(calibrated),
            sensor_error=calibration.is_sensor_error(reading.raw),
            plant=plant,
            calibration=calibration,
            is_connected=is_connected,
        )


def build_pipeline(config, *, store=None, **connection_kwargs) -> TelemetryPipeline:
    """
    Assemble a pipeline from an ``AppConfig``.

    Args:
        config: Loaded application configuration.
        store: Key-value store to use instead of the JSON file under ``config.data_dir``.
        connection_kwargs: Forwarded to ``ConnectionManager`` (e.g. ``client_factory``).
    """
    if store is None:
        store = JsonFileStore(config.data_dir)
    history = HistoryStore(store, max_entries=config.history_max_entries)
    preferences = PreferencesService(store)
    connection = ConnectionManager.from_config(config, **connection_kwargs)
    return TelemetryPipeline(connection, history, preferences)
