"""
User preferences persisted alongside the history: the selected plant profile
and the active sensor calibration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from soilmonitor.constants import CALIBRATION_STORE_KEY, SELECTED_PLANT_STORE_KEY
from soilmonitor.domain.calibration import DEFAULT_CALIBRATION, SensorCalibration
from soilmonitor.domain.exceptions import ValidationError
from soilmonitor.domain.plant_thresholds import PlantThreshold, default_plant, get_plant

if TYPE_CHECKING:
    from soilmonitor.services.protocols import KeyValueStore

logger = logging.getLogger(__name__)


class PreferencesService:
    """Load and save user preferences; loads never fail, they fall back to defaults."""

    def __init__(self, store: "KeyValueStore"):
        self._store = store

    def load_selected_plant(self) -> PlantThreshold:
        name = self._store.get(SELECTED_PLANT_STORE_KEY)
        if not isinstance(name, str) or not name:
            return default_plant()
        plant = get_plant(name)
        if plant.name.lower() != name.strip().lower():
            logger.warning("Unknown plant %r in preferences; using %s", name, plant.name)
        return plant

    def save_selected_plant(self, plant: PlantThreshold) -> None:
        self._store.set(SELECTED_PLANT_STORE_KEY, plant.name)

    def load_calibration(self) -> SensorCalibration:
        """Return the persisted calibration, or the default profile when absent or invalid."""
        data = self._store.get(CALIBRATION_STORE_KEY)
        if data is None:
            return DEFAULT_CALIBRATION
        try:
            return SensorCalibration.from_dict(data)
        except ValidationError as e:
            logger.warning("Ignoring invalid persisted calibration: %s", e)
            return DEFAULT_CALIBRATION

    def save_calibration(self, calibration: SensorCalibration) -> None:
        self._store.set(CALIBRATION_STORE_KEY, calibration.to_dict())
