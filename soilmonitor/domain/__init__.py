"""
Domain Value Objects Package
============================
Immutable value objects for soil telemetry: readings, calibration profiles and
the plant water threshold reference table.
"""

from .calibration import DEFAULT_CALIBRATION, PRESETS, SensorCalibration, get_preset
from .plant_thresholds import (
    DEFAULT_PLANT_NAME,
    PLANTS,
    PlantThreshold,
    default_plant,
    get_by_category,
    get_plant,
    search,
    sorted_by_name,
)
from .soil_reading import SoilReading

__all__ = [
    # Calibration
    "DEFAULT_CALIBRATION",
    "PRESETS",
    "SensorCalibration",
    "get_preset",
    # Plant table
    "DEFAULT_PLANT_NAME",
    "PLANTS",
    "PlantThreshold",
    "default_plant",
    "get_by_category",
    "get_plant",
    "search",
    "sorted_by_name",
    # Readings
    "SoilReading",
]
