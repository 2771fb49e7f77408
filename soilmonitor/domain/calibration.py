"""
Sensor Calibration
==================
Maps raw ADC counts from a capacitive soil probe onto a 0-100% moisture scale.

The probe measures conductivity between two electrodes, read through a 12-bit
ADC (0-4095). Most soil probes are *inverted*: wet soil conducts more and reads
LOWER than dry soil. Orientation is inferred from the two endpoints instead of
being configured:

- ``wet_value < dry_value``: inverted (wet=low, dry=high)
- ``wet_value > dry_value``: normal (wet=high, dry=low)

Either way ``wet_value`` maps to 100% and ``dry_value`` to 0%.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from soilmonitor.constants import SENSOR_ERROR_HIGH_RAW, SENSOR_ERROR_LOW_RAW
from soilmonitor.domain.exceptions import CalibrationError, ValidationError
from soilmonitor.schemas.payloads import CalibrationRecord


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class SensorCalibration:
    """
    Immutable wet/dry calibration profile.

    Replace the whole object to recalibrate; instances are never mutated.

    Attributes:
        wet_value: Raw ADC value with the probe in water (100%)
        dry_value: Raw ADC value with the probe in air (0%)
        name: Human readable profile name
    """

    wet_value: int
    dry_value: int
    name: str = "Default"

    def __post_init__(self):
        """Reject endpoints that do not define a mapping."""
        if self.wet_value == self.dry_value:
            raise CalibrationError(
                f"Calibration '{self.name}' needs distinct wet and dry values, both are {self.wet_value}",
                detail={"wet_value": self.wet_value, "dry_value": self.dry_value},
            )

    @property
    def is_inverted(self) -> bool:
        return self.wet_value < self.dry_value

    def raw_to_percent(self, raw_value: int) -> int:
        """
        Convert a raw sensor value to moisture percentage.

        Args:
            raw_value: Raw ADC reading

        Returns:
            Moisture in percent, clamped to 0-100
        """
        if self.is_inverted:
            percent = (self.dry_value - raw_value) / (self.dry_value - self.wet_value) * 100
        else:
            percent = (raw_value - self.dry_value) / (self.wet_value - self.dry_value) * 100
        return round_half_away(min(max(percent, 0.0), 100.0))

    def percent_to_raw(self, percent: float) -> int:
        """Convert a moisture percentage back to the raw value it maps from.

        Not clamped: percentages outside 0-100 project beyond the endpoints.
        """
        if self.is_inverted:
            return round_half_away(self.dry_value - (percent / 100) * (self.dry_value - self.wet_value))
        return round_half_away(self.dry_value + (percent / 100) * (self.wet_value - self.dry_value))

    @staticmethod
    def is_sensor_error(raw_value: int) -> bool:
        """True when the reading sits on an ADC rail (probe likely disconnected)."""
        return raw_value <= SENSOR_ERROR_LOW_RAW or raw_value >= SENSOR_ERROR_HIGH_RAW

    @property
    def description(self) -> str:
        if self.is_inverted:
            return f"Wet={self.wet_value} (low), Dry={self.dry_value} (high) - Inverted"
        return f"Wet={self.wet_value} (high), Dry={self.dry_value} (low) - Normal"

    def to_dict(self) -> Dict[str, Any]:
        return {"wetValue": self.wet_value, "dryValue": self.dry_value, "name": self.name}

    @classmethod
    def from_dict(cls, data: Any) -> "SensorCalibration":
        """
        Build a calibration from its persisted form.

        Missing endpoints fall back to the default profile's values.

        Raises:
            ValidationError: If a field has the wrong type
            CalibrationError: If the endpoints are equal
        """
        try:
            record = CalibrationRecord.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid calibration record: {e.error_count()} error(s)") from e
        return cls(wet_value=record.wet_value, dry_value=record.dry_value, name=record.name)


# Typical values for the M5Stack Earth sensor; users should calibrate for their own soil.
DEFAULT_CALIBRATION = SensorCalibration(wet_value=1200, dry_value=3500, name="M5Stack Default")

SANDY_SOIL = SensorCalibration(wet_value=1000, dry_value=3200, name="Sandy Soil")
LOAMY_SOIL = SensorCalibration(wet_value=1200, dry_value=3400, name="Loamy Soil")
CLAY_SOIL = SensorCalibration(wet_value=1400, dry_value=3600, name="Clay Soil")
POTTING_MIX = SensorCalibration(wet_value=1100, dry_value=3300, name="Potting Mix")

PRESETS: tuple[SensorCalibration, ...] = (
    DEFAULT_CALIBRATION,
    SANDY_SOIL,
    LOAMY_SOIL,
    CLAY_SOIL,
    POTTING_MIX,
)


def get_preset(name: str) -> SensorCalibration | None:
    """Return the preset with the given name (case-insensitive), if any."""
    wanted = name.strip().lower()
    return next((preset for preset in PRESETS if preset.name.lower() == wanted), None)
