"""
Soil Reading Value Object
=========================
Immutable value object representing one telemetry sample from the sensor node.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from soilmonitor.domain.exceptions import PayloadDecodeError
from soilmonitor.schemas.payloads import SoilPayload, SoilReadingRecord
from soilmonitor.utils.time import to_iso, utc_now


@dataclass(frozen=True)
class SoilReading:
    """
    Immutable soil moisture reading.

    ``percent`` is the value the sensor node computed itself; the locally
    calibrated percentage is derived on demand from ``raw`` and is never
    stored here.
    """

    raw: int
    percent: int
    state: str
    timestamp: datetime

    @classmethod
    def from_payload(cls, payload: SoilPayload, timestamp: datetime | None = None) -> "SoilReading":
        return cls(
            raw=payload.raw,
            percent=payload.percent,
            state=payload.state,
            timestamp=timestamp or utc_now(),
        )

    @classmethod
    def from_dict(cls, data: Any) -> "SoilReading":
        """Rebuild a reading from its persisted form.

        Raises:
            PayloadDecodeError: If the record is malformed.
        """
        try:
            record = SoilReadingRecord.model_validate(data)
        except PydanticValidationError as e:
            raise PayloadDecodeError(f"Invalid history record: {e.error_count()} error(s)") from e
        return cls(raw=record.raw, percent=record.percent, state=record.state, timestamp=record.timestamp)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary"""
        return {
            "raw": self.raw,
            "percent": self.percent,
            "state": self.state,
            "timestamp": to_iso(self.timestamp),
        }
