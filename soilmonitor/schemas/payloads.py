"""
Wire and persistence schemas.

Pydantic models describing what crosses a process boundary: the JSON payload
published by the sensor node, the serialized history entries and calibration
profile in the key-value store, and the connectivity snapshot logged on every
transport state change.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

ConnectivityStatus = Literal["connected", "connecting", "disconnected"]


class _NullTolerantModel(BaseModel):
    """Treats explicit JSON nulls as absent so field defaults apply."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class SoilPayload(_NullTolerantModel):
    """Payload published by the sensor node on the telemetry topic.

    Missing fields fall back to ``raw=0``, ``percent=0`` and
    ``state="unknown"``. ``raw`` and ``percent`` must be JSON integers;
    booleans and numeric strings are rejected rather than coerced. Any timestamp the node includes is ignored: local
    receipt time is authoritative.
    """

    raw: StrictInt = 0
    percent: StrictInt = 0
    state: str = "unknown"

    @field_validator("state", mode="before")
    @classmethod
    def state_as_label(cls, value: Any) -> Any:
        # Unknown states are opaque labels; numbers become their text form.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class SoilReadingRecord(_NullTolerantModel):
    """Serialized history entry.

    ``timestamp`` is mandatory because it drives chronological ordering; the
    other fields default like the wire payload. Naive timestamps are read as
    UTC.
    """

    raw: StrictInt = 0
    percent: StrictInt = 0
    state: str = "unknown"
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class CalibrationRecord(_NullTolerantModel):
    """Serialized sensor calibration, keyed the way the mobile app stored it."""

    wet_value: int = Field(default=1200, alias="wetValue")
    dry_value: int = Field(default=3500, alias="dryValue")
    name: str = "Custom"


class ConnectivityStatePayload(BaseModel):
    """Snapshot of the telemetry connection, logged on each transition."""

    schema_version: int = Field(default=1)

    status: ConnectivityStatus
    endpoint: str
    topic: str
    client_id: str | None = None
    reconnect_attempts: int = 0
    timestamp: str
