"""Centralized exception hierarchy for SoilMonitor.

All domain and service exceptions inherit from :class:`SoilMonitorError` so
that callers can catch a single base class when they need a broad safety net,
yet still match on specific subclasses where narrower handling is appropriate.

Hierarchy
---------
::

    SoilMonitorError (base)
    ├── ValidationError          (bad input from caller)
    │   └── CalibrationError     (wet/dry endpoints do not define a mapping)
    ├── PayloadDecodeError       (malformed inbound message / history entry)
    ├── RepositoryError          (persistence read/write failure)
    ├── TransportError           (MQTT connect / subscribe failure)
    └── ConfigurationError       (missing / invalid config)

Only :class:`CalibrationError` and :class:`ConfigurationError` are expected to
reach application code; the others are recovered inside the component that
raises them and surface as log lines.
"""

from __future__ import annotations


class SoilMonitorError(Exception):
    """Base exception for all SoilMonitor errors.

    Parameters
    ----------
    message:
        Human-readable description.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class ValidationError(SoilMonitorError):
    """Caller supplied invalid or incomplete input."""


class CalibrationError(ValidationError):
    """Calibration endpoints are equal, so raw values cannot be mapped."""


class PayloadDecodeError(SoilMonitorError):
    """A telemetry payload or persisted record could not be decoded."""


class RepositoryError(SoilMonitorError):
    """Key-value persistence failure."""


class TransportError(SoilMonitorError):
    """MQTT transport failure (connect, subscribe)."""


class ConfigurationError(SoilMonitorError):
    """Missing or invalid application configuration."""
