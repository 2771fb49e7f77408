from soilmonitor.schemas.payloads import (
    CalibrationRecord,
    ConnectivityStatePayload,
    SoilPayload,
    SoilReadingRecord,
)

__all__ = [
    "CalibrationRecord",
    "ConnectivityStatePayload",
    "SoilPayload",
    "SoilReadingRecord",
]
