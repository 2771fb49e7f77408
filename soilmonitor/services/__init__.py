from soilmonitor.services.history_store import HistoryStore
from soilmonitor.services.preferences import PreferencesService
from soilmonitor.services.telemetry_pipeline import TelemetryPipeline, TelemetrySnapshot, build_pipeline

__all__ = [
    "HistoryStore",
    "PreferencesService",
    "TelemetryPipeline",
    "TelemetrySnapshot",
    "build_pipeline",
]
