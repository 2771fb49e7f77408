"""SoilMonitor: MQTT soil-moisture telemetry client."""

__version__ = "1.0.0"
