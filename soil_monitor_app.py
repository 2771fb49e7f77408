"""Console entry point for the SoilMonitor telemetry client.

Connects to the configured broker, logs one line per reading and per
connectivity change, and keeps the reading history under the data directory.
Stops cleanly on Ctrl+C or SIGTERM.
"""
from __future__ import annotations

import argparse
import logging
import signal
import threading
from dataclasses import replace
from typing import List, Optional

from soilmonitor.config import load_config, setup_logging
from soilmonitor.domain.exceptions import ConfigurationError
from soilmonitor.domain.plant_thresholds import PlantThreshold, get_plant
from soilmonitor.hardware.mqtt.connection_manager import configure_mqtt_logger
from soilmonitor.services.telemetry_pipeline import TelemetrySnapshot, build_pipeline

logger = logging.getLogger("soilmonitor.app")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="soilmonitor", description="Soil moisture telemetry client")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("--data-dir", help="directory for history and preferences (default: $SOILMON_DATA_DIR or var)")
    parser.add_argument("--topic", help="MQTT topic to subscribe to (default: $SOILMON_MQTT_TOPIC)")
    parser.add_argument("--plant", help="plant profile to classify against, e.g. 'Tomato'")
    return parser.parse_args(argv)


def _resolve_plant(name: str) -> Optional[PlantThreshold]:
    """Look up a --plant argument; unknown names keep the saved profile."""
    plant = get_plant(name)
    if plant.name.lower() != name.strip().lower():
        logger.warning("Unknown plant %r; keeping the saved profile", name)
        return None
    return plant


def _log_snapshot(snapshot: TelemetrySnapshot) -> None:
    if snapshot.reading is None:
        logger.info("No readings yet (connected=%s)", snapshot.is_connected)
        return
    logger.info(
        "raw=%s node=%s%% calibrated=%s%% status=%s plant=%s connected=%s%s",
        snapshot.reading.raw,
        snapshot.node_percent,
        snapshot.calibrated_percent,
        snapshot.water_status.label if snapshot.water_status else "-",
        snapshot.plant.name,
        snapshot.is_connected,
        " SENSOR ERROR" if snapshot.sensor_error else "",
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    try:
        config = load_config()
        overrides = {}
        if args.data_dir:
            overrides["data_dir"] = args.data_dir
        if args.topic:
            overrides["mqtt_topic"] = args.topic
        if args.debug:
            overrides["DEBUG"] = True
        if overrides:
            config = replace(config, **overrides)
    except (ConfigurationError, ValueError) as exc:
        logging.basicConfig(level=logging.ERROR)
        logging.error("Invalid configuration: %s", exc)
        return 2

    setup_logging(debug=config.DEBUG, log_dir=config.log_dir, level_name=config.log_level)
    configure_mqtt_logger(config.log_dir)
    logger.info("Connecting to %s, topic %s", config.broker_endpoint, config.mqtt_topic)

    pipeline = build_pipeline(config)
    if args.plant:
        plant = _resolve_plant(args.plant)
        if plant is not None:
            pipeline.set_plant(plant)
    pipeline.add_observer(_log_snapshot)

    stop_event = threading.Event()

    def _handle_sigterm(_signum, _frame):
        stop_event.set()

    signal.signal(signal.SIGTERM, _handle_sigterm)

    try:
        pipeline.start()
        _log_snapshot(pipeline.snapshot())
        while not stop_event.wait(1.0):
            pass
        logger.info("Received SIGTERM, shutting down.")
    except KeyboardInterrupt:
        logger.info("Stopped by user.")
    except Exception as exc:  # pragma: no cover - top-level runtime errors
        logger.exception("SoilMonitor failed: %s", exc)
        return 1
    finally:
        pipeline.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
