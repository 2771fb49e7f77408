import random
from datetime import datetime, timedelta, timezone

import pytest

from soilmonitor.config import AppConfig
from soilmonitor.domain.calibration import SensorCalibration
from soilmonitor.domain.plant_thresholds import get_plant
from soilmonitor.domain.soil_reading import SoilReading
from soilmonitor.enums import ConnectionState, PlantWaterStatus
from soilmonitor.services.history_store import HistoryStore
from soilmonitor.services.preferences import PreferencesService
from soilmonitor.services.telemetry_pipeline import TelemetryPipeline, build_pipeline
from soilmonitor.utils.persistent_store import InMemoryStore

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def history(memory_store):
    # Mock readings end a day before the live ones the manager stamps with FIXED_NOW.
    return HistoryStore(memory_store, clock=lambda: FIXED_NOW - timedelta(days=1), rng=random.Random(1))


@pytest.fixture
def pipeline(manager, history, memory_store):
    pipeline = TelemetryPipeline(manager, history, PreferencesService(memory_store))
    yield pipeline
    history.close()


@pytest.fixture
def snapshots(pipeline):
    received = []
    pipeline.add_observer(received.append)
    return received


def test_start_seeds_history_and_connects(pipeline, history, client_factory, manager):
    pipeline.start()

    assert len(history) == 7
    assert manager.state == ConnectionState.CONNECTING
    assert manager.on_data_received is not None
    assert manager.on_connection_changed is not None
    assert len(client_factory.clients) == 1


def test_start_with_persisted_history_does_not_seed(manager):
    stored = [
        SoilReading(raw=2100, percent=55, state="ok", timestamp=FIXED_NOW - timedelta(hours=1)).to_dict()
    ]
    store = InMemoryStore({"soil_history": stored})
    history = HistoryStore(store)
    pipeline = TelemetryPipeline(manager, history, PreferencesService(store))

    pipeline.start()

    assert len(history) == 1
    history.close()


def test_reading_flows_through_to_snapshot(pipeline, client_factory, snapshots, memory_store, history):
    pipeline.start()
    client = client_factory.last
    client.fire_connack()

    client.fire_message(b'{"raw": 2350, "percent": 47, "state": "ok"}')
    history.flush(timeout=5)

    snapshot = snapshots[-1]
    assert snapshot.is_connected
    assert snapshot.reading.raw == 2350
    assert snapshot.node_percent == 47
    assert snapshot.calibrated_percent == 50
    assert snapshot.water_status == PlantWaterStatus.NEEDS_WATER_SOON
    assert snapshot.sensor_error is False
    assert memory_store.get("soil_history")[-1]["raw"] == 2350


def test_connection_changes_are_published(pipeline, client_factory, snapshots):
    pipeline.start()
    client_factory.last.fire_connack()
    client_factory.last.fire_disconnect()

    assert [s.is_connected for s in snapshots] == [True, False]
    assert pipeline.is_connected is False


def test_rail_reading_is_flagged(pipeline, client_factory, snapshots):
    pipeline.start()
    client_factory.last.fire_connack()

    client_factory.last.fire_message(b'{"raw": 4095}')

    assert snapshots[-1].sensor_error is True
    assert snapshots[-1].calibrated_percent == 0
    assert snapshots[-1].water_status == PlantWaterStatus.STRESSED


def test_set_calibration_recomputes_and_persists(pipeline, client_factory, snapshots, memory_store):
    pipeline.start()
    client_factory.last.fire_connack()
    client_factory.last.fire_message(b'{"raw": 2350}')

    normal = SensorCalibration(wet_value=3500, dry_value=1200, name="Flipped")
    pipeline.set_calibration(normal)

    assert pipeline.calibration is normal
    assert snapshots[-1].calibrated_percent == 50
    assert memory_store.get("sensor_calibration")["name"] == "Flipped"


def test_set_plant_reclassifies_and_persists(pipeline, client_factory, snapshots, memory_store):
    pipeline.start()
    client_factory.last.fire_connack()
    client_factory.last.fire_message(b'{"raw": 1660}')  # 80% with the default calibration

    pipeline.set_plant(get_plant("Tomato"))
    assert snapshots[-1].water_status == PlantWaterStatus.OPTIMAL

    pipeline.set_plant(get_plant("Celery"))
    assert snapshots[-1].water_status == PlantWaterStatus.NEEDS_WATER_SOON
    assert memory_store.get("selected_plant") == "Celery"


def test_failing_observer_does_not_block_others(pipeline, client_factory):
    seen = []

    def broken(_snapshot):
        raise RuntimeError("render failed")

    pipeline.add_observer(broken)
    pipeline.add_observer(seen.append)
    pipeline.start()
    client_factory.last.fire_connack()

    assert len(seen) == 1


def test_removed_observer_is_not_called(pipeline, client_factory):
    seen = []
    pipeline.add_observer(seen.append)
    pipeline.remove_observer(seen.append)
    pipeline.start()
    client_factory.last.fire_connack()

    assert seen == []


def test_stop_disconnects_and_silences(pipeline, client_factory, snapshots, manager):
    pipeline.start()
    client = client_factory.last
    client.fire_connack()

    pipeline.stop()
    client.fire_message(b'{"raw": 2000}')

    assert manager.is_disposed
    assert [s.is_connected for s in snapshots] == [True]
    assert pipeline.snapshot().is_connected is False


def test_snapshot_without_readings(manager, memory_store):
    pipeline = TelemetryPipeline(manager, HistoryStore(memory_store))

    snapshot = pipeline.snapshot()

    assert snapshot.reading is None
    assert snapshot.water_status is None
    assert snapshot.to_dict()["plant"] == "Generic Plant"


def test_preferences_are_restored_on_construction(manager):
    store = InMemoryStore(
        {"selected_plant": "Basil", "sensor_calibration": {"wetValue": 1000, "dryValue": 3200, "name": "Sandy Soil"}}
    )
    pipeline = TelemetryPipeline(manager, HistoryStore(store), PreferencesService(store))

    assert pipeline.plant.name == "Basil"
    assert pipeline.calibration.name == "Sandy Soil"


def test_build_pipeline_from_config(client_factory, timer_recorder):
    config = AppConfig(mqtt_topic="garden/soil", history_max_entries=10)
    pipeline = build_pipeline(config, store=InMemoryStore(), client_factory=client_factory, timer_factory=timer_recorder)

    assert pipeline.history.max_entries == 10
    assert pipeline.connection.topic == "garden/soil"
