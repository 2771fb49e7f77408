from soilmonitor.domain.calibration import CLAY_SOIL, DEFAULT_CALIBRATION, SensorCalibration
from soilmonitor.domain.plant_thresholds import get_plant
from soilmonitor.services.preferences import PreferencesService
from soilmonitor.utils.persistent_store import InMemoryStore


def test_defaults_when_nothing_is_stored(memory_store):
    prefs = PreferencesService(memory_store)

    assert prefs.load_selected_plant().name == "Generic Plant"
    assert prefs.load_calibration() == DEFAULT_CALIBRATION


def test_selected_plant_round_trip(memory_store):
    prefs = PreferencesService(memory_store)
    prefs.save_selected_plant(get_plant("Basil"))

    assert memory_store.get("selected_plant") == "Basil"
    assert prefs.load_selected_plant().name == "Basil"


def test_unknown_stored_plant_falls_back():
    prefs = PreferencesService(InMemoryStore({"selected_plant": "Triffid"}))
    assert prefs.load_selected_plant().name == "Generic Plant"


def test_calibration_round_trip(memory_store):
    prefs = PreferencesService(memory_store)
    custom = SensorCalibration(wet_value=3600, dry_value=900, name="Probe B")
    prefs.save_calibration(custom)

    assert memory_store.get("sensor_calibration") == {"wetValue": 3600, "dryValue": 900, "name": "Probe B"}
    assert prefs.load_calibration() == custom


def test_preset_calibration_is_stored_by_value(memory_store):
    prefs = PreferencesService(memory_store)
    prefs.save_calibration(CLAY_SOIL)
    assert prefs.load_calibration() == CLAY_SOIL


def test_invalid_stored_calibration_falls_back_to_default():
    for stored in ({"wetValue": 2000, "dryValue": 2000}, {"wetValue": "wet"}, "1200/3500"):
        prefs = PreferencesService(InMemoryStore({"sensor_calibration": stored}))
        assert prefs.load_calibration() == DEFAULT_CALIBRATION
