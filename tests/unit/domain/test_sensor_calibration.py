from dataclasses import FrozenInstanceError

import pytest

from soilmonitor.domain.calibration import (
    DEFAULT_CALIBRATION,
    PRESETS,
    SensorCalibration,
    get_preset,
    round_half_away,
)
from soilmonitor.domain.exceptions import CalibrationError, ValidationError

INVERTED = SensorCalibration(wet_value=1200, dry_value=3500)
NORMAL = SensorCalibration(wet_value=3500, dry_value=1200)


def test_equal_endpoints_are_rejected():
    with pytest.raises(CalibrationError):
        SensorCalibration(wet_value=2000, dry_value=2000)


def test_calibration_error_is_a_validation_error():
    assert issubclass(CalibrationError, ValidationError)


def test_orientation_is_inferred():
    assert INVERTED.is_inverted
    assert not NORMAL.is_inverted


@pytest.mark.parametrize("raw, expected", [(1200, 100), (3500, 0), (2350, 50)])
def test_inverted_reference_conversions(raw, expected):
    assert INVERTED.raw_to_percent(raw) == expected


@pytest.mark.parametrize("raw, expected", [(3500, 100), (1200, 0)])
def test_normal_reference_conversions(raw, expected):
    assert NORMAL.raw_to_percent(raw) == expected


@pytest.mark.parametrize("calibration", [INVERTED, NORMAL, SensorCalibration(wet_value=0, dry_value=4095)])
def test_percent_is_always_within_bounds(calibration):
    for raw in range(-5000, 10000, 37):
        assert 0 <= calibration.raw_to_percent(raw) <= 100


@pytest.mark.parametrize("calibration", [INVERTED, NORMAL])
def test_percent_to_raw_round_trips_within_one(calibration):
    for percent in range(0, 101):
        assert abs(calibration.raw_to_percent(calibration.percent_to_raw(percent)) - percent) <= 1


def test_percent_to_raw_is_not_clamped():
    assert INVERTED.percent_to_raw(110) < INVERTED.wet_value
    assert INVERTED.percent_to_raw(-10) > INVERTED.dry_value


def test_rounding_is_half_away_from_zero():
    assert round_half_away(2.5) == 3
    assert round_half_away(0.5) == 1
    assert round_half_away(-2.5) == -3
    # (8 - 7) / 8 * 100 == 12.5 exactly; banker's rounding would give 12
    calibration = SensorCalibration(wet_value=0, dry_value=8)
    assert calibration.raw_to_percent(7) == 13


@pytest.mark.parametrize("raw, expected", [(5, True), (10, True), (11, False), (2000, False), (4089, False), (4090, True), (4095, True)])
def test_sensor_error_rails(raw, expected):
    assert SensorCalibration.is_sensor_error(raw) is expected


def test_description_names_orientation():
    assert INVERTED.description == "Wet=1200 (low), Dry=3500 (high) - Inverted"
    assert NORMAL.description == "Wet=3500 (high), Dry=1200 (low) - Normal"


def test_dict_form_uses_camel_case_keys():
    data = DEFAULT_CALIBRATION.to_dict()
    assert data == {"wetValue": 1200, "dryValue": 3500, "name": "M5Stack Default"}
    assert SensorCalibration.from_dict(data) == DEFAULT_CALIBRATION


def test_from_dict_fills_missing_fields():
    calibration = SensorCalibration.from_dict({"wetValue": 900})
    assert (calibration.wet_value, calibration.dry_value, calibration.name) == (900, 3500, "Custom")


def test_from_dict_rejects_bad_types():
    with pytest.raises(ValidationError):
        SensorCalibration.from_dict({"wetValue": "very wet"})


def test_from_dict_rejects_equal_endpoints():
    with pytest.raises(CalibrationError):
        SensorCalibration.from_dict({"wetValue": 1500, "dryValue": 1500})


def test_presets_are_looked_up_case_insensitively():
    assert len(PRESETS) == 5
    assert get_preset("clay soil").wet_value == 1400
    assert get_preset("Potting Mix").dry_value == 3300
    assert get_preset("Peat") is None


def test_calibration_is_immutable():
    with pytest.raises(FrozenInstanceError):
        INVERTED.wet_value = 1000
