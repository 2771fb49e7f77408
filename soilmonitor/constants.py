"""
Application-wide constants for SoilMonitor.

Values that are part of the data contract (persisted keys, ADC rails,
classification bands) live here rather than in AppConfig because changing
them would break previously persisted state or change classification results.
"""

# ---------------------------------------------------------------------------
# Persisted state keys
# ---------------------------------------------------------------------------
HISTORY_STORE_KEY = "soil_history"
SELECTED_PLANT_STORE_KEY = "selected_plant"
CALIBRATION_STORE_KEY = "sensor_calibration"

# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------
HISTORY_MAX_ENTRIES = 100
MOCK_HISTORY_DAYS = 7

# ---------------------------------------------------------------------------
# Sensor ADC (12-bit, 0-4095)
# ---------------------------------------------------------------------------
SENSOR_ERROR_LOW_RAW = 10
SENSOR_ERROR_HIGH_RAW = 4090

# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------
MAX_RECONNECT_ATTEMPTS = 5
MQTT_QOS_AT_LEAST_ONCE = 1

# ---------------------------------------------------------------------------
# Watering status bands (percent)
# ---------------------------------------------------------------------------
TOO_WET_PERCENT = 90
OPTIMAL_MARGIN_PERCENT = 20
NEEDS_WATER_NOW_MARGIN_PERCENT = 15
OPTIMAL_RANGE_SPAN_PERCENT = 30
OPTIMAL_RANGE_CEILING_PERCENT = 95
