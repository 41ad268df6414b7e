"""Thresholds and defaults shared across forestwatch.

Alert and warning thresholds are deliberately separate constants: the
alerting path and the card/map styling path compare against different
values for the same channel.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Fire
# ---------------------------------------------------------------------------

#: ``fireDetected`` only counts when it carries exactly this string.
FIRE_DETECTED_MARKER = "true"

#: Digital flame pin value meaning "flame seen".
FLAME_DIGITAL_ACTIVE = 1

FIRE_TEMPERATURE_THRESHOLD = 50.0
"""Temperature (°C) strictly above which fire danger is raised."""

FIRE_GAS_ALERT_THRESHOLD = 900.0
"""Gas reading strictly above which a fire alert is triggered."""

FIRE_GAS_WARNING_THRESHOLD = 600.0
"""Gas reading strictly above which cards and map markers show danger styling."""

# ---------------------------------------------------------------------------
# Rain
# ---------------------------------------------------------------------------

HEAVY_RAIN_ANALOG_THRESHOLD = 1500.0
"""Rain analog reading at or above which heavy rain is raised."""

HEAVY_RAIN_PERCENT_ALERT_THRESHOLD = 70.0
"""Rain percentage at or above which heavy rain is raised."""

WARNING_RAIN_PERCENT_THRESHOLD = 50.0
"""Rain percentage strictly above which cards show caution styling."""

# ---------------------------------------------------------------------------
# Card caution level
# ---------------------------------------------------------------------------

WARNING_TEMPERATURE_THRESHOLD = 40.0
WARNING_GAS_THRESHOLD = 500.0

# ---------------------------------------------------------------------------
# History / map / feed defaults
# ---------------------------------------------------------------------------

DEFAULT_HISTORY_WINDOW = 10
DEFAULT_GEOFENCE_RADIUS = 100.0
SINGLE_MARKER_REGION_DELTA = 0.01

DEFAULT_DEVICES_PATH = "forest_devices"
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_KEEPALIVE = 60
DEFAULT_RECONNECT_DELAY = 5.0

#: Key under which a device node keeps its latest reading.
LAST_READING_KEY = "last"
#: Nested key some firmware revisions wrap the reading values in.
NESTED_DATA_KEY = "data"

# Threshold to distinguish epoch seconds from milliseconds.
MS_TIMESTAMP_THRESHOLD = 1e11
