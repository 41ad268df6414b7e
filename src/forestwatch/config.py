"""Monitor configuration for forestwatch."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from forestwatch._constants import (
    DEFAULT_DEVICES_PATH,
    DEFAULT_GEOFENCE_RADIUS,
    DEFAULT_HISTORY_WINDOW,
    DEFAULT_MQTT_KEEPALIVE,
    DEFAULT_MQTT_PORT,
    DEFAULT_RECONNECT_DELAY,
    FIRE_GAS_ALERT_THRESHOLD,
    FIRE_GAS_WARNING_THRESHOLD,
    FIRE_TEMPERATURE_THRESHOLD,
    HEAVY_RAIN_ANALOG_THRESHOLD,
    HEAVY_RAIN_PERCENT_ALERT_THRESHOLD,
    WARNING_GAS_THRESHOLD,
    WARNING_RAIN_PERCENT_THRESHOLD,
    WARNING_TEMPERATURE_THRESHOLD,
)
from forestwatch.exceptions import ForestWatchConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ForestWatchConfig:
    """Monitor configuration.

    Parameters
    ----------
    history_window_size : int
        Number of recent values kept per device and metric. Must be >= 1.
    fire_temperature_threshold : float
        Temperature strictly above which fire danger is raised.
    fire_gas_alert_threshold : float
        Gas reading strictly above which a fire alert is triggered.
    fire_gas_warning_threshold : float
        Gas reading strictly above which cards and markers use danger styling.
    heavy_rain_analog_threshold : float
        Rain analog reading at or above which heavy rain is raised.
    heavy_rain_percent_alert_threshold : float
        Rain percentage at or above which heavy rain is raised.
    warning_rain_percent_threshold : float
        Rain percentage strictly above which cards use caution styling.
    warning_temperature_threshold : float
        Temperature strictly above which cards use caution styling.
    warning_gas_threshold : float
        Gas reading strictly above which cards use caution styling.
    default_geofence_radius : float
        Map alert radius in metres when a device reports none.
    alerts_enabled : bool
        Drive the alarm sink on fire onset/clear. Alert events are still
        computed and published when disabled.
    min_hazard_fields_for_alerting : int
        Minimum number of usable hazard fields a device must report once
        before its alert state starts advancing. ``0`` alerts from the very
        first snapshot.
    devices_path : str
        Feed path / topic segment holding the per-device nodes.
    mqtt_host : str or None
        MQTT broker host for the MQTT feed.
    mqtt_port : int
        MQTT broker port.
    mqtt_topic_prefix : str or None
        Topic prefix; defaults to ``devices_path``.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    firebase_url : str or None
        Firebase Realtime Database URL for the Firebase feed.
    firebase_auth : str or None
        Database secret or ID token appended as ``auth=`` to REST calls.
    reconnect_delay : float
        Seconds to wait before re-opening a failed feed stream.
    """

    history_window_size: int = DEFAULT_HISTORY_WINDOW
    fire_temperature_threshold: float = FIRE_TEMPERATURE_THRESHOLD
    fire_gas_alert_threshold: float = FIRE_GAS_ALERT_THRESHOLD
    fire_gas_warning_threshold: float = FIRE_GAS_WARNING_THRESHOLD
    heavy_rain_analog_threshold: float = HEAVY_RAIN_ANALOG_THRESHOLD
    heavy_rain_percent_alert_threshold: float = HEAVY_RAIN_PERCENT_ALERT_THRESHOLD
    warning_rain_percent_threshold: float = WARNING_RAIN_PERCENT_THRESHOLD
    warning_temperature_threshold: float = WARNING_TEMPERATURE_THRESHOLD
    warning_gas_threshold: float = WARNING_GAS_THRESHOLD
    default_geofence_radius: float = DEFAULT_GEOFENCE_RADIUS
    alerts_enabled: bool = True
    min_hazard_fields_for_alerting: int = 0
    devices_path: str = DEFAULT_DEVICES_PATH
    mqtt_host: str | None = None
    mqtt_port: int = DEFAULT_MQTT_PORT
    mqtt_topic_prefix: str | None = None
    mqtt_keepalive: int = DEFAULT_MQTT_KEEPALIVE
    firebase_url: str | None = None
    firebase_auth: str | None = None
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY

    def __post_init__(self) -> None:
        if isinstance(self.history_window_size, bool) or not isinstance(self.history_window_size, int):
            raise ForestWatchConfigError("history_window_size must be an integer")
        if self.history_window_size < 1:
            raise ForestWatchConfigError(f"history_window_size must be >= 1, got {self.history_window_size}")
        if self.min_hazard_fields_for_alerting < 0:
            raise ForestWatchConfigError("min_hazard_fields_for_alerting must be >= 0")
        if self.default_geofence_radius <= 0:
            raise ForestWatchConfigError("default_geofence_radius must be positive")
        if self.reconnect_delay < 0:
            raise ForestWatchConfigError("reconnect_delay must be >= 0")
        if not self.devices_path.strip("/"):
            raise ForestWatchConfigError("devices_path must be non-empty")

    @property
    def topic_prefix(self) -> str:
        """MQTT topic prefix, falling back to the devices path."""
        return (self.mqtt_topic_prefix or self.devices_path).strip("/")

    @classmethod
    def from_env(cls, **overrides: Any) -> ForestWatchConfig:
        """Create configuration from ``FORESTWATCH_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        ForestWatchConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "FORESTWATCH_DEVICES_PATH": "devices_path",
            "FORESTWATCH_MQTT_HOST": "mqtt_host",
            "FORESTWATCH_MQTT_TOPIC_PREFIX": "mqtt_topic_prefix",
            "FORESTWATCH_FIREBASE_URL": "firebase_url",
            "FORESTWATCH_FIREBASE_AUTH": "firebase_auth",
        }
        _ENV_INT_MAP = {
            "FORESTWATCH_HISTORY_WINDOW_SIZE": "history_window_size",
            "FORESTWATCH_MIN_HAZARD_FIELDS": "min_hazard_fields_for_alerting",
            "FORESTWATCH_MQTT_PORT": "mqtt_port",
            "FORESTWATCH_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        _ENV_FLOAT_MAP = {
            "FORESTWATCH_FIRE_TEMPERATURE_THRESHOLD": "fire_temperature_threshold",
            "FORESTWATCH_FIRE_GAS_ALERT_THRESHOLD": "fire_gas_alert_threshold",
            "FORESTWATCH_FIRE_GAS_WARNING_THRESHOLD": "fire_gas_warning_threshold",
            "FORESTWATCH_HEAVY_RAIN_ANALOG_THRESHOLD": "heavy_rain_analog_threshold",
            "FORESTWATCH_HEAVY_RAIN_PERCENT_ALERT_THRESHOLD": "heavy_rain_percent_alert_threshold",
            "FORESTWATCH_WARNING_RAIN_PERCENT_THRESHOLD": "warning_rain_percent_threshold",
            "FORESTWATCH_WARNING_TEMPERATURE_THRESHOLD": "warning_temperature_threshold",
            "FORESTWATCH_WARNING_GAS_THRESHOLD": "warning_gas_threshold",
            "FORESTWATCH_DEFAULT_GEOFENCE_RADIUS": "default_geofence_radius",
            "FORESTWATCH_RECONNECT_DELAY": "reconnect_delay",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        for env_map, convert in ((_ENV_INT_MAP, int), (_ENV_FLOAT_MAP, float)):
            for env_key, field_name in env_map.items():
                val = env.get(env_key)
                if val is None or field_name in overrides:
                    continue
                try:
                    config_kwargs[field_name] = convert(val)
                except ValueError as exc:
                    raise ForestWatchConfigError(f"{env_key}={val!r} is not a valid number") from exc

        if "alerts_enabled" not in overrides:
            config_kwargs["alerts_enabled"] = _env_bool(env.get("FORESTWATCH_ALERTS_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
