from __future__ import annotations

import pytest

from forestwatch.config import ForestWatchConfig
from forestwatch.exceptions import ForestWatchConfigError, ForestWatchError


def test_defaults() -> None:
    config = ForestWatchConfig()

    assert config.history_window_size == 10
    assert config.fire_temperature_threshold == 50
    assert config.fire_gas_alert_threshold == 900
    assert config.fire_gas_warning_threshold == 600
    assert config.heavy_rain_analog_threshold == 1500
    assert config.heavy_rain_percent_alert_threshold == 70
    assert config.warning_rain_percent_threshold == 50
    assert config.alerts_enabled is True
    assert config.min_hazard_fields_for_alerting == 0
    assert config.topic_prefix == "forest_devices"


@pytest.mark.parametrize("size", [0, -1, True, 2.5])
def test_invalid_history_window_rejected(size: object) -> None:
    with pytest.raises(ForestWatchConfigError):
        ForestWatchConfig(history_window_size=size)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "overrides",
    [
        {"min_hazard_fields_for_alerting": -1},
        {"default_geofence_radius": 0},
        {"reconnect_delay": -1.0},
        {"devices_path": "/"},
    ],
)
def test_invalid_values_rejected(overrides: dict[str, object]) -> None:
    with pytest.raises(ForestWatchConfigError):
        ForestWatchConfig(**overrides)  # type: ignore[arg-type]


def test_config_error_is_forestwatch_error() -> None:
    assert issubclass(ForestWatchConfigError, ForestWatchError)


def test_topic_prefix_override_is_stripped() -> None:
    config = ForestWatchConfig(mqtt_topic_prefix="/site/a/")
    assert config.topic_prefix == "site/a"


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORESTWATCH_HISTORY_WINDOW_SIZE", "25")
    monkeypatch.setenv("FORESTWATCH_FIRE_GAS_ALERT_THRESHOLD", "850.5")
    monkeypatch.setenv("FORESTWATCH_MQTT_HOST", "broker.local")
    monkeypatch.setenv("FORESTWATCH_ALERTS_ENABLED", "off")

    config = ForestWatchConfig.from_env()

    assert config.history_window_size == 25
    assert config.fire_gas_alert_threshold == 850.5
    assert config.mqtt_host == "broker.local"
    assert config.alerts_enabled is False


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORESTWATCH_HISTORY_WINDOW_SIZE", "25")
    monkeypatch.setenv("FORESTWATCH_ALERTS_ENABLED", "false")

    config = ForestWatchConfig.from_env(history_window_size=5, alerts_enabled=True)

    assert config.history_window_size == 5
    assert config.alerts_enabled is True


def test_from_env_bad_number(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORESTWATCH_HISTORY_WINDOW_SIZE", "ten")
    with pytest.raises(ForestWatchConfigError):
        ForestWatchConfig.from_env()


def test_from_env_out_of_range(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORESTWATCH_HISTORY_WINDOW_SIZE", "0")
    with pytest.raises(ForestWatchConfigError):
        ForestWatchConfig.from_env()


def test_from_env_unrecognised_bool_keeps_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FORESTWATCH_ALERTS_ENABLED", "maybe")
    assert ForestWatchConfig.from_env().alerts_enabled is True
