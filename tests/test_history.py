from __future__ import annotations

import pytest

from forestwatch.models import Metric, SensorSnapshot
from forestwatch.state.history import HistoryAggregator, HistoryBuffer


def test_buffer_keeps_last_values_in_arrival_order() -> None:
    buffer = HistoryBuffer(10)
    for value in range(13):
        buffer.append(float(value))

    assert len(buffer) == 10
    assert buffer.values() == [float(v) for v in range(3, 13)]


def test_buffer_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        HistoryBuffer(0)


@pytest.mark.parametrize("window", [1, 3, 10])
def test_history_never_exceeds_window(window: int) -> None:
    history = HistoryAggregator(window)
    for value in range(window + 5):
        history.append("dev1", Metric.TEMPERATURE, value)
        assert len(history.get_history("dev1", Metric.TEMPERATURE)) <= window

    assert history.get_history("dev1", Metric.TEMPERATURE) == [float(v) for v in range(5, window + 5)]


def test_unobserved_metric_is_empty() -> None:
    history = HistoryAggregator()
    history.append("dev1", Metric.TEMPERATURE, 20)

    assert history.get_history("dev1", Metric.GAS) == []
    assert history.get_history("nobody", Metric.TEMPERATURE) == []
    assert history.get_history("dev1", "not-a-metric") == []


def test_metric_accepts_payload_key() -> None:
    history = HistoryAggregator()
    history.append("dev1", "rainPercent", 40)
    assert history.get_history("dev1", Metric.RAIN_PERCENT) == [40.0]


def test_non_numeric_values_are_skipped() -> None:
    history = HistoryAggregator()
    assert history.append("dev1", Metric.GAS, 300)
    assert not history.append("dev1", Metric.GAS, "400")
    assert not history.append("dev1", Metric.GAS, None)
    assert history.get_history("dev1", Metric.GAS) == [300.0]


def test_record_only_grows_reported_metrics() -> None:
    history = HistoryAggregator()
    history.record(SensorSnapshot(device_id="dev1", temperature=20, humidity=50))
    recorded = history.record(SensorSnapshot(device_id="dev1", temperature=21))

    assert recorded == [Metric.TEMPERATURE]
    assert history.get_history("dev1", Metric.TEMPERATURE) == [20.0, 21.0]
    assert history.get_history("dev1", Metric.HUMIDITY) == [50.0]


def test_snapshot_lists_every_tracked_metric() -> None:
    history = HistoryAggregator(metrics=(Metric.TEMPERATURE, Metric.HUMIDITY, Metric.GAS))
    history.record(SensorSnapshot(device_id="dev1", temperature=20, gas=100, rain_percent=5))

    assert history.snapshot("dev1") == {
        Metric.TEMPERATURE: [20.0],
        Metric.HUMIDITY: [],
        Metric.GAS: [100.0],
    }
    # rain_percent is not tracked by this aggregator
    assert history.get_history("dev1", Metric.RAIN_PERCENT) == []


def test_devices_are_kept_apart() -> None:
    history = HistoryAggregator(window=2)
    history.append("a", Metric.TEMPERATURE, 1)
    history.append("b", Metric.TEMPERATURE, 2)

    assert history.get_history("a", Metric.TEMPERATURE) == [1.0]
    assert history.get_history("b", Metric.TEMPERATURE) == [2.0]
    assert history.device_ids == ["a", "b"]


def test_invalid_window() -> None:
    with pytest.raises(ValueError):
        HistoryAggregator(0)


def test_smoke_is_tracked_by_default() -> None:
    history = HistoryAggregator()
    history.record(SensorSnapshot(device_id="dev1", smoke=80))

    assert Metric.SMOKE in history.metrics
    assert history.get_history("dev1", "smoke") == [80.0]
