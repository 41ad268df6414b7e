"""Bounded per-device metric history.

Each (device, metric) pair owns its own FIFO of at most ``window`` values.
Buffers grow only when their metric is present in an update, so buffers of
the same device can differ in length and are not aligned by index: each is
an independent recent-history trace.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from forestwatch._constants import DEFAULT_HISTORY_WINDOW
from forestwatch.ingestion.normalize import strict_number
from forestwatch.models.snapshot import Metric, SensorSnapshot

DEFAULT_METRICS: tuple[Metric, ...] = tuple(Metric)


class HistoryBuffer:
    """Fixed-capacity FIFO of numeric values (oldest evicted first)."""

    __slots__ = ("_values",)

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._values: deque[float] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._values.maxlen or 0

    def append(self, value: float) -> None:
        self._values.append(value)

    def values(self) -> list[float]:
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)


class HistoryAggregator:
    """Device-keyed map of per-metric history buffers."""

    def __init__(
        self,
        window: int = DEFAULT_HISTORY_WINDOW,
        *,
        metrics: Iterable[Metric] = DEFAULT_METRICS,
    ) -> None:
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self._window = window
        self._metrics: tuple[Metric, ...] = tuple(Metric(metric) for metric in metrics)
        self._devices: dict[str, dict[Metric, HistoryBuffer]] = {}

    @property
    def window(self) -> int:
        return self._window

    @property
    def metrics(self) -> tuple[Metric, ...]:
        return self._metrics

    def _buffer(self, device_id: str, metric: Metric) -> HistoryBuffer:
        buffers = self._devices.setdefault(device_id, {})
        buffer = buffers.get(metric)
        if buffer is None:
            buffer = HistoryBuffer(self._window)
            buffers[metric] = buffer
        return buffer

    def append(self, device_id: str, metric: Metric | str, value: object) -> bool:
        """Append one value; non-numeric values leave the buffer unchanged.

        Returns True if the value was recorded.
        """
        number = strict_number(value)
        if number is None:
            return False
        self._buffer(device_id, Metric(metric)).append(number)
        return True

    def record(self, snapshot: SensorSnapshot) -> list[Metric]:
        """Append every tracked metric the snapshot carries."""
        recorded: list[Metric] = []
        for metric in self._metrics:
            value = snapshot.metric_value(metric)
            if value is not None and self.append(snapshot.device_id, metric, value):
                recorded.append(metric)
        return recorded

    def get_history(self, device_id: str, metric: Metric | str) -> list[float]:
        """Recent values for one metric in arrival order (possibly empty)."""
        try:
            key = Metric(metric)
        except ValueError:
            return []
        buffer = self._devices.get(device_id, {}).get(key)
        if buffer is None:
            return []
        return buffer.values()

    def snapshot(self, device_id: str) -> dict[Metric, list[float]]:
        """All tracked metrics of a device; unobserved metrics map to ``[]``."""
        buffers = self._devices.get(device_id, {})
        result: dict[Metric, list[float]] = {}
        for metric in self._metrics:
            buffer = buffers.get(metric)
            result[metric] = buffer.values() if buffer is not None else []
        return result

    @property
    def device_ids(self) -> list[str]:
        return list(self._devices)
