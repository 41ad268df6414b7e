"""High-level hazard monitor.

Wires the pipeline together::

    feed -> normalize -> {history, evaluate} -> alert latches -> alarm / listeners

Each feed update is processed synchronously, without awaiting, so updates
never interleave. Alarm requests are scheduled as tasks on the running
loop and are not awaited; their failures are logged and never roll back
the latch that triggered them.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from forestwatch.alarm import AlarmSink
from forestwatch.config import ForestWatchConfig
from forestwatch.feed.base import FeedSubscription, Unsubscribe
from forestwatch.hazard import HazardThresholds, card_status, evaluate, map_marker, map_region
from forestwatch.ingestion.snapshot import normalize_feed
from forestwatch.models.hazard import CardStatus, HazardAssessment, MapMarker, MapRegion
from forestwatch.models.snapshot import Metric, SensorSnapshot
from forestwatch.state.alerts import AlertTracker, DeviceAlertState
from forestwatch.state.events import AlertEvent, AlertKind, Connectivity
from forestwatch.state.history import HistoryAggregator

_logger = logging.getLogger(__name__)

AlertListener = Callable[[AlertEvent], None]
ConnectivityListener = Callable[[Connectivity], None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _remove_listener(listeners: list[Any], listener: Any) -> Callable[[], None]:
    removed = False

    def remove() -> None:
        nonlocal removed
        if removed:
            return
        removed = True
        for index, candidate in enumerate(listeners):
            if candidate is listener:
                del listeners[index]
                return

    return remove


class HazardMonitor:
    """Real-time alert state and rolling history for a device feed.

    All devices share one alarm session: any device's fire onset starts it
    and any device's fire clear stops it, even while another device's fire
    latch is still set. Per-device state stays readable through
    :meth:`get_alert_state`.

    Usage::

        async with HazardMonitor(config, alarm=alarm) as monitor:
            monitor.subscribe_to_alert_events(print)
            monitor.attach(feed)
            ...
    """

    def __init__(
        self,
        config: ForestWatchConfig | None = None,
        *,
        alarm: AlarmSink | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or ForestWatchConfig()
        self._thresholds = HazardThresholds.from_config(self._config)
        self._history = HistoryAggregator(self._config.history_window_size)
        self._alerts = AlertTracker(min_hazard_fields=self._config.min_hazard_fields_for_alerting)
        self._alarm = alarm
        self._clock = clock
        self._snapshots: dict[str, SensorSnapshot] = {}
        self._assessments: dict[str, HazardAssessment] = {}
        self._alert_listeners: list[AlertListener] = []
        self._connectivity_listeners: list[ConnectivityListener] = []
        self._connectivity = Connectivity.DISCONNECTED
        self._unsubscribe: Unsubscribe | None = None
        self._alarm_tasks: set[asyncio.Task[None]] = set()
        self._alarm_requested = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HazardMonitor:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def config(self) -> ForestWatchConfig:
        return self._config

    @property
    def thresholds(self) -> HazardThresholds:
        return self._thresholds

    # ------------------------------------------------------------------
    # Feed wiring
    # ------------------------------------------------------------------

    def attach(self, feed: FeedSubscription) -> None:
        """Subscribe to *feed*, replacing any previous subscription."""
        self.detach()
        self._unsubscribe = feed.subscribe(self.handle_update, self.handle_feed_error)
        _logger.debug("Monitor attached to feed %s", type(feed).__name__)

    def detach(self) -> None:
        """Stop feed delivery. Safe to call repeatedly."""
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()
            self._set_connectivity(Connectivity.DISCONNECTED)

    async def close(self) -> None:
        """Unsubscribe from the feed and release the alarm."""
        self.detach()
        await self.drain()
        if self._alarm is not None and self._alarm_requested:
            self._alarm_requested = False
            try:
                await self._alarm.stop()
            except Exception:
                _logger.warning("Alarm stop failed during shutdown", exc_info=True)

    async def drain(self) -> None:
        """Wait for outstanding alarm requests to finish."""
        while self._alarm_tasks:
            await asyncio.gather(*list(self._alarm_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def handle_update(self, devices: Mapping[str, Any]) -> list[AlertEvent]:
        """Process one full feed mapping and return the alert events it caused."""
        self._set_connectivity(Connectivity.ONLINE)

        emitted: list[AlertEvent] = []
        for device_id, snapshot in normalize_feed(devices, clock=self._clock).items():
            emitted.extend(self._process(device_id, snapshot))
        return emitted

    def _process(self, device_id: str, snapshot: SensorSnapshot) -> list[AlertEvent]:
        self._snapshots[device_id] = snapshot
        self._history.record(snapshot)

        assessment = evaluate(snapshot, self._thresholds)
        self._assessments[device_id] = assessment

        events = self._alerts.observe(snapshot, assessment)
        for event in events:
            _logger.info("Device %s: %s", event.device_id, event.kind.value)
            if event.kind.is_fire:
                self._request_alarm(event.kind)
            self._notify_alert(event)
        return events

    def handle_feed_error(self, error: BaseException) -> None:
        """Record a feed transport failure; alert and history state stay as they are."""
        _logger.warning("Feed error, state frozen until the feed recovers: %s", error)
        self._set_connectivity(Connectivity.DEGRADED)

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    def _request_alarm(self, kind: AlertKind) -> None:
        if self._alarm is None or not self._config.alerts_enabled:
            return

        # Single session: a clear from one device silences every device.
        starting = kind == AlertKind.FIRE_ONSET
        self._alarm_requested = starting
        action = "start" if starting else "stop"
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("No running event loop; alarm %s request dropped", action)
            return

        coro = self._alarm.start() if starting else self._alarm.stop()
        task = loop.create_task(coro)
        self._alarm_tasks.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._alarm_tasks.discard(finished)
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is not None:
                _logger.warning("Alarm %s failed: %s", action, exc, exc_info=exc)

        task.add_done_callback(_done)

    def _notify_alert(self, event: AlertEvent) -> None:
        for listener in list(self._alert_listeners):
            try:
                listener(event)
            except Exception:
                _logger.exception("Alert listener failed for %s", event.kind.value)

    def _set_connectivity(self, connectivity: Connectivity) -> None:
        if connectivity == self._connectivity:
            return
        previous = self._connectivity
        self._connectivity = connectivity
        _logger.info("Feed connectivity %s -> %s", previous.value, connectivity.value)
        for listener in list(self._connectivity_listeners):
            try:
                listener(connectivity)
            except Exception:
                _logger.exception("Connectivity listener failed")

    # ------------------------------------------------------------------
    # Read boundaries
    # ------------------------------------------------------------------

    def subscribe_to_alert_events(self, listener: AlertListener) -> Callable[[], None]:
        """Register *listener* for every alert transition; returns an unsubscribe callable."""
        self._alert_listeners.append(listener)
        return _remove_listener(self._alert_listeners, listener)

    def subscribe_to_connectivity(self, listener: ConnectivityListener) -> Callable[[], None]:
        self._connectivity_listeners.append(listener)
        return _remove_listener(self._connectivity_listeners, listener)

    @property
    def connectivity(self) -> Connectivity:
        return self._connectivity

    @property
    def device_ids(self) -> list[str]:
        return list(self._snapshots)

    def get_alert_state(self, device_id: str) -> DeviceAlertState:
        return self._alerts.get_state(device_id)

    def get_history(self, device_id: str, metric: Metric | str) -> list[float]:
        return self._history.get_history(device_id, metric)

    def get_history_snapshot(self, device_id: str) -> dict[Metric, list[float]]:
        return self._history.snapshot(device_id)

    def get_snapshot(self, device_id: str) -> SensorSnapshot | None:
        return self._snapshots.get(device_id)

    def get_assessment(self, device_id: str) -> HazardAssessment | None:
        return self._assessments.get(device_id)

    def card_status(self, device_id: str) -> CardStatus | None:
        snapshot = self._snapshots.get(device_id)
        if snapshot is None:
            return None
        return card_status(snapshot, self._thresholds)

    def map_markers(self) -> list[MapMarker]:
        markers: list[MapMarker] = []
        for snapshot in self._snapshots.values():
            marker = map_marker(snapshot, self._thresholds)
            if marker is not None:
                markers.append(marker)
        return markers

    def map_region(self) -> MapRegion | None:
        return map_region(self.map_markers())
