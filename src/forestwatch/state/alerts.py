"""Per-device alert latches.

Each device gets one :class:`AlertStateMachine` holding two independent
latches. A latch goes up on hazard onset and comes down only when the same
hazard evaluates false again; unchanged hazards emit nothing, so a device
stuck above threshold raises one onset, not one per update.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from forestwatch.models.hazard import HazardAssessment
from forestwatch.models.snapshot import SensorSnapshot
from forestwatch.state.events import AlertEvent, AlertKind
from forestwatch.state.policy import meets_data_quality, should_advance

_logger = logging.getLogger(__name__)


class AlertLevel(StrEnum):
    SAFE = "safe"
    FIRE_ALERTED = "fire_alerted"
    RAIN_ALERTED = "rain_alerted"
    FIRE_AND_RAIN_ALERTED = "fire_and_rain_alerted"


class DeviceAlertState(BaseModel):
    """Read-only view of a device's two latches."""

    model_config = ConfigDict(frozen=True)

    fire_latched: bool = False
    rain_latched: bool = False

    @property
    def level(self) -> AlertLevel:
        if self.fire_latched and self.rain_latched:
            return AlertLevel.FIRE_AND_RAIN_ALERTED
        if self.fire_latched:
            return AlertLevel.FIRE_ALERTED
        if self.rain_latched:
            return AlertLevel.RAIN_ALERTED
        return AlertLevel.SAFE


SAFE_STATE = DeviceAlertState()


class AlertStateMachine:
    """Edge-triggered latches for a single device."""

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        self._fire_latched = False
        self._rain_latched = False

    @property
    def state(self) -> DeviceAlertState:
        return DeviceAlertState(fire_latched=self._fire_latched, rain_latched=self._rain_latched)

    def advance(self, assessment: HazardAssessment, snapshot: SensorSnapshot | None = None) -> list[AlertEvent]:
        """Apply one assessment and return the transitions it caused.

        Fire transitions are listed before rain transitions.
        """
        events: list[AlertEvent] = []
        observed_at = snapshot.observed_at if snapshot is not None else None

        if assessment.fire_danger != self._fire_latched:
            self._fire_latched = assessment.fire_danger
            kind = AlertKind.FIRE_ONSET if self._fire_latched else AlertKind.FIRE_CLEAR
            events.append(self._event(kind, observed_at))

        if assessment.heavy_rain != self._rain_latched:
            self._rain_latched = assessment.heavy_rain
            kind = AlertKind.RAIN_ONSET if self._rain_latched else AlertKind.RAIN_CLEAR
            events.append(self._event(kind, observed_at))

        return events

    def _event(self, kind: AlertKind, observed_at: datetime | None) -> AlertEvent:
        if observed_at is None:
            return AlertEvent(kind=kind, device_id=self.device_id)
        return AlertEvent(kind=kind, device_id=self.device_id, observed_at=observed_at)


class AlertTracker:
    """Device-keyed registry of alert state machines.

    Machines are created lazily on a device's first snapshot and kept for
    the tracker's lifetime.
    """

    def __init__(self, *, min_hazard_fields: int = 0) -> None:
        self._min_hazard_fields = min_hazard_fields
        self._machines: dict[str, AlertStateMachine] = {}
        self._qualified: set[str] = set()

    def _machine(self, device_id: str) -> AlertStateMachine:
        machine = self._machines.get(device_id)
        if machine is None:
            machine = AlertStateMachine(device_id)
            self._machines[device_id] = machine
        return machine

    def observe(self, snapshot: SensorSnapshot, assessment: HazardAssessment) -> list[AlertEvent]:
        """Advance the device's machine with a freshly evaluated snapshot."""
        device_id = snapshot.device_id
        machine = self._machine(device_id)

        qualified = device_id in self._qualified
        if not should_advance(qualified=qualified, snapshot=snapshot, min_hazard_fields=self._min_hazard_fields):
            _logger.debug(
                "Device %s: %d hazard field(s) below alerting minimum %d; holding alert state",
                device_id,
                snapshot.hazard_field_count,
                self._min_hazard_fields,
            )
            return []
        if not qualified and meets_data_quality(snapshot, self._min_hazard_fields):
            self._qualified.add(device_id)

        return machine.advance(assessment, snapshot)

    def get_state(self, device_id: str) -> DeviceAlertState:
        machine = self._machines.get(device_id)
        if machine is None:
            return SAFE_STATE
        return machine.state

    def is_qualified(self, device_id: str) -> bool:
        if self._min_hazard_fields <= 0:
            return device_id in self._machines
        return device_id in self._qualified

    @property
    def device_ids(self) -> list[str]:
        return list(self._machines)
