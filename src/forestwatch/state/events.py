"""Alert and connectivity events.

The alert state machines emit these on latch transitions. Listeners
registered on the monitor receive them in emission order.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AlertKind(StrEnum):
    FIRE_ONSET = "fire_onset"
    FIRE_CLEAR = "fire_clear"
    RAIN_ONSET = "rain_onset"
    RAIN_CLEAR = "rain_clear"

    @property
    def is_fire(self) -> bool:
        return self in (AlertKind.FIRE_ONSET, AlertKind.FIRE_CLEAR)

    @property
    def is_onset(self) -> bool:
        return self in (AlertKind.FIRE_ONSET, AlertKind.RAIN_ONSET)


class Connectivity(StrEnum):
    """Feed health as seen by the monitor."""

    DISCONNECTED = "disconnected"
    ONLINE = "online"
    DEGRADED = "degraded"


class AlertEvent(BaseModel):
    """An edge-triggered alert transition for one device."""

    model_config = ConfigDict(frozen=True)

    kind: AlertKind
    device_id: str = Field(..., description="Feed key of the device")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("device_id")
    @classmethod
    def _normalize_device_id(cls, value: str) -> str:
        device_id = value.strip()
        if not device_id:
            raise ValueError("device_id must be non-empty")
        return device_id

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
