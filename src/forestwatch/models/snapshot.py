"""Per-device sensor snapshot model."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from forestwatch.ingestion.normalize import (
    fire_marker,
    parse_timestamp,
    safe_str,
    strict_digital,
    strict_number,
)
from forestwatch.models._base import ForestBaseModel


class Metric(StrEnum):
    """Numeric channels tracked by the history aggregator.

    Values are the payload (camelCase) key names.
    """

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    GAS = "gas"
    SMOKE = "smoke"
    FLAME_ANALOG = "flameAnalog"
    LDR_ANALOG = "ldrAnalog"
    RAIN_ANALOG = "rainAnalog"
    RAIN_PERCENT = "rainPercent"


_METRIC_FIELDS: dict[Metric, str] = {
    Metric.TEMPERATURE: "temperature",
    Metric.HUMIDITY: "humidity",
    Metric.GAS: "gas",
    Metric.SMOKE: "smoke",
    Metric.FLAME_ANALOG: "flame_analog",
    Metric.LDR_ANALOG: "ldr_analog",
    Metric.RAIN_ANALOG: "rain_analog",
    Metric.RAIN_PERCENT: "rain_percent",
}

#: Fields the hazard evaluator reads.
HAZARD_FIELDS: tuple[str, ...] = (
    "fire_detected",
    "flame_digital",
    "temperature",
    "gas",
    "rain_analog",
    "rain_percent",
)

NUMERIC_FIELDS: tuple[str, ...] = (
    "temperature",
    "humidity",
    "gas",
    "smoke",
    "flame_analog",
    "ldr_analog",
    "rain_analog",
    "rain_percent",
    "geofence_radius",
    "latitude",
    "longitude",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SensorSnapshot(ForestBaseModel):
    """Latest known reading for one device.

    Every sensor field is ``None`` when the payload omits it or carries a
    value of the wrong type. Nothing is defaulted to zero.

    Parameters
    ----------
    device_id : str
        Feed key of the device.
    temperature, humidity, gas : float or None
        Environmental readings.
    smoke : float or None
        Smoke reading sent by older firmware next to or instead of ``gas``.
        Charted only; hazard evaluation reads ``gas``.
    flame_analog, ldr_analog, rain_analog : float or None
        Raw analog sensor readings.
    rain_percent : float or None
        Rain sensor wetness in percent.
    geofence_radius : float or None
        Alert radius around the device in metres.
    latitude, longitude : float or None
        Device position in degrees.
    fire_detected : bool or None
        ``True`` only for the ``"true"`` marker string, ``False`` for any
        other present value, ``None`` when absent.
    flame_digital : int or None
        Digital flame pin (0/1).
    light_description, rain_status : str or None
        Human-readable labels computed on the device.
    timestamp : datetime or None
        Time carried by the payload.
    observed_at : datetime
        Time the snapshot was normalized.
    raw : dict
        Original payload.
    """

    device_id: str
    temperature: float | None = None
    humidity: float | None = None
    gas: float | None = None
    smoke: float | None = None
    flame_analog: float | None = None
    ldr_analog: float | None = None
    rain_analog: float | None = None
    rain_percent: float | None = None
    geofence_radius: float | None = None
    latitude: float | None = None
    longitude: float | None = None
    fire_detected: bool | None = None
    flame_digital: int | None = None
    light_description: str | None = None
    rain_status: str | None = None
    timestamp: datetime | None = None
    observed_at: datetime = Field(default_factory=_utcnow)

    @field_validator(*NUMERIC_FIELDS, mode="before")
    @classmethod
    def _strict_numbers(cls, value: Any) -> float | None:
        return strict_number(value)

    @field_validator("fire_detected", mode="before")
    @classmethod
    def _fire_marker(cls, value: Any) -> bool | None:
        return fire_marker(value)

    @field_validator("flame_digital", mode="before")
    @classmethod
    def _digital_pin(cls, value: Any) -> int | None:
        return strict_digital(value)

    @field_validator("light_description", "rain_status", mode="before")
    @classmethod
    def _labels(cls, value: Any) -> str | None:
        return safe_str(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @property
    def hazard_field_count(self) -> int:
        """Number of hazard-relevant fields carrying a usable value."""
        return sum(1 for name in HAZARD_FIELDS if getattr(self, name) is not None)

    @property
    def has_hazard_fields(self) -> bool:
        return self.hazard_field_count > 0

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def metric_value(self, metric: Metric) -> float | None:
        return getattr(self, _METRIC_FIELDS[Metric(metric)])

    def metric_values(self) -> dict[Metric, float]:
        """Known tracked metrics of this snapshot, in :class:`Metric` order."""
        values: dict[Metric, float] = {}
        for metric, field_name in _METRIC_FIELDS.items():
            value = getattr(self, field_name)
            if value is not None:
                values[metric] = value
        return values
