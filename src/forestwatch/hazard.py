"""Hazard evaluation and display classification.

Everything here is a pure function of a snapshot and a threshold set.
Fire danger is the OR of several independent proxies (string marker,
digital flame pin, temperature, gas) rather than a fused score: each
channel can fail on its own. An unknown operand makes its own disjunct
false and never raises.

Two consumers look at the same channels with different thresholds:

* the alerting path (:func:`evaluate`) uses ``fire_gas_alert_threshold``
  and ``heavy_rain_percent_alert_threshold``;
* the styling path (:func:`card_status`, :func:`map_marker`) uses
  ``fire_gas_warning_threshold`` and the caution thresholds.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from forestwatch._constants import (
    DEFAULT_GEOFENCE_RADIUS,
    FIRE_GAS_ALERT_THRESHOLD,
    FIRE_GAS_WARNING_THRESHOLD,
    FIRE_TEMPERATURE_THRESHOLD,
    FLAME_DIGITAL_ACTIVE,
    HEAVY_RAIN_ANALOG_THRESHOLD,
    HEAVY_RAIN_PERCENT_ALERT_THRESHOLD,
    SINGLE_MARKER_REGION_DELTA,
    WARNING_GAS_THRESHOLD,
    WARNING_RAIN_PERCENT_THRESHOLD,
    WARNING_TEMPERATURE_THRESHOLD,
)
from forestwatch.config import ForestWatchConfig
from forestwatch.models.hazard import CardStatus, HazardAssessment, MapMarker, MapRegion
from forestwatch.models.snapshot import SensorSnapshot


@dataclasses.dataclass(frozen=True)
class HazardThresholds:
    """Threshold set shared by the alerting and styling paths."""

    fire_temperature: float = FIRE_TEMPERATURE_THRESHOLD
    fire_gas_alert: float = FIRE_GAS_ALERT_THRESHOLD
    fire_gas_warning: float = FIRE_GAS_WARNING_THRESHOLD
    heavy_rain_analog: float = HEAVY_RAIN_ANALOG_THRESHOLD
    heavy_rain_percent_alert: float = HEAVY_RAIN_PERCENT_ALERT_THRESHOLD
    warning_rain_percent: float = WARNING_RAIN_PERCENT_THRESHOLD
    warning_temperature: float = WARNING_TEMPERATURE_THRESHOLD
    warning_gas: float = WARNING_GAS_THRESHOLD
    default_geofence_radius: float = DEFAULT_GEOFENCE_RADIUS

    @classmethod
    def from_config(cls, config: ForestWatchConfig) -> HazardThresholds:
        return cls(
            fire_temperature=config.fire_temperature_threshold,
            fire_gas_alert=config.fire_gas_alert_threshold,
            fire_gas_warning=config.fire_gas_warning_threshold,
            heavy_rain_analog=config.heavy_rain_analog_threshold,
            heavy_rain_percent_alert=config.heavy_rain_percent_alert_threshold,
            warning_rain_percent=config.warning_rain_percent_threshold,
            warning_temperature=config.warning_temperature_threshold,
            warning_gas=config.warning_gas_threshold,
            default_geofence_radius=config.default_geofence_radius,
        )


DEFAULT_THRESHOLDS = HazardThresholds()


def _above(value: float | None, threshold: float) -> bool:
    return value is not None and value > threshold


def _at_least(value: float | None, threshold: float) -> bool:
    return value is not None and value >= threshold


def _fire_signal(snapshot: SensorSnapshot) -> bool:
    """String marker or digital pin; the two are independent signals."""
    return snapshot.fire_detected is True or snapshot.flame_digital == FLAME_DIGITAL_ACTIVE


def evaluate(snapshot: SensorSnapshot, thresholds: HazardThresholds = DEFAULT_THRESHOLDS) -> HazardAssessment:
    """Map a snapshot to its alert-level hazard flags."""
    fire_danger = (
        _fire_signal(snapshot)
        or _above(snapshot.temperature, thresholds.fire_temperature)
        or _above(snapshot.gas, thresholds.fire_gas_alert)
    )
    heavy_rain = _at_least(snapshot.rain_analog, thresholds.heavy_rain_analog) or _at_least(
        snapshot.rain_percent, thresholds.heavy_rain_percent_alert
    )
    return HazardAssessment(
        fire_danger=fire_danger,
        heavy_rain=heavy_rain,
        unknown=not snapshot.has_hazard_fields,
    )


def card_status(snapshot: SensorSnapshot, thresholds: HazardThresholds = DEFAULT_THRESHOLDS) -> CardStatus:
    """Styling level of a device overview card.

    Danger uses the gas *warning* threshold, so a card can turn red while
    no fire alert has been raised.
    """
    if (
        _fire_signal(snapshot)
        or _above(snapshot.temperature, thresholds.fire_temperature)
        or _above(snapshot.gas, thresholds.fire_gas_warning)
    ):
        return CardStatus.DANGER
    if (
        _above(snapshot.temperature, thresholds.warning_temperature)
        or _above(snapshot.gas, thresholds.warning_gas)
        or _above(snapshot.rain_percent, thresholds.warning_rain_percent)
    ):
        return CardStatus.WARNING
    return CardStatus.NORMAL


def _format_reading(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:g}"


def map_marker(snapshot: SensorSnapshot, thresholds: HazardThresholds = DEFAULT_THRESHOLDS) -> MapMarker | None:
    """Marker data for a device, or ``None`` when it has no position."""
    if snapshot.latitude is None or snapshot.longitude is None:
        return None

    alert = (
        snapshot.fire_detected is True
        or _above(snapshot.temperature, thresholds.fire_temperature)
        or _above(snapshot.gas, thresholds.fire_gas_warning)
        or _at_least(snapshot.rain_analog, thresholds.heavy_rain_analog)
    )
    radius = snapshot.geofence_radius
    if radius is None or radius <= 0:
        radius = thresholds.default_geofence_radius

    return MapMarker(
        device_id=snapshot.device_id,
        latitude=snapshot.latitude,
        longitude=snapshot.longitude,
        alert=alert,
        radius=radius,
        description=f"Temp: {_format_reading(snapshot.temperature)} | Gas: {_format_reading(snapshot.gas)}",
    )


def map_region(markers: Iterable[MapMarker]) -> MapRegion | None:
    """Region that frames every marker.

    A single marker is framed with a fixed zoom; several markers get their
    bounding box.
    """
    points = [(marker.latitude, marker.longitude) for marker in markers]
    if not points:
        return None
    if len(points) == 1:
        lat, lon = points[0]
        return MapRegion(
            latitude=lat,
            longitude=lon,
            latitude_delta=SINGLE_MARKER_REGION_DELTA,
            longitude_delta=SINGLE_MARKER_REGION_DELTA,
        )

    lats = [lat for lat, _ in points]
    lons = [lon for _, lon in points]
    return MapRegion(
        latitude=(min(lats) + max(lats)) / 2,
        longitude=(min(lons) + max(lons)) / 2,
        latitude_delta=max(max(lats) - min(lats), SINGLE_MARKER_REGION_DELTA),
        longitude_delta=max(max(lons) - min(lons), SINGLE_MARKER_REGION_DELTA),
    )
