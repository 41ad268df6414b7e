"""Snapshot normalization.

Turns one raw device node from the feed into a :class:`SensorSnapshot`.
Normalization never raises: malformed fields become unknown and are
reported at DEBUG level only.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from forestwatch._redact import redact_for_log
from forestwatch.ingestion.normalize import unwrap_device_payload
from forestwatch.models.snapshot import NUMERIC_FIELDS, SensorSnapshot

_logger = logging.getLogger(__name__)

# Keys that collide with model bookkeeping fields and never come from a sensor.
_RESERVED_KEYS = frozenset({"raw", "deviceId", "device_id", "observedAt", "observed_at"})

_CHECKED_KEYS: dict[str, str] = {
    "temperature": "temperature",
    "humidity": "humidity",
    "gas": "gas",
    "smoke": "smoke",
    "flameAnalog": "flame_analog",
    "ldrAnalog": "ldr_analog",
    "rainAnalog": "rain_analog",
    "rainPercent": "rain_percent",
    "geofenceRadius": "geofence_radius",
    "latitude": "latitude",
    "longitude": "longitude",
    "flameDigital": "flame_digital",
    "timestamp": "timestamp",
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _log_rejected(device_id: str, payload: Mapping[str, Any], snapshot: SensorSnapshot) -> None:
    if not _logger.isEnabledFor(logging.DEBUG):
        return
    for key, field_name in _CHECKED_KEYS.items():
        value = payload.get(key)
        if value is not None and getattr(snapshot, field_name) is None:
            kind = "non-numeric" if field_name in NUMERIC_FIELDS else "invalid"
            _logger.debug("Device %s: ignoring %s %s=%r", device_id, kind, key, value)
    marker = payload.get("fireDetected")
    if marker is not None and snapshot.fire_detected is False and not isinstance(marker, str):
        _logger.debug("Device %s: fireDetected=%r is not the string marker", device_id, marker)


def normalize(
    device_id: str,
    raw_payload: Any,
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> SensorSnapshot:
    """Normalize a raw device node into a snapshot.

    Parameters
    ----------
    device_id
        Feed key of the device.
    raw_payload
        The device node as delivered by the feed. Readings may sit at the
        top level, under ``last`` or under ``last.data``.
    clock
        Source for ``observed_at``.

    Returns
    -------
    SensorSnapshot
        Always a snapshot; unusable fields are ``None``.
    """

    payload = unwrap_device_payload(raw_payload)
    if not payload and raw_payload is not None:
        _logger.debug("Device %s: payload has no readings: %r", device_id, redact_for_log(raw_payload))

    values = {
        key: value for key, value in payload.items() if isinstance(key, str) and key not in _RESERVED_KEYS
    }
    raw = {str(k): v for k, v in raw_payload.items()} if isinstance(raw_payload, Mapping) else {}
    observed_at = clock()

    try:
        snapshot = SensorSnapshot.model_validate(
            {**values, "device_id": device_id, "observed_at": observed_at, "raw": raw}
        )
    except ValidationError:
        # Field validators already map bad values to None; this only trips on
        # payload shapes nobody anticipated.
        _logger.debug("Device %s: payload failed validation", device_id, exc_info=True)
        return SensorSnapshot(device_id=device_id, observed_at=observed_at, raw=raw)

    _log_rejected(device_id, payload, snapshot)
    return snapshot


def normalize_feed(
    devices: Mapping[str, Any],
    *,
    clock: Callable[[], datetime] = _utcnow,
) -> dict[str, SensorSnapshot]:
    """Normalize a full feed mapping of device id -> raw node."""
    snapshots: dict[str, SensorSnapshot] = {}
    for device_id, node in devices.items():
        key = str(device_id).strip()
        if not key:
            _logger.debug("Skipping feed entry with empty device id")
            continue
        if key in snapshots:
            _logger.debug("Feed key %r collides with device %s after trimming; later entry wins", device_id, key)
        snapshots[key] = normalize(key, node, clock=clock)
    return snapshots
