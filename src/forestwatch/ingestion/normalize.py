"""Normalization helpers.

Centralizes strict field checks and feed layout handling. Unlike a lenient
parser, nothing here coerces text into numbers: ``"12"`` is not ``12``.
A value that fails its check becomes ``None`` ("unknown").
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from forestwatch._constants import (
    FIRE_DETECTED_MARKER,
    LAST_READING_KEY,
    MS_TIMESTAMP_THRESHOLD,
    NESTED_DATA_KEY,
)


def strict_number(value: Any) -> float | None:
    """Return *value* as float only if it already is a finite real number."""
    # bool is an int subclass; a JSON true must not read as 1.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    result = float(value)
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def strict_digital(value: Any) -> int | None:
    """Return a 0/1 pin value, or ``None`` for anything else."""
    number = strict_number(value)
    if number is None or number not in (0.0, 1.0):
        return None
    return int(number)


def fire_marker(value: Any) -> bool | None:
    """Tri-state reading of the string ``fireDetected`` flag.

    ``None`` when absent, ``True`` only for the marker string, ``False`` for
    every other value including a bare boolean ``True`` or ``1``.
    """
    if value is None:
        return None
    if isinstance(value, str) and value.strip() == FIRE_DETECTED_MARKER:
        return True
    return False


def safe_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text if text else None


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize feed timestamps to epoch seconds.

    - Missing / non-numeric -> None
    - <= 0 -> None
    - Milliseconds (> 1e11) -> seconds
    """

    ts = strict_number(value)
    if ts is None and isinstance(value, str):
        try:
            ts = float(value.strip())
        except ValueError:
            return None
        if math.isnan(ts) or math.isinf(ts):
            return None
    if ts is None or ts <= 0:
        return None
    if ts > MS_TIMESTAMP_THRESHOLD:
        ts /= 1000.0
    return ts


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a payload timestamp into an aware UTC datetime.

    Accepts epoch seconds/milliseconds (number or numeric text), ISO-8601
    text and datetimes. Naive values are taken as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    seconds = normalize_timestamp_seconds(value)
    if seconds is not None:
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    return None


def unwrap_device_payload(node: Any) -> dict[str, Any]:
    """Return the flat reading dict for one device node of the feed.

    Device nodes keep their latest reading under ``last``; some firmware
    revisions further wrap the values in ``data``. The nested values are
    merged under the outer keys (outer keys win). Anything that is not a
    mapping yields an empty dict.
    """

    if not isinstance(node, Mapping):
        return {}
    reading: Any = node.get(LAST_READING_KEY, node)
    if not isinstance(reading, Mapping):
        return {}

    flat = dict(reading)
    nested = flat.pop(NESTED_DATA_KEY, None)
    if isinstance(nested, Mapping):
        merged = dict(nested)
        merged.update(flat)
        return merged
    if nested is not None:
        flat[NESTED_DATA_KEY] = nested
    return flat
