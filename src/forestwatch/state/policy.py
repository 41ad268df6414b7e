"""First-observation alerting policy.

A device seen for the first time starts with both latches cleared. Whether
its alert state should advance right away, or only once it has reported
enough hazard channels to be trusted, is a deployment decision. This module
holds that decision and nothing else.
"""

from __future__ import annotations

from forestwatch.models.snapshot import SensorSnapshot


def meets_data_quality(snapshot: SensorSnapshot, min_hazard_fields: int) -> bool:
    """Return True if *snapshot* carries at least *min_hazard_fields* usable hazard fields."""
    if min_hazard_fields <= 0:
        return True
    return snapshot.hazard_field_count >= min_hazard_fields


def should_advance(*, qualified: bool, snapshot: SensorSnapshot, min_hazard_fields: int) -> bool:
    """Decide whether a device's alert state may advance on *snapshot*.

    Policy:
    - ``min_hazard_fields == 0``: always (devices are assumed safe and
      alert from their first snapshot).
    - Otherwise the device must have been qualified before, or qualify now.
      Qualification is sticky for the lifetime of the device.
    """
    return qualified or meets_data_quality(snapshot, min_hazard_fields)
