"""Hazard assessment and display classification models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class HazardAssessment(BaseModel):
    """Hazard flags derived from a single snapshot.

    ``unknown`` is set when the snapshot carried no usable hazard field; the
    two flags are then both ``False`` but the device is not known to be safe.
    """

    model_config = ConfigDict(frozen=True)

    fire_danger: bool = False
    heavy_rain: bool = False
    unknown: bool = False

    @property
    def any_hazard(self) -> bool:
        return self.fire_danger or self.heavy_rain


class CardStatus(StrEnum):
    """Overview card styling level."""

    DANGER = "danger"
    WARNING = "warning"
    NORMAL = "normal"


class MapMarker(BaseModel):
    """Map marker data for one located device."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    latitude: float
    longitude: float
    alert: bool
    radius: float
    description: str


class MapRegion(BaseModel):
    """Visible map region covering a set of markers."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float
