"""Data models for forestwatch."""

from forestwatch.models._base import ForestBaseModel
from forestwatch.models.control import ControlCommand
from forestwatch.models.hazard import CardStatus, HazardAssessment, MapMarker, MapRegion
from forestwatch.models.snapshot import HAZARD_FIELDS, Metric, SensorSnapshot

__all__ = [
    "CardStatus",
    "ControlCommand",
    "ForestBaseModel",
    "HAZARD_FIELDS",
    "HazardAssessment",
    "MapMarker",
    "MapRegion",
    "Metric",
    "SensorSnapshot",
]
