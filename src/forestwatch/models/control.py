"""Actuator control command model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class ControlCommand(BaseModel):
    """Actuator toggles written to a device node.

    Only the toggles that are set are written; the device keeps its other
    settings.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    flame_enabled: bool | None = None
    servo_enabled: bool | None = None

    @model_validator(mode="after")
    def _require_toggle(self) -> ControlCommand:
        if self.flame_enabled is None and self.servo_enabled is None:
            raise ValueError("at least one of flame_enabled / servo_enabled must be set")
        return self

    def to_patch(self) -> dict[str, Any]:
        """Return the camelCase patch body for the feed provider."""
        return self.model_dump(by_alias=True, exclude_none=True)
