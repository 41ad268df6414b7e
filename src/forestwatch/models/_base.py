"""Base model for forestwatch payload models.

Every model parsed from a device payload inherits from
:class:`ForestBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys the firmware sends
  map automatically to snake_case fields.
* Immutability (``frozen=True``) and tolerance of unknown keys.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class ForestBaseModel(BaseModel):
    """Base for models built from device payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        """Stash the incoming payload in ``raw`` unless the caller supplied one."""
        if not isinstance(values, dict):
            return values
        if "raw" in values:
            return values
        stashed = dict(values)
        stashed["raw"] = dict(values)
        return stashed
