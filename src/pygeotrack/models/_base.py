"""Base model for pygeotrack records and requests.

Every public model inherits from :class:`GeoBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase wire keys (``assignedTo``,
  ``locationHistory``) map automatically to snake_case fields.
* ``frozen=True`` so a committed record can be shared with concurrent
  readers without copying.
* A ``model_validator(mode="before")`` that drops ``None`` and blank string
  values so the field default is used instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def is_blank(value: Any) -> bool:
    """Return ``True`` for ``None`` and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class GeoBaseModel(BaseModel):
    """Base for pygeotrack models."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any], keep: frozenset[str] = frozenset()) -> dict[str, Any]:
        """Drop blank values from *values*, except for keys listed in *keep*."""
        return {key: value for key, value in values.items() if key in keep or not is_blank(value)}

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return GeoBaseModel._clean_dict(values)

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-safe dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)
