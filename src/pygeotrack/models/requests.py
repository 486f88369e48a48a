"""Pydantic request models for tracker entrypoints.

These models provide a consistent "validate → normalize → execute" flow.
They are used internally by :class:`pygeotrack.tracker.GeoTracker` and by
the store, so that every check runs before any state is touched.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any, TypeVar

import pydantic
from pydantic import Field, field_validator, model_validator

from pygeotrack.exceptions import ValidationError
from pygeotrack.geometry import Point, validate_point, validate_polygon
from pygeotrack.models._base import GeoBaseModel
from pygeotrack.models.asset import AssetStatus

TRequest = TypeVar("TRequest", bound=pydantic.BaseModel)

_LON_KEYS = ("longitude", "lng", "lon")
_LAT_KEYS = ("latitude", "lat")


def _pop_first(values: dict[str, Any], keys: tuple[str, ...]) -> Any:
    found = None
    for key in keys:
        value = values.pop(key, None)
        if found is None:
            found = value
    return found


def _lift_position(values: Any, *, required: bool) -> Any:
    """Fold loose ``longitude``/``latitude`` keys into a single ``position``.

    A position is all-or-nothing: one coordinate without the other is
    rejected, so a partial move can never reach the store.
    """
    if not isinstance(values, dict):
        return values
    working = GeoBaseModel._clean_dict(values)
    lon = _pop_first(working, _LON_KEYS)
    lat = _pop_first(working, _LAT_KEYS)
    if lon is None and lat is None:
        if required and "position" not in working:
            raise ValidationError("longitude and latitude are required", field="longitude")
        return working
    if "position" in working:
        raise ValidationError("pass either position or longitude/latitude, not both", field="position")
    working["position"] = validate_point(lon, lat)
    return working


def parse_request(model: type[TRequest], data: Mapping[str, Any] | TRequest) -> TRequest:
    """Validate *data* into *model*, mapping pydantic errors to :class:`ValidationError`."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", str(exc))
        raise ValidationError(f"{field or 'request'}: {message}", field=field) from exc


class AssetCreate(GeoBaseModel):
    """Payload for creating an asset."""

    name: str
    description: str | None = None
    status: AssetStatus = AssetStatus.ACTIVE
    position: Point
    assigned_to: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _collect_position(cls, values: Any) -> Any:
        return _lift_position(values, required=True)

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name must be non-empty")
        return name


class AssetPatch(GeoBaseModel):
    """Structured partial update.

    Every field is independently present or absent.  ``position`` carries
    both coordinates or is absent; blank ``name``/``description`` values
    mean "no change".
    """

    name: str | None = None
    description: str | None = None
    status: AssetStatus | None = None
    assigned_to: str | None = None
    position: Point | None = None

    @model_validator(mode="before")
    @classmethod
    def _collect_position(cls, values: Any) -> Any:
        return _lift_position(values, required=False)

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set


class NearbyRequest(GeoBaseModel):
    """Proximity query parameters."""

    position: Point
    radius_meters: float | None = Field(default=None, alias="radius")

    @model_validator(mode="before")
    @classmethod
    def _collect_position(cls, values: Any) -> Any:
        return _lift_position(values, required=True)

    @field_validator("radius_meters")
    @classmethod
    def _radius_non_negative(cls, value: float | None) -> float | None:
        if value is None:
            return value
        if not math.isfinite(value) or value < 0:
            raise ValueError("radius must be a finite, non-negative number of meters")
        return value


class ZoneRequest(GeoBaseModel):
    """Containment query parameters: a closed ring of ``[lon, lat]`` vertices."""

    polygon: tuple[Point, ...] = Field(alias="coordinates")

    @model_validator(mode="before")
    @classmethod
    def _validate_ring(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        working = dict(values)
        key = "coordinates" if "coordinates" in working else "polygon"
        working[key] = validate_polygon(working.get(key))
        return working
