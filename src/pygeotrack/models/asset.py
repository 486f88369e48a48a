"""Asset and location history models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from pygeotrack.geometry import Point
from pygeotrack.models._base import GeoBaseModel


class AssetStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class HistoryEntry(GeoBaseModel):
    """An archived prior position, timestamped when it was archived.

    Parameters
    ----------
    location : Point
        The position the asset held before the move that archived it.
    timestamp : datetime
        UTC moment of archiving, not the moment the position was first set.
    """

    location: Point
    timestamp: datetime


class Asset(GeoBaseModel):
    """A tracked asset with its live position and archived positions.

    Instances are immutable.  The store replaces the whole record on every
    mutation, so a reader holding an ``Asset`` always sees one consistent
    version of it.

    Parameters
    ----------
    id : str
        Opaque identifier, assigned at creation.
    name : str
        Non-empty display name.
    description : str or None
        Optional free text.
    status : AssetStatus
        Operational status; defaults to ``active``.
    location : Point
        Most recently committed position.
    assigned_to : str or None
        Opaque reference to a user identity.
    location_history : tuple of HistoryEntry
        Archived positions in insertion order (oldest first).  Use
        :meth:`pygeotrack.state.store.AssetStore.get_history` for the
        newest-first view.
    created_at, updated_at : datetime
        Maintained by the store.
    """

    id: str
    name: str
    description: str | None = None
    status: AssetStatus = AssetStatus.ACTIVE
    location: Point
    assigned_to: str | None = None
    location_history: tuple[HistoryEntry, ...] = Field(default_factory=tuple)
    created_at: datetime
    updated_at: datetime

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name must be non-empty")
        return name

    def to_geojson(self) -> dict[str, Any]:
        """The asset as a GeoJSON ``Feature`` without its history."""
        properties = self.to_json_dict()
        properties.pop("location", None)
        properties.pop("locationHistory", None)
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": self.location.to_geojson(),
            "properties": properties,
        }
