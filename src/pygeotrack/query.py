"""Proximity and containment queries over live asset positions.

Both queries pre-filter with the store's spatial index and then apply the
exact test (haversine distance, boundary-inclusive containment).  Only the
live ``location`` is ever tested; archived positions are never matched.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pygeotrack.geometry import (
    haversine_distance_meters,
    point_in_polygon,
    polygon_bounds,
    prepare_polygon,
    radius_bounding_box,
)
from pygeotrack.models.asset import Asset, AssetStatus
from pygeotrack.models.requests import NearbyRequest, ZoneRequest, parse_request
from pygeotrack.state.store import AssetStore

_logger = logging.getLogger(__name__)

DEFAULT_RADIUS_METERS: float = 1000.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AssetSummary(BaseModel):
    """Fleet status counts."""

    model_config = ConfigDict(frozen=True)

    total_assets: int = 0
    status_counts: dict[AssetStatus, int] = Field(default_factory=dict)
    recent_activity: int = Field(default=0, description="Assets updated within the recent window")


class QueryEngine:
    """Read-only queries against an :class:`AssetStore`."""

    def __init__(
        self,
        store: AssetStore,
        *,
        default_radius_meters: float = DEFAULT_RADIUS_METERS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._default_radius_meters = default_radius_meters
        self._clock = clock

    async def find_nearby(
        self,
        longitude: Any = None,
        latitude: Any = None,
        radius_meters: float | None = None,
        *,
        ranked: bool = False,
    ) -> list[Asset]:
        """Assets whose live position lies within *radius_meters* of the query point.

        Parameters
        ----------
        longitude, latitude
            Query point.  Both are required.
        radius_meters
            Great-circle radius; defaults to the configured radius (1000 m).
        ranked
            Sort nearest first.  Without it the order is unspecified.

        Raises
        ------
        ValidationError
            If the point is missing or invalid, or the radius is negative.
        """
        params: dict[str, Any] = {"longitude": longitude, "latitude": latitude}
        if radius_meters is not None:
            params["radius"] = radius_meters
        request = parse_request(NearbyRequest, params)
        return await self.nearby(request, ranked=ranked)

    async def nearby(self, request: NearbyRequest | Mapping[str, Any], *, ranked: bool = False) -> list[Asset]:
        req = parse_request(NearbyRequest, request)
        center = req.position
        radius = req.radius_meters if req.radius_meters is not None else self._default_radius_meters

        candidate_ids = self._store.index.candidates(radius_bounding_box(center, radius))
        candidates = await self._store.get_many(candidate_ids)

        matches: list[tuple[float, Asset]] = []
        for asset in candidates:
            distance = haversine_distance_meters(center, asset.location)
            if distance <= radius:
                matches.append((distance, asset))
        if ranked:
            matches.sort(key=lambda item: item[0])

        _logger.debug(
            "Nearby query center=%s radius=%.1f candidates=%d matches=%d",
            center.coordinates,
            radius,
            len(candidates),
            len(matches),
        )
        return [asset for _, asset in matches]

    async def find_in_zone(self, polygon_points: Iterable[Any] | None) -> list[Asset]:
        """Assets whose live position lies inside or on the boundary of a closed ring.

        Raises
        ------
        ValidationError
            If the ring has fewer than four points, an invalid vertex or is
            not closed.
        """
        points = list(polygon_points) if polygon_points is not None else None
        return await self.in_zone(parse_request(ZoneRequest, {"coordinates": points}))

    async def in_zone(self, request: ZoneRequest | Mapping[str, Any]) -> list[Asset]:
        req = parse_request(ZoneRequest, request)
        shape = prepare_polygon(req.polygon)

        candidate_ids = self._store.index.candidates(polygon_bounds(req.polygon))
        candidates = await self._store.get_many(candidate_ids)
        matches = [asset for asset in candidates if point_in_polygon(asset.location, shape)]

        _logger.debug("Zone query vertices=%d candidates=%d matches=%d", len(req.polygon), len(candidates), len(matches))
        return matches

    async def summarize(self, *, recent_within: timedelta = timedelta(days=7)) -> AssetSummary:
        """Total count, per-status counts and assets updated within *recent_within*."""
        assets = await self._store.list_assets()
        cutoff = self._clock() - recent_within
        counts = Counter(asset.status for asset in assets)
        return AssetSummary(
            total_assets=len(assets),
            status_counts={status: counts.get(status, 0) for status in AssetStatus},
            recent_activity=sum(1 for asset in assets if asset.updated_at >= cutoff),
        )
