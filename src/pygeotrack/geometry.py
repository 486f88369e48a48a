"""Geometry utilities: points, rings, great-circle distance and containment.

Everything here is a pure function over immutable values.  Coordinates are
always ``(longitude, latitude)`` in degrees, the GeoJSON order.

Boundary policy: :func:`point_in_polygon` is boundary-inclusive.  A point
lying exactly on an edge or a vertex of the ring counts as inside.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.prepared import PreparedGeometry, prep

from pygeotrack.exceptions import InvalidGeometry

#: Mean Earth radius in meters.
EARTH_RADIUS_METERS: float = 6_371_000.0

#: A closed ring needs three distinct vertices plus the repeated first one.
MIN_RING_POINTS = 4


class Point(BaseModel):
    """A WGS84 position in ``(longitude, latitude)`` order."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)
    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.longitude, self.latitude)

    def to_geojson(self) -> dict[str, Any]:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


def _coerce_coordinate(value: Any, name: str) -> float:
    """Parse one coordinate, accepting numbers and numeric strings."""
    if isinstance(value, bool):
        raise InvalidGeometry(f"{name} must be a number, got {value!r}", field=name)
    if isinstance(value, str):
        value = value.strip()
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidGeometry(f"{name} must be a number, got {value!r}", field=name) from exc
    if not math.isfinite(result):
        raise InvalidGeometry(f"{name} must be finite, got {value!r}", field=name)
    return result


def validate_point(longitude: Any, latitude: Any) -> Point:
    """Validate a coordinate pair and return it as a :class:`Point`.

    Raises
    ------
    InvalidGeometry
        If either coordinate is missing, non-numeric, non-finite or out of
        range.  Supplying only one of the pair is an error.
    """
    if longitude is None and latitude is None:
        raise InvalidGeometry("longitude and latitude are required", field="longitude")
    if longitude is None or latitude is None:
        missing = "longitude" if longitude is None else "latitude"
        raise InvalidGeometry("longitude and latitude must be supplied together", field=missing)

    lon = _coerce_coordinate(longitude, "longitude")
    lat = _coerce_coordinate(latitude, "latitude")
    if not -180.0 <= lon <= 180.0:
        raise InvalidGeometry(f"longitude out of range [-180, 180]: {lon}", field="longitude")
    if not -90.0 <= lat <= 90.0:
        raise InvalidGeometry(f"latitude out of range [-90, 90]: {lat}", field="latitude")
    return Point(longitude=lon, latitude=lat)


def _as_point(value: Any) -> Point:
    if isinstance(value, Point):
        return value
    if isinstance(value, dict):
        return validate_point(value.get("longitude"), value.get("latitude"))
    if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
        return validate_point(value[0], value[1])
    raise InvalidGeometry(f"polygon vertex must be a [longitude, latitude] pair, got {value!r}", field="polygon")


def validate_polygon(points: Iterable[Any] | None) -> tuple[Point, ...]:
    """Validate a closed ring of vertices.

    Vertices may be :class:`Point` instances or ``[lon, lat]`` pairs.  The
    ring is not auto-closed: the first and last vertex must be identical.

    Raises
    ------
    InvalidGeometry
        If the ring is missing, has fewer than four vertices, contains an
        invalid vertex or is not closed.
    """
    if points is None:
        raise InvalidGeometry("polygon is required", field="polygon")
    ring = tuple(_as_point(p) for p in points)
    if len(ring) < MIN_RING_POINTS:
        raise InvalidGeometry(
            f"polygon must have at least {MIN_RING_POINTS} points (closed loop), got {len(ring)}",
            field="polygon",
        )
    if ring[0] != ring[-1]:
        raise InvalidGeometry("polygon must be a closed loop (first and last points must match)", field="polygon")
    return ring


def haversine_distance_meters(p1: Point, p2: Point) -> float:
    """Great-circle distance between two points in meters."""
    lat1 = math.radians(p1.latitude)
    lat2 = math.radians(p2.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(p2.longitude - p1.longitude)

    a = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # Clamp rounding noise for antipodal points.
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def to_shapely_polygon(ring: Sequence[Point]) -> ShapelyPolygon:
    return ShapelyPolygon([p.coordinates for p in ring])


def prepare_polygon(ring: Sequence[Point]) -> PreparedGeometry:
    """Prepared polygon for repeated containment tests against one ring."""
    return prep(to_shapely_polygon(ring))


def point_in_polygon(point: Point, polygon: Sequence[Point] | ShapelyPolygon | PreparedGeometry) -> bool:
    """Boundary-inclusive point-in-ring test."""
    if isinstance(polygon, ShapelyPolygon | PreparedGeometry):
        shape = polygon
    else:
        shape = to_shapely_polygon(polygon)
    return bool(shape.covers(ShapelyPoint(point.coordinates)))


BoundingBox = tuple[float, float, float, float]
"""``(min_lon, min_lat, max_lon, max_lat)`` in degrees."""


def radius_bounding_box(center: Point, radius_meters: float) -> BoundingBox:
    """Conservative envelope of every point within *radius_meters* of *center*.

    The longitude span widens to the full band when the circle reaches a pole
    or wraps across the antimeridian.
    """
    d_lat = math.degrees(radius_meters / EARTH_RADIUS_METERS)
    min_lat = center.latitude - d_lat
    max_lat = center.latitude + d_lat
    if min_lat <= -90.0 or max_lat >= 90.0:
        return (-180.0, max(min_lat, -90.0), 180.0, min(max_lat, 90.0))

    # Widest longitude offset occurs at the latitude edge closest to a pole.
    widest_lat = math.radians(max(abs(min_lat), abs(max_lat)))
    d_lon = d_lat / math.cos(widest_lat)
    min_lon = center.longitude - d_lon
    max_lon = center.longitude + d_lon
    if d_lon >= 180.0 or min_lon < -180.0 or max_lon > 180.0:
        return (-180.0, min_lat, 180.0, max_lat)
    return (min_lon, min_lat, max_lon, max_lat)


def polygon_bounds(ring: Sequence[Point]) -> BoundingBox:
    lons = [p.longitude for p in ring]
    lats = [p.latitude for p in ring]
    return (min(lons), min(lats), max(lons), max(lats))
