"""Spatial index over live asset positions.

The index answers one question: which asset ids *might* lie inside a
bounding box.  Exact distance and containment checks happen in the query
engine, so an index may over-report but must never under-report.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Protocol

from pygeotrack.geometry import BoundingBox, Point

Cell = tuple[int, int]


class SpatialIndex(Protocol):
    def upsert(self, asset_id: str, location: Point) -> None: ...

    def remove(self, asset_id: str) -> None: ...

    def candidates(self, bbox: BoundingBox) -> set[str]: ...

    def __len__(self) -> int: ...


class GridIndex:
    """Uniform lon/lat grid bucketing ids by cell."""

    def __init__(self, cell_degrees: float = 0.1) -> None:
        if cell_degrees <= 0:
            raise ValueError("cell_degrees must be positive")
        self._cell_degrees = cell_degrees
        self._cells: dict[Cell, set[str]] = {}
        self._positions: dict[str, Cell] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def _cell(self, lon: float, lat: float) -> Cell:
        return (math.floor(lon / self._cell_degrees), math.floor(lat / self._cell_degrees))

    def upsert(self, asset_id: str, location: Point) -> None:
        cell = self._cell(location.longitude, location.latitude)
        previous = self._positions.get(asset_id)
        if previous == cell:
            return
        if previous is not None:
            self._discard(asset_id, previous)
        self._cells.setdefault(cell, set()).add(asset_id)
        self._positions[asset_id] = cell

    def remove(self, asset_id: str) -> None:
        cell = self._positions.pop(asset_id, None)
        if cell is not None:
            self._discard(asset_id, cell)

    def _discard(self, asset_id: str, cell: Cell) -> None:
        bucket = self._cells.get(cell)
        if bucket is None:
            return
        bucket.discard(asset_id)
        if not bucket:
            del self._cells[cell]

    def _cells_in(self, bbox: BoundingBox) -> Iterable[Cell]:
        min_x, min_y = self._cell(bbox[0], bbox[1])
        max_x, max_y = self._cell(bbox[2], bbox[3])
        span = (max_x - min_x + 1) * (max_y - min_y + 1)
        # Scanning occupied cells is cheaper than enumerating a huge empty box.
        if span > len(self._cells):
            return [c for c in self._cells if min_x <= c[0] <= max_x and min_y <= c[1] <= max_y]
        return ((x, y) for x in range(min_x, max_x + 1) for y in range(min_y, max_y + 1))

    def candidates(self, bbox: BoundingBox) -> set[str]:
        found: set[str] = set()
        for cell in self._cells_in(bbox):
            bucket = self._cells.get(cell)
            if bucket:
                found.update(bucket)
        return found
