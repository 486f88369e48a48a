"""Append-only location log.

The log is the single place that decides how archived positions are
ordered: timestamps never go backwards on append, and the newest-first
view is computed at read time rather than maintained pre-sorted.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

from pygeotrack.geometry import Point
from pygeotrack.models.asset import HistoryEntry


@dataclass(frozen=True)
class LocationLog:
    """Immutable view over an asset's archived positions (oldest first)."""

    entries: tuple[HistoryEntry, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.entries)

    @property
    def last_timestamp(self) -> datetime | None:
        return self.entries[-1].timestamp if self.entries else None

    def append(self, location: Point, at: datetime) -> LocationLog:
        """Return a new log with *location* archived at *at*.

        A clock that steps backwards is clamped to the previous entry's
        timestamp so timestamps stay monotonic.
        """
        last = self.last_timestamp
        if last is not None and at < last:
            at = last
        return LocationLog(self.entries + (HistoryEntry(location=location, timestamp=at),))

    def newest_first(self) -> list[HistoryEntry]:
        """Entries sorted by timestamp descending; later insertion wins ties."""
        indexed = sorted(enumerate(self.entries), key=lambda item: (item[1].timestamp, item[0]), reverse=True)
        return [entry for _, entry in indexed]
