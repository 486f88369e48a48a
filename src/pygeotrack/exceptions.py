"""Custom exception hierarchy for pygeotrack."""

from __future__ import annotations


class GeoTrackError(Exception):
    """Base exception for all pygeotrack errors."""


class ConfigError(GeoTrackError):
    """Invalid or missing configuration."""


class ValidationError(GeoTrackError):
    """Malformed input (bad coordinates, empty name, partial position, ...).

    Never retried automatically.  ``field`` names the offending input when
    it is known so callers can point the user at it.
    """

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class InvalidGeometry(ValidationError):
    """A point or polygon ring failed geometric validation."""


class NotFoundError(GeoTrackError):
    """The referenced asset id does not exist."""

    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Asset not found: {asset_id}")


class StorageFailure(GeoTrackError):
    """The storage backend failed to read or commit a record.

    Retriable: the mutation that raised it was not applied.  The store does
    not retry on its own beyond the per-asset lock.
    """

    def __init__(self, message: str, *, asset_id: str = "") -> None:
        self.asset_id = asset_id
        super().__init__(message)
