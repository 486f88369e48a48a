"""Data models for tracked assets and tracker requests."""

from pygeotrack.models._base import GeoBaseModel
from pygeotrack.models.asset import Asset, AssetStatus, HistoryEntry
from pygeotrack.models.requests import AssetCreate, AssetPatch, NearbyRequest, ZoneRequest, parse_request

__all__ = [
    "Asset",
    "AssetCreate",
    "AssetPatch",
    "AssetStatus",
    "GeoBaseModel",
    "HistoryEntry",
    "NearbyRequest",
    "ZoneRequest",
    "parse_request",
]
