"""pygeotrack - Async geospatial asset tracking engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pygeotrack")
except PackageNotFoundError:
    __version__ = "0+local"
from pygeotrack.config import TrackerConfig
from pygeotrack.exceptions import (
    ConfigError,
    GeoTrackError,
    InvalidGeometry,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from pygeotrack.geometry import (
    Point,
    haversine_distance_meters,
    point_in_polygon,
    validate_point,
    validate_polygon,
)
from pygeotrack.models import Asset, AssetCreate, AssetPatch, AssetStatus, HistoryEntry
from pygeotrack.notifier import ChangeNotifier, Subscription
from pygeotrack.query import AssetSummary, QueryEngine
from pygeotrack.state.events import AssetEvent, AssetEventKind, asset_topic
from pygeotrack.state.store import AssetStore, InMemoryBackend
from pygeotrack.tracker import GeoTracker

__all__ = [
    "__version__",
    "Asset",
    "AssetCreate",
    "AssetEvent",
    "AssetEventKind",
    "AssetPatch",
    "AssetStatus",
    "AssetStore",
    "AssetSummary",
    "ChangeNotifier",
    "ConfigError",
    "GeoTrackError",
    "GeoTracker",
    "HistoryEntry",
    "InMemoryBackend",
    "InvalidGeometry",
    "NotFoundError",
    "Point",
    "QueryEngine",
    "StorageFailure",
    "Subscription",
    "TrackerConfig",
    "ValidationError",
    "asset_topic",
    "haversine_distance_meters",
    "point_in_polygon",
    "validate_point",
    "validate_polygon",
]
