"""High-level async facade for the geospatial tracking engine."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from pygeotrack.config import TrackerConfig
from pygeotrack.exceptions import GeoTrackError
from pygeotrack.models.asset import Asset, AssetStatus, HistoryEntry
from pygeotrack.models.requests import AssetPatch
from pygeotrack.notifier import ChangeNotifier, Subscription
from pygeotrack.query import AssetSummary, QueryEngine
from pygeotrack.state.events import GLOBAL_TOPICS, asset_topic
from pygeotrack.state.index import GridIndex
from pygeotrack.state.store import AssetBackend, AssetStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class GeoTracker:
    """Async entrypoint wiring the store, query engine and notifier.

    The notifier is created on enter and closed on exit, and is injected
    into the store rather than reached through module state.  Callers are
    expected to have checked identity and role before calling mutating
    methods.

    Usage::

        async with GeoTracker(TrackerConfig()) as tracker:
            asset = await tracker.create_asset("Van 12", longitude=4.89, latitude=52.37)
            nearby = await tracker.get_nearby(4.89, 52.37, radius_meters=500)
    """

    def __init__(
        self,
        config: TrackerConfig | None = None,
        *,
        backend: AssetBackend | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config if config is not None else TrackerConfig()
        self._backend = backend
        self._clock = clock
        self._notifier: ChangeNotifier | None = None
        self._store: AssetStore | None = None
        self._query: QueryEngine | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> GeoTracker:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    def start(self) -> None:
        if self._store is not None:
            return
        self._notifier = ChangeNotifier(queue_size=self._config.subscriber_queue_size)
        self._store = AssetStore(
            publisher=self._notifier,
            backend=self._backend,
            index=GridIndex(self._config.index_cell_degrees),
            clock=self._clock,
            log_payloads=self._config.log_payloads,
        )
        self._query = QueryEngine(
            self._store,
            default_radius_meters=self._config.default_radius_meters,
            clock=self._clock,
        )
        _logger.debug("GeoTracker started")

    def close(self) -> None:
        notifier = self._notifier
        self._notifier = None
        self._store = None
        self._query = None
        if notifier is not None:
            notifier.close()
            _logger.debug("GeoTracker closed")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_store(self) -> AssetStore:
        if self._store is None:
            raise GeoTrackError("Tracker not started. Use 'async with GeoTracker(...) as tracker:'")
        return self._store

    def _require_query(self) -> QueryEngine:
        if self._query is None:
            raise GeoTrackError("Tracker not started. Use 'async with GeoTracker(...) as tracker:'")
        return self._query

    @property
    def notifier(self) -> ChangeNotifier:
        if self._notifier is None:
            raise GeoTrackError("Tracker not started. Use 'async with GeoTracker(...) as tracker:'")
        return self._notifier

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_asset(
        self,
        name: str,
        *,
        longitude: Any,
        latitude: Any,
        description: str | None = None,
        status: AssetStatus | str | None = None,
        assigned_to: str | None = None,
    ) -> Asset:
        """Create an asset; emits ``asset:created``."""
        payload: dict[str, Any] = {
            "name": name,
            "description": description,
            "status": status,
            "longitude": longitude,
            "latitude": latitude,
            "assigned_to": assigned_to,
        }
        return await self._require_store().create(payload)

    async def update_asset(self, asset_id: str, patch: AssetPatch | None = None, **fields: Any) -> Asset:
        """Update any subset of name/description/status/assignedTo/longitude+latitude.

        Either pass an :class:`AssetPatch` or keyword fields.  A location
        change needs both ``longitude`` and ``latitude``.
        """
        if patch is not None and fields:
            raise TypeError("pass either a patch or keyword fields, not both")
        return await self._require_store().update(asset_id, patch if patch is not None else fields)

    async def delete_asset(self, asset_id: str) -> None:
        await self._require_store().delete(asset_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_asset(self, asset_id: str) -> Asset:
        return await self._require_store().get(asset_id)

    async def list_assets(self) -> list[Asset]:
        return await self._require_store().list_assets()

    async def get_history(self, asset_id: str) -> list[HistoryEntry]:
        """Archived positions, newest first."""
        return await self._require_store().get_history(asset_id)

    async def get_nearby(
        self,
        longitude: Any,
        latitude: Any,
        radius_meters: float | None = None,
        *,
        ranked: bool = False,
    ) -> list[Asset]:
        return await self._require_query().find_nearby(longitude, latitude, radius_meters, ranked=ranked)

    async def get_in_zone(self, polygon: Iterable[Any]) -> list[Asset]:
        return await self._require_query().find_in_zone(polygon)

    async def summarize(self) -> AssetSummary:
        window = timedelta(days=self._config.recent_activity_days)
        return await self._require_query().summarize(recent_within=window)

    # ------------------------------------------------------------------
    # Live updates
    # ------------------------------------------------------------------

    def subscribe(self, topic: str) -> Subscription:
        """Subscribe to ``asset:created``, ``asset:updated`` or ``asset:<id>``."""
        return self.notifier.subscribe(topic)

    def subscribe_all(self) -> list[Subscription]:
        return [self.notifier.subscribe(topic) for topic in GLOBAL_TOPICS]

    def subscribe_asset(self, asset_id: str) -> Subscription:
        """Follow one asset's updates."""
        return self.notifier.subscribe(asset_topic(asset_id))

    def unsubscribe(self, subscription: Subscription) -> None:
        if self._notifier is not None:
            self._notifier.unsubscribe(subscription)
