"""Asset store.

This is the only component allowed to mutate asset records.  It owns the
move algorithm (archive the pre-move position, then relocate), the
per-asset serialization of mutations and the spatial index, and it
publishes a change event after every committed create or update.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import logging
import uuid
from collections.abc import AsyncIterator, Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

from pygeotrack.exceptions import GeoTrackError, NotFoundError, StorageFailure
from pygeotrack.models.asset import Asset, HistoryEntry
from pygeotrack.models.requests import AssetCreate, AssetPatch, parse_request
from pygeotrack.notifier import EventPublisher
from pygeotrack.state.events import AssetEvent, AssetEventKind, asset_topic
from pygeotrack.state.history import LocationLog
from pygeotrack.state.index import GridIndex, SpatialIndex

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclasses.dataclass
class _LockEntry:
    lock: asyncio.Lock = dataclasses.field(default_factory=asyncio.Lock)
    users: int = 0


class AssetBackend(Protocol):
    """Durable record storage the store commits through."""

    async def get(self, asset_id: str) -> Asset | None: ...

    async def get_many(self, asset_ids: Iterable[str]) -> list[Asset]: ...

    async def put(self, asset: Asset) -> None: ...

    async def delete(self, asset_id: str) -> bool: ...

    async def all(self) -> list[Asset]: ...


class InMemoryBackend:
    """Dict-backed storage.  Records are immutable so no copies are needed."""

    def __init__(self) -> None:
        self._records: dict[str, Asset] = {}

    async def get(self, asset_id: str) -> Asset | None:
        return self._records.get(asset_id)

    async def get_many(self, asset_ids: Iterable[str]) -> list[Asset]:
        found = (self._records.get(asset_id) for asset_id in asset_ids)
        return [asset for asset in found if asset is not None]

    async def put(self, asset: Asset) -> None:
        self._records[asset.id] = asset

    async def delete(self, asset_id: str) -> bool:
        return self._records.pop(asset_id, None) is not None

    async def all(self) -> list[Asset]:
        return list(self._records.values())


class AssetStore:
    """Async store for asset records and their location history.

    Mutations on one asset id are serialized by a per-id lock; mutations on
    different ids proceed independently.  Each commit swaps in a whole new
    immutable :class:`Asset`, so concurrent readers observe either the
    pre- or the post-mutation record and never a partial one.
    """

    def __init__(
        self,
        *,
        publisher: EventPublisher | None = None,
        backend: AssetBackend | None = None,
        index: SpatialIndex | None = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
        log_payloads: bool = False,
    ) -> None:
        self._publisher = publisher
        self._backend: AssetBackend = backend if backend is not None else InMemoryBackend()
        self._index: SpatialIndex = index if index is not None else GridIndex()
        self._clock = clock
        self._id_factory = id_factory
        self._log_payloads = log_payloads
        self._locks: dict[str, _LockEntry] = {}

    @property
    def index(self) -> SpatialIndex:
        return self._index

    @contextlib.asynccontextmanager
    async def _locked(self, asset_id: str) -> AsyncIterator[None]:
        """Hold the per-asset lock; the entry is dropped once nobody holds or awaits it."""
        entry = self._locks.get(asset_id)
        if entry is None:
            entry = self._locks[asset_id] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[asset_id]

    # ------------------------------------------------------------------
    # Backend access
    # ------------------------------------------------------------------

    async def _call_backend(self, operation: str, asset_id: str, call: Any) -> Any:
        """Await a backend coroutine, mapping unexpected errors to :class:`StorageFailure`."""
        try:
            return await call
        except GeoTrackError:
            raise
        except Exception as exc:
            _logger.debug("Backend %s failed asset_id=%s", operation, asset_id, exc_info=True)
            raise StorageFailure(f"Storage {operation} failed: {exc}", asset_id=asset_id) from exc

    async def _require(self, asset_id: str) -> Asset:
        asset = await self._call_backend("read", asset_id, self._backend.get(asset_id))
        if asset is None:
            raise NotFoundError(asset_id)
        return asset

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _emit(self, kind: AssetEventKind, asset: Asset, *, per_asset: bool = False) -> None:
        if self._publisher is None:
            return
        topics = [kind.value]
        if per_asset:
            topics.append(asset_topic(asset.id))
        for topic in topics:
            event = AssetEvent(kind=kind, topic=topic, asset=asset, emitted_at=self._clock())
            try:
                delivered = self._publisher.publish(topic, event)
            except Exception:
                # Delivery problems never roll back a committed mutation.
                _logger.warning("Publishing %s failed for asset %s", topic, asset.id, exc_info=True)
                continue
            if self._log_payloads:
                _logger.debug("Published %s to %d subscriber(s) payload=%s", topic, delivered, asset.to_json_dict())
            else:
                _logger.debug("Published %s to %d subscriber(s)", topic, delivered)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, request: AssetCreate | Mapping[str, Any]) -> Asset:
        """Create an asset at its initial position with an empty history.

        Raises
        ------
        ValidationError
            If the name is empty or the coordinates are missing or invalid.
        StorageFailure
            If the backend rejects the write.
        """
        req = parse_request(AssetCreate, request)
        now = self._clock()
        asset = Asset(
            id=self._id_factory(),
            name=req.name,
            description=req.description,
            status=req.status,
            location=req.position,
            assigned_to=req.assigned_to,
            created_at=now,
            updated_at=now,
        )
        async with self._locked(asset.id):
            await self._call_backend("write", asset.id, self._backend.put(asset))
            self._index.upsert(asset.id, asset.location)
        _logger.debug("Created asset id=%s at %s", asset.id, asset.location.coordinates)
        self._emit(AssetEventKind.CREATED, asset)
        return asset

    async def update(self, asset_id: str, patch: AssetPatch | Mapping[str, Any]) -> Asset:
        """Apply a partial update.

        When the patch carries a position, the asset's current location is
        archived with the current time before being overwritten.  Other
        fields never touch history.

        Raises
        ------
        ValidationError
            If the patch is malformed, including a lone longitude or latitude.
        NotFoundError
            If *asset_id* is unknown.
        StorageFailure
            If the backend rejects the read or write.
        """
        change = parse_request(AssetPatch, patch)
        async with self._locked(asset_id):
            current = await self._require(asset_id)
            now = self._clock()
            updates: dict[str, Any] = {"updated_at": now}

            if change.position is not None:
                log = LocationLog(current.location_history).append(current.location, now)
                updates["location_history"] = log.entries
                updates["location"] = change.position
            if change.name:
                updates["name"] = change.name
            if change.description:
                updates["description"] = change.description
            if change.status is not None:
                updates["status"] = change.status
            if change.assigned_to:
                updates["assigned_to"] = change.assigned_to

            updated = current.model_copy(update=updates)
            await self._call_backend("write", asset_id, self._backend.put(updated))
            if change.position is not None:
                self._index.upsert(asset_id, updated.location)

        _logger.debug(
            "Updated asset id=%s moved=%s history=%d",
            asset_id,
            change.position is not None,
            len(updated.location_history),
        )
        self._emit(AssetEventKind.UPDATED, updated, per_asset=True)
        return updated

    async def delete(self, asset_id: str) -> None:
        """Remove an asset together with its history.

        Raises
        ------
        NotFoundError
            If *asset_id* is unknown.
        """
        async with self._locked(asset_id):
            removed = await self._call_backend("delete", asset_id, self._backend.delete(asset_id))
            if not removed:
                raise NotFoundError(asset_id)
            self._index.remove(asset_id)
        _logger.debug("Deleted asset id=%s", asset_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, asset_id: str) -> Asset:
        return await self._require(asset_id)

    async def get_many(self, asset_ids: Iterable[str]) -> list[Asset]:
        """Records for the ids that still exist; vanished ids are skipped."""
        ids = list(asset_ids)
        return await self._call_backend("read", "", self._backend.get_many(ids))

    async def get_history(self, asset_id: str) -> list[HistoryEntry]:
        """Archived positions, newest archived entry first."""
        asset = await self._require(asset_id)
        return LocationLog(asset.location_history).newest_first()

    async def list_assets(self) -> list[Asset]:
        return await self._call_backend("read", "", self._backend.all())
