"""End-to-end tests through the GeoTracker facade."""

from __future__ import annotations

import pytest

from pygeotrack import (
    AssetStatus,
    GeoTracker,
    GeoTrackError,
    NotFoundError,
    TrackerConfig,
    ValidationError,
)
from pygeotrack.models.requests import AssetPatch

SQUARE = [[-0.005, -0.005], [0.005, -0.005], [0.005, 0.005], [-0.005, 0.005], [-0.005, -0.005]]


@pytest.mark.asyncio
async def test_full_lifecycle() -> None:
    async with GeoTracker() as tracker:
        created_sub, updated_sub = tracker.subscribe_all()

        origin = await tracker.create_asset("origin", longitude=0, latitude=0, description="depot")
        near = await tracker.create_asset("near", longitude=0.001, latitude=0.001, status="maintenance")
        await tracker.create_asset("far", longitude=0.1, latitude=0.1, assigned_to="user-3")

        assert near.status == AssetStatus.MAINTENANCE
        assert created_sub.pending == 3
        assert {a.name for a in await tracker.list_assets()} == {"origin", "near", "far"}
        assert {a.name for a in await tracker.get_nearby(0, 0, 1000)} == {"origin", "near"}
        assert {a.name for a in await tracker.get_in_zone(SQUARE)} == {"origin", "near"}

        follow = tracker.subscribe_asset(origin.id)
        await tracker.update_asset(origin.id, longitude=0.002, latitude=0.002)
        await tracker.update_asset(origin.id, AssetPatch(status=AssetStatus.INACTIVE))

        history = await tracker.get_history(origin.id)
        assert [e.location.coordinates for e in history] == [(0.0, 0.0)]
        assert (await tracker.get_asset(origin.id)).status == AssetStatus.INACTIVE
        assert follow.pending == 2
        assert updated_sub.pending == 2

        summary = await tracker.summarize()
        assert summary.total_assets == 3
        assert summary.status_counts[AssetStatus.ACTIVE] == 1

        await tracker.delete_asset(origin.id)
        with pytest.raises(NotFoundError):
            await tracker.get_history(origin.id)

    assert follow.closed
    assert created_sub.closed


@pytest.mark.asyncio
async def test_partial_coordinates_rejected() -> None:
    async with GeoTracker() as tracker:
        asset = await tracker.create_asset("x", longitude=1, latitude=1)
        with pytest.raises(ValidationError):
            await tracker.update_asset(asset.id, longitude=2)
        assert (await tracker.get_asset(asset.id)).location.coordinates == (1.0, 1.0)


@pytest.mark.asyncio
async def test_configured_default_radius() -> None:
    async with GeoTracker(TrackerConfig(default_radius_meters=100)) as tracker:
        await tracker.create_asset("origin", longitude=0, latitude=0)
        await tracker.create_asset("near", longitude=0.001, latitude=0.001)
        assert {a.name for a in await tracker.get_nearby(0, 0)} == {"origin"}


@pytest.mark.asyncio
async def test_patch_and_fields_are_exclusive() -> None:
    async with GeoTracker() as tracker:
        asset = await tracker.create_asset("x", longitude=1, latitude=1)
        with pytest.raises(TypeError):
            await tracker.update_asset(asset.id, AssetPatch(name="y"), name="z")


@pytest.mark.asyncio
async def test_requires_start() -> None:
    tracker = GeoTracker()
    with pytest.raises(GeoTrackError, match="not started"):
        await tracker.list_assets()
    with pytest.raises(GeoTrackError):
        tracker.subscribe("asset:created")
