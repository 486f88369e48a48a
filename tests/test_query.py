"""Tests for nearby and zone queries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pygeotrack.exceptions import InvalidGeometry, ValidationError
from pygeotrack.models.asset import Asset, AssetStatus
from pygeotrack.query import QueryEngine
from pygeotrack.state.store import AssetStore

SQUARE = [(-0.005, -0.005), (0.005, -0.005), (0.005, 0.005), (-0.005, 0.005), (-0.005, -0.005)]


async def _fixture() -> tuple[AssetStore, QueryEngine, dict[str, Asset]]:
    store = AssetStore()
    engine = QueryEngine(store)
    assets = {
        "origin": await store.create({"name": "origin", "longitude": 0, "latitude": 0}),
        "near": await store.create({"name": "near", "longitude": 0.001, "latitude": 0.001}),
        "far": await store.create({"name": "far", "longitude": 0.1, "latitude": 0.1}),
    }
    return store, engine, assets


def _names(assets: list[Asset]) -> set[str]:
    return {a.name for a in assets}


class TestFindNearby:
    @pytest.mark.asyncio
    async def test_includes_within_radius_excludes_beyond(self) -> None:
        _, engine, _ = await _fixture()
        assert _names(await engine.find_nearby(0, 0, 1000)) == {"origin", "near"}

    @pytest.mark.asyncio
    async def test_default_radius_is_one_kilometre(self) -> None:
        _, engine, _ = await _fixture()
        assert _names(await engine.find_nearby(0, 0)) == {"origin", "near"}

    @pytest.mark.asyncio
    async def test_configured_default_radius(self) -> None:
        store, _, _ = await _fixture()
        engine = QueryEngine(store, default_radius_meters=20_000)
        assert _names(await engine.find_nearby(0, 0)) == {"origin", "near", "far"}

    @pytest.mark.asyncio
    async def test_small_radius(self) -> None:
        _, engine, _ = await _fixture()
        assert _names(await engine.find_nearby(0, 0, 100)) == {"origin"}

    @pytest.mark.asyncio
    async def test_zero_radius_matches_exact_position(self) -> None:
        _, engine, _ = await _fixture()
        assert _names(await engine.find_nearby(0.001, 0.001, 0)) == {"near"}

    @pytest.mark.asyncio
    async def test_ranked_orders_nearest_first(self) -> None:
        _, engine, _ = await _fixture()
        ranked = await engine.find_nearby(0.1, 0.1, 20_000, ranked=True)
        assert [a.name for a in ranked] == ["far", "near", "origin"]

    @pytest.mark.asyncio
    async def test_string_inputs_are_accepted(self) -> None:
        _, engine, _ = await _fixture()
        assert _names(await engine.find_nearby("0", "0", "1000")) == {"origin", "near"}  # type: ignore[arg-type]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "args",
        [(None, None, None), (0, None, None), (None, 0, None), (200, 0, None), (0, 0, -5), (0, 0, float("nan"))],
    )
    async def test_invalid_input(self, args: tuple) -> None:
        _, engine, _ = await _fixture()
        with pytest.raises(ValidationError):
            await engine.find_nearby(*args)

    @pytest.mark.asyncio
    async def test_only_live_location_is_matched(self) -> None:
        store, engine, assets = await _fixture()
        await store.update(assets["origin"].id, {"longitude": 50, "latitude": 50})
        assert _names(await engine.find_nearby(0, 0, 1000)) == {"near"}
        assert _names(await engine.find_nearby(50, 50, 10)) == {"origin"}

    @pytest.mark.asyncio
    async def test_across_antimeridian(self) -> None:
        store = AssetStore()
        engine = QueryEngine(store)
        await store.create({"name": "east", "longitude": 179.9995, "latitude": 0})
        await store.create({"name": "west", "longitude": -179.9995, "latitude": 0})
        assert _names(await engine.find_nearby(180, 0, 500)) == {"east", "west"}


class TestFindInZone:
    @pytest.mark.asyncio
    async def test_square_ring(self) -> None:
        _, engine, _ = await _fixture()
        assert _names(await engine.find_in_zone(SQUARE)) == {"origin", "near"}

    @pytest.mark.asyncio
    async def test_boundary_inclusive(self) -> None:
        store, engine, _ = await _fixture()
        await store.create({"name": "edge", "longitude": 0.005, "latitude": 0})
        await store.create({"name": "corner", "longitude": -0.005, "latitude": 0.005})
        assert _names(await engine.find_in_zone(SQUARE)) == {"origin", "near", "edge", "corner"}

    @pytest.mark.asyncio
    async def test_unclosed_ring_rejected(self) -> None:
        _, engine, _ = await _fixture()
        with pytest.raises(ValidationError):
            await engine.find_in_zone(SQUARE[:-1] + [(-0.004, -0.005)])

    @pytest.mark.asyncio
    async def test_too_few_points_rejected(self) -> None:
        _, engine, _ = await _fixture()
        with pytest.raises(InvalidGeometry):
            await engine.find_in_zone([(0, 0), (1, 1), (0, 0)])

    @pytest.mark.asyncio
    async def test_missing_ring_rejected(self) -> None:
        _, engine, _ = await _fixture()
        with pytest.raises(ValidationError):
            await engine.find_in_zone(None)

    @pytest.mark.asyncio
    async def test_history_is_never_matched(self) -> None:
        store, engine, assets = await _fixture()
        await store.update(assets["near"].id, {"longitude": 10, "latitude": 10})
        assert _names(await engine.find_in_zone(SQUARE)) == {"origin"}

    @pytest.mark.asyncio
    async def test_deleted_asset_disappears(self) -> None:
        store, engine, assets = await _fixture()
        before = await engine.find_in_zone(SQUARE)
        await store.delete(assets["origin"].id)
        after = await engine.find_in_zone(SQUARE)
        assert _names(before) == {"origin", "near"}
        assert _names(after) == {"near"}


@pytest.mark.asyncio
async def test_summarize_counts_status_and_recent_activity() -> None:
    now = datetime(2026, 6, 1, tzinfo=UTC)
    clock_value = {"now": now - timedelta(days=30)}
    store = AssetStore(clock=lambda: clock_value["now"])
    engine = QueryEngine(store, clock=lambda: now)

    await store.create({"name": "old", "longitude": 0, "latitude": 0, "status": "inactive"})
    clock_value["now"] = now - timedelta(days=1)
    await store.create({"name": "new", "longitude": 0, "latitude": 0})
    await store.create({"name": "shop", "longitude": 0, "latitude": 0, "status": "maintenance"})

    summary = await engine.summarize(recent_within=timedelta(days=7))
    assert summary.total_assets == 3
    assert summary.status_counts == {
        AssetStatus.ACTIVE: 1,
        AssetStatus.INACTIVE: 1,
        AssetStatus.MAINTENANCE: 1,
    }
    assert summary.recent_activity == 2
