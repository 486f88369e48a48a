#!/usr/bin/env python3
"""Random-walk fleet simulator with a live WebSocket event feed.

Creates a handful of assets around a centre point, moves them every tick
and serves the change feed on ``ws://HOST:PORT/events``.  Useful for
poking at a map UI or at the relay protocol by hand:

    python scripts/simulate_fleet.py --assets 20 --interval 1.0
    websocat ws://127.0.0.1:8765/events
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import random
import sys
from pathlib import Path

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from aiohttp import web  # noqa: E402

from pygeotrack import GeoTracker, TrackerConfig  # noqa: E402
from pygeotrack._transport import attach_event_relay  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--assets", type=int, default=10, help="number of simulated assets")
    parser.add_argument("--lon", type=float, default=4.8897, help="centre longitude")
    parser.add_argument("--lat", type=float, default=52.3740, help="centre latitude")
    parser.add_argument("--step", type=float, default=0.0005, help="max per-tick move in degrees")
    parser.add_argument("--interval", type=float, default=2.0, help="seconds between ticks")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--verbose", action="store_true", help="enable DEBUG logging")
    return parser.parse_args(argv)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


async def _simulate(tracker: GeoTracker, args: argparse.Namespace) -> None:
    assets = [
        await tracker.create_asset(
            f"Unit {i + 1:03d}",
            longitude=args.lon + random.uniform(-args.step * 10, args.step * 10),
            latitude=args.lat + random.uniform(-args.step * 10, args.step * 10),
        )
        for i in range(args.assets)
    ]
    print(f"Created {len(assets)} assets; feed on ws://{args.host}:{args.port}/events")

    while True:
        await asyncio.sleep(args.interval)
        for asset in assets:
            current = await tracker.get_asset(asset.id)
            await tracker.update_asset(
                asset.id,
                longitude=_clamp(current.location.longitude + random.uniform(-args.step, args.step), -180, 180),
                latitude=_clamp(current.location.latitude + random.uniform(-args.step, args.step), -90, 90),
            )
        nearby = await tracker.get_nearby(args.lon, args.lat)
        print(f"{len(nearby)} asset(s) within the default radius of the centre")


async def _main(args: argparse.Namespace) -> None:
    async with GeoTracker(TrackerConfig.from_env()) as tracker:
        app = web.Application()
        attach_event_relay(app, tracker.notifier)
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, args.host, args.port)
        await site.start()
        try:
            await _simulate(tracker, args)
        finally:
            await runner.cleanup()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        asyncio.run(_main(args))
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
