#!/usr/bin/env python3
"""Run the simulated fleet and print what a map would render.

The script builds a :class:`~fleetview.FleetApp`, lets the engine tick for
a while and, after every snapshot, prints the drivers visible in the
current viewport.

Usage
-----
::

    python scripts/simulate_fleet.py --ticks 5
    python scripts/simulate_fleet.py --cache-dir ~/.cache/fleetview --span 2.0

Options::

    --ticks N            Stop after N engine ticks (default: 5)
    --interval SECONDS   Engine tick period (default: config value)
    --drivers N          Fleet size on a cold start
    --cache-dir DIR      Persist the cache to DIR (default: in memory)
    --lat/--lng          Viewport center (default: device position)
    --span DEGREES       Viewport span (default: config value)
    --driver ID          Also print the route history of this driver
    --json               Emit one JSON line per snapshot
    --seed N             Seed the random source
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from fleetview import Driver, FleetApp, FleetConfig, Viewport  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _format_driver(driver: Driver) -> str:
    return (
        f"  #{driver.id:<4} {driver.name:<12} {driver.status.value:<8} "
        f"{driver.speed:5.1f} km/h  ({driver.latitude:.5f}, {driver.longitude:.5f})  {driver.region or '-'}"
    )


def _counts(drivers: list[Driver]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for driver in drivers:
        counts[driver.status.value] = counts.get(driver.status.value, 0) + 1
    return counts


# ── main ─────────────────────────────────────────────────────


async def run(args: argparse.Namespace) -> None:
    overrides: dict[str, Any] = {}
    if args.interval is not None:
        overrides["update_interval"] = args.interval
    if args.drivers is not None:
        overrides["driver_count"] = args.drivers
    if args.cache_dir is not None:
        overrides["cache_dir"] = Path(args.cache_dir).expanduser()
    if args.span is not None:
        overrides["default_span"] = args.span
    config = FleetConfig.from_env(**overrides)

    rng = random.Random(args.seed) if args.seed is not None else None
    done = asyncio.Event()
    seen = 0

    async with FleetApp(config, rng=rng) as app:
        viewport = app.initial_viewport()
        if args.lat is not None and args.lng is not None:
            viewport = Viewport.around(args.lat, args.lng, config.default_span)

        def on_snapshot(drivers: tuple[Driver, ...]) -> None:
            nonlocal seen
            visible = app.visible_drivers(viewport)
            if args.json_mode:
                print(
                    json.dumps(
                        {
                            "snapshot": seen,
                            "fleet": len(drivers),
                            "visible": [driver.model_dump(mode="json", exclude={"history"}) for driver in visible],
                        }
                    )
                )
            else:
                print(_section(f"snapshot {seen}: {len(visible)}/{len(drivers)} visible"))
                print(f"  by status: {_counts(visible)}")
                for driver in visible[: args.limit]:
                    print(_format_driver(driver))
                if args.driver is not None:
                    print(f"  route of #{args.driver}: {app.route(args.driver)}")
            seen += 1
            if seen > args.ticks:
                done.set()

        subscription = app.subscribe(on_snapshot)
        try:
            await done.wait()
        finally:
            subscription.unsubscribe()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the fleetview simulation and print the visible drivers.")
    parser.add_argument("--ticks", type=int, default=5, help="Stop after N engine ticks")
    parser.add_argument("--interval", type=float, help="Engine tick period in seconds")
    parser.add_argument("--drivers", type=int, help="Fleet size on a cold start")
    parser.add_argument("--cache-dir", help="Persist the cache to this directory")
    parser.add_argument("--lat", type=float, help="Viewport center latitude")
    parser.add_argument("--lng", type=float, help="Viewport center longitude")
    parser.add_argument("--span", type=float, help="Viewport span in degrees")
    parser.add_argument("--limit", type=int, default=10, help="Drivers printed per snapshot")
    parser.add_argument("--driver", type=int, help="Print the route history of this driver id")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON lines")
    parser.add_argument("--seed", type=int, help="Seed the random source")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
