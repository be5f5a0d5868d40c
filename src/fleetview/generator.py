"""Synthetic fleet generation."""

from __future__ import annotations

import random
from collections.abc import Sequence

from fleetview._constants import GENERATION_JITTER, SPEED_MAX, SPEED_MIN
from fleetview.models.driver import Driver, DriverStatus
from fleetview.models.region import Region

_GENERATED_STATUSES: tuple[DriverStatus, ...] = (
    DriverStatus.ACTIVE,
    DriverStatus.IDLE,
    DriverStatus.OFFLINE,
)


def draw_speed(rng: random.Random, status: DriverStatus) -> float:
    """Fresh speed for a driver: integer km/h in ``[10, 70)`` when active, else 0."""
    if status != DriverStatus.ACTIVE:
        return 0.0
    return float(rng.randrange(SPEED_MIN, SPEED_MAX))


def region_quotas(count: int, region_count: int) -> list[int]:
    """Split ``count`` evenly, giving the remainder to the first region."""
    if region_count <= 0:
        return []
    per_region, remainder = divmod(count, region_count)
    quotas = [per_region] * region_count
    quotas[0] += remainder
    return quotas


def create_driver(
    driver_id: int,
    region: Region,
    *,
    rng: random.Random,
    jitter: float = GENERATION_JITTER,
) -> Driver:
    status = rng.choice(_GENERATED_STATUSES)
    return Driver(
        id=driver_id,
        latitude=region.latitude + rng.uniform(-jitter, jitter),
        longitude=region.longitude + rng.uniform(-jitter, jitter),
        status=status,
        speed=draw_speed(rng, status),
        region=region.name,
    )


def generate_fleet(
    count: int,
    regions: Sequence[Region],
    *,
    rng: random.Random | None = None,
    jitter: float = GENERATION_JITTER,
) -> tuple[Driver, ...]:
    """Generate ``count`` drivers spread across ``regions``.

    Ids run from ``0`` to ``count - 1`` in region order.  Only the shape of
    the result (size, per-region split) is deterministic; positions,
    statuses and speeds come from ``rng``.

    Raises
    ------
    ValueError
        If ``count`` is negative, or drivers are requested without regions.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if count == 0:
        return ()
    if not regions:
        raise ValueError("at least one region is required")

    rng = rng or random.Random()
    drivers: list[Driver] = []
    for region, quota in zip(regions, region_quotas(count, len(regions)), strict=True):
        for _ in range(quota):
            drivers.append(create_driver(len(drivers), region, rng=rng, jitter=jitter))
    return tuple(drivers)
