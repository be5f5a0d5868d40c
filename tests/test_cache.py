from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from fleetview._constants import FLEET_CACHE_KEY, LOCATION_CACHE_KEY
from fleetview.cache import PersistentCache, is_stale
from fleetview.exceptions import FleetStorageError
from fleetview.models.driver import Driver, DriverStatus
from fleetview.models.location import LocationSource, Position
from fleetview.storage import MemoryStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class _FailingStore:
    async def get(self, key: str) -> str | None:
        raise FleetStorageError("read failed", key=key)

    async def set(self, key: str, value: str) -> None:
        raise FleetStorageError("write failed", key=key)


def _drivers() -> tuple[Driver, ...]:
    return (
        Driver(id=0, latitude=19.07, longitude=72.87, status=DriverStatus.ACTIVE, speed=42, region="Mumbai"),
        Driver(id=1, latitude=19.08, longitude=72.88, status=DriverStatus.OFFLINE, region="Mumbai"),
    )


@pytest.mark.asyncio
async def test_fleet_fresh_at_59_minutes_stale_at_61() -> None:
    store = MemoryStore()
    await PersistentCache(store, clock=lambda: T0).save_fleet(_drivers())

    fresh = await PersistentCache(store, clock=lambda: T0 + timedelta(minutes=59)).load_fleet()
    stale = await PersistentCache(store, clock=lambda: T0 + timedelta(minutes=61)).load_fleet()

    assert fresh == _drivers()
    assert stale is None


@pytest.mark.asyncio
async def test_stale_record_still_available_as_raw_record() -> None:
    store = MemoryStore()
    await PersistentCache(store, clock=lambda: T0).save_fleet(_drivers())

    record = await PersistentCache(store, clock=lambda: T0 + timedelta(days=3)).load_fleet_record()

    assert record is not None
    assert record.captured_at == T0
    assert record.drivers == _drivers()


@pytest.mark.asyncio
async def test_empty_fleet_is_a_miss() -> None:
    store = MemoryStore()
    await PersistentCache(store, clock=lambda: T0).save_fleet(())

    assert await PersistentCache(store, clock=lambda: T0).load_fleet() is None


@pytest.mark.asyncio
async def test_corrupt_records_are_ignored() -> None:
    store = MemoryStore({FLEET_CACHE_KEY: "{not json", LOCATION_CACHE_KEY: '{"latitude": "north"}'})
    cache = PersistentCache(store, clock=lambda: T0)

    assert await cache.load_fleet() is None
    assert await cache.load_position() is None


@pytest.mark.asyncio
async def test_storage_failures_are_swallowed() -> None:
    cache = PersistentCache(_FailingStore(), clock=lambda: T0)

    assert await cache.save_fleet(_drivers()) is False
    assert await cache.load_fleet() is None
    assert await cache.save_position(Position(latitude=1.0, longitude=2.0)) is False
    assert await cache.load_position() is None


@pytest.mark.asyncio
async def test_position_has_no_freshness_window() -> None:
    store = MemoryStore()
    old_fix = Position(latitude=12.97, longitude=77.59, accuracy=8.5, timestamp=T0 - timedelta(days=400))
    await PersistentCache(store, clock=lambda: T0).save_position(old_fix)

    cached = await PersistentCache(store, clock=lambda: T0).load_position()

    assert cached is not None
    assert (cached.latitude, cached.longitude, cached.accuracy) == (12.97, 77.59, 8.5)
    assert cached.timestamp == old_fix.timestamp
    assert cached.source == LocationSource.CACHE


@pytest.mark.asyncio
async def test_reads_legacy_timestamp_field() -> None:
    store = MemoryStore(
        {
            LOCATION_CACHE_KEY: '{"latitude": 1.5, "longitude": 2.5, "timestamp": "2026-03-01T11:00:00Z"}',
        }
    )

    cached = await PersistentCache(store).load_position()

    assert cached is not None
    assert cached.timestamp == T0 - timedelta(hours=1)
    assert cached.accuracy is None


def test_is_stale_boundary() -> None:
    ttl = timedelta(hours=1)

    assert not is_stale(T0, T0 + ttl, ttl)
    assert is_stale(T0, T0 + ttl + timedelta(seconds=1), ttl)
