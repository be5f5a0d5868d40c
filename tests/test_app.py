from __future__ import annotations

import random

import pytest

from fleetview.app import FleetApp
from fleetview.cache import PersistentCache
from fleetview.config import FleetConfig
from fleetview.models.driver import Driver, DriverStatus
from fleetview.models.region import Viewport
from fleetview.sensors import SimulatedSensor
from fleetview.storage import FileStore, MemoryStore


def _config(**overrides: object) -> FleetConfig:
    values: dict[str, object] = {"driver_count": 40, "update_interval": 60.0}
    values.update(overrides)
    return FleetConfig(**values)  # type: ignore[arg-type]


def _sensor(**kwargs: object) -> SimulatedSensor:
    return SimulatedSensor((12.9716, 77.5946), rng=random.Random(3), **kwargs)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_start_populates_fleet_and_locates_user() -> None:
    app = FleetApp(_config(), sensor=_sensor(), rng=random.Random(1))

    async with app:
        assert len(app.drivers) == 40
        assert app.engine.is_running
        assert app.user_position is not None
        assert app.location.watching
        assert app.location.background_tracking

        viewport = app.initial_viewport()
        assert viewport.center_lat == app.user_position.latitude
        assert viewport.lat_span == 0.05

    assert not app.engine.is_running
    assert not app.location.watching
    assert not app.location.background_tracking


@pytest.mark.asyncio
async def test_background_tracking_can_be_disabled() -> None:
    app = FleetApp(_config(background_tracking=False), sensor=_sensor(), rng=random.Random(1))

    async with app:
        assert app.location.watching
        assert not app.location.background_tracking


@pytest.mark.asyncio
async def test_disabled_sensor_falls_back_to_default_region() -> None:
    app = FleetApp(_config(), sensor=_sensor(enabled=False), rng=random.Random(1))

    async with app:
        assert app.user_position is None
        assert not app.location.watching
        viewport = app.initial_viewport()

    assert (viewport.center_lat, viewport.center_lng) == (12.9716, 77.5946)
    assert (viewport.lat_span, viewport.lng_span) == (0.05, 0.05)


@pytest.mark.asyncio
async def test_fresh_cache_is_restored_instead_of_regenerated() -> None:
    store = MemoryStore()
    cached = tuple(
        Driver(id=i, latitude=12.97, longitude=77.59, status=DriverStatus.IDLE, region="Bangalore") for i in range(5)
    )
    assert await PersistentCache(store).save_fleet(cached)

    async with FleetApp(_config(), store=store, sensor=_sensor(), rng=random.Random(1)) as app:
        assert app.drivers == cached


@pytest.mark.asyncio
async def test_file_store_used_when_cache_dir_configured(tmp_path) -> None:
    async with FleetApp(_config(cache_dir=tmp_path), sensor=_sensor(), rng=random.Random(1)):
        pass

    store = FileStore(tmp_path)
    assert store.path_for("fleetview.drivers").exists()
    assert store.path_for("fleetview.location").exists()


@pytest.mark.asyncio
async def test_visible_drivers_zoomed_out_cap() -> None:
    async with FleetApp(_config(driver_count=300), sensor=_sensor(), rng=random.Random(1)) as app:
        whole_country = Viewport.around(20.0, 78.0, 40.0)
        visible = app.visible_drivers(whole_country)

    assert len(visible) == 100


@pytest.mark.asyncio
async def test_route_follows_driver_history() -> None:
    config = _config(update_fraction=1.0, persist_probability=0.0)
    async with FleetApp(config, sensor=_sensor(), rng=random.Random(1)) as app:
        moving = next(d for d in app.drivers if d.status != DriverStatus.OFFLINE)
        assert app.route(moving.id) == []

        await app.engine.tick()

        driver = app.driver(moving.id)
        assert driver is not None
        assert app.route(moving.id) == [(driver.latitude, driver.longitude)]
        assert app.route(10_000) == []
        assert app.driver(10_000) is None


@pytest.mark.asyncio
async def test_subscribe_receives_current_snapshot() -> None:
    received: list[int] = []

    async with FleetApp(_config(), sensor=_sensor(), rng=random.Random(1)) as app:
        with app.subscribe(lambda drivers: received.append(len(drivers))):
            pass

    assert received == [40]
