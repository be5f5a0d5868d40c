"""Composition root wiring the cache, engine and location service together."""

from __future__ import annotations

import logging
import random
from datetime import timedelta
from typing import Any

from fleetview.cache import PersistentCache
from fleetview.config import FleetConfig
from fleetview.engine import FleetEngine, Listener, Snapshot, Subscription
from fleetview.location import LocationService, SensorProvider
from fleetview.models.driver import Driver
from fleetview.models.location import Position
from fleetview.models.region import Viewport
from fleetview.sensors import SimulatedSensor
from fleetview.storage import FileStore, KeyValueStore, MemoryStore
from fleetview.viewport import filter_visible, route_coordinates

_logger = logging.getLogger(__name__)


class FleetApp:
    """Owns every long-lived service of a fleetview process.

    Build exactly one per process and hand it (or its services) to
    consumers.

    Usage::

        async with FleetApp(FleetConfig.from_env()) as app:
            app.subscribe(lambda drivers: render(app.visible_drivers()))
            ...
    """

    def __init__(
        self,
        config: FleetConfig | None = None,
        *,
        store: KeyValueStore | None = None,
        sensor: SensorProvider | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config or FleetConfig()
        if store is None:
            store = FileStore(self._config.cache_dir) if self._config.cache_dir is not None else MemoryStore()
        self._store = store
        self._cache = PersistentCache(store, fleet_ttl=timedelta(seconds=self._config.fleet_cache_ttl))
        self.engine = FleetEngine(self._cache, self._config, rng=rng)
        if sensor is None:
            sensor = SimulatedSensor((self._config.default_latitude, self._config.default_longitude), rng=rng)
        self.location = LocationService(sensor, self._cache, self._config)
        self._user_position: Position | None = None
        self._warm_snapshot: Snapshot = ()

    @property
    def config(self) -> FleetConfig:
        return self._config

    @property
    def user_position(self) -> Position | None:
        return self._user_position

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FleetApp:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Warm start from cache, connect the engine and locate the user."""
        self._warm_snapshot = await self.engine.load_cached_snapshot()
        if self._warm_snapshot:
            _logger.debug("Warm start with %d cached drivers", len(self._warm_snapshot))

        await self.engine.connect()
        await self._bootstrap_location()

    async def stop(self) -> None:
        self.engine.disconnect()
        await self.location.aclose()

    async def _bootstrap_location(self) -> None:
        if not await self.location.request_permissions():
            _logger.info("Location permission not granted, using default map region")
            return

        position = await self.location.get_current_position()
        if position is None:
            _logger.info("Location unavailable, using default map region")
            return

        self._user_position = position
        await self.location.watch(self._on_position)
        if self._config.background_tracking and not await self.location.start_background_tracking():
            _logger.info("Background tracking not available")

    def _on_position(self, position: Position) -> None:
        self._user_position = position

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Subscription:
        return self.engine.subscribe(listener)

    @property
    def drivers(self) -> Snapshot:
        """Live snapshot, or the cached one while the engine is still empty."""
        return self.engine.snapshot or self._warm_snapshot

    def initial_viewport(self) -> Viewport:
        """Viewport around the user, or around the default center."""
        span = self._config.default_span
        if self._user_position is not None:
            return Viewport.around(self._user_position.latitude, self._user_position.longitude, span)
        return Viewport.around(self._config.default_latitude, self._config.default_longitude, span)

    def visible_drivers(self, viewport: Viewport | None = None) -> list[Driver]:
        return filter_visible(self.drivers, viewport or self.initial_viewport())

    def driver(self, driver_id: int) -> Driver | None:
        return self.engine.get_by_id(driver_id)

    def route(self, driver_id: int) -> list[tuple[float, float]]:
        return route_coordinates(self.engine.get_by_id(driver_id))

