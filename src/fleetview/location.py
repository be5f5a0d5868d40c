"""Device location with a sensor -> cache -> unavailable fallback chain.

The actual sensor is an external collaborator described by
:class:`SensorProvider`.  :class:`LocationService` only orchestrates it:
checks that the service is enabled, negotiates permission once, takes a
single live fix and remembers it, and falls back to the last cached
position whenever any of those steps fails.

Continuous updates are delivered through :class:`LocationWatch`, which
throttles raw sensor callbacks (they may arrive on any thread) onto the
event loop.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from fleetview._constants import EARTH_RADIUS_METERS
from fleetview.cache import PersistentCache
from fleetview.config import FleetConfig
from fleetview.models.location import PermissionStatus, Position, WatchOptions

_logger = logging.getLogger(__name__)

PositionCallback = Callable[[Position], Any]


def distance_meters(a: Position, b: Position) -> float:
    """Great-circle distance between two positions (haversine)."""
    lat1 = math.radians(a.latitude)
    lat2 = math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.longitude - a.longitude)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


@runtime_checkable
class SensorSubscription(Protocol):
    def remove(self) -> None: ...


@runtime_checkable
class SensorProvider(Protocol):
    """Contract of the platform location sensor.

    ``current_fix`` returns ``None`` or raises
    :class:`~fleetview.exceptions.FleetSensorError` when no fix can be
    taken.  ``watch`` and ``start_background_updates`` may invoke their
    callback from any thread.
    """

    async def service_enabled(self) -> bool: ...

    async def permission_status(self) -> PermissionStatus: ...

    async def request_permission(self) -> PermissionStatus: ...

    async def request_background_permission(self) -> PermissionStatus: ...

    async def current_fix(self) -> Position | None: ...

    async def watch(self, options: WatchOptions, callback: PositionCallback) -> SensorSubscription: ...

    async def start_background_updates(
        self,
        options: WatchOptions,
        callback: PositionCallback,
    ) -> SensorSubscription: ...


class LocationWatch:
    """Throttled stream of positions from one sensor subscription.

    A fix is delivered immediately when ``time_interval`` seconds have
    passed since the previous delivery or the device moved at least
    ``distance_interval`` metres.  Otherwise the newest fix is held and
    delivered by a single trailing timer once the interval expires.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        options: WatchOptions,
        callback: PositionCallback,
        on_delivered: PositionCallback | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._loop = loop
        self._options = options
        self._callback = callback
        self._on_delivered = on_delivered
        self._clock = clock or loop.time
        self._subscription: SensorSubscription | None = None
        self._last_at: float | None = None
        self._last_position: Position | None = None
        self._pending: Position | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def options(self) -> WatchOptions:
        return self._options

    @property
    def last_position(self) -> Position | None:
        return self._last_position

    def attach(self, subscription: SensorSubscription) -> None:
        """Bind the sensor subscription this watch is responsible for removing."""
        if self._cancelled:
            _remove_quietly(subscription)
            return
        self._subscription = subscription

    def feed(self, position: Position) -> None:
        """Sensor callback entry point.  Safe to call from any thread."""
        try:
            self._loop.call_soon_threadsafe(self._on_fix, position)
        except RuntimeError:
            _logger.debug("Dropping location update, event loop is closed")

    def cancel(self) -> None:
        """Remove the sensor subscription and drop any pending update."""
        if self._cancelled:
            return
        self._cancelled = True
        self._pending = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            _remove_quietly(subscription)

    def _on_fix(self, position: Position) -> None:
        if self._cancelled:
            return
        now = self._clock()
        if self._is_due(position, now):
            self._deliver(position, now)
            return
        self._pending = position
        if self._timer is None and self._last_at is not None:
            delay = max(0.0, self._last_at + self._options.time_interval - now)
            self._timer = self._loop.call_later(delay, self._flush)

    def _is_due(self, position: Position, now: float) -> bool:
        if self._last_at is None or self._last_position is None:
            return True
        if now - self._last_at >= self._options.time_interval:
            return True
        if self._options.distance_interval <= 0:
            return False
        return distance_meters(self._last_position, position) >= self._options.distance_interval

    def _flush(self) -> None:
        self._timer = None
        position = self._pending
        if position is None or self._cancelled:
            return
        self._deliver(position, self._clock())

    def _deliver(self, position: Position, now: float) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None
        self._last_at = now
        self._last_position = position
        try:
            self._callback(position)
        except Exception:
            _logger.exception("Error in location watch callback")
        if self._on_delivered is not None:
            self._on_delivered(position)


def _remove_quietly(subscription: SensorSubscription) -> None:
    try:
        subscription.remove()
    except Exception:
        _logger.debug("Sensor subscription removal failed", exc_info=True)


class LocationService:
    """Best-effort current position for the map.

    Usage::

        service = LocationService(sensor, cache)
        position = await service.get_current_position()
        if position is not None:
            await service.watch(on_position)
    """

    def __init__(
        self,
        provider: SensorProvider,
        cache: PersistentCache,
        config: FleetConfig | None = None,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._config = config or FleetConfig()
        self._watch: LocationWatch | None = None
        self._background: SensorSubscription | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task[bool]] = set()

    @property
    def watching(self) -> bool:
        return self._watch is not None and self._watch.active

    @property
    def background_tracking(self) -> bool:
        return self._background is not None

    # ------------------------------------------------------------------
    # One-shot position
    # ------------------------------------------------------------------

    async def get_current_position(self) -> Position | None:
        """Live fix if possible, else the cached position of any age, else ``None``.

        Never raises for sensor or cache failures.
        """
        if not await self._service_enabled():
            _logger.info("Location services disabled, using cached position")
            return await self.get_cached_position()

        if not await self._ensure_permission():
            _logger.info("Location permission denied, using cached position")
            return await self.get_cached_position()

        try:
            fix = await self._provider.current_fix()
        except Exception as exc:
            _logger.info("Current location unavailable: %s", exc)
            fix = None
        if fix is None:
            cached = await self.get_cached_position()
            if cached is not None:
                _logger.debug("Using cached location")
            return cached

        await self._cache.save_position(fix)
        return fix

    async def get_cached_position(self) -> Position | None:
        return await self._cache.load_position()

    async def request_permissions(self) -> bool:
        """Check the service and foreground permission, then ask for background access.

        Background permission is optional; failing to obtain it is logged
        and does not change the result.
        """
        if not await self._service_enabled():
            _logger.warning("Location services disabled")
            return False
        if not await self._ensure_permission():
            _logger.warning("Foreground permission denied")
            return False
        try:
            await self._provider.request_background_permission()
        except Exception:
            _logger.debug("Background permission not available", exc_info=True)
        return True

    # ------------------------------------------------------------------
    # Continuous updates
    # ------------------------------------------------------------------

    async def watch(self, callback: PositionCallback) -> LocationWatch | None:
        """Stream throttled positions to ``callback``, caching each one.

        Replaces any watch previously started by this service.  Returns
        ``None`` if the service is disabled, permission is missing or the
        sensor refuses the subscription.

        Raises
        ------
        TypeError
            If ``callback`` is not callable.
        """
        if not callable(callback):
            raise TypeError(f"callback must be callable, got {type(callback).__name__}")
        if not await self._service_enabled() or not await self._ensure_permission():
            return None

        self.stop_watching()
        self._loop = asyncio.get_running_loop()
        options = WatchOptions(
            time_interval=self._config.watch_time_interval,
            distance_interval=self._config.watch_distance_interval,
        )
        watch = LocationWatch(
            loop=self._loop,
            options=options,
            callback=callback,
            on_delivered=self._remember,
        )
        try:
            subscription = await self._provider.watch(options, watch.feed)
        except Exception:
            _logger.warning("Failed to start location watch", exc_info=True)
            watch.cancel()
            return None
        watch.attach(subscription)
        self._watch = watch
        return watch

    def stop_watching(self) -> None:
        watch = self._watch
        self._watch = None
        if watch is not None:
            watch.cancel()

    async def start_background_tracking(self) -> bool:
        """Cache positions in the background.  Best effort; ``False`` on failure."""
        if self._background is not None:
            return True
        self._loop = asyncio.get_running_loop()
        options = WatchOptions(
            time_interval=self._config.background_time_interval,
            distance_interval=self._config.background_distance_interval,
        )
        try:
            self._background = await self._provider.start_background_updates(options, self._on_background_fix)
        except Exception:
            _logger.warning("Background tracking not available", exc_info=True)
            return False
        _logger.debug("Background tracking started")
        return True

    async def stop_background_tracking(self) -> None:
        subscription = self._background
        self._background = None
        if subscription is not None:
            _remove_quietly(subscription)
            _logger.debug("Background tracking stopped")

    async def aclose(self) -> None:
        """Stop all tracking and wait for in-flight cache writes."""
        self.stop_watching()
        await self.stop_background_tracking()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _service_enabled(self) -> bool:
        try:
            return bool(await self._provider.service_enabled())
        except Exception:
            _logger.warning("Location service check failed", exc_info=True)
            return False

    async def _ensure_permission(self) -> bool:
        try:
            status = PermissionStatus(await self._provider.permission_status())
            if status == PermissionStatus.GRANTED:
                return True
            status = PermissionStatus(await self._provider.request_permission())
        except Exception:
            _logger.warning("Location permission check failed", exc_info=True)
            return False
        return status == PermissionStatus.GRANTED

    def _on_background_fix(self, position: Position) -> None:
        loop = self._loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(self._remember, position)
        except RuntimeError:
            _logger.debug("Dropping background location, event loop is closed")

    def _remember(self, position: Position) -> None:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._cache.save_position(position))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
