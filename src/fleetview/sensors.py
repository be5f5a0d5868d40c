"""In-process sensor provider for demos and integration tests."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable
from datetime import UTC, datetime

from fleetview.exceptions import FleetSensorError
from fleetview.location import PositionCallback
from fleetview.models.location import PermissionStatus, Position, WatchOptions

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TaskSubscription:
    """Sensor subscription backed by an asyncio task."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def remove(self) -> None:
        self._task.cancel()


class SimulatedSensor:
    """Pretends to be a GPS receiver wandering around ``anchor``.

    Parameters
    ----------
    anchor : tuple of float
        ``(latitude, longitude)`` the simulated device stays near.
    enabled : bool
        Value reported by :meth:`service_enabled`.
    permission : PermissionStatus
        Current permission.  ``UNDETERMINED`` becomes ``grant_on_request``
        after the first :meth:`request_permission` call.
    grant_on_request : PermissionStatus
        Outcome of a permission request.
    background_supported : bool
        Whether :meth:`start_background_updates` succeeds.
    wander : float
        Half-width in degrees of the per-fix random offset.
    accuracy : float
        Reported accuracy in metres.
    emit_interval : float or None
        Seconds between emitted fixes on a subscription; defaults to the
        subscription's ``time_interval``.
    """

    def __init__(
        self,
        anchor: tuple[float, float],
        *,
        enabled: bool = True,
        permission: PermissionStatus = PermissionStatus.GRANTED,
        grant_on_request: PermissionStatus = PermissionStatus.GRANTED,
        background_supported: bool = True,
        wander: float = 0.0002,
        accuracy: float = 15.0,
        emit_interval: float | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._anchor = anchor
        self._enabled = enabled
        self._permission = permission
        self._grant_on_request = grant_on_request
        self._background_supported = background_supported
        self._wander = wander
        self._accuracy = accuracy
        self._emit_interval = emit_interval
        self._rng = rng or random.Random()
        self._clock = clock
        self.permission_requests = 0

    async def service_enabled(self) -> bool:
        return self._enabled

    async def permission_status(self) -> PermissionStatus:
        return self._permission

    async def request_permission(self) -> PermissionStatus:
        self.permission_requests += 1
        if self._permission == PermissionStatus.UNDETERMINED:
            self._permission = self._grant_on_request
        return self._permission

    async def request_background_permission(self) -> PermissionStatus:
        if not self._background_supported:
            raise FleetSensorError("Background location not supported", operation="request_background_permission")
        return self._permission

    async def current_fix(self) -> Position | None:
        if not self._enabled:
            raise FleetSensorError("Location services disabled", operation="current_fix")
        return self._next_fix()

    async def watch(self, options: WatchOptions, callback: PositionCallback) -> TaskSubscription:
        return self._spawn(options, callback, name="simulated-sensor-watch")

    async def start_background_updates(self, options: WatchOptions, callback: PositionCallback) -> TaskSubscription:
        if not self._background_supported:
            raise FleetSensorError("Background location not supported", operation="start_background_updates")
        return self._spawn(options, callback, name="simulated-sensor-background")

    def _next_fix(self) -> Position:
        lat, lng = self._anchor
        return Position(
            latitude=lat + self._rng.uniform(-self._wander, self._wander),
            longitude=lng + self._rng.uniform(-self._wander, self._wander),
            accuracy=self._accuracy,
            timestamp=self._clock(),
        )

    def _spawn(self, options: WatchOptions, callback: PositionCallback, *, name: str) -> TaskSubscription:
        interval = self._emit_interval or options.time_interval
        task = asyncio.get_running_loop().create_task(self._emit(interval, callback), name=name)
        return TaskSubscription(task)

    async def _emit(self, interval: float, callback: PositionCallback) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                callback(self._next_fix())
            except Exception:
                _logger.debug("Simulated sensor callback failed", exc_info=True)
