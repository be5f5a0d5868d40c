"""Fleet state engine.

The engine is the only owner of the driver population.  It runs a single
timer task; every mutation happens inside :meth:`FleetEngine.tick`, which
is serialized by a lock, so the population has exactly one writer.

Snapshots are tuples of frozen :class:`~fleetview.models.Driver` models.
A tick builds a complete new tuple (drivers that did not move are the same
objects as before) and swaps it in before any subscriber is notified, so
observers only ever see whole snapshots.

Lifecycle::

    Uninitialized --connect()--> Running --disconnect()--> (timer stopped)
                                   ^                              |
                                   +---------connect()------------+

Seeding an empty engine happens either in :meth:`connect` or in the
:meth:`subscribe` fallback.  Both take the same seed lock and re-check
for an empty population, so concurrent callers generate at most once.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from fleetview._constants import SUBSCRIBE_SEED_DELAY_SECONDS
from fleetview.cache import PersistentCache
from fleetview.config import FleetConfig
from fleetview.exceptions import FleetError
from fleetview.generator import draw_speed, generate_fleet
from fleetview.models.driver import Driver, RouteSample

_logger = logging.getLogger(__name__)

Snapshot = tuple[Driver, ...]
Listener = Callable[[Snapshot], Any]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Subscription:
    """Handle returned by :meth:`FleetEngine.subscribe`.

    Usable as a context manager; leaving the block unsubscribes.
    """

    def __init__(self, engine: FleetEngine, listener: Listener) -> None:
        self._engine = engine
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def listener(self) -> Listener:
        return self._listener

    def unsubscribe(self) -> None:
        """Stop receiving snapshots.  Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._engine.unsubscribe(self._listener)

    close = unsubscribe

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.unsubscribe()


class FleetEngine:
    """Owns the simulated fleet and pushes snapshots to subscribers.

    Usage::

        engine = FleetEngine(PersistentCache(MemoryStore()))
        sub = engine.subscribe(render)
        await engine.connect()
        ...
        engine.disconnect()
        sub.unsubscribe()
    """

    def __init__(
        self,
        cache: PersistentCache,
        config: FleetConfig | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._cache = cache
        self._config = config or FleetConfig()
        self._rng = rng or random.Random()
        self._clock = clock
        self._drivers: Snapshot = ()
        self._by_id: dict[int, Driver] = {}
        self._listeners: list[Listener] = []
        # Registered on an empty fleet and not yet handed a snapshot.
        self._awaiting_seed: list[Listener] = []
        self._timer: asyncio.Task[None] | None = None
        self._tick_lock = asyncio.Lock()
        self._seed_lock = asyncio.Lock()
        self._pending: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot:
        """Current population.  Immutable; safe to keep across ticks."""
        return self._drivers

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def get_by_id(self, driver_id: int) -> Driver | None:
        """Return the driver with ``driver_id``, or ``None`` if there is none."""
        return self._by_id.get(driver_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Load or generate the fleet, notify subscribers and start the timer.

        Calling ``connect`` on a running engine re-notifies subscribers but
        never starts a second timer.  Cache failures are logged and fall
        back to generation.
        """
        async with self._seed_lock:
            if not self._drivers:
                restored = await self._restore()
                if restored:
                    restored = self._trim_history(restored)
                    self._replace(restored)
                    _logger.debug("Restored %d drivers from cache", len(restored))
                else:
                    self._seed()
                    await self._persist()

        self._notify(self._drivers)

        if not self.is_running:
            self._timer = asyncio.create_task(self._run(), name="fleetview-engine-timer")
            _logger.debug("Engine timer started interval=%.1fs", self._config.update_interval)

    def disconnect(self) -> None:
        """Stop the timer and any pending subscribe seeding.

        Population and subscribers are kept; a later :meth:`connect`
        delivers the population to every subscriber.
        """
        for task in list(self._pending):
            task.cancel()
        timer = self._timer
        self._timer = None
        if timer is not None and not timer.done():
            timer.cancel()
            _logger.debug("Engine timer stopped")

    async def load_cached_snapshot(self) -> Snapshot:
        """Return whatever fleet the cache holds, regardless of age.

        Intended for painting a first frame before :meth:`connect` finishes.
        """
        try:
            record = await self._cache.load_fleet_record()
        except Exception:
            _logger.warning("Failed to read cached fleet", exc_info=True)
            return ()
        return self._trim_history(record.drivers) if record is not None else ()

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Subscription:
        """Register ``listener`` for every future snapshot.

        If the fleet is already populated, ``listener`` receives the
        current snapshot before this method returns.  Otherwise a seed
        task is scheduled on the running loop which generates the fleet
        (unless :meth:`connect` got there first) and then delivers it.

        Raises
        ------
        TypeError
            If ``listener`` is not callable.
        FleetError
            If the fleet is empty and there is no running event loop to
            seed it on.
        """
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")

        if self._drivers:
            self._listeners.append(listener)
            self._deliver(listener, self._drivers)
            return Subscription(self, listener)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise FleetError("subscribe() on an empty fleet requires a running event loop") from exc

        self._listeners.append(listener)
        self._awaiting_seed.append(listener)
        task = loop.create_task(self._seed_for(listener), name="fleetview-subscribe-seed")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return Subscription(self, listener)

    def unsubscribe(self, listener: Listener) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)
        with contextlib.suppress(ValueError):
            self._awaiting_seed.remove(listener)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def tick(self) -> Snapshot:
        """Advance the simulation by one step and notify subscribers.

        A random ``update_fraction`` of indices (rounded down, without
        replacement) is selected; selected drivers that are not offline
        take a small random step, draw a new speed and record a route
        sample.  Everything else is carried over untouched.
        """
        async with self._tick_lock:
            current = self._drivers
            if not current:
                return current

            now = self._clock()
            updated = list(current)
            moved = 0
            for index in self._select_indices(len(current)):
                driver = current[index]
                if not driver.is_moving:
                    continue
                updated[index] = self._step(driver, now)
                moved += 1

            snapshot: Snapshot = tuple(updated)
            self._replace(snapshot)
            _logger.debug("Tick moved %d/%d drivers", moved, len(snapshot))

            try:
                if self._rng.random() < self._config.persist_probability:
                    await self._persist()
            finally:
                # Already swapped in, so subscribers see it even if the tick is cancelled.
                self._notify(snapshot)
            return snapshot

    def _select_indices(self, size: int) -> list[int]:
        count = int(size * self._config.update_fraction)
        return self._rng.sample(range(size), count)

    def _step(self, driver: Driver, now: datetime) -> Driver:
        step = self._config.walk_step
        latitude = driver.latitude + self._rng.uniform(-step, step)
        longitude = driver.longitude + self._rng.uniform(-step, step)
        # History is newest first; never let a wall-clock jump reorder it.
        if driver.history and driver.history[0].timestamp > now:
            now = driver.history[0].timestamp
        sample = RouteSample(latitude=latitude, longitude=longitude, timestamp=now)
        history = (sample, *driver.history)[: self._config.history_limit]
        return driver.model_copy(
            update={
                "latitude": latitude,
                "longitude": longitude,
                "speed": draw_speed(self._rng, driver.status),
                "history": history,
            }
        )

    async def _run(self) -> None:
        interval = self._config.update_interval
        while True:
            await asyncio.sleep(interval)
            try:
                await self.tick()
            except Exception:
                _logger.exception("Fleet tick failed")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _trim_history(self, drivers: Snapshot) -> Snapshot:
        # Cached records may predate a lower history_limit.
        limit = self._config.history_limit
        return tuple(
            driver if len(driver.history) <= limit else driver.model_copy(update={"history": driver.history[:limit]})
            for driver in drivers
        )

    def _replace(self, drivers: Snapshot) -> None:
        self._drivers = drivers
        self._by_id = {driver.id: driver for driver in drivers}

    def _seed(self) -> None:
        drivers = generate_fleet(
            self._config.driver_count,
            self._config.regions,
            rng=self._rng,
            jitter=self._config.generation_jitter,
        )
        self._replace(drivers)
        _logger.debug("Generated %d drivers across %d regions", len(drivers), len(self._config.regions))

    async def _seed_for(self, listener: Listener) -> None:
        await asyncio.sleep(SUBSCRIBE_SEED_DELAY_SECONDS)
        async with self._seed_lock:
            if not self._drivers:
                self._seed()
                await self._persist()
        if listener in self._awaiting_seed:
            self._awaiting_seed.remove(listener)
            self._deliver(listener, self._drivers)

    async def _restore(self) -> Snapshot | None:
        try:
            return await self._cache.load_fleet()
        except Exception:
            _logger.warning("Failed to restore fleet from cache", exc_info=True)
            return None

    async def _persist(self) -> bool:
        drivers = self._drivers
        try:
            return await asyncio.wait_for(
                self._cache.save_fleet(drivers),
                timeout=self._config.persist_timeout,
            )
        except TimeoutError:
            _logger.warning("Fleet cache write exceeded %.1fs, skipped", self._config.persist_timeout)
        except Exception:
            _logger.warning("Fleet cache write failed", exc_info=True)
        return False

    def _notify(self, snapshot: Snapshot) -> None:
        self._awaiting_seed.clear()
        # Copy first: listeners may (un)subscribe while being notified.
        for listener in list(self._listeners):
            self._deliver(listener, snapshot)

    @staticmethod
    def _deliver(listener: Listener, snapshot: Snapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            _logger.exception("Error in subscriber callback %r", listener)
