"""Persistent cache of the last known fleet and device position.

Two records are kept in a :class:`~fleetview.storage.KeyValueStore`:

* the fleet snapshot, honoured only while younger than the freshness
  window (a stale fleet looks obviously wrong on a map);
* the last device position, returned regardless of age (a stale
  position is still better than none).

Every method here logs and swallows storage and decoding failures; the
callers treat a failed read as a cache miss and a failed write as a
skipped persist.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta

from pydantic import ValidationError

from fleetview._constants import FLEET_CACHE_KEY, FLEET_CACHE_TTL_SECONDS, LOCATION_CACHE_KEY
from fleetview.exceptions import FleetStorageError
from fleetview.models.cache import FleetCacheRecord, PositionCacheRecord
from fleetview.models.driver import Driver
from fleetview.models.location import Position
from fleetview.storage import KeyValueStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def age_seconds(now: datetime, captured_at: datetime) -> float:
    return (now - captured_at).total_seconds()


def is_stale(captured_at: datetime, now: datetime, ttl: timedelta) -> bool:
    """Return True once a record is older than ``ttl``."""
    return now - captured_at > ttl


class PersistentCache:
    """Typed access to the fleet and location cache records."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
        fleet_ttl: timedelta = timedelta(seconds=FLEET_CACHE_TTL_SECONDS),
    ) -> None:
        self._store = store
        self._clock = clock
        self._fleet_ttl = fleet_ttl

    @property
    def fleet_ttl(self) -> timedelta:
        return self._fleet_ttl

    # ------------------------------------------------------------------
    # Fleet snapshot
    # ------------------------------------------------------------------

    async def save_fleet(self, drivers: Iterable[Driver]) -> bool:
        """Persist the fleet stamped with the current time.

        Returns ``False`` (after logging) when the store rejects the write.
        """
        record = FleetCacheRecord(drivers=tuple(drivers), captured_at=self._clock())
        try:
            await self._store.set(FLEET_CACHE_KEY, record.model_dump_json())
        except FleetStorageError:
            _logger.warning("Failed to cache %d drivers", len(record.drivers), exc_info=True)
            return False
        _logger.debug("Cached %d drivers at %s", len(record.drivers), record.captured_at.isoformat())
        return True

    async def load_fleet_record(self) -> FleetCacheRecord | None:
        """Return the stored fleet record of any age, or ``None``."""
        try:
            raw = await self._store.get(FLEET_CACHE_KEY)
        except FleetStorageError:
            _logger.warning("Failed to read fleet cache", exc_info=True)
            return None
        if not raw:
            return None
        try:
            return FleetCacheRecord.model_validate_json(raw)
        except ValidationError:
            _logger.warning("Discarding unreadable fleet cache", exc_info=True)
            return None

    async def load_fleet(self) -> tuple[Driver, ...] | None:
        """Return the cached fleet if present, non-empty and fresh."""
        record = await self.load_fleet_record()
        if record is None or not record.drivers:
            return None
        now = self._clock()
        if is_stale(record.captured_at, now, self._fleet_ttl):
            _logger.debug(
                "Ignoring stale fleet cache age=%.0fs ttl=%.0fs",
                age_seconds(now, record.captured_at),
                self._fleet_ttl.total_seconds(),
            )
            return None
        return record.drivers

    # ------------------------------------------------------------------
    # Device position
    # ------------------------------------------------------------------

    async def save_position(self, position: Position) -> bool:
        record = PositionCacheRecord.from_position(position)
        try:
            await self._store.set(LOCATION_CACHE_KEY, record.model_dump_json())
        except FleetStorageError:
            _logger.warning("Failed to cache device position", exc_info=True)
            return False
        return True

    async def load_position(self) -> Position | None:
        """Return the last known position regardless of its age."""
        try:
            raw = await self._store.get(LOCATION_CACHE_KEY)
        except FleetStorageError:
            _logger.warning("Failed to read location cache", exc_info=True)
            return None
        if not raw:
            return None
        try:
            return PositionCacheRecord.model_validate_json(raw).to_position()
        except ValidationError:
            _logger.warning("Discarding unreadable location cache", exc_info=True)
            return None
