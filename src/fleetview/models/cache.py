"""Persisted cache record models."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from fleetview.models._base import FleetBaseModel, UtcDatetime
from fleetview.models.driver import Driver
from fleetview.models.location import LocationSource, Position


class FleetCacheRecord(FleetBaseModel):
    """Last persisted fleet snapshot."""

    drivers: tuple[Driver, ...] = ()
    captured_at: UtcDatetime = Field(validation_alias=AliasChoices("captured_at", "timestamp"))


class PositionCacheRecord(FleetBaseModel):
    """Last known device position."""

    latitude: float
    longitude: float
    captured_at: UtcDatetime = Field(validation_alias=AliasChoices("captured_at", "timestamp"))
    accuracy: float | None = None

    @classmethod
    def from_position(cls, position: Position) -> PositionCacheRecord:
        return cls(
            latitude=position.latitude,
            longitude=position.longitude,
            captured_at=position.timestamp,
            accuracy=position.accuracy,
        )

    def to_position(self) -> Position:
        return Position(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy=self.accuracy,
            timestamp=self.captured_at,
            source=LocationSource.CACHE,
        )
