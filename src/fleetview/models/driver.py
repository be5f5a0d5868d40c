"""Driver models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from fleetview.models._base import FleetBaseModel, FleetStrEnum, UtcDatetime


class DriverStatus(FleetStrEnum):
    """Motion status of a simulated driver."""

    ACTIVE = "active"
    IDLE = "idle"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


def driver_name(driver_id: int) -> str:
    """Display name derived from the driver id (``Driver 007``)."""
    return f"Driver {driver_id:03d}"


class RouteSample(FleetBaseModel):
    """One point of a driver's movement history."""

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))
    timestamp: UtcDatetime


class Driver(FleetBaseModel):
    """A simulated vehicle.

    Parameters
    ----------
    id : int
        Sequential id assigned at generation, never reused.
    name : str
        Display name, derived from ``id`` when omitted.
    latitude, longitude : float
        Current position in degrees.
    status : DriverStatus
        ``active``, ``idle`` or ``offline``.  Unrecognised values parse
        to ``unknown``.
    speed : float
        km/h.  Always ``0`` unless the driver is active.
    history : tuple of RouteSample
        Most recent positions, newest first.
    region : str or None
        Name of the region the driver was generated in.
    """

    id: int = Field(ge=0)
    name: str = ""
    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))
    status: DriverStatus = DriverStatus.IDLE
    speed: float = Field(default=0.0, ge=0)
    history: tuple[RouteSample, ...] = Field(
        default=(),
        validation_alias=AliasChoices("history", "route_history", "routeHistory"),
    )
    region: str | None = Field(default=None, validation_alias=AliasChoices("region", "city"))

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> DriverStatus:
        if isinstance(value, DriverStatus):
            return value
        return DriverStatus(str(value))

    @model_validator(mode="after")
    def _normalise(self) -> Driver:
        # Frozen model: write through object.__setattr__ during validation only.
        if not self.name:
            object.__setattr__(self, "name", driver_name(self.id))
        if self.status != DriverStatus.ACTIVE and self.speed != 0:
            object.__setattr__(self, "speed", 0.0)
        return self

    @property
    def is_moving(self) -> bool:
        """Whether ticks may move this driver."""
        return self.status != DriverStatus.OFFLINE

    @property
    def position(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)
