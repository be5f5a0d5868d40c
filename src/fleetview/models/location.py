"""Device location models."""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from pydantic import AliasChoices, Field

from fleetview.models._base import FleetBaseModel, FleetStrEnum, UtcDatetime


class PermissionStatus(FleetStrEnum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"
    UNKNOWN = "unknown"


class LocationSource(enum.StrEnum):
    """Where a position returned by the location service came from."""

    SENSOR = "sensor"
    CACHE = "cache"


class Position(FleetBaseModel):
    """A device position fix.

    Parameters
    ----------
    latitude, longitude : float
        Degrees.
    accuracy : float or None
        Horizontal accuracy radius in metres, when the sensor reports one.
    timestamp : datetime
        When the fix was taken (UTC).
    source : LocationSource
        ``sensor`` for live fixes, ``cache`` for last-known positions.
    """

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))
    accuracy: float | None = Field(default=None, ge=0)
    timestamp: UtcDatetime = Field(default_factory=lambda: datetime.now(UTC))
    source: LocationSource = LocationSource.SENSOR


class WatchOptions(FleetBaseModel):
    """Throttling hints passed to the sensor provider.

    An update is due once ``time_interval`` seconds have elapsed *or*
    the device moved ``distance_interval`` metres, whichever comes first.
    """

    time_interval: float = Field(gt=0)
    distance_interval: float = Field(ge=0)
