"""Data models for fleetview."""

from fleetview.models._base import FleetBaseModel, FleetStrEnum, UtcDatetime, ensure_utc
from fleetview.models.cache import FleetCacheRecord, PositionCacheRecord
from fleetview.models.driver import Driver, DriverStatus, RouteSample, driver_name
from fleetview.models.location import LocationSource, PermissionStatus, Position, WatchOptions
from fleetview.models.region import Bounds, Region, Viewport

__all__ = [
    "Bounds",
    "Driver",
    "DriverStatus",
    "FleetBaseModel",
    "FleetCacheRecord",
    "FleetStrEnum",
    "LocationSource",
    "PermissionStatus",
    "Position",
    "PositionCacheRecord",
    "Region",
    "RouteSample",
    "UtcDatetime",
    "Viewport",
    "WatchOptions",
    "driver_name",
    "ensure_utc",
]
