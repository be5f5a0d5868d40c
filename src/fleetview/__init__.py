"""fleetview - Async simulated fleet state engine with viewport queries."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetview")
except PackageNotFoundError:
    __version__ = "0+local"
from fleetview.app import FleetApp
from fleetview.cache import PersistentCache, is_stale
from fleetview.config import FleetConfig
from fleetview.engine import FleetEngine, Subscription
from fleetview.exceptions import FleetConfigError, FleetError, FleetSensorError, FleetStorageError
from fleetview.generator import generate_fleet
from fleetview.location import LocationService, LocationWatch, SensorProvider, SensorSubscription
from fleetview.models import (
    Bounds,
    Driver,
    DriverStatus,
    LocationSource,
    PermissionStatus,
    Position,
    Region,
    RouteSample,
    Viewport,
    WatchOptions,
)
from fleetview.sensors import SimulatedSensor
from fleetview.storage import FileStore, KeyValueStore, MemoryStore
from fleetview.viewport import filter_visible, max_visible, route_coordinates

__all__ = [
    "__version__",
    "Bounds",
    "Driver",
    "DriverStatus",
    "FileStore",
    "FleetApp",
    "FleetConfig",
    "FleetConfigError",
    "FleetEngine",
    "FleetError",
    "FleetSensorError",
    "FleetStorageError",
    "KeyValueStore",
    "LocationService",
    "LocationSource",
    "LocationWatch",
    "MemoryStore",
    "PermissionStatus",
    "PersistentCache",
    "Position",
    "Region",
    "RouteSample",
    "SensorProvider",
    "SensorSubscription",
    "SimulatedSensor",
    "Subscription",
    "Viewport",
    "WatchOptions",
    "filter_visible",
    "generate_fleet",
    "is_stale",
    "max_visible",
    "route_coordinates",
]
