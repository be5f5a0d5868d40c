"""Internal constants shared across the library."""

from __future__ import annotations

from fleetview.models.region import Region

FLEET_CACHE_KEY = "fleetview.drivers"
LOCATION_CACHE_KEY = "fleetview.location"

DEFAULT_DRIVER_COUNT = 500
UPDATE_INTERVAL_SECONDS = 3.0
UPDATE_FRACTION = 0.3
PERSIST_PROBABILITY = 0.2
FLEET_CACHE_TTL_SECONDS = 60 * 60.0
HISTORY_LIMIT = 10

# Degrees per axis.  Generation scatters drivers around a region anchor;
# ticks nudge them by a much smaller step.
GENERATION_JITTER = 0.075
WALK_STEP = 0.0005

# Speed draw for active drivers, km/h, upper bound exclusive.
SPEED_MIN = 10
SPEED_MAX = 70

# Delay before the subscribe() fallback seeds an empty fleet.
SUBSCRIBE_SEED_DELAY_SECONDS = 0.1

# ------------------------------------------------------------------
# Viewport density control
# ------------------------------------------------------------------

ZOOMED_OUT_LAT_SPAN = 1.0
MAX_VISIBLE_ZOOMED_OUT = 100
MAX_VISIBLE_ZOOMED_IN = 250

DEFAULT_LATITUDE = 12.9716
DEFAULT_LONGITUDE = 77.5946
DEFAULT_SPAN = 0.05

# ------------------------------------------------------------------
# Location watch throttling
# ------------------------------------------------------------------

WATCH_TIME_INTERVAL_SECONDS = 10.0
WATCH_DISTANCE_INTERVAL_METERS = 10.0
BACKGROUND_TIME_INTERVAL_SECONDS = 60.0
BACKGROUND_DISTANCE_INTERVAL_METERS = 50.0

EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_REGIONS: tuple[Region, ...] = (
    Region(name="Mumbai", latitude=19.0760, longitude=72.8777),
    Region(name="Delhi", latitude=28.6139, longitude=77.2090),
    Region(name="Bangalore", latitude=12.9716, longitude=77.5946),
    Region(name="Hyderabad", latitude=17.3850, longitude=78.4867),
    Region(name="Chennai", latitude=13.0827, longitude=80.2707),
    Region(name="Kolkata", latitude=22.5726, longitude=88.3639),
    Region(name="Pune", latitude=18.5204, longitude=73.8567),
    Region(name="Ahmedabad", latitude=23.0225, longitude=72.5714),
)
