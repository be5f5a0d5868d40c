"""Runtime configuration for fleetview."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from fleetview import _constants as c
from fleetview.exceptions import FleetConfigError
from fleetview.models.region import Region


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, raw: str, kind: type[int] | type[float]) -> int | float:
    try:
        return kind(raw)
    except ValueError as exc:
        raise FleetConfigError(f"{env_key} must be a {kind.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class FleetConfig:
    """Engine and location configuration.

    Parameters
    ----------
    driver_count : int
        Number of drivers generated on a cold start.
    update_interval : float
        Seconds between engine ticks.
    update_fraction : float
        Share of the fleet (rounded down) selected for mutation each tick.
    persist_probability : float
        Chance that a tick persists the fleet to the cache.
    persist_timeout : float
        Upper bound in seconds on a single cache write during a tick.
    fleet_cache_ttl : float
        Freshness window in seconds for the cached fleet.  Older
        snapshots are ignored and the fleet is regenerated.
    history_limit : int
        Maximum route samples kept per driver.
    generation_jitter : float
        Half-width in degrees of the scatter window around a region anchor.
    walk_step : float
        Half-width in degrees of the per-tick random walk.
    cache_dir : Path or None
        Directory for the file-backed cache.  ``None`` keeps the cache
        in memory for the lifetime of the process.
    default_latitude, default_longitude : float
        Map center used when no device position is available.
    default_span : float
        Viewport span in degrees around the initial center.
    watch_time_interval : float
        Foreground location watch throttle, seconds.
    watch_distance_interval : float
        Foreground location watch throttle, metres.
    background_time_interval : float
        Background tracking throttle, seconds.
    background_distance_interval : float
        Background tracking throttle, metres.
    background_tracking : bool
        Attempt best-effort background tracking once a position is known.
    regions : tuple of Region
        Anchors the fleet is distributed across.
    """

    driver_count: int = c.DEFAULT_DRIVER_COUNT
    update_interval: float = c.UPDATE_INTERVAL_SECONDS
    update_fraction: float = c.UPDATE_FRACTION
    persist_probability: float = c.PERSIST_PROBABILITY
    persist_timeout: float = 2.0
    fleet_cache_ttl: float = c.FLEET_CACHE_TTL_SECONDS
    history_limit: int = c.HISTORY_LIMIT
    generation_jitter: float = c.GENERATION_JITTER
    walk_step: float = c.WALK_STEP
    cache_dir: Path | None = None
    default_latitude: float = c.DEFAULT_LATITUDE
    default_longitude: float = c.DEFAULT_LONGITUDE
    default_span: float = c.DEFAULT_SPAN
    watch_time_interval: float = c.WATCH_TIME_INTERVAL_SECONDS
    watch_distance_interval: float = c.WATCH_DISTANCE_INTERVAL_METERS
    background_time_interval: float = c.BACKGROUND_TIME_INTERVAL_SECONDS
    background_distance_interval: float = c.BACKGROUND_DISTANCE_INTERVAL_METERS
    background_tracking: bool = True
    regions: tuple[Region, ...] = c.DEFAULT_REGIONS

    def __post_init__(self) -> None:
        if self.driver_count < 0:
            raise FleetConfigError(f"driver_count must be >= 0, got {self.driver_count}")
        if self.driver_count > 0 and not self.regions:
            raise FleetConfigError("at least one region is required to generate drivers")
        for name in ("update_interval", "persist_timeout", "watch_time_interval", "background_time_interval"):
            if getattr(self, name) <= 0:
                raise FleetConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("update_fraction", "persist_probability"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise FleetConfigError(f"{name} must be between 0 and 1, got {value}")
        if self.history_limit < 1:
            raise FleetConfigError(f"history_limit must be >= 1, got {self.history_limit}")
        if self.fleet_cache_ttl < 0:
            raise FleetConfigError(f"fleet_cache_ttl must be >= 0, got {self.fleet_cache_ttl}")
        if self.cache_dir is not None and not isinstance(self.cache_dir, Path):
            object.__setattr__(self, "cache_dir", Path(self.cache_dir))

    @classmethod
    def from_env(cls, **overrides: Any) -> FleetConfig:
        """Create configuration from environment variables.

        Reads optional ``FLEETVIEW_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        FleetConfig
            Populated configuration.

        Raises
        ------
        FleetConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        _ENV_INT_MAP = {
            "FLEETVIEW_DRIVER_COUNT": "driver_count",
            "FLEETVIEW_HISTORY_LIMIT": "history_limit",
        }
        _ENV_FLOAT_MAP = {
            "FLEETVIEW_UPDATE_INTERVAL": "update_interval",
            "FLEETVIEW_UPDATE_FRACTION": "update_fraction",
            "FLEETVIEW_PERSIST_PROBABILITY": "persist_probability",
            "FLEETVIEW_PERSIST_TIMEOUT": "persist_timeout",
            "FLEETVIEW_FLEET_CACHE_TTL": "fleet_cache_ttl",
            "FLEETVIEW_DEFAULT_LATITUDE": "default_latitude",
            "FLEETVIEW_DEFAULT_LONGITUDE": "default_longitude",
            "FLEETVIEW_DEFAULT_SPAN": "default_span",
            "FLEETVIEW_WATCH_TIME_INTERVAL": "watch_time_interval",
            "FLEETVIEW_WATCH_DISTANCE_INTERVAL": "watch_distance_interval",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, int)
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, float)

        cache_dir = env.get("FLEETVIEW_CACHE_DIR")
        if cache_dir and "cache_dir" not in overrides:
            config_kwargs["cache_dir"] = Path(cache_dir).expanduser()

        if "background_tracking" not in overrides:
            config_kwargs["background_tracking"] = _env_bool(env.get("FLEETVIEW_BACKGROUND_TRACKING"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
