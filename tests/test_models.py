"""Tests for Pydantic model parsing of fleetview models."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from fleetview.models import (
    Driver,
    DriverStatus,
    FleetCacheRecord,
    PermissionStatus,
    Position,
    RouteSample,
    Viewport,
)

# ------------------------------------------------------------------
# FleetStrEnum
# ------------------------------------------------------------------


class TestFleetStrEnum:
    def test_unknown_value_falls_back(self) -> None:
        assert DriverStatus("parked") == DriverStatus.UNKNOWN
        assert PermissionStatus("restricted") == PermissionStatus.UNKNOWN

    def test_case_insensitive(self) -> None:
        assert DriverStatus("ACTIVE") == DriverStatus.ACTIVE


# ------------------------------------------------------------------
# Driver
# ------------------------------------------------------------------


class TestDriver:
    def test_name_derived_from_id(self) -> None:
        assert Driver(id=7, latitude=0, longitude=0).name == "Driver 007"
        assert Driver(id=1234, latitude=0, longitude=0).name == "Driver 1234"

    def test_speed_forced_to_zero_unless_active(self) -> None:
        assert Driver(id=1, latitude=0, longitude=0, status="idle", speed=30).speed == 0
        assert Driver(id=1, latitude=0, longitude=0, status="offline", speed=30).speed == 0
        assert Driver(id=1, latitude=0, longitude=0, status="active", speed=30).speed == 30

    def test_negative_speed_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Driver(id=1, latitude=0, longitude=0, status="active", speed=-1)

    def test_unknown_status(self) -> None:
        assert Driver(id=1, latitude=0, longitude=0, status="broken-down").status == DriverStatus.UNKNOWN

    def test_short_aliases(self) -> None:
        driver = Driver.model_validate(
            {
                "id": 3,
                "lat": 19.07,
                "lng": 72.87,
                "status": "active",
                "speed": 25,
                "city": "Mumbai",
                "routeHistory": [{"lat": 19.07, "lng": 72.87, "timestamp": 1767225600}],
            }
        )

        assert driver.region == "Mumbai"
        assert driver.history[0].timestamp == datetime(2026, 1, 1, tzinfo=UTC)

    def test_frozen(self) -> None:
        driver = Driver(id=1, latitude=0, longitude=0)

        with pytest.raises(ValidationError):
            driver.latitude = 5.0  # type: ignore[misc]

    def test_offline_is_not_moving(self) -> None:
        assert not Driver(id=1, latitude=0, longitude=0, status="offline").is_moving
        assert Driver(id=1, latitude=0, longitude=0, status="idle").is_moving


def test_route_sample_naive_timestamp_becomes_utc() -> None:
    sample = RouteSample(latitude=1, longitude=2, timestamp=datetime(2026, 1, 1, 8, 30))

    assert sample.timestamp.tzinfo is UTC


def test_fleet_record_json_roundtrip() -> None:
    record = FleetCacheRecord(
        drivers=(Driver(id=0, latitude=1.5, longitude=2.5, status="active", speed=12),),
        captured_at=datetime(2026, 1, 1, tzinfo=UTC),
    )

    assert FleetCacheRecord.model_validate_json(record.model_dump_json()) == record


# ------------------------------------------------------------------
# Viewport
# ------------------------------------------------------------------


class TestViewport:
    def test_bounds(self) -> None:
        bounds = Viewport(center_lat=10.0, center_lng=20.0, lat_span=2.0, lng_span=4.0).bounds()

        assert bounds == (9.0, 11.0, 18.0, 22.0)

    def test_map_region_aliases(self) -> None:
        viewport = Viewport.model_validate(
            {"latitude": 12.97, "longitude": 77.59, "latitudeDelta": 0.05, "longitudeDelta": 0.06}
        )

        assert viewport.lat_span == 0.05
        assert viewport.lng_span == 0.06

    def test_around(self) -> None:
        viewport = Viewport.around(1.0, 2.0, 0.5)

        assert (viewport.center_lat, viewport.center_lng, viewport.lat_span, viewport.lng_span) == (1.0, 2.0, 0.5, 0.5)

    def test_negative_span_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Viewport(center_lat=0, center_lng=0, lat_span=-1, lng_span=1)


def test_position_defaults_to_sensor_source() -> None:
    position = Position(latitude=1, longitude=2)

    assert position.source.value == "sensor"
    assert position.timestamp.tzinfo is not None
