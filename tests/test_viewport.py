from __future__ import annotations

import random
from datetime import UTC, datetime

import pytest

from fleetview.models.driver import Driver, DriverStatus, RouteSample
from fleetview.models.region import Viewport
from fleetview.viewport import filter_visible, max_visible, route_coordinates, status_priority


def _driver(driver_id: int, lat: float, lng: float, status: str = "active") -> Driver:
    return Driver(id=driver_id, latitude=lat, longitude=lng, status=status)


def _viewport(lat_span: float = 2.0, lng_span: float = 2.0) -> Viewport:
    return Viewport(center_lat=0.0, center_lng=0.0, lat_span=lat_span, lng_span=lng_span)


def test_empty_population_or_missing_viewport() -> None:
    assert filter_visible([], _viewport()) == []
    assert filter_visible([_driver(0, 0.0, 0.0)], None) == []


def test_no_drivers_in_range() -> None:
    assert filter_visible([_driver(0, 5.0, 5.0)], _viewport()) == []


def test_edges_are_inclusive() -> None:
    drivers = [
        _driver(0, 1.0, 1.0),
        _driver(1, -1.0, -1.0),
        _driver(2, 1.0001, 0.0),
        _driver(3, 0.0, -1.0001),
    ]

    visible = filter_visible(drivers, _viewport())

    assert [d.id for d in visible] == [0, 1]


def test_sorted_by_priority_and_stable() -> None:
    drivers = [
        _driver(0, 0.1, 0.1, "offline"),
        _driver(1, 0.1, 0.1, "idle"),
        _driver(2, 0.1, 0.1, "active"),
        _driver(3, 0.1, 0.1, "idle"),
        _driver(4, 0.1, 0.1, "parked"),
        _driver(5, 0.1, 0.1, "active"),
        _driver(6, 0.1, 0.1, "offline"),
    ]

    visible = filter_visible(drivers, _viewport())

    assert [d.id for d in visible] == [2, 5, 1, 3, 0, 6, 4]


def test_unknown_status_ranks_last() -> None:
    assert status_priority(DriverStatus.UNKNOWN) == 0
    assert status_priority(DriverStatus.ACTIVE) == 3


@pytest.mark.parametrize(
    ("lat_span", "cap"),
    [(2.0, 100), (1.0001, 100), (1.0, 250), (0.05, 250)],
)
def test_density_cap(lat_span: float, cap: int) -> None:
    drivers = [_driver(i, 0.0, 0.0) for i in range(400)]
    viewport = _viewport(lat_span=lat_span)

    assert max_visible(viewport) == cap
    assert len(filter_visible(drivers, viewport)) == cap


def test_never_returns_drivers_outside_viewport() -> None:
    rng = random.Random(4)
    drivers = [
        _driver(i, rng.uniform(-3, 3), rng.uniform(-3, 3), rng.choice(["active", "idle", "offline"]))
        for i in range(1000)
    ]
    viewport = Viewport(center_lat=0.5, center_lng=-0.25, lat_span=1.5, lng_span=0.8)
    bounds = viewport.bounds()

    visible = filter_visible(drivers, viewport)

    assert len(visible) <= 100
    for driver in visible:
        assert bounds.contains(driver.latitude, driver.longitude)
    priorities = [status_priority(d.status) for d in visible]
    assert priorities == sorted(priorities, reverse=True)


def test_does_not_mutate_input() -> None:
    drivers = [_driver(0, 0.1, 0.1, "offline"), _driver(1, 0.2, 0.2, "active")]
    original = list(drivers)

    filter_visible(drivers, _viewport())

    assert drivers == original


def test_accepts_tuple_snapshots() -> None:
    snapshot = (_driver(0, 0.1, 0.1, "idle"), _driver(1, 0.2, 0.2, "active"))

    assert [d.id for d in filter_visible(snapshot, _viewport())] == [1, 0]


def test_route_coordinates_newest_first() -> None:
    ts = datetime(2026, 1, 1, tzinfo=UTC)
    driver = Driver(
        id=1,
        latitude=1.0,
        longitude=2.0,
        history=(
            RouteSample(latitude=1.0, longitude=2.0, timestamp=ts),
            RouteSample(latitude=0.9, longitude=1.9, timestamp=ts),
        ),
    )

    assert route_coordinates(driver) == [(1.0, 2.0), (0.9, 1.9)]
    assert route_coordinates(None) == []
