"""Viewport queries over a fleet snapshot.

Everything here is a pure function of its arguments: nothing is cached and
the input sequence is never modified, so these are safe to call on every
map region change and from any number of readers at once.
"""

from __future__ import annotations

from collections.abc import Sequence

from fleetview._constants import MAX_VISIBLE_ZOOMED_IN, MAX_VISIBLE_ZOOMED_OUT, ZOOMED_OUT_LAT_SPAN
from fleetview.models.driver import Driver, DriverStatus
from fleetview.models.region import Viewport

STATUS_PRIORITY: dict[DriverStatus, int] = {
    DriverStatus.ACTIVE: 3,
    DriverStatus.IDLE: 2,
    DriverStatus.OFFLINE: 1,
}


def status_priority(status: DriverStatus) -> int:
    """Render priority of a status; unknown statuses rank last."""
    return STATUS_PRIORITY.get(status, 0)


def max_visible(viewport: Viewport) -> int:
    """Marker cap for a viewport: fewer markers when zoomed out."""
    if viewport.lat_span > ZOOMED_OUT_LAT_SPAN:
        return MAX_VISIBLE_ZOOMED_OUT
    return MAX_VISIBLE_ZOOMED_IN


def filter_visible(drivers: Sequence[Driver], viewport: Viewport | None) -> list[Driver]:
    """Select the drivers worth rendering inside ``viewport``.

    Drivers inside the rectangle (edges included) are ordered by status
    priority, highest first, keeping input order among equals, and the
    result is cut to :func:`max_visible`.  The cap bounds rendering cost;
    it does not pick the drivers closest to the center.
    """
    if viewport is None or not drivers:
        return []

    bounds = viewport.bounds()
    visible = [driver for driver in drivers if bounds.contains(driver.latitude, driver.longitude)]
    # sorted() is stable, so equal priorities keep their relative order.
    visible = sorted(visible, key=lambda driver: status_priority(driver.status), reverse=True)
    return visible[: max_visible(viewport)]


def route_coordinates(driver: Driver | None) -> list[tuple[float, float]]:
    """Route polyline for a driver as ``(latitude, longitude)`` pairs, newest first."""
    if driver is None:
        return []
    return [(sample.latitude, sample.longitude) for sample in driver.history]
