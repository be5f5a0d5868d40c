"""Custom exception hierarchy for fleetview."""

from __future__ import annotations


class FleetError(Exception):
    """Base exception for all fleetview errors."""


class FleetConfigError(FleetError):
    """Invalid or missing configuration."""


class FleetStorageError(FleetError):
    """Durable store read or write failure."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class FleetSensorError(FleetError):
    """Location sensor provider failure.

    Raised by sensor providers when a fix, a permission query or a
    subscription cannot be obtained.  The location service catches it
    and degrades to the cached position.
    """

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)
