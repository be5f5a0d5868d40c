"""Base model and enum for fleetview data.

Every fleetview model inherits from :class:`FleetBaseModel` which
provides:

* ``frozen=True`` so instances handed to subscribers can never be
  altered after the fact (snapshots are shared, not copied).
* ``populate_by_name`` so both field names and short aliases
  (``lat``/``lng``) validate.

Status enums inherit from :class:`FleetStrEnum` which resolves any
value without a mapped member to ``UNKNOWN`` instead of raising
``ValueError``.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]
"""Datetime that is always timezone-aware UTC after validation."""


class FleetStrEnum(enum.StrEnum):
    """Base for string status enums.

    Every subclass **must** define ``UNKNOWN = "unknown"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        if hasattr(cls, "UNKNOWN"):
            return cls.UNKNOWN  # type: ignore[attr-defined]
        return next(iter(cls))


class FleetBaseModel(BaseModel):
    """Base for immutable fleetview models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )
