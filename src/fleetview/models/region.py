"""Geographic region models."""

from __future__ import annotations

from typing import NamedTuple

from pydantic import AliasChoices, Field

from fleetview.models._base import FleetBaseModel


class Region(FleetBaseModel):
    """Named anchor point drivers are generated around."""

    name: str = Field(min_length=1)
    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))


class Bounds(NamedTuple):
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, latitude: float, longitude: float) -> bool:
        """Inclusive containment on both axes."""
        return self.min_lat <= latitude <= self.max_lat and self.min_lng <= longitude <= self.max_lng


class Viewport(FleetBaseModel):
    """Axis-aligned rectangle in degrees.

    This is a plain equirectangular box, adequate at city scale; it is
    not a spherical cap.

    Parameters
    ----------
    center_lat, center_lng : float
        Rectangle center.
    lat_span, lng_span : float
        Full height and width in degrees.
    """

    center_lat: float = Field(validation_alias=AliasChoices("center_lat", "latitude"))
    center_lng: float = Field(validation_alias=AliasChoices("center_lng", "longitude"))
    lat_span: float = Field(ge=0, validation_alias=AliasChoices("lat_span", "latitudeDelta", "latitude_delta"))
    lng_span: float = Field(ge=0, validation_alias=AliasChoices("lng_span", "longitudeDelta", "longitude_delta"))

    @classmethod
    def around(cls, latitude: float, longitude: float, span: float) -> Viewport:
        """Square viewport of ``span`` degrees centered on a point."""
        return cls(center_lat=latitude, center_lng=longitude, lat_span=span, lng_span=span)

    def bounds(self) -> Bounds:
        half_lat = self.lat_span / 2
        half_lng = self.lng_span / 2
        return Bounds(
            min_lat=self.center_lat - half_lat,
            max_lat=self.center_lat + half_lat,
            min_lng=self.center_lng - half_lng,
            max_lng=self.center_lng + half_lng,
        )
