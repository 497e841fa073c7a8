from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.exceptions import InvalidCoordinate


def validate_coordinate(latitude, longitude) -> tuple[float, float]:
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinate(f"Coordinate is not numeric: ({latitude!r}, {longitude!r})")
    if math.isnan(lat) or math.isnan(lon) or abs(lat) > 90 or abs(lon) > 180:
        raise InvalidCoordinate(f"Coordinate out of range: ({lat}, {lon})")
    return lat, lon


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 latitude/longitude pair, validated on construction."""

    latitude: float
    longitude: float

    def __post_init__(self):
        lat, lon = validate_coordinate(self.latitude, self.longitude)
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)

    def to_document(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_document(cls, data: dict | None) -> GeoPoint | None:
        if not data:
            return None
        return cls(latitude=data["latitude"], longitude=data["longitude"])
