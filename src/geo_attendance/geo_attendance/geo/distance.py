"""Geospatial primitives.

Distances use the Haversine formula on a spherical Earth of radius 6,371 km,
which is accurate to well under a metre at geofence scales.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from ..core.constants import EARTH_RADIUS_METERS
from .model import GeoPoint, validate_coordinate

if TYPE_CHECKING:
    from ..zones.model import Zone


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters."""

    lat1, lon1 = validate_coordinate(a.latitude, a.longitude)
    lat2, lon2 = validate_coordinate(b.latitude, b.longitude)

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    h = min(1.0, h)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def is_inside(point: GeoPoint, zone: Zone) -> bool:
    """Boundary inclusive: a point exactly `radius_m` away is inside."""
    return distance_meters(point, zone.center) <= zone.radius_m
