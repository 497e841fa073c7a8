import math

import pytest

from src.geo_attendance.geo_attendance.core.exceptions import InvalidCoordinate
from src.geo_attendance.geo_attendance.geo.distance import distance_meters, is_inside
from src.geo_attendance.geo_attendance.geo.model import GeoPoint


def test_distance_to_self_is_zero():
    p = GeoPoint(10.7769, 106.7009)
    assert distance_meters(p, p) == 0


def test_distance_is_symmetric():
    a = GeoPoint(21.0285, 105.8542)
    b = GeoPoint(10.7769, 106.7009)
    assert distance_meters(a, b) == pytest.approx(distance_meters(b, a))


def test_one_degree_of_latitude_is_about_111km():
    d = distance_meters(GeoPoint(0, 0), GeoPoint(1, 0))
    assert d == pytest.approx(111_195, rel=1e-3)


def test_antipodal_points_do_not_blow_up():
    d = distance_meters(GeoPoint(0, 0), GeoPoint(0, 180))
    assert d == pytest.approx(math.pi * 6_371_000, rel=1e-6)


def test_boundary_is_inclusive(make_zone):
    edge = GeoPoint(0.0009, 0.0)
    exact = distance_meters(edge, GeoPoint(0.0, 0.0))

    assert is_inside(edge, make_zone(radius_m=exact))
    assert not is_inside(edge, make_zone(radius_m=exact - 1e-6))


@pytest.mark.parametrize("lat, lon", [(91, 0), (-90.5, 0), (0, 181), (0, -180.01), ("abc", 0), (float("nan"), 0)])
def test_invalid_coordinates_are_rejected(lat, lon):
    with pytest.raises(InvalidCoordinate):
        GeoPoint(lat, lon)
