import math

import pytest
from haversine import Unit, haversine

from greentrack.geo import EARTH_RADIUS_M, distance_meters, is_valid_coordinate
from greentrack.models import GeoCoordinate as C


@pytest.mark.parametrize(
    "a, b",
    [
        (C(0.0, 0.0), C(0.0, 1.0)),
        (C(12.97, 77.59), C(12.9718, 77.5912)),
        (C(89.9, 10.0), C(-89.9, -170.0)),
        (C(10.0, 179.9), C(10.0, -179.9)),
        (C(-33.86, 151.21), C(51.5, -0.12)),
    ],
)
def test_distance_is_symmetric(a, b):
    assert distance_meters(a, b) == distance_meters(b, a)
    assert distance_meters(a, b) >= 0.0


def test_same_point_is_zero():
    p = C(12.97, 77.59, speed=3.0)
    assert distance_meters(p, p) == pytest.approx(0.0, abs=1e-9)


def test_one_degree_of_longitude_on_equator():
    d = distance_meters(C(0.0, 0.0), C(0.0, 1.0))
    assert d == pytest.approx(111_195, rel=0.01)


@pytest.mark.parametrize(
    "a, b",
    [
        ((43.238949, 76.945465), (51.169392, 71.449074)),
        ((12.97, 77.59), (12.9718, 77.59)),
        ((0.0, 0.0), (0.0, 1.0)),
    ],
)
def test_agrees_with_haversine_package(a, b):
    ours = distance_meters(C(*a), C(*b))
    ref = haversine(a, b, unit=Unit.METERS)
    # haversine uses a 6371.0088 km mean radius
    assert ours == pytest.approx(ref, rel=1e-5)


def test_antipodal_points_do_not_raise():
    d = distance_meters(C(90.0, 0.0), C(-90.0, 0.0))
    assert d == pytest.approx(math.pi * EARTH_RADIUS_M, rel=1e-9)

    d = distance_meters(C(0.0, 0.0), C(0.0, 180.0))
    assert d == pytest.approx(math.pi * EARTH_RADIUS_M, rel=1e-9)


def test_antimeridian_crossing_is_short():
    d = distance_meters(C(0.0, 179.9999), C(0.0, -179.9999))
    assert d < 50.0


@pytest.mark.parametrize(
    "coord, ok",
    [
        (C(0.0, 0.0), True),
        (C(90.0, 180.0), True),
        (C(90.1, 0.0), False),
        (C(0.0, -180.5), False),
        (C(float("nan"), 0.0), False),
        (C(0.0, float("inf")), False),
    ],
)
def test_is_valid_coordinate(coord, ok):
    assert is_valid_coordinate(coord) is ok
