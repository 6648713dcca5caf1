# tests/test_geodesy.py
import pytest

from runroute.models.routing import Coordinate
from runroute.services import geodesy

OSLO = Coordinate(lat=59.9139, lon=10.7522)
STOCKHOLM = Coordinate(lat=59.3293, lon=18.0686)


def _angle_diff(a: float, b: float) -> float:
    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


def test_distance_is_symmetric_and_zero_on_same_point():
    assert geodesy.distance_km(OSLO, STOCKHOLM) == geodesy.distance_km(STOCKHOLM, OSLO)
    assert geodesy.distance_km(OSLO, OSLO) == 0


def test_distance_ignores_elevation():
    high = Coordinate(lat=OSLO.lat, lon=OSLO.lon, elevation=2000.0)
    assert geodesy.distance_km(OSLO, high) == 0


def test_one_degree_of_longitude_at_equator():
    a = Coordinate(lat=0.0, lon=0.0)
    b = Coordinate(lat=0.0, lon=1.0)
    assert geodesy.distance_km(a, b) == pytest.approx(111.195, abs=0.01)


def test_oslo_stockholm_distance():
    assert geodesy.distance_km(OSLO, STOCKHOLM) == pytest.approx(416, abs=5)


def test_cardinal_bearings():
    origin = Coordinate(lat=0.0, lon=0.0)
    assert geodesy.bearing_degrees(origin, Coordinate(lat=1.0, lon=0.0)) == pytest.approx(0.0)
    assert geodesy.bearing_degrees(origin, Coordinate(lat=0.0, lon=1.0)) == pytest.approx(90.0)
    assert geodesy.bearing_degrees(origin, Coordinate(lat=-1.0, lon=0.0)) == pytest.approx(180.0)
    assert geodesy.bearing_degrees(origin, Coordinate(lat=0.0, lon=-1.0)) == pytest.approx(270.0)


@pytest.mark.parametrize("bearing", [0, 10, 45, 90, 135, 180, 225, 270, 315, 359.5])
@pytest.mark.parametrize("dist_km", [0.05, 1.0, 12.5])
def test_destination_bearing_round_trip(bearing, dist_km):
    target = geodesy.destination(OSLO, bearing, dist_km)

    assert _angle_diff(geodesy.bearing_degrees(OSLO, target), bearing) <= 0.5
    assert geodesy.distance_km(OSLO, target) == pytest.approx(dist_km, rel=1e-6)


def test_destination_wraps_longitude():
    near_dateline = Coordinate(lat=0.0, lon=179.99)
    target = geodesy.destination(near_dateline, 90, 10)
    assert -180.0 <= target.lon < -179.0


def test_gradient_percent():
    assert geodesy.gradient_percent(100, 110, 1.0) == pytest.approx(1.0)
    assert geodesy.gradient_percent(110, 100, 0.1) == pytest.approx(-10.0)
    assert geodesy.gradient_percent(0, 50, 0) == 0


def test_path_distance_sums_segments():
    mid = geodesy.destination(OSLO, 0, 1.0)
    end = geodesy.destination(mid, 90, 2.0)
    assert geodesy.path_distance_km([OSLO, mid, end]) == pytest.approx(3.0, rel=1e-6)
    assert geodesy.path_distance_km([OSLO]) == 0


@pytest.mark.parametrize(
    "bearing, bucket",
    [(0, 0), (22.4, 0), (22.5, 45), (44, 45), (90, 90), (337.5, 0), (359, 0), (315, 315)],
)
def test_bearing_bucket(bearing, bucket):
    assert geodesy.bearing_bucket(bearing) == bucket


def test_compass_direction():
    assert geodesy.compass_direction(0) == "N"
    assert geodesy.compass_direction(90) == "E"
    assert geodesy.compass_direction(225) == "SW"
    assert geodesy.compass_direction(350) == "N"


def test_interpolate_includes_elevation():
    a = Coordinate(lat=0.0, lon=0.0, elevation=0.0)
    b = Coordinate(lat=1.0, lon=2.0, elevation=100.0)
    mid = geodesy.interpolate(a, b, 0.25)
    assert (mid.lat, mid.lon, mid.elevation) == (0.25, 0.5, 25.0)
