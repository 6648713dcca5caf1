# runroute/services/geodesy.py
import math
from typing import Sequence

from runroute.models.routing import Coordinate

EARTH_RADIUS_KM = 6371.0

_COMPASS_POINTS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle (haversine) distance in km. Elevation is ignored.
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = lat2 - lat1
    dlon = math.radians(b.lon - a.lon)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bearing_degrees(a: Coordinate, b: Coordinate) -> float:
    """
    Initial bearing from a to b in degrees, normalised to [0, 360).
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlon = math.radians(b.lon - a.lon)

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)

    bearing = math.degrees(math.atan2(y, x))
    return (bearing + 360.0) % 360.0


def destination(origin: Coordinate, bearing: float, dist_km: float) -> Coordinate:
    """
    Point reached travelling dist_km from origin along an initial bearing
    on a spherical earth.
    """
    angular = dist_km / EARTH_RADIUS_KM
    theta = math.radians(bearing)
    lat1 = math.radians(origin.lat)
    lon1 = math.radians(origin.lon)

    lat2 = math.asin(
        math.sin(lat1) * math.cos(angular)
        + math.cos(lat1) * math.sin(angular) * math.cos(theta)
    )
    lon2 = lon1 + math.atan2(
        math.sin(theta) * math.sin(angular) * math.cos(lat1),
        math.cos(angular) - math.sin(lat1) * math.sin(lat2),
    )

    # Wrap longitude back into [-180, 180)
    lon_deg = (math.degrees(lon2) + 540.0) % 360.0 - 180.0
    return Coordinate(lat=math.degrees(lat2), lon=lon_deg)


def gradient_percent(elev_a: float, elev_b: float, dist_km: float) -> float:
    if dist_km == 0:
        return 0.0
    return (elev_b - elev_a) / (dist_km * 1000.0) * 100.0


def path_distance_km(coordinates: Sequence[Coordinate]) -> float:
    total = 0.0
    for prev, curr in zip(coordinates[:-1], coordinates[1:]):
        total += distance_km(prev, curr)
    return total


def bearing_bucket(bearing: float) -> int:
    """
    Round a bearing to the nearest multiple of 45 degrees, in [0, 360).
    """
    return int(math.floor(bearing / 45.0 + 0.5) * 45) % 360


def compass_direction(bearing: float) -> str:
    return _COMPASS_POINTS[int(math.floor(bearing / 45.0 + 0.5)) % 8]


def interpolate(a: Coordinate, b: Coordinate, ratio: float) -> Coordinate:
    """Linear interpolation of all three components, ratio in [0, 1]."""
    return Coordinate(
        lat=a.lat + (b.lat - a.lat) * ratio,
        lon=a.lon + (b.lon - a.lon) * ratio,
        elevation=a.elevation + (b.elevation - a.elevation) * ratio,
    )
