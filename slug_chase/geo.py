"""Great-circle helpers on a spherical Earth (no external dependencies)."""

from __future__ import annotations

import math

from slug_chase.models import GeoPoint

EARTH_RADIUS_M = 6_371_000.0  # mean Earth radius in meters


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial compass bearing (0-360, clockwise from north) from point 1 toward point 2."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lambda = math.radians(lon2 - lon1)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def destination_latlon(lat: float, lon: float, distance_m: float, bearing_deg: float) -> tuple[float, float]:
    """Point reached by travelling along a great circle.

    Args:
        lat: Start latitude in degrees.
        lon: Start longitude in degrees.
        distance_m: Distance to travel in meters.
        bearing_deg: Initial compass bearing in degrees.

    Returns:
        (latitude, longitude) in degrees, longitude normalized to [-180, 180).
    """

    delta = distance_m / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    phi1 = math.radians(lat)
    lambda1 = math.radians(lon)

    sin_phi2 = math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    phi2 = math.asin(max(-1.0, min(1.0, sin_phi2)))
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * sin_phi2,
    )
    lon2 = (math.degrees(lambda2) + 540.0) % 360.0 - 180.0
    return math.degrees(phi2), lon2


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters between two GeoPoints."""

    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def bearing_between(a: GeoPoint, b: GeoPoint) -> float:
    return initial_bearing_deg(a.latitude, a.longitude, b.latitude, b.longitude)


def destination(start: GeoPoint, distance_m: float, bearing_deg: float) -> GeoPoint:
    """Destination-point formula on GeoPoints."""

    lat, lon = destination_latlon(start.latitude, start.longitude, distance_m, bearing_deg)
    return GeoPoint(longitude=lon, latitude=lat)

