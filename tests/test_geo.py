"""Unit tests for the great-circle helpers."""

from __future__ import annotations

import math

import pytest

from slug_chase.geo import (
    EARTH_RADIUS_M,
    bearing_between,
    destination,
    destination_latlon,
    distance_between,
    haversine_m,
    initial_bearing_deg,
)
from slug_chase.models import GeoPoint

pytestmark = pytest.mark.unit

SHANGHAI = GeoPoint(longitude=121.4737, latitude=31.2304)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_m(31.2304, 121.4737, 31.2304, 121.4737) == 0.0

    def test_one_degree_of_latitude(self):
        expected = EARTH_RADIUS_M * math.pi / 180.0
        assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-9)

    def test_symmetric(self):
        a = haversine_m(31.2304, 121.4737, 31.2404, 121.4837)
        b = haversine_m(31.2404, 121.4837, 31.2304, 121.4737)
        assert a == pytest.approx(b)


class TestBearing:
    def test_due_north(self):
        assert initial_bearing_deg(10.0, 20.0, 11.0, 20.0) == pytest.approx(0.0, abs=1e-9)

    def test_due_east_on_equator(self):
        assert initial_bearing_deg(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0)

    def test_result_in_compass_range(self):
        b = initial_bearing_deg(0.0, 0.0, -1.0, -1.0)
        assert 180.0 < b < 270.0


class TestDestination:
    @pytest.mark.parametrize("bearing", [0.0, 37.0, 90.0, 200.0, 359.0])
    def test_distance_and_bearing_are_consistent(self, bearing):
        dest = destination(SHANGHAI, 200.0, bearing)
        assert distance_between(SHANGHAI, dest) == pytest.approx(200.0, abs=1e-6)
        assert bearing_between(SHANGHAI, dest) == pytest.approx(bearing, abs=1e-6)

    def test_zero_distance_returns_start(self):
        dest = destination(SHANGHAI, 0.0, 123.0)
        assert dest.latitude == pytest.approx(SHANGHAI.latitude)
        assert dest.longitude == pytest.approx(SHANGHAI.longitude)

    def test_longitude_wraps_at_antimeridian(self):
        lat, lon = destination_latlon(0.0, 179.9999, 100.0, 90.0)
        assert -180.0 <= lon < 180.0
        assert lon < 0.0
        assert lat == pytest.approx(0.0, abs=1e-9)
