import pytest

from fuel_planner.distance import EARTH_RADIUS_KM, haversine_distance


class TestHaversineDistance:
    def test_same_point_is_zero(self):
        assert haversine_distance(45.0, 6.0, 45.0, 6.0) == 0.0

    def test_one_degree_of_latitude(self):
        expected = EARTH_RADIUS_KM * 3.141592653589793 / 180
        assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-9)

    def test_symmetric(self):
        a = haversine_distance(37.7749, -122.4194, 34.0522, -118.2437)
        b = haversine_distance(34.0522, -118.2437, 37.7749, -122.4194)
        assert a == pytest.approx(b)

    def test_san_francisco_to_los_angeles(self):
        # ~559 km great-circle
        d = haversine_distance(37.7749, -122.4194, 34.0522, -118.2437)
        assert 550 < d < 570

    def test_antipodal_points(self):
        d = haversine_distance(0.0, 0.0, 0.0, 180.0)
        assert d == pytest.approx(EARTH_RADIUS_KM * 3.141592653589793, rel=1e-6)
