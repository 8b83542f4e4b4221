import os

import pytest

from fuel_planner.models import RiderProfile, TrackPoint

DATA_DIR = os.path.join(os.path.dirname(__file__), "functional", "data")
SAMPLE_GPX_PATH = os.path.join(DATA_DIR, "sample_ride.gpx")
HILLY_GPX_PATH = os.path.join(DATA_DIR, "hilly_ride.gpx")

# Kilometers per degree of latitude on a 6371 km sphere
KM_PER_DEGREE = 111.19492664455873


def make_track_points(elevations: list[float], spacing_km: float = 0.1) -> list[TrackPoint]:
    """Create track points with given elevations along a meridian."""
    base_lat, base_lon = 45.0, 6.0
    lat_delta = spacing_km / KM_PER_DEGREE
    return [
        TrackPoint(lat=base_lat + i * lat_delta, lon=base_lon, elevation=elev)
        for i, elev in enumerate(elevations)
    ]


@pytest.fixture
def default_profile():
    return RiderProfile()


@pytest.fixture
def flat_track_points():
    """Flat, ~100m apart."""
    return make_track_points([10.0] * 5)


@pytest.fixture
def climb_then_descent_points():
    """Climbs 50m over 0.5km then descends 50m over 0.5km."""
    return make_track_points([100.0, 150.0, 100.0], spacing_km=0.5)
