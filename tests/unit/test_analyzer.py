import os

import pytest

from fuel_planner.analyzer import (
    analyze_gpx_upload,
    analyze_route,
    calculate_totals,
    displayed_distance,
    ride_minutes_from_distance,
)
from fuel_planner.errors import EmptyTrackError, UnsafeDocumentError, ValidationError
from fuel_planner.models import TrackPoint, UnitSystem

KM_PER_DEGREE = 111.19492664455873
HILLY_GPX_PATH = os.path.join(
    os.path.dirname(__file__), "..", "functional", "data", "hilly_ride.gpx"
)


def make_track_points(elevations: list[float], spacing_km: float = 0.1) -> list[TrackPoint]:
    lat_delta = spacing_km / KM_PER_DEGREE
    return [
        TrackPoint(lat=45.0 + i * lat_delta, lon=6.0, elevation=elev)
        for i, elev in enumerate(elevations)
    ]


class TestAnalyzeRoute:
    def test_empty_track_raises(self):
        with pytest.raises(EmptyTrackError):
            analyze_route([])

    def test_single_point(self):
        route = analyze_route(make_track_points([100.0]))
        assert route.distance_km == 0.0
        assert route.elevation_gain_m == 0.0
        assert route.estimated_time_minutes == 0
        assert route.climbs == ()

    def test_flat_route(self, flat_track_points):
        route = analyze_route(flat_track_points)
        assert route.distance_km == pytest.approx(0.4, rel=1e-6)
        assert route.elevation_gain_m == 0.0
        assert route.climbs == ()

    def test_elevation_gain_ignores_descents(self):
        route = analyze_route(make_track_points([100.0, 110.0, 105.0, 115.0]))
        assert route.elevation_gain_m == pytest.approx(20.0)

    def test_climb_scenario(self, climb_then_descent_points):
        route = analyze_route(climb_then_descent_points)
        assert route.distance_km == pytest.approx(1.0, rel=1e-6)
        assert len(route.climbs) == 1
        assert route.climbs[0].elevation_gain_m == pytest.approx(50.0)
        assert route.climbs[0].average_grade_percent == pytest.approx(10.0, rel=1e-3)

    def test_default_name(self):
        assert analyze_route(make_track_points([1.0])).name == "Uploaded Route"
        assert analyze_route(make_track_points([1.0]), name=None).name == "Uploaded Route"

    def test_name_is_sanitized(self):
        route = analyze_route(make_track_points([1.0]), name="<b>Morning</b>\x07 Loop")
        assert route.name == "bMorning/b Loop"

    def test_estimated_time_uses_displayed_distance_us(self):
        # 20 segments of ~1.0 km: 20.0 km -> 12.4 mi -> 53 min at 14 mph
        points = make_track_points([0.0] * 21, spacing_km=1.0)
        route = analyze_route(points, unit_system=UnitSystem.US)
        assert route.estimated_time_minutes == round(12.4 / 14 * 60)

    def test_estimated_time_uses_displayed_distance_uk(self):
        points = make_track_points([0.0] * 21, spacing_km=1.0)
        route = analyze_route(points, unit_system=UnitSystem.UK)
        assert route.estimated_time_minutes == round(20.0 / 22.5 * 60)

    def test_estimated_time_has_no_elevation_bonus(self):
        flat = analyze_route(make_track_points([0.0] * 21, spacing_km=1.0))
        hilly = analyze_route(make_track_points([i * 50.0 for i in range(21)], spacing_km=1.0))
        assert hilly.estimated_time_minutes == flat.estimated_time_minutes


class TestDistanceMonotonicity:
    def test_distance_never_decreases_as_points_are_added(self):
        points = [
            TrackPoint(lat=45.0, lon=6.0, elevation=100.0),
            TrackPoint(lat=45.01, lon=6.0, elevation=110.0),
            TrackPoint(lat=45.01, lon=6.01, elevation=105.0),
            TrackPoint(lat=45.0, lon=6.01, elevation=130.0),
            TrackPoint(lat=45.0, lon=6.0, elevation=100.0),
            TrackPoint(lat=45.0, lon=6.0, elevation=100.0),
        ]
        previous = 0.0
        for n in range(1, len(points) + 1):
            distance, _ = calculate_totals(points[:n])
            assert distance >= previous >= 0.0
            previous = distance


class TestRideMinutesFromDistance:
    def test_miles(self):
        assert ride_minutes_from_distance(14.0, UnitSystem.US) == 60
        assert ride_minutes_from_distance(20.0, UnitSystem.US) == 86

    def test_kilometers(self):
        assert ride_minutes_from_distance(22.5, UnitSystem.UK) == 60
        assert ride_minutes_from_distance(32.0, UnitSystem.UK) == 85

    def test_accepts_string_unit_system(self):
        assert ride_minutes_from_distance(14.0, "US") == 60

    def test_negative_distance(self):
        with pytest.raises(ValidationError):
            ride_minutes_from_distance(-1.0)

    @pytest.mark.parametrize("distance", [float("inf"), float("nan")])
    def test_non_finite_distance(self, distance):
        with pytest.raises(ValidationError, match="finite"):
            ride_minutes_from_distance(distance)


class TestDisplayedDistance:
    def test_us_rounds_miles(self):
        assert displayed_distance(10.0, UnitSystem.US) == 6.2

    def test_uk_rounds_kilometers(self):
        assert displayed_distance(10.04, UnitSystem.UK) == 10.0


class TestAnalyzeGpxUpload:
    def test_hilly_file(self):
        with open(HILLY_GPX_PATH, "rb") as f:
            route = analyze_gpx_upload(f.read(), "hilly_ride.gpx")
        assert route.name == "Hilly Loop"
        assert route.distance_km == pytest.approx(19.5, rel=0.01)
        assert route.elevation_gain_m == pytest.approx(160.0)
        assert len(route.climbs) == 1
        assert route.climbs[0].elevation_gain_m == pytest.approx(160.0)
        assert route.climbs[0].start_distance_km == pytest.approx(4.5, rel=0.01)

    def test_bad_filename_rejected(self):
        with pytest.raises(UnsafeDocumentError):
            analyze_gpx_upload(b"<gpx/>", "route.xml")
