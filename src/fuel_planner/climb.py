"""Climb detection along a route's elevation data.

A single forward scan over consecutive point pairs. A climb opens on the
first segment that rises more than the noise floor and stays open across
flat-ish segments until a real descent or the end of the track.
"""

from dataclasses import dataclass

from fuel_planner.distance import haversine_distance
from fuel_planner.models import ClimbSegment, TrackPoint

# Per-segment elevation change (meters) treated as GPS noise
NOISE_THRESHOLD_M = 0.5
# Climbs with less total gain are dropped as minor rollers
MIN_CLIMB_GAIN_M = 30.0


@dataclass
class _OpenClimb:
    start_km: float
    end_km: float
    gain_m: float = 0.0


def _close(climb: _OpenClimb, min_gain_m: float) -> ClimbSegment | None:
    if climb.gain_m <= min_gain_m:
        return None
    distance_km = climb.end_km - climb.start_km
    grade = climb.gain_m / (distance_km * 1000) * 100 if distance_km > 0 else 0.0
    return ClimbSegment(
        start_distance_km=climb.start_km,
        end_distance_km=climb.end_km,
        elevation_gain_m=climb.gain_m,
        average_grade_percent=grade,
    )


def detect_climbs(
    points: list[TrackPoint],
    noise_threshold_m: float = NOISE_THRESHOLD_M,
    min_climb_gain_m: float = MIN_CLIMB_GAIN_M,
) -> list[ClimbSegment]:
    """Detect significant climbs along a route.

    Algorithm:
    1. Walk consecutive point pairs, accumulating haversine distance
    2. A segment rising more than noise_threshold_m with non-zero length
       opens a climb (or extends the open one) and adds its gain
    3. A segment dropping more than noise_threshold_m, or the end of the
       track, closes the open climb
    4. The climb ends at the top of its last rising segment
    5. Climbs with gain not exceeding min_climb_gain_m are discarded

    Args:
        points: Track points in route order
        noise_threshold_m: Per-segment elevation change ignored as noise
        min_climb_gain_m: Minimum gain for a climb to be kept (exclusive)

    Returns:
        Climbs in route order, non-overlapping
    """
    climbs: list[ClimbSegment] = []
    current: _OpenClimb | None = None
    total_km = 0.0

    for i in range(1, len(points)):
        prev, pt = points[i - 1], points[i]
        segment_km = haversine_distance(prev.lat, prev.lon, pt.lat, pt.lon)
        start_km = total_km
        total_km += segment_km
        delta = pt.elevation - prev.elevation

        if delta > noise_threshold_m and segment_km > 0:
            if current is None:
                current = _OpenClimb(start_km=start_km, end_km=total_km)
            current.gain_m += delta
            current.end_km = total_km
        elif current is not None and delta < -noise_threshold_m:
            closed = _close(current, min_climb_gain_m)
            if closed is not None:
                climbs.append(closed)
            current = None

    if current is not None:
        closed = _close(current, min_climb_gain_m)
        if closed is not None:
            climbs.append(closed)

    return climbs
