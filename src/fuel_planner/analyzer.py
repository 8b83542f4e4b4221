import logging
import math

from fuel_planner.climb import detect_climbs
from fuel_planner.distance import haversine_distance
from fuel_planner.errors import EmptyTrackError, ValidationError
from fuel_planner.models import Route, TrackPoint, UnitSystem
from fuel_planner.parser import DEFAULT_ROUTE_NAME, load_gpx_upload, sanitize_name

logger = logging.getLogger(__name__)

KM_TO_MILES = 0.621371

# Flat-equivalent pacing used for every time estimate
AVERAGE_SPEED_MPH = 14.0
AVERAGE_SPEED_KMH = 22.5


def ride_minutes_from_distance(distance: float, unit_system: UnitSystem = UnitSystem.US) -> int:
    """Estimate ride minutes for a distance in the unit system's units.

    Miles at 14 mph for US, kilometers at 22.5 km/h for UK.
    """
    if not math.isfinite(distance):
        raise ValidationError(f"Distance must be a finite number: {distance}")
    if distance < 0:
        raise ValidationError(f"Distance must not be negative: {distance}")
    speed = AVERAGE_SPEED_MPH if UnitSystem(unit_system) == UnitSystem.US else AVERAGE_SPEED_KMH
    return int(distance / speed * 60 + 0.5)


def displayed_distance(distance_km: float, unit_system: UnitSystem = UnitSystem.US) -> float:
    """Distance as shown to the user: one decimal, miles or kilometers."""
    if UnitSystem(unit_system) == UnitSystem.US:
        return round(distance_km * KM_TO_MILES, 1)
    return round(distance_km, 1)


def calculate_totals(points: list[TrackPoint]) -> tuple[float, float]:
    """Return (distance_km, elevation_gain_m) for a track.

    Only positive elevation deltas count toward gain.
    """
    distance_km = 0.0
    elevation_gain = 0.0
    for i in range(1, len(points)):
        prev, pt = points[i - 1], points[i]
        distance_km += haversine_distance(prev.lat, prev.lon, pt.lat, pt.lon)
        delta = pt.elevation - prev.elevation
        if delta > 0:
            elevation_gain += delta
    return distance_km, elevation_gain


def analyze_route(
    points: list[TrackPoint],
    name: str | None = DEFAULT_ROUTE_NAME,
    unit_system: UnitSystem = UnitSystem.US,
) -> Route:
    """Analyze an ordered list of TrackPoints and return a Route.

    The time estimate is computed from the rounded distance the user sees,
    not the raw total, so the two never disagree.

    Raises:
        EmptyTrackError: If points is empty.
    """
    if not points:
        raise EmptyTrackError()

    distance_km, elevation_gain = calculate_totals(points)
    climbs = detect_climbs(points)
    estimated = ride_minutes_from_distance(displayed_distance(distance_km, unit_system), unit_system)

    logger.debug(
        "Analyzed %d points: %.2f km, %.0f m gain, %d climbs",
        len(points), distance_km, elevation_gain, len(climbs),
    )
    return Route(
        name=sanitize_name(name),
        distance_km=distance_km,
        elevation_gain_m=elevation_gain,
        estimated_time_minutes=estimated,
        climbs=tuple(climbs),
    )


def analyze_gpx_upload(
    data: bytes,
    filename: str | None = None,
    unit_system: UnitSystem = UnitSystem.US,
) -> Route:
    """Validate, parse and analyze an uploaded GPX document."""
    document = load_gpx_upload(data, filename)
    return analyze_route(document.points, document.name, unit_system)
