"""Formatting utilities for display."""

from fuel_planner.models import FuelEvent, FuelKind, Priority, Route

KM_TO_MILES = 0.621371
M_TO_FEET = 3.28084


def format_minutes(minutes: int) -> str:
    """Format minutes as Xh Ym string."""
    hours, mins = divmod(int(minutes), 60)
    if hours > 0:
        return f"{hours}h {mins:02d}m"
    return f"{mins}m"


def format_event(event: FuelEvent) -> str:
    """One schedule line: time, kind and amount, flagged when critical."""
    label = "CARBS" if event.kind == FuelKind.CARBS else "ELECTROLYTES"
    flag = " [!]" if event.priority == Priority.CRITICAL else ""
    return f"{format_minutes(event.time_minutes):>8}  {label:<12} {event.amount_description}{flag}"


def format_route_summary(route: Route) -> list[str]:
    dist_mi = route.distance_km * KM_TO_MILES
    gain_ft = route.elevation_gain_m * M_TO_FEET
    lines = [
        f"Route:          {route.name}",
        f"Distance:       {route.distance_km:.2f} km ({dist_mi:.2f} mi)",
        f"Elevation Gain: {route.elevation_gain_m:.0f} m ({gain_ft:.0f} ft)",
        f"Est. Time:      {format_minutes(route.estimated_time_minutes)}",
        f"Climbs:         {len(route.climbs)}",
    ]
    for i, climb in enumerate(route.climbs, start=1):
        lines.append(
            f"  Climb {i}: km {climb.start_distance_km:.1f}-{climb.end_distance_km:.1f}, "
            f"+{climb.elevation_gain_m:.0f} m @ {climb.average_grade_percent:.1f}%"
        )
    return lines
