"""Rule-based fueling schedule.

Carbohydrate need is driven by intensity and duration, not distance. The
route only contributes extra pre-climb events; temperature and sweat rate
drive electrolytes.
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable

from fuel_planner.errors import ValidationError
from fuel_planner.models import (
    FuelEvent,
    FuelKind,
    Intensity,
    Priority,
    RiderProfile,
    Route,
    SweatRate,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CarbTier:
    min_minutes: int  # inclusive
    max_minutes: float  # exclusive
    rate_g_per_hour: int
    first_minute: int | None
    interval_minutes: int | None


_NO_FUEL = (None, None)

# Duration buckets are half-open [min, max); a ride exactly on a boundary
# falls in the upper bucket.
CARB_TIERS: dict[Intensity, list[CarbTier]] = {
    Intensity.EASY: [
        CarbTier(0, 90, 0, *_NO_FUEL),
        CarbTier(90, 150, 20, 75, 60),
        CarbTier(150, float("inf"), 30, 75, 50),
    ],
    Intensity.MODERATE: [
        CarbTier(0, 75, 0, *_NO_FUEL),
        CarbTier(75, 90, 25, 60, 60),
        CarbTier(90, 150, 45, 60, 35),
        CarbTier(150, float("inf"), 60, 60, 25),
    ],
    Intensity.HARD: [
        CarbTier(0, 60, 0, *_NO_FUEL),
        CarbTier(60, 90, 50, 45, 30),
        CarbTier(90, float("inf"), 70, 45, 20),
    ],
}

DEFAULT_FUEL_DESCRIPTION = "½ gel or 8oz sports drink"

# Pre-climb alerts
CLIMB_ALERT_MIN_GAIN_M = 100.0
CLIMB_ALERT_LEAD_MINUTES = 15
CLIMB_ALERT_EARLIEST_MINUTE = 5
CLIMB_ALERT_SPACING_MINUTES = 10

ELECTROLYTE_START_MINUTE = 60

MAX_DURATION_MINUTES = 24 * 60

# Events this many minutes old still count as "now" for an in-progress ride
CURRENT_EVENT_WINDOW_MINUTES = 5


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def validate_duration(duration_minutes: float) -> int:
    """Whole ride minutes, or ValidationError for non-finite or over-long rides."""
    if not math.isfinite(duration_minutes):
        raise ValidationError(f"Duration must be a finite number: {duration_minutes}")
    minutes = int(duration_minutes)
    if minutes > MAX_DURATION_MINUTES:
        raise ValidationError(f"Duration must not exceed {MAX_DURATION_MINUTES} minutes")
    return minutes


def resolve_intensity(
    intensity: Intensity | str | None = None,
    profile: RiderProfile | None = None,
) -> Intensity:
    """Pick the scheduling intensity.

    An explicit ride-level value wins over the profile; with neither the
    ride is moderate. Mixed rides are scheduled as moderate.
    """
    if intensity is not None:
        resolved = Intensity.parse(intensity)
    elif profile is not None:
        resolved = Intensity.parse(profile.intensity)
    else:
        resolved = Intensity.MODERATE
    if resolved == Intensity.MIXED:
        return Intensity.MODERATE
    return resolved


def carb_tier(intensity: Intensity, duration_minutes: float) -> CarbTier:
    """Look up the carb tier for an intensity and ride duration."""
    for tier in CARB_TIERS[intensity]:
        if tier.min_minutes <= duration_minutes < tier.max_minutes:
            return tier
    return CARB_TIERS[intensity][0]


def _fuel_label(profile: RiderProfile | None) -> str:
    if profile is not None and profile.preferred_fuels:
        return sorted(profile.preferred_fuels)[0].lower()
    return DEFAULT_FUEL_DESCRIPTION


def carb_events(
    duration_minutes: int,
    intensity: Intensity,
    profile: RiderProfile | None = None,
) -> list[FuelEvent]:
    """Regular carbohydrate events for the ride's tier."""
    tier = carb_tier(intensity, duration_minutes)
    if tier.rate_g_per_hour <= 0 or tier.first_minute is None:
        return []

    grams = _round_half_up(tier.rate_g_per_hour * tier.interval_minutes / 60)
    description = f"{grams}g carbs ({_fuel_label(profile)})"
    return [
        FuelEvent(time_minutes=t, kind=FuelKind.CARBS, amount_description=description)
        for t in range(tier.first_minute, duration_minutes, tier.interval_minutes)
    ]


def climb_events(
    duration_minutes: int,
    route: Route,
    existing: list[FuelEvent],
) -> list[FuelEvent]:
    """Critical carb events ahead of big climbs.

    A proposal is dropped when any event already scheduled (including an
    earlier pre-climb event) is within the spacing window.
    """
    if route.distance_km <= 0 or not route.climbs:
        return []

    avg_speed_kmh = route.distance_km / (duration_minutes / 60)
    scheduled = list(existing)
    added: list[FuelEvent] = []

    for climb in route.climbs:
        if climb.elevation_gain_m <= CLIMB_ALERT_MIN_GAIN_M:
            continue
        climb_start = _round_half_up(climb.start_distance_km / avg_speed_kmh * 60)
        pre_fuel = max(CLIMB_ALERT_EARLIEST_MINUTE, climb_start - CLIMB_ALERT_LEAD_MINUTES)
        if pre_fuel >= duration_minutes:
            continue
        if any(abs(e.time_minutes - pre_fuel) < CLIMB_ALERT_SPACING_MINUTES for e in scheduled):
            continue
        event = FuelEvent(
            time_minutes=pre_fuel,
            kind=FuelKind.CARBS,
            amount_description=f"Extra carbs before climb (+{_round_half_up(climb.elevation_gain_m)}m elevation)",
            priority=Priority.CRITICAL,
        )
        scheduled.append(event)
        added.append(event)
    return added


def electrolyte_plan(
    duration_minutes: float,
    temperature_f: float,
    sweat_rate: SweatRate | None,
) -> tuple[int, int] | None:
    """Return (sodium mg per hour, interval minutes), or None for no electrolytes.

    sweat_rate is None when no rider profile is known; only temperature
    then triggers electrolytes.
    """
    heavy = sweat_rate == SweatRate.HEAVY
    if duration_minutes < 60:
        return None
    if duration_minutes < 90:
        if temperature_f > 85 or heavy:
            return 400, 60
        return None
    if temperature_f > 80 or heavy:
        return 500, 60
    if temperature_f > 75 or sweat_rate == SweatRate.MODERATE:
        return 300, 75
    return None


def electrolyte_events(
    duration_minutes: int,
    temperature_f: float,
    sweat_rate: SweatRate | None,
) -> list[FuelEvent]:
    plan = electrolyte_plan(duration_minutes, temperature_f, sweat_rate)
    if plan is None:
        return []
    rate_mg, interval = plan
    mg = _round_half_up(rate_mg * interval / 60)
    return [
        FuelEvent(
            time_minutes=t,
            kind=FuelKind.ELECTROLYTES,
            amount_description=f"{mg}mg sodium (electrolyte tab/chew)",
        )
        for t in range(ELECTROLYTE_START_MINUTE, duration_minutes, interval)
    ]


def generate_schedule(
    duration_minutes: int,
    profile: RiderProfile | None = None,
    route: Route | None = None,
    temperature_f: float = 75.0,
    intensity: Intensity | str | None = None,
) -> list[FuelEvent]:
    """Generate a time-sorted fueling schedule for one ride.

    Args:
        duration_minutes: Planned ride length; zero or less yields no events,
            more than MAX_DURATION_MINUTES raises ValidationError
        profile: Rider profile, or None when the rider skipped the survey
        route: Analyzed route for pre-climb alerts, if one was uploaded
        temperature_f: Ambient temperature in °F
        intensity: Ride-level override of the profile's intensity

    Returns:
        Carb, pre-climb and electrolyte events, stably sorted by time.
    """
    duration_minutes = validate_duration(duration_minutes)
    if duration_minutes <= 0:
        return []

    tier_intensity = resolve_intensity(intensity, profile)
    schedule = carb_events(duration_minutes, tier_intensity, profile)

    if route is not None and tier_intensity != Intensity.EASY:
        schedule.extend(climb_events(duration_minutes, route, schedule))

    sweat_rate = profile.sweat_rate if profile is not None else None
    schedule.extend(electrolyte_events(duration_minutes, temperature_f, sweat_rate))

    schedule.sort(key=lambda e: e.time_minutes)
    logger.debug(
        "Generated %d events for %d min %s ride at %.0f°F",
        len(schedule), duration_minutes, tier_intensity.value, temperature_f,
    )
    return schedule


def next_event(
    schedule: list[FuelEvent],
    elapsed_minutes: int,
    completed: Iterable[int] = (),
) -> FuelEvent | None:
    """First upcoming event after elapsed_minutes not yet marked completed."""
    done = set(completed)
    for event in schedule:
        if event.time_minutes > elapsed_minutes and event.time_minutes not in done:
            return event
    return None


def current_event(
    schedule: list[FuelEvent],
    elapsed_minutes: int,
    completed: Iterable[int] = (),
) -> FuelEvent | None:
    """Event due now: reached within the last few minutes and not completed."""
    done = set(completed)
    for event in schedule:
        if (
            elapsed_minutes - CURRENT_EVENT_WINDOW_MINUTES < event.time_minutes <= elapsed_minutes
            and event.time_minutes not in done
        ):
            return event
    return None


def summarize_schedule(schedule: list[FuelEvent]) -> dict:
    """Counts and totals for display next to the schedule."""
    carbs = [e for e in schedule if e.kind == FuelKind.CARBS]
    regular_carbs = [e for e in carbs if e.priority == Priority.NORMAL]
    total_grams = 0
    for event in regular_carbs:
        grams = event.amount_description.split("g", 1)[0]
        if grams.isdigit():
            total_grams += int(grams)
    return {
        "carb_events": len(carbs),
        "total_carbs_g": total_grams,
        "electrolyte_doses": sum(1 for e in schedule if e.kind == FuelKind.ELECTROLYTES),
        "pre_climb_alerts": sum(1 for e in schedule if e.priority == Priority.CRITICAL),
    }
