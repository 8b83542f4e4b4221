import argparse
import json
import logging
import sys

from fuel_planner.analyzer import analyze_route, ride_minutes_from_distance
from fuel_planner.errors import FuelPlannerError
from fuel_planner.formatters import format_event, format_minutes, format_route_summary
from fuel_planner.models import Intensity, RiderProfile, UnitSystem
from fuel_planner.parser import parse_gpx
from fuel_planner.schedule import generate_schedule, resolve_intensity, summarize_schedule, validate_duration
from fuel_planner.weather import WeatherService

DEFAULTS = {
    "temperature": 75.0,
    "units": "US",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Plan carbohydrate and electrolyte intake for a bike ride."
    )
    ride = parser.add_mutually_exclusive_group()
    ride.add_argument("--duration", type=int, help="Planned ride duration in minutes")
    ride.add_argument(
        "--distance",
        type=float,
        help="Planned ride distance (miles for US units, km for UK units)",
    )
    parser.add_argument("--gpx", help="Path to a GPX route file")
    parser.add_argument(
        "--units",
        choices=[u.value for u in UnitSystem],
        default=DEFAULTS["units"],
        help=f"Unit system for distances (default: {DEFAULTS['units']})",
    )
    parser.add_argument(
        "--intensity",
        choices=[i.value for i in Intensity] + ["casual"],
        default=None,
        help="Ride intensity (default: from profile, else moderate)",
    )
    parser.add_argument("--profile", help="Path to a rider profile JSON file")
    weather = parser.add_mutually_exclusive_group()
    weather.add_argument(
        "--temperature",
        type=float,
        default=None,
        help=f"Ambient temperature in °F (default: {DEFAULTS['temperature']})",
    )
    weather.add_argument("--zip", help="US zip code to look up current temperature")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _load_profile(path: str) -> RiderProfile:
    with open(path) as f:
        return RiderProfile.from_dict(json.load(f))


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    unit_system = UnitSystem(args.units)

    try:
        profile = _load_profile(args.profile) if args.profile else None
    except FileNotFoundError:
        print(f"Error: File not found: {args.profile}", file=sys.stderr)
        sys.exit(1)
    except (json.JSONDecodeError, FuelPlannerError) as e:
        print(f"Error reading profile: {e}", file=sys.stderr)
        sys.exit(1)

    route = None
    if args.gpx:
        try:
            document = parse_gpx(args.gpx)
            route = analyze_route(document.points, document.name, unit_system)
        except FileNotFoundError:
            print(f"Error: File not found: {args.gpx}", file=sys.stderr)
            sys.exit(1)
        except FuelPlannerError as e:
            print(f"Error parsing GPX file: {e}", file=sys.stderr)
            sys.exit(1)

    try:
        if args.duration is not None:
            duration = validate_duration(args.duration)
        elif args.distance is not None:
            duration = validate_duration(ride_minutes_from_distance(args.distance, unit_system))
        elif route is not None:
            duration = validate_duration(route.estimated_time_minutes)
        else:
            print("Error: Provide --duration, --distance or --gpx.", file=sys.stderr)
            sys.exit(1)
    except FuelPlannerError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    temperature = args.temperature if args.temperature is not None else DEFAULTS["temperature"]
    weather_line = None
    if args.zip:
        try:
            report = WeatherService.from_config().get_weather(args.zip, caller_key="cli")
        except FuelPlannerError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        temperature = report.snapshot.temperature_f
        weather_line = f"Weather:        {report.snapshot.location}, {temperature:.0f}°F ({report.provenance.value})"
        if report.warning:
            print(f"Warning: {report.warning}", file=sys.stderr)

    intensity = resolve_intensity(args.intensity, profile)
    events = generate_schedule(duration, profile, route, temperature, intensity)
    summary = summarize_schedule(events)

    print("=== Ride Fuel Plan ===")
    if route is not None:
        for line in format_route_summary(route):
            print(line)
    print(f"Duration:       {format_minutes(duration)}")
    print(f"Intensity:      {intensity.value}")
    if weather_line:
        print(weather_line)
    else:
        print(f"Temperature:    {temperature:.0f}°F")
    print("")
    if not events:
        print("No fueling needed for this ride.")
    else:
        print("Schedule:")
        for event in events:
            print(format_event(event))
    print("")
    print(
        f"Carb events: {summary['carb_events']} ({summary['total_carbs_g']}g), "
        f"electrolyte doses: {summary['electrolyte_doses']}, "
        f"pre-climb alerts: {summary['pre_climb_alerts']}"
    )


if __name__ == "__main__":
    main()
