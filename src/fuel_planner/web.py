"""JSON web API hosting the planner core."""

import logging
import math
import os

from flask import Flask, jsonify, request

from fuel_planner import __version_date__, get_git_hash
from fuel_planner.analyzer import analyze_gpx_upload, ride_minutes_from_distance
from fuel_planner.errors import DocumentTooLargeError, FuelPlannerError, RouteParseError, ValidationError
from fuel_planner.models import RiderProfile, Route, UnitSystem
from fuel_planner.schedule import generate_schedule, resolve_intensity, summarize_schedule, validate_duration
from fuel_planner.validator import MAX_FILE_SIZE
from fuel_planner.weather import WeatherService

logger = logging.getLogger(__name__)

app = Flask(__name__)
# Headroom for multipart framing; the GPX size limit itself is checked on the file bytes
app.config["MAX_CONTENT_LENGTH"] = MAX_FILE_SIZE + 64 * 1024

_weather_service: WeatherService | None = None


def get_weather_service() -> WeatherService:
    global _weather_service
    if _weather_service is None:
        _weather_service = WeatherService.from_config()
    return _weather_service


def get_caller_key() -> str:
    """Identify the caller for rate limiting: first proxy hop, then real IP."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or request.remote_addr or "unknown"


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _parse_unit_system(value: str | None) -> UnitSystem:
    try:
        return UnitSystem((value or "US").upper())
    except ValueError:
        raise ValidationError(f"Unknown unit system: {value}") from None


@app.route("/health")
def health():
    return {"status": "ok", "version_date": __version_date__, "git_hash": get_git_hash()}


@app.route("/cache-stats")
def cache_stats():
    """Return weather cache statistics as JSON."""
    cache = get_weather_service().cache
    stats = cache.stats() if hasattr(cache, "stats") else {}
    return {"weather_cache": stats}


@app.route("/api/weather")
def api_weather():
    zip_code = request.args.get("zip", "")
    try:
        report = get_weather_service().get_weather(zip_code, get_caller_key())
    except ValidationError as e:
        return _error(str(e), 400)
    return jsonify(report.to_dict())


@app.route("/api/route", methods=["POST"])
def api_route():
    """Analyze an uploaded GPX file (multipart 'file' field or raw body)."""
    try:
        unit_system = _parse_unit_system(request.args.get("units"))
        upload = request.files.get("file")
        if upload is not None:
            route = analyze_gpx_upload(upload.read(), upload.filename or None, unit_system)
        else:
            route = analyze_gpx_upload(request.get_data(), None, unit_system)
    except DocumentTooLargeError as e:
        return _error(str(e), 413)
    except (RouteParseError, ValidationError) as e:
        logger.info("Rejected route upload: %s", e)
        return _error(str(e), 400)
    return jsonify(route.to_dict())


@app.route("/api/schedule", methods=["POST"])
def api_schedule():
    """Build a fuel schedule.

    Body: {"duration": minutes} or {"distance": n, "units": "US"|"UK"},
    plus optional "intensity", "profile", "route", and "temperature" or "zip".
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("Request body must be a JSON object", 400)

    try:
        unit_system = _parse_unit_system(data.get("units"))
        if data.get("duration") is not None:
            duration = validate_duration(float(data["duration"]))
        elif data.get("distance") is not None:
            duration = validate_duration(ride_minutes_from_distance(float(data["distance"]), unit_system))
        else:
            raise ValidationError("Either duration or distance is required")

        profile = RiderProfile.from_dict(data["profile"]) if data.get("profile") else None
        route = Route.from_dict(data["route"]) if data.get("route") else None
        intensity = resolve_intensity(data.get("intensity"), profile)

        weather = None
        if data.get("temperature") is not None:
            temperature = float(data["temperature"])
            if not math.isfinite(temperature):
                raise ValidationError("Temperature must be a finite number")
        elif data.get("zip"):
            weather = get_weather_service().get_weather(str(data["zip"]), get_caller_key())
            temperature = weather.snapshot.temperature_f
        else:
            temperature = 75.0
    except (TypeError, ValueError, OverflowError, FuelPlannerError) as e:
        return _error(str(e), 400)

    events = generate_schedule(duration, profile, route, temperature, intensity)
    result = {
        "durationMinutes": duration,
        "intensity": intensity.value,
        "temperature": temperature,
        "events": [e.to_dict() for e in events],
        "summary": summarize_schedule(events),
    }
    if weather is not None:
        result["weather"] = weather.to_dict()
    return jsonify(result)


def main():
    """Run the web server."""
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 5050))
    print("Starting Fuel Planner web server...")
    print(f"API available at http://localhost:{port}/api/")
    app.run(host="0.0.0.0", port=port, debug=False)


if __name__ == "__main__":
    main()
