"""Current weather by US postal code, with caching and graceful degradation.

get_weather() never raises for upstream trouble. The fallback order is:
fresh cache hit -> live fetch -> stale cache entry of any age -> built-in
default conditions. Only a malformed postal code is an error.
"""

import logging
import re
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

import requests

from fuel_planner.cache import DictCache, KeyValueCache
from fuel_planner.config import get_openweather_api_key, get_setting, load_config
from fuel_planner.errors import UpstreamError, ValidationError
from fuel_planner.models import Provenance, WeatherReport, WeatherSnapshot
from fuel_planner.ratelimit import FixedWindowRateLimiter, RateLimiter

logger = logging.getLogger(__name__)

OPENWEATHER_BASE = "https://api.openweathermap.org"
GEOCODE_ZIP_URL = f"{OPENWEATHER_BASE}/geo/1.0/zip"
REVERSE_GEOCODE_URL = f"{OPENWEATHER_BASE}/geo/1.0/reverse"
ONECALL_URL = f"{OPENWEATHER_BASE}/data/3.0/onecall"

USER_AGENT = "FuelPlanner/1.0"
POSTAL_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")
UNKNOWN_LOCATION = "Unknown Location"

DEFAULT_CONDITIONS = {
    "temperature_f": 75.0,
    "feels_like_f": 75.0,
    "humidity_pct": 50,
    "wind_speed_mph": 0.0,
    "wind_gust_mph": 0.0,
    "wind_direction_deg": 0,
    "uv_index": 0,
    "description": "",
}


def validate_postal_code(postal_code: str | None) -> str:
    """Return the trimmed postal code, or raise ValidationError.

    Accepts 5 digits with an optional +4 suffix (12345 or 12345-6789).
    """
    if not postal_code:
        raise ValidationError("Zip code is required")
    code = postal_code.strip()
    if not POSTAL_CODE_PATTERN.match(code):
        raise ValidationError("Invalid zip code format")
    return code


def format_location(name: str | None, state: str | None, country: str | None) -> str:
    """Human-readable place name from geocoding results."""
    if not name:
        return UNKNOWN_LOCATION
    if state and country == "US":
        return f"{name}, {state}"
    if country and country != "US":
        return f"{name}, {country}"
    if country == "US":
        return f"{name}, US"
    return name


class WeatherService:
    """Fetches current conditions from OpenWeather's geocoding and One Call APIs."""

    def __init__(
        self,
        api_key: str | None = None,
        cache: KeyValueCache | None = None,
        rate_limiter: RateLimiter | None = None,
        session: requests.Session | None = None,
        timeout: float = 5.0,
        cache_ttl_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.time,
    ):
        self.api_key = api_key
        self.clock = clock
        self.cache = cache if cache is not None else DictCache(ttl_seconds=cache_ttl_seconds, clock=clock)
        self.rate_limiter = rate_limiter if rate_limiter is not None else FixedWindowRateLimiter(clock=clock)
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: dict | None = None, **kwargs) -> "WeatherService":
        """Build a service from fuel-planner.json settings and the environment."""
        if config is None:
            config = load_config()
        clock = kwargs.pop("clock", time.time)
        cache = DictCache(
            max_size=int(get_setting("weather_cache_max_size", config)),
            ttl_seconds=float(get_setting("weather_cache_ttl_seconds", config)),
            clock=clock,
        )
        limiter = FixedWindowRateLimiter(
            limit=int(get_setting("weather_rate_limit", config)),
            window_seconds=float(get_setting("weather_rate_window_seconds", config)),
            clock=clock,
        )
        return cls(
            api_key=get_openweather_api_key(config),
            cache=cache,
            rate_limiter=limiter,
            timeout=float(get_setting("weather_timeout_seconds", config)),
            clock=clock,
            **kwargs,
        )

    def get_weather(self, postal_code: str, caller_key: str = "unknown") -> WeatherReport:
        """Return current weather for a postal code.

        Raises:
            ValidationError: If postal_code is malformed. Nothing else is raised;
                upstream failures and rate limiting produce a cached or degraded report.
        """
        code = validate_postal_code(postal_code)

        if not self.rate_limiter.allow(caller_key):
            logger.warning("Weather rate limit exceeded for caller %s", caller_key)
            report = self._cache_hit(code)
            if report is not None:
                return replace(
                    report,
                    rate_limited=True,
                    warning=f"Rate limit exceeded; showing cached weather from {report.cache_age_minutes} minutes ago",
                )
            return self._degraded(code, "Rate limit exceeded", rate_limited=True)

        report = self._cache_hit(code)
        if report is not None:
            return report

        try:
            snapshot = self._fetch(code)
        except UpstreamError as e:
            logger.warning("Weather fetch failed for %s: %s", code, e)
            return self._degraded(code, "Weather service unavailable")

        # Written only after every upstream call succeeded
        self.cache.set(code, snapshot)
        return WeatherReport(snapshot=snapshot, provenance=Provenance.FRESH)

    def _cache_hit(self, code: str) -> WeatherReport | None:
        """Report for an entry still within its TTL, else None."""
        cached = self.cache.get(code)
        if cached is None:
            return None
        entry = self.cache.get_entry(code)
        age = int(entry.age_seconds(self.clock()) // 60) if entry is not None else 0
        logger.debug("Weather cache hit for %s (%d min old)", code, age)
        return WeatherReport(snapshot=cached, provenance=Provenance.FRESH, cached=True, cache_age_minutes=age)

    def _degraded(self, code: str, reason: str, rate_limited: bool = False) -> WeatherReport:
        entry = self.cache.get_entry(code)
        if entry is not None:
            age = int(entry.age_seconds(self.clock()) // 60)
            return WeatherReport(
                snapshot=entry.value.as_stale(),
                provenance=Provenance.STALE_CACHE,
                cached=True,
                cache_age_minutes=age,
                warning=f"{reason}; showing cached weather from {age} minutes ago",
                rate_limited=rate_limited,
            )
        return WeatherReport(
            snapshot=self.default_snapshot(),
            provenance=Provenance.FALLBACK_DEFAULT,
            warning=f"{reason}; using default conditions",
            rate_limited=rate_limited,
        )

    def default_snapshot(self) -> WeatherSnapshot:
        return WeatherSnapshot(
            location=UNKNOWN_LOCATION,
            fetched_at=datetime.fromtimestamp(self.clock(), tz=timezone.utc),
            is_fallback_default=True,
            **DEFAULT_CONDITIONS,
        )

    def _get_json(self, url: str, params: dict):
        params = {**params, "appid": self.api_key}
        try:
            response = self.session.get(
                url,
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            raise UpstreamError(f"{url} request failed: {e.__class__.__name__}") from e
        except ValueError as e:
            raise UpstreamError(f"{url} returned invalid JSON") from e

    def geocode(self, postal_code: str) -> dict:
        """Coordinates and place name for a postal code."""
        data = self._get_json(GEOCODE_ZIP_URL, {"zip": f"{postal_code[:5]},US"})
        try:
            return {
                "lat": float(data["lat"]),
                "lon": float(data["lon"]),
                "name": data.get("name"),
                "country": data.get("country"),
            }
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UpstreamError(f"Malformed geocoding payload: {e!r}") from e

    def reverse_geocode_state(self, lat: float, lon: float) -> str | None:
        """State name for coordinates; None when unavailable."""
        try:
            data = self._get_json(REVERSE_GEOCODE_URL, {"lat": lat, "lon": lon, "limit": 1})
        except UpstreamError as e:
            logger.debug("Reverse geocoding failed: %s", e)
            return None
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return data[0].get("state") or None
        return None

    def current_conditions(self, lat: float, lon: float) -> dict:
        """Current conditions for coordinates, imperial units."""
        data = self._get_json(
            ONECALL_URL,
            {"lat": lat, "lon": lon, "units": "imperial", "exclude": "minutely,daily,alerts"},
        )
        try:
            current = data["current"]
            gust = current.get("wind_gust")
            return {
                "temperature_f": float(round(current["temp"])),
                "feels_like_f": float(round(current["feels_like"])),
                "humidity_pct": int(current["humidity"]),
                "wind_speed_mph": float(round(current["wind_speed"])),
                "wind_gust_mph": float(round(gust)) if gust else 0.0,
                "wind_direction_deg": int(current.get("wind_deg") or 0),
                "uv_index": int(round(current.get("uvi") or 0)),
                "description": str(current["weather"][0]["description"]),
            }
        except (KeyError, TypeError, ValueError, IndexError, AttributeError) as e:
            raise UpstreamError(f"Malformed conditions payload: {e!r}") from e

    def _fetch(self, postal_code: str) -> WeatherSnapshot:
        if not self.api_key:
            raise UpstreamError("OpenWeather API key is not configured")
        place = self.geocode(postal_code)
        state = self.reverse_geocode_state(place["lat"], place["lon"])
        conditions = self.current_conditions(place["lat"], place["lon"])
        return WeatherSnapshot(
            location=format_location(place["name"], state, place["country"]),
            fetched_at=datetime.fromtimestamp(self.clock(), tz=timezone.utc),
            **conditions,
        )
