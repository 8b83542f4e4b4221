import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from fuel_planner.errors import ValidationError


class SweatRate(str, Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class GiSensitivity(str, Enum):
    SENSITIVE = "sensitive"
    NORMAL = "normal"
    TOLERANT = "tolerant"


class Intensity(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"
    MIXED = "mixed"

    @classmethod
    def parse(cls, value: "str | Intensity") -> "Intensity":
        """Parse an intensity name; 'casual' is accepted for easy."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "casual":
            return cls.EASY
        try:
            return cls(name)
        except ValueError:
            raise ValidationError(f"Unknown intensity: {value}") from None


class ExperienceLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class FuelKind(str, Enum):
    CARBS = "carbs"
    ELECTROLYTES = "electrolytes"


class Priority(str, Enum):
    NORMAL = "normal"
    CRITICAL = "critical"


class UnitSystem(str, Enum):
    US = "US"
    UK = "UK"


class Provenance(str, Enum):
    FRESH = "fresh"
    STALE_CACHE = "stale-cache"
    FALLBACK_DEFAULT = "fallback-default"


@dataclass(frozen=True)
class TrackPoint:
    lat: float
    lon: float
    elevation: float  # meters


@dataclass(frozen=True)
class ClimbSegment:
    start_distance_km: float
    end_distance_km: float
    elevation_gain_m: float
    average_grade_percent: float


@dataclass(frozen=True)
class Route:
    name: str
    distance_km: float
    elevation_gain_m: float
    estimated_time_minutes: int
    climbs: tuple[ClimbSegment, ...] = ()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "distanceKm": round(self.distance_km, 3),
            "elevationGainM": round(self.elevation_gain_m, 1),
            "estimatedTimeMinutes": self.estimated_time_minutes,
            "climbs": [
                {
                    "startDistanceKm": round(c.start_distance_km, 3),
                    "endDistanceKm": round(c.end_distance_km, 3),
                    "elevationGainM": round(c.elevation_gain_m, 1),
                    "averageGradePercent": round(c.average_grade_percent, 1),
                }
                for c in self.climbs
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Route":
        """Rebuild a Route handed back by a client (see to_dict)."""
        if not isinstance(data, dict):
            raise ValidationError("Invalid route data: expected an object")
        climb_data = data.get("climbs", [])
        if not isinstance(climb_data, list) or not all(isinstance(c, dict) for c in climb_data):
            raise ValidationError("Invalid route data: climbs must be a list of objects")
        try:
            climbs = tuple(
                ClimbSegment(
                    start_distance_km=float(c["startDistanceKm"]),
                    end_distance_km=float(c["endDistanceKm"]),
                    elevation_gain_m=float(c["elevationGainM"]),
                    average_grade_percent=float(c.get("averageGradePercent", 0.0)),
                )
                for c in climb_data
            )
            route = cls(
                name=str(data.get("name", "Uploaded Route")),
                distance_km=float(data["distanceKm"]),
                elevation_gain_m=float(data.get("elevationGainM", 0.0)),
                estimated_time_minutes=int(data.get("estimatedTimeMinutes", 0)),
                climbs=climbs,
            )
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            raise ValidationError(f"Invalid route data: {e}") from None
        numbers = [route.distance_km, route.elevation_gain_m]
        for c in route.climbs:
            numbers.extend([c.start_distance_km, c.end_distance_km, c.elevation_gain_m, c.average_grade_percent])
        if not all(math.isfinite(n) for n in numbers) or route.distance_km < 0:
            raise ValidationError("Invalid route data: distances and gains must be finite and non-negative")
        return route


@dataclass(frozen=True)
class RiderProfile:
    weight_lb: float = 150.0
    sweat_rate: SweatRate = SweatRate.MODERATE
    gi_sensitivity: GiSensitivity = GiSensitivity.NORMAL
    intensity: Intensity = Intensity.MODERATE
    preferred_fuels: frozenset[str] = field(default_factory=frozenset)
    experience_level: ExperienceLevel = ExperienceLevel.INTERMEDIATE
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "RiderProfile":
        """Build a profile from the survey's JSON shape.

        Missing keys fall back to the defaults; unknown enum values raise
        ValidationError.
        """
        if not isinstance(data, dict):
            raise ValidationError("Invalid rider profile: expected an object")
        fuels = data.get("preferredFuels", ())
        if isinstance(fuels, str):
            fuels = [fuels]
        if not isinstance(fuels, (list, tuple)) or not all(isinstance(f, str) for f in fuels):
            raise ValidationError("Invalid rider profile: preferredFuels must be a list of strings")
        defaults = cls()
        try:
            return cls(
                weight_lb=float(data.get("weight", defaults.weight_lb)),
                sweat_rate=SweatRate(data.get("sweatRate", defaults.sweat_rate)),
                gi_sensitivity=GiSensitivity(data.get("giSensitivity", defaults.gi_sensitivity)),
                intensity=Intensity.parse(data.get("intensity", defaults.intensity)),
                preferred_fuels=frozenset(fuels),
                experience_level=ExperienceLevel(data.get("experienceLevel", defaults.experience_level)),
                name=str(data.get("name", "")),
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, ValidationError):
                raise
            raise ValidationError(f"Invalid rider profile: {e}") from None


@dataclass(frozen=True)
class WeatherSnapshot:
    location: str
    temperature_f: float
    feels_like_f: float
    humidity_pct: int
    wind_speed_mph: float
    wind_gust_mph: float
    wind_direction_deg: int
    uv_index: int
    description: str
    fetched_at: datetime
    is_stale: bool = False
    is_fallback_default: bool = False

    def as_stale(self) -> "WeatherSnapshot":
        return replace(self, is_stale=True)


@dataclass(frozen=True)
class WeatherReport:
    """A snapshot plus where it came from."""
    snapshot: WeatherSnapshot
    provenance: Provenance
    cached: bool = False
    cache_age_minutes: int | None = None
    warning: str | None = None
    rate_limited: bool = False

    def to_dict(self) -> dict:
        """Convert to the JSON shape served by the weather endpoint."""
        s = self.snapshot
        result = {
            "location": s.location,
            "temperature": s.temperature_f,
            "feelsLike": s.feels_like_f,
            "humidity": s.humidity_pct,
            "windSpeed": s.wind_speed_mph,
            "windGust": s.wind_gust_mph,
            "windDirection": s.wind_direction_deg,
            "uvIndex": s.uv_index,
            "description": s.description,
            "fetchedAt": s.fetched_at.isoformat(),
            "isStale": s.is_stale,
            "isFallbackDefault": s.is_fallback_default,
            "provenance": self.provenance.value,
        }
        if self.cached:
            result["cached"] = True
        if s.is_stale:
            result["stale"] = True
        if self.cache_age_minutes is not None:
            result["cacheAge"] = self.cache_age_minutes
        if self.warning:
            result["warning"] = self.warning
        if self.rate_limited:
            result["rateLimited"] = True
        return result


@dataclass(frozen=True)
class FuelEvent:
    time_minutes: int
    kind: FuelKind
    amount_description: str
    priority: Priority = Priority.NORMAL

    def to_dict(self) -> dict:
        return {
            "time": self.time_minutes,
            "type": self.kind.value,
            "amount": self.amount_description,
            "priority": self.priority.value,
        }
