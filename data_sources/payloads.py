"""
Data Source Payloads - Normalized domain shapes.

Every normalizer emits one of these as the payload of a DomainRecord.
No caller depends on provider-specific fields.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Island(Enum):
    """Hawaiian islands covered by the dashboard."""
    OAHU = "oahu"
    MAUI = "maui"
    HAWAII = "hawaii"
    KAUAI = "kauai"
    MOLOKAI = "molokai"
    LANAI = "lanai"

    @property
    def display_name(self) -> str:
        return {
            Island.OAHU: "O'ahu",
            Island.MAUI: "Maui",
            Island.HAWAII: "Big Island",
            Island.KAUAI: "Kaua'i",
            Island.MOLOKAI: "Moloka'i",
            Island.LANAI: "Lāna'i",
        }[self]

    @classmethod
    def parse(cls, value: str) -> "Island":
        """Parse a user-supplied island name; raises ValueError if unknown."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid island: {value}") from None


# =============================================================
# WEATHER
# =============================================================


class AlertSeverity(Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    EXTREME = "extreme"


@dataclass(frozen=True)
class CurrentConditions:
    temperature_f: int
    feels_like_f: int
    humidity: int
    wind_speed_mph: int
    wind_direction: str
    conditions: str
    icon: str
    uv_index: int = 8
    visibility_miles: int = 10

    def to_dict(self) -> dict[str, Any]:
        return {
            "temperature_f": self.temperature_f,
            "feels_like_f": self.feels_like_f,
            "humidity": self.humidity,
            "wind_speed_mph": self.wind_speed_mph,
            "wind_direction": self.wind_direction,
            "conditions": self.conditions,
            "icon": self.icon,
            "uv_index": self.uv_index,
            "visibility_miles": self.visibility_miles,
        }


@dataclass(frozen=True)
class DailyForecast:
    date: str
    high_f: int
    low_f: int
    conditions: str
    icon: str
    precipitation_chance: int
    wind_speed_mph: int
    wind_direction: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "high_f": self.high_f,
            "low_f": self.low_f,
            "conditions": self.conditions,
            "icon": self.icon,
            "precipitation_chance": self.precipitation_chance,
            "wind_speed_mph": self.wind_speed_mph,
            "wind_direction": self.wind_direction,
        }


@dataclass(frozen=True)
class WeatherAlert:
    id: str
    title: str
    description: str
    severity: AlertSeverity
    start_time: str
    end_time: str
    areas: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "areas": list(self.areas),
        }


@dataclass(frozen=True)
class WeatherSnapshot:
    island: Island
    current: CurrentConditions
    forecast: tuple[DailyForecast, ...]
    alerts: tuple[WeatherAlert, ...] = ()
    observed_at: Optional[datetime] = None

    @property
    def today(self) -> Optional[DailyForecast]:
        return self.forecast[0] if self.forecast else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "island": self.island.value,
            "current": self.current.to_dict(),
            "forecast": [d.to_dict() for d in self.forecast],
            "alerts": [a.to_dict() for a in self.alerts],
            "observed_at": self.observed_at.isoformat() if self.observed_at else None,
        }


# =============================================================
# SURF & TIDES
# =============================================================


class WaveQuality(Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class TideType(Enum):
    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class SurfForecast:
    time: datetime
    wave_min_ft: float
    wave_max_ft: float
    period_s: int
    direction_deg: int
    quality: WaveQuality

    def to_dict(self) -> dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "wave_min_ft": self.wave_min_ft,
            "wave_max_ft": self.wave_max_ft,
            "period_s": self.period_s,
            "direction_deg": self.direction_deg,
            "quality": self.quality.value,
        }


@dataclass(frozen=True)
class SurfSpotReading:
    spot_id: str
    name: str
    island: Island
    coordinates: tuple[float, float]
    wave_min_ft: float
    wave_max_ft: float
    period_s: int
    direction_deg: int
    quality: WaveQuality
    forecast: tuple[SurfForecast, ...] = ()
    unit: str = "ft"

    def to_dict(self) -> dict[str, Any]:
        return {
            "spot_id": self.spot_id,
            "name": self.name,
            "island": self.island.value,
            "coordinates": list(self.coordinates),
            "wave_min_ft": self.wave_min_ft,
            "wave_max_ft": self.wave_max_ft,
            "unit": self.unit,
            "period_s": self.period_s,
            "direction_deg": self.direction_deg,
            "quality": self.quality.value,
            "forecast": [f.to_dict() for f in self.forecast],
        }


@dataclass(frozen=True)
class TideEvent:
    island: Island
    time: datetime
    type: TideType
    height_ft: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "island": self.island.value,
            "time": self.time.isoformat(),
            "type": self.type.value,
            "height_ft": self.height_ft,
        }


# =============================================================
# NEWS
# =============================================================


class NewsCategory(Enum):
    BREAKING = "breaking"
    LOCAL = "local"
    WEATHER = "weather"
    TRAFFIC = "traffic"
    BUSINESS = "business"
    SPORTS = "sports"
    CULTURE = "culture"
    ENVIRONMENT = "environment"


@dataclass(frozen=True)
class NewsPublisher:
    name: str
    domain: str
    logo_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "domain": self.domain, "logo_url": self.logo_url}


@dataclass(frozen=True)
class NewsArticle:
    id: str
    title: str
    summary: str
    url: str
    publisher: NewsPublisher
    published_at: datetime
    category: NewsCategory
    content: str = ""
    image_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
            "publisher": self.publisher.to_dict(),
            "published_at": self.published_at.isoformat(),
            "category": self.category.value,
            "image_url": self.image_url,
        }


# =============================================================
# EVENTS
# =============================================================


class EventCategory(Enum):
    MUSIC = "music"
    FOOD = "food"
    CULTURE = "culture"
    ART = "art"
    OUTDOOR = "outdoor"
    FAMILY = "family"
    BUSINESS = "business"
    EDUCATION = "education"
    NIGHTLIFE = "nightlife"
    SPORTS = "sports"


@dataclass(frozen=True)
class EventVenue:
    name: str
    address: str
    island: Island
    coordinates: Optional[tuple[float, float]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "island": self.island.value,
            "coordinates": list(self.coordinates) if self.coordinates else None,
        }


@dataclass(frozen=True)
class EventPrice:
    free: bool
    min: Optional[float] = None
    max: Optional[float] = None
    currency: str = "USD"

    def to_dict(self) -> dict[str, Any]:
        return {"free": self.free, "min": self.min, "max": self.max, "currency": self.currency}


@dataclass(frozen=True)
class EventListing:
    id: str
    title: str
    description: str
    start: datetime
    venue: EventVenue
    category: EventCategory
    price: EventPrice
    organizer: str = "Unknown"
    end: Optional[datetime] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end else None,
            "venue": self.venue.to_dict(),
            "category": self.category.value,
            "price": self.price.to_dict(),
            "organizer": self.organizer,
            "url": self.url,
            "image_url": self.image_url,
            "tags": list(self.tags),
        }
