"""
Normalizers - Weather.

============================================================
INPUT SHAPES
============================================================
NOAA (api.weather.gov), assembled by the adapter:
    {"grid": <gridpoints JSON | None>,
     "forecast": <forecast JSON | None>,
     "alerts": <alerts/active JSON | None>}

Open-Meteo (/v1/forecast, fahrenheit + mph units):
    {"current": {...}, "daily": {"time": [...], ...}}

============================================================
OUTPUT
============================================================
Exactly one DomainRecord per island, identity "weather:<island>",
so the primary and backup sources collapse on merge.

============================================================
"""

import hashlib
import re
from datetime import datetime, timedelta
from typing import Any, Optional

from core.clock import HAWAII_TZ
from data_sources.exceptions import NormalizationError
from data_sources.models import DomainRecord
from data_sources.normalizers.common import parse_datetime, to_float
from data_sources.payloads import (
    AlertSeverity,
    CurrentConditions,
    DailyForecast,
    Island,
    WeatherAlert,
    WeatherSnapshot,
)


DEFAULT_TEMPERATURE_C = 25.0
DEFAULT_HUMIDITY = 70.0
DEFAULT_WIND_SPEED_MS = 5.0
DEFAULT_WIND_DIRECTION_DEG = 45.0
DEFAULT_PRECIPITATION_CHANCE = 20
DEFAULT_FORECAST_WIND_MPH = 10
DEFAULT_FORECAST_WIND_DIRECTION = "E"
MAX_FORECAST_PERIODS = 14

_CARDINALS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]

# WMO weather interpretation codes used by Open-Meteo
_WMO_CONDITIONS = {
    0: "Sunny",
    1: "Mostly Sunny",
    2: "Partly Cloudy",
    3: "Cloudy",
    45: "Fog",
    48: "Fog",
    51: "Light Drizzle",
    53: "Drizzle",
    55: "Heavy Drizzle",
    61: "Light Rain",
    63: "Rain",
    65: "Heavy Rain",
    80: "Rain Showers",
    81: "Rain Showers",
    82: "Heavy Showers",
    95: "Thunderstorms",
    96: "Thunderstorms",
    99: "Thunderstorms",
}


def weather_identity(island: Island) -> str:
    return f"weather:{island.value}"


# =============================================================
# HELPERS
# =============================================================


def celsius_to_fahrenheit(value: float) -> int:
    return round(value * 9 / 5 + 32)


def degrees_to_cardinal(degrees: float) -> str:
    return _CARDINALS[int(round(degrees / 22.5)) % 16]


def feels_like(temp_f: int, humidity: float, wind_mph: int) -> int:
    """Heat index above 80°F, wind chill at or below 50°F, else the air temperature."""
    t, h = temp_f, humidity
    if t >= 80:
        hi = (
            -42.379 + 2.04901523 * t + 10.14333127 * h
            - 0.22475541 * t * h - 0.00683783 * t * t
            - 0.05481717 * h * h + 0.00122874 * t * t * h
            + 0.00085282 * t * h * h - 0.00000199 * t * t * h * h
        )
        return round(hi)
    if t <= 50 and wind_mph > 3:
        wc = 35.74 + 0.6215 * t - 35.75 * wind_mph ** 0.16 + 0.4275 * t * wind_mph ** 0.16
        return round(wc)
    return t


def icon_for(conditions: str) -> str:
    lower = (conditions or "").lower()
    if "sunny" in lower or "clear" in lower:
        return "sunny"
    if "rain" in lower or "shower" in lower or "drizzle" in lower or "storm" in lower:
        return "rain"
    return "partly-cloudy"


def conditions_from_cloud_cover(cover: float) -> str:
    if cover < 25:
        return "Sunny"
    if cover < 75:
        return "Partly Cloudy"
    return "Cloudy"


def _first_value(series: Any, default: float) -> float:
    """First value of a NOAA gridpoint time series, or default."""
    values = (series or {}).get("values") or []
    if not values:
        return default
    value = to_float(values[0].get("value"))
    return default if value is None else value


def _wind_ms(series: Any) -> float:
    speed = _first_value(series, DEFAULT_WIND_SPEED_MS)
    unit = (series or {}).get("uom", "")
    if "km_h" in unit:
        return speed / 3.6
    return speed


def _alert_id(title: str, onset: str) -> str:
    return "alert-" + hashlib.sha1(f"{title}|{onset}".encode()).hexdigest()[:12]


# =============================================================
# NOAA
# =============================================================


def parse_noaa_current(grid: dict[str, Any]) -> CurrentConditions:
    props = grid.get("properties") or {}

    temperature = celsius_to_fahrenheit(_first_value(props.get("temperature"), DEFAULT_TEMPERATURE_C))
    humidity = _first_value(props.get("relativeHumidity"), DEFAULT_HUMIDITY)
    wind_speed = round(_wind_ms(props.get("windSpeed")) * 2.237)
    wind_direction = _first_value(props.get("windDirection"), DEFAULT_WIND_DIRECTION_DEG)
    conditions = conditions_from_cloud_cover(_first_value(props.get("skyCover"), 0.0))

    return CurrentConditions(
        temperature_f=temperature,
        feels_like_f=feels_like(temperature, humidity, wind_speed),
        humidity=round(humidity),
        wind_speed_mph=wind_speed,
        wind_direction=degrees_to_cardinal(wind_direction),
        conditions=conditions,
        icon=icon_for(conditions),
    )


def _period_temperature(period: dict[str, Any]) -> int:
    value = to_float(period.get("temperature"), 0.0)
    if period.get("temperatureUnit", "F") == "F":
        return round(value)
    return celsius_to_fahrenheit(value)


def parse_noaa_period(day: Optional[dict[str, Any]], night: Optional[dict[str, Any]], now: datetime) -> DailyForecast:
    """Fold a day/night period pair into one DailyForecast."""
    if not day:
        return default_forecast_day(now)

    high = _period_temperature(day)
    low = _period_temperature(night) if night else high - 10
    conditions = day.get("shortForecast") or "Partly Cloudy"

    precip = re.search(r"(\d+)%", day.get("detailedForecast") or "")
    wind = re.search(r"(\d+)", day.get("windSpeed") or "")
    direction = re.search(r"([NSEW]+)", day.get("windDirection") or "")

    return DailyForecast(
        date=day.get("startTime") or now.date().isoformat(),
        high_f=max(high, low),
        low_f=min(high, low),
        conditions=conditions,
        icon=icon_for(conditions),
        precipitation_chance=int(precip.group(1)) if precip else DEFAULT_PRECIPITATION_CHANCE,
        wind_speed_mph=int(wind.group(1)) if wind else DEFAULT_FORECAST_WIND_MPH,
        wind_direction=direction.group(1) if direction else DEFAULT_FORECAST_WIND_DIRECTION,
    )


def parse_noaa_forecast(forecast: dict[str, Any], now: datetime) -> tuple[DailyForecast, ...]:
    periods = (forecast.get("properties") or {}).get("periods") or []
    days = []
    for i in range(0, min(len(periods), MAX_FORECAST_PERIODS), 2):
        night = periods[i + 1] if i + 1 < len(periods) else None
        days.append(parse_noaa_period(periods[i], night, now))
    return tuple(days) if days else default_forecast(now)


def _map_severity(value: Optional[str]) -> AlertSeverity:
    try:
        return AlertSeverity((value or "").lower())
    except ValueError:
        return AlertSeverity.MINOR


def parse_noaa_alerts(alerts: dict[str, Any], now: datetime) -> tuple[WeatherAlert, ...]:
    parsed = []
    for feature in alerts.get("features") or []:
        props = feature.get("properties") or {}
        title = props.get("headline") or props.get("event") or "Weather Alert"
        onset = props.get("onset") or now.isoformat()
        parsed.append(WeatherAlert(
            id=props.get("id") or _alert_id(title, onset),
            title=title,
            description=props.get("description") or "",
            severity=_map_severity(props.get("severity")),
            start_time=onset,
            end_time=props.get("expires") or (now + timedelta(hours=24)).isoformat(),
            areas=(props["areaDesc"],) if props.get("areaDesc") else (),
        ))
    return tuple(parsed)


def normalize_noaa_weather(
    raw: dict[str, Any],
    island: Island,
    source_name: str,
    now: datetime,
) -> list[DomainRecord]:
    """
    Build the island snapshot from the NOAA sub-responses.

    A missing grid or forecast is replaced by defaults; both missing
    means the source produced nothing usable.
    """
    grid = raw.get("grid")
    forecast = raw.get("forecast")
    alerts = raw.get("alerts")

    if not grid and not forecast:
        raise NormalizationError(
            message="Neither gridpoint nor forecast data available",
            source_name=source_name,
        )

    observed_at = None
    if grid:
        observed_at = parse_datetime((grid.get("properties") or {}).get("updateTime"))

    snapshot = WeatherSnapshot(
        island=island,
        current=parse_noaa_current(grid) if grid else default_current(),
        forecast=parse_noaa_forecast(forecast, now) if forecast else default_forecast(now),
        alerts=parse_noaa_alerts(alerts, now) if alerts else (),
        observed_at=observed_at or now,
    )
    return [DomainRecord(
        identity_key=weather_identity(island),
        payload=snapshot,
        source_name=source_name,
        timestamp=snapshot.observed_at,
    )]


# =============================================================
# OPEN-METEO
# =============================================================


def _series(daily: dict[str, Any], name: str, index: int, default: Any = None) -> Any:
    values = daily.get(name) or []
    if index < len(values) and values[index] is not None:
        return values[index]
    return default


def normalize_open_meteo_weather(
    raw: dict[str, Any],
    island: Island,
    source_name: str,
    now: datetime,
) -> list[DomainRecord]:
    """Open-Meteo forecast requested with fahrenheit / mph units."""
    current = raw.get("current")
    daily = raw.get("daily")
    if not isinstance(current, dict) or not isinstance(daily, dict):
        raise NormalizationError(
            message="Open-Meteo payload missing 'current' or 'daily'",
            source_name=source_name,
        )

    temperature = round(to_float(current.get("temperature_2m"), celsius_to_fahrenheit(DEFAULT_TEMPERATURE_C)))
    humidity = to_float(current.get("relative_humidity_2m"), DEFAULT_HUMIDITY)
    wind_speed = round(to_float(current.get("wind_speed_10m"), DEFAULT_WIND_SPEED_MS * 2.237))
    wind_direction = to_float(current.get("wind_direction_10m"), DEFAULT_WIND_DIRECTION_DEG)
    code = int(to_float(current.get("weather_code"), 2))
    conditions = _WMO_CONDITIONS.get(code, "Partly Cloudy")
    apparent = to_float(current.get("apparent_temperature"))

    conditions_now = CurrentConditions(
        temperature_f=temperature,
        feels_like_f=round(apparent) if apparent is not None else feels_like(temperature, humidity, wind_speed),
        humidity=round(humidity),
        wind_speed_mph=wind_speed,
        wind_direction=degrees_to_cardinal(wind_direction),
        conditions=conditions,
        icon=icon_for(conditions),
        uv_index=round(to_float(_series(daily, "uv_index_max", 0), 8)),
    )

    days = []
    for i, date in enumerate((daily.get("time") or [])[:7]):
        day_conditions = _WMO_CONDITIONS.get(int(to_float(_series(daily, "weather_code", i), 2)), "Partly Cloudy")
        high = round(to_float(_series(daily, "temperature_2m_max", i), 84))
        low = round(to_float(_series(daily, "temperature_2m_min", i), 74))
        days.append(DailyForecast(
            date=date,
            high_f=max(high, low),
            low_f=min(high, low),
            conditions=day_conditions,
            icon=icon_for(day_conditions),
            precipitation_chance=round(to_float(
                _series(daily, "precipitation_probability_max", i), DEFAULT_PRECIPITATION_CHANCE,
            )),
            wind_speed_mph=round(to_float(_series(daily, "wind_speed_10m_max", i), DEFAULT_FORECAST_WIND_MPH)),
            wind_direction=degrees_to_cardinal(to_float(
                _series(daily, "wind_direction_10m_dominant", i), DEFAULT_WIND_DIRECTION_DEG,
            )),
        ))

    observed_at = parse_datetime(current.get("time"), default_tz=HAWAII_TZ) or now
    snapshot = WeatherSnapshot(
        island=island,
        current=conditions_now,
        forecast=tuple(days) or default_forecast(now),
        observed_at=observed_at,
    )
    return [DomainRecord(
        identity_key=weather_identity(island),
        payload=snapshot,
        source_name=source_name,
        timestamp=observed_at,
    )]


# =============================================================
# DEFAULTS
# =============================================================


def default_current() -> CurrentConditions:
    return CurrentConditions(
        temperature_f=82,
        feels_like_f=86,
        humidity=68,
        wind_speed_mph=12,
        wind_direction="NE",
        conditions="Partly Cloudy",
        icon="partly-cloudy",
    )


def default_forecast_day(now: datetime, offset_days: int = 0, high: int = 84, low: int = 74) -> DailyForecast:
    return DailyForecast(
        date=(now + timedelta(days=offset_days)).date().isoformat(),
        high_f=high,
        low_f=low,
        conditions="Partly Cloudy",
        icon="partly-cloudy",
        precipitation_chance=DEFAULT_PRECIPITATION_CHANCE,
        wind_speed_mph=12,
        wind_direction="NE",
    )


def default_forecast(now: datetime) -> tuple[DailyForecast, ...]:
    return (
        default_forecast_day(now),
        default_forecast_day(now, 1, high=83, low=73),
        default_forecast_day(now, 2, high=85, low=75),
    )


def default_weather_snapshot(island: Island, now: datetime) -> WeatherSnapshot:
    return WeatherSnapshot(
        island=island,
        current=default_current(),
        forecast=default_forecast(now),
        observed_at=now,
    )
