"""
Normalizers - Surf.

Surfline kbyg wave forecasts and Open-Meteo marine forecasts are both
reduced to one SurfSpotReading per configured break, identity
"surf:<spot_id>".
"""

from datetime import datetime, timedelta, timezone
from typing import Any, NamedTuple, Optional

from core.constants import SURF_SPOTS
from data_sources.exceptions import NormalizationError
from data_sources.models import DomainRecord
from data_sources.normalizers.common import parse_datetime, to_float
from data_sources.payloads import Island, SurfForecast, SurfSpotReading, WaveQuality


DEFAULT_PERIOD_S = 10
DEFAULT_DIRECTION_DEG = 315  # NW
DEFAULT_WAVE_MIN_FT = 2.0
DEFAULT_WAVE_MAX_FT = 4.0
FORECAST_STEP_HOURS = 6
FORECAST_HORIZON_HOURS = 120
METERS_TO_FEET = 3.28084


class SurfSpot(NamedTuple):
    spot_id: str
    name: str
    lat: float
    lon: float
    island: Island


def spot_catalogue(island: Optional[Island] = None) -> list[SurfSpot]:
    """Configured surf breaks, optionally for one island."""
    spots = [
        SurfSpot(spot_id, name, lat, lon, Island(island_name))
        for spot_id, name, lat, lon, island_name in SURF_SPOTS
    ]
    if island is None:
        return spots
    return [spot for spot in spots if spot.island == island]


def surf_identity(spot_id: str) -> str:
    return f"surf:{spot_id}"


def assess_wave_quality(wave_min: float, wave_max: float, has_swell: bool = True) -> WaveQuality:
    height = max(wave_min or 0.0, wave_max or 0.0)
    if not has_swell or height < 1:
        return WaveQuality.POOR
    if height < 3:
        return WaveQuality.FAIR
    if height < 6:
        return WaveQuality.GOOD
    return WaveQuality.EXCELLENT


def average_period(swells: list[dict[str, Any]]) -> int:
    if not swells:
        return DEFAULT_PERIOD_S
    total = sum(to_float(s.get("period"), DEFAULT_PERIOD_S) or DEFAULT_PERIOD_S for s in swells)
    return round(total / len(swells))


def dominant_direction(swells: list[dict[str, Any]]) -> int:
    """Direction of the largest swell."""
    if not swells:
        return DEFAULT_DIRECTION_DEG
    biggest = max(swells, key=lambda s: to_float(s.get("height"), 0.0))
    return round(to_float(biggest.get("direction"), DEFAULT_DIRECTION_DEG) or DEFAULT_DIRECTION_DEG)


def _reading(spot: SurfSpot, current: SurfForecast, forecast: tuple[SurfForecast, ...]) -> SurfSpotReading:
    return SurfSpotReading(
        spot_id=spot.spot_id,
        name=spot.name,
        island=spot.island,
        coordinates=(spot.lat, spot.lon),
        wave_min_ft=current.wave_min_ft,
        wave_max_ft=current.wave_max_ft,
        period_s=current.period_s,
        direction_deg=current.direction_deg,
        quality=current.quality,
        forecast=forecast,
    )


def _record(reading: SurfSpotReading, source_name: str, timestamp: Optional[datetime]) -> DomainRecord:
    return DomainRecord(
        identity_key=surf_identity(reading.spot_id),
        payload=reading,
        source_name=source_name,
        timestamp=timestamp,
    )


# =============================================================
# SURFLINE
# =============================================================


def _surfline_point(wave: dict[str, Any]) -> SurfForecast:
    surf = wave.get("surf") or {}
    swells = [s for s in (wave.get("swells") or []) if isinstance(s, dict)]
    wave_min = to_float(surf.get("min")) or DEFAULT_WAVE_MIN_FT
    wave_max = to_float(surf.get("max")) or DEFAULT_WAVE_MAX_FT
    timestamp = to_float(wave.get("timestamp"), 0.0)
    return SurfForecast(
        time=datetime.fromtimestamp(timestamp, tz=timezone.utc),
        wave_min_ft=wave_min,
        wave_max_ft=wave_max,
        period_s=average_period(swells),
        direction_deg=dominant_direction(swells),
        quality=assess_wave_quality(
            to_float(surf.get("min"), 0.0), to_float(surf.get("max"), 0.0), bool(swells),
        ),
    )


def normalize_surfline_spot(raw: Any, spot: SurfSpot, source_name: str) -> Optional[DomainRecord]:
    """One spot's kbyg wave response; None when it carries no readings."""
    if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
        raise NormalizationError(
            message=f"Unexpected Surfline payload for {spot.name}",
            source_name=source_name,
        )

    waves = [w for w in (raw["data"].get("wave") or []) if isinstance(w, dict)]
    if not waves:
        return None

    points = [_surfline_point(w) for w in waves[:FORECAST_HORIZON_HOURS]]
    forecast = tuple(points[::FORECAST_STEP_HOURS])
    current = points[0]
    return _record(_reading(spot, current, forecast), source_name, current.time)


def normalize_surfline(
    responses: list[tuple[SurfSpot, Any]],
    source_name: str,
) -> list[DomainRecord]:
    """Every spot that produced a usable response; malformed spots are skipped."""
    records = []
    for spot, raw in responses:
        try:
            record = normalize_surfline_spot(raw, spot, source_name)
        except NormalizationError:
            continue
        if record is not None:
            records.append(record)
    return records


# =============================================================
# OPEN-METEO MARINE
# =============================================================


def _marine_point(hourly: dict[str, Any], index: int) -> Optional[SurfForecast]:
    def value(name: str) -> Optional[float]:
        series = hourly.get(name) or []
        return to_float(series[index]) if index < len(series) else None

    height_m = value("wave_height")
    when = parse_datetime(hourly["time"][index])
    if height_m is None or when is None:
        return None

    significant_ft = height_m * METERS_TO_FEET
    wave_min = round(significant_ft, 1)
    wave_max = round(significant_ft * 1.5, 1)
    period = value("wave_period") or value("swell_wave_period")
    direction = value("wave_direction") or value("swell_wave_direction")
    return SurfForecast(
        time=when,
        wave_min_ft=wave_min,
        wave_max_ft=wave_max,
        period_s=round(period) if period else DEFAULT_PERIOD_S,
        direction_deg=round(direction) if direction is not None else DEFAULT_DIRECTION_DEG,
        quality=assess_wave_quality(wave_min, wave_max, True),
    )


def normalize_open_meteo_marine(
    raw: Any,
    spot: SurfSpot,
    source_name: str,
    now: datetime,
) -> Optional[DomainRecord]:
    """
    One spot's marine forecast (hourly wave_height in metres).

    Face height is approximated as 1.0x to 1.5x the significant height.
    The hour containing now is the current reading.
    """
    hourly = raw.get("hourly") if isinstance(raw, dict) else None
    if not isinstance(hourly, dict):
        raise NormalizationError(
            message=f"Open-Meteo marine payload missing 'hourly' for {spot.name}",
            source_name=source_name,
        )

    points = []
    for index in range(len(hourly.get("time") or [])):
        point = _marine_point(hourly, index)
        if point is not None:
            points.append(point)
    if not points:
        return None

    hour_floor = now - timedelta(hours=1)
    upcoming = [p for p in points if p.time > hour_floor] or points
    upcoming = upcoming[:FORECAST_HORIZON_HOURS]
    current = upcoming[0]
    return _record(_reading(spot, current, tuple(upcoming[::FORECAST_STEP_HOURS])), source_name, current.time)


# =============================================================
# DEFAULTS
# =============================================================


def fallback_spot_reading(spot: SurfSpot, now: datetime) -> SurfSpotReading:
    point = SurfForecast(
        time=now,
        wave_min_ft=DEFAULT_WAVE_MIN_FT,
        wave_max_ft=DEFAULT_WAVE_MAX_FT,
        period_s=DEFAULT_PERIOD_S,
        direction_deg=DEFAULT_DIRECTION_DEG,
        quality=WaveQuality.FAIR,
    )
    return _reading(spot, point, (point,))


def fallback_surf_records(island: Optional[Island], source_name: str, now: datetime) -> list[DomainRecord]:
    """Fair 2-4 ft readings for every configured spot."""
    return [
        _record(fallback_spot_reading(spot, now), source_name, now)
        for spot in spot_catalogue(island)
    ]
