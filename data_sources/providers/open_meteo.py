"""
Open-Meteo Sources - Backup weather and marine adapters.

No authentication. Used behind the NOAA and Surfline sources; their
records share identity keys, so on merge they only fill gaps.
"""

import asyncio
import logging
from typing import Any

from core.constants import ISLAND_COORDINATES
from data_sources.base import BaseSourceAdapter
from data_sources.exceptions import DataSourceError, NormalizationError
from data_sources.models import DomainRecord, QueryParams, SourceMetadata
from data_sources.normalizers.surf import SurfSpot, normalize_open_meteo_marine, spot_catalogue
from data_sources.normalizers.weather import normalize_open_meteo_weather


logger = logging.getLogger(__name__)


_CURRENT_VARS = ",".join([
    "temperature_2m", "relative_humidity_2m", "apparent_temperature",
    "weather_code", "wind_speed_10m", "wind_direction_10m",
])

_DAILY_VARS = ",".join([
    "weather_code", "temperature_2m_max", "temperature_2m_min",
    "precipitation_probability_max", "wind_speed_10m_max",
    "wind_direction_10m_dominant", "uv_index_max",
])

_MARINE_HOURLY = "wave_height,wave_period,wave_direction"


class OpenMeteoWeatherSource(BaseSourceAdapter):
    """Open-Meteo forecast API (/v1/forecast)."""

    BASE_URL = "https://api.open-meteo.com/v1/forecast"

    @property
    def name(self) -> str:
        return "open_meteo_weather"

    @property
    def domain(self) -> str:
        return "weather"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Open-Meteo Forecast",
            domain=self.domain,
            base_url=self.BASE_URL,
            documentation_url="https://open-meteo.com/en/docs",
            priority=2,
            tags=["weather", "backup"],
        )

    async def fetch_raw(self, query: QueryParams) -> dict[str, Any]:
        island = self.require_island(query)
        lat, lon = ISLAND_COORDINATES[island.value]
        return await self._get_json(self.BASE_URL, params={
            "latitude": lat,
            "longitude": lon,
            "current": _CURRENT_VARS,
            "daily": _DAILY_VARS,
            "temperature_unit": "fahrenheit",
            "wind_speed_unit": "mph",
            "timezone": "Pacific/Honolulu",
            "forecast_days": 7,
        })

    def normalize(self, raw_data: dict[str, Any], query: QueryParams) -> list[DomainRecord]:
        return normalize_open_meteo_weather(
            raw_data,
            island=self.require_island(query),
            source_name=self.name,
            now=self._clock.now(),
        )


class OpenMeteoMarineSource(BaseSourceAdapter):
    """
    Open-Meteo marine API (/v1/marine), one request per configured spot.

    Times are requested in GMT. Spots whose request fails are skipped;
    the source fails only when every spot fails.
    """

    BASE_URL = "https://marine-api.open-meteo.com/v1/marine"

    @property
    def name(self) -> str:
        return "open_meteo_marine"

    @property
    def domain(self) -> str:
        return "surf"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Open-Meteo Marine",
            domain=self.domain,
            base_url=self.BASE_URL,
            documentation_url="https://open-meteo.com/en/docs/marine-weather-api",
            priority=2,
            tags=["surf", "backup"],
        )

    async def _fetch_spot(self, spot: SurfSpot) -> Any:
        return await self._get_json(self.BASE_URL, params={
            "latitude": spot.lat,
            "longitude": spot.lon,
            "hourly": _MARINE_HOURLY,
            "timezone": "GMT",
            "forecast_days": 5,
        })

    async def fetch_raw(self, query: QueryParams) -> list[tuple[SurfSpot, Any]]:
        spots = spot_catalogue(query.island)
        outcomes = await asyncio.gather(*(self._fetch_spot(s) for s in spots), return_exceptions=True)
        return collect_spot_responses(self.name, spots, outcomes)

    def normalize(self, raw_data: list[tuple[SurfSpot, Any]], query: QueryParams) -> list[DomainRecord]:
        now = self._clock.now()
        records = []
        for spot, payload in raw_data:
            try:
                record = normalize_open_meteo_marine(payload, spot, self.name, now)
            except NormalizationError as e:
                logger.warning(f"[{self.name}] Skipping {spot.name}: {e}")
                continue
            if record is not None:
                records.append(record)
        return records


def collect_spot_responses(
    source_name: str,
    spots: list[SurfSpot],
    outcomes: list[Any],
) -> list[tuple[SurfSpot, Any]]:
    """
    Pair spots with their settled responses.

    Failed spots are logged and skipped; if every spot failed the first
    error is raised so the source reports a failure.
    """
    responses = []
    errors = []
    for spot, outcome in zip(spots, outcomes):
        if isinstance(outcome, DataSourceError):
            logger.warning(f"[{source_name}] Skipping {spot.name}: {outcome}")
            errors.append(outcome)
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        responses.append((spot, outcome))

    if errors and not responses:
        raise errors[0]
    return responses
