"""
NOAA Weather Source - api.weather.gov adapter.

Primary weather source. No authentication; NOAA asks for an
identifying User-Agent.
"""

import asyncio
import logging
from typing import Any, Optional

from core.constants import ISLAND_COORDINATES
from data_sources.base import BaseSourceAdapter
from data_sources.exceptions import DataSourceError, NormalizationError
from data_sources.models import DomainRecord, QueryParams, SourceMetadata
from data_sources.normalizers.weather import normalize_noaa_weather


logger = logging.getLogger(__name__)


class NOAAWeatherSource(BaseSourceAdapter):
    """
    National Weather Service API.

    Endpoints used:
    - /points/{lat},{lon} - Resolves the forecast grid for a point
    - /gridpoints/{office}/{x},{y} - Raw grid values (current conditions)
    - /gridpoints/{office}/{x},{y}/forecast - 12h periods
    - /alerts/active?point= - Active alerts

    The three data requests run concurrently after the points lookup.
    A failed sub-request degrades to defaults instead of failing the source.
    """

    BASE_URL = "https://api.weather.gov"

    @property
    def name(self) -> str:
        return "noaa_weather"

    @property
    def domain(self) -> str:
        return "weather"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="NOAA National Weather Service",
            domain=self.domain,
            base_url=self.BASE_URL,
            documentation_url="https://www.weather.gov/documentation/services-web-api",
            requires_auth=False,
            priority=1,
            tags=["weather", "alerts", "official"],
        )

    def _get_default_headers(self) -> dict[str, str]:
        headers = super()._get_default_headers()
        headers["Accept"] = "application/geo+json"
        return headers

    async def fetch_raw(self, query: QueryParams) -> dict[str, Any]:
        island = self.require_island(query)
        lat, lon = ISLAND_COORDINATES[island.value]

        points = await self._get_json(f"{self.BASE_URL}/points/{lat:.4f},{lon:.4f}")
        props = (points or {}).get("properties") or {}
        grid_url = props.get("forecastGridData")
        if not grid_url and props.get("gridId"):
            grid_url = f"{self.BASE_URL}/gridpoints/{props['gridId']}/{props.get('gridX')},{props.get('gridY')}"
        forecast_url = props.get("forecast")
        if not grid_url or not forecast_url:
            raise NormalizationError(
                message="Points response lacks grid or forecast URLs",
                source_name=self.name,
                context={"island": island.value},
            )

        grid, forecast, alerts = await asyncio.gather(
            self._get_json(grid_url),
            self._get_json(forecast_url),
            self._get_json(f"{self.BASE_URL}/alerts/active", params={"point": f"{lat},{lon}"}),
            return_exceptions=True,
        )
        return {
            "grid": self._settled("gridpoints", grid),
            "forecast": self._settled("forecast", forecast),
            "alerts": self._settled("alerts", alerts),
        }

    def _settled(self, part: str, outcome: Any) -> Optional[Any]:
        """Sub-request value, or None when it failed with a source error."""
        if isinstance(outcome, DataSourceError):
            logger.warning(f"[{self.name}] {part} request failed, using defaults: {outcome}")
            return None
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def normalize(self, raw_data: dict[str, Any], query: QueryParams) -> list[DomainRecord]:
        return normalize_noaa_weather(
            raw_data,
            island=self.require_island(query),
            source_name=self.name,
            now=self._clock.now(),
        )
