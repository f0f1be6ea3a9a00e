"""
NOAA Tides Source - CO-OPS data getter adapter.

High/low tide predictions for the island's reference station.
"""

import logging
from datetime import timedelta
from typing import Any

from core.constants import SYSTEM_NAME, TIDE_STATIONS
from data_sources.base import BaseSourceAdapter
from data_sources.exceptions import ConfigurationError
from data_sources.models import DomainRecord, QueryParams, SourceMetadata
from data_sources.normalizers.tides import normalize_noaa_tides


logger = logging.getLogger(__name__)


class NOAATideSource(BaseSourceAdapter):
    """NOAA Tides & Currents predictions (interval=hilo, local station time)."""

    BASE_URL = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
    PREDICTION_DAYS = 2

    @property
    def name(self) -> str:
        return "noaa_tides"

    @property
    def domain(self) -> str:
        return "tides"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="NOAA Tides & Currents",
            domain=self.domain,
            base_url=self.BASE_URL,
            documentation_url="https://api.tidesandcurrents.noaa.gov/api/prod/",
            priority=1,
            tags=["tides", "official"],
        )

    async def fetch_raw(self, query: QueryParams) -> Any:
        island = self.require_island(query)
        station = TIDE_STATIONS.get(island.value)
        if not station:
            raise ConfigurationError(
                message=f"No tide station for {island.value}",
                source_name=self.name,
                config_key="station",
            )

        today = self._clock.hawaii_now().date()
        return await self._get_json(self.BASE_URL, params={
            "product": "predictions",
            "application": SYSTEM_NAME,
            "begin_date": today.strftime("%Y%m%d"),
            "end_date": (today + timedelta(days=self.PREDICTION_DAYS)).strftime("%Y%m%d"),
            "datum": "MLLW",
            "station": station,
            "time_zone": "lst_ldt",
            "units": "english",
            "interval": "hilo",
            "format": "json",
        })

    def normalize(self, raw_data: Any, query: QueryParams) -> list[DomainRecord]:
        return normalize_noaa_tides(raw_data, self.require_island(query), self.name)
