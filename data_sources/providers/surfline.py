"""
Surfline Source - kbyg wave forecast adapter.

Implements per-spot surf readings from Surfline's public kbyg API.
"""

import asyncio
import logging
from typing import Any

from data_sources.base import BaseSourceAdapter
from data_sources.models import DomainRecord, QueryParams, SourceMetadata
from data_sources.normalizers.surf import SurfSpot, normalize_surfline, spot_catalogue
from data_sources.providers.open_meteo import collect_spot_responses


logger = logging.getLogger(__name__)


class SurflineSurfSource(BaseSourceAdapter):
    """
    Surfline kbyg API.

    Endpoints used:
    - /spots/forecasts/wave?spotId=&days=5&intervalHours=1

    Spots are fetched concurrently; a failing spot is skipped.
    """

    BASE_URL = "https://services.surfline.com/kbyg"
    FORECAST_DAYS = 5

    @property
    def name(self) -> str:
        return "surfline"

    @property
    def domain(self) -> str:
        return "surf"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Surfline",
            domain=self.domain,
            base_url=self.BASE_URL,
            documentation_url="https://www.surfline.com",
            priority=1,
            tags=["surf", "primary"],
        )

    async def _fetch_spot(self, spot: SurfSpot) -> Any:
        return await self._get_json(
            f"{self.BASE_URL}/spots/forecasts/wave",
            params={"spotId": spot.spot_id, "days": self.FORECAST_DAYS, "intervalHours": 1},
        )

    async def fetch_raw(self, query: QueryParams) -> list[tuple[SurfSpot, Any]]:
        spots = spot_catalogue(query.island)
        outcomes = await asyncio.gather(*(self._fetch_spot(s) for s in spots), return_exceptions=True)
        return collect_spot_responses(self.name, spots, outcomes)

    def normalize(self, raw_data: list[tuple[SurfSpot, Any]], query: QueryParams) -> list[DomainRecord]:
        return normalize_surfline(raw_data, self.name)
