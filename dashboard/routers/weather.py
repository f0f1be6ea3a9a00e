from typing import Optional

from fastapi import APIRouter, Depends

from dashboard.dependencies import get_services, parse_island
from dashboard.schemas import FeedResponse
from data_sources.payloads import Island, WeatherSnapshot
from feeds.container import Services

router = APIRouter(prefix="/api/weather", tags=["Weather"])


@router.get("", response_model=FeedResponse)
async def get_weather(island: Optional[str] = None, services: Services = Depends(get_services)):
    """
    Current conditions, forecast and alerts for one island (default O'ahu).
    """
    target = parse_island(island, default=Island.OAHU)
    result = await services.weather.get_weather(target)
    snapshot = next(
        (r.payload for r in result.records if isinstance(r.payload, WeatherSnapshot)),
        None,
    )
    return FeedResponse.from_result(result, snapshot.to_dict() if snapshot else None)
