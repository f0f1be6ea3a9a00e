from typing import Optional

from fastapi import APIRouter, Depends, Query

from dashboard.dependencies import get_services, parse_island
from dashboard.schemas import FeedResponse
from data_sources.payloads import Island
from feeds.container import Services

router = APIRouter(prefix="/api", tags=["Surf & Tides"])


@router.get("/surf", response_model=FeedResponse)
async def get_surf(island: Optional[str] = None, services: Services = Depends(get_services)):
    """
    Spot readings (best first) and tide predictions for one island.
    """
    target = parse_island(island, default=Island.OAHU)
    report = await services.surf.get_report(target)
    response = FeedResponse.from_result(report.spots, report.to_dict())
    tides = FeedResponse.from_result(report.tides, None)
    response.degraded = report.is_degraded
    response.failures = response.failures + tides.failures
    return response


@router.get("/surf/top", response_model=FeedResponse)
async def get_top_spots(
    island: Optional[str] = None,
    limit: int = Query(5, ge=1, le=50),
    services: Services = Depends(get_services),
):
    """
    Best spots on one island, or across the main surf islands.
    """
    records = await services.surf.get_top_spots(parse_island(island), limit=limit)
    return FeedResponse(
        success=True,
        data=[{**r.payload.to_dict(), "score": r.score} for r in records],
    )


@router.get("/tides/next", response_model=FeedResponse)
async def get_next_tide(island: Optional[str] = None, services: Services = Depends(get_services)):
    """
    The next high or low tide after now.
    """
    target = parse_island(island, default=Island.OAHU)
    result = await services.surf.get_tides(target)
    tide = services.surf.next_tide(result)
    return FeedResponse.from_result(result, tide.to_dict() if tide else None)
