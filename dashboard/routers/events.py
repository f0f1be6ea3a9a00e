from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from dashboard.dependencies import get_services, parse_event_category, parse_island
from dashboard.schemas import FeedResponse
from feeds.container import Services

router = APIRouter(prefix="/api/events", tags=["Events"])


@router.get("", response_model=FeedResponse)
async def get_events(
    island: Optional[str] = None,
    category: Optional[str] = None,
    days: int = Query(7, ge=0, le=90),
    limit: int = Query(50, ge=1, le=200),
    services: Services = Depends(get_services),
):
    """
    Upcoming events, soonest first.
    """
    result = await services.events.get_events(
        island=parse_island(island),
        category=parse_event_category(category),
        days_ahead=days,
        limit=limit,
    )
    return FeedResponse.from_result(result, [r.payload.to_dict() for r in result.records])


@router.get("/featured", response_model=FeedResponse)
async def get_featured(
    limit: int = Query(6, ge=1, le=50),
    services: Services = Depends(get_services),
):
    """
    Highlighted events of the next two weeks.
    """
    result = await services.events.get_featured(limit=limit)
    return FeedResponse.from_result(
        result,
        [{**r.payload.to_dict(), "score": r.score} for r in result.records],
    )


@router.get("/search", response_model=FeedResponse)
async def search_events(
    q: str = Query(..., min_length=1),
    island: Optional[str] = None,
    services: Services = Depends(get_services),
):
    """
    Events of the next 30 days matching title, description, venue or tags.
    """
    try:
        result = await services.events.search(q, island=parse_island(island))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return FeedResponse.from_result(result, [r.payload.to_dict() for r in result.records])
