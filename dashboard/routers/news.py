from typing import Optional

from fastapi import APIRouter, Depends, Query

from dashboard.dependencies import get_services, parse_news_category
from dashboard.schemas import FeedResponse
from feeds.container import Services

router = APIRouter(prefix="/api/news", tags=["News"])


@router.get("", response_model=FeedResponse)
async def get_news(
    category: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """
    Latest relevant Hawaii headlines, most relevant first.
    """
    result = await services.news.get_latest(parse_news_category(category), limit=limit)
    return FeedResponse.from_result(result, [r.payload.to_dict() for r in result.records])


@router.get("/feeds", response_model=FeedResponse)
def list_feeds(services: Services = Depends(get_services)):
    """
    Configured RSS feeds with their enabled flag and health.
    """
    return FeedResponse(success=True, data=services.news.list_feeds())
