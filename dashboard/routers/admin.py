from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException

from dashboard.dependencies import get_services, parse_news_category, require_admin
from dashboard.schemas import AddFeedRequest, AddFeedResponse, CacheClearResponse, FeedToggleResponse
from data_sources.payloads import NewsPublisher
from feeds.container import Services

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.post("/cache/clear", response_model=CacheClearResponse)
def clear_cache(services: Services = Depends(get_services)):
    """
    Drop every cached entry; the next request per key fans out again.
    """
    cleared = services.clear_cache()
    return CacheClearResponse(success=True, message="Cache cleared", cleared=cleared)


@router.post("/news/feeds", response_model=AddFeedResponse)
async def add_news_feed(body: AddFeedRequest, services: Services = Depends(get_services)):
    """
    Add an RSS feed; it is fetched once and rejected if it cannot be parsed.
    """
    category = parse_news_category(body.category)
    publisher = NewsPublisher(name=body.name.strip(), domain=body.domain or urlsplit(body.url).netloc)
    try:
        feed = await services.news.add_feed(body.url, publisher, category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if feed is None:
        raise HTTPException(status_code=400, detail="Feed could not be fetched or parsed")
    return AddFeedResponse(success=True, message="Feed added", name=feed.source_name, url=feed.url)


@router.put("/news/feeds/{name}", response_model=FeedToggleResponse)
def toggle_news_feed(name: str, enabled: bool, services: Services = Depends(get_services)):
    """
    Enable or disable one RSS feed.
    """
    if not services.news.set_feed_enabled(name, enabled):
        raise HTTPException(status_code=404, detail=f"Unknown news feed: {name}")
    return FeedToggleResponse(success=True, name=name, enabled=enabled)
