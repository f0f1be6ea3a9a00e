"""
RSS News Source - One adapter per local news feed.

Feeds are downloaded with the shared aiohttp session and parsed with
feedparser (no network access from feedparser itself).
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import feedparser

from data_sources.base import BaseSourceAdapter
from data_sources.exceptions import NormalizationError
from data_sources.models import DomainRecord, QueryParams, SourceMetadata
from data_sources.normalizers.news import MAX_AGE_HOURS, MAX_ITEMS_PER_FEED, normalize_feed_entries
from data_sources.payloads import NewsCategory, NewsPublisher


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RSSFeed:
    """A configured RSS feed."""
    source_name: str
    url: str
    publisher: NewsPublisher
    priority: int = 10
    # Used for entries no category keyword matches
    category: Optional[NewsCategory] = None


NEWS_FEEDS: list[RSSFeed] = [
    RSSFeed(
        source_name="rss_hawaii_news_now",
        url="https://www.hawaiinewsnow.com/content/news/?format=rss",
        publisher=NewsPublisher("Hawaii News Now", "hawaiinewsnow.com", "/logos/hawaii-news-now.png"),
        priority=1,
    ),
    RSSFeed(
        source_name="rss_khon2",
        url="https://www.khon2.com/feed/",
        publisher=NewsPublisher("KHON2", "khon2.com", "/logos/khon2.png"),
        priority=2,
    ),
    RSSFeed(
        source_name="rss_kitv",
        url="https://www.kitv.com/news/?format=rss",
        publisher=NewsPublisher("KITV4", "kitv.com", "/logos/kitv.png"),
        priority=3,
    ),
    RSSFeed(
        source_name="rss_star_advertiser",
        url="https://www.staradvertiser.com/feed/",
        publisher=NewsPublisher("Honolulu Star-Advertiser", "staradvertiser.com", "/logos/star-advertiser.png"),
        priority=4,
    ),
    RSSFeed(
        source_name="rss_civil_beat",
        url="https://www.civilbeat.org/feed/",
        publisher=NewsPublisher("Honolulu Civil Beat", "civilbeat.org", "/logos/civil-beat.png"),
        priority=5,
    ),
]


class RSSNewsSource(BaseSourceAdapter):
    """RSS/Atom feed of one publisher."""

    def __init__(self, feed: RSSFeed, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._feed = feed

    @property
    def name(self) -> str:
        return self._feed.source_name

    @property
    def domain(self) -> str:
        return "news"

    @property
    def feed(self) -> RSSFeed:
        return self._feed

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name=self._feed.publisher.name,
            domain=self.domain,
            base_url=self._feed.url,
            priority=self._feed.priority,
            tags=["news", "rss"],
        )

    def _get_default_headers(self) -> dict[str, str]:
        headers = super()._get_default_headers()
        headers["Accept"] = "application/rss+xml, application/atom+xml, application/xml;q=0.9, */*;q=0.8"
        return headers

    async def fetch_raw(self, query: QueryParams) -> list[dict[str, Any]]:
        text = await self._get_text(self._feed.url)
        parsed = feedparser.parse(text)
        if parsed.bozo and not parsed.entries:
            raise NormalizationError(
                message=f"Unparseable feed: {parsed.get('bozo_exception')}",
                source_name=self.name,
                context={"url": self._feed.url},
            )
        return list(parsed.entries)

    def normalize(self, raw_data: list[dict[str, Any]], query: QueryParams) -> list[DomainRecord]:
        return normalize_feed_entries(
            raw_data,
            publisher=self._feed.publisher,
            source_name=self.name,
            now=self._clock.now(),
            max_items=MAX_ITEMS_PER_FEED,
            max_age_hours=MAX_AGE_HOURS,
            default_category=self._feed.category,
        )
