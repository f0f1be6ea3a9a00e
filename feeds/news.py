"""
Feeds - Local News.

============================================================
RELEVANCE POLICY
============================================================

    +0.10 per Hawaii keyword found in title or body
    +0.05 local indicator (local / island / state)
    +0.05 community indicator (resident / community)
    +0.10 urgency indicator (today / yesterday / breaking)
    capped at 1.0, articles below 0.3 dropped

Equal relevance is ordered newest first. All feeds are merged
under one cache key; category and limit are applied on read.
============================================================
"""

import logging
import re
from dataclasses import replace
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from core.clock import ClockProtocol, SystemClock
from data_sources.aggregator import Aggregator, FallbackFactory
from data_sources.base import BaseSourceAdapter
from data_sources.merger import RecordMerger
from data_sources.models import AggregationResult, DomainRecord, QueryParams, ResultOrigin
from data_sources.normalizers.news import (
    COMMUNITY_INDICATORS,
    HAWAII_KEYWORDS,
    LOCAL_INDICATORS,
    URGENCY_INDICATORS,
    article_text,
    fallback_article,
)
from data_sources.payloads import NewsCategory, NewsPublisher
from data_sources.providers.rss_news import RSSFeed, RSSNewsSource
from data_sources.scoring import CountingRule, ScoringPolicy, ScoringRule, keyword_counter


logger = logging.getLogger(__name__)


NEWS_CACHE_KEY = "news:all"
MIN_RELEVANCE = 0.3
FALLBACK_RELEVANCE = 0.5
# Feeds added at runtime rank after the configured ones
CUSTOM_FEED_PRIORITY = 50

SourceFactory = Callable[[RSSFeed], BaseSourceAdapter]


def _text(record: DomainRecord) -> str:
    return article_text(record.payload)


def _mentions_any(words: list[str]) -> Any:
    def predicate(record: DomainRecord, ctx: Any) -> bool:
        text = _text(record)
        return any(word in text for word in words)

    return predicate


NEWS_POLICY = ScoringPolicy(
    [
        CountingRule("hawaii_keywords", 0.1, keyword_counter(HAWAII_KEYWORDS, _text)),
        ScoringRule("local", 0.05, _mentions_any(LOCAL_INDICATORS)),
        ScoringRule("community", 0.05, _mentions_any(COMMUNITY_INDICATORS)),
        ScoringRule("urgency", 0.1, _mentions_any(URGENCY_INDICATORS)),
    ],
    max_score=1.0,
)


def news_merger(clock: Optional[ClockProtocol] = None) -> RecordMerger:
    return RecordMerger(policy=NEWS_POLICY, min_score=MIN_RELEVANCE, newest_first=True, clock=clock)


def news_fallback(clock: ClockProtocol) -> FallbackFactory:
    def factory(query: QueryParams) -> list[DomainRecord]:
        article = fallback_article(clock.now())
        return [DomainRecord(
            identity_key=f"fallback:{article.id}",
            payload=article,
            source_name="fallback",
            score=FALLBACK_RELEVANCE,
            timestamp=article.published_at,
        )]

    return factory


class NewsFeed:
    """Latest Hawaii headlines merged from every enabled RSS feed."""

    def __init__(
        self,
        aggregator: Aggregator,
        clock: Optional[ClockProtocol] = None,
        source_factory: Optional[SourceFactory] = None,
    ) -> None:
        self.aggregator = aggregator
        self._clock = clock or SystemClock()
        # Builds the adapter for a feed added with add_feed()
        self.source_factory: SourceFactory = source_factory or (
            lambda feed: RSSNewsSource(feed, clock=self._clock)
        )

    async def get_latest(
        self,
        category: Optional[NewsCategory] = None,
        limit: int = 20,
    ) -> AggregationResult:
        if limit < 1:
            raise ValueError("limit must be positive")

        result = await self.aggregator.get_with_metadata(NEWS_CACHE_KEY, QueryParams())

        records = result.records
        # The placeholder article is shown whatever the requested category
        if category is not None and result.origin != ResultOrigin.FALLBACK:
            records = [r for r in records if r.payload.category == category]

        return replace(result, records=records[:limit])

    def set_feed_enabled(self, name: str, enabled: bool) -> bool:
        """Toggle one feed; the merged cache is dropped so the change shows at once."""
        if not self.aggregator.registry.set_enabled(name, enabled):
            logger.warning(f"Unknown news feed '{name}'")
            return False
        dropped = self.aggregator.clear_cache()
        logger.info(f"News feed '{name}' {'enabled' if enabled else 'disabled'}, {dropped} cache entries dropped")
        return True

    async def add_feed(
        self,
        url: str,
        publisher: NewsPublisher,
        category: Optional[NewsCategory] = None,
        priority: int = CUSTOM_FEED_PRIORITY,
    ) -> Optional[RSSFeed]:
        """
        Register an extra RSS feed at runtime.

        The feed is fetched once before it is registered; a feed that
        cannot be fetched or parsed is not added and None is returned.
        On success the merged news cache is dropped so the next read
        includes the new feed.

        Raises:
            ValueError: The URL is not http(s), or the feed name or URL
                is already registered
        """
        parts = urlsplit(url.strip())
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Invalid feed URL: {url}")

        slug = re.sub(r"[^a-z0-9]+", "_", publisher.name.lower()).strip("_")
        if not slug:
            raise ValueError("Publisher name must contain letters or digits")

        registry = self.aggregator.registry
        feed = RSSFeed(
            source_name=f"rss_{slug}",
            url=parts.geturl(),
            publisher=publisher,
            priority=priority,
            category=category,
        )
        if registry.get_source(feed.source_name) is not None:
            raise ValueError(f"News feed '{feed.source_name}' already exists")
        if any(meta.base_url == feed.url for meta in registry.get_all_metadata().values()):
            raise ValueError(f"News feed for {feed.url} already exists")

        adapter = self.source_factory(feed)
        check = await adapter.fetch(QueryParams())
        if not check.ok:
            await adapter.close()
            reason = check.error.message if check.error else "unknown"
            logger.warning(f"Rejected news feed {feed.url}: {reason}")
            return None

        registry.register(adapter, priority=priority)
        dropped = self.aggregator.clear_cache()
        logger.info(f"Added news feed '{feed.source_name}' ({len(check.records)} items), {dropped} cache entries dropped")
        return feed

    def list_feeds(self) -> list[dict[str, Any]]:
        registry = self.aggregator.registry
        metadata = registry.get_all_metadata()
        health = registry.get_all_health()
        return [
            {
                "name": name,
                "display_name": metadata[name].display_name,
                "url": metadata[name].base_url,
                "enabled": registry.is_enabled(name),
                "status": health[name].status.value,
            }
            for name in registry.list_sources()
        ]
