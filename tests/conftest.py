"""
Shared fixtures.

Every test runs against a MockClock fixed at Monday 2024-05-06
08:00 Hawaii time (18:00 UTC) and, where a network source would be
involved, against FakeAdapter instances instead.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from core.clock import MockClock
from core.config import AppConfig
from data_sources.base import BaseSourceAdapter
from data_sources.models import DomainRecord, QueryParams, SourceMetadata
from data_sources.payloads import (
    EventCategory,
    EventListing,
    EventPrice,
    EventVenue,
    Island,
    NewsArticle,
    NewsCategory,
    NewsPublisher,
    SurfSpotReading,
    TideEvent,
    TideType,
    WaveQuality,
)
from feeds.container import Services, build_services


NOW = datetime(2024, 5, 6, 18, 0, tzinfo=timezone.utc)


class FakeAdapter(BaseSourceAdapter):
    """In-memory adapter: returns canned records, raises, or hangs."""

    def __init__(
        self,
        name: str,
        domain: str = "weather",
        records: Optional[list[DomainRecord]] = None,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        timeout: float = 1.0,
        priority: int = 10,
    ) -> None:
        super().__init__(timeout=timeout)
        self._name = name
        self._domain = domain
        self.records = list(records or [])
        self.error = error
        self.delay = delay
        self.priority = priority
        self.calls = 0
        self.queries: list[QueryParams] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def domain(self) -> str:
        return self._domain

    async def fetch_raw(self, query: QueryParams) -> Any:
        self.calls += 1
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.records)

    def normalize(self, raw_data: Any, query: QueryParams) -> list[DomainRecord]:
        return raw_data

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self._name,
            display_name=self._name.replace("_", " ").title(),
            domain=self._domain,
            base_url=f"https://{self._name}.example",
            priority=self.priority,
        )


def make_record(key: str, source: str = "a", score: float = 0.0, timestamp: Optional[datetime] = None, payload: Any = None) -> DomainRecord:
    return DomainRecord(
        identity_key=key,
        payload=payload if payload is not None else {"id": key},
        source_name=source,
        score=score,
        timestamp=timestamp,
    )


def make_article(
    title: str,
    content: str = "",
    category: NewsCategory = NewsCategory.LOCAL,
    published_at: datetime = NOW,
    url: Optional[str] = None,
) -> NewsArticle:
    slug = title.lower().replace(" ", "-")
    return NewsArticle(
        id=slug,
        title=title,
        summary=content[:60] or title,
        url=url or f"https://news.example/{slug}",
        publisher=NewsPublisher(name="Test News", domain="news.example"),
        published_at=published_at,
        category=category,
        content=content,
    )


def article_record(article: NewsArticle, source: str = "rss_test") -> DomainRecord:
    return DomainRecord(
        identity_key=article.url,
        payload=article,
        source_name=source,
        timestamp=article.published_at,
    )


def make_event(
    title: str,
    start: datetime,
    island: Island = Island.OAHU,
    category: EventCategory = EventCategory.MUSIC,
    free: bool = False,
    image_url: Optional[str] = None,
    venue: str = "Blaisdell Center",
    tags: tuple[str, ...] = (),
) -> EventListing:
    return EventListing(
        id=title.lower().replace(" ", "-"),
        title=title,
        description=f"{title} description",
        start=start,
        venue=EventVenue(name=venue, address="Honolulu", island=island),
        category=category,
        price=EventPrice(free=free, min=None if free else 25.0),
        image_url=image_url,
        tags=tags,
    )


def event_record(listing: EventListing, source: str = "eventbrite") -> DomainRecord:
    return DomainRecord(
        identity_key=f"{listing.title.lower()}|{listing.start.isoformat()}|{listing.venue.name.lower()}",
        payload=listing,
        source_name=source,
        timestamp=listing.start,
    )


def make_spot(
    spot_id: str,
    name: str,
    quality: WaveQuality,
    wave_max_ft: float,
    island: Island = Island.OAHU,
) -> SurfSpotReading:
    return SurfSpotReading(
        spot_id=spot_id,
        name=name,
        island=island,
        coordinates=(21.0, -158.0),
        wave_min_ft=max(wave_max_ft - 2, 0),
        wave_max_ft=wave_max_ft,
        period_s=12,
        direction_deg=315,
        quality=quality,
    )


def spot_record(reading: SurfSpotReading, source: str = "surfline") -> DomainRecord:
    return DomainRecord(
        identity_key=f"surf:{reading.spot_id}",
        payload=reading,
        source_name=source,
        timestamp=NOW,
    )


def tide_record(island: Island, hours_from_now: float, tide_type: TideType, height: float) -> DomainRecord:
    when = NOW + timedelta(hours=hours_from_now)
    return DomainRecord(
        identity_key=f"tide:{island.value}:{when.isoformat()}",
        payload=TideEvent(island=island, time=when, type=tide_type, height_ft=height),
        source_name="noaa_tides",
        timestamp=when,
    )


def offline_services(
    clock: MockClock,
    adapters: Optional[dict[str, list[FakeAdapter]]] = None,
    config: Optional[AppConfig] = None,
) -> Services:
    """
    Fully wired container whose real sources are all disabled.

    adapters maps a domain to FakeAdapters registered in its place.
    """
    services = build_services(config or AppConfig(), clock=clock)
    for domain, registry in services.registries.items():
        for name in registry.list_sources():
            registry.set_enabled(name, False)
        for adapter in (adapters or {}).get(domain, []):
            registry.register(adapter, priority=adapter.priority)
    return services


@pytest.fixture
def clock() -> MockClock:
    return MockClock(NOW)


@pytest.fixture
def services(clock) -> Services:
    return offline_services(clock)
