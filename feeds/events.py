"""
Feeds - Events.

Listings from Eventbrite and the JSON-LD scrapers are merged once per
look-ahead window (cache key events:<days>) and ordered soonest first.
Island, category and past-event filters are applied on read so one
cached merge serves every combination.

Featured events are re-ranked with a separate policy:

    free +2 | music, food or culture +1 | has image +1
    Saturday or Sunday (Hawaii time) +1 | starts within 72 h +2
"""

import logging
from dataclasses import replace
from datetime import timedelta
from typing import Optional

from core.clock import HAWAII_TZ, ClockProtocol, SystemClock
from data_sources.aggregator import Aggregator, FallbackFactory
from data_sources.merger import RecordMerger
from data_sources.models import AggregationResult, DomainRecord, QueryParams, ResultOrigin
from data_sources.normalizers.events import fallback_events
from data_sources.payloads import EventCategory, Island
from data_sources.scoring import ScoringContext, ScoringPolicy, ScoringRule, within_hours


logger = logging.getLogger(__name__)


FEATURED_CATEGORIES = {EventCategory.MUSIC, EventCategory.FOOD, EventCategory.CULTURE}

FEATURED_POLICY = ScoringPolicy([
    ScoringRule("free", 2, lambda record, ctx: record.payload.price.free),
    ScoringRule("category", 1, lambda record, ctx: record.payload.category in FEATURED_CATEGORIES),
    ScoringRule("image", 1, lambda record, ctx: bool(record.payload.image_url)),
    ScoringRule("weekend", 1, lambda record, ctx: record.payload.start.astimezone(HAWAII_TZ).weekday() >= 5),
    ScoringRule("soon", 2, within_hours(72)),
])

FEATURED_WINDOW_DAYS = 14
FEATURED_POOL = 100
SEARCH_WINDOW_DAYS = 30
SEARCH_POOL = 200


def events_merger(clock: Optional[ClockProtocol] = None) -> RecordMerger:
    return RecordMerger(newest_first=False, clock=clock)


def events_fallback(clock: ClockProtocol) -> FallbackFactory:
    def factory(query: QueryParams) -> list[DomainRecord]:
        return fallback_events(query.island, "fallback", clock.now())

    return factory


class EventsFeed:
    """
    Upcoming events across the islands.

    Usage:
        feed = EventsFeed(aggregator)
        result = await feed.get_events(island=Island.MAUI, days_ahead=3)
        featured = await feed.get_featured()
    """

    def __init__(self, aggregator: Aggregator, clock: Optional[ClockProtocol] = None) -> None:
        self.aggregator = aggregator
        self._clock = clock or SystemClock()

    async def get_events(
        self,
        island: Optional[Island] = None,
        category: Optional[EventCategory] = None,
        days_ahead: int = 7,
        limit: int = 50,
    ) -> AggregationResult:
        query = QueryParams(days_ahead=days_ahead, limit=limit)
        query.validate()

        result = await self.aggregator.get_with_metadata(f"events:{days_ahead}", query)

        now = self._clock.now()
        horizon = now + timedelta(days=days_ahead)
        placeholder = result.origin == ResultOrigin.FALLBACK

        records = []
        for record in result.records:
            listing = record.payload
            if listing.start < now:
                continue
            # The weekly placeholder may lie beyond a short window
            if listing.start > horizon and not placeholder:
                continue
            if island is not None and listing.venue.island != island:
                continue
            if category is not None and listing.category != category:
                continue
            records.append(record)

        return replace(result, records=records[:limit])

    async def get_featured(self, limit: int = 6) -> AggregationResult:
        """Highest featured-score events of the next two weeks."""
        if limit < 1:
            raise ValueError("limit must be positive")

        result = await self.get_events(days_ahead=FEATURED_WINDOW_DAYS, limit=FEATURED_POOL)
        context = ScoringContext(reference_time=self._clock.now())

        scored = [
            (order, replace(record, score=FEATURED_POLICY.score(record, context)))
            for order, record in enumerate(result.records)
        ]
        # Stable on ties: soonest first, as merged
        scored.sort(key=lambda item: (-item[1].score, item[0]))
        return replace(result, records=[record for _, record in scored[:limit]])

    async def search(self, text: str, island: Optional[Island] = None) -> AggregationResult:
        """Events of the next 30 days whose title, description, venue or tags contain text."""
        needle = text.strip().lower()
        if not needle:
            raise ValueError("Search text must not be empty")

        result = await self.get_events(island=island, days_ahead=SEARCH_WINDOW_DAYS, limit=SEARCH_POOL)

        def matches(record: DomainRecord) -> bool:
            listing = record.payload
            return (
                needle in listing.title.lower()
                or needle in listing.description.lower()
                or needle in listing.venue.name.lower()
                or any(needle in tag.lower() for tag in listing.tags)
            )

        return replace(result, records=[record for record in result.records if matches(record)])
