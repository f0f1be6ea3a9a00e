"""
Event Sources - Eventbrite API and schema.org JSON-LD scrapers.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta, timezone
from typing import Any, Optional

from data_sources.base import BaseSourceAdapter
from data_sources.exceptions import ConfigurationError
from data_sources.models import DomainRecord, QueryParams, SourceMetadata
from data_sources.normalizers.events import (
    extract_jsonld_blocks,
    normalize_eventbrite,
    normalize_jsonld_events,
)
from data_sources.payloads import EventCategory


logger = logging.getLogger(__name__)


class EventbriteSource(BaseSourceAdapter):
    """
    Eventbrite v3 event search, filtered to Hawaii.

    Requires EVENTBRITE_API_KEY; without it every fetch is a
    CONFIGURATION failure rather than an exception.
    """

    BASE_URL = "https://www.eventbriteapi.com/v3"

    def __init__(self, api_key: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "eventbrite"

    @property
    def domain(self) -> str:
        return "events"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name="Eventbrite Hawaii",
            domain=self.domain,
            base_url=self.BASE_URL,
            documentation_url="https://www.eventbrite.com/platform/api",
            requires_auth=True,
            priority=1,
            tags=["events", "api"],
        )

    async def fetch_raw(self, query: QueryParams) -> Any:
        if not self._api_key:
            raise ConfigurationError(
                message="Eventbrite API key not configured",
                source_name=self.name,
                config_key="EVENTBRITE_API_KEY",
            )

        now = self._clock.now().astimezone(timezone.utc)
        end = now + timedelta(days=query.days_ahead)
        return await self._get_json(
            f"{self.BASE_URL}/events/search/",
            params={
                "location.address": "Hawaii",
                "start_date.range_start": now.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "start_date.range_end": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
                "expand": "venue,organizer,ticket_availability",
            },
            headers={"Authorization": f"Bearer {self._api_key}"},
        )

    def normalize(self, raw_data: Any, query: QueryParams) -> list[DomainRecord]:
        return normalize_eventbrite(raw_data, self.name)


@dataclass(frozen=True)
class EventPage:
    """A public listings page publishing schema.org Event JSON-LD."""
    source_name: str
    display_name: str
    url: str
    id_prefix: str
    default_category: EventCategory
    priority: int = 10


EVENT_PAGES: list[EventPage] = [
    EventPage(
        source_name="hta_events",
        display_name="Hawaii Tourism Authority",
        url="https://www.gohawaii.com/events",
        id_prefix="hta",
        default_category=EventCategory.CULTURE,
        priority=2,
    ),
    EventPage(
        source_name="honolulu_magazine_events",
        display_name="Honolulu Magazine Events",
        url="https://www.honolulumagazine.com/events/",
        id_prefix="honmag",
        default_category=EventCategory.FOOD,
        priority=3,
    ),
]


class JsonLdEventSource(BaseSourceAdapter):
    """Scrapes Event objects from a page's application/ld+json blocks."""

    def __init__(self, page: EventPage, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._page = page

    @property
    def name(self) -> str:
        return self._page.source_name

    @property
    def domain(self) -> str:
        return "events"

    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name=self.name,
            display_name=self._page.display_name,
            domain=self.domain,
            base_url=self._page.url,
            priority=self._page.priority,
            tags=["events", "scraper"],
        )

    def _get_default_headers(self) -> dict[str, str]:
        headers = super()._get_default_headers()
        headers["Accept"] = "text/html,application/xhtml+xml"
        return headers

    async def fetch_raw(self, query: QueryParams) -> str:
        return await self._get_text(self._page.url)

    def normalize(self, raw_data: str, query: QueryParams) -> list[DomainRecord]:
        records = normalize_jsonld_events(
            extract_jsonld_blocks(raw_data),
            source_name=self.name,
            id_prefix=self._page.id_prefix,
            default_category=self._page.default_category,
            base_url=self._page.url,
        )
        if not records:
            logger.info(f"[{self.name}] No JSON-LD events found on {self._page.url}")
        return records
