"""
Normalizers - Events.

============================================================
INPUT SHAPES
============================================================
Eventbrite v3 search:   {"events": [{"name": {"text"}, "start": {"utc"}, ...}]}
schema.org JSON-LD:     [{"@type": "Event", "name", "startDate", "location", ...}]

============================================================
IDENTITY
============================================================
    lower(title) | start (UTC ISO) | lower(venue name)

so the same event listed by two sources collapses on merge.

============================================================
"""

import json
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from bs4 import BeautifulSoup

from core.clock import HAWAII_TZ
from core.constants import ISLAND_KEYWORDS
from data_sources.exceptions import NormalizationError
from data_sources.models import DomainRecord
from data_sources.normalizers.common import parse_datetime, strip_html, to_float, utc_iso
from data_sources.payloads import EventCategory, EventListing, EventPrice, EventVenue, Island


DEFAULT_VENUE = "TBD"
DEFAULT_ISLAND = Island.OAHU
DEFAULT_CATEGORY = EventCategory.CULTURE

EVENTBRITE_CATEGORIES: dict[str, EventCategory] = {
    "101": EventCategory.BUSINESS,
    "102": EventCategory.EDUCATION,
    "103": EventCategory.MUSIC,
    "105": EventCategory.ART,
    "108": EventCategory.OUTDOOR,
    "110": EventCategory.FOOD,
    "115": EventCategory.FAMILY,
}


def event_identity(title: str, start: datetime, venue_name: str) -> str:
    return f"{title.strip().lower()}|{utc_iso(start)}|{venue_name.strip().lower()}"


def detect_island(venue_name: str, address: str) -> Island:
    """First island whose keyword appears in venue or address; Oahu otherwise."""
    text = f"{venue_name} {address}".lower()
    for island_name, keywords in ISLAND_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return Island(island_name)
    return DEFAULT_ISLAND


def map_eventbrite_category(category_id: Optional[str]) -> EventCategory:
    return EVENTBRITE_CATEGORIES.get(str(category_id), DEFAULT_CATEGORY)


def _record(listing: EventListing, source_name: str) -> DomainRecord:
    return DomainRecord(
        identity_key=event_identity(listing.title, listing.start, listing.venue.name),
        payload=listing,
        source_name=source_name,
        timestamp=listing.start,
    )


# =============================================================
# EVENTBRITE
# =============================================================


def _eventbrite_listing(event: dict[str, Any]) -> Optional[EventListing]:
    title = ((event.get("name") or {}).get("text") or "").strip()
    start = parse_datetime((event.get("start") or {}).get("utc"))
    if not title or start is None:
        return None

    venue = event.get("venue") or {}
    address = venue.get("address") or {}
    venue_name = venue.get("name") or DEFAULT_VENUE
    address_text = address.get("localized_address_display") or ""
    island = detect_island(venue_name, address_text)
    category = map_eventbrite_category(event.get("category_id"))

    lat, lon = to_float(address.get("latitude")), to_float(address.get("longitude"))
    minimum = (event.get("ticket_availability") or {}).get("minimum_ticket_price") or None

    return EventListing(
        id=f"eventbrite-{event.get('id')}",
        title=title,
        description=((event.get("description") or {}).get("text") or "").strip(),
        start=start,
        end=parse_datetime((event.get("end") or {}).get("utc")),
        venue=EventVenue(
            name=venue_name,
            address=address_text,
            island=island,
            coordinates=(lat, lon) if lat is not None and lon is not None else None,
        ),
        category=category,
        price=EventPrice(
            free=bool(event.get("is_free")) or not minimum,
            min=to_float(minimum.get("major_value")) if minimum else None,
            currency=(minimum or {}).get("currency") or "USD",
        ),
        organizer=(event.get("organizer") or {}).get("name") or "Unknown",
        url=event.get("url"),
        image_url=(event.get("logo") or {}).get("url"),
        tags=(category.value, island.value),
    )


def normalize_eventbrite(raw: Any, source_name: str) -> list[DomainRecord]:
    if not isinstance(raw, dict) or not isinstance(raw.get("events", []), list):
        raise NormalizationError(message="Unexpected Eventbrite payload", source_name=source_name)

    records = []
    for event in raw.get("events", []):
        if not isinstance(event, dict):
            continue
        listing = _eventbrite_listing(event)
        if listing is not None:
            records.append(_record(listing, source_name))
    return records


# =============================================================
# SCHEMA.ORG JSON-LD
# =============================================================


def iter_jsonld_events(blocks: Iterable[Any]) -> Iterable[dict[str, Any]]:
    """Yield every object typed Event from decoded JSON-LD blocks (lists and @graph included)."""
    stack = list(blocks)
    while stack:
        item = stack.pop(0)
        if isinstance(item, list):
            stack[:0] = item
            continue
        if not isinstance(item, dict):
            continue
        if "@graph" in item:
            stack[:0] = item["@graph"] if isinstance(item["@graph"], list) else [item["@graph"]]
            continue
        types = item.get("@type")
        types = types if isinstance(types, list) else [types]
        if any(isinstance(t, str) and t.endswith("Event") for t in types):
            yield item


def _jsonld_text(value: Any) -> str:
    if isinstance(value, dict):
        return value.get("name") or ""
    if isinstance(value, list):
        return _jsonld_text(value[0]) if value else ""
    return str(value or "")


def _jsonld_address(value: Any) -> str:
    if isinstance(value, dict):
        parts = [
            value.get("streetAddress"),
            value.get("addressLocality"),
            value.get("addressRegion"),
        ]
        return ", ".join(p for p in parts if p)
    return str(value or "")


def _jsonld_image(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return _jsonld_image(value[0]) if value else None
    if isinstance(value, dict):
        return value.get("url")
    return value or None


def _jsonld_price(offers: Any) -> EventPrice:
    offers = offers if isinstance(offers, list) else [offers] if offers else []
    prices = [to_float(o.get("price")) for o in offers if isinstance(o, dict)]
    prices = [p for p in prices if p is not None]
    currency = next(
        (o.get("priceCurrency") for o in offers if isinstance(o, dict) and o.get("priceCurrency")),
        "USD",
    )
    if not prices or max(prices) == 0:
        return EventPrice(free=True, currency=currency)
    return EventPrice(free=False, min=min(prices), max=max(prices), currency=currency)


def _jsonld_coordinates(location: dict[str, Any]) -> Optional[tuple[float, float]]:
    geo = location.get("geo") or {}
    lat, lon = to_float(geo.get("latitude")), to_float(geo.get("longitude"))
    if lat is None or lon is None:
        return None
    return (lat, lon)


def normalize_jsonld_events(
    blocks: Iterable[Any],
    source_name: str,
    id_prefix: str,
    default_category: EventCategory = DEFAULT_CATEGORY,
    base_url: Optional[str] = None,
) -> list[DomainRecord]:
    """
    Events from schema.org JSON-LD; naive start times are Hawaii local.

    Events without a name or a parseable startDate are skipped.
    """
    records = []
    for index, item in enumerate(iter_jsonld_events(blocks)):
        title = strip_html(item.get("name") or "")
        start = parse_datetime(item.get("startDate"), default_tz=HAWAII_TZ)
        if not title or start is None:
            continue

        location = item.get("location") or {}
        if isinstance(location, list):
            location = location[0] if location else {}
        if isinstance(location, str):
            location = {"name": location}
        venue_name = location.get("name") or DEFAULT_VENUE
        address = _jsonld_address(location.get("address"))
        island = detect_island(venue_name, address)
        keywords = item.get("keywords") or []
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split(",") if k.strip()]

        listing = EventListing(
            id=f"{id_prefix}-{item.get('identifier') or index}",
            title=title,
            description=strip_html(item.get("description") or ""),
            start=start,
            end=parse_datetime(item.get("endDate"), default_tz=HAWAII_TZ),
            venue=EventVenue(
                name=venue_name,
                address=address,
                island=island,
                coordinates=_jsonld_coordinates(location),
            ),
            category=default_category,
            price=_jsonld_price(item.get("offers")),
            organizer=_jsonld_text(item.get("organizer")) or "Unknown",
            url=item.get("url") or base_url,
            image_url=_jsonld_image(item.get("image")),
            tags=tuple([default_category.value, island.value] + [str(k).lower() for k in keywords]),
        )
        records.append(_record(listing, source_name))
    return records


# =============================================================
# DEFAULTS
# =============================================================


def next_saturday_morning(now: datetime) -> datetime:
    """Next Saturday 08:00 Hawaii time; today counts only if it is not Saturday."""
    local = now.astimezone(HAWAII_TZ)
    days = (5 - local.weekday()) % 7 or 7
    target = local + timedelta(days=days)
    return target.replace(hour=8, minute=0, second=0, microsecond=0)


def fallback_events(island: Optional[Island], source_name: str, now: datetime) -> list[DomainRecord]:
    """Weekly farmers market placeholder (O'ahu only)."""
    listing = EventListing(
        id="default-1",
        title="Weekly Farmers Market",
        description="Fresh local produce, prepared foods, and artisan crafts from Hawaiian vendors.",
        start=next_saturday_morning(now),
        venue=EventVenue(
            name="KCC Farmers Market",
            address="Kapiolani Community College, Honolulu",
            island=Island.OAHU,
        ),
        category=EventCategory.FOOD,
        price=EventPrice(free=True),
        organizer="KCC",
        tags=("food", "market", "local", "weekly"),
    )
    if island is not None and island != listing.venue.island:
        return []
    return [_record(listing, source_name)]


def extract_jsonld_blocks(html: str) -> list[Any]:
    """Decoded JSON-LD script blocks of an HTML page; undecodable blocks skipped."""
    soup = BeautifulSoup(html or "", "html.parser")
    blocks = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = script.string or script.get_text() or ""
        try:
            blocks.append(json.loads(text))
        except ValueError:
            continue
    return blocks
