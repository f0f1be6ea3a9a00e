"""
Normalizers - News.

============================================================
RESPONSIBILITY
============================================================
Turn parsed RSS entries (feedparser dictionaries) into
NewsArticle records.

- Identity is the canonical article URL
- Category inferred from keywords
- Extractive summary (first sentences, 75 words max)
- Entries older than 48 hours are dropped

Relevance is NOT computed here: it is the news scoring policy's
job, so the normalizer emits a base score of 0.

============================================================
"""

import hashlib
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from data_sources.models import DomainRecord
from data_sources.normalizers.common import parse_datetime, strip_html
from data_sources.payloads import NewsArticle, NewsCategory, NewsPublisher


MAX_ITEMS_PER_FEED = 10
MAX_AGE_HOURS = 48
SUMMARY_WORDS = 75
SUMMARY_SENTENCES = 3

TRACKING_PARAMS = {"fbclid", "gclid", "mc_cid", "mc_eid", "ref", "cmpid"}

HAWAII_KEYWORDS = [
    "hawaii", "hawaiian", "honolulu", "oahu", "maui", "kauai", "big island", "molokai", "lanai",
    "waikiki", "pearl harbor", "diamond head", "haleakala", "kilauea", "volcano",
    "aloha", "mahalo", "ohana", "poke", "spam musubi", "shave ice",
    "pipeline", "north shore", "south shore", "windward", "leeward",
    "heco", "hawaiian electric", "hart", "honolulu rail", "uh", "university of hawaii",
]
LOCAL_INDICATORS = ["local", "island", "state"]
COMMUNITY_INDICATORS = ["resident", "community"]
URGENCY_INDICATORS = ["today", "yesterday", "breaking"]

# Checked in order; first match wins
_CATEGORY_KEYWORDS: list[tuple[NewsCategory, tuple[str, ...]]] = [
    (NewsCategory.BREAKING, ("breaking", "urgent", "alert")),
    (NewsCategory.WEATHER, ("weather", "storm", "hurricane", "rain")),
    (NewsCategory.TRAFFIC, ("traffic", "highway", "freeway", "construction")),
    (NewsCategory.BUSINESS, ("business", "economy", "company", "investment")),
    (NewsCategory.SPORTS, ("sport", "game", "team", "championship")),
    (NewsCategory.CULTURE, ("culture", "festival", "music", "art")),
    (NewsCategory.ENVIRONMENT, ("environment", "ocean", "coral", "conservation")),
]

_IMG_RE = re.compile(r'<img[^>]+src="([^"]+)"', re.IGNORECASE)


def canonical_url(url: str) -> str:
    """
    Canonical form used as article identity.

    Scheme and host lower-cased, utm_* and other tracking parameters and
    the fragment dropped, trailing slash stripped.
    """
    parts = urlsplit(url.strip())
    query = [
        (k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if not k.lower().startswith("utm_") and k.lower() not in TRACKING_PARAMS
    ]
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, urlencode(query), ""))


def article_id(url: str) -> str:
    return hashlib.sha1(canonical_url(url).encode()).hexdigest()[:16]


def article_text(article: NewsArticle) -> str:
    """Lower-cased text the relevance rules match against."""
    return f"{article.title} {article.content}".lower()


def infer_category(title: str, content: str) -> NewsCategory:
    text = f"{title} {content}".lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return NewsCategory.LOCAL


def _category(title: str, content: str, default: Optional[NewsCategory]) -> NewsCategory:
    category = infer_category(title, content)
    if category == NewsCategory.LOCAL and default is not None:
        return default
    return category


def summarize(content: str, max_words: int = SUMMARY_WORDS) -> str:
    """First substantial sentences, truncated to max_words."""
    sentences = [s.strip() for s in strip_html(content).split(".") if len(s.strip()) > 20]
    words = ". ".join(sentences[:SUMMARY_SENTENCES]).split()
    if not words:
        return ""
    if len(words) >= max_words:
        return " ".join(words[:max_words]) + "..."
    return " ".join(words) + "."


def extract_image_url(content: str) -> Optional[str]:
    match = _IMG_RE.search(content or "")
    return match.group(1) if match else None


def _published(entry: dict[str, Any]) -> Optional[datetime]:
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime(*parsed[:6], tzinfo=timezone.utc)
    for key in ("published", "updated", "pubDate"):
        parsed = parse_datetime(entry.get(key))
        if parsed:
            return parsed
    return None


def _entry_content(entry: dict[str, Any]) -> str:
    content = entry.get("content")
    if isinstance(content, list) and content:
        value = content[0].get("value") if isinstance(content[0], dict) else None
        if value:
            return value
    return entry.get("summary") or entry.get("description") or ""


def normalize_feed_entries(
    entries: Iterable[dict[str, Any]],
    publisher: NewsPublisher,
    source_name: str,
    now: datetime,
    max_items: int = MAX_ITEMS_PER_FEED,
    max_age_hours: float = MAX_AGE_HOURS,
    default_category: Optional[NewsCategory] = None,
) -> list[DomainRecord]:
    """
    Records for the first max_items entries; stale or incomplete entries skipped.

    default_category replaces LOCAL when no category keyword matches.
    """
    cutoff = now - timedelta(hours=max_age_hours)
    records = []

    for entry in list(entries)[:max_items]:
        title = (entry.get("title") or "").strip()
        link = (entry.get("link") or "").strip()
        if not title or not link:
            continue

        published = _published(entry) or now
        if published < cutoff:
            continue

        raw_content = _entry_content(entry)
        content = strip_html(raw_content)
        article = NewsArticle(
            id=article_id(link),
            title=strip_html(title),
            summary=summarize(raw_content) or strip_html(title),
            url=link,
            publisher=publisher,
            published_at=published,
            category=_category(title, content, default_category),
            content=content,
            image_url=extract_image_url(raw_content),
        )
        records.append(DomainRecord(
            identity_key=canonical_url(link),
            payload=article,
            source_name=source_name,
            timestamp=published,
        ))

    return records


FALLBACK_PUBLISHER = NewsPublisher(name="Island Pulse", domain="islandpulse.example")


def fallback_article(now: datetime) -> NewsArticle:
    return NewsArticle(
        id="fallback-1",
        title="Island News Temporarily Unavailable",
        summary=(
            "We are currently experiencing technical difficulties with our news feeds. "
            "Please check back shortly for the latest Hawaii news updates."
        ),
        url="#",
        publisher=FALLBACK_PUBLISHER,
        published_at=now,
        category=NewsCategory.LOCAL,
    )
