"""
Briefing Models - Subscribers, briefing content and delivery outcomes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

from data_sources.payloads import EventListing, Island, NewsArticle, SurfSpotReading, WeatherSnapshot


@dataclass
class SubscriberPreferences:
    """Sections a subscriber wants in the briefing."""
    weather: bool = True
    surf: bool = True
    news: bool = True
    events: bool = True
    traffic: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "weather": self.weather,
            "surf": self.surf,
            "news": self.news,
            "events": self.events,
            "traffic": self.traffic,
        }


@dataclass
class Subscriber:
    id: str
    email: str
    island: Island
    subscribed_at: datetime
    unsubscribe_token: str
    active: bool = True
    preferences: SubscriberPreferences = field(default_factory=SubscriberPreferences)

    def to_dict(self) -> dict[str, Any]:
        """Public view; the unsubscribe token is never exposed."""
        return {
            "id": self.id,
            "email": self.email,
            "island": self.island.value,
            "active": self.active,
            "subscribed_at": self.subscribed_at.isoformat(),
            "preferences": self.preferences.to_dict(),
        }


@dataclass(frozen=True)
class SubscriptionResult:
    success: bool
    message: str
    subscriber: Optional[Subscriber] = None


@dataclass
class DailyBriefing:
    """Everything one island's morning briefing shows."""
    island: Island
    greeting: str
    generated_at: datetime
    weather: WeatherSnapshot
    top_spot: Optional[SurfSpotReading]
    top_news: list[NewsArticle]
    events: list[EventListing]
    sunset: datetime
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "island": self.island.value,
            "greeting": self.greeting,
            "generated_at": self.generated_at.isoformat(),
            "weather": self.weather.to_dict(),
            "top_spot": self.top_spot.to_dict() if self.top_spot else None,
            "top_news": [a.to_dict() for a in self.top_news],
            "events": [e.to_dict() for e in self.events],
            "sunset": self.sunset.isoformat(),
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class BriefingTemplate:
    subject: str
    html: str
    text: str

    def personalize(self, email: str) -> "BriefingTemplate":
        """Fill the {{EMAIL}} placeholder of unsubscribe links."""
        quoted = quote(email, safe="@")
        return BriefingTemplate(
            subject=self.subject,
            html=self.html.replace(EMAIL_PLACEHOLDER, quoted),
            text=self.text.replace(EMAIL_PLACEHOLDER, quoted),
        )


EMAIL_PLACEHOLDER = "{{EMAIL}}"


@dataclass
class DeliveryReport:
    sent: int = 0
    failed: int = 0
    islands: dict[str, dict[str, int]] = field(default_factory=dict)

    def record(self, island: Island, sent: int, failed: int) -> None:
        self.sent += sent
        self.failed += failed
        self.islands[island.value] = {"sent": sent, "failed": failed}

    def to_dict(self) -> dict[str, Any]:
        return {"sent": self.sent, "failed": self.failed, "islands": self.islands}


@dataclass(frozen=True)
class PushNotification:
    title: str
    body: str
    tag: Optional[str] = None
    icon: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "tag": self.tag,
            "icon": self.icon,
            "data": self.data,
        }
