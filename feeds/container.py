"""
Feeds - Service Container.

============================================================
WIRING
============================================================

    AppConfig
        │
        ▼ one AdapterRegistry per domain (enabled / priority / timeout)
        ▼ one shared InMemoryTTLCache
        ▼ one Aggregator per domain (merger + fallback + TTL)
        ▼ feeds, briefing generator and dispatcher
        │
        ▼
    Services  ── handed explicitly to the CLI and the HTTP API

Everything is constructed once per process; nothing is a
module-level singleton.
============================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Any, Callable, Optional

import aiohttp

from briefing.delivery import BriefingDelivery, BriefingDispatcher, LoggingDelivery, LoggingPushDelivery, PushDelivery
from briefing.generator import BriefingGenerator
from briefing.subscribers import SubscriberStore
from core.clock import ClockProtocol, SystemClock
from core.config import AppConfig, DomainConfig
from core.constants import SYSTEM_NAME, SYSTEM_VERSION
from data_sources.aggregator import Aggregator
from data_sources.base import BaseSourceAdapter
from data_sources.cache import InMemoryTTLCache
from data_sources.models import SourceStatus
from data_sources.providers import (
    EVENT_PAGES,
    NEWS_FEEDS,
    EventbriteSource,
    JsonLdEventSource,
    NOAATideSource,
    NOAAWeatherSource,
    OpenMeteoMarineSource,
    OpenMeteoWeatherSource,
    RSSFeed,
    RSSNewsSource,
    SurflineSurfSource,
)
from data_sources.registry import AdapterRegistry
from feeds.events import EventsFeed, events_fallback, events_merger
from feeds.news import NewsFeed, news_fallback, news_merger
from feeds.surf import SurfFeed, surf_fallback, surf_merger, tides_fallback, tides_merger
from feeds.weather import WeatherFeed, weather_fallback, weather_merger


logger = logging.getLogger(__name__)


AdapterFactory = Callable[..., BaseSourceAdapter]

# Share of enabled sources that must be operational
HEALTHY_RATE = 0.9
DEGRADED_RATE = 0.7

_SOURCE_STATES = {
    SourceStatus.HEALTHY: "operational",
    SourceStatus.UNKNOWN: "operational",
    SourceStatus.DEGRADED: "degraded",
    SourceStatus.UNAVAILABLE: "outage",
}


def adapter_factories(config: AppConfig) -> dict[str, dict[str, AdapterFactory]]:
    """Known source constructors per domain, keyed by source name."""
    return {
        "weather": {
            "noaa_weather": NOAAWeatherSource,
            "open_meteo_weather": OpenMeteoWeatherSource,
        },
        "surf": {
            "surfline": SurflineSurfSource,
            "open_meteo_marine": OpenMeteoMarineSource,
        },
        "tides": {
            "noaa_tides": NOAATideSource,
        },
        "news": {
            feed.source_name: partial(RSSNewsSource, feed)
            for feed in NEWS_FEEDS
        },
        "events": {
            "eventbrite": partial(EventbriteSource, api_key=config.eventbrite_api_key),
            **{page.source_name: partial(JsonLdEventSource, page) for page in EVENT_PAGES},
        },
    }


def build_registry(
    domain: str,
    domain_config: DomainConfig,
    factories: dict[str, AdapterFactory],
    config: AppConfig,
    session: Optional[aiohttp.ClientSession] = None,
    clock: Optional[ClockProtocol] = None,
) -> AdapterRegistry:
    registry = AdapterRegistry(domain)

    for name in domain_config.sources:
        if name not in factories:
            logger.warning(f"[{domain}] No source named '{name}', ignoring its configuration")

    for name, factory in factories.items():
        source_config = domain_config.source(name)
        adapter = factory(
            timeout=source_config.timeout_seconds,
            session=session,
            user_agent=config.user_agent,
            clock=clock,
        )
        registry.register(adapter, priority=source_config.priority, enabled=source_config.enabled)

    return registry


def news_source_factory(
    config: AppConfig,
    session: Optional[aiohttp.ClientSession] = None,
    clock: Optional[ClockProtocol] = None,
) -> Callable[[RSSFeed], BaseSourceAdapter]:
    """Builds adapters for feeds added at runtime, configured like the others."""
    def factory(feed: RSSFeed) -> BaseSourceAdapter:
        return RSSNewsSource(
            feed,
            timeout=config.news.source(feed.source_name).timeout_seconds,
            session=session,
            user_agent=config.user_agent,
            clock=clock,
        )

    return factory


@dataclass
class Services:
    """Everything the CLI and the HTTP API need, built once."""
    config: AppConfig
    clock: ClockProtocol
    cache: InMemoryTTLCache
    registries: dict[str, AdapterRegistry]
    aggregators: dict[str, Aggregator]
    weather: WeatherFeed
    surf: SurfFeed
    news: NewsFeed
    events: EventsFeed
    subscribers: SubscriberStore
    briefing: BriefingGenerator
    dispatcher: BriefingDispatcher
    started_at: Optional[datetime] = None

    def health_report(self) -> dict[str, Any]:
        """
        Source health across every domain.

        overall is healthy when at least 90% of enabled sources are
        operational, degraded from 70%, unhealthy below that.
        """
        sources = []
        for domain, registry in self.registries.items():
            for adapter in registry.enabled_adapters():
                health = adapter.get_health()
                sources.append({
                    "name": adapter.name,
                    "domain": domain,
                    "status": _SOURCE_STATES[health.status],
                    "latency_ms": health.latency_ms,
                    "consecutive_failures": health.consecutive_failures,
                    "last_error": health.last_error,
                    "uptime_percentage": health.uptime_percentage,
                })

        operational = sum(1 for s in sources if s["status"] == "operational")
        rate = operational / len(sources) if sources else 0.0
        if rate >= HEALTHY_RATE:
            overall = "healthy"
        elif rate >= DEGRADED_RATE:
            overall = "degraded"
        else:
            overall = "unhealthy"

        now = self.clock.now()
        return {
            "service": SYSTEM_NAME,
            "version": SYSTEM_VERSION,
            "overall": overall,
            "operational_rate": round(rate, 3),
            "timestamp": now.isoformat(),
            "uptime_seconds": (now - self.started_at).total_seconds() if self.started_at else None,
            "sources": sources,
            "cache": self.cache.get_stats(),
            "subscribers": len(self.subscribers.active()),
        }

    def clear_cache(self) -> int:
        """Drop every cached entry of every domain; returns the count."""
        dropped = len(self.cache)
        self.cache.clear()
        return dropped

    async def close(self) -> None:
        for registry in self.registries.values():
            await registry.close()


def build_services(
    config: AppConfig,
    session: Optional[aiohttp.ClientSession] = None,
    clock: Optional[ClockProtocol] = None,
    delivery: Optional[BriefingDelivery] = None,
    push: Optional[PushDelivery] = None,
) -> Services:
    """
    Construct registries, cache, aggregators, feeds and briefing.

    Args:
        config: Application configuration
        session: Shared aiohttp session; each adapter opens its own when omitted
        clock: Time source (MockClock in tests)
        delivery: Briefing delivery port (defaults to LoggingDelivery)
        push: Admin push port (defaults to LoggingPushDelivery)
    """
    clock = clock or SystemClock()
    cache = InMemoryTTLCache(clock=clock)
    factories = adapter_factories(config)

    registries = {
        domain: build_registry(domain, domain_config, factories[domain], config, session, clock)
        for domain, domain_config in config.domains().items()
    }

    mergers = {
        "weather": weather_merger(clock),
        "surf": surf_merger(clock),
        "tides": tides_merger(clock),
        "news": news_merger(clock),
        "events": events_merger(clock),
    }
    fallbacks = {
        "weather": weather_fallback(clock),
        "surf": surf_fallback(clock),
        "tides": tides_fallback(clock),
        "news": news_fallback(clock),
        "events": events_fallback(clock),
    }

    aggregators = {
        domain: Aggregator(
            domain=domain,
            registry=registries[domain],
            cache=cache,
            merger=mergers[domain],
            fallback=fallbacks[domain],
            ttl_seconds=domain_config.ttl_seconds,
            clock=clock,
        )
        for domain, domain_config in config.domains().items()
    }

    weather = WeatherFeed(aggregators["weather"], clock)
    surf = SurfFeed(aggregators["surf"], aggregators["tides"], clock)
    news = NewsFeed(aggregators["news"], clock, news_source_factory(config, session, clock))
    events = EventsFeed(aggregators["events"], clock)

    subscribers = SubscriberStore(clock=clock)
    generator = BriefingGenerator(weather=weather, surf=surf, news=news, events=events, clock=clock)
    dispatcher = BriefingDispatcher(
        store=subscribers,
        generator=generator,
        delivery=delivery or LoggingDelivery(),
        push=push or LoggingPushDelivery(),
    )

    total = sum(len(r) for r in registries.values())
    logger.info(f"Built services: {total} sources across {len(registries)} domains")

    return Services(
        config=config,
        clock=clock,
        cache=cache,
        registries=registries,
        aggregators=aggregators,
        weather=weather,
        surf=surf,
        news=news,
        events=events,
        subscribers=subscribers,
        briefing=generator,
        dispatcher=dispatcher,
        started_at=clock.now(),
    )
