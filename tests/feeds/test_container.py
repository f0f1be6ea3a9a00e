"""
Tests for the service container.

Tests cover:
- Registries built from configuration (enabled, priority, timeout)
- Runtime news feed factory and admin push channel
- Shared cache across domains
- Health report thresholds
"""

import pytest

from briefing.delivery import LoggingPushDelivery
from conftest import FakeAdapter, offline_services
from core.config import AppConfig
from core.constants import DEFAULT_SOURCE_TIMEOUT_SECONDS
from data_sources.exceptions import FetchError
from data_sources.models import QueryParams
from data_sources.payloads import NewsPublisher
from data_sources.providers import RSSFeed, RSSNewsSource
from feeds.container import build_services


class TestBuildServices:
    """Wiring from AppConfig."""

    def test_every_known_source_registered(self, clock):
        """Each domain gets its provider set."""
        services = build_services(AppConfig(), clock=clock)
        assert services.registries["weather"].list_sources() == ["noaa_weather", "open_meteo_weather"]
        assert len(services.registries["news"]) == 5
        assert services.registries["events"].list_sources() == [
            "eventbrite", "hta_events", "honolulu_magazine_events",
        ]
        assert services.started_at == clock.now()

    def test_configuration_applied(self, clock):
        """Disabled sources stay registered; priority and timeout follow config."""
        config = AppConfig.from_env(env={
            "SOURCE_RSS_KITV_ENABLED": "false",
            "SOURCE_OPEN_METEO_WEATHER_PRIORITY": "0",
            "SOURCE_NOAA_TIDES_TIMEOUT": "3",
        })
        services = build_services(config, clock=clock)

        assert services.registries["news"].is_enabled("rss_kitv") is False
        assert services.registries["weather"].list_sources()[0] == "open_meteo_weather"
        assert services.registries["tides"].get_source("noaa_tides").timeout == 3.0

    def test_unknown_configured_source_ignored(self, clock):
        """A configured name with no provider does not break wiring."""
        config = AppConfig()
        config.surf.sources["magicseaweed"] = config.surf.source("magicseaweed")
        services = build_services(config, clock=clock)
        assert "magicseaweed" not in services.registries["surf"].list_sources()

    def test_runtime_feed_and_push_wiring(self, clock):
        """Added feeds are built like configured ones; admin alerts are logged by default."""
        config = AppConfig.from_env(env={"USER_AGENT": "pulse-test/1.0"})
        services = build_services(config, clock=clock)
        feed = RSSFeed("rss_civil_beat", "https://www.civilbeat.org/feed/", NewsPublisher("Civil Beat", "civilbeat.org"))

        adapter = services.news.source_factory(feed)

        assert isinstance(adapter, RSSNewsSource)
        assert adapter.timeout == DEFAULT_SOURCE_TIMEOUT_SECONDS
        assert adapter._get_default_headers()["User-Agent"] == "pulse-test/1.0"
        assert isinstance(services.dispatcher.push, LoggingPushDelivery)

    def test_ttls_per_domain(self, clock):
        """Each aggregator carries its domain's TTL; the cache is shared."""
        config = AppConfig.from_env(env={"NEWS_CACHE_TTL_SECONDS": "120"})
        services = build_services(config, clock=clock)
        assert services.aggregators["news"].ttl_seconds == 120
        assert services.aggregators["news"].cache is services.aggregators["weather"].cache

    @pytest.mark.asyncio
    async def test_clear_cache_counts_entries(self, clock):
        """clear_cache() reports how many entries were dropped."""
        services = offline_services(clock, {"weather": [FakeAdapter("w", records=[])]})
        services.cache.set("weather:oahu", ("x",), ttl_seconds=60)
        services.cache.set("news:all", ("y",), ttl_seconds=60)
        assert services.clear_cache() == 2
        assert len(services.cache) == 0


class TestHealthReport:
    """Overall status from the operational share of enabled sources."""

    def test_no_enabled_sources_is_unhealthy(self, services):
        """Nothing to serve from: unhealthy."""
        report = services.health_report()
        assert report["overall"] == "unhealthy"
        assert report["sources"] == []

    def test_unseen_sources_count_as_operational(self, clock):
        """Sources never called yet are operational."""
        services = offline_services(clock, {"weather": [FakeAdapter("a"), FakeAdapter("b")]})
        report = services.health_report()
        assert report["overall"] == "healthy"
        assert report["operational_rate"] == 1.0
        assert report["service"] == "island-pulse"
        assert report["uptime_seconds"] == 0

    @pytest.mark.asyncio
    async def test_degraded_threshold(self, clock):
        """3 of 4 operational (75%) is degraded."""
        broken = FakeAdapter("broken", error=FetchError("down"))
        fakes = [FakeAdapter("a"), FakeAdapter("b"), FakeAdapter("c"), broken]
        services = offline_services(clock, {"weather": fakes})
        for _ in range(3):
            await broken.fetch(QueryParams())

        report = services.health_report()

        assert report["overall"] == "degraded"
        assert report["operational_rate"] == 0.75
        states = {s["name"]: s["status"] for s in report["sources"]}
        assert states["broken"] == "degraded"

    @pytest.mark.asyncio
    async def test_outage_below_seventy_percent(self, clock):
        """1 of 2 operational is unhealthy; 5 failures mark an outage."""
        broken = FakeAdapter("broken", error=FetchError("down"))
        services = offline_services(clock, {"weather": [FakeAdapter("a"), broken]})
        for _ in range(5):
            await broken.fetch(QueryParams())

        report = services.health_report()

        assert report["overall"] == "unhealthy"
        assert {s["name"]: s["status"] for s in report["sources"]}["broken"] == "outage"

    def test_report_includes_cache_and_subscribers(self, services, clock):
        """Cache stats and active subscriber count are part of the report."""
        services.subscribers.subscribe("a@example.com")
        clock.advance(90)
        report = services.health_report()
        assert report["subscribers"] == 1
        assert report["cache"]["entries"] == 0
        assert report["uptime_seconds"] == 90
