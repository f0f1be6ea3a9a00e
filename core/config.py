"""
Core Module - Configuration.

============================================================
CONFIGURATION SURFACE
============================================================

Per source:
- enabled / priority / timeout

Per domain (weather, surf, tides, news, events):
- cache TTL
- source table

Application:
- user agent, API keys, admin token, API bind address, log level

Configuration can be loaded from:
- Default values
- Environment variables (a .env file is honoured)

Environment variables:
- <DOMAIN>_CACHE_TTL_SECONDS        e.g. WEATHER_CACHE_TTL_SECONDS=600
- SOURCE_<NAME>_ENABLED             e.g. SOURCE_EVENTBRITE_ENABLED=false
- SOURCE_<NAME>_PRIORITY            lower = tried/merged first
- SOURCE_<NAME>_TIMEOUT             seconds
- EVENTBRITE_API_KEY, ADMIN_TOKEN, USER_AGENT
- API_HOST, API_PORT, LOG_LEVEL

============================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from core.constants import (
    DEFAULT_SOURCE_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    EVENTS_CACHE_TTL_SECONDS,
    NEWS_CACHE_TTL_SECONDS,
    SURF_CACHE_TTL_SECONDS,
    TIDES_CACHE_TTL_SECONDS,
    WEATHER_CACHE_TTL_SECONDS,
)


logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


# =============================================================
# SOURCE / DOMAIN CONFIG
# =============================================================


@dataclass
class SourceConfig:
    """Static wiring for one upstream source."""
    enabled: bool = True
    priority: int = 10
    timeout_seconds: float = DEFAULT_SOURCE_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    def to_dict(self) -> Dict[str, object]:
        return {
            "enabled": self.enabled,
            "priority": self.priority,
            "timeout_seconds": self.timeout_seconds,
        }


@dataclass
class DomainConfig:
    """Cache TTL and source table for one aggregation domain."""
    ttl_seconds: float
    sources: Dict[str, SourceConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

    def source(self, name: str) -> SourceConfig:
        """Config for a source, defaulting to enabled with low priority."""
        return self.sources.get(name) or SourceConfig()

    def to_dict(self) -> Dict[str, object]:
        return {
            "ttl_seconds": self.ttl_seconds,
            "sources": {name: cfg.to_dict() for name, cfg in self.sources.items()},
        }


def _default_weather() -> DomainConfig:
    return DomainConfig(
        ttl_seconds=WEATHER_CACHE_TTL_SECONDS,
        sources={
            "noaa_weather": SourceConfig(priority=1),
            "open_meteo_weather": SourceConfig(priority=2),
        },
    )


def _default_surf() -> DomainConfig:
    return DomainConfig(
        ttl_seconds=SURF_CACHE_TTL_SECONDS,
        sources={
            "surfline": SourceConfig(priority=1),
            "open_meteo_marine": SourceConfig(priority=2),
        },
    )


def _default_tides() -> DomainConfig:
    return DomainConfig(
        ttl_seconds=TIDES_CACHE_TTL_SECONDS,
        sources={"noaa_tides": SourceConfig(priority=1)},
    )


def _default_news() -> DomainConfig:
    return DomainConfig(
        ttl_seconds=NEWS_CACHE_TTL_SECONDS,
        sources={
            "rss_hawaii_news_now": SourceConfig(priority=1),
            "rss_khon2": SourceConfig(priority=2),
            "rss_kitv": SourceConfig(priority=3),
            "rss_star_advertiser": SourceConfig(priority=4),
            "rss_civil_beat": SourceConfig(priority=5),
        },
    )


def _default_events() -> DomainConfig:
    return DomainConfig(
        ttl_seconds=EVENTS_CACHE_TTL_SECONDS,
        sources={
            "eventbrite": SourceConfig(priority=1),
            "hta_events": SourceConfig(priority=2),
            "honolulu_magazine_events": SourceConfig(priority=3),
        },
    )


# =============================================================
# MAIN CONFIGURATION
# =============================================================


@dataclass
class AppConfig:
    """
    Main application configuration.

    Constructed once at process start and handed to
    ``feeds.container.build_services``.
    """
    user_agent: str = DEFAULT_USER_AGENT
    eventbrite_api_key: Optional[str] = None
    admin_token: Optional[str] = None
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    weather: DomainConfig = field(default_factory=_default_weather)
    surf: DomainConfig = field(default_factory=_default_surf)
    tides: DomainConfig = field(default_factory=_default_tides)
    news: DomainConfig = field(default_factory=_default_news)
    events: DomainConfig = field(default_factory=_default_events)

    def domains(self) -> Dict[str, DomainConfig]:
        return {
            "weather": self.weather,
            "surf": self.surf,
            "tides": self.tides,
            "news": self.news,
            "events": self.events,
        }

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Load configuration from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ``; when omitted
                a ``.env`` file in the working directory is loaded first.
        """
        if env is None:
            load_dotenv()
            env = os.environ

        config = cls()

        if env.get("USER_AGENT"):
            config.user_agent = env["USER_AGENT"]
        config.eventbrite_api_key = env.get("EVENTBRITE_API_KEY") or None
        config.admin_token = env.get("ADMIN_TOKEN") or None
        if env.get("API_HOST"):
            config.api_host = env["API_HOST"]
        if env.get("API_PORT"):
            config.api_port = int(env["API_PORT"])
        if env.get("LOG_LEVEL"):
            config.log_level = env["LOG_LEVEL"].upper()

        for domain_name, domain in config.domains().items():
            ttl = env.get(f"{domain_name.upper()}_CACHE_TTL_SECONDS")
            if ttl:
                domain.ttl_seconds = float(ttl)

            for source_name, source in domain.sources.items():
                prefix = f"SOURCE_{source_name.upper()}_"
                enabled = env.get(prefix + "ENABLED")
                if enabled is not None:
                    source.enabled = _parse_bool(enabled, default=source.enabled)
                if env.get(prefix + "PRIORITY"):
                    source.priority = int(env[prefix + "PRIORITY"])
                if env.get(prefix + "TIMEOUT"):
                    source.timeout_seconds = float(env[prefix + "TIMEOUT"])

        logger.debug(f"Loaded configuration: {config.to_dict()}")
        return config

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary (secrets masked)."""
        return {
            "user_agent": self.user_agent,
            "eventbrite_api_key": "***" if self.eventbrite_api_key else None,
            "admin_token": "***" if self.admin_token else None,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "log_level": self.log_level,
            "domains": {name: d.to_dict() for name, d in self.domains().items()},
        }


def _parse_bool(value: str, default: bool) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning(f"Unrecognized boolean value '{value}', keeping {default}")
    return default
