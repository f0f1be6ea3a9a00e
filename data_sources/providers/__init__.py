"""
Providers package - Upstream source implementations.
"""

from data_sources.providers.events import EVENT_PAGES, EventbriteSource, EventPage, JsonLdEventSource
from data_sources.providers.noaa_tides import NOAATideSource
from data_sources.providers.noaa_weather import NOAAWeatherSource
from data_sources.providers.open_meteo import OpenMeteoMarineSource, OpenMeteoWeatherSource
from data_sources.providers.rss_news import NEWS_FEEDS, RSSFeed, RSSNewsSource
from data_sources.providers.surfline import SurflineSurfSource


__all__ = [
    "EVENT_PAGES",
    "EventPage",
    "EventbriteSource",
    "JsonLdEventSource",
    "NEWS_FEEDS",
    "RSSFeed",
    "NOAATideSource",
    "NOAAWeatherSource",
    "OpenMeteoMarineSource",
    "OpenMeteoWeatherSource",
    "RSSNewsSource",
    "SurflineSurfSource",
]
