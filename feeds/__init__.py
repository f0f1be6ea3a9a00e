"""
Feeds package - Domain facades over the aggregation layer.

Each feed wraps one Aggregator (surf wraps two: spots and tides) with
its scoring policy, static fallback and read-time filters. Use
``feeds.container.build_services`` to wire them from configuration.
"""

from feeds.events import EventsFeed
from feeds.news import NewsFeed
from feeds.surf import SurfFeed, SurfReport
from feeds.weather import WeatherFeed


__all__ = [
    "EventsFeed",
    "NewsFeed",
    "SurfFeed",
    "SurfReport",
    "WeatherFeed",
]
