"""
Briefing - Generator.

============================================================
CONTENT OF ONE ISLAND BRIEFING
============================================================
1. Greeting by Hawaii hour (<12 morning, <17 afternoon, else Aloha)
2. Current weather snapshot
3. Top surf spot: quality (excellent 10, good 7, fair 4, poor 1)
   plus maximum wave height; earlier spot wins ties
4. Top 3 news stories
5. Up to 3 events starting within a day
6. Approximate sunset (18:45 HST)

All four feeds are queried concurrently. Feeds never raise, so a
briefing is always produced; degraded is set when any section was
served from stale or fallback data.
============================================================
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from briefing.models import DailyBriefing
from core.clock import ClockProtocol, SystemClock
from data_sources.payloads import Island, SurfSpotReading, WaveQuality, WeatherSnapshot
from feeds.events import EventsFeed
from feeds.news import NewsFeed
from feeds.surf import SurfFeed
from feeds.weather import WeatherFeed


logger = logging.getLogger(__name__)


SURF_QUALITY_SCORES = {
    WaveQuality.EXCELLENT: 10,
    WaveQuality.GOOD: 7,
    WaveQuality.FAIR: 4,
    WaveQuality.POOR: 1,
}

SUNSET_HOUR = 18
SUNSET_MINUTE = 45
NEWS_POOL = 5
TOP_NEWS = 3
TODAYS_EVENTS = 3


def surf_score(reading: SurfSpotReading) -> float:
    return SURF_QUALITY_SCORES.get(reading.quality, 1) + reading.wave_max_ft


def pick_top_spot(readings: list[SurfSpotReading]) -> Optional[SurfSpotReading]:
    best = None
    for reading in readings:
        if best is None or surf_score(reading) > surf_score(best):
            best = reading
    return best


def greeting_for(local: datetime) -> str:
    if local.hour < 12:
        return "Good morning"
    if local.hour < 17:
        return "Good afternoon"
    return "Aloha"


def approximate_sunset(local: datetime) -> datetime:
    return local.replace(hour=SUNSET_HOUR, minute=SUNSET_MINUTE, second=0, microsecond=0)


class BriefingGenerator:
    """Assembles a DailyBriefing for one island from the domain feeds."""

    def __init__(
        self,
        weather: WeatherFeed,
        surf: SurfFeed,
        news: NewsFeed,
        events: EventsFeed,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self.weather = weather
        self.surf = surf
        self.news = news
        self.events = events
        self._clock = clock or SystemClock()

    async def generate(self, island: Island) -> DailyBriefing:
        weather, report, news, events = await asyncio.gather(
            self.weather.get_weather(island),
            self.surf.get_report(island),
            self.news.get_latest(limit=NEWS_POOL),
            self.events.get_events(island=island, days_ahead=1, limit=TODAYS_EVENTS),
        )

        snapshot = next(
            (r.payload for r in weather.records if isinstance(r.payload, WeatherSnapshot)),
            None,
        )
        if snapshot is None:
            snapshot = await self.weather.get_snapshot(island)

        local = self._clock.hawaii_now()
        degraded = any(r.is_degraded for r in (weather, news, events)) or report.is_degraded

        briefing = DailyBriefing(
            island=island,
            greeting=greeting_for(local),
            generated_at=self._clock.now(),
            weather=snapshot,
            top_spot=pick_top_spot(report.readings),
            top_news=[r.payload for r in news.records[:TOP_NEWS]],
            events=[r.payload for r in events.records],
            sunset=approximate_sunset(local),
            degraded=degraded,
        )
        logger.info(
            f"Generated {island.value} briefing: {len(briefing.top_news)} stories, "
            f"{len(briefing.events)} events{' (degraded)' if degraded else ''}"
        )
        return briefing
