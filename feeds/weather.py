"""
Feeds - Weather.

One snapshot per island. NOAA is primary, Open-Meteo is the backup;
both emit the same identity key so the merger keeps the higher
priority snapshot.
"""

import logging
from typing import Optional

from core.clock import ClockProtocol, SystemClock
from data_sources.aggregator import Aggregator, FallbackFactory
from data_sources.merger import RecordMerger
from data_sources.models import AggregationResult, DomainRecord, QueryParams
from data_sources.normalizers.weather import default_weather_snapshot, weather_identity
from data_sources.payloads import Island, WeatherSnapshot
from data_sources.scoring import ScoringPolicy, ScoringRule


logger = logging.getLogger(__name__)


WEATHER_POLICY = ScoringPolicy([
    ScoringRule("has_alerts", 1, lambda record, ctx: bool(record.payload.alerts)),
])


def weather_merger(clock: Optional[ClockProtocol] = None) -> RecordMerger:
    return RecordMerger(policy=WEATHER_POLICY, clock=clock)


def weather_fallback(clock: ClockProtocol) -> FallbackFactory:
    def factory(query: QueryParams) -> list[DomainRecord]:
        island = query.island or Island.OAHU
        snapshot = default_weather_snapshot(island, clock.now())
        return [DomainRecord(
            identity_key=weather_identity(island),
            payload=snapshot,
            source_name="fallback",
            timestamp=snapshot.observed_at,
        )]

    return factory


class WeatherFeed:
    """Current conditions, forecast and alerts per island."""

    def __init__(self, aggregator: Aggregator, clock: Optional[ClockProtocol] = None) -> None:
        self.aggregator = aggregator
        self._clock = clock or SystemClock()

    @staticmethod
    def cache_key(island: Island) -> str:
        return f"weather:{island.value}"

    async def get_weather(self, island: Island = Island.OAHU) -> AggregationResult:
        return await self.aggregator.get_with_metadata(
            self.cache_key(island),
            QueryParams(island=island),
        )

    async def get_snapshot(self, island: Island = Island.OAHU) -> WeatherSnapshot:
        """The island snapshot; defaults when every source and the cache are empty."""
        result = await self.get_weather(island)
        for record in result.records:
            if isinstance(record.payload, WeatherSnapshot):
                return record.payload
        logger.warning(f"No weather snapshot for {island.value}, using defaults")
        return default_weather_snapshot(island, self._clock.now())
