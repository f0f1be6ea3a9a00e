"""
Feeds - Surf & Tides.

============================================================
SURF RANKING
============================================================

    quality   excellent 4 | good 3 | fair 2 | poor 1
    + 1 point per foot of maximum wave height

Spots from Surfline and Open-Meteo share identity keys
(surf:<spot_id>), so the primary reading wins.

Tides are a separate domain ordered soonest first.
============================================================
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from core.clock import ClockProtocol, SystemClock
from core.constants import MAIN_SURF_ISLANDS
from data_sources.aggregator import Aggregator, FallbackFactory
from data_sources.merger import RecordMerger
from data_sources.models import AggregationResult, DomainRecord, QueryParams
from data_sources.normalizers.surf import fallback_surf_records
from data_sources.normalizers.tides import synthetic_tides
from data_sources.payloads import Island, SurfSpotReading, TideEvent, WaveQuality
from data_sources.scoring import CountingRule, ScoringPolicy, ScoringRule


logger = logging.getLogger(__name__)


QUALITY_POINTS = {
    WaveQuality.EXCELLENT: 4,
    WaveQuality.GOOD: 3,
    WaveQuality.FAIR: 2,
    WaveQuality.POOR: 1,
}


def _quality_rule(quality: WaveQuality) -> ScoringRule:
    return ScoringRule(
        f"quality_{quality.value}",
        QUALITY_POINTS[quality],
        lambda record, ctx: record.payload.quality == quality,
    )


SURF_POLICY = ScoringPolicy(
    [_quality_rule(q) for q in QUALITY_POINTS]
    + [CountingRule("wave_height_ft", 1, lambda record: record.payload.wave_max_ft)]
)


def surf_merger(clock: Optional[ClockProtocol] = None) -> RecordMerger:
    return RecordMerger(policy=SURF_POLICY, clock=clock)


def tides_merger(clock: Optional[ClockProtocol] = None) -> RecordMerger:
    return RecordMerger(newest_first=False, clock=clock)


def surf_fallback(clock: ClockProtocol) -> FallbackFactory:
    def factory(query: QueryParams) -> list[DomainRecord]:
        return fallback_surf_records(query.island, "fallback", clock.now())

    return factory


def tides_fallback(clock: ClockProtocol) -> FallbackFactory:
    def factory(query: QueryParams) -> list[DomainRecord]:
        return synthetic_tides(query.island or Island.OAHU, clock.now(), "fallback")

    return factory


@dataclass
class SurfReport:
    """Spot readings and tide predictions for one island."""
    island: Island
    spots: AggregationResult
    tides: AggregationResult

    @property
    def readings(self) -> list[SurfSpotReading]:
        return [r.payload for r in self.spots.records]

    @property
    def tide_events(self) -> list[TideEvent]:
        return [r.payload for r in self.tides.records]

    @property
    def is_degraded(self) -> bool:
        return self.spots.is_degraded or self.tides.is_degraded

    def to_dict(self) -> dict[str, Any]:
        return {
            "island": self.island.value,
            "spots": [
                {**r.payload.to_dict(), "score": r.score}
                for r in self.spots.records
            ],
            "tides": [t.to_dict() for t in self.tide_events],
        }


class SurfFeed:
    """
    Surf spot readings and tide predictions.

    Usage:
        feed = SurfFeed(surf_aggregator, tides_aggregator)
        report = await feed.get_report(Island.OAHU)
        best = await feed.get_top_spots(limit=3)
    """

    def __init__(
        self,
        surf: Aggregator,
        tides: Aggregator,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self.surf = surf
        self.tides = tides
        self._clock = clock or SystemClock()

    async def get_spots(self, island: Island = Island.OAHU) -> AggregationResult:
        return await self.surf.get_with_metadata(f"surf:{island.value}", QueryParams(island=island))

    async def get_tides(self, island: Island = Island.OAHU) -> AggregationResult:
        return await self.tides.get_with_metadata(f"tides:{island.value}", QueryParams(island=island))

    async def get_report(self, island: Island = Island.OAHU) -> SurfReport:
        spots, tides = await asyncio.gather(self.get_spots(island), self.get_tides(island))
        return SurfReport(island=island, spots=spots, tides=tides)

    async def get_top_spots(self, island: Optional[Island] = None, limit: int = 5) -> list[DomainRecord]:
        """Best scoring spots on one island, or across the main surf islands."""
        if limit < 1:
            raise ValueError("limit must be positive")

        islands = [island] if island else [Island(name) for name in MAIN_SURF_ISLANDS]
        results = await asyncio.gather(*(self.get_spots(i) for i in islands))

        records = [record for result in results for record in result.records]
        records.sort(key=lambda r: -r.score)
        return records[:limit]

    def next_tide(self, tides: AggregationResult) -> Optional[TideEvent]:
        """First tide of an aggregation result after now."""
        now = self._clock.now()
        upcoming = sorted(
            (r.payload for r in tides.records if r.payload.time > now),
            key=lambda event: event.time,
        )
        return upcoming[0] if upcoming else None

    async def get_next_tide(self, island: Island = Island.OAHU) -> Optional[TideEvent]:
        """First tide after now, or None when no prediction lies ahead."""
        return self.next_tide(await self.get_tides(island))
