"""
Data Sources - Record Merger.

============================================================
MERGE PIPELINE
============================================================

    AdapterResult[] (priority order)
        │
        ▼ flatten SUCCESS records, keep failures' ErrorInfo
        ▼ dedup by identity_key (first seen wins)
        ▼ score = base score + policy points
        ▼ min_score / record filter
        ▼ sort: score desc, timestamp, first-seen order
        │
        ▼
    DomainRecord[]

Merge is a pure function of its inputs and the reference time.
It never substitutes fallback data: all-failed input yields [].

============================================================
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from core.clock import ClockProtocol, SystemClock
from data_sources.models import AdapterResult, DomainRecord, ErrorInfo
from data_sources.scoring import EMPTY_POLICY, ScoringContext, ScoringPolicy


logger = logging.getLogger(__name__)


RecordFilter = Callable[[DomainRecord], bool]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _timestamp_value(record: DomainRecord) -> float:
    ts = record.timestamp
    if ts is None:
        return _EPOCH.timestamp()
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


class RecordMerger:
    """
    Deduplicates, scores, filters and orders records from several adapters.

    Args:
        policy: Scoring rule table for the domain
        min_score: Drop records scoring below this value
        record_filter: Extra predicate; records for which it is False are dropped
        newest_first: Recency tie-break direction (False = soonest first)
        clock: Supplies the default reference time
    """

    def __init__(
        self,
        policy: ScoringPolicy = EMPTY_POLICY,
        min_score: Optional[float] = None,
        record_filter: Optional[RecordFilter] = None,
        newest_first: bool = True,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self.policy = policy
        self.min_score = min_score
        self.record_filter = record_filter
        self.newest_first = newest_first
        self._clock = clock or SystemClock()

    def merge(
        self,
        results: Sequence[AdapterResult],
        reference_time: Optional[datetime] = None,
    ) -> list[DomainRecord]:
        """Merge adapter results given in priority order."""
        context = ScoringContext(reference_time=reference_time or self._clock.now())

        seen: dict[str, int] = {}
        unique: list[DomainRecord] = []
        duplicates = 0

        for result in results:
            if not result.ok:
                continue
            for record in result.records:
                if record.identity_key in seen:
                    duplicates += 1
                    continue
                seen[record.identity_key] = len(unique)
                unique.append(record)

        scored: list[tuple[int, DomainRecord]] = []
        for order, record in enumerate(unique):
            final = self.policy.score(record, context)
            if self.min_score is not None and final < self.min_score:
                continue
            if self.record_filter is not None and not self.record_filter(record):
                continue
            scored.append((order, replace(record, score=final)))

        direction = -1 if self.newest_first else 1
        scored.sort(key=lambda item: (
            -item[1].score,
            direction * _timestamp_value(item[1]),
            item[0],
        ))

        merged = [record for _, record in scored]
        logger.debug(
            f"Merged {len(unique) + duplicates} records: "
            f"{duplicates} duplicates, {len(unique) - len(merged)} filtered, {len(merged)} kept"
        )
        return merged

    @staticmethod
    def failures(results: Sequence[AdapterResult]) -> list[ErrorInfo]:
        """ErrorInfo of every failed adapter, in priority order."""
        return [r.error for r in results if not r.ok and r.error is not None]
