"""
Data Sources - Aggregator.

============================================================
LIFECYCLE OF ONE get(key, query)
============================================================

    CHECK_CACHE ──hit──────────────────────────────▶ RETURN (cache)
        │ miss
        ▼
    FANOUT (all enabled adapters, one global deadline)
        │
        ▼
    MERGE ──non-empty──▶ WRITE_CACHE ──────────────▶ RETURN (fresh)
        │ empty
        ▼
    FALLBACK: stale entry ─────────────────────────▶ RETURN (stale)
              else static default (not cached) ────▶ RETURN (fallback)

============================================================
GUARANTEES
============================================================
- get() never raises; internal errors route to FALLBACK
- At most one in-flight fan-out per cache key; concurrent
  callers share its result
- Stragglers past the deadline are cancelled and reported
  as TIMEOUT failures

============================================================
"""

import asyncio
import logging
from typing import Callable, Optional

from core.clock import ClockProtocol, SystemClock
from data_sources.base import error_info_from_exception
from data_sources.cache import CacheBackend
from data_sources.exceptions import TotalSourceFailure
from data_sources.merger import RecordMerger
from data_sources.models import (
    AdapterResult,
    AggregationResult,
    DomainRecord,
    ErrorInfo,
    ErrorKind,
    QueryParams,
    ResultOrigin,
)
from data_sources.registry import AdapterRegistry


logger = logging.getLogger(__name__)


FallbackFactory = Callable[[QueryParams], list[DomainRecord]]


class Aggregator:
    """
    Cache-then-fanout-then-fallback orchestration for one domain.

    Usage:
        aggregator = Aggregator(
            domain="weather",
            registry=registry,
            cache=cache,
            merger=RecordMerger(policy),
            fallback=default_weather,
            ttl_seconds=900,
        )
        records = await aggregator.get("weather:oahu", QueryParams(island=Island.OAHU))
    """

    DEFAULT_GRACE_SECONDS = 0.5

    def __init__(
        self,
        domain: str,
        registry: AdapterRegistry,
        cache: CacheBackend,
        merger: Optional[RecordMerger] = None,
        fallback: Optional[FallbackFactory] = None,
        ttl_seconds: float = 900,
        clock: Optional[ClockProtocol] = None,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.domain = domain
        self.registry = registry
        self.cache = cache
        self.merger = merger or RecordMerger(clock=clock)
        self.fallback = fallback
        self.ttl_seconds = ttl_seconds
        self._clock = clock or SystemClock()
        self._grace = grace_seconds
        self._inflight: dict[str, asyncio.Task] = {}
        self._fanout_count = 0

    @property
    def fanout_count(self) -> int:
        """Number of fan-outs started since construction."""
        return self._fanout_count

    def key_for(self, query: QueryParams) -> str:
        """Default cache key for a query."""
        return f"{self.domain}:{query.cache_suffix()}"

    async def get(self, key: str, query: QueryParams) -> list[DomainRecord]:
        """Merged records for key; never raises."""
        result = await self.get_with_metadata(key, query)
        return result.records

    async def get_with_metadata(self, key: str, query: QueryParams) -> AggregationResult:
        """Merged records plus origin and failure diagnostics; never raises."""
        try:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"[{self.domain}] Cache hit for '{key}'")
                entry = self.cache.entry(key)
                return AggregationResult(
                    key=key,
                    records=list(cached),
                    origin=ResultOrigin.CACHE,
                    generated_at=entry.inserted_at if entry else self._clock.now(),
                )

            task = self._inflight.get(key)
            if task is None:
                task = asyncio.create_task(self._refresh(key, query))
                self._inflight[key] = task
                task.add_done_callback(lambda t, k=key: self._forget(k, t))
            else:
                logger.debug(f"[{self.domain}] Joining in-flight fan-out for '{key}'")

            result = await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"[{self.domain}] Aggregation for '{key}' failed: {e}")
            return self._fall_back(key, query, [
                ErrorInfo(kind=ErrorKind.UNEXPECTED, message=str(e)),
            ])

        return AggregationResult(
            key=result.key,
            records=list(result.records),
            origin=result.origin,
            generated_at=result.generated_at,
            failures=list(result.failures),
            total_failure=result.total_failure,
        )

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _refresh(self, key: str, query: QueryParams) -> AggregationResult:
        results = await self._fan_out(query)
        failures = self.merger.failures(results)
        records = self.merger.merge(results)

        if records:
            self.cache.set(key, tuple(records), self.ttl_seconds)
            logger.info(
                f"[{self.domain}] Refreshed '{key}': {len(records)} records, "
                f"{len(results) - len(failures)}/{len(results)} sources ok"
            )
            return AggregationResult(
                key=key,
                records=records,
                origin=ResultOrigin.FRESH,
                generated_at=self._clock.now(),
                failures=failures,
            )

        return self._fall_back(key, query, failures)

    async def _fan_out(self, query: QueryParams) -> list[AdapterResult]:
        adapters = self.registry.enabled_adapters()
        if not adapters:
            logger.warning(f"[{self.domain}] No enabled sources")
            return []

        self._fanout_count += 1
        deadline = max(adapter.timeout for adapter in adapters) + self._grace
        tasks = [asyncio.create_task(adapter.fetch(query)) for adapter in adapters]

        try:
            done, pending = await asyncio.wait(tasks, timeout=deadline)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        results: list[AdapterResult] = []
        for adapter, task in zip(adapters, tasks):
            if task in pending:
                logger.warning(f"[{adapter.name}] Cancelled after {deadline:.1f}s fan-out deadline")
                results.append(AdapterResult.failure(
                    adapter.name,
                    ErrorInfo(
                        kind=ErrorKind.TIMEOUT,
                        message=f"Exceeded fan-out deadline of {deadline:.1f}s",
                        source_name=adapter.name,
                    ),
                ))
                continue

            # fetch() ended in its own CancelledError; task.exception() would re-raise it
            if task.cancelled():
                logger.warning(f"[{adapter.name}] Fetch was cancelled")
                results.append(AdapterResult.failure(
                    adapter.name,
                    ErrorInfo(
                        kind=ErrorKind.UNEXPECTED,
                        message="Fetch was cancelled",
                        source_name=adapter.name,
                    ),
                ))
                continue

            error = task.exception()
            if error is not None:
                logger.warning(f"[{adapter.name}] Raised out of fetch(): {error}")
                results.append(AdapterResult.failure(
                    adapter.name,
                    error_info_from_exception(error, adapter.name),
                ))
                continue

            result = task.result()
            if not result.ok:
                logger.warning(f"[{adapter.name}] Failed: {result.error.message if result.error else 'unknown'}")
            results.append(result)

        return results

    def _fall_back(self, key: str, query: QueryParams, failures: list[ErrorInfo]) -> AggregationResult:
        marker = TotalSourceFailure(
            message=f"No records from any {self.domain} source",
            cache_key=key,
            attempted_sources=[f.source_name for f in failures if f.source_name],
        )

        stale = self.cache.get_stale(key)
        if stale is not None:
            logger.error(f"[{self.domain}] {marker}; serving stale entry")
            entry = self.cache.entry(key)
            return AggregationResult(
                key=key,
                records=list(stale),
                origin=ResultOrigin.STALE,
                generated_at=entry.inserted_at if entry else self._clock.now(),
                failures=failures,
                total_failure=marker,
            )

        logger.error(f"[{self.domain}] {marker}; serving static default")
        records: list[DomainRecord] = []
        if self.fallback is not None:
            try:
                records = list(self.fallback(query))
            except Exception as e:
                logger.exception(f"[{self.domain}] Fallback factory failed: {e}")

        return AggregationResult(
            key=key,
            records=records,
            origin=ResultOrigin.FALLBACK,
            generated_at=self._clock.now(),
            failures=failures,
            total_failure=marker,
        )

    def invalidate(self, key: str) -> bool:
        """Drop one cached key; returns whether it existed."""
        removed = self.cache.delete(key)
        if removed:
            logger.info(f"[{self.domain}] Invalidated '{key}'")
        return removed

    def clear_cache(self) -> int:
        """Drop every cached key belonging to this domain."""
        return self.cache.clear_prefix(f"{self.domain}:")
