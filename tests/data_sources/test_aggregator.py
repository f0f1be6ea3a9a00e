"""
Tests for the Aggregator.

Tests cover:
- Cache hit short-circuits the fan-out
- Partial success merge with failure diagnostics
- Fallback chain: stale entry, then static default (never cached)
- get() never raises, even for adapters that escape their guard
- Per-key request coalescing
- Fan-out deadline
"""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeAdapter, make_record
from data_sources.aggregator import Aggregator
from data_sources.cache import InMemoryTTLCache
from data_sources.exceptions import FetchError
from data_sources.merger import RecordMerger
from data_sources.models import ErrorKind, QueryParams, ResultOrigin
from data_sources.registry import AdapterRegistry


DEFAULT = [make_record("default", "fallback")]


def build(clock, *adapters, fallback=lambda query: list(DEFAULT), ttl=60, grace=0.1):
    registry = AdapterRegistry("weather")
    for priority, adapter in enumerate(adapters):
        registry.register(adapter, priority=priority)
    cache = InMemoryTTLCache(clock=clock)
    aggregator = Aggregator(
        domain="weather",
        registry=registry,
        cache=cache,
        merger=RecordMerger(clock=clock),
        fallback=fallback,
        ttl_seconds=ttl,
        clock=clock,
        grace_seconds=grace,
    )
    return aggregator, cache


QUERY = QueryParams()


# =============================================================
# TEST: Fresh path
# =============================================================

class TestAggregatorFreshPath:
    """Cache miss and hit."""

    @pytest.mark.asyncio
    async def test_miss_fans_out_and_caches(self, clock):
        """A miss fetches, merges and writes the cache."""
        adapter = FakeAdapter("a", records=[make_record("x")])
        aggregator, cache = build(clock, adapter)

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.FRESH
        assert [r.identity_key for r in result.records] == ["x"]
        assert cache.get("weather:k") is not None
        assert result.is_degraded is False

    @pytest.mark.asyncio
    async def test_hit_skips_adapters(self, clock):
        """A fresh entry is returned without calling any adapter."""
        adapter = FakeAdapter("a", records=[make_record("x")])
        aggregator, _ = build(clock, adapter)

        await aggregator.get("weather:k", QUERY)
        clock.advance(30)
        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.CACHE
        assert adapter.calls == 1
        assert aggregator.fanout_count == 1

    @pytest.mark.asyncio
    async def test_expired_entry_refetches(self, clock):
        """After the TTL the adapters are called again."""
        adapter = FakeAdapter("a", records=[make_record("x")])
        aggregator, _ = build(clock, adapter, ttl=60)

        await aggregator.get("weather:k", QUERY)
        clock.advance(61)
        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.FRESH
        assert adapter.calls == 2

    @pytest.mark.asyncio
    async def test_partial_success(self, clock):
        """1 of 3 adapters succeeds: its 2 records, 2 failures reported."""
        aggregator, _ = build(
            clock,
            FakeAdapter("a", error=FetchError("HTTP 500", status_code=500)),
            FakeAdapter("b", records=[make_record("b1", "b"), make_record("b2", "b")]),
            FakeAdapter("c", error=ValueError("garbage")),
        )

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.FRESH
        assert {r.identity_key for r in result.records} == {"b1", "b2"}
        assert [(f.source_name, f.kind) for f in result.failures] == [
            ("a", ErrorKind.HTTP),
            ("c", ErrorKind.UNEXPECTED),
        ]
        assert result.is_degraded is True

    @pytest.mark.asyncio
    async def test_disabled_adapter_not_called(self, clock):
        """Only enabled adapters take part in the fan-out."""
        on = FakeAdapter("on", records=[make_record("x")])
        off = FakeAdapter("off", records=[make_record("y")])
        aggregator, _ = build(clock, on, off)
        aggregator.registry.set_enabled("off", False)

        records = await aggregator.get("weather:k", QUERY)

        assert [r.identity_key for r in records] == ["x"]
        assert off.calls == 0


# =============================================================
# TEST: Fallback
# =============================================================

class TestAggregatorFallback:
    """Total failure handling."""

    @pytest.mark.asyncio
    async def test_static_default_when_nothing_cached(self, clock):
        """All adapters fail and no entry exists: the static default."""
        aggregator, cache = build(
            clock,
            FakeAdapter("a", error=FetchError("down")),
            FakeAdapter("b", error=RuntimeError("down")),
        )

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.FALLBACK
        assert [r.identity_key for r in result.records] == ["default"]
        assert len(result.failures) == 2

    @pytest.mark.asyncio
    async def test_static_default_is_not_cached(self, clock):
        """The next call fans out again instead of serving the default."""
        adapter = FakeAdapter("a", error=FetchError("down"))
        aggregator, cache = build(clock, adapter)

        await aggregator.get("weather:k", QUERY)
        assert cache.get_stale("weather:k") is None

        adapter.error = None
        adapter.records = [make_record("real")]
        records = await aggregator.get("weather:k", QUERY)

        assert [r.identity_key for r in records] == ["real"]
        assert adapter.calls == 2

    @pytest.mark.asyncio
    async def test_stale_preferred_over_default(self, clock):
        """An expired entry beats the static default."""
        adapter = FakeAdapter("a", records=[make_record("old")])
        aggregator, _ = build(clock, adapter, ttl=60)

        await aggregator.get("weather:k", QUERY)
        clock.advance(120)
        adapter.error = FetchError("down")

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.STALE
        assert [r.identity_key for r in result.records] == ["old"]
        assert result.is_degraded is True

    @pytest.mark.asyncio
    async def test_empty_success_falls_back(self, clock):
        """Successful but empty responses still count as no data."""
        aggregator, _ = build(clock, FakeAdapter("a", records=[]))
        result = await aggregator.get_with_metadata("weather:k", QUERY)
        assert result.origin == ResultOrigin.FALLBACK
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_no_enabled_adapters(self, clock):
        """An empty registry goes straight to the default."""
        aggregator, _ = build(clock)
        result = await aggregator.get_with_metadata("weather:k", QUERY)
        assert result.origin == ResultOrigin.FALLBACK
        assert aggregator.fanout_count == 0

    @pytest.mark.asyncio
    async def test_failing_fallback_factory_yields_empty(self, clock):
        """A broken fallback factory never escapes get()."""
        def broken(query):
            raise RuntimeError("no default")

        aggregator, _ = build(clock, FakeAdapter("a", error=FetchError("down")), fallback=broken)
        result = await aggregator.get_with_metadata("weather:k", QUERY)
        assert result.origin == ResultOrigin.FALLBACK
        assert result.records == []

    @pytest.mark.asyncio
    async def test_exception_escaping_fetch_is_contained(self, clock):
        """Even an adapter whose fetch() itself raises cannot break get()."""
        adapter = FakeAdapter("a")
        adapter.fetch = AsyncMock(side_effect=RuntimeError("escaped"))
        aggregator, _ = build(clock, adapter, FakeAdapter("b", records=[make_record("b1")]))

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert [r.identity_key for r in result.records] == ["b1"]
        assert result.failures[0].kind == ErrorKind.UNEXPECTED
        assert result.failures[0].source_name == "a"

    @pytest.mark.asyncio
    async def test_adapter_cancelling_itself_is_contained(self, clock):
        """A fetch that ends in its own CancelledError is a failure, not a crash."""
        aggregator, _ = build(
            clock,
            FakeAdapter("cancelled", error=asyncio.CancelledError()),
            FakeAdapter("b", records=[make_record("b1")]),
        )

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert [r.identity_key for r in result.records] == ["b1"]
        assert result.origin == ResultOrigin.FRESH
        assert [(f.source_name, f.kind) for f in result.failures] == [("cancelled", ErrorKind.UNEXPECTED)]

    @pytest.mark.asyncio
    async def test_total_failure_marker_attached(self, clock):
        """Falling back records which sources were attempted."""
        aggregator, _ = build(
            clock,
            FakeAdapter("a", error=FetchError("down")),
            FakeAdapter("b", error=RuntimeError("boom")),
        )

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.FALLBACK
        assert result.total_failure.cache_key == "weather:k"
        assert result.total_failure.attempted_sources == ["a", "b"]
        assert result.to_dict()["total_failure"]["attempted_sources"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_fresh_result_has_no_total_failure(self, clock):
        """A successful fan-out carries no marker."""
        aggregator, _ = build(clock, FakeAdapter("a", records=[make_record("x")]))
        result = await aggregator.get_with_metadata("weather:k", QUERY)
        assert result.total_failure is None

    @pytest.mark.asyncio
    async def test_cache_error_routes_to_fallback(self, clock):
        """Internal errors become a fallback result, not an exception."""
        aggregator, _ = build(clock, FakeAdapter("a", records=[make_record("x")]))
        aggregator.cache = MagicMock()
        aggregator.cache.get.side_effect = RuntimeError("cache offline")
        aggregator.cache.get_stale.return_value = None

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert result.origin == ResultOrigin.FALLBACK
        assert result.failures[0].kind == ErrorKind.UNEXPECTED


# =============================================================
# TEST: Concurrency
# =============================================================

class TestAggregatorConcurrency:
    """Coalescing and deadlines."""

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_fanout(self, clock):
        """Two overlapping gets for one key trigger one fan-out."""
        adapter = FakeAdapter("a", records=[make_record("x")], delay=0.05)
        aggregator, _ = build(clock, adapter)

        first, second = await asyncio.gather(
            aggregator.get_with_metadata("weather:k", QUERY),
            aggregator.get_with_metadata("weather:k", QUERY),
        )

        assert aggregator.fanout_count == 1
        assert adapter.calls == 1
        assert first.records == second.records
        assert first.records is not second.records

    @pytest.mark.asyncio
    async def test_different_keys_fan_out_separately(self, clock):
        """Coalescing is per key."""
        adapter = FakeAdapter("a", records=[make_record("x")], delay=0.01)
        aggregator, _ = build(clock, adapter)

        await asyncio.gather(
            aggregator.get("weather:one", QUERY),
            aggregator.get("weather:two", QUERY),
        )

        assert aggregator.fanout_count == 2

    @pytest.mark.asyncio
    async def test_slow_adapter_times_out(self, clock):
        """An adapter exceeding its timeout is reported as TIMEOUT."""
        aggregator, _ = build(
            clock,
            FakeAdapter("slow", records=[make_record("late")], delay=1.0, timeout=0.05),
            FakeAdapter("fast", records=[make_record("quick")]),
        )

        result = await aggregator.get_with_metadata("weather:k", QUERY)

        assert [r.identity_key for r in result.records] == ["quick"]
        assert [(f.source_name, f.kind) for f in result.failures] == [("slow", ErrorKind.TIMEOUT)]

    @pytest.mark.asyncio
    async def test_fanout_deadline_cancels_stragglers(self, clock):
        """An adapter ignoring its own timeout is cut off at timeout + grace."""

        class HangingAdapter(FakeAdapter):
            async def fetch(self, query):
                await asyncio.sleep(10)

        aggregator, _ = build(
            clock,
            HangingAdapter("hang", timeout=0.1),
            FakeAdapter("a", records=[make_record("a1")], timeout=0.1),
            grace=0.1,
        )

        started = time.monotonic()
        result = await aggregator.get_with_metadata("weather:k", QUERY)
        elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert [r.identity_key for r in result.records] == ["a1"]
        assert [(f.source_name, f.kind) for f in result.failures] == [("hang", ErrorKind.TIMEOUT)]
        assert "deadline" in result.failures[0].message

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_fanout(self, clock):
        """A waiter giving up leaves the fan-out running for the others."""
        adapter = FakeAdapter("a", records=[make_record("x")], delay=0.05)
        aggregator, cache = build(clock, adapter)

        impatient = asyncio.create_task(aggregator.get("weather:k", QUERY))
        patient = asyncio.create_task(aggregator.get("weather:k", QUERY))
        await asyncio.sleep(0.01)
        impatient.cancel()

        records = await patient
        assert [r.identity_key for r in records] == ["x"]
        assert cache.get("weather:k") is not None


# =============================================================
# TEST: Administration
# =============================================================

class TestAggregatorAdministration:
    """Invalidation."""

    @pytest.mark.asyncio
    async def test_invalidate_and_clear_cache(self, clock):
        """invalidate() drops one key, clear_cache() the whole domain."""
        aggregator, cache = build(clock, FakeAdapter("a", records=[make_record("x")]))
        await aggregator.get("weather:one", QUERY)
        await aggregator.get("weather:two", QUERY)
        cache.set("news:all", "other domain", ttl_seconds=60)

        assert aggregator.invalidate("weather:one") is True
        assert aggregator.invalidate("weather:one") is False
        assert aggregator.clear_cache() == 1
        assert cache.keys() == ["news:all"]

    def test_ttl_must_be_positive(self, clock):
        """Aggregator refuses a zero TTL."""
        with pytest.raises(ValueError):
            Aggregator("weather", AdapterRegistry("weather"), InMemoryTTLCache(clock), ttl_seconds=0)
