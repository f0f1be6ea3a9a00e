"""
Data Sources Package - Resilient aggregation layer.

Fans out to unreliable upstream sources in parallel, normalizes to a
common record type, merges / dedups / scores, caches with a TTL and
falls back to stale cache or static defaults.

Features:
- Isolated, replaceable providers behind one adapter interface
- Normalized DomainRecord output across all sources
- Partial failure still merges; total failure falls back
- At most one in-flight fan-out per cache key
- Health monitoring with incident logging

Quick Start:
    from data_sources import (
        AdapterRegistry,
        Aggregator,
        InMemoryTTLCache,
        QueryParams,
        RecordMerger,
    )
    from data_sources.payloads import Island
    from data_sources.providers import NOAAWeatherSource, OpenMeteoWeatherSource

    async def main():
        registry = AdapterRegistry("weather")
        registry.register(NOAAWeatherSource(), priority=1)
        registry.register(OpenMeteoWeatherSource(), priority=2)

        aggregator = Aggregator(
            domain="weather",
            registry=registry,
            cache=InMemoryTTLCache(),
            merger=RecordMerger(),
            ttl_seconds=900,
        )
        records = await aggregator.get("weather:oahu", QueryParams(island=Island.OAHU))

Adding New Providers:
    1. Create class extending BaseSourceAdapter
    2. Implement: name, domain, fetch_raw(), normalize(), metadata()
    3. Register with the domain's AdapterRegistry
    4. No changes needed to the aggregator, merger or feeds
"""

from data_sources.aggregator import Aggregator
from data_sources.base import BaseSourceAdapter
from data_sources.cache import CacheBackend, CacheEntry, InMemoryTTLCache
from data_sources.exceptions import (
    AdapterTimeoutError,
    ConfigurationError,
    DataSourceError,
    FetchError,
    NormalizationError,
    TotalSourceFailure,
)
from data_sources.merger import RecordMerger
from data_sources.models import (
    AdapterResult,
    AdapterStatus,
    AggregationResult,
    DomainRecord,
    ErrorInfo,
    ErrorKind,
    QueryParams,
    ResultOrigin,
    SourceHealth,
    SourceIncident,
    SourceMetadata,
    SourceStatus,
)
from data_sources.registry import AdapterRegistry
from data_sources.scoring import CountingRule, ScoringContext, ScoringPolicy, ScoringRule


__version__ = "1.0.0"

__all__ = [
    # Orchestration
    "Aggregator",
    "AdapterRegistry",
    "RecordMerger",
    # Base
    "BaseSourceAdapter",
    # Cache
    "CacheBackend",
    "CacheEntry",
    "InMemoryTTLCache",
    # Scoring
    "CountingRule",
    "ScoringContext",
    "ScoringPolicy",
    "ScoringRule",
    # Exceptions
    "AdapterTimeoutError",
    "ConfigurationError",
    "DataSourceError",
    "FetchError",
    "NormalizationError",
    "TotalSourceFailure",
    # Models
    "AdapterResult",
    "AdapterStatus",
    "AggregationResult",
    "DomainRecord",
    "ErrorInfo",
    "ErrorKind",
    "QueryParams",
    "ResultOrigin",
    "SourceHealth",
    "SourceIncident",
    "SourceMetadata",
    "SourceStatus",
]
