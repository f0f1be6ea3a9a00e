"""
Data Source Models - Records, adapter results and source health.

Provides the typed contract between adapters, the merger, the cache
and the aggregator.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

from data_sources.payloads import Island

if TYPE_CHECKING:
    from data_sources.exceptions import TotalSourceFailure


T = TypeVar("T")


class SourceStatus(Enum):
    """Health status of a data source."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class AdapterStatus(Enum):
    """Outcome of one adapter call."""
    SUCCESS = "success"
    FAILURE = "failure"


class ErrorKind(Enum):
    """Category of an adapter failure."""
    TIMEOUT = "timeout"
    HTTP = "http"
    MALFORMED = "malformed"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ResultOrigin(Enum):
    """Where the records handed to a caller came from."""
    CACHE = "cache"
    FRESH = "fresh"
    STALE = "stale"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ErrorInfo:
    """Failure description returned (never raised) by an adapter."""
    kind: ErrorKind
    message: str
    source_name: Optional[str] = None
    status_code: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "source_name": self.source_name,
            "status_code": self.status_code,
        }


@dataclass(frozen=True)
class DomainRecord(Generic[T]):
    """
    Normalized, source-agnostic unit of data.

    identity_key is derived from stable payload fields only, so the same
    real-world item reported by two sources collapses to one record.
    timestamp is the item's own time (published, starts, observed) and is
    used for the recency tie-break; it is never the fetch time.
    """
    identity_key: str
    payload: T
    source_name: str
    score: float = 0.0
    timestamp: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        payload = self.payload.to_dict() if hasattr(self.payload, "to_dict") else self.payload
        return {
            "identity_key": self.identity_key,
            "score": self.score,
            "source_name": self.source_name,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "payload": payload,
        }


@dataclass
class AdapterResult:
    """Result of one adapter fetch; records is empty on failure."""
    status: AdapterStatus
    source_name: str
    records: list[DomainRecord] = field(default_factory=list)
    error: Optional[ErrorInfo] = None
    latency_ms: Optional[float] = None

    @classmethod
    def success(
        cls,
        source_name: str,
        records: list[DomainRecord],
        latency_ms: Optional[float] = None,
    ) -> "AdapterResult":
        return cls(
            status=AdapterStatus.SUCCESS,
            source_name=source_name,
            records=list(records),
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(
        cls,
        source_name: str,
        error: ErrorInfo,
        latency_ms: Optional[float] = None,
    ) -> "AdapterResult":
        return cls(
            status=AdapterStatus.FAILURE,
            source_name=source_name,
            records=[],
            error=error,
            latency_ms=latency_ms,
        )

    @property
    def ok(self) -> bool:
        return self.status == AdapterStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "source_name": self.source_name,
            "record_count": len(self.records),
            "error": self.error.to_dict() if self.error else None,
            "latency_ms": self.latency_ms,
        }


@dataclass(frozen=True)
class QueryParams:
    """Request parameters handed to every adapter of a domain."""
    island: Optional[Island] = None
    category: Optional[str] = None
    days_ahead: int = 7
    limit: Optional[int] = None
    search: Optional[str] = None

    def validate(self) -> None:
        """Validate request parameters."""
        if self.days_ahead < 0 or self.days_ahead > 90:
            raise ValueError("days_ahead must be between 0 and 90")
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be positive")

    def cache_suffix(self) -> str:
        """Deterministic key fragment built from every query field."""
        parts = [
            self.island.value if self.island else "all",
            self.category or "all",
            str(self.days_ahead),
            str(self.limit) if self.limit is not None else "all",
        ]
        if self.search:
            parts.append(self.search.strip().lower())
        return ":".join(parts)


@dataclass
class AggregationResult:
    """Records plus diagnostics for one Aggregator.get call."""
    key: str
    records: list[DomainRecord]
    origin: ResultOrigin
    generated_at: datetime
    failures: list[ErrorInfo] = field(default_factory=list)
    # Set when every source failed and a stale entry or default was served
    total_failure: Optional["TotalSourceFailure"] = None

    @property
    def is_degraded(self) -> bool:
        return self.origin in (ResultOrigin.STALE, ResultOrigin.FALLBACK) or bool(self.failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "origin": self.origin.value,
            "degraded": self.is_degraded,
            "generated_at": self.generated_at.isoformat(),
            "failures": [f.to_dict() for f in self.failures],
            "total_failure": self.total_failure.to_dict() if self.total_failure else None,
            "records": [r.to_dict() for r in self.records],
        }


@dataclass
class SourceHealth:
    """Health status of a data source."""
    status: SourceStatus
    last_check: datetime
    latency_ms: Optional[float] = None
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None
    consecutive_failures: int = 0
    uptime_percentage: float = 100.0

    def is_healthy(self) -> bool:
        return self.status == SourceStatus.HEALTHY

    def is_usable(self) -> bool:
        """Check if source can still be used (healthy, degraded or not yet seen)."""
        return self.status != SourceStatus.UNAVAILABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "last_check": self.last_check.isoformat(),
            "latency_ms": self.latency_ms,
            "error_count": self.error_count,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "consecutive_failures": self.consecutive_failures,
            "uptime_percentage": self.uptime_percentage,
        }


@dataclass
class SourceMetadata:
    """Metadata about an upstream provider."""
    name: str
    display_name: str
    domain: str
    base_url: str = ""
    documentation_url: str = ""
    requires_auth: bool = False
    priority: int = 10  # Lower = higher priority
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "domain": self.domain,
            "base_url": self.base_url,
            "documentation_url": self.documentation_url,
            "requires_auth": self.requires_auth,
            "priority": self.priority,
            "tags": self.tags,
        }


@dataclass
class SourceIncident:
    """Record of a data source incident."""
    source_name: str
    incident_type: str
    timestamp: datetime
    error_message: str
    request_params: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_name": self.source_name,
            "incident_type": self.incident_type,
            "timestamp": self.timestamp.isoformat(),
            "error_message": self.error_message,
            "request_params": self.request_params,
        }
