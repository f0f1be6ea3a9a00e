"""
Pydantic schemas for Dashboard API responses.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from data_sources.models import AggregationResult

# =======================
# COMMON
# =======================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class FailureInfo(BaseModel):
    kind: str
    message: str
    source_name: Optional[str] = None
    status_code: Optional[int] = None

# =======================
# 1. FEED ENVELOPE
# =======================

class FeedResponse(BaseResponse):
    """Feed data plus where it came from and how complete it is."""
    data: Any = None
    origin: Optional[str] = None  # cache, fresh, stale, fallback
    degraded: bool = False
    failures: List[FailureInfo] = []
    last_updated: Optional[datetime] = None

    @classmethod
    def from_result(cls, result: AggregationResult, data: Any) -> "FeedResponse":
        return cls(
            success=True,
            data=data,
            origin=result.origin.value,
            degraded=result.is_degraded,
            failures=[FailureInfo(**f.to_dict()) for f in result.failures],
            last_updated=result.generated_at,
        )

# =======================
# 2. STATUS
# =======================

class SourceStatusEntry(BaseModel):
    name: str
    domain: str
    status: str  # operational, degraded, outage
    latency_ms: Optional[float] = None
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    uptime_percentage: float = 100.0


class StatusResponse(BaseModel):
    service: str
    version: str
    overall: str  # healthy, degraded, unhealthy
    operational_rate: float
    timestamp: datetime
    uptime_seconds: Optional[float] = None
    sources: List[SourceStatusEntry]
    cache: Dict[str, Any]
    subscribers: int = 0

# =======================
# 3. ADMIN
# =======================

class CacheClearResponse(BaseResponse):
    cleared: int


class FeedToggleResponse(BaseResponse):
    name: str
    enabled: bool


class AddFeedRequest(BaseModel):
    url: str
    name: str
    domain: Optional[str] = None
    category: Optional[str] = None


class AddFeedResponse(BaseResponse):
    name: str
    url: str

# =======================
# 4. NEWSLETTER
# =======================

class SubscribeRequest(BaseModel):
    email: str
    island: str = "oahu"


class SubscriptionResponse(BaseResponse):
    island: Optional[str] = None
