"""
Base Source Adapter - Abstract interface for all upstream providers.

All providers MUST implement this interface to ensure:
- Isolation
- Replaceability
- Fail-safety (no exception escapes fetch())
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from core.clock import ClockProtocol, SystemClock
from data_sources.exceptions import (
    AdapterTimeoutError,
    ConfigurationError,
    DataSourceError,
    FetchError,
    NormalizationError,
)
from data_sources.models import (
    AdapterResult,
    DomainRecord,
    ErrorInfo,
    ErrorKind,
    QueryParams,
    SourceHealth,
    SourceIncident,
    SourceMetadata,
    SourceStatus,
)
from data_sources.payloads import Island


logger = logging.getLogger(__name__)


class BaseSourceAdapter(ABC):
    """
    Abstract base class for all source adapters.

    Each adapter implementation must:
    1. Implement fetch_raw() - Get raw payload from provider
    2. Implement normalize() - Convert to DomainRecord list (pure)
    3. Implement metadata() - Return provider metadata

    fetch() wraps both with a hard timeout, converts every failure into
    an AdapterResult and tracks health. It is never retried within one
    aggregation cycle.
    """

    DEFAULT_TIMEOUT = 10.0
    DEGRADED_THRESHOLD = 3  # consecutive failures before degraded
    UNAVAILABLE_THRESHOLD = 5  # consecutive failures before unavailable
    USER_AGENT = "IslandPulse/1.0"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
        user_agent: Optional[str] = None,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._timeout = timeout
        self._clock = clock or SystemClock()
        self._session = session
        self._owns_session = session is None
        self._user_agent = user_agent or self.USER_AGENT

        # Health tracking
        self._health = SourceHealth(
            status=SourceStatus.UNKNOWN,
            last_check=datetime.now(timezone.utc),
        )
        self._last_successful_request: Optional[datetime] = None
        self._request_count = 0
        self._success_count = 0

        # Incident log
        self._incidents: list[SourceIncident] = []
        self._max_incidents = 100

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this source."""
        pass

    @property
    @abstractmethod
    def domain(self) -> str:
        """Aggregation domain this source feeds (weather, news, ...)."""
        pass

    @property
    def timeout(self) -> float:
        return self._timeout

    @abstractmethod
    async def fetch_raw(self, query: QueryParams) -> Any:
        """
        Fetch the raw payload from the provider.

        Raises:
            FetchError: on HTTP or connection failure
            NormalizationError: on an undecodable payload
            ConfigurationError: when the source cannot run as configured
        """
        pass

    @abstractmethod
    def normalize(self, raw_data: Any, query: QueryParams) -> list[DomainRecord]:
        """
        Normalize the raw payload (pure, no I/O).

        Raises:
            NormalizationError: If the payload has the wrong shape
        """
        pass

    @abstractmethod
    def metadata(self) -> SourceMetadata:
        """Return provider metadata."""
        pass

    def require_island(self, query: QueryParams) -> Island:
        """The query island; sources that serve one island at a time need it."""
        if query.island is None:
            raise ConfigurationError(
                message="An island is required",
                source_name=self.name,
                config_key="island",
            )
        return query.island

    async def fetch(self, query: QueryParams) -> AdapterResult:
        """
        Fetch and normalize (main entry point).

        Returns:
            AdapterResult; status FAILURE with an ErrorInfo on any error,
            including exceeding the adapter timeout.
        """
        start = time.monotonic()
        try:
            raw_data = await asyncio.wait_for(self.fetch_raw(query), timeout=self._timeout)
            records = self.normalize(raw_data, query)
        except asyncio.TimeoutError as e:
            error = AdapterTimeoutError(
                message=f"Timed out after {self._timeout}s",
                source_name=self.name,
                timeout_seconds=self._timeout,
                original_error=e,
            )
            return self._failure(error, query, start)
        except DataSourceError as e:
            if e.source_name is None:
                e.source_name = self.name
            return self._failure(e, query, start)
        except Exception as e:
            error = DataSourceError(
                message=f"Unexpected error: {e}",
                source_name=self.name,
                original_error=e,
            )
            return self._failure(error, query, start)

        latency_ms = (time.monotonic() - start) * 1000
        self._on_success(latency_ms)
        logger.debug(f"[{self.name}] {len(records)} records in {latency_ms:.1f}ms")
        return AdapterResult.success(self.name, records, latency_ms=latency_ms)

    def _failure(
        self,
        error: DataSourceError,
        query: QueryParams,
        start: float,
    ) -> AdapterResult:
        latency_ms = (time.monotonic() - start) * 1000
        self._on_error(error, query)
        return AdapterResult.failure(self.name, error.to_error_info(), latency_ms=latency_ms)

    # =========================================================
    # HTTP
    # =========================================================

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers=self._get_default_headers(),
            )
            self._owns_session = True
        return self._session

    def _get_default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }

    async def _request(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        as_json: bool = True,
    ) -> Any:
        """GET a URL, raising FetchError / NormalizationError on failure."""
        session = await self._get_session()
        merged_headers = {**self._get_default_headers(), **(headers or {})}

        try:
            async with session.get(url, params=params, headers=merged_headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise FetchError(
                        message=f"HTTP {response.status}",
                        source_name=self.name,
                        status_code=response.status,
                        response_body=body[:1000],
                        request_url=url,
                    )
                if not as_json:
                    return await response.text()
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise NormalizationError(
                        message="Response is not valid JSON",
                        source_name=self.name,
                        original_error=e,
                        context={"url": url},
                    )
        except aiohttp.ClientError as e:
            raise FetchError(
                message=f"Connection error: {e}",
                source_name=self.name,
                request_url=url,
                original_error=e,
            )

    async def _get_json(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        return await self._request(url, params=params, headers=headers, as_json=True)

    async def _get_text(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> str:
        return await self._request(url, params=params, headers=headers, as_json=False)

    # =========================================================
    # HEALTH
    # =========================================================

    def _on_success(self, latency_ms: float) -> None:
        self._request_count += 1
        self._success_count += 1
        self._last_successful_request = datetime.now(timezone.utc)
        self._health.last_check = self._last_successful_request
        self._health.latency_ms = latency_ms
        self._health.consecutive_failures = 0

        if self._health.status != SourceStatus.HEALTHY:
            if self._health.status != SourceStatus.UNKNOWN:
                logger.info(f"[{self.name}] Recovered to HEALTHY status")
            self._health.status = SourceStatus.HEALTHY

    def _on_error(
        self,
        error: DataSourceError,
        query: Optional[QueryParams] = None,
    ) -> None:
        now = datetime.now(timezone.utc)
        self._request_count += 1
        self._health.error_count += 1
        self._health.consecutive_failures += 1
        self._health.last_error = str(error)
        self._health.last_error_time = now
        self._health.last_check = now

        if self._health.consecutive_failures >= self.UNAVAILABLE_THRESHOLD:
            if self._health.status != SourceStatus.UNAVAILABLE:
                self._health.status = SourceStatus.UNAVAILABLE
                logger.error(f"[{self.name}] Marked UNAVAILABLE after {self._health.consecutive_failures} failures")
        elif self._health.consecutive_failures >= self.DEGRADED_THRESHOLD:
            if self._health.status != SourceStatus.DEGRADED:
                self._health.status = SourceStatus.DEGRADED
                logger.warning(f"[{self.name}] Marked DEGRADED after {self._health.consecutive_failures} failures")

        self._log_incident(error, query)

    def _log_incident(
        self,
        error: DataSourceError,
        query: Optional[QueryParams] = None,
    ) -> None:
        incident = SourceIncident(
            source_name=self.name,
            incident_type=error.__class__.__name__,
            timestamp=datetime.now(timezone.utc),
            error_message=str(error),
            request_params={
                "island": query.island.value if query.island else None,
                "category": query.category,
                "days_ahead": query.days_ahead,
            } if query else None,
        )

        self._incidents.append(incident)
        if len(self._incidents) > self._max_incidents:
            self._incidents = self._incidents[-self._max_incidents:]

        logger.warning(f"[{self.name}] Incident logged: {error}")

    def get_health(self) -> SourceHealth:
        """Get current health status."""
        if self._request_count > 0:
            self._health.uptime_percentage = (
                self._success_count / self._request_count * 100
            )
        return self._health

    def get_incidents(self, limit: int = 10) -> list[SourceIncident]:
        return self._incidents[-limit:]

    def is_healthy(self) -> bool:
        return self._health.status == SourceStatus.HEALTHY

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "BaseSourceAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name}, status={self._health.status.value})>"


def error_info_from_exception(error: BaseException, source_name: str) -> ErrorInfo:
    """ErrorInfo for an exception that escaped outside an adapter's own guard."""
    if isinstance(error, DataSourceError):
        return error.to_error_info()
    if isinstance(error, asyncio.TimeoutError):
        return ErrorInfo(kind=ErrorKind.TIMEOUT, message="Timed out", source_name=source_name)
    return ErrorInfo(kind=ErrorKind.UNEXPECTED, message=str(error), source_name=source_name)
