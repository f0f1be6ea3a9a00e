"""
Data Source Exceptions - Exception hierarchy for upstream sources.

These never cross the adapter or aggregator boundary: adapters convert
them into ``ErrorInfo`` values carried by a failed ``AdapterResult``.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from data_sources.models import ErrorInfo, ErrorKind


class DataSourceError(Exception):
    """Base exception for all data source errors."""

    kind = ErrorKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source_name = source_name
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_error_info(self) -> ErrorInfo:
        """Convert to the value form carried by AdapterResult."""
        return ErrorInfo(
            kind=self.kind,
            message=self.message,
            source_name=self.source_name,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "message": self.message,
            "source_name": self.source_name,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [f"{self.__class__.__name__}: {self.message}"]
        if self.source_name:
            parts.append(f"[source={self.source_name}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class FetchError(DataSourceError):
    """Non-success HTTP status or connection failure talking to a provider."""

    kind = ErrorKind.HTTP

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, context)
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url

    def to_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            kind=self.kind,
            message=self.message,
            source_name=self.source_name,
            status_code=self.status_code,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status_code": self.status_code,
            "response_body": self.response_body,
            "request_url": self.request_url,
        })
        return data

    def is_rate_limited(self) -> bool:
        """Check if error is due to rate limiting."""
        return self.status_code == 429

    def is_server_error(self) -> bool:
        """Check if error is server-side."""
        return self.status_code is not None and 500 <= self.status_code < 600

    def is_client_error(self) -> bool:
        """Check if error is client-side."""
        return self.status_code is not None and 400 <= self.status_code < 500


class AdapterTimeoutError(DataSourceError):
    """Upstream call exceeded the adapter deadline."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, context)
        self.timeout_seconds = timeout_seconds

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["timeout_seconds"] = self.timeout_seconds
        return data


class NormalizationError(DataSourceError):
    """Payload could not be decoded or normalized."""

    kind = ErrorKind.MALFORMED

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        raw_data: Optional[Any] = None,
        field_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, context)
        self.raw_data = raw_data
        self.field_name = field_name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "raw_data": str(self.raw_data)[:500] if self.raw_data else None,  # Truncate
            "field_name": self.field_name,
        })
        return data


class ConfigurationError(DataSourceError):
    """Source is missing configuration it needs (e.g. an API key)."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        message: str,
        source_name: Optional[str] = None,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, source_name, original_error, context)
        self.config_key = config_key

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["config_key"] = self.config_key
        return data


class TotalSourceFailure(DataSourceError):
    """
    Every enabled source failed or returned nothing.

    Only used as a diagnostic marker when the aggregator falls back; it is
    logged, never raised to callers.
    """

    def __init__(
        self,
        message: str,
        cache_key: Optional[str] = None,
        attempted_sources: Optional[list[str]] = None,
        original_error: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, None, original_error, context)
        self.cache_key = cache_key
        self.attempted_sources = attempted_sources or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "cache_key": self.cache_key,
            "attempted_sources": self.attempted_sources,
        })
        return data
