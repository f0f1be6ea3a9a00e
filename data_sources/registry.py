"""
Adapter Registry - Priority-ordered, switchable set of adapters for one domain.

Provides:
- Adapter registration with explicit priority
- Per-adapter enable/disable without unregistering
- Priority order consumed by the merger (first seen wins)
- Health and metadata views for status reporting
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from data_sources.base import BaseSourceAdapter
from data_sources.models import SourceHealth, SourceMetadata, SourceStatus


logger = logging.getLogger(__name__)


@dataclass
class _Registration:
    adapter: BaseSourceAdapter
    priority: int
    enabled: bool
    sequence: int


class AdapterRegistry:
    """
    Registry of source adapters for one aggregation domain.

    Lower priority value = higher priority. Ties keep registration order.

    Usage:
        registry = AdapterRegistry("weather")
        registry.register(NOAAWeatherSource(), priority=1)
        registry.register(OpenMeteoWeatherSource(), priority=2, enabled=False)
        adapters = registry.enabled_adapters()
    """

    def __init__(self, domain: str) -> None:
        self._domain = domain
        self._registrations: dict[str, _Registration] = {}
        self._sequence = 0

    @property
    def domain(self) -> str:
        return self._domain

    def register(
        self,
        adapter: BaseSourceAdapter,
        priority: Optional[int] = None,
        enabled: bool = True,
    ) -> None:
        """
        Register an adapter.

        Args:
            adapter: Adapter instance
            priority: Lower = higher priority (defaults to metadata priority)
            enabled: Whether the adapter takes part in fan-out
        """
        name = adapter.name

        if adapter.domain != self._domain:
            raise ValueError(
                f"Adapter '{name}' serves domain '{adapter.domain}', "
                f"registry is '{self._domain}'"
            )

        if priority is None:
            priority = adapter.metadata().priority

        existing = self._registrations.get(name)
        if existing:
            logger.warning(f"Source '{name}' already registered, replacing")
            sequence = existing.sequence
        else:
            sequence = self._sequence
            self._sequence += 1

        self._registrations[name] = _Registration(
            adapter=adapter,
            priority=priority,
            enabled=enabled,
            sequence=sequence,
        )

        state = "enabled" if enabled else "disabled"
        logger.info(f"[{self._domain}] Registered source '{name}' with priority {priority} ({state})")

    def unregister(self, name: str) -> Optional[BaseSourceAdapter]:
        """Unregister an adapter."""
        registration = self._registrations.pop(name, None)
        if registration is None:
            return None
        logger.info(f"[{self._domain}] Unregistered source '{name}'")
        return registration.adapter

    def set_enabled(self, name: str, enabled: bool) -> bool:
        """Enable or disable an adapter; returns False if it is unknown."""
        registration = self._registrations.get(name)
        if registration is None:
            return False
        if registration.enabled != enabled:
            registration.enabled = enabled
            logger.info(f"[{self._domain}] Source '{name}' {'enabled' if enabled else 'disabled'}")
        return True

    def is_enabled(self, name: str) -> bool:
        registration = self._registrations.get(name)
        return bool(registration and registration.enabled)

    def get_source(self, name: str) -> Optional[BaseSourceAdapter]:
        registration = self._registrations.get(name)
        return registration.adapter if registration else None

    def _ordered(self) -> list[_Registration]:
        return sorted(
            self._registrations.values(),
            key=lambda r: (r.priority, r.sequence),
        )

    def list_sources(self) -> list[str]:
        """All registered source names in priority order."""
        return [r.adapter.name for r in self._ordered()]

    def enabled_adapters(self) -> list[BaseSourceAdapter]:
        """Enabled adapters in priority order."""
        return [r.adapter for r in self._ordered() if r.enabled]

    def get_all_metadata(self) -> dict[str, SourceMetadata]:
        return {name: r.adapter.metadata() for name, r in self._registrations.items()}

    def get_all_health(self) -> dict[str, SourceHealth]:
        return {name: r.adapter.get_health() for name, r in self._registrations.items()}

    def get_stats(self) -> dict[str, Any]:
        """Get registry statistics."""
        health_summary = {status.value: 0 for status in SourceStatus}
        for registration in self._registrations.values():
            if registration.enabled:
                health_summary[registration.adapter.get_health().status.value] += 1

        return {
            "domain": self._domain,
            "total_sources": len(self._registrations),
            "source_order": self.list_sources(),
            "health_summary": health_summary,
            "sources": {
                r.adapter.name: {
                    "status": r.adapter.get_health().status.value,
                    "enabled": r.enabled,
                    "priority": r.priority,
                }
                for r in self._ordered()
            },
        }

    async def close(self) -> None:
        """Close all adapters."""
        for registration in self._registrations.values():
            try:
                await registration.adapter.close()
            except Exception as e:
                logger.error(f"Error closing source {registration.adapter.name}: {e}")

    def __len__(self) -> int:
        return len(self._registrations)
