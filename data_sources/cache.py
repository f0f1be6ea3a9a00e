"""
Data Sources - TTL Cache.

============================================================
RESPONSIBILITY
============================================================
Keyed store of aggregation results with a time-to-live.

- get()        returns fresh values only
- get_stale()  returns the last value regardless of age
- set()        overwrites unconditionally
- clear()      administrative reset

============================================================
DESIGN PRINCIPLES
============================================================
- Expired entries are kept for fallback reads until overwritten
- No LRU/LFU eviction: one entry per island x domain query
- Backend-agnostic contract (CacheBackend); in-memory shipped
- Time read from an injected clock

============================================================
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from core.clock import ClockProtocol, SystemClock


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """One cached value with its insertion time and TTL."""
    key: str
    value: Any
    inserted_at: datetime
    ttl: timedelta

    def age(self, now: datetime) -> timedelta:
        return now - self.inserted_at

    def is_fresh(self, now: datetime) -> bool:
        """Fresh iff now - inserted_at < ttl."""
        return self.age(now) < self.ttl

    def expires_at(self) -> datetime:
        return self.inserted_at + self.ttl

    def to_dict(self, now: Optional[datetime] = None) -> dict[str, Any]:
        data = {
            "key": self.key,
            "inserted_at": self.inserted_at.isoformat(),
            "ttl_seconds": self.ttl.total_seconds(),
            "expires_at": self.expires_at().isoformat(),
        }
        if now is not None:
            data["fresh"] = self.is_fresh(now)
            data["age_seconds"] = self.age(now).total_seconds()
        return data


class CacheBackend(ABC):
    """Contract the aggregator needs from a cache store."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Value if present and fresh, else None."""
        pass

    @abstractmethod
    def get_stale(self, key: str) -> Optional[Any]:
        """Most recent value regardless of freshness, else None."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store value, overwriting any existing entry."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Drop one entry; returns whether it existed."""
        pass

    @abstractmethod
    def clear_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix; returns the count."""
        pass

    @abstractmethod
    def entry(self, key: str) -> Optional[CacheEntry]:
        """Raw entry (fresh or not) for diagnostics."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        pass


class InMemoryTTLCache(CacheBackend):
    """
    Process-local TTL cache.

    Suitable for a single-process deployment; a multi-process one needs
    a shared CacheBackend implementation instead.
    """

    def __init__(self, clock: Optional[ClockProtocol] = None) -> None:
        self._clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_fresh(self._clock.now()):
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def get_stale(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry else None

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        entry = CacheEntry(
            key=key,
            value=value,
            inserted_at=self._clock.now(),
            ttl=timedelta(seconds=ttl_seconds),
        )
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cache cleared ({count} entries dropped)")

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix (e.g. "news:")."""
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.info(f"Cache cleared {len(doomed)} entries with prefix '{prefix}'")
        return len(doomed)

    def entry(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def get_stats(self) -> dict[str, Any]:
        now = self._clock.now()
        with self._lock:
            entries = list(self._entries.values())
            hits, misses = self._hits, self._misses
        return {
            "entries": len(entries),
            "fresh": sum(1 for e in entries if e.is_fresh(now)),
            "hits": hits,
            "misses": misses,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
