"""Caching for weather lookups.

KeyValueCache is the seam a multi-instance deployment replaces with an
external store; DictCache is the in-process implementation.
"""

import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float  # clock seconds

    def age_seconds(self, now: float) -> float:
        return max(0.0, now - self.stored_at)


class KeyValueCache(ABC):
    """Keyed store with a freshness window and access to expired entries."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value if present and within TTL, else None."""

    @abstractmethod
    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the newest entry for key regardless of age."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Replace the entry for key."""

    @abstractmethod
    def clear(self) -> int:
        """Drop all entries. Returns number of entries cleared."""


class DictCache(KeyValueCache):
    """Thread-safe LRU cache with a TTL that keeps expired entries around.

    Expired entries are not served by get() but stay available to
    get_entry() for stale fallbacks until evicted by size.
    """

    def __init__(
        self,
        max_size: int = 500,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.max_size = max_size
        self.ttl = ttl_seconds
        self.clock = clock
        self._cache: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = Lock()
        self._stats = {"hits": 0, "misses": 0}

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return self.ttl is None or entry.age_seconds(now) < self.ttl

    def get(self, key: str) -> Any | None:
        """Get cached value if available and not expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is not None and self._is_fresh(entry, self.clock()):
                self._cache.move_to_end(key)
                self._stats["hits"] += 1
                return entry.value
            self._stats["misses"] += 1
            return None

    def get_entry(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._cache.get(key)

    def set(self, key: str, value: Any) -> None:
        """Store value in cache with LRU eviction."""
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            self._cache[key] = CacheEntry(value=value, stored_at=self.clock())
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)

    def clear(self) -> int:
        """Clear all cached entries. Returns number of entries cleared."""
        with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self._stats = {"hits": 0, "misses": 0}
            return count

    def stats(self) -> dict:
        """Return cache statistics."""
        with self._lock:
            total = self._stats["hits"] + self._stats["misses"]
            hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0
            return {
                "hit_rate": f"{hit_rate:.1f}%",
                "hits": self._stats["hits"],
                "max_size": self.max_size,
                "misses": self._stats["misses"],
                "size": len(self._cache),
            }
