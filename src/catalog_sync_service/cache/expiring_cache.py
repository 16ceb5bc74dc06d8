"""In-process key-value cache with lazy TTL expiration.

Entries are never swept in the background: an expired entry is removed by
the read that discovers it.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its insertion time and lifetime in seconds."""

    value: T
    inserted_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl


class CacheKeys:
    """Key helpers for catalog lookups."""

    ALL_ITEMS = "catalog:all"

    @staticmethod
    def by_category(category: str) -> str:
        return f"catalog:category:{category}"

    @staticmethod
    def by_id(item_id: str) -> str:
        return f"catalog:id:{item_id}"


class ExpiringCache:
    """Short-TTL memoization for hot reads.

    Absence is always reported as None, never as an exception.
    """

    def __init__(
        self,
        default_ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl_seconds: TTL used when set() is called without one
            clock: Monotonic time source in seconds
        """
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl=ttl)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._live_entry(key)
            return entry.value if entry is not None else None

    def has(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Number of stored entries, including ones not yet found expired."""
        with self._lock:
            return len(self._entries)

    def _live_entry(self, key: str) -> CacheEntry[Any] | None:
        # Caller holds the lock.
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry
