"""Bounded per-venue menu cache.

Each venue's menu is cached together with the source locator it was fetched
from. Capacity eviction removes the entry with the oldest insertion time;
reads do not refresh an entry's position.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from catalog_sync_service.models.catalog_models import CatalogItem

logger = logging.getLogger(__name__)


@dataclass
class VenueMenuCacheEntry:
    """Cached menu for one venue."""

    items: list[CatalogItem]
    inserted_at: float
    source_locator: str


class VenueMenuCache:
    """Capacity-capped cache of venue menus keyed by venue id.

    A hit requires both TTL validity and a source locator matching the one
    supplied by the caller, since a venue can be repointed to another source
    at any time.
    """

    def __init__(
        self,
        capacity: int = 50,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the menu cache.

        Args:
            capacity: Maximum number of venues held at once
            ttl_seconds: Lifetime of a cached menu
            clock: Monotonic time source in seconds

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, VenueMenuCacheEntry] = {}
        self._lock = threading.Lock()

    def get_menu(self, venue_id: str, source_locator: str) -> list[CatalogItem] | None:
        """Return the cached menu, or None on a miss.

        Args:
            venue_id: Venue identifier
            source_locator: The venue's current source locator

        Returns:
            Cached items, or None if absent, expired or fetched from another source
        """
        with self._lock:
            entry = self._entries.get(venue_id)
            if entry is None:
                return None

            if entry.source_locator != source_locator:
                logger.info(
                    f"Source locator changed for venue {venue_id} "
                    f"({entry.source_locator} -> {source_locator}), invalidating menu"
                )
                del self._entries[venue_id]
                return None

            if not self._is_valid(entry):
                logger.debug(f"Menu cache expired for venue {venue_id}")
                del self._entries[venue_id]
                return None

            return entry.items

    def peek(self, venue_id: str, source_locator: str) -> list[CatalogItem] | None:
        """Return the cached menu regardless of age, without evicting it.

        An entry fetched from a different source locator is never returned.
        """
        with self._lock:
            entry = self._entries.get(venue_id)
        if entry is None or entry.source_locator != source_locator:
            return None
        return entry.items

    def set_menu(self, venue_id: str, source_locator: str, items: list[CatalogItem]) -> None:
        """Cache a venue's menu, evicting the oldest insertion when full.

        Args:
            venue_id: Venue identifier
            source_locator: Locator the items were fetched from
            items: Menu items
        """
        with self._lock:
            if len(self._entries) >= self.capacity:
                oldest_id = min(self._entries, key=lambda vid: self._entries[vid].inserted_at)
                del self._entries[oldest_id]
                logger.info(f"Evicted oldest menu cache entry for venue {oldest_id}")

            self._entries[venue_id] = VenueMenuCacheEntry(
                items=list(items),
                inserted_at=self._clock(),
                source_locator=source_locator,
            )

    def invalidate(self, venue_id: str) -> bool:
        """Drop one venue's menu.

        Returns:
            bool: True if an entry was removed
        """
        with self._lock:
            removed = self._entries.pop(venue_id, None) is not None
        if removed:
            logger.info(f"Cleared menu cache for venue {venue_id}")
        return removed

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Cleared all venue menu cache entries")

    def stats(self) -> dict[str, Any]:
        """Describe cache contents for monitoring.

        Returns:
            dict: Venue count, per-venue details, TTL and capacity
        """
        with self._lock:
            now = self._clock()
            venues = [
                {
                    "venue_id": venue_id,
                    "item_count": len(entry.items),
                    "source_locator": entry.source_locator,
                    "inserted_at": entry.inserted_at,
                    "age_seconds": now - entry.inserted_at,
                    "valid": self._is_valid(entry, now),
                }
                for venue_id, entry in self._entries.items()
            ]

        return {
            "total_cached_venues": len(venues),
            "venues": venues,
            "ttl_seconds": self.ttl_seconds,
            "capacity": self.capacity,
        }

    def _is_valid(self, entry: VenueMenuCacheEntry, now: float | None = None) -> bool:
        current = self._clock() if now is None else now
        return current - entry.inserted_at < self.ttl_seconds
