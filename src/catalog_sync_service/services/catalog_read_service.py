"""Tiered read path over the catalog caches.

Reads fall through in increasing cost order: Expiring Cache, then the
persistent store (or, for venue menus, the Menu Cache and then the venue's
own source). A venue source outage falls back to the stale cached menu; a
total outage yields an empty result, never an exception.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from catalog_sync_service.adapters.base_adapter import CatalogSourceAdapter
from catalog_sync_service.cache.expiring_cache import CacheKeys, ExpiringCache
from catalog_sync_service.cache.menu_cache import VenueMenuCache
from catalog_sync_service.errors import SourceError
from catalog_sync_service.models.catalog_models import CatalogItem, DrinkCategory, Venue
from catalog_sync_service.observability import metrics
from catalog_sync_service.repositories.catalog_repositories import CatalogRepository

logger = logging.getLogger(__name__)

ReadSource = Literal["memory", "store", "source", "empty"]


@dataclass
class CatalogReadResult:
    """Items returned by a read together with the tier that served them."""

    items: list[CatalogItem]
    source: ReadSource

    @property
    def total(self) -> int:
        return len(self.items)


class CatalogReadService:
    """Read-side facade used by the recommendation layer."""

    def __init__(
        self,
        expiring_cache: ExpiringCache,
        menu_cache: VenueMenuCache,
        catalog_repository: CatalogRepository,
        adapter: CatalogSourceAdapter,
    ) -> None:
        self.expiring_cache = expiring_cache
        self.menu_cache = menu_cache
        self.catalog_repository = catalog_repository
        self.adapter = adapter

    def get_all_items(self) -> CatalogReadResult:
        return self._read_list(CacheKeys.ALL_ITEMS, self.catalog_repository.get_all)

    def get_items_by_category(self, category: DrinkCategory) -> CatalogReadResult:
        return self._read_list(
            CacheKeys.by_category(category.value),
            lambda: self.catalog_repository.get_by_category(category),
        )

    def get_item_by_id(self, item_id: str) -> CatalogItem | None:
        key = CacheKeys.by_id(item_id)
        cached = self.expiring_cache.get(key)
        metrics.record_cache_lookup("memory", cached is not None)
        if cached is not None:
            return cached

        item = self.catalog_repository.get_by_id(item_id)
        metrics.record_cache_lookup("store", item is not None)
        if item is not None:
            self.expiring_cache.set(key, item)
        return item

    async def get_venue_menu(self, venue: Venue) -> CatalogReadResult:
        """Return a venue's menu from the Menu Cache or its own source.

        Args:
            venue: Venue whose current source locator decides cache validity

        Returns:
            CatalogReadResult: The stale cached menu if the source is down, or
            an empty result with source "empty" when nothing was cached
        """
        stale = self.menu_cache.peek(venue.id, venue.source_locator)
        cached = self.menu_cache.get_menu(venue.id, venue.source_locator)
        metrics.record_cache_lookup("menu", cached is not None)
        if cached is not None:
            logger.debug(f"Loaded {len(cached)} items from menu cache for venue {venue.id}")
            return CatalogReadResult(items=cached, source="memory")

        try:
            items = await self.adapter.fetch_all(venue.source_locator)
        except SourceError as e:
            if stale:
                logger.warning(
                    f"Serving stale menu ({len(stale)} items) for venue {venue.id}: {e}"
                )
                return CatalogReadResult(items=stale, source="memory")
            logger.warning(
                f"No menu available for venue {venue.id} from {venue.source_locator}: {e}"
            )
            return CatalogReadResult(items=[], source="empty")

        self.menu_cache.set_menu(venue.id, venue.source_locator, items)
        logger.info(f"Loaded {len(items)} items from source for venue {venue.id}")
        return CatalogReadResult(items=items, source="source")

    def _read_list(
        self, key: str, load: Callable[[], list[CatalogItem]]
    ) -> CatalogReadResult:
        cached = self.expiring_cache.get(key)
        metrics.record_cache_lookup("memory", cached is not None)
        if cached is not None:
            return CatalogReadResult(items=cached, source="memory")

        items = load()
        metrics.record_cache_lookup("store", bool(items))
        if not items:
            return CatalogReadResult(items=[], source="empty")

        self.expiring_cache.set(key, items)
        return CatalogReadResult(items=items, source="store")
