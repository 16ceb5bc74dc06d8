"""Unit tests for the venue menu cache."""

import pytest

from catalog_sync_service.cache.menu_cache import VenueMenuCache
from catalog_sync_service.models.catalog_models import CatalogItem


@pytest.mark.unit
class TestVenueMenuCache:
    """Test suite for VenueMenuCache."""

    @pytest.fixture
    def cache(self, fake_clock) -> VenueMenuCache:
        """Create a small cache with a 300 second TTL."""
        return VenueMenuCache(capacity=2, ttl_seconds=300, clock=fake_clock)

    def test_rejects_non_positive_capacity(self) -> None:
        """Test that capacity must be at least one."""
        with pytest.raises(ValueError):
            VenueMenuCache(capacity=0)

    def test_hit_with_matching_locator(
        self, cache: VenueMenuCache, sample_items: list[CatalogItem]
    ) -> None:
        """Test that a fresh entry with the same locator is returned."""
        cache.set_menu("venue_a", "sheet_a", sample_items)

        assert cache.get_menu("venue_a", "sheet_a") == sample_items

    def test_miss_for_unknown_venue(self, cache: VenueMenuCache) -> None:
        """Test that an unknown venue is a miss."""
        assert cache.get_menu("venue_x", "sheet_x") is None

    def test_locator_mismatch_invalidates_entry(
        self, cache: VenueMenuCache, sample_items: list[CatalogItem]
    ) -> None:
        """Test that a repointed venue never sees the old source's menu."""
        cache.set_menu("venue_a", "sheet_a", sample_items)

        assert cache.get_menu("venue_a", "sheet_b") is None
        # The stale entry is gone even for the original locator.
        assert cache.get_menu("venue_a", "sheet_a") is None
        assert cache.stats()["total_cached_venues"] == 0

    def test_expired_entry_is_a_miss(
        self, cache: VenueMenuCache, sample_items: list[CatalogItem], fake_clock
    ) -> None:
        """Test that entries expire at the TTL boundary."""
        cache.set_menu("venue_a", "sheet_a", sample_items)
        fake_clock.advance(299)
        assert cache.get_menu("venue_a", "sheet_a") == sample_items

        fake_clock.advance(1)
        assert cache.get_menu("venue_a", "sheet_a") is None

    def test_peek_ignores_ttl_but_checks_locator(
        self, cache: VenueMenuCache, sample_items: list[CatalogItem], fake_clock
    ) -> None:
        """Test that peek returns an expired menu without evicting it."""
        cache.set_menu("venue_a", "sheet_a", sample_items)
        fake_clock.advance(301)

        assert cache.peek("venue_a", "sheet_a") == sample_items
        assert cache.peek("venue_a", "sheet_b") is None
        assert cache.peek("venue_x", "sheet_a") is None
        assert cache.stats()["total_cached_venues"] == 1

    def test_capacity_evicts_oldest_insertion(
        self, cache: VenueMenuCache, sample_items: list[CatalogItem], fake_clock
    ) -> None:
        """Test that inserting past capacity drops the oldest inserted venue."""
        cache.set_menu("A", "sheet_a", sample_items)
        fake_clock.advance(1)
        cache.set_menu("B", "sheet_b", sample_items)
        fake_clock.advance(1)
        # Reads do not refresh position.
        assert cache.get_menu("A", "sheet_a") is not None
        cache.set_menu("C", "sheet_c", sample_items)

        assert cache.get_menu("A", "sheet_a") is None
        assert cache.get_menu("B", "sheet_b") is not None
        assert cache.get_menu("C", "sheet_c") is not None

    def test_invalidate(self, cache: VenueMenuCache, sample_items: list[CatalogItem]) -> None:
        """Test dropping a single venue."""
        cache.set_menu("A", "sheet_a", sample_items)

        assert cache.invalidate("A") is True
        assert cache.invalidate("A") is False
        assert cache.get_menu("A", "sheet_a") is None

    def test_clear_all(self, cache: VenueMenuCache, sample_items: list[CatalogItem]) -> None:
        """Test dropping every venue."""
        cache.set_menu("A", "sheet_a", sample_items)
        cache.set_menu("B", "sheet_b", sample_items)

        cache.clear_all()

        assert cache.stats()["total_cached_venues"] == 0

    def test_stats(
        self, cache: VenueMenuCache, sample_items: list[CatalogItem], fake_clock
    ) -> None:
        """Test the monitoring description of the cache."""
        cache.set_menu("A", "sheet_a", sample_items)
        fake_clock.advance(400)
        cache.set_menu("B", "sheet_b", sample_items[:1])

        stats = cache.stats()

        assert stats["total_cached_venues"] == 2
        assert stats["capacity"] == 2
        assert stats["ttl_seconds"] == 300
        venues = {v["venue_id"]: v for v in stats["venues"]}
        assert venues["A"]["item_count"] == 3
        assert venues["A"]["age_seconds"] == 400
        assert venues["A"]["valid"] is False
        assert venues["B"]["item_count"] == 1
        assert venues["B"]["source_locator"] == "sheet_b"
        assert venues["B"]["valid"] is True
