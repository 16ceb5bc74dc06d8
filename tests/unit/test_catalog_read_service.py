"""Unit tests for the tiered catalog read path."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from catalog_sync_service.adapters.base_adapter import CatalogSourceAdapter
from catalog_sync_service.cache.expiring_cache import CacheKeys, ExpiringCache
from catalog_sync_service.cache.menu_cache import VenueMenuCache
from catalog_sync_service.errors import SourceError, SourceUnavailableError
from catalog_sync_service.models.catalog_models import CatalogItem, DrinkCategory, Venue
from catalog_sync_service.repositories.catalog_repositories import CatalogRepository
from catalog_sync_service.services.catalog_read_service import CatalogReadService


@pytest.mark.unit
class TestCatalogReadService:
    """Test suite for CatalogReadService."""

    @pytest.fixture
    def mock_catalog_repo(self, sample_items: list[CatalogItem]) -> MagicMock:
        """Create a mock store holding the sample catalog."""
        repo = MagicMock(spec=CatalogRepository)
        repo.get_all.return_value = sample_items
        repo.get_by_category.return_value = sample_items[:1]
        repo.get_by_id.return_value = sample_items[2]
        return repo

    @pytest.fixture
    def mock_adapter(self, sample_items: list[CatalogItem]) -> MagicMock:
        """Create a mock source adapter."""
        adapter = MagicMock(spec=CatalogSourceAdapter)
        adapter.fetch_all = AsyncMock(return_value=sample_items[:2])
        return adapter

    @pytest.fixture
    def service(
        self, fake_clock, mock_catalog_repo: MagicMock, mock_adapter: MagicMock
    ) -> CatalogReadService:
        """Create a read service over real caches and mocked backends."""
        return CatalogReadService(
            expiring_cache=ExpiringCache(default_ttl_seconds=300, clock=fake_clock),
            menu_cache=VenueMenuCache(capacity=5, ttl_seconds=300, clock=fake_clock),
            catalog_repository=mock_catalog_repo,
            adapter=mock_adapter,
        )

    def test_get_all_items_reads_store_then_memory(
        self, service: CatalogReadService, mock_catalog_repo: MagicMock
    ) -> None:
        """Test that the store is consulted once and then memoized."""
        first = service.get_all_items()
        second = service.get_all_items()

        assert first.source == "store"
        assert first.total == 3
        assert second.source == "memory"
        assert second.items == first.items
        mock_catalog_repo.get_all.assert_called_once()

    def test_get_all_items_refetches_after_ttl(
        self, service: CatalogReadService, mock_catalog_repo: MagicMock, fake_clock
    ) -> None:
        """Test that an expired memo falls through to the store again."""
        service.get_all_items()
        fake_clock.advance(301)

        result = service.get_all_items()

        assert result.source == "store"
        assert mock_catalog_repo.get_all.call_count == 2

    def test_empty_store_is_not_cached(
        self, service: CatalogReadService, mock_catalog_repo: MagicMock
    ) -> None:
        """Test that an empty read is reported and not memoized."""
        mock_catalog_repo.get_all.return_value = []

        result = service.get_all_items()

        assert result.source == "empty"
        assert result.items == []
        assert service.expiring_cache.has(CacheKeys.ALL_ITEMS) is False

    def test_get_items_by_category(
        self, service: CatalogReadService, mock_catalog_repo: MagicMock
    ) -> None:
        """Test category reads use their own cache key."""
        result = service.get_items_by_category(DrinkCategory.BEER)

        assert result.source == "store"
        mock_catalog_repo.get_by_category.assert_called_once_with(DrinkCategory.BEER)
        assert service.expiring_cache.has(CacheKeys.by_category("beer")) is True

    def test_get_item_by_id(
        self, service: CatalogReadService, mock_catalog_repo: MagicMock
    ) -> None:
        """Test single item reads are memoized on a hit."""
        assert service.get_item_by_id("cocktail_1").id == "cocktail_1"
        assert service.get_item_by_id("cocktail_1").id == "cocktail_1"
        mock_catalog_repo.get_by_id.assert_called_once_with("cocktail_1")

    def test_get_item_by_id_miss(
        self, service: CatalogReadService, mock_catalog_repo: MagicMock
    ) -> None:
        """Test that a missing item is None and not memoized."""
        mock_catalog_repo.get_by_id.return_value = None

        assert service.get_item_by_id("nope") is None
        assert service.expiring_cache.size() == 0

    @pytest.mark.asyncio
    async def test_get_venue_menu_fetches_then_caches(
        self, service: CatalogReadService, mock_adapter: MagicMock, sample_venue: Venue
    ) -> None:
        """Test that a venue menu is fetched once from its own source."""
        first = await service.get_venue_menu(sample_venue)
        second = await service.get_venue_menu(sample_venue)

        assert first.source == "source"
        assert first.total == 2
        assert second.source == "memory"
        mock_adapter.fetch_all.assert_awaited_once_with("sheet_venue_1")

    @pytest.mark.asyncio
    async def test_get_venue_menu_refetches_when_repointed(
        self, service: CatalogReadService, mock_adapter: MagicMock, sample_venue: Venue
    ) -> None:
        """Test that a new source locator bypasses the cached menu."""
        await service.get_venue_menu(sample_venue)
        repointed = sample_venue.model_copy(update={"source_locator": "sheet_venue_2"})

        result = await service.get_venue_menu(repointed)

        assert result.source == "source"
        mock_adapter.fetch_all.assert_awaited_with("sheet_venue_2")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [SourceError(), SourceUnavailableError()])
    async def test_get_venue_menu_source_down(
        self,
        service: CatalogReadService,
        mock_adapter: MagicMock,
        sample_venue: Venue,
        error: SourceError,
    ) -> None:
        """Test that an unavailable venue source yields an empty menu."""
        mock_adapter.fetch_all.side_effect = error

        result = await service.get_venue_menu(sample_venue)

        assert result.source == "empty"
        assert result.items == []
        assert service.menu_cache.get_menu(sample_venue.id, sample_venue.source_locator) is None

    @pytest.mark.asyncio
    async def test_get_venue_menu_serves_stale_menu_when_source_down(
        self,
        service: CatalogReadService,
        mock_adapter: MagicMock,
        sample_venue: Venue,
        fake_clock,
    ) -> None:
        """Test that an expired menu is served when the refetch fails."""
        first = await service.get_venue_menu(sample_venue)
        fake_clock.advance(301)
        mock_adapter.fetch_all.side_effect = SourceUnavailableError()

        result = await service.get_venue_menu(sample_venue)

        assert first.source == "source"
        assert result.source == "memory"
        assert result.items == first.items
        assert mock_adapter.fetch_all.await_count == 2

    @pytest.mark.asyncio
    async def test_get_venue_menu_no_stale_menu_from_other_locator(
        self, service: CatalogReadService, mock_adapter: MagicMock, sample_venue: Venue
    ) -> None:
        """Test that a repointed venue never falls back to the old source's menu."""
        await service.get_venue_menu(sample_venue)
        repointed = sample_venue.model_copy(update={"source_locator": "sheet_venue_2"})
        mock_adapter.fetch_all.side_effect = SourceError()

        result = await service.get_venue_menu(repointed)

        assert result.source == "empty"
        assert result.items == []
