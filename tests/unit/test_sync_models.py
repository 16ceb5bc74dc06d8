"""Unit tests for sync metadata and result models."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from catalog_sync_service.models.sync_models import (
    CatalogStats,
    SyncMetadata,
    SyncResult,
    SyncStatusEnum,
)


@pytest.mark.unit
class TestSyncStatusEnum:
    """Test suite for SyncStatusEnum."""

    def test_all_status_values_are_defined(self) -> None:
        """Test that all expected status values are defined."""
        assert SyncStatusEnum.IDLE == "idle"
        assert SyncStatusEnum.SYNCING == "syncing"
        assert SyncStatusEnum.SUCCESS == "success"
        assert SyncStatusEnum.ERROR == "error"


@pytest.mark.unit
class TestSyncMetadata:
    """Test suite for SyncMetadata model."""

    def test_creation_with_required_fields(self) -> None:
        """Test creating metadata with only the source id."""
        metadata = SyncMetadata(source_id="sheet_123")

        assert metadata.status == SyncStatusEnum.IDLE
        assert metadata.last_attempt is None
        assert metadata.last_success is None
        assert metadata.consecutive_errors == 0
        assert metadata.per_category_counts == {}

    def test_rejects_negative_counts(self) -> None:
        """Test that category counts must be non-negative."""
        with pytest.raises(ValueError):
            SyncMetadata(source_id="sheet_123", per_category_counts={"beer": -1})

    def test_converts_to_dynamodb_format(self) -> None:
        """Test converting metadata to DynamoDB item format."""
        now = datetime.now(UTC)
        metadata = SyncMetadata(
            source_id="sheet_123",
            status=SyncStatusEnum.SUCCESS,
            last_attempt=now,
            last_success=now,
            per_category_counts={"beer": 4, "wine": 2},
            total_items=6,
        )

        item = metadata.to_dynamodb_item()

        assert item["source_id"] == "sheet_123"
        assert item["status"] == "success"
        assert item["last_attempt"] == now.isoformat()
        assert item["last_success"] == now.isoformat()
        assert item["per_category_counts"] == {"beer": 4, "wine": 2}
        assert item["total_items"] == 6
        assert "last_error_message" not in item

    def test_creates_from_dynamodb_format_with_decimals(self) -> None:
        """Test that DynamoDB Decimal numbers are coerced to int."""
        now = datetime.now(UTC)
        item = {
            "source_id": "sheet_123",
            "status": "error",
            "last_attempt": now.isoformat(),
            "consecutive_errors": Decimal("2"),
            "per_category_counts": {"beer": Decimal("4")},
            "total_items": Decimal("4"),
            "last_error_message": "no data",
        }

        metadata = SyncMetadata.from_dynamodb_item(item)

        assert metadata.status == SyncStatusEnum.ERROR
        assert metadata.last_attempt == now
        assert metadata.last_success is None
        assert metadata.consecutive_errors == 2
        assert metadata.per_category_counts == {"beer": 4}
        assert isinstance(metadata.total_items, int)
        assert metadata.last_error_message == "no data"


@pytest.mark.unit
class TestSyncResult:
    """Test suite for SyncResult."""

    def test_to_dict_minimal(self) -> None:
        """Test that optional keys are omitted."""
        result = SyncResult(success=False, message="Sync already in progress")

        assert result.to_dict() == {"success": False, "message": "Sync already in progress"}

    def test_to_dict_full(self) -> None:
        """Test that skipped and data are included when set."""
        result = SyncResult(success=True, message="ok", skipped=True, data={"total_items": 3})

        assert result.to_dict() == {
            "success": True,
            "message": "ok",
            "skipped": True,
            "data": {"total_items": 3},
        }


@pytest.mark.unit
class TestCatalogStats:
    """Test suite for CatalogStats."""

    def test_defaults_are_empty(self) -> None:
        """Test zeroed stats."""
        stats = CatalogStats()

        assert stats.total_count == 0
        assert stats.per_category_counts == {}
        assert stats.last_updated is None
