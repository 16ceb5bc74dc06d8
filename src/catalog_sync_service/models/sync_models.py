"""Sync metadata and result models.

SyncMetadata is persisted in DynamoDB, one record per source id.
SyncResult and CatalogStats are in-memory shapes returned to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SyncStatusEnum(str, Enum):
    """Enumeration of sync status values."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class SyncMetadata(BaseModel):
    """Synchronization state for one external source.

    Mutated only by the scheduler; read by health reporting.
    Stored in DynamoDB with source_id as partition key.
    """

    source_id: str = Field(..., description="External source (spreadsheet) identifier")
    status: SyncStatusEnum = Field(default=SyncStatusEnum.IDLE)
    last_attempt: datetime | None = Field(None, description="Start of the most recent sync")
    last_success: datetime | None = Field(None, description="Completion of the last good sync")
    consecutive_errors: int = Field(default=0, ge=0)
    per_category_counts: dict[str, int] = Field(default_factory=dict)
    total_items: int = Field(default=0, ge=0)
    last_error_message: str | None = None

    @field_validator("per_category_counts")
    @classmethod
    def validate_counts(cls, v: dict[str, int]) -> dict[str, int]:
        """Validate that category counts are non-negative."""
        if any(count < 0 for count in v.values()):
            raise ValueError("per_category_counts must be non-negative")
        return v

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        item: dict[str, Any] = {
            "source_id": self.source_id,
            "status": self.status.value,
            "consecutive_errors": self.consecutive_errors,
            "per_category_counts": dict(self.per_category_counts),
            "total_items": self.total_items,
        }

        if self.last_attempt is not None:
            item["last_attempt"] = self.last_attempt.isoformat()

        if self.last_success is not None:
            item["last_success"] = self.last_success.isoformat()

        if self.last_error_message is not None:
            item["last_error_message"] = self.last_error_message

        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "SyncMetadata":
        """Create SyncMetadata from DynamoDB item.

        DynamoDB returns numbers as Decimal, so counts are coerced to int.

        Args:
            item: DynamoDB item dictionary

        Returns:
            SyncMetadata: Parsed model instance
        """
        data: dict[str, Any] = {
            "source_id": item["source_id"],
            "status": SyncStatusEnum(item.get("status", SyncStatusEnum.IDLE.value)),
            "consecutive_errors": int(item.get("consecutive_errors", 0)),
            "per_category_counts": {
                k: int(v) for k, v in item.get("per_category_counts", {}).items()
            },
            "total_items": int(item.get("total_items", 0)),
        }

        if "last_attempt" in item:
            data["last_attempt"] = datetime.fromisoformat(item["last_attempt"])

        if "last_success" in item:
            data["last_success"] = datetime.fromisoformat(item["last_success"])

        if "last_error_message" in item:
            data["last_error_message"] = item["last_error_message"]

        return cls(**data)


class CatalogStats(BaseModel):
    """Summary of what the persistent store currently holds."""

    total_count: int = Field(default=0, ge=0)
    per_category_counts: dict[str, int] = Field(default_factory=dict)
    last_updated: datetime | None = None


@dataclass
class SyncResult:
    """Outcome of a single sync run.

    Attributes:
        success: Whether the run completed without error
        message: Human-readable summary
        skipped: True when the store was fresh and the source was not contacted
        data: Item counts and timing for successful runs
    """

    success: bool
    message: str
    skipped: bool = False
    data: dict[str, Any] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the admin API response shape."""
        result: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.skipped:
            result["skipped"] = True
        if self.data is not None:
            result["data"] = self.data
        return result
