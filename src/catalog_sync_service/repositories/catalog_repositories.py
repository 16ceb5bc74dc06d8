"""DynamoDB repositories for the catalog mirror and sync metadata.

These repositories use simple return values (empty list / None / False) for
expected failures rather than raising, so a store outage degrades reads to
"no data" instead of crashing callers.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table
from pydantic import ValidationError

from catalog_sync_service.models.catalog_models import CatalogItem, DrinkCategory
from catalog_sync_service.models.sync_models import CatalogStats, SyncMetadata
from catalog_sync_service.observability.decorators import traced

logger = logging.getLogger(__name__)

CATEGORY_INDEX = "category-index"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _category_value(category: DrinkCategory | str) -> str:
    return category.value if isinstance(category, DrinkCategory) else category


class CatalogRepository:
    """Full-replace, queryable mirror of the whole catalog.

    Table layout: partition key ``id``, GSI ``category-index`` on ``category``.

    replace_all() is delete-then-insert and is not atomic: between the delete
    and the final insert batch a reader sees an empty or partial catalog, and
    a crash in that window leaves it that way until the next sync.
    """

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        batch_size: int = 100,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the catalog table
            batch_size: Items written per insert batch
            clock: Source of the current UTC time
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)
        self.batch_size = batch_size
        self._clock = clock

    def get_all(self) -> list[CatalogItem]:
        """Return every stored item, most recently updated first.

        Returns:
            list: Catalog items (empty list on error)
        """
        try:
            records = self._scan()
        except ClientError as e:
            logger.error(f"Failed to fetch catalog: {e}")
            return []

        records.sort(key=lambda r: r.get("updated_at", ""), reverse=True)
        return self._parse_items(records)

    def get_by_category(self, category: DrinkCategory | str) -> list[CatalogItem]:
        """Return all items in one category.

        Args:
            category: Category to query

        Returns:
            list: Catalog items (empty list on error)
        """
        value = _category_value(category)
        try:
            records = self._query_category(value)
        except ClientError as e:
            logger.error(f"Failed to fetch catalog for category {value}: {e}")
            return []

        records.sort(key=lambda r: r.get("updated_at", ""), reverse=True)
        return self._parse_items(records)

    def get_by_id(self, item_id: str) -> CatalogItem | None:
        """Return a single item.

        Args:
            item_id: Catalog item identifier

        Returns:
            CatalogItem if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": item_id})
        except ClientError as e:
            logger.error(f"Failed to fetch catalog item {item_id}: {e}")
            return None

        if "Item" not in response:
            return None

        items = self._parse_items([response["Item"]])
        return items[0] if items else None

    @traced("catalog.replace_all")
    def replace_all(self, items: list[CatalogItem]) -> bool:
        """Replace the entire catalog with ``items``.

        Deletes every record, then inserts in batches of ``batch_size``.

        Args:
            items: The new catalog generation

        Returns:
            bool: True if every delete and insert succeeded
        """
        try:
            deleted = self._delete_keys(self._scan(ProjectionExpression="id"))
        except ClientError as e:
            logger.error(f"Error clearing catalog before replace: {e}")
            return False

        logger.debug(f"Deleted {deleted} catalog records, inserting {len(items)}")

        if not self._insert_batches(items):
            return False

        logger.info(f"Successfully stored {len(items)} catalog items")
        return True

    def replace_category(self, category: DrinkCategory | str, items: list[CatalogItem]) -> bool:
        """Replace only the items of one category.

        Args:
            category: Category being replaced
            items: New items for that category; items of other categories are ignored

        Returns:
            bool: True if the replace succeeded
        """
        value = _category_value(category)
        scoped = [item for item in items if item.category.value == value]
        if len(scoped) != len(items):
            logger.warning(
                f"Ignoring {len(items) - len(scoped)} items outside category {value}"
            )

        try:
            deleted = self._delete_keys(self._query_category(value, ProjectionExpression="id"))
        except ClientError as e:
            logger.error(f"Error clearing catalog for category {value}: {e}")
            return False

        logger.debug(f"Deleted {deleted} {value} records, inserting {len(scoped)}")

        if not self._insert_batches(scoped):
            return False

        logger.info(f"Successfully stored {len(scoped)} items for category {value}")
        return True

    def get_stats(self) -> CatalogStats:
        """Count stored items per category and find the newest write.

        Returns:
            CatalogStats: Zeroed stats on error
        """
        try:
            records = self._scan(
                ProjectionExpression="#cat, updated_at",
                ExpressionAttributeNames={"#cat": "category"},
            )
        except ClientError as e:
            logger.error(f"Failed to fetch catalog stats: {e}")
            return CatalogStats()

        per_category: dict[str, int] = {}
        for record in records:
            category = record.get("category", "unknown")
            per_category[category] = per_category.get(category, 0) + 1

        return CatalogStats(
            total_count=len(records),
            per_category_counts=per_category,
            last_updated=self._newest_update(records),
        )

    def is_healthy(self, max_age_minutes: float = 30) -> bool:
        """Check that the store holds data written within ``max_age_minutes``.

        Args:
            max_age_minutes: Maximum acceptable age of the newest item

        Returns:
            bool: False when empty, stale or unreadable
        """
        try:
            records = self._scan(ProjectionExpression="updated_at")
        except ClientError as e:
            logger.error(f"Failed to check catalog health: {e}")
            return False

        newest = self._newest_update(records)
        if newest is None:
            return False

        return self._clock() - newest <= timedelta(minutes=max_age_minutes)

    def clear(self) -> bool:
        """Delete every stored item.

        Returns:
            bool: True if the delete succeeded
        """
        try:
            deleted = self._delete_keys(self._scan(ProjectionExpression="id"))
        except ClientError as e:
            logger.error(f"Error clearing catalog: {e}")
            return False

        logger.info(f"Catalog cleared ({deleted} items)")
        return True

    def _scan(self, **kwargs: Any) -> list[dict[str, Any]]:
        response = self.table.scan(**kwargs)
        records = list(response.get("Items", []))
        while "LastEvaluatedKey" in response:
            response = self.table.scan(ExclusiveStartKey=response["LastEvaluatedKey"], **kwargs)
            records.extend(response.get("Items", []))
        return records

    def _query_category(self, value: str, **kwargs: Any) -> list[dict[str, Any]]:
        query_args: dict[str, Any] = {
            "IndexName": CATEGORY_INDEX,
            "KeyConditionExpression": "#cat = :cat",
            "ExpressionAttributeNames": {"#cat": "category"},
            "ExpressionAttributeValues": {":cat": value},
            **kwargs,
        }
        response = self.table.query(**query_args)
        records = list(response.get("Items", []))
        while "LastEvaluatedKey" in response:
            response = self.table.query(
                ExclusiveStartKey=response["LastEvaluatedKey"], **query_args
            )
            records.extend(response.get("Items", []))
        return records

    def _delete_keys(self, records: list[dict[str, Any]]) -> int:
        with self.table.batch_writer() as batch:
            for record in records:
                batch.delete_item(Key={"id": record["id"]})
        return len(records)

    def _insert_batches(self, items: list[CatalogItem]) -> bool:
        written_at = self._clock()
        for start in range(0, len(items), self.batch_size):
            chunk = items[start : start + self.batch_size]
            try:
                with self.table.batch_writer(overwrite_by_pkeys=["id"]) as batch:
                    for item in chunk:
                        batch.put_item(Item=item.to_dynamodb_item(written_at))
            except ClientError as e:
                logger.error(
                    f"Error inserting catalog batch {start}-{start + len(chunk)}: {e}"
                )
                return False
        return True

    @staticmethod
    def _parse_items(records: list[dict[str, Any]]) -> list[CatalogItem]:
        items: list[CatalogItem] = []
        for record in records:
            try:
                items.append(CatalogItem.from_dynamodb_item(record))
            except (KeyError, ValueError, ValidationError) as e:
                logger.warning(f"Skipping unreadable catalog record {record.get('id')}: {e}")
        return items

    @staticmethod
    def _newest_update(records: list[dict[str, Any]]) -> datetime | None:
        stamps = [r["updated_at"] for r in records if r.get("updated_at")]
        if not stamps:
            return None
        return datetime.fromisoformat(max(stamps))


class SyncMetadataRepository:
    """Repository for per-source sync metadata.

    Manages one record per source in DynamoDB with source_id as partition key.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the metadata table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)

    def get_metadata(self, source_id: str) -> SyncMetadata | None:
        """Retrieve metadata for a source.

        Args:
            source_id: Source identifier

        Returns:
            SyncMetadata if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"source_id": source_id})

            if "Item" not in response:
                return None

            return SyncMetadata.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get sync metadata for {source_id}: {e}")
            return None

    def save_metadata(self, metadata: SyncMetadata) -> bool:
        """Save or overwrite metadata for a source.

        Args:
            metadata: SyncMetadata to save

        Returns:
            bool: True if save succeeded, False otherwise
        """
        try:
            self.table.put_item(Item=metadata.to_dynamodb_item())
            return True

        except ClientError as e:
            logger.error(f"Failed to save sync metadata for {metadata.source_id}: {e}")
            return False
