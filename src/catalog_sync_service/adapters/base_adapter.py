"""Base adapter for tabular catalog sources.

A source is split into named category partitions, each a 2-D table whose
first row names the fields. Subclasses only know how to load one partition's
raw rows; this base class owns partial-failure handling and row mapping.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from catalog_sync_service.adapters.row_mapper import map_row
from catalog_sync_service.errors import RowValidationError, SourceError, SourceUnavailableError
from catalog_sync_service.models.catalog_models import CatalogItem
from catalog_sync_service.observability import metrics
from catalog_sync_service.observability.decorators import traced

logger = logging.getLogger(__name__)

DEFAULT_PARTITIONS: tuple[str, ...] = ("Beer", "Wine", "Cocktail", "Spirit", "Non_Alcoholic")


class CatalogSourceAdapter(ABC):
    """Abstract base class for catalog source adapters.

    Error handling follows three levels:
    - a malformed row is skipped, the rest of the partition is kept
    - a failed partition is skipped, the other partitions are kept
    - only when no partition yields any item is SourceError raised
    """

    def __init__(self, source_id: str, partitions: tuple[str, ...] = DEFAULT_PARTITIONS) -> None:
        """Initialize the adapter.

        Args:
            source_id: Default source locator (e.g. spreadsheet id)
            partitions: Ordered partition names to read
        """
        self.source_id = source_id
        self.partitions = partitions

    @abstractmethod
    async def fetch_partition_rows(self, partition: str, source_locator: str) -> list[list[Any]]:
        """Load the raw table of one partition, header row first.

        Args:
            partition: Partition name (e.g. "Beer")
            source_locator: Which source to read from

        Returns:
            list: Header row followed by data rows; empty if the partition is empty

        Raises:
            PartitionFetchError: If the partition could not be loaded
        """

    @traced("catalog.fetch_all")
    async def fetch_all(self, source_locator: str | None = None) -> list[CatalogItem]:
        """Fetch every partition and return the union of what succeeded.

        Args:
            source_locator: Source to read (defaults to the adapter's source id)

        Returns:
            list: Catalog items, first occurrence wins for duplicate ids

        Raises:
            SourceUnavailableError: If every partition failed
            SourceError: If no partition produced any item
        """
        locator = source_locator or self.source_id
        items: list[CatalogItem] = []
        seen_ids: set[str] = set()
        failures: dict[str, str] = {}

        for partition in self.partitions:
            try:
                partition_items = await self.fetch_partition_items(partition, locator)
            except Exception as e:
                # One bad partition must never cost the others.
                logger.warning(
                    f"Skipping partition {partition} of source {locator}: {e}",
                    extra={"source_id": locator, "partition": partition},
                )
                metrics.record_partition_failure(partition)
                failures[partition] = str(e)
                continue

            for item in partition_items:
                if item.id in seen_ids:
                    logger.warning(
                        f"Duplicate item id {item.id} in partition {partition}, keeping first",
                        extra={"source_id": locator, "partition": partition},
                    )
                    metrics.record_row_skipped(partition, "duplicate_id")
                    continue
                seen_ids.add(item.id)
                items.append(item)

        if not items:
            if len(failures) == len(self.partitions):
                logger.error(f"All partitions failed for source {locator}")
                raise SourceUnavailableError(source_id=locator, partition_failures=failures)
            logger.error(f"No catalog rows found in source {locator}")
            raise SourceError(source_id=locator)

        logger.info(
            f"Fetched {len(items)} items from source {locator}"
            f" ({len(self.partitions) - len(failures)}/{len(self.partitions)} partitions)"
        )
        return items

    async def fetch_partition_items(
        self, partition: str, source_locator: str | None = None
    ) -> list[CatalogItem]:
        """Fetch and map a single partition.

        Args:
            partition: Partition name
            source_locator: Source to read (defaults to the adapter's source id)

        Returns:
            list: Valid items from the partition (possibly empty)

        Raises:
            PartitionFetchError: If the partition could not be loaded
        """
        locator = source_locator or self.source_id
        table = await self.fetch_partition_rows(partition, locator)
        if not table:
            logger.info(f"No data in partition {partition} of source {locator}")
            return []

        headers = [str(h).strip() for h in table[0]]
        items: list[CatalogItem] = []
        for row_number, row in enumerate(table[1:], start=1):
            try:
                item = map_row(headers, row, partition, row_number)
            except RowValidationError as e:
                logger.warning(f"Skipping invalid row: {e}", extra={"partition": partition})
                metrics.record_row_skipped(partition, "invalid")
                continue
            if item is None:
                continue
            items.append(item)

        logger.debug(f"Mapped {len(items)} items from partition {partition}")
        return items
