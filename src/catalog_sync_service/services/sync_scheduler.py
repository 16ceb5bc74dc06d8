"""Background scheduler that keeps the persistent catalog in sync with the source."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from catalog_sync_service.adapters.base_adapter import CatalogSourceAdapter
from catalog_sync_service.adapters.row_mapper import PARTITION_CATEGORIES
from catalog_sync_service.config import SyncSettings
from catalog_sync_service.errors import CircuitOpenError, PersistenceError, SourceError
from catalog_sync_service.models.catalog_models import CatalogItem, DrinkCategory
from catalog_sync_service.models.sync_models import SyncMetadata, SyncResult, SyncStatusEnum
from catalog_sync_service.observability import metrics
from catalog_sync_service.observability.decorators import traced
from catalog_sync_service.repositories.catalog_repositories import (
    CatalogRepository,
    SyncMetadataRepository,
)

logger = logging.getLogger(__name__)

ALREADY_IN_PROGRESS = "Sync already in progress"

RUNTIME_SETTINGS = frozenset(
    {
        "sync_interval_seconds",
        "enabled",
        "max_retries",
        "retry_delay_seconds",
        "max_consecutive_errors",
    }
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SyncScheduler:
    """Periodic catalog synchronization with retry and a circuit breaker.

    One instance is built at process start and handed to the admin API.

    States: stopped -> running on start() (when enabled and a source id is
    configured), running -> stopped on stop() or when ``max_consecutive_errors``
    syncs in a row have failed. While running, a timer task launches
    perform_sync() every ``sync_interval_seconds`` unless a sync is already in
    flight; such ticks are skipped, not queued.

    Concurrency: everything runs on one asyncio event loop. The single-flight
    flag is tested and set with no await in between, so two callers can never
    both pass it. stop() cancels only the sleeping timer task; a sync that is
    already running finishes on its own task.
    """

    def __init__(
        self,
        adapter: CatalogSourceAdapter,
        catalog_repository: CatalogRepository,
        metadata_repository: SyncMetadataRepository,
        settings: SyncSettings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the scheduler.

        Args:
            adapter: Source fetch adapter
            catalog_repository: Persistent catalog store
            metadata_repository: Store for per-source sync metadata
            settings: Interval, retry and breaker configuration
            sleep: Awaitable delay used between retries
            clock: Source of the current UTC time
        """
        self.adapter = adapter
        self.catalog_repository = catalog_repository
        self.metadata_repository = metadata_repository
        self.settings = settings
        self._sleep = sleep
        self._clock = clock

        self._timer_task: asyncio.Task[None] | None = None
        self._sync_tasks: set[asyncio.Task[Any]] = set()
        self._is_syncing = False
        self.consecutive_errors = 0

    @property
    def source_id(self) -> str | None:
        return self.settings.source_id

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    def start(self, run_initial_sync: bool = True) -> bool:
        """Arm the periodic timer and launch an initial sync.

        Must be called from a running event loop. Starting also closes an
        open circuit: the error streak is forgotten.

        Args:
            run_initial_sync: Launch a sync immediately instead of waiting one interval

        Returns:
            bool: True if the scheduler is running after the call
        """
        if not self.settings.enabled:
            logger.info("Catalog polling disabled by configuration")
            return False

        if not self.source_id:
            logger.warning("No source spreadsheet id configured, polling disabled")
            return False

        if self._timer_task is not None:
            logger.info("Catalog polling already running")
            return True

        logger.info(
            f"Starting catalog polling for source {self.source_id} "
            f"(interval: {self.settings.sync_interval_seconds}s)"
        )
        self.consecutive_errors = 0
        if run_initial_sync:
            self._launch_sync()
        self._timer_task = asyncio.get_running_loop().create_task(self._run_timer())
        return True

    def stop(self) -> None:
        """Cancel the periodic timer. An in-flight sync is left to finish."""
        task, self._timer_task = self._timer_task, None
        if task is None:
            return
        task.cancel()
        logger.info("Catalog polling stopped")

    async def shutdown(self) -> None:
        """Stop polling and wait for any in-flight sync to complete."""
        self.stop()
        if self._sync_tasks:
            await asyncio.gather(*self._sync_tasks, return_exceptions=True)

    async def _run_timer(self) -> None:
        while self._timer_task is not None:
            await asyncio.sleep(self.settings.sync_interval_seconds)
            if self._timer_task is None:
                break
            if self._is_syncing:
                logger.debug("Previous sync still running, skipping tick")
                continue
            self._launch_sync()

    def _launch_sync(self) -> None:
        task = asyncio.get_running_loop().create_task(self.perform_sync())
        self._sync_tasks.add(task)
        task.add_done_callback(self._sync_tasks.discard)

    @traced("catalog.perform_sync")
    async def perform_sync(self) -> SyncResult:
        """Run one full sync cycle.

        Returns:
            SyncResult: Never raises; failures are reported in the result
        """
        if self._is_syncing:
            logger.info("Sync already in progress, skipping")
            return SyncResult(success=False, message=ALREADY_IN_PROGRESS)

        self._is_syncing = True
        try:
            return await self._sync_cycle(category=None)
        finally:
            self._is_syncing = False

    async def perform_manual_sync(self, category: DrinkCategory | None = None) -> dict[str, Any]:
        """Run a sync on demand, regardless of the running state.

        This is the only way to sync while the circuit is open. It does not
        re-arm the periodic timer.

        Args:
            category: Limit the sync to one category partition

        Returns:
            dict: ``{success, message, data?}``
        """
        if self._is_syncing:
            return SyncResult(success=False, message=ALREADY_IN_PROGRESS).to_dict()

        logger.info(f"Manual sync requested for source {self.source_id}")

        if category is None:
            result = await self.perform_sync()
        else:
            self._is_syncing = True
            try:
                result = await self._sync_cycle(category=category)
            finally:
                self._is_syncing = False

        if result.success:
            message = (
                "Sync skipped: catalog is fresh"
                if result.skipped
                else "Sync completed successfully"
            )
            return SyncResult(
                success=True, message=message, skipped=result.skipped, data=result.data
            ).to_dict()
        return SyncResult(
            success=False, message=f"Sync failed: {result.message}", data=result.data
        ).to_dict()

    def update_config(self, **changes: Any) -> dict[str, Any]:
        """Change polling settings at runtime.

        The shared settings object is updated in place. A running timer is
        re-armed when the interval changes and stopped when polling is disabled.

        Args:
            **changes: Any of the ``RUNTIME_SETTINGS`` fields

        Returns:
            dict: The scheduler status after the change

        Raises:
            ValueError: On an unknown field
            pydantic.ValidationError: On an out-of-range value
        """
        unknown = set(changes) - RUNTIME_SETTINGS
        if unknown:
            raise ValueError(f"Settings cannot be changed at runtime: {sorted(unknown)}")

        validated = type(self.settings).model_validate({**self.settings.model_dump(), **changes})
        interval_changed = (
            validated.sync_interval_seconds != self.settings.sync_interval_seconds
        )
        for name in changes:
            setattr(self.settings, name, getattr(validated, name))
        logger.info(f"Polling configuration updated: {changes}")

        if self.is_running and not self.settings.enabled:
            self.stop()
        elif self.is_running and interval_changed:
            self.stop()
            self.start(run_initial_sync=False)

        return self.get_status()

    def get_status(self) -> dict[str, Any]:
        """Describe the scheduler for monitoring."""
        return {
            "is_running": self.is_running,
            "is_syncing": self.is_syncing,
            "consecutive_errors": self.consecutive_errors,
            "config": {
                "sync_interval_seconds": self.settings.sync_interval_seconds,
                "enabled": self.settings.enabled,
                "source_id": self.source_id,
                "max_retries": self.settings.max_retries,
                "retry_delay_seconds": self.settings.retry_delay_seconds,
                "max_consecutive_errors": self.settings.max_consecutive_errors,
            },
        }

    async def should_sync(self) -> bool:
        """Decide whether the stored catalog is stale enough to resync.

        Returns:
            bool: True when the store is unhealthy, metadata is missing, the
            last success is older than the interval, or the check itself fails
        """
        interval_minutes = max(1.0, self.settings.sync_interval_seconds / 60)

        try:
            if not self.catalog_repository.is_healthy(interval_minutes):
                logger.info("Catalog is empty or stale, sync needed")
                return True

            metadata = self.metadata_repository.get_metadata(self.source_id or "")
            if metadata is None or metadata.last_success is None:
                logger.info("No successful sync recorded, sync needed")
                return True

            elapsed = self._clock() - metadata.last_success
            if elapsed >= timedelta(seconds=self.settings.sync_interval_seconds):
                logger.info("Sync interval reached, sync needed")
                return True

            return False

        except Exception as e:
            logger.error(f"Error checking whether sync is needed: {e}")
            return True

    async def fetch_with_retry(
        self, category: DrinkCategory | None = None
    ) -> list[CatalogItem]:
        """Fetch from the source, retrying with a fixed delay.

        Args:
            category: Fetch only this category's partition

        Returns:
            list: Non-empty list of fetched items

        Raises:
            Exception: The error of the final attempt
        """
        max_attempts = self.settings.max_retries
        last_error: Exception | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                logger.info(
                    f"Fetching catalog from source {self.source_id} "
                    f"(attempt {attempt}/{max_attempts})"
                )
                if category is None:
                    items = await self.adapter.fetch_all()
                else:
                    items = await self.adapter.fetch_partition_items(_partition_for(category))

                if items:
                    return items
                raise SourceError(source_id=self.source_id)

            except Exception as e:
                last_error = e
                logger.warning(
                    f"Fetch attempt {attempt} failed for source {self.source_id}: {e}",
                    extra={"source_id": self.source_id, "attempt": attempt},
                )
                if attempt < max_attempts:
                    logger.info(f"Retrying in {self.settings.retry_delay_seconds}s")
                    await self._sleep(self.settings.retry_delay_seconds)

        raise last_error or SourceError(source_id=self.source_id)

    async def _sync_cycle(self, category: DrinkCategory | None) -> SyncResult:
        source_id = self.source_id or ""
        started = time.monotonic()
        previous = self.metadata_repository.get_metadata(source_id)
        metadata = previous.model_copy() if previous else SyncMetadata(source_id=source_id)

        self._save_metadata(
            metadata, status=SyncStatusEnum.SYNCING, last_attempt=self._clock()
        )

        try:
            if category is None and not await self.should_sync():
                logger.info("Catalog is fresh, skipping sync")
                self.consecutive_errors = 0
                self._save_metadata(
                    metadata,
                    status=previous.status if previous else SyncStatusEnum.IDLE,
                    consecutive_errors=0,
                )
                metrics.record_sync_skipped(source_id)
                return SyncResult(success=True, message="No changes needed", skipped=True)

            items = await self.fetch_with_retry(category)

            if category is None:
                stored = self.catalog_repository.replace_all(items)
            else:
                stored = self.catalog_repository.replace_category(category, items)
            if not stored:
                raise PersistenceError("Failed to write catalog to persistent store")

        except Exception as e:
            return self._record_failure(metadata, e)

        counts = _count_by_category(items)
        if category is not None:
            counts = {**metadata.per_category_counts, **counts}
        duration = time.monotonic() - started

        self.consecutive_errors = 0
        self._save_metadata(
            metadata,
            status=SyncStatusEnum.SUCCESS,
            last_success=self._clock(),
            consecutive_errors=0,
            per_category_counts=counts,
            total_items=sum(counts.values()),
            last_error_message=None,
        )
        metrics.record_sync_success(source_id, len(items), duration)
        logger.info(f"Sync completed in {duration:.2f}s: {len(items)} items stored")

        return SyncResult(
            success=True,
            message="Sync completed successfully",
            data={
                "total_items": len(items),
                "category_stats": counts,
                "duration_seconds": duration,
            },
        )

    def _record_failure(self, metadata: SyncMetadata, error: Exception) -> SyncResult:
        self.consecutive_errors += 1
        message = str(error) or type(error).__name__
        logger.error(
            f"Sync failed for source {self.source_id} "
            f"(consecutive errors: {self.consecutive_errors}): {message}",
            extra={"source_id": self.source_id},
        )
        metrics.record_sync_failure(self.source_id or "", type(error).__name__)

        self._save_metadata(
            metadata,
            status=SyncStatusEnum.ERROR,
            consecutive_errors=self.consecutive_errors,
            last_error_message=message,
        )

        data: dict[str, Any] = {"consecutive_errors": self.consecutive_errors}
        if self.consecutive_errors >= self.settings.max_consecutive_errors:
            breaker = CircuitOpenError(self.consecutive_errors)
            logger.error(f"{breaker}, stopping catalog polling")
            metrics.record_circuit_open(self.source_id or "")
            self.stop()
            data["circuit_open"] = True

        return SyncResult(success=False, message=message, data=data)

    def _save_metadata(self, metadata: SyncMetadata, **changes: Any) -> None:
        for key, value in changes.items():
            setattr(metadata, key, value)
        if not self.metadata_repository.save_metadata(metadata):
            logger.warning(f"Could not persist sync metadata for {metadata.source_id}")


def _partition_for(category: DrinkCategory) -> str:
    for partition, mapped in PARTITION_CATEGORIES.items():
        if mapped == category:
            return partition
    raise ValueError(f"No source partition for category {category.value}")


def _count_by_category(items: list[CatalogItem]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for item in items:
        counts[item.category.value] = counts.get(item.category.value, 0) + 1
    return counts
