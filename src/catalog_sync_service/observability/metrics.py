"""Custom metrics for the catalog sync service."""

from opentelemetry import metrics

meter = metrics.get_meter("catalog-sync")

sync_success_counter = meter.create_counter(
    name="catalog_sync_success_total",
    description="Total number of successful catalog syncs",
    unit="1",
)

sync_failure_counter = meter.create_counter(
    name="catalog_sync_failure_total",
    description="Total number of failed catalog syncs by error type",
    unit="1",
)

sync_skipped_counter = meter.create_counter(
    name="catalog_sync_skipped_total",
    description="Syncs skipped because the stored catalog was fresh",
    unit="1",
)

sync_duration_histogram = meter.create_histogram(
    name="catalog_sync_duration_seconds",
    description="Duration of catalog sync runs",
    unit="s",
)

partition_failure_counter = meter.create_counter(
    name="source_partition_failure_total",
    description="Source partitions that failed to load, by partition",
    unit="1",
)

rows_skipped_counter = meter.create_counter(
    name="source_rows_skipped_total",
    description="Source rows skipped during mapping, by partition and reason",
    unit="1",
)

cache_lookup_counter = meter.create_counter(
    name="catalog_cache_lookup_total",
    description="Catalog lookups by cache tier and outcome",
    unit="1",
)

circuit_open_counter = meter.create_counter(
    name="catalog_sync_circuit_open_total",
    description="Times the scheduler stopped itself after consecutive failures",
    unit="1",
)


def record_sync_success(source_id: str, item_count: int, duration_seconds: float) -> None:
    """Record a successful sync and its duration.

    Args:
        source_id: The source that was synced
        item_count: Number of items written to the store
        duration_seconds: Wall time of the run
    """
    sync_success_counter.add(1, {"source_id": source_id})
    sync_duration_histogram.record(
        duration_seconds, {"source_id": source_id, "item_count_bucket": _bucket(item_count)}
    )


def record_sync_failure(source_id: str, error_type: str) -> None:
    sync_failure_counter.add(1, {"source_id": source_id, "error_type": error_type})


def record_sync_skipped(source_id: str) -> None:
    sync_skipped_counter.add(1, {"source_id": source_id})


def record_partition_failure(partition: str) -> None:
    partition_failure_counter.add(1, {"partition": partition})


def record_row_skipped(partition: str, reason: str) -> None:
    rows_skipped_counter.add(1, {"partition": partition, "reason": reason})


def record_cache_lookup(tier: str, hit: bool) -> None:
    """Record a lookup against one cache tier.

    Args:
        tier: "memory", "menu" or "store"
        hit: Whether the tier answered the lookup
    """
    cache_lookup_counter.add(1, {"tier": tier, "outcome": "hit" if hit else "miss"})


def record_circuit_open(source_id: str) -> None:
    circuit_open_counter.add(1, {"source_id": source_id})


def _bucket(item_count: int) -> str:
    if item_count < 100:
        return "<100"
    if item_count < 1000:
        return "<1000"
    return ">=1000"
