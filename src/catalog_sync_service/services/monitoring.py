"""Health scoring and alert generation for the sync engine.

Everything here is a pure function of a MonitoringSnapshot; nothing is
stored.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel

from catalog_sync_service.models.sync_models import CatalogStats, SyncMetadata, SyncStatusEnum

HEALTHY_THRESHOLD = 80
WARNING_THRESHOLD = 60
MIN_CATEGORY_DIVERSITY = 3
ERROR_WARNING_LEVEL = 3
ERROR_CRITICAL_LEVEL = 5
STALE_SYNC_HOURS = 24

AlertLevel = Literal["info", "warning", "error"]
HealthBand = Literal["healthy", "warning", "critical"]


class Alert(BaseModel):
    """A single monitoring alert."""

    level: AlertLevel
    message: str
    timestamp: datetime


@dataclass
class MonitoringSnapshot:
    """Current state of the subsystem as seen by monitoring.

    Attributes:
        scheduler_status: Output of SyncScheduler.get_status()
        catalog_stats: Persistent store statistics
        source_metadata: Metadata of the configured source, if any
        is_cache_healthy: Whether the store holds recent data
        has_source_id: Whether a source spreadsheet id is configured
        has_credentials: Whether source credentials are configured
    """

    scheduler_status: dict[str, Any]
    catalog_stats: CatalogStats
    source_metadata: SyncMetadata | None
    is_cache_healthy: bool
    has_source_id: bool
    has_credentials: bool


def _hours_since(moment: datetime | None, now: datetime) -> float | None:
    if moment is None:
        return None
    return (now - moment).total_seconds() / 3600


def calculate_health_score(snapshot: MonitoringSnapshot, now: datetime) -> int:
    """Weighted health score clamped to [0, 100].

    Weights: scheduler 30, store 30, source sync 25, configuration 15.
    """
    score = 0
    status = snapshot.scheduler_status

    if status.get("is_running"):
        score += 15
    if not status.get("is_syncing"):
        score += 10
    if status.get("consecutive_errors", 0) < ERROR_WARNING_LEVEL:
        score += 5

    if snapshot.is_cache_healthy:
        score += 15
    if snapshot.catalog_stats.total_count > 0:
        score += 10
    if len(snapshot.catalog_stats.per_category_counts) >= MIN_CATEGORY_DIVERSITY:
        score += 5

    metadata = snapshot.source_metadata
    if metadata is not None:
        if metadata.status == SyncStatusEnum.SUCCESS:
            score += 15
        elif metadata.status == SyncStatusEnum.SYNCING:
            score += 10

        hours = _hours_since(metadata.last_success, now)
        if hours is not None:
            if hours < 2:
                score += 10
            elif hours < STALE_SYNC_HOURS:
                score += 5

    if snapshot.has_source_id:
        score += 5
    if snapshot.has_credentials:
        score += 10

    return max(0, min(100, score))


def health_band(score: int) -> HealthBand:
    if score >= HEALTHY_THRESHOLD:
        return "healthy"
    if score >= WARNING_THRESHOLD:
        return "warning"
    return "critical"


def generate_alerts(snapshot: MonitoringSnapshot, now: datetime) -> list[Alert]:
    """List every condition an operator should know about.

    Args:
        snapshot: Current subsystem state
        now: Timestamp for the alerts and staleness checks

    Returns:
        list: Alerts, most structural first
    """
    alerts: list[Alert] = []

    def add(level: AlertLevel, message: str) -> None:
        alerts.append(Alert(level=level, message=message, timestamp=now))

    status = snapshot.scheduler_status
    consecutive_errors = status.get("consecutive_errors", 0)

    if not status.get("is_running"):
        add("error", "Polling service is not running")

    if consecutive_errors >= ERROR_WARNING_LEVEL:
        add("warning", f"High error rate: {consecutive_errors} consecutive errors")

    if consecutive_errors >= ERROR_CRITICAL_LEVEL:
        add("error", "Polling service stopped due to too many errors")

    if not snapshot.is_cache_healthy:
        add("warning", "Catalog store is stale or empty")

    if snapshot.catalog_stats.total_count == 0:
        add("error", "No items in catalog store")

    metadata = snapshot.source_metadata
    if metadata is not None:
        if metadata.status == SyncStatusEnum.ERROR:
            add("error", f"Source sync error: {metadata.last_error_message}")

        hours = _hours_since(metadata.last_success or metadata.last_attempt, now)
        if hours is not None and hours > STALE_SYNC_HOURS:
            add("warning", f"No successful sync in {round(hours)} hours")
    else:
        add("info", "No source sync metadata available")

    if not snapshot.has_source_id:
        add("warning", "Source spreadsheet id not configured")

    if not snapshot.has_credentials:
        add("error", "Source authentication not configured")

    return alerts
