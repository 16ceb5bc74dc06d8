"""FastAPI application for the catalog sync admin endpoints."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from catalog_sync_service.config import SyncSettings
from catalog_sync_service.models.catalog_models import DrinkCategory
from catalog_sync_service.models.sync_models import SyncMetadata
from catalog_sync_service.repositories.catalog_repositories import (
    CatalogRepository,
    SyncMetadataRepository,
)
from catalog_sync_service.services.catalog_read_service import CatalogReadService
from catalog_sync_service.services.monitoring import (
    Alert,
    MonitoringSnapshot,
    calculate_health_score,
    generate_alerts,
    health_band,
)
from catalog_sync_service.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class HealthSummary(BaseModel):
    """Derived health score and band."""

    score: int
    status: str
    is_cache_healthy: bool


class StatusResponse(BaseModel):
    """Response model for the admin status endpoint."""

    polling: dict[str, Any]
    cache: dict[str, Any]
    source_metadata: SyncMetadata | None
    health: HealthSummary
    alerts: list[Alert]
    timestamp: datetime


class SyncTriggerResponse(BaseModel):
    """Response model for manual sync triggers."""

    success: bool
    message: str
    skipped: bool = False
    data: dict[str, Any] | None = None


class CacheClearResponse(BaseModel):
    """Response model for cache invalidation."""

    success: bool
    message: str
    timestamp: datetime


class PollingResponse(BaseModel):
    """Response model for starting or stopping the scheduler."""

    success: bool
    is_running: bool
    message: str


class PollingConfigUpdate(BaseModel):
    """Runtime polling settings; omitted fields are left unchanged."""

    sync_interval_seconds: float | None = Field(None, gt=0)
    enabled: bool | None = None
    max_retries: int | None = Field(None, ge=1)
    retry_delay_seconds: float | None = Field(None, ge=0)
    max_consecutive_errors: int | None = Field(None, ge=1)


class PollingConfigResponse(BaseModel):
    """Response model for runtime configuration changes."""

    success: bool
    is_running: bool
    config: dict[str, Any]


def create_app(
    scheduler: SyncScheduler,
    read_service: CatalogReadService,
    catalog_repository: CatalogRepository,
    metadata_repository: SyncMetadataRepository,
    settings: SyncSettings,
    lifespan: Any = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        scheduler: The process-wide sync scheduler
        read_service: Read path owning the expiring and menu caches
        catalog_repository: Persistent catalog store
        metadata_repository: Sync metadata store
        settings: Service configuration
        lifespan: Optional lifespan context starting and stopping the scheduler

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Drink Catalog Sync Admin API",
        description="Admin API for monitoring and controlling catalog synchronization",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.scheduler = scheduler
    app.state.read_service = read_service
    app.state.catalog_repository = catalog_repository
    app.state.metadata_repository = metadata_repository
    app.state.settings = settings

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        return HealthResponse(status="healthy")

    @app.get("/admin/status", response_model=StatusResponse, tags=["Sync Status"])
    async def get_status() -> StatusResponse:
        """Report scheduler state, cache contents, source metadata, health and alerts."""
        now = datetime.now(UTC)
        catalog_stats = app.state.catalog_repository.get_stats()
        is_cache_healthy = app.state.catalog_repository.is_healthy(
            app.state.settings.catalog_max_age_minutes
        )
        source_metadata = None
        if app.state.settings.source_id:
            source_metadata = app.state.metadata_repository.get_metadata(
                app.state.settings.source_id
            )

        snapshot = MonitoringSnapshot(
            scheduler_status=app.state.scheduler.get_status(),
            catalog_stats=catalog_stats,
            source_metadata=source_metadata,
            is_cache_healthy=is_cache_healthy,
            has_source_id=bool(app.state.settings.source_id),
            has_credentials=app.state.settings.has_credentials,
        )
        score = calculate_health_score(snapshot, now)

        return StatusResponse(
            polling=snapshot.scheduler_status,
            cache={
                "store": catalog_stats.model_dump(mode="json"),
                "menu_cache": app.state.read_service.menu_cache.stats(),
                "expiring_cache_entries": app.state.read_service.expiring_cache.size(),
            },
            source_metadata=source_metadata,
            health=HealthSummary(
                score=score, status=health_band(score), is_cache_healthy=is_cache_healthy
            ),
            alerts=generate_alerts(snapshot, now),
            timestamp=now,
        )

    @app.post("/admin/sync", response_model=SyncTriggerResponse, tags=["Manual Sync"])
    async def trigger_sync(
        category: DrinkCategory | None = None,
    ) -> SyncTriggerResponse | JSONResponse:
        """Run a sync now, optionally limited to one category.

        Args:
            category: Category partition to sync instead of the full catalog

        Returns:
            Sync result; HTTP 400 when the sync failed or was already running
        """
        logger.info(
            f"Manual sync triggered via API{f' for category {category.value}' if category else ''}"
        )
        result = await app.state.scheduler.perform_manual_sync(category=category)
        response = SyncTriggerResponse(**result)

        if not response.success:
            return JSONResponse(status_code=400, content=response.model_dump())

        return response

    @app.delete("/admin/cache", response_model=CacheClearResponse, tags=["Cache"])
    async def clear_cache(venue_id: str | None = None) -> CacheClearResponse:
        """Invalidate one venue's menu, or clear the whole expiring cache.

        Args:
            venue_id: Venue whose menu cache entry should be dropped
        """
        if venue_id:
            removed = app.state.read_service.menu_cache.invalidate(venue_id)
            message = (
                f"Menu cache cleared for venue {venue_id}"
                if removed
                else f"No cached menu for venue {venue_id}"
            )
        else:
            app.state.read_service.expiring_cache.clear()
            logger.info("Catalog cache cleared manually")
            message = "Cache cleared successfully"

        return CacheClearResponse(success=True, message=message, timestamp=datetime.now(UTC))

    @app.post("/admin/polling/start", response_model=PollingResponse, tags=["Polling"])
    async def start_polling() -> PollingResponse:
        """Re-arm the periodic sync, closing an open circuit."""
        running = app.state.scheduler.start()
        message = "Polling running" if running else "Polling disabled or not configured"
        return PollingResponse(success=running, is_running=running, message=message)

    @app.post("/admin/polling/stop", response_model=PollingResponse, tags=["Polling"])
    async def stop_polling() -> PollingResponse:
        app.state.scheduler.stop()
        return PollingResponse(success=True, is_running=False, message="Polling stopped")

    @app.patch("/admin/polling/config", response_model=PollingConfigResponse, tags=["Polling"])
    async def update_polling_config(update: PollingConfigUpdate) -> PollingConfigResponse:
        """Change polling settings, re-arming the timer when the interval changes."""
        status = app.state.scheduler.update_config(**update.model_dump(exclude_none=True))
        return PollingConfigResponse(
            success=True, is_running=status["is_running"], config=status["config"]
        )

    return app
