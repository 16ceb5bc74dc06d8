"""Main application entry point for the drink catalog sync service.

This module wires the scheduler, caches, repositories and admin API together
once per process and runs them locally or in production.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import boto3
from fastapi import FastAPI

from catalog_sync_service.adapters.sheets_adapter import (
    GoogleSheetsAdapter,
    service_account_credentials,
)
from catalog_sync_service.cache.expiring_cache import ExpiringCache
from catalog_sync_service.cache.menu_cache import VenueMenuCache
from catalog_sync_service.config import SyncSettings
from catalog_sync_service.handlers.api_handler import create_app
from catalog_sync_service.observability import configure_logging, setup_observability
from catalog_sync_service.repositories.catalog_repositories import (
    CatalogRepository,
    SyncMetadataRepository,
)
from catalog_sync_service.services.catalog_read_service import CatalogReadService
from catalog_sync_service.services.sync_scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def get_dynamodb_resource(settings: SyncSettings) -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Args:
        settings: Service settings carrying endpoint and region

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    if settings.dynamodb_endpoint:
        logger.info(f"Using local DynamoDB at {settings.dynamodb_endpoint}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=settings.dynamodb_endpoint,
            region_name=settings.aws_region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    logger.info(f"Using AWS DynamoDB in region {settings.aws_region}")
    # Default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=settings.aws_region)


def create_application(settings: SyncSettings | None = None) -> FastAPI:
    """Create the FastAPI application with all dependencies.

    The scheduler is built here exactly once and started by the app lifespan,
    so every admin request talks to the same instance.

    Args:
        settings: Overrides for the environment-derived settings

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    settings = settings or SyncSettings.from_env()

    logger.info("Initializing drink catalog sync service...")

    dynamodb_resource = get_dynamodb_resource(settings)
    catalog_repository = CatalogRepository(
        dynamodb_resource=dynamodb_resource,
        table_name=settings.catalog_table,
        batch_size=settings.catalog_batch_size,
    )
    metadata_repository = SyncMetadataRepository(
        dynamodb_resource=dynamodb_resource, table_name=settings.metadata_table
    )
    logger.info(
        f"Repositories configured - catalog: {settings.catalog_table}, "
        f"metadata: {settings.metadata_table}"
    )

    credentials = None
    if settings.sheets_api_key:
        logger.info("Using API key authentication for Google Sheets")
    elif settings.has_service_account:
        logger.info(f"Using service account {settings.sheets_service_account_email}")
        credentials = service_account_credentials(
            settings.sheets_service_account_email or "", settings.sheets_private_key or ""
        )
    else:
        logger.warning("Google Sheets credentials not configured - source fetches will fail")

    adapter = GoogleSheetsAdapter(
        spreadsheet_id=settings.source_id or "",
        api_key=settings.sheets_api_key,
        credentials=credentials,
    )

    read_service = CatalogReadService(
        expiring_cache=ExpiringCache(default_ttl_seconds=settings.expiring_cache_ttl_seconds),
        menu_cache=VenueMenuCache(
            capacity=settings.menu_cache_capacity,
            ttl_seconds=settings.menu_cache_ttl_seconds,
        ),
        catalog_repository=catalog_repository,
        adapter=adapter,
    )

    scheduler = SyncScheduler(
        adapter=adapter,
        catalog_repository=catalog_repository,
        metadata_repository=metadata_repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler.start()
        yield
        await scheduler.shutdown()

    app = create_app(
        scheduler=scheduler,
        read_service=read_service,
        catalog_repository=catalog_repository,
        metadata_repository=metadata_repository,
        settings=settings,
        lifespan=lifespan,
    )
    setup_observability(app)

    logger.info("Drink catalog sync service initialized successfully")

    return app


# Create the FastAPI application instance (only when not in test mode)
# This prevents the app from being created during test collection
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    # Create a placeholder app for test imports
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8001"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
