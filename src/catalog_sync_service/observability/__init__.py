"""Logging, tracing and metrics for the catalog sync service."""

from catalog_sync_service.observability.config import configure_logging, setup_observability
from catalog_sync_service.observability.decorators import traced

__all__ = ["setup_observability", "configure_logging", "traced"]
