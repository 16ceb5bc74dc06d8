"""Service configuration loaded from environment variables."""

import os

from pydantic import BaseModel, Field


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class SyncSettings(BaseModel):
    """Tunables for the sync engine and its caches."""

    sync_interval_seconds: float = Field(default=60, gt=0)
    enabled: bool = False
    source_id: str | None = Field(None, description="Google Sheets spreadsheet id")
    sheets_api_key: str | None = None
    sheets_service_account_email: str | None = None
    sheets_private_key: str | None = Field(None, repr=False)
    max_retries: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=5, ge=0)
    max_consecutive_errors: int = Field(default=5, ge=1)
    menu_cache_capacity: int = Field(default=50, ge=1)
    menu_cache_ttl_seconds: float = Field(default=300, gt=0)
    expiring_cache_ttl_seconds: float = Field(default=300, gt=0)
    catalog_max_age_minutes: float = Field(default=30, gt=0)
    catalog_batch_size: int = Field(default=100, ge=1)
    catalog_table: str = "drink-catalog"
    metadata_table: str = "drink-catalog-sync-metadata"
    dynamodb_endpoint: str | None = None
    aws_region: str = "us-east-1"

    @property
    def has_service_account(self) -> bool:
        return bool(self.sheets_service_account_email and self.sheets_private_key)

    @property
    def has_credentials(self) -> bool:
        """Whether the source can be authenticated against, by API key or service account."""
        return bool(self.sheets_api_key) or self.has_service_account

    @classmethod
    def from_env(cls) -> "SyncSettings":
        """Build settings from the process environment.

        Polling is on in production, or anywhere ENABLE_CATALOG_POLLING=true.
        """
        enabled = os.getenv("ENVIRONMENT") == "production" or _env_bool("ENABLE_CATALOG_POLLING")

        return cls(
            sync_interval_seconds=float(os.getenv("CATALOG_SYNC_INTERVAL_SECONDS", "60")),
            enabled=enabled,
            source_id=os.getenv("GOOGLE_SHEETS_SPREADSHEET_ID") or None,
            sheets_api_key=os.getenv("GOOGLE_SHEETS_API_KEY") or None,
            sheets_service_account_email=(
                os.getenv("GOOGLE_SHEETS_SERVICE_ACCOUNT_EMAIL") or None
            ),
            sheets_private_key=os.getenv("GOOGLE_SHEETS_PRIVATE_KEY") or None,
            max_retries=int(os.getenv("SYNC_MAX_RETRIES", "3")),
            retry_delay_seconds=float(os.getenv("SYNC_RETRY_DELAY_SECONDS", "5")),
            max_consecutive_errors=int(os.getenv("SYNC_MAX_CONSECUTIVE_ERRORS", "5")),
            menu_cache_capacity=int(os.getenv("MENU_CACHE_CAPACITY", "50")),
            menu_cache_ttl_seconds=float(os.getenv("MENU_CACHE_TTL_SECONDS", "300")),
            expiring_cache_ttl_seconds=float(os.getenv("EXPIRING_CACHE_TTL_SECONDS", "300")),
            catalog_max_age_minutes=float(os.getenv("CATALOG_MAX_AGE_MINUTES", "30")),
            catalog_batch_size=int(os.getenv("CATALOG_BATCH_SIZE", "100")),
            catalog_table=os.getenv("DYNAMODB_CATALOG_TABLE", "drink-catalog"),
            metadata_table=os.getenv("DYNAMODB_SYNC_METADATA_TABLE", "drink-catalog-sync-metadata"),
            dynamodb_endpoint=os.getenv("DYNAMODB_ENDPOINT") or None,
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
        )
