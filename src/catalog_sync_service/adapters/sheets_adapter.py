"""Google Sheets catalog source adapter.

Reads each category partition (one sheet per category) through the Sheets
v4 ``values`` endpoint. Requests authenticate with an API key when one is
configured, otherwise with an OAuth bearer token minted for a service account.
"""

import asyncio
import logging
from typing import Any

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from catalog_sync_service.adapters.base_adapter import DEFAULT_PARTITIONS, CatalogSourceAdapter
from catalog_sync_service.errors import PartitionFetchError

logger = logging.getLogger(__name__)

SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def service_account_credentials(
    email: str, private_key: str
) -> service_account.Credentials:
    """Build read-only Sheets credentials for a service account.

    Args:
        email: Service account client email
        private_key: PEM private key; escaped ``\\n`` sequences from env files are unescaped

    Returns:
        Credentials scoped to spreadsheets.readonly
    """
    info = {
        "type": "service_account",
        "client_email": email,
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": GOOGLE_TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(
        info, scopes=[SHEETS_READONLY_SCOPE]
    )


class GoogleSheetsAdapter(CatalogSourceAdapter):
    """Adapter for spreadsheets served by the Google Sheets API."""

    def __init__(
        self,
        spreadsheet_id: str,
        api_key: str | None = None,
        credentials: service_account.Credentials | None = None,
        partitions: tuple[str, ...] = DEFAULT_PARTITIONS,
        base_url: str = "https://sheets.googleapis.com",
        timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize the Sheets adapter.

        Args:
            spreadsheet_id: Default spreadsheet to read
            api_key: Google API key with Sheets read access; preferred when set
            credentials: Service account credentials used when there is no API key
            partitions: Sheet names, one per category
            base_url: Sheets API base URL
            timeout_seconds: Per-request timeout
        """
        super().__init__(source_id=spreadsheet_id, partitions=partitions)
        self.api_key = api_key
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def partition_url(self, partition: str, source_locator: str) -> str:
        return f"{self.base_url}/v4/spreadsheets/{source_locator}/values/{partition}!A:Z"

    async def _auth(self) -> tuple[dict[str, str], dict[str, str]]:
        """Return query params and headers that authenticate one request."""
        if self.api_key:
            return {"key": self.api_key}, {}

        if self.credentials is None:
            return {}, {}

        if not self.credentials.valid:
            logger.debug(
                f"Refreshing service account token for {self.credentials.service_account_email}"
            )
            await asyncio.to_thread(self.credentials.refresh, GoogleAuthRequest())
        return {}, {"Authorization": f"Bearer {self.credentials.token}"}

    async def fetch_partition_rows(self, partition: str, source_locator: str) -> list[list[Any]]:
        """Load one sheet's values, header row included.

        Args:
            partition: Sheet name
            source_locator: Spreadsheet id

        Returns:
            list: Rows as returned by the API (empty when the sheet is empty)

        Raises:
            PartitionFetchError: On auth, HTTP or network errors, or malformed payloads
        """
        url = self.partition_url(partition, source_locator)

        try:
            params, auth_headers = await self._auth()
        except GoogleAuthError as e:
            raise PartitionFetchError(partition, f"service account auth failed: {e}") from e

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.get(
                    url,
                    params=params,
                    headers={"Accept": "application/json", **auth_headers},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise PartitionFetchError(
                partition, f"HTTP {e.response.status_code} from Sheets API"
            ) from e
        except httpx.RequestError as e:
            raise PartitionFetchError(partition, f"request failed: {e}") from e
        except ValueError as e:
            raise PartitionFetchError(partition, f"invalid JSON: {e}") from e

        values = data.get("values", []) if isinstance(data, dict) else None
        if not isinstance(values, list):
            raise PartitionFetchError(partition, "response has no values table")

        logger.debug(f"Loaded {len(values)} rows from {partition} of {source_locator}")
        return values
