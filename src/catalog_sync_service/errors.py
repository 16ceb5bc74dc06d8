"""Exception taxonomy for catalog synchronization.

Adapters raise these; repositories keep the simple None/False return
convention and the scheduler turns every failure into a SyncResult.
"""


class CatalogSyncError(Exception):
    """Base class for all catalog sync failures."""


class SourceError(CatalogSyncError):
    """The external source produced no usable data."""

    def __init__(self, message: str = "no data", source_id: str | None = None) -> None:
        super().__init__(message)
        self.source_id = source_id


class SourceUnavailableError(SourceError):
    """The source could not be reached at all (network or auth failure).

    Attributes:
        partition_failures: Partition name -> error message for every failed partition
    """

    def __init__(
        self,
        message: str = "no data",
        source_id: str | None = None,
        partition_failures: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, source_id=source_id)
        self.partition_failures = partition_failures or {}


class PartitionFetchError(CatalogSyncError):
    """A single category partition failed to load."""

    def __init__(self, partition: str, message: str) -> None:
        super().__init__(f"Partition {partition} failed: {message}")
        self.partition = partition


class RowValidationError(CatalogSyncError):
    """A single source row could not be turned into a catalog item."""

    def __init__(self, partition: str, row_number: int, message: str) -> None:
        super().__init__(f"{partition} row {row_number}: {message}")
        self.partition = partition
        self.row_number = row_number


class PersistenceError(CatalogSyncError):
    """Writing the catalog to the persistent store failed."""


class CircuitOpenError(CatalogSyncError):
    """Too many consecutive sync failures; periodic syncing has stopped."""

    def __init__(self, consecutive_errors: int) -> None:
        super().__init__(
            f"Circuit open after {consecutive_errors} consecutive sync failures"
        )
        self.consecutive_errors = consecutive_errors
