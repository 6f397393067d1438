"""Error taxonomy shared by the collection pipeline and the read path."""

from typing import Optional


class OneFeedError(Exception):
    """Base class for all application errors."""

    error_type = "INTERNAL_ERROR"


class ValidationError(OneFeedError):
    """Request has the wrong shape. Surfaced to the caller, never retried."""

    error_type = "VALIDATION_ERROR"


class InvalidRequest(ValidationError):
    """A listing request that cannot be served (e.g. no sources named)."""


class CatalogError(OneFeedError):
    """The feed source catalog could not be read."""

    error_type = "DATABASE_ERROR"


class FetchError(OneFeedError):
    """A single source could not be fetched or parsed."""

    error_type = "NETWORK_ERROR"

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source}: {reason}")
        self.source = source
        self.reason = reason


class FetchTimeout(FetchError):
    """A single source did not answer within its deadline."""


class CollectionTimeout(OneFeedError):
    """The shared collection deadline passed with sources still outstanding."""

    error_type = "TIMEOUT_ERROR"

    def __init__(self, timeout_seconds: float, outstanding: int):
        super().__init__(
            f"news collection timed out after {timeout_seconds:.1f}s "
            f"with {outstanding} source(s) outstanding"
        )
        self.timeout_seconds = timeout_seconds
        self.outstanding = outstanding


class StorageError(OneFeedError):
    """Durable storage rejected an operation."""

    error_type = "DATABASE_ERROR"


class PersistenceError(StorageError):
    """A batch insert failed.

    ``batches_committed`` batches were written before the failure and stay
    durable; nothing is rolled back.
    """

    def __init__(self, batches_committed: int, total_batches: int, cause: Optional[Exception] = None):
        super().__init__(
            f"batch insert failed after {batches_committed}/{total_batches} batches"
            + (f": {cause}" if cause else "")
        )
        self.batches_committed = batches_committed
        self.total_batches = total_batches
        self.cause = cause


class QueryError(StorageError):
    """A read against durable storage failed."""


class CacheBackendError(OneFeedError):
    """The cache backend errored (anything other than a plain miss)."""

    error_type = "REDIS_ERROR"


class CacheInvalidationError(CacheBackendError):
    """Listing cache could not be purged after new records were persisted.

    Data is durable; cached listings may be stale until invalidation is retried.
    """
