"""Typed errors raised by the cache, repositories and sync service."""


class CampaignCacheError(Exception):
    """Base class for all cache errors."""


class StorageFatalError(CampaignCacheError):
    """Raised when the database cannot be brought to the expected schema.

    The cache is unusable after this error; callers should fail loudly at startup.
    """


class RecordNotFoundError(CampaignCacheError):
    """Raised when an update targets a row that no longer exists."""

    def __init__(self, table: str, identity: object):
        self.table = table
        self.identity = identity
        super().__init__(f"No row in {table} with id {identity}")


class ConstraintViolationError(CampaignCacheError):
    """Raised when a write would break a uniqueness or foreign key constraint."""


class RemoteUnavailableError(CampaignCacheError):
    """Raised when the remote API could not be reached or its response not decoded."""
