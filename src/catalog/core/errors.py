"""Error taxonomy for the catalog core.

Request-path errors (``NotFound``, ``TransactionFailure``) are mapped to HTTP
responses by the API layer. Worker-path errors (``MediaRejected``,
``StorageFailure``) never reach an API caller; the ingestion worker logs them.
Field validation is handled by pydantic before a command reaches the core.
"""


class CatalogError(Exception):
    """Base class for catalog errors."""


class NotFound(CatalogError):
    """Raised when a record does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class MediaRejected(CatalogError):
    """Raised when a media payload has an unsupported format or cannot be decoded."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class TransactionFailure(CatalogError):
    """Raised when a record store commit fails and the transaction was rolled back."""


class StorageFailure(CatalogError):
    """Raised when an artifact could not be written."""


class CacheError(CatalogError):
    """Raised when the cache backend fails."""
