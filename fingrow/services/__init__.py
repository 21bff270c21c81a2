"""Services package."""

from fingrow.services.storage import (
    CollectionStore,
    ConnectionError,
    GoogleSheetsBackend,
    InMemoryBackend,
    LocalFileBackend,
    StorageBackend,
    StorageError,
)

__all__ = [
    "CollectionStore",
    "ConnectionError",
    "GoogleSheetsBackend",
    "InMemoryBackend",
    "LocalFileBackend",
    "StorageBackend",
    "StorageError",
]
