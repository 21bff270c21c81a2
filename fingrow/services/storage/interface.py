"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in local JSON files by default
2. Mirror it to Google Sheets when configured
3. Use in-memory storage for testing

The interface is intentionally tiny: a key/value store of JSON text.
Typing, defaults and caching live one level up in CollectionStore.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageBackend(ABC):
    """
    Abstract key/value backend.

    Every value is the complete JSON text of one collection or setting.
    Writes replace the whole value; there are no partial updates.
    """

    name: str = "backend"

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """
        Read the stored text for a key.

        Args:
            key: Storage key, e.g. "transactions"

        Returns:
            The stored text, or None if nothing is stored under the key

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, text: str) -> None:
        """
        Replace the stored text for a key.

        Raises:
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
