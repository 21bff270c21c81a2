"""
Storage Services Package

Provides the abstract key/value backend, its implementations, and the typed
collection store built on top of them. Local JSON files are the default
backend; Google Sheets is optional.
"""

from fingrow.services.storage.interface import (
    ConnectionError,
    StorageBackend,
    StorageError,
)
from fingrow.services.storage.google_sheets import (
    GoogleSheetsBackend,
    GoogleSheetsClient,
)
from fingrow.services.storage.local_file import LocalFileBackend
from fingrow.services.storage.memory import InMemoryBackend
from fingrow.services.storage.store import (
    ASSETS_KEY,
    BUDGETS_KEY,
    CURRENCY_KEY,
    FINANCIAL_GOAL_KEY,
    KEY_TYPES,
    LIABILITIES_KEY,
    RECORDS_KEY,
    TRANSACTIONS_KEY,
    CollectionStore,
)

__all__ = [
    # Interfaces
    "StorageBackend",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsBackend",
    "GoogleSheetsClient",
    "InMemoryBackend",
    "LocalFileBackend",
    # Typed store
    "CollectionStore",
    "KEY_TYPES",
    "ASSETS_KEY",
    "BUDGETS_KEY",
    "CURRENCY_KEY",
    "FINANCIAL_GOAL_KEY",
    "LIABILITIES_KEY",
    "RECORDS_KEY",
    "TRANSACTIONS_KEY",
]
