"""
Persisted Collection Store

Typed, cached access to the key/value backend.

DESIGN DECISION: The store owns the canonical copy of every collection.
Callers always receive a copy and route changes back through `set`, which
overwrites the whole persisted value. There is no locking; two sessions
writing the same key simply race and the last write wins.

Reads never fail the app:
- Absent or corrupt data is replaced by the caller's default, which is
  persisted immediately
- A backend read error is logged and the default is returned without being
  persisted. Until a later read of that key succeeds, `set` refuses to
  write it, so a change built on the default cannot replace the stored data

Writes do fail loudly: a backend write error is raised as StorageError.
"""

import copy
from decimal import Decimal
from typing import Any, Optional, TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from fingrow.audit.logger import AuditLogger
from fingrow.models.audit import AuditEventBuilder
from fingrow.models.ledger import (
    Asset,
    Budget,
    CurrencyCode,
    Liability,
    Record,
    Transaction,
)
from fingrow.services.storage.interface import StorageBackend, StorageError


# Storage keys
TRANSACTIONS_KEY = "transactions"
RECORDS_KEY = "records"
ASSETS_KEY = "assets"
LIABILITIES_KEY = "liabilities"
BUDGETS_KEY = "budgets"
CURRENCY_KEY = "currency"
FINANCIAL_GOAL_KEY = "financialGoal"

# Value type persisted under each key
KEY_TYPES: dict[str, Any] = {
    TRANSACTIONS_KEY: list[Transaction],
    RECORDS_KEY: list[Record],
    ASSETS_KEY: list[Asset],
    LIABILITIES_KEY: list[Liability],
    BUDGETS_KEY: list[Budget],
    CURRENCY_KEY: CurrencyCode,
    FINANCIAL_GOAL_KEY: Decimal,
}

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class CollectionStore:
    """
    Read-through, write-through cache over a StorageBackend.

    Usage:
        store = CollectionStore(LocalFileBackend(Path("data")))
        items = store.get(TRANSACTIONS_KEY, [], list[Transaction])
        store.set(TRANSACTIONS_KEY, items, list[Transaction])
    """

    def __init__(
        self,
        backend: StorageBackend,
        audit: Optional[AuditLogger] = None,
    ):
        self._backend = backend
        self._audit = audit or AuditLogger()
        self._cache: dict[str, Any] = {}
        self._adapters: dict[Any, TypeAdapter] = {}
        # Keys whose last read failed; writing them would replace unseen data
        self._unreadable: set[str] = set()

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def _adapter(self, value_type: Any) -> TypeAdapter:
        adapter = self._adapters.get(value_type)
        if adapter is None:
            adapter = TypeAdapter(value_type)
            self._adapters[value_type] = adapter
        return adapter

    def get(self, key: str, default: T, value_type: Any) -> T:
        """
        Current value for `key`.

        The first call reads and validates the persisted text; later calls
        are served from the cache.
        """
        if key in self._cache:
            return copy.copy(self._cache[key])

        adapter = self._adapter(value_type)

        try:
            raw = self._backend.read(key)
        except StorageError as e:
            logger.error("store_read_failed", key=key, backend=self._backend.name, error=str(e))
            self._audit.log(
                AuditEventBuilder.store_read_failed(key, self._backend.name, str(e))
            )
            self._unreadable.add(key)
            return copy.copy(default)

        self._unreadable.discard(key)

        if raw is None:
            reason = "missing"
        else:
            try:
                value = adapter.validate_json(raw)
            except ValidationError as e:
                reason = "invalid"
                logger.warning(
                    "store_value_invalid",
                    key=key,
                    error_count=e.error_count(),
                )
            else:
                self._cache[key] = value
                return copy.copy(value)

        self._install_default(key, default, adapter, reason)
        return copy.copy(default)

    def _install_default(
        self,
        key: str,
        default: Any,
        adapter: TypeAdapter,
        reason: str,
    ) -> None:
        self._cache[key] = copy.copy(default)
        self._audit.log(AuditEventBuilder.store_default_installed(key, reason))
        try:
            self._backend.write(key, adapter.dump_json(default, indent=2).decode("utf-8"))
        except StorageError as e:
            # The default still serves this session; the next set retries
            logger.error("store_default_write_failed", key=key, error=str(e))
            self._audit.log(
                AuditEventBuilder.store_write_failed(key, self._backend.name, str(e))
            )

    def set(self, key: str, value: T, value_type: Any) -> None:
        """
        Persist `value` as the new full value for `key`.

        Raises:
            StorageError: If the backend write fails, or if the last read of
                `key` failed (the value was built on the default, not on
                the stored data). The cached value is left unchanged.
        """
        if key in self._unreadable:
            message = f"'{key}' could not be loaded; refusing to overwrite it"
            logger.error("store_write_refused", key=key, backend=self._backend.name)
            self._audit.log(
                AuditEventBuilder.store_write_failed(key, self._backend.name, message)
            )
            raise StorageError(message)

        adapter = self._adapter(value_type)
        text = adapter.dump_json(value, indent=2).decode("utf-8")

        try:
            self._backend.write(key, text)
        except StorageError as e:
            self._audit.log(
                AuditEventBuilder.store_write_failed(key, self._backend.name, str(e))
            )
            raise

        self._cache[key] = copy.copy(value)
        logger.debug("store_write", key=key, backend=self._backend.name)

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop cached values so the next get re-reads the backend."""
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)
