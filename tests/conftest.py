"""
Shared fixtures.

No test touches the network or the real data directory: storage is
in-memory (or under tmp_path) and time comes from a fixed clock.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import pytest

from fingrow.audit import AuditLogger
from fingrow.models import Transaction, TransactionType, new_id
from fingrow.services.storage import (
    CollectionStore,
    InMemoryBackend,
    StorageBackend,
    StorageError,
)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FailingBackend(StorageBackend):
    """In-memory backend whose reads and/or writes can be made to fail."""

    name = "failing"

    def __init__(
        self,
        fail_reads: bool = False,
        fail_writes: bool = False,
        initial: Optional[dict[str, str]] = None,
    ):
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.data = dict(initial or {})
        self.writes: list[str] = []

    def read(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise StorageError(f"read failed for {key}")
        return self.data.get(key)

    def write(self, key: str, text: str) -> None:
        if self.fail_writes:
            raise StorageError(f"write failed for {key}")
        self.writes.append(key)
        self.data[key] = text


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 15, 12, 0))


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def audit() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def store(backend, audit) -> CollectionStore:
    return CollectionStore(backend, audit)


@pytest.fixture
def make_transaction():
    """Factory for stored transactions with sensible defaults."""

    def _make(
        amount="10",
        type=TransactionType.EXPENSE,
        category="Food",
        date=datetime(2024, 3, 10),
        description="Test transaction",
    ) -> Transaction:
        return Transaction(
            id=new_id(),
            description=description,
            amount=Decimal(str(amount)),
            type=type,
            category=category,
            date=date,
        )

    return _make
