"""Tests for the collection store and its backends."""

import json
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import TypeAdapter

from fingrow.models import AuditEventType, Budget, Transaction, default_budgets
from fingrow.services.storage import (
    BUDGETS_KEY,
    CURRENCY_KEY,
    FINANCIAL_GOAL_KEY,
    KEY_TYPES,
    TRANSACTIONS_KEY,
    CollectionStore,
    GoogleSheetsBackend,
    InMemoryBackend,
    LocalFileBackend,
    StorageError,
)

from conftest import FailingBackend


TRANSACTIONS = KEY_TYPES[TRANSACTIONS_KEY]
BUDGETS = KEY_TYPES[BUDGETS_KEY]


def event_types(audit):
    return [event.event_type for event in audit.history]


class TestReadThroughDefaults:
    """Tests for default installation on first read."""

    def test_missing_key_installs_and_persists_default(self, store, backend, audit):
        """Test an absent key yields the default and writes it immediately."""
        budgets = store.get(BUDGETS_KEY, default_budgets(Decimal("500")), BUDGETS)

        assert len(budgets) == 9
        stored = json.loads(backend.data[BUDGETS_KEY])
        assert stored[0] == {"category": "Housing", "limit": "500"}
        assert AuditEventType.STORE_DEFAULT_INSTALLED in event_types(audit)

    def test_corrupt_json_falls_back_to_default(self, audit):
        """Test unparseable text is treated as absent."""
        backend = InMemoryBackend({TRANSACTIONS_KEY: "{not json"})
        store = CollectionStore(backend, audit)

        assert store.get(TRANSACTIONS_KEY, [], TRANSACTIONS) == []
        assert json.loads(backend.data[TRANSACTIONS_KEY]) == []
        assert audit.history[-1].details["reason"] == "invalid"

    def test_schema_mismatch_falls_back_to_default(self, audit):
        """Test well-formed JSON with invalid items is treated as absent."""
        backend = InMemoryBackend({
            TRANSACTIONS_KEY: json.dumps([{"id": "t1", "amount": "-3"}]),
        })
        store = CollectionStore(backend, audit)

        assert store.get(TRANSACTIONS_KEY, [], TRANSACTIONS) == []
        assert backend.data[TRANSACTIONS_KEY].strip() == "[]"

    def test_invalid_currency_falls_back_to_default(self):
        """Test a malformed stored currency code is replaced."""
        backend = InMemoryBackend({CURRENCY_KEY: '"dollars"'})
        store = CollectionStore(backend)

        assert store.get(CURRENCY_KEY, "NGN", KEY_TYPES[CURRENCY_KEY]) == "NGN"
        assert json.loads(backend.data[CURRENCY_KEY]) == "NGN"

    def test_valid_data_is_loaded(self):
        """Test stored items load, including amounts stored as JSON numbers."""
        backend = InMemoryBackend({
            TRANSACTIONS_KEY: json.dumps([{
                "id": "t1",
                "description": "Salary",
                "amount": 1500.75,
                "type": "income",
                "category": "Salary",
                "date": "2024-03-01",
            }]),
            FINANCIAL_GOAL_KEY: "750",
        })
        store = CollectionStore(backend)

        [t] = store.get(TRANSACTIONS_KEY, [], TRANSACTIONS)
        assert t.amount == Decimal("1500.75")
        assert t.date == datetime(2024, 3, 1)
        assert store.get(FINANCIAL_GOAL_KEY, Decimal("500"), Decimal) == Decimal("750")

    def test_read_failure_returns_default_without_persisting(self, audit):
        """Test a backend read error is logged and nothing is written."""
        backend = FailingBackend(fail_reads=True)
        store = CollectionStore(backend, audit)

        assert store.get(CURRENCY_KEY, "NGN", KEY_TYPES[CURRENCY_KEY]) == "NGN"
        assert backend.writes == []
        assert AuditEventType.STORE_READ_FAILED in event_types(audit)

    def test_default_write_failure_is_not_raised(self, audit):
        """Test a failed default write still serves the default."""
        store = CollectionStore(FailingBackend(fail_writes=True), audit)

        assert store.get(CURRENCY_KEY, "NGN", KEY_TYPES[CURRENCY_KEY]) == "NGN"
        assert AuditEventType.STORE_WRITE_FAILED in event_types(audit)


class TestCaching:
    """Tests for the cached canonical copy."""

    def test_second_get_does_not_reread(self):
        """Test values are cached after the first read."""
        backend = FailingBackend()
        store = CollectionStore(backend)
        store.get(CURRENCY_KEY, "NGN", KEY_TYPES[CURRENCY_KEY])

        backend.fail_reads = True
        assert store.get(CURRENCY_KEY, "USD", KEY_TYPES[CURRENCY_KEY]) == "NGN"

    def test_returned_lists_are_copies(self, store, make_transaction):
        """Test callers cannot change the canonical collection in place."""
        store.set(TRANSACTIONS_KEY, [make_transaction()], TRANSACTIONS)

        items = store.get(TRANSACTIONS_KEY, [], TRANSACTIONS)
        items.clear()

        assert len(store.get(TRANSACTIONS_KEY, [], TRANSACTIONS)) == 1

    def test_invalidate_forces_reread(self, store, backend):
        """Test invalidate drops the cache."""
        store.get(CURRENCY_KEY, "NGN", KEY_TYPES[CURRENCY_KEY])
        backend.write(CURRENCY_KEY, '"GBP"')

        store.invalidate(CURRENCY_KEY)

        assert store.get(CURRENCY_KEY, "NGN", KEY_TYPES[CURRENCY_KEY]) == "GBP"


class TestWriteThrough:
    """Tests for set."""

    def test_set_overwrites_whole_value(self, store, backend, make_transaction):
        """Test set replaces the persisted collection."""
        first, second = make_transaction(), make_transaction()
        store.set(TRANSACTIONS_KEY, [first, second], TRANSACTIONS)
        store.set(TRANSACTIONS_KEY, [second], TRANSACTIONS)

        stored = json.loads(backend.data[TRANSACTIONS_KEY])
        assert [item["id"] for item in stored] == [second.id]

    def test_decimals_are_written_as_strings(self, store, backend):
        """Test monetary values persist as JSON strings."""
        store.set(FINANCIAL_GOAL_KEY, Decimal("750.50"), Decimal)
        assert json.loads(backend.data[FINANCIAL_GOAL_KEY]) == "750.50"

    def test_write_failure_raises_and_keeps_cache(self, audit):
        """Test a failed write surfaces StorageError and changes nothing."""
        backend = FailingBackend()
        store = CollectionStore(backend, audit)
        store.set(BUDGETS_KEY, [Budget(category="Food", limit=10)], BUDGETS)

        backend.fail_writes = True
        with pytest.raises(StorageError):
            store.set(BUDGETS_KEY, [], BUDGETS)

        assert store.get(BUDGETS_KEY, [], BUDGETS) == [Budget(category="Food", limit=10)]
        assert audit.history[-1].event_type == AuditEventType.STORE_WRITE_FAILED

    def test_set_refused_after_failed_read(self, audit, make_transaction):
        """Test a value built on a failed read cannot replace stored data."""
        stored = [make_transaction() for _ in range(3)]
        backend = FailingBackend(initial={
            TRANSACTIONS_KEY: TypeAdapter(TRANSACTIONS).dump_json(stored).decode("utf-8"),
        })
        store = CollectionStore(backend, audit)

        backend.fail_reads = True
        items = store.get(TRANSACTIONS_KEY, [], TRANSACTIONS)
        with pytest.raises(StorageError):
            store.set(TRANSACTIONS_KEY, items + [make_transaction()], TRANSACTIONS)

        assert backend.writes == []
        assert audit.history[-1].event_type == AuditEventType.STORE_WRITE_FAILED

        backend.fail_reads = False
        assert store.get(TRANSACTIONS_KEY, [], TRANSACTIONS) == stored
        store.set(TRANSACTIONS_KEY, stored[:1], TRANSACTIONS)
        assert backend.writes == [TRANSACTIONS_KEY]


class TestLocalFileBackend:
    """Tests for the local JSON file backend."""

    def test_read_missing_returns_none(self, tmp_path):
        """Test an absent file reads as None."""
        assert LocalFileBackend(tmp_path).read("transactions") is None

    def test_write_then_read(self, tmp_path):
        """Test text written under a key is read back."""
        backend = LocalFileBackend(tmp_path / "data")
        backend.write("currency", '"USD"')

        assert backend.read("currency") == '"USD"'
        assert (tmp_path / "data" / "currency.json").exists()

    def test_no_temp_files_left_behind(self, tmp_path):
        """Test the atomic write cleans up after itself."""
        backend = LocalFileBackend(tmp_path)
        backend.write("records", "[]")
        backend.write("records", "[]")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["records.json"]

    def test_data_survives_a_new_store(self, tmp_path, make_transaction):
        """Test a fresh store over the same directory sees earlier writes."""
        t = make_transaction(amount="99.99")
        CollectionStore(LocalFileBackend(tmp_path)).set(TRANSACTIONS_KEY, [t], TRANSACTIONS)

        reloaded = CollectionStore(LocalFileBackend(tmp_path)).get(
            TRANSACTIONS_KEY, [], TRANSACTIONS
        )
        assert reloaded == [t]

    def test_undecodable_file_falls_back_to_default(self, tmp_path, audit):
        """Test bytes that are not UTF-8 count as corrupt data."""
        (tmp_path / "transactions.json").write_bytes(b"\xff\xfe\x00garbage")
        store = CollectionStore(LocalFileBackend(tmp_path), audit)

        assert store.get(TRANSACTIONS_KEY, [], TRANSACTIONS) == []
        assert json.loads((tmp_path / "transactions.json").read_text(encoding="utf-8")) == []
        assert audit.history[-1].details["reason"] == "invalid"


class FakeWorksheet:
    """Two-column worksheet stand-in."""

    def __init__(self):
        self.rows = [["key", "value"]]

    def col_values(self, col):
        return [row[col - 1] for row in self.rows]

    def cell(self, row, col):
        return SimpleNamespace(value=self.rows[row - 1][col - 1])

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update(self, range_name, values, value_input_option=None):
        row = int(range_name[1:])
        self.rows[row - 1][1] = values[0][0]


class FakeSheetsClient:
    def __init__(self):
        self.sheet = FakeWorksheet()

    def get_store_sheet(self):
        return self.sheet


class TestGoogleSheetsBackend:
    """Tests for the Sheets backend against a fake worksheet."""

    def test_read_missing_returns_none(self):
        """Test an absent key reads as None."""
        backend = GoogleSheetsBackend(client=FakeSheetsClient())
        assert backend.read("currency") is None

    def test_write_appends_then_updates(self):
        """Test the first write appends a row and later writes update it."""
        client = FakeSheetsClient()
        backend = GoogleSheetsBackend(client=client)

        backend.write("currency", '"NGN"')
        backend.write("currency", '"EUR"')

        assert client.sheet.rows == [["key", "value"], ["currency", '"EUR"']]
        assert backend.read("currency") == '"EUR"'

    def test_keys_are_independent(self):
        """Test each key lives in its own row."""
        backend = GoogleSheetsBackend(client=FakeSheetsClient())
        backend.write("currency", '"NGN"')
        backend.write("financialGoal", '"500"')

        assert backend.read("currency") == '"NGN"'
        assert backend.read("financialGoal") == '"500"'

    def test_store_over_sheets(self, make_transaction):
        """Test the typed store works over the Sheets backend."""
        store = CollectionStore(GoogleSheetsBackend(client=FakeSheetsClient()))
        t = make_transaction()
        store.set(TRANSACTIONS_KEY, [t], TRANSACTIONS)
        store.invalidate()

        assert store.get(TRANSACTIONS_KEY, [], TRANSACTIONS) == [t]
        assert isinstance(store.get(TRANSACTIONS_KEY, [], TRANSACTIONS)[0], Transaction)
