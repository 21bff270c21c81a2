"""Integration tests for the CRUD controllers over an in-memory store."""

import json
from datetime import datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from fingrow.ledger import (
    AssetController,
    BudgetController,
    LiabilityController,
    PreferencesController,
    RecordController,
    TransactionController,
)
from fingrow.models import AuditEventType, Transaction
from fingrow.services.storage import CollectionStore, StorageError

from conftest import FailingBackend


def draft(**overrides):
    values = {
        "description": "Groceries",
        "amount": "45.20",
        "type": "expense",
        "category": "Food",
        "date": "2024-03-10",
    }
    values.update(overrides)
    return values


@pytest.fixture
def transactions(store, audit):
    return TransactionController(store, audit)


@pytest.fixture
def preferences(store, audit):
    return PreferencesController(store, "NGN", Decimal("500"), audit)


@pytest.fixture
def budgets(store, transactions, preferences, audit, clock):
    return BudgetController(store, transactions, preferences, Decimal("500"), audit, clock)


class TestTransactionController:
    """Tests for adding, updating and deleting transactions."""

    def test_add_assigns_id_and_persists(self, transactions, backend):
        """Test add returns the stored item with a fresh id."""
        t = transactions.add(draft())

        assert t.id
        assert t.amount == Decimal("45.20")
        stored = json.loads(backend.data["transactions"])
        assert stored[0]["id"] == t.id

    def test_add_then_delete_restores_collection(self, transactions, make_transaction, store):
        """Test deleting a just-added item leaves the collection as before."""
        existing = [make_transaction(date=datetime(2024, 3, 12)), make_transaction()]
        store.set("transactions", existing, list[Transaction])

        t = transactions.add(draft(date="2024-03-11"))
        assert transactions.delete(t.id)

        assert transactions.list_items() == existing

    def test_collection_sorted_newest_first(self, transactions):
        """Test adds keep the collection in descending date order."""
        transactions.add(draft(date="2024-03-01"))
        transactions.add(draft(date="2024-03-20"))
        transactions.add(draft(date="2024-03-10"))

        dates = [t.date for t in transactions.list_items()]

        assert dates == sorted(dates, reverse=True)

    def test_new_item_first_among_equal_dates(self, transactions):
        """Test a newly added item precedes older ones with the same date."""
        first = transactions.add(draft(description="First"))
        second = transactions.add(draft(description="Second"))

        assert [t.id for t in transactions.list_items()] == [second.id, first.id]

    def test_add_accepts_models(self, transactions, make_transaction):
        """Test a full model can be passed as a draft; its id is replaced."""
        source = make_transaction()
        t = transactions.add(source)

        assert t.id != source.id
        assert t.description == source.description

    def test_invalid_draft_leaves_storage_untouched(self, audit):
        """Test validation errors are raised before anything is written."""
        backend = FailingBackend()
        controller = TransactionController(CollectionStore(backend, audit), audit)

        with pytest.raises(ValidationError):
            controller.add(draft(amount="-10"))
        with pytest.raises(ValidationError):
            controller.add(draft(type="transfer"))

        assert backend.writes == []

    def test_update_resorts(self, transactions):
        """Test an update that changes the date re-sorts the collection."""
        old = transactions.add(draft(date="2024-03-01"))
        transactions.add(draft(date="2024-03-10"))

        assert transactions.update(old.model_copy(update={"date": datetime(2024, 3, 31)}))

        items = transactions.list_items()
        assert items[0].id == old.id
        assert items[0].date == datetime(2024, 3, 31)

    def test_update_validates(self, transactions):
        """Test update rejects invalid replacements."""
        t = transactions.add(draft())
        with pytest.raises(ValidationError):
            transactions.update({**t.model_dump(), "amount": "-1"})

    def test_unknown_update_and_delete_write_nothing(self, audit, make_transaction):
        """Test unknown ids are no-ops that return False."""
        backend = FailingBackend()
        controller = TransactionController(CollectionStore(backend, audit), audit)
        controller.list_items()
        writes_before = list(backend.writes)

        assert controller.update(make_transaction()) is False
        assert controller.delete("missing") is False

        assert backend.writes == writes_before
        assert audit.history[-1].event_type == AuditEventType.MUTATION_REJECTED

    def test_search(self, transactions):
        """Test search over descriptions."""
        coffee = transactions.add(draft(description="Coffee beans"))
        transactions.add(draft(description="Bus fare"))

        assert transactions.search("COFFEE") == [coffee]
        assert len(transactions.search("")) == 2

    def test_get(self, transactions):
        """Test lookup by id."""
        t = transactions.add(draft())
        assert transactions.get(t.id) == t
        assert transactions.get("nope") is None

    def test_audit_trail(self, transactions, audit):
        """Test add, update and delete are audited."""
        t = transactions.add(draft())
        transactions.update(t)
        transactions.delete(t.id)

        types = [e.event_type for e in audit.history if e.entity_type == "transaction"]
        assert types == [
            AuditEventType.ENTITY_ADDED,
            AuditEventType.ENTITY_UPDATED,
            AuditEventType.ENTITY_DELETED,
        ]

    def test_storage_failure_is_raised(self, audit):
        """Test a failed write surfaces as StorageError."""
        backend = FailingBackend()
        controller = TransactionController(CollectionStore(backend, audit), audit)
        controller.list_items()
        backend.fail_writes = True

        with pytest.raises(StorageError):
            controller.add(draft())

        backend.fail_writes = False
        assert controller.list_items() == []

    def test_add_after_failed_read_keeps_stored_items(self, audit, make_transaction):
        """Test an add during a read outage cannot wipe the collection."""
        seeded = [make_transaction() for _ in range(3)]
        backend = FailingBackend()
        CollectionStore(backend).set("transactions", seeded, list[Transaction])
        controller = TransactionController(CollectionStore(backend, audit), audit)

        backend.fail_reads = True
        with pytest.raises(StorageError):
            controller.add(draft())

        backend.fail_reads = False
        assert controller.list_items() == seeded
        controller.add(draft())
        assert len(controller.list_items()) == 4


class TestAssetAndLiabilityControllers:
    """Tests for the balance sheet collections."""

    def test_asset_and_liability_are_separate(self, store, audit):
        """Test each controller owns its own collection."""
        assets = AssetController(store, audit)
        liabilities = LiabilityController(store, audit)

        a = assets.add({"description": "Savings", "amount": "1000",
                        "category": "Cash & Savings", "date": "2024-01-01"})
        liabilities.add({"description": "Card", "amount": "200",
                         "category": "Credit Card Debt", "date": "2024-01-02"})

        assert [item.id for item in assets.list_items()] == [a.id]
        assert len(liabilities.list_items()) == 1

    def test_extra_type_field_is_ignored(self, store):
        """Test an asset draft carrying a type field is accepted."""
        assets = AssetController(store)
        a = assets.add({"description": "Car", "amount": "5000", "type": "asset",
                        "category": "Vehicles", "date": "2024-01-01"})
        assert not hasattr(a, "type")


class TestRecordController:
    """Tests for free-text records."""

    def test_add_stamps_clock(self, store, clock):
        """Test new records are dated by the clock."""
        records = RecordController(store, clock=clock)
        r = records.add({"title": "Tax notes", "content": "File by April"})
        assert r.date == clock()

    def test_update_restamps_and_resorts(self, store, clock):
        """Test an edited record moves to the front with a fresh date."""
        records = RecordController(store, clock=clock)
        first = records.add({"title": "First"})
        clock.advance(hours=1)
        records.add({"title": "Second"})
        clock.advance(hours=1)

        assert records.update({**first.model_dump(), "content": "edited",
                               "date": datetime(2000, 1, 1)})

        items = records.list_items()
        assert items[0].id == first.id
        assert items[0].content == "edited"
        assert items[0].date == clock()

    def test_search_title_and_content(self, store, clock):
        """Test search covers both title and content."""
        records = RecordController(store, clock=clock)
        plan = records.add({"title": "Plan", "content": "Pension contributions"})
        records.add({"title": "Shopping", "content": "milk"})

        assert records.search("pension") == [plan]


class TestPreferencesController:
    """Tests for currency and savings goal."""

    def test_defaults(self, preferences, backend):
        """Test defaults are returned and persisted."""
        assert preferences.currency == "NGN"
        assert preferences.financial_goal == Decimal("500")
        assert json.loads(backend.data["currency"]) == "NGN"

    def test_set_currency(self, preferences):
        """Test a valid code is stored."""
        assert preferences.set_currency("USD")
        assert preferences.currency == "USD"

    @pytest.mark.parametrize("code", ["usd", "US", "DOLLAR", "", None])
    def test_invalid_currency_rejected(self, preferences, code):
        """Test malformed codes are ignored."""
        assert preferences.set_currency(code) is False
        assert preferences.currency == "NGN"

    def test_same_currency_is_noop(self, preferences):
        """Test setting the current currency returns False."""
        assert preferences.set_currency("NGN") is False

    def test_update_financial_goal(self, preferences, backend):
        """Test the goal is stored as an exact string."""
        assert preferences.update_financial_goal("750.25")
        assert preferences.financial_goal == Decimal("750.25")
        assert json.loads(backend.data["financialGoal"]) == "750.25"

    @pytest.mark.parametrize("goal", ["-1", "abc", "NaN", None])
    def test_invalid_goal_rejected(self, preferences, goal):
        """Test negative and non-numeric goals are ignored."""
        assert preferences.update_financial_goal(goal) is False
        assert preferences.financial_goal == Decimal("500")


class TestBudgetController:
    """Tests for budgets and the plan."""

    def test_default_budgets(self, budgets):
        """Test every expense category starts at the default limit."""
        items = budgets.list_budgets()
        assert len(items) == 9
        assert {b.limit for b in items} == {Decimal("500")}

    def test_update_limit(self, budgets, audit):
        """Test a valid limit is applied and audited."""
        assert budgets.update_budget_limit("Food", "300")

        food = next(b for b in budgets.list_budgets() if b.category == "Food")
        assert food.limit == Decimal("300")
        assert audit.history[-1].event_type == AuditEventType.BUDGET_LIMIT_UPDATED

    @pytest.mark.parametrize(
        "category,limit",
        [("Food", "-50"), ("Food", "500"), ("Travel", "100"), ("Food", "lots")],
    )
    def test_rejected_limits_leave_budgets(self, budgets, category, limit):
        """Test negative, unchanged, unknown and non-numeric changes are no-ops."""
        before = budgets.list_budgets()
        assert budgets.update_budget_limit(category, limit) is False
        assert budgets.list_budgets() == before

    def test_plan_uses_clock_and_goal(self, budgets, transactions, preferences):
        """Test the plan combines transactions, budgets and goal."""
        transactions.add(draft(type="income", category="Salary", amount="6000",
                               date="2024-02-15"))
        transactions.add(draft(amount="120", category="Food", date="2024-03-05"))
        preferences.update_financial_goal("1000")

        plan = budgets.plan()

        assert plan.as_of == datetime(2024, 3, 15, 12, 0)
        assert plan.projected_income == Decimal("6000")
        assert plan.available_to_spend == Decimal("5000")
        assert plan.surplus_or_deficit == Decimal("500")
        food = next(p for p in plan.categories if p.category == "Food")
        assert food.spent == Decimal("120")

    def test_progress(self, budgets, transactions):
        """Test progress reflects spending."""
        transactions.add(draft(amount="250", category="Housing"))
        housing = next(p for p in budgets.progress() if p.category == "Housing")
        assert housing.progress == Decimal("50")
