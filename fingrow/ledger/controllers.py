"""
CRUD Controllers

The only code allowed to change the ledger. Each controller reads its
collection from the CollectionStore, builds the replacement, and writes the
whole collection back.

DESIGN DECISION: Invalid changes are no-ops, not exceptions.
- Building an item from a draft raises pydantic's ValidationError before
  storage is touched (the form shows it)
- Updating or deleting an unknown id, a negative budget or goal, and a
  malformed currency code return False and leave storage alone
- A storage write failure raises StorageError

Every collection is kept sorted newest first. The sort is stable and new
items are prepended, so among equal dates the newest addition comes first.
"""

import re
from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Generic, Optional, TypeVar, Union

import structlog
from pydantic import BaseModel

from fingrow.audit.logger import AuditLogger
from fingrow.ledger import aggregator, planner
from fingrow.models.audit import AuditEventBuilder
from fingrow.models.ledger import (
    Asset,
    Budget,
    BudgetPlan,
    BudgetProgress,
    EntryInput,
    Liability,
    Record,
    RecordInput,
    Transaction,
    TransactionInput,
    default_budgets,
    new_id,
)
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


ItemT = TypeVar("ItemT", bound=BaseModel)

Clock = Callable[[], datetime]

CURRENCY_PATTERN = re.compile(r"[A-Z]{3}")

logger = structlog.get_logger(__name__)


def sort_newest_first(items: Sequence[ItemT]) -> list[ItemT]:
    return sorted(items, key=lambda item: item.date, reverse=True)


def _as_dict(value: Union[BaseModel, Mapping[str, Any]]) -> dict[str, Any]:
    # Extra fields (an id on a draft, a type on an asset) are ignored by the models
    return value.model_dump() if isinstance(value, BaseModel) else dict(value)


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Decimal from user input, or None if it isn't a finite number."""
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return number if number.is_finite() else None


class CollectionController(Generic[ItemT]):
    """
    Add/update/delete over one ordered collection.

    Subclasses bind the storage key, the stored and draft models, and the
    fields searched by `search`.
    """

    key: ClassVar[str]
    item_type: ClassVar[type[BaseModel]]
    draft_type: ClassVar[type[BaseModel]]
    entity_type: ClassVar[str]
    search_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        store: CollectionStore,
        audit: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
    ):
        self._store = store
        self._audit = audit or AuditLogger()
        self._clock = clock

    @property
    def _value_type(self) -> Any:
        return KEY_TYPES[self.key]

    def list_items(self) -> list[ItemT]:
        """Copy of the collection, newest first."""
        return self._store.get(self.key, [], self._value_type)

    def get(self, item_id: str) -> Optional[ItemT]:
        for item in self.list_items():
            if item.id == item_id:
                return item
        return None

    def search(self, query: str) -> list[ItemT]:
        return aggregator.search_by_text(self.list_items(), query, self.search_fields)

    def _save(self, items: Sequence[ItemT]) -> None:
        self._store.set(self.key, list(items), self._value_type)

    def _build(self, draft: BaseModel, item_id: str) -> ItemT:
        return self.item_type(**draft.model_dump(), id=item_id)

    def _coerce_item(self, data: dict[str, Any]) -> ItemT:
        return self.item_type.model_validate(data)

    def add(self, draft: Union[BaseModel, Mapping[str, Any]]) -> ItemT:
        """
        Store a new item built from `draft` and return it.

        Raises:
            ValidationError: If the draft is malformed
            StorageError: If the collection cannot be written
        """
        draft = self.draft_type.model_validate(_as_dict(draft))

        item = self._build(draft, new_id())
        self._save(sort_newest_first([item] + self.list_items()))

        logger.info("ledger_item_added", entity_type=self.entity_type, entity_id=item.id)
        self._audit.log(AuditEventBuilder.entity_added(self.entity_type, item.id))
        return item

    def update(self, item: Union[BaseModel, Mapping[str, Any]]) -> bool:
        """
        Replace the stored item with the same id.

        Returns False, writing nothing, when no item has that id.
        """
        item = self._coerce_item(_as_dict(item))

        items = self.list_items()
        for idx, existing in enumerate(items):
            if existing.id == item.id:
                break
        else:
            self._audit.log(
                AuditEventBuilder.mutation_rejected(self.entity_type, item.id, "unknown id")
            )
            return False

        items[idx] = item
        self._save(sort_newest_first(items))

        logger.info("ledger_item_updated", entity_type=self.entity_type, entity_id=item.id)
        self._audit.log(AuditEventBuilder.entity_updated(self.entity_type, item.id))
        return True

    def delete(self, item_id: str) -> bool:
        """Remove the item with `item_id`. Unknown ids are a no-op."""
        items = self.list_items()
        remaining = [item for item in items if item.id != item_id]

        if len(remaining) == len(items):
            self._audit.log(
                AuditEventBuilder.mutation_rejected(self.entity_type, item_id, "unknown id")
            )
            return False

        self._save(remaining)

        logger.info("ledger_item_deleted", entity_type=self.entity_type, entity_id=item_id)
        self._audit.log(AuditEventBuilder.entity_deleted(self.entity_type, item_id))
        return True


class TransactionController(CollectionController[Transaction]):
    key = TRANSACTIONS_KEY
    item_type = Transaction
    draft_type = TransactionInput
    entity_type = "transaction"
    search_fields = ("description",)


class AssetController(CollectionController[Asset]):
    key = ASSETS_KEY
    item_type = Asset
    draft_type = EntryInput
    entity_type = "asset"
    search_fields = ("description",)


class LiabilityController(CollectionController[Liability]):
    key = LIABILITIES_KEY
    item_type = Liability
    draft_type = EntryInput
    entity_type = "liability"
    search_fields = ("description",)


class RecordController(CollectionController[Record]):
    """Records carry a last-modified date that only the clock may set."""

    key = RECORDS_KEY
    item_type = Record
    draft_type = RecordInput
    entity_type = "record"
    search_fields = ("title", "content")

    def _build(self, draft: BaseModel, item_id: str) -> Record:
        return Record(**draft.model_dump(), id=item_id, date=self._clock())

    def _coerce_item(self, data: dict[str, Any]) -> Record:
        return Record.model_validate({**data, "date": self._clock()})


class PreferencesController:
    """
    Owner of the display currency and the monthly savings goal.

    Both are plain values passed explicitly to the views that need them.
    """

    def __init__(
        self,
        store: CollectionStore,
        default_currency: str = "NGN",
        default_financial_goal: Decimal = Decimal("500"),
        audit: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._default_currency = default_currency
        self._default_goal = default_financial_goal
        self._audit = audit or AuditLogger()

    @property
    def currency(self) -> str:
        return self._store.get(CURRENCY_KEY, self._default_currency, KEY_TYPES[CURRENCY_KEY])

    @property
    def financial_goal(self) -> Decimal:
        return self._store.get(
            FINANCIAL_GOAL_KEY, self._default_goal, KEY_TYPES[FINANCIAL_GOAL_KEY]
        )

    def set_currency(self, code: str) -> bool:
        """
        Change the currency label. Amounts are not converted.

        Anything but a three-letter upper-case code is ignored.
        """
        current = self.currency
        if not isinstance(code, str) or not CURRENCY_PATTERN.fullmatch(code):
            self._audit.log(
                AuditEventBuilder.mutation_rejected(
                    "preference", CURRENCY_KEY, "invalid currency code", {"value": repr(code)}
                )
            )
            return False
        if code == current:
            return False

        self._store.set(CURRENCY_KEY, code, KEY_TYPES[CURRENCY_KEY])
        self._audit.log(AuditEventBuilder.preference_updated(CURRENCY_KEY, current, code))
        return True

    def update_financial_goal(self, new_goal: Any) -> bool:
        """Set the monthly savings goal. Negative or non-numeric values are ignored."""
        goal = _to_decimal(new_goal)
        if goal is None or not planner.is_valid_goal(goal):
            self._audit.log(
                AuditEventBuilder.mutation_rejected(
                    "preference", FINANCIAL_GOAL_KEY, "invalid goal", {"value": str(new_goal)}
                )
            )
            return False

        current = self.financial_goal
        if goal == current:
            return False

        self._store.set(FINANCIAL_GOAL_KEY, goal, KEY_TYPES[FINANCIAL_GOAL_KEY])
        self._audit.log(
            AuditEventBuilder.preference_updated(FINANCIAL_GOAL_KEY, str(current), str(goal))
        )
        return True


class BudgetController:
    """Category budgets and the monthly plan built on them."""

    def __init__(
        self,
        store: CollectionStore,
        transactions: TransactionController,
        preferences: PreferencesController,
        default_limit: Decimal = Decimal("500"),
        audit: Optional[AuditLogger] = None,
        clock: Clock = datetime.now,
    ):
        self._store = store
        self._transactions = transactions
        self._preferences = preferences
        self._default_limit = default_limit
        self._audit = audit or AuditLogger()
        self._clock = clock

    def list_budgets(self) -> list[Budget]:
        return self._store.get(
            BUDGETS_KEY, default_budgets(self._default_limit), KEY_TYPES[BUDGETS_KEY]
        )

    def update_budget_limit(self, category: str, new_limit: Any) -> bool:
        """
        Set the limit for one category.

        Negative or non-numeric limits, unknown categories and unchanged
        values leave the budgets untouched and return False.
        """
        budgets = self.list_budgets()
        limit = _to_decimal(new_limit)
        updated = planner.apply_budget_limit(budgets, category, limit) if limit is not None else None

        if updated is None:
            self._audit.log(
                AuditEventBuilder.mutation_rejected(
                    "budget", category, "limit not applied", {"value": str(new_limit)}
                )
            )
            return False

        old_limit = next(b.limit for b in budgets if b.category == category)
        self._store.set(BUDGETS_KEY, updated, KEY_TYPES[BUDGETS_KEY])
        self._audit.log(
            AuditEventBuilder.budget_limit_updated(category, str(old_limit), str(limit))
        )
        return True

    def progress(self) -> list[BudgetProgress]:
        return planner.category_progress(self._transactions.list_items(), self.list_budgets())

    def plan(self, as_of: Optional[datetime] = None) -> BudgetPlan:
        return planner.build_plan(
            self._transactions.list_items(),
            self.list_budgets(),
            self._preferences.financial_goal,
            as_of or self._clock(),
        )
