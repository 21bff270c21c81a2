"""
Core Data Models for FinGrow

These models define the schemas for everything persisted in the ledger and
for the aggregates derived from it. They are designed to:
1. Reject malformed input before it reaches storage
2. Round-trip through JSON without losing monetary precision
3. Be immutable - a change is always a full replacement

DESIGN DECISION: Money is Decimal everywhere. JSON numbers written by older
versions are accepted on read; we write Decimals back as strings.
"""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
)


# =============================================================================
# ENUMS AND KNOWN CATEGORIES
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class DateRange(str, Enum):
    """Named windows used by the expense tracker and the planner."""
    THIS_MONTH = "this-month"
    LAST_MONTH = "last-month"
    LAST_3_MONTHS = "last-3-months"
    ALL_TIME = "all-time"


# Categories are offered by the UI but NOT enforced on the models:
# stored data may carry any non-empty category name.
EXPENSE_CATEGORIES = [
    "Housing",
    "Transportation",
    "Food",
    "Utilities",
    "Healthcare",
    "Personal",
    "Entertainment",
    "Debt",
    "Other",
]

INCOME_CATEGORIES = [
    "Salary",
    "Freelance",
    "Investment",
    "Bonus",
    "Other",
]

ASSET_CATEGORIES = [
    "Cash & Savings",
    "Investments",
    "Real Estate",
    "Vehicles",
    "Retirement",
    "Other",
]

LIABILITY_CATEGORIES = [
    "Credit Card Debt",
    "Mortgage",
    "Student Loan",
    "Auto Loan",
    "Personal Loan",
    "Other",
]

SUPPORTED_CURRENCIES = {
    "NGN": "Nigerian Naira",
    "USD": "United States Dollar",
    "EUR": "Euro",
    "GBP": "British Pound",
}


def new_id() -> str:
    """Fresh opaque identifier for a ledger item."""
    return uuid4().hex


def _date_to_datetime(value: Any) -> Any:
    # Plain dates mean midnight
    if isinstance(value, str) and len(value.strip()) == 10:
        value = date.fromisoformat(value.strip())
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def _to_local_naive(value: datetime) -> datetime:
    # All comparisons happen on naive local wall-clock time
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


LedgerDate = Annotated[
    datetime,
    BeforeValidator(_date_to_datetime),
    AfterValidator(_to_local_naive),
]

Money = Annotated[Decimal, Field(ge=0)]

CurrencyCode = Annotated[str, StringConstraints(pattern=r"^[A-Z]{3}$")]


# =============================================================================
# PERSISTED ENTITIES
# =============================================================================

class EntryInput(BaseModel):
    """
    Fields shared by transactions, assets and liabilities.

    This is also the id-less draft accepted when creating an asset or a
    liability.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Free-text description"
    )
    amount: Money = Field(
        ...,
        description="Non-negative amount in the display currency"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name"
    )
    date: LedgerDate = Field(
        ...,
        description="When it happened (date-only input means midnight)"
    )


class TransactionInput(EntryInput):
    """A transaction before an id has been assigned."""

    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )


class Transaction(TransactionInput):
    """A stored transaction."""

    id: str = Field(..., min_length=1)


class LedgerEntry(EntryInput):
    """A stored asset or liability."""

    id: str = Field(..., min_length=1)


class Asset(LedgerEntry):
    """Something owned. The collection it lives in implies its type."""


class Liability(LedgerEntry):
    """Something owed."""


class RecordInput(BaseModel):
    """A free-text record before id and timestamp are assigned."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Record title"
    )
    content: str = Field(
        default="",
        description="Free text"
    )


class Record(RecordInput):
    """
    A stored record.

    `date` is the last-modified timestamp. It is always stamped by the
    controller and never taken from the caller.
    """

    id: str = Field(..., min_length=1)
    date: LedgerDate


class Budget(BaseModel):
    """Spending limit for one expense category."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    category: str = Field(..., min_length=1, max_length=100)
    limit: Money


def default_budgets(limit: Decimal) -> list[Budget]:
    """One budget per known expense category, all with the same limit."""
    return [Budget(category=category, limit=limit) for category in EXPENSE_CATEGORIES]


# =============================================================================
# DERIVED AGGREGATES
# =============================================================================

class LedgerTotals(BaseModel):
    """Lifetime income, expenses and their difference."""
    model_config = ConfigDict(frozen=True)

    income: Decimal
    expenses: Decimal
    balance: Decimal


class MonthlyBucket(BaseModel):
    """Income and expenses for one calendar month."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Year-qualified bucket key, e.g. 2024-03")
    label: str = Field(..., description="Display label, e.g. Mar 2024")
    income: Decimal
    expenses: Decimal


class CategoryTotal(BaseModel):
    """Sum of amounts for one category."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: Decimal


class DailyTotal(BaseModel):
    """Sum of amounts for one calendar day."""
    model_config = ConfigDict(frozen=True)

    date: str = Field(..., description="ISO day, YYYY-MM-DD")
    amount: Decimal


class ExpenseSummary(BaseModel):
    """Headline numbers of the expense tracker."""
    model_config = ConfigDict(frozen=True)

    total: Decimal
    count: int = Field(ge=0)
    average: Decimal


class NetWorthSummary(BaseModel):
    """Assets against liabilities."""
    model_config = ConfigDict(frozen=True)

    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    asset_breakdown: list[CategoryTotal] = Field(default_factory=list)
    liability_breakdown: list[CategoryTotal] = Field(default_factory=list)


class BudgetProgress(BaseModel):
    """How much of one category budget has been spent."""
    model_config = ConfigDict(frozen=True)

    category: str
    limit: Decimal
    spent: Decimal
    remaining: Decimal = Field(..., description="limit - spent, negative when over")
    progress: Decimal = Field(..., description="spent/limit*100, uncapped")
    display_progress: Decimal = Field(..., description="progress clamped to [0, 100]")

    @property
    def is_over_budget(self) -> bool:
        return self.remaining < 0


class BudgetPlan(BaseModel):
    """
    The monthly plan.

    Income is projected from the previous full calendar month so that a
    partially elapsed current month does not understate it.
    """
    model_config = ConfigDict(frozen=True)

    as_of: datetime
    financial_goal: Decimal
    projected_income: Decimal
    total_budgeted: Decimal
    available_to_spend: Decimal
    surplus_or_deficit: Decimal
    categories: list[BudgetProgress] = Field(default_factory=list)

    @property
    def is_deficit(self) -> bool:
        return self.surplus_or_deficit < 0


class SavingsProjection(BaseModel):
    """Result of the what-if savings calculator."""
    model_config = ConfigDict(frozen=True)

    monthly_income: Decimal
    total_expenses: Decimal
    monthly_savings: Decimal
    annual_savings: Decimal
