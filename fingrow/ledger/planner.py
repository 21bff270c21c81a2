"""
Budget Planner

Turns transactions, budgets and the savings goal into the monthly plan.

DESIGN DECISION: Income is projected from the previous full calendar month,
not the current one, so the plan does not swing as the month fills in.
Spending against each budget is lifetime spending in that category.

Changes to budgets and the goal are validated here and rejected as no-ops
(returning None) rather than raised, so the UI can simply re-render.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fingrow.ledger.aggregator import (
    ZERO,
    income_only,
    spent_by_category,
    window_filter,
)
from fingrow.models.ledger import (
    Budget,
    BudgetPlan,
    BudgetProgress,
    DateRange,
    SavingsProjection,
    Transaction,
)


HUNDRED = Decimal("100")


def budget_progress(budget: Budget, spent: Decimal) -> BudgetProgress:
    """Progress of one budget given what has been spent in its category."""
    progress = spent / budget.limit * HUNDRED if budget.limit > 0 else ZERO
    return BudgetProgress(
        category=budget.category,
        limit=budget.limit,
        spent=spent,
        remaining=budget.limit - spent,
        progress=progress,
        display_progress=max(ZERO, min(HUNDRED, progress)),
    )


def category_progress(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
) -> list[BudgetProgress]:
    """Progress for every budget, in budget order. Unspent categories show 0."""
    spent = spent_by_category(transactions)
    return [budget_progress(b, spent.get(b.category, ZERO)) for b in budgets]


def projected_income(transactions: Sequence[Transaction], as_of: datetime) -> Decimal:
    """Income recorded in the calendar month before `as_of`."""
    last_month = window_filter(income_only(transactions), DateRange.LAST_MONTH, as_of)
    return sum((t.amount for t in last_month), ZERO)


def build_plan(
    transactions: Sequence[Transaction],
    budgets: Sequence[Budget],
    financial_goal: Decimal,
    as_of: datetime,
) -> BudgetPlan:
    """
    The monthly budget plan as of a given moment.

    A negative surplus is a deficit: the budgets promise more than the
    projected income leaves after saving towards the goal.
    """
    income = projected_income(transactions, as_of)
    total_budgeted = sum((b.limit for b in budgets), ZERO)
    available = income - financial_goal

    return BudgetPlan(
        as_of=as_of,
        financial_goal=financial_goal,
        projected_income=income,
        total_budgeted=total_budgeted,
        available_to_spend=available,
        surplus_or_deficit=available - total_budgeted,
        categories=category_progress(transactions, budgets),
    )


def apply_budget_limit(
    budgets: Sequence[Budget],
    category: str,
    new_limit: Decimal,
) -> Optional[list[Budget]]:
    """
    Budgets with `category`'s limit replaced.

    Returns None when nothing would change: negative limit, unknown
    category, or a limit equal to the current one.
    """
    if new_limit < 0:
        return None

    updated = []
    changed = False
    for budget in budgets:
        if budget.category == category and budget.limit != new_limit:
            budget = Budget(category=budget.category, limit=new_limit)
            changed = True
        updated.append(budget)

    return updated if changed else None


def is_valid_goal(new_goal: Decimal) -> bool:
    return new_goal >= 0


def savings_projection(
    monthly_income: Decimal,
    expenses: Iterable[Decimal],
) -> SavingsProjection:
    """What-if calculator: savings left from a monthly income after expenses."""
    total_expenses = sum(expenses, ZERO)
    monthly_savings = monthly_income - total_expenses
    return SavingsProjection(
        monthly_income=monthly_income,
        total_expenses=total_expenses,
        monthly_savings=monthly_savings,
        annual_savings=monthly_savings * 12,
    )
