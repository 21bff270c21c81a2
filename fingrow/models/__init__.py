"""
Data Models Package

This package contains all Pydantic models used in FinGrow.
All data flowing through the system must conform to these schemas.
"""

from fingrow.models.ledger import (
    ASSET_CATEGORIES,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    LIABILITY_CATEGORIES,
    SUPPORTED_CURRENCIES,
    Asset,
    Budget,
    BudgetPlan,
    BudgetProgress,
    CategoryTotal,
    CurrencyCode,
    DailyTotal,
    DateRange,
    EntryInput,
    ExpenseSummary,
    LedgerEntry,
    LedgerTotals,
    Liability,
    MonthlyBucket,
    NetWorthSummary,
    Record,
    RecordInput,
    SavingsProjection,
    Transaction,
    TransactionInput,
    TransactionType,
    default_budgets,
    new_id,
)
from fingrow.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger entities
    "Asset",
    "Budget",
    "CurrencyCode",
    "EntryInput",
    "LedgerEntry",
    "Liability",
    "Record",
    "RecordInput",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    "DateRange",
    "default_budgets",
    "new_id",
    # Known categories
    "ASSET_CATEGORIES",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "LIABILITY_CATEGORIES",
    "SUPPORTED_CURRENCIES",
    # Aggregates
    "BudgetPlan",
    "BudgetProgress",
    "CategoryTotal",
    "DailyTotal",
    "ExpenseSummary",
    "LedgerTotals",
    "MonthlyBucket",
    "NetWorthSummary",
    "SavingsProjection",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
