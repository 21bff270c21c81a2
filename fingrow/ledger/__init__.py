"""
Ledger package: pure aggregation and planning functions plus the
controllers that own every change to the persisted collections.
"""

from fingrow.ledger.controllers import (
    AssetController,
    BudgetController,
    CollectionController,
    LiabilityController,
    PreferencesController,
    RecordController,
    TransactionController,
    sort_newest_first,
)
from fingrow.ledger.formatters import format_currency, format_percent

__all__ = [
    "AssetController",
    "BudgetController",
    "CollectionController",
    "LiabilityController",
    "PreferencesController",
    "RecordController",
    "TransactionController",
    "format_currency",
    "format_percent",
    "sort_newest_first",
]
