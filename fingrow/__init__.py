"""
FinGrow - Source Package

A personal finance tracker: transactions, budgets, net worth, free-text
records, and an AI advisor.

DESIGN PRINCIPLES:
1. The store owns the data; everything else gets copies
2. Every view is a pure function of the stored collections
3. Invalid changes are ignored, never half-applied
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinGrow Team"
