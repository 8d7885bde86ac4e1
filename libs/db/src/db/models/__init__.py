"""Shared SQLAlchemy models registry for the workspace database.

Currently includes the staging, category and ledger models used by
``ledger_import``.
"""

from .ledger import (
    Base,
    LedgerCategory,
    LedgerExpense,
    LedgerIncome,
    StagedTransactionRow,
)

__all__ = [
    "Base",
    "LedgerCategory",
    "LedgerExpense",
    "LedgerIncome",
    "StagedTransactionRow",
]
