"""Ledger writer: where promoted transactions end up.

The ledger itself belongs to the host application; the promotion engine only
needs to create one income or expense entry per promoted staged row.
"""

from __future__ import annotations

from typing import Protocol

from db.models.ledger import LedgerExpense, LedgerIncome
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError
from .models import StagedTransaction

DEFAULT_INCOME_SOURCE = "Imported"


class LedgerWriter(Protocol):
    def create_income(self, staged: StagedTransaction, *, source: str) -> str:
        """Write an income entry for ``staged``; returns the entry id."""
        ...

    def create_expense(self, staged: StagedTransaction, *, category_id: str) -> str:
        """Write an expense entry for ``staged``; returns the entry id."""
        ...


class SqlLedgerWriter:
    """:class:`LedgerWriter` over ``ledger_income`` / ``ledger_expenses``.

    Shares the caller's session so entries commit or roll back together with
    the staged row's ``committed`` flag.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _add(self, row: LedgerIncome | LedgerExpense) -> str:
        try:
            self._session.add(row)
            self._session.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to write ledger entry: {e}") from e
        return row.id

    def create_income(self, staged: StagedTransaction, *, source: str) -> str:
        return self._add(
            LedgerIncome(
                user_id=staged.user_id,
                amount=staged.amount,
                source=source,
                description=staged.description,
                date=staged.date,
                staged_id=staged.id,
            )
        )

    def create_expense(self, staged: StagedTransaction, *, category_id: str) -> str:
        return self._add(
            LedgerExpense(
                user_id=staged.user_id,
                amount=staged.amount,
                description=staged.description,
                date=staged.date,
                category_id=category_id,
                staged_id=staged.id,
            )
        )


__all__ = ["DEFAULT_INCOME_SOURCE", "LedgerWriter", "SqlLedgerWriter"]
