"""SQLAlchemy-backed staging store.

Rows live in ``staged_transactions`` (ORM model
``db.models.ledger.StagedTransactionRow``). The store wraps a caller-owned
session; committing it is the caller's job (see ``db.client.session_scope``).

Concurrency:
- a single session is not thread-safe, so every call holds one re-entrant
  lock; the importer may still call ``create`` from several workers.
- ``mark_committed`` is a conditional ``UPDATE ... WHERE committed = false``
  and trusts the database row lock, not the Python lock, for cross-process
  exclusion.
- bulk UPDATE/DELETE statements do not synchronize the identity map, so
  ``get`` always reloads the row from the database.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Decimal

from db.models.ledger import StagedTransactionRow
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError
from .logging_setup import get_logger
from .models import NormalizedRow, StagedTransaction, TransactionKind

_log = get_logger("ledger_import.persistence")


def _to_decimal_2(d: Decimal) -> Decimal:
    return d.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _to_staged(row: StagedTransactionRow) -> StagedTransaction:
    return StagedTransaction(
        id=row.id,
        user_id=row.user_id,
        kind=TransactionKind(row.kind),
        amount=row.amount,
        description=row.description,
        date=row.date,
        category_hint=row.category_hint,
        source=row.source,
        imported=row.imported,
        committed=row.committed,
        created_at=row.created_at,
    )


class SqlStagingStore:
    """:class:`~ledger_import.staging.StagingStore` over a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._lock = threading.RLock()

    @property
    def session(self) -> Session:
        return self._session

    def create(self, *, user_id: str, row: NormalizedRow, source: str) -> StagedTransaction:
        amount = _to_decimal_2(row.amount)
        if amount <= 0:
            raise StorageError(f"amount {row.amount} rounds to zero at 2 decimal places")
        orm_row = StagedTransactionRow(
            user_id=user_id,
            kind=row.kind.value,
            amount=amount,
            description=row.description,
            date=row.date,
            category_hint=row.category_hint,
            source=source,
            imported=True,
            committed=False,
        )
        with self._lock:
            try:
                # Per-row savepoint: a failed insert must not poison the batch.
                with self._session.begin_nested():
                    self._session.add(orm_row)
                    self._session.flush()
            except SQLAlchemyError as e:
                raise StorageError(f"failed to stage row: {e}") from e
            return _to_staged(orm_row)

    def get(self, staged_id: str) -> StagedTransaction | None:
        with self._lock:
            try:
                row = self._session.get(StagedTransactionRow, staged_id, populate_existing=True)
            except SQLAlchemyError as e:
                raise StorageError(f"failed to load staged transaction: {e}") from e
            return _to_staged(row) if row is not None else None

    def list_pending(self, user_id: str) -> list[StagedTransaction]:
        stmt = (
            select(StagedTransactionRow)
            .where(
                StagedTransactionRow.user_id == user_id,
                StagedTransactionRow.imported.is_(True),
                StagedTransactionRow.committed.is_(False),
            )
            .order_by(StagedTransactionRow.created_at.desc(), StagedTransactionRow.date.desc())
        )
        with self._lock:
            try:
                rows = self._session.execute(stmt).scalars().all()
            except SQLAlchemyError as e:
                raise StorageError(f"failed to list staged transactions: {e}") from e
            return [_to_staged(r) for r in rows]

    def mark_committed(self, staged_id: str, *, user_id: str) -> bool:
        stmt = (
            update(StagedTransactionRow)
            .where(
                StagedTransactionRow.id == staged_id,
                StagedTransactionRow.user_id == user_id,
                StagedTransactionRow.committed.is_(False),
            )
            .values(committed=True, committed_at=func.now())
            .execution_options(synchronize_session=False)
        )
        with self._lock:
            try:
                result = self._session.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(f"failed to commit staged transaction: {e}") from e
            return result.rowcount == 1

    def delete_uncommitted(self, user_id: str, staged_ids: Iterable[str]) -> int:
        ids = sorted({str(i) for i in staged_ids})
        if not ids:
            return 0
        stmt = (
            delete(StagedTransactionRow)
            .where(
                StagedTransactionRow.id.in_(ids),
                StagedTransactionRow.user_id == user_id,
                StagedTransactionRow.committed.is_(False),
            )
            .execution_options(synchronize_session=False)
        )
        with self._lock:
            try:
                result = self._session.execute(stmt)
            except SQLAlchemyError as e:
                raise StorageError(f"failed to delete staged transactions: {e}") from e
        _log.debug("deleted %d of %d requested staged row(s)", result.rowcount, len(ids))
        return result.rowcount

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        with self._lock:
            try:
                with self._session.begin_nested():
                    yield
            except SQLAlchemyError as e:
                raise StorageError(f"unit of work failed: {e}") from e


__all__ = ["SqlStagingStore"]
