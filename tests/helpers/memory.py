"""In-memory collaborators for pipeline tests (no database)."""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime, timedelta

from ledger_import.errors import StorageError
from ledger_import.models import Category, NormalizedRow, StagedTransaction


class InMemoryStagingStore:
    """Thread-safe dict-backed staging store.

    ``fail_on`` makes ``create`` raise :class:`StorageError` for rows whose
    description is listed, to exercise per-row staging failures.
    """

    def __init__(self, *, fail_on: Iterable[str] = ()) -> None:
        self.rows: dict[str, StagedTransaction] = {}
        self.create_calls = 0
        self._fail_on = set(fail_on)
        self._ids = itertools.count(1)
        self._clock = itertools.count()
        self._lock = threading.RLock()

    def create(self, *, user_id: str, row: NormalizedRow, source: str) -> StagedTransaction:
        with self._lock:
            self.create_calls += 1
            if row.description in self._fail_on:
                raise StorageError(f"refused {row.description!r}")
            staged = StagedTransaction(
                id=f"stg-{next(self._ids)}",
                user_id=user_id,
                kind=row.kind,
                amount=row.amount,
                description=row.description,
                date=row.date,
                category_hint=row.category_hint,
                source=source,
                created_at=datetime(2024, 1, 1, tzinfo=UTC) + timedelta(seconds=next(self._clock)),
            )
            self.rows[staged.id] = staged
            return staged

    def get(self, staged_id: str) -> StagedTransaction | None:
        with self._lock:
            return self.rows.get(staged_id)

    def list_pending(self, user_id: str) -> list[StagedTransaction]:
        with self._lock:
            pending = [
                r for r in self.rows.values() if r.user_id == user_id and r.imported and not r.committed
            ]
        return sorted(pending, key=lambda r: (r.created_at, r.date), reverse=True)

    def mark_committed(self, staged_id: str, *, user_id: str) -> bool:
        with self._lock:
            row = self.rows.get(staged_id)
            if row is None or row.user_id != user_id or row.committed:
                return False
            self.rows[staged_id] = replace(row, committed=True)
            return True

    def delete_uncommitted(self, user_id: str, staged_ids: Iterable[str]) -> int:
        with self._lock:
            n = 0
            for staged_id in set(staged_ids):
                row = self.rows.get(staged_id)
                if row is not None and row.user_id == user_id and not row.committed:
                    del self.rows[staged_id]
                    n += 1
            return n

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        with self._lock:
            snapshot = dict(self.rows)
            try:
                yield
            except BaseException:
                self.rows = snapshot
                raise

    # Test conveniences ---------------------------------------------------

    def stage(self, user_id: str, row: NormalizedRow, source: str = "test.csv") -> str:
        return self.create(user_id=user_id, row=row, source=source).id


class InMemoryCategoryDirectory:
    def __init__(self, by_user: dict[str, list[Category]] | None = None) -> None:
        self.by_user = by_user or {}

    def list_categories(self, user_id: str) -> list[Category]:
        return list(self.by_user.get(user_id, []))


class InMemoryLedger:
    """Records ledger writes; ``fail_for`` ids raise :class:`StorageError`."""

    def __init__(self, *, fail_for: Iterable[str] = ()) -> None:
        self.income: list[tuple[StagedTransaction, str]] = []
        self.expenses: list[tuple[StagedTransaction, str]] = []
        self._fail_for = set(fail_for)
        self._lock = threading.Lock()

    def _check(self, staged: StagedTransaction) -> None:
        if staged.id in self._fail_for:
            raise StorageError(f"ledger unavailable for {staged.id}")

    def create_income(self, staged: StagedTransaction, *, source: str) -> str:
        self._check(staged)
        with self._lock:
            self.income.append((staged, source))
            return f"inc-{len(self.income)}"

    def create_expense(self, staged: StagedTransaction, *, category_id: str) -> str:
        self._check(staged)
        with self._lock:
            self.expenses.append((staged, category_id))
            return f"exp-{len(self.expenses)}"
