"""Staging store contract.

The store owns :class:`~ledger_import.models.StagedTransaction` rows between
import and promotion. Persistence itself is pluggable: the SQLAlchemy
implementation lives in :mod:`ledger_import.persistence` and tests use an
in-memory one.

Invariants every implementation must keep
-----------------------------------------
- ``create`` assigns an opaque id and stores ``imported=True``,
  ``committed=False``. It may be called from several worker threads at once.
- ``mark_committed`` is a conditional update: it flips ``committed`` only when
  the row exists, belongs to ``user_id`` and is still uncommitted, and reports
  whether it did. Two concurrent calls for the same id cannot both return
  ``True``.
- ``delete_uncommitted`` never removes a committed row or another user's row
  and does not treat them as errors.
- ``savepoint()`` scopes a unit of work: an exception escaping the block
  undoes every change made through the store (and through collaborators
  sharing its transaction) inside it.
- Storage failures surface as :class:`~ledger_import.errors.StorageError`.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import AbstractContextManager
from typing import Protocol

from .models import NormalizedRow, StagedTransaction


class StagingStore(Protocol):
    def create(self, *, user_id: str, row: NormalizedRow, source: str) -> StagedTransaction: ...

    def get(self, staged_id: str) -> StagedTransaction | None: ...

    def list_pending(self, user_id: str) -> list[StagedTransaction]:
        """Uncommitted, imported rows for ``user_id``, newest first."""
        ...

    def mark_committed(self, staged_id: str, *, user_id: str) -> bool: ...

    def delete_uncommitted(self, user_id: str, staged_ids: Iterable[str]) -> int: ...

    def savepoint(self) -> AbstractContextManager[None]: ...


__all__ = ["StagingStore"]
