"""Exception types for ``ledger_import``.

Only file-level and call-level problems are raised. Row-level import problems
and per-id promotion problems are returned as data
(:class:`~ledger_import.models.RowFailure`,
:class:`~ledger_import.models.PromotionError`).

    LedgerImportError
    +-- ImportRejected            whole file refused before any row is staged
    |   +-- ColumnDetectionError  mandatory column roles not found in header
    |   +-- UnsupportedUploadError
    +-- NoCategoriesError         promotion precondition (user has no categories)
    +-- StorageError              store / ledger write failed
"""

from __future__ import annotations

from collections.abc import Sequence


class LedgerImportError(Exception):
    """Base class for all errors raised by this package."""


class ImportRejected(LedgerImportError):
    """The file was refused as a whole; no row was processed."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class ColumnDetectionError(ImportRejected):
    def __init__(self, missing_roles: Sequence[str]) -> None:
        self.missing_roles: tuple[str, ...] = tuple(missing_roles)
        super().__init__(
            "Required columns not found: "
            + ", ".join(self.missing_roles)
            + " (date, description, and amount are mandatory)"
        )


class UnsupportedUploadError(ImportRejected):
    """The upload is not a CSV file (by name and declared content type)."""


class NoCategoriesError(LedgerImportError):
    def __init__(self, user_id: str) -> None:
        super().__init__(
            "No categories found. Please create categories before processing transactions."
        )
        self.user_id = user_id


class StorageError(LedgerImportError):
    """A collaborator (staging store, ledger) failed to persist a change."""


__all__ = [
    "LedgerImportError",
    "ImportRejected",
    "ColumnDetectionError",
    "UnsupportedUploadError",
    "NoCategoriesError",
    "StorageError",
]
