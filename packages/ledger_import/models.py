"""Data models for ``ledger_import``.

Two families live here:

- frozen ``dataclass`` records flowing through the pipeline
  (:class:`NormalizedRow`, :class:`RowFailure`, :class:`StagedTransaction`,
  :class:`Category`, :class:`PromotionError`);
- ``pydantic`` result models returned to callers and serialized by the CLI
  (:class:`ImportReport`, :class:`UploadResult`, :class:`PromotionResult`,
  :class:`DeleteResult`).

Role and kind are closed enums so the detection and classification tables in
``columns.py`` / ``normalize.py`` stay exhaustive.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ColumnRole(StrEnum):
    """Semantic meaning assigned to a CSV column from its header text."""

    DATE = "date"
    DESCRIPTION = "description"
    AMOUNT = "amount"
    TYPE = "type"
    CATEGORY = "category"


REQUIRED_ROLES: tuple[ColumnRole, ...] = (
    ColumnRole.DATE,
    ColumnRole.DESCRIPTION,
    ColumnRole.AMOUNT,
)


class TransactionKind(StrEnum):
    INCOME = "income"
    EXPENSE = "expense"


class FailureReason(StrEnum):
    """Why a single data row was not staged."""

    MISSING_FIELD = "missing required field"
    INVALID_DATE = "invalid date format"
    INVALID_AMOUNT = "invalid amount"
    STAGING_FAILED = "failed to stage"


type ColumnRoleMap = dict[ColumnRole, int]
"""Role → zero-based column index, built once per file from the header row."""


# ---------------------------------------------------------------------------
# Pipeline records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NormalizedRow:
    """A validated data row ready for staging.

    ``amount`` is always a positive magnitude; direction is carried by
    ``kind`` alone.
    """

    date: dt.date
    description: str
    amount: Decimal
    kind: TransactionKind
    category_hint: str | None = None


@dataclass(frozen=True, slots=True)
class RowFailure:
    """A rejected data row, tagged with its 1-based line number in the file."""

    row_number: int
    reason: FailureReason
    detail: str | None = None

    @property
    def message(self) -> str:
        if self.detail:
            return f"{self.reason.value}: {self.detail}"
        return self.reason.value


type RowOutcome = NormalizedRow | RowFailure


@dataclass(frozen=True, slots=True)
class StagedTransaction:
    """An imported-but-not-yet-committed record owned by ``user_id``."""

    id: str
    user_id: str
    kind: TransactionKind
    amount: Decimal
    description: str
    date: dt.date
    category_hint: str | None
    source: str
    imported: bool = True
    committed: bool = False
    created_at: dt.datetime | None = None


@dataclass(frozen=True, slots=True)
class Category:
    """A user-defined expense category as seen by the promotion engine."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class PromotionError:
    staged_id: str
    reason: str


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

PREVIEW_LIMIT = 10


class ImportReport(BaseModel):
    """Outcome of one import call. Transient; never persisted."""

    model_config = ConfigDict(extra="forbid")

    source: str
    success_count: int = 0
    failure_count: int = 0
    failures: list[RowFailure] = Field(default_factory=list)
    preview: list[NormalizedRow] = Field(default_factory=list)

    def record_success(self, row: NormalizedRow) -> None:
        self.success_count += 1
        if len(self.preview) < PREVIEW_LIMIT:
            self.preview.append(row)

    def record_failure(self, failure: RowFailure) -> None:
        self.failure_count += 1
        self.failures.append(failure)


class UploadResult(ImportReport):
    """An :class:`ImportReport` augmented with the uploaded file's identity."""

    file_name: str
    file_size: int


class PromotionResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    income_created: int = 0
    expenses_created: int = 0
    errors: list[PromotionError] = Field(default_factory=list)


class DeleteResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    deleted: int
    message: str


__all__ = [
    "ColumnRole",
    "ColumnRoleMap",
    "REQUIRED_ROLES",
    "TransactionKind",
    "FailureReason",
    "NormalizedRow",
    "RowFailure",
    "RowOutcome",
    "StagedTransaction",
    "Category",
    "PromotionError",
    "PREVIEW_LIMIT",
    "ImportReport",
    "UploadResult",
    "PromotionResult",
    "DeleteResult",
]
