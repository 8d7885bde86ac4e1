"""Promotion: staged transactions → committed ledger entries.

Lifecycle of a staged row
-------------------------
``create`` (import) → either ``delete_uncommitted`` (review discards it) or
promotion, which writes exactly one ledger entry and flips ``committed`` once.
Committed rows are immutable through this package.

Exactly-once
------------
Each id is promoted inside a store savepoint: the conditional
``mark_committed`` runs first and the ledger write follows. A losing
concurrent caller sees ``mark_committed`` return ``False`` and writes
nothing; a failed ledger write rolls the flip back with the savepoint.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .categories import CategoryDirectory
from .errors import NoCategoriesError, StorageError
from .ledger import DEFAULT_INCOME_SOURCE, LedgerWriter
from .logging_setup import get_logger
from .models import (
    Category,
    DeleteResult,
    PromotionError,
    PromotionResult,
    StagedTransaction,
    TransactionKind,
)
from .staging import StagingStore

_log = get_logger("ledger_import.promotion")


class _SkipPromotion(Exception):
    """Abandons one id's savepoint without touching anything."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def resolve_category(
    staged: StagedTransaction,
    categories: list[Category],
    override: str | None = None,
) -> str:
    """Pick the category id for an expense.

    Strict order: explicit ``override`` (must be one of ``categories``), then
    a case-insensitive exact name match on ``staged.category_hint``, then the
    first category. ``categories`` must be non-empty. Raises ``LookupError``
    for an override that is not one of the user's categories.
    """

    if override:
        if not any(c.id == override for c in categories):
            raise LookupError(f"unknown category {override!r}")
        return override
    hint = (staged.category_hint or "").strip().lower()
    if hint:
        for c in categories:
            if c.name.lower() == hint:
                return c.id
    return categories[0].id


def _load_pending(store: StagingStore, staged_id: str, user_id: str) -> StagedTransaction:
    """Fetch ``staged_id`` if ``user_id`` owns it and it is still pending."""

    staged = store.get(staged_id)
    if staged is None or staged.user_id != user_id:
        raise _SkipPromotion("not found")
    if staged.committed:
        raise _SkipPromotion("already committed")
    return staged


def promote_staged(
    store: StagingStore,
    categories: CategoryDirectory,
    ledger: LedgerWriter,
    user_id: str,
    staged_ids: Iterable[str],
    category_overrides: Mapping[str, str] | None = None,
) -> PromotionResult:
    """Promote ``staged_ids`` owned by ``user_id`` into ledger entries.

    Per-id problems (not found, not owned, already committed, unknown
    override category, storage failure) are collected in
    :attr:`PromotionResult.errors` and never stop the remaining ids.

    Raises
    ------
    NoCategoriesError
        The user has no categories at all; checked before any row is read.
    """

    user_categories = categories.list_categories(user_id)
    if not user_categories:
        raise NoCategoriesError(user_id)

    overrides = dict(category_overrides or {})
    result = PromotionResult()

    for staged_id in staged_ids:
        try:
            staged = _load_pending(store, staged_id, user_id)
        except _SkipPromotion as e:
            _log.debug("skip %s: %s", staged_id, e.reason)
            result.errors.append(PromotionError(staged_id, e.reason))
            continue

        category_id: str | None = None
        if staged.kind is TransactionKind.EXPENSE:
            try:
                category_id = resolve_category(
                    staged, user_categories, override=overrides.get(staged_id)
                )
            except LookupError as e:
                result.errors.append(PromotionError(staged_id, str(e)))
                continue

        try:
            with store.savepoint():
                if not store.mark_committed(staged_id, user_id=user_id):
                    raise _SkipPromotion("already committed")
                if category_id is None:
                    ledger.create_income(
                        staged, source=staged.category_hint or DEFAULT_INCOME_SOURCE
                    )
                else:
                    ledger.create_expense(staged, category_id=category_id)
        except _SkipPromotion as e:
            result.errors.append(PromotionError(staged_id, e.reason))
            continue
        except StorageError as e:
            _log.warning("failed to promote %s: %s", staged_id, e)
            result.errors.append(PromotionError(staged_id, f"failed to promote: {e}"))
            continue

        if category_id is None:
            result.income_created += 1
        else:
            result.expenses_created += 1

    _log.info(
        "promoted for user=%s: %d income, %d expense(s), %d error(s)",
        user_id,
        result.income_created,
        result.expenses_created,
        len(result.errors),
    )
    return result


def delete_staged(store: StagingStore, user_id: str, staged_ids: Iterable[str]) -> DeleteResult:
    """Delete uncommitted staged rows; committed or foreign ids are skipped silently."""

    deleted = store.delete_uncommitted(user_id, staged_ids)
    return DeleteResult(deleted=deleted, message=f"Deleted {deleted} imported transactions")


def list_staged(store: StagingStore, user_id: str) -> list[StagedTransaction]:
    """Rows awaiting review: uncommitted and imported, newest first."""

    return store.list_pending(user_id)


__all__ = ["resolve_category", "promote_staged", "delete_staged", "list_staged"]
