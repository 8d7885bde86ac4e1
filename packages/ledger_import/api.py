"""Public API for ``ledger_import``: DB-backed import, review and promotion.

Each function opens one transactional scope (``db.client.session_scope``),
wires the SQLAlchemy collaborators to the pure pipeline functions, and returns
pydantic result models. The pipeline functions themselves
(:func:`~ledger_import.importer.import_transactions`,
:func:`~ledger_import.promotion.promote_staged`, ...) take their collaborators
as arguments and can be used with any store implementation.

DB imports are local to each function so that importing this module stays
cheap for callers that only use the pure pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .ingest.upload import decode_csv_bytes, ensure_csv_upload
from .logging_setup import get_logger
from .models import (
    Category,
    DeleteResult,
    PromotionResult,
    StagedTransaction,
    UploadResult,
)

_log = get_logger("ledger_import.api")

DEFAULT_SOURCE = "CSV Import"


def upload_csv(
    user_id: str,
    data: bytes,
    *,
    file_name: str,
    content_type: str | None = None,
    source: str | None = None,
    database_url: str | None = None,
    concurrency: int = 1,
) -> UploadResult:
    """Validate, decode and import an uploaded CSV file for ``user_id``.

    Rejects non-CSV uploads and undecodable bytes before parsing
    (:class:`~ledger_import.errors.ImportRejected` and subclasses). On success
    returns the import report plus the original file name and byte size.
    """

    from db.client import session_scope

    from .importer import import_transactions
    from .persistence import SqlStagingStore

    _log.info("upload %r (%d bytes) for user=%s", file_name, len(data), user_id)
    ensure_csv_upload(file_name, content_type)
    text = decode_csv_bytes(data)
    label = (source or "").strip() or DEFAULT_SOURCE

    with session_scope(database_url=database_url) as session:
        report = import_transactions(
            SqlStagingStore(session),
            user_id,
            text,
            label,
            concurrency=concurrency,
        )

    return UploadResult(
        source=report.source,
        success_count=report.success_count,
        failure_count=report.failure_count,
        failures=report.failures,
        preview=report.preview,
        file_name=file_name,
        file_size=len(data),
    )


def list_staged_transactions(
    user_id: str, *, database_url: str | None = None
) -> list[StagedTransaction]:
    """Imported, uncommitted transactions awaiting review, newest first."""

    from db.client import session_scope

    from .persistence import SqlStagingStore
    from .promotion import list_staged

    with session_scope(database_url=database_url) as session:
        return list_staged(SqlStagingStore(session), user_id)


def _require_ids(staged_ids: Sequence[str]) -> list[str]:
    ids = [str(i).strip() for i in staged_ids if str(i).strip()]
    if not ids:
        raise ValueError("at least one staged transaction id is required")
    return ids


def promote_transactions(
    user_id: str,
    staged_ids: Sequence[str],
    category_overrides: Mapping[str, str] | None = None,
    *,
    database_url: str | None = None,
) -> PromotionResult:
    """Promote staged transactions into income/expense ledger entries.

    ``category_overrides`` maps staged id → category id for expenses.
    Raises ``ValueError`` for an empty id list and
    :class:`~ledger_import.errors.NoCategoriesError` when the user has no
    categories.
    """

    from db.client import session_scope

    from .categories import SqlCategoryDirectory
    from .ledger import SqlLedgerWriter
    from .persistence import SqlStagingStore
    from .promotion import promote_staged

    ids = _require_ids(staged_ids)
    with session_scope(database_url=database_url) as session:
        return promote_staged(
            SqlStagingStore(session),
            SqlCategoryDirectory(session),
            SqlLedgerWriter(session),
            user_id,
            ids,
            category_overrides,
        )


def delete_staged_transactions(
    user_id: str, staged_ids: Sequence[str], *, database_url: str | None = None
) -> DeleteResult:
    """Delete staged transactions that are still uncommitted."""

    from db.client import session_scope

    from .persistence import SqlStagingStore
    from .promotion import delete_staged

    ids = _require_ids(staged_ids)
    with session_scope(database_url=database_url) as session:
        return delete_staged(SqlStagingStore(session), user_id, ids)


def list_categories(user_id: str, *, database_url: str | None = None) -> list[Category]:
    from db.client import session_scope

    from .categories import SqlCategoryDirectory

    with session_scope(database_url=database_url) as session:
        return SqlCategoryDirectory(session).list_categories(user_id)


def seed_categories(user_id: str, *, database_url: str | None = None) -> list[Category]:
    """Create the default category set for ``user_id`` (idempotent)."""

    from .ingest.seed_categories import reseed_defaults

    reseed_defaults(database_url=database_url, user_id=user_id)
    return list_categories(user_id, database_url=database_url)


__all__ = [
    "DEFAULT_SOURCE",
    "upload_csv",
    "list_staged_transactions",
    "promote_transactions",
    "delete_staged_transactions",
    "list_categories",
    "seed_categories",
]
