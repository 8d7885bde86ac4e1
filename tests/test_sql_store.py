from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from db.client import session_scope

from ledger_import.categories import SqlCategoryDirectory, create_category
from ledger_import.errors import StorageError
from ledger_import.importer import import_transactions
from ledger_import.ledger import SqlLedgerWriter
from ledger_import.models import Category, FailureReason, NormalizedRow, TransactionKind
from ledger_import.persistence import SqlStagingStore
from ledger_import.promotion import promote_staged

from tests.helpers.db import bootstrap_sqlite_db, fetch_staged


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "store.db")


def _row(amount: str, kind: TransactionKind = TransactionKind.EXPENSE) -> NormalizedRow:
    return NormalizedRow(
        date=date(2024, 1, 1), description="Thing", amount=Decimal(amount), kind=kind
    )


def test_sub_cent_amount_fails_that_row_only(db_url: str):
    text = "Date,Description,Amount\n2024-01-01,Tiny,0.004\n2024-01-02,Fine,-1.005\n"
    with session_scope(database_url=db_url) as s:
        report = import_transactions(SqlStagingStore(s), "u", text, "t.csv")

    assert report.success_count == 1
    assert [(f.row_number, f.reason) for f in report.failures] == [
        (2, FailureReason.STAGING_FAILED)
    ]
    (only,) = fetch_staged(database_url=db_url, user_id="u")
    assert only.description == "Fine"
    assert only.amount == Decimal("1.01")


def test_mark_committed_is_conditional(db_url: str):
    with session_scope(database_url=db_url) as s:
        store = SqlStagingStore(s)
        staged = store.create(user_id="u", row=_row("5.00"), source="t")
        assert staged.imported and not staged.committed
        assert store.mark_committed(staged.id, user_id="someone-else") is False
        assert store.mark_committed(staged.id, user_id="u") is True
        assert store.mark_committed(staged.id, user_id="u") is False
        assert store.get(staged.id).committed is True
        assert store.delete_uncommitted("u", [staged.id]) == 0
        assert store.list_pending("u") == []


def test_savepoint_rolls_back_flag_when_ledger_write_fails(db_url: str):
    with session_scope(database_url=db_url) as s:
        store = SqlStagingStore(s)
        real, _ = create_category(s, user_id="u", name="Misc", sort_order=0)
        staged = store.create(user_id="u", row=_row("9.99"), source="t")

    class _GhostDirectory:
        """Offers a category id that does not exist in ``ledger_categories``."""

        def list_categories(self, user_id: str) -> list[Category]:
            return [Category(id="ghost", name="Ghost")]

    with session_scope(database_url=db_url) as s:
        store = SqlStagingStore(s)
        result = promote_staged(store, _GhostDirectory(), SqlLedgerWriter(s), "u", [staged.id])
        assert result.expenses_created == 0
        assert result.errors[0].reason.startswith("failed to promote:")
        assert store.get(staged.id).committed is False

    with session_scope(database_url=db_url) as s:
        store = SqlStagingStore(s)
        result = promote_staged(
            store, SqlCategoryDirectory(s), SqlLedgerWriter(s), "u", [staged.id]
        )
        assert result.expenses_created == 1
        assert SqlCategoryDirectory(s).list_categories("u") == [real]


def test_create_category_is_case_insensitive_and_validated(db_url: str):
    with session_scope(database_url=db_url) as s:
        first, created = create_category(s, user_id="u", name="  Food   &  Dining ")
        again, created_again = create_category(s, user_id="u", name="food & dining")
        other_user, created_other = create_category(s, user_id="v", name="Food & Dining")

        assert first.name == "Food & Dining"
        assert (created, created_again, created_other) == (True, False, True)
        assert again == first
        assert other_user.id != first.id
        with pytest.raises(ValueError, match="Invalid category name"):
            create_category(s, user_id="u", name="Bad<Name>")


def test_storage_error_surfaces_from_store(db_url: str):
    with session_scope(database_url=db_url) as s:
        with pytest.raises(StorageError, match="rounds to zero"):
            SqlStagingStore(s).create(user_id="u", row=_row("0.001"), source="t")
