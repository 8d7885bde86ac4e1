from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest
from db.client import session_scope
from db.models.ledger import LedgerExpense, LedgerIncome, StagedTransactionRow
from sqlalchemy import select

from ledger_import.api import (
    delete_staged_transactions,
    list_categories,
    list_staged_transactions,
    promote_transactions,
    seed_categories,
    upload_csv,
)
from ledger_import.categories import DEFAULT_CATEGORIES
from ledger_import.errors import ImportRejected, NoCategoriesError, UnsupportedUploadError
from ledger_import.models import FailureReason, PromotionError

from tests.helpers.db import bootstrap_sqlite_db, fetch_staged
from tests.helpers.db import seed_categories as seed_test_categories

CSV_TEXT = textwrap.dedent(
    """
    Date,Description,Amount,Type,Category
    2024-01-15,Grocery Store,-45.00,,Food
    2024-01-16,Salary,3000.00,credit,
    not-a-date,Broken,10.00,,
    2024-01-17,"Coffee, large",4.50,debit,food
    2024-01-18,Taxi,-23.10,,Foood
    2024-01-19,Mystery,abc,,
    """
).lstrip("\n")


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "ledger-e2e.db")


@pytest.fixture
def categories(db_url: str) -> dict[str, str]:
    return seed_test_categories(
        database_url=db_url, user_id="alice", names=("Miscellaneous", "Food", "Travel")
    )


def test_e2e_upload_review_promote(db_url: str, categories: dict[str, str]):
    # -------------------------
    # Upload
    # -------------------------
    data = CSV_TEXT.encode("utf-8")
    result = upload_csv(
        "alice", data, file_name="bank.csv", content_type="text/csv", database_url=db_url
    )
    assert result.file_name == "bank.csv"
    assert result.file_size == len(data)
    assert result.source == "CSV Import"
    assert (result.success_count, result.failure_count) == (4, 2)
    assert [(f.row_number, f.reason) for f in result.failures] == [
        (4, FailureReason.INVALID_DATE),
        (7, FailureReason.INVALID_AMOUNT),
    ]

    rows = fetch_staged(database_url=db_url, user_id="alice")
    assert [(r.description, r.kind, r.amount) for r in rows] == [
        ("Grocery Store", "expense", Decimal("45.00")),
        ("Salary", "income", Decimal("3000.00")),
        ("Coffee, large", "expense", Decimal("4.50")),
        ("Taxi", "expense", Decimal("23.10")),
    ]
    assert all(r.imported and not r.committed for r in rows)

    # -------------------------
    # Review + promote
    # -------------------------
    pending = list_staged_transactions("alice", database_url=db_url)
    assert len(pending) == 4
    ids = {t.description: t.id for t in pending}

    promoted = promote_transactions("alice", list(ids.values()), database_url=db_url)
    assert promoted.income_created == 1
    assert promoted.expenses_created == 3
    assert promoted.errors == []

    with session_scope(database_url=db_url) as s:
        expenses = {
            e.description: e.category_id
            for e in s.execute(select(LedgerExpense)).scalars().all()
        }
        income = s.execute(select(LedgerIncome)).scalars().all()
        committed = s.execute(
            select(StagedTransactionRow.committed, StagedTransactionRow.committed_at)
        ).all()

    assert expenses == {
        "Grocery Store": categories["Food"],
        "Coffee, large": categories["Food"],
        # No fuzzy matching: "Foood" falls back to the first category.
        "Taxi": categories["Miscellaneous"],
    }
    assert [(i.description, i.source, i.amount, i.staged_id) for i in income] == [
        ("Salary", "Imported", Decimal("3000.00"), ids["Salary"])
    ]
    assert all(flag and at is not None for flag, at in committed)
    assert list_staged_transactions("alice", database_url=db_url) == []

    # -------------------------
    # Idempotence
    # -------------------------
    again = promote_transactions("alice", [ids["Salary"], ids["Taxi"]], database_url=db_url)
    assert again.income_created == 0 and again.expenses_created == 0
    assert again.errors == [
        PromotionError(ids["Salary"], "already committed"),
        PromotionError(ids["Taxi"], "already committed"),
    ]
    with session_scope(database_url=db_url) as s:
        assert len(s.execute(select(LedgerIncome)).scalars().all()) == 1


def test_e2e_override_and_foreign_ids(db_url: str, categories: dict[str, str]):
    upload_csv("alice", CSV_TEXT.encode(), file_name="a.csv", database_url=db_url)
    upload_csv("mallory", CSV_TEXT.encode(), file_name="m.csv", database_url=db_url)
    theirs = seed_test_categories(database_url=db_url, user_id="mallory", names=("Theirs",))

    alice = {t.description: t.id for t in list_staged_transactions("alice", database_url=db_url)}
    mallory = {
        t.description: t.id for t in list_staged_transactions("mallory", database_url=db_url)
    }

    result = promote_transactions(
        "alice",
        [alice["Taxi"], alice["Grocery Store"], mallory["Taxi"]],
        {alice["Taxi"]: categories["Travel"], alice["Grocery Store"]: theirs["Theirs"]},
        database_url=db_url,
    )

    assert result.expenses_created == 1
    assert result.errors == [
        PromotionError(alice["Grocery Store"], f"unknown category {theirs['Theirs']!r}"),
        PromotionError(mallory["Taxi"], "not found"),
    ]
    with session_scope(database_url=db_url) as s:
        (only,) = s.execute(select(LedgerExpense)).scalars().all()
    assert (only.description, only.category_id, only.user_id) == (
        "Taxi",
        categories["Travel"],
        "alice",
    )
    assert len(list_staged_transactions("mallory", database_url=db_url)) == 4


def test_e2e_delete_only_removes_uncommitted_rows(db_url: str, categories: dict[str, str]):
    upload_csv("alice", CSV_TEXT.encode(), file_name="a.csv", database_url=db_url)
    upload_csv("bob", CSV_TEXT.encode(), file_name="b.csv", database_url=db_url)
    alice = {t.description: t.id for t in list_staged_transactions("alice", database_url=db_url)}
    bob_ids = [t.id for t in list_staged_transactions("bob", database_url=db_url)]
    promote_transactions("alice", [alice["Salary"]], database_url=db_url)

    result = delete_staged_transactions(
        "alice", [*alice.values(), *bob_ids], database_url=db_url
    )

    assert result.deleted == 3
    assert result.message == "Deleted 3 imported transactions"
    remaining = fetch_staged(database_url=db_url, user_id="alice")
    assert [(r.description, r.committed) for r in remaining] == [("Salary", True)]
    assert len(fetch_staged(database_url=db_url, user_id="bob")) == 4


def test_e2e_promote_without_categories_is_refused(db_url: str):
    upload_csv("carol", CSV_TEXT.encode(), file_name="c.csv", database_url=db_url)
    ids = [t.id for t in list_staged_transactions("carol", database_url=db_url)]

    with pytest.raises(NoCategoriesError):
        promote_transactions("carol", ids, database_url=db_url)
    assert len(list_staged_transactions("carol", database_url=db_url)) == 4


def test_e2e_empty_id_list_is_rejected(db_url: str):
    with pytest.raises(ValueError):
        promote_transactions("alice", [], database_url=db_url)
    with pytest.raises(ValueError):
        delete_staged_transactions("alice", ["  "], database_url=db_url)


def test_e2e_upload_rejections_stage_nothing(db_url: str):
    with pytest.raises(UnsupportedUploadError, match="File must be a CSV file"):
        upload_csv("alice", b"x", file_name="notes.txt", content_type="text/plain",
                   database_url=db_url)
    with pytest.raises(ImportRejected, match="not valid UTF-8"):
        upload_csv("alice", b"Date,Description,Amount\n\xff\xfe", file_name="bad.csv",
                   database_url=db_url)
    with pytest.raises(ImportRejected, match="Required columns not found"):
        upload_csv("alice", b"Foo,Bar\n1,2\n", file_name="cols.csv", database_url=db_url)
    assert fetch_staged(database_url=db_url, user_id="alice") == []


def test_e2e_concurrent_upload_on_shared_session(db_url: str):
    lines = ["Date,Description,Amount"] + [f"2024-05-{d:02d},Row {d},-{d}.25" for d in range(1, 29)]
    result = upload_csv(
        "alice",
        "\n".join(lines).encode(),
        file_name="many.csv",
        source="many.csv",
        database_url=db_url,
        concurrency=4,
    )
    assert result.success_count == 28
    assert [p.description for p in result.preview] == [f"Row {d}" for d in range(1, 11)]
    rows = fetch_staged(database_url=db_url, user_id="alice")
    assert len(rows) == 28
    assert {r.source for r in rows} == {"many.csv"}


def test_e2e_seed_categories_is_idempotent(db_url: str):
    first = seed_categories("dave", database_url=db_url)
    second = seed_categories("dave", database_url=db_url)
    assert [c.name for c in first] == [name for name, _ in DEFAULT_CATEGORIES]
    assert first == second
    assert list_categories("dave", database_url=db_url) == first
