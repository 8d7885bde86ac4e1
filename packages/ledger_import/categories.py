"""Category directory: contract, SQL implementation and service helpers.

The promotion engine only needs an ordered list of a user's categories
(:class:`CategoryDirectory`). The rest of this module backs that list with
the ``ledger_categories`` table:

- ``normalize_name(...)`` / ``validate_name(...)``: shared name rules.
- ``create_category(...)``: idempotent, case-insensitive per user.
- ``seed_default_categories(...)``: the starter set given to new users.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from db.models.ledger import LedgerCategory
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError
from .logging_setup import get_logger
from .models import Category

_log = get_logger("ledger_import.categories")


class CategoryDirectory(Protocol):
    def list_categories(self, user_id: str) -> list[Category]:
        """All of ``user_id``'s categories in a stable order (first = default)."""
        ...


# ---------------------------
# Name normalization/validation
# ---------------------------

_ALLOWED_RE = re.compile(r"^[A-Za-z0-9 &\-/]+$")


def normalize_name(name: str) -> str:
    """Return a trimmed, single-spaced representation of ``name``."""

    return " ".join(name.strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, min_len: int = 1, max_len: int = 64) -> NameValidation:
    """Validate a category name.

    Rules
    -----
    - Trim whitespace; enforce length bounds 1..64.
    - Allowed characters: letters, numbers, spaces, and ``& - /``.
    """

    n = normalize_name(name)
    if len(n) < min_len:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    if not _ALLOWED_RE.match(n):
        return NameValidation(False, "Only letters, numbers, spaces, and & - / are allowed")
    return NameValidation(True, None)


# ---------------------------
# SQL-backed directory and service operations
# ---------------------------

DEFAULT_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("Food & Dining", "Groceries, restaurants, and food delivery"),
    ("Transportation", "Gas, public transit, car maintenance"),
    ("Shopping", "Clothes, electronics, and general purchases"),
    ("Entertainment", "Movies, games, subscriptions"),
    ("Bills & Utilities", "Rent, electricity, internet, phone"),
    ("Healthcare", "Medical expenses, insurance, pharmacy"),
    ("Education", "Courses, books, training"),
    ("Travel", "Flights, hotels, vacation expenses"),
    ("Miscellaneous", "Other expenses not categorized"),
)


def _ordered_categories(user_id: str):
    return (
        select(LedgerCategory)
        .where(LedgerCategory.user_id == user_id)
        .order_by(
            func.coalesce(LedgerCategory.sort_order, 10_000),
            LedgerCategory.created_at,
            LedgerCategory.name,
        )
    )


class SqlCategoryDirectory:
    """:class:`CategoryDirectory` over ``ledger_categories``.

    Order: ``sort_order`` (unset last), then creation time, then name.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_categories(self, user_id: str) -> list[Category]:
        try:
            rows = self._session.execute(_ordered_categories(user_id)).scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(f"failed to load categories: {e}") from e
        return [Category(id=r.id, name=r.name) for r in rows]


def _find_by_name(session: Session, user_id: str, name: str) -> LedgerCategory | None:
    return (
        session.execute(
            select(LedgerCategory).where(
                LedgerCategory.user_id == user_id,
                func.lower(LedgerCategory.name) == name.lower(),
            )
        )
        .scalars()
        .first()
    )


def create_category(
    session: Session,
    *,
    user_id: str,
    name: str,
    description: str | None = None,
    sort_order: int | None = None,
    is_default: bool = False,
) -> tuple[Category, bool]:
    """Create a category for ``user_id`` unless one with the same name exists.

    Names are compared case-insensitively after normalization. Returns the
    created (or existing) category and a ``created`` flag. Raises
    ``ValueError`` for names failing :func:`validate_name`.
    """

    name_n = normalize_name(name)
    check = validate_name(name_n)
    if not check.ok:
        raise ValueError(f"Invalid category name: {check.reason}")

    existing = _find_by_name(session, user_id, name_n)
    if existing is not None:
        return Category(id=existing.id, name=existing.name), False

    row = LedgerCategory(
        user_id=user_id,
        name=name_n,
        description=description,
        sort_order=sort_order,
        is_default=is_default,
    )
    session.add(row)
    session.flush()
    return Category(id=row.id, name=row.name), True


def seed_default_categories(session: Session, *, user_id: str) -> list[Category]:
    """Ensure the default category set exists for ``user_id``; returns it in order."""

    out: list[Category] = []
    created_n = 0
    for order, (name, description) in enumerate(DEFAULT_CATEGORIES):
        category, created = create_category(
            session,
            user_id=user_id,
            name=name,
            description=description,
            sort_order=order,
            is_default=True,
        )
        created_n += int(created)
        out.append(category)
    _log.info("seeded %d default categories for user=%s", created_n, user_id)
    return out


__all__ = [
    "CategoryDirectory",
    "SqlCategoryDirectory",
    "normalize_name",
    "validate_name",
    "NameValidation",
    "DEFAULT_CATEGORIES",
    "create_category",
    "seed_default_categories",
]
