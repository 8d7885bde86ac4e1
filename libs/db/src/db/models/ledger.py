from __future__ import annotations

import datetime as dt
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------
# Reference: ledger_categories
# ---------------------------


class LedgerCategory(Base):
    __tablename__ = "ledger_categories"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    # Names are unique per user, case-insensitively. The service layer checks
    # before insert; the migration adds a unique index on (user_id, lower(name)).
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# ---------------------------
# Core: staged_transactions
# ---------------------------


class StagedTransactionRow(Base):
    __tablename__ = "staged_transactions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    # Always a positive magnitude; direction lives in ``kind``.
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category_hint: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False)
    imported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    committed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    committed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("kind in ('income','expense')", name="ck_staged_tx_kind"),
        CheckConstraint("amount > 0", name="ck_staged_tx_amount_positive"),
        Index("ix_staged_tx_user_pending", "user_id", "imported", "committed"),
    )


# ---------------------------
# Ledger: income / expenses
# ---------------------------


class LedgerIncome(Base):
    __tablename__ = "ledger_income"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    # Provenance: the staged row this entry was promoted from (unique, so a
    # staged row can back at most one ledger entry).
    staged_id: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("staged_transactions.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class LedgerExpense(Base):
    __tablename__ = "ledger_expenses"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    category_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("ledger_categories.id"), nullable=False
    )
    staged_id: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("staged_transactions.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


__all__ = [
    "Base",
    "LedgerCategory",
    "StagedTransactionRow",
    "LedgerIncome",
    "LedgerExpense",
]
