# ruff: noqa: I001
"""Staging and ledger core tables.

Revision ID: 0001_staging_core
Revises: None
Create Date: 2026-10-17
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_staging_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ledger_categories
    op.create_table(
        "ledger_categories",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_ledger_categories_user_id", "ledger_categories", ["user_id"])
    # Case-insensitive uniqueness of names per user
    op.create_index(
        "uq_ledger_categories_user_lower_name",
        "ledger_categories",
        ["user_id", sa.text("lower(name)")],
        unique=True,
    )

    # staged_transactions
    op.create_table(
        "staged_transactions",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category_hint", sa.Text(), nullable=True),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("imported", sa.Boolean(), nullable=False),
        sa.Column("committed", sa.Boolean(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("committed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("kind in ('income','expense')", name="ck_staged_tx_kind"),
        sa.CheckConstraint("amount > 0", name="ck_staged_tx_amount_positive"),
    )
    op.create_index(
        "ix_staged_tx_user_pending",
        "staged_transactions",
        ["user_id", "imported", "committed"],
    )

    # ledger_income
    op.create_table(
        "ledger_income",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "staged_id",
            sa.String(length=32),
            sa.ForeignKey("staged_transactions.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_ledger_income_user_id", "ledger_income", ["user_id"])

    # ledger_expenses
    op.create_table(
        "ledger_expenses",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column(
            "category_id",
            sa.String(length=32),
            sa.ForeignKey("ledger_categories.id"),
            nullable=False,
        ),
        sa.Column(
            "staged_id",
            sa.String(length=32),
            sa.ForeignKey("staged_transactions.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_ledger_expenses_user_id", "ledger_expenses", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_ledger_expenses_user_id", table_name="ledger_expenses")
    op.drop_table("ledger_expenses")
    op.drop_index("ix_ledger_income_user_id", table_name="ledger_income")
    op.drop_table("ledger_income")
    op.drop_index("ix_staged_tx_user_pending", table_name="staged_transactions")
    op.drop_table("staged_transactions")
    op.drop_index("uq_ledger_categories_user_lower_name", table_name="ledger_categories")
    op.drop_index("ix_ledger_categories_user_id", table_name="ledger_categories")
    op.drop_table("ledger_categories")
