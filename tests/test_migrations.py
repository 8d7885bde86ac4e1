"""Alembic migrations apply cleanly and match the ORM models."""

from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from db import metadata
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

_ROOT = Path(__file__).resolve().parents[1]
_SCRIPT_LOCATION = _ROOT / "libs/db/alembic"


def _config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(_SCRIPT_LOCATION))
    return cfg


@pytest.fixture
def sqlite_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite+pysqlite:///{tmp_path / 'migrations.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    # env.py looks for a .env from the working directory upwards.
    monkeypatch.chdir(tmp_path)
    return url


def test_single_linear_history():
    script = ScriptDirectory.from_config(_config())
    assert script.get_heads() == ["0001_staging_core"]


def test_upgrade_matches_orm_then_downgrades(sqlite_url: str):
    cfg = _config()
    command.upgrade(cfg, "head")

    engine = create_engine(sqlite_url)
    try:
        insp = inspect(engine)
        for table in metadata.sorted_tables:
            got = {c["name"] for c in insp.get_columns(table.name)}
            assert got == {c.name for c in table.columns}, table.name

        indexes = {ix["name"] for ix in insp.get_indexes("staged_transactions")}
        assert "ix_staged_tx_user_pending" in indexes

        # Category names are unique per user regardless of case.
        with engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO ledger_categories (id, user_id, name, is_default) "
                    "VALUES ('c1', 'u1', 'Food', 0), ('c2', 'u2', 'food', 0)"
                )
            )
        with pytest.raises(IntegrityError):
            with engine.begin() as conn:
                conn.execute(
                    text(
                        "INSERT INTO ledger_categories (id, user_id, name, is_default) "
                        "VALUES ('c3', 'u1', 'FOOD', 0)"
                    )
                )
    finally:
        engine.dispose()

    command.downgrade(cfg, "base")
    engine = create_engine(sqlite_url)
    try:
        assert set(inspect(engine).get_table_names()) <= {"alembic_version"}
    finally:
        engine.dispose()
