"""Pytest configuration for test isolation.

``db.client`` keeps one process-wide engine bound to the first URL it sees.
Every DB test bootstraps its own SQLite file, so the shared engine is disposed
around each test; otherwise the second test would trip the "different
DATABASE_URL" guard (or, worse, write into the previous test's database).

Environment variables read by the package are cleared per test so a developer's
``.env`` or shell cannot leak into assertions.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from db.client import dispose_engine


@pytest.fixture(autouse=True)
def _isolate_db_engine() -> Iterator[None]:
    dispose_engine()
    yield
    dispose_engine()


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "LEDGER_IMPORT_MAX_WORKERS", "LEDGER_IMPORT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
