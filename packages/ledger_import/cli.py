"""CLI for the ``ledger_import`` package.

Typer-based console interface over :mod:`ledger_import.api`. Environment
variables (notably ``DATABASE_URL``) are loaded from a local ``.env`` using
``python-dotenv`` before any command runs; business logic lives in the API
and pipeline modules.

Commands
--------
- ``import-csv --csv-path FILE --user-id U``: stage a bank/CSV export.
- ``list-staged --user-id U``: show transactions awaiting review.
- ``promote --user-id U --id X [--id Y] [--override X=CATEGORY_ID]``.
- ``delete-staged --user-id U (--id X ... | --all-pending)``.
- ``seed-categories --user-id U``: create the default category set.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .errors import LedgerImportError
from .logging_setup import configure_logging

# ---- Small module-level helpers used by CLI commands -------------------------


def _resolve_max_workers(explicit: int | None = None) -> int:
    """Resolve the importer's staging concurrency.

    Honors ``--workers`` first, then ``LEDGER_IMPORT_MAX_WORKERS``; caps to 16
    and never goes below 1. Defaults to 1 (sequential staging).
    """

    value = explicit
    if value is None:
        env_workers = os.getenv("LEDGER_IMPORT_MAX_WORKERS")
        try:
            value = int(env_workers) if env_workers else None
        except ValueError:
            value = None
    if value is None or value < 1:
        return 1
    return min(value, 16)


def _parse_overrides(pairs: list[str] | None) -> dict[str, str]:
    """Turn ``["tx1=cat9", ...]`` into ``{"tx1": "cat9"}``."""

    out: dict[str, str] = {}
    for pair in pairs or []:
        staged_id, sep, category_id = pair.partition("=")
        if not sep or not staged_id.strip() or not category_id.strip():
            raise typer.BadParameter(
                f"expected STAGED_ID=CATEGORY_ID, got {pair!r}", param_hint="--override"
            )
        out[staged_id.strip()] = category_id.strip()
    return out


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank/CSV exports into a staging area, review them, and promote "
        "them into income/expense ledger entries. Loads DATABASE_URL from a "
        "local .env before running."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
CSV_PATH_OPTION: OptionInfo = typer.Option(
    ...,
    "--csv-path",
    help="Path to a CSV export to import",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
USER_ID_OPTION: OptionInfo = typer.Option(..., "--user-id", help="Owner of the transactions")
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
IDS_OPTION: OptionInfo = typer.Option(
    None, "--id", help="Staged transaction id (repeatable)."
)


@app.command("import-csv")
def import_csv_cmd(
    csv_path: Annotated[Path, CSV_PATH_OPTION],
    user_id: Annotated[str, USER_ID_OPTION],
    source: str | None = typer.Option(
        None, help="Provenance label stored on each row (defaults to the file name)."
    ),
    content_type: str | None = typer.Option(
        None, help="Declared content type, checked like an HTTP upload's."
    ),
    workers: int | None = typer.Option(
        None, help="Concurrent staging writes (env LEDGER_IMPORT_MAX_WORKERS)."
    ),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Stage every valid row of a CSV file and print the import report as JSON."""

    from .api import upload_csv

    try:
        data = csv_path.read_bytes()
    except FileNotFoundError:
        raise _fail(f"File not found: {csv_path}") from None
    except PermissionError:
        raise _fail(f"Permission denied: {csv_path}") from None

    try:
        result = upload_csv(
            user_id,
            data,
            file_name=csv_path.name,
            content_type=content_type,
            source=source or csv_path.name,
            database_url=database_url,
            concurrency=_resolve_max_workers(workers),
        )
    except LedgerImportError as e:
        raise _fail(str(e)) from None

    typer.echo(result.model_dump_json(indent=2))


@app.command("list-staged")
def list_staged_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Print staged transactions awaiting review, one per line."""

    from .api import list_staged_transactions

    try:
        rows = list_staged_transactions(user_id, database_url=database_url)
    except LedgerImportError as e:
        raise _fail(str(e)) from None

    for tx in rows:
        typer.echo(
            "\t".join(
                [
                    tx.id,
                    tx.date.isoformat(),
                    tx.kind.value,
                    f"{tx.amount:.2f}",
                    tx.description,
                    tx.category_hint or "",
                ]
            )
        )


@app.command("promote")
def promote_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    ids: list[str] | None = IDS_OPTION,
    override: list[str] | None = typer.Option(
        None, help="STAGED_ID=CATEGORY_ID category override for an expense (repeatable)."
    ),
    all_pending: bool = typer.Option(False, help="Promote every pending staged transaction."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Promote staged transactions into ledger entries and print the result as JSON."""

    from .api import list_staged_transactions, promote_transactions

    overrides = _parse_overrides(override)
    try:
        staged_ids = list(ids or [])
        if all_pending:
            staged_ids += [t.id for t in list_staged_transactions(user_id, database_url=database_url)]
        result = promote_transactions(
            user_id, staged_ids, overrides, database_url=database_url
        )
    except (LedgerImportError, ValueError) as e:
        raise _fail(str(e)) from None

    typer.echo(result.model_dump_json(indent=2))


@app.command("delete-staged")
def delete_staged_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    ids: list[str] | None = IDS_OPTION,
    all_pending: bool = typer.Option(False, help="Delete every pending staged transaction."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Delete uncommitted staged transactions (committed ones are left alone)."""

    from .api import delete_staged_transactions, list_staged_transactions

    try:
        staged_ids = list(ids or [])
        if all_pending:
            staged_ids += [t.id for t in list_staged_transactions(user_id, database_url=database_url)]
        result = delete_staged_transactions(user_id, staged_ids, database_url=database_url)
    except (LedgerImportError, ValueError) as e:
        raise _fail(str(e)) from None

    typer.echo(result.message)


@app.command("seed-categories")
def seed_categories_cmd(
    user_id: Annotated[str, USER_ID_OPTION],
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Create the default expense categories for a user and list them."""

    from .api import seed_categories

    try:
        categories = seed_categories(user_id, database_url=database_url)
    except (LedgerImportError, ValueError) as e:
        raise _fail(str(e)) from None

    for c in categories:
        typer.echo(f"{c.id}\t{c.name}")


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Level spec such as INFO or WARNING,persistence=DEBUG (env LEDGER_IMPORT_LOG_LEVEL).",
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:  # pragma: no cover - console script shim
    app()


if __name__ == "__main__":  # pragma: no cover - `python -m ledger_import.cli`
    main()
