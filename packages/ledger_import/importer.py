"""Batch import: CSV text → staged transactions + :class:`ImportReport`.

File-level problems (too few lines, unresolvable header) raise before any row
is touched. Row-level problems are collected in the report and never stop the
batch. Staging writes may run on a bounded worker pool; the report is always
assembled in file order and row numbers are physical 1-based line numbers
(the header is line 1).
"""

from __future__ import annotations

from dataclasses import dataclass

from .columns import detect_column_roles
from .errors import ImportRejected, StorageError
from .logging_setup import get_logger
from .models import (
    ColumnRoleMap,
    FailureReason,
    ImportReport,
    NormalizedRow,
    RowFailure,
    RowOutcome,
)
from .normalize import DateParser, normalize_row, parse_date
from .pmap import p_map
from .staging import StagingStore
from .tokenizer import DEFAULT_DELIMITER, is_blank, split_line

_log = get_logger("ledger_import.importer")


@dataclass(frozen=True, slots=True)
class _DataLine:
    row_number: int
    tokens: list[str]


def _split_file(file_text: str, delimiter: str) -> tuple[list[str], list[_DataLine]]:
    """Return the header tokens and the non-blank data lines.

    Raises :class:`ImportRejected` when there is no header plus at least one
    data line.
    """

    header: list[str] | None = None
    data: list[_DataLine] = []
    for row_number, line in enumerate(file_text.splitlines(), start=1):
        tokens = split_line(line, delimiter)
        if is_blank(tokens):
            continue
        if header is None:
            header = tokens
        else:
            data.append(_DataLine(row_number, tokens))

    if header is None or not data:
        raise ImportRejected("CSV file must have a header row and at least one data row")
    return header, data


def parse_rows(
    file_text: str,
    *,
    delimiter: str = DEFAULT_DELIMITER,
    date_parser: DateParser = parse_date,
) -> tuple[ColumnRoleMap, list[tuple[int, RowOutcome]]]:
    """Tokenize, detect roles and normalize every data row without staging.

    Returns the role map and ``(row_number, outcome)`` pairs in file order.
    """

    header, data = _split_file(file_text, delimiter)
    roles = detect_column_roles(header)
    outcomes = [
        (
            line.row_number,
            normalize_row(line.tokens, roles, row_number=line.row_number, date_parser=date_parser),
        )
        for line in data
    ]
    return roles, outcomes


def import_transactions(
    store: StagingStore,
    user_id: str,
    file_text: str,
    source: str,
    *,
    concurrency: int = 1,
    delimiter: str = DEFAULT_DELIMITER,
    date_parser: DateParser = parse_date,
) -> ImportReport:
    """Stage every valid row of ``file_text`` for ``user_id``.

    Parameters
    ----------
    store:
        Staging store receiving one ``create`` per valid row.
    user_id:
        Owner of the staged rows (already authenticated by the caller).
    file_text:
        Whole file content; the first non-blank line is the header.
    source:
        Provenance label recorded on every staged row (e.g. the file name).
    concurrency:
        Maximum number of staging writes in flight.

    Raises
    ------
    ImportRejected
        Fewer than two non-blank lines.
    ColumnDetectionError
        The header lacks a date, description or amount column.
    """

    source_label = source.strip() or "CSV Import"
    try:
        roles, outcomes = parse_rows(file_text, delimiter=delimiter, date_parser=date_parser)
    except ImportRejected as e:
        _log.warning("import rejected for user=%s source=%r: %s", user_id, source_label, e)
        raise
    _log.debug("column roles for %r: %s", source_label, {r.value: i for r, i in roles.items()})

    def _stage(item: tuple[int, RowOutcome]) -> RowOutcome:
        row_number, outcome = item
        if not isinstance(outcome, NormalizedRow):
            return outcome
        try:
            store.create(user_id=user_id, row=outcome, source=source_label)
        except StorageError as e:
            return RowFailure(row_number, FailureReason.STAGING_FAILED, str(e))
        return outcome

    report = ImportReport(source=source_label)
    for outcome in p_map(outcomes, _stage, concurrency=concurrency):
        if isinstance(outcome, RowFailure):
            _log.debug("row %d rejected: %s", outcome.row_number, outcome.message)
            report.record_failure(outcome)
        else:
            report.record_success(outcome)

    _log.info(
        "imported %d row(s) for user=%s from %r (%d failed)",
        report.success_count,
        user_id,
        source_label,
        report.failure_count,
    )
    return report


__all__ = ["parse_rows", "import_transactions"]
