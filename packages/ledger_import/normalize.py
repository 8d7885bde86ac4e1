"""Per-row normalization and validation.

:func:`normalize_row` turns one tokenized data row into either a
:class:`~ledger_import.models.NormalizedRow` or a
:class:`~ledger_import.models.RowFailure`. It never raises for bad data; the
batch importer collects the failures.

Kind classification
-------------------
When a ``type`` column is mapped and its cell is non-blank, :data:`KIND_KEYWORDS`
is consulted in order (income keywords before expense keywords, substring
match) and a token matching no keyword is an expense. Only when the column is
unmapped or the cell is blank does the sign of the raw amount decide:
non-negative is income, negative is expense.
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Callable, Sequence
from decimal import Decimal, InvalidOperation

from .models import (
    ColumnRole,
    ColumnRoleMap,
    FailureReason,
    NormalizedRow,
    RowFailure,
    RowOutcome,
    TransactionKind,
)

type DateParser = Callable[[str], dt.date | None]

# Ordered: the first kind with a matching substring wins.
KIND_KEYWORDS: tuple[tuple[TransactionKind, tuple[str, ...]], ...] = (
    (TransactionKind.INCOME, ("credit", "deposit", "income", "+")),
    (TransactionKind.EXPENSE, ("debit", "withdrawal", "expense", "payment", "-")),
)

_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
)

_CURRENCY_RE = re.compile(r"[$€£¥₹]")
_ISO_DATETIME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]")


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def parse_date(raw: str) -> dt.date | None:
    """Parse a calendar date from common bank-export spellings.

    ISO timestamps (``2024-01-15T10:30:00``, ``2024-01-15 10:30``) are reduced
    to their date part. Returns ``None`` when no format matches.
    """

    s = raw.strip()
    if not s:
        return None
    m = _ISO_DATETIME_RE.match(s)
    if m:
        s = m.group(1)
    for fmt in _DATE_FORMATS:
        try:
            return dt.datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def parse_signed_amount(raw: str) -> Decimal | None:
    """Parse a signed decimal from an amount cell.

    Currency symbols, thousands separators and inner spaces are dropped; a
    leading ``+``/``-`` or surrounding parentheses carry the sign. Returns
    ``None`` for anything that is not a finite number.
    """

    s = _CURRENCY_RE.sub("", raw).replace(",", "").replace(" ", "").strip()
    negative = False
    if s.startswith("(") and s.endswith(")") and len(s) >= 2:
        negative = True
        s = s[1:-1]
    if s.startswith("-"):
        negative = not negative
        s = s[1:]
    elif s.startswith("+"):
        s = s[1:]
    if not s:
        return None
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    if not d.is_finite() or d.is_signed():
        return None
    return -d if negative else d


def classify_kind(type_token: str | None, signed_amount: Decimal) -> TransactionKind:
    """Classify by ``type`` keyword when one is given, else by the amount's sign.

    A non-blank token that matches no keyword is an expense; the sign is not
    consulted for it.
    """

    if type_token:
        lowered = type_token.lower()
        for kind, keywords in KIND_KEYWORDS:
            if any(k in lowered for k in keywords):
                return kind
        return TransactionKind.EXPENSE
    return TransactionKind.INCOME if signed_amount >= 0 else TransactionKind.EXPENSE


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


def _cell(tokens: Sequence[str], roles: ColumnRoleMap, role: ColumnRole) -> str:
    idx = roles.get(role)
    if idx is None or idx >= len(tokens):
        return ""
    return tokens[idx].strip()


def normalize_row(
    tokens: Sequence[str],
    roles: ColumnRoleMap,
    *,
    row_number: int,
    date_parser: DateParser = parse_date,
) -> RowOutcome:
    """Normalize one data row; see the module docstring for the rules."""

    date_raw = _cell(tokens, roles, ColumnRole.DATE)
    description = _cell(tokens, roles, ColumnRole.DESCRIPTION)
    amount_raw = _cell(tokens, roles, ColumnRole.AMOUNT)

    missing = [
        role.value
        for role, value in (
            (ColumnRole.DATE, date_raw),
            (ColumnRole.DESCRIPTION, description),
            (ColumnRole.AMOUNT, amount_raw),
        )
        if not value
    ]
    if missing:
        return RowFailure(row_number, FailureReason.MISSING_FIELD, ", ".join(missing))

    parsed_date = date_parser(date_raw)
    if parsed_date is None:
        return RowFailure(row_number, FailureReason.INVALID_DATE, date_raw)

    signed = parse_signed_amount(amount_raw)
    if signed is None or signed == 0:
        return RowFailure(row_number, FailureReason.INVALID_AMOUNT, amount_raw)

    type_token = _cell(tokens, roles, ColumnRole.TYPE) if ColumnRole.TYPE in roles else None
    category_hint = _cell(tokens, roles, ColumnRole.CATEGORY) or None

    return NormalizedRow(
        date=parsed_date,
        description=description,
        amount=abs(signed),
        kind=classify_kind(type_token, signed),
        category_hint=category_hint,
    )


__all__ = [
    "DateParser",
    "KIND_KEYWORDS",
    "parse_date",
    "parse_signed_amount",
    "classify_kind",
    "normalize_row",
]
