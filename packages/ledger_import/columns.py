"""Header-based column role detection.

Bank exports disagree on column names, so roles are inferred from the header
row with an ordered table of per-role synonym patterns. Adding a synonym is a
one-line edit to :data:`ROLE_PATTERNS`; the detection loop never changes.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .errors import ColumnDetectionError
from .logging_setup import get_logger
from .models import REQUIRED_ROLES, ColumnRole, ColumnRoleMap

_log = get_logger("ledger_import.columns")

# Table order matters: the first role whose pattern matches a header wins.
ROLE_PATTERNS: tuple[tuple[ColumnRole, re.Pattern[str]], ...] = (
    (ColumnRole.DATE, re.compile(r"date|transaction\s?date|posted\s?date", re.IGNORECASE)),
    (
        ColumnRole.DESCRIPTION,
        re.compile(r"description|memo|transaction|details?", re.IGNORECASE),
    ),
    (ColumnRole.AMOUNT, re.compile(r"amount|value|sum|total", re.IGNORECASE)),
    (
        ColumnRole.TYPE,
        re.compile(r"type|transaction\s?type|debit/credit", re.IGNORECASE),
    ),
    (ColumnRole.CATEGORY, re.compile(r"category|merchant|vendor", re.IGNORECASE)),
)


def match_role(header: str) -> ColumnRole | None:
    """Return the first role whose pattern fully matches ``header`` (trimmed)."""

    name = header.strip()
    for role, pattern in ROLE_PATTERNS:
        if pattern.fullmatch(name):
            return role
    return None


def detect_column_roles(header: Sequence[str]) -> ColumnRoleMap:
    """Assign column indices to roles from the tokenized header row.

    Each column takes at most one role and, when several columns match the
    same role, the rightmost one keeps it. Raises
    :class:`~ledger_import.errors.ColumnDetectionError` naming every
    mandatory role (``date``, ``description``, ``amount``) left unassigned.
    """

    roles: ColumnRoleMap = {}
    for idx, token in enumerate(header):
        role = match_role(token)
        if role is None:
            continue
        if role in roles:
            _log.debug(
                "column %d (%r) replaces column %d for role %s", idx, token, roles[role], role
            )
        roles[role] = idx

    missing = [role.value for role in REQUIRED_ROLES if role not in roles]
    if missing:
        raise ColumnDetectionError(missing)
    return roles


__all__ = ["ROLE_PATTERNS", "match_role", "detect_column_roles"]
