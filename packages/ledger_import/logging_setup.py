"""Logging for the ``ledger_import`` package.

Every module logs through ``get_logger("ledger_import.<module>")``; only the
CLI calls :func:`configure_logging`, once, to attach a stderr handler to the
``ledger_import`` logger. Until then the package stays silent behind a
``NullHandler``.

Level specs
-----------
``--log-level`` and ``LEDGER_IMPORT_LOG_LEVEL`` take a comma-separated spec.
A bare level sets the package default; ``module=LEVEL`` entries tune one
pipeline stage, e.g. ``"WARNING,persistence=DEBUG"`` keeps the import quiet
while tracing every staging write. Module names are relative to the package
(``importer``, ``columns``, ``persistence``, ``promotion``, ...). Unreadable
entries are skipped and reported once logging is up.

The default format carries the thread name so that rows staged by
:func:`~ledger_import.pmap.p_map` workers (``ledger-import_N``) can be told
apart from the main thread.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "ledger_import"
_LEVEL_ENV = "LEDGER_IMPORT_LOG_LEVEL"
_DEFAULT_FORMAT = "%(asctime)s %(threadName)s %(name)s %(levelname)s %(message)s"
_CONFIGURED = False


def _level_value(token: str) -> int | None:
    name = token.strip().upper()
    if name.isdigit():
        return int(name)
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else None


def parse_level_spec(spec: str) -> tuple[int | None, dict[str, int], list[str]]:
    """Split a level spec into ``(default, {logger_name: level}, rejected)``.

    ``default`` is ``None`` when the spec has no bare level. Logger names are
    fully qualified under ``ledger_import``.
    """

    default: int | None = None
    per_module: dict[str, int] = {}
    rejected: list[str] = []
    for raw in spec.split(","):
        entry = raw.strip()
        if not entry:
            continue
        module, sep, level_token = entry.rpartition("=")
        level = _level_value(level_token)
        module = module.strip()
        if level is None or (sep and not module):
            rejected.append(entry)
        elif not sep:
            default = level
        else:
            if module != _PKG_LOGGER_NAME and not module.startswith(f"{_PKG_LOGGER_NAME}."):
                module = f"{_PKG_LOGGER_NAME}.{module}"
            per_module[module] = level
    return default, per_module, rejected


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """Attach the package's stderr handler; later calls are no-ops.

    ``level`` is an ``int`` or a level spec (see module docstring). When it is
    ``None`` the spec comes from ``LEDGER_IMPORT_LOG_LEVEL``; the package
    default is ``INFO`` when neither gives a bare level.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    if isinstance(level, int):
        default, per_module, rejected = level, {}, []
    else:
        spec = level if level is not None else os.getenv(_LEVEL_ENV, "")
        default, per_module, rejected = parse_level_spec(spec)

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    # Filtering happens on the loggers so a module override can go below
    # the package default.
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))

    logger.setLevel(logging.INFO if default is None else default)
    logger.addHandler(handler)
    logger.propagate = False
    for name, module_level in per_module.items():
        logging.getLogger(name).setLevel(module_level)

    _CONFIGURED = True
    for entry in rejected:
        logger.warning("ignoring log level entry %r", entry)


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name, attaching a ``NullHandler`` when unconfigured."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "parse_level_spec"]
