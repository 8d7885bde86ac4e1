"""Line-level CSV tokenizer.

A deliberately small grammar rather than :mod:`csv`: each physical line is
tokenized on its own, a quote character toggles "inside quoted field" mode
(where the delimiter is literal text), and every token is trimmed after quote
processing. Doubled quotes (``""``) are *not* an escape; each quote character
simply toggles the mode and is dropped.
"""

from __future__ import annotations

DEFAULT_DELIMITER = ","
DEFAULT_QUOTE = '"'


def split_line(
    line: str,
    delimiter: str = DEFAULT_DELIMITER,
    quote: str = DEFAULT_QUOTE,
) -> list[str]:
    """Split ``line`` into trimmed field values.

    Never raises. An empty line yields ``[""]``, which callers treat as a
    line to skip. An unterminated quote swallows the rest of the line into
    the current field.

    >>> split_line('2024-01-01,"Coffee, and Bagels",4.50,expense')
    ['2024-01-01', 'Coffee, and Bagels', '4.50', 'expense']
    """

    values: list[str] = []
    current: list[str] = []
    in_quotes = False

    for ch in line.rstrip("\r\n"):
        if ch == quote:
            in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(ch)

    values.append("".join(current).strip())
    return values


def is_blank(tokens: list[str]) -> bool:
    """True for the token list of an empty (or whitespace-only) line."""

    return len(tokens) == 1 and tokens[0] == ""


__all__ = ["DEFAULT_DELIMITER", "DEFAULT_QUOTE", "split_line", "is_blank"]
