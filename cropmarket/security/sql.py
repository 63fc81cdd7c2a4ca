"""
Helpers for putting user-typed search text into SQL.

Values always travel as bound parameters; these helpers make ``%`` and ``_``
typed into the listing search box match literally and keep column names out
of reach of user input.
"""

from __future__ import annotations

import re

LIKE_ESCAPE = "\\"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def escape_like_pattern(pattern: str, escape_char: str = LIKE_ESCAPE) -> str:
    """
    Escape LIKE wildcards (and the escape character itself) in ``pattern``.

    Examples:
        >>> escape_like_pattern("100%")
        '100\\\\%'
        >>> escape_like_pattern("red_onion")
        'red\\\\_onion'
    """
    if not isinstance(pattern, str):
        raise TypeError(f"Pattern must be a string, got {type(pattern).__name__}")
    table = str.maketrans({ch: escape_char + ch for ch in (escape_char, "%", "_")})
    return pattern.translate(table)


def build_like_clause(column: str, pattern: str, escape_char: str = LIKE_ESCAPE) -> tuple[str, list[str]]:
    """
    Case-insensitive "contains" clause for ``column``.

    Returns:
        ``(sql_fragment, params)``, e.g.
        ``("LOWER(l.title) LIKE ? ESCAPE '\\'", ["%tomato%"])``.

    Raises:
        ValueError: ``column`` is not a plain (optionally table-qualified) identifier.
    """
    if not isinstance(column, str) or not _IDENTIFIER.match(column):
        raise ValueError(f"Invalid column name: {column!r}")
    needle = escape_like_pattern(pattern.lower(), escape_char)
    return f"LOWER({column}) LIKE ? ESCAPE '{escape_char}'", [f"%{needle}%"]


def validate_search_input(query: str, *, max_length: int = 200) -> str:
    """
    Strip control characters and surrounding whitespace from a search query.

    Raises:
        ValueError: If the query is longer than ``max_length``.
    """
    if not isinstance(query, str):
        raise TypeError(f"Query must be a string, got {type(query).__name__}")
    if len(query) > max_length:
        raise ValueError(f"Query exceeds maximum length of {max_length} characters")
    return _CONTROL_CHARS.sub("", query).strip()
