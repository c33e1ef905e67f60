"""
Escaping and formatting of values embedded in SQL text.

The shell protocol has no bind parameters, so every value that reaches a
statement is spliced into its text. ``sqlite3_format`` offers printf-like
directives that apply the right escaping per context:

    %s  inserted as is
    %T  text literal, quoted:                'it''s'
    %V  value: NULL, number or quoted text
    %I  identifier, double quoted:           "a""b"
    %O  same as %I
    %L  LIKE pattern body, escaped with \\ and ready to sit inside quotes
    %%  a literal percent sign

Example:
    >>> sqlite3_format("SELECT * FROM %I WHERE a = %V AND b IS %V", "my table", "it's", None)
    'SELECT * FROM "my table" WHERE a = \\'it\\'\\'s\\' AND b IS NULL'
"""

import math
import re
from typing import Any

_DIRECTIVE_RE = re.compile(r"%(.)", re.DOTALL)


def escape_string(value: str, quote: str = "'") -> str:
    """Double every ``quote`` character in ``value``."""
    return value.replace(quote, quote * 2)


def quote_literal(value: str) -> str:
    """Return ``value`` as a single-quoted SQL text literal."""
    return "'" + escape_string(value, "'") + "'"


def quote_identifier(name: str) -> str:
    """Return ``name`` as a double-quoted SQL identifier."""
    return '"' + escape_string(name, '"') + '"'


def escape_like(value: str, escape_char: str = "\\") -> str:
    """Escape LIKE wildcards (and the escape character itself) in ``value``."""
    if len(escape_char) != 1:
        raise ValueError("escape_char must be a single character")
    special = re.compile("[%_" + re.escape(escape_char) + "]")
    return special.sub(lambda m: escape_char + m.group(0), value)


def quote_value(value: Any) -> str:
    """Render a Python value as an SQL literal.

    Infinities become the overflowing literals sqlite3 reads as infinity, and
    NaN becomes NULL as it does when sqlite3 stores one.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        if math.isnan(value):
            return "NULL"
        if math.isinf(value):
            return "9e999" if value > 0 else "-9e999"
        return repr(value)
    if isinstance(value, int):
        return repr(value)
    return quote_literal(str(value))


def sqlite3_format(template: str, *args: Any) -> str:
    """Expand the ``%`` directives of ``template`` with ``args``.

    Raises:
        ValueError: On an unknown directive or a wrong number of arguments
    """
    values = iter(args)
    used = 0

    def next_value(directive: str) -> Any:
        nonlocal used
        try:
            value = next(values)
        except StopIteration:
            raise ValueError(f"Not enough arguments for %{directive} in {template!r}") from None
        used += 1
        return value

    def expand(match: re.Match[str]) -> str:
        directive = match.group(1)
        if directive == "%":
            return "%"
        if directive == "s":
            return str(next_value(directive))
        if directive == "T":
            return quote_literal(str(next_value(directive)))
        if directive == "V":
            return quote_value(next_value(directive))
        if directive in ("I", "O"):
            return quote_identifier(str(next_value(directive)))
        if directive == "L":
            return escape_string(escape_like(str(next_value(directive))))
        raise ValueError(f"Unknown format directive %{directive} in {template!r}")

    result = _DIRECTIVE_RE.sub(expand, template)
    if used != len(args):
        raise ValueError(f"Too many arguments for {template!r}")
    return result
