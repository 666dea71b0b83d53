"""PostgreSQL-style ``format()`` for building SQL text.

This is the only place in relq where SQL text becomes quoted.  Every
builder routes identifiers and literals through :func:`format_sql`,
:func:`ident`, or :func:`literal`.

Specifiers
----------
``%I``
    Identifier.  Wrapped in double quotes with embedded ``"`` doubled.  A
    list or tuple renders as a comma-separated list of quoted identifiers.
``%L``
    Literal.  ``None`` → ``NULL``; ``bool`` → ``true``/``false``; numbers →
    decimal text; dates → single-quoted ISO-8601; list/tuple → parenthesised
    comma-joined literals; dict → single-quoted compact JSON; ``bytes`` →
    ``'\\x…'`` hex; anything else → single-quoted text with ``'`` doubled.
``%s``
    Raw splice, no escaping.  ``None`` renders as an empty string.
``%%``
    A literal percent sign.

Usage::

    from relq.pg_format import format_sql

    format_sql("SELECT %I FROM %I WHERE %I = %L", "name", "users", "id", 5)
    # SELECT "name" FROM "users" WHERE "id" = 5
"""
from __future__ import annotations

import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from relq.errors import FormatError

_SPECIFIERS = frozenset("ILs")


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)


def to_json(value: Any) -> str:
    """Serialise *value* to the compact JSON text used inside SQL literals."""
    return json.dumps(value, separators=(",", ":"), default=_json_default)


def _quote_text(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def ident(value: Any) -> str:
    """Quote an identifier (or a list of identifiers).

    Raises:
        FormatError: If the identifier is ``None`` or empty.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            raise FormatError("Identifier list must not be empty.")
        return ", ".join(ident(v) for v in value)
    if value is None:
        raise FormatError("SQL identifier cannot be None.")
    text = value if isinstance(value, str) else str(value)
    if text == "":
        raise FormatError("SQL identifier cannot be an empty string.")
    return '"' + text.replace('"', '""') + '"'


def literal(value: Any) -> str:
    """Quote a literal value.

    Raises:
        FormatError: If *value* is a callable.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return _quote_text(value.isoformat())
    if isinstance(value, (list, tuple)):
        return "(" + ",".join(literal(v) for v in value) + ")"
    if isinstance(value, dict):
        return _quote_text(to_json(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "'\\x" + bytes(value).hex() + "'"
    if callable(value):
        raise FormatError(
            "Callables cannot be rendered as SQL literals.",
            hint="Call the function first and pass its result.",
        )
    return _quote_text(str(value))


def raw_string(value: Any) -> str:
    """Render a ``%s`` argument."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(raw_string(v) for v in value)
    if isinstance(value, dict):
        return to_json(value)
    return str(value)


def format_sql(template: str, *args: Any) -> str:
    """Render *template*, consuming *args* left to right.

    Args:
        template: Text containing ``%I``, ``%L``, ``%s`` and ``%%``.
        *args: One argument per specifier.

    Returns:
        The rendered SQL text.

    Raises:
        FormatError: On an unknown specifier, a missing argument, or an
            argument that cannot be rendered for its specifier.
    """
    out: list[str] = []
    arg_index = 0
    i = 0
    length = len(template)
    while i < length:
        char = template[i]
        if char != "%":
            out.append(char)
            i += 1
            continue
        if i + 1 >= length:
            raise FormatError(f"Unterminated format specifier in: {template!r}")
        spec = template[i + 1]
        i += 2
        if spec == "%":
            out.append("%")
            continue
        if spec not in _SPECIFIERS:
            raise FormatError(f"Unrecognised format specifier '%{spec}'.")
        if arg_index >= len(args):
            raise FormatError(f"Too few arguments for format template: {template!r}")
        arg = args[arg_index]
        arg_index += 1
        if spec == "I":
            out.append(ident(arg))
        elif spec == "L":
            out.append(literal(arg))
        else:
            out.append(raw_string(arg))
    return "".join(out)


def format_column(column: str) -> str:
    """Quote a possibly table-qualified column (``t.c`` → ``"t"."c"``)."""
    return ".".join(ident(part) for part in column.split("."))


def text_array(values: list[Any] | tuple[Any, ...]) -> str:
    """Render ``'{a,b}'``-style path text used by ``jsonb_set`` and ``#>``."""
    return "'{" + ",".join(str(v).replace("'", "''") for v in values) + "}'"
