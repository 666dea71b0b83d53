"""Value formatting for INSERT and UPDATE.

Scalars go through :func:`relq.pg_format.literal`.  Lists and dicts need
the column's declared type to pick between a native ``ARRAY[...]`` and a
JSONB value; :class:`ColumnTypeInfo` carries that type when a schema is
known, and :func:`format_value` falls back to inference when it is not.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from relq.pg_format import literal, to_json

_INTEGER_TYPES = frozenset({"integer", "int", "int2", "int4", "int8", "smallint", "bigint"})
_TEXT_TYPES = frozenset({"text", "varchar", "character varying", "char", "character", "citext"})


@dataclass(frozen=True)
class ColumnTypeInfo:
    """Declared type of a column, as reported by a type resolver.

    Attributes:
        type: Base SQL type name in lower case (``text``, ``jsonb`` ...).
        is_array: Whether the column is declared as ``type[]``.
    """

    type: str
    is_array: bool = False

    @property
    def base(self) -> str:
        return self.type.split("(", 1)[0].strip().lower()


#: Programmatic column key → declared type, or ``None`` when unknown.
ColumnTypeResolver = Callable[[str], "ColumnTypeInfo | None"]


def jsonb_literal(value: Any) -> str:
    """``'<json>'::jsonb`` with single quotes doubled."""
    return literal(to_json(value)) + "::jsonb"


def format_typed_array(values: list[Any], base_type: str = "jsonb") -> str:
    """Render a list for a column declared as ``base_type[]``."""
    base = base_type.lower()
    if not values:
        return f"ARRAY[]::{base}[]"
    if base in _TEXT_TYPES:
        return "ARRAY[" + ",".join(literal(str(v)) for v in values) + "]::text[]"
    if base in _INTEGER_TYPES:
        return "ARRAY[" + ",".join(str(v) for v in values) + f"]::{base}[]"
    return "ARRAY[" + ",".join(literal(to_json(v)) for v in values) + f"]::{base}[]"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def format_inferred_array(values: list[Any]) -> str:
    """Render a list whose column type is unknown.

    Homogeneous strings, numbers, or booleans become a native array;
    anything else is stored as a JSONB array value.
    """
    if not values:
        return "'{}'"
    if all(isinstance(v, str) for v in values):
        return "ARRAY[" + ",".join(literal(v) for v in values) + "]"
    if all(_is_number(v) for v in values):
        return "ARRAY[" + ",".join(str(v) for v in values) + "]"
    if all(isinstance(v, bool) for v in values):
        return "ARRAY[" + ",".join(literal(v) for v in values) + "]"
    return jsonb_literal(values)


def format_value(value: Any, type_info: ColumnTypeInfo | None = None) -> str:
    """Render *value* for a column with optional declared type."""
    if isinstance(value, (list, tuple)):
        values = list(value)
        if type_info is None:
            return format_inferred_array(values)
        if type_info.is_array:
            return format_typed_array(values, type_info.base)
        return jsonb_literal(values)
    if isinstance(value, dict):
        return jsonb_literal(value)
    return literal(value)
