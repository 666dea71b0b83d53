"""Native PostgreSQL array mutation DSL.

:class:`ArrayUpdateBuilder` exposes one element builder per element kind
(``string``, ``numeric``/``integer``, ``boolean``, ``uuid``,
``date``/``timestamp``, ``jsonb``).  They share ``set``, ``append``,
``prepend``, ``remove`` and ``concat``; only the element rendering and the
empty-array cast differ.  The jsonb element builder adds predicate-based
rewrites over ``unnest``.
"""
from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from relq.dsl.fragment import ColumnFragment, constant
from relq.pg_format import literal, to_json

ElementRenderer = Callable[[Any], str]


def _text(value: Any) -> str:
    return literal(value)


def _number(value: Any) -> str:
    return str(value)


def _bool(value: Any) -> str:
    return "true" if value else "false"


def _uuid(value: Any) -> str:
    return f"{literal(str(value))}::uuid"


def _timestamp(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        value = value.isoformat()
    return f"{literal(value)}::timestamp"


def _jsonb(value: Any) -> str:
    return f"{literal(to_json(value))}::jsonb"


class ArrayElementBuilder:
    """Operations on an array column of one element kind.

    Args:
        element_type: SQL element type used for the empty-array cast.
        render: Renders one element as SQL.
    """

    def __init__(self, element_type: str, render: ElementRenderer) -> None:
        self.element_type = element_type
        self._render = render

    def _items(self, values: list[Any]) -> str:
        return ",".join(self._render(v) for v in values)

    def set(self, values: list[Any]) -> ColumnFragment:
        if not values:
            return constant(f"ARRAY[]::{self.element_type}[]")
        return constant(f"ARRAY[{self._items(values)}]")

    def append(self, value: Any) -> ColumnFragment:
        return ColumnFragment(lambda col: f"array_append({col}, {self._render(value)})")

    def prepend(self, value: Any) -> ColumnFragment:
        return ColumnFragment(lambda col: f"array_prepend({self._render(value)}, {col})")

    def remove(self, value: Any) -> ColumnFragment:
        return ColumnFragment(lambda col: f"array_remove({col}, {self._render(value)})")

    def concat(self, values: list[Any]) -> ColumnFragment:
        if not values:
            return ColumnFragment(lambda col: col)
        return ColumnFragment(lambda col: f"{col} || ARRAY[{self._items(values)}]")


class JsonbArrayElementBuilder(ArrayElementBuilder):
    """``jsonb[]`` columns, with predicate rewrites over ``unnest``."""

    def __init__(self) -> None:
        super().__init__("jsonb", _jsonb)

    @staticmethod
    def _match(conditions: dict[str, Any]) -> str:
        return " AND ".join(f"elem->>{literal(k)} = {literal(v)}" for k, v in conditions.items())

    def remove_where(self, key: str, value: Any) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"ARRAY(SELECT elem FROM unnest({col}) AS elem "
                f"WHERE elem->>{literal(key)} != {literal(value)})"
            )
        )

    def remove_where_all(self, conditions: dict[str, Any]) -> ColumnFragment:
        return ColumnFragment(
            lambda col: f"ARRAY(SELECT elem FROM unnest({col}) AS elem WHERE NOT ({self._match(conditions)}))"
        )

    def filter_where(self, key: str, value: Any) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"ARRAY(SELECT elem FROM unnest({col}) AS elem "
                f"WHERE elem->>{literal(key)} = {literal(value)})"
            )
        )

    def update_where(self, match_key: str, match_value: Any, updates: dict[str, Any]) -> ColumnFragment:
        if not updates:
            return ColumnFragment(lambda col: col)
        set_expr = "elem"
        for key, value in updates.items():
            set_expr = f"jsonb_set({set_expr}, {literal('{' + key + '}')}, {_jsonb(value)})"
        match = f"elem->>{literal(match_key)} = {literal(match_value)}"
        return ColumnFragment(
            lambda col: f"ARRAY(SELECT CASE WHEN {match} THEN {set_expr} ELSE elem END FROM unnest({col}) AS elem)"
        )


class ArrayUpdateBuilder:
    """Namespace of typed element builders, reached as ``ops.array``."""

    @property
    def string(self) -> ArrayElementBuilder:
        return ArrayElementBuilder("text", _text)

    @property
    def numeric(self) -> ArrayElementBuilder:
        return ArrayElementBuilder("integer", _number)

    integer = numeric

    @property
    def boolean(self) -> ArrayElementBuilder:
        return ArrayElementBuilder("boolean", _bool)

    @property
    def uuid(self) -> ArrayElementBuilder:
        return ArrayElementBuilder("uuid", _uuid)

    @property
    def date(self) -> ArrayElementBuilder:
        return ArrayElementBuilder("timestamp", _timestamp)

    timestamp = date

    @property
    def jsonb(self) -> JsonbArrayElementBuilder:
        return JsonbArrayElementBuilder()
