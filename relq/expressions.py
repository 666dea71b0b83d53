"""Inert expression tags for the ON CONFLICT DSL.

``ColumnRef``
    A reference to ``EXCLUDED.col`` or ``"table"."col"``.  Built with
    :func:`excluded` and :func:`row_ref`.
``SqlExpression``
    Pre-rendered SQL text.  Renderers splice it verbatim; producers quote
    any identifiers or literals inside it through :mod:`relq.pg_format`.

:class:`SqlHelpers` is the helper namespace handed to ``do_update``
callables.  Every helper returns a :class:`SqlExpression`; nothing is
rendered until the conflict clause itself renders.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from relq.pg_format import ident, literal

#: Pseudo-table name PostgreSQL exposes inside ``ON CONFLICT DO UPDATE``.
EXCLUDED = "EXCLUDED"


@dataclass(frozen=True)
class ColumnRef:
    """Reference to a column of the excluded row or the target row."""

    table: str
    column: str

    @property
    def is_excluded(self) -> bool:
        return self.table == EXCLUDED

    def to_sql(self) -> str:
        if self.is_excluded:
            return f"EXCLUDED.{ident(self.column)}"
        return f"{ident(self.table)}.{ident(self.column)}"


@dataclass(frozen=True)
class SqlExpression:
    """Raw SQL text that must not be re-quoted."""

    sql: str

    def to_sql(self) -> str:
        return self.sql


def excluded(column: str) -> ColumnRef:
    """Reference ``EXCLUDED.column``, the row proposed for insertion."""
    return ColumnRef(EXCLUDED, column)


def row_ref(table: str, column: str) -> ColumnRef:
    """Reference the existing row's ``"table"."column"``."""
    return ColumnRef(table, column)


def sql(text: str) -> SqlExpression:
    """Wrap trusted SQL text as an expression tag."""
    return SqlExpression(text)


def value_to_sql(value: Any) -> str:
    """Render a tag, a number, or a literal for use inside an expression."""
    if isinstance(value, (ColumnRef, SqlExpression)):
        return value.to_sql()
    if isinstance(value, bool):
        return literal(value)
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return literal(value)


class ExcludedRow:
    """Attribute and item access both yield ``excluded(name)``.

    Passed to ``do_update`` callables so ``lambda ex: ex.count`` and
    ``lambda ex: ex["count"]`` read naturally.
    """

    def __getattr__(self, name: str) -> ColumnRef:
        if name.startswith("__"):
            raise AttributeError(name)
        return excluded(name)

    def __getitem__(self, name: str) -> ColumnRef:
        return excluded(name)


class TargetRow:
    """Like :class:`ExcludedRow` but bound to the target table."""

    def __init__(self, table: str) -> None:
        self._table = table

    def __getattr__(self, name: str) -> ColumnRef:
        if name.startswith("_"):
            raise AttributeError(name)
        return row_ref(self._table, name)

    def __getitem__(self, name: str) -> ColumnRef:
        return row_ref(self._table, name)


class SqlHelpers:
    """Helper namespace whose methods return :class:`SqlExpression` tags.

    Args:
        column: The column being assigned, used by :meth:`increment`.
        table: The conflict target table.
    """

    def __init__(self, column: str, table: str) -> None:
        self._column = column
        self._table = table

    def _fn(self, name: str, *values: Any) -> SqlExpression:
        return SqlExpression(f"{name}({', '.join(value_to_sql(v) for v in values)})")

    def increment(self, amount: int | float = 1) -> SqlExpression:
        return SqlExpression(f"{ident(self._table)}.{ident(self._column)} + {value_to_sql(amount)}")

    def add(self, a: Any, b: Any) -> SqlExpression:
        return SqlExpression(f"{value_to_sql(a)} + {value_to_sql(b)}")

    def subtract(self, a: Any, b: Any) -> SqlExpression:
        return SqlExpression(f"{value_to_sql(a)} - {value_to_sql(b)}")

    def multiply(self, a: Any, b: Any) -> SqlExpression:
        return SqlExpression(f"{value_to_sql(a)} * {value_to_sql(b)}")

    def divide(self, a: Any, b: Any) -> SqlExpression:
        return SqlExpression(f"{value_to_sql(a)} / {value_to_sql(b)}")

    def modulo(self, a: Any, b: Any) -> SqlExpression:
        return SqlExpression(f"{value_to_sql(a)} % {value_to_sql(b)}")

    def coalesce(self, *values: Any) -> SqlExpression:
        return self._fn("COALESCE", *values)

    def greatest(self, *values: Any) -> SqlExpression:
        return self._fn("GREATEST", *values)

    def least(self, *values: Any) -> SqlExpression:
        return self._fn("LEAST", *values)

    def nullif(self, a: Any, b: Any) -> SqlExpression:
        return self._fn("NULLIF", a, b)

    def abs(self, value: Any) -> SqlExpression:
        return self._fn("ABS", value)

    def ceil(self, value: Any) -> SqlExpression:
        return self._fn("CEIL", value)

    def floor(self, value: Any) -> SqlExpression:
        return self._fn("FLOOR", value)

    def round(self, value: Any, decimals: int | None = None) -> SqlExpression:
        if decimals is not None:
            return SqlExpression(f"ROUND({value_to_sql(value)}, {decimals})")
        return self._fn("ROUND", value)

    def concat(self, *values: Any) -> SqlExpression:
        return self._fn("CONCAT", *values)

    def lower(self, value: Any) -> SqlExpression:
        return self._fn("LOWER", value)

    def upper(self, value: Any) -> SqlExpression:
        return self._fn("UPPER", value)

    def trim(self, value: Any) -> SqlExpression:
        return self._fn("TRIM", value)

    def now(self) -> SqlExpression:
        return SqlExpression("NOW()")

    def current_date(self) -> SqlExpression:
        return SqlExpression("CURRENT_DATE")

    def current_timestamp(self) -> SqlExpression:
        return SqlExpression("CURRENT_TIMESTAMP")
