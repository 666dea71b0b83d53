"""Shared base classes for statement builders.

Every builder is a mutable accumulator of clause data with a single
rendering entry point, :meth:`Statement.to_string`.  Rendering reads the
builder state and never writes it, so repeated calls return identical
text.

``Statement``
    Abstract base: ``to_string()`` plus ``__str__``.
``TableStatement``
    Adds the target table and the optional column resolver / column-type
    resolver used to map programmatic keys onto SQL columns.
``ReturningMixin``
    ``RETURNING`` support for INSERT, UPDATE and DELETE: a column list, a
    scalar sub-SELECT, or a COUNT builder rewritten into
    ``json_build_object``.
"""
from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from relq.condition import (
    ColumnResolver,
    ConditionCallback,
    ConditionNode,
    build_conditions_sql,
    collect,
    resolve_condition_columns,
)
from relq.errors import RelqBuilderError
from relq.pg_format import format_column, ident, literal
from relq.query.values import ColumnTypeInfo, ColumnTypeResolver

if TYPE_CHECKING:
    from relq.query.count import CountBuilder
    from relq.query.select import SelectBuilder

_SELECT_RE = re.compile(r"^SELECT\s+(.+?)\s+FROM\s+(.+)$", re.IGNORECASE | re.DOTALL)
_ALIAS_RE = re.compile(r"^(.+?)\s+AS\s+(.+)$", re.IGNORECASE)


class Statement(ABC):
    """A builder that renders to one SQL statement."""

    @abstractmethod
    def to_string(self) -> str:
        """Render the statement."""

    def __str__(self) -> str:
        return self.to_string()

    def _missing(self, missing: str, hint: str, message: str | None = None) -> RelqBuilderError:
        name = type(self).__name__
        return RelqBuilderError(
            message or f"{name} requires {missing}.",
            builder=name,
            missing=missing,
            hint=hint,
        )


class TableStatement(Statement):
    """A statement that targets one table.

    Args:
        table: Target table name.
    """

    def __init__(self, table: str) -> None:
        if not table:
            raise RelqBuilderError(
                f"{type(self).__name__} requires a table name.",
                builder=type(self).__name__,
                missing="table",
            )
        self.table = table
        self._column_resolver: ColumnResolver | None = None
        self._column_type_resolver: ColumnTypeResolver | None = None

    def set_column_resolver(self, resolver: ColumnResolver | None):
        """Map programmatic keys to SQL column names at render time."""
        self._column_resolver = resolver
        return self

    def set_column_type_resolver(self, resolver: ColumnTypeResolver | None):
        """Report declared column types so lists render as the right literal."""
        self._column_type_resolver = resolver
        return self

    def resolve_column(self, name: str) -> str:
        if self._column_resolver is None or name == "*":
            return name
        if "." in name:
            table, column = name.split(".", 1)
            return f"{table}.{self._column_resolver(column)}"
        return self._column_resolver(name)

    def column_type(self, name: str) -> ColumnTypeInfo | None:
        if self._column_type_resolver is None:
            return None
        return self._column_type_resolver(name)

    def _conditions_sql(self, nodes: list[ConditionNode]) -> str:
        return build_conditions_sql(resolve_condition_columns(nodes, self._column_resolver))


class WhereMixin:
    """``WHERE`` accumulation shared by UPDATE, DELETE and COUNT."""

    _where: list[ConditionNode]

    def where(self, callback: ConditionCallback):
        """Append the conditions produced by *callback* (joined with AND)."""
        self._where.extend(collect(callback))
        return self

    def where_raw(self, sql: str):
        """Append SQL text rendered verbatim."""
        self._where.append(ConditionNode("raw", None, sql))
        return self


class ReturningMixin:
    """``RETURNING`` clause support.

    Expects ``self.table`` and ``self.resolve_column`` from
    :class:`TableStatement`.
    """

    _returning: tuple[str, Any] | None = None

    def returning(self, columns: str | list[str] | None):
        """Return columns from the affected rows; ``None`` clears the clause."""
        if columns is None:
            self._returning = None
        else:
            self._returning = ("columns", [columns] if isinstance(columns, str) else list(columns))
        return self

    def returning_select(self, callback: Callable[[SelectBuilder], SelectBuilder | None]):
        """``RETURNING (SELECT ...)`` built from a SELECT on the same table."""
        from relq.query.select import SelectBuilder

        result = callback(SelectBuilder(self.table))  # type: ignore[attr-defined]
        self._returning = None if result is None else ("select", result)
        return self

    def returning_count(self, callback: Callable[[CountBuilder], CountBuilder | None]):
        """``RETURNING (SELECT json_build_object(...) FROM ...)`` from a COUNT."""
        from relq.query.count import CountBuilder

        result = callback(CountBuilder(self.table))  # type: ignore[attr-defined]
        self._returning = None if result is None else ("count", result)
        return self

    @property
    def has_returning(self) -> bool:
        return self._returning is not None

    def _returning_sql(self) -> str:
        if self._returning is None:
            return ""
        kind, payload = self._returning
        if kind == "columns":
            rendered = [
                "*" if col == "*" else format_column(self.resolve_column(col))  # type: ignore[attr-defined]
                for col in payload
            ]
            return " RETURNING " + ", ".join(rendered)
        sub_sql = payload.to_string()
        if kind == "select":
            return f" RETURNING ({sub_sql})"
        match = _SELECT_RE.match(sub_sql)
        if not match:
            return f" RETURNING ({sub_sql})"
        columns_sql, from_sql = match.groups()
        pairs = ", ".join(f"{literal(name)}, {expr}" for name, expr in parse_select_list(columns_sql))
        return f" RETURNING (SELECT json_build_object({pairs}) FROM {from_sql})"


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on *separator* outside parentheses and quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif char == separator and depth == 0:
            piece = "".join(current).strip()
            if piece:
                parts.append(piece)
            current = []
            continue
        current.append(char)
    piece = "".join(current).strip()
    if piece:
        parts.append(piece)
    return parts


def parse_select_list(columns_sql: str) -> list[tuple[str, str]]:
    """Split a projection into ``(name, expression)`` pairs.

    Unaliased expressions are named ``count``.
    """
    result: list[tuple[str, str]] = []
    for expr in split_top_level(columns_sql):
        match = _ALIAS_RE.match(expr)
        if not match:
            result.append(("count", expr))
            continue
        expression, alias = match.groups()
        result.append((alias.strip().strip("\"'"), expression.strip()))
    return result


def quote_columns(columns: list[str]) -> str:
    return ", ".join(ident(c) for c in columns)
