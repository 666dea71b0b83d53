"""INSERT builders.

:class:`InsertBuilder` renders multi-row ``INSERT ... VALUES``.  The column
list is the union of keys across all rows in first-seen order; a row that
lacks a key contributes ``DEFAULT`` for it.

:class:`InsertFromSelectBuilder` renders ``INSERT INTO t (cols) SELECT ...``.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from relq.pg_format import format_sql
from relq.query.base import ReturningMixin, TableStatement
from relq.query.conflict import ConflictBuilder
from relq.query.values import format_value


def _as_list(columns: str | list[str] | None) -> list[str]:
    if columns is None:
        return []
    return [columns] if isinstance(columns, str) else list(columns)


class _ConflictMixin:
    """ON CONFLICT wiring shared by both INSERT builders."""

    _conflict_columns: list[str]
    _conflict: ConflictBuilder | None
    table: str

    def on_conflict(
        self,
        columns: str | list[str] | None,
        callback: Callable[[ConflictBuilder], Any] | None = None,
    ):
        """Add ``ON CONFLICT``; without a callback the action is DO NOTHING."""
        self._conflict_columns = _as_list(columns)
        self._conflict = ConflictBuilder(self.table)
        if callback is None:
            self._conflict.do_nothing()
        else:
            callback(self._conflict)
        return self

    def on_conflict_do_nothing(self, columns: str | list[str] | None = None):
        return self.on_conflict(columns)

    def on_conflict_do_update(
        self,
        columns: str | list[str],
        values: dict[str, Any],
        where: str | None = None,
    ):
        def configure(conflict: ConflictBuilder) -> None:
            conflict.do_update(values)
            if where:
                conflict.where(where)

        return self.on_conflict(columns, configure)

    def _conflict_sql(self) -> str:
        if self._conflict is None:
            return ""
        columns = [self.resolve_column(c) for c in self._conflict_columns]  # type: ignore[attr-defined]
        return self._conflict.to_sql(columns)


class InsertBuilder(_ConflictMixin, ReturningMixin, TableStatement):
    """Fluent INSERT builder.

    Args:
        table: Target table.
        data: Optional first row.

    Example::

        InsertBuilder("users", {"name": "o'brien", "tags": ["a", "b"]}) \\
            .on_conflict("email", lambda c: c.do_update({"count": lambda ex, s: s.increment(1)})) \\
            .returning("*")
    """

    def __init__(self, table: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(table)
        self._rows: list[dict[str, Any]] = []
        self._conflict_columns = []
        self._conflict = None
        if data is not None:
            self.add_row(data)

    def add_row(self, row: dict[str, Any]) -> InsertBuilder:
        self._rows.append(dict(row))
        return self

    def add_rows(self, rows: list[dict[str, Any]]) -> InsertBuilder:
        for row in rows:
            self.add_row(row)
        return self

    def clear(self) -> InsertBuilder:
        """Remove every row; rendering then fails until a row is added."""
        self._rows = []
        return self

    @property
    def total(self) -> int:
        return len(self._rows)

    def columns(self) -> list[str]:
        """Union of row keys in first-seen order."""
        seen: dict[str, None] = {}
        for row in self._rows:
            for key in row:
                seen.setdefault(key, None)
        return list(seen)

    def _row_sql(self, row: dict[str, Any], columns: list[str]) -> str:
        values = []
        for key in columns:
            if key not in row:
                values.append("DEFAULT")
            else:
                values.append(format_value(row[key], self.column_type(key)))
        return "(" + ", ".join(values) + ")"

    def to_string(self) -> str:
        if not self._rows:
            raise self._missing(
                "data",
                "Add rows using add_row() or add_rows() first",
                message="Cannot generate INSERT query: no rows to insert",
            )
        columns = self.columns()
        resolved = [self.resolve_column(c) for c in columns]
        values = ", ".join(self._row_sql(row, columns) for row in self._rows)
        sql = format_sql("INSERT INTO %I (%I) VALUES %s", self.table, resolved, values)
        return sql + self._conflict_sql() + self._returning_sql()


class InsertFromSelectBuilder(_ConflictMixin, ReturningMixin, TableStatement):
    """``INSERT INTO table (columns) <select>``.

    Args:
        table: Target table.
        columns: Target columns, in the order the SELECT produces them.
        select: A SELECT builder or SQL text.
    """

    def __init__(self, table: str, columns: list[str], select: Any) -> None:
        super().__init__(table)
        self._target_columns = list(columns)
        self._select = select
        self._conflict_columns = []
        self._conflict = None

    def to_string(self) -> str:
        if not self._target_columns:
            raise self._missing("columns", "Pass the target column list.")
        if not str(self._select).strip():
            raise self._missing("select", "Pass a SELECT builder or SQL text.")
        resolved = [self.resolve_column(c) for c in self._target_columns]
        sql = format_sql("INSERT INTO %I (%I) %s", self.table, resolved, str(self._select))
        return sql + self._conflict_sql() + self._returning_sql()
