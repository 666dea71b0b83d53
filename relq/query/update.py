"""UPDATE builder.

Each SET entry renders by value kind:

* callable: invoked with :class:`~relq.dsl.UpdateOperations`; the returned
  :class:`~relq.dsl.ColumnFragment` is rendered with the quoted resolved
  column in its slot (a plain string has ``__COLUMN__`` replaced instead);
* :class:`~relq.expressions.SqlExpression` / ``ColumnRef``: spliced as-is;
* list or dict: formatted against the column's declared type;
* anything else: a literal.
"""
from __future__ import annotations

from typing import Any

from relq.condition import ConditionNode
from relq.dsl import ColumnFragment, UpdateOperations, render_assignment
from relq.expressions import ColumnRef, SqlExpression
from relq.pg_format import format_sql, ident
from relq.query.base import ReturningMixin, TableStatement, WhereMixin
from relq.query.values import format_value


class UpdateBuilder(WhereMixin, ReturningMixin, TableStatement):
    """Fluent UPDATE builder.

    Args:
        table: Target table.
        data: Column → value mapping for the SET clause.

    Example::

        UpdateBuilder("users", {"settings": lambda ops: ops.jsonb.set_field("theme", "dark")}) \\
            .where(lambda q: q.equal("id", 1))
    """

    def __init__(self, table: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(table)
        self._set: dict[str, Any] = dict(data or {})
        self._where: list[ConditionNode] = []

    def set(self, data: dict[str, Any]) -> UpdateBuilder:
        """Add or replace SET entries."""
        self._set.update(data)
        return self

    def _assignment(self, key: str, value: Any) -> str:
        column = self.resolve_column(key)
        column_sql = ident(column)
        if callable(value) and not isinstance(value, (ColumnRef, SqlExpression, ColumnFragment)):
            value = value(UpdateOperations())
        if isinstance(value, ColumnFragment):
            return f"{column_sql} = {value.render(column_sql)}"
        if isinstance(value, (ColumnRef, SqlExpression)):
            return f"{column_sql} = {value.to_sql()}"
        if isinstance(value, str) and "__COLUMN__" in value:
            return f"{column_sql} = {render_assignment(value, column_sql)}"
        return f"{column_sql} = {format_value(value, self.column_type(key))}"

    def to_string(self) -> str:
        if not self._set:
            raise self._missing("data", "Pass a column -> value mapping to update() or set().")
        assignments = ", ".join(self._assignment(k, v) for k, v in self._set.items())
        sql = format_sql("UPDATE %I SET %s", self.table, assignments)
        if self._where:
            sql += " WHERE " + self._conditions_sql(self._where)
        return sql + self._returning_sql()
