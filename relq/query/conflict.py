"""ON CONFLICT clause builder.

``do_update`` accepts plain values, expression tags, and callables.  A
callable is invoked according to how many positional parameters it takes:

* ``fn(excluded)``
* ``fn(excluded, helpers)``
* ``fn(excluded, helpers, row)``

``excluded`` and ``row`` resolve attribute access to
:class:`~relq.expressions.ColumnRef` tags; ``helpers`` is a
:class:`~relq.expressions.SqlHelpers` bound to the column being assigned.
The tags stay inert until :meth:`ConflictBuilder.to_sql` renders them.

Example::

    insert.on_conflict("email", lambda c: c.do_update({
        "count": lambda ex, s: s.increment(1),
        "name": excluded("name"),
    }))
"""
from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any, Literal

from relq.condition import ConditionCollector, build_conditions_sql
from relq.expressions import ColumnRef, ExcludedRow, SqlExpression, SqlHelpers, TargetRow
from relq.pg_format import format_sql, ident, literal, to_json

#: What to do when the insert conflicts.
ConflictAction = Literal["nothing", "update"]


def _arity(fn: Callable[..., Any]) -> int:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return 3
    positional = [
        p
        for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params):
        return 3
    return len(positional)


class ConflictBuilder:
    """Collects the DO NOTHING / DO UPDATE action for one ON CONFLICT clause.

    Args:
        table: The insert target, used for row references and helpers.
    """

    def __init__(self, table: str) -> None:
        self.table = table
        self.action: ConflictAction = "nothing"
        self.update_data: dict[str, Any] = {}
        self.where_clause: str | None = None

    def do_nothing(self) -> ConflictBuilder:
        self.action = "nothing"
        self.update_data = {}
        return self

    def do_update(self, values: dict[str, Any]) -> ConflictBuilder:
        """Assign columns on conflict.

        Callables are resolved immediately into tags; see module docs.
        """
        self.action = "update"
        excluded_row = ExcludedRow()
        target_row = TargetRow(self.table)
        for column, value in values.items():
            if callable(value) and not isinstance(value, (ColumnRef, SqlExpression)):
                helpers = SqlHelpers(column, self.table)
                arity = _arity(value)
                if arity <= 1:
                    value = value(excluded_row)
                elif arity == 2:
                    value = value(excluded_row, helpers)
                else:
                    value = value(excluded_row, helpers, target_row)
            self.update_data[column] = value
        return self

    def where(self, condition: str | Callable[[ConditionCollector], Any]) -> ConflictBuilder:
        """Restrict the update with raw SQL or a condition callback."""
        if callable(condition):
            collector = ConditionCollector()
            condition(collector)
            self.where_clause = build_conditions_sql(collector.nodes)
        else:
            self.where_clause = condition
        return self

    def update_sql(self) -> str:
        """Render the SET list of ``DO UPDATE``."""
        clauses = []
        for column, value in self.update_data.items():
            target = ident(column)
            if isinstance(value, (ColumnRef, SqlExpression)):
                clauses.append(f"{target} = {value.to_sql()}")
            elif isinstance(value, (list, tuple)):
                if not value:
                    clauses.append(f"{target} = ARRAY[]::jsonb[]")
                else:
                    items = ",".join(literal(to_json(v)) for v in value)
                    clauses.append(f"{target} = ARRAY[{items}]::jsonb[]")
            else:
                clauses.append(format_sql("%I = %L", column, value))
        return ", ".join(clauses)

    def to_sql(self, columns: list[str]) -> str:
        """Render `` ON CONFLICT (...) DO ...`` for the given target columns."""
        sql = format_sql(" ON CONFLICT (%I)", columns) if columns else " ON CONFLICT"
        if self.action == "update" and self.update_data:
            sql += f" DO UPDATE SET {self.update_sql()}"
            if self.where_clause:
                sql += f" WHERE {self.where_clause}"
        else:
            sql += " DO NOTHING"
        return sql
