"""Conditional COUNT builder.

Each :meth:`CountBuilder.group` becomes one projected aggregate with an
optional ``FILTER (WHERE ...)``; with no groups the projection is
``COUNT(*) AS count``.
"""
from __future__ import annotations

from dataclasses import dataclass

from relq.condition import ConditionCallback, ConditionNode, collect
from relq.errors import RelqBuilderError
from relq.pg_format import format_column, format_sql
from relq.query.base import TableStatement, WhereMixin

_AGGREGATES = ("distinct", "sum", "avg", "min", "max")


@dataclass
class CountGroup:
    name: str
    conditions: list[ConditionNode]
    function: str = "COUNT"
    column: str | None = None
    distinct: bool = False


class CountBuilder(WhereMixin, TableStatement):
    """Fluent COUNT builder.

    Example::

        CountBuilder("users") \\
            .group("active", lambda q: q.equal("status", "active")) \\
            .group("total", lambda q: q, distinct="email")
    """

    def __init__(self, table: str) -> None:
        super().__init__(table)
        self._groups: list[CountGroup] = []
        self._where: list[ConditionNode] = []

    def group(
        self,
        name: str,
        callback: ConditionCallback | None = None,
        *,
        distinct: str | None = None,
        sum: str | None = None,
        avg: str | None = None,
        min: str | None = None,
        max: str | None = None,
    ) -> CountBuilder:
        """Add one aggregate named *name*, filtered by *callback*'s conditions.

        At most one of ``distinct``, ``sum``, ``avg``, ``min``, ``max`` may be
        given; it selects the aggregate and the column it applies to.

        Raises:
            RelqBuilderError: If more than one aggregate option is given.
        """
        options = dict(zip(_AGGREGATES, (distinct, sum, avg, min, max)))
        chosen = [(k, v) for k, v in options.items() if v]
        if len(chosen) > 1:
            raise RelqBuilderError(
                f"Count group '{name}' received several aggregates: {[k for k, _ in chosen]}.",
                builder="CountBuilder",
                hint="Pass only one of distinct=, sum=, avg=, min=, max=.",
            )
        group = CountGroup(name, collect(callback))
        if chosen:
            kind, column = chosen[0]
            group.column = column
            group.distinct = kind == "distinct"
            group.function = "COUNT" if group.distinct else kind.upper()
        self._groups.append(group)
        return self

    def _group_sql(self, group: CountGroup) -> str:
        if group.column:
            column = format_column(self.resolve_column(group.column))
            argument = f"DISTINCT {column}" if group.distinct else column
        else:
            argument = "*"
        sql = f"{group.function}({argument})"
        if group.conditions:
            sql += f" FILTER (WHERE {self._conditions_sql(group.conditions)})"
        return format_sql("%s AS %I", sql, group.name)

    def to_string(self) -> str:
        if self._groups:
            projection = ", ".join(self._group_sql(g) for g in self._groups)
        else:
            projection = "COUNT(*) AS count"
        sql = format_sql("SELECT %s FROM %I", projection, self.table)
        if self._where:
            sql += " WHERE " + self._conditions_sql(self._where)
        return sql
