"""SELECT builder.

Sub-builder hierarchy
---------------------
::

    SelectBuilder
    ├── ConditionCollector   (WHERE, HAVING)
    ├── StructuredJoin[]     (schema-aware joins with projection metadata)
    └── raw join strings     (join(), left_join(), lateral_join() ...)

Clauses render in fixed grammatical order regardless of call order:
projection, FROM, joins, WHERE, GROUP BY, HAVING, ORDER BY, LIMIT, OFFSET,
locking, then set-operation tails in insertion order.

Usage::

    sql = (
        SelectBuilder("users", ["a", "b"])
        .where(lambda q: q.equal("id", 5).like("name", "%x%"))
        .order_by("id", "DESC")
        .limit(10)
        .to_string()
    )
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from relq.condition import (
    ConditionCallback,
    ConditionNode,
    build_conditions_sql,
    collect,
    qualify_condition_columns,
    resolve_condition_columns,
)
from relq.errors import RelqBuilderError
from relq.pg_format import format_column, format_sql, ident
from relq.query.base import TableStatement

#: ``ASC`` or ``DESC``.
SortDirection = Literal["ASC", "DESC"]

#: ``FIRST`` or ``LAST``.
NullsPlacement = Literal["FIRST", "LAST"]

#: A projection entry: a column, a pre-formatted expression, or ``(column, alias)``.
SelectColumn = Union[str, tuple[str, str]]

_PASSTHROUGH_MARKERS = ("(", "DISTINCT", " AS ", ".")
_LATERAL_TYPES = frozenset({"JOIN LATERAL", "LEFT JOIN LATERAL"})


@dataclass
class JoinColumn:
    """One projected property of a structured join."""

    property: str
    sql_name: str


@dataclass
class StructuredJoin:
    """A JOIN declared with projection metadata.

    Attributes:
        type: ``INNER JOIN``, ``LEFT JOIN``, ``CROSS JOIN``, ``JOIN LATERAL`` ...
        table: Joined table name.
        alias: Alias used in the projection; defaults to the table name.
        on: Rendered ON condition.
        using: Column names for ``USING (...)``.
        columns: Properties exposed through ``json_build_object``; when empty
            the whole row is projected with ``row_to_json``.
        lateral_subquery: Rendered ``(SELECT ...) AS "alias_lateral"`` for
            LATERAL joins.
    """

    type: str
    table: str
    alias: str = ""
    on: str | None = None
    using: list[str] = field(default_factory=list)
    columns: list[JoinColumn] = field(default_factory=list)
    lateral_subquery: str | None = None

    def __post_init__(self) -> None:
        if not self.alias:
            self.alias = self.table

    @property
    def is_lateral(self) -> bool:
        return self.type in _LATERAL_TYPES

    def table_sql(self) -> str:
        if self.alias != self.table:
            return f"{ident(self.table)} AS {ident(self.alias)}"
        return ident(self.table)

    def projection_sql(self) -> str:
        alias = ident(self.alias)
        if self.is_lateral:
            return f"{ident(self.alias + '_lateral')}.{alias} AS {alias}"
        if self.columns:
            args = ", ".join(
                f"'{col.property}', {alias}.{ident(col.sql_name)}" for col in self.columns
            )
            return f"json_build_object({args}) AS {alias}"
        return f"row_to_json({alias}.*) AS {alias}"

    def join_sql(self) -> str:
        if self.is_lateral and self.lateral_subquery:
            return f"{self.type} {self.lateral_subquery} ON true"
        if self.type == "CROSS JOIN":
            return f"CROSS JOIN {self.table_sql()}"
        if self.using:
            return f"{self.type} {self.table_sql()} USING ({', '.join(ident(c) for c in self.using)})"
        if self.on:
            return f"{self.type} {self.table_sql()} ON {self.on}"
        return f"{self.type} {self.table_sql()}"


@dataclass
class _OrderItem:
    column: str
    direction: str
    nulls: str | None = None


class SelectBuilder(TableStatement):
    """Fluent SELECT builder.

    Args:
        table: Table in the FROM clause.
        columns: Projection; defaults to ``*``.  Entries containing ``(``,
            ``DISTINCT``, `` AS `` or ``.`` pass through unquoted.

    Raises:
        RelqBuilderError: If *columns* is an explicitly empty list.
    """

    def __init__(self, table: str, columns: SelectColumn | list[SelectColumn] | None = None) -> None:
        super().__init__(table)
        if columns is None:
            self._columns: list[SelectColumn] = ["*"]
        elif isinstance(columns, (str, tuple)):
            self._columns = [columns]
        else:
            if not columns:
                raise RelqBuilderError(
                    "SELECT column list must not be empty.",
                    builder="SelectBuilder",
                    missing="columns",
                    hint="Omit the columns argument to select *.",
                )
            self._columns = list(columns)
        self._alias: str | None = None
        self._where: list[ConditionNode] = []
        self._having: list[ConditionNode] = []
        self._joins: list[str] = []
        self._structured_joins: list[StructuredJoin] = []
        self._group_by: list[str] = []
        self._order_by: list[_OrderItem] = []
        self._limit: int | None = None
        self._offset: int | None = None
        self._distinct = False
        self._distinct_on: list[str] = []
        self._locking: str | None = None
        self._set_operations: list[tuple[str, str]] = []
        self._includes: list[tuple[str, str]] = []

    # ------------------------------------------------------------------
    # Projection and FROM
    # ------------------------------------------------------------------

    def alias(self, alias: str) -> SelectBuilder:
        self._alias = alias
        return self

    @property
    def table_ref(self) -> str:
        return self._alias or self.table

    def distinct(self) -> SelectBuilder:
        self._distinct = True
        return self

    def distinct_on(self, *columns: str) -> SelectBuilder:
        self._distinct_on.extend(columns)
        return self

    def include(self, alias: str, sql: str) -> SelectBuilder:
        """Project a computed expression as ``sql AS "alias"``."""
        self._includes.append((alias, sql))
        return self

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def join(self, table: str, condition: str) -> SelectBuilder:
        self._joins.append(f"JOIN {ident(table)} ON {condition}")
        return self

    def inner_join(self, table: str, condition: str) -> SelectBuilder:
        self._joins.append(f"INNER JOIN {ident(table)} ON {condition}")
        return self

    def left_join(self, table: str, condition: str) -> SelectBuilder:
        self._joins.append(f"LEFT JOIN {ident(table)} ON {condition}")
        return self

    def right_join(self, table: str, condition: str) -> SelectBuilder:
        self._joins.append(f"RIGHT JOIN {ident(table)} ON {condition}")
        return self

    def full_outer_join(self, table: str, condition: str) -> SelectBuilder:
        self._joins.append(f"FULL OUTER JOIN {ident(table)} ON {condition}")
        return self

    def cross_join(self, table: str) -> SelectBuilder:
        self._joins.append(f"CROSS JOIN {ident(table)}")
        return self

    def lateral_join(self, subquery: str, left: bool = False) -> SelectBuilder:
        join_type = "LEFT JOIN LATERAL" if left else "JOIN LATERAL"
        self._joins.append(f"{join_type} {subquery}")
        return self

    def raw_join(self, sql: str) -> SelectBuilder:
        self._joins.append(sql)
        return self

    def add_structured_join(self, join: StructuredJoin) -> SelectBuilder:
        self._structured_joins.append(join)
        return self

    @property
    def structured_joins(self) -> list[StructuredJoin]:
        return list(self._structured_joins)

    @property
    def has_joins(self) -> bool:
        return bool(self._joins or self._structured_joins)

    # ------------------------------------------------------------------
    # Filtering, grouping, ordering
    # ------------------------------------------------------------------

    def where(self, callback: ConditionCallback) -> SelectBuilder:
        self._where.extend(collect(callback))
        return self

    def where_raw(self, sql: str) -> SelectBuilder:
        self._where.append(ConditionNode("raw", None, sql))
        return self

    def group_by(self, *columns: str) -> SelectBuilder:
        self._group_by.extend(columns)
        return self

    def having(self, callback: ConditionCallback) -> SelectBuilder:
        self._having.extend(collect(callback))
        return self

    def order_by(self, column: str, direction: SortDirection = "ASC") -> SelectBuilder:
        self._order_by.append(_OrderItem(column, direction.upper()))
        return self

    def order_by_nulls(self, column: str, direction: SortDirection, nulls: NullsPlacement) -> SelectBuilder:
        self._order_by.append(_OrderItem(column, direction.upper(), nulls.upper()))
        return self

    def order_asc(self, column: str) -> SelectBuilder:
        return self.order_by(column, "ASC")

    def order_desc(self, column: str) -> SelectBuilder:
        return self.order_by(column, "DESC")

    def limit(self, count: int) -> SelectBuilder:
        self._limit = count
        return self

    def offset(self, count: int) -> SelectBuilder:
        self._offset = count
        return self

    # ------------------------------------------------------------------
    # Locking and set operations
    # ------------------------------------------------------------------

    def for_update(self) -> SelectBuilder:
        self._locking = "FOR UPDATE"
        return self

    def for_update_no_wait(self) -> SelectBuilder:
        self._locking = "FOR UPDATE NOWAIT"
        return self

    def for_update_skip_locked(self) -> SelectBuilder:
        self._locking = "FOR UPDATE SKIP LOCKED"
        return self

    def for_share(self) -> SelectBuilder:
        self._locking = "FOR SHARE"
        return self

    def for_share_no_wait(self) -> SelectBuilder:
        self._locking = "FOR SHARE NOWAIT"
        return self

    def for_share_skip_locked(self) -> SelectBuilder:
        self._locking = "FOR SHARE SKIP LOCKED"
        return self

    def _set_op(self, kind: str, query: object) -> SelectBuilder:
        self._set_operations.append((kind, str(query)))
        return self

    def union(self, query: object) -> SelectBuilder:
        return self._set_op("UNION", query)

    def union_all(self, query: object) -> SelectBuilder:
        return self._set_op("UNION ALL", query)

    def intersect(self, query: object) -> SelectBuilder:
        return self._set_op("INTERSECT", query)

    def except_(self, query: object) -> SelectBuilder:
        return self._set_op("EXCEPT", query)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _column_sql(self, column: SelectColumn) -> str:
        table_ref = self.table_ref
        if isinstance(column, tuple):
            name, alias = column
            name = self.resolve_column(name)
            if self.has_joins:
                return format_sql("%I.%I AS %I", table_ref, name, alias)
            return format_sql("%I AS %I", name, alias)
        if column == "*":
            return f"{ident(table_ref)}.*" if self.has_joins else "*"
        if any(marker in column for marker in _PASSTHROUGH_MARKERS):
            return column
        name = self.resolve_column(column)
        if self.has_joins:
            return format_sql("%I.%I", table_ref, name)
        return ident(name)

    def _projection_sql(self) -> str:
        columns = [self._column_sql(col) for col in self._columns]
        columns.extend(join.projection_sql() for join in self._structured_joins)
        columns.extend(f"{sql} AS {ident(alias)}" for alias, sql in self._includes)
        return ", ".join(columns)

    def _from_sql(self) -> str:
        if self._alias and self._alias != self.table:
            sql = format_sql("FROM %I AS %I", self.table, self._alias)
        else:
            sql = format_sql("FROM %I", self.table)
        if self._joins:
            sql += " " + " ".join(self._joins)
        if self._structured_joins:
            sql += " " + " ".join(join.join_sql() for join in self._structured_joins)
        return sql

    def _filter_sql(self, nodes: list[ConditionNode]) -> str:
        resolved = resolve_condition_columns(nodes, self._column_resolver)
        if self.has_joins:
            resolved = qualify_condition_columns(resolved, self.table_ref)
        return build_conditions_sql(resolved)

    def _qualified(self, column: str) -> str:
        if "." in column:
            return format_column(column)
        name = self.resolve_column(column)
        if self.has_joins:
            return format_sql("%I.%I", self.table_ref, name)
        return ident(name)

    def _body_sql(self) -> str:
        """FROM through HAVING, shared with :meth:`to_count_sql`."""
        sql = self._from_sql()
        if self._where:
            sql += " WHERE " + self._filter_sql(self._where)
        if self._group_by:
            sql += " GROUP BY " + ", ".join(self._qualified(c) for c in self._group_by)
        if self._having:
            sql += " HAVING " + self._filter_sql(self._having)
        return sql

    def to_string(self) -> str:
        sql = "SELECT"
        if self._distinct_on:
            sql += " DISTINCT ON (" + ", ".join(self._qualified(c) for c in self._distinct_on) + ")"
        elif self._distinct:
            sql += " DISTINCT"
        sql += f" {self._projection_sql()} {self._body_sql()}"
        if self._order_by:
            items = []
            for item in self._order_by:
                text = f"{self._qualified(item.column)} {item.direction}"
                if item.nulls:
                    text += f" NULLS {item.nulls}"
                items.append(text)
            sql += " ORDER BY " + ", ".join(items)
        if self._limit is not None:
            sql += f" LIMIT {int(self._limit)}"
        if self._offset is not None:
            sql += f" OFFSET {int(self._offset)}"
        if self._locking:
            sql += f" {self._locking}"
        for kind, query in self._set_operations:
            sql += f" {kind} {query}"
        return sql

    def to_count_sql(self) -> str:
        """Same FROM/JOIN/WHERE/GROUP BY/HAVING with ``COUNT(*) AS count``."""
        return f"SELECT COUNT(*) AS count {self._body_sql()}"
