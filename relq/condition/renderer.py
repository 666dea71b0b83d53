"""Condition tree rendering and column rewriting.

``ConditionRegistry``
    Maps a node ``method`` to a handler returning SQL.  The renderer asks
    the registry for every leaf, so new operators are added by registering
    a handler rather than editing :func:`build_condition_sql`.

``resolve_condition_columns`` / ``qualify_condition_columns``
    Tree rewrites applied by statement builders before rendering: the first
    maps programmatic keys to SQL column names, the second prefixes bare
    columns with the table reference when joins are present.  Both keep
    ``table.column`` references intact and never touch ``raw`` nodes.

Usage::

    @ConditionRegistry.register("soundex_equal")
    def _soundex(node):
        return format_sql("soundex(%s) = soundex(%L)", format_column(node.column), node.values)
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import ClassVar

from relq.condition.collector import ConditionNode
from relq.errors import RelqBuilderError
from relq.pg_format import format_column, format_sql, literal, to_json

#: A leaf renderer: ``(node) -> sql``.
ConditionHandler = Callable[[ConditionNode], str]

#: Programmatic-name to SQL-name mapping applied before rendering.
ColumnResolver = Callable[[str], str]


class ConditionRegistry:
    """Registry mapping condition methods to SQL rendering handlers.

    Example::

        @ConditionRegistry.register("is_even")
        def _is_even(node):
            return f"{format_column(node.column)} % 2 = 0"
    """

    _handlers: ClassVar[dict[str, ConditionHandler]] = {}

    @classmethod
    def register(cls, method: str) -> Callable[[ConditionHandler], ConditionHandler]:
        """Decorator that registers a handler under ``method``."""

        def decorator(handler: ConditionHandler) -> ConditionHandler:
            cls._handlers[method] = handler
            return handler

        return decorator

    @classmethod
    def register_handler(cls, method: str, handler: ConditionHandler) -> None:
        """Register a handler without using the decorator form."""
        cls._handlers[method] = handler

    @classmethod
    def get(cls, method: str) -> ConditionHandler | None:
        """Return the handler for ``method``, or ``None`` if not registered."""
        return cls._handlers.get(method)

    @classmethod
    def registered_methods(cls) -> list[str]:
        """Return the sorted list of registered condition methods."""
        return sorted(cls._handlers)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_condition_sql(node: ConditionNode) -> str:
    """Render one node (leaf or group) to SQL.

    Raises:
        RelqBuilderError: If no handler is registered for the node's method.
    """
    if node.method in ("and", "or"):
        parts = [build_condition_sql(child) for child in node.values]
        if len(parts) == 1:
            return parts[0]
        joiner = " AND " if node.method == "and" else " OR "
        return "(" + joiner.join(parts) + ")"
    if node.method == "not":
        parts = [build_condition_sql(child) for child in node.values]
        if len(parts) == 1:
            return f"NOT ({parts[0]})"
        return "NOT (" + " AND ".join(parts) + ")"
    handler = ConditionRegistry.get(node.method)
    if handler is None:
        raise RelqBuilderError(
            f"Unknown condition method: '{node.method}'.",
            builder="ConditionRegistry",
            missing=node.method,
            hint=f"Registered methods: {ConditionRegistry.registered_methods()}",
        )
    return handler(node)


def build_conditions_sql(nodes: Iterable[ConditionNode]) -> str:
    """Render a top-level node list joined with ``AND``."""
    return " AND ".join(build_condition_sql(node) for node in nodes)


def resolve_condition_columns(
    nodes: Iterable[ConditionNode], resolver: ColumnResolver | None
) -> list[ConditionNode]:
    """Map programmatic column keys to SQL names throughout the tree."""
    if resolver is None:
        return list(nodes)

    def _resolve(column: str) -> str:
        if "." in column:
            table, col = column.split(".", 1)
            return f"{table}.{resolver(col)}"
        return resolver(column)

    return _rewrite(nodes, _resolve)


def qualify_condition_columns(nodes: Iterable[ConditionNode], table_ref: str) -> list[ConditionNode]:
    """Prefix every bare column with ``table_ref``."""
    return _rewrite(nodes, lambda column: column if "." in column else f"{table_ref}.{column}")


def _rewrite(nodes: Iterable[ConditionNode], fn: Callable[[str], str]) -> list[ConditionNode]:
    out: list[ConditionNode] = []
    for node in nodes:
        if node.method in ("and", "or", "not"):
            out.append(replace(node, values=tuple(_rewrite(node.values, fn))))
        elif node.method == "raw" or not node.column:
            out.append(node)
        else:
            out.append(replace(node, column=fn(node.column)))
    return out


# ---------------------------------------------------------------------------
# Built-in handlers
# ---------------------------------------------------------------------------


def _col(node: ConditionNode) -> str:
    return format_column(node.column or "")


def _binary(operator: str) -> ConditionHandler:
    def handler(node: ConditionNode) -> str:
        return f"{_col(node)} {operator} {literal(node.values)}"

    return handler


def _in_list(values: Iterable[object]) -> str:
    return "(" + ", ".join(literal(v) for v in values) + ")"


def _array_literal(values: Iterable[object]) -> str:
    return "ARRAY[" + ",".join(literal(v) for v in values) + "]"


def _json_path(path: tuple[str, ...]) -> str:
    return literal("{" + ",".join(path) + "}")


@ConditionRegistry.register("equal")
def _equal(node: ConditionNode) -> str:
    value = node.values
    if isinstance(value, (list, tuple)):
        if not value:
            return "FALSE"
        if len(value) > 1:
            return f"{_col(node)} IN {literal(value)}"
        value = value[0]
    return f"{_col(node)} = {literal(value)}"


@ConditionRegistry.register("not_equal")
def _not_equal(node: ConditionNode) -> str:
    value = node.values
    if isinstance(value, (list, tuple)):
        if not value:
            return "TRUE"
        if len(value) > 1:
            return f"{_col(node)} NOT IN {literal(value)}"
        value = value[0]
    return f"{_col(node)} != {literal(value)}"


for _method, _op in (
    ("less_than", "<"),
    ("less_than_or_equal", "<="),
    ("greater_than", ">"),
    ("greater_than_or_equal", ">="),
    ("like", "LIKE"),
    ("not_like", "NOT LIKE"),
    ("ilike", "ILIKE"),
    ("not_ilike", "NOT ILIKE"),
    ("regex", "~"),
    ("iregex", "~*"),
    ("not_regex", "!~"),
    ("not_iregex", "!~*"),
    ("similar_to", "SIMILAR TO"),
    ("not_similar_to", "NOT SIMILAR TO"),
    ("distinct_from", "IS DISTINCT FROM"),
    ("not_distinct_from", "IS NOT DISTINCT FROM"),
):
    ConditionRegistry.register_handler(_method, _binary(_op))


for _method, _suffix in (
    ("is_null", "IS NULL"),
    ("is_not_null", "IS NOT NULL"),
    ("is_true", "IS TRUE"),
    ("is_false", "IS FALSE"),
):
    ConditionRegistry.register_handler(
        _method, (lambda suffix: lambda node: f"{_col(node)} {suffix}")(_suffix)
    )


@ConditionRegistry.register("between")
def _between(node: ConditionNode) -> str:
    start, end = node.values
    return f"{_col(node)} BETWEEN {literal(start)} AND {literal(end)}"


@ConditionRegistry.register("not_between")
def _not_between(node: ConditionNode) -> str:
    start, end = node.values
    return f"{_col(node)} NOT BETWEEN {literal(start)} AND {literal(end)}"


@ConditionRegistry.register("in")
def _in(node: ConditionNode) -> str:
    if not node.values:
        return "FALSE"
    return f"{_col(node)} IN {_in_list(node.values)}"


@ConditionRegistry.register("not_in")
def _not_in(node: ConditionNode) -> str:
    if not node.values:
        return "TRUE"
    return f"{_col(node)} NOT IN {_in_list(node.values)}"


@ConditionRegistry.register("overlaps")
def _overlaps(node: ConditionNode) -> str:
    second, start, end = node.values
    return f"({_col(node)}, {format_column(second)}) OVERLAPS ({literal(start)}, {literal(end)})"


@ConditionRegistry.register("search")
def _search(node: ConditionNode) -> str:
    return f"to_tsvector({_col(node)}) @@ plainto_tsquery({literal(node.values)})"


@ConditionRegistry.register("not_search")
def _not_search(node: ConditionNode) -> str:
    return f"NOT ({_search(node)})"


@ConditionRegistry.register("exists")
def _exists(node: ConditionNode) -> str:
    return f"EXISTS ({node.values})"


@ConditionRegistry.register("not_exists")
def _not_exists(node: ConditionNode) -> str:
    return f"NOT EXISTS ({node.values})"


@ConditionRegistry.register("raw")
def _raw(node: ConditionNode) -> str:
    return str(node.values)


# JSONB ---------------------------------------------------------------------


@ConditionRegistry.register("jsonb_contains")
def _jsonb_contains(node: ConditionNode) -> str:
    return f"{_col(node)} @> {literal(to_json(node.values))}"


@ConditionRegistry.register("jsonb_contained_by")
def _jsonb_contained_by(node: ConditionNode) -> str:
    return f"{_col(node)} <@ {literal(to_json(node.values))}"


@ConditionRegistry.register("jsonb_has_key")
def _jsonb_has_key(node: ConditionNode) -> str:
    return f"{_col(node)} ? {literal(node.values)}"


@ConditionRegistry.register("jsonb_has_any_keys")
def _jsonb_has_any_keys(node: ConditionNode) -> str:
    return f"{_col(node)} ?| {_array_literal(node.values)}"


@ConditionRegistry.register("jsonb_has_all_keys")
def _jsonb_has_all_keys(node: ConditionNode) -> str:
    return f"{_col(node)} ?& {_array_literal(node.values)}"


@ConditionRegistry.register("jsonb_path_compare")
def _jsonb_path_compare(node: ConditionNode) -> str:
    path, operator, value = node.values
    return f"{_col(node)}#>>{_json_path(path)} {operator} {literal(value)}"


@ConditionRegistry.register("jsonb_path_numeric")
def _jsonb_path_numeric(node: ConditionNode) -> str:
    path, operator, value = node.values
    return f"({_col(node)}#>>{_json_path(path)})::numeric {operator} {literal(value)}"


@ConditionRegistry.register("jsonb_path_in")
def _jsonb_path_in(node: ConditionNode) -> str:
    path, values = node.values
    return f"{_col(node)}#>>{_json_path(path)} IN {_in_list(values)}"


@ConditionRegistry.register("jsonb_path_like")
def _jsonb_path_like(node: ConditionNode) -> str:
    path, pattern = node.values
    return f"{_col(node)}#>>{_json_path(path)} LIKE {literal(pattern)}"


@ConditionRegistry.register("jsonb_path_is_null")
def _jsonb_path_is_null(node: ConditionNode) -> str:
    col, path = _col(node), _json_path(node.values)
    return f"({col}#>{path} IS NULL OR {col}#>{path} = 'null'::jsonb)"


@ConditionRegistry.register("jsonb_path_is_not_null")
def _jsonb_path_is_not_null(node: ConditionNode) -> str:
    col, path = _col(node), _json_path(node.values)
    return f"({col}#>{path} IS NOT NULL AND {col}#>{path} != 'null'::jsonb)"


@ConditionRegistry.register("jsonb_typeof")
def _jsonb_typeof(node: ConditionNode) -> str:
    path, json_type = node.values
    return format_sql("jsonb_typeof(%s#>%s) = %L", _col(node), _json_path(path), json_type)


# Arrays --------------------------------------------------------------------


for _method, _op in (
    ("array_contains", "@>"),
    ("array_contained_by", "<@"),
    ("array_overlaps", "&&"),
    ("array_equal", "="),
    ("array_not_equal", "<>"),
):
    ConditionRegistry.register_handler(
        _method,
        (lambda op: lambda node: f"{_col(node)} {op} {_array_literal(node.values)}")(_op),
    )


@ConditionRegistry.register("array_any")
def _array_any(node: ConditionNode) -> str:
    operator, value = node.values
    return f"{literal(value)} {operator} ANY({_col(node)})"


@ConditionRegistry.register("array_all")
def _array_all(node: ConditionNode) -> str:
    operator, value = node.values
    return f"{literal(value)} {operator} ALL({_col(node)})"


@ConditionRegistry.register("array_length")
def _array_length(node: ConditionNode) -> str:
    return f"array_length({_col(node)}, 1) = {literal(node.values)}"


@ConditionRegistry.register("array_element_like")
def _array_element_like(node: ConditionNode) -> str:
    return f"EXISTS (SELECT 1 FROM unnest({_col(node)}) AS elem WHERE elem LIKE {literal(node.values)})"
