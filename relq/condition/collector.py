"""Fluent condition collector.

A :class:`ConditionCollector` accumulates :class:`ConditionNode` records in
insertion order.  Statement builders pass a fresh collector to the caller's
callback and later hand the collected nodes to
:func:`~relq.condition.renderer.build_conditions_sql`.

Example::

    def where(q):
        q.equal("status", "active").or_(lambda o: o.is_null("deleted_at").greater_than("age", 18))

    collector = ConditionCollector()
    where(collector)
    collector.nodes
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from relq.errors import RelqBuilderError


@dataclass(frozen=True)
class ConditionNode:
    """One node of the condition tree.

    Attributes:
        method: Operator name (``equal``, ``like``, ``and``, ``raw`` ...).
        column: Column reference for leaf predicates; may be ``table.col``.
        values: Operator payload.  For ``and``/``or``/``not`` a tuple of
            child nodes; for ``raw`` the SQL text.
    """

    method: str
    column: str | None = None
    values: Any = None

    @property
    def is_group(self) -> bool:
        return self.method in GROUP_METHODS


#: Structural methods whose ``values`` are child nodes.
GROUP_METHODS: frozenset[str] = frozenset({"and", "or", "not"})

ConditionCallback = Callable[["ConditionCollector"], Any]


def _pattern(value: str, match: str) -> str:
    if match == "prefix":
        return f"{value}%"
    if match == "suffix":
        return f"%{value}"
    return f"%{value}%"


class ConditionCollector:
    """Fluent surface that appends one :class:`ConditionNode` per call.

    Every predicate method returns ``self`` so calls chain.  Group methods
    (:meth:`and_`, :meth:`or_`, :meth:`not_`) run the callback against a
    fresh collector and append a single composite node.
    """

    def __init__(self) -> None:
        self._nodes: list[ConditionNode] = []
        self.jsonb = JsonbConditions(self)
        self.array = ArrayConditions(self)

    @property
    def nodes(self) -> list[ConditionNode]:
        return list(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __bool__(self) -> bool:
        return bool(self._nodes)

    def add(self, node: ConditionNode) -> ConditionCollector:
        """Append a pre-built node (used by namespaces and extensions)."""
        self._nodes.append(node)
        return self

    def _leaf(self, method: str, column: str, values: Any = None) -> ConditionCollector:
        if not column:
            raise RelqBuilderError(
                f"Condition '{method}' requires a column.",
                builder="ConditionCollector",
                missing="column",
            )
        return self.add(ConditionNode(method, column, values))

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def equal(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("equal", column, value)

    def not_equal(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("not_equal", column, value)

    def less_than(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("less_than", column, value)

    def less_than_or_equal(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("less_than_or_equal", column, value)

    less_than_equal = less_than_or_equal

    def greater_than(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("greater_than", column, value)

    def greater_than_or_equal(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("greater_than_or_equal", column, value)

    greater_than_equal = greater_than_or_equal

    def between(self, column: str, start: Any, end: Any) -> ConditionCollector:
        return self._leaf("between", column, (start, end))

    def not_between(self, column: str, start: Any, end: Any) -> ConditionCollector:
        return self._leaf("not_between", column, (start, end))

    def is_null(self, column: str) -> ConditionCollector:
        return self._leaf("is_null", column)

    def is_not_null(self, column: str) -> ConditionCollector:
        return self._leaf("is_not_null", column)

    not_null = is_not_null

    def is_true(self, column: str) -> ConditionCollector:
        return self._leaf("is_true", column)

    def is_false(self, column: str) -> ConditionCollector:
        return self._leaf("is_false", column)

    def distinct_from(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("distinct_from", column, value)

    def not_distinct_from(self, column: str, value: Any) -> ConditionCollector:
        return self._leaf("not_distinct_from", column, value)

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------

    def in_(self, column: str, values: list[Any] | tuple[Any, ...]) -> ConditionCollector:
        return self._leaf("in", column, tuple(values))

    def not_in(self, column: str, values: list[Any] | tuple[Any, ...]) -> ConditionCollector:
        return self._leaf("not_in", column, tuple(values))

    def overlaps(self, columns: tuple[str, str], start: Any, end: Any) -> ConditionCollector:
        """``(c1, c2) OVERLAPS (start, end)`` for period columns."""
        first, second = columns
        return self._leaf("overlaps", first, (second, start, end))

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def like(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("like", column, pattern)

    def not_like(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("not_like", column, pattern)

    def ilike(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("ilike", column, pattern)

    def not_ilike(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("not_ilike", column, pattern)

    def starts_with(self, column: str, value: str, case_insensitive: bool = False) -> ConditionCollector:
        return self._leaf("ilike" if case_insensitive else "like", column, _pattern(value, "prefix"))

    def ends_with(self, column: str, value: str, case_insensitive: bool = False) -> ConditionCollector:
        return self._leaf("ilike" if case_insensitive else "like", column, _pattern(value, "suffix"))

    def contains(self, column: str, value: str, case_insensitive: bool = False) -> ConditionCollector:
        return self._leaf("ilike" if case_insensitive else "like", column, _pattern(value, "contains"))

    def not_starts_with(self, column: str, value: str, case_insensitive: bool = False) -> ConditionCollector:
        method = "not_ilike" if case_insensitive else "not_like"
        return self._leaf(method, column, _pattern(value, "prefix"))

    def not_ends_with(self, column: str, value: str, case_insensitive: bool = False) -> ConditionCollector:
        method = "not_ilike" if case_insensitive else "not_like"
        return self._leaf(method, column, _pattern(value, "suffix"))

    def not_contains(self, column: str, value: str, case_insensitive: bool = False) -> ConditionCollector:
        method = "not_ilike" if case_insensitive else "not_like"
        return self._leaf(method, column, _pattern(value, "contains"))

    def regex(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("regex", column, pattern)

    def iregex(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("iregex", column, pattern)

    def not_regex(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("not_regex", column, pattern)

    def not_iregex(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("not_iregex", column, pattern)

    def similar_to(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("similar_to", column, pattern)

    def not_similar_to(self, column: str, pattern: str) -> ConditionCollector:
        return self._leaf("not_similar_to", column, pattern)

    # ------------------------------------------------------------------
    # Full text
    # ------------------------------------------------------------------

    def search(self, column: str, query: str) -> ConditionCollector:
        return self._leaf("search", column, query)

    def not_search(self, column: str, query: str) -> ConditionCollector:
        return self._leaf("not_search", column, query)

    # ------------------------------------------------------------------
    # Subqueries and raw SQL
    # ------------------------------------------------------------------

    def exists(self, subquery: Any) -> ConditionCollector:
        """``EXISTS (subquery)``; *subquery* is SQL text or a builder."""
        return self.add(ConditionNode("exists", None, str(subquery)))

    def not_exists(self, subquery: Any) -> ConditionCollector:
        return self.add(ConditionNode("not_exists", None, str(subquery)))

    def raw(self, sql: str) -> ConditionCollector:
        """Append SQL text that is rendered verbatim and never re-quoted."""
        return self.add(ConditionNode("raw", None, sql))

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def _group(self, method: str, callback: ConditionCallback) -> ConditionCollector:
        sub = ConditionCollector()
        callback(sub)
        if not sub:
            raise RelqBuilderError(
                f"'{method}' group callback added no conditions.",
                builder="ConditionCollector",
                missing=f"{method} conditions",
                hint="Call at least one predicate on the collector passed to the callback.",
            )
        return self.add(ConditionNode(method, None, tuple(sub.nodes)))

    def and_(self, callback: ConditionCallback) -> ConditionCollector:
        return self._group("and", callback)

    def or_(self, callback: ConditionCallback) -> ConditionCollector:
        return self._group("or", callback)

    def not_(self, callback: ConditionCallback) -> ConditionCollector:
        return self._group("not", callback)


# ---------------------------------------------------------------------------
# Namespaces
# ---------------------------------------------------------------------------


class JsonbConditions:
    """JSONB predicates, reached as ``q.jsonb``.

    Path arguments are sequences of keys (``["address", "city"]``) or a
    single key string.
    """

    def __init__(self, parent: ConditionCollector) -> None:
        self._parent = parent

    def _add(self, method: str, column: str, values: Any) -> ConditionCollector:
        return self._parent._leaf(f"jsonb_{method}", column, values)

    def contains(self, column: str, value: Any) -> ConditionCollector:
        return self._add("contains", column, value)

    def contained_by(self, column: str, value: Any) -> ConditionCollector:
        return self._add("contained_by", column, value)

    def has_key(self, column: str, key: str) -> ConditionCollector:
        return self._add("has_key", column, key)

    def has_any_keys(self, column: str, keys: list[str]) -> ConditionCollector:
        return self._add("has_any_keys", column, tuple(keys))

    def has_all_keys(self, column: str, keys: list[str]) -> ConditionCollector:
        return self._add("has_all_keys", column, tuple(keys))

    def path_equal(self, column: str, path: Any, value: Any) -> ConditionCollector:
        return self._add("path_compare", column, (_path(path), "=", value))

    def path_not_equal(self, column: str, path: Any, value: Any) -> ConditionCollector:
        return self._add("path_compare", column, (_path(path), "!=", value))

    def path_greater_than(self, column: str, path: Any, value: Any) -> ConditionCollector:
        return self._add("path_numeric", column, (_path(path), ">", value))

    def path_greater_than_or_equal(self, column: str, path: Any, value: Any) -> ConditionCollector:
        return self._add("path_numeric", column, (_path(path), ">=", value))

    def path_less_than(self, column: str, path: Any, value: Any) -> ConditionCollector:
        return self._add("path_numeric", column, (_path(path), "<", value))

    def path_less_than_or_equal(self, column: str, path: Any, value: Any) -> ConditionCollector:
        return self._add("path_numeric", column, (_path(path), "<=", value))

    def path_in(self, column: str, path: Any, values: list[Any]) -> ConditionCollector:
        return self._add("path_in", column, (_path(path), tuple(values)))

    def path_like(self, column: str, path: Any, pattern: str) -> ConditionCollector:
        return self._add("path_like", column, (_path(path), pattern))

    def path_is_null(self, column: str, path: Any) -> ConditionCollector:
        return self._add("path_is_null", column, _path(path))

    def path_is_not_null(self, column: str, path: Any) -> ConditionCollector:
        return self._add("path_is_not_null", column, _path(path))

    def type_of(self, column: str, path: Any, json_type: str) -> ConditionCollector:
        return self._add("typeof", column, (_path(path), json_type))


class ArrayConditions:
    """Native array predicates, reached as ``q.array``."""

    def __init__(self, parent: ConditionCollector) -> None:
        self._parent = parent

    def _add(self, method: str, column: str, values: Any) -> ConditionCollector:
        return self._parent._leaf(f"array_{method}", column, values)

    def contains(self, column: str, values: list[Any]) -> ConditionCollector:
        return self._add("contains", column, tuple(values))

    def contained_by(self, column: str, values: list[Any]) -> ConditionCollector:
        return self._add("contained_by", column, tuple(values))

    def overlaps(self, column: str, values: list[Any]) -> ConditionCollector:
        return self._add("overlaps", column, tuple(values))

    def equal(self, column: str, values: list[Any]) -> ConditionCollector:
        return self._add("equal", column, tuple(values))

    def not_equal(self, column: str, values: list[Any]) -> ConditionCollector:
        return self._add("not_equal", column, tuple(values))

    def any(self, column: str, value: Any, operator: str = "=") -> ConditionCollector:
        return self._add("any", column, (operator, value))

    def all(self, column: str, value: Any, operator: str = "=") -> ConditionCollector:
        return self._add("all", column, (operator, value))

    def length(self, column: str, length: int) -> ConditionCollector:
        return self._add("length", column, length)

    def string_contains(self, column: str, substring: str) -> ConditionCollector:
        return self._add("element_like", column, _pattern(substring, "contains"))

    def string_starts_with(self, column: str, prefix: str) -> ConditionCollector:
        return self._add("element_like", column, _pattern(prefix, "prefix"))

    def string_ends_with(self, column: str, suffix: str) -> ConditionCollector:
        return self._add("element_like", column, _pattern(suffix, "suffix"))


def _path(path: Any) -> tuple[str, ...]:
    if isinstance(path, str):
        return tuple(path.split(".")) if "." in path else (path,)
    return tuple(str(p) for p in path)


def collect(callback: ConditionCallback | None) -> list[ConditionNode]:
    """Run *callback* against a fresh collector and return its nodes."""
    collector = ConditionCollector()
    if callback is not None:
        callback(collector)
    return collector.nodes
