"""JSONB mutation DSL.

Every method returns a :class:`~relq.dsl.fragment.ColumnFragment` whose
slot is the target column.  Fragments are NULL-safe: the source value is
always wrapped in ``COALESCE(col, '{}'::jsonb)`` (objects) or
``COALESCE(col, '[]'::jsonb)`` (arrays), and array rewrites go through
``jsonb_array_elements`` + ``jsonb_agg``.

Example::

    UpdateBuilder("users", {"settings": lambda ops: ops.jsonb.set_field("theme", "dark")})
    # "settings" = jsonb_set(COALESCE("settings", '{}'::jsonb), '{theme}', '"dark"'::jsonb, true)
"""
from __future__ import annotations

from typing import Any, Literal

from relq.dsl.fragment import ColumnFragment, constant
from relq.pg_format import literal, to_json

JsonPath = str | list[str] | tuple[str, ...]


def _path_list(path: Any) -> list[str]:
    if isinstance(path, (list, tuple)):
        return [str(p) for p in path]
    return [str(path)]


def _path_text(path: Any) -> str:
    return literal("{" + ",".join(_path_list(path)) + "}")


def _jsonb(value: Any) -> str:
    return literal(to_json(value)) + "::jsonb"


def _obj(col: str) -> str:
    return f"COALESCE({col}, '{{}}'::jsonb)"


def _arr(col: str) -> str:
    return f"COALESCE({col}, '[]'::jsonb)"


def _elements(col: str) -> str:
    return f"jsonb_array_elements({_arr(col)})"


def _extract_text(col: str, path: Any) -> str:
    parts = _path_list(path)
    if len(parts) == 1:
        return f"{col}->>{literal(parts[0])}"
    return f"{col}#>>{_path_text(parts)}"


def _extract_json(col: str, path: Any) -> str:
    parts = _path_list(path)
    if len(parts) == 1:
        return f"{col}->{literal(parts[0])}"
    return f"{col}#>{_path_text(parts)}"


def _match_all(conditions: dict[str, Any]) -> str:
    return " AND ".join(f"elem->>{literal(k)} = {literal(v)}" for k, v in conditions.items())


class JsonbArrayBuilder:
    """Operations on a JSONB column holding an array."""

    def set(self, values: list[Any]) -> ColumnFragment:
        return constant(_jsonb(values))

    def append(self, value: Any) -> ColumnFragment:
        return ColumnFragment(lambda col: f"{_arr(col)} || {_jsonb([value])}")

    def prepend(self, value: Any) -> ColumnFragment:
        return ColumnFragment(lambda col: f"{_jsonb([value])} || {_arr(col)}")

    def concat(self, values: list[Any]) -> ColumnFragment:
        if not values:
            return ColumnFragment(_arr)
        return ColumnFragment(lambda col: f"{_arr(col)} || {_jsonb(values)}")

    def insert_at(self, index: int, value: Any) -> ColumnFragment:
        return ColumnFragment(
            lambda col: f"jsonb_insert({_arr(col)}, {_path_text(index)}, {_jsonb(value)})"
        )

    def remove_at(self, index: int) -> ColumnFragment:
        return ColumnFragment(lambda col: f"{_arr(col)} - {int(index)}")

    def shift(self) -> ColumnFragment:
        return self.remove_at(0)

    def pop(self) -> ColumnFragment:
        return self.remove_at(-1)

    def _aggregate(self, select: str, where: str | None = None) -> ColumnFragment:
        def build(col: str) -> str:
            sql = f"SELECT {select} FROM {_elements(col)} elem"
            if where:
                sql += f" WHERE {where}"
            return f"COALESCE(({sql}), '[]'::jsonb)"

        return ColumnFragment(build)

    def remove_where(self, key: str, value: Any) -> ColumnFragment:
        return self._aggregate("jsonb_agg(elem)", f"elem->>{literal(key)} != {literal(value)}")

    def remove_where_all(self, conditions: dict[str, Any]) -> ColumnFragment:
        return self._aggregate("jsonb_agg(elem)", f"NOT ({_match_all(conditions)})")

    def filter(self, key: str, value: Any) -> ColumnFragment:
        return self._aggregate("jsonb_agg(elem)", f"elem->>{literal(key)} = {literal(value)}")

    def filter_all(self, conditions: dict[str, Any]) -> ColumnFragment:
        return self._aggregate("jsonb_agg(elem)", _match_all(conditions))

    def update_at(self, index: int, value: Any) -> ColumnFragment:
        return ColumnFragment(
            lambda col: f"jsonb_set({_arr(col)}, {_path_text(index)}, {_jsonb(value)})"
        )

    def update_where(self, match_key: str, match_value: Any, updates: dict[str, Any]) -> ColumnFragment:
        if not updates:
            return ColumnFragment(_arr)
        set_expr = "elem"
        for key, value in updates.items():
            set_expr = f"jsonb_set({set_expr}, {_path_text(key)}, {_jsonb(value)})"
        match = f"elem->>{literal(match_key)} = {literal(match_value)}"
        return self._aggregate(f"jsonb_agg(CASE WHEN {match} THEN {set_expr} ELSE elem END)")

    def _ordinal(self, where: str) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"COALESCE((SELECT jsonb_agg(elem) FROM (SELECT elem FROM {_elements(col)} "
                f"WITH ORDINALITY AS t(elem, idx) WHERE {where}) t), '[]'::jsonb)"
            )
        )

    def reverse(self) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"COALESCE((SELECT jsonb_agg(elem ORDER BY idx DESC) FROM {_elements(col)} "
                "WITH ORDINALITY AS t(elem, idx)), '[]'::jsonb)"
            )
        )

    def unique(self) -> ColumnFragment:
        return self._aggregate("jsonb_agg(DISTINCT elem)")

    def unique_by(self, key: str) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"COALESCE((SELECT jsonb_agg(elem) FROM (SELECT DISTINCT ON (elem->>{literal(key)}) elem "
                f"FROM {_elements(col)} elem) t), '[]'::jsonb)"
            )
        )

    def sort_by(self, key: str, direction: Literal["ASC", "DESC"] = "ASC") -> ColumnFragment:
        direction = "DESC" if direction.upper() == "DESC" else "ASC"
        return self._aggregate(f"jsonb_agg(elem ORDER BY elem->>{literal(key)} {direction})")

    def slice(self, start: int, end: int | None = None) -> ColumnFragment:
        if end is None:
            return self._ordinal(f"idx > {int(start)}")
        return self._ordinal(f"idx > {int(start)} AND idx <= {int(end)}")

    def take(self, n: int) -> ColumnFragment:
        return self._ordinal(f"idx <= {int(n)}")

    def skip(self, n: int) -> ColumnFragment:
        return self._ordinal(f"idx > {int(n)}")

    def map_set(self, key: str, value: Any) -> ColumnFragment:
        return self._aggregate(f"jsonb_agg(jsonb_set(elem, {_path_text(key)}, {_jsonb(value)}))")

    def map_increment(self, key: str, amount: int | float = 1) -> ColumnFragment:
        bumped = f"((COALESCE((elem->>{literal(key)})::numeric, 0) + {amount})::text)::jsonb"
        return self._aggregate(f"jsonb_agg(jsonb_set(elem, {_path_text(key)}, {bumped}))")

    def map_decrement(self, key: str, amount: int | float = 1) -> ColumnFragment:
        return self.map_increment(key, -amount)


class JsonbUpdateBuilder:
    """Operations on a JSONB column holding an object.

    Array operations live on :attr:`array`.
    """

    def __init__(self) -> None:
        self.array = JsonbArrayBuilder()

    def set(self, value: Any) -> ColumnFragment:
        return constant(_jsonb(value))

    def set_field(self, path: JsonPath, value: Any) -> ColumnFragment:
        return ColumnFragment(
            lambda col: f"jsonb_set({_obj(col)}, {_path_text(path)}, {_jsonb(value)}, true)"
        )

    def remove_field(self, key: JsonPath) -> ColumnFragment:
        if isinstance(key, (list, tuple)):
            return ColumnFragment(lambda col: f"{_obj(col)} #- {_path_text(key)}")
        return ColumnFragment(lambda col: f"{_obj(col)} - {literal(key)}")

    def remove_fields(self, keys: list[str]) -> ColumnFragment:
        if not keys:
            return ColumnFragment(_obj)
        array = ", ".join(literal(k) for k in keys)
        return ColumnFragment(lambda col: f"{_obj(col)} - ARRAY[{array}]")

    def merge(self, value: dict[str, Any]) -> ColumnFragment:
        return ColumnFragment(lambda col: f"{_obj(col)} || {_jsonb(value)}")

    def deep_merge(self, value: dict[str, Any]) -> ColumnFragment:
        def build(col: str) -> str:
            result = _obj(col)
            for key, item in value.items():
                if isinstance(item, dict):
                    nested = f"COALESCE({col}->{literal(key)}, '{{}}'::jsonb) || {_jsonb(item)}"
                    result = f"jsonb_set({result}, {_path_text(key)}, {nested}, true)"
                else:
                    result = f"jsonb_set({result}, {_path_text(key)}, {_jsonb(item)}, true)"
            return result

        return ColumnFragment(build)

    def rename_field(self, old_key: str, new_key: str) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"({_obj(col)} || jsonb_build_object({literal(new_key)}, {col}->{literal(old_key)}))"
                f" - {literal(old_key)}"
            )
        )

    def _numeric(self, path: JsonPath, operator: str, amount: int | float) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"jsonb_set({_obj(col)}, {_path_text(path)}, "
                f"((COALESCE(({_extract_text(col, path)})::numeric, 0) {operator} {amount})::text)::jsonb, true)"
            )
        )

    def increment(self, path: JsonPath, amount: int | float = 1) -> ColumnFragment:
        return self._numeric(path, "+", amount)

    def decrement(self, path: JsonPath, amount: int | float = 1) -> ColumnFragment:
        return self._numeric(path, "+", -amount)

    def multiply(self, path: JsonPath, factor: int | float) -> ColumnFragment:
        return self._numeric(path, "*", factor)

    def toggle(self, path: JsonPath) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"jsonb_set({_obj(col)}, {_path_text(path)}, "
                f"(NOT COALESCE(({_extract_json(col, path)})::boolean, false))::text::jsonb, true)"
            )
        )

    def set_timestamp(self, path: JsonPath) -> ColumnFragment:
        return ColumnFragment(
            lambda col: f"jsonb_set({_obj(col)}, {_path_text(path)}, to_jsonb(NOW()), true)"
        )

    def append_string(self, path: JsonPath, suffix: str) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"jsonb_set({_obj(col)}, {_path_text(path)}, "
                f"to_jsonb(COALESCE({_extract_text(col, path)}, '') || {literal(suffix)}), true)"
            )
        )

    def prepend_string(self, path: JsonPath, prefix: str) -> ColumnFragment:
        return ColumnFragment(
            lambda col: (
                f"jsonb_set({_obj(col)}, {_path_text(path)}, "
                f"to_jsonb({literal(prefix)} || COALESCE({_extract_text(col, path)}, '')), true)"
            )
        )
