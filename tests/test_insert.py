"""Unit tests for the INSERT builders and the ON CONFLICT DSL."""
from __future__ import annotations

import pytest

from relq.errors import RelqBuilderError
from relq.expressions import ColumnRef, ExcludedRow, excluded
from relq.query import ColumnTypeInfo, InsertBuilder, InsertFromSelectBuilder, SelectBuilder


def _types(name: str) -> ColumnTypeInfo | None:
    return {
        "ids": ColumnTypeInfo("integer", is_array=True),
        "labels": ColumnTypeInfo("text", is_array=True),
        "payload": ColumnTypeInfo("jsonb"),
    }.get(name)


def test_insert_with_conflict_update_and_returning():
    sql = (
        InsertBuilder("users", {"name": "o'brien", "tags": ["a", "b"]})
        .on_conflict("email", lambda c: c.do_update({"count": lambda ex, s: s.increment(1)}))
        .returning(["*"])
        .to_string()
    )
    assert sql == (
        'INSERT INTO "users" ("name", "tags") VALUES (\'o\'\'brien\', ARRAY[\'a\',\'b\']) '
        'ON CONFLICT ("email") DO UPDATE SET "count" = "users"."count" + 1 RETURNING *'
    )


def test_disjoint_rows_use_union_of_keys_with_default():
    sql = InsertBuilder("t").add_rows([{"a": 1}, {"b": 2}]).to_string()
    assert sql == 'INSERT INTO "t" ("a", "b") VALUES (1, DEFAULT), (DEFAULT, 2)'


def test_no_rows_raises():
    with pytest.raises(RelqBuilderError) as exc_info:
        InsertBuilder("t").to_string()
    assert "no rows to insert" in str(exc_info.value)


def test_clear_removes_rows():
    builder = InsertBuilder("t", {"a": 1})
    assert builder.total == 1
    builder.clear()
    assert builder.total == 0


def test_dict_values_render_as_jsonb():
    sql = InsertBuilder("t", {"meta": {"k": "it's"}}).to_string()
    assert sql == 'INSERT INTO "t" ("meta") VALUES (\'{"k":"it\'\'s"}\'::jsonb)'


def test_declared_types_pick_array_rendering():
    sql = (
        InsertBuilder("t", {"ids": [1, 2], "labels": [], "payload": [1, 2]})
        .set_column_type_resolver(_types)
        .to_string()
    )
    assert sql == (
        'INSERT INTO "t" ("ids", "labels", "payload") '
        "VALUES (ARRAY[1,2]::integer[], ARRAY[]::text[], '[1,2]'::jsonb)"
    )


def test_mixed_list_without_type_becomes_jsonb():
    sql = InsertBuilder("t", {"items": [1, "a"]}).to_string()
    assert sql == 'INSERT INTO "t" ("items") VALUES (\'[1,"a"]\'::jsonb)'


def test_on_conflict_do_nothing():
    sql = InsertBuilder("t", {"a": 1}).on_conflict_do_nothing("a").to_string()
    assert sql == 'INSERT INTO "t" ("a") VALUES (1) ON CONFLICT ("a") DO NOTHING'
    sql = InsertBuilder("t", {"a": 1}).on_conflict_do_nothing().to_string()
    assert sql == 'INSERT INTO "t" ("a") VALUES (1) ON CONFLICT DO NOTHING'


def test_conflict_update_with_excluded_values_and_where():
    sql = (
        InsertBuilder("users", {"email": "a@x.io", "name": "A"})
        .on_conflict(
            "email",
            lambda c: c.do_update(
                {"name": excluded("name"), "nick": lambda ex: ex.nick, "status": "seen"}
            ).where(lambda q: q.is_true("active")),
        )
        .to_string()
    )
    assert sql.endswith(
        'ON CONFLICT ("email") DO UPDATE SET "name" = EXCLUDED."name", '
        '"nick" = EXCLUDED."nick", "status" = \'seen\' WHERE "active" IS TRUE'
    )


def test_conflict_helper_with_row_reference():
    sql = (
        InsertBuilder("scores", {"player": "p", "score": 3})
        .on_conflict_do_update("player", {"score": lambda ex, s, row: s.greatest(row.score, ex.score)})
        .to_string()
    )
    assert sql.endswith(
        'ON CONFLICT ("player") DO UPDATE SET "score" = GREATEST("scores"."score", EXCLUDED."score")'
    )


def test_excluded_proxy_is_inert():
    ref = ExcludedRow().count
    assert isinstance(ref, ColumnRef)
    assert ref.is_excluded
    assert ref.to_sql() == 'EXCLUDED."count"'


def test_returning_count_rewrites_to_json_build_object():
    sql = (
        InsertBuilder("users", {"a": 1})
        .returning_count(lambda c: c.group("active", lambda q: q.equal("status", "active")))
        .to_string()
    )
    assert sql == (
        'INSERT INTO "users" ("a") VALUES (1) RETURNING (SELECT json_build_object('
        "'active', COUNT(*) FILTER (WHERE \"status\" = 'active')) FROM \"users\")"
    )


def test_resolver_maps_insert_columns():
    sql = (
        InsertBuilder("users", {"firstName": "A"})
        .set_column_resolver(lambda name: {"firstName": "first_name"}.get(name, name))
        .returning("firstName")
        .to_string()
    )
    assert sql == 'INSERT INTO "users" ("first_name") VALUES (\'A\') RETURNING "first_name"'


def test_insert_from_select():
    sql = InsertFromSelectBuilder("archive", ["id", "name"], SelectBuilder("users", ["id", "name"])).to_string()
    assert sql == 'INSERT INTO "archive" ("id", "name") SELECT "id", "name" FROM "users"'


def test_insert_from_select_requires_columns():
    with pytest.raises(RelqBuilderError):
        InsertFromSelectBuilder("archive", [], "SELECT 1").to_string()


def test_increment_amount_is_rendered_as_a_literal():
    sql = (
        InsertBuilder("users", {"name": "a"})
        .on_conflict("email", lambda c: c.do_update({"count": lambda ex, s: s.increment("1; DROP TABLE users")}))
        .to_string()
    )
    assert sql.endswith('SET "count" = "users"."count" + \'1; DROP TABLE users\'')
