"""Unit tests for SelectBuilder."""
from __future__ import annotations

import pytest

from relq.errors import RelqBuilderError
from relq.query import JoinColumn, SelectBuilder, StructuredJoin

_MAPPING = {"userId": "user_id", "createdAt": "created_at"}


def _resolver(name: str) -> str:
    return _MAPPING.get(name, name)


def test_basic_select_with_where_order_and_limit():
    sql = (
        SelectBuilder("users", ["a", "b"])
        .where(lambda q: q.equal("id", 5).like("name", "%x%"))
        .order_by("id", "DESC")
        .limit(10)
        .to_string()
    )
    assert sql == (
        'SELECT "a", "b" FROM "users" WHERE "id" = 5 AND "name" LIKE \'%x%\' '
        'ORDER BY "id" DESC LIMIT 10'
    )


def test_default_projection_is_star():
    assert SelectBuilder("users").to_string() == 'SELECT * FROM "users"'


def test_empty_column_list_raises():
    with pytest.raises(RelqBuilderError):
        SelectBuilder("users", [])


def test_missing_table_raises():
    with pytest.raises(RelqBuilderError):
        SelectBuilder("")


def test_rendering_is_idempotent():
    builder = SelectBuilder("users").where(lambda q: q.equal("id", 1)).limit(1)
    assert builder.to_string() == builder.to_string() == str(builder)


def test_clause_call_order_does_not_change_output():
    first = SelectBuilder("users").limit(5).offset(10).where(lambda q: q.equal("id", 1))
    second = SelectBuilder("users").where(lambda q: q.equal("id", 1)).offset(10).limit(5)
    assert first.to_string() == second.to_string()
    assert first.to_string() == 'SELECT * FROM "users" WHERE "id" = 1 LIMIT 5 OFFSET 10'


def test_expressions_pass_through_and_tuples_alias():
    sql = SelectBuilder("users", ["COUNT(*) AS n", ("name", "label")]).to_string()
    assert sql == 'SELECT COUNT(*) AS n, "name" AS "label" FROM "users"'


def test_distinct_and_distinct_on():
    assert SelectBuilder("users", ["email"]).distinct().to_string() == 'SELECT DISTINCT "email" FROM "users"'
    sql = SelectBuilder("users").distinct_on("email").to_string()
    assert sql == 'SELECT DISTINCT ON ("email") * FROM "users"'


def test_group_by_and_having():
    sql = (
        SelectBuilder("orders", ["user_id", "COUNT(*) AS n"])
        .group_by("user_id")
        .having(lambda q: q.raw("COUNT(*) > 1"))
        .to_string()
    )
    assert sql == 'SELECT "user_id", COUNT(*) AS n FROM "orders" GROUP BY "user_id" HAVING COUNT(*) > 1'


def test_order_by_nulls_placement():
    sql = SelectBuilder("users").order_by_nulls("created_at", "DESC", "LAST").to_string()
    assert sql == 'SELECT * FROM "users" ORDER BY "created_at" DESC NULLS LAST'


def test_locking_clause():
    sql = SelectBuilder("jobs").limit(1).for_update_skip_locked().to_string()
    assert sql == 'SELECT * FROM "jobs" LIMIT 1 FOR UPDATE SKIP LOCKED'


def test_set_operations_follow_insertion_order():
    sql = SelectBuilder("a").union(SelectBuilder("b")).except_("SELECT * FROM c").to_string()
    assert sql == 'SELECT * FROM "a" UNION SELECT * FROM "b" EXCEPT SELECT * FROM c'


def test_table_alias():
    assert SelectBuilder("users").alias("u").to_string() == 'SELECT * FROM "users" AS "u"'


def test_raw_join_qualifies_projection_and_where():
    sql = (
        SelectBuilder("users")
        .left_join("orders", '"orders"."user_id" = "users"."id"')
        .where(lambda q: q.equal("id", 1).greater_than("orders.total", 10))
        .to_string()
    )
    assert sql == (
        'SELECT "users".* FROM "users" LEFT JOIN "orders" ON "orders"."user_id" = "users"."id" '
        'WHERE "users"."id" = 1 AND "orders"."total" > 10'
    )


def test_structured_join_projects_json_object():
    join = StructuredJoin(
        type="LEFT JOIN",
        table="orders",
        alias="o",
        on='"o"."user_id" = "users"."id"',
        columns=[JoinColumn("total", "total_cents")],
    )
    sql = SelectBuilder("users", ["id"]).add_structured_join(join).to_string()
    assert sql == (
        'SELECT "users"."id", json_build_object(\'total\', "o"."total_cents") AS "o" '
        'FROM "users" LEFT JOIN "orders" AS "o" ON "o"."user_id" = "users"."id"'
    )


def test_structured_join_without_columns_uses_row_to_json():
    join = StructuredJoin(type="INNER JOIN", table="teams", using=["team_id"])
    sql = SelectBuilder("users", ["id"]).add_structured_join(join).to_string()
    assert sql == (
        'SELECT "users"."id", row_to_json("teams".*) AS "teams" '
        'FROM "users" INNER JOIN "teams" USING ("team_id")'
    )


def test_include_appends_computed_projection():
    sql = SelectBuilder("users", ["id"]).include("full_name", "first || ' ' || last").to_string()
    assert sql == "SELECT \"id\", first || ' ' || last AS \"full_name\" FROM \"users\""


def test_column_resolver_applies_everywhere():
    sql = (
        SelectBuilder("users", ["userId"])
        .set_column_resolver(_resolver)
        .where(lambda q: q.equal("userId", 1).raw("userId IS NOT NULL"))
        .order_by("createdAt")
        .to_string()
    )
    assert sql == (
        'SELECT "user_id" FROM "users" WHERE "user_id" = 1 AND userId IS NOT NULL '
        'ORDER BY "created_at" ASC'
    )


def test_to_count_sql_keeps_filters():
    builder = SelectBuilder("users", ["id"]).where(lambda q: q.is_true("active")).limit(5)
    assert builder.to_count_sql() == 'SELECT COUNT(*) AS count FROM "users" WHERE "active" IS TRUE'
