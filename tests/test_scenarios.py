"""End-to-end rendering through the public ``relq`` namespace."""
from __future__ import annotations

import relq
from relq.schema import integer, text


def test_select_with_where_order_and_limit():
    sql = (
        relq.SelectBuilder("users", ["a", "b"])
        .where(lambda q: q.equal("id", 5).like("name", "%x%"))
        .order_by("id", "DESC")
        .limit(10)
    )
    assert str(sql) == (
        'SELECT "a", "b" FROM "users" WHERE "id" = 5 AND "name" LIKE \'%x%\' ORDER BY "id" DESC LIMIT 10'
    )


def test_upsert_with_increment():
    sql = (
        relq.InsertBuilder("users", {"name": "o'brien", "tags": ["a", "b"]})
        .on_conflict("email", lambda c: c.do_update({"count": lambda ex, s: s.increment(1)}))
        .returning(["*"])
    )
    assert str(sql) == (
        "INSERT INTO \"users\" (\"name\", \"tags\") VALUES ('o''brien', ARRAY['a','b']) "
        'ON CONFLICT ("email") DO UPDATE SET "count" = "users"."count" + 1 RETURNING *'
    )


def test_update_jsonb_field():
    sql = relq.UpdateBuilder("users", {"settings": lambda ops: ops.jsonb.set_field("theme", "dark")}).where(
        lambda q: q.equal("id", 1)
    )
    assert str(sql) == (
        "UPDATE \"users\" SET \"settings\" = jsonb_set(COALESCE(\"settings\", '{}'::jsonb), "
        "'{theme}', '\"dark\"'::jsonb, true) WHERE \"id\" = 1"
    )


def test_count_groups():
    sql = (
        relq.CountBuilder("users")
        .group("active", lambda q: q.equal("status", "active"))
        .group("total", lambda q: q, distinct="email")
    )
    assert str(sql) == (
        "SELECT COUNT(*) FILTER (WHERE \"status\" = 'active') AS \"active\", "
        'COUNT(DISTINCT "email") AS "total" FROM "users"'
    )


def test_cte_wraps_inner_select():
    inner = relq.SelectBuilder("users").where(lambda q: q.is_not_null("confirmed_at"))
    sql = relq.CTEBuilder().with_("recent", inner).to_string('SELECT * FROM "recent"')
    assert sql == f'WITH "recent" AS ({inner}) SELECT * FROM "recent"'


def test_sqlite_create_table_from_definition():
    users = relq.define_table(
        "users",
        {"id": integer().primary_key().autoincrement(), "name": text().not_null()},
        dialect="sqlite",
    )
    assert users.to_sql() == 'CREATE TABLE "users" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, "name" TEXT NOT NULL)'


def test_rendering_is_repeatable():
    builder = relq.SelectBuilder("users").where(lambda q: q.in_("id", [1, 2])).order_by("id")
    assert builder.to_string() == builder.to_string()
    assert relq.format_sql("SELECT %I FROM %I WHERE x = %L", "a", "t", "it's") == (
        "SELECT \"a\" FROM \"t\" WHERE x = 'it''s'"
    )
