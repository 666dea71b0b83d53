"""Unit tests for column factories, define_table and the relations graph."""
from __future__ import annotations

import pytest

from relq.errors import ForeignKeyResolutionError, RelqBuilderError
from relq.schema import (
    RelationsGraph,
    define_table,
    integer,
    jsonb,
    numeric,
    parse_type,
    sql_now,
    text,
    timestamptz,
    varchar,
)


def _users(dialect="postgres"):
    return define_table(
        "users",
        {
            "id": integer().primary_key().autoincrement(),
            "name": text().not_null(),
            "email_address": varchar(255, "email").unique(),
        },
        dialect=dialect,
    )


def _posts():
    return define_table(
        "posts",
        {
            "id": integer().primary_key(),
            "author_id": integer().not_null().references("users", on_delete="CASCADE"),
            "title": text(),
        },
    )


# ---------------------------------------------------------------------------
# Column descriptors
# ---------------------------------------------------------------------------


def test_chain_methods_return_copies():
    base = text()
    required = base.not_null()
    assert base.is_nullable is None
    assert required.is_nullable is False


def test_array_and_type_info():
    tags = text().array()
    assert tags.full_type == "TEXT[]"
    info = tags.type_info()
    assert info.is_array


@pytest.mark.parametrize(
    "factory",
    [
        lambda: text().identity(),
        lambda: text().autoincrement(),
        lambda: numeric(scale=2),
        lambda: integer().default(1).identity(),
        lambda: integer().primary_key().nullable(),
        lambda: text().array(0),
    ],
)
def test_invalid_column_combinations(factory):
    with pytest.raises(RelqBuilderError):
        factory()


# ---------------------------------------------------------------------------
# define_table
# ---------------------------------------------------------------------------


def test_postgres_create_table():
    table = define_table(
        "events",
        {
            "id": integer().primary_key().autoincrement(),
            "payload": jsonb().not_null(),
            "created_at": timestamptz().default(sql_now()),
        },
    )
    assert table.to_sql() == (
        'CREATE TABLE "events" ('
        '"id" INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY, '
        '"payload" JSONB NOT NULL, '
        '"created_at" TIMESTAMPTZ DEFAULT NOW())'
    )


def test_sqlite_create_table():
    sql = _users("sqlite").to_sql()
    assert sql == (
        'CREATE TABLE "users" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, '
        '"name" TEXT NOT NULL, "email" TEXT UNIQUE)'
    )


def test_sqlite_strict_without_rowid():
    table = define_table(
        "kv",
        {"k": text().primary_key(), "v": integer().default(0)},
        dialect="sqlite",
        strict=True,
        without_rowid=True,
    )
    assert table.to_sql() == (
        'CREATE TABLE "kv" ("k" TEXT PRIMARY KEY, "v" INTEGER DEFAULT 0) STRICT, WITHOUT ROWID'
    )


def test_column_name_mapping():
    users = _users()
    assert users.sql_name("email_address") == "email"
    assert users.sql_name("unknown") == "unknown"
    assert users.key_for("email") == "email_address"
    assert users.primary_key_columns() == ["id"]


def test_index_definitions_render_with_default_names():
    table = define_table(
        "users",
        {"id": integer().primary_key(), "email_address": varchar(255, "email")},
        indexes=[{"columns": ["email_address"], "unique": True}],
    )
    assert table.to_index_sql() == ['CREATE UNIQUE INDEX "idx_users_email_address" ON "users" ("email")']
    assert table.to_index_sql("sqlite") == [
        'CREATE UNIQUE INDEX "idx_users_email_address" ON "users" ("email")'
    ]


def test_cockroach_indexes_use_storing():
    table = define_table(
        "events",
        {"id": integer().primary_key(), "ts": timestamptz(), "payload": jsonb()},
        indexes=[{"columns": ["ts"], "include": ["payload"]}],
        dialect="cockroachdb",
    )
    assert table.to_index_sql() == ['CREATE INDEX "idx_events_ts" ON "events" ("ts") STORING ("payload")']
    assert table.to_index_sql("postgres") == ['CREATE INDEX "idx_events_ts" ON "events" ("ts") INCLUDE ("payload")']


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"columns": {}}, "at least one column"),
        ({"columns": {"a": text("x"), "b": text("x")}}, "duplicate"),
        ({"columns": {"a": integer().primary_key(), "b": integer().primary_key()}}, "several columns"),
        ({"columns": {"a": text()}, "primary_key": ["missing"]}, "unknown column"),
        ({"columns": {"a": text()}, "strict": True}, "SQLite-only"),
        (
            {
                "columns": {"id": integer().primary_key().autoincrement(), "v": text()},
                "dialect": "sqlite",
                "without_rowid": True,
            },
            "AUTOINCREMENT is not allowed on WITHOUT ROWID",
        ),
    ],
)
def test_define_table_rejects_invalid_tables(kwargs, message):
    columns = kwargs.pop("columns")
    with pytest.raises(RelqBuilderError, match=message):
        define_table("t", columns, **kwargs)


def test_to_ast_describes_columns():
    ast = _posts().to_ast()
    author = ast.column("author_id")
    assert author.type == "integer()"
    assert author.nullable is False
    assert author.references.table == "users"
    assert author.references.on_delete == "CASCADE"
    assert ast.primary_key == ["id"]


def test_parse_type_codes():
    assert parse_type("VARCHAR(255)").code == "varchar(255)"
    info = parse_type("integer[]")
    assert info.code == "integer()"
    assert info.is_array


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


def test_relations_resolve_both_directions():
    graph = RelationsGraph.from_tables({"users": _users(), "posts": _posts()})
    assert len(graph) == 1

    forward = graph.resolve("posts", "users")
    assert (forward.from_column, forward.to_column, forward.direction) == ("author_id", "id", "forward")

    reverse = graph.resolve("users", "posts")
    assert (reverse.from_column, reverse.to_column, reverse.direction) == ("id", "author_id", "reverse")


def test_unrelated_tables_raise():
    graph = RelationsGraph().add("posts", "author_id", "users")
    assert graph.resolve("users", "tags") is None
    with pytest.raises(ForeignKeyResolutionError) as excinfo:
        graph.resolve_or_raise("users", "tags")
    assert "posts.author_id -> users.id" in excinfo.value.hint
