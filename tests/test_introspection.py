"""Unit tests for the CREATE TABLE parser and schema code generation."""
from __future__ import annotations

import pytest

from relq.errors import RelqQueryError
from relq.introspection import (
    format_default,
    introspect_multiple,
    introspect_sql,
    parse_create_index,
    parse_create_table,
    split_table_body,
    variable_name,
)

POSTS_DDL = """
CREATE TABLE IF NOT EXISTS public.posts (
    -- surrogate key
    id BIGSERIAL,
    author_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    title VARCHAR(200) NOT NULL,
    status TEXT DEFAULT 'draft'::text NOT NULL,
    price NUMERIC(10, 2) CHECK (price > 0),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT now(),
    slug TEXT GENERATED ALWAYS AS (lower(title)) STORED,
    CONSTRAINT posts_pkey PRIMARY KEY (id),
    CONSTRAINT posts_title_key UNIQUE (title, author_id)
);
"""


def test_split_table_body_respects_parentheses_and_quotes():
    parts = split_table_body("id int, price numeric(10, 2), note text DEFAULT 'a, b', CHECK (price > 0)")
    assert parts == ["id int", "price numeric(10, 2)", "note text DEFAULT 'a, b'", "CHECK (price > 0)"]


def test_parse_columns_and_constraints():
    table = parse_create_table(POSTS_DDL)
    assert (table.schema_name, table.name) == ("public", "posts")
    assert [c.name for c in table.columns] == [
        "id",
        "author_id",
        "title",
        "status",
        "price",
        "created_at",
        "slug",
    ]
    assert table.primary_key == ["id"]
    assert table.unique_constraints[0].columns == ["title", "author_id"]
    assert table.unique_constraints[0].name == "posts_title_key"

    author = table.column("author_id")
    assert author.nullable is False
    assert (author.references.table, author.references.column) == ("users", "id")
    assert author.references.on_delete == "CASCADE"

    assert table.column("status").default == "'draft'::text"
    assert table.column("price").type == "numeric(10, 2)"
    assert table.column("price").check == "price > 0"
    assert table.column("created_at").type == "timestamptz()"
    assert table.column("slug").generated.expression == "lower(title)"
    assert table.column("slug").generated.stored


def test_quoted_identifiers_keep_case():
    table = parse_create_table('CREATE TABLE "Order Items" ("Id" integer, qty INT[][])')
    assert table.name == "Order Items"
    assert table.columns[0].name == "Id"
    assert table.columns[1].array_dimensions == 2


@pytest.mark.parametrize(
    "sql",
    ["SELECT 1", "CREATE TABLE t (id int", "CREATE TABLE t ()"],
)
def test_invalid_statements_raise(sql):
    with pytest.raises(RelqQueryError):
        parse_create_table(sql)


def test_parse_create_index():
    table_name, index = parse_create_index(
        "CREATE UNIQUE INDEX users_email_idx ON users USING btree (email) WHERE email IS NOT NULL"
    )
    assert table_name == "users"
    assert index.columns == ["email"]
    assert index.unique
    assert index.using == "BTREE"
    assert index.where == "email IS NOT NULL"
    assert parse_create_index("CREATE TABLE t (id int)") is None


@pytest.mark.parametrize(
    "value, expected",
    [
        ("now()", "sql_now()"),
        ("CURRENT_TIMESTAMP", "sql_current_timestamp()"),
        ("gen_random_uuid()", "sql_gen_random_uuid()"),
        ("'it''s'", '"it\'s"'),
        ("'draft'::text", '"draft"'),
        ("42", "42"),
        ("-1.5", "-1.5"),
        ("true", "True"),
        ("NULL", "None"),
        ("nextval('s'::regclass)", "sql_raw(\"nextval('s'::regclass)\")"),
    ],
)
def test_format_default(value, expected):
    assert format_default(value) == expected


def test_variable_name():
    assert variable_name("order-items") == "order_items"
    assert variable_name("Order Items") == "order_items"
    assert variable_name("2fa") == "t_2fa"
    assert variable_name("class") == "t_class"


def test_generated_code_for_simple_table():
    result = introspect_sql("CREATE TABLE users (id SERIAL PRIMARY KEY, tags TEXT[])")
    assert result.parsed.name == "users"
    assert result.code == (
        "from relq.schema import define_table, serial, text\n"
        "\n"
        "users = define_table(\n"
        '    "users",\n'
        "    {\n"
        '        "id": serial().primary_key(),\n'
        '        "tags": text().array(),\n'
        "    },\n"
        ")\n"
    )


def test_generated_code_is_executable():
    result = introspect_sql(POSTS_DDL)
    assert (
        "from relq.schema import bigserial, define_table, integer, numeric, sql_now, text, timestamptz, varchar"
        in result.code
    )
    assert '"author_id": integer().not_null().references("users", "id", on_delete="CASCADE"),' in result.code
    assert '"status": text().not_null().default("draft"),' in result.code
    assert '"slug": text().generated_as("lower(title)"),' in result.code

    namespace: dict = {}
    exec(result.code, namespace)
    posts = namespace["posts"]
    assert posts.schema == "public"
    assert posts.primary_key_columns() == ["id"]
    assert posts.unique_constraints[0].name == "posts_title_key"


def test_script_attaches_indexes_to_tables():
    results = introspect_multiple(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY, email TEXT);
        CREATE UNIQUE INDEX users_email_idx ON users (email) WHERE email IS NOT NULL;
        CREATE INDEX orphan_idx ON missing (x);
        CREATE TABLE tags (id INTEGER PRIMARY KEY);
        """
    )
    assert [r.parsed.name for r in results] == ["users", "tags"]
    assert [i.name for i in results[0].parsed.indexes] == ["users_email_idx"]
    assert (
        '{"columns": ["email"], "name": "users_email_idx", "unique": True, "where": "email IS NOT NULL"},'
        in results[0].code
    )


def test_sample_schema_script(sample_ddl):
    users, posts = introspect_multiple(sample_ddl)
    assert users.parsed.column("email").unique
    assert posts.parsed.column("tags").array_dimensions == 1
    assert posts.parsed.column("status").check == "status IN ('draft', 'published')"
    assert [i.name for i in posts.parsed.indexes] == ["posts_user_id_idx", "posts_title_idx"]
    assert '"user_id": integer().not_null().references("users", "id", on_delete="CASCADE"),' in posts.code


def test_comment_markers_inside_literals_survive():
    table = parse_create_table(
        "CREATE TABLE t (/* key */ id int, sep text DEFAULT '--', note text DEFAULT '/* x */') -- trailing"
    )
    assert [c.name for c in table.columns] == ["id", "sep", "note"]
    assert table.column("sep").default == "'--'"
    assert table.column("note").default == "'/* x */'"
