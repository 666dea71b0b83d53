"""Unit tests for the DDL builders."""
from __future__ import annotations

import pytest

from relq.ddl import (
    AlterRoleBuilder,
    AlterSequenceBuilder,
    AlterTableBuilder,
    ColumnDefinition,
    CreateFunctionBuilder,
    CreateIndexBuilder,
    CreatePartitionBuilder,
    CreateRoleBuilder,
    CreateSchemaBuilder,
    CreateSequenceBuilder,
    CreateTableBuilder,
    CreateTriggerBuilder,
    CreateViewBuilder,
    DefaultPrivilegesBuilder,
    DetachPartitionBuilder,
    DropIndexBuilder,
    DropSequenceBuilder,
    DropTableBuilder,
    DropTriggerBuilder,
    GrantBuilder,
    IndexColumn,
    RefreshMaterializedViewBuilder,
    ReindexBuilder,
    RevokeBuilder,
    SetRoleBuilder,
    for_values_from_to,
    for_values_in,
    for_values_with,
    render_column,
)
from relq.errors import RelqBuilderError
from relq.query import SelectBuilder

# ---------------------------------------------------------------------------
# Tables and columns
# ---------------------------------------------------------------------------


def test_create_table_with_raw_and_structured_columns():
    sql = (
        CreateTableBuilder("users")
        .add_column("id", "INTEGER PRIMARY KEY AUTOINCREMENT")
        .add_column("name", {"type": "TEXT", "nullable": False})
        .to_string()
    )
    assert sql == 'CREATE TABLE "users" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, "name" TEXT NOT NULL)'


def test_create_table_without_columns_raises():
    with pytest.raises(RelqBuilderError) as exc_info:
        CreateTableBuilder("users").to_string()
    assert "at least one column" in str(exc_info.value)


def test_column_clause_order():
    definition = ColumnDefinition(type="integer", nullable=False, default=0, check="qty >= 0")
    assert render_column("qty", definition) == '"qty" integer NOT NULL DEFAULT 0 CHECK (qty >= 0)'


def test_column_sql_default_is_verbatim():
    assert render_column("created_at", ColumnDefinition(type="timestamptz", default="NOW()")) == (
        '"created_at" timestamptz DEFAULT NOW()'
    )


def test_explicit_none_default_renders_null():
    assert render_column("note", ColumnDefinition(type="text", default=None)) == '"note" text DEFAULT NULL'


def test_column_reference_and_identity():
    ref = ColumnDefinition(type="integer", references={"table": "users", "on_delete": "CASCADE"})
    assert render_column("user_id", ref) == '"user_id" integer REFERENCES "users"("id") ON DELETE CASCADE'
    identity = ColumnDefinition(type="bigint", identity={"always": True, "start": 100})
    assert render_column("id", identity) == '"id" bigint GENERATED ALWAYS AS IDENTITY (START WITH 100)'


def test_column_definition_rejects_unknown_fields():
    with pytest.raises(ValueError):
        ColumnDefinition(type="text", nullabel=False)


def test_create_table_constraints_and_options():
    sql = (
        CreateTableBuilder("orders", schema="shop")
        .if_not_exists()
        .add_column("id", "serial")
        .add_column("user_id", "integer")
        .add_primary_key(["id"])
        .add_foreign_key(
            ["user_id"], "users", ["id"], name="fk_user", on_delete="CASCADE", deferrable=True, initially="DEFERRED"
        )
        .fillfactor(70)
        .to_string()
    )
    assert sql == (
        'CREATE TABLE IF NOT EXISTS "shop"."orders" ("id" serial, "user_id" integer, PRIMARY KEY ("id"), '
        'CONSTRAINT "fk_user" FOREIGN KEY ("user_id") REFERENCES "users" ("id") ON DELETE CASCADE '
        "DEFERRABLE INITIALLY DEFERRED) WITH (fillfactor = 70)"
    )


def test_create_table_partition_by():
    sql = CreateTableBuilder("events").add_column("ts", "timestamptz").partition_by("RANGE", "ts").to_string()
    assert sql == 'CREATE TABLE "events" ("ts" timestamptz) PARTITION BY RANGE ("ts")'


def test_full_sql_includes_indexes():
    full = (
        CreateTableBuilder("users")
        .add_column("email", "text")
        .add_index("idx_email", lambda i: i.btree(["email"]).unique())
        .to_full_sql()
    )
    assert full == {
        "table": 'CREATE TABLE "users" ("email" text)',
        "indexes": ['CREATE UNIQUE INDEX "idx_email" ON "users" ("email")'],
    }


def test_alter_table_actions_are_comma_joined():
    sql = (
        AlterTableBuilder("users")
        .add_column("age", "integer", if_not_exists=True)
        .drop_column("legacy", if_exists=True, cascade=True)
        .rename_column("nm", "name")
        .to_string()
    )
    assert sql == (
        'ALTER TABLE "users" ADD COLUMN IF NOT EXISTS "age" integer, '
        'DROP COLUMN IF EXISTS "legacy" CASCADE, RENAME COLUMN "nm" TO "name"'
    )


def test_alter_table_without_actions_raises():
    with pytest.raises(RelqBuilderError):
        AlterTableBuilder("users").to_string()


def test_drop_table():
    assert DropTableBuilder("a", "b").if_exists().cascade().to_string() == 'DROP TABLE IF EXISTS "a", "b" CASCADE'


# ---------------------------------------------------------------------------
# Indexes
# ---------------------------------------------------------------------------


def test_gin_index_with_shared_opclass():
    sql = CreateIndexBuilder("idx_name_trgm", "users").gin(["name"], "gin_trgm_ops").to_string()
    assert sql == 'CREATE INDEX "idx_name_trgm" ON "users" USING GIN ("name" gin_trgm_ops)'


def test_partial_covering_concurrent_index():
    sql = (
        CreateIndexBuilder("idx_recent", "users")
        .btree([IndexColumn("created_at", order="DESC", nulls="LAST")])
        .include("email")
        .where("deleted_at IS NULL")
        .concurrently()
        .if_not_exists()
        .to_string()
    )
    assert sql == (
        'CREATE INDEX CONCURRENTLY IF NOT EXISTS "idx_recent" ON "users" '
        '("created_at" DESC NULLS LAST) INCLUDE ("email") WHERE deleted_at IS NULL'
    )


def test_expression_and_brin_indexes():
    assert CreateIndexBuilder("i", "users").expression("lower(email)").to_string() == (
        'CREATE INDEX "i" ON "users" (lower(email))'
    )
    assert CreateIndexBuilder("b", "events").brin(["ts"], pages_per_range=32).to_string() == (
        'CREATE INDEX "b" ON "events" USING BRIN ("ts") WITH (pages_per_range = 32)'
    )


def test_index_without_columns_raises():
    with pytest.raises(RelqBuilderError):
        CreateIndexBuilder("i", "users").to_string()


def test_reindex_places_concurrently_after_target():
    assert ReindexBuilder("TABLE", "users").concurrently().verbose().to_string() == (
        'REINDEX (VERBOSE) TABLE CONCURRENTLY "users"'
    )


def test_drop_index():
    assert DropIndexBuilder("i").concurrently().if_exists().to_string() == 'DROP INDEX CONCURRENTLY IF EXISTS "i"'


# ---------------------------------------------------------------------------
# Triggers, functions, views, sequences
# ---------------------------------------------------------------------------


def test_trigger_with_update_of_and_when():
    sql = (
        CreateTriggerBuilder("users_touch")
        .on("users")
        .before("UPDATE")
        .update_of("name", "email")
        .when("OLD.* IS DISTINCT FROM NEW.*")
        .execute("touch_updated_at")
        .to_string()
    )
    assert sql == (
        'CREATE TRIGGER "users_touch" BEFORE UPDATE OF "name", "email" ON "users" FOR EACH ROW '
        "WHEN (OLD.* IS DISTINCT FROM NEW.*) EXECUTE FUNCTION touch_updated_at()"
    )


def test_deferrable_trigger_is_constraint_trigger():
    sql = (
        CreateTriggerBuilder("audit")
        .on("accounts")
        .after("INSERT", "DELETE")
        .initially_deferred()
        .execute("log_change", "accounts", 1)
        .to_string()
    )
    assert sql == (
        'CREATE CONSTRAINT TRIGGER "audit" AFTER INSERT OR DELETE ON "accounts" '
        "DEFERRABLE INITIALLY DEFERRED FOR EACH ROW EXECUTE FUNCTION log_change('accounts', 1)"
    )


def test_trigger_requires_table():
    with pytest.raises(RelqBuilderError):
        CreateTriggerBuilder("t").after("INSERT").execute("f").to_string()


def test_drop_trigger():
    assert DropTriggerBuilder("t", "a").if_exists().to_string() == 'DROP TRIGGER IF EXISTS "t" ON "a"'


def test_create_function_renders_language():
    sql = (
        CreateFunctionBuilder("add_one")
        .or_replace()
        .parameter("n", "integer")
        .returns("integer")
        .language("sql")
        .immutable()
        .body("SELECT n + 1")
        .to_string()
    )
    assert sql == (
        'CREATE OR REPLACE FUNCTION "add_one"("n" integer) RETURNS integer LANGUAGE sql IMMUTABLE '
        "SECURITY INVOKER PARALLEL UNSAFE AS $$SELECT n + 1$$"
    )


def test_function_parameters_and_returns_table():
    sql = (
        CreateFunctionBuilder("lookup")
        .parameter("x", "int", default=5)
        .parameter("y", "int", mode="OUT")
        .returns_table({"id": "integer", "name": "text"})
        .body("BEGIN RETURN; END;")
        .to_string()
    )
    assert sql.startswith(
        'CREATE FUNCTION "lookup"("x" int DEFAULT 5, OUT "y" int) RETURNS TABLE("id" integer, "name" text) '
        "LANGUAGE plpgsql VOLATILE"
    )


def test_function_requires_return_type():
    with pytest.raises(RelqBuilderError):
        CreateFunctionBuilder("f").body("SELECT 1").to_string()


def test_view_with_check_option():
    sql = (
        CreateViewBuilder("active_users")
        .or_replace()
        .as_(SelectBuilder("users").where(lambda q: q.is_true("active")))
        .check_option("LOCAL")
        .to_string()
    )
    assert sql == (
        'CREATE OR REPLACE VIEW "active_users" AS SELECT * FROM "users" WHERE "active" IS TRUE '
        "WITH LOCAL CHECK OPTION"
    )


def test_materialized_view_ignores_or_replace():
    sql = CreateViewBuilder("stats").materialized().or_replace().as_("SELECT 1").with_no_data().to_string()
    assert sql == 'CREATE MATERIALIZED VIEW "stats" AS SELECT 1 WITH NO DATA'
    assert RefreshMaterializedViewBuilder("stats").concurrently().to_string() == (
        'REFRESH MATERIALIZED VIEW CONCURRENTLY "stats"'
    )


def test_sequence_options_in_grammar_order():
    sql = (
        CreateSequenceBuilder("order_seq")
        .as_("bigint")
        .increment(5)
        .no_min_value()
        .max_value(1000)
        .start(10)
        .cache(20)
        .cycle()
        .owned_by("orders.id")
        .to_string()
    )
    assert sql == (
        'CREATE SEQUENCE "order_seq" AS bigint INCREMENT BY 5 NO MINVALUE MAXVALUE 1000 '
        'START WITH 10 CACHE 20 CYCLE OWNED BY "orders"."id"'
    )


def test_alter_and_drop_sequence():
    assert AlterSequenceBuilder("s").restart(1).to_string() == 'ALTER SEQUENCE "s" RESTART WITH 1'
    assert DropSequenceBuilder("s").restrict().to_string() == 'DROP SEQUENCE "s" RESTRICT'


# ---------------------------------------------------------------------------
# Partitions, schemas, privileges, roles
# ---------------------------------------------------------------------------


def test_partition_bounds():
    sql = (
        CreatePartitionBuilder("events_2024", "events")
        .for_values(for_values_from_to("2024-01-01", "2025-01-01"))
        .to_string()
    )
    assert sql == (
        'CREATE TABLE "events_2024" PARTITION OF "events" FOR VALUES '
        "FROM ('2024-01-01') TO ('2025-01-01')"
    )
    assert for_values_in("a", "b") == "IN ('a','b')"
    assert for_values_with(4, 0) == "WITH (MODULUS 4, REMAINDER 0)"
    assert for_values_from_to("minvalue", 10) == "FROM (MINVALUE) TO (10)"


def test_partition_requires_bound():
    with pytest.raises(RelqBuilderError):
        CreatePartitionBuilder("p", "events").to_string()


def test_detach_partition():
    assert DetachPartitionBuilder("events", "events_2023").concurrently().to_string() == (
        'ALTER TABLE "events" DETACH PARTITION "events_2023" CONCURRENTLY'
    )


def test_create_schema():
    assert CreateSchemaBuilder("app").if_not_exists().authorization("owner").to_string() == (
        'CREATE SCHEMA IF NOT EXISTS "app" AUTHORIZATION "owner"'
    )


def test_grant_and_revoke():
    assert GrantBuilder().select().insert().on_table("users").to("app").to_string() == (
        'GRANT SELECT, INSERT ON TABLE "users" TO "app"'
    )
    assert GrantBuilder().update("email").on_table("users").to_public().to_string() == (
        'GRANT UPDATE ("email") ON TABLE "users" TO PUBLIC'
    )
    assert RevokeBuilder().all_().on_all_tables_in_schema("public").from_("app").cascade().to_string() == (
        'REVOKE ALL PRIVILEGES ON ALL TABLES IN SCHEMA "public" FROM "app" CASCADE'
    )


def test_grant_role_membership():
    assert GrantBuilder().roles("admin").to("alice").with_admin().to_string() == (
        'GRANT "admin" TO "alice" WITH ADMIN OPTION'
    )


def test_grant_without_privileges_raises():
    with pytest.raises(RelqBuilderError):
        GrantBuilder().on_table("users").to("app").to_string()


def test_default_privileges():
    sql = DefaultPrivilegesBuilder().in_schema("public").grant("select").on_tables().to("reader").to_string()
    assert sql == 'ALTER DEFAULT PRIVILEGES IN SCHEMA "public" GRANT SELECT ON TABLES TO "reader"'


def test_roles():
    assert CreateRoleBuilder("app").login().password("secret").connection_limit(10).to_string() == (
        "CREATE ROLE \"app\" WITH LOGIN CONNECTION LIMIT 10 PASSWORD 'secret'"
    )
    assert AlterRoleBuilder("app").set("search_path", "app").to_string() == (
        "ALTER ROLE \"app\" SET search_path TO 'app'"
    )
    assert SetRoleBuilder().reset().to_string() == "RESET ROLE"
