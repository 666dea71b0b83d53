"""Unit tests for RelqConfig, its builder and the logging level mapping."""
from __future__ import annotations

import logging

import pytest

from relq.config import RelqConfig
from relq.errors import RelqConfigError, RelqEnvironmentError
from relq.log import configure_logging
from relq.schema import RelationsGraph, define_table, integer


def test_builder_collects_connection_fields():
    config = (
        RelqConfig.builder()
        .host("db.internal", 26257)
        .database("app")
        .credentials("app", "secret")
        .dialect("cockroachdb")
        .pool(2, 5)
        .build()
    )
    assert (config.host, config.port, config.database) == ("db.internal", 26257, "app")
    assert (config.pool_min, config.pool_max) == (2, 5)
    assert config.effective_capabilities().name == "cockroachdb"


def test_conninfo_renders_libpq_parameters():
    conninfo_mod = pytest.importorskip("psycopg.conninfo")
    config = (
        RelqConfig.builder()
        .host("localhost", 5432)
        .database("app")
        .credentials("alice")
        .ssl()
        .timeouts(acquire_ms=2500)
        .build()
    )
    params = conninfo_mod.conninfo_to_dict(config.conninfo())
    assert params == {
        "host": "localhost",
        "port": "5432",
        "dbname": "app",
        "user": "alice",
        "sslmode": "require",
        "connect_timeout": "3",
    }


@pytest.mark.parametrize(
    "configure, field",
    [
        (lambda b: b, "connection_string"),
        (lambda b: b.connection_string("postgresql://x/y").database("y"), "connection_string"),
        (lambda b: b.host("h", 70000), "port"),
        (lambda b: b.host("h").pool(5, 2), "pool_min"),
        (lambda b: b.host("h").log_level("loud"), "log_level"),
        (lambda b: b.host("h").dialect("oracle"), "dialect"),
        (lambda b: b.host("h").capabilities(teleport=True), "capabilities"),
    ],
)
def test_invalid_combinations_are_rejected(configure, field):
    with pytest.raises(RelqConfigError) as excinfo:
        configure(RelqConfig.builder()).build()
    assert excinfo.value.field == field


def test_capability_overrides():
    config = RelqConfig.builder().host("h").capabilities(returning=False).build()
    assert not config.supports_returning()
    assert RelqConfig.builder().host("h").build().supports_returning()


def test_from_env_prefers_database_url():
    config = RelqConfig.from_env({"DATABASE_URL": "postgresql://u@h/db", "RELQ_DIALECT": "awsdsql"})
    assert config.connection_string == "postgresql://u@h/db"
    assert config.dialect == "awsdsql"


def test_from_env_libpq_variables():
    config = RelqConfig.from_env({"PGHOST": "db", "PGPORT": "6543", "PGDATABASE": "app", "PGUSER": "u"})
    assert (config.host, config.port, config.database, config.user) == ("db", 6543, "app", "u")


def test_from_env_errors():
    with pytest.raises(RelqEnvironmentError):
        RelqConfig.from_env({})
    with pytest.raises(RelqEnvironmentError) as excinfo:
        RelqConfig.from_env({"PGDATABASE": "app", "PGPORT": "abc"})
    assert excinfo.value.environment == "PGPORT"


def test_relations_graph_is_derived_from_schema():
    users = define_table("users", {"id": integer().primary_key()})
    posts = define_table("posts", {"id": integer().primary_key(), "user_id": integer().references("users")})
    config = RelqConfig.builder().host("h").schema({"users": users, "posts": posts}).build()
    assert config.relations_graph().resolve("posts", "users").from_column == "user_id"

    explicit = RelationsGraph().add("a", "b_id", "b")
    config = RelqConfig.builder().host("h").relations(explicit).build()
    assert config.relations_graph() is explicit


def test_configure_logging_levels():
    assert configure_logging("debug").level == logging.DEBUG
    assert configure_logging("silent").level > logging.CRITICAL
    with pytest.raises(ValueError):
        configure_logging("loud")
    configure_logging("warn")
