"""Unit tests for relq.schema.converters.tables_from_sqlalchemy."""

from __future__ import annotations

import pytest

sqlalchemy = pytest.importorskip("sqlalchemy")

from sqlalchemy import (  # noqa: E402
    Column,
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine  # noqa: E402

from relq.schema import RelationsGraph  # noqa: E402
from relq.schema.converters import tables_from_sqlalchemy  # noqa: E402

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _metadata() -> MetaData:
    """users <- posts, declared in Python."""
    metadata = MetaData()
    Table(
        "users",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("email", String(255), nullable=False, unique=True),
        Column("created", DateTime, server_default=text("CURRENT_TIMESTAMP")),
    )
    Table(
        "posts",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("user_id", Integer, ForeignKey("users.id", ondelete="cascade")),
        Column("title", Text),
        Index("ix_posts_title", "title"),
    )
    return metadata


def _make_engine() -> Engine:
    """Return an in-memory SQLite engine with companies <- departments."""
    engine = create_engine("sqlite:///:memory:")
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TABLE companies (
                    company_id INTEGER PRIMARY KEY,
                    name       TEXT    NOT NULL
                )
                """
            )
        )
        conn.execute(
            text(
                """
                CREATE TABLE departments (
                    department_id INTEGER PRIMARY KEY,
                    company_id    INTEGER NOT NULL,
                    name          TEXT    NOT NULL,
                    FOREIGN KEY (company_id) REFERENCES companies(company_id)
                )
                """
            )
        )
    return engine


# ---------------------------------------------------------------------------
# MetaData input
# ---------------------------------------------------------------------------


def test_tables_follow_dependency_order():
    tables = tables_from_sqlalchemy(_metadata())
    assert list(tables) == ["users", "posts"]


def test_column_modifiers_are_converted():
    users = tables_from_sqlalchemy(_metadata())["users"]
    assert users.columns["id"].is_primary_key
    email = users.columns["email"]
    assert email.sql_type == "VARCHAR(255)"
    assert email.is_nullable is False
    assert email.is_unique
    assert users.columns["created"].default_value.sql == "CURRENT_TIMESTAMP"


def test_foreign_keys_and_indexes():
    posts = tables_from_sqlalchemy(_metadata())["posts"]
    reference = posts.columns["user_id"].reference
    assert (reference.table, reference.column, reference.on_delete) == ("users", "id", "CASCADE")
    assert [(i.name, i.columns) for i in posts.indexes] == [("ix_posts_title", ["title"])]


def test_converted_tables_feed_the_relations_graph():
    graph = RelationsGraph.from_tables(tables_from_sqlalchemy(_metadata()))
    resolved = graph.resolve("users", "posts")
    assert (resolved.from_column, resolved.to_column, resolved.direction) == ("id", "user_id", "reverse")


def test_composite_keys_become_table_constraints():
    metadata = MetaData()
    Table(
        "a",
        metadata,
        Column("x", Integer, primary_key=True),
        Column("y", Integer, primary_key=True),
    )
    Table(
        "b",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("ax", Integer),
        Column("ay", Integer),
        ForeignKeyConstraint(["ax", "ay"], ["a.x", "a.y"], name="fk_b_a"),
    )
    tables = tables_from_sqlalchemy(metadata)
    assert tables["a"].primary_key == ["x", "y"]
    assert not tables["a"].columns["x"].is_primary_key
    fk = tables["b"].foreign_keys[0]
    assert (fk.columns, fk.ref_table, fk.ref_columns, fk.name) == (["ax", "ay"], "a", ["x", "y"], "fk_b_a")
    assert tables["b"].columns["ax"].reference is None


# ---------------------------------------------------------------------------
# Engine reflection
# ---------------------------------------------------------------------------


def test_reflection_from_engine():
    tables = tables_from_sqlalchemy(_make_engine(), dialect="sqlite")
    departments = tables["departments"]
    assert departments.dialect == "sqlite"
    assert departments.columns["company_id"].is_nullable is False
    assert departments.columns["company_id"].reference.table == "companies"
    assert departments.columns["company_id"].reference.column == "company_id"


def test_reflection_allowlist():
    tables = tables_from_sqlalchemy(_make_engine(), include_tables=["companies"])
    assert list(tables) == ["companies"]
    assert tables["companies"].to_sql("sqlite") == (
        'CREATE TABLE "companies" ("company_id" INTEGER PRIMARY KEY, "name" TEXT NOT NULL)'
    )
