"""Integration tests: render → execute against a real SQLite in-memory DB.

The builders emit standard double-quoted identifiers and single-quoted
literals, so the SQLite dialect can drive :class:`~relq.client.Relq`
through a thin ``sqlite3`` driver.
"""
from __future__ import annotations

import sqlite3

import pytest

from relq.client import QueryResult, Relq
from relq.config import RelqConfig
from relq.errors import RelqQueryError
from relq.schema import TableDefinition
from tests.fixtures import blog_tables

pytestmark = pytest.mark.skipif(
    sqlite3.sqlite_version_info < (3, 35), reason="RETURNING needs SQLite 3.35+"
)


class SqliteDriver:
    """:class:`~relq.client.Driver` over an autocommit ``sqlite3`` connection."""

    def __init__(self) -> None:
        self.conn = sqlite3.connect(":memory:", isolation_level=None)
        self.conn.execute("PRAGMA foreign_keys = ON")

    def execute(self, sql: str) -> QueryResult:
        cursor = self.conn.execute(sql)
        if cursor.description is None:
            return QueryResult(row_count=max(cursor.rowcount, 0))
        fields = [column[0] for column in cursor.description]
        rows = [dict(zip(fields, row)) for row in cursor.fetchall()]
        return QueryResult(rows=rows, row_count=len(rows), fields=fields)

    def close(self) -> None:
        self.conn.close()


@pytest.fixture()
def tables() -> dict[str, TableDefinition]:
    return blog_tables("sqlite")


@pytest.fixture()
def db(tables):
    config = RelqConfig.builder().host("localhost").database("blog").dialect("sqlite").schema(tables).build()
    client = Relq(config, SqliteDriver())
    for table in tables.values():
        client.execute(table.to_sql())
    yield client
    client.close()


def _titles(db: Relq) -> list[str]:
    result = db.execute(db.table("posts").select(["title"]).order_by("title"))
    return [row["title"] for row in result.rows]


def test_insert_select_round_trip(db):
    inserted = db.execute(
        db.table("users").insert({"name": "Ada", "email_address": "ada@example.com"}).returning("*")
    ).first()
    assert inserted["email"] == "ada@example.com"

    found = db.execute(
        db.table("users").select(["name"]).where(lambda q: q.equal("email_address", "ada@example.com"))
    )
    assert found.rows == [{"name": "Ada"}]


def test_create_with_links_children(db):
    user = db.create_with("users", {"name": "Grace"}, {"posts": [{"title": "b"}, {"title": "a"}]})
    assert user["name"] == "Grace"
    posts = db.execute(db.table("posts").select(["user_id"])).rows
    assert {row["user_id"] for row in posts} == {user["id"]}
    assert _titles(db) == ["a", "b"]


def test_transaction_rollback_discards_rows(db):
    with pytest.raises(RuntimeError):
        with db.transaction() as tx:
            tx.execute(db.table("users").insert({"name": "Temp"}))
            raise RuntimeError("abort")
    assert db.execute(db.table("users").count()).first() == {"count": 0}


def test_savepoint_keeps_outer_work(db):
    with db.transaction() as tx:
        tx.execute(db.table("users").insert({"name": "Kept"}))
        with pytest.raises(RelqQueryError):
            with tx.savepoint():
                tx.execute(db.table("users").insert({"name": "Dup", "email_address": "x@example.com"}))
                tx.execute(db.table("users").insert({"name": "Dup", "email_address": "x@example.com"}))
    names = db.execute(db.table("users").select(["name"])).rows
    assert names == [{"name": "Kept"}]


def test_update_and_delete(db):
    db.execute(db.table("users").insert_many([{"name": "A"}, {"name": "B"}]))
    db.execute(db.table("users").update({"name": "C"}).where(lambda q: q.equal("name", "A")))
    db.execute(db.table("users").delete().where(lambda q: q.equal("name", "B")))
    assert db.execute(db.table("users").select(["name"])).rows == [{"name": "C"}]


def test_cascade_delete(db):
    user = db.create_with("users", {"name": "Linus"}, {"posts": {"title": "kernel"}})
    db.execute(db.table("users").delete().where(lambda q: q.equal("id", user["id"])))
    assert _titles(db) == []
