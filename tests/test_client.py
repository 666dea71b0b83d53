"""Unit tests for the Relq client using a driver that records SQL."""
from __future__ import annotations

import pytest

from relq.client import QueryResult, Relq
from relq.config import RelqConfig
from relq.errors import (
    ForeignKeyResolutionError,
    RelqConfigError,
    RelqQueryError,
    RelqTransactionError,
)
from relq.schema import define_table, integer, text, varchar


class FakeDriverError(Exception):
    sqlstate = "23505"


class FakeDriver:
    """Records every statement and answers with canned results by SQL prefix."""

    def __init__(self, results: dict[str, QueryResult] | None = None, fail_on: str | None = None) -> None:
        self.statements: list[str] = []
        self.results = results or {}
        self.fail_on = fail_on
        self.closed = 0

    def execute(self, sql: str) -> QueryResult:
        self.statements.append(sql)
        if self.fail_on and sql.startswith(self.fail_on):
            raise FakeDriverError("duplicate key value violates unique constraint")
        for prefix, result in self.results.items():
            if sql.startswith(prefix):
                return result
        return QueryResult()

    def close(self) -> None:
        self.closed += 1


def _tables():
    users = define_table(
        "users",
        {
            "id": integer().primary_key(),
            "name": text(),
            "email_address": varchar(255, "email"),
        },
    )
    posts = define_table(
        "posts",
        {
            "id": integer().primary_key(),
            "user_id": integer().references("users"),
            "title": text(),
        },
    )
    return {"users": users, "posts": posts}


def _client(driver: FakeDriver, tables=None, **capabilities) -> Relq:
    builder = RelqConfig.builder().host("localhost").database("app").schema(tables or _tables())
    if capabilities:
        builder.capabilities(**capabilities)
    return Relq(builder.build(), driver)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def test_table_builders_use_declared_column_names():
    driver = FakeDriver()
    db = _client(driver)
    users = db.table("users")
    db.execute(users.select(["email_address"]).where(lambda q: q.equal("email_address", "a@example.com")))
    assert driver.statements == ['SELECT "email" FROM "users" WHERE "email" = \'a@example.com\'']


def test_undeclared_tables_pass_names_through():
    driver = FakeDriver()
    db = _client(driver)
    db.execute(db.table("audit").delete().where(lambda q: q.equal("userId", 1)))
    assert driver.statements == ['DELETE FROM "audit" WHERE "userId" = 1']


def test_execute_returns_driver_result():
    rows = QueryResult(rows=[{"count": 3}], row_count=1, fields=["count"])
    db = _client(FakeDriver({"SELECT": rows}))
    result = db.execute(db.table("users").count())
    assert result.first() == {"count": 3}
    assert QueryResult().first() is None


def test_driver_errors_are_retyped():
    db = _client(FakeDriver(fail_on="INSERT"))
    with pytest.raises(RelqQueryError) as excinfo:
        db.execute(db.table("users").insert({"name": "Ada"}))
    assert excinfo.value.code == "23505"
    assert excinfo.value.sql == 'INSERT INTO "users" ("name") VALUES (\'Ada\')'


def test_returning_is_rejected_without_capability():
    driver = FakeDriver()
    db = _client(driver, returning=False)
    with pytest.raises(RelqConfigError):
        db.execute(db.table("users").insert({"name": "Ada"}).returning("*"))
    assert driver.statements == []
    db.execute(db.table("users").insert({"name": "Ada"}))
    assert len(driver.statements) == 1


def test_closed_client_refuses_statements():
    driver = FakeDriver()
    with _client(driver) as db:
        pass
    db.close()
    assert driver.closed == 1
    with pytest.raises(RelqTransactionError):
        db.execute("SELECT 1")


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def test_transaction_commits_on_success():
    driver = FakeDriver()
    db = _client(driver)
    with db.transaction() as tx:
        tx.execute("SELECT 1")
    assert driver.statements == ["BEGIN", "SELECT 1", "COMMIT"]
    assert tx.state == "committed"


def test_transaction_rolls_back_on_error():
    driver = FakeDriver()
    db = _client(driver)
    with pytest.raises(ValueError):
        with db.transaction():
            raise ValueError("boom")
    assert driver.statements == ["BEGIN", "ROLLBACK"]


def test_savepoint_rolls_back_only_the_block():
    driver = FakeDriver()
    db = _client(driver)
    with db.transaction() as tx:
        with pytest.raises(ValueError):
            with tx.savepoint():
                tx.execute("DELETE FROM t")
                raise ValueError("undo")
        with tx.savepoint("keep"):
            tx.execute("SELECT 1")
    assert driver.statements == [
        "BEGIN",
        'SAVEPOINT "sp_1"',
        "DELETE FROM t",
        'ROLLBACK TO SAVEPOINT "sp_1"',
        'SAVEPOINT "keep"',
        "SELECT 1",
        'RELEASE SAVEPOINT "keep"',
        "COMMIT",
    ]
    assert tx.builder.savepoints == []


def test_nested_transaction_is_rejected():
    db = _client(FakeDriver())
    with db.transaction():
        with pytest.raises(RelqTransactionError) as excinfo:
            with db.transaction():
                pass
    assert excinfo.value.transaction_state == "active"


def test_finished_transaction_rejects_statements():
    db = _client(FakeDriver())
    with db.transaction() as tx:
        pass
    with pytest.raises(RelqTransactionError) as excinfo:
        tx.execute("SELECT 1")
    assert excinfo.value.operation == "execute"
    assert excinfo.value.transaction_state == "committed"


# ---------------------------------------------------------------------------
# create_with
# ---------------------------------------------------------------------------


def test_create_with_children_holding_the_key():
    driver = FakeDriver({'INSERT INTO "users"': QueryResult(rows=[{"id": 7, "name": "Ada", "email": None}])})
    db = _client(driver)
    created = db.create_with("users", {"name": "Ada"}, {"posts": [{"title": "a"}, {"title": "b"}]})
    assert driver.statements == [
        "BEGIN",
        'INSERT INTO "users" ("name") VALUES (\'Ada\') RETURNING *',
        'INSERT INTO "posts" ("title", "user_id") VALUES (\'a\', 7), (\'b\', 7)',
        "COMMIT",
    ]
    assert created == {"id": 7, "name": "Ada", "email_address": None}


def test_create_with_parent_holding_the_key():
    tables = {
        "profiles": define_table("profiles", {"id": integer().primary_key(), "bio": text()}),
        "users": define_table(
            "users",
            {"id": integer().primary_key(), "name": text(), "profile_id": integer().references("profiles")},
        ),
    }
    driver = FakeDriver(
        {
            'INSERT INTO "profiles"': QueryResult(rows=[{"id": 3, "bio": "hi"}]),
            'INSERT INTO "users"': QueryResult(rows=[{"id": 1, "name": "Ada", "profile_id": 3}]),
        }
    )
    db = _client(driver, tables)
    created = db.create_with("users", {"name": "Ada"}, {"profiles": {"bio": "hi"}})
    assert driver.statements == [
        "BEGIN",
        'INSERT INTO "profiles" ("bio") VALUES (\'hi\') RETURNING *',
        'INSERT INTO "users" ("name", "profile_id") VALUES (\'Ada\', 3) RETURNING *',
        "COMMIT",
    ]
    assert created["profile_id"] == 3


def test_create_with_unrelated_child_fails_before_any_statement():
    driver = FakeDriver()
    db = _client(driver)
    with pytest.raises(ForeignKeyResolutionError):
        db.create_with("users", {"name": "Ada"}, {"tags": [{"label": "x"}]})
    assert driver.statements == []


def test_create_with_rolls_back_when_a_child_fails():
    driver = FakeDriver(
        {'INSERT INTO "users"': QueryResult(rows=[{"id": 7, "name": "Ada", "email": None}])},
        fail_on='INSERT INTO "posts"',
    )
    db = _client(driver)
    with pytest.raises(RelqQueryError):
        db.create_with("users", {"name": "Ada"}, {"posts": {"title": "a"}})
    assert driver.statements[-1] == "ROLLBACK"


def test_create_with_requires_returning():
    db = _client(FakeDriver(), returning=False)
    with pytest.raises(RelqConfigError):
        db.create_with("users", {"name": "Ada"}, {})


# ---------------------------------------------------------------------------
# Listener
# ---------------------------------------------------------------------------


def test_listener_requires_listen_notify():
    config = RelqConfig.builder().host("localhost").dialect("cockroachdb").build()
    with pytest.raises(RelqConfigError):
        Relq(config, FakeDriver()).listener()


def test_listener_is_shared():
    pytest.importorskip("psycopg")
    db = _client(FakeDriver())
    assert db.listener() is db.listener()
