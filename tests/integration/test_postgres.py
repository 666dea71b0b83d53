"""Integration tests: render → execute against a real PostgreSQL instance.

Uses RELQ_PG_DSN (for example ``postgresql://postgres@localhost/relq``).
Skips all tests if the variable is unset or the connection fails.
"""
from __future__ import annotations

import asyncio
import os

import pytest

pytest.importorskip("psycopg", reason="psycopg required for Postgres integration tests")

from relq.client import Relq  # noqa: E402
from relq.config import RelqConfig  # noqa: E402
from relq.ddl import DropTableBuilder  # noqa: E402
from relq.errors import RelqQueryError  # noqa: E402
from relq.session import NotifyBuilder  # noqa: E402
from tests.fixtures import blog_tables  # noqa: E402

pytestmark = pytest.mark.integration

PREFIX = "relq_it_"


def _config() -> RelqConfig:
    dsn = os.environ.get("RELQ_PG_DSN")
    if not dsn:
        pytest.skip("RELQ_PG_DSN not set")
    return RelqConfig.builder().connection_string(dsn).schema(blog_tables("postgres", PREFIX)).build()


@pytest.fixture(scope="module")
def db():
    """Module-scoped client with freshly created blog tables."""
    config = _config()
    client = Relq(config)
    drop = DropTableBuilder(f"{PREFIX}posts", f"{PREFIX}users").if_exists().cascade()
    try:
        client.execute(drop)
    except Exception as exc:
        pytest.skip(f"Cannot connect to Postgres: {exc}")
    for table in config.schema_tables.values():
        client.execute(table.to_sql())
    yield client
    client.execute(drop)
    client.close()


@pytest.fixture(autouse=True)
def _empty_tables(db):
    db.execute(db.table("users").delete())


def test_create_with_and_count(db):
    user = db.create_with("users", {"name": "Ada", "email_address": "ada@example.com"}, {"posts": [{"title": "x"}]})
    assert user["email_address"] == "ada@example.com"
    counts = db.execute(
        db.table("posts").count().group("mine", lambda q: q.equal("user_id", user["id"])).group("all", lambda q: q)
    ).first()
    assert counts == {"mine": 1, "all": 1}


def test_unique_violation_is_retyped(db):
    db.execute(db.table("users").insert({"name": "A", "email_address": "dup@example.com"}))
    with pytest.raises(RelqQueryError) as excinfo:
        db.execute(db.table("users").insert({"name": "B", "email_address": "dup@example.com"}))
    assert excinfo.value.code == "23505"


def test_upsert_updates_existing_row(db):
    users = db.table("users")
    db.execute(users.insert({"name": "A", "email_address": "u@example.com"}))
    row = db.execute(
        users.insert({"name": "B", "email_address": "u@example.com"})
        .on_conflict("email", lambda c: c.do_update({"name": lambda ex: ex.name}))
        .returning(["name"])
    ).first()
    assert row == {"name": "B"}


def test_rollback(db):
    with pytest.raises(RuntimeError):
        with db.transaction() as tx:
            tx.execute(db.table("users").insert({"name": "Temp"}))
            raise RuntimeError("abort")
    assert db.execute(db.table("users").count()).first() == {"count": 0}


def test_listen_notify_round_trip(db):
    async def scenario():
        listener = db.listener()
        stream = (await listener.subscribe(f"{PREFIX}events")).__aiter__()
        db.execute(NotifyBuilder(f"{PREFIX}events", {"id": 1}))
        payload = await asyncio.wait_for(stream.__anext__(), timeout=5)
        await listener.close()
        return payload

    assert asyncio.run(scenario()) == {"id": 1}
