"""Unit tests for DeleteBuilder and CountBuilder."""
from __future__ import annotations

import pytest

from relq.errors import RelqBuilderError
from relq.query import CountBuilder, DeleteBuilder


def test_delete_with_where_and_returning():
    sql = DeleteBuilder("users").where(lambda q: q.equal("id", 1)).returning(["id", "email"]).to_string()
    assert sql == 'DELETE FROM "users" WHERE "id" = 1 RETURNING "id", "email"'


def test_delete_without_where():
    assert DeleteBuilder("users").to_string() == 'DELETE FROM "users"'


def test_delete_using():
    sql = DeleteBuilder("orders").using("users").where_raw('"orders"."user_id" = "users"."id"').to_string()
    assert sql == 'DELETE FROM "orders" USING "users" WHERE "orders"."user_id" = "users"."id"'


def test_returning_none_clears():
    builder = DeleteBuilder("users").returning("id").returning(None)
    assert not builder.has_returning
    assert builder.to_string() == 'DELETE FROM "users"'


def test_count_groups_with_filter_and_distinct():
    sql = (
        CountBuilder("users")
        .group("active", lambda q: q.equal("status", "active"))
        .group("total", lambda q: q, distinct="email")
        .to_string()
    )
    assert sql == (
        'SELECT COUNT(*) FILTER (WHERE "status" = \'active\') AS "active", '
        'COUNT(DISTINCT "email") AS "total" FROM "users"'
    )


def test_count_default_projection():
    assert CountBuilder("users").to_string() == 'SELECT COUNT(*) AS count FROM "users"'


def test_count_sum_with_where():
    sql = CountBuilder("orders").group("revenue", sum="amount").where(lambda q: q.is_null("refunded_at")).to_string()
    assert sql == 'SELECT SUM("amount") AS "revenue" FROM "orders" WHERE "refunded_at" IS NULL'


def test_count_rejects_several_aggregates():
    with pytest.raises(RelqBuilderError):
        CountBuilder("orders").group("x", sum="a", max="b")
