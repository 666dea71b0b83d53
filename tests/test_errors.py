"""Unit tests for the error hierarchy and driver error translation."""
from __future__ import annotations

import errno
import json
from types import SimpleNamespace

from relq.errors import (
    ForeignKeyResolutionError,
    FormatError,
    RelqBuilderError,
    RelqConnectionError,
    RelqError,
    RelqQueryError,
    RelqTimeoutError,
    is_relq_error,
    parse_postgres_error,
    wrap_error,
)


class FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None, detail=None, hint=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.diag = SimpleNamespace(message_detail=detail, message_hint=hint)


class OperationalError(Exception):
    pass


def test_to_dict_drops_empty_context():
    err = RelqQueryError("boom", sql="SELECT 1", code="42601")
    data = err.to_dict()
    assert data["name"] == "RelqQueryError"
    assert data["message"] == "boom"
    assert data["sql"] == "SELECT 1"
    assert "detail" not in data
    assert "cause" not in data
    assert json.loads(json.dumps(data)) == data
    assert err.to_error_response() == data


def test_cause_is_chained_and_serialised():
    cause = ValueError("bad")
    err = RelqError("wrapped", cause=cause)
    assert err.__cause__ is cause
    assert err.to_dict()["cause"] == "bad"


def test_inspect_lists_context_fields():
    text = RelqConnectionError("down", code="ECONNREFUSED", host="db", port=5432).inspect()
    assert text.splitlines()[0] == "RelqConnectionError: down"
    assert '"ECONNREFUSED"' in text
    assert "5432" in text


def test_builder_error_subclasses():
    fmt = FormatError("bad template")
    assert isinstance(fmt, RelqBuilderError)
    assert fmt.builder == "format"

    fk = ForeignKeyResolutionError("users", "tags", ["posts"])
    assert fk.missing == "users -> tags"
    assert "posts" in fk.hint


def test_unique_violation_becomes_query_error():
    exc = FakeDriverError("duplicate key", sqlstate="23505", detail="Key (email)=(a) exists.")
    err = parse_postgres_error(exc, sql="INSERT ...")
    assert isinstance(err, RelqQueryError)
    assert err.code == "23505"
    assert err.sql == "INSERT ..."
    assert err.detail == "Key (email)=(a) exists."
    assert err.cause is exc


def test_statement_timeout_becomes_timeout_error():
    err = parse_postgres_error(FakeDriverError("canceling statement", sqlstate="57014"))
    assert isinstance(err, RelqTimeoutError)
    assert err.operation == "query"


def test_connection_failures():
    refused = ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
    err = parse_postgres_error(refused, host="db", port=5432)
    assert isinstance(err, RelqConnectionError)
    assert err.code == "ECONNREFUSED"
    assert (err.host, err.port) == ("db", 5432)

    admin_shutdown = parse_postgres_error(FakeDriverError("terminating", sqlstate="57P01"))
    assert isinstance(admin_shutdown, RelqConnectionError)

    assert isinstance(parse_postgres_error(OperationalError("server closed")), RelqConnectionError)


def test_relq_errors_pass_through():
    original = RelqQueryError("already typed")
    assert parse_postgres_error(original) is original
    assert wrap_error(original) is original


def test_wrap_error_adds_context():
    err = wrap_error(KeyError("x"), "loading schema")
    assert err.message == "loading schema: 'x'"
    assert is_relq_error(err)
    assert not is_relq_error(KeyError("x"))
