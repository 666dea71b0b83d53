"""Unit tests for transaction, savepoint and LISTEN/NOTIFY builders."""
from __future__ import annotations

from relq.session import (
    ListenBuilder,
    NotifyBuilder,
    SavepointBuilder,
    TransactionBuilder,
    UnlistenBuilder,
)


def test_begin_with_characteristics():
    tx = TransactionBuilder().isolation("SERIALIZABLE").read_only()
    assert tx.begin() == "BEGIN ISOLATION LEVEL SERIALIZABLE, READ ONLY"
    assert str(tx) == tx.begin()


def test_begin_defaults_and_deferrable():
    assert TransactionBuilder().begin() == "BEGIN"
    assert TransactionBuilder().not_deferrable().begin() == "BEGIN NOT DEFERRABLE"
    assert TransactionBuilder().commit() == "COMMIT"
    assert TransactionBuilder().rollback() == "ROLLBACK"


def test_savepoints_are_auto_named():
    tx = TransactionBuilder()
    first = tx.savepoint()
    second = tx.savepoint()
    named = tx.savepoint("before_import")
    assert [first.name, second.name, named.name] == ["sp_1", "sp_2", "before_import"]
    assert tx.savepoints == ["sp_1", "sp_2", "before_import"]


def test_release_forgets_later_savepoints():
    tx = TransactionBuilder()
    tx.savepoint()
    tx.savepoint()
    tx.savepoint()
    assert tx.release("sp_2") == 'RELEASE SAVEPOINT "sp_2"'
    assert tx.savepoints == ["sp_1"]


def test_savepoint_statements():
    sp = SavepointBuilder("sp_1")
    assert sp.create() == 'SAVEPOINT "sp_1"'
    assert sp.release() == 'RELEASE SAVEPOINT "sp_1"'
    assert sp.rollback() == 'ROLLBACK TO SAVEPOINT "sp_1"'


def test_listen_unlisten_notify():
    assert ListenBuilder("orders").to_string() == 'LISTEN "orders"'
    assert UnlistenBuilder().to_string() == "UNLISTEN *"
    assert UnlistenBuilder("orders").to_string() == 'UNLISTEN "orders"'
    assert NotifyBuilder("orders").to_string() == 'NOTIFY "orders"'


def test_notify_payloads_are_quoted():
    assert NotifyBuilder("orders", {"id": 1}).to_string() == 'NOTIFY "orders", \'{"id":1}\''
    assert NotifyBuilder("orders").with_payload("it's").to_string() == "NOTIFY \"orders\", 'it''s'"
