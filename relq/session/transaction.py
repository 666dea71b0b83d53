"""Transaction and savepoint builders.

Usage::

    tx = TransactionBuilder().isolation("SERIALIZABLE").read_only()
    tx.begin()                   # BEGIN ISOLATION LEVEL SERIALIZABLE, READ ONLY
    sp = tx.savepoint()          # SavepointBuilder("sp_1")
    sp.create()                  # SAVEPOINT "sp_1"
    tx.commit()                  # COMMIT
"""
from __future__ import annotations

from typing import Literal

from relq.pg_format import ident
from relq.query.base import Statement

#: Transaction isolation levels accepted by ``BEGIN``.
IsolationLevel = Literal["SERIALIZABLE", "REPEATABLE READ", "READ COMMITTED", "READ UNCOMMITTED"]

#: Transaction access mode.
AccessMode = Literal["READ WRITE", "READ ONLY"]


class SavepointBuilder(Statement):
    """Renders ``SAVEPOINT``, ``RELEASE SAVEPOINT`` and ``ROLLBACK TO SAVEPOINT``."""

    def __init__(self, name: str) -> None:
        self.name = name

    def create(self) -> str:
        return f"SAVEPOINT {ident(self.name)}"

    def release(self) -> str:
        return f"RELEASE SAVEPOINT {ident(self.name)}"

    def rollback(self) -> str:
        return f"ROLLBACK TO SAVEPOINT {ident(self.name)}"

    def to_string(self) -> str:
        return self.create()


class TransactionBuilder(Statement):
    """BEGIN with transaction characteristics, COMMIT, ROLLBACK.

    The builder also hands out savepoint names.  ``savepoint()`` without a
    name generates ``sp_1``, ``sp_2``... and every name is remembered in
    :attr:`savepoints` until released.
    """

    def __init__(self) -> None:
        self._isolation: IsolationLevel | None = None
        self._mode: AccessMode | None = None
        self._deferrable: bool | None = None
        self._counter = 0
        self.savepoints: list[str] = []

    def isolation(self, level: IsolationLevel) -> TransactionBuilder:
        self._isolation = level
        return self

    def read_write(self) -> TransactionBuilder:
        self._mode = "READ WRITE"
        return self

    def read_only(self) -> TransactionBuilder:
        self._mode = "READ ONLY"
        return self

    def deferrable(self) -> TransactionBuilder:
        self._deferrable = True
        return self

    def not_deferrable(self) -> TransactionBuilder:
        self._deferrable = False
        return self

    def begin(self) -> str:
        options = []
        if self._isolation:
            options.append(f"ISOLATION LEVEL {self._isolation}")
        if self._mode:
            options.append(self._mode)
        if self._deferrable is not None:
            options.append("DEFERRABLE" if self._deferrable else "NOT DEFERRABLE")
        if options:
            return f"BEGIN {', '.join(options)}"
        return "BEGIN"

    def commit(self) -> str:
        return "COMMIT"

    def rollback(self) -> str:
        return "ROLLBACK"

    def savepoint(self, name: str | None = None) -> SavepointBuilder:
        """Register a savepoint and return its builder."""
        if name is None:
            self._counter += 1
            name = f"sp_{self._counter}"
        self.savepoints.append(name)
        return SavepointBuilder(name)

    def release(self, name: str) -> str:
        """Forget *name* (and any savepoint created after it) and render RELEASE."""
        if name in self.savepoints:
            del self.savepoints[self.savepoints.index(name):]
        return SavepointBuilder(name).release()

    def to_string(self) -> str:
        return self.begin()
