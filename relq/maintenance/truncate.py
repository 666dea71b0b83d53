"""TRUNCATE builder."""
from __future__ import annotations

from relq.pg_format import ident
from relq.query.base import Statement


class TruncateBuilder(Statement):
    """``TRUNCATE TABLE [ONLY] t1, t2 [RESTART|CONTINUE IDENTITY] [CASCADE|RESTRICT]``.

    ``ONLY`` is emitted only when a single table is targeted.
    """

    def __init__(self, tables: str | list[str]) -> None:
        self.tables = [tables] if isinstance(tables, str) else list(tables)
        self._cascade: bool | None = None
        self._restart_identity: bool | None = None
        self._only = False

    def add_table(self, *tables: str) -> TruncateBuilder:
        self.tables.extend(tables)
        return self

    def cascade(self) -> TruncateBuilder:
        self._cascade = True
        return self

    def restrict(self) -> TruncateBuilder:
        self._cascade = False
        return self

    def restart_identity(self) -> TruncateBuilder:
        self._restart_identity = True
        return self

    def continue_identity(self) -> TruncateBuilder:
        self._restart_identity = False
        return self

    def only(self) -> TruncateBuilder:
        self._only = True
        return self

    def to_string(self) -> str:
        if not self.tables:
            raise self._missing("tables", "Pass at least one table name.")
        sql = "TRUNCATE TABLE"
        if self._only and len(self.tables) == 1:
            sql += " ONLY"
        sql += f" {ident(self.tables)}"
        if self._restart_identity is True:
            sql += " RESTART IDENTITY"
        elif self._restart_identity is False:
            sql += " CONTINUE IDENTITY"
        if self._cascade is True:
            sql += " CASCADE"
        elif self._cascade is False:
            sql += " RESTRICT"
        return sql
