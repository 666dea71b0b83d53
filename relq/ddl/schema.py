"""CREATE SCHEMA and DROP SCHEMA builders."""
from __future__ import annotations

from relq.pg_format import ident
from relq.query.base import Statement


class CreateSchemaBuilder(Statement):
    def __init__(self, name: str) -> None:
        self.name = name
        self._if_not_exists = False
        self._authorization: str | None = None

    def if_not_exists(self) -> CreateSchemaBuilder:
        self._if_not_exists = True
        return self

    def authorization(self, role: str) -> CreateSchemaBuilder:
        self._authorization = role
        return self

    def to_string(self) -> str:
        sql = "CREATE SCHEMA"
        if self._if_not_exists:
            sql += " IF NOT EXISTS"
        sql += f" {ident(self.name)}"
        if self._authorization:
            sql += f" AUTHORIZATION {ident(self._authorization)}"
        return sql


class DropSchemaBuilder(Statement):
    def __init__(self, *names: str) -> None:
        self.names = list(names)
        self._if_exists = False
        self._cascade = False

    def if_exists(self) -> DropSchemaBuilder:
        self._if_exists = True
        return self

    def cascade(self) -> DropSchemaBuilder:
        self._cascade = True
        return self

    def restrict(self) -> DropSchemaBuilder:
        self._cascade = False
        return self

    def to_string(self) -> str:
        if not self.names:
            raise self._missing("name", "Pass at least one schema name.")
        sql = "DROP SCHEMA"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.names)}"
        if self._cascade:
            sql += " CASCADE"
        return sql
