"""View builders: CREATE [MATERIALIZED] VIEW, DROP VIEW, REFRESH."""
from __future__ import annotations

from typing import Any, Literal

from relq.pg_format import ident
from relq.query.base import Statement


class CreateViewBuilder(Statement):
    """Fluent CREATE VIEW builder.

    ``OR REPLACE``, ``WITH (...)`` options and ``CHECK OPTION`` apply only to
    plain views; ``TABLESPACE`` and ``WITH [NO] DATA`` only to materialized
    ones.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._query: str | None = None
        self._materialized = False
        self._with_data = True
        self._columns: list[str] = []
        self._check_option: Literal["LOCAL", "CASCADED"] | None = None
        self._or_replace = False
        self._if_not_exists = False
        self._tablespace: str | None = None
        self._with: dict[str, Any] = {}

    def as_(self, query: Statement | str) -> CreateViewBuilder:
        self._query = query if isinstance(query, str) else query.to_string()
        return self

    def materialized(self) -> CreateViewBuilder:
        self._materialized = True
        return self

    def with_data(self) -> CreateViewBuilder:
        self._with_data = True
        return self

    def with_no_data(self) -> CreateViewBuilder:
        self._with_data = False
        return self

    def columns(self, *names: str) -> CreateViewBuilder:
        self._columns = list(names)
        return self

    def check_option(self, level: Literal["LOCAL", "CASCADED"] = "CASCADED") -> CreateViewBuilder:
        self._check_option = level
        return self

    def security_barrier(self) -> CreateViewBuilder:
        self._with["security_barrier"] = True
        return self

    def or_replace(self) -> CreateViewBuilder:
        self._or_replace = True
        return self

    def if_not_exists(self) -> CreateViewBuilder:
        self._if_not_exists = True
        return self

    def tablespace(self, name: str) -> CreateViewBuilder:
        self._tablespace = name
        return self

    def with_(self, options: dict[str, Any]) -> CreateViewBuilder:
        self._with.update(options)
        return self

    def to_string(self) -> str:
        if not self._query:
            raise self._missing("query", "Use .as_() to give the view query.", message="View query is required")
        materialized = self._materialized
        sql = "CREATE"
        if self._or_replace and not materialized:
            sql += " OR REPLACE"
        if materialized:
            sql += " MATERIALIZED"
        sql += " VIEW"
        if self._if_not_exists:
            sql += " IF NOT EXISTS"
        sql += f" {ident(self.name)}"
        if self._columns:
            sql += f" ({ident(self._columns)})"
        if self._with and not materialized:
            opts = ", ".join(
                f"{k} = {str(v).lower() if isinstance(v, bool) else v}" for k, v in self._with.items()
            )
            sql += f" WITH ({opts})"
        if self._tablespace and materialized:
            sql += f" TABLESPACE {ident(self._tablespace)}"
        sql += f" AS {self._query}"
        if materialized:
            sql += " WITH DATA" if self._with_data else " WITH NO DATA"
        elif self._check_option:
            sql += f" WITH {self._check_option} CHECK OPTION"
        return sql


class DropViewBuilder(Statement):
    def __init__(self, name: str, materialized: bool = False) -> None:
        self.name = name
        self.materialized = materialized
        self._if_exists = False
        self._cascade = False

    def if_exists(self) -> DropViewBuilder:
        self._if_exists = True
        return self

    def cascade(self) -> DropViewBuilder:
        self._cascade = True
        return self

    def restrict(self) -> DropViewBuilder:
        self._cascade = False
        return self

    def to_string(self) -> str:
        sql = "DROP MATERIALIZED VIEW" if self.materialized else "DROP VIEW"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.name)}"
        if self._cascade:
            sql += " CASCADE"
        return sql


class RefreshMaterializedViewBuilder(Statement):
    def __init__(self, name: str) -> None:
        self.name = name
        self._concurrently = False
        self._with_data = True

    def concurrently(self) -> RefreshMaterializedViewBuilder:
        self._concurrently = True
        return self

    def with_data(self) -> RefreshMaterializedViewBuilder:
        self._with_data = True
        return self

    def with_no_data(self) -> RefreshMaterializedViewBuilder:
        self._with_data = False
        return self

    def to_string(self) -> str:
        sql = "REFRESH MATERIALIZED VIEW"
        if self._concurrently:
            sql += " CONCURRENTLY"
        sql += f" {ident(self.name)}"
        if not self._with_data:
            sql += " WITH NO DATA"
        return sql
