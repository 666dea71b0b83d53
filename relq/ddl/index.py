"""CREATE INDEX, DROP INDEX and REINDEX builders.

The access method defaults to B-tree and is then left out of the rendered
statement; every other method renders ``USING METHOD``.  A shared operator
class given to :meth:`CreateIndexBuilder.gin` / :meth:`~CreateIndexBuilder.gist`
is placed after the single column, or after the column list when there are
several.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from relq.ddl.columns import with_options_sql
from relq.pg_format import ident
from relq.query.base import Statement

#: Index access method.
IndexMethod = Literal["BTREE", "HASH", "GIN", "GIST", "BRIN", "SPGIST", "BLOOM"]

#: REINDEX target kind.
ReindexTarget = Literal["INDEX", "TABLE", "SCHEMA", "DATABASE", "SYSTEM"]


@dataclass(frozen=True)
class IndexColumn:
    """One key column with its optional modifiers."""

    column: str
    collation: str | None = None
    opclass: str | None = None
    order: Literal["ASC", "DESC"] | None = None
    nulls: Literal["FIRST", "LAST"] | None = None


def _normalize(columns: list[str | IndexColumn]) -> list[IndexColumn]:
    return [IndexColumn(c) if isinstance(c, str) else c for c in columns]


class CreateIndexBuilder(Statement):
    """Fluent CREATE INDEX builder.

    Example::

        CreateIndexBuilder("idx_users_email", "users").btree(["email"]).unique()
        # CREATE UNIQUE INDEX "idx_users_email" ON "users" ("email")
    """

    def __init__(self, name: str, table: str) -> None:
        self.name = name
        self.table = table
        self.method: IndexMethod = "BTREE"
        self.columns: list[IndexColumn] = []
        self._expression: str | None = None
        self._where: str | None = None
        self.include_columns: list[str] = []
        self._with: dict[str, Any] = {}
        self._concurrently = False
        self._if_not_exists = False
        self._unique = False
        self._tablespace: str | None = None
        self._opclass: str | None = None

    def _set(self, method: IndexMethod, columns: list[str | IndexColumn]) -> CreateIndexBuilder:
        self.method = method
        self.columns = _normalize(columns)
        return self

    def on(self, *columns: str | IndexColumn) -> CreateIndexBuilder:
        """Key columns without changing the method."""
        self.columns = _normalize(list(columns))
        return self

    def btree(self, columns: list[str | IndexColumn]) -> CreateIndexBuilder:
        return self._set("BTREE", columns)

    def hash(self, column: str) -> CreateIndexBuilder:
        return self._set("HASH", [column])

    def gin(self, columns: list[str | IndexColumn], opclass: str | None = None) -> CreateIndexBuilder:
        self._opclass = opclass
        return self._set("GIN", columns)

    def gist(self, columns: list[str | IndexColumn], opclass: str | None = None) -> CreateIndexBuilder:
        self._opclass = opclass
        return self._set("GIST", columns)

    def brin(self, columns: list[str | IndexColumn], pages_per_range: int | None = None) -> CreateIndexBuilder:
        if pages_per_range:
            self._with["pages_per_range"] = pages_per_range
        return self._set("BRIN", columns)

    def spgist(self, columns: list[str | IndexColumn]) -> CreateIndexBuilder:
        return self._set("SPGIST", columns)

    def bloom(self, columns: list[str | IndexColumn], options: dict[str, Any] | None = None) -> CreateIndexBuilder:
        self._with.update(options or {})
        return self._set("BLOOM", columns)

    def using(self, method: IndexMethod) -> CreateIndexBuilder:
        self.method = method
        return self

    def expression(self, expr: str) -> CreateIndexBuilder:
        """Index an expression instead of columns (``expr`` is raw SQL)."""
        self._expression = expr
        return self

    def unique(self) -> CreateIndexBuilder:
        self._unique = True
        return self

    def where(self, condition: str) -> CreateIndexBuilder:
        self._where = condition
        return self

    partial = where

    def include(self, *columns: str) -> CreateIndexBuilder:
        self.include_columns.extend(columns)
        return self

    def with_(self, options: dict[str, Any]) -> CreateIndexBuilder:
        self._with.update(options)
        return self

    def fillfactor(self, percent: int) -> CreateIndexBuilder:
        self._with["fillfactor"] = percent
        return self

    def concurrently(self) -> CreateIndexBuilder:
        self._concurrently = True
        return self

    def if_not_exists(self) -> CreateIndexBuilder:
        self._if_not_exists = True
        return self

    def tablespace(self, name: str) -> CreateIndexBuilder:
        self._tablespace = name
        return self

    @property
    def is_concurrent(self) -> bool:
        return self._concurrently

    def opclasses(self) -> list[str]:
        """Operator classes named on the key columns or shared by all of them."""
        names = [c.opclass for c in self.columns if c.opclass]
        if self._opclass:
            names.append(self._opclass)
        return names

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _column_sql(self, col: IndexColumn) -> str:
        sql = ident(col.column)
        if col.collation:
            sql += f" COLLATE {ident(col.collation)}"
        if col.opclass:
            sql += f" {col.opclass}"
        elif self._opclass and len(self.columns) == 1:
            sql += f" {self._opclass}"
        if col.order:
            sql += f" {col.order}"
        if col.nulls:
            sql += f" NULLS {col.nulls}"
        return sql

    def _keys_sql(self) -> str:
        if self._expression:
            return f" ({self._expression})"
        keys = f" ({', '.join(self._column_sql(c) for c in self.columns)})"
        if self.method in ("GIN", "GIST") and self._opclass and len(self.columns) > 1:
            keys += f" {self._opclass}"
        return keys

    def _include_sql(self) -> str:
        return f" INCLUDE ({ident(self.include_columns)})"

    def to_string(self) -> str:
        if not self.columns and not self._expression:
            raise self._missing("columns", "Pass columns to btree()/gin()/... or call expression().")
        sql = "CREATE"
        if self._unique:
            sql += " UNIQUE"
        sql += " INDEX"
        if self._concurrently:
            sql += " CONCURRENTLY"
        if self._if_not_exists:
            sql += " IF NOT EXISTS"
        sql += f" {ident(self.name)} ON {ident(self.table)}"
        if self.method != "BTREE":
            sql += f" USING {self.method}"
        sql += self._keys_sql()
        if self.include_columns:
            sql += self._include_sql()
        if self._with:
            sql += f" WITH ({with_options_sql(self._with)})"
        if self._tablespace:
            sql += f" TABLESPACE {ident(self._tablespace)}"
        if self._where:
            sql += f" WHERE {self._where}"
        return sql


class DropIndexBuilder(Statement):
    def __init__(self, name: str) -> None:
        self.name = name
        self._if_exists = False
        self._cascade = False
        self._concurrently = False

    def if_exists(self) -> DropIndexBuilder:
        self._if_exists = True
        return self

    def cascade(self) -> DropIndexBuilder:
        self._cascade = True
        return self

    def restrict(self) -> DropIndexBuilder:
        self._cascade = False
        return self

    def concurrently(self) -> DropIndexBuilder:
        self._concurrently = True
        return self

    def to_string(self) -> str:
        sql = "DROP INDEX"
        if self._concurrently:
            sql += " CONCURRENTLY"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.name)}"
        if self._cascade:
            sql += " CASCADE"
        return sql


class ReindexBuilder(Statement):
    """``REINDEX [(VERBOSE, TABLESPACE t)] TARGET [CONCURRENTLY] name``."""

    def __init__(self, target: ReindexTarget, name: str | None = None) -> None:
        self.target = target
        self.name = name
        self._concurrently = False
        self._verbose = False
        self._tablespace: str | None = None

    def concurrently(self) -> ReindexBuilder:
        self._concurrently = True
        return self

    def verbose(self) -> ReindexBuilder:
        self._verbose = True
        return self

    def tablespace(self, name: str) -> ReindexBuilder:
        self._tablespace = name
        return self

    def to_string(self) -> str:
        if self.target != "SYSTEM" and not self.name:
            raise self._missing("name", f"REINDEX {self.target} needs the object name.")
        options = []
        if self._verbose:
            options.append("VERBOSE")
        if self._tablespace:
            options.append(f"TABLESPACE {ident(self._tablespace)}")
        sql = "REINDEX"
        if options:
            sql += f" ({', '.join(options)})"
        sql += f" {self.target}"
        if self._concurrently:
            sql += " CONCURRENTLY"
        if self.target != "SYSTEM":
            sql += f" {ident(self.name)}"
        return sql
