"""Common table expression (``WITH``) builder.

The builder renders only the ``WITH`` prefix; :meth:`CTEBuilder.to_string`
prepends it to a main query::

    CTEBuilder().with_("recent", SelectBuilder("users").limit(5)) \\
        .to_string('SELECT * FROM "recent"')
"""
from __future__ import annotations

from dataclasses import dataclass, field

from relq.errors import RelqBuilderError
from relq.pg_format import ident
from relq.query.base import Statement
from relq.query.select import SelectBuilder


@dataclass
class CTEEntry:
    name: str
    columns: list[str] = field(default_factory=list)
    materialized: bool | None = None


class CTEBuilder:
    """Ordered list of named sub-queries.

    ``query`` arguments may be SQL text or any builder; builders are rendered
    when the clause is rendered.
    """

    def __init__(self) -> None:
        self._entries: list[tuple[CTEEntry, Statement | str]] = []
        self._recursive = False

    def _add(
        self,
        name: str,
        query: Statement | str,
        columns: list[str] | None,
        materialized: bool | None,
    ) -> CTEBuilder:
        if not name:
            raise RelqBuilderError("A CTE requires a name.", builder="CTEBuilder", missing="name")
        self._entries.append((CTEEntry(name, list(columns or []), materialized), query))
        return self

    def with_(self, name: str, query: Statement | str, columns: list[str] | None = None) -> CTEBuilder:
        return self._add(name, query, columns, None)

    def with_recursive(
        self, name: str, query: Statement | str, columns: list[str] | None = None
    ) -> CTEBuilder:
        """Add an entry and mark the whole clause ``RECURSIVE``."""
        self._recursive = True
        return self._add(name, query, columns, None)

    def with_materialized(
        self, name: str, query: Statement | str, columns: list[str] | None = None
    ) -> CTEBuilder:
        return self._add(name, query, columns, True)

    def with_not_materialized(
        self, name: str, query: Statement | str, columns: list[str] | None = None
    ) -> CTEBuilder:
        return self._add(name, query, columns, False)

    def select(self, table: str, columns: list[str] | None = None) -> SelectBuilder:
        """Start a SELECT over one of the named sub-queries."""
        return SelectBuilder(table, columns)

    def has_entries(self) -> bool:
        return bool(self._entries)

    def _entry_sql(self, entry: CTEEntry, query: Statement | str) -> str:
        sql = ident(entry.name)
        if entry.columns:
            sql += f" ({ident(entry.columns)})"
        sql += " AS "
        if entry.materialized is True:
            sql += "MATERIALIZED "
        elif entry.materialized is False:
            sql += "NOT MATERIALIZED "
        body = query if isinstance(query, str) else query.to_string()
        return f"{sql}({body})"

    def clause(self) -> str:
        """Render the ``WITH`` prefix, or ``""`` with no entries."""
        if not self._entries:
            return ""
        prefix = "WITH RECURSIVE " if self._recursive else "WITH "
        return prefix + ", ".join(self._entry_sql(e, q) for e, q in self._entries)

    def to_string(self, main_query: Statement | str) -> str:
        main = main_query if isinstance(main_query, str) else main_query.to_string()
        clause = self.clause()
        return f"{clause} {main}" if clause else main

    def __str__(self) -> str:
        return self.clause()
