"""Column-slot SQL fragments produced by the mutation DSLs.

A :class:`ColumnFragment` is SQL with one unresolved hole: the target
column.  The UPDATE renderer fills the hole with the quoted, resolved
column name via :meth:`ColumnFragment.render`.  ``str(fragment)`` fills it
with :data:`COLUMN_PLACEHOLDER` for callers that post-process text
themselves; the UPDATE renderer replaces that token too.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

#: Token standing in for the target column in unbound SQL text.
COLUMN_PLACEHOLDER = "__COLUMN__"


@dataclass(frozen=True)
class ColumnFragment:
    """SQL expression parameterised by the quoted target column."""

    build: Callable[[str], str]

    def render(self, column_sql: str) -> str:
        """Return the SQL with *column_sql* (already quoted) in the slot."""
        return self.build(column_sql)

    def __str__(self) -> str:
        return self.build(COLUMN_PLACEHOLDER)


def constant(sql: str) -> ColumnFragment:
    """A fragment that ignores the target column."""
    return ColumnFragment(lambda _col: sql)


def render_assignment(value: object, column_sql: str) -> str:
    """Fill a fragment or a placeholder-bearing string with *column_sql*."""
    if isinstance(value, ColumnFragment):
        return value.render(column_sql)
    return str(value).replace(COLUMN_PLACEHOLDER, column_sql)
