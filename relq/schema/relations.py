"""Foreign-key relations between declared tables.

Edges always point from the table holding the foreign-key column to the
table it references.  :meth:`RelationsGraph.resolve` answers "how are
``a`` and ``b`` joined?" regardless of which side declared the key.
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from relq.errors import ForeignKeyResolutionError

if TYPE_CHECKING:
    from relq.schema.table import TableDefinition


@dataclass(frozen=True)
class RelationEdge:
    from_table: str
    from_column: str
    to_table: str
    to_column: str = "id"

    def __str__(self) -> str:
        return f"{self.from_table}.{self.from_column} -> {self.to_table}.{self.to_column}"


@dataclass(frozen=True)
class ResolvedForeignKey:
    """Join columns between two tables, relative to the order they were asked in.

    ``from_column`` belongs to the first table and ``to_column`` to the
    second.  ``direction`` is ``forward`` when the first table holds the
    foreign key and ``reverse`` when the second one does.
    """

    from_column: str
    to_column: str
    direction: Literal["forward", "reverse"]
    edge: RelationEdge


class RelationsGraph:
    """Adjacency lists of foreign-key edges keyed by table key."""

    def __init__(self, edges: list[RelationEdge] | None = None) -> None:
        self._forward: dict[str, list[RelationEdge]] = {}
        self._reverse: dict[str, list[RelationEdge]] = {}
        for edge in edges or []:
            self._add_edge(edge)

    def _add_edge(self, edge: RelationEdge) -> None:
        if edge in self._forward.get(edge.from_table, []):
            return
        self._forward.setdefault(edge.from_table, []).append(edge)
        self._reverse.setdefault(edge.to_table, []).append(edge)

    def add(self, from_table: str, from_column: str, to_table: str, to_column: str = "id") -> RelationsGraph:
        """Declare that ``from_table.from_column`` references ``to_table.to_column``."""
        self._add_edge(RelationEdge(from_table, from_column, to_table, to_column))
        return self

    def edges_for(self, key: str) -> list[RelationEdge]:
        """Every edge touching *key*, outgoing first."""
        return list(self._forward.get(key, [])) + list(self._reverse.get(key, []))

    def resolve(self, from_key: str, to_key: str) -> ResolvedForeignKey | None:
        for edge in self._forward.get(from_key, []):
            if edge.to_table == to_key:
                return ResolvedForeignKey(edge.from_column, edge.to_column, "forward", edge)
        for edge in self._forward.get(to_key, []):
            if edge.to_table == from_key:
                return ResolvedForeignKey(edge.to_column, edge.from_column, "reverse", edge)
        return None

    def resolve_or_raise(self, from_key: str, to_key: str) -> ResolvedForeignKey:
        """Like :meth:`resolve` but raises :class:`ForeignKeyResolutionError`."""
        resolved = self.resolve(from_key, to_key)
        if resolved is None:
            raise ForeignKeyResolutionError(from_key, to_key, [str(e) for e in self.edges_for(from_key)])
        return resolved

    def __iter__(self) -> Iterator[RelationEdge]:
        for edges in self._forward.values():
            yield from edges

    def __len__(self) -> int:
        return sum(len(edges) for edges in self._forward.values())

    @classmethod
    def from_tables(cls, tables: Mapping[str, TableDefinition]) -> RelationsGraph:
        """Collect edges from column ``references`` and single-column table foreign keys.

        Edge columns use programmatic column keys; referenced tables are
        matched by key first, then by SQL table name.
        """
        by_name = {t.name: key for key, t in tables.items()}

        def table_key(name: str) -> str:
            return name if name in tables else by_name.get(name, name)

        def column_key(table: str, column: str) -> str:
            target = tables.get(table)
            if target is None:
                return column
            return target.key_for(column) or column

        graph = cls()
        for key, table in tables.items():
            for column_name, column in table.columns.items():
                if column.reference is None:
                    continue
                target = table_key(column.reference.table)
                graph.add(key, column_name, target, column_key(target, column.reference.column))
            for fk in table.foreign_keys:
                if len(fk.columns) != 1:
                    continue
                target = table_key(fk.ref_table)
                graph.add(
                    key,
                    table.key_for(fk.columns[0]) or fk.columns[0],
                    target,
                    column_key(target, fk.ref_columns[0]),
                )
        return graph
