"""Declarative partitioning: ``PARTITION BY`` and partition management."""
from __future__ import annotations

from typing import Any, Literal

from relq.ddl.columns import with_options_sql
from relq.pg_format import format_sql, ident
from relq.query.base import Statement

#: Partitioning strategy.
PartitionStrategy = Literal["RANGE", "LIST", "HASH"]


class PartitionBuilder:
    """Renders the ``PARTITION BY`` tail of CREATE TABLE."""

    def __init__(self) -> None:
        self.strategy: PartitionStrategy | None = None
        self.columns: list[str] = []

    def range(self, *columns: str) -> PartitionBuilder:
        self.strategy = "RANGE"
        self.columns = list(columns)
        return self

    def list(self, column: str) -> PartitionBuilder:
        self.strategy = "LIST"
        self.columns = [column]
        return self

    def hash(self, column: str) -> PartitionBuilder:
        self.strategy = "HASH"
        self.columns = [column]
        return self

    def to_sql(self) -> str:
        """`` PARTITION BY STRATEGY (cols)`` with a leading space, or ``""``."""
        if not self.strategy or not self.columns:
            return ""
        return f" PARTITION BY {self.strategy} ({ident(self.columns)})"


def for_values_in(*values: Any) -> str:
    return format_sql("IN %L", list(values))


def for_values_from_to(start: Any, end: Any) -> str:
    def bound(value: Any) -> str:
        if isinstance(value, str) and value.upper() in ("MINVALUE", "MAXVALUE"):
            return value.upper()
        return format_sql("%L", value)

    return f"FROM ({bound(start)}) TO ({bound(end)})"


def for_values_with(modulus: int, remainder: int) -> str:
    return f"WITH (MODULUS {int(modulus)}, REMAINDER {int(remainder)})"


class CreatePartitionBuilder(Statement):
    """``CREATE TABLE child PARTITION OF parent FOR VALUES ...``.

    The bound is raw text; :func:`for_values_in`, :func:`for_values_from_to`
    and :func:`for_values_with` build the three standard shapes.
    """

    def __init__(self, partition: str, parent: str) -> None:
        self.partition = partition
        self.parent = parent
        self._for_values: str | None = None
        self._default = False
        self._tablespace: str | None = None
        self._with: dict[str, Any] = {}

    def for_values(self, specification: str) -> CreatePartitionBuilder:
        self._for_values = specification
        return self

    def default(self) -> CreatePartitionBuilder:
        self._default = True
        return self

    def tablespace(self, name: str) -> CreatePartitionBuilder:
        self._tablespace = name
        return self

    def with_(self, options: dict[str, Any]) -> CreatePartitionBuilder:
        self._with.update(options)
        return self

    def to_string(self) -> str:
        sql = format_sql("CREATE TABLE %I PARTITION OF %I", self.partition, self.parent)
        if self._default:
            sql += " DEFAULT"
        elif self._for_values:
            sql += f" FOR VALUES {self._for_values}"
        else:
            raise self._missing(
                "for_values", "Call for_values(...) or default() to bound the partition."
            )
        if self._with:
            sql += f" WITH ({with_options_sql(self._with)})"
        if self._tablespace:
            sql += f" TABLESPACE {ident(self._tablespace)}"
        return sql


class AttachPartitionBuilder(Statement):
    def __init__(self, parent: str, partition: str) -> None:
        self.parent = parent
        self.partition = partition
        self._for_values: str | None = None
        self._default = False

    def for_values(self, specification: str) -> AttachPartitionBuilder:
        self._for_values = specification
        return self

    def default(self) -> AttachPartitionBuilder:
        self._default = True
        return self

    def to_string(self) -> str:
        sql = format_sql("ALTER TABLE %I ATTACH PARTITION %I", self.parent, self.partition)
        if self._default:
            sql += " DEFAULT"
        elif self._for_values:
            sql += f" FOR VALUES {self._for_values}"
        return sql


class DetachPartitionBuilder(Statement):
    def __init__(self, parent: str, partition: str) -> None:
        self.parent = parent
        self.partition = partition
        self._concurrently = False
        self._finalize = False

    def concurrently(self) -> DetachPartitionBuilder:
        self._concurrently = True
        return self

    def finalize(self) -> DetachPartitionBuilder:
        self._finalize = True
        return self

    def to_string(self) -> str:
        sql = format_sql("ALTER TABLE %I DETACH PARTITION %I", self.parent, self.partition)
        if self._concurrently:
            sql += " CONCURRENTLY"
        if self._finalize:
            sql += " FINALIZE"
        return sql
