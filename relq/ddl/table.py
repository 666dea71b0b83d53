"""CREATE / ALTER / DROP TABLE builders and table-level constraints.

``CreateTableBuilder`` output order::

    CREATE [TEMPORARY] [UNLOGGED] TABLE [IF NOT EXISTS] name
        (columns..., constraints...)
        [INHERITS (...)] [PARTITION BY ...] [WITH (...)] [TABLESPACE ...]

Indexes attached with :meth:`CreateTableBuilder.add_index` are rendered
separately by :meth:`CreateTableBuilder.to_full_sql`.
"""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from relq.ddl.columns import ColumnDefinition, ReferentialAction, default_sql, render_column, with_options_sql
from relq.ddl.index import CreateIndexBuilder
from relq.ddl.partition import PartitionBuilder, PartitionStrategy
from relq.pg_format import ident
from relq.query.base import Statement

ConstraintType = Literal["PRIMARY KEY", "FOREIGN KEY", "UNIQUE", "CHECK", "EXCLUSION"]


@dataclass
class TableConstraint:
    type: ConstraintType
    name: str | None = None
    columns: list[str] = field(default_factory=list)
    definition: str | None = None
    ref_table: str | None = None
    ref_columns: list[str] = field(default_factory=list)
    on_delete: ReferentialAction | None = None
    on_update: ReferentialAction | None = None
    deferrable: bool = False
    initially: Literal["DEFERRED", "IMMEDIATE"] | None = None
    using: str = "GIST"

    def to_sql(self) -> str:
        sql = f"CONSTRAINT {ident(self.name)} " if self.name else ""
        if self.type in ("PRIMARY KEY", "UNIQUE"):
            return sql + f"{self.type} ({ident(self.columns)})"
        if self.type == "CHECK":
            return sql + f"CHECK ({self.definition})"
        if self.type == "EXCLUSION":
            return sql + f"EXCLUDE USING {self.using} ({self.definition})"
        sql += (
            f"FOREIGN KEY ({ident(self.columns)}) "
            f"REFERENCES {ident(self.ref_table)} ({ident(self.ref_columns)})"
        )
        if self.on_delete:
            sql += f" ON DELETE {self.on_delete}"
        if self.on_update:
            sql += f" ON UPDATE {self.on_update}"
        if self.deferrable:
            sql += " DEFERRABLE"
            if self.initially:
                sql += f" INITIALLY {self.initially}"
        return sql


class ConstraintBuilder:
    """Ordered table-level constraints."""

    def __init__(self) -> None:
        self.constraints: list[TableConstraint] = []

    def add_primary_key(self, columns: list[str], name: str | None = None) -> ConstraintBuilder:
        self.constraints.append(TableConstraint("PRIMARY KEY", name, list(columns)))
        return self

    def add_foreign_key(
        self,
        columns: list[str],
        ref_table: str,
        ref_columns: list[str],
        *,
        name: str | None = None,
        on_delete: ReferentialAction | None = None,
        on_update: ReferentialAction | None = None,
        deferrable: bool = False,
        initially: Literal["DEFERRED", "IMMEDIATE"] | None = None,
    ) -> ConstraintBuilder:
        self.constraints.append(
            TableConstraint(
                "FOREIGN KEY",
                name,
                list(columns),
                ref_table=ref_table,
                ref_columns=list(ref_columns),
                on_delete=on_delete,
                on_update=on_update,
                deferrable=deferrable,
                initially=initially,
            )
        )
        return self

    def add_unique(self, columns: list[str], name: str | None = None) -> ConstraintBuilder:
        self.constraints.append(TableConstraint("UNIQUE", name, list(columns)))
        return self

    def add_check(self, condition: str, name: str | None = None) -> ConstraintBuilder:
        self.constraints.append(TableConstraint("CHECK", name, definition=condition))
        return self

    def add_exclusion(self, constraint: str, using: str = "GIST", name: str | None = None) -> ConstraintBuilder:
        self.constraints.append(TableConstraint("EXCLUSION", name, definition=constraint, using=using))
        return self

    def to_sql_list(self) -> list[str]:
        return [c.to_sql() for c in self.constraints]


class CreateTableBuilder(Statement):
    """Fluent CREATE TABLE builder.

    Columns accept a :class:`~relq.ddl.columns.ColumnDefinition`, a dict of
    its fields, or raw SQL text for the part after the column name.
    """

    def __init__(self, table: str, schema: str | None = None) -> None:
        self.table = table
        self.schema = schema
        self._columns: dict[str, ColumnDefinition | str] = {}
        self.constraints = ConstraintBuilder()
        self._partition: PartitionBuilder | None = None
        self._indexes: list[CreateIndexBuilder] = []
        self._inherits: list[str] = []
        self._with: dict[str, Any] = {}
        self._tablespace: str | None = None
        self._if_not_exists = False
        self._temporary = False
        self._unlogged = False

    @staticmethod
    def _coerce(definition: ColumnDefinition | dict[str, Any] | str) -> ColumnDefinition | str:
        if isinstance(definition, dict):
            return ColumnDefinition(**definition)
        return definition

    def set_columns(self, columns: dict[str, ColumnDefinition | dict[str, Any] | str]) -> CreateTableBuilder:
        for name, definition in columns.items():
            self._columns[name] = self._coerce(definition)
        return self

    def add_column(self, name: str, definition: ColumnDefinition | dict[str, Any] | str) -> CreateTableBuilder:
        self._columns[name] = self._coerce(definition)
        return self

    def add_primary_key(self, columns: list[str], name: str | None = None) -> CreateTableBuilder:
        self.constraints.add_primary_key(columns, name)
        return self

    def add_foreign_key(self, columns: list[str], ref_table: str, ref_columns: list[str], **options: Any) -> CreateTableBuilder:
        self.constraints.add_foreign_key(columns, ref_table, ref_columns, **options)
        return self

    def add_unique(self, columns: list[str], name: str | None = None) -> CreateTableBuilder:
        self.constraints.add_unique(columns, name)
        return self

    def add_check(self, condition: str, name: str | None = None) -> CreateTableBuilder:
        self.constraints.add_check(condition, name)
        return self

    def add_exclusion(self, constraint: str, using: str = "GIST", name: str | None = None) -> CreateTableBuilder:
        self.constraints.add_exclusion(constraint, using, name)
        return self

    def add_index(self, name: str, callback: Callable[[CreateIndexBuilder], Any]) -> CreateTableBuilder:
        index = CreateIndexBuilder(name, self.table)
        callback(index)
        self._indexes.append(index)
        return self

    def partition_by(self, strategy: PartitionStrategy, columns: str | list[str]) -> CreateTableBuilder:
        cols = [columns] if isinstance(columns, str) else list(columns)
        self._partition = PartitionBuilder()
        if strategy == "RANGE":
            self._partition.range(*cols)
        elif strategy == "LIST":
            self._partition.list(cols[0])
        else:
            self._partition.hash(cols[0])
        return self

    def inherits(self, *parents: str) -> CreateTableBuilder:
        self._inherits.extend(parents)
        return self

    def with_(self, options: dict[str, Any]) -> CreateTableBuilder:
        self._with.update(options)
        return self

    def tablespace(self, name: str) -> CreateTableBuilder:
        self._tablespace = name
        return self

    def if_not_exists(self) -> CreateTableBuilder:
        self._if_not_exists = True
        return self

    def temporary(self) -> CreateTableBuilder:
        self._temporary = True
        return self

    def unlogged(self) -> CreateTableBuilder:
        self._unlogged = True
        return self

    def fillfactor(self, percent: int) -> CreateTableBuilder:
        self._with["fillfactor"] = percent
        return self

    def parallel_workers(self, count: int) -> CreateTableBuilder:
        self._with["parallel_workers"] = count
        return self

    def autovacuum(
        self,
        enabled: bool,
        *,
        vacuum_threshold: int | None = None,
        analyze_threshold: int | None = None,
        vacuum_scale_factor: float | None = None,
        analyze_scale_factor: float | None = None,
    ) -> CreateTableBuilder:
        self._with["autovacuum_enabled"] = enabled
        extra = {
            "autovacuum_vacuum_threshold": vacuum_threshold,
            "autovacuum_analyze_threshold": analyze_threshold,
            "autovacuum_vacuum_scale_factor": vacuum_scale_factor,
            "autovacuum_analyze_scale_factor": analyze_scale_factor,
        }
        self._with.update({k: v for k, v in extra.items() if v is not None})
        return self

    def to_string(self) -> str:
        if not self._columns:
            raise self._missing(
                "columns",
                "Use set_columns() or add_column().",
                message="Table must have at least one column",
            )
        sql = "CREATE"
        if self._temporary:
            sql += " TEMPORARY"
        if self._unlogged:
            sql += " UNLOGGED"
        sql += " TABLE"
        if self._if_not_exists:
            sql += " IF NOT EXISTS"
        body = [render_column(n, d) for n, d in self._columns.items()]
        body.extend(self.constraints.to_sql_list())
        name = f"{ident(self.schema)}.{ident(self.table)}" if self.schema else ident(self.table)
        sql += f" {name} ({', '.join(body)})"
        if self._inherits:
            sql += f" INHERITS ({ident(self._inherits)})"
        if self._partition:
            sql += self._partition.to_sql()
        if self._with:
            sql += f" WITH ({with_options_sql(self._with)})"
        if self._tablespace:
            sql += f" TABLESPACE {ident(self._tablespace)}"
        return sql

    def index_sql(self) -> list[str]:
        return [index.to_string() for index in self._indexes]

    def to_full_sql(self) -> dict[str, Any]:
        """``{"table": CREATE TABLE, "indexes": [CREATE INDEX, ...]}``."""
        return {"table": self.to_string(), "indexes": self.index_sql()}


class AlterTableBuilder(Statement):
    """Ordered list of ALTER TABLE actions, rendered comma-separated."""

    def __init__(self, table: str) -> None:
        self.table = table
        self._actions: list[str] = []

    def add_column(
        self,
        name: str,
        definition: ColumnDefinition | dict[str, Any] | str,
        if_not_exists: bool = False,
    ) -> AlterTableBuilder:
        if isinstance(definition, dict):
            definition = ColumnDefinition(**definition)
        prefix = "ADD COLUMN IF NOT EXISTS " if if_not_exists else "ADD COLUMN "
        self._actions.append(prefix + render_column(name, definition))
        return self

    def drop_column(self, name: str, if_exists: bool = False, cascade: bool = False) -> AlterTableBuilder:
        action = "DROP COLUMN " + ("IF EXISTS " if if_exists else "") + ident(name)
        self._actions.append(action + (" CASCADE" if cascade else ""))
        return self

    def rename_column(self, old: str, new: str) -> AlterTableBuilder:
        self._actions.append(f"RENAME COLUMN {ident(old)} TO {ident(new)}")
        return self

    def alter_column_type(self, name: str, new_type: str, using: str | None = None) -> AlterTableBuilder:
        action = f"ALTER COLUMN {ident(name)} TYPE {new_type}"
        if using:
            action += f" USING {using}"
        self._actions.append(action)
        return self

    def set_column_default(self, name: str, value: Any) -> AlterTableBuilder:
        self._actions.append(f"ALTER COLUMN {ident(name)} SET DEFAULT {default_sql(value)}")
        return self

    def drop_column_default(self, name: str) -> AlterTableBuilder:
        self._actions.append(f"ALTER COLUMN {ident(name)} DROP DEFAULT")
        return self

    def set_column_not_null(self, name: str) -> AlterTableBuilder:
        self._actions.append(f"ALTER COLUMN {ident(name)} SET NOT NULL")
        return self

    def drop_column_not_null(self, name: str) -> AlterTableBuilder:
        self._actions.append(f"ALTER COLUMN {ident(name)} DROP NOT NULL")
        return self

    def add_constraint(self, name: str, constraint: str) -> AlterTableBuilder:
        self._actions.append(f"ADD CONSTRAINT {ident(name)} {constraint}")
        return self

    def drop_constraint(self, name: str, if_exists: bool = False, cascade: bool = False) -> AlterTableBuilder:
        action = "DROP CONSTRAINT " + ("IF EXISTS " if if_exists else "") + ident(name)
        self._actions.append(action + (" CASCADE" if cascade else ""))
        return self

    def rename_to(self, new_name: str) -> AlterTableBuilder:
        self._actions.append(f"RENAME TO {ident(new_name)}")
        return self

    def set_schema(self, schema: str) -> AlterTableBuilder:
        self._actions.append(f"SET SCHEMA {ident(schema)}")
        return self

    def set_tablespace(self, tablespace: str) -> AlterTableBuilder:
        self._actions.append(f"SET TABLESPACE {ident(tablespace)}")
        return self

    def enable_trigger(self, trigger: str) -> AlterTableBuilder:
        self._actions.append(f"ENABLE TRIGGER {ident(trigger)}")
        return self

    def disable_trigger(self, trigger: str) -> AlterTableBuilder:
        self._actions.append(f"DISABLE TRIGGER {ident(trigger)}")
        return self

    def enable_all_triggers(self) -> AlterTableBuilder:
        self._actions.append("ENABLE TRIGGER ALL")
        return self

    def disable_all_triggers(self) -> AlterTableBuilder:
        self._actions.append("DISABLE TRIGGER ALL")
        return self

    def to_string(self) -> str:
        if not self._actions:
            raise self._missing(
                "actions",
                "Use add_column(), drop_column(), or other methods.",
                message="No ALTER TABLE actions specified",
            )
        return f"ALTER TABLE {ident(self.table)} {', '.join(self._actions)}"


class DropTableBuilder(Statement):
    def __init__(self, *tables: str) -> None:
        self.tables = list(tables)
        self._if_exists = False
        self._cascade = False

    def if_exists(self) -> DropTableBuilder:
        self._if_exists = True
        return self

    def cascade(self) -> DropTableBuilder:
        self._cascade = True
        return self

    def restrict(self) -> DropTableBuilder:
        self._cascade = False
        return self

    def to_string(self) -> str:
        if not self.tables:
            raise self._missing("table", "Pass at least one table name.")
        sql = "DROP TABLE"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.tables)}"
        if self._cascade:
            sql += " CASCADE"
        return sql
