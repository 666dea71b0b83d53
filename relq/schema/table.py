"""Declarative table definitions.

Usage::

    from relq.schema import define_table, integer, text, varchar

    users = define_table(
        "users",
        {
            "id": integer().primary_key().autoincrement(),
            "name": text().not_null(),
            "email_address": varchar(255, "email").unique(),
        },
        dialect="sqlite",
    )
    users.to_sql()
    # CREATE TABLE "users" ("id" INTEGER PRIMARY KEY AUTOINCREMENT, "name" TEXT NOT NULL, ...)

Column keys are programmatic names; a descriptor's ``column_name`` gives
the SQL name when the two differ.  :meth:`TableDefinition.sql_name` is the
column resolver handed to query builders.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from relq.ddl.columns import ReferentialAction, default_sql
from relq.ddl.index import CreateIndexBuilder, IndexColumn, IndexMethod
from relq.ddl.partition import PartitionStrategy
from relq.ddl.table import CreateTableBuilder
from relq.errors import RelqBuilderError
from relq.expressions import SqlExpression
from relq.pg_format import ident, literal
from relq.query.values import ColumnTypeInfo
from relq.schema.ast import (
    ParsedCheckConstraint,
    ParsedColumn,
    ParsedForeignKey,
    ParsedForeignKeyTarget,
    ParsedGenerated,
    ParsedIndex,
    ParsedReference,
    ParsedTable,
    ParsedUniqueConstraint,
    parse_type,
)
from relq.schema.columns import ColumnDescriptor

#: Dialects a table definition can target.
Dialect = Literal["postgres", "cockroachdb", "awsdsql", "sqlite"]


# ---------------------------------------------------------------------------
# Table-level parts
# ---------------------------------------------------------------------------


class UniqueConstraint(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    columns: list[str]
    name: str | None = None


class CheckConstraint(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    expression: str
    name: str | None = None


class ForeignKeyDefinition(BaseModel):
    """Table-level ``FOREIGN KEY (cols) REFERENCES ref_table (ref_columns)``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    columns: list[str]
    ref_table: str
    ref_columns: list[str] = Field(default_factory=lambda: ["id"])
    on_delete: ReferentialAction | None = None
    on_update: ReferentialAction | None = None
    name: str | None = None
    deferrable: bool = False
    initially_deferred: bool = False


class IndexDefinition(BaseModel):
    """An index declared with the table; its default name is ``idx_{table}_{cols}``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    columns: list[str]
    name: str | None = None
    unique: bool = False
    using: IndexMethod | None = None
    where: str | None = None
    include: list[str] = Field(default_factory=list)
    order: Literal["ASC", "DESC"] | None = None
    nulls: Literal["FIRST", "LAST"] | None = None
    if_not_exists: bool = False
    tablespace: str | None = None
    with_options: dict[str, Any] = Field(default_factory=dict)

    def resolved_name(self, table: str) -> str:
        return self.name or f"idx_{table}_{'_'.join(self.columns)}"


class PartitionSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    strategy: PartitionStrategy
    columns: list[str]


def _invalid(table: str, message: str, missing: str | None = None, hint: str | None = None) -> RelqBuilderError:
    return RelqBuilderError(f"Table '{table}': {message}", builder="define_table", missing=missing, hint=hint)


# ---------------------------------------------------------------------------
# SQLite rendering helpers
# ---------------------------------------------------------------------------

_SQLITE_INTEGER = frozenset(
    {"INT", "INTEGER", "INT2", "INT4", "INT8", "SMALLINT", "BIGINT", "SERIAL", "SMALLSERIAL", "BIGSERIAL", "BOOL", "BOOLEAN"}
)
_SQLITE_REAL = frozenset({"REAL", "FLOAT4", "FLOAT8", "DOUBLE PRECISION", "NUMERIC", "DECIMAL", "MONEY"})


def sqlite_type(sql_type: str) -> str:
    """Map a PostgreSQL type onto the SQLite type (and STRICT-mode) vocabulary."""
    base = sql_type.upper().split("(", 1)[0].strip()
    if base in ("BYTEA", "BLOB"):
        return "BLOB"
    if base in _SQLITE_INTEGER:
        return "INTEGER"
    if base in _SQLITE_REAL:
        return "REAL"
    return "TEXT"


def _sqlite_default(value: Any) -> str:
    if isinstance(value, SqlExpression):
        return "CURRENT_TIMESTAMP" if value.sql.upper() == "NOW()" else value.sql
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.upper() in ("CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME"):
        return value
    return literal(value)


# ---------------------------------------------------------------------------
# Definition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TableDefinition:
    """A sealed table: columns, constraints, indexes and storage options.

    Build it with :func:`define_table`, which validates it.
    """

    name: str
    columns: dict[str, ColumnDescriptor]
    schema: str | None = None
    primary_key: list[str] = field(default_factory=list)
    unique_constraints: list[UniqueConstraint] = field(default_factory=list)
    check_constraints: list[CheckConstraint] = field(default_factory=list)
    foreign_keys: list[ForeignKeyDefinition] = field(default_factory=list)
    indexes: list[IndexDefinition] = field(default_factory=list)
    partition_by: PartitionSpec | None = None
    inherits: list[str] = field(default_factory=list)
    with_options: dict[str, Any] = field(default_factory=dict)
    tablespace: str | None = None
    temporary: bool = False
    unlogged: bool = False
    if_not_exists: bool = False
    strict: bool = False
    without_rowid: bool = False
    dialect: Dialect = "postgres"
    tracking_id: str | None = None
    comment: str | None = None

    # -- names and types --------------------------------------------------

    @property
    def qualified_name(self) -> str:
        if self.schema:
            return f"{ident(self.schema)}.{ident(self.name)}"
        return ident(self.name)

    def sql_name(self, key: str) -> str:
        """Map a programmatic column key to its SQL name; unknown keys pass through."""
        column = self.columns.get(key)
        if column is None or not column.column_name:
            return key
        return column.column_name

    def key_for(self, sql_name: str) -> str | None:
        """Inverse of :meth:`sql_name`."""
        for key in self.columns:
            if self.sql_name(key) == sql_name:
                return key
        return None

    def column_type(self, key: str) -> ColumnTypeInfo | None:
        column = self.columns.get(key)
        if column is None:
            key = self.key_for(key) or key
            column = self.columns.get(key)
        return column.type_info() if column is not None else None

    def sql_names(self) -> list[str]:
        return [self.sql_name(k) for k in self.columns]

    def primary_key_columns(self) -> list[str]:
        """SQL names of the primary key, table-level or column-level."""
        if self.primary_key:
            return [self.sql_name(c) for c in self.primary_key]
        return [self.sql_name(k) for k, c in self.columns.items() if c.is_primary_key]

    # -- rendering --------------------------------------------------------

    def to_create_builder(self) -> CreateTableBuilder:
        """The PostgreSQL :class:`~relq.ddl.table.CreateTableBuilder` for this table."""
        builder = CreateTableBuilder(self.name, self.schema)
        for key, column in self.columns.items():
            builder.add_column(self.sql_name(key), column.to_definition())
        if self.primary_key:
            builder.add_primary_key([self.sql_name(c) for c in self.primary_key])
        for uc in self.unique_constraints:
            builder.add_unique([self.sql_name(c) for c in uc.columns], uc.name)
        for cc in self.check_constraints:
            builder.add_check(cc.expression, cc.name)
        for fk in self.foreign_keys:
            builder.add_foreign_key(
                [self.sql_name(c) for c in fk.columns],
                fk.ref_table,
                fk.ref_columns,
                name=fk.name,
                on_delete=fk.on_delete,
                on_update=fk.on_update,
                deferrable=fk.deferrable,
                initially="DEFERRED" if fk.initially_deferred else None,
            )
        if self.partition_by:
            builder.partition_by(
                self.partition_by.strategy, [self.sql_name(c) for c in self.partition_by.columns]
            )
        if self.inherits:
            builder.inherits(*self.inherits)
        if self.with_options:
            builder.with_(self.with_options)
        if self.tablespace:
            builder.tablespace(self.tablespace)
        if self.if_not_exists:
            builder.if_not_exists()
        if self.temporary:
            builder.temporary()
        if self.unlogged:
            builder.unlogged()
        return builder

    def to_sql(self, dialect: Dialect | None = None) -> str:
        """Render CREATE TABLE for *dialect* (default: the table's own)."""
        if (dialect or self.dialect) == "sqlite":
            return self._sqlite_sql()
        return self.to_create_builder().to_string()

    def _sqlite_column(self, key: str, column: ColumnDescriptor) -> str:
        parts = [ident(self.sql_name(key)), "TEXT" if column.is_array else sqlite_type(column.sql_type)]
        if column.is_primary_key:
            parts.append("PRIMARY KEY")
            if column.is_autoincrement:
                parts.append("AUTOINCREMENT")
        elif column.is_nullable is False:
            parts.append("NOT NULL")
        if column.is_unique:
            parts.append("UNIQUE")
        if column.has_default:
            parts.append(f"DEFAULT {_sqlite_default(column.default_value)}")
        if column.check_expression:
            parts.append(f"CHECK ({column.check_expression})")
        if column.collation:
            parts.append(f"COLLATE {column.collation}")
        if column.reference:
            ref = column.reference
            clause = f"REFERENCES {ident(ref.table)}({ident(ref.column)})"
            if ref.on_delete:
                clause += f" ON DELETE {ref.on_delete}"
            if ref.on_update:
                clause += f" ON UPDATE {ref.on_update}"
            parts.append(clause)
        if column.generated:
            strategy = "STORED" if column.generated.stored else "VIRTUAL"
            parts.append(f"GENERATED ALWAYS AS ({column.generated.expression}) {strategy}")
        return " ".join(parts)

    def _sqlite_sql(self) -> str:
        sql = "CREATE"
        if self.temporary:
            sql += " TEMP"
        sql += " TABLE"
        if self.if_not_exists:
            sql += " IF NOT EXISTS"
        body = [self._sqlite_column(k, c) for k, c in self.columns.items()]
        if self.primary_key:
            body.append(f"PRIMARY KEY ({ident([self.sql_name(c) for c in self.primary_key])})")
        for uc in self.unique_constraints:
            prefix = f"CONSTRAINT {ident(uc.name)} " if uc.name else ""
            body.append(f"{prefix}UNIQUE ({ident([self.sql_name(c) for c in uc.columns])})")
        for cc in self.check_constraints:
            prefix = f"CONSTRAINT {ident(cc.name)} " if cc.name else ""
            body.append(f"{prefix}CHECK ({cc.expression})")
        for fk in self.foreign_keys:
            clause = (
                f"FOREIGN KEY ({ident([self.sql_name(c) for c in fk.columns])}) "
                f"REFERENCES {ident(fk.ref_table)}({ident(fk.ref_columns)})"
            )
            if fk.on_delete:
                clause += f" ON DELETE {fk.on_delete}"
            if fk.on_update:
                clause += f" ON UPDATE {fk.on_update}"
            if fk.deferrable:
                clause += " DEFERRABLE INITIALLY DEFERRED" if fk.initially_deferred else " DEFERRABLE INITIALLY IMMEDIATE"
            body.append(clause)
        sql += f" {ident(self.name)} ({', '.join(body)})"
        modifiers = []
        if self.strict:
            modifiers.append("STRICT")
        if self.without_rowid:
            modifiers.append("WITHOUT ROWID")
        if modifiers:
            sql += " " + ", ".join(modifiers)
        return sql

    def index_builders(self, dialect: Dialect | None = None) -> list[CreateIndexBuilder]:
        """Index builders for *dialect*; CockroachDB gets ``STORING`` instead of ``INCLUDE``."""
        builder_cls = CreateIndexBuilder
        if (dialect or self.dialect) == "cockroachdb":
            from relq.dialects.cockroach import CockroachIndexBuilder

            builder_cls = CockroachIndexBuilder
        builders = []
        for index in self.indexes:
            builder = builder_cls(index.resolved_name(self.name), self.name)
            builder.on(
                *(IndexColumn(self.sql_name(c), order=index.order, nulls=index.nulls) for c in index.columns)
            )
            if index.using:
                builder.using(index.using)
            if index.unique:
                builder.unique()
            if index.where:
                builder.where(index.where)
            if index.include:
                builder.include(*(self.sql_name(c) for c in index.include))
            if index.with_options:
                builder.with_(index.with_options)
            if index.if_not_exists:
                builder.if_not_exists()
            if index.tablespace:
                builder.tablespace(index.tablespace)
            builders.append(builder)
        return builders

    def to_index_sql(self, dialect: Dialect | None = None) -> list[str]:
        """CREATE INDEX statements for the declared indexes."""
        if (dialect or self.dialect) != "sqlite":
            return [b.to_string() for b in self.index_builders(dialect)]
        statements = []
        for index in self.indexes:
            sql = "CREATE UNIQUE INDEX" if index.unique else "CREATE INDEX"
            if index.if_not_exists:
                sql += " IF NOT EXISTS"
            keys = []
            for c in index.columns:
                key = ident(self.sql_name(c))
                if index.order:
                    key += f" {index.order}"
                keys.append(key)
            sql += f" {ident(index.resolved_name(self.name))} ON {ident(self.name)} ({', '.join(keys)})"
            if index.where:
                sql += f" WHERE {index.where}"
            statements.append(sql)
        return statements

    def to_ast(self) -> ParsedTable:
        """Describe the table in the introspection AST shape."""
        columns = []
        pk = set(self.primary_key_columns())
        for key, column in self.columns.items():
            name = self.sql_name(key)
            default = None
            if column.has_default:
                value = column.default_value
                default = value.sql if isinstance(value, SqlExpression) else default_sql(value)
            reference = None
            if column.reference:
                ref = column.reference
                reference = ParsedReference(
                    table=ref.table, column=ref.column, on_delete=ref.on_delete, on_update=ref.on_update
                )
            generated = None
            if column.generated:
                generated = ParsedGenerated(
                    expression=column.generated.expression, stored=column.generated.stored
                )
            columns.append(
                ParsedColumn(
                    name=name,
                    type=parse_type(column.sql_type).code,
                    sql_type=column.full_type,
                    nullable=column.is_nullable is not False and name not in pk,
                    primary_key=column.is_primary_key,
                    unique=column.is_unique,
                    array=column.is_array,
                    array_dimensions=column.dimensions,
                    default=default,
                    references=reference,
                    check=column.check_expression,
                    generated=generated,
                    tracking_id=column.tracking,
                )
            )
        return ParsedTable(
            name=self.name,
            schema_name=self.schema,
            columns=columns,
            primary_key=self.primary_key_columns() or None,
            unique_constraints=[
                ParsedUniqueConstraint(columns=[self.sql_name(c) for c in u.columns], name=u.name)
                for u in self.unique_constraints
            ],
            check_constraints=[
                ParsedCheckConstraint(expression=c.expression, name=c.name) for c in self.check_constraints
            ],
            foreign_keys=[
                ParsedForeignKey(
                    columns=[self.sql_name(c) for c in fk.columns],
                    references=ParsedForeignKeyTarget(table=fk.ref_table, columns=fk.ref_columns),
                    on_delete=fk.on_delete,
                    on_update=fk.on_update,
                    name=fk.name,
                )
                for fk in self.foreign_keys
            ],
            indexes=[
                ParsedIndex(
                    name=i.resolved_name(self.name),
                    columns=[self.sql_name(c) for c in i.columns],
                    unique=i.unique,
                    using=i.using,
                    where=i.where,
                )
                for i in self.indexes
            ],
            tracking_id=self.tracking_id,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def _check_columns(table: str, known: set[str], columns: list[str], where: str) -> None:
    unknown = [c for c in columns if c not in known]
    if unknown:
        raise _invalid(
            table,
            f"{where} references unknown column(s) {unknown}.",
            hint=f"Declared columns: {sorted(known)}",
        )


def define_table(
    name: str,
    columns: dict[str, ColumnDescriptor],
    *,
    schema: str | None = None,
    primary_key: list[str] | None = None,
    unique_constraints: list[UniqueConstraint | dict[str, Any]] | None = None,
    check_constraints: list[CheckConstraint | dict[str, Any]] | None = None,
    foreign_keys: list[ForeignKeyDefinition | dict[str, Any]] | None = None,
    indexes: list[IndexDefinition | dict[str, Any]] | None = None,
    partition_by: PartitionSpec | dict[str, Any] | None = None,
    inherits: list[str] | None = None,
    with_options: dict[str, Any] | None = None,
    tablespace: str | None = None,
    temporary: bool = False,
    unlogged: bool = False,
    if_not_exists: bool = False,
    strict: bool = False,
    without_rowid: bool = False,
    dialect: Dialect = "postgres",
    tracking_id: str | None = None,
    comment: str | None = None,
) -> TableDefinition:
    """Validate and seal a :class:`TableDefinition`.

    Constraint, index and partition entries accept their model or a dict of
    its fields.  Column references may use either programmatic keys or SQL
    names.

    Raises:
        RelqBuilderError: If the table has no columns, duplicate SQL column
            names, more than one primary key declaration, constraints on
            unknown columns, or SQLite-only options on another dialect.
    """
    if not name:
        raise RelqBuilderError("define_table() requires a table name.", builder="define_table", missing="name")
    if not columns:
        raise _invalid(name, "Table must have at least one column.", missing="columns")

    sql_names = [c.column_name or k for k, c in columns.items()]
    duplicates = sorted({n for n in sql_names if sql_names.count(n) > 1})
    if duplicates:
        raise _invalid(name, f"duplicate column name(s) {duplicates}.")

    column_pks = [k for k, c in columns.items() if c.is_primary_key]
    if len(column_pks) > 1:
        raise _invalid(
            name,
            f"primary_key() set on several columns {column_pks}.",
            hint="Use define_table(..., primary_key=[...]) for a composite key.",
        )
    if column_pks and primary_key:
        raise _invalid(name, "primary key declared both on a column and at table level.")

    uniques = [UniqueConstraint.model_validate(u) for u in unique_constraints or []]
    checks = [CheckConstraint.model_validate(c) for c in check_constraints or []]
    fks = [ForeignKeyDefinition.model_validate(f) for f in foreign_keys or []]
    idx = [IndexDefinition.model_validate(i) for i in indexes or []]
    partition = PartitionSpec.model_validate(partition_by) if partition_by is not None else None

    known = set(columns) | set(sql_names)
    _check_columns(name, known, primary_key or [], "primary_key")
    for u in uniques:
        _check_columns(name, known, u.columns, "unique constraint")
    for f in fks:
        _check_columns(name, known, f.columns, "foreign key")
        if len(f.columns) != len(f.ref_columns):
            raise _invalid(name, f"foreign key {f.columns} -> {f.ref_table}{f.ref_columns} column counts differ.")
    for i in idx:
        _check_columns(name, known, i.columns + i.include, f"index {i.resolved_name(name)}")
    if partition:
        _check_columns(name, known, partition.columns, "partition_by")

    if dialect != "sqlite" and (strict or without_rowid):
        raise _invalid(name, "STRICT and WITHOUT ROWID are SQLite-only table options.", hint="Pass dialect='sqlite'.")
    if without_rowid and not (column_pks or primary_key):
        raise _invalid(name, "WITHOUT ROWID tables need a primary key.", missing="primary_key")
    if without_rowid and any(c.is_autoincrement for c in columns.values()):
        raise _invalid(name, "AUTOINCREMENT is not allowed on WITHOUT ROWID tables.")
    for key, column in columns.items():
        if column.is_autoincrement and dialect == "sqlite" and not column.is_primary_key:
            raise _invalid(name, f"AUTOINCREMENT column '{key}' must be the INTEGER PRIMARY KEY.")

    return TableDefinition(
        name=name,
        columns=dict(columns),
        schema=schema,
        primary_key=list(primary_key or []),
        unique_constraints=uniques,
        check_constraints=checks,
        foreign_keys=fks,
        indexes=idx,
        partition_by=partition,
        inherits=list(inherits or []),
        with_options=dict(with_options or {}),
        tablespace=tablespace,
        temporary=temporary,
        unlogged=unlogged,
        if_not_exists=if_not_exists,
        strict=strict,
        without_rowid=without_rowid,
        dialect=dialect,
        tracking_id=tracking_id,
        comment=comment,
    )
