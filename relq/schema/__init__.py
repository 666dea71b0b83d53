"""Declarative schema layer: column factories, table definitions, relations.

The SQLAlchemy converter lives in :mod:`relq.schema.converters` and is not
imported here so the optional dependency stays optional.
"""

from relq.schema.ast import (
    ParsedCheckConstraint,
    ParsedColumn,
    ParsedForeignKey,
    ParsedIndex,
    ParsedTable,
    ParsedUniqueConstraint,
    TypeInfo,
    parse_type,
)
from relq.schema.columns import (
    NO_DEFAULT,
    ColumnDescriptor,
    bigint,
    bigserial,
    bit,
    bit_varying,
    boolean,
    bytea,
    char,
    cidr,
    custom_type,
    date,
    decimal,
    double_precision,
    inet,
    int4range,
    integer,
    interval,
    json,
    jsonb,
    macaddr,
    money,
    numeric,
    point,
    real,
    serial,
    smallint,
    smallserial,
    sql_current_date,
    sql_current_timestamp,
    sql_gen_random_uuid,
    sql_now,
    sql_raw,
    text,
    time,
    timestamp,
    timestamptz,
    timetz,
    tsquery,
    tstzrange,
    tsvector,
    uuid,
    varchar,
    xml,
)
from relq.schema.relations import RelationEdge, RelationsGraph, ResolvedForeignKey
from relq.schema.table import (
    CheckConstraint,
    ForeignKeyDefinition,
    IndexDefinition,
    PartitionSpec,
    TableDefinition,
    UniqueConstraint,
    define_table,
)

__all__ = [
    "NO_DEFAULT",
    "CheckConstraint",
    "ColumnDescriptor",
    "ForeignKeyDefinition",
    "IndexDefinition",
    "ParsedCheckConstraint",
    "ParsedColumn",
    "ParsedForeignKey",
    "ParsedIndex",
    "ParsedTable",
    "ParsedUniqueConstraint",
    "PartitionSpec",
    "RelationEdge",
    "RelationsGraph",
    "ResolvedForeignKey",
    "TableDefinition",
    "TypeInfo",
    "UniqueConstraint",
    "bigint",
    "bigserial",
    "bit",
    "bit_varying",
    "boolean",
    "bytea",
    "char",
    "cidr",
    "custom_type",
    "date",
    "decimal",
    "define_table",
    "double_precision",
    "inet",
    "int4range",
    "integer",
    "interval",
    "json",
    "jsonb",
    "macaddr",
    "money",
    "numeric",
    "parse_type",
    "point",
    "real",
    "serial",
    "smallint",
    "smallserial",
    "sql_current_date",
    "sql_current_timestamp",
    "sql_gen_random_uuid",
    "sql_now",
    "sql_raw",
    "text",
    "time",
    "timestamp",
    "timestamptz",
    "timetz",
    "tsquery",
    "tstzrange",
    "tsvector",
    "uuid",
    "varchar",
    "xml",
]
