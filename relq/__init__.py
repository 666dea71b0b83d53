"""relq – fluent PostgreSQL statement builders with a declarative schema layer.

Render SQL, don't concatenate it.

Public API
----------
``Relq``
    Configured client: table-bound builders, execution through a driver,
    transactions, ``create_with`` cascades and the shared listener.

``RelqConfig``
    Validated configuration, built through ``RelqConfig.builder()``.

``define_table`` and the column factories
    Declare tables once; render their DDL, indexes and AST, and map
    programmatic keys onto SQL column names in every builder.

``SchemaDialectValidator``
    Check a schema against PostgreSQL, CockroachDB, Aurora DSQL or SQLite
    and get a report of every incompatibility.

``introspect_sql`` / ``introspect_multiple``
    Turn existing ``CREATE TABLE`` DDL into ``relq.schema`` source.

Re-exported types
-----------------
The statement builders, the condition collector, the ON CONFLICT
expression helpers and all error classes.

Extensibility
-------------
New dialect descriptors are registered via::

    from relq.dialects import DialectCapabilities, DialectRegistry

    @DialectRegistry.register("yugabyte")
    class YugabyteCapabilities(DialectCapabilities):
        ...

and new condition methods via ``ConditionRegistry.register``.
"""

from __future__ import annotations

from relq.client import Driver, PsycopgDriver, QueryResult, Relq, TableQueries, Transaction
from relq.condition import ConditionCollector, ConditionNode, ConditionRegistry
from relq.config import RelqConfig, RelqConfigBuilder
from relq.ddl import (
    AlterTableBuilder,
    CreateFunctionBuilder,
    CreateIndexBuilder,
    CreateSequenceBuilder,
    CreateTableBuilder,
    CreateTriggerBuilder,
    CreateViewBuilder,
    DropTableBuilder,
)
from relq.dialects import (
    CockroachIndexBuilder,
    DialectCapabilities,
    DialectRegistry,
    SchemaDialectValidator,
    ValidationIssue,
    ValidationReport,
)
from relq.errors import (
    FormatError,
    ForeignKeyResolutionError,
    RelqBuilderError,
    RelqConfigError,
    RelqConnectionError,
    RelqEnvironmentError,
    RelqError,
    RelqPoolError,
    RelqQueryError,
    RelqTimeoutError,
    RelqTransactionError,
    parse_postgres_error,
    wrap_error,
)
from relq.expressions import ColumnRef, SqlExpression, SqlHelpers, excluded, row_ref
from relq.introspection import introspect_multiple, introspect_sql, parse_create_table
from relq.log import LogLevel, configure_logging
from relq.maintenance import AnalyzeBuilder, CopyFromBuilder, CopyToBuilder, ExplainBuilder, TruncateBuilder, VacuumBuilder
from relq.pg_format import format_sql, ident, literal
from relq.query import (
    CountBuilder,
    CTEBuilder,
    DeleteBuilder,
    InsertBuilder,
    InsertFromSelectBuilder,
    SelectBuilder,
    UpdateBuilder,
    WindowBuilder,
)
from relq.schema import RelationsGraph, TableDefinition, define_table
from relq.schema.converters import tables_from_sqlalchemy
from relq.session import ListenerConnection, Subscription, TransactionBuilder

__all__ = [
    # Client
    "Relq",
    "RelqConfig",
    "RelqConfigBuilder",
    "Driver",
    "PsycopgDriver",
    "QueryResult",
    "TableQueries",
    "Transaction",
    "ListenerConnection",
    "Subscription",
    # Logging
    "LogLevel",
    "configure_logging",
    # Quoting
    "format_sql",
    "ident",
    "literal",
    # Conditions and expressions
    "ConditionCollector",
    "ConditionNode",
    "ConditionRegistry",
    "ColumnRef",
    "SqlExpression",
    "SqlHelpers",
    "excluded",
    "row_ref",
    # Statement builders
    "SelectBuilder",
    "InsertBuilder",
    "InsertFromSelectBuilder",
    "UpdateBuilder",
    "DeleteBuilder",
    "CountBuilder",
    "CTEBuilder",
    "WindowBuilder",
    "CreateTableBuilder",
    "AlterTableBuilder",
    "DropTableBuilder",
    "CreateIndexBuilder",
    "CreateTriggerBuilder",
    "CreateFunctionBuilder",
    "CreateViewBuilder",
    "CreateSequenceBuilder",
    "CopyToBuilder",
    "CopyFromBuilder",
    "ExplainBuilder",
    "VacuumBuilder",
    "AnalyzeBuilder",
    "TruncateBuilder",
    "TransactionBuilder",
    # Schema
    "define_table",
    "TableDefinition",
    "RelationsGraph",
    "tables_from_sqlalchemy",
    # Dialects
    "DialectCapabilities",
    "DialectRegistry",
    "SchemaDialectValidator",
    "ValidationIssue",
    "ValidationReport",
    "CockroachIndexBuilder",
    # Introspection
    "introspect_sql",
    "introspect_multiple",
    "parse_create_table",
    # Errors
    "RelqError",
    "RelqBuilderError",
    "FormatError",
    "ForeignKeyResolutionError",
    "RelqConfigError",
    "RelqConnectionError",
    "RelqEnvironmentError",
    "RelqPoolError",
    "RelqQueryError",
    "RelqTimeoutError",
    "RelqTransactionError",
    "parse_postgres_error",
    "wrap_error",
]
