"""Schema-against-dialect validator.

Walks table definitions, routines, triggers, views, sequences, extensions
and free-standing statements against one
:class:`~relq.dialects.capabilities.DialectCapabilities` and reports every
rule that fires.  Builders are rendered to SQL before textual checks, so
``CreateTriggerBuilder`` instances and raw ``CREATE TRIGGER`` strings are
judged the same way.

Example::

    from relq.dialects import SchemaDialectValidator

    report = SchemaDialectValidator("awsdsql").validate(
        {"users": users, "posts": posts},
        sequences=[CreateSequenceBuilder("order_seq")],
        statements=["LISTEN jobs"],
    )
    report.codes()   # ["DSQL-TYPE-001", "DSQL-SEQ-001", "DSQL-MISC-001"]
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from relq.ddl.index import CreateIndexBuilder
from relq.dialects.capabilities import DialectCapabilities, DialectRegistry, base_type_name
from relq.dialects.cockroach import CockroachIndexBuilder
from relq.dialects.report import ValidationReport
from relq.dialects.rules import lookup_rule
from relq.expressions import SqlExpression
from relq.query.base import Statement
from relq.schema.columns import ColumnDescriptor
from relq.schema.table import TableDefinition

logger = logging.getLogger(__name__)

#: Anything the validator accepts where SQL is expected.
SqlSource = Statement | str

_FLAGS = re.IGNORECASE | re.DOTALL

#: Feature key and the pattern that detects it in a free-standing statement.
STATEMENT_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("listen", re.compile(r"^\s*LISTEN\b", _FLAGS)),
    ("notify", re.compile(r"^\s*NOTIFY\b|\bpg_notify\s*\(", _FLAGS)),
    ("advisory_lock", re.compile(r"\bpg_(?:try_)?advisory_(?:xact_)?lock", _FLAGS)),
    ("truncate", re.compile(r"^\s*TRUNCATE\b", _FLAGS)),
    ("create_rule", re.compile(r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?RULE\b", _FLAGS)),
    ("maintenance", re.compile(r"^\s*(?:VACUUM|ANALYZE|REINDEX)\b", _FLAGS)),
    ("create_domain", re.compile(r"^\s*CREATE\s+DOMAIN\b", _FLAGS)),
    ("composite_type", re.compile(r"^\s*CREATE\s+TYPE\s+\S+\s+AS\s*\(", _FLAGS)),
    ("do_block", re.compile(r"^\s*DO\s", _FLAGS)),
    ("call_procedure", re.compile(r"^\s*CALL\b", _FLAGS)),
    ("drop_trigger", re.compile(r"^\s*DROP\s+TRIGGER\b", _FLAGS)),
    ("drop_trigger_cascade", re.compile(r"^\s*DROP\s+TRIGGER\b.*\bCASCADE\b", _FLAGS)),
    ("refresh_materialized_view", re.compile(r"^\s*REFRESH\s+MATERIALIZED\s+VIEW\b", _FLAGS)),
    ("nextval", re.compile(r"\bnextval\s*\(", _FLAGS)),
    ("currval", re.compile(r"\bcurrval\s*\(", _FLAGS)),
    ("setval", re.compile(r"\bsetval\s*\(", _FLAGS)),
    ("lastval", re.compile(r"\blastval\s*\(", _FLAGS)),
    ("pg_trgm", re.compile(r"\b(?:similarity|word_similarity|show_trgm)\s*\(", _FLAGS)),
    ("exclusion", re.compile(r"\bEXCLUDE\s+(?:USING\b|WITH\b|\()", _FLAGS)),
    ("deferrable", re.compile(r"(?<!NOT\s)\bDEFERRABLE\b", _FLAGS)),
    ("initially_deferred", re.compile(r"\bINITIALLY\s+DEFERRED\b", _FLAGS)),
]

_CREATE_INDEX_RE = re.compile(r"^\s*CREATE\s+(?:UNIQUE\s+)?INDEX\b", _FLAGS)
_CREATE_TRIGGER_RE = re.compile(r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:CONSTRAINT\s+)?TRIGGER\b", _FLAGS)
_CREATE_ROUTINE_RE = re.compile(r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:FUNCTION|PROCEDURE)\b", _FLAGS)
_CREATE_VIEW_RE = re.compile(r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:MATERIALIZED\s+)?VIEW\b", _FLAGS)
_CREATE_SEQUENCE_RE = re.compile(r"^\s*CREATE\s+(?:TEMP(?:ORARY)?\s+|UNLOGGED\s+)?SEQUENCE\b", _FLAGS)
_CREATE_EXTENSION_RE = re.compile(r'^\s*CREATE\s+EXTENSION\s+(?:IF\s+NOT\s+EXISTS\s+)?"?([\w-]+)"?', _FLAGS)

_LANGUAGE_RE = re.compile(r"\bLANGUAGE\s+'?(\w+)'?", _FLAGS)
_PROCEDURE_RE = re.compile(r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?PROCEDURE\b", _FLAGS)
_RETURNS_TRIGGER_RE = re.compile(r"\bRETURNS\s+TRIGGER\b", _FLAGS)
_CONSTRAINT_TRIGGER_RE = re.compile(r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?CONSTRAINT\s+TRIGGER\b", _FLAGS)
_UPDATE_OF_RE = re.compile(r"\bUPDATE\s+OF\b", _FLAGS)
_TRUNCATE_EVENT_RE = re.compile(r"\b(?:BEFORE|AFTER|INSTEAD\s+OF|OR)\s+TRUNCATE\b", _FLAGS)
_OLD_TABLE_RE = re.compile(r"\bOLD\s+TABLE\s+AS\b", _FLAGS)
_NEW_TABLE_RE = re.compile(r"\bNEW\s+TABLE\s+AS\b", _FLAGS)
_EXECUTE_FUNCTION_RE = re.compile(r"\bEXECUTE\s+(?:FUNCTION|PROCEDURE)\b", _FLAGS)
_MATERIALIZED_RE = re.compile(r"^\s*CREATE\s+MATERIALIZED\s+VIEW\b", _FLAGS)
_CACHE_RE = re.compile(r"\bCACHE\s+(\d+)", _FLAGS)
_INDEX_METHOD_RE = re.compile(r"\bUSING\s+(\w+)", _FLAGS)
_HASH_SHARDED_RE = re.compile(r"\bUSING\s+HASH\s+WITH\s*\(\s*bucket_count\s*=\s*(\d+)", _FLAGS)
_CONCURRENTLY_RE = re.compile(r"\bCONCURRENTLY\b", _FLAGS)
_INCLUDE_RE = re.compile(r"\b(?:INCLUDE|STORING)\s*\(", _FLAGS)
_TYPE_ARGS_RE = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")

_TSVECTOR_OPCLASS = "tsvector_ops"
_RANGE_OPCLASS = "range_ops"


def _sql(source: SqlSource) -> str:
    return source if isinstance(source, str) else source.to_string()


def _type_args(sql_type: str) -> tuple[int | None, int | None]:
    match = _TYPE_ARGS_RE.search(sql_type)
    if match is None:
        return None, None
    scale = match.group(2)
    return int(match.group(1)), int(scale) if scale is not None else None


class SchemaDialectValidator:
    """Validates schema objects against one dialect.

    Args:
        dialect: Registered dialect name or a ready descriptor.
        **overrides: Capability overrides applied to a named dialect.
    """

    def __init__(self, dialect: str | DialectCapabilities = "postgres", **overrides: Any) -> None:
        if isinstance(dialect, DialectCapabilities):
            self.capabilities = dialect.with_overrides(**overrides) if overrides else dialect
        else:
            self.capabilities = DialectRegistry.get(dialect, **overrides)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def validate(
        self,
        tables: Mapping[str, TableDefinition] | Iterable[TableDefinition] = (),
        *,
        functions: Iterable[SqlSource] = (),
        triggers: Iterable[SqlSource] = (),
        views: Iterable[SqlSource] = (),
        sequences: Iterable[SqlSource] = (),
        extensions: Iterable[str] = (),
        statements: Iterable[SqlSource] = (),
    ) -> ValidationReport:
        """Return a report of every rule the given objects violate.

        Never raises for incompatible schemas; call
        :meth:`~relq.dialects.report.ValidationReport.raise_for_errors`
        to turn errors into an exception.
        """
        report = ValidationReport(dialect=self.capabilities.name)
        table_list = list(tables.values()) if isinstance(tables, Mapping) else list(tables)
        limits = self.capabilities.limits

        if limits.max_tables is not None and len(table_list) > limits.max_tables:
            self._flag(report, "max_tables", "schema", f"{len(table_list)} tables")
        schemas = {t.schema or "public" for t in table_list}
        if limits.max_schemas is not None and len(schemas) > limits.max_schemas:
            self._flag(report, "max_schemas", "schema", f"{len(schemas)} schemas")
        for table in table_list:
            self._check_table(report, table)

        for function in functions:
            self._check_routine(report, _sql(function))
        for trigger in triggers:
            self._check_trigger(report, _sql(trigger))
        view_list = list(views)
        if limits.max_views is not None and len(view_list) > limits.max_views:
            self._flag(report, "max_views", "schema", f"{len(view_list)} views")
        for view in view_list:
            self._check_view(report, _sql(view))
        for sequence in sequences:
            self._check_sequence(report, _sql(sequence))
        for extension in extensions:
            self._flag(report, "extension", f"extension {extension}", extension)
        for position, statement in enumerate(statements, start=1):
            self._check_statement(report, statement, f"statement {position}")

        logger.debug(
            "Validated %d table(s) for %s: %d error(s), %d warning(s)",
            len(table_list),
            self.capabilities.name,
            len(report.errors),
            len(report.warnings),
        )
        return report

    # ------------------------------------------------------------------
    # Tables and columns
    # ------------------------------------------------------------------

    def _flag(self, report: ValidationReport, feature: str, location: str, detail: str | None = None) -> None:
        rule = self.capabilities.rule_for(feature)
        if rule is not None:
            report.add(rule, location, detail)

    def _check_table(self, report: ValidationReport, table: TableDefinition) -> None:
        name = table.name
        limits = self.capabilities.limits
        for key, column in table.columns.items():
            self._check_column(report, f"{name}.{table.sql_name(key)}", column)

        pk = table.primary_key_columns()
        if not pk:
            self._flag(report, "missing_primary_key", name)
        elif limits.max_columns_per_index is not None and len(pk) > limits.max_columns_per_index:
            self._flag(report, "max_index_columns", f"{name} primary key", f"{len(pk)} columns")

        for feature, used in (
            ("temporary", table.temporary),
            ("unlogged", table.unlogged),
            ("inherits", bool(table.inherits)),
            ("tablespace", bool(table.tablespace)),
            ("partition_by", table.partition_by is not None),
        ):
            if used:
                self._flag(report, feature, name)
        if table.with_options:
            self._flag(report, "with_options", name, ", ".join(table.with_options))
            for option in table.with_options:
                if option.startswith("autovacuum_"):
                    self._flag(report, "autovacuum_params", name, option)
                elif option == "toast_tuple_target":
                    self._flag(report, "toast_params", name, option)
                elif option == "parallel_workers":
                    self._flag(report, "parallel_params", name, option)

        if limits.max_columns_per_table is not None and len(table.columns) > limits.max_columns_per_table:
            self._flag(report, "max_columns", name, f"{len(table.columns)} columns")

        for fk in table.foreign_keys:
            location = f"{name} foreign key ({', '.join(fk.columns)})"
            self._flag(report, "foreign_key", location)
            if fk.on_delete:
                self._flag(report, "on_delete", location, fk.on_delete)
            if fk.on_update:
                self._flag(report, "on_update", location, fk.on_update)
            if fk.deferrable:
                self._flag(report, "deferrable", location)
            if fk.initially_deferred:
                self._flag(report, "initially_deferred", location)

        builders = table.index_builders()
        if limits.max_indexes_per_table is not None and len(builders) > limits.max_indexes_per_table:
            self._flag(report, "max_indexes", name, f"{len(builders)} indexes")
        column_types = {table.sql_name(k): c.sql_type for k, c in table.columns.items()}
        for builder in builders:
            self._check_index_builder(report, builder, column_types)

    def _check_column(self, report: ValidationReport, location: str, column: ColumnDescriptor) -> None:
        caps = self.capabilities
        limits = caps.limits
        type_rule = caps.type_rule(column.sql_type)
        if type_rule is not None:
            report.add(type_rule, location, column.sql_type)
        if column.is_array:
            self._flag(report, "array", location, column.full_type)

        base = base_type_name(column.sql_type)
        first, second = _type_args(column.sql_type)
        if base in ("varchar", "character varying") and first is not None:
            if limits.max_varchar_length is not None and first > limits.max_varchar_length:
                self._flag(report, "varchar_length", location, column.sql_type)
        elif base in ("char", "character") and first is not None:
            if limits.max_char_length is not None and first > limits.max_char_length:
                self._flag(report, "char_length", location, column.sql_type)
        elif base in ("numeric", "decimal") and first is not None:
            if limits.max_numeric_precision is not None and first > limits.max_numeric_precision:
                self._flag(report, "numeric_precision", location, column.sql_type)
            if second is not None and limits.max_numeric_scale is not None and second > limits.max_numeric_scale:
                self._flag(report, "numeric_scale", location, column.sql_type)

        if column.identity_spec is not None:
            self._flag(report, "identity", location)
        elif column.is_autoincrement and caps.family != "sqlite":
            # autoincrement renders as an identity column outside SQLite
            self._flag(report, "identity", location)
        default = column.default_value if column.has_default else None
        if isinstance(default, SqlExpression) and re.search(r"\bnextval\s*\(", default.sql, re.IGNORECASE):
            self._flag(report, "nextval_default", location, default.sql)
        if column.collation and caps.collations is not None and column.collation not in caps.collations:
            self._flag(report, "collation", location, column.collation)
        if column.reference is not None:
            self._flag(report, "references", location, f"{column.reference.table}.{column.reference.column}")
            if column.reference.on_delete:
                self._flag(report, "on_delete", location, column.reference.on_delete)
            if column.reference.on_update:
                self._flag(report, "on_update", location, column.reference.on_update)

    # ------------------------------------------------------------------
    # Indexes
    # ------------------------------------------------------------------

    def _check_index_builder(
        self,
        report: ValidationReport,
        builder: CreateIndexBuilder,
        column_types: Mapping[str, str] | None = None,
    ) -> None:
        caps = self.capabilities
        location = f"index {builder.name}"
        code = caps.index_method_rules.get(builder.method.lower())
        if code is not None:
            self._add_code(report, code, location, builder.method)
        if builder.is_concurrent:
            self._flag(report, "concurrent_index", location)
        if builder.include_columns:
            self._flag(report, "index_include", location, ", ".join(builder.include_columns))
        max_columns = caps.limits.max_columns_per_index
        if max_columns is not None and len(builder.columns) > max_columns:
            self._flag(report, "max_index_columns", location, f"{len(builder.columns)} columns")
        for opclass in builder.opclasses():
            self._check_opclass(report, opclass, location)
        for column in builder.columns:
            sql_type = (column_types or {}).get(column.column)
            if sql_type is None:
                continue
            code = caps.non_indexable_types.get(base_type_name(sql_type))
            if code is not None:
                self._add_code(report, code, location, f"{column.column} {sql_type}")
        if isinstance(builder, CockroachIndexBuilder) and builder.hash_shard and builder.bucket_count is not None:
            self._check_buckets(report, builder.bucket_count, location)

    def _check_index_sql(self, report: ValidationReport, sql: str, location: str) -> None:
        sharded = _HASH_SHARDED_RE.search(sql)
        if sharded:
            self._check_buckets(report, int(sharded.group(1)), location)
        method = _INDEX_METHOD_RE.search(sql)
        if method and not sharded:
            code = self.capabilities.index_method_rules.get(method.group(1).lower())
            if code is not None:
                self._add_code(report, code, location, method.group(1))
        if _CONCURRENTLY_RE.search(sql):
            self._flag(report, "concurrent_index", location)
        if _INCLUDE_RE.search(sql):
            self._flag(report, "index_include", location)
        lowered = sql.lower()
        if _TSVECTOR_OPCLASS in lowered:
            self._flag(report, "tsvector_opclass", location)
        if _RANGE_OPCLASS in lowered:
            self._flag(report, "range_opclass", location)

    def _check_opclass(self, report: ValidationReport, opclass: str, location: str) -> None:
        name = opclass.lower()
        if name == _TSVECTOR_OPCLASS:
            self._flag(report, "tsvector_opclass", location, opclass)
        elif name == _RANGE_OPCLASS:
            self._flag(report, "range_opclass", location, opclass)
        elif self.capabilities.builtin_opclasses is not None and name not in self.capabilities.builtin_opclasses:
            self._flag(report, "custom_opclass", location, opclass)

    def _check_buckets(self, report: ValidationReport, buckets: int, location: str) -> None:
        limits = self.capabilities.limits
        if limits.min_hash_buckets is not None and buckets < limits.min_hash_buckets:
            self._flag(report, "hash_bucket_min", location, str(buckets))
        if limits.max_hash_buckets is not None and buckets > limits.max_hash_buckets:
            self._flag(report, "hash_bucket_max", location, str(buckets))

    def _add_code(self, report: ValidationReport, code: str, location: str, detail: str | None) -> None:
        report.add(lookup_rule(code), location, detail)

    # ------------------------------------------------------------------
    # Routines, triggers, views, sequences
    # ------------------------------------------------------------------

    def _check_routine(self, report: ValidationReport, sql: str, location: str | None = None) -> None:
        location = location or "function"
        self._flag(report, "create_function", location)
        languages = _LANGUAGE_RE.findall(sql)
        language = languages[-1].lower() if languages else "sql"
        code = self.capabilities.language_rules.get(language)
        if code is not None:
            self._add_code(report, code, location, language)
        if _PROCEDURE_RE.search(sql) and language != "sql":
            self._flag(report, "procedure", location, language)
        if _RETURNS_TRIGGER_RE.search(sql):
            self._flag(report, "trigger_function", location)

    def _check_trigger(self, report: ValidationReport, sql: str, location: str | None = None) -> None:
        location = location or "trigger"
        self._flag(report, "trigger", location)
        for feature, pattern in (
            ("constraint_trigger", _CONSTRAINT_TRIGGER_RE),
            ("trigger_update_of", _UPDATE_OF_RE),
            ("trigger_truncate", _TRUNCATE_EVENT_RE),
            ("trigger_old_table", _OLD_TABLE_RE),
            ("trigger_new_table", _NEW_TABLE_RE),
            ("trigger_execute_function", _EXECUTE_FUNCTION_RE),
        ):
            if pattern.search(sql):
                self._flag(report, feature, location)

    def _check_view(self, report: ValidationReport, sql: str, location: str | None = None) -> None:
        location = location or "view"
        if _MATERIALIZED_RE.search(sql):
            self._flag(report, "materialized_view", location)
        max_bytes = self.capabilities.limits.max_view_definition_bytes
        size = len(sql.encode())
        if max_bytes is not None and size > max_bytes:
            self._flag(report, "view_size", location, f"{size} bytes")

    def _check_sequence(self, report: ValidationReport, sql: str, location: str | None = None) -> None:
        location = location or "sequence"
        self._flag(report, "sequence", location)
        cache = _CACHE_RE.search(sql)
        if cache and int(cache.group(1)) > 1:
            self._flag(report, "sequence_cache", location, f"CACHE {cache.group(1)}")

    # ------------------------------------------------------------------
    # Free-standing statements
    # ------------------------------------------------------------------

    def _check_statement(self, report: ValidationReport, statement: SqlSource, location: str) -> None:
        if isinstance(statement, CreateIndexBuilder):
            self._check_index_builder(report, statement)
        sql = _sql(statement)
        if isinstance(statement, str) and _CREATE_INDEX_RE.search(sql):
            self._check_index_sql(report, sql, location)
        elif _CREATE_TRIGGER_RE.search(sql):
            self._check_trigger(report, sql, location)
        elif _CREATE_ROUTINE_RE.search(sql):
            self._check_routine(report, sql, location)
        elif _CREATE_VIEW_RE.search(sql):
            self._check_view(report, sql, location)
        elif _CREATE_SEQUENCE_RE.search(sql):
            self._check_sequence(report, sql, location)
        elif match := _CREATE_EXTENSION_RE.search(sql):
            self._flag(report, "extension", location, match.group(1))
        for feature, pattern in STATEMENT_PATTERNS:
            if pattern.search(sql):
                self._flag(report, feature, location)
