"""Closed rule catalogs for the dialect validator.

Every issue the validator reports is keyed to one :class:`Rule`.  Codes are
grouped per dialect:

``DSQL-*``
    Aurora DSQL: types, limits, column modifiers, constraints, indexes,
    table features, functions, triggers, views, extensions, sequences,
    database limits and miscellaneous statements.

``CRDB_*``
    CockroachDB: ``E0xx`` types, ``E1xx`` constraints, ``E2xx`` indexes,
    ``E3xx`` tables, ``E4xx`` user-defined types, ``E5xx`` triggers,
    ``E72x``/``W72x`` hash sharding, ``E730`` primary keys, ``W00x`` serial
    columns.

``SQLITE-*``
    SQLite: types, modifiers, tables, indexes and PostgreSQL-only objects.

Each rule carries the alternative suggested for the blocked feature.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from relq.errors import RelqConfigError

#: Severity of a rule.  Only ``error`` makes a report invalid.
Severity = Literal["error", "warning", "info"]

#: Area of the schema a rule applies to.
RuleCategory = Literal[
    "type",
    "limit",
    "modifier",
    "constraint",
    "index",
    "table",
    "function",
    "trigger",
    "view",
    "sequence",
    "extension",
    "database",
    "misc",
]


class Rule(BaseModel):
    """One catalog entry.

    Attributes:
        code: Stable rule code, e.g. ``DSQL-TYPE-002``.
        severity: ``error``, ``warning`` or ``info``.
        category: Schema area the rule belongs to.
        message: What is not supported.
        alternative: What to use instead.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    severity: Severity
    category: RuleCategory
    message: str
    alternative: str


def _catalog(*rules: Rule) -> dict[str, Rule]:
    return {rule.code: rule for rule in rules}


def _error(code: str, category: RuleCategory, message: str, alternative: str) -> Rule:
    return Rule(code=code, severity="error", category=category, message=message, alternative=alternative)


def _warning(code: str, category: RuleCategory, message: str, alternative: str) -> Rule:
    return Rule(code=code, severity="warning", category=category, message=message, alternative=alternative)


def _info(code: str, category: RuleCategory, message: str, alternative: str) -> Rule:
    return Rule(code=code, severity="info", category=category, message=message, alternative=alternative)


_UUID_PK = "uuid().primary_key().default(sql_gen_random_uuid())"

# ---------------------------------------------------------------------------
# Aurora DSQL
# ---------------------------------------------------------------------------

DSQL_RULES: dict[str, Rule] = _catalog(
    _error("DSQL-TYPE-001", "type", "SERIAL/BIGSERIAL/SMALLSERIAL types are not supported in DSQL; sequences are not available.", _UUID_PK),
    _error("DSQL-TYPE-002", "type", "JSON/JSONB column types are not supported in DSQL.", "text(); store JSON as text and cast with col::jsonb in queries"),
    _error("DSQL-TYPE-003", "type", "XML column type is not supported in DSQL.", "text()"),
    _error("DSQL-TYPE-004", "type", "MONEY type is not supported in DSQL.", "numeric(19, 4)"),
    _error("DSQL-TYPE-005", "type", "Geometric types (POINT, LINE, LSEG, BOX, PATH, POLYGON, CIRCLE) are not supported in DSQL.", "Separate numeric columns or text()"),
    _error("DSQL-TYPE-006", "type", "Range types are not supported in DSQL.", "Two columns for the lower and upper bounds"),
    _error("DSQL-TYPE-007", "type", "Multirange types are not supported in DSQL.", "A junction table with bound columns"),
    _error("DSQL-TYPE-008", "type", "Bit string types (BIT, VARBIT, BIT VARYING) are not supported in DSQL.", "bytea() or text()"),
    _error("DSQL-TYPE-009", "type", "Network types CIDR, MACADDR and MACADDR8 are not supported as column types in DSQL.", "text() or varchar()"),
    _error("DSQL-TYPE-010", "type", "INET is not supported as a column type in DSQL.", "varchar(45), which fits both IPv4 and IPv6"),
    _error("DSQL-TYPE-011", "type", "Text search types (TSVECTOR, TSQUERY) are not supported in DSQL.", "text() with an external search service"),
    _error("DSQL-TYPE-012", "type", "OID and REG* types are not supported in DSQL.", "text() or integer()"),
    _error("DSQL-TYPE-013", "type", "Internal types (PG_LSN, PG_SNAPSHOT) are not supported in DSQL.", "No direct alternative"),
    _error("DSQL-TYPE-014", "type", "Array column types are not supported in DSQL.", "text() holding a JSON array, or a separate table"),
    _warning("DSQL-LIMIT-001", "limit", "VARCHAR length exceeds the DSQL maximum of 65,535 bytes.", "varchar(65535) or text()"),
    _warning("DSQL-LIMIT-002", "limit", "CHAR length exceeds the DSQL maximum of 4,096 bytes.", "char(4096) or varchar()"),
    _warning("DSQL-LIMIT-003", "limit", "NUMERIC precision exceeds the DSQL maximum of 38.", "numeric(38, scale)"),
    _warning("DSQL-LIMIT-004", "limit", "NUMERIC scale exceeds the DSQL maximum of 37.", "numeric(precision, 37)"),
    _error("DSQL-MOD-001", "modifier", "GENERATED AS IDENTITY is not supported in DSQL; sequences are not available.", _UUID_PK),
    _error("DSQL-MOD-002", "modifier", "DEFAULT nextval() is not supported in DSQL; sequences are not available.", _UUID_PK),
    _warning("DSQL-MOD-003", "modifier", "Only the C collation is supported in DSQL.", 'Remove .collate() or use collate("C")'),
    _warning("DSQL-CONS-001", "constraint", "FOREIGN KEY constraints are accepted but not enforced in DSQL.", "Enforce referential integrity in the application"),
    _warning("DSQL-CONS-002", "constraint", "Column-level REFERENCES are accepted but not enforced in DSQL.", "Enforce referential integrity in the application"),
    _warning("DSQL-CONS-003", "constraint", "ON DELETE actions are not enforced in DSQL.", "Implement cascade or set-null logic in the application"),
    _warning("DSQL-CONS-004", "constraint", "ON UPDATE actions are not enforced in DSQL.", "Implement cascade logic in the application"),
    _error("DSQL-CONS-005", "constraint", "EXCLUSION constraints are not supported in DSQL.", "Implement exclusion logic in the application"),
    _error("DSQL-CONS-006", "constraint", "DEFERRABLE / INITIALLY DEFERRED constraints are not supported in DSQL.", "Remove the deferrable option; all constraints are immediate in DSQL"),
    _error("DSQL-IDX-001", "index", "GIN indexes are not supported in DSQL; only B-tree indexes are allowed.", "A B-tree index or application-level search"),
    _error("DSQL-IDX-002", "index", "GiST indexes are not supported in DSQL; only B-tree indexes are allowed.", "A B-tree index"),
    _error("DSQL-IDX-003", "index", "SP-GiST indexes are not supported in DSQL; only B-tree indexes are allowed.", "A B-tree index"),
    _error("DSQL-IDX-004", "index", "BRIN indexes are not supported in DSQL; only B-tree indexes are allowed.", "A B-tree index"),
    _error("DSQL-IDX-005", "index", "Hash indexes are not supported in DSQL; only B-tree indexes are allowed.", "A B-tree index"),
    _warning("DSQL-IDX-006", "index", "CONCURRENTLY index creation is not supported in DSQL.", "Remove CONCURRENTLY; DSQL builds indexes asynchronously"),
    _error("DSQL-IDX-007", "index", "Custom operator classes are not supported in DSQL indexes.", "Remove the operator class"),
    _error("DSQL-IDX-LIMIT-001", "index", "DSQL allows at most 24 indexes per table.", "Reduce the number of indexes"),
    _error("DSQL-IDX-LIMIT-002", "index", "DSQL allows at most 8 columns per index or primary key.", "Reduce the number of key columns"),
    _error("DSQL-IDX-LIMIT-003", "index", "BYTEA columns cannot be indexed in DSQL.", "Index a hash of the value instead"),
    _error("DSQL-IDX-LIMIT-004", "index", "INTERVAL columns cannot be indexed in DSQL.", "Store the interval as integer seconds"),
    _error("DSQL-IDX-LIMIT-005", "index", "TIMETZ columns cannot be indexed in DSQL.", "Use timestamptz instead"),
    _error("DSQL-TBL-001", "table", "TEMPORARY tables are not supported in DSQL.", "CTEs or regular tables"),
    _error("DSQL-TBL-002", "table", "UNLOGGED tables are not supported in DSQL.", "Regular tables"),
    _error("DSQL-TBL-003", "table", "Table inheritance (INHERITS) is not supported in DSQL.", "Separate tables with shared column definitions"),
    _error("DSQL-TBL-004", "table", "TABLESPACE is not supported in DSQL.", "Remove the tablespace"),
    _error("DSQL-TBL-005", "table", "PARTITION BY is not supported in DSQL; data is distributed automatically.", "Remove partitioning"),
    _warning("DSQL-TBL-006", "table", "WITH (storage_parameters) is not supported in DSQL.", "Remove the storage parameters"),
    _error("DSQL-FN-001", "function", "LANGUAGE plpgsql is not supported in DSQL; only SQL functions are allowed.", "LANGUAGE sql, or move the logic to the application"),
    _error("DSQL-FN-002", "function", "LANGUAGE plpython3u is not supported in DSQL.", "Move the logic to the application"),
    _error("DSQL-FN-003", "function", "LANGUAGE plperl is not supported in DSQL.", "Move the logic to the application"),
    _error("DSQL-FN-004", "function", "LANGUAGE pltcl is not supported in DSQL.", "Move the logic to the application"),
    _error("DSQL-FN-005", "function", "LANGUAGE c is not supported in DSQL.", "LANGUAGE sql, or move the logic to the application"),
    _error("DSQL-FN-006", "function", "CREATE PROCEDURE with a non-SQL language is not supported in DSQL.", "SQL-language functions or application logic"),
    _error("DSQL-FN-007", "function", "DO anonymous code blocks are not supported in DSQL.", "Run the statements separately"),
    _warning("DSQL-FN-008", "function", "CALL may fail if the procedure uses a non-SQL language.", "Make sure the procedure uses LANGUAGE sql"),
    _error("DSQL-TRIG-001", "trigger", "CREATE TRIGGER is not supported in DSQL.", "Move trigger logic to the application or an event pipeline"),
    _error("DSQL-TRIG-002", "trigger", "DROP TRIGGER is not supported in DSQL.", "Triggers do not exist in DSQL"),
    _error("DSQL-TRIG-003", "trigger", "Functions that RETURN TRIGGER are not supported in DSQL.", "Move trigger logic to the application or an event pipeline"),
    _error("DSQL-VIEW-001", "view", "Materialized views are not supported in DSQL.", "Regular views or an application-side cache"),
    _error("DSQL-VIEW-002", "view", "REFRESH MATERIALIZED VIEW is not supported in DSQL.", "Materialized views do not exist in DSQL"),
    _error("DSQL-VIEW-003", "view", "DSQL allows at most 5,000 views per database.", "Reduce the number of views"),
    _error("DSQL-VIEW-004", "view", "A view definition must not exceed 2 MiB in DSQL.", "Simplify the view definition"),
    _error("DSQL-EXT-001", "extension", "CREATE EXTENSION is not supported in DSQL.", "Built-in functions only"),
    _error("DSQL-EXT-002", "extension", "PostGIS types and functions are not available in DSQL.", "Separate numeric or text columns for coordinates"),
    _error("DSQL-EXT-003", "extension", "pgvector types and functions are not available in DSQL.", "An external vector store, or vectors as text/bytea"),
    _error("DSQL-EXT-004", "extension", "pg_trgm functions are not available in DSQL.", "LIKE/ILIKE or an external search service"),
    _error("DSQL-SEQ-001", "sequence", "CREATE SEQUENCE is not supported in DSQL.", "uuid() keys with gen_random_uuid()"),
    _error("DSQL-SEQ-002", "sequence", "nextval() is not supported in DSQL.", "gen_random_uuid()"),
    _error("DSQL-SEQ-003", "sequence", "currval() is not supported in DSQL.", "A RETURNING clause"),
    _error("DSQL-SEQ-004", "sequence", "setval() is not supported in DSQL.", "UUID-based keys"),
    _error("DSQL-SEQ-005", "sequence", "lastval() is not supported in DSQL.", "A RETURNING clause"),
    _error("DSQL-DB-002", "database", "DSQL allows at most 10 schemas per database.", "Consolidate schemas"),
    _error("DSQL-DB-003", "database", "DSQL allows at most 1,000 tables per database.", "Consolidate tables or use several clusters"),
    _error("DSQL-DB-004", "database", "DSQL allows at most 255 columns per table.", "Split the table into related tables"),
    _error("DSQL-MISC-001", "misc", "LISTEN is not supported in DSQL.", "An external notification service"),
    _error("DSQL-MISC-002", "misc", "NOTIFY is not supported in DSQL.", "An external notification service"),
    _error("DSQL-MISC-003", "misc", "Advisory locks are not supported in DSQL.", "Optimistic concurrency or an external lock service"),
    _error("DSQL-MISC-004", "misc", "TRUNCATE is not supported in DSQL.", "DELETE FROM in batches of at most 3,000 rows"),
    _error("DSQL-MISC-005", "misc", "CREATE RULE is not supported in DSQL.", "Views or application logic"),
    _warning("DSQL-MISC-006", "misc", "VACUUM, ANALYZE and REINDEX are not needed in DSQL.", "Remove the statement; maintenance is automatic"),
)

# ---------------------------------------------------------------------------
# CockroachDB
# ---------------------------------------------------------------------------


def _crdb_type(code: str, type_name: str, alternative: str) -> Rule:
    return _error(code, "type", f"{type_name} type is not supported in CockroachDB.", alternative)


_SERIAL_ALTERNATIVE = "uuid().default(sql_gen_random_uuid()) for distributed primary keys"

CRDB_RULES: dict[str, Rule] = _catalog(
    _crdb_type("CRDB_E001", "MONEY", "numeric(19, 4)"),
    _crdb_type("CRDB_E002", "XML", "text()"),
    _crdb_type("CRDB_E003", "POINT", "GEOMETRY(Point, 4326) or jsonb()"),
    _crdb_type("CRDB_E004", "LINE", "GEOMETRY(LineString, 4326)"),
    _crdb_type("CRDB_E005", "LSEG", "GEOMETRY(LineString, 4326)"),
    _crdb_type("CRDB_E006", "BOX", "GEOMETRY(Polygon, 4326)"),
    _crdb_type("CRDB_E007", "PATH", "GEOMETRY(LineString, 4326)"),
    _crdb_type("CRDB_E008", "POLYGON", "GEOMETRY(Polygon, 4326)"),
    _crdb_type("CRDB_E009", "CIRCLE", "GEOMETRY(Point, 4326) with a radius column"),
    _crdb_type("CRDB_E010", "CIDR", "text() or varchar()"),
    _crdb_type("CRDB_E011", "MACADDR", "varchar(17)"),
    _crdb_type("CRDB_E012", "MACADDR8", "varchar(23)"),
    _crdb_type("CRDB_E013", "INT4RANGE", "Two integer() columns (lower, upper)"),
    _crdb_type("CRDB_E014", "INT8RANGE", "Two bigint() columns (lower, upper)"),
    _crdb_type("CRDB_E015", "NUMRANGE", "Two numeric() columns (lower, upper)"),
    _crdb_type("CRDB_E016", "TSRANGE", "Two timestamp() columns (lower, upper)"),
    _crdb_type("CRDB_E017", "TSTZRANGE", "Two timestamptz() columns (lower, upper)"),
    _crdb_type("CRDB_E018", "DATERANGE", "Two date() columns (lower, upper)"),
    _crdb_type("CRDB_E019", "INT4MULTIRANGE", "Several rows or a JSONB array"),
    _crdb_type("CRDB_E020", "INT8MULTIRANGE", "Several rows or a JSONB array"),
    _crdb_type("CRDB_E021", "NUMMULTIRANGE", "Several rows or a JSONB array"),
    _crdb_type("CRDB_E022", "TSMULTIRANGE", "Several rows or a JSONB array"),
    _crdb_type("CRDB_E023", "TSTZMULTIRANGE", "Several rows or a JSONB array"),
    _crdb_type("CRDB_E024", "DATEMULTIRANGE", "Several rows or a JSONB array"),
    _crdb_type("CRDB_E025", "TSVECTOR", "Inverted indexes on text or JSONB columns"),
    _crdb_type("CRDB_E026", "TSQUERY", "Application-layer search"),
    _crdb_type("CRDB_E027", "OID", "integer() or bigint()"),
    _crdb_type("CRDB_E028", "REGCLASS", "text()"),
    _crdb_type("CRDB_E029", "REGPROC", "text()"),
    _crdb_type("CRDB_E030", "REGTYPE", "text()"),
    _crdb_type("CRDB_E031", "PG_LSN", "Not applicable in CockroachDB"),
    _crdb_type("CRDB_E032", "PG_SNAPSHOT", "Not applicable in CockroachDB"),
    _error("CRDB_E100", "constraint", "EXCLUSION constraints are not supported in CockroachDB.", "An application-level check"),
    _error("CRDB_E101", "constraint", "DEFERRABLE constraints are not supported in CockroachDB.", "Reorder inserts to satisfy foreign keys, or use nullable FK columns"),
    _error("CRDB_E102", "constraint", "INITIALLY DEFERRED constraints are not supported in CockroachDB.", "Reorder inserts to satisfy foreign keys, or use nullable FK columns"),
    _error("CRDB_E200", "index", "SP-GiST indexes are not supported in CockroachDB.", "B-tree, or GiST for spatial data"),
    _error("CRDB_E201", "index", "BRIN indexes are not supported in CockroachDB.", "B-tree; hash-sharded indexes for sequential keys"),
    _error("CRDB_E202", "index", "The tsvector_ops operator class is not supported in CockroachDB.", "Inverted indexes on text or JSONB columns"),
    _error("CRDB_E203", "index", "The range_ops operator class is not supported in CockroachDB.", "B-tree indexes on separate bound columns"),
    _error("CRDB_E204", "index", "Custom operator classes are not supported in CockroachDB.", "Built-in operator classes"),
    _error("CRDB_E300", "table", "Table inheritance (INHERITS) is not supported in CockroachDB.", "Partitioning or shared column definitions"),
    _error("CRDB_E301", "table", "UNLOGGED tables are not supported in CockroachDB.", "Regular tables"),
    _error("CRDB_E302", "table", "TABLESPACE is not supported in CockroachDB.", "Zone configurations for data placement"),
    _error("CRDB_E303", "table", "TEMPORARY tables are experimental in CockroachDB.", "Regular tables with row-level TTL, or CTEs"),
    _error("CRDB_E310", "table", "The toast_tuple_target storage parameter is not supported in CockroachDB.", "Remove the parameter"),
    _error("CRDB_E311", "table", "autovacuum storage parameters are not supported in CockroachDB.", "Remove the parameters; garbage collection is automatic"),
    _error("CRDB_E312", "table", "The parallel_workers storage parameter is not supported in CockroachDB.", "Remove the parameter"),
    _error("CRDB_E400", "type", "CREATE DOMAIN is not supported in CockroachDB.", "The base type with a CHECK constraint"),
    _error("CRDB_E401", "type", "Composite types (CREATE TYPE ... AS) are not supported in CockroachDB.", "A JSONB column or separate columns"),
    _error("CRDB_E500", "trigger", "UPDATE OF <column_list> is not supported in CockroachDB triggers.", "A WHEN clause using IS DISTINCT FROM"),
    _error("CRDB_E501", "trigger", "The TRUNCATE event is not supported in CockroachDB triggers.", "Application-level handling of TRUNCATE"),
    _error("CRDB_E502", "trigger", "REFERENCING OLD TABLE AS is not supported in CockroachDB triggers.", "Row-level triggers with OLD"),
    _error("CRDB_E503", "trigger", "REFERENCING NEW TABLE AS is not supported in CockroachDB triggers.", "Row-level triggers with NEW"),
    _error("CRDB_E504", "trigger", "CREATE CONSTRAINT TRIGGER is not supported in CockroachDB.", "A regular trigger"),
    _error("CRDB_E505", "trigger", "DROP TRIGGER CASCADE is not supported in CockroachDB.", "Drop triggers individually"),
    _error("CRDB_E720", "index", "Hash-sharded index bucket count must be at least 2.", "Set bucket_count to 2 or higher"),
    _error("CRDB_E730", "table", "CockroachDB requires an explicit primary key on every table.", "A uuid() primary key column"),
    _warning("CRDB_W001", "type", "SERIAL columns use unique_rowid() in CockroachDB instead of sequences.", _SERIAL_ALTERNATIVE),
    _warning("CRDB_W002", "type", "SMALLSERIAL columns use unique_rowid() in CockroachDB instead of sequences.", _SERIAL_ALTERNATIVE),
    _warning("CRDB_W003", "type", "BIGSERIAL columns use unique_rowid() in CockroachDB instead of sequences.", _SERIAL_ALTERNATIVE),
    _warning("CRDB_W030", "sequence", "Sequence CACHE is per node in CockroachDB; expect gaps.", "CACHE 1 for no gaps"),
    _warning("CRDB_W040", "index", "CONCURRENTLY is accepted but unnecessary in CockroachDB.", "Remove CONCURRENTLY; index creation is always online"),
    _warning("CRDB_W721", "index", "Hash-sharded index bucket count above 256 may reduce scan performance.", "Use 8 to 64 buckets for most workloads"),
    _info("CRDB_I600", "function", "Prefer LANGUAGE sql over plpgsql in CockroachDB where possible.", "SQL functions have full support"),
)

# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------

SQLITE_RULES: dict[str, Rule] = _catalog(
    _error("SQLITE-TYPE-001", "type", "Array types are not supported in SQLite.", "JSON text or a separate table"),
    _error("SQLITE-TYPE-002", "type", "Range types are not supported in SQLite.", "Two columns for the lower and upper bounds"),
    _error("SQLITE-TYPE-003", "type", "Text search types are not supported in SQLite.", "An FTS5 virtual table"),
    _error("SQLITE-TYPE-004", "type", "Geometric types are not supported in SQLite.", "REAL columns or WKT text"),
    _warning("SQLITE-TYPE-005", "type", "Network address types are stored as TEXT in SQLite.", "text()"),
    _warning("SQLITE-TYPE-006", "type", "MONEY is stored without currency semantics in SQLite.", "integer() holding cents"),
    _info("SQLITE-TYPE-007", "type", "The column is stored with TEXT affinity in SQLite.", "text() and explicit parsing in the application"),
    _error("SQLITE-MOD-001", "modifier", "Identity columns are not supported in SQLite.", "integer().primary_key().autoincrement()"),
    _warning("SQLITE-MOD-002", "modifier", "SQLite only knows the BINARY, NOCASE and RTRIM collations.", "Remove .collate() or use a built-in collation"),
    _info("SQLITE-CONS-001", "constraint", "SQLite enforces foreign keys only with PRAGMA foreign_keys = ON.", "Enable the pragma on every connection"),
    _error("SQLITE-CONS-002", "constraint", "EXCLUSION constraints are not supported in SQLite.", "A UNIQUE constraint or application logic"),
    _error("SQLITE-TBL-001", "table", "UNLOGGED tables are not supported in SQLite.", "Regular tables"),
    _error("SQLITE-TBL-002", "table", "Table inheritance (INHERITS) is not supported in SQLite.", "Separate tables"),
    _error("SQLITE-TBL-003", "table", "TABLESPACE is not supported in SQLite.", "ATTACH DATABASE for separate files"),
    _error("SQLITE-TBL-004", "table", "PARTITION BY is not supported in SQLite.", "Separate tables"),
    _warning("SQLITE-TBL-005", "table", "Storage parameters (WITH ...) are ignored by SQLite.", "Remove the storage parameters"),
    _error("SQLITE-IDX-001", "index", "Only B-tree indexes are supported in SQLite.", "A plain CREATE INDEX"),
    _error("SQLITE-IDX-002", "index", "INCLUDE columns are not supported in SQLite indexes.", "Add the columns to the key"),
    _warning("SQLITE-IDX-003", "index", "CONCURRENTLY is not supported in SQLite.", "Remove CONCURRENTLY"),
    _error("SQLITE-FN-001", "function", "CREATE FUNCTION is not supported in SQLite.", "Register an application-defined function on the connection"),
    _error("SQLITE-TRIG-001", "trigger", "Triggers that EXECUTE FUNCTION are not supported in SQLite.", "A SQLite trigger with an inline BEGIN ... END body"),
    _error("SQLITE-VIEW-001", "view", "Materialized views are not supported in SQLite.", "A regular view or a table refreshed by the application"),
    _error("SQLITE-SEQ-001", "sequence", "Sequences are not supported in SQLite.", "integer().primary_key().autoincrement()"),
    _error("SQLITE-EXT-001", "extension", "PostgreSQL extensions are not available in SQLite.", "A loadable SQLite extension"),
    _error("SQLITE-MISC-001", "misc", "LISTEN/NOTIFY is not supported in SQLite.", "An external notification service"),
    _error("SQLITE-MISC-002", "misc", "TRUNCATE is not supported in SQLite.", "DELETE FROM without WHERE"),
)

#: All catalogs keyed by dialect name.
RULE_CATALOGS: dict[str, dict[str, Rule]] = {
    "postgres": {},
    "cockroachdb": CRDB_RULES,
    "awsdsql": DSQL_RULES,
    "sqlite": SQLITE_RULES,
}


def lookup_rule(code: str) -> Rule:
    """Return the rule with *code* from any catalog.

    Raises:
        RelqConfigError: If no catalog knows the code.
    """
    for catalog in RULE_CATALOGS.values():
        rule = catalog.get(code)
        if rule is not None:
            return rule
    raise RelqConfigError(f"Unknown validation rule: {code}", field="code", value=code)
