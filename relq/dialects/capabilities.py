"""Per-dialect capability descriptors and their registry.

A :class:`DialectCapabilities` describes what one backend accepts: its
limits, its index methods, and which rule from
:mod:`relq.dialects.rules` fires when a schema uses a feature the backend
blocks.  The validator walks a schema against exactly one descriptor, so
supporting a new backend means registering a new descriptor::

    from relq.dialects import DialectCapabilities, DialectRegistry

    @DialectRegistry.register("yugabyte")
    class YugabyteCapabilities(DialectCapabilities):
        name: str = "yugabyte"
        display_name: str = "YugabyteDB"

    caps = DialectRegistry.get("yugabyte")

Feature keys used in ``feature_rules``:

* tables: ``temporary``, ``unlogged``, ``inherits``, ``tablespace``,
  ``partition_by``, ``with_options``, ``autovacuum_params``,
  ``toast_params``, ``parallel_params``, ``missing_primary_key``,
  ``max_columns``, ``max_indexes``, ``max_tables``, ``max_schemas``
* columns: ``array``, ``identity``, ``nextval_default``, ``collation``,
  ``references``, ``on_delete``, ``on_update``, ``varchar_length``,
  ``char_length``, ``numeric_precision``, ``numeric_scale``
* constraints: ``foreign_key``, ``deferrable``, ``initially_deferred``,
  ``exclusion``
* indexes: ``concurrent_index``, ``index_include``, ``max_index_columns``,
  ``custom_opclass``, ``tsvector_opclass``, ``range_opclass``,
  ``hash_bucket_min``, ``hash_bucket_max``
* routines: ``create_function``, ``procedure``, ``do_block``,
  ``call_procedure``, ``trigger_function``
* triggers: ``trigger``, ``drop_trigger``, ``drop_trigger_cascade``,
  ``trigger_update_of``, ``trigger_truncate``, ``trigger_old_table``,
  ``trigger_new_table``, ``constraint_trigger``, ``trigger_execute_function``
* views: ``materialized_view``, ``refresh_materialized_view``,
  ``max_views``, ``view_size``
* sequences: ``sequence``, ``sequence_cache``, ``nextval``, ``currval``,
  ``setval``, ``lastval``
* other statements: ``extension``, ``pg_trgm``, ``listen``, ``notify``,
  ``advisory_lock``, ``truncate``, ``create_rule``, ``maintenance``,
  ``create_domain``, ``composite_type``
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field

from relq.dialects.rules import Rule, lookup_rule
from relq.errors import RelqConfigError

#: Dialect names known out of the box.
DialectName = Literal["postgres", "cockroachdb", "awsdsql", "sqlite"]

_TYPE_ARGS_RE = re.compile(r"\(.*\)")


def base_type_name(sql_type: str) -> str:
    """Lower-case type name without parameters or ``[]`` suffixes.

    Example::

        base_type_name("VARCHAR(255)[]")   # "varchar"
        base_type_name("timestamp(3) with time zone")   # "timestamp with time zone"
    """
    name = _TYPE_ARGS_RE.sub("", sql_type).replace("[]", "")
    return " ".join(name.lower().split())


class DialectLimits(BaseModel):
    """Numeric limits enforced by a backend.  ``None`` means unlimited."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_tables: int | None = None
    max_schemas: int | None = None
    max_views: int | None = None
    max_columns_per_table: int | None = None
    max_indexes_per_table: int | None = None
    max_columns_per_index: int | None = None
    max_varchar_length: int | None = None
    max_char_length: int | None = None
    max_numeric_precision: int | None = None
    max_numeric_scale: int | None = None
    max_view_definition_bytes: int | None = None
    min_hash_buckets: int | None = None
    max_hash_buckets: int | None = None


class DialectCapabilities(BaseModel):
    """What one backend supports.

    Attributes:
        name: Registry name of the dialect.
        display_name: Human-readable backend name.
        family: SQL family the emitted DDL follows.
        returning: Whether ``RETURNING`` may be sent to the backend.
        listen_notify: Whether ``LISTEN``/``NOTIFY`` are available.
        index_methods: Lower-case index access methods the backend accepts.
        builtin_opclasses: Operator classes accepted without a rule firing.
        collations: Allowed collations, or ``None`` for any.
        limits: Numeric limits.
        feature_rules: Feature key to rule code.
        type_rules: Lower-case base type name to rule code.
        index_method_rules: Lower-case index method to rule code.
        language_rules: Lower-case function language to rule code.
        non_indexable_types: Lower-case base type name to rule code for
            types that cannot be part of an index key.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = "postgres"
    display_name: str = "PostgreSQL"
    family: Literal["postgres", "sqlite"] = "postgres"
    returning: bool = True
    listen_notify: bool = True
    index_methods: list[str] = Field(
        default_factory=lambda: ["btree", "hash", "gin", "gist", "brin", "spgist", "bloom"]
    )
    builtin_opclasses: list[str] | None = None
    collations: list[str] | None = None
    limits: DialectLimits = Field(default_factory=DialectLimits)
    feature_rules: dict[str, str] = Field(default_factory=dict)
    type_rules: dict[str, str] = Field(default_factory=dict)
    index_method_rules: dict[str, str] = Field(default_factory=dict)
    language_rules: dict[str, str] = Field(default_factory=dict)
    non_indexable_types: dict[str, str] = Field(default_factory=dict)

    def rule_for(self, feature: str) -> Rule | None:
        """The rule that fires when a schema uses *feature*, if any."""
        code = self.feature_rules.get(feature)
        return lookup_rule(code) if code else None

    def supports(self, feature: str) -> bool:
        """``True`` unless *feature* maps to an error-severity rule."""
        rule = self.rule_for(feature)
        return rule is None or rule.severity != "error"

    def type_rule(self, sql_type: str) -> Rule | None:
        code = self.type_rules.get(base_type_name(sql_type))
        return lookup_rule(code) if code else None

    def supports_type(self, sql_type: str) -> bool:
        rule = self.type_rule(sql_type)
        return rule is None or rule.severity != "error"

    def supports_index_method(self, method: str) -> bool:
        return method.lower() in self.index_methods

    def with_overrides(self, **overrides: Any) -> DialectCapabilities:
        """Copy with fields replaced, e.g. ``caps.with_overrides(returning=False)``."""
        unknown = sorted(set(overrides) - set(type(self).model_fields))
        if unknown:
            raise RelqConfigError(
                f"Unknown capability override(s): {unknown}.", field="capabilities", value=overrides
            )
        return type(self).model_validate({**self.model_dump(), **overrides})


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class DialectRegistry:
    """Registry mapping dialect names to :class:`DialectCapabilities` classes.

    Example::

        @DialectRegistry.register("yugabyte")
        class YugabyteCapabilities(DialectCapabilities):
            ...

        caps = DialectRegistry.get("yugabyte", returning=False)
    """

    _dialects: ClassVar[dict[str, type[DialectCapabilities]]] = {}

    @classmethod
    def register(
        cls, name: str
    ) -> Callable[[type[DialectCapabilities]], type[DialectCapabilities]]:
        """Decorator that registers a capabilities class under ``name``.

        Args:
            name: The dialect name (e.g. ``"cockroachdb"``).

        Returns:
            A decorator that registers and returns the class.
        """

        def decorator(caps_cls: type[DialectCapabilities]) -> type[DialectCapabilities]:
            cls._dialects[name] = caps_cls
            return caps_cls

        return decorator

    @classmethod
    def register_class(cls, name: str, caps_cls: type[DialectCapabilities]) -> None:
        """Register a capabilities class without using the decorator form."""
        cls._dialects[name] = caps_cls

    @classmethod
    def get(cls, name: str, **overrides: Any) -> DialectCapabilities:
        """Instantiate the descriptor registered for ``name``.

        Args:
            name: The dialect name.
            **overrides: Field values replacing the dialect defaults.

        Raises:
            RelqConfigError: If no dialect is registered under ``name`` or
                an override names an unknown field.
        """
        caps_cls = cls._dialects.get(name)
        if caps_cls is None:
            raise RelqConfigError(
                f"Unsupported dialect: '{name}'. Registered dialects: {cls.registered_dialects()}.",
                field="dialect",
                value=name,
            )
        caps = caps_cls()
        return caps.with_overrides(**overrides) if overrides else caps

    @classmethod
    def registered_dialects(cls) -> list[str]:
        """Return the sorted list of registered dialect names."""
        return sorted(cls._dialects)


# ---------------------------------------------------------------------------
# Built-in dialects
# ---------------------------------------------------------------------------


@DialectRegistry.register("postgres")
class PostgresCapabilities(DialectCapabilities):
    pass


_CRDB_TYPES = {
    "money": "CRDB_E001",
    "xml": "CRDB_E002",
    "point": "CRDB_E003",
    "line": "CRDB_E004",
    "lseg": "CRDB_E005",
    "box": "CRDB_E006",
    "path": "CRDB_E007",
    "polygon": "CRDB_E008",
    "circle": "CRDB_E009",
    "cidr": "CRDB_E010",
    "macaddr": "CRDB_E011",
    "macaddr8": "CRDB_E012",
    "int4range": "CRDB_E013",
    "int8range": "CRDB_E014",
    "numrange": "CRDB_E015",
    "tsrange": "CRDB_E016",
    "tstzrange": "CRDB_E017",
    "daterange": "CRDB_E018",
    "int4multirange": "CRDB_E019",
    "int8multirange": "CRDB_E020",
    "nummultirange": "CRDB_E021",
    "tsmultirange": "CRDB_E022",
    "tstzmultirange": "CRDB_E023",
    "datemultirange": "CRDB_E024",
    "tsvector": "CRDB_E025",
    "tsquery": "CRDB_E026",
    "oid": "CRDB_E027",
    "regclass": "CRDB_E028",
    "regproc": "CRDB_E029",
    "regtype": "CRDB_E030",
    "pg_lsn": "CRDB_E031",
    "pg_snapshot": "CRDB_E032",
    "serial": "CRDB_W001",
    "serial4": "CRDB_W001",
    "smallserial": "CRDB_W002",
    "serial2": "CRDB_W002",
    "bigserial": "CRDB_W003",
    "serial8": "CRDB_W003",
}


@DialectRegistry.register("cockroachdb")
class CockroachCapabilities(DialectCapabilities):
    """CockroachDB: ``STORING`` instead of ``INCLUDE``, hash-sharded indexes."""

    name: str = "cockroachdb"
    display_name: str = "CockroachDB"
    listen_notify: bool = False
    index_methods: list[str] = Field(default_factory=lambda: ["btree", "hash", "gin", "gist", "inverted"])
    builtin_opclasses: list[str] | None = Field(
        default_factory=lambda: ["jsonb_ops", "jsonb_path_ops", "array_ops", "gin_trgm_ops", "gist_trgm_ops"]
    )
    limits: DialectLimits = Field(default_factory=lambda: DialectLimits(min_hash_buckets=2, max_hash_buckets=256))
    feature_rules: dict[str, str] = Field(
        default_factory=lambda: {
            "exclusion": "CRDB_E100",
            "deferrable": "CRDB_E101",
            "initially_deferred": "CRDB_E102",
            "tsvector_opclass": "CRDB_E202",
            "range_opclass": "CRDB_E203",
            "custom_opclass": "CRDB_E204",
            "inherits": "CRDB_E300",
            "unlogged": "CRDB_E301",
            "tablespace": "CRDB_E302",
            "temporary": "CRDB_E303",
            "toast_params": "CRDB_E310",
            "autovacuum_params": "CRDB_E311",
            "parallel_params": "CRDB_E312",
            "create_domain": "CRDB_E400",
            "composite_type": "CRDB_E401",
            "trigger_update_of": "CRDB_E500",
            "trigger_truncate": "CRDB_E501",
            "trigger_old_table": "CRDB_E502",
            "trigger_new_table": "CRDB_E503",
            "constraint_trigger": "CRDB_E504",
            "drop_trigger_cascade": "CRDB_E505",
            "hash_bucket_min": "CRDB_E720",
            "hash_bucket_max": "CRDB_W721",
            "missing_primary_key": "CRDB_E730",
            "sequence_cache": "CRDB_W030",
            "concurrent_index": "CRDB_W040",
        }
    )
    type_rules: dict[str, str] = Field(default_factory=lambda: dict(_CRDB_TYPES))
    index_method_rules: dict[str, str] = Field(default_factory=lambda: {"spgist": "CRDB_E200", "brin": "CRDB_E201"})
    language_rules: dict[str, str] = Field(default_factory=lambda: {"plpgsql": "CRDB_I600"})


def _types(code: str, *names: str) -> dict[str, str]:
    return dict.fromkeys(names, code)


_DSQL_TYPES = {
    **_types("DSQL-TYPE-001", "serial", "serial4", "bigserial", "serial8", "smallserial", "serial2"),
    **_types("DSQL-TYPE-002", "json", "jsonb"),
    **_types("DSQL-TYPE-003", "xml"),
    **_types("DSQL-TYPE-004", "money"),
    **_types("DSQL-TYPE-005", "point", "line", "lseg", "box", "path", "polygon", "circle"),
    **_types("DSQL-TYPE-006", "int4range", "int8range", "numrange", "tsrange", "tstzrange", "daterange"),
    **_types(
        "DSQL-TYPE-007",
        "int4multirange",
        "int8multirange",
        "nummultirange",
        "tsmultirange",
        "tstzmultirange",
        "datemultirange",
    ),
    **_types("DSQL-TYPE-008", "bit", "bit varying", "varbit"),
    **_types("DSQL-TYPE-009", "cidr", "macaddr", "macaddr8"),
    **_types("DSQL-TYPE-010", "inet"),
    **_types("DSQL-TYPE-011", "tsvector", "tsquery"),
    **_types(
        "DSQL-TYPE-012",
        "oid",
        "regclass",
        "regproc",
        "regtype",
        "regprocedure",
        "regoper",
        "regoperator",
        "regrole",
        "regnamespace",
        "regconfig",
        "regdictionary",
    ),
    **_types("DSQL-TYPE-013", "pg_lsn", "pg_snapshot"),
    **_types("DSQL-EXT-002", "geometry", "geography"),
    **_types("DSQL-EXT-003", "vector", "halfvec", "sparsevec"),
}


@DialectRegistry.register("awsdsql")
class DsqlCapabilities(DialectCapabilities):
    """Aurora DSQL: no sequences, triggers, JSON columns or extensions; B-tree only."""

    name: str = "awsdsql"
    display_name: str = "Aurora DSQL"
    listen_notify: bool = False
    index_methods: list[str] = Field(default_factory=lambda: ["btree"])
    builtin_opclasses: list[str] | None = Field(default_factory=list)
    collations: list[str] | None = Field(default_factory=lambda: ["C"])
    limits: DialectLimits = Field(
        default_factory=lambda: DialectLimits(
            max_tables=1_000,
            max_schemas=10,
            max_views=5_000,
            max_columns_per_table=255,
            max_indexes_per_table=24,
            max_columns_per_index=8,
            max_varchar_length=65_535,
            max_char_length=4_096,
            max_numeric_precision=38,
            max_numeric_scale=37,
            max_view_definition_bytes=2 * 1024 * 1024,
        )
    )
    feature_rules: dict[str, str] = Field(
        default_factory=lambda: {
            "array": "DSQL-TYPE-014",
            "varchar_length": "DSQL-LIMIT-001",
            "char_length": "DSQL-LIMIT-002",
            "numeric_precision": "DSQL-LIMIT-003",
            "numeric_scale": "DSQL-LIMIT-004",
            "identity": "DSQL-MOD-001",
            "nextval_default": "DSQL-MOD-002",
            "collation": "DSQL-MOD-003",
            "foreign_key": "DSQL-CONS-001",
            "references": "DSQL-CONS-002",
            "on_delete": "DSQL-CONS-003",
            "on_update": "DSQL-CONS-004",
            "exclusion": "DSQL-CONS-005",
            "deferrable": "DSQL-CONS-006",
            "initially_deferred": "DSQL-CONS-006",
            "concurrent_index": "DSQL-IDX-006",
            "custom_opclass": "DSQL-IDX-007",
            "tsvector_opclass": "DSQL-IDX-007",
            "range_opclass": "DSQL-IDX-007",
            "max_indexes": "DSQL-IDX-LIMIT-001",
            "max_index_columns": "DSQL-IDX-LIMIT-002",
            "temporary": "DSQL-TBL-001",
            "unlogged": "DSQL-TBL-002",
            "inherits": "DSQL-TBL-003",
            "tablespace": "DSQL-TBL-004",
            "partition_by": "DSQL-TBL-005",
            "with_options": "DSQL-TBL-006",
            "procedure": "DSQL-FN-006",
            "do_block": "DSQL-FN-007",
            "call_procedure": "DSQL-FN-008",
            "trigger": "DSQL-TRIG-001",
            "constraint_trigger": "DSQL-TRIG-001",
            "drop_trigger": "DSQL-TRIG-002",
            "trigger_function": "DSQL-TRIG-003",
            "materialized_view": "DSQL-VIEW-001",
            "refresh_materialized_view": "DSQL-VIEW-002",
            "max_views": "DSQL-VIEW-003",
            "view_size": "DSQL-VIEW-004",
            "extension": "DSQL-EXT-001",
            "pg_trgm": "DSQL-EXT-004",
            "sequence": "DSQL-SEQ-001",
            "nextval": "DSQL-SEQ-002",
            "currval": "DSQL-SEQ-003",
            "setval": "DSQL-SEQ-004",
            "lastval": "DSQL-SEQ-005",
            "max_schemas": "DSQL-DB-002",
            "max_tables": "DSQL-DB-003",
            "max_columns": "DSQL-DB-004",
            "listen": "DSQL-MISC-001",
            "notify": "DSQL-MISC-002",
            "advisory_lock": "DSQL-MISC-003",
            "truncate": "DSQL-MISC-004",
            "create_rule": "DSQL-MISC-005",
            "maintenance": "DSQL-MISC-006",
        }
    )
    type_rules: dict[str, str] = Field(default_factory=lambda: dict(_DSQL_TYPES))
    index_method_rules: dict[str, str] = Field(
        default_factory=lambda: {
            "gin": "DSQL-IDX-001",
            "gist": "DSQL-IDX-002",
            "spgist": "DSQL-IDX-003",
            "brin": "DSQL-IDX-004",
            "hash": "DSQL-IDX-005",
        }
    )
    language_rules: dict[str, str] = Field(
        default_factory=lambda: {
            "plpgsql": "DSQL-FN-001",
            "plpython3u": "DSQL-FN-002",
            "plperl": "DSQL-FN-003",
            "pltcl": "DSQL-FN-004",
            "c": "DSQL-FN-005",
        }
    )
    non_indexable_types: dict[str, str] = Field(
        default_factory=lambda: {
            "bytea": "DSQL-IDX-LIMIT-003",
            "interval": "DSQL-IDX-LIMIT-004",
            "timetz": "DSQL-IDX-LIMIT-005",
            "time with time zone": "DSQL-IDX-LIMIT-005",
        }
    )


_SQLITE_TYPES = {
    **_types("SQLITE-TYPE-002", "int4range", "int8range", "numrange", "tsrange", "tstzrange", "daterange"),
    **_types("SQLITE-TYPE-003", "tsvector", "tsquery"),
    **_types("SQLITE-TYPE-004", "point", "line", "lseg", "box", "path", "polygon", "circle"),
    **_types("SQLITE-TYPE-005", "inet", "cidr", "macaddr", "macaddr8"),
    **_types("SQLITE-TYPE-006", "money"),
    **_types(
        "SQLITE-TYPE-007",
        "uuid",
        "json",
        "jsonb",
        "xml",
        "date",
        "time",
        "timetz",
        "timestamp",
        "timestamptz",
        "interval",
    ),
}


@DialectRegistry.register("sqlite")
class SqliteCapabilities(DialectCapabilities):
    """SQLite: type affinities, ``AUTOINCREMENT``, ``STRICT`` and ``WITHOUT ROWID``."""

    name: str = "sqlite"
    display_name: str = "SQLite"
    family: Literal["postgres", "sqlite"] = "sqlite"
    listen_notify: bool = False
    index_methods: list[str] = Field(default_factory=lambda: ["btree"])
    collations: list[str] | None = Field(default_factory=lambda: ["BINARY", "NOCASE", "RTRIM"])
    feature_rules: dict[str, str] = Field(
        default_factory=lambda: {
            "array": "SQLITE-TYPE-001",
            "identity": "SQLITE-MOD-001",
            "collation": "SQLITE-MOD-002",
            "foreign_key": "SQLITE-CONS-001",
            "references": "SQLITE-CONS-001",
            "exclusion": "SQLITE-CONS-002",
            "unlogged": "SQLITE-TBL-001",
            "inherits": "SQLITE-TBL-002",
            "tablespace": "SQLITE-TBL-003",
            "partition_by": "SQLITE-TBL-004",
            "with_options": "SQLITE-TBL-005",
            "index_include": "SQLITE-IDX-002",
            "concurrent_index": "SQLITE-IDX-003",
            "create_function": "SQLITE-FN-001",
            "trigger_execute_function": "SQLITE-TRIG-001",
            "materialized_view": "SQLITE-VIEW-001",
            "sequence": "SQLITE-SEQ-001",
            "extension": "SQLITE-EXT-001",
            "listen": "SQLITE-MISC-001",
            "notify": "SQLITE-MISC-001",
            "truncate": "SQLITE-MISC-002",
        }
    )
    type_rules: dict[str, str] = Field(default_factory=lambda: dict(_SQLITE_TYPES))
    index_method_rules: dict[str, str] = Field(
        default_factory=lambda: dict.fromkeys(["hash", "gin", "gist", "brin", "spgist", "bloom"], "SQLITE-IDX-001")
    )
