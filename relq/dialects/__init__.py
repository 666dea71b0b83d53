"""Dialect descriptors, rule catalogs and the schema validator.

New dialects are registered the same way the built-in ones are::

    from relq.dialects import DialectCapabilities, DialectRegistry

    @DialectRegistry.register("yugabyte")
    class YugabyteCapabilities(DialectCapabilities):
        name: str = "yugabyte"
        display_name: str = "YugabyteDB"
        listen_notify: bool = False
"""

from relq.dialects.capabilities import (
    CockroachCapabilities,
    DialectCapabilities,
    DialectLimits,
    DialectRegistry,
    DsqlCapabilities,
    PostgresCapabilities,
    SqliteCapabilities,
    base_type_name,
)
from relq.dialects.cockroach import CockroachIndexBuilder
from relq.dialects.report import ValidationIssue, ValidationReport
from relq.dialects.rules import CRDB_RULES, DSQL_RULES, RULE_CATALOGS, SQLITE_RULES, Rule, lookup_rule
from relq.dialects.validator import SchemaDialectValidator

__all__ = [
    "CRDB_RULES",
    "DSQL_RULES",
    "RULE_CATALOGS",
    "SQLITE_RULES",
    "CockroachCapabilities",
    "CockroachIndexBuilder",
    "DialectCapabilities",
    "DialectLimits",
    "DialectRegistry",
    "DsqlCapabilities",
    "PostgresCapabilities",
    "Rule",
    "SchemaDialectValidator",
    "SqliteCapabilities",
    "ValidationIssue",
    "ValidationReport",
    "base_type_name",
    "lookup_rule",
]
