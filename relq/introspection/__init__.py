"""Turn existing ``CREATE TABLE`` DDL into ``relq.schema`` definitions."""

from relq.introspection.codegen import (
    IntrospectionResult,
    format_default,
    generate_schema_code,
    introspect_multiple,
    introspect_sql,
    variable_name,
)
from relq.introspection.parser import (
    parse_column_definition,
    parse_create_index,
    parse_create_table,
    parse_tables,
    split_statements,
    split_table_body,
)
from relq.schema.ast import parse_type

__all__ = [
    "IntrospectionResult",
    "format_default",
    "generate_schema_code",
    "introspect_multiple",
    "introspect_sql",
    "parse_column_definition",
    "parse_create_index",
    "parse_create_table",
    "parse_tables",
    "parse_type",
    "split_statements",
    "split_table_body",
    "variable_name",
]
