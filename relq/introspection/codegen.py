"""Generate ``relq.schema`` Python source from parsed tables.

Example::

    print(introspect_sql("CREATE TABLE users (id SERIAL PRIMARY KEY, tags TEXT[])").code)

    # from relq.schema import define_table, serial, text
    #
    # users = define_table(
    #     "users",
    #     {
    #         "id": serial().primary_key(),
    #         "tags": text().array(),
    #     },
    # )
"""

from __future__ import annotations

import json
import keyword
import re
from dataclasses import dataclass

from relq.introspection.parser import parse_create_table, parse_tables
from relq.schema.ast import ParsedColumn, ParsedIndex, ParsedTable

#: SQL default spellings that map onto the ``relq.schema`` helper functions.
DEFAULT_HELPERS: dict[str, str] = {
    "NOW()": "sql_now()",
    "CURRENT_TIMESTAMP": "sql_current_timestamp()",
    "CURRENT_DATE": "sql_current_date()",
    "GEN_RANDOM_UUID()": "sql_gen_random_uuid()",
}

_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")
_STRING_RE = re.compile(r"^'((?:[^']|'')*)'(?:::[\w\s\[\]]+)?$", re.DOTALL)
_FACTORY_RE = re.compile(r"^(\w+)\(")


@dataclass(frozen=True)
class IntrospectionResult:
    """A parsed table and the Python source that recreates it."""

    parsed: ParsedTable
    code: str


def _py(value: str) -> str:
    return json.dumps(value)


def variable_name(table_name: str) -> str:
    """Python identifier for a table: ``order-items`` -> ``order_items``."""
    name = re.sub(r"\W+", "_", table_name).strip("_").lower() or "table"
    if name[0].isdigit() or keyword.iskeyword(name):
        name = f"t_{name}"
    return name


def format_default(value: str) -> str:
    """Render a SQL ``DEFAULT`` expression as a Python argument to ``.default()``.

    Example::

        format_default("now()")          # "sql_now()"
        format_default("'draft'::text")  # '"draft"'
        format_default("42")             # "42"
    """
    stripped = value.strip()
    upper = " ".join(stripped.upper().split())
    if upper in DEFAULT_HELPERS:
        return DEFAULT_HELPERS[upper]
    if upper in ("TRUE", "FALSE"):
        return upper.capitalize()
    if upper == "NULL":
        return "None"
    if _NUMBER_RE.match(stripped):
        return stripped
    if match := _STRING_RE.match(stripped):
        return _py(match.group(1).replace("''", "'"))
    return f"sql_raw({_py(stripped)})"


def _column_code(column: ParsedColumn) -> str:
    code = column.type
    if column.array:
        code += f".array({column.array_dimensions})" if column.array_dimensions > 1 else ".array()"
    if column.primary_key:
        code += ".primary_key()"
    elif not column.nullable:
        code += ".not_null()"
    if column.unique:
        code += ".unique()"
    if column.default is not None and column.generated is None:
        code += f".default({format_default(column.default)})"
    if column.references:
        ref = column.references
        args = [_py(ref.table), _py(ref.column)]
        if ref.on_delete:
            args.append(f"on_delete={_py(ref.on_delete)}")
        if ref.on_update:
            args.append(f"on_update={_py(ref.on_update)}")
        code += f".references({', '.join(args)})"
    if column.check:
        code += f".check({_py(column.check)})"
    if column.generated:
        stored = "" if column.generated.stored else ", stored=False"
        code += f".generated_as({_py(column.generated.expression)}{stored})"
    return code


def _index_code(index: ParsedIndex) -> str:
    fields = [f'"columns": {json.dumps(index.columns)}', f'"name": {_py(index.name)}']
    if index.unique:
        fields.append('"unique": True')
    if index.using and index.using != "BTREE":
        fields.append(f'"using": {_py(index.using)}')
    if index.where:
        fields.append(f'"where": {_py(index.where)}')
    return "{" + ", ".join(fields) + "}"


def _imports(column_codes: list[str], import_path: str) -> str:
    names = {"define_table"}
    for code in column_codes:
        if match := _FACTORY_RE.match(code):
            names.add(match.group(1))
        names.update(re.findall(r"\b(sql_\w+)\(", code))
    return f"from {import_path} import {', '.join(sorted(names))}"


def generate_schema_code(
    table: ParsedTable,
    *,
    name: str | None = None,
    import_path: str = "relq.schema",
    include_imports: bool = True,
) -> str:
    """Render *table* as a ``define_table(...)`` assignment.

    Args:
        table: Parsed table.
        name: Variable name; derived from the table name by default.
        import_path: Module the factories are imported from.
        include_imports: Prefix the source with its ``import`` line.
    """
    column_codes = [_column_code(c) for c in table.columns]
    lines = []
    if include_imports:
        lines += [_imports(column_codes, import_path), ""]
    lines += [f"{name or variable_name(table.name)} = define_table(", f"    {_py(table.name)},", "    {"]
    for column, code in zip(table.columns, column_codes):
        lines.append(f"        {_py(column.name)}: {code},")
    lines.append("    },")

    if table.schema_name:
        lines.append(f"    schema={_py(table.schema_name)},")
    inline_pk = any(c.primary_key for c in table.columns)
    if table.primary_key and not inline_pk:
        lines.append(f"    primary_key={json.dumps(table.primary_key)},")
    if table.unique_constraints:
        lines.append("    unique_constraints=[")
        for unique in table.unique_constraints:
            named = f', "name": {_py(unique.name)}' if unique.name else ""
            lines.append(f'        {{"columns": {json.dumps(unique.columns)}{named}}},')
        lines.append("    ],")
    if table.check_constraints:
        lines.append("    check_constraints=[")
        for check in table.check_constraints:
            named = f', "name": {_py(check.name)}' if check.name else ""
            lines.append(f'        {{"expression": {_py(check.expression)}{named}}},')
        lines.append("    ],")
    if table.foreign_keys:
        lines.append("    foreign_keys=[")
        for fk in table.foreign_keys:
            fields = [
                f'"columns": {json.dumps(fk.columns)}',
                f'"ref_table": {_py(fk.references.table)}',
                f'"ref_columns": {json.dumps(fk.references.columns)}',
            ]
            if fk.on_delete:
                fields.append(f'"on_delete": {_py(fk.on_delete)}')
            if fk.on_update:
                fields.append(f'"on_update": {_py(fk.on_update)}')
            if fk.name:
                fields.append(f'"name": {_py(fk.name)}')
            lines.append("        {" + ", ".join(fields) + "},")
        lines.append("    ],")
    if table.indexes:
        lines.append("    indexes=[")
        lines.extend(f"        {_index_code(index)}," for index in table.indexes)
        lines.append("    ],")
    lines.append(")")
    return "\n".join(lines) + "\n"


def introspect_sql(sql: str, *, import_path: str = "relq.schema") -> IntrospectionResult:
    """Parse one ``CREATE TABLE`` and generate its schema code."""
    parsed = parse_create_table(sql)
    return IntrospectionResult(parsed, generate_schema_code(parsed, import_path=import_path))


def introspect_multiple(sql: str, *, import_path: str = "relq.schema") -> list[IntrospectionResult]:
    """Parse a DDL script, one result per ``CREATE TABLE``.

    ``CREATE INDEX`` statements in the script are attached to their table.
    """
    return [
        IntrospectionResult(parsed, generate_schema_code(parsed, import_path=import_path))
        for parsed in parse_tables(sql)
    ]
