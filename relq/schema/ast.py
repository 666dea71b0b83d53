"""Table AST shared by the schema layer and the introspection parser.

A :class:`ParsedTable` is what ``TableDefinition.to_ast()`` returns and what
``relq.introspection.parse_create_table`` produces, so diffing and code
generation never depend on where a table came from.

Column types are canonicalised into the name of the ``relq.schema``
factory call that recreates them, e.g. ``VARCHAR(255)`` -> ``varchar(255)``
and ``DOUBLE PRECISION`` -> ``double_precision()``.
"""
from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ParsedReference(BaseModel):
    model_config = ConfigDict(extra="forbid")

    table: str
    column: str = "id"
    on_delete: str | None = None
    on_update: str | None = None


class ParsedGenerated(BaseModel):
    model_config = ConfigDict(extra="forbid")

    expression: str
    stored: bool = True


class ParsedColumn(BaseModel):
    """One column entry.

    ``type`` is the factory-call code (``integer()``); ``sql_type`` keeps the
    SQL spelling it was derived from.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    type: str
    sql_type: str
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    array: bool = False
    array_dimensions: int = 0
    default: str | None = None
    references: ParsedReference | None = None
    check: str | None = None
    generated: ParsedGenerated | None = None
    tracking_id: str | None = None


class ParsedUniqueConstraint(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: list[str]
    name: str | None = None


class ParsedCheckConstraint(BaseModel):
    model_config = ConfigDict(extra="forbid")

    expression: str
    name: str | None = None


class ParsedForeignKeyTarget(BaseModel):
    model_config = ConfigDict(extra="forbid")

    table: str
    columns: list[str]


class ParsedForeignKey(BaseModel):
    model_config = ConfigDict(extra="forbid")

    columns: list[str]
    references: ParsedForeignKeyTarget
    on_delete: str | None = None
    on_update: str | None = None
    name: str | None = None


class ParsedIndex(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    columns: list[str]
    unique: bool = False
    using: str | None = None
    where: str | None = None


class ParsedTable(BaseModel):
    """A parsed or declared table.  ``schema`` is accepted as an alias of ``schema_name``."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    schema_name: str | None = Field(default=None, alias="schema")
    columns: list[ParsedColumn] = Field(default_factory=list)
    primary_key: list[str] | None = None
    unique_constraints: list[ParsedUniqueConstraint] = Field(default_factory=list)
    check_constraints: list[ParsedCheckConstraint] = Field(default_factory=list)
    foreign_keys: list[ParsedForeignKey] = Field(default_factory=list)
    indexes: list[ParsedIndex] = Field(default_factory=list)
    tracking_id: str | None = None

    def column(self, name: str) -> ParsedColumn | None:
        return next((c for c in self.columns if c.name == name), None)


# ---------------------------------------------------------------------------
# Type canonicalisation
# ---------------------------------------------------------------------------

#: Exact SQL type spellings and the factory call that recreates them.
SQL_TYPE_MAP: dict[str, str] = {
    "INTEGER": "integer()",
    "INT": "integer()",
    "INT4": "integer()",
    "SMALLINT": "smallint()",
    "INT2": "smallint()",
    "BIGINT": "bigint()",
    "INT8": "bigint()",
    "SERIAL": "serial()",
    "SERIAL4": "serial()",
    "SMALLSERIAL": "smallserial()",
    "SERIAL2": "smallserial()",
    "BIGSERIAL": "bigserial()",
    "SERIAL8": "bigserial()",
    "REAL": "real()",
    "FLOAT4": "real()",
    "DOUBLE PRECISION": "double_precision()",
    "FLOAT8": "double_precision()",
    "MONEY": "money()",
    "TEXT": "text()",
    "BYTEA": "bytea()",
    "BOOLEAN": "boolean()",
    "BOOL": "boolean()",
    "DATE": "date()",
    "TIMESTAMPTZ": "timestamptz()",
    "TIMETZ": "timetz()",
    "UUID": "uuid()",
    "JSON": "json()",
    "JSONB": "jsonb()",
    "XML": "xml()",
    "INET": "inet()",
    "CIDR": "cidr()",
    "MACADDR": "macaddr()",
    "TSVECTOR": "tsvector()",
    "TSQUERY": "tsquery()",
    "POINT": "point()",
    "INT4RANGE": "int4range()",
    "TSTZRANGE": "tstzrange()",
}

_ARRAY_RE = re.compile(r"^(.+?)((?:\[\])+)$")
_VARCHAR_RE = re.compile(r"^(?:VARCHAR|CHARACTER VARYING)(?:\((\d+)\))?$")
_CHAR_RE = re.compile(r"^(?:CHAR|CHARACTER)(?:\((\d+)\))?$")
_NUMERIC_RE = re.compile(r"^(NUMERIC|DECIMAL)(?:\((\d+)(?:,\s*(\d+))?\))?$")
_TIMESTAMP_RE = re.compile(r"^TIMESTAMP(?:\((\d+)\))?(\s+WITH(?:OUT)?\s+TIME\s+ZONE)?$")
_TIME_RE = re.compile(r"^TIME(?:\((\d+)\))?(\s+WITH(?:OUT)?\s+TIME\s+ZONE)?$")
_INTERVAL_RE = re.compile(r"^INTERVAL(?:\s+(.+))?$")
_BIT_RE = re.compile(r"^BIT(\s+VARYING)?(?:\((\d+)\))?$")


class TypeInfo(BaseModel):
    """Result of :func:`parse_type`."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: str
    code: str
    is_array: bool = False
    dimensions: int = 0


def _call(name: str, *args: object) -> str:
    return f"{name}({', '.join(str(a) for a in args if a is not None)})"


def _base_code(clean: str) -> str:
    if clean in SQL_TYPE_MAP:
        return SQL_TYPE_MAP[clean]
    if m := _VARCHAR_RE.match(clean):
        return _call("varchar", m.group(1))
    if m := _CHAR_RE.match(clean):
        return _call("char", m.group(1))
    if m := _NUMERIC_RE.match(clean):
        return _call(m.group(1).lower(), m.group(2), m.group(3))
    if m := _TIMESTAMP_RE.match(clean):
        with_tz = bool(m.group(2)) and "WITHOUT" not in m.group(2)
        return _call("timestamptz" if with_tz else "timestamp", m.group(1))
    if m := _TIME_RE.match(clean):
        with_tz = bool(m.group(2)) and "WITHOUT" not in m.group(2)
        return _call("timetz" if with_tz else "time", m.group(1))
    if m := _INTERVAL_RE.match(clean):
        return f"interval({m.group(1)!r})" if m.group(1) else "interval()"
    if m := _BIT_RE.match(clean):
        return _call("bit_varying" if m.group(1) else "bit", m.group(2))
    return f"custom_type({clean.lower()!r})"


def parse_type(type_str: str) -> TypeInfo:
    """Canonicalise a SQL type into the matching factory-call code.

    Example::

        parse_type("VARCHAR(255)").code   # "varchar(255)"
        parse_type("integer[]").code      # "integer()" with is_array=True
    """
    clean = " ".join(type_str.upper().split())
    dimensions = 0
    if m := _ARRAY_RE.match(clean):
        clean = m.group(1).strip()
        dimensions = len(m.group(2)) // 2
    return TypeInfo(type=clean, code=_base_code(clean), is_array=dimensions > 0, dimensions=dimensions)


#: Constraint kinds recognised in a table body.
ConstraintKind = Literal["primary_key", "unique", "check", "foreign_key"]
