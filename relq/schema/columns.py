"""Column factories and the immutable column descriptor.

Every factory returns a :class:`ColumnDescriptor`; chain methods return an
updated copy, so a descriptor can be shared and refined freely::

    email = varchar(255).not_null().unique()
    created = timestamptz("created_at").not_null().default(sql_now())
    tags = text().array()

The optional ``column_name`` argument of each factory overrides the SQL
column name; otherwise the key under which the column is declared in
:func:`~relq.schema.table.define_table` is used.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any

from relq.ddl.columns import (
    ColumnDefinition,
    GeneratedSpec,
    IdentitySpec,
    ReferenceSpec,
    ReferentialAction,
    StorageMode,
)
from relq.errors import RelqBuilderError
from relq.expressions import SqlExpression
from relq.query.values import ColumnTypeInfo

_INTEGER_TYPE_RE = re.compile(r"^(SMALLINT|INTEGER|INT|INT2|INT4|INT8|BIGINT)$")
_SERIAL_TYPE_RE = re.compile(r"^(SMALL|BIG)?SERIAL[248]?$")


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


#: Marker for "no DEFAULT clause"; ``None`` means ``DEFAULT NULL``.
NO_DEFAULT: Any = _NoDefault()


def _invalid(message: str, missing: str | None = None, hint: str | None = None) -> RelqBuilderError:
    return RelqBuilderError(message, builder="ColumnDescriptor", missing=missing, hint=hint)


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnDescriptor:
    """Declarative description of one column.

    Attributes:
        sql_type: Base SQL type (``INTEGER``, ``VARCHAR(255)`` ...).
        column_name: SQL column name override.
        is_nullable: ``False`` for NOT NULL, ``True`` when explicitly nullable,
            ``None`` when unspecified.
        default_value: DEFAULT value, or :data:`NO_DEFAULT`.
        dimensions: Array dimensions; ``0`` for a scalar column.
        tracking: Stable tracking ID that survives renames.
    """

    sql_type: str
    column_name: str | None = None
    is_nullable: bool | None = None
    default_value: Any = NO_DEFAULT
    is_primary_key: bool = False
    is_unique: bool = False
    reference: ReferenceSpec | None = None
    check_expression: str | None = None
    generated: GeneratedSpec | None = None
    identity_spec: IdentitySpec | None = None
    dimensions: int = 0
    collation: str | None = None
    description: str | None = None
    tracking: str | None = None
    is_autoincrement: bool = False
    storage_mode: StorageMode | None = None
    compression_method: str | None = None

    # -- derived ----------------------------------------------------------

    @property
    def has_default(self) -> bool:
        return self.default_value is not NO_DEFAULT

    @property
    def full_type(self) -> str:
        """SQL type including ``[]`` suffixes."""
        return self.sql_type + "[]" * self.dimensions

    @property
    def is_array(self) -> bool:
        return self.dimensions > 0

    @property
    def is_integer(self) -> bool:
        base = self.sql_type.upper()
        return bool(_INTEGER_TYPE_RE.match(base) or _SERIAL_TYPE_RE.match(base))

    def type_info(self) -> ColumnTypeInfo:
        """The :class:`~relq.query.values.ColumnTypeInfo` used by INSERT/UPDATE."""
        return ColumnTypeInfo(self.sql_type.split("(", 1)[0].lower(), self.is_array)

    def to_definition(self) -> ColumnDefinition:
        """Convert to the DDL-layer :class:`~relq.ddl.columns.ColumnDefinition`."""
        fields: dict[str, Any] = {
            "type": self.full_type,
            "collation": self.collation,
            "nullable": False if self.is_nullable is False else None,
            "generated": self.generated,
            "identity": self.identity_spec,
            "primary_key": self.is_primary_key,
            "unique": self.is_unique,
            "check": self.check_expression,
            "references": self.reference,
            "storage": self.storage_mode,
            "compression": self.compression_method,
        }
        if self.is_autoincrement and self.identity_spec is None:
            fields["identity"] = IdentitySpec()
        if self.has_default:
            fields["default"] = self.default_value
        return ColumnDefinition(**fields)

    # -- chain methods ----------------------------------------------------

    def not_null(self) -> ColumnDescriptor:
        return replace(self, is_nullable=False)

    def nullable(self) -> ColumnDescriptor:
        if self.is_primary_key:
            raise _invalid("A primary key column cannot be nullable.")
        return replace(self, is_nullable=True)

    def default(self, value: Any) -> ColumnDescriptor:
        """Set the DEFAULT; use the ``sql_*`` helpers for SQL expressions."""
        if self.generated or self.identity_spec:
            raise _invalid(
                "A generated or identity column cannot have a DEFAULT.",
                hint="Drop generated_as()/identity() or the default.",
            )
        return replace(self, default_value=value)

    def primary_key(self) -> ColumnDescriptor:
        if self.is_nullable is True:
            raise _invalid("A nullable column cannot be the primary key.")
        return replace(self, is_primary_key=True)

    def unique(self) -> ColumnDescriptor:
        return replace(self, is_unique=True)

    def references(
        self,
        table: str,
        column: str = "id",
        *,
        on_delete: ReferentialAction | None = None,
        on_update: ReferentialAction | None = None,
    ) -> ColumnDescriptor:
        spec = ReferenceSpec(table=table, column=column, on_delete=on_delete, on_update=on_update)
        return replace(self, reference=spec)

    def check(self, expression: str) -> ColumnDescriptor:
        return replace(self, check_expression=expression)

    def generated_as(self, expression: str | SqlExpression, stored: bool = True) -> ColumnDescriptor:
        """``GENERATED ALWAYS AS (expression) STORED``."""
        if self.has_default or self.identity_spec:
            raise _invalid("A generated column cannot also have a DEFAULT or identity.")
        expr = expression.sql if isinstance(expression, SqlExpression) else expression
        return replace(self, generated=GeneratedSpec(expression=expr, stored=stored))

    def identity(self, always: bool = False, **options: Any) -> ColumnDescriptor:
        """``GENERATED {ALWAYS|BY DEFAULT} AS IDENTITY``.

        Keyword options are the :class:`~relq.ddl.columns.IdentitySpec`
        sequence fields (``start``, ``increment``, ``min_value`` ...).
        """
        if not self.is_integer:
            raise _invalid(f"Identity columns must be integers, not {self.sql_type}.")
        if self.has_default or self.generated:
            raise _invalid("An identity column cannot also have a DEFAULT or generation expression.")
        return replace(self, identity_spec=IdentitySpec(always=always, **options))

    def array(self, dimensions: int = 1) -> ColumnDescriptor:
        if dimensions < 1:
            raise _invalid("Array dimensions must be at least 1.")
        return replace(self, dimensions=dimensions)

    def collate(self, collation: str) -> ColumnDescriptor:
        return replace(self, collation=collation)

    def comment(self, text: str) -> ColumnDescriptor:
        return replace(self, description=text)

    def tracking_id(self, value: str) -> ColumnDescriptor:
        return replace(self, tracking=value)

    def autoincrement(self) -> ColumnDescriptor:
        """SQLite ``AUTOINCREMENT``; an identity column on PostgreSQL."""
        if not self.is_integer:
            raise _invalid(f"AUTOINCREMENT requires an integer column, not {self.sql_type}.")
        return replace(self, is_autoincrement=True)

    def storage(self, mode: StorageMode) -> ColumnDescriptor:
        return replace(self, storage_mode=mode)

    def compression(self, method: str) -> ColumnDescriptor:
        return replace(self, compression_method=method)


# ---------------------------------------------------------------------------
# SQL default expressions
# ---------------------------------------------------------------------------


def sql_now() -> SqlExpression:
    return SqlExpression("NOW()")


def sql_current_timestamp() -> SqlExpression:
    return SqlExpression("CURRENT_TIMESTAMP")


def sql_current_date() -> SqlExpression:
    return SqlExpression("CURRENT_DATE")


def sql_gen_random_uuid() -> SqlExpression:
    return SqlExpression("gen_random_uuid()")


def sql_raw(expression: str) -> SqlExpression:
    return SqlExpression(expression)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _sized(base: str, *params: Any) -> str:
    given = [str(p) for p in params if p is not None]
    return f"{base}({', '.join(given)})" if given else base


def integer(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("INTEGER", column_name)


def smallint(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("SMALLINT", column_name)


def bigint(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("BIGINT", column_name)


def serial(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("SERIAL", column_name)


def smallserial(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("SMALLSERIAL", column_name)


def bigserial(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("BIGSERIAL", column_name)


def numeric(precision: int | None = None, scale: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    if scale is not None and precision is None:
        raise _invalid("NUMERIC scale requires a precision.", missing="precision")
    return ColumnDescriptor(_sized("NUMERIC", precision, scale), column_name)


def decimal(precision: int | None = None, scale: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    if scale is not None and precision is None:
        raise _invalid("DECIMAL scale requires a precision.", missing="precision")
    return ColumnDescriptor(_sized("DECIMAL", precision, scale), column_name)


def real(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("REAL", column_name)


def double_precision(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("DOUBLE PRECISION", column_name)


def money(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("MONEY", column_name)


def varchar(length: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("VARCHAR", length), column_name)


def char(length: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("CHAR", length), column_name)


def text(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("TEXT", column_name)


def bytea(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("BYTEA", column_name)


def boolean(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("BOOLEAN", column_name)


def date(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("DATE", column_name)


def time(precision: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("TIME", precision), column_name)


def timetz(precision: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("TIMETZ", precision), column_name)


def timestamp(precision: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("TIMESTAMP", precision), column_name)


def timestamptz(precision: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("TIMESTAMPTZ", precision), column_name)


def interval(fields: str | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(f"INTERVAL {fields.upper()}" if fields else "INTERVAL", column_name)


def uuid(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("UUID", column_name)


def json(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("JSON", column_name)


def jsonb(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("JSONB", column_name)


def xml(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("XML", column_name)


def inet(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("INET", column_name)


def cidr(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("CIDR", column_name)


def macaddr(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("MACADDR", column_name)


def tsvector(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("TSVECTOR", column_name)


def tsquery(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("TSQUERY", column_name)


def point(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("POINT", column_name)


def int4range(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("INT4RANGE", column_name)


def tstzrange(column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor("TSTZRANGE", column_name)


def bit(length: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("BIT", length), column_name)


def bit_varying(length: int | None = None, column_name: str | None = None) -> ColumnDescriptor:
    return ColumnDescriptor(_sized("BIT VARYING", length), column_name)


def custom_type(type_name: str, column_name: str | None = None) -> ColumnDescriptor:
    """A column of any type the factories do not cover (``citext``, enums...)."""
    if not type_name:
        raise _invalid("custom_type() requires a type name.", missing="type_name")
    return ColumnDescriptor(type_name, column_name)
