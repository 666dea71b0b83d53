"""Column definition model and renderer shared by CREATE and ALTER TABLE.

``ColumnDefinition`` is a pydantic model so definitions coming from the
schema layer, from dictionaries, or from user code are validated the same
way.  ``render_column`` emits one column entry in the fixed order::

    name type [COLLATE c] [NOT NULL|NULL] [DEFAULT d] [GENERATED ...]
    [GENERATED ... AS IDENTITY (...)] [PRIMARY KEY] [UNIQUE] [CHECK (...)]
    [REFERENCES t(c) [ON DELETE a] [ON UPDATE a]] [STORAGE s] [COMPRESSION c]
"""
from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from relq.expressions import SqlExpression
from relq.pg_format import format_sql, ident

#: Referential action for ``ON DELETE`` / ``ON UPDATE``.
ReferentialAction = Literal["CASCADE", "RESTRICT", "NO ACTION", "SET NULL", "SET DEFAULT"]

#: Column ``STORAGE`` mode.
StorageMode = Literal["PLAIN", "EXTERNAL", "EXTENDED", "MAIN"]

_SQL_DEFAULT_MARKERS = ("NOW()", "CURRENT_")


class GeneratedSpec(BaseModel):
    """``GENERATED ... AS (expr) STORED|VIRTUAL``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    expression: str
    always: bool = True
    stored: bool = True


class IdentitySpec(BaseModel):
    """``GENERATED ... AS IDENTITY`` with optional sequence options."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    always: bool = False
    start: int | None = None
    increment: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    cycle: bool = False


class ReferenceSpec(BaseModel):
    """Inline ``REFERENCES table(column)``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    table: str
    column: str = "id"
    on_delete: ReferentialAction | None = None
    on_update: ReferentialAction | None = None


class ColumnDefinition(BaseModel):
    """Everything that can appear in one column entry."""

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    type: str
    collation: str | None = None
    nullable: bool | None = None
    default: Any = None
    generated: GeneratedSpec | None = None
    identity: IdentitySpec | None = None
    primary_key: bool = False
    unique: bool = False
    check: str | None = None
    references: ReferenceSpec | None = None
    storage: StorageMode | None = None
    compression: str | None = None

    @property
    def has_default(self) -> bool:
        """True when ``default`` was given, even as ``None``."""
        return "default" in self.model_fields_set


def default_sql(value: Any) -> str:
    """Render a DEFAULT value.

    :class:`~relq.expressions.SqlExpression` values and strings naming
    ``NOW()`` or a ``CURRENT_*`` keyword are emitted verbatim; everything else
    is a literal.
    """
    if isinstance(value, SqlExpression):
        return value.sql
    if isinstance(value, str) and any(m in value.upper() for m in _SQL_DEFAULT_MARKERS):
        return value
    return format_sql("%L", value)


def _identity_sql(identity: IdentitySpec) -> str:
    sql = " GENERATED ALWAYS AS IDENTITY" if identity.always else " GENERATED BY DEFAULT AS IDENTITY"
    options = []
    if identity.start is not None:
        options.append(f"START WITH {identity.start}")
    if identity.increment is not None:
        options.append(f"INCREMENT BY {identity.increment}")
    if identity.min_value is not None:
        options.append(f"MINVALUE {identity.min_value}")
    if identity.max_value is not None:
        options.append(f"MAXVALUE {identity.max_value}")
    if identity.cycle:
        options.append("CYCLE")
    if options:
        sql += f" ({' '.join(options)})"
    return sql


def render_column(name: str, definition: ColumnDefinition | str) -> str:
    """Render ``name`` plus its definition; a plain string is used as-is."""
    if isinstance(definition, str):
        return f"{ident(name)} {definition}"
    d = definition
    sql = f"{ident(name)} {d.type}"
    if d.collation:
        sql += f" COLLATE {ident(d.collation)}"
    if d.nullable is False:
        sql += " NOT NULL"
    elif d.nullable is True:
        sql += " NULL"
    if d.has_default:
        sql += f" DEFAULT {default_sql(d.default)}"
    if d.generated:
        sql += " GENERATED ALWAYS" if d.generated.always else " GENERATED BY DEFAULT"
        sql += f" AS ({d.generated.expression}) {'STORED' if d.generated.stored else 'VIRTUAL'}"
    if d.identity:
        sql += _identity_sql(d.identity)
    if d.primary_key:
        sql += " PRIMARY KEY"
    if d.unique:
        sql += " UNIQUE"
    if d.check:
        sql += f" CHECK ({d.check})"
    if d.references:
        ref = d.references
        sql += f" REFERENCES {ident(ref.table)}({ident(ref.column)})"
        if ref.on_delete:
            sql += f" ON DELETE {ref.on_delete}"
        if ref.on_update:
            sql += f" ON UPDATE {ref.on_update}"
    if d.storage:
        sql += f" STORAGE {d.storage}"
    if d.compression:
        sql += f" COMPRESSION {d.compression}"
    return sql


def with_options_sql(options: dict[str, Any]) -> str:
    """``key = value, ...`` for a ``WITH (...)`` storage-parameter list."""
    parts = []
    for key, value in options.items():
        if isinstance(value, bool):
            value = "on" if value else "off"
        parts.append(f"{key} = {value}")
    return ", ".join(parts)
