"""Build table definitions from SQLAlchemy metadata.

:func:`tables_from_sqlalchemy` accepts either a populated
:class:`~sqlalchemy.schema.MetaData` or an engine to reflect, and returns
:class:`~relq.schema.table.TableDefinition` objects keyed by table name.

Install the optional dependency before using this module::

    pip install "relq[sqlalchemy]"

Example::

    from sqlalchemy import create_engine
    from relq.schema.converters import tables_from_sqlalchemy

    engine = create_engine("sqlite:///app.db")
    tables = tables_from_sqlalchemy(engine, dialect="sqlite")
    print(tables["users"].to_sql())
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from relq.ddl.columns import ReferenceSpec
from relq.schema.ast import parse_type
from relq.schema.columns import ColumnDescriptor, sql_raw
from relq.schema.table import Dialect, ForeignKeyDefinition, IndexDefinition, TableDefinition, define_table

if TYPE_CHECKING:
    from sqlalchemy import Column, Engine, MetaData, Table

logger = logging.getLogger(__name__)


def tables_from_sqlalchemy(
    source: MetaData | Engine,
    *,
    include_tables: list[str] | None = None,
    schema: str | None = None,
    dialect: Dialect = "postgres",
) -> dict[str, TableDefinition]:
    """Convert SQLAlchemy tables into relq table definitions.

    Args:
        source: A :class:`~sqlalchemy.schema.MetaData` that already holds
            tables, or an :class:`~sqlalchemy.engine.Engine` to reflect.
        include_tables: Optional allowlist of table names.
        schema: Database schema to reflect (engines only) and to record on
            each definition.
        dialect: Dialect recorded on each definition.

    Returns:
        Definitions keyed by table name, in dependency order.

    Raises:
        ImportError: If ``sqlalchemy`` is not installed.
    """
    try:
        from sqlalchemy import MetaData as _MetaData
    except ImportError as exc:
        raise ImportError(
            "SQLAlchemy is required for tables_from_sqlalchemy(). "
            'Install it with: pip install "relq[sqlalchemy]"'
        ) from exc

    if isinstance(source, _MetaData):
        metadata = source
    else:
        metadata = _MetaData()
        with source.connect() as conn:
            metadata.reflect(bind=conn, only=include_tables, schema=schema)

    tables: dict[str, TableDefinition] = {}
    for table in metadata.sorted_tables:
        if include_tables is not None and table.name not in include_tables:
            continue
        tables[table.name] = _convert_table(table, schema=schema, dialect=dialect)
        logger.debug("Converted SQLAlchemy table %s", table.name)
    return tables


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _sql_type(column: Column[Any]) -> str:
    try:
        return str(column.type)
    except Exception:
        # Types without a generic compilation (dialect-specific UDTs).
        return type(column.type).__name__.upper()


def _server_default(column: Column[Any]) -> Any:
    default = column.server_default
    if default is None:
        return None
    arg = getattr(default, "arg", None)
    text = getattr(arg, "text", arg)
    return sql_raw(str(text)) if text is not None else None


def _convert_column(column: Column[Any], single_pk: bool) -> ColumnDescriptor:
    info = parse_type(_sql_type(column))
    descriptor = ColumnDescriptor(info.type, dimensions=info.dimensions)
    if column.primary_key and single_pk:
        descriptor = descriptor.primary_key()
        if column.autoincrement is True and descriptor.is_integer:
            descriptor = descriptor.autoincrement()
    elif column.nullable is False:
        descriptor = descriptor.not_null()
    if column.unique:
        descriptor = descriptor.unique()
    default = _server_default(column)
    if default is not None:
        descriptor = replace(descriptor, default_value=default)
    foreign_keys = list(column.foreign_keys)
    if len(foreign_keys) == 1 and len(foreign_keys[0].constraint.columns) == 1:
        fk = foreign_keys[0]
        descriptor = replace(
            descriptor,
            reference=ReferenceSpec(
                table=fk.column.table.name,
                column=fk.column.name,
                on_delete=fk.ondelete.upper() if fk.ondelete else None,
                on_update=fk.onupdate.upper() if fk.onupdate else None,
            ),
        )
    if column.comment:
        descriptor = descriptor.comment(column.comment)
    return descriptor


def _convert_table(table: Table, *, schema: str | None, dialect: Dialect) -> TableDefinition:
    pk_columns = [c.name for c in table.primary_key.columns]
    single_pk = len(pk_columns) == 1
    columns = {c.name: _convert_column(c, single_pk) for c in table.columns}

    foreign_keys = []
    for constraint in table.foreign_key_constraints:
        if len(constraint.columns) < 2:
            continue
        foreign_keys.append(
            ForeignKeyDefinition(
                columns=[c.name for c in constraint.columns],
                ref_table=constraint.referred_table.name,
                ref_columns=[e.column.name for e in constraint.elements],
                name=constraint.name,
            )
        )

    indexes = [
        IndexDefinition(
            name=index.name,
            columns=[c.name for c in index.columns],
            unique=bool(index.unique),
        )
        for index in sorted(table.indexes, key=lambda i: i.name or "")
        if index.columns
    ]

    return define_table(
        table.name,
        columns,
        schema=schema or table.schema,
        primary_key=pk_columns if len(pk_columns) > 1 else None,
        foreign_keys=foreign_keys,
        indexes=indexes,
        dialect=dialect,
        comment=table.comment,
    )
