"""Test fixtures: a sample blog schema as DDL and as table definitions."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from relq.schema import TableDefinition, define_table, integer, sql_now, text, timestamptz, varchar

_FIXTURES_DIR = Path(__file__).parent


def load_ddl(target: Literal["postgres"] = "postgres") -> str:
    """Return the sample DDL script for *target*.

    Args:
        target: Only ``'postgres'`` ships today.

    Returns:
        DDL text with ``CREATE TABLE`` and ``CREATE INDEX`` statements.
    """
    return (_FIXTURES_DIR / f"ddl_{target}.sql").read_text()


def blog_tables(dialect: Literal["postgres", "sqlite"] = "postgres", prefix: str = "") -> dict[str, TableDefinition]:
    """users <- posts, declared with :func:`define_table`.

    Args:
        dialect: Dialect the definitions render for.
        prefix: Prepended to the SQL table names so integration runs do
            not collide with existing tables.
    """
    users = define_table(
        f"{prefix}users",
        {
            "id": integer().primary_key().autoincrement(),
            "name": text().not_null(),
            "email_address": varchar(255, "email").unique(),
        },
        dialect=dialect,
    )
    posts = define_table(
        f"{prefix}posts",
        {
            "id": integer().primary_key().autoincrement(),
            "user_id": integer().not_null().references(f"{prefix}users", on_delete="CASCADE"),
            "title": text().not_null(),
            "created_at": timestamptz().default(sql_now()) if dialect == "postgres" else text(),
        },
        dialect=dialect,
    )
    return {"users": users, "posts": posts}
