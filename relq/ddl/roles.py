"""Role management: CREATE / ALTER / DROP ROLE, SET ROLE, REASSIGN / DROP OWNED."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from relq.pg_format import format_sql, ident
from relq.query.base import Statement

_UNSET = object()

# (option attribute, keyword when true, keyword when false)
_FLAGS = (
    ("superuser", "SUPERUSER", "NOSUPERUSER"),
    ("createdb", "CREATEDB", "NOCREATEDB"),
    ("createrole", "CREATEROLE", "NOCREATEROLE"),
    ("inherit", "INHERIT", "NOINHERIT"),
    ("login", "LOGIN", "NOLOGIN"),
    ("replication", "REPLICATION", "NOREPLICATION"),
    ("bypass_rls", "BYPASSRLS", "NOBYPASSRLS"),
)


class _RoleOptions:
    """Attribute options shared by CREATE ROLE and ALTER ROLE."""

    def __init__(self) -> None:
        self._flags: dict[str, bool] = {}
        self._connection_limit: int | None = None
        self._password: Any = _UNSET
        self._valid_until: str | datetime | None = None

    def superuser(self, value: bool = True):
        self._flags["superuser"] = value
        return self

    def createdb(self, value: bool = True):
        self._flags["createdb"] = value
        return self

    def createrole(self, value: bool = True):
        self._flags["createrole"] = value
        return self

    def inherit(self, value: bool = True):
        self._flags["inherit"] = value
        return self

    def login(self, value: bool = True):
        self._flags["login"] = value
        return self

    def replication(self, value: bool = True):
        self._flags["replication"] = value
        return self

    def bypass_rls(self, value: bool = True):
        self._flags["bypass_rls"] = value
        return self

    def connection_limit(self, limit: int):
        self._connection_limit = limit
        return self

    def password(self, password: str | None):
        """``None`` renders ``PASSWORD NULL``."""
        self._password = password
        return self

    def valid_until(self, timestamp: str | datetime):
        self._valid_until = timestamp
        return self

    def _options(self) -> list[str]:
        opts = []
        for attr, on, off in _FLAGS:
            if attr in self._flags:
                opts.append(on if self._flags[attr] else off)
        if self._connection_limit is not None:
            opts.append(f"CONNECTION LIMIT {int(self._connection_limit)}")
        if self._password is None:
            opts.append("PASSWORD NULL")
        elif self._password is not _UNSET:
            opts.append(format_sql("PASSWORD %L", self._password))
        if self._valid_until:
            opts.append(format_sql("VALID UNTIL %L", self._valid_until))
        return opts


class CreateRoleBuilder(_RoleOptions, Statement):
    """Fluent CREATE ROLE builder.

    Example::

        CreateRoleBuilder("app").login().password("secret").connection_limit(10)
        # CREATE ROLE "app" WITH LOGIN CONNECTION LIMIT 10 PASSWORD 'secret'
    """

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self._in_role: list[str] = []
        self._role: list[str] = []
        self._admin: list[str] = []

    def in_role(self, *roles: str) -> CreateRoleBuilder:
        self._in_role = list(roles)
        return self

    def role(self, *roles: str) -> CreateRoleBuilder:
        self._role = list(roles)
        return self

    def admin(self, *roles: str) -> CreateRoleBuilder:
        self._admin = list(roles)
        return self

    def to_string(self) -> str:
        opts = self._options()
        if self._in_role:
            opts.append(f"IN ROLE {ident(self._in_role)}")
        if self._role:
            opts.append(f"ROLE {ident(self._role)}")
        if self._admin:
            opts.append(f"ADMIN {ident(self._admin)}")
        sql = f"CREATE ROLE {ident(self.name)}"
        if opts:
            sql += f" WITH {' '.join(opts)}"
        return sql


class AlterRoleBuilder(_RoleOptions, Statement):
    """ALTER ROLE: rename, a configuration SET/RESET, or attribute changes.

    Exactly one form renders, in that priority order.
    """

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self._rename_to: str | None = None
        self._set: tuple[str, Any] | None = None
        self._reset: str | None = None
        self._in_database: str | None = None

    def rename_to(self, new_name: str) -> AlterRoleBuilder:
        self._rename_to = new_name
        return self

    def set(self, parameter: str, value: Any) -> AlterRoleBuilder:
        self._set = (parameter, value)
        return self

    def set_default(self, parameter: str) -> AlterRoleBuilder:
        self._set = (parameter, None)
        return self

    def reset(self, parameter: str) -> AlterRoleBuilder:
        self._reset = parameter
        return self

    def reset_all(self) -> AlterRoleBuilder:
        self._reset = "ALL"
        return self

    def in_database(self, database: str) -> AlterRoleBuilder:
        self._in_database = database
        return self

    def to_string(self) -> str:
        role = f"ALTER ROLE {ident(self.name)}"
        if self._rename_to:
            return f"{role} RENAME TO {ident(self._rename_to)}"
        scoped = f"{role} IN DATABASE {ident(self._in_database)}" if self._in_database else role
        if self._set is not None:
            parameter, value = self._set
            if value is None:
                return f"{scoped} SET {parameter} TO DEFAULT"
            return f"{scoped} SET {parameter} TO {format_sql('%L', value)}"
        if self._reset:
            return f"{scoped} RESET {self._reset}"
        opts = self._options()
        if not opts:
            raise self._missing("options", "Set an attribute, rename_to(), set() or reset().")
        return f"{role} WITH {' '.join(opts)}"


class DropRoleBuilder(Statement):
    def __init__(self, *names: str) -> None:
        self.names = list(names)
        self._if_exists = False

    def if_exists(self) -> DropRoleBuilder:
        self._if_exists = True
        return self

    def to_string(self) -> str:
        if not self.names:
            raise self._missing("name", "Pass at least one role name.")
        sql = "DROP ROLE IF EXISTS" if self._if_exists else "DROP ROLE"
        return f"{sql} {ident(self.names)}"


class SetRoleBuilder(Statement):
    def __init__(self, role: str | None = None) -> None:
        self._role = role
        self._reset = False
        self._scope: str | None = None

    def role(self, name: str) -> SetRoleBuilder:
        self._role = name
        return self

    def none(self) -> SetRoleBuilder:
        self._role = "NONE"
        return self

    def reset(self) -> SetRoleBuilder:
        self._reset = True
        return self

    def local(self) -> SetRoleBuilder:
        self._scope = "LOCAL"
        return self

    def session(self) -> SetRoleBuilder:
        self._scope = "SESSION"
        return self

    def to_string(self) -> str:
        if self._reset:
            return "RESET ROLE"
        if not self._role:
            raise self._missing("role", "Use .role(name), .none() or .reset().")
        sql = f"SET {self._scope} ROLE" if self._scope else "SET ROLE"
        return f"{sql} {'NONE' if self._role == 'NONE' else ident(self._role)}"


class ReassignOwnedBuilder(Statement):
    def __init__(self) -> None:
        self._old: list[str] = []
        self._new: str | None = None

    def by(self, *roles: str) -> ReassignOwnedBuilder:
        self._old = list(roles)
        return self

    def to(self, role: str) -> ReassignOwnedBuilder:
        self._new = role
        return self

    def to_string(self) -> str:
        if not self._old:
            raise self._missing("old_roles", "Use .by().", message="No old roles specified")
        if not self._new:
            raise self._missing("new_role", "Use .to().", message="No new role specified")
        return f"REASSIGN OWNED BY {ident(self._old)} TO {ident(self._new)}"


class DropOwnedBuilder(Statement):
    def __init__(self) -> None:
        self._roles: list[str] = []
        self._cascade: bool | None = None

    def by(self, *roles: str) -> DropOwnedBuilder:
        self._roles = list(roles)
        return self

    def cascade(self) -> DropOwnedBuilder:
        self._cascade = True
        return self

    def restrict(self) -> DropOwnedBuilder:
        self._cascade = False
        return self

    def to_string(self) -> str:
        if not self._roles:
            raise self._missing("roles", "Use .by().", message="No roles specified")
        sql = f"DROP OWNED BY {ident(self._roles)}"
        if self._cascade is True:
            sql += " CASCADE"
        elif self._cascade is False:
            sql += " RESTRICT"
        return sql
