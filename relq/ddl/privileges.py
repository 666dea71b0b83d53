"""GRANT, REVOKE and ALTER DEFAULT PRIVILEGES builders.

GRANT and REVOKE share the privilege list (optionally per column), the
target object selection and the grantee rendering; they differ only in the
verb, the ``TO``/``FROM`` keyword and their trailing options.  Both also
support role membership (``GRANT role TO user``) via :meth:`roles`.

Grantee keywords ``PUBLIC``, ``CURRENT_USER``, ``SESSION_USER`` and
``CURRENT_ROLE`` render bare; anything else is a quoted identifier.
"""
from __future__ import annotations

from typing import Literal

from relq.pg_format import ident
from relq.query.base import Statement

_GRANTEE_KEYWORDS = frozenset({"PUBLIC", "CURRENT_USER", "SESSION_USER", "CURRENT_ROLE"})

# Object names of these kinds are signatures or OIDs, not identifiers.
_UNQUOTED_OBJECTS = frozenset({"FUNCTION", "PROCEDURE", "ROUTINE", "LARGE OBJECT"})

#: Object kinds for ``ALTER DEFAULT PRIVILEGES``.
DefaultPrivilegeTarget = Literal["TABLES", "SEQUENCES", "FUNCTIONS", "ROUTINES", "TYPES", "SCHEMAS"]


def format_grantees(grantees: list[str]) -> str:
    return ", ".join(g.upper() if g.upper() in _GRANTEE_KEYWORDS else ident(g) for g in grantees)


class _PrivilegeStatement(Statement):
    """Privilege list, target objects and grantees."""

    def __init__(self) -> None:
        self.privileges: list[str] = []
        self._column_privileges: list[tuple[str, list[str]]] = []
        self.object_type: str | None = None
        self.object_names: list[str] = []
        self._schema: str | None = None
        self.grantees: list[str] = []
        self._granted_by: str | None = None
        self._role_names: list[str] = []

    # -- privileges ------------------------------------------------------

    def _privilege(self, privilege: str, columns: tuple[str, ...]):
        if columns:
            self._column_privileges.append((privilege, list(columns)))
        else:
            self.privileges.append(privilege)
        return self

    def select(self, *columns: str):
        return self._privilege("SELECT", columns)

    def insert(self, *columns: str):
        return self._privilege("INSERT", columns)

    def update(self, *columns: str):
        return self._privilege("UPDATE", columns)

    def references(self, *columns: str):
        return self._privilege("REFERENCES", columns)

    def all_(self):
        self.privileges.append("ALL PRIVILEGES")
        return self

    # -- targets ---------------------------------------------------------

    def on(self, object_type: str, *names: str | int):
        self.object_type = object_type.upper()
        self.object_names = [str(n) for n in names]
        self._schema = None
        return self

    def on_table(self, *names: str):
        return self.on("TABLE", *names)

    def on_sequence(self, *names: str):
        return self.on("SEQUENCE", *names)

    def on_function(self, *signatures: str):
        return self.on("FUNCTION", *signatures)

    def on_procedure(self, *signatures: str):
        return self.on("PROCEDURE", *signatures)

    def on_database(self, *names: str):
        return self.on("DATABASE", *names)

    def on_schema(self, *names: str):
        return self.on("SCHEMA", *names)

    def on_tablespace(self, *names: str):
        return self.on("TABLESPACE", *names)

    def on_type(self, *names: str):
        return self.on("TYPE", *names)

    def on_domain(self, *names: str):
        return self.on("DOMAIN", *names)

    def on_language(self, *names: str):
        return self.on("LANGUAGE", *names)

    def on_large_object(self, *oids: int):
        return self.on("LARGE OBJECT", *oids)

    def _on_all(self, kind: str, schema: str):
        self.object_type = f"ALL {kind} IN SCHEMA"
        self.object_names = []
        self._schema = schema
        return self

    def on_all_tables_in_schema(self, schema: str):
        return self._on_all("TABLES", schema)

    def on_all_sequences_in_schema(self, schema: str):
        return self._on_all("SEQUENCES", schema)

    def on_all_functions_in_schema(self, schema: str):
        return self._on_all("FUNCTIONS", schema)

    def on_all_procedures_in_schema(self, schema: str):
        return self._on_all("PROCEDURES", schema)

    def on_all_routines_in_schema(self, schema: str):
        return self._on_all("ROUTINES", schema)

    # -- membership and provenance --------------------------------------

    def roles(self, *names: str):
        """Switch to role membership: ``GRANT r1, r2 TO ...``."""
        self._role_names = list(names)
        return self

    def granted_by(self, role: str):
        self._granted_by = role
        return self

    # -- rendering helpers ----------------------------------------------

    def _privilege_list(self) -> str:
        parts = list(self.privileges)
        parts.extend(f"{p} ({ident(cols)})" for p, cols in self._column_privileges)
        return ", ".join(parts)

    def _target_sql(self) -> str:
        if self._schema is not None:
            return f" ON {self.object_type} {ident(self._schema)}"
        if self.object_type in _UNQUOTED_OBJECTS:
            names = ", ".join(self.object_names)
        else:
            names = ident(self.object_names)
        return f" ON {self.object_type} {names}"

    def _check(self, grantee_hint: str) -> None:
        if self._role_names:
            if not self.grantees:
                raise self._missing("grantees", grantee_hint, message="No grantees specified")
            return
        if not self._privilege_list():
            raise self._missing(
                "privileges", "Use .select(), .insert(), .all_() and friends.", message="No privileges specified"
            )
        if not self.object_type:
            raise self._missing("object_type", "Use .on_table(), .on_schema(), etc.", message="Object type required")
        if not self.grantees:
            raise self._missing("grantees", grantee_hint, message="No grantees specified")

    def _granted_by_sql(self) -> str:
        return f" GRANTED BY {ident(self._granted_by)}" if self._granted_by else ""


class GrantBuilder(_PrivilegeStatement):
    """Fluent GRANT builder.

    Example::

        GrantBuilder().select().insert().on_table("users").to("app")
        # GRANT SELECT, INSERT ON TABLE "users" TO "app"
    """

    def __init__(self) -> None:
        super().__init__()
        self._with_grant_option = False
        self._with_admin = False
        self._with_inherit: bool | None = None
        self._with_set: bool | None = None

    def grant(self, *privileges: str) -> GrantBuilder:
        self.privileges.extend(p.upper() for p in privileges)
        return self

    def to(self, *grantees: str) -> GrantBuilder:
        self.grantees.extend(grantees)
        return self

    def to_public(self) -> GrantBuilder:
        return self.to("PUBLIC")

    def with_grant_option(self) -> GrantBuilder:
        self._with_grant_option = True
        return self

    def with_admin(self) -> GrantBuilder:
        self._with_admin = True
        return self

    def with_inherit(self, value: bool = True) -> GrantBuilder:
        self._with_inherit = value
        return self

    def with_set(self, value: bool = True) -> GrantBuilder:
        self._with_set = value
        return self

    def _role_grant(self) -> str:
        sql = f"GRANT {ident(self._role_names)} TO {format_grantees(self.grantees)}"
        options = []
        if self._with_admin:
            options.append("ADMIN OPTION")
        if self._with_inherit is not None:
            options.append(f"INHERIT {str(self._with_inherit).upper()}")
        if self._with_set is not None:
            options.append(f"SET {str(self._with_set).upper()}")
        if options:
            sql += f" WITH {', '.join(options)}"
        return sql + self._granted_by_sql()

    def to_string(self) -> str:
        self._check("Use .to().")
        if self._role_names:
            return self._role_grant()
        sql = f"GRANT {self._privilege_list()}{self._target_sql()} TO {format_grantees(self.grantees)}"
        if self._with_grant_option:
            sql += " WITH GRANT OPTION"
        return sql + self._granted_by_sql()


class RevokeBuilder(_PrivilegeStatement):
    def __init__(self) -> None:
        super().__init__()
        self._cascade: bool | None = None
        self._option_for: Literal["GRANT", "ADMIN", "INHERIT", "SET"] | None = None

    def revoke(self, *privileges: str) -> RevokeBuilder:
        self.privileges.extend(p.upper() for p in privileges)
        return self

    def from_(self, *grantees: str) -> RevokeBuilder:
        self.grantees.extend(grantees)
        return self

    def from_public(self) -> RevokeBuilder:
        return self.from_("PUBLIC")

    def grant_option_for(self) -> RevokeBuilder:
        self._option_for = "GRANT"
        return self

    def admin_option_for(self) -> RevokeBuilder:
        self._option_for = "ADMIN"
        return self

    def inherit_option_for(self) -> RevokeBuilder:
        self._option_for = "INHERIT"
        return self

    def set_option_for(self) -> RevokeBuilder:
        self._option_for = "SET"
        return self

    def cascade(self) -> RevokeBuilder:
        self._cascade = True
        return self

    def restrict(self) -> RevokeBuilder:
        self._cascade = False
        return self

    def _tail(self) -> str:
        sql = self._granted_by_sql()
        if self._cascade is True:
            sql += " CASCADE"
        elif self._cascade is False:
            sql += " RESTRICT"
        return sql

    def to_string(self) -> str:
        self._check("Use .from_().")
        sql = "REVOKE"
        if self._role_names:
            if self._option_for in ("ADMIN", "INHERIT", "SET"):
                sql += f" {self._option_for} OPTION FOR"
            sql += f" {ident(self._role_names)} FROM {format_grantees(self.grantees)}"
            return sql + self._tail()
        if self._option_for == "GRANT":
            sql += " GRANT OPTION FOR"
        sql += f" {self._privilege_list()}{self._target_sql()} FROM {format_grantees(self.grantees)}"
        return sql + self._tail()


class DefaultPrivilegesBuilder(Statement):
    """``ALTER DEFAULT PRIVILEGES [FOR ROLE ...] [IN SCHEMA ...] GRANT|REVOKE ...``."""

    def __init__(self) -> None:
        self._for_roles: list[str] = []
        self._in_schemas: list[str] = []
        self._is_grant = True
        self.privileges: list[str] = []
        self.target: DefaultPrivilegeTarget | None = None
        self.grantees: list[str] = []
        self._with_grant_option = False
        self._cascade = False

    def for_role(self, *roles: str) -> DefaultPrivilegesBuilder:
        self._for_roles = list(roles)
        return self

    def in_schema(self, *schemas: str) -> DefaultPrivilegesBuilder:
        self._in_schemas = list(schemas)
        return self

    def grant(self, *privileges: str) -> DefaultPrivilegesBuilder:
        self._is_grant = True
        self.privileges = [p.upper() for p in privileges]
        return self

    def revoke(self, *privileges: str) -> DefaultPrivilegesBuilder:
        self._is_grant = False
        self.privileges = [p.upper() for p in privileges]
        return self

    def on(self, target: DefaultPrivilegeTarget) -> DefaultPrivilegesBuilder:
        self.target = target
        return self

    def on_tables(self) -> DefaultPrivilegesBuilder:
        return self.on("TABLES")

    def on_sequences(self) -> DefaultPrivilegesBuilder:
        return self.on("SEQUENCES")

    def on_functions(self) -> DefaultPrivilegesBuilder:
        return self.on("FUNCTIONS")

    def on_types(self) -> DefaultPrivilegesBuilder:
        return self.on("TYPES")

    def to(self, *grantees: str) -> DefaultPrivilegesBuilder:
        self.grantees = list(grantees)
        return self

    from_ = to

    def with_grant_option(self) -> DefaultPrivilegesBuilder:
        self._with_grant_option = True
        return self

    def cascade(self) -> DefaultPrivilegesBuilder:
        self._cascade = True
        return self

    def to_string(self) -> str:
        if not self.privileges:
            raise self._missing("privileges", "Use .grant(...) or .revoke(...).")
        if not self.target:
            raise self._missing("target", "Use .on_tables(), .on_sequences(), etc.")
        if not self.grantees:
            raise self._missing("grantees", "Use .to(...) or .from_(...).")
        sql = "ALTER DEFAULT PRIVILEGES"
        if self._for_roles:
            sql += f" FOR ROLE {ident(self._for_roles)}"
        if self._in_schemas:
            sql += f" IN SCHEMA {ident(self._in_schemas)}"
        privileges = ", ".join(self.privileges)
        grantees = format_grantees(self.grantees)
        if self._is_grant:
            sql += f" GRANT {privileges} ON {self.target} TO {grantees}"
            if self._with_grant_option:
                sql += " WITH GRANT OPTION"
        else:
            sql += f" REVOKE {privileges} ON {self.target} FROM {grantees}"
            if self._cascade:
                sql += " CASCADE"
        return sql
