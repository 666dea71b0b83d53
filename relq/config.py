"""Client configuration.

Build a configuration through the builder so cross-field rules are checked
once, up front::

    from relq import RelqConfig

    config = (
        RelqConfig.builder()
        .dialect("cockroachdb")
        .host("db.internal", 26257)
        .database("app")
        .credentials("app", "secret")
        .schema({"users": users, "posts": posts})
        .capabilities(returning=False)
        .build()
    )
    config.conninfo()   # "host=db.internal port=26257 dbname=app user=app password=secret"

Connection-shaped fields are handed to the driver unchanged; ``dialect``
and ``capabilities`` select the descriptor used by the validator and the
client's ``RETURNING`` handling.
"""
from __future__ import annotations

import math
import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from relq.dialects.capabilities import DialectCapabilities, DialectName, DialectRegistry
from relq.errors import RelqConfigError, RelqEnvironmentError
from relq.log import LOG_LEVELS, LogLevel
from relq.schema.relations import RelationsGraph
from relq.schema.table import TableDefinition

#: ``sslmode`` values libpq accepts.
SslMode = Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]

_ENV_PREFIX = "RELQ_"


class RelqConfig(BaseModel):
    """Options recognised by :class:`~relq.client.Relq`.

    Attributes:
        dialect: Backend dialect; selects the capability descriptor.
        log_level: Level of the ``relq`` logger.
        host: Server host.
        port: Server port.
        user: Role to connect as.
        password: Password for *user*.
        database: Database name.
        ssl: ``True``/``False`` for ``require``/``disable``, or an explicit
            ``sslmode``.
        application_name: Reported in ``pg_stat_activity``.
        connection_string: A libpq URI or ``key=value`` string; exclusive
            with *host*/*database*.
        pool_min: Minimum pooled connections.
        pool_max: Maximum pooled connections.
        idle_timeout_ms: Idle connection lifetime.
        acquire_timeout_ms: Connection establishment deadline.
        schema_tables: Table definitions keyed by programmatic name.
        relations: Relations graph; derived from *schema_tables* when unset.
        capabilities: Overrides applied to the dialect descriptor
            (``returning=False`` ...).
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    dialect: DialectName = "postgres"
    log_level: LogLevel = "warn"
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    ssl: bool | SslMode | None = None
    application_name: str | None = None
    connection_string: str | None = None
    pool_min: int = 0
    pool_max: int = 10
    idle_timeout_ms: int | None = None
    acquire_timeout_ms: int | None = None
    schema_tables: dict[str, TableDefinition] = Field(default_factory=dict)
    relations: RelationsGraph | None = None
    capabilities: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def builder(cls) -> RelqConfigBuilder:
        """Return a fresh :class:`RelqConfigBuilder`."""
        return RelqConfigBuilder()

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> RelqConfig:
        """Build a configuration from environment variables.

        ``RELQ_DATABASE_URL`` (or ``DATABASE_URL``) supplies the connection
        string; otherwise the libpq variables ``PGHOST``, ``PGPORT``,
        ``PGUSER``, ``PGPASSWORD`` and ``PGDATABASE`` are used.
        ``RELQ_DIALECT`` and ``RELQ_LOG_LEVEL`` are optional.

        Raises:
            RelqEnvironmentError: If no connection settings are present or
                ``PGPORT`` is not an integer.
            RelqConfigError: If the resulting configuration is invalid.
        """
        env = os.environ if environ is None else environ
        builder = cls.builder()
        if dialect := env.get(f"{_ENV_PREFIX}DIALECT"):
            builder.dialect(dialect)  # type: ignore[arg-type]
        if level := env.get(f"{_ENV_PREFIX}LOG_LEVEL"):
            builder.log_level(level)  # type: ignore[arg-type]

        url = env.get(f"{_ENV_PREFIX}DATABASE_URL") or env.get("DATABASE_URL")
        if url:
            return builder.connection_string(url).build()
        if not env.get("PGDATABASE"):
            raise RelqEnvironmentError(
                "No database connection settings found in the environment.",
                environment=f"{_ENV_PREFIX}DATABASE_URL",
                reason="Set RELQ_DATABASE_URL, DATABASE_URL, or PGHOST/PGDATABASE.",
            )
        port = env.get("PGPORT")
        if port is not None and not port.isdigit():
            raise RelqEnvironmentError(
                f"PGPORT must be an integer, got {port!r}.", environment="PGPORT", reason="malformed"
            )
        builder.host(env.get("PGHOST", "localhost"), int(port) if port else None)
        builder.database(env["PGDATABASE"])
        if user := env.get("PGUSER"):
            builder.credentials(user, env.get("PGPASSWORD"))
        return builder.build()

    # ------------------------------------------------------------------
    # Derived settings
    # ------------------------------------------------------------------

    def conninfo(self) -> str:
        """Render a libpq connection string for the driver."""
        from psycopg.conninfo import make_conninfo

        params: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "dbname": self.database,
            "user": self.user,
            "password": self.password,
            "application_name": self.application_name,
        }
        if self.ssl is not None:
            params["sslmode"] = {True: "require", False: "disable"}.get(self.ssl, self.ssl)  # type: ignore[arg-type]
        if self.acquire_timeout_ms is not None:
            params["connect_timeout"] = max(1, math.ceil(self.acquire_timeout_ms / 1000))
        params = {k: v for k, v in params.items() if v is not None}
        return make_conninfo(self.connection_string or "", **params)

    def effective_capabilities(self) -> DialectCapabilities:
        """The dialect descriptor with :attr:`capabilities` overrides applied."""
        return DialectRegistry.get(self.dialect, **self.capabilities)

    def supports_returning(self) -> bool:
        return self.effective_capabilities().returning

    def relations_graph(self) -> RelationsGraph:
        """The declared relations, or the graph derived from :attr:`schema_tables`."""
        if self.relations is not None:
            return self.relations
        return RelationsGraph.from_tables(self.schema_tables)


class RelqConfigBuilder:
    """Fluent builder for :class:`RelqConfig`.

    Always obtained via :meth:`RelqConfig.builder`.  Setters may be called
    in any order; :meth:`build` checks the combination.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def _set(self, **values: Any) -> RelqConfigBuilder:
        self._values.update(values)
        return self

    def dialect(self, name: DialectName) -> RelqConfigBuilder:
        return self._set(dialect=name)

    def log_level(self, level: LogLevel) -> RelqConfigBuilder:
        return self._set(log_level=level)

    def connection_string(self, value: str) -> RelqConfigBuilder:
        return self._set(connection_string=value)

    def host(self, host: str, port: int | None = None) -> RelqConfigBuilder:
        return self._set(host=host, port=port)

    def database(self, name: str) -> RelqConfigBuilder:
        return self._set(database=name)

    def credentials(self, user: str, password: str | None = None) -> RelqConfigBuilder:
        return self._set(user=user, password=password)

    def ssl(self, mode: bool | SslMode = True) -> RelqConfigBuilder:
        return self._set(ssl=mode)

    def application_name(self, name: str) -> RelqConfigBuilder:
        return self._set(application_name=name)

    def pool(self, minimum: int = 0, maximum: int = 10) -> RelqConfigBuilder:
        return self._set(pool_min=minimum, pool_max=maximum)

    def timeouts(self, idle_ms: int | None = None, acquire_ms: int | None = None) -> RelqConfigBuilder:
        return self._set(idle_timeout_ms=idle_ms, acquire_timeout_ms=acquire_ms)

    def schema(self, tables: Mapping[str, TableDefinition]) -> RelqConfigBuilder:
        """Register table definitions by programmatic name."""
        return self._set(schema_tables=dict(tables))

    def relations(self, graph: RelationsGraph) -> RelqConfigBuilder:
        return self._set(relations=graph)

    def capabilities(self, **overrides: Any) -> RelqConfigBuilder:
        """Override dialect capabilities, e.g. ``capabilities(returning=False)``."""
        merged = dict(self._values.get("capabilities", {}))
        merged.update(overrides)
        return self._set(capabilities=merged)

    def build(self) -> RelqConfig:
        """Validate the options and return the :class:`RelqConfig`.

        Raises:
            RelqConfigError: For a connection string combined with
                host/database, neither of them, an inverted pool range, a
                port outside 1..65535, an unknown log level or dialect, or
                an unknown capability override.
        """
        self._validate()
        config = RelqConfig(**self._values)
        config.effective_capabilities()
        return config

    # ------------------------------------------------------------------
    # Internal validation
    # ------------------------------------------------------------------

    def _validate(self) -> None:
        v = self._values
        has_url = bool(v.get("connection_string"))
        has_parts = bool(v.get("host") or v.get("database"))
        if has_url and has_parts:
            raise RelqConfigError(
                "Pass either connection_string or host/database, not both.",
                field="connection_string",
                value=v.get("connection_string"),
            )
        if not has_url and not has_parts:
            raise RelqConfigError(
                "No connection target. Call connection_string() or host()/database().",
                field="connection_string",
            )
        port = v.get("port")
        if port is not None and not 1 <= port <= 65535:
            raise RelqConfigError(f"Port must be in 1..65535, got {port}.", field="port", value=port)
        pool_min, pool_max = v.get("pool_min", 0), v.get("pool_max", 10)
        if pool_min < 0 or pool_max < 1 or pool_min > pool_max:
            raise RelqConfigError(
                f"Invalid pool range {pool_min}..{pool_max}; need 0 <= min <= max and max >= 1.",
                field="pool_min",
                value=pool_min,
            )
        level = v.get("log_level")
        if level is not None and level not in LOG_LEVELS:
            raise RelqConfigError(
                f"Unknown log level '{level}'. Expected one of {sorted(LOG_LEVELS)}.",
                field="log_level",
                value=level,
            )
        dialect = v.get("dialect")
        if dialect is not None and dialect not in DialectRegistry.registered_dialects():
            raise RelqConfigError(
                f"Unknown dialect '{dialect}'. Registered: {DialectRegistry.registered_dialects()}.",
                field="dialect",
                value=dialect,
            )
