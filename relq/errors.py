"""Custom exception hierarchy for relq.

All public errors inherit from :class:`RelqError` so callers can catch the
base class for any relq-specific failure.  Every error carries a UTC
timestamp and the context fields of its kind, and serialises to a stable
JSON shape via :meth:`RelqError.to_dict`.

Driver exceptions never escape the client as-is: :func:`parse_postgres_error`
re-types them into connection, timeout, or query errors at the boundary.
"""
from __future__ import annotations

import json
import traceback
from datetime import datetime, timezone
from typing import Any

#: Network-level error codes that indicate the backend is unreachable.
NETWORK_ERROR_CODES: frozenset[str] = frozenset(
    {
        "ECONNREFUSED",
        "ECONNRESET",
        "ENOTFOUND",
        "ESERVFAIL",
        "ETIMEDOUT",
        "EPIPE",
        "EAI_AGAIN",
        "EHOSTUNREACH",
        "ENETUNREACH",
        "CONNECTION_LOST",
        "PROTOCOL_CONNECTION_LOST",
    }
)

#: SQLSTATE codes that mean the server dropped or refused the session.
CONNECTION_SQLSTATES: frozenset[str] = frozenset(
    {"57P01", "57P03", "08006", "08001", "08004", "08003", "08000"}
)

#: SQLSTATE for ``canceling statement due to statement timeout``.
TIMEOUT_SQLSTATE = "57014"

_INSPECT_FRAMES = 5


class RelqError(Exception):
    """Base exception for all relq errors.

    Args:
        message: Human-readable description.
        cause: The underlying exception, when this error wraps another.

    Attributes:
        timestamp: UTC time at which the error was created.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        if cause is not None:
            self.__cause__ = cause

    @property
    def name(self) -> str:
        return type(self).__name__

    def context(self) -> dict[str, Any]:
        """Return the kind-specific context fields (``None`` values dropped)."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        """Return the stable JSON-serialisable shape of this error."""
        data: dict[str, Any] = {
            "name": self.name,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.cause is not None:
            data["cause"] = str(self.cause)
        data.update({k: v for k, v in self.context().items() if v is not None})
        return data

    def to_error_response(self) -> dict[str, Any]:
        """Alias of :meth:`to_dict` for API error bodies."""
        return self.to_dict()

    def inspect(self) -> str:
        """Render the human inspector form.

        The output lists the timestamp, the labeled context fields, the
        cause (if any), and the top five frames of the attached traceback.
        """
        lines = [f"{self.name}: {self.message}"]
        lines.append(f"{'timestamp':>10}: {self.timestamp.isoformat()}")
        for key, value in self.context().items():
            if value is None:
                continue
            lines.append(f"{key:>10}: {json.dumps(value, default=str)}")
        if self.cause is not None:
            lines.append(f"{'cause':>10}: {self.cause}")
        if self.__traceback__ is not None:
            frames = traceback.extract_tb(self.__traceback__)[:_INSPECT_FRAMES]
            for frame in frames:
                lines.append(f"    at {frame.name} ({frame.filename}:{frame.lineno})")
        return "\n".join(lines)


class RelqConnectionError(RelqError):
    """Raised when the backend cannot be reached, is lost, or refuses us.

    Args:
        message: Human-readable description.
        code: Network error code or SQLSTATE.
        host: Target host, when known.
        port: Target port, when known.
        cause: Underlying driver exception.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        host: str | None = None,
        port: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.code = code
        self.host = host
        self.port = port

    def context(self) -> dict[str, Any]:
        return {"code": self.code, "host": self.host, "port": self.port}


class RelqQueryError(RelqError):
    """Raised when the backend rejects a statement.

    Args:
        message: Human-readable description.
        sql: The statement text that failed.
        code: SQLSTATE reported by the backend.
        detail: Backend ``DETAIL`` line.
        hint: Backend ``HINT`` line, or a relq remediation hint.
        cause: Underlying driver exception.
    """

    def __init__(
        self,
        message: str,
        sql: str | None = None,
        code: str | None = None,
        detail: str | None = None,
        hint: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.sql = sql
        self.code = code
        self.detail = detail
        self.hint = hint

    def context(self) -> dict[str, Any]:
        return {"sql": self.sql, "code": self.code, "detail": self.detail, "hint": self.hint}


class RelqTransactionError(RelqError):
    """Raised on an illegal transaction transition.

    Args:
        message: Human-readable description.
        operation: The attempted operation (``begin``, ``commit`` ...).
        transaction_state: The state the transaction was in.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        transaction_state: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.operation = operation
        self.transaction_state = transaction_state

    def context(self) -> dict[str, Any]:
        return {"operation": self.operation, "transaction_state": self.transaction_state}


class RelqTimeoutError(RelqError):
    """Raised when an operation exceeds its deadline.

    Args:
        message: Human-readable description.
        timeout: The deadline in milliseconds, when known.
        operation: The operation that timed out.
    """

    def __init__(
        self,
        message: str,
        timeout: int | None = None,
        operation: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.timeout = timeout
        self.operation = operation

    def context(self) -> dict[str, Any]:
        return {"timeout": self.timeout, "operation": self.operation}


class RelqPoolError(RelqError):
    """Raised when the connection pool is exhausted or misconfigured."""

    def __init__(
        self,
        message: str,
        pool_size: int | None = None,
        active_connections: int | None = None,
        waiting_clients: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.pool_size = pool_size
        self.active_connections = active_connections
        self.waiting_clients = waiting_clients

    def context(self) -> dict[str, Any]:
        return {
            "pool_size": self.pool_size,
            "active_connections": self.active_connections,
            "waiting_clients": self.waiting_clients,
        }


class RelqConfigError(RelqError):
    """Raised when configuration is invalid.

    Detected when the configuration is built, before any statement is
    executed.

    Args:
        message: Human-readable description.
        field: The offending configuration field.
        value: The rejected value.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.field = field
        self.value = value

    def context(self) -> dict[str, Any]:
        return {"field": self.field, "value": self.value}


class RelqEnvironmentError(RelqError):
    """Raised when a required environment setting is missing or malformed."""

    def __init__(
        self,
        message: str,
        environment: str | None = None,
        reason: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.environment = environment
        self.reason = reason

    def context(self) -> dict[str, Any]:
        return {"environment": self.environment, "reason": self.reason}


class RelqBuilderError(RelqError):
    """Raised when a fluent builder renders without a required clause.

    Args:
        message: Human-readable description.
        builder: Name of the builder class.
        missing: The missing field or clause.
        hint: How to fix the call chain.
    """

    def __init__(
        self,
        message: str,
        builder: str | None = None,
        missing: str | None = None,
        hint: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause)
        self.builder = builder
        self.missing = missing
        self.hint = hint

    def context(self) -> dict[str, Any]:
        return {"builder": self.builder, "missing": self.missing, "hint": self.hint}


class FormatError(RelqBuilderError):
    """Raised by :func:`relq.pg_format.format_sql` on a bad template or argument."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message, builder="format", hint=hint)


class ForeignKeyResolutionError(RelqBuilderError):
    """Raised when no relation connects two table keys."""

    def __init__(self, from_key: str, to_key: str, available: list[str]) -> None:
        super().__init__(
            f"No relation found between '{from_key}' and '{to_key}'.",
            builder="RelationsGraph",
            missing=f"{from_key} -> {to_key}",
            hint=f"Available relations for '{from_key}': {available}",
        )
        self.from_key = from_key
        self.to_key = to_key
        self.available = available


# ---------------------------------------------------------------------------
# Driver error translation
# ---------------------------------------------------------------------------


def _error_code(exc: BaseException) -> str | None:
    code = getattr(exc, "sqlstate", None) or getattr(exc, "pgcode", None)
    if code:
        return str(code)
    code = getattr(exc, "code", None)
    if isinstance(code, str):
        return code
    errno = getattr(exc, "errno", None)
    if errno is not None:
        import errno as errno_mod

        return errno_mod.errorcode.get(errno)
    return None


def _is_connection_failure(exc: BaseException) -> bool:
    if isinstance(exc, (OSError, ConnectionError)):
        return True
    # psycopg raises OperationalError without a SQLSTATE when the socket fails
    return type(exc).__name__ in {"OperationalError", "InterfaceError"}


def _diag(exc: BaseException, attr: str) -> str | None:
    diag = getattr(exc, "diag", None)
    if diag is None:
        return None
    return getattr(diag, attr, None)


def parse_postgres_error(
    exc: BaseException,
    sql: str | None = None,
    host: str | None = None,
    port: int | None = None,
) -> RelqError:
    """Re-type a driver exception into the relq error taxonomy.

    * A recognised network code, an :class:`OSError`, or a connection
      SQLSTATE becomes :class:`RelqConnectionError`.
    * SQLSTATE ``57014`` becomes :class:`RelqTimeoutError`.
    * Everything else becomes :class:`RelqQueryError`.

    Args:
        exc: The exception raised by the driver.
        sql: The statement being executed.
        host: Connection host, for connection errors.
        port: Connection port, for connection errors.

    Returns:
        The translated error (not raised).
    """
    if isinstance(exc, RelqError):
        return exc
    code = _error_code(exc)
    message = str(exc).strip() or type(exc).__name__
    if code in NETWORK_ERROR_CODES or code in CONNECTION_SQLSTATES or (
        code is None and _is_connection_failure(exc)
    ):
        return RelqConnectionError(message, code=code, host=host, port=port, cause=exc)
    if code == TIMEOUT_SQLSTATE:
        return RelqTimeoutError(message, operation="query", cause=exc)
    return RelqQueryError(
        message,
        sql=sql,
        code=code,
        detail=_diag(exc, "message_detail"),
        hint=_diag(exc, "message_hint"),
        cause=exc,
    )


def wrap_error(exc: BaseException, context: str | None = None) -> RelqError:
    """Wrap a foreign exception in :class:`RelqError`; relq errors pass through."""
    if isinstance(exc, RelqError):
        return exc
    message = f"{context}: {exc}" if context else str(exc)
    return RelqError(message, cause=exc)


def is_relq_error(exc: object) -> bool:
    """Return ``True`` when *exc* belongs to the relq error hierarchy."""
    return isinstance(exc, RelqError)
