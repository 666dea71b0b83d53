"""Executing rendered statements against a backend.

The builders never talk to a database; :class:`Relq` is the thin layer
that renders them, hands the SQL text to a :class:`Driver`, and re-types
driver failures into the relq error taxonomy::

    db = Relq(config)
    users = db.table("users")

    db.execute(users.select(["id", "email"]).where(lambda q: q.equal("active", True)))

    with db.transaction() as tx:
        tx.execute(users.insert({"email": "a@example.com"}))
        with tx.savepoint():
            tx.execute(users.update({"active": False}).where(lambda q: q.equal("id", 1)))

Any object with ``execute(sql) -> QueryResult`` and ``close()`` can stand
in for :class:`PsycopgDriver`.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from relq.config import RelqConfig
from relq.dialects.capabilities import DialectCapabilities
from relq.errors import RelqBuilderError, RelqConfigError, RelqError, RelqTransactionError, parse_postgres_error
from relq.log import configure_logging
from relq.query.base import ReturningMixin, Statement
from relq.query.count import CountBuilder
from relq.query.delete import DeleteBuilder
from relq.query.insert import InsertBuilder, InsertFromSelectBuilder
from relq.query.select import SelectBuilder, SelectColumn
from relq.query.update import UpdateBuilder
from relq.query.values import ColumnTypeResolver
from relq.schema.table import TableDefinition
from relq.session.listener import ListenerConnection
from relq.session.transaction import SavepointBuilder, TransactionBuilder

logger = logging.getLogger(__name__)

TransactionState = Literal["idle", "active", "committed", "rolled_back"]


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by one statement."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    fields: list[str] = field(default_factory=list)

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None


class Driver(Protocol):
    """The backend contract: run SQL text, return rows."""

    def execute(self, sql: str) -> QueryResult: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# psycopg driver
# ---------------------------------------------------------------------------


class PsycopgDriver:
    """:class:`Driver` backed by one psycopg 3 connection in autocommit mode.

    The connection is opened on first use.  Transactions are driven by the
    statements themselves (``BEGIN`` / ``COMMIT``), so autocommit stays on.
    """

    def __init__(self, config: RelqConfig) -> None:
        self.config = config
        self._conn: Any = None

    def _connection(self) -> Any:
        if self._conn is None or self._conn.closed:
            import psycopg
            from psycopg.rows import dict_row

            try:
                self._conn = psycopg.connect(self.config.conninfo(), autocommit=True, row_factory=dict_row)
            except Exception as exc:
                raise parse_postgres_error(exc, host=self.config.host, port=self.config.port) from exc
        return self._conn

    def execute(self, sql: str) -> QueryResult:
        conn = self._connection()
        try:
            cursor = conn.execute(sql)
            if cursor.description is None:
                return QueryResult(row_count=max(cursor.rowcount, 0))
            rows = cursor.fetchall()
            return QueryResult(
                rows=list(rows),
                row_count=max(cursor.rowcount, len(rows)),
                fields=[column.name for column in cursor.description],
            )
        except Exception as exc:
            raise parse_postgres_error(exc, sql, host=self.config.host, port=self.config.port) from exc

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


# ---------------------------------------------------------------------------
# Table-bound builders
# ---------------------------------------------------------------------------


class TableQueries:
    """Builders for one table, pre-wired with its column resolvers.

    Args:
        table: SQL table name.
        resolver: Maps programmatic column keys to SQL names.
        type_resolver: Reports declared column types.
    """

    def __init__(
        self,
        table: str,
        resolver: Any = None,
        type_resolver: ColumnTypeResolver | None = None,
    ) -> None:
        self.table = table
        self.resolver = resolver
        self.type_resolver = type_resolver

    @classmethod
    def for_definition(cls, definition: TableDefinition) -> TableQueries:
        return cls(definition.name, definition.sql_name, definition.column_type)

    def _wire(self, builder: Any) -> Any:
        builder.set_column_resolver(self.resolver)
        builder.set_column_type_resolver(self.type_resolver)
        return builder

    def select(self, columns: SelectColumn | list[SelectColumn] | None = None) -> SelectBuilder:
        return self._wire(SelectBuilder(self.table, columns))

    def insert(self, data: dict[str, Any]) -> InsertBuilder:
        return self._wire(InsertBuilder(self.table, data))

    def insert_many(self, rows: list[dict[str, Any]]) -> InsertBuilder:
        if not rows:
            raise RelqBuilderError(
                "insert_many() needs at least one row.", builder="InsertBuilder", missing="rows"
            )
        return self._wire(InsertBuilder(self.table).add_rows(rows))

    def insert_from(self, columns: list[str], select: Any) -> InsertFromSelectBuilder:
        return self._wire(InsertFromSelectBuilder(self.table, columns, select))

    def update(self, data: dict[str, Any] | None = None) -> UpdateBuilder:
        return self._wire(UpdateBuilder(self.table, data))

    def delete(self) -> DeleteBuilder:
        return self._wire(DeleteBuilder(self.table))

    def count(self) -> CountBuilder:
        return self._wire(CountBuilder(self.table))


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


class Transaction:
    """One transaction on a :class:`Relq` client.

    Obtained from :meth:`Relq.transaction`; the context manager issues
    ``BEGIN`` on entry, ``COMMIT`` on a clean exit and ``ROLLBACK`` when
    the block raises.
    """

    def __init__(self, client: Relq, builder: TransactionBuilder | None = None) -> None:
        self.client = client
        self.builder = builder or TransactionBuilder()
        self.state: TransactionState = "idle"

    def _illegal(self, operation: str, message: str) -> RelqTransactionError:
        return RelqTransactionError(message, operation=operation, transaction_state=self.state)

    def _require_active(self, operation: str) -> None:
        if self.state != "active":
            raise self._illegal(operation, f"Cannot {operation}: transaction is {self.state}.")

    def begin(self) -> Transaction:
        if self.state == "active":
            raise self._illegal("begin", "Transaction already started; use savepoint() to nest.")
        if self.state != "idle":
            raise self._illegal("begin", f"Transaction is already {self.state}.")
        self.client._run(self.builder.begin())
        self.state = "active"
        return self

    def commit(self) -> None:
        self._require_active("commit")
        self.client._run(self.builder.commit())
        self.state = "committed"

    def rollback(self) -> None:
        self._require_active("rollback")
        self.client._run(self.builder.rollback())
        self.state = "rolled_back"

    def execute(self, statement: Statement | str) -> QueryResult:
        self._require_active("execute")
        return self.client._execute(statement)

    @contextmanager
    def savepoint(self, name: str | None = None) -> Iterator[SavepointBuilder]:
        """Run the block under a savepoint, rolling back to it when the block raises."""
        self._require_active("savepoint")
        point = self.builder.savepoint(name)
        self.client._run(point.create())
        try:
            yield point
        except BaseException:
            if self.state == "active":
                self.client._run(point.rollback())
                self.builder.release(point.name)
            raise
        else:
            self._require_active("release")
            self.client._run(self.builder.release(point.name))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class Relq:
    """Configured entry point: table builders, execution, transactions, listener.

    Args:
        config: Validated configuration.
        driver: Backend driver; a :class:`PsycopgDriver` is created from
            *config* when omitted.
    """

    def __init__(self, config: RelqConfig, driver: Driver | None = None) -> None:
        configure_logging(config.log_level)
        self.config = config
        self.capabilities: DialectCapabilities = config.effective_capabilities()
        self.driver: Driver = driver or PsycopgDriver(config)
        self._transaction: Transaction | None = None
        self._listener: ListenerConnection | None = None
        self._closed = False

    # -- schema -----------------------------------------------------------

    def definition(self, name: str) -> TableDefinition | None:
        """Find a table definition by programmatic key or SQL name."""
        tables = self.config.schema_tables
        if name in tables:
            return tables[name]
        return next((t for t in tables.values() if t.name == name), None)

    def table(self, name: str) -> TableQueries:
        """Builders for *name*; undeclared tables get no column mapping."""
        definition = self.definition(name)
        if definition is None:
            return TableQueries(name)
        return TableQueries.for_definition(definition)

    # -- execution --------------------------------------------------------

    def _run(self, sql: str) -> QueryResult:
        if self._closed:
            raise RelqTransactionError("Client is closed.", operation="execute", transaction_state="closed")
        logger.debug("Executing: %s", sql)
        try:
            return self.driver.execute(sql)
        except RelqError:
            raise
        except Exception as exc:
            raise parse_postgres_error(exc, sql, host=self.config.host, port=self.config.port) from exc

    def _execute(self, statement: Statement | str) -> QueryResult:
        if isinstance(statement, ReturningMixin) and statement.has_returning and not self.capabilities.returning:
            raise RelqConfigError(
                f"{self.capabilities.display_name} is configured without RETURNING support.",
                field="capabilities",
                value={"returning": False},
            )
        sql = statement if isinstance(statement, str) else statement.to_string()
        return self._run(sql)

    def execute(self, statement: Statement | str) -> QueryResult:
        """Render *statement* and run it.

        Raises:
            RelqConfigError: If the statement has a ``RETURNING`` clause the
                configured dialect does not support.
            RelqConnectionError: If the backend cannot be reached.
            RelqTimeoutError: If the backend cancelled the statement.
            RelqQueryError: For any other backend failure.
        """
        return self._execute(statement)

    @contextmanager
    def transaction(self, builder: TransactionBuilder | None = None) -> Iterator[Transaction]:
        """Run the block inside ``BEGIN`` ... ``COMMIT``.

        Raises:
            RelqTransactionError: If a transaction is already open on this
                client; nest with :meth:`Transaction.savepoint` instead.
        """
        if self._transaction is not None:
            raise RelqTransactionError(
                "A transaction is already open; use tx.savepoint() to nest.",
                operation="begin",
                transaction_state=self._transaction.state,
            )
        tx = Transaction(self, builder)
        tx.begin()
        self._transaction = tx
        try:
            yield tx
        except BaseException:
            if tx.state == "active":
                try:
                    tx.rollback()
                except RelqError as exc:
                    logger.error("ROLLBACK failed: %s", exc)
            raise
        else:
            if tx.state == "active":
                tx.commit()
        finally:
            self._transaction = None

    def create_with(
        self,
        parent_key: str,
        values: dict[str, Any],
        children: Mapping[str, dict[str, Any] | list[dict[str, Any]]],
    ) -> dict[str, Any]:
        """Insert a row and its related rows in one transaction.

        Each child table is joined to the parent through the relations
        graph.  When the child holds the foreign key the parent is inserted
        first and its key copied into every child row; when the parent
        holds it, the (single) child row is inserted first.

        Returns:
            The inserted parent row, keyed by programmatic column names.

        Raises:
            RelqConfigError: If the parent table is not in the schema or the
                dialect has no ``RETURNING``.
            ForeignKeyResolutionError: If a child is not related to the
                parent.
        """
        parent = self.definition(parent_key)
        if parent is None:
            raise RelqConfigError(
                f"create_with() needs '{parent_key}' in the configured schema.", field="schema_tables", value=parent_key
            )
        if not self.capabilities.returning:
            raise RelqConfigError(
                "create_with() reads generated keys through RETURNING.", field="capabilities", value={"returning": False}
            )
        graph = self.config.relations_graph()
        plans = []
        for child_key, data in children.items():
            rows = [data] if isinstance(data, dict) else list(data)
            resolved = graph.resolve_or_raise(child_key, parent_key)
            if resolved.direction == "reverse" and len(rows) > 1:
                raise RelqBuilderError(
                    f"'{parent_key}' references a single '{child_key}' row; got {len(rows)}.",
                    builder="create_with",
                    missing=None,
                    hint=f"Pass one dict for '{child_key}'.",
                )
            plans.append((child_key, rows, resolved))

        parent_values = dict(values)
        with self.transaction() as tx:
            for child_key, rows, resolved in plans:
                if resolved.direction == "reverse" and rows:
                    child = self.table(child_key)
                    row = tx.execute(child.insert(rows[0]).returning("*")).first() or {}
                    parent_values[resolved.to_column] = row.get(self._sql_name(child_key, resolved.from_column))

            parent_row = tx.execute(self.table(parent_key).insert(parent_values).returning("*")).first()
            if parent_row is None:
                raise RelqBuilderError("Parent insert returned no rows.", builder="create_with", missing="rows")

            for child_key, rows, resolved in plans:
                if resolved.direction == "reverse" or not rows:
                    continue
                key_value = parent_row.get(parent.sql_name(resolved.to_column))
                linked = [{**row, resolved.from_column: key_value} for row in rows]
                tx.execute(self.table(child_key).insert_many(linked))
        return {parent.key_for(column) or column: value for column, value in parent_row.items()}

    def _sql_name(self, table_key: str, column: str) -> str:
        definition = self.definition(table_key)
        return definition.sql_name(column) if definition is not None else column

    # -- listener and lifecycle -------------------------------------------

    def listener(self) -> ListenerConnection:
        """The shared :class:`ListenerConnection`, created on first use.

        Raises:
            RelqConfigError: If the dialect has no LISTEN/NOTIFY.
        """
        if not self.capabilities.listen_notify:
            raise RelqConfigError(
                f"{self.capabilities.display_name} does not support LISTEN/NOTIFY.",
                field="dialect",
                value=self.config.dialect,
            )
        if self._listener is None:
            self._listener = ListenerConnection(self.config)
        return self._listener

    def close(self) -> None:
        """Close the driver.  An open listener must be closed with ``await listener.close()``."""
        if self._closed:
            return
        self._closed = True
        self.driver.close()

    def __enter__(self) -> Relq:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
