"""COPY TO / COPY FROM builders.

Options render inside a single ``WITH (...)`` list in PostgreSQL's
documented order.  ``HEADER`` accepts ``True``/``False`` or ``"MATCH"``
(COPY FROM only).
"""
from __future__ import annotations

from typing import Literal

from relq.pg_format import format_sql, ident
from relq.query.base import Statement

#: COPY data format.
CopyFormat = Literal["TEXT", "CSV", "BINARY"]

HeaderOption = bool | Literal["MATCH"]


class _CopyOptions:
    def __init__(self) -> None:
        self._format: CopyFormat | None = None
        self._header: HeaderOption | None = None
        self._delimiter: str | None = None
        self._null: str | None = None
        self._quote: str | None = None
        self._escape: str | None = None
        self._encoding: str | None = None

    def csv(self):
        self._format = "CSV"
        return self

    def binary(self):
        self._format = "BINARY"
        return self

    def text(self):
        self._format = "TEXT"
        return self

    def with_format(self, fmt: CopyFormat):
        self._format = fmt
        return self

    def with_header(self, value: HeaderOption = True):
        self._header = value
        return self

    def with_delimiter(self, delimiter: str):
        self._delimiter = delimiter
        return self

    def with_null(self, null_string: str):
        self._null = null_string
        return self

    def with_quote(self, quote: str):
        self._quote = quote
        return self

    def with_escape(self, escape: str):
        self._escape = escape
        return self

    def with_encoding(self, encoding: str):
        self._encoding = encoding
        return self

    def _header_sql(self) -> str:
        if self._header == "MATCH":
            return "HEADER MATCH"
        return f"HEADER {'TRUE' if self._header else 'FALSE'}"

    def _common_options(self) -> list[str]:
        opts = []
        if self._format:
            opts.append(f"FORMAT {self._format}")
        if self._header is not None:
            opts.append(self._header_sql())
        if self._delimiter:
            opts.append(format_sql("DELIMITER %L", self._delimiter))
        if self._null is not None:
            opts.append(format_sql("NULL %L", self._null))
        return opts

    def _quoting_options(self) -> list[str]:
        opts = []
        if self._quote:
            opts.append(format_sql("QUOTE %L", self._quote))
        if self._escape:
            opts.append(format_sql("ESCAPE %L", self._escape))
        if self._encoding:
            opts.append(format_sql("ENCODING %L", self._encoding))
        return opts


class CopyToBuilder(_CopyOptions, Statement):
    """``COPY table|(query) TO STDOUT|'file'|PROGRAM 'cmd' [WITH (...)]``."""

    def __init__(self, table: str | None = None) -> None:
        super().__init__()
        self._table = table
        self._query: str | None = None
        self._columns: list[str] = []
        self._destination = "STDOUT"
        self._force_quote: list[str] | Literal["*"] | None = None

    def table(self, table: str) -> CopyToBuilder:
        self._table = table
        self._query = None
        return self

    def query(self, query: Statement | str) -> CopyToBuilder:
        self._query = query if isinstance(query, str) else query.to_string()
        self._table = None
        return self

    def only(self, *columns: str) -> CopyToBuilder:
        self._columns = list(columns)
        return self

    def to_stdout(self) -> CopyToBuilder:
        self._destination = "STDOUT"
        return self

    def to_file(self, filename: str) -> CopyToBuilder:
        self._destination = format_sql("%L", filename)
        return self

    def to_program(self, command: str) -> CopyToBuilder:
        self._destination = format_sql("PROGRAM %L", command)
        return self

    def force_quote(self, columns: list[str] | Literal["*"]) -> CopyToBuilder:
        self._force_quote = columns
        return self

    def to_string(self) -> str:
        if self._query:
            source = f"({self._query})"
        elif self._table:
            source = ident(self._table)
            if self._columns:
                source += f" ({ident(self._columns)})"
        else:
            raise self._missing(
                "source", "Use .table() or .query().", message="COPY TO requires either a table name or query"
            )
        opts = self._common_options() + self._quoting_options()
        if self._force_quote == "*":
            opts.append("FORCE_QUOTE *")
        elif self._force_quote:
            opts.append(f"FORCE_QUOTE ({ident(self._force_quote)})")
        sql = f"COPY {source} TO {self._destination}"
        if opts:
            sql += f" WITH ({', '.join(opts)})"
        return sql


class CopyFromBuilder(_CopyOptions, Statement):
    """``COPY table [(cols)] FROM STDIN|'file'|PROGRAM 'cmd' [WITH (...)] [WHERE ...]``."""

    def __init__(self, table: str) -> None:
        super().__init__()
        self.table = table
        self._columns: list[str] = []
        self._source = "STDIN"
        self._default: str | None = None
        self._freeze: bool | None = None
        self._force_not_null: list[str] = []
        self._force_null: list[str] = []
        self._on_error: Literal["stop", "ignore"] | None = None
        self._log_verbosity: Literal["default", "verbose", "silent"] | None = None
        self._where: str | None = None

    def only(self, *columns: str) -> CopyFromBuilder:
        self._columns = list(columns)
        return self

    def from_stdin(self) -> CopyFromBuilder:
        self._source = "STDIN"
        return self

    def from_file(self, filename: str) -> CopyFromBuilder:
        self._source = format_sql("%L", filename)
        return self

    def from_program(self, command: str) -> CopyFromBuilder:
        self._source = format_sql("PROGRAM %L", command)
        return self

    def with_default(self, default_string: str) -> CopyFromBuilder:
        self._default = default_string
        return self

    def freeze(self, value: bool = True) -> CopyFromBuilder:
        self._freeze = value
        return self

    def force_not_null(self, columns: list[str]) -> CopyFromBuilder:
        self._force_not_null = list(columns)
        return self

    def force_null(self, columns: list[str]) -> CopyFromBuilder:
        self._force_null = list(columns)
        return self

    def on_error(self, action: Literal["stop", "ignore"]) -> CopyFromBuilder:
        self._on_error = action
        return self

    def log_verbosity(self, level: Literal["default", "verbose", "silent"]) -> CopyFromBuilder:
        self._log_verbosity = level
        return self

    def where(self, condition: str) -> CopyFromBuilder:
        self._where = condition
        return self

    def to_string(self) -> str:
        opts = self._common_options()
        if self._freeze is not None:
            opts.insert(1 if self._format else 0, f"FREEZE {'TRUE' if self._freeze else 'FALSE'}")
        if self._default is not None:
            opts.append(format_sql("DEFAULT %L", self._default))
        opts.extend(self._quoting_options())
        if self._force_not_null:
            opts.append(f"FORCE_NOT_NULL ({ident(self._force_not_null)})")
        if self._force_null:
            opts.append(f"FORCE_NULL ({ident(self._force_null)})")
        if self._on_error:
            opts.append(f"ON_ERROR {self._on_error.upper()}")
        if self._log_verbosity:
            opts.append(f"LOG_VERBOSITY {self._log_verbosity.upper()}")
        sql = f"COPY {ident(self.table)}"
        if self._columns:
            sql += f" ({ident(self._columns)})"
        sql += f" FROM {self._source}"
        if opts:
            sql += f" WITH ({', '.join(opts)})"
        if self._where:
            sql += f" WHERE {self._where}"
        return sql
