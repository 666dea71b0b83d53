"""EXPLAIN builder.

``BUFFERS``, ``TIMING`` and ``WAL`` need ``ANALYZE``; enabling any of them
turns ``ANALYZE`` on as well.
"""
from __future__ import annotations

from typing import Literal

from relq.query.base import Statement

ExplainFormat = Literal["TEXT", "XML", "JSON", "YAML"]


class ExplainBuilder(Statement):
    """Wraps a statement (SQL text or builder) in ``EXPLAIN (...)``."""

    def __init__(self, query: Statement | str) -> None:
        self.query = query
        self._analyze = False
        self._verbose = False
        self._costs: bool | None = None
        self._settings = False
        self._buffers = False
        self._timing: bool | None = None
        self._summary = False
        self._wal = False
        self._format: ExplainFormat | None = None

    def analyze(self, enable: bool = True) -> ExplainBuilder:
        self._analyze = enable
        return self

    def verbose(self, enable: bool = True) -> ExplainBuilder:
        self._verbose = enable
        return self

    def costs(self, enable: bool = True) -> ExplainBuilder:
        self._costs = enable
        return self

    def settings(self, enable: bool = True) -> ExplainBuilder:
        self._settings = enable
        return self

    def buffers(self, enable: bool = True) -> ExplainBuilder:
        self._buffers = enable
        self._analyze = self._analyze or enable
        return self

    def timing(self, enable: bool = True) -> ExplainBuilder:
        self._timing = enable
        self._analyze = self._analyze or enable
        return self

    def summary(self, enable: bool = True) -> ExplainBuilder:
        self._summary = enable
        return self

    def wal(self, enable: bool = True) -> ExplainBuilder:
        self._wal = enable
        self._analyze = self._analyze or enable
        return self

    def format(self, fmt: ExplainFormat) -> ExplainBuilder:
        self._format = fmt
        return self

    def to_string(self) -> str:
        options = []
        if self._analyze:
            options.append("ANALYZE")
        if self._verbose:
            options.append("VERBOSE")
        if self._costs is not None:
            options.append(f"COSTS {str(self._costs).upper()}")
        if self._settings:
            options.append("SETTINGS")
        if self._buffers:
            options.append("BUFFERS")
        if self._timing is not None:
            options.append(f"TIMING {str(self._timing).upper()}")
        if self._summary:
            options.append("SUMMARY")
        if self._wal:
            options.append("WAL")
        if self._format:
            options.append(f"FORMAT {self._format}")
        query = self.query if isinstance(self.query, str) else self.query.to_string()
        sql = "EXPLAIN"
        if options:
            sql += f" ({', '.join(options)})"
        return f"{sql} {query}"
