"""VACUUM and ANALYZE builders.

Both render the parenthesized option form, ``VACUUM (FULL, ANALYZE) "t"``,
which is the only one that accepts every option.
"""
from __future__ import annotations

from relq.pg_format import ident
from relq.query.base import Statement


class _TableTargets:
    def __init__(self, tables: str | list[str] | None) -> None:
        if tables is None:
            self.tables: list[str] = []
        else:
            self.tables = [tables] if isinstance(tables, str) else list(tables)
        self._columns: dict[str, list[str]] = {}

    def columns_for(self, table: str, columns: list[str]):
        """Restrict one table to the given columns."""
        self._columns[table] = list(columns)
        return self

    def _targets_sql(self) -> str:
        targets = []
        for table in self.tables:
            sql = ident(table)
            if table in self._columns:
                sql += f" ({ident(self._columns[table])})"
            targets.append(sql)
        return ", ".join(targets)

    @staticmethod
    def _render(command: str, options: list[str], targets: str) -> str:
        sql = command
        if options:
            sql += f" ({', '.join(options)})"
        if targets:
            sql += f" {targets}"
        return sql


class VacuumBuilder(_TableTargets, Statement):
    """VACUUM; with no tables the whole database is processed."""

    def __init__(self, tables: str | list[str] | None = None) -> None:
        super().__init__(tables)
        self._full = False
        self._freeze = False
        self._verbose = False
        self._analyze = False
        self._disable_page_skipping = False
        self._skip_locked = False
        self._index_cleanup: bool | str | None = None
        self._truncate: bool | None = None
        self._parallel: int | None = None

    def full(self, enable: bool = True) -> VacuumBuilder:
        self._full = enable
        return self

    def freeze(self, enable: bool = True) -> VacuumBuilder:
        self._freeze = enable
        return self

    def verbose(self, enable: bool = True) -> VacuumBuilder:
        self._verbose = enable
        return self

    def analyze(self, enable: bool = True) -> VacuumBuilder:
        self._analyze = enable
        return self

    def disable_page_skipping(self, enable: bool = True) -> VacuumBuilder:
        self._disable_page_skipping = enable
        return self

    def skip_locked(self, enable: bool = True) -> VacuumBuilder:
        self._skip_locked = enable
        return self

    def index_cleanup(self, value: bool | str = True) -> VacuumBuilder:
        """``True``/``False`` or ``"AUTO"``."""
        self._index_cleanup = value
        return self

    def truncate(self, enable: bool = True) -> VacuumBuilder:
        self._truncate = enable
        return self

    def parallel(self, workers: int) -> VacuumBuilder:
        self._parallel = workers
        return self

    def to_string(self) -> str:
        flags = (
            (self._full, "FULL"),
            (self._freeze, "FREEZE"),
            (self._verbose, "VERBOSE"),
            (self._analyze, "ANALYZE"),
            (self._disable_page_skipping, "DISABLE_PAGE_SKIPPING"),
            (self._skip_locked, "SKIP_LOCKED"),
        )
        options = [name for enabled, name in flags if enabled]
        if self._index_cleanup is not None:
            value = self._index_cleanup
            if isinstance(value, bool):
                value = "ON" if value else "OFF"
            options.append(f"INDEX_CLEANUP {str(value).upper()}")
        if self._truncate is not None:
            options.append(f"TRUNCATE {'ON' if self._truncate else 'OFF'}")
        if self._parallel is not None:
            options.append(f"PARALLEL {int(self._parallel)}")
        return self._render("VACUUM", options, self._targets_sql())


class AnalyzeBuilder(_TableTargets, Statement):
    def __init__(self, tables: str | list[str] | None = None) -> None:
        super().__init__(tables)
        self._verbose = False
        self._skip_locked = False

    def verbose(self, enable: bool = True) -> AnalyzeBuilder:
        self._verbose = enable
        return self

    def skip_locked(self, enable: bool = True) -> AnalyzeBuilder:
        self._skip_locked = enable
        return self

    def columns(self, columns: list[str]) -> AnalyzeBuilder:
        """Restrict the first table to *columns*."""
        if self.tables:
            self.columns_for(self.tables[0], columns)
        return self

    def to_string(self) -> str:
        options = []
        if self._verbose:
            options.append("VERBOSE")
        if self._skip_locked:
            options.append("SKIP_LOCKED")
        return self._render("ANALYZE", options, self._targets_sql())
