"""Window specification builder (``OVER (...)``)."""
from __future__ import annotations

from typing import Any, Literal

from relq.pg_format import format_column, format_sql, ident

FrameMode = Literal["ROWS", "RANGE", "GROUPS"]
FrameBound = int | str | None


def _bound(value: FrameBound, direction: str, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, int):
        return f"{value} {direction}"
    return value


class WindowBuilder:
    """Renders a window definition and the common window functions over it.

    Example::

        WindowBuilder().partition_by("dept").order_by("salary", "DESC").rank()
        # RANK() OVER (PARTITION BY "dept" ORDER BY "salary" DESC)
    """

    def __init__(self) -> None:
        self._partition: list[str] = []
        self._order: list[tuple[str, str]] = []
        self._frame: str | None = None

    def partition_by(self, *columns: str) -> WindowBuilder:
        self._partition.extend(columns)
        return self

    def order_by(self, column: str, direction: Literal["ASC", "DESC"] = "ASC") -> WindowBuilder:
        self._order.append((column, direction))
        return self

    def _set_frame(self, mode: FrameMode, start: FrameBound, end: FrameBound) -> WindowBuilder:
        start_sql = _bound(start, "PRECEDING", "UNBOUNDED PRECEDING")
        end_sql = _bound(end, "FOLLOWING", "CURRENT ROW")
        self._frame = f"{mode} BETWEEN {start_sql} AND {end_sql}"
        return self

    def rows(self, start: FrameBound = None, end: FrameBound = None) -> WindowBuilder:
        """Integer bounds count rows: ``start`` PRECEDING, ``end`` FOLLOWING."""
        return self._set_frame("ROWS", start, end)

    def range(self, start: FrameBound = None, end: FrameBound = None) -> WindowBuilder:
        return self._set_frame("RANGE", start, end)

    def groups(self, start: FrameBound = None, end: FrameBound = None) -> WindowBuilder:
        return self._set_frame("GROUPS", start, end)

    def to_string(self) -> str:
        parts = []
        if self._partition:
            parts.append("PARTITION BY " + ", ".join(format_column(c) for c in self._partition))
        if self._order:
            parts.append(
                "ORDER BY " + ", ".join(f"{format_column(c)} {d}" for c, d in self._order)
            )
        if self._frame:
            parts.append(self._frame)
        return " ".join(parts)

    def __str__(self) -> str:
        return self.to_string()

    def _over(self, function_sql: str) -> str:
        return f"{function_sql} OVER ({self.to_string()})"

    # ------------------------------------------------------------------
    # Window functions
    # ------------------------------------------------------------------

    def row_number(self) -> str:
        return self._over("ROW_NUMBER()")

    def rank(self) -> str:
        return self._over("RANK()")

    def dense_rank(self) -> str:
        return self._over("DENSE_RANK()")

    def _offset(self, name: str, column: str, offset: int, default: Any) -> str:
        if default is None:
            return self._over(format_sql(f"{name}(%I, %s)", column, offset))
        return self._over(format_sql(f"{name}(%I, %s, %L)", column, offset, default))

    def lag(self, column: str, offset: int = 1, default: Any = None) -> str:
        return self._offset("LAG", column, offset, default)

    def lead(self, column: str, offset: int = 1, default: Any = None) -> str:
        return self._offset("LEAD", column, offset, default)

    def first_value(self, column: str) -> str:
        return self._over(f"FIRST_VALUE({ident(column)})")

    def last_value(self, column: str) -> str:
        return self._over(f"LAST_VALUE({ident(column)})")

    def nth_value(self, column: str, n: int) -> str:
        return self._over(f"NTH_VALUE({ident(column)}, {int(n)})")
