"""CREATE / ALTER / DROP SEQUENCE builders."""
from __future__ import annotations

from relq.pg_format import ident
from relq.query.base import Statement


class _SequenceOptions:
    """Options shared by CREATE and ALTER SEQUENCE, rendered in grammar order."""

    def __init__(self) -> None:
        self._as: str | None = None
        self._increment: int | None = None
        self._min_value: int | None = None
        self._max_value: int | None = None
        self._no_min = False
        self._no_max = False
        self._start: int | None = None
        self._cache: int | None = None
        self._cycle: bool | None = None
        self._owned_by: str | None = None

    def as_(self, type: str):
        self._as = type
        return self

    def increment(self, value: int):
        self._increment = value
        return self

    def min_value(self, value: int):
        self._min_value, self._no_min = value, False
        return self

    def max_value(self, value: int):
        self._max_value, self._no_max = value, False
        return self

    def no_min_value(self):
        self._min_value, self._no_min = None, True
        return self

    def no_max_value(self):
        self._max_value, self._no_max = None, True
        return self

    def start(self, value: int):
        self._start = value
        return self

    def cache(self, count: int):
        self._cache = count
        return self

    def cycle(self):
        self._cycle = True
        return self

    def no_cycle(self):
        self._cycle = False
        return self

    def owned_by(self, table_column: str):
        """``table.column``; each part is quoted."""
        self._owned_by = ".".join(ident(p) for p in table_column.split("."))
        return self

    def owned_by_none(self):
        self._owned_by = "NONE"
        return self

    def _options_sql(self) -> str:
        sql = ""
        if self._as:
            sql += f" AS {self._as}"
        if self._increment is not None:
            sql += f" INCREMENT BY {self._increment}"
        if self._min_value is not None:
            sql += f" MINVALUE {self._min_value}"
        elif self._no_min:
            sql += " NO MINVALUE"
        if self._max_value is not None:
            sql += f" MAXVALUE {self._max_value}"
        elif self._no_max:
            sql += " NO MAXVALUE"
        if self._start is not None:
            sql += f" START WITH {self._start}"
        if self._cache is not None:
            sql += f" CACHE {self._cache}"
        if self._cycle is True:
            sql += " CYCLE"
        elif self._cycle is False:
            sql += " NO CYCLE"
        if self._owned_by:
            sql += f" OWNED BY {self._owned_by}"
        return sql


class CreateSequenceBuilder(_SequenceOptions, Statement):
    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self._if_not_exists = False
        self._temporary = False
        self._unlogged = False

    def if_not_exists(self) -> CreateSequenceBuilder:
        self._if_not_exists = True
        return self

    def temporary(self) -> CreateSequenceBuilder:
        self._temporary = True
        return self

    def unlogged(self) -> CreateSequenceBuilder:
        self._unlogged = True
        return self

    def to_string(self) -> str:
        sql = "CREATE"
        if self._temporary:
            sql += " TEMPORARY"
        if self._unlogged:
            sql += " UNLOGGED"
        sql += " SEQUENCE"
        if self._if_not_exists:
            sql += " IF NOT EXISTS"
        return sql + f" {ident(self.name)}" + self._options_sql()


class AlterSequenceBuilder(_SequenceOptions, Statement):
    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name
        self._if_exists = False
        self._restart: int | bool | None = None

    def if_exists(self) -> AlterSequenceBuilder:
        self._if_exists = True
        return self

    def restart(self, value: int | None = None) -> AlterSequenceBuilder:
        self._restart = True if value is None else value
        return self

    def to_string(self) -> str:
        sql = "ALTER SEQUENCE"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.name)}" + self._options_sql()
        if self._restart is True:
            sql += " RESTART"
        elif self._restart is not None:
            sql += f" RESTART WITH {self._restart}"
        return sql


class DropSequenceBuilder(Statement):
    def __init__(self, *names: str) -> None:
        self.names = list(names)
        self._if_exists = False
        self._cascade: bool | None = None

    def if_exists(self) -> DropSequenceBuilder:
        self._if_exists = True
        return self

    def cascade(self) -> DropSequenceBuilder:
        self._cascade = True
        return self

    def restrict(self) -> DropSequenceBuilder:
        self._cascade = False
        return self

    def to_string(self) -> str:
        if not self.names:
            raise self._missing("name", "Pass at least one sequence name.")
        sql = "DROP SEQUENCE"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.names)}"
        if self._cascade is True:
            sql += " CASCADE"
        elif self._cascade is False:
            sql += " RESTRICT"
        return sql
