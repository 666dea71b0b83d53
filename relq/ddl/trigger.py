"""CREATE TRIGGER and DROP TRIGGER builders."""
from __future__ import annotations

from typing import Any, Literal

from relq.pg_format import ident, literal
from relq.query.base import Statement

#: Row-change event a trigger fires on.
TriggerEvent = Literal["INSERT", "UPDATE", "DELETE", "TRUNCATE"]

#: When the trigger fires relative to the event.
TriggerTiming = Literal["BEFORE", "AFTER", "INSTEAD OF"]


class CreateTriggerBuilder(Statement):
    """Fluent CREATE TRIGGER builder.

    Deferrable triggers render as ``CREATE CONSTRAINT TRIGGER``, which is the
    only form PostgreSQL accepts a deferral clause on.

    Example::

        CreateTriggerBuilder("users_touch").on("users").before("UPDATE") \\
            .execute("touch_updated_at")
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.table: str | None = None
        self.timing: TriggerTiming | None = None
        self.events: list[str] = []
        self.level: Literal["ROW", "STATEMENT"] = "ROW"
        self._update_of: list[str] = []
        self._when: str | None = None
        self._old_table: str | None = None
        self._new_table: str | None = None
        self._function: str | None = None
        self._args: tuple[Any, ...] = ()
        self._deferrable = False
        self._initially: Literal["DEFERRED", "IMMEDIATE"] | None = None
        self._or_replace = False

    def on(self, table: str) -> CreateTriggerBuilder:
        self.table = table
        return self

    def _timing(self, timing: TriggerTiming, events: tuple[str, ...]) -> CreateTriggerBuilder:
        self.timing = timing
        self.events = [e.upper() for e in events]
        return self

    def before(self, *events: TriggerEvent) -> CreateTriggerBuilder:
        return self._timing("BEFORE", events)

    def after(self, *events: TriggerEvent) -> CreateTriggerBuilder:
        return self._timing("AFTER", events)

    def instead_of(self, *events: TriggerEvent) -> CreateTriggerBuilder:
        return self._timing("INSTEAD OF", events)

    def for_each_row(self) -> CreateTriggerBuilder:
        self.level = "ROW"
        return self

    def for_each_statement(self) -> CreateTriggerBuilder:
        self.level = "STATEMENT"
        return self

    def update_of(self, *columns: str) -> CreateTriggerBuilder:
        self._update_of = list(columns)
        return self

    def when(self, condition: str) -> CreateTriggerBuilder:
        self._when = condition
        return self

    def referencing(self, old_table: str | None = None, new_table: str | None = None) -> CreateTriggerBuilder:
        self._old_table = old_table
        self._new_table = new_table
        return self

    def execute(self, function: str, *args: Any) -> CreateTriggerBuilder:
        self._function = function
        self._args = args
        return self

    def deferrable(self) -> CreateTriggerBuilder:
        self._deferrable = True
        return self

    def initially_deferred(self) -> CreateTriggerBuilder:
        self._deferrable = True
        self._initially = "DEFERRED"
        return self

    def initially_immediate(self) -> CreateTriggerBuilder:
        self._deferrable = True
        self._initially = "IMMEDIATE"
        return self

    def or_replace(self) -> CreateTriggerBuilder:
        self._or_replace = True
        return self

    def _events_sql(self) -> str:
        events = []
        for event in self.events:
            if event == "UPDATE" and self._update_of:
                events.append(f"UPDATE OF {ident(self._update_of)}")
            else:
                events.append(event)
        return " OR ".join(events)

    def _function_sql(self) -> str:
        if self._args:
            return f"{self._function}({', '.join(literal(a) for a in self._args)})"
        if "(" in self._function:
            return self._function
        return f"{self._function}()"

    def to_string(self) -> str:
        if not self.table:
            raise self._missing("table", "Use .on(table).", message="Table name is required for trigger creation")
        if not self.timing or not self.events:
            raise self._missing(
                "timing/events",
                "Use .before(), .after(), or .instead_of().",
                message="Trigger timing and events are required",
            )
        if not self._function:
            raise self._missing("function", "Use .execute(function_name).", message="Trigger function is required")
        sql = "CREATE"
        if self._or_replace:
            sql += " OR REPLACE"
        if self._deferrable:
            sql += " CONSTRAINT"
        sql += f" TRIGGER {ident(self.name)} {self.timing} {self._events_sql()} ON {ident(self.table)}"
        if self._deferrable:
            sql += " DEFERRABLE"
            if self._initially:
                sql += f" INITIALLY {self._initially}"
        if self._old_table or self._new_table:
            refs = []
            if self._old_table:
                refs.append(f"OLD TABLE AS {ident(self._old_table)}")
            if self._new_table:
                refs.append(f"NEW TABLE AS {ident(self._new_table)}")
            sql += " REFERENCING " + " ".join(refs)
        sql += f" FOR EACH {self.level}"
        if self._when:
            sql += f" WHEN ({self._when})"
        return sql + f" EXECUTE FUNCTION {self._function_sql()}"


class DropTriggerBuilder(Statement):
    def __init__(self, name: str, table: str) -> None:
        self.name = name
        self.table = table
        self._if_exists = False
        self._cascade = False

    def if_exists(self) -> DropTriggerBuilder:
        self._if_exists = True
        return self

    def cascade(self) -> DropTriggerBuilder:
        self._cascade = True
        return self

    def restrict(self) -> DropTriggerBuilder:
        self._cascade = False
        return self

    def to_string(self) -> str:
        sql = "DROP TRIGGER"
        if self._if_exists:
            sql += " IF EXISTS"
        sql += f" {ident(self.name)} ON {ident(self.table)}"
        if self._cascade:
            sql += " CASCADE"
        return sql
