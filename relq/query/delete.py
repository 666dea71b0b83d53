"""DELETE builder: WHERE and RETURNING, no SET."""
from __future__ import annotations

from relq.condition import ConditionNode
from relq.pg_format import format_sql
from relq.query.base import ReturningMixin, TableStatement, WhereMixin


class DeleteBuilder(WhereMixin, ReturningMixin, TableStatement):
    """Fluent DELETE builder.

    ``USING`` tables may be added for joined deletes.
    """

    def __init__(self, table: str) -> None:
        super().__init__(table)
        self._where: list[ConditionNode] = []
        self._using: list[str] = []

    def using(self, *tables: str) -> DeleteBuilder:
        self._using.extend(tables)
        return self

    def to_string(self) -> str:
        sql = format_sql("DELETE FROM %I", self.table)
        if self._using:
            sql += format_sql(" USING %I", self._using)
        if self._where:
            sql += " WHERE " + self._conditions_sql(self._where)
        return sql + self._returning_sql()
