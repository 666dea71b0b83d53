"""DML statement builders: SELECT, INSERT, UPDATE, DELETE, COUNT, CTE, window."""

from relq.query.base import Statement, TableStatement
from relq.query.conflict import ConflictBuilder
from relq.query.count import CountBuilder
from relq.query.cte import CTEBuilder
from relq.query.delete import DeleteBuilder
from relq.query.insert import InsertBuilder, InsertFromSelectBuilder
from relq.query.select import JoinColumn, SelectBuilder, StructuredJoin
from relq.query.update import UpdateBuilder
from relq.query.values import ColumnTypeInfo, ColumnTypeResolver, format_value
from relq.query.window import WindowBuilder

__all__ = [
    "CTEBuilder",
    "ColumnTypeInfo",
    "ColumnTypeResolver",
    "ConflictBuilder",
    "CountBuilder",
    "DeleteBuilder",
    "InsertBuilder",
    "InsertFromSelectBuilder",
    "JoinColumn",
    "SelectBuilder",
    "Statement",
    "StructuredJoin",
    "TableStatement",
    "UpdateBuilder",
    "WindowBuilder",
    "format_value",
]
