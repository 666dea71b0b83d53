"""JSONB and array mutation DSLs used inside UPDATE ... SET."""

from relq.dsl.arrays import ArrayElementBuilder, ArrayUpdateBuilder, JsonbArrayElementBuilder
from relq.dsl.fragment import COLUMN_PLACEHOLDER, ColumnFragment, render_assignment
from relq.dsl.jsonb import JsonbArrayBuilder, JsonbUpdateBuilder


class UpdateOperations:
    """Argument passed to callable SET values: ``ops.array`` and ``ops.jsonb``."""

    def __init__(self) -> None:
        self.array = ArrayUpdateBuilder()
        self.jsonb = JsonbUpdateBuilder()


__all__ = [
    "COLUMN_PLACEHOLDER",
    "ArrayElementBuilder",
    "ArrayUpdateBuilder",
    "ColumnFragment",
    "JsonbArrayBuilder",
    "JsonbArrayElementBuilder",
    "JsonbUpdateBuilder",
    "UpdateOperations",
    "render_assignment",
]
