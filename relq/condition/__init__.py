"""Condition tree: collector, node type, and renderer."""

from relq.condition.collector import (
    ArrayConditions,
    ConditionCallback,
    ConditionCollector,
    ConditionNode,
    JsonbConditions,
    collect,
)
from relq.condition.renderer import (
    ColumnResolver,
    ConditionRegistry,
    build_condition_sql,
    build_conditions_sql,
    qualify_condition_columns,
    resolve_condition_columns,
)

__all__ = [
    "ArrayConditions",
    "ColumnResolver",
    "ConditionCallback",
    "ConditionCollector",
    "ConditionNode",
    "ConditionRegistry",
    "JsonbConditions",
    "build_condition_sql",
    "build_conditions_sql",
    "collect",
    "qualify_condition_columns",
    "resolve_condition_columns",
]
