"""DDL statement builders."""

from relq.ddl.columns import (
    ColumnDefinition,
    GeneratedSpec,
    IdentitySpec,
    ReferenceSpec,
    default_sql,
    render_column,
)
from relq.ddl.function import CreateFunctionBuilder, DropFunctionBuilder
from relq.ddl.index import CreateIndexBuilder, DropIndexBuilder, IndexColumn, ReindexBuilder
from relq.ddl.partition import (
    AttachPartitionBuilder,
    CreatePartitionBuilder,
    DetachPartitionBuilder,
    PartitionBuilder,
    for_values_from_to,
    for_values_in,
    for_values_with,
)
from relq.ddl.privileges import DefaultPrivilegesBuilder, GrantBuilder, RevokeBuilder
from relq.ddl.roles import (
    AlterRoleBuilder,
    CreateRoleBuilder,
    DropOwnedBuilder,
    DropRoleBuilder,
    ReassignOwnedBuilder,
    SetRoleBuilder,
)
from relq.ddl.schema import CreateSchemaBuilder, DropSchemaBuilder
from relq.ddl.sequence import AlterSequenceBuilder, CreateSequenceBuilder, DropSequenceBuilder
from relq.ddl.table import AlterTableBuilder, ConstraintBuilder, CreateTableBuilder, DropTableBuilder
from relq.ddl.trigger import CreateTriggerBuilder, DropTriggerBuilder
from relq.ddl.view import CreateViewBuilder, DropViewBuilder, RefreshMaterializedViewBuilder

__all__ = [
    "AlterRoleBuilder",
    "AlterSequenceBuilder",
    "AlterTableBuilder",
    "AttachPartitionBuilder",
    "ColumnDefinition",
    "ConstraintBuilder",
    "CreateFunctionBuilder",
    "CreateIndexBuilder",
    "CreatePartitionBuilder",
    "CreateRoleBuilder",
    "CreateSchemaBuilder",
    "CreateSequenceBuilder",
    "CreateTableBuilder",
    "CreateTriggerBuilder",
    "CreateViewBuilder",
    "DefaultPrivilegesBuilder",
    "DetachPartitionBuilder",
    "DropFunctionBuilder",
    "DropIndexBuilder",
    "DropOwnedBuilder",
    "DropRoleBuilder",
    "DropSchemaBuilder",
    "DropSequenceBuilder",
    "DropTableBuilder",
    "DropTriggerBuilder",
    "DropViewBuilder",
    "GeneratedSpec",
    "GrantBuilder",
    "IdentitySpec",
    "IndexColumn",
    "PartitionBuilder",
    "ReassignOwnedBuilder",
    "ReferenceSpec",
    "RefreshMaterializedViewBuilder",
    "ReindexBuilder",
    "RevokeBuilder",
    "SetRoleBuilder",
    "default_sql",
    "for_values_from_to",
    "for_values_in",
    "for_values_with",
    "render_column",
]
