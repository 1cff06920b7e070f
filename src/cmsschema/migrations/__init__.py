"""Migration steps, state and runner modules."""

from cmsschema.migrations.context import MigrationContext
from cmsschema.migrations.parser import (
    MigrationFile,
    parse_migration_file,
    parse_migrations_dir,
)
from cmsschema.migrations.plan import MigrationPlan, PlannedStep, build_upgrade_plan
from cmsschema.migrations.runner import Runner, StepExecution, plan
from cmsschema.migrations.state import (
    AppliedMigration,
    DatabaseMigrationStateStore,
    InMemoryMigrationStateStore,
    MigrationStateStore,
)
from cmsschema.migrations.step import MigrationStep, SqlScriptStep

__all__ = [
    "MigrationContext",
    "MigrationFile",
    "parse_migration_file",
    "parse_migrations_dir",
    "MigrationPlan",
    "PlannedStep",
    "build_upgrade_plan",
    "Runner",
    "StepExecution",
    "plan",
    "AppliedMigration",
    "DatabaseMigrationStateStore",
    "InMemoryMigrationStateStore",
    "MigrationStateStore",
    "MigrationStep",
    "SqlScriptStep",
]
