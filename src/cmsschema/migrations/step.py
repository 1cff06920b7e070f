"""Migration step base class and the SQL-script step."""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Sequence

from cmsschema.migrations.context import MigrationContext
from cmsschema.migrations.parser import MigrationFile
from cmsschema.schema.models import ColumnDefinition

if TYPE_CHECKING:
    from cmsschema.dialects.base import DialectAdapter

__all__ = ["MigrationStep", "SqlScriptStep"]

logger = logging.getLogger(__name__)


class MigrationStep(ABC):
    """One upgrade unit, keyed by the schema version it brings the database to.

    Subclasses set version and description and implement migrate() as an
    ordered sequence of the structural operations below. Operations queue SQL
    on the context; run() flushes the queue, and the owning transaction makes
    it durable. Steps are not required to be idempotent: the runner never
    re-runs an applied version.
    """

    version: ClassVar[str] = ""
    description: ClassVar[str] = ""

    def __init__(self, context: MigrationContext) -> None:
        self.context = context

    @classmethod
    def step_name(cls) -> str:
        return cls.__name__

    @classmethod
    def step_checksum(cls) -> str:
        """Identity of the step's code, recorded with the applied version."""
        ident = f"{cls.__module__}.{cls.__qualname__}:{cls.version}"
        return hashlib.sha256(ident.encode("utf-8")).hexdigest()

    @property
    def dialect(self) -> "DialectAdapter":
        return self.context.dialect

    @abstractmethod
    def migrate(self) -> None:
        """Issue this step's operations."""

    def run(self) -> None:
        self.migrate()
        self.context.flush()

    def rename_table(self, old_name: str, new_name: str) -> None:
        self.context.add(self.dialect.format_rename_table(old_name, new_name))

    def add_column(self, table_name: str, column: ColumnDefinition) -> list[str]:
        """Add a column as nullable.

        Returns the statements that bring the column to its declared
        definition (e.g. NOT NULL); run them once existing rows have been
        backfilled. Empty when the dialect cannot alter columns.
        """
        loose = replace(column, table_name=table_name, nullable=True, identity=False)
        self.context.add(self.dialect.format_add_column(table_name, loose))
        if column.nullable:
            return []
        if not self.dialect.supports_alter_column():
            logger.warning(
                f"{self.dialect.name} cannot alter columns; "
                f"{table_name}.{column.name} stays nullable"
            )
            return []
        return self.dialect.format_alter_column(table_name, column)

    def drop_column(self, table_name: str, column_name: str) -> None:
        self.context.add(self.dialect.format_drop_column(table_name, column_name))

    def drop_index(self, table_name: str, index_name: str) -> None:
        self.context.add(self.dialect.format_drop_index(table_name, index_name))

    def drop_constraint(self, table_name: str, constraint_name: str) -> None:
        self.context.add(self.dialect.format_drop_constraint(table_name, constraint_name))

    def delete_keys_and_indexes(self, table_name: str) -> None:
        """Drop every foreign key, index and primary key of a table.

        Reads the live schema, so queued statements are flushed first.
        Constraints are skipped on dialects that cannot drop them.
        """
        self.context.flush()
        db = self.context.database
        wanted = table_name.casefold()

        constraint_names: dict[str, str] = {}
        for c in self.dialect.get_constraints_per_column(db):
            if c.table_name.casefold() == wanted:
                constraint_names.setdefault(c.constraint_name.casefold(), c.constraint_name)
        primary_keys = [n for k, n in constraint_names.items() if k.startswith("pk_")]
        others = [n for k, n in constraint_names.items() if not k.startswith("pk_")]

        index_names: dict[str, str] = {}
        for ix in self.dialect.get_defined_indexes(db):
            if ix.table_name.casefold() == wanted:
                index_names.setdefault(ix.index_name.casefold(), ix.index_name)

        can_drop_constraints = self.dialect.supports_drop_constraint()
        if constraint_names and not can_drop_constraints:
            logger.warning(
                f"{self.dialect.name} cannot drop constraints; keeping "
                f"{', '.join(constraint_names.values())} on {table_name}"
            )

        if can_drop_constraints:
            for name in others:
                self.drop_constraint(table_name, name)
        for name in index_names.values():
            self.drop_index(table_name, name)
        if can_drop_constraints:
            for name in primary_keys:
                self.drop_constraint(table_name, name)

    def execute_sql(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self.context.add(sql, params)

    def insert(self, table_name: str, values: dict[str, Any]) -> None:
        self.context.add(
            self.dialect.format_insert(table_name, list(values)), list(values.values())
        )

    def fetch(self, sql: str, params: Optional[Sequence[Any]] = None) -> list[dict[str, Any]]:
        """Run a query after flushing queued statements, so it sees them."""
        self.context.flush()
        return self.context.database.fetchall(sql, params)

    def table_exists(self, table_name: str) -> bool:
        self.context.flush()
        return self.dialect.does_table_exist(self.context.database, table_name)


class SqlScriptStep(MigrationStep):
    """A step whose body is a V<version>__<name>.sql file."""

    def __init__(self, context: MigrationContext, migration: MigrationFile) -> None:
        super().__init__(context)
        self.migration = migration

    def migrate(self) -> None:
        for statement in self.migration.statements:
            self.execute_sql(statement)
