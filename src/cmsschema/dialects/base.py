"""Dialect adapter: DDL formatting, capability queries and live-schema inspection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Sequence

from cmsschema.exceptions import DdlExecutionError, IntrospectionError
from cmsschema.schema.models import (
    ColumnDefinition,
    ForeignKeyDefinition,
    IndexDefinition,
    TableDefinition,
)

if TYPE_CHECKING:
    from cmsschema.database import Database

__all__ = [
    "DialectAdapter",
    "LiveColumn",
    "LiveConstraint",
    "LiveIndex",
    "Join",
]


@dataclass(frozen=True)
class LiveColumn:
    table_name: str
    column_name: str
    data_type: str
    nullable: bool


@dataclass(frozen=True)
class LiveIndex:
    table_name: str
    index_name: str
    column_name: str
    unique: bool


@dataclass(frozen=True)
class LiveConstraint:
    table_name: str
    column_name: Optional[str]
    constraint_name: str


@dataclass(frozen=True)
class Join:
    """A JOIN clause used by format_update_from_join()."""

    table: str
    alias: str
    on: str


class DialectAdapter(ABC):
    """Per-engine SQL formatter and schema inspector.

    Subclasses map logical column types to native ones, say which optional
    behaviours the engine supports, and read live metadata. Inspection
    methods take the Database so they run on the held connection.
    """

    name: str = "base"
    placeholder: str = "?"
    begin_sql: Optional[str] = None

    # -- capabilities ---------------------------------------------------------

    def supports_identity_insert(self) -> bool:
        """True if explicit values for identity columns need a toggle."""
        return False

    def supports_update_from_join(self) -> bool:
        return True

    def supports_alter_column(self) -> bool:
        return True

    def supports_drop_constraint(self) -> bool:
        return True

    def inline_keys(self) -> bool:
        """True if PK/FK constraints are part of CREATE TABLE."""
        return False

    # -- identifiers and types ------------------------------------------------

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    def quote_table(self, table_name: str) -> str:
        return self.quote(table_name)

    def quote_string(self, value: str) -> str:
        return "'" + value.replace("'", "''") + "'"

    @abstractmethod
    def native_type(self, column: ColumnDefinition) -> str:
        """Return the native type for a column."""

    def format_default(self, column: ColumnDefinition) -> Optional[str]:
        return column.default

    def format_identity(self, column: ColumnDefinition) -> str:
        return ""

    def format_column(self, column: ColumnDefinition) -> str:
        parts = [self.quote(column.name), self.native_type(column)]
        identity = self.format_identity(column) if column.identity else ""
        if identity:
            parts.append(identity)
        parts.append("NULL" if column.nullable else "NOT NULL")
        default = self.format_default(column)
        if default is not None:
            parts.append(f"DEFAULT {default}")
        return " ".join(parts)

    # -- DDL ------------------------------------------------------------------

    def format_table(self, table: TableDefinition) -> str:
        """CREATE TABLE statement (columns only unless keys are inline)."""
        col_defs = ",\n".join(f"    {self.format_column(c)}" for c in table.columns)
        return f"CREATE TABLE {self.quote_table(table.name)} (\n{col_defs}\n)"

    def format_primary_key(self, table: TableDefinition) -> str:
        """PRIMARY KEY statement, or '' if there is none to run separately."""
        if table.primary_key is None or self.inline_keys():
            return ""
        pk = table.primary_key
        cols = ", ".join(self.quote(c) for c in pk.columns)
        return (
            f"ALTER TABLE {self.quote_table(table.name)} "
            f"ADD CONSTRAINT {self.quote(pk.name)} PRIMARY KEY ({cols})"
        )

    def format_foreign_key(self, fk: ForeignKeyDefinition) -> str:
        cols = ", ".join(self.quote(c) for c in fk.columns)
        ref_cols = ", ".join(self.quote(c) for c in fk.referenced_columns)
        return (
            f"ALTER TABLE {self.quote_table(fk.table_name)} "
            f"ADD CONSTRAINT {self.quote(fk.name)} FOREIGN KEY ({cols}) "
            f"REFERENCES {self.quote_table(fk.referenced_table)} ({ref_cols})"
        )

    def format_foreign_keys(self, table: TableDefinition) -> list[str]:
        if self.inline_keys():
            return []
        return [self.format_foreign_key(fk) for fk in table.foreign_keys]

    def format_index(self, ix: IndexDefinition) -> str:
        unique = "UNIQUE " if ix.unique else ""
        cols = ", ".join(self.quote(c) for c in ix.columns)
        return (
            f"CREATE {unique}INDEX {self.quote(ix.name)} "
            f"ON {self.quote_table(ix.table_name)} ({cols})"
        )

    def format_indexes(self, table: TableDefinition) -> list[str]:
        return [self.format_index(ix) for ix in table.indexes]

    def format_insert(self, table_name: str, column_names: Sequence[str]) -> str:
        """Parameterized single-row INSERT using this dialect's placeholder."""
        cols = ", ".join(self.quote(c) for c in column_names)
        marks = ", ".join(self.placeholder for _ in column_names)
        return f"INSERT INTO {self.quote_table(table_name)} ({cols}) VALUES ({marks})"

    def format_drop_table(self, table_name: str) -> str:
        return f"DROP TABLE {self.quote_table(table_name)}"

    def format_identity_insert(self, table_name: str, enabled: bool) -> str:
        raise NotImplementedError(f"{self.name} has no identity-insert toggle")

    def format_identity_reseed(self, table: TableDefinition) -> list[str]:
        """Statements that move identity counters past seeded explicit ids."""
        return []

    def format_rename_table(self, old_name: str, new_name: str) -> str:
        return (
            f"ALTER TABLE {self.quote_table(old_name)} "
            f"RENAME TO {self.quote_table(new_name)}"
        )

    def format_add_column(self, table_name: str, column: ColumnDefinition) -> str:
        return f"ALTER TABLE {self.quote_table(table_name)} ADD {self.format_column(column)}"

    def format_drop_column(self, table_name: str, column_name: str) -> str:
        return (
            f"ALTER TABLE {self.quote_table(table_name)} "
            f"DROP COLUMN {self.quote(column_name)}"
        )

    def format_alter_column(self, table_name: str, column: ColumnDefinition) -> list[str]:
        """Statements that bring an existing column to the given definition."""
        return []

    def format_drop_index(self, table_name: str, index_name: str) -> str:
        return f"DROP INDEX {self.quote(index_name)}"

    def format_drop_constraint(self, table_name: str, constraint_name: str) -> str:
        return (
            f"ALTER TABLE {self.quote_table(table_name)} "
            f"DROP CONSTRAINT {self.quote(constraint_name)}"
        )

    def format_savepoint(self, name: str) -> str:
        return f"SAVEPOINT {name}"

    def format_rollback_to_savepoint(self, name: str) -> str:
        return f"ROLLBACK TO SAVEPOINT {name}"

    def format_release_savepoint(self, name: str) -> Optional[str]:
        return f"RELEASE SAVEPOINT {name}"

    def format_update_from_join(
        self,
        table: str,
        alias: str,
        assignments: dict[str, str],
        joins: Sequence[Join],
        where: Optional[str] = None,
    ) -> str:
        raise NotImplementedError(f"{self.name} does not support UPDATE ... FROM")

    # -- inspection -----------------------------------------------------------

    @abstractmethod
    def get_tables_in_schema(self, db: "Database") -> list[str]:
        """Names of all user tables."""

    @abstractmethod
    def get_columns_in_schema(self, db: "Database") -> list[LiveColumn]:
        """All columns of all user tables."""

    @abstractmethod
    def get_defined_indexes(self, db: "Database") -> list[LiveIndex]:
        """Indexes that do not back a primary key or a constraint."""

    @abstractmethod
    def get_constraints_per_column(self, db: "Database") -> list[LiveConstraint]:
        """Named key constraints, one entry per constrained column."""

    @abstractmethod
    def does_table_exist(self, db: "Database", table_name: str) -> bool:
        """True if the table exists (case-insensitive)."""

    def _fetch(
        self, db: "Database", sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]:
        try:
            return db.fetchall(sql, params)
        except DdlExecutionError as exc:
            raise IntrospectionError(
                f"Failed to read schema metadata from {self.name}: {exc}"
            ) from exc
