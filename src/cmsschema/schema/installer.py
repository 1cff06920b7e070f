"""Create and drop the catalog's tables inside one transaction."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional

from cmsschema.database import Database
from cmsschema.exceptions import InvalidStateError
from cmsschema.schema.catalog import CMS_CATALOG
from cmsschema.schema.events import (
    AfterCreateHook,
    BeforeCreateHook,
    SchemaCreatedEvent,
    SchemaCreatingEvent,
)
from cmsschema.schema.models import SchemaCatalog, TableDefinition
from cmsschema.schema.seed import BaseDataSeeder, CmsBaseDataSeeder
from cmsschema.types import TableAction

if TYPE_CHECKING:
    from cmsschema.dialects.base import DialectAdapter

__all__ = ["SchemaInstaller", "TableOutcome", "generate_script"]

logger = logging.getLogger(__name__)


@dataclass
class TableOutcome:
    """What happened to one table during install or uninstall."""

    table: str
    action: TableAction
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.action == TableAction.FAILED


def generate_script(catalog: SchemaCatalog, dialect: "DialectAdapter") -> list[str]:
    """Ordered DDL that creates catalog on an empty database, without seed data."""
    statements: list[str] = []
    for table in catalog:
        statements.append(dialect.format_table(table))
        pk_sql = dialect.format_primary_key(table)
        if pk_sql:
            statements.append(pk_sql)
        statements.extend(dialect.format_indexes(table))
        statements.extend(dialect.format_foreign_keys(table))
    return statements


class SchemaInstaller:
    """Install or remove the catalog's tables.

    Tables are created in catalog order and dropped in reverse catalog order,
    so foreign keys never point at a table that is not there yet. Every
    create or drop is preceded by an existence check; nothing relies on
    IF [NOT] EXISTS support.
    """

    def __init__(
        self,
        database: Database,
        catalog: SchemaCatalog = CMS_CATALOG,
        seeder: Optional[BaseDataSeeder] = None,
        before_create: Iterable[BeforeCreateHook] = (),
        after_create: Iterable[AfterCreateHook] = (),
    ) -> None:
        self._db = database
        self._dialect = database.dialect
        self.catalog = catalog
        self.seeder = seeder if seeder is not None else CmsBaseDataSeeder()
        self.before_create = list(before_create)
        self.after_create = list(after_create)

    def install(self, overwrite: bool = False) -> list[TableOutcome]:
        """Create every catalog table that does not exist yet.

        Must run inside an open transaction; any failure propagates so the
        caller's transaction rolls back and no partial schema is committed.

        Args:
            overwrite: Drop and recreate tables that already exist (data loss).

        Returns:
            One TableOutcome per catalog table, in catalog order. Empty when a
            before-create hook cancels creation.

        Raises:
            InvalidStateError: If no transaction is open.
            DdlExecutionError: If any statement fails.
        """
        self._require_transaction()

        creating = SchemaCreatingEvent()
        self._fire_before_creation(creating)

        outcomes: list[TableOutcome] = []
        if creating.cancel:
            logger.info("Schema creation cancelled by a before-create hook")
        else:
            for table in self.catalog:
                outcomes.append(self._create_table(table, overwrite))

        self._fire_after_creation(SchemaCreatedEvent.from_creating(creating))
        return outcomes

    def create_table(self, table: TableDefinition, overwrite: bool = False) -> TableOutcome:
        """Create a single table (with seed data, indexes and foreign keys)."""
        self._require_transaction()
        return self._create_table(table, overwrite)

    def uninstall(self) -> list[TableOutcome]:
        """Drop every catalog table, dependents first.

        Best effort: a failure on one table is logged and recorded, and the
        remaining tables are still attempted. Inspect the outcomes to decide
        whether to escalate.
        """
        logger.info("Start uninstalling database schema")
        outcomes: list[TableOutcome] = []

        for table in reversed(self.catalog):
            logger.info(f"Uninstall {table.name}")
            try:
                outcomes.append(self._drop_if_exists(table.name))
            except Exception as exc:
                logger.error(f"Could not drop table {table.name}: {exc}")
                outcomes.append(
                    TableOutcome(table.name, TableAction.FAILED, error=str(exc))
                )

        failed = [o.table for o in outcomes if o.failed]
        if failed:
            logger.warning(f"Uninstall finished with {len(failed)} failure(s): {', '.join(failed)}")
        return outcomes

    def table_exists(self, table_name: str) -> bool:
        return self._dialect.does_table_exist(self._db, table_name)

    def drop_table(self, table_name: str) -> None:
        self._db.execute(self._dialect.format_drop_table(table_name))

    def generate_script(self) -> list[str]:
        """Return the DDL an install would run against an empty database.

        Seed data and identity toggles are not included.
        """
        return generate_script(self.catalog, self._dialect)

    def _require_transaction(self) -> None:
        if not self._db.in_transaction:
            raise InvalidStateError("Database is not in a transaction.")

    def _drop_if_exists(self, table_name: str) -> TableOutcome:
        if self._db.in_transaction:
            with self._db.savepoint():
                return self._drop_checked(table_name)
        with self._db.transaction():
            return self._drop_checked(table_name)

    def _drop_checked(self, table_name: str) -> TableOutcome:
        if not self.table_exists(table_name):
            return TableOutcome(table_name, TableAction.ABSENT)
        self.drop_table(table_name)
        return TableOutcome(table_name, TableAction.DROPPED)

    def _create_table(self, table: TableDefinition, overwrite: bool) -> TableOutcome:
        dialect = self._dialect
        table_name = table.name

        create_sql = dialect.format_table(table)
        primary_key_sql = dialect.format_primary_key(table)
        foreign_key_sql = dialect.format_foreign_keys(table)
        index_sql = dialect.format_indexes(table)

        table_exists = self.table_exists(table_name)
        recreated = overwrite and table_exists
        if recreated:
            logger.info(f"Table {table_name} already exists, but will be recreated")
            self.drop_table(table_name)
            table_exists = False

        if table_exists:
            logger.info(f"Table {table_name} already exists - no changes were made")
            return TableOutcome(table_name, TableAction.SKIPPED)

        self._db.execute(create_sql)
        logger.info(f"Create Table {table_name}:\n{create_sql}")

        if primary_key_sql:
            logger.info(f"Create Primary Key:\n{primary_key_sql}")
            self._db.execute(primary_key_sql)

        toggle_identity = dialect.supports_identity_insert() and table.has_identity
        if toggle_identity:
            self._db.execute(dialect.format_identity_insert(table_name, True))

        self.seeder.seed(self._db, table_name)

        if toggle_identity:
            self._db.execute(dialect.format_identity_insert(table_name, False))

        for sql in dialect.format_identity_reseed(table):
            self._db.execute(sql)

        for sql in index_sql:
            logger.info(f"Create Index:\n{sql}")
            self._db.execute(sql)

        for sql in foreign_key_sql:
            logger.info(f"Create Foreign Key:\n{sql}")
            self._db.execute(sql)

        if recreated:
            logger.info(f"Table {table_name} was recreated")
            return TableOutcome(table_name, TableAction.RECREATED)
        logger.info(f"New table {table_name} was created")
        return TableOutcome(table_name, TableAction.CREATED)

    def _fire_before_creation(self, event: SchemaCreatingEvent) -> None:
        for hook in self.before_create:
            if hook(event) is False:
                event.cancel = True

    def _fire_after_creation(self, event: SchemaCreatedEvent) -> None:
        for hook in self.after_create:
            hook(event)
