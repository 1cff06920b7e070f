from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

from cmsschema.constants import Tables
from cmsschema.exceptions import MigrationStateConflictError
from cmsschema.schema.catalog import MIGRATION_HISTORY
from cmsschema.schema.installer import SchemaInstaller
from cmsschema.schema.models import SchemaCatalog
from cmsschema.schema.seed import NullSeeder
from cmsschema.types import Version, format_version, parse_version

if TYPE_CHECKING:
    from cmsschema.database import Database


@dataclass
class AppliedMigration:
    """Record of a migration that has been executed (successfully or not)."""

    version: Version
    name: str
    checksum: str
    applied_at: datetime
    success: bool
    error: Optional[str] = None


@runtime_checkable
class MigrationStateStore(Protocol):
    """
    Stores the state of executed migrations.

    Semantics:
    - A version is "applied" only when a successful run has been recorded.
      A failed record marks the version for retry; the retry overwrites it.
    - Implementations must be idempotent: re-recording the same version
      with the same checksum MUST NOT create duplicates.
    - Re-recording a successful version with a different checksum is a
      conflict. A failed record is replaced whole, checksum included.
    """

    def list_applied(self) -> list[AppliedMigration]:
        """Return all recorded migrations in ascending version order."""
        ...

    def get_last_applied(self) -> Optional[AppliedMigration]:
        """Return the successful migration with the highest version, or None."""
        ...

    def record_applied(
        self,
        version: Version,
        name: str,
        checksum: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        """Record that a migration has been run (successfully or not)."""
        ...

    def has_applied(self, version: Version) -> bool:
        """Return True if this version has been recorded as successful."""
        ...


def _check_conflict(existing: AppliedMigration, checksum: str) -> None:
    if existing.checksum != checksum:
        raise MigrationStateConflictError(
            f"Migration {format_version(existing.version)} already recorded with "
            f"checksum {existing.checksum}, but attempted to record with checksum {checksum}"
        )


class InMemoryMigrationStateStore:
    def __init__(self) -> None:
        self._applied: dict[Version, AppliedMigration] = {}

    def list_applied(self) -> list[AppliedMigration]:
        return sorted(self._applied.values(), key=lambda m: m.version)

    def get_last_applied(self) -> Optional[AppliedMigration]:
        succeeded = [m for m in self._applied.values() if m.success]
        if not succeeded:
            return None
        return max(succeeded, key=lambda m: m.version)

    def record_applied(
        self,
        version: Version,
        name: str,
        checksum: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        existing = self._applied.get(version)
        if existing is not None and existing.success:
            _check_conflict(existing, checksum)
            return

        self._applied[version] = AppliedMigration(
            version=version,
            name=name,
            checksum=checksum,
            applied_at=datetime.now(),
            success=success,
            error=error,
        )

    def has_applied(self, version: Version) -> bool:
        record = self._applied.get(version)
        return record is not None and record.success


def _timestamp() -> str:
    return datetime.now().isoformat(sep=" ", timespec="seconds")


class DatabaseMigrationStateStore:
    """Stores migration state in the umbracoMigrationHistory table.

    Reads and writes go through the given Database, so a record written while
    a step's transaction is open commits or rolls back with that step.
    """

    def __init__(self, database: "Database") -> None:
        self._db = database
        self._dialect = database.dialect
        self._table = Tables.MIGRATION_HISTORY

    def ensure_table(self) -> None:
        """Create the history table if it does not exist yet."""
        if self._dialect.does_table_exist(self._db, self._table):
            return
        installer = SchemaInstaller(
            self._db, catalog=SchemaCatalog((MIGRATION_HISTORY,)), seeder=NullSeeder()
        )
        if self._db.in_transaction:
            installer.create_table(MIGRATION_HISTORY)
        else:
            with self._db.transaction():
                installer.create_table(MIGRATION_HISTORY)

    def _select(self, where: str = "") -> str:
        q = self._dialect.quote
        cols = ", ".join(
            q(c) for c in ("version", "name", "checksum", "appliedAt", "success", "error")
        )
        return f"SELECT {cols} FROM {self._dialect.quote_table(self._table)}{where}"

    def _row_to_record(self, row: dict[str, Any]) -> AppliedMigration:
        applied_at = row["appliedAt"]
        if isinstance(applied_at, str):
            applied_at = datetime.fromisoformat(applied_at)
        return AppliedMigration(
            version=parse_version(row["version"]),
            name=row["name"],
            checksum=row["checksum"],
            applied_at=applied_at,
            success=bool(row["success"]),
            error=row["error"],
        )

    def list_applied(self) -> list[AppliedMigration]:
        if not self._dialect.does_table_exist(self._db, self._table):
            return []
        records = [self._row_to_record(row) for row in self._db.fetchall(self._select())]
        return sorted(records, key=lambda m: m.version)

    def get_last_applied(self) -> Optional[AppliedMigration]:
        succeeded = [m for m in self.list_applied() if m.success]
        if not succeeded:
            return None
        return succeeded[-1]

    def record_applied(
        self,
        version: Version,
        name: str,
        checksum: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        self.ensure_table()
        existing = self._get_by_version(version)
        if existing is not None:
            if existing.success:
                _check_conflict(existing, checksum)
                return
            q = self._dialect.quote
            p = self._dialect.placeholder
            self._db.execute(
                f"UPDATE {self._dialect.quote_table(self._table)} "
                f"SET {q('name')} = {p}, {q('checksum')} = {p}, {q('appliedAt')} = {p}, "
                f"{q('success')} = {p}, {q('error')} = {p} "
                f"WHERE {q('version')} = {p}",
                [name, checksum, _timestamp(), success, error, format_version(version)],
            )
            return

        self._db.insert(
            self._table,
            {
                "version": format_version(version),
                "name": name,
                "checksum": checksum,
                "appliedAt": _timestamp(),
                "success": success,
                "error": error,
            },
        )

    def has_applied(self, version: Version) -> bool:
        record = self._get_by_version(version)
        return record is not None and record.success

    def _get_by_version(self, version: Version) -> Optional[AppliedMigration]:
        if not self._dialect.does_table_exist(self._db, self._table):
            return None
        where = f" WHERE {self._dialect.quote('version')} = {self._dialect.placeholder}"
        rows = self._db.fetchall(self._select(where), [format_version(version)])
        if not rows:
            return None
        return self._row_to_record(rows[0])
