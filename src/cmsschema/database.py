"""Held database connection with explicit transaction control."""

from __future__ import annotations

import logging
from contextlib import closing, contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Optional, Sequence

from cmsschema.exceptions import DdlExecutionError, InvalidStateError

if TYPE_CHECKING:
    from cmsschema.dialects.base import DialectAdapter

__all__ = ["Database"]

logger = logging.getLogger(__name__)


class Database:
    """A single DB-API connection plus the dialect used to talk to it.

    All schema work for one install or one migration step runs on this
    connection inside one transaction opened with transaction() or begin().
    The connection must not be in driver-level autocommit for engines whose
    begin_sql is None (their drivers open transactions implicitly).
    """

    def __init__(self, connection: Any, dialect: "DialectAdapter"):
        self.connection = connection
        self.dialect = dialect
        self._in_transaction = False
        self._savepoint_seq = 0

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def begin(self) -> None:
        if self._in_transaction:
            raise InvalidStateError("A transaction is already open on this database.")
        if self.dialect.begin_sql:
            self._run(self.dialect.begin_sql)
        self._in_transaction = True

    def commit(self) -> None:
        if not self._in_transaction:
            raise InvalidStateError("Database is not in a transaction.")
        try:
            self.connection.commit()
        finally:
            self._in_transaction = False

    def rollback(self) -> None:
        if not self._in_transaction:
            raise InvalidStateError("Database is not in a transaction.")
        try:
            self.connection.rollback()
        finally:
            self._in_transaction = False

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Begin; commit on success, roll back and re-raise on any exception."""
        self.begin()
        try:
            yield self
        except BaseException:
            logger.debug("Rolling back transaction")
            self.rollback()
            raise
        self.commit()

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        """Run a block that can fail without aborting the open transaction."""
        if not self._in_transaction:
            raise InvalidStateError("Savepoints require an open transaction.")
        self._savepoint_seq += 1
        name = f"cmsschema_sp{self._savepoint_seq}"
        self._run(self.dialect.format_savepoint(name))
        try:
            yield
        except BaseException:
            self._run(self.dialect.format_rollback_to_savepoint(name))
            raise
        release = self.dialect.format_release_savepoint(name)
        if release:
            self._run(release)

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        """Execute a statement, discarding any result rows."""
        self._run(sql, params)

    def fetchall(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]:
        """Execute SQL and return results as list of dicts."""
        return self._run(sql, params, fetch=True)

    def scalar(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        rows = self._run(sql, params, fetch=True)
        if not rows:
            return None
        return next(iter(rows[0].values()))

    def insert(self, table_name: str, values: dict[str, Any]) -> None:
        """INSERT one row; values are bound as parameters."""
        self._run(self.dialect.format_insert(table_name, list(values)), list(values.values()))

    def close(self) -> None:
        if self._in_transaction:
            self.rollback()
        self.connection.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _run(
        self, sql: str, params: Optional[Sequence[Any]] = None, fetch: bool = False
    ) -> Any:
        try:
            with closing(self.connection.cursor()) as cursor:
                if params is None:
                    cursor.execute(sql)
                else:
                    cursor.execute(sql, tuple(params))
                if not fetch:
                    return None
                columns = (
                    [desc[0] for desc in cursor.description] if cursor.description else []
                )
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
        except Exception as exc:
            raise DdlExecutionError(sql, f"Statement failed: {exc}\n{sql}") from exc
