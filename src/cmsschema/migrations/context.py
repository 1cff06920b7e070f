"""Execution context handed to migration steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Sequence

from cmsschema.exceptions import InvalidStateError

if TYPE_CHECKING:
    from cmsschema.database import Database
    from cmsschema.dialects.base import DialectAdapter

__all__ = ["MigrationContext", "PendingStatement"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingStatement:
    sql: str
    params: Optional[tuple[Any, ...]] = None


@dataclass
class MigrationContext:
    """The database a step runs against, plus its queued statements.

    Statements are queued in order and executed by flush(). They only become
    durable when the transaction owning the database commits.
    """

    database: "Database"
    pending: list[PendingStatement] = field(default_factory=list)

    @property
    def dialect(self) -> "DialectAdapter":
        return self.database.dialect

    def add(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self.pending.append(
            PendingStatement(sql, tuple(params) if params is not None else None)
        )

    def flush(self) -> int:
        """Execute queued statements in order. Returns how many ran."""
        if self.pending and not self.database.in_transaction:
            raise InvalidStateError("Database is not in a transaction.")
        count = 0
        while self.pending:
            stmt = self.pending.pop(0)
            logger.debug(f"Executing: {stmt.sql}")
            self.database.execute(stmt.sql, stmt.params)
            count += 1
        return count
