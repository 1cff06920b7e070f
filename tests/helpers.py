"""Shared test helpers for cmsschema tests."""

import sqlite3
from typing import Any, Callable, Optional

from cmsschema.config import Config
from cmsschema.database import Database
from cmsschema.dialects import SqliteDialect, SqlServerDialect
from cmsschema.dialects.base import DialectAdapter, LiveColumn, LiveConstraint, LiveIndex
from cmsschema.schema.models import (
    SchemaCatalog,
    column,
    define_table,
    foreign_key,
    index,
)
from cmsschema.types import DbType


def make_test_config(
    dialect: str = "sqlite",
    database: str = ":memory:",
) -> Config:
    """Create a Config for tests with sensible defaults."""
    return Config(dialect=dialect, database=database)


def make_sqlite_database(path: str = ":memory:") -> Database:
    """Database on a SQLite connection with explicit transaction control."""
    return Database(sqlite3.connect(path, isolation_level=None), SqliteDialect())


def make_two_table_catalog() -> SchemaCatalog:
    """TableA (no foreign keys) followed by TableB (foreign key to TableA)."""
    table_a = define_table(
        "TableA",
        columns=[
            column("id", DbType.INT, nullable=False, identity=True),
            column("name", DbType.STRING, length=50, nullable=False),
        ],
        primary_key="id",
        indexes=[index("name", unique=True)],
    )
    table_b = define_table(
        "TableB",
        columns=[
            column("id", DbType.INT, nullable=False),
            column("aId", DbType.INT, nullable=False),
            column("note", DbType.TEXT),
        ],
        primary_key="id",
        indexes=[index("aId")],
        foreign_keys=[foreign_key("aId", "TableA")],
    )
    return SchemaCatalog((table_a, table_b))


class FakeCursor:
    def __init__(self, connection: "RecordingConnection"):
        self._connection = connection
        self._rows: list[tuple] = []
        self.description = None

    def execute(self, sql: str, params: Optional[tuple] = None) -> None:
        self._connection.statements.append(sql)
        self._connection.params.append(params)
        for fragment, error in self._connection.failures.items():
            if fragment in sql:
                raise error
        rows = self._connection.responder(sql, params)
        if rows:
            columns = list(rows[0].keys())
            self.description = [(c,) for c in columns]
            self._rows = [tuple(row[c] for c in columns) for row in rows]
        else:
            self.description = None
            self._rows = []

    def fetchall(self) -> list[tuple]:
        return self._rows

    def close(self) -> None:
        pass


class RecordingConnection:
    """DB-API connection double that records every statement it is given.

    responder(sql, params) returns the rows (list of dicts) for a statement;
    failures maps a SQL fragment to the exception raised when it appears.
    """

    def __init__(
        self,
        responder: Optional[Callable[[str, Any], list[dict]]] = None,
        failures: Optional[dict[str, Exception]] = None,
    ):
        self.responder = responder or (lambda sql, params: [])
        self.failures = failures or {}
        self.statements: list[str] = []
        self.params: list[Any] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


def existing_tables_responder(existing: set[str]) -> Callable[[str, Any], list[dict]]:
    """Answer table-existence queries from a set of table names."""
    folded = {name.casefold() for name in existing}

    def respond(sql: str, params: Any) -> list[dict]:
        if "COUNT(*)" in sql and params:
            return [{"n": 1 if params[0].casefold() in folded else 0}]
        return []

    return respond


def make_recording_database(
    dialect: Optional[DialectAdapter] = None,
    existing: Optional[set[str]] = None,
    failures: Optional[dict[str, Exception]] = None,
) -> tuple[Database, RecordingConnection]:
    connection = RecordingConnection(
        responder=existing_tables_responder(existing or set()), failures=failures
    )
    return Database(connection, dialect or SqlServerDialect()), connection


class StaticDialect(SqliteDialect):
    """SQLite formatting with canned live-schema metadata."""

    def __init__(
        self,
        tables: Optional[list[str]] = None,
        columns: Optional[list[LiveColumn]] = None,
        indexes: Optional[list[LiveIndex]] = None,
        constraints: Optional[list[LiveConstraint]] = None,
    ):
        self.tables = tables or []
        self.columns = columns or []
        self.indexes = indexes or []
        self.constraints = constraints or []

    def get_tables_in_schema(self, db):
        return list(self.tables)

    def get_columns_in_schema(self, db):
        return list(self.columns)

    def get_defined_indexes(self, db):
        return list(self.indexes)

    def get_constraints_per_column(self, db):
        return list(self.constraints)

    def does_table_exist(self, db, table_name):
        return table_name.casefold() in {t.casefold() for t in self.tables}


def live_state_for(catalog: SchemaCatalog) -> dict[str, list]:
    """Live metadata exactly matching a catalog, as StaticDialect kwargs."""
    tables = [t.name for t in catalog]
    columns = [
        LiveColumn(t.name, c.name, c.data_type.value, c.nullable)
        for t in catalog
        for c in t.columns
    ]
    indexes = [
        LiveIndex(t.name, ix.name, col, ix.unique)
        for t in catalog
        for ix in t.indexes
        for col in ix.columns
    ]
    constraints = []
    for t in catalog:
        if t.primary_key:
            for col in t.primary_key.columns:
                constraints.append(LiveConstraint(t.name, col, t.primary_key.name))
        for fk in t.foreign_keys:
            for col in fk.columns:
                constraints.append(LiveConstraint(t.name, col, fk.name))
    return {
        "tables": tables,
        "columns": columns,
        "indexes": indexes,
        "constraints": constraints,
    }
