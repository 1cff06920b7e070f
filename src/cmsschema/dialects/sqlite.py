"""SQLite dialect.

SQLite cannot add or drop key constraints on an existing table, so primary
and foreign keys are declared inside CREATE TABLE. Constraint names are not
exposed by any pragma and are read back from the stored CREATE TABLE text.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterator, Optional

from cmsschema.dialects.base import (
    DialectAdapter,
    LiveColumn,
    LiveConstraint,
    LiveIndex,
)
from cmsschema.schema.models import ColumnDefinition, TableDefinition
from cmsschema.types import DbType

if TYPE_CHECKING:
    from cmsschema.database import Database

_TYPES = {
    DbType.INT: "INTEGER",
    DbType.BIGINT: "INTEGER",
    DbType.SMALLINT: "INTEGER",
    DbType.STRING: "TEXT",
    DbType.TEXT: "TEXT",
    DbType.BOOLEAN: "INTEGER",
    DbType.DATETIME: "TEXT",
    DbType.DECIMAL: "NUMERIC",
    DbType.GUID: "TEXT",
    DbType.BINARY: "BLOB",
}

_IDENTIFIER = r'(?:"(?:[^"]|"")+"|`[^`]+`|\[[^\]]+\]|[^\s(),]+)'
_CONSTRAINT_RE = re.compile(
    rf"\bCONSTRAINT\s+({_IDENTIFIER})\s+(PRIMARY\s+KEY|FOREIGN\s+KEY|UNIQUE|REFERENCES|CHECK)",
    re.IGNORECASE,
)
_COLUMN_LIST_RE = re.compile(r"\(([^)]*)\)")


def _unquote(identifier: str) -> str:
    identifier = identifier.strip()
    if len(identifier) >= 2 and identifier[0] == identifier[-1] == '"':
        return identifier[1:-1].replace('""', '"')
    if len(identifier) >= 2 and identifier[0] in "`[":
        return identifier[1:-1]
    return identifier


def _split_top_level(body: str) -> Iterator[str]:
    """Split a CREATE TABLE body on commas that are not nested or quoted."""
    depth = 0
    quote: Optional[str] = None
    start = 0
    for i, ch in enumerate(body):
        if quote:
            if ch == quote:
                quote = None
            continue
        if ch in "\"'`":
            quote = ch
        elif ch == "[":
            quote = "]"
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            yield body[start:i].strip()
            start = i + 1
    tail = body[start:].strip()
    if tail:
        yield tail


def parse_constraints(table_name: str, create_sql: str) -> list[LiveConstraint]:
    """Extract named constraints from a CREATE TABLE statement."""
    open_paren = create_sql.find("(")
    close_paren = create_sql.rfind(")")
    if open_paren < 0 or close_paren <= open_paren:
        return []
    body = create_sql[open_paren + 1 : close_paren]

    constraints: list[LiveConstraint] = []
    for segment in _split_top_level(body):
        if segment.upper().startswith("CONSTRAINT"):
            match = _CONSTRAINT_RE.match(segment)
            if not match:
                continue
            name = _unquote(match.group(1))
            cols_match = _COLUMN_LIST_RE.search(segment, match.end(2))
            columns = (
                [_unquote(c) for c in cols_match.group(1).split(",")]
                if cols_match
                else [None]
            )
            for col in columns:
                constraints.append(LiveConstraint(table_name, col, name))
        else:
            col_match = re.match(_IDENTIFIER, segment)
            if not col_match:
                continue
            col_name = _unquote(col_match.group(0))
            for match in _CONSTRAINT_RE.finditer(segment):
                constraints.append(
                    LiveConstraint(table_name, col_name, _unquote(match.group(1)))
                )
    return constraints


class SqliteDialect(DialectAdapter):
    name = "sqlite"
    placeholder = "?"
    begin_sql = "BEGIN"

    def supports_update_from_join(self) -> bool:
        return False

    def supports_alter_column(self) -> bool:
        return False

    def supports_drop_constraint(self) -> bool:
        return False

    def inline_keys(self) -> bool:
        return True

    def native_type(self, column: ColumnDefinition) -> str:
        return _TYPES[column.data_type]

    def _inline_identity_pk(self, table: TableDefinition) -> Optional[str]:
        """Column carrying an INTEGER PRIMARY KEY AUTOINCREMENT, if any."""
        pk = table.primary_key
        if pk is None or len(pk.columns) != 1:
            return None
        col = table.get_column(pk.columns[0])
        if col is not None and col.identity:
            return col.name
        return None

    def format_table(self, table: TableDefinition) -> str:
        inline_pk = self._inline_identity_pk(table)
        lines = []
        for col in table.columns:
            if col.name == inline_pk:
                lines.append(
                    f"    {self.quote(col.name)} INTEGER NOT NULL "
                    f"CONSTRAINT {self.quote(table.primary_key.name)} "
                    f"PRIMARY KEY AUTOINCREMENT"
                )
            else:
                lines.append(f"    {self.format_column(col)}")

        if table.primary_key is not None and inline_pk is None:
            pk = table.primary_key
            cols = ", ".join(self.quote(c) for c in pk.columns)
            lines.append(f"    CONSTRAINT {self.quote(pk.name)} PRIMARY KEY ({cols})")

        for fk in table.foreign_keys:
            cols = ", ".join(self.quote(c) for c in fk.columns)
            ref_cols = ", ".join(self.quote(c) for c in fk.referenced_columns)
            lines.append(
                f"    CONSTRAINT {self.quote(fk.name)} FOREIGN KEY ({cols}) "
                f"REFERENCES {self.quote_table(fk.referenced_table)} ({ref_cols})"
            )

        body = ",\n".join(lines)
        return f"CREATE TABLE {self.quote_table(table.name)} (\n{body}\n)"

    def format_add_column(self, table_name: str, column: ColumnDefinition) -> str:
        return (
            f"ALTER TABLE {self.quote_table(table_name)} "
            f"ADD COLUMN {self.format_column(column)}"
        )

    def get_tables_in_schema(self, db: "Database") -> list[str]:
        rows = self._fetch(
            db,
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' ORDER BY name",
        )
        return [row["name"] for row in rows]

    def get_columns_in_schema(self, db: "Database") -> list[LiveColumn]:
        columns = []
        for table in self.get_tables_in_schema(db):
            rows = self._fetch(
                db,
                'SELECT name, type, "notnull" AS not_null FROM pragma_table_info(?) '
                "ORDER BY cid",
                (table,),
            )
            for row in rows:
                columns.append(
                    LiveColumn(
                        table_name=table,
                        column_name=row["name"],
                        data_type=row["type"],
                        nullable=not row["not_null"],
                    )
                )
        return columns

    def get_defined_indexes(self, db: "Database") -> list[LiveIndex]:
        indexes = []
        for table in self.get_tables_in_schema(db):
            index_rows = self._fetch(
                db,
                'SELECT name, "unique" AS is_unique, origin FROM pragma_index_list(?)',
                (table,),
            )
            for ix in index_rows:
                # origin 'c' = CREATE INDEX; 'pk'/'u' back constraints
                if ix["origin"] != "c":
                    continue
                col_rows = self._fetch(
                    db,
                    "SELECT name FROM pragma_index_info(?) ORDER BY seqno",
                    (ix["name"],),
                )
                for col in col_rows:
                    indexes.append(
                        LiveIndex(
                            table_name=table,
                            index_name=ix["name"],
                            column_name=col["name"],
                            unique=bool(ix["is_unique"]),
                        )
                    )
        return indexes

    def get_constraints_per_column(self, db: "Database") -> list[LiveConstraint]:
        rows = self._fetch(
            db,
            "SELECT name, sql FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' ORDER BY name",
        )
        constraints = []
        for row in rows:
            constraints.extend(parse_constraints(row["name"], row["sql"] or ""))
        return constraints

    def does_table_exist(self, db: "Database", table_name: str) -> bool:
        rows = self._fetch(
            db,
            "SELECT COUNT(*) AS n FROM sqlite_master "
            "WHERE type = 'table' AND lower(name) = lower(?)",
            (table_name,),
        )
        return bool(rows and rows[0]["n"])
