"""PostgreSQL dialect."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from cmsschema.dialects.base import (
    DialectAdapter,
    Join,
    LiveColumn,
    LiveConstraint,
    LiveIndex,
)
from cmsschema.schema.models import ColumnDefinition, TableDefinition
from cmsschema.types import DbType

if TYPE_CHECKING:
    from cmsschema.database import Database

_BOOLEAN_DEFAULTS = {"0": "FALSE", "1": "TRUE"}


class PostgresDialect(DialectAdapter):
    """PostgreSQL via psycopg.

    Identity columns are GENERATED BY DEFAULT, so seed rows may carry explicit
    ids without a toggle; the identity sequence is moved past them afterwards.
    """

    name = "postgresql"
    placeholder = "%s"
    begin_sql = None

    def native_type(self, column: ColumnDefinition) -> str:
        t = column.data_type
        if t == DbType.INT:
            return "INTEGER"
        if t == DbType.BIGINT:
            return "BIGINT"
        if t == DbType.SMALLINT:
            return "SMALLINT"
        if t == DbType.STRING:
            return f"VARCHAR({column.length})" if column.length else "VARCHAR"
        if t == DbType.TEXT:
            return "TEXT"
        if t == DbType.BOOLEAN:
            return "BOOLEAN"
        if t == DbType.DATETIME:
            return "TIMESTAMP"
        if t == DbType.DECIMAL:
            return "NUMERIC(38, 6)"
        if t == DbType.GUID:
            return "UUID"
        return "BYTEA"

    def format_identity(self, column: ColumnDefinition) -> str:
        return "GENERATED BY DEFAULT AS IDENTITY"

    def format_default(self, column: ColumnDefinition) -> Optional[str]:
        if column.default is not None and column.data_type == DbType.BOOLEAN:
            return _BOOLEAN_DEFAULTS.get(column.default.strip(), column.default)
        return column.default

    def format_identity_reseed(self, table: TableDefinition) -> list[str]:
        col = table.identity_column
        if col is None:
            return []
        seq_table = self.quote_string(self.quote_table(table.name))
        return [
            f"SELECT setval(pg_get_serial_sequence({seq_table}, "
            f"{self.quote_string(col.name)}), "
            f"GREATEST(COALESCE((SELECT MAX({self.quote(col.name)}) "
            f"FROM {self.quote_table(table.name)}), 0), 0) + 1, false)"
        ]

    def format_alter_column(self, table_name: str, column: ColumnDefinition) -> list[str]:
        table = self.quote_table(table_name)
        col = self.quote(column.name)
        statements = [
            f"ALTER TABLE {table} ALTER COLUMN {col} TYPE {self.native_type(column)}",
            f"ALTER TABLE {table} ALTER COLUMN {col} "
            + ("DROP NOT NULL" if column.nullable else "SET NOT NULL"),
        ]
        default = self.format_default(column)
        if default is not None:
            statements.append(f"ALTER TABLE {table} ALTER COLUMN {col} SET DEFAULT {default}")
        return statements

    def format_update_from_join(
        self,
        table: str,
        alias: str,
        assignments: dict[str, str],
        joins: Sequence[Join],
        where: Optional[str] = None,
    ) -> str:
        # The first join's condition moves into WHERE; PostgreSQL joins the
        # target implicitly through FROM.
        sets = ", ".join(f"{self.quote(col)} = {expr}" for col, expr in assignments.items())
        first, rest = joins[0], joins[1:]
        from_clause = f"{self.quote_table(first.table)} {first.alias}"
        for join in rest:
            from_clause += f" JOIN {self.quote_table(join.table)} {join.alias} ON {join.on}"
        conditions = [first.on] + ([where] if where else [])
        return (
            f"UPDATE {self.quote_table(table)} AS {alias} SET {sets} "
            f"FROM {from_clause} WHERE " + " AND ".join(conditions)
        )

    def get_tables_in_schema(self, db: "Database") -> list[str]:
        rows = self._fetch(
            db,
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE' "
            "ORDER BY table_name",
        )
        return [row["table_name"] for row in rows]

    def get_columns_in_schema(self, db: "Database") -> list[LiveColumn]:
        rows = self._fetch(
            db,
            "SELECT c.table_name, c.column_name, c.data_type, c.is_nullable "
            "FROM information_schema.columns c "
            "JOIN information_schema.tables t "
            "  ON t.table_schema = c.table_schema AND t.table_name = c.table_name "
            "WHERE c.table_schema = current_schema() AND t.table_type = 'BASE TABLE' "
            "ORDER BY c.table_name, c.ordinal_position",
        )
        return [
            LiveColumn(
                table_name=row["table_name"],
                column_name=row["column_name"],
                data_type=row["data_type"],
                nullable=row["is_nullable"] != "NO",
            )
            for row in rows
        ]

    def get_defined_indexes(self, db: "Database") -> list[LiveIndex]:
        rows = self._fetch(
            db,
            "SELECT t.relname AS table_name, i.relname AS index_name, "
            "       a.attname AS column_name, ix.indisunique AS is_unique "
            "FROM pg_index ix "
            "JOIN pg_class t ON t.oid = ix.indrelid "
            "JOIN pg_class i ON i.oid = ix.indexrelid "
            "JOIN pg_namespace n ON n.oid = t.relnamespace "
            "JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = ANY(ix.indkey) "
            "WHERE n.nspname = current_schema() "
            "  AND NOT ix.indisprimary "
            "  AND NOT EXISTS (SELECT 1 FROM pg_constraint c "
            "                  WHERE c.conindid = ix.indexrelid AND c.conrelid = ix.indrelid "
            "                    AND c.contype IN ('p', 'u', 'x')) "
            "ORDER BY t.relname, i.relname",
        )
        return [
            LiveIndex(
                table_name=row["table_name"],
                index_name=row["index_name"],
                column_name=row["column_name"],
                unique=bool(row["is_unique"]),
            )
            for row in rows
        ]

    def get_constraints_per_column(self, db: "Database") -> list[LiveConstraint]:
        rows = self._fetch(
            db,
            "SELECT table_name, column_name, constraint_name "
            "FROM information_schema.key_column_usage "
            "WHERE table_schema = current_schema() "
            "ORDER BY table_name, constraint_name, ordinal_position",
        )
        return [
            LiveConstraint(
                table_name=row["table_name"],
                column_name=row["column_name"],
                constraint_name=row["constraint_name"],
            )
            for row in rows
        ]

    def does_table_exist(self, db: "Database", table_name: str) -> bool:
        rows = self._fetch(
            db,
            "SELECT COUNT(*) AS n FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND lower(table_name) = lower(%s)",
            (table_name,),
        )
        return bool(rows and rows[0]["n"])
