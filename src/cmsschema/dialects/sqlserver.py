"""SQL Server dialect.

Works with any DB-API connection (e.g. pyodbc) passed to Database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

from cmsschema.dialects.base import (
    DialectAdapter,
    Join,
    LiveColumn,
    LiveConstraint,
    LiveIndex,
)
from cmsschema.schema.models import ColumnDefinition, IndexDefinition, TableDefinition
from cmsschema.types import DbType

if TYPE_CHECKING:
    from cmsschema.database import Database


class SqlServerDialect(DialectAdapter):
    name = "sqlserver"
    placeholder = "?"
    begin_sql = None

    def supports_identity_insert(self) -> bool:
        return True

    def quote(self, identifier: str) -> str:
        return "[" + identifier.replace("]", "]]") + "]"

    def native_type(self, column: ColumnDefinition) -> str:
        t = column.data_type
        if t == DbType.INT:
            return "INT"
        if t == DbType.BIGINT:
            return "BIGINT"
        if t == DbType.SMALLINT:
            return "SMALLINT"
        if t == DbType.STRING:
            return f"NVARCHAR({column.length or 255})"
        if t == DbType.TEXT:
            return "NVARCHAR(MAX)"
        if t == DbType.BOOLEAN:
            return "BIT"
        if t == DbType.DATETIME:
            return "DATETIME"
        if t == DbType.DECIMAL:
            return "DECIMAL(38, 6)"
        if t == DbType.GUID:
            return "UNIQUEIDENTIFIER"
        return "VARBINARY(MAX)"

    def format_identity(self, column: ColumnDefinition) -> str:
        return "IDENTITY(1,1)"

    def format_default(self, column: ColumnDefinition) -> Optional[str]:
        if column.default is None:
            return None
        return f"({column.default})"

    def format_column(self, column: ColumnDefinition) -> str:
        text = super().format_column(column)
        if column.default is not None and column.table_name:
            # Named so that migrations can drop it before dropping the column.
            name = self.quote(f"DF_{column.table_name}_{column.name}")
            text = text.replace(" DEFAULT ", f" CONSTRAINT {name} DEFAULT ", 1)
        return text

    def format_primary_key(self, table: TableDefinition) -> str:
        if table.primary_key is None:
            return ""
        pk = table.primary_key
        cols = ", ".join(self.quote(c) for c in pk.columns)
        kind = "CLUSTERED" if pk.clustered else "NONCLUSTERED"
        return (
            f"ALTER TABLE {self.quote_table(table.name)} "
            f"ADD CONSTRAINT {self.quote(pk.name)} PRIMARY KEY {kind} ({cols})"
        )

    def format_index(self, ix: IndexDefinition) -> str:
        unique = "UNIQUE " if ix.unique else ""
        cols = ", ".join(self.quote(c) for c in ix.columns)
        return (
            f"CREATE {unique}NONCLUSTERED INDEX {self.quote(ix.name)} "
            f"ON {self.quote_table(ix.table_name)} ({cols})"
        )

    def format_identity_insert(self, table_name: str, enabled: bool) -> str:
        state = "ON" if enabled else "OFF"
        return f"SET IDENTITY_INSERT {self.quote_table(table_name)} {state}"

    def format_rename_table(self, old_name: str, new_name: str) -> str:
        return f"EXEC sp_rename {self.quote_string(old_name)}, {self.quote_string(new_name)}"

    def format_alter_column(self, table_name: str, column: ColumnDefinition) -> list[str]:
        nullability = "NULL" if column.nullable else "NOT NULL"
        return [
            f"ALTER TABLE {self.quote_table(table_name)} ALTER COLUMN "
            f"{self.quote(column.name)} {self.native_type(column)} {nullability}"
        ]

    def format_drop_index(self, table_name: str, index_name: str) -> str:
        return f"DROP INDEX {self.quote(index_name)} ON {self.quote_table(table_name)}"

    def format_savepoint(self, name: str) -> str:
        return f"SAVE TRANSACTION {name}"

    def format_rollback_to_savepoint(self, name: str) -> str:
        return f"ROLLBACK TRANSACTION {name}"

    def format_release_savepoint(self, name: str) -> Optional[str]:
        return None

    def format_update_from_join(
        self,
        table: str,
        alias: str,
        assignments: dict[str, str],
        joins: Sequence[Join],
        where: Optional[str] = None,
    ) -> str:
        sets = ", ".join(f"{self.quote(col)} = {expr}" for col, expr in assignments.items())
        sql = f"UPDATE {alias} SET {sets} FROM {self.quote_table(table)} {alias}"
        for join in joins:
            sql += f" JOIN {self.quote_table(join.table)} {join.alias} ON {join.on}"
        if where:
            sql += f" WHERE {where}"
        return sql

    def get_tables_in_schema(self, db: "Database") -> list[str]:
        rows = self._fetch(
            db,
            "SELECT TABLE_NAME AS table_name FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_TYPE = 'BASE TABLE' AND TABLE_SCHEMA = SCHEMA_NAME() "
            "ORDER BY TABLE_NAME",
        )
        return [row["table_name"] for row in rows]

    def get_columns_in_schema(self, db: "Database") -> list[LiveColumn]:
        rows = self._fetch(
            db,
            "SELECT c.TABLE_NAME AS table_name, c.COLUMN_NAME AS column_name, "
            "       c.DATA_TYPE AS data_type, c.IS_NULLABLE AS is_nullable "
            "FROM INFORMATION_SCHEMA.COLUMNS c "
            "JOIN INFORMATION_SCHEMA.TABLES t "
            "  ON t.TABLE_SCHEMA = c.TABLE_SCHEMA AND t.TABLE_NAME = c.TABLE_NAME "
            "WHERE c.TABLE_SCHEMA = SCHEMA_NAME() AND t.TABLE_TYPE = 'BASE TABLE' "
            "ORDER BY c.TABLE_NAME, c.ORDINAL_POSITION",
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
            "SELECT t.name AS table_name, i.name AS index_name, "
            "       c.name AS column_name, i.is_unique AS is_unique "
            "FROM sys.indexes i "
            "JOIN sys.tables t ON t.object_id = i.object_id "
            "JOIN sys.index_columns ic "
            "  ON ic.object_id = i.object_id AND ic.index_id = i.index_id "
            "JOIN sys.columns c "
            "  ON c.object_id = ic.object_id AND c.column_id = ic.column_id "
            "WHERE i.is_primary_key = 0 AND i.is_unique_constraint = 0 "
            "  AND i.type > 0 AND t.is_ms_shipped = 0 "
            "ORDER BY t.name, i.name, ic.key_ordinal",
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
            "SELECT TABLE_NAME AS table_name, COLUMN_NAME AS column_name, "
            "       CONSTRAINT_NAME AS constraint_name "
            "FROM INFORMATION_SCHEMA.CONSTRAINT_COLUMN_USAGE "
            "WHERE TABLE_SCHEMA = SCHEMA_NAME()",
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
            "SELECT COUNT(*) AS n FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = SCHEMA_NAME() AND TABLE_NAME = ?",
            (table_name,),
        )
        return bool(rows and rows[0]["n"])
