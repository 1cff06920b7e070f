"""Table definition classes and the ordered schema catalog."""

from dataclasses import dataclass, field, replace
from typing import Iterable, Iterator, Optional, Sequence, Union

from cmsschema.exceptions import CatalogError
from cmsschema.types import DbType

INTEGER_TYPES = {DbType.INT, DbType.BIGINT, DbType.SMALLINT}


def primary_key_name(table: str) -> str:
    return f"PK_{table}"


def foreign_key_name(table: str, referenced_table: str, referenced_column: str) -> str:
    return f"FK_{table}_{referenced_table}_{referenced_column}"


def index_name(table: str, columns: Sequence[str]) -> str:
    return f"IX_{table}_{'_'.join(columns)}"


@dataclass(frozen=True)
class ColumnDefinition:
    """Column definition.

    table_name and primary_key_name are stamped by define_table(); build
    columns with the column() helper and leave them empty.
    """

    name: str
    data_type: DbType
    table_name: str = ""
    length: Optional[int] = None
    nullable: bool = True
    identity: bool = False
    default: Optional[str] = None
    primary_key_name: Optional[str] = None

    @property
    def is_primary_key(self) -> bool:
        return bool(self.primary_key_name)


@dataclass(frozen=True)
class PrimaryKeyDefinition:
    name: str
    columns: tuple[str, ...]
    clustered: bool = True


@dataclass(frozen=True)
class IndexDefinition:
    """Non-key index. Unique "constraints" are modelled as unique indexes."""

    name: str
    table_name: str
    columns: tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class ForeignKeyDefinition:
    name: str
    table_name: str
    columns: tuple[str, ...]
    referenced_table: str
    referenced_columns: tuple[str, ...]


@dataclass(frozen=True)
class TableDefinition:
    """Table definition. Immutable once produced by define_table()."""

    name: str
    columns: tuple[ColumnDefinition, ...]
    primary_key: Optional[PrimaryKeyDefinition] = None
    indexes: tuple[IndexDefinition, ...] = field(default_factory=tuple)
    foreign_keys: tuple[ForeignKeyDefinition, ...] = field(default_factory=tuple)

    def get_column(self, name: str) -> Optional[ColumnDefinition]:
        """Get a column by name (case-insensitive)."""
        wanted = name.casefold()
        for col in self.columns:
            if col.name.casefold() == wanted:
                return col
        return None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def has_identity(self) -> bool:
        return any(c.identity for c in self.columns)

    @property
    def identity_column(self) -> Optional[ColumnDefinition]:
        for col in self.columns:
            if col.identity:
                return col
        return None


def column(
    name: str,
    data_type: DbType,
    length: Optional[int] = None,
    nullable: bool = True,
    identity: bool = False,
    default: Optional[str] = None,
) -> ColumnDefinition:
    """Declare a column for use in define_table()."""
    return ColumnDefinition(
        name=name,
        data_type=data_type,
        length=length,
        nullable=nullable,
        identity=identity,
        default=default,
    )


def index(
    columns: Union[str, Sequence[str]], unique: bool = False, name: Optional[str] = None
) -> IndexDefinition:
    """Declare an index; name defaults to IX_<table>_<columns>."""
    cols = (columns,) if isinstance(columns, str) else tuple(columns)
    return IndexDefinition(name=name or "", table_name="", columns=cols, unique=unique)


def foreign_key(
    columns: Union[str, Sequence[str]],
    referenced_table: str,
    referenced_columns: Union[str, Sequence[str]] = "id",
    name: Optional[str] = None,
) -> ForeignKeyDefinition:
    """Declare a foreign key; name defaults to FK_<table>_<refTable>_<refColumn>."""
    cols = (columns,) if isinstance(columns, str) else tuple(columns)
    ref_cols = (
        (referenced_columns,)
        if isinstance(referenced_columns, str)
        else tuple(referenced_columns)
    )
    return ForeignKeyDefinition(
        name=name or "",
        table_name="",
        columns=cols,
        referenced_table=referenced_table,
        referenced_columns=ref_cols,
    )


def define_table(
    name: str,
    columns: Iterable[ColumnDefinition],
    primary_key: Union[None, str, Sequence[str], PrimaryKeyDefinition] = None,
    indexes: Iterable[IndexDefinition] = (),
    foreign_keys: Iterable[ForeignKeyDefinition] = (),
    primary_key_name_override: Optional[str] = None,
) -> TableDefinition:
    """Build a TableDefinition, filling in owning-table and key names.

    Raises:
        CatalogError: If a key or index references an unknown column, or an
            identity column is not an integer type.
    """
    if isinstance(primary_key, PrimaryKeyDefinition):
        pk = primary_key
    elif primary_key:
        pk_cols = (primary_key,) if isinstance(primary_key, str) else tuple(primary_key)
        pk = PrimaryKeyDefinition(
            name=primary_key_name_override or primary_key_name(name), columns=pk_cols
        )
    else:
        pk = None

    declared = list(columns)
    known = {c.name.casefold() for c in declared}

    def check_columns(kind: str, cols: Sequence[str]) -> None:
        for col in cols:
            if col.casefold() not in known:
                raise CatalogError(
                    f"{kind} on table '{name}' references unknown column '{col}'"
                )

    if pk is not None:
        check_columns("Primary key", pk.columns)
    pk_cols_folded = {c.casefold() for c in pk.columns} if pk else set()

    stamped_columns = []
    for col in declared:
        if col.identity and col.data_type not in INTEGER_TYPES:
            raise CatalogError(
                f"Identity column '{name}.{col.name}' must be an integer type"
            )
        stamped_columns.append(
            replace(
                col,
                table_name=name,
                primary_key_name=pk.name if col.name.casefold() in pk_cols_folded else None,
            )
        )

    stamped_indexes = []
    for ix in indexes:
        check_columns("Index", ix.columns)
        stamped_indexes.append(
            replace(ix, table_name=name, name=ix.name or index_name(name, ix.columns))
        )

    stamped_fks = []
    for fk in foreign_keys:
        check_columns("Foreign key", fk.columns)
        stamped_fks.append(
            replace(
                fk,
                table_name=name,
                name=fk.name
                or foreign_key_name(name, fk.referenced_table, fk.referenced_columns[0]),
            )
        )

    return TableDefinition(
        name=name,
        columns=tuple(stamped_columns),
        primary_key=pk,
        indexes=tuple(stamped_indexes),
        foreign_keys=tuple(stamped_fks),
    )


@dataclass(frozen=True)
class SchemaCatalog:
    """Ordered table definitions.

    Order is dependency order: a table only references itself or tables that
    come before it. Creation walks the catalog forwards, removal backwards.
    """

    tables: tuple[TableDefinition, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", tuple(self.tables))
        seen: set[str] = set()
        for table in self.tables:
            key = table.name.casefold()
            if key in seen:
                raise CatalogError(f"Duplicate table name '{table.name}' in catalog")
            for fk in table.foreign_keys:
                ref = fk.referenced_table.casefold()
                if ref != key and ref not in seen:
                    raise CatalogError(
                        f"Table '{table.name}' references '{fk.referenced_table}' "
                        f"which is not declared before it (foreign key {fk.name})"
                    )
            seen.add(key)

    def __iter__(self) -> Iterator[TableDefinition]:
        return iter(self.tables)

    def __len__(self) -> int:
        return len(self.tables)

    def __reversed__(self) -> Iterator[TableDefinition]:
        return reversed(self.tables)

    def get_table(self, name: str) -> Optional[TableDefinition]:
        """Get a table by name (case-insensitive)."""
        wanted = name.casefold()
        for table in self.tables:
            if table.name.casefold() == wanted:
                return table
        return None

    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    def without(self, *names: str) -> "SchemaCatalog":
        """Return a copy of the catalog without the named tables."""
        dropped = {n.casefold() for n in names}
        return SchemaCatalog(
            tables=tuple(t for t in self.tables if t.name.casefold() not in dropped)
        )

    def foreign_key_names(self) -> list[str]:
        return [fk.name for t in self.tables for fk in t.foreign_keys]

    def primary_key_names(self) -> list[str]:
        return [
            c.primary_key_name
            for t in self.tables
            for c in t.columns
            if c.primary_key_name and c.primary_key_name.strip()
        ]

    def index_names(self) -> list[str]:
        return [ix.name for t in self.tables for ix in t.indexes]
