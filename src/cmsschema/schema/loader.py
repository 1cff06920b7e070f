"""Load table catalogs from YAML files."""

from pathlib import Path
from typing import Any

import yaml

from cmsschema.exceptions import CatalogError, CatalogLoadError
from cmsschema.schema.models import (
    ColumnDefinition,
    ForeignKeyDefinition,
    IndexDefinition,
    PrimaryKeyDefinition,
    SchemaCatalog,
    TableDefinition,
    column,
    define_table,
    foreign_key,
    index,
    primary_key_name,
)
from cmsschema.types import DbType

VALID_TABLE_FIELDS = {
    "table",
    "description",
    "columns",
    "primary_key",
    "indexes",
    "foreign_keys",
}

VALID_COLUMN_FIELDS = {
    "name",
    "type",
    "length",
    "nullable",
    "identity",
    "default",
}

VALID_INDEX_FIELDS = {"name", "columns", "unique"}

VALID_FOREIGN_KEY_FIELDS = {"name", "columns", "references"}


def load_catalog(catalog_path: Path) -> SchemaCatalog:
    """Load a catalog from a directory of YAML files or a single file.

    Files in a directory are read in file-name order, which is also the
    creation order of the resulting catalog.
    """
    if catalog_path.is_file():
        tables = _load_single_file(catalog_path)
    elif catalog_path.is_dir():
        tables = _load_directory(catalog_path)
    else:
        raise CatalogLoadError(f"Catalog path does not exist: {catalog_path}")

    try:
        return SchemaCatalog(tables=tuple(tables))
    except CatalogLoadError:
        raise
    except CatalogError as exc:
        raise CatalogLoadError(str(exc)) from exc


def _load_directory(directory: Path) -> list[TableDefinition]:
    tables: list[TableDefinition] = []
    for yaml_file in sorted(directory.glob("*.yaml")):
        tables.append(_parse_table_yaml(yaml_file))
    if not tables:
        raise CatalogLoadError(f"No table definitions found in {directory}")
    return tables


def _load_single_file(file_path: Path) -> list[TableDefinition]:
    data = _read_yaml(file_path)

    if "tables" in data:
        entries = data.get("tables") or []
        if not isinstance(entries, list):
            raise CatalogLoadError(f"'tables' in {file_path} must be a list")
        tables = []
        for position, table_data in enumerate(entries, start=1):
            if not isinstance(table_data, dict):
                raise CatalogLoadError(
                    f"Entry {position} under 'tables' in {file_path} is not a mapping"
                )
            tables.append(_parse_table_dict(table_data))
        return tables
    return [_parse_table_dict(data)]


def _parse_table_yaml(file_path: Path) -> TableDefinition:
    return _parse_table_dict(_read_yaml(file_path))


def _read_yaml(file_path: Path) -> dict[str, Any]:
    try:
        with open(file_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise CatalogLoadError(f"Invalid YAML in {file_path}: {exc}") from exc
    if data is None:
        raise CatalogLoadError(f"Empty YAML file: {file_path}")
    if not isinstance(data, dict):
        raise CatalogLoadError(f"Expected a mapping at the top of {file_path}")
    return data


def _check_fields(data: dict, valid: set[str], kind: str) -> None:
    unknown_fields = set(data.keys()) - valid
    if unknown_fields:
        raise CatalogLoadError(
            f"Unknown field(s) in {kind} definition: {', '.join(sorted(unknown_fields))}"
        )


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _parse_table_dict(data: dict) -> TableDefinition:
    """Parse a table definition from a dictionary."""
    _check_fields(data, VALID_TABLE_FIELDS, "table")

    name = data.get("table")
    if not name:
        raise CatalogLoadError("Table definition missing 'table' field")

    columns = [_parse_column(col) for col in data.get("columns") or []]
    if not columns:
        raise CatalogLoadError(f"Table '{name}' has no columns")

    seen = set()
    for col in columns:
        key = col.name.casefold()
        if key in seen:
            raise CatalogLoadError(f"Duplicate column name '{col.name}' in table '{name}'")
        seen.add(key)

    primary_key = None
    if pk_data := data.get("primary_key"):
        if isinstance(pk_data, dict):
            primary_key = PrimaryKeyDefinition(
                name=pk_data.get("name") or primary_key_name(name),
                columns=tuple(_as_list(pk_data.get("columns"))),
                clustered=pk_data.get("clustered", True),
            )
        else:
            primary_key = PrimaryKeyDefinition(
                name=primary_key_name(name), columns=tuple(_as_list(pk_data))
            )

    indexes = [_parse_index(ix) for ix in data.get("indexes") or []]
    foreign_keys = [_parse_foreign_key(fk) for fk in data.get("foreign_keys") or []]

    try:
        return define_table(
            name,
            columns=columns,
            primary_key=primary_key,
            indexes=indexes,
            foreign_keys=foreign_keys,
        )
    except CatalogError as exc:
        raise CatalogLoadError(str(exc)) from exc


def _parse_column(data: dict) -> ColumnDefinition:
    """Parse a column definition from a dictionary."""
    _check_fields(data, VALID_COLUMN_FIELDS, "column")

    name = data.get("name")
    if not name:
        raise CatalogLoadError("Column definition missing 'name' field")

    col_type = data.get("type")
    if not col_type:
        raise CatalogLoadError(f"Column '{name}' missing 'type' field")
    try:
        data_type = DbType(str(col_type).lower())
    except ValueError:
        raise CatalogLoadError(
            f"Column '{name}' has unknown type '{col_type}'. "
            f"Supported: {', '.join(t.value for t in DbType)}"
        ) from None

    default = data.get("default")
    if isinstance(default, bool):
        default = "1" if default else "0"

    return column(
        name,
        data_type,
        length=data.get("length"),
        nullable=data.get("nullable", True),
        identity=data.get("identity", False),
        default=None if default is None else str(default),
    )


def _parse_index(data: dict) -> IndexDefinition:
    _check_fields(data, VALID_INDEX_FIELDS, "index")
    columns = _as_list(data.get("columns"))
    if not columns:
        raise CatalogLoadError("Index definition missing 'columns' field")
    return index(columns, unique=data.get("unique", False), name=data.get("name"))


def _parse_foreign_key(data: dict) -> ForeignKeyDefinition:
    _check_fields(data, VALID_FOREIGN_KEY_FIELDS, "foreign key")
    columns = _as_list(data.get("columns"))
    if not columns:
        raise CatalogLoadError("Foreign key definition missing 'columns' field")

    references = data.get("references")
    if not isinstance(references, dict) or not references.get("table"):
        raise CatalogLoadError(
            f"Foreign key on {', '.join(columns)} missing 'references.table' field"
        )
    return foreign_key(
        columns,
        references["table"],
        _as_list(references.get("columns")) or ["id"],
        name=data.get("name"),
    )
