"""Export catalog definitions to YAML files."""

from pathlib import Path
from typing import Any

import yaml

from cmsschema.schema.models import (
    ColumnDefinition,
    SchemaCatalog,
    TableDefinition,
    foreign_key_name,
    index_name,
    primary_key_name,
)


def table_to_dict(table: TableDefinition) -> dict[str, Any]:
    """Convert a TableDefinition to a dictionary suitable for YAML export.

    Names that follow the default naming convention are left out so that a
    round trip through load_catalog() reproduces them.
    """
    data: dict[str, Any] = {"table": table.name}
    data["columns"] = [_column_to_dict(col) for col in table.columns]

    if table.primary_key:
        pk = table.primary_key
        pk_data: dict[str, Any] = {"columns": list(pk.columns)}
        if pk.name != primary_key_name(table.name):
            pk_data["name"] = pk.name
        if not pk.clustered:
            pk_data["clustered"] = False
        data["primary_key"] = pk_data

    if table.indexes:
        indexes = []
        for ix in table.indexes:
            ix_data: dict[str, Any] = {"columns": list(ix.columns)}
            if ix.name != index_name(table.name, ix.columns):
                ix_data["name"] = ix.name
            if ix.unique:
                ix_data["unique"] = True
            indexes.append(ix_data)
        data["indexes"] = indexes

    if table.foreign_keys:
        fks = []
        for fk in table.foreign_keys:
            fk_data: dict[str, Any] = {
                "columns": list(fk.columns),
                "references": {
                    "table": fk.referenced_table,
                    "columns": list(fk.referenced_columns),
                },
            }
            default = foreign_key_name(
                table.name, fk.referenced_table, fk.referenced_columns[0]
            )
            if fk.name != default:
                fk_data["name"] = fk.name
            fks.append(fk_data)
        data["foreign_keys"] = fks

    return data


def _column_to_dict(col: ColumnDefinition) -> dict[str, Any]:
    data: dict[str, Any] = {"name": col.name, "type": col.data_type.value}

    if col.length is not None:
        data["length"] = col.length

    if not col.nullable:
        data["nullable"] = False

    if col.identity:
        data["identity"] = True

    if col.default is not None:
        data["default"] = col.default

    return data


def export_table_yaml(table: TableDefinition) -> str:
    """Export a single table to YAML string."""
    data = table_to_dict(table)
    return yaml.dump(
        data, default_flow_style=False, sort_keys=False, allow_unicode=True
    )


def export_catalog_to_directory(catalog: SchemaCatalog, output_dir: Path) -> list[Path]:
    """Export all tables in a catalog to individual YAML files.

    Files are prefixed with their catalog position so that loading the
    directory back preserves creation order.

    Returns list of created file paths.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    created_files = []

    for position, table in enumerate(catalog, start=1):
        file_path = output_dir / f"{position:02d}_{table.name}.yaml"
        file_path.write_text(export_table_yaml(table))
        created_files.append(file_path)

    return created_files
