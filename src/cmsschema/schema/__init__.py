"""Table catalog, installer and validator modules."""

from cmsschema.schema.catalog import CMS_CATALOG
from cmsschema.schema.events import SchemaCreatedEvent, SchemaCreatingEvent
from cmsschema.schema.installer import SchemaInstaller, TableOutcome, generate_script
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
)
from cmsschema.schema.seed import BaseDataSeeder, CmsBaseDataSeeder, NullSeeder
from cmsschema.schema.validator import DatabaseSchemaResult, SchemaValidator

__all__ = [
    "CMS_CATALOG",
    "BaseDataSeeder",
    "CmsBaseDataSeeder",
    "ColumnDefinition",
    "DatabaseSchemaResult",
    "ForeignKeyDefinition",
    "IndexDefinition",
    "NullSeeder",
    "PrimaryKeyDefinition",
    "SchemaCatalog",
    "SchemaCreatedEvent",
    "SchemaCreatingEvent",
    "SchemaInstaller",
    "SchemaValidator",
    "TableDefinition",
    "TableOutcome",
    "column",
    "define_table",
    "foreign_key",
    "generate_script",
    "index",
]
