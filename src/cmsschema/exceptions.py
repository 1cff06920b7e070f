"""Exception classes for cmsschema."""

from typing import Optional

__all__ = [
    "CmsSchemaError",
    "InvalidStateError",
    "DdlExecutionError",
    "IntrospectionError",
    "CatalogError",
    "CatalogLoadError",
    "ConfigError",
    "MigrationError",
    "MigrationStepError",
    "MigrationParseError",
    "MigrationStateConflictError",
    "MigrationChecksumMismatchError",
]


class CmsSchemaError(Exception):
    """Base exception for cmsschema."""


class InvalidStateError(CmsSchemaError):
    """Operation invoked without the state it requires (e.g. an open transaction)."""


class DdlExecutionError(CmsSchemaError):
    """A statement failed at the database."""

    def __init__(self, sql: str, message: str):
        self.sql = sql
        super().__init__(message)


class IntrospectionError(CmsSchemaError):
    """Error reading live schema metadata."""


class CatalogError(CmsSchemaError):
    """Invalid table catalog (duplicate names, bad dependency order)."""


class CatalogLoadError(CatalogError):
    """Error loading catalog definition files."""


class ConfigError(CmsSchemaError):
    """Error in configuration."""


class MigrationError(CmsSchemaError):
    """Base error during migration execution or management."""


class MigrationStepError(MigrationError):
    """A migration step failed; the upgrade run is aborted."""

    def __init__(self, version: str, message: str, name: Optional[str] = None):
        self.version = version
        self.name = name
        super().__init__(message)


class MigrationParseError(MigrationError):
    """Error parsing migration file."""


class MigrationStateConflictError(MigrationError):
    """State conflict during migration."""


class MigrationChecksumMismatchError(MigrationError):
    """Migration checksum does not match recorded checksum."""
