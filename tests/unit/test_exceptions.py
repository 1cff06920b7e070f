"""Tests for cmsschema.exceptions module."""

import pytest

from cmsschema.exceptions import (
    CatalogError,
    CatalogLoadError,
    CmsSchemaError,
    ConfigError,
    DdlExecutionError,
    IntrospectionError,
    InvalidStateError,
    MigrationChecksumMismatchError,
    MigrationError,
    MigrationParseError,
    MigrationStateConflictError,
    MigrationStepError,
)


class TestExceptionHierarchy:
    """Tests for exception hierarchy."""

    def test_exception_hierarchy(self):
        """All exceptions inherit from CmsSchemaError."""
        assert issubclass(InvalidStateError, CmsSchemaError)
        assert issubclass(DdlExecutionError, CmsSchemaError)
        assert issubclass(IntrospectionError, CmsSchemaError)
        assert issubclass(CatalogError, CmsSchemaError)
        assert issubclass(CatalogLoadError, CatalogError)
        assert issubclass(ConfigError, CmsSchemaError)
        assert issubclass(MigrationError, CmsSchemaError)
        assert issubclass(MigrationStepError, MigrationError)
        assert issubclass(MigrationParseError, MigrationError)
        assert issubclass(MigrationStateConflictError, MigrationError)
        assert issubclass(MigrationChecksumMismatchError, MigrationError)

    def test_base_error_is_exception(self):
        assert issubclass(CmsSchemaError, Exception)

    def test_exceptions_can_be_raised_and_caught(self):
        with pytest.raises(CmsSchemaError):
            raise InvalidStateError("Database is not in a transaction.")

        with pytest.raises(CmsSchemaError):
            raise CatalogLoadError("Bad YAML")

        with pytest.raises(MigrationError):
            raise MigrationChecksumMismatchError("Checksum mismatch")


class TestErrorPayloads:
    def test_ddl_execution_error_keeps_sql(self):
        error = DdlExecutionError("DROP TABLE x", "Statement failed")
        assert error.sql == "DROP TABLE x"
        assert str(error) == "Statement failed"

    def test_migration_step_error_keeps_version_and_name(self):
        error = MigrationStepError("8.0.0", "boom", name="RenameMediaVersionTable")
        assert error.version == "8.0.0"
        assert error.name == "RenameMediaVersionTable"
        assert str(error) == "boom"
