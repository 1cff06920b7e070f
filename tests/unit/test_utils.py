"""Tests for connection and catalog helpers."""

import sys
from unittest.mock import MagicMock, patch

import pytest

from cmsschema.dialects import PostgresDialect, SqliteDialect
from cmsschema.exceptions import ConfigError
from cmsschema.schema.catalog import CMS_CATALOG
from cmsschema.utils import (
    build_config_and_validate,
    load_configured_catalog,
    open_database,
)
from tests.helpers import make_test_config


class TestBuildConfigAndValidate:
    def test_missing_database_raises(self, monkeypatch, tmp_path):
        monkeypatch.delenv("CMSSCHEMA_DATABASE", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))

        with pytest.raises(ConfigError, match="database"):
            build_config_and_validate(dialect="sqlite")

    def test_explicit_values_returned(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))

        config = build_config_and_validate(dialect="sqlite", database=":memory:")

        assert config.dialect == "sqlite"
        assert config.database == ":memory:"


class TestOpenDatabase:
    def test_sqlite_runs_statements(self):
        with open_database(make_test_config()) as db:
            assert isinstance(db.dialect, SqliteDialect)
            assert db.scalar("SELECT 1") == 1

    def test_postgres_uses_psycopg(self):
        fake_psycopg = MagicMock()
        config = make_test_config(dialect="postgresql", database="dbname=cms")

        with patch.dict(sys.modules, {"psycopg": fake_psycopg}):
            db = open_database(config)

        fake_psycopg.connect.assert_called_once_with("dbname=cms")
        assert isinstance(db.dialect, PostgresDialect)

    def test_sqlserver_has_no_bundled_driver(self):
        with pytest.raises(ConfigError, match="No bundled driver"):
            open_database(make_test_config(dialect="sqlserver"))

    def test_unknown_dialect(self):
        with pytest.raises(ConfigError, match="Unknown dialect"):
            open_database(make_test_config(dialect="oracle"))


class TestLoadConfiguredCatalog:
    def test_default_is_builtin_catalog(self):
        assert load_configured_catalog(make_test_config()) is CMS_CATALOG

    def test_yaml_catalog(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "table: widget\ncolumns:\n  - {name: id, type: int, nullable: false}\n"
        )
        config = make_test_config()
        config.catalog = str(path)

        assert load_configured_catalog(config).table_names() == ["widget"]
