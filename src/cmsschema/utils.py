"""Utility functions for database operations.

Extracts common setup logic from the CLI for reuse and testability.
"""

import sqlite3
from pathlib import Path
from typing import Optional

from cmsschema.config import Config
from cmsschema.database import Database
from cmsschema.dialects import get_dialect
from cmsschema.exceptions import ConfigError
from cmsschema.schema.catalog import CMS_CATALOG
from cmsschema.schema.models import SchemaCatalog


def build_config_and_validate(
    *,
    dialect: Optional[str] = None,
    database: Optional[str] = None,
    catalog: Optional[str] = None,
    migrations_dir: Optional[str] = None,
    profile: Optional[str] = None,
) -> Config:
    """Load config from ~/.cmsschema.cfg/env and validate for DB operations.

    Args:
        dialect: Dialect name (overrides env/config)
        database: Database path or connection string (overrides env/config)
        catalog: YAML catalog path (overrides env/config)
        migrations_dir: Directory of SQL migrations (overrides env/config)
        profile: Config profile name

    Returns:
        Config: Validated configuration.

    Raises:
        ConfigError: If required configuration is missing.
    """
    config = Config.from_env(
        dialect=dialect,
        database=database,
        catalog=catalog,
        migrations_dir=migrations_dir,
        profile=profile,
    )
    config.validate_for_db_ops()
    return config


def open_database(config: Config) -> Database:
    """Open a connection for the configured dialect.

    SQLite connections run with driver-level transaction handling disabled so
    that BEGIN/COMMIT are issued explicitly by Database. SQL Server has no
    bundled driver; wrap a DB-API connection in Database directly.

    Raises:
        ConfigError: If the dialect is unknown or has no bundled driver.
    """
    config.validate_for_db_ops()
    dialect = get_dialect(config.dialect)

    if dialect.name == "sqlite":
        connection = sqlite3.connect(config.database, isolation_level=None)
    elif dialect.name == "postgresql":
        import psycopg

        connection = psycopg.connect(config.database)
    else:
        raise ConfigError(
            f"No bundled driver for dialect '{config.dialect}'; "
            f"pass a DB-API connection to Database() instead"
        )
    return Database(connection, dialect)


def load_configured_catalog(config: Config) -> SchemaCatalog:
    """Return the YAML catalog named in config, or the built-in CMS catalog."""
    if not config.catalog:
        return CMS_CATALOG

    from cmsschema.schema.loader import load_catalog

    return load_catalog(Path(config.catalog))
