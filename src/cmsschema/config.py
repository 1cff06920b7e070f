"""Configuration management for cmsschema."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cmsschema.exceptions import ConfigError

CONFIG_FILE_NAME = ".cmsschema.cfg"


def load_profile(profile: str = "DEFAULT") -> dict[str, str]:
    """Load settings from ~/.cmsschema.cfg.

    Args:
        profile: Profile name to load (default: "DEFAULT")

    Returns:
        Dict with any of dialect, database, catalog, migrations_dir

    Raises:
        ConfigError: If the profile doesn't exist
    """
    cfg_path = Path.home() / CONFIG_FILE_NAME
    if not cfg_path.exists():
        return {}

    config = configparser.ConfigParser()
    config.read(cfg_path)

    if profile != "DEFAULT" and profile not in config:
        available = config.sections() or ["DEFAULT"]
        raise ConfigError(
            f"Profile '{profile}' not found in ~/{CONFIG_FILE_NAME}. "
            f"Available profiles: {', '.join(available)}"
        )

    section = config[profile]
    result = {}
    for key in ("dialect", "database", "catalog", "migrations_dir"):
        if key in section:
            value = section[key].strip()
            if value:
                result[key] = value
    return result


@dataclass
class Config:
    """Configuration for cmsschema.

    database is a file path for SQLite and a connection string (conninfo or
    URL) for PostgreSQL. catalog optionally points at a YAML catalog; the
    built-in CMS catalog is used when it is not set.
    """

    dialect: Optional[str] = None
    database: Optional[str] = None
    catalog: Optional[str] = None
    migrations_dir: str = "migrations"

    @classmethod
    def from_env(
        cls,
        *,
        dialect: Optional[str] = None,
        database: Optional[str] = None,
        catalog: Optional[str] = None,
        migrations_dir: Optional[str] = None,
        profile: Optional[str] = None,
    ) -> "Config":
        """Load configuration from ~/.cmsschema.cfg, env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. ~/.cmsschema.cfg profile
        """
        profile_cfg = {}
        profile_name = profile or os.environ.get("CMSSCHEMA_PROFILE", "DEFAULT")
        try:
            profile_cfg = load_profile(profile_name)
        except ConfigError:
            if profile is not None:
                raise

        def resolve(explicit, env_key, cfg_key=None):
            if explicit is not None:
                return explicit
            env_val = os.environ.get(env_key)
            if env_val is not None:
                return env_val
            if cfg_key and cfg_key in profile_cfg:
                return profile_cfg[cfg_key]
            return None

        return cls(
            dialect=resolve(dialect, "CMSSCHEMA_DIALECT", "dialect"),
            database=resolve(database, "CMSSCHEMA_DATABASE", "database"),
            catalog=resolve(catalog, "CMSSCHEMA_CATALOG", "catalog"),
            migrations_dir=resolve(
                migrations_dir, "CMSSCHEMA_MIGRATIONS_DIR", "migrations_dir"
            )
            or "migrations",
        )

    def validate_for_db_ops(self) -> None:
        """Validate that all required fields for database operations are present.

        Raises:
            ConfigError: If the dialect or database is missing.
        """
        missing = []
        if not self.dialect:
            missing.append("dialect (use --dialect or CMSSCHEMA_DIALECT)")
        if not self.database:
            missing.append("database (use --database or CMSSCHEMA_DATABASE)")

        if missing:
            raise ConfigError(
                "Missing required configuration:\n  - " + "\n  - ".join(missing)
            )
