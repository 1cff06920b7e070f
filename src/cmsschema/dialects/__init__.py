"""SQL dialect adapters."""

from cmsschema.dialects.base import (
    DialectAdapter,
    Join,
    LiveColumn,
    LiveConstraint,
    LiveIndex,
)
from cmsschema.dialects.postgres import PostgresDialect
from cmsschema.dialects.sqlite import SqliteDialect
from cmsschema.dialects.sqlserver import SqlServerDialect
from cmsschema.exceptions import ConfigError

__all__ = [
    "DialectAdapter",
    "Join",
    "LiveColumn",
    "LiveConstraint",
    "LiveIndex",
    "PostgresDialect",
    "SqliteDialect",
    "SqlServerDialect",
    "get_dialect",
]

DIALECTS: dict[str, type[DialectAdapter]] = {
    "sqlite": SqliteDialect,
    "postgresql": PostgresDialect,
    "postgres": PostgresDialect,
    "sqlserver": SqlServerDialect,
    "mssql": SqlServerDialect,
}


def get_dialect(name: str) -> DialectAdapter:
    """Return a dialect adapter by name."""
    try:
        return DIALECTS[name.lower()]()
    except KeyError:
        raise ConfigError(
            f"Unknown dialect '{name}'. Supported: {', '.join(sorted(DIALECTS))}"
        ) from None
