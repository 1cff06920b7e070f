"""Parsing of SQL upgrade scripts named V<version>__<name>.sql.

The version part may use dots or underscores between its numbers
(V8.1.0__x.sql and V8_1_0__x.sql are both 8.1.0). Scripts are ordered by the
numeric version tuple, never by file name.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

from cmsschema.exceptions import MigrationParseError
from cmsschema.types import Version, format_version, parse_version

__all__ = [
    "MigrationFile",
    "parse_migration_file",
    "parse_migrations_dir",
    "split_sql_statements",
]

SCRIPT_NAME_PATTERN = re.compile(r"^V(?P<version>\d+(?:[._]\d+)*)__(?P<name>.+)\.sql$")


@dataclass(frozen=True)
class MigrationFile:
    version: Version
    name: str
    path: Path
    checksum: str
    sql: str

    def __post_init__(self):
        if not isinstance(self.version, tuple):
            raise TypeError(f"version must be tuple, got {type(self.version).__name__}")

    @property
    def label(self) -> str:
        return f"V{format_version(self.version)}__{self.name}"

    @property
    def statements(self) -> list[str]:
        return split_sql_statements(self.sql)


def script_checksum(sql: str) -> str:
    """SHA-256 of the script text, with CRLF and CR turned into LF first."""
    text = sql.replace("\r\n", "\n").replace("\r", "\n")
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def split_sql_statements(sql: str) -> list[str]:
    """Split a migration script on semicolons.

    Lines that hold only a -- comment are dropped before splitting, so a
    comment above a statement does not hide it. Semicolons inside string
    literals are not understood; put such statements in a script of their own.
    """
    kept = (line for line in sql.splitlines() if not line.lstrip().startswith("--"))
    return [chunk.strip() for chunk in "\n".join(kept).split(";") if chunk.strip()]


def parse_migration_file(path: Path) -> MigrationFile:
    """Read one upgrade script.

    Raises:
        MigrationParseError: The name does not follow V<version>__<name>.sql,
            the file cannot be read, or it holds no statements.
    """
    match = SCRIPT_NAME_PATTERN.match(path.name)
    if match is None:
        raise MigrationParseError(
            f"Invalid filename '{path.name}'. Expected format: V<version>__name.sql"
        )

    try:
        sql = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MigrationParseError(f"Failed to read migration file '{path}': {exc}") from exc

    # comment-only scripts count as empty
    if not split_sql_statements(sql):
        raise MigrationParseError(f"Migration file '{path.name}' is empty.")

    return MigrationFile(
        version=parse_version(match.group("version")),
        name=match.group("name"),
        path=path,
        checksum=script_checksum(sql),
        sql=sql,
    )


def parse_migrations_dir(directory: Path) -> list[MigrationFile]:
    """Parse every V*.sql script in ``directory``, lowest version first.

    Files whose names do not look like upgrade scripts are ignored. Two
    scripts that resolve to the same version (V8_1 and V8.1) raise
    MigrationParseError.
    """
    by_version: dict[Version, MigrationFile] = {}
    for path in sorted(directory.glob("*.sql")):
        if not SCRIPT_NAME_PATTERN.match(path.name):
            continue
        migration = parse_migration_file(path)
        clash = by_version.get(migration.version)
        if clash is not None:
            raise MigrationParseError(
                f"Duplicate version {format_version(migration.version)}: "
                f"'{clash.path.name}' and '{path.name}'"
            )
        by_version[migration.version] = migration

    return [by_version[version] for version in sorted(by_version)]
