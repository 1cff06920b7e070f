"""Core type definitions for cmsschema."""

import re
from enum import Enum
from typing import TypeAlias

TableName: TypeAlias = str
ColumnName: TypeAlias = str
Version: TypeAlias = tuple[int, ...]

__all__ = [
    "TableName",
    "ColumnName",
    "Version",
    "DbType",
    "ErrorKind",
    "StepStatus",
    "TableAction",
    "parse_version",
    "format_version",
]

_VERSION_RE = re.compile(r"^\d+([._]\d+)*$")


class DbType(Enum):
    """Logical column types, mapped to native types by each dialect."""

    INT = "int"
    BIGINT = "bigint"
    SMALLINT = "smallint"
    STRING = "string"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATETIME = "datetime"
    DECIMAL = "decimal"
    GUID = "guid"
    BINARY = "binary"


class ErrorKind(Enum):
    """Kinds of mismatch reported by schema validation."""

    TABLE = "Table"
    COLUMN = "Column"
    INDEX = "Index"
    CONSTRAINT = "Constraint"
    UNKNOWN = "Unknown"


class StepStatus(Enum):
    """Lifecycle of a migration step within one run."""

    PENDING = "pending"
    RUNNING = "running"
    APPLIED = "applied"
    FAILED = "failed"


class TableAction(Enum):
    """What the installer did with a single table."""

    CREATED = "created"
    RECREATED = "recreated"
    SKIPPED = "skipped"
    DROPPED = "dropped"
    ABSENT = "absent"
    FAILED = "failed"


def parse_version(value: str) -> Version:
    """Parse '8.0.0' (or '8_0_0') into a comparable tuple."""
    text = value.strip()
    if not _VERSION_RE.match(text):
        raise ValueError(f"Invalid version: {value!r}")
    return tuple(int(part) for part in re.split(r"[._]", text))


def format_version(version: Version) -> str:
    return ".".join(str(part) for part in version)
