"""Schema validation: compare live database metadata against the catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Union

from cmsschema.schema.catalog import CMS_CATALOG
from cmsschema.schema.models import SchemaCatalog, TableDefinition
from cmsschema.types import ErrorKind

if TYPE_CHECKING:
    from cmsschema.database import Database
    from cmsschema.dialects.base import LiveIndex

__all__ = ["DatabaseSchemaResult", "SchemaValidator"]

FOREIGN_KEY_PREFIX = "fk_"
PRIMARY_KEY_PREFIX = "pk_"
INDEX_PREFIX = "ix_"


def _distinct(names: Iterable[str]) -> dict[str, str]:
    """Map casefolded name -> first spelling seen, preserving order."""
    seen: dict[str, str] = {}
    for name in names:
        seen.setdefault(name.casefold(), name)
    return seen


def _compare(live: Iterable[str], declared: Iterable[str]) -> tuple[list[str], list[str]]:
    """Case-insensitive set comparison.

    Returns (valid, invalid): names on both sides (live spelling), then the
    symmetric difference with live-only names first.
    """
    live_map = _distinct(live)
    declared_map = _distinct(declared)
    valid = [name for key, name in live_map.items() if key in declared_map]
    invalid = [name for key, name in live_map.items() if key not in declared_map]
    invalid += [name for key, name in declared_map.items() if key not in live_map]
    return valid, invalid


@dataclass
class DatabaseSchemaResult:
    """Outcome of one validation run.

    ok is True iff errors is empty. Errors are (kind, name) pairs where kind
    is one of Table, Column, Index, Constraint, Unknown; column names are
    reported as "table,column".
    """

    table_definitions: list[TableDefinition] = field(default_factory=list)
    index_definitions: list["LiveIndex"] = field(default_factory=list)
    valid_tables: list[str] = field(default_factory=list)
    valid_columns: list[str] = field(default_factory=list)
    valid_indexes: list[str] = field(default_factory=list)
    valid_constraints: list[str] = field(default_factory=list)
    errors: list[tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, kind: ErrorKind, name: str) -> None:
        self.errors.append((kind.value, name))

    def errors_of(self, kind: Union[ErrorKind, str]) -> list[str]:
        wanted = kind.value if isinstance(kind, ErrorKind) else kind
        return [name for k, name in self.errors if k == wanted]

    def summary(self) -> str:
        """Human-readable report of the mismatches."""
        if self.ok:
            return (
                f"The database schema matches the catalog "
                f"({len(self.valid_tables)} tables, {len(self.valid_columns)} columns, "
                f"{len(self.valid_indexes)} indexes, "
                f"{len(self.valid_constraints)} constraints)."
            )
        labels = {
            ErrorKind.TABLE: "tables",
            ErrorKind.COLUMN: "columns",
            ErrorKind.INDEX: "indexes",
            ErrorKind.CONSTRAINT: "constraints",
            ErrorKind.UNKNOWN: "unknown constraints",
        }
        lines = [f"The database schema differs from the catalog ({len(self.errors)} errors):"]
        for kind, label in labels.items():
            names = self.errors_of(kind)
            if names:
                lines.append(f"  Mismatched {label}: {', '.join(names)}")
        return "\n".join(lines)


class SchemaValidator:
    """Compare the live database against a catalog.

    Tables, columns, indexes and primary/foreign key constraints are checked
    in both directions. Nothing is raised for a mismatch: every check runs and
    adds to the same result.
    """

    def __init__(self, database: "Database") -> None:
        self._db = database
        self._dialect = database.dialect

    def validate(self, catalog: SchemaCatalog = CMS_CATALOG) -> DatabaseSchemaResult:
        """Validate the live schema against catalog.

        Raises:
            IntrospectionError: If metadata cannot be read from the database.
        """
        result = DatabaseSchemaResult()
        result.index_definitions.extend(self._dialect.get_defined_indexes(self._db))
        result.table_definitions.extend(catalog)

        self._validate_tables(result)
        self._validate_columns(result)
        self._validate_indexes(result)
        self._validate_constraints(result)
        return result

    def _validate_tables(self, result: DatabaseSchemaResult) -> None:
        live = self._dialect.get_tables_in_schema(self._db)
        declared = [t.name for t in result.table_definitions]
        valid, invalid = _compare(live, declared)
        result.valid_tables.extend(valid)
        for name in invalid:
            result.add_error(ErrorKind.TABLE, name)

    def _validate_columns(self, result: DatabaseSchemaResult) -> None:
        live = [
            f"{c.table_name},{c.column_name}"
            for c in self._dialect.get_columns_in_schema(self._db)
        ]
        declared = [
            f"{c.table_name},{c.name}" for t in result.table_definitions for c in t.columns
        ]
        valid, invalid = _compare(live, declared)
        result.valid_columns.extend(valid)
        for name in invalid:
            result.add_error(ErrorKind.COLUMN, name)

    def _validate_indexes(self, result: DatabaseSchemaResult) -> None:
        # Plain indexes only; key-backing indexes are excluded by the dialect.
        live = [ix.index_name for ix in result.index_definitions]
        declared = [ix.name for t in result.table_definitions for ix in t.indexes]
        valid, invalid = _compare(live, declared)
        result.valid_indexes.extend(valid)
        for name in invalid:
            result.add_error(ErrorKind.INDEX, name)

    def _validate_constraints(self, result: DatabaseSchemaResult) -> None:
        """Validate primary and foreign keys.

        Only PK/FK constraints are created by the installer (unique rules are
        indexes), so no other constraint type is validated. Names without a
        PK_/FK_/IX_ prefix are matched heuristically: such a name is accepted
        if it appears, case-insensitively, inside any known key name.
        """
        live = _distinct(
            c.constraint_name for c in self._dialect.get_constraints_per_column(self._db)
        )
        live_fks = [n for k, n in live.items() if k.startswith(FOREIGN_KEY_PREFIX)]
        live_pks = [n for k, n in live.items() if k.startswith(PRIMARY_KEY_PREFIX)]
        unknown = [
            n
            for k, n in live.items()
            if not k.startswith((FOREIGN_KEY_PREFIX, PRIMARY_KEY_PREFIX, INDEX_PREFIX))
        ]

        declared_fks = [fk.name for t in result.table_definitions for fk in t.foreign_keys]
        declared_pks = [
            c.primary_key_name
            for t in result.table_definitions
            for c in t.columns
            if c.primary_key_name and c.primary_key_name.strip()
        ]
        known_keys = [n.casefold() for n in declared_fks + declared_pks]

        for name in unknown:
            folded = name.casefold()
            if any(folded in known for known in known_keys):
                result.valid_constraints.append(name)
            else:
                result.add_error(ErrorKind.UNKNOWN, name)

        for live_names, declared_names in ((live_fks, declared_fks), (live_pks, declared_pks)):
            valid, invalid = _compare(live_names, declared_names)
            result.valid_constraints.extend(valid)
            for name in invalid:
                result.add_error(ErrorKind.CONSTRAINT, name)
