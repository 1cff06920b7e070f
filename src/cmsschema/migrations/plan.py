"""The ordered upgrade plan: which step brings the schema to which version."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from cmsschema.exceptions import MigrationError
from cmsschema.migrations.context import MigrationContext
from cmsschema.migrations.parser import MigrationFile, parse_migrations_dir
from cmsschema.migrations.step import MigrationStep, SqlScriptStep
from cmsschema.migrations.upgrade import CMS_UPGRADE_STEPS
from cmsschema.types import Version, format_version, parse_version

__all__ = ["MigrationPlan", "PlannedStep", "build_upgrade_plan"]

StepFactory = Callable[[MigrationContext], MigrationStep]


@dataclass(frozen=True)
class PlannedStep:
    version: Version
    name: str
    description: str
    checksum: str
    factory: StepFactory

    @property
    def label(self) -> str:
        return f"{format_version(self.version)} {self.name}"

    def create(self, context: MigrationContext) -> MigrationStep:
        return self.factory(context)


class MigrationPlan:
    """Steps keyed by target version, iterated in ascending version order."""

    def __init__(self, steps: Iterable[PlannedStep] = ()) -> None:
        self._steps: dict[Version, PlannedStep] = {}
        for step in steps:
            self._add(step)

    def _add(self, step: PlannedStep) -> "MigrationPlan":
        if step.version in self._steps:
            existing = self._steps[step.version]
            raise MigrationError(
                f"Duplicate migration version {format_version(step.version)}: "
                f"{existing.name} and {step.name}"
            )
        self._steps[step.version] = step
        return self

    def add_step(self, step_class: type[MigrationStep]) -> "MigrationPlan":
        """Add a code-based step class."""
        return self._add(
            PlannedStep(
                version=parse_version(step_class.version),
                name=step_class.step_name(),
                description=step_class.description,
                checksum=step_class.step_checksum(),
                factory=step_class,
            )
        )

    def add_script(self, migration: MigrationFile) -> "MigrationPlan":
        """Add a step backed by a parsed SQL file."""
        return self._add(
            PlannedStep(
                version=migration.version,
                name=migration.name,
                description=migration.name.replace("_", " "),
                checksum=migration.checksum,
                factory=lambda context: SqlScriptStep(context, migration),
            )
        )

    @property
    def steps(self) -> list[PlannedStep]:
        return [self._steps[v] for v in sorted(self._steps)]

    @property
    def final_version(self) -> Optional[Version]:
        return max(self._steps) if self._steps else None

    def get(self, version: Version) -> Optional[PlannedStep]:
        return self._steps.get(version)

    def __iter__(self) -> Iterator[PlannedStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self._steps)


def build_upgrade_plan(
    migrations_dir: Optional[Path] = None,
    step_classes: Iterable[type[MigrationStep]] = CMS_UPGRADE_STEPS,
) -> MigrationPlan:
    """Build the plan from the built-in steps plus any SQL files on disk.

    Raises:
        MigrationError: If two steps target the same version.
        MigrationParseError: If a SQL file cannot be parsed.
    """
    plan = MigrationPlan()
    for step_class in step_classes:
        plan.add_step(step_class)
    if migrations_dir is not None and migrations_dir.is_dir():
        for migration in parse_migrations_dir(migrations_dir):
            plan.add_script(migration)
    return plan
