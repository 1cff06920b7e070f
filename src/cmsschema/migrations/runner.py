"""Migration runner: plan and apply upgrade steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from cmsschema.exceptions import MigrationChecksumMismatchError, MigrationStepError
from cmsschema.migrations.context import MigrationContext
from cmsschema.migrations.plan import MigrationPlan, PlannedStep
from cmsschema.migrations.state import MigrationStateStore
from cmsschema.types import StepStatus, Version, format_version

if TYPE_CHECKING:
    from cmsschema.database import Database

__all__ = ["StepExecution", "plan", "Runner"]

logger = logging.getLogger(__name__)


@dataclass
class StepExecution:
    """Progress of one step within a run."""

    step: PlannedStep
    status: StepStatus = StepStatus.PENDING
    error: Optional[str] = None

    @property
    def version(self) -> Version:
        return self.step.version


def plan(
    migration_plan: MigrationPlan,
    state_store: MigrationStateStore,
    target: Optional[Version] = None,
) -> list[PlannedStep]:
    """
    Pure function: determine which steps are pending.

    Args:
        migration_plan: All known upgrade steps.
        state_store: State store to check which versions have been applied.
        target: Highest version to include (default: all).

    Returns:
        List of pending steps sorted by version (ascending).
    """
    return [
        step
        for step in migration_plan
        if (target is None or step.version <= target)
        and not state_store.has_applied(step.version)
    ]


class Runner:
    """
    Applies upgrade steps in version order, one transaction per step.

    The success record is written inside the step's transaction, so a step
    and its record commit together. A failing step is rolled back, recorded
    as failed in a separate transaction, and stops the run.
    """

    def __init__(
        self,
        database: "Database",
        migration_plan: MigrationPlan,
        state_store: MigrationStateStore,
    ) -> None:
        self._db = database
        self._plan = migration_plan
        self._state_store = state_store

    def _check_checksums(self) -> None:
        applied = {a.version: a for a in self._state_store.list_applied() if a.success}

        for step in self._plan:
            if step.version in applied:
                recorded = applied[step.version]
                if recorded.checksum != step.checksum:
                    raise MigrationChecksumMismatchError(
                        f"Migration {step.label} checksum mismatch: "
                        f"recorded={recorded.checksum}, current={step.checksum}"
                    )

    def pending(self, target: Optional[Version] = None) -> list[PlannedStep]:
        return plan(self._plan, self._state_store, target)

    def apply(
        self,
        target: Optional[Version] = None,
        dry_run: bool = False,
    ) -> list[StepExecution]:
        """
        Apply pending steps in version order.

        Args:
            target: Stop after this version (default: the whole plan).
            dry_run: If True, log what would be executed but don't execute.

        Returns:
            One StepExecution per pending step. Steps that were not reached
            stay PENDING.

        Raises:
            MigrationChecksumMismatchError: If an applied step has changed.
            MigrationStepError: If a step fails; earlier steps stay committed.
        """
        self._check_checksums()

        executions = [StepExecution(step) for step in self.pending(target)]

        if not executions:
            logger.info("Schema is up to date. No pending migrations.")
            return executions

        for execution in executions:
            step = execution.step

            if dry_run:
                logger.info(f"[DRY RUN] Would apply {step.label}")
                continue

            logger.info(f"Applying {step.label}...")
            execution.status = StepStatus.RUNNING
            try:
                with self._db.transaction():
                    context = MigrationContext(self._db)
                    step.create(context).run()
                    self._state_store.record_applied(
                        version=step.version,
                        name=step.name,
                        checksum=step.checksum,
                        success=True,
                    )
            except Exception as exc:
                execution.status = StepStatus.FAILED
                execution.error = str(exc)
                logger.error(f"Migration {step.label} failed: {exc}")
                self._record_failure(step, str(exc))
                raise MigrationStepError(
                    format_version(step.version),
                    f"Migration {step.label} failed: {exc}",
                    name=step.name,
                ) from exc

            execution.status = StepStatus.APPLIED
            logger.info(f"Applied {step.label}")

        return executions

    def _record_failure(self, step: PlannedStep, error: str) -> None:
        try:
            with self._db.transaction():
                self._state_store.record_applied(
                    version=step.version,
                    name=step.name,
                    checksum=step.checksum,
                    success=False,
                    error=error,
                )
        except Exception as exc:
            logger.warning(f"Could not record failure of {step.label}: {exc}")
