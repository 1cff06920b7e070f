"""Tests for the migration plan and runner."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from cmsschema.exceptions import (
    MigrationChecksumMismatchError,
    MigrationError,
    MigrationStepError,
)
from cmsschema.migrations.parser import MigrationFile
from cmsschema.migrations.plan import MigrationPlan, build_upgrade_plan
from cmsschema.migrations.runner import Runner, StepExecution, plan
from cmsschema.migrations.state import InMemoryMigrationStateStore
from cmsschema.migrations.step import MigrationStep
from cmsschema.migrations.upgrade import AddLockObjects, RenameMediaVersionTable
from cmsschema.types import StepStatus
from tests.helpers import make_recording_database


def make_migration_file(
    version: tuple, name: str = "test", sql: str = "SELECT 1;", checksum: str = "abc123"
) -> MigrationFile:
    label = "_".join(str(p) for p in version)
    return MigrationFile(
        version=version,
        name=name,
        path=Path(f"/migrations/V{label}__{name}.sql"),
        checksum=checksum,
        sql=sql,
    )


def make_plan(*migrations: MigrationFile) -> MigrationPlan:
    migration_plan = MigrationPlan()
    for migration in migrations:
        migration_plan.add_script(migration)
    return migration_plan


class FailingStep(MigrationStep):
    version = "9.1.0"
    description = "Always fails"

    def migrate(self):
        self.execute_sql("SELECT broken")


class TestMigrationPlan:
    def test_steps_sorted_by_version(self):
        migration_plan = make_plan(
            make_migration_file((8, 10), "c"),
            make_migration_file((8, 2), "b"),
        )
        assert [s.version for s in migration_plan] == [(8, 2), (8, 10)]
        assert migration_plan.final_version == (8, 10)
        assert len(migration_plan) == 2

    def test_duplicate_version_rejected(self):
        with pytest.raises(MigrationError, match="Duplicate migration version 8.2"):
            make_plan(make_migration_file((8, 2), "a"), make_migration_file((8, 2), "b"))

    def test_code_step_metadata(self):
        migration_plan = MigrationPlan().add_step(RenameMediaVersionTable)
        step = migration_plan.get((8, 0, 0))
        assert step.name == "RenameMediaVersionTable"
        assert step.checksum == RenameMediaVersionTable.step_checksum()
        assert step.label == "8.0.0 RenameMediaVersionTable"

    def test_empty_plan(self):
        assert MigrationPlan().final_version is None

    def test_build_upgrade_plan_includes_builtin_steps(self, tmp_path):
        migration_plan = build_upgrade_plan(tmp_path / "missing")
        assert [s.name for s in migration_plan] == ["RenameMediaVersionTable", "AddLockObjects"]

    def test_build_upgrade_plan_adds_scripts(self, tmp_path):
        (tmp_path / "V8_1_0__extra.sql").write_text("SELECT 1;")
        migration_plan = build_upgrade_plan(tmp_path)
        assert migration_plan.final_version == (8, 1, 0)
        assert migration_plan.get((8, 1, 0)).description == "extra"

    def test_script_colliding_with_builtin_step(self, tmp_path):
        (tmp_path / "V8_0_1__clash.sql").write_text("SELECT 1;")
        with pytest.raises(MigrationError, match="AddLockObjects and clash"):
            build_upgrade_plan(tmp_path)


class TestPlan:
    def test_plan_returns_pending_only(self):
        store = InMemoryMigrationStateStore()
        store.record_applied((8, 0), "a", "abc123", True)
        migration_plan = make_plan(make_migration_file((8, 0), "a"), make_migration_file((8, 1), "b"))

        assert [s.version for s in plan(migration_plan, store)] == [(8, 1)]

    def test_failed_step_stays_pending(self):
        store = InMemoryMigrationStateStore()
        store.record_applied((8, 0), "a", "abc123", False, error="x")
        migration_plan = make_plan(make_migration_file((8, 0), "a"))

        assert [s.version for s in plan(migration_plan, store)] == [(8, 0)]

    def test_plan_respects_target(self):
        migration_plan = make_plan(
            make_migration_file((8, 0), "a"),
            make_migration_file((8, 1), "b"),
            make_migration_file((9, 0), "c"),
        )
        pending = plan(migration_plan, InMemoryMigrationStateStore(), target=(8, 1))
        assert [s.version for s in pending] == [(8, 0), (8, 1)]

    def test_plan_is_pure_function(self):
        store = InMemoryMigrationStateStore()
        migration_plan = make_plan(make_migration_file((8, 0), "a"))

        plan(migration_plan, store)

        assert store.list_applied() == []


class TestRunner:
    def test_apply_executes_in_version_order(self):
        db, conn = make_recording_database()
        migration_plan = make_plan(
            make_migration_file((8, 1), "b", sql="SELECT 'b';"),
            make_migration_file((8, 0), "a", sql="SELECT 'a';"),
        )

        executions = Runner(db, migration_plan, InMemoryMigrationStateStore()).apply()

        assert conn.statements == ["SELECT 'a'", "SELECT 'b'"]
        assert [e.status for e in executions] == [StepStatus.APPLIED, StepStatus.APPLIED]
        assert conn.commits == 2

    def test_apply_records_each_success(self):
        db, _ = make_recording_database()
        store = InMemoryMigrationStateStore()
        migration_plan = make_plan(make_migration_file((8, 0), "a", checksum="c0"))

        Runner(db, migration_plan, store).apply()

        (record,) = store.list_applied()
        assert record.version == (8, 0)
        assert record.checksum == "c0"
        assert record.success

    def test_apply_skips_applied(self):
        db, conn = make_recording_database()
        store = InMemoryMigrationStateStore()
        store.record_applied((8, 0), "a", "abc123", True)
        migration_plan = make_plan(
            make_migration_file((8, 0), "a", sql="SELECT 'a';"),
            make_migration_file((8, 1), "b", sql="SELECT 'b';"),
        )

        executions = Runner(db, migration_plan, store).apply()

        assert [e.version for e in executions] == [(8, 1)]
        assert conn.statements == ["SELECT 'b'"]

    def test_apply_stops_on_first_failure_and_records_error(self):
        db, conn = make_recording_database(failures={"broken": RuntimeError("syntax")})
        store = InMemoryMigrationStateStore()
        migration_plan = make_plan(make_migration_file((8, 0), "a"))
        migration_plan.add_step(FailingStep)
        migration_plan.add_script(make_migration_file((9, 2), "never", sql="SELECT 'never';"))

        with pytest.raises(MigrationStepError) as exc_info:
            Runner(db, migration_plan, store).apply()

        assert exc_info.value.version == "9.1.0"
        assert exc_info.value.name == "FailingStep"
        assert "syntax" in str(exc_info.value)
        assert "SELECT 'never'" not in conn.statements
        assert conn.rollbacks == 1

        records = {r.version: r for r in store.list_applied()}
        assert records[(8, 0)].success
        assert not records[(9, 1, 0)].success
        assert "syntax" in records[(9, 1, 0)].error
        assert (9, 2) not in records

    def test_apply_checksum_mismatch_raises_before_execution(self):
        db, conn = make_recording_database()
        store = InMemoryMigrationStateStore()
        store.record_applied((8, 0), "a", "old", True)
        migration_plan = make_plan(
            make_migration_file((8, 0), "a", checksum="new"),
            make_migration_file((8, 1), "b"),
        )

        with pytest.raises(MigrationChecksumMismatchError, match="recorded=old, current=new"):
            Runner(db, migration_plan, store).apply()

        assert conn.statements == []

    def test_failed_record_checksum_not_checked(self):
        db, _ = make_recording_database()
        store = InMemoryMigrationStateStore()
        store.record_applied((8, 0), "a", "abc123", False, error="x")
        migration_plan = make_plan(make_migration_file((8, 0), "a"))

        Runner(db, migration_plan, store).apply()

        assert store.has_applied((8, 0))

    def test_corrected_script_applies_over_failed_record(self):
        db, _ = make_recording_database()
        store = InMemoryMigrationStateStore()
        store.record_applied((8, 0), "a", "broken", False, error="syntax")
        migration_plan = make_plan(make_migration_file((8, 0), "a", checksum="fixed"))

        executions = Runner(db, migration_plan, store).apply()

        assert [e.status for e in executions] == [StepStatus.APPLIED]
        (record,) = store.list_applied()
        assert record.checksum == "fixed"
        assert record.success

    def test_apply_logs_each_migration(self, caplog: pytest.LogCaptureFixture):
        db, _ = make_recording_database()
        migration_plan = make_plan(make_migration_file((8, 0), "a"))

        with caplog.at_level(logging.INFO):
            Runner(db, migration_plan, InMemoryMigrationStateStore()).apply()

        assert "Applying 8.0 a" in caplog.text
        assert "Applied 8.0 a" in caplog.text

    def test_apply_no_pending_logs_up_to_date(self, caplog: pytest.LogCaptureFixture):
        db, _ = make_recording_database()

        with caplog.at_level(logging.INFO):
            executions = Runner(db, MigrationPlan(), InMemoryMigrationStateStore()).apply()

        assert executions == []
        assert "up to date" in caplog.text

    def test_dry_run_executes_nothing(self):
        db, conn = make_recording_database()
        store = InMemoryMigrationStateStore()
        migration_plan = make_plan(make_migration_file((8, 0), "a"))

        executions = Runner(db, migration_plan, store).apply(dry_run=True)

        assert conn.statements == []
        assert store.list_applied() == []
        assert [e.status for e in executions] == [StepStatus.PENDING]

    def test_apply_up_to_target(self):
        db, conn = make_recording_database()
        migration_plan = make_plan(
            make_migration_file((8, 0), "a", sql="SELECT 'a';"),
            make_migration_file((8, 1), "b", sql="SELECT 'b';"),
        )

        Runner(db, migration_plan, InMemoryMigrationStateStore()).apply(target=(8, 0))

        assert conn.statements == ["SELECT 'a'"]


class TestStepExecution:
    def test_dataclass_fields(self):
        step = MigrationPlan().add_step(AddLockObjects).get((8, 0, 1))
        execution = StepExecution(step)
        assert execution.status == StepStatus.PENDING
        assert execution.error is None
        assert execution.version == (8, 0, 1)
