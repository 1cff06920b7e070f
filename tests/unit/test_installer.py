"""Tests for SchemaInstaller against a recording connection."""

import pytest

from cmsschema.dialects import PostgresDialect, SqliteDialect, SqlServerDialect
from cmsschema.exceptions import DdlExecutionError, InvalidStateError
from cmsschema.schema.installer import SchemaInstaller, generate_script
from cmsschema.schema.seed import NullSeeder
from cmsschema.types import TableAction
from tests.helpers import make_recording_database, make_two_table_catalog


def ddl(conn):
    """Statements minus existence checks."""
    return [s for s in conn.statements if "COUNT(*)" not in s]


class RecordingSeeder:
    def __init__(self):
        self.seeded = []

    def seed(self, database, table_name):
        self.seeded.append(table_name)
        if table_name == "TableA":
            database.insert("TableA", {"id": 1, "name": "first"})


class TestInstall:
    def test_requires_open_transaction(self):
        db, conn = make_recording_database()
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with pytest.raises(InvalidStateError):
            installer.install()
        assert conn.statements == []

    def test_creates_tables_in_catalog_order(self):
        db, conn = make_recording_database()
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with db.transaction():
            outcomes = installer.install()

        assert [(o.table, o.action) for o in outcomes] == [
            ("TableA", TableAction.CREATED),
            ("TableB", TableAction.CREATED),
        ]
        statements = ddl(conn)
        assert statements[0].startswith("CREATE TABLE [TableA]")
        create_b = statements.index(next(s for s in statements if s.startswith("CREATE TABLE [TableB]")))
        fk = statements.index(next(s for s in statements if "FOREIGN KEY" in s))
        assert create_b < fk
        assert conn.commits == 1

    def test_statement_order_within_table(self):
        db, conn = make_recording_database()
        seeder = RecordingSeeder()
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=seeder)

        with db.transaction():
            installer.install()

        assert ddl(conn)[:6] == [
            SqlServerDialect().format_table(make_two_table_catalog().get_table("TableA")),
            "ALTER TABLE [TableA] ADD CONSTRAINT [PK_TableA] PRIMARY KEY CLUSTERED ([id])",
            "SET IDENTITY_INSERT [TableA] ON",
            "INSERT INTO [TableA] ([id], [name]) VALUES (?, ?)",
            "SET IDENTITY_INSERT [TableA] OFF",
            "CREATE UNIQUE NONCLUSTERED INDEX [IX_TableA_name] ON [TableA] ([name])",
        ]
        assert seeder.seeded == ["TableA", "TableB"]

    def test_no_identity_toggle_for_table_without_identity(self):
        db, conn = make_recording_database()
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with db.transaction():
            installer.install()

        toggles = [s for s in conn.statements if "IDENTITY_INSERT" in s]
        assert toggles == [
            "SET IDENTITY_INSERT [TableA] ON",
            "SET IDENTITY_INSERT [TableA] OFF",
        ]

    def test_no_identity_toggle_on_postgres(self):
        db, conn = make_recording_database(dialect=PostgresDialect())
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with db.transaction():
            installer.install()

        assert not any("IDENTITY_INSERT" in s for s in conn.statements)
        assert any("setval" in s for s in conn.statements)

    def test_existing_table_skipped(self):
        db, conn = make_recording_database(existing={"tablea"})
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with db.transaction():
            outcomes = installer.install()

        assert [o.action for o in outcomes] == [TableAction.SKIPPED, TableAction.CREATED]
        assert not any(s.startswith("CREATE TABLE [TableA]") for s in conn.statements)

    def test_overwrite_recreates_existing_table(self):
        db, conn = make_recording_database(existing={"TableA"})
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with db.transaction():
            outcomes = installer.install(overwrite=True)

        assert outcomes[0].action == TableAction.RECREATED
        statements = ddl(conn)
        assert statements[0] == "DROP TABLE [TableA]"
        assert statements[1].startswith("CREATE TABLE [TableA]")

    def test_failure_rolls_back_whole_install(self):
        db, conn = make_recording_database(
            failures={"CREATE TABLE [TableB]": RuntimeError("disk full")}
        )
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with pytest.raises(DdlExecutionError, match="disk full"):
            with db.transaction():
                installer.install()

        assert conn.rollbacks == 1
        assert conn.commits == 0

    def test_sqlite_emits_no_separate_key_statements(self):
        db, conn = make_recording_database(dialect=SqliteDialect())
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        with db.transaction():
            installer.install()

        assert not any(s.startswith("ALTER TABLE") for s in conn.statements)


class TestHooks:
    def test_cancel_skips_creation_but_fires_after_hooks(self):
        db, conn = make_recording_database()
        created = []

        def before(event):
            event.add_message("test", "stop here")
            return False

        installer = SchemaInstaller(
            db,
            catalog=make_two_table_catalog(),
            seeder=NullSeeder(),
            before_create=[before],
            after_create=[created.append],
        )

        with db.transaction():
            outcomes = installer.install()

        assert outcomes == []
        assert ddl(conn) == []
        assert len(created) == 1
        assert created[0].cancelled
        assert created[0].messages[0].message == "stop here"

    def test_hook_returning_none_proceeds(self):
        db, _ = make_recording_database()
        seen = []

        def before(event):
            event.state["marker"] = 1

        installer = SchemaInstaller(
            db,
            catalog=make_two_table_catalog(),
            seeder=NullSeeder(),
            before_create=[before],
            after_create=[seen.append],
        )

        with db.transaction():
            outcomes = installer.install()

        assert len(outcomes) == 2
        assert seen[0].state == {"marker": 1}
        assert not seen[0].cancelled


class TestUninstall:
    def test_drops_in_reverse_order(self):
        db, conn = make_recording_database(existing={"TableA", "TableB"})
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        outcomes = installer.uninstall()

        assert [(o.table, o.action) for o in outcomes] == [
            ("TableB", TableAction.DROPPED),
            ("TableA", TableAction.DROPPED),
        ]
        assert ddl(conn) == ["DROP TABLE [TableB]", "DROP TABLE [TableA]"]

    def test_missing_tables_reported_absent(self):
        db, conn = make_recording_database(existing={"TableA"})
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        outcomes = installer.uninstall()

        assert outcomes[0].action == TableAction.ABSENT
        assert outcomes[1].action == TableAction.DROPPED

    def test_failure_recorded_and_remaining_tables_attempted(self):
        db, conn = make_recording_database(
            existing={"TableA", "TableB"},
            failures={"DROP TABLE [TableB]": RuntimeError("in use")},
        )
        installer = SchemaInstaller(db, catalog=make_two_table_catalog(), seeder=NullSeeder())

        outcomes = installer.uninstall()

        assert outcomes[0].failed
        assert "in use" in outcomes[0].error
        assert outcomes[1].action == TableAction.DROPPED
        assert "DROP TABLE [TableA]" in conn.statements


class TestGenerateScript:
    def test_script_matches_install_ddl_without_seed(self):
        catalog = make_two_table_catalog()
        script = generate_script(catalog, SqlServerDialect())

        assert script == [
            SqlServerDialect().format_table(catalog.get_table("TableA")),
            "ALTER TABLE [TableA] ADD CONSTRAINT [PK_TableA] PRIMARY KEY CLUSTERED ([id])",
            "CREATE UNIQUE NONCLUSTERED INDEX [IX_TableA_name] ON [TableA] ([name])",
            SqlServerDialect().format_table(catalog.get_table("TableB")),
            "ALTER TABLE [TableB] ADD CONSTRAINT [PK_TableB] PRIMARY KEY CLUSTERED ([id])",
            "CREATE NONCLUSTERED INDEX [IX_TableB_aId] ON [TableB] ([aId])",
            "ALTER TABLE [TableB] ADD CONSTRAINT [FK_TableB_TableA_id] "
            "FOREIGN KEY ([aId]) REFERENCES [TableA] ([id])",
        ]

    def test_installer_method_delegates(self):
        db, conn = make_recording_database(dialect=SqliteDialect())
        installer = SchemaInstaller(db, catalog=make_two_table_catalog())
        assert installer.generate_script() == generate_script(
            make_two_table_catalog(), SqliteDialect()
        )
        assert conn.statements == []
