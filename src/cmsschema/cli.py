"""Command-line interface for cmsschema."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from cmsschema.config import Config
from cmsschema.dialects import get_dialect
from cmsschema.exceptions import ConfigError, MigrationStepError
from cmsschema.schema.installer import SchemaInstaller, generate_script
from cmsschema.schema.validator import SchemaValidator
from cmsschema.types import format_version, parse_version
from cmsschema.utils import (
    build_config_and_validate,
    load_configured_catalog,
    open_database,
)


def _connection_options() -> argparse.ArgumentParser:
    options = argparse.ArgumentParser(add_help=False)
    options.add_argument("--dialect", help="sqlite, postgresql or sqlserver")
    options.add_argument("--database", help="SQLite file path or PostgreSQL conninfo")
    options.add_argument("--catalog", help="YAML catalog file or directory")
    options.add_argument("--profile", help="Profile in ~/.cmsschema.cfg")
    return options


def _migration_options() -> argparse.ArgumentParser:
    options = argparse.ArgumentParser(add_help=False)
    options.add_argument(
        "--migrations-dir", help="Directory of V<version>__name.sql files"
    )
    return options


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        prog="cmsschema",
        description="CMS database schema installer, validator and migrator",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    connection = _connection_options()
    migration = _migration_options()

    install_parser = subparsers.add_parser(
        "install", parents=[connection], help="Create the catalog's tables"
    )
    install_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Drop and recreate tables that already exist (data loss)",
    )

    subparsers.add_parser(
        "uninstall", parents=[connection], help="Drop the catalog's tables"
    )
    subparsers.add_parser(
        "validate", parents=[connection], help="Compare the database to the catalog"
    )

    script_parser = subparsers.add_parser(
        "script", parents=[connection], help="Print the install DDL"
    )
    script_parser.add_argument(
        "--output",
        type=Path,
        help="Output file path (default: stdout)",
    )

    catalog_parser = subparsers.add_parser(
        "catalog", parents=[connection], help="List or export the table catalog"
    )
    catalog_parser.add_argument(
        "--export", type=Path, metavar="DIR", help="Write one YAML file per table"
    )

    subparsers.add_parser(
        "status", parents=[connection, migration], help="Show migration status"
    )
    plan_parser = subparsers.add_parser(
        "plan", parents=[connection, migration], help="Show pending migrations"
    )
    plan_parser.add_argument("--target", help="Highest version to include")

    upgrade_parser = subparsers.add_parser(
        "upgrade", parents=[connection, migration], help="Run pending migrations"
    )
    upgrade_parser.add_argument("--target", help="Stop after this version")
    upgrade_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show pending migrations without executing",
    )

    args = parser.parse_args(argv)

    if args.command == "install":
        return cmd_install(args)
    elif args.command == "uninstall":
        return cmd_uninstall(args)
    elif args.command == "validate":
        return cmd_validate(args)
    elif args.command == "script":
        return cmd_script(args)
    elif args.command == "catalog":
        return cmd_catalog(args)
    elif args.command == "status":
        return cmd_status(args)
    elif args.command == "plan":
        return cmd_plan(args)
    elif args.command == "upgrade":
        return cmd_upgrade(args)
    else:
        print(f"Command '{args.command}' not yet implemented", file=sys.stderr)
        return 1


def _config_from_args(args: argparse.Namespace, validate: bool = True) -> Config:
    kwargs = dict(
        dialect=args.dialect,
        database=args.database,
        catalog=args.catalog,
        migrations_dir=getattr(args, "migrations_dir", None),
        profile=args.profile,
    )
    if validate:
        return build_config_and_validate(**kwargs)
    return Config.from_env(**kwargs)


def cmd_install(args: argparse.Namespace) -> int:
    """Create the catalog's tables in one transaction."""
    try:
        config = _config_from_args(args)
        catalog = load_configured_catalog(config)

        with open_database(config) as db:
            installer = SchemaInstaller(db, catalog=catalog)
            with db.transaction():
                outcomes = installer.install(overwrite=args.overwrite)

        if not outcomes:
            print("Schema creation was cancelled")
            return 0

        print(f"Installed schema ({len(outcomes)} tables):")
        for outcome in outcomes:
            print(f"  {outcome.table}: {outcome.action.value}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Install error: {e}", file=sys.stderr)
        return 1


def cmd_uninstall(args: argparse.Namespace) -> int:
    """Drop the catalog's tables, dependents first."""
    try:
        config = _config_from_args(args)
        catalog = load_configured_catalog(config)

        with open_database(config) as db:
            outcomes = SchemaInstaller(db, catalog=catalog).uninstall()

        for outcome in outcomes:
            line = f"  {outcome.table}: {outcome.action.value}"
            if outcome.error:
                line += f" ({outcome.error})"
            print(line)

        failed = [o for o in outcomes if o.failed]
        if failed:
            print(f"\n{len(failed)} table(s) could not be dropped", file=sys.stderr)
            return 1
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Uninstall error: {e}", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate the live database against the catalog."""
    try:
        config = _config_from_args(args)
        catalog = load_configured_catalog(config)

        with open_database(config) as db:
            result = SchemaValidator(db).validate(catalog)

        print(result.summary())
        return 0 if result.ok else 1
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Validation error: {e}", file=sys.stderr)
        return 1


def cmd_script(args: argparse.Namespace) -> int:
    """Print the DDL an install would run against an empty database."""
    try:
        config = _config_from_args(args, validate=False)
        if not config.dialect:
            raise ConfigError("dialect (use --dialect or CMSSCHEMA_DIALECT)")
        dialect = get_dialect(config.dialect)
        catalog = load_configured_catalog(config)

        sql = "".join(f"{stmt};\n\n" for stmt in generate_script(catalog, dialect))

        if args.output:
            args.output.write_text(sql)
            print(f"Wrote {args.output}")
        else:
            print(sql, end="")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Script error: {e}", file=sys.stderr)
        return 1


def cmd_catalog(args: argparse.Namespace) -> int:
    """List or export the table catalog."""
    try:
        config = _config_from_args(args, validate=False)
        catalog = load_configured_catalog(config)

        if args.export:
            from cmsschema.schema.exporter import export_catalog_to_directory

            created = export_catalog_to_directory(catalog, args.export)
            print(f"Exported {len(created)} tables to {args.export}")
            return 0

        print(f"Catalog ({len(catalog)} tables, in creation order):")
        for table in catalog:
            print(
                f"  - {table.name} ({len(table.columns)} columns, "
                f"{len(table.indexes)} indexes, {len(table.foreign_keys)} foreign keys)"
            )
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Catalog error: {e}", file=sys.stderr)
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Show migration status."""
    try:
        from cmsschema.migrations.plan import build_upgrade_plan
        from cmsschema.migrations.state import DatabaseMigrationStateStore

        config = _config_from_args(args)
        migration_plan = build_upgrade_plan(Path(config.migrations_dir))

        with open_database(config) as db:
            try:
                recorded = {
                    m.version: m for m in DatabaseMigrationStateStore(db).list_applied()
                }
            except Exception as e:
                print(f"Error reading migration state: {e}", file=sys.stderr)
                return 1

        print("Migrations:")
        applied_count = failed_count = 0
        for step in migration_plan:
            record = recorded.get(step.version)
            if record is None:
                status = "○ pending"
            elif record.success:
                status = "✓ applied"
                applied_count += 1
            else:
                status = "✗ failed"
                failed_count += 1
            print(f"  {format_version(step.version)}: {step.name} [{status}]")

        pending_count = len(migration_plan) - applied_count
        print(
            f"\nTotal: {len(migration_plan)} migrations "
            f"({applied_count} applied, {pending_count} pending"
            + (f", {failed_count} failed)" if failed_count else ")")
        )
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Status error: {e}", file=sys.stderr)
        return 1


def cmd_plan(args: argparse.Namespace) -> int:
    """Show pending migrations without executing."""
    try:
        from cmsschema.migrations.plan import build_upgrade_plan
        from cmsschema.migrations.runner import plan
        from cmsschema.migrations.state import DatabaseMigrationStateStore

        config = _config_from_args(args)
        migration_plan = build_upgrade_plan(Path(config.migrations_dir))
        target = parse_version(args.target) if args.target else None

        with open_database(config) as db:
            pending = plan(migration_plan, DatabaseMigrationStateStore(db), target)

        if not pending:
            print("No pending migrations")
            return 0

        print(f"Pending migrations ({len(pending)}):")
        for step in pending:
            print(f"  {format_version(step.version)}: {step.name}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Plan error: {e}", file=sys.stderr)
        return 1


def cmd_upgrade(args: argparse.Namespace) -> int:
    """Run pending migrations, one transaction per step."""
    try:
        from cmsschema.migrations.plan import build_upgrade_plan
        from cmsschema.migrations.runner import Runner
        from cmsschema.migrations.state import DatabaseMigrationStateStore

        config = _config_from_args(args)
        migration_plan = build_upgrade_plan(Path(config.migrations_dir))
        target = parse_version(args.target) if args.target else None

        with open_database(config) as db:
            runner = Runner(db, migration_plan, DatabaseMigrationStateStore(db))
            pending = runner.pending(target)

            if not pending:
                print("No pending migrations")
                return 0

            print(f"Found {len(pending)} pending migration(s):")
            for step in pending:
                print(f"  {format_version(step.version)}: {step.name}")

            if args.dry_run:
                print("\nDry run - no migrations executed")
                runner.apply(target, dry_run=True)
                return 0

            print()
            try:
                executions = runner.apply(target)
            except MigrationStepError as e:
                print(f"Upgrade error: {e}", file=sys.stderr)
                return 1

        print(f"\nSuccessfully applied {len(executions)} migration(s)")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Upgrade error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
