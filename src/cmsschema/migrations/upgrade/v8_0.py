"""Upgrade steps for the 8.0 release line."""

import logging

from cmsschema.constants import Locks, ObjectTypes, Tables
from cmsschema.dialects.base import Join
from cmsschema.migrations.step import MigrationStep
from cmsschema.schema.catalog import MEDIA_VERSION

logger = logging.getLogger(__name__)

LEGACY_MEDIA_TABLE = "cmsMedia"
LEGACY_CONTENT_VERSION_TABLE = "cmsContentVersion"


class RenameMediaVersionTable(MigrationStep):
    """Turn the legacy cmsMedia table into umbracoMediaVersion.

    The new table is keyed by the content version id instead of the version
    guid, and stores the media path in "path".
    """

    version = "8.0.0"
    description = "Rename cmsMedia to umbracoMediaVersion"

    def migrate(self) -> None:
        q = self.dialect.quote
        media = self.dialect.quote_table(Tables.MEDIA_VERSION)

        # databases installed at 8.0 or later never had cmsMedia
        if not self.table_exists(LEGACY_MEDIA_TABLE):
            logger.info(f"{LEGACY_MEDIA_TABLE} not found; nothing to rename")
            return

        self.rename_table(LEGACY_MEDIA_TABLE, Tables.MEDIA_VERSION)

        deferred = self.add_column(Tables.MEDIA_VERSION, MEDIA_VERSION.get_column("id"))
        if self.dialect.supports_update_from_join():
            self.execute_sql(
                self.dialect.format_update_from_join(
                    Tables.MEDIA_VERSION,
                    "m",
                    {"id": f"v.{q('id')}"},
                    [
                        Join(
                            LEGACY_CONTENT_VERSION_TABLE,
                            "v",
                            f"m.{q('versionId')} = v.{q('versionId')}",
                        ),
                        Join(Tables.NODE, "n", f"v.{q('contentId')} = n.{q('id')}"),
                    ],
                    where=f"n.{q('nodeObjectType')} = {self.dialect.placeholder}",
                ),
                [ObjectTypes.MEDIA],
            )
        else:
            self._backfill_ids_row_by_row()
        for sql in deferred:
            self.execute_sql(sql)

        deferred = self.add_column(Tables.MEDIA_VERSION, MEDIA_VERSION.get_column("path"))
        self.execute_sql(f"UPDATE {media} SET {q('path')} = {q('mediaPath')}")
        for sql in deferred:
            self.execute_sql(sql)

        # keys and indexes still reference the legacy columns
        self.delete_keys_and_indexes(Tables.MEDIA_VERSION)

        self.drop_column(Tables.MEDIA_VERSION, "mediaPath")
        self.drop_column(Tables.MEDIA_VERSION, "versionId")
        self.drop_column(Tables.MEDIA_VERSION, "nodeId")

    def _backfill_ids_row_by_row(self) -> None:
        q = self.dialect.quote
        p = self.dialect.placeholder
        versions = self.fetch(
            f"SELECT v.{q('versionId')} AS version_id, v.{q('id')} AS id "
            f"FROM {self.dialect.quote_table(LEGACY_CONTENT_VERSION_TABLE)} v "
            f"JOIN {self.dialect.quote_table(Tables.NODE)} n ON v.{q('contentId')} = n.{q('id')} "
            f"WHERE n.{q('nodeObjectType')} = {p}",
            [ObjectTypes.MEDIA],
        )
        logger.info(f"Backfilling {len(versions)} media version id(s) row by row")
        for row in versions:
            self.execute_sql(
                f"UPDATE {self.dialect.quote_table(Tables.MEDIA_VERSION)} "
                f"SET {q('id')} = {p} WHERE {q('versionId')} = {p}",
                [row["id"], row["version_id"]],
            )


class AddLockObjects(MigrationStep):
    """Insert any lock rows that are missing from umbracoLock."""

    version = "8.0.1"
    description = "Add missing lock objects"

    def migrate(self) -> None:
        q = self.dialect.quote
        rows = self.fetch(f"SELECT {q('id')} FROM {self.dialect.quote_table(Tables.LOCK)}")
        existing = {row["id"] for row in rows}
        for lock_id, name in Locks.NAMES.items():
            if lock_id in existing:
                continue
            logger.info(f"Adding lock object {lock_id} ({name})")
            self.insert(Tables.LOCK, {"id": lock_id, "value": 1, "name": name})
