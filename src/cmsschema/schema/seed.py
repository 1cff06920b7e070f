"""Baseline rows inserted into freshly created tables."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from cmsschema.constants import Locks, Nodes, ObjectTypes, Security, Tables

if TYPE_CHECKING:
    from cmsschema.database import Database

__all__ = ["BaseDataSeeder", "NullSeeder", "CmsBaseDataSeeder"]

logger = logging.getLogger(__name__)


@runtime_checkable
class BaseDataSeeder(Protocol):
    """Inserts whatever baseline rows a table needs right after creation.

    Called inside the install transaction, while identity insert is enabled
    for the table on dialects that need it. Tables without seed data are a
    no-op.
    """

    def seed(self, database: "Database", table_name: str) -> None: ...


class NullSeeder:
    def seed(self, database: "Database", table_name: str) -> None:
        return None


class CmsBaseDataSeeder:
    """Seed data for the built-in CMS catalog."""

    def __init__(self) -> None:
        self._seeders: dict[str, Callable[["Database"], None]] = {
            Tables.USER.casefold(): self._seed_users,
            Tables.NODE.casefold(): self._seed_nodes,
            Tables.LOCK.casefold(): self._seed_locks,
            Tables.LANGUAGE.casefold(): self._seed_languages,
            Tables.USER_GROUP.casefold(): self._seed_user_groups,
            Tables.USER_TO_USER_GROUP.casefold(): self._seed_user_to_user_groups,
        }

    def seed(self, database: "Database", table_name: str) -> None:
        seeder = self._seeders.get(table_name.casefold())
        if seeder is None:
            return
        logger.info(f"Seeding base data for {table_name}")
        seeder(database)

    def _seed_users(self, db: "Database") -> None:
        db.insert(
            Tables.USER,
            {
                "id": Security.SUPER_USER_ID,
                "userDisabled": False,
                "userName": "Administrator",
                "userLogin": "admin",
                "userPassword": "default",
                "userEmail": "",
                "userLanguage": "en-US",
            },
        )

    def _seed_nodes(self, db: "Database") -> None:
        rows = [
            (
                Nodes.ROOT_ID,
                "916724a5-173d-4619-b97e-b9de133dd6f5",
                "-1",
                "SYSTEM DATA: umbraco master root",
                ObjectTypes.SYSTEM_ROOT,
            ),
            (
                Nodes.CONTENT_RECYCLE_BIN_ID,
                "0f582a79-1e41-4cf0-bfa0-76340651891a",
                f"-1,{Nodes.CONTENT_RECYCLE_BIN_ID}",
                "Recycle Bin",
                ObjectTypes.CONTENT_RECYCLE_BIN,
            ),
            (
                Nodes.MEDIA_RECYCLE_BIN_ID,
                "bf7c7cbc-952f-4518-97a2-69e9c7b33842",
                f"-1,{Nodes.MEDIA_RECYCLE_BIN_ID}",
                "Recycle Bin",
                ObjectTypes.MEDIA_RECYCLE_BIN,
            ),
        ]
        for node_id, unique_id, path, text, object_type in rows:
            db.insert(
                Tables.NODE,
                {
                    "id": node_id,
                    "uniqueId": unique_id,
                    "parentId": Nodes.ROOT_ID,
                    "level": 0,
                    "path": path,
                    "sortOrder": 0,
                    "trashed": False,
                    "nodeUser": Security.SUPER_USER_ID,
                    "text": text,
                    "nodeObjectType": object_type,
                },
            )

    def _seed_locks(self, db: "Database") -> None:
        for lock_id, name in Locks.NAMES.items():
            db.insert(Tables.LOCK, {"id": lock_id, "value": 1, "name": name})

    def _seed_languages(self, db: "Database") -> None:
        db.insert(
            Tables.LANGUAGE,
            {
                "id": 1,
                "languageISOCode": "en-US",
                "languageCultureName": "English (United States)",
                "isDefaultVariantLang": True,
                "mandatory": False,
            },
        )

    def _seed_user_groups(self, db: "Database") -> None:
        groups = [
            (1, Security.ADMIN_GROUP_ALIAS, "Administrators", "CADMOSKTPIURZ:5F7", "icon-medal"),
            (2, Security.WRITER_GROUP_ALIAS, "Writers", "CAH:F", "icon-edit"),
            (3, Security.EDITOR_GROUP_ALIAS, "Editors", "CADMOSKTPUZ:5F", "icon-tools"),
        ]
        for group_id, alias, name, permissions, icon in groups:
            db.insert(
                Tables.USER_GROUP,
                {
                    "id": group_id,
                    "userGroupAlias": alias,
                    "userGroupName": name,
                    "userGroupDefaultPermissions": permissions,
                    "icon": icon,
                },
            )

    def _seed_user_to_user_groups(self, db: "Database") -> None:
        db.insert(
            Tables.USER_TO_USER_GROUP,
            {"userId": Security.SUPER_USER_ID, "userGroupId": 1},
        )
