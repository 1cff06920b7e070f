"""The built-in CMS table catalog, in creation order."""

from cmsschema.constants import Tables
from cmsschema.schema.models import (
    SchemaCatalog,
    column,
    define_table,
    foreign_key,
    index,
)
from cmsschema.types import DbType

USER = define_table(
    Tables.USER,
    columns=[
        column("id", DbType.INT, nullable=False, identity=True),
        column("userDisabled", DbType.BOOLEAN, nullable=False, default="0"),
        column("userName", DbType.STRING, length=255, nullable=False),
        column("userLogin", DbType.STRING, length=125, nullable=False),
        column("userPassword", DbType.STRING, length=500, nullable=False),
        column("userEmail", DbType.STRING, length=255, nullable=False),
        column("userLanguage", DbType.STRING, length=10),
        column("createDate", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
        column("updateDate", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
    ],
    primary_key="id",
    indexes=[index("userLogin", unique=True, name="IX_umbracoUser_userLogin")],
)

NODE = define_table(
    Tables.NODE,
    columns=[
        column("id", DbType.INT, nullable=False, identity=True),
        column("uniqueId", DbType.GUID, nullable=False),
        column("parentId", DbType.INT, nullable=False),
        column("level", DbType.SMALLINT, nullable=False),
        column("path", DbType.STRING, length=150, nullable=False),
        column("sortOrder", DbType.INT, nullable=False),
        column("trashed", DbType.BOOLEAN, nullable=False, default="0"),
        column("nodeUser", DbType.INT),
        column("text", DbType.STRING, length=255),
        column("nodeObjectType", DbType.GUID),
        column("createDate", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
    ],
    primary_key="id",
    indexes=[
        index("uniqueId", unique=True, name="IX_umbracoNode_UniqueId"),
        index("parentId", name="IX_umbracoNode_ParentId"),
        index(["nodeObjectType", "trashed"], name="IX_umbracoNode_ObjectType"),
        index("path", name="IX_umbracoNode_Path"),
    ],
    foreign_keys=[
        foreign_key("parentId", Tables.NODE),
        foreign_key("nodeUser", Tables.USER),
    ],
)

CONTENT_TYPE = define_table(
    Tables.CONTENT_TYPE,
    columns=[
        column("pk", DbType.INT, nullable=False, identity=True),
        column("nodeId", DbType.INT, nullable=False),
        column("alias", DbType.STRING, length=255),
        column("icon", DbType.STRING, length=255),
        column("description", DbType.STRING, length=1500),
        column("isContainer", DbType.BOOLEAN, nullable=False, default="0"),
        column("isElement", DbType.BOOLEAN, nullable=False, default="0"),
        column("allowAtRoot", DbType.BOOLEAN, nullable=False, default="0"),
        column("variations", DbType.INT, nullable=False, default="1"),
    ],
    primary_key="pk",
    indexes=[index("nodeId", unique=True, name="IX_cmsContentType")],
    foreign_keys=[foreign_key("nodeId", Tables.NODE)],
)

TEMPLATE = define_table(
    Tables.TEMPLATE,
    columns=[
        column("pk", DbType.INT, nullable=False, identity=True),
        column("nodeId", DbType.INT, nullable=False),
        column("alias", DbType.STRING, length=100),
    ],
    primary_key="pk",
    indexes=[index("nodeId", unique=True, name="IX_cmsTemplate_nodeId")],
    foreign_keys=[foreign_key("nodeId", Tables.NODE)],
)

CONTENT = define_table(
    Tables.CONTENT,
    columns=[
        column("nodeId", DbType.INT, nullable=False),
        column("contentTypeId", DbType.INT, nullable=False),
    ],
    primary_key="nodeId",
    foreign_keys=[
        foreign_key("nodeId", Tables.NODE),
        foreign_key("contentTypeId", Tables.CONTENT_TYPE, "nodeId"),
    ],
)

CONTENT_VERSION = define_table(
    Tables.CONTENT_VERSION,
    columns=[
        column("id", DbType.INT, nullable=False, identity=True),
        column("nodeId", DbType.INT, nullable=False),
        column("versionDate", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
        column("userId", DbType.INT),
        column("current", DbType.BOOLEAN, nullable=False),
        column("text", DbType.STRING, length=255),
    ],
    primary_key="id",
    indexes=[index(["nodeId", "current"], name="IX_umbracoContentVersion_NodeId")],
    foreign_keys=[
        foreign_key("nodeId", Tables.CONTENT, "nodeId"),
        foreign_key("userId", Tables.USER),
    ],
)

MEDIA_VERSION = define_table(
    Tables.MEDIA_VERSION,
    columns=[
        column("id", DbType.INT, nullable=False),
        column("path", DbType.STRING, length=255),
    ],
    primary_key="id",
    indexes=[index(["id", "path"], unique=True, name="IX_umbracoMediaVersion")],
    foreign_keys=[foreign_key("id", Tables.CONTENT_VERSION)],
)

DOCUMENT = define_table(
    Tables.DOCUMENT,
    columns=[
        column("nodeId", DbType.INT, nullable=False),
        column("published", DbType.BOOLEAN, nullable=False),
        column("edited", DbType.BOOLEAN, nullable=False),
    ],
    primary_key="nodeId",
    indexes=[index("published", name="IX_umbracoDocument_Published")],
    foreign_keys=[foreign_key("nodeId", Tables.CONTENT, "nodeId")],
)

LANGUAGE = define_table(
    Tables.LANGUAGE,
    columns=[
        column("id", DbType.SMALLINT, nullable=False, identity=True),
        column("languageISOCode", DbType.STRING, length=14),
        column("languageCultureName", DbType.STRING, length=100),
        column("isDefaultVariantLang", DbType.BOOLEAN, nullable=False, default="0"),
        column("mandatory", DbType.BOOLEAN, nullable=False, default="0"),
    ],
    primary_key="id",
    indexes=[
        index("languageISOCode", unique=True, name="IX_umbracoLanguage_languageISOCode")
    ],
)

LOCK = define_table(
    Tables.LOCK,
    columns=[
        column("id", DbType.INT, nullable=False),
        column("value", DbType.INT, nullable=False),
        column("name", DbType.STRING, length=64, nullable=False),
    ],
    primary_key="id",
)

KEY_VALUE = define_table(
    Tables.KEY_VALUE,
    columns=[
        column("key", DbType.STRING, length=256, nullable=False),
        column("value", DbType.STRING, length=255),
        column("updated", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
    ],
    primary_key="key",
)

USER_GROUP = define_table(
    Tables.USER_GROUP,
    columns=[
        column("id", DbType.INT, nullable=False, identity=True),
        column("userGroupAlias", DbType.STRING, length=200, nullable=False),
        column("userGroupName", DbType.STRING, length=200, nullable=False),
        column("userGroupDefaultPermissions", DbType.STRING, length=50),
        column("icon", DbType.STRING, length=255),
        column("createDate", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
        column("updateDate", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
    ],
    primary_key="id",
    indexes=[
        index("userGroupAlias", unique=True, name="IX_umbracoUserGroup_userGroupAlias"),
        index("userGroupName", unique=True, name="IX_umbracoUserGroup_userGroupName"),
    ],
)

USER_TO_USER_GROUP = define_table(
    Tables.USER_TO_USER_GROUP,
    columns=[
        column("userId", DbType.INT, nullable=False),
        column("userGroupId", DbType.INT, nullable=False),
    ],
    primary_key=["userId", "userGroupId"],
    foreign_keys=[
        foreign_key("userId", Tables.USER),
        foreign_key("userGroupId", Tables.USER_GROUP),
    ],
)

MIGRATION_HISTORY = define_table(
    Tables.MIGRATION_HISTORY,
    columns=[
        column("version", DbType.STRING, length=50, nullable=False),
        column("name", DbType.STRING, length=255, nullable=False),
        column("checksum", DbType.STRING, length=64, nullable=False),
        column("appliedAt", DbType.DATETIME, nullable=False, default="CURRENT_TIMESTAMP"),
        column("success", DbType.BOOLEAN, nullable=False),
        column("error", DbType.TEXT),
    ],
    primary_key="version",
)

CMS_CATALOG = SchemaCatalog(
    tables=(
        USER,
        NODE,
        CONTENT_TYPE,
        TEMPLATE,
        CONTENT,
        CONTENT_VERSION,
        MEDIA_VERSION,
        DOCUMENT,
        LANGUAGE,
        LOCK,
        KEY_VALUE,
        USER_GROUP,
        USER_TO_USER_GROUP,
        MIGRATION_HISTORY,
    )
)
