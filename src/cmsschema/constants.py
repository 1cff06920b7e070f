"""Well-known identifiers shared by the catalog, seed data and upgrade steps."""


class Tables:
    USER = "umbracoUser"
    NODE = "umbracoNode"
    CONTENT_TYPE = "cmsContentType"
    TEMPLATE = "cmsTemplate"
    CONTENT = "umbracoContent"
    CONTENT_VERSION = "umbracoContentVersion"
    MEDIA_VERSION = "umbracoMediaVersion"
    DOCUMENT = "umbracoDocument"
    LANGUAGE = "umbracoLanguage"
    LOCK = "umbracoLock"
    KEY_VALUE = "umbracoKeyValue"
    USER_GROUP = "umbracoUserGroup"
    USER_TO_USER_GROUP = "umbracoUser2UserGroup"
    MIGRATION_HISTORY = "umbracoMigrationHistory"


class ObjectTypes:
    SYSTEM_ROOT = "ea7d8624-4cfe-4578-a871-24aa946bf34d"
    CONTENT_RECYCLE_BIN = "01bb7ff2-24dc-4c0c-95a2-c24ef72bbac8"
    MEDIA_RECYCLE_BIN = "cf3d8e34-1c1c-41e9-ae56-878b57b32113"
    DOCUMENT = "c66ba18e-eaf3-4cff-8a22-41b16d66a972"
    MEDIA = "b796f64c-1f99-4ffb-b886-4bf4bc011a9c"
    DOCUMENT_TYPE = "a2cb7800-f571-4787-9638-bc48539a0efb"
    MEDIA_TYPE = "4ea4382b-2f5a-4c2b-9587-ae9b3cf3602e"
    TEMPLATE = "6fbde604-4178-42ce-a10b-8a2600a2f07d"


class Nodes:
    ROOT_ID = -1
    CONTENT_RECYCLE_BIN_ID = -20
    MEDIA_RECYCLE_BIN_ID = -21


class Locks:
    SERVERS = -331
    CONTENT_TYPES = -332
    CONTENT_TREE = -333
    MEDIA_TREE = -334
    MEMBER_TREE = -335
    MEDIA_TYPES = -336
    MEMBER_TYPES = -337
    DOMAINS = -338
    KEY_VALUES = -339
    LANGUAGES = -340

    NAMES = {
        SERVERS: "Servers",
        CONTENT_TYPES: "ContentTypes",
        CONTENT_TREE: "ContentTree",
        MEDIA_TREE: "MediaTree",
        MEMBER_TREE: "MemberTree",
        MEDIA_TYPES: "MediaTypes",
        MEMBER_TYPES: "MemberTypes",
        DOMAINS: "Domains",
        KEY_VALUES: "KeyValues",
        LANGUAGES: "Languages",
    }


class Security:
    SUPER_USER_ID = -1
    ADMIN_GROUP_ALIAS = "admin"
    EDITOR_GROUP_ALIAS = "editor"
    WRITER_GROUP_ALIAS = "writer"
