"""Code-based upgrade steps, one module per target release."""

from cmsschema.migrations.upgrade.v8_0 import AddLockObjects, RenameMediaVersionTable

CMS_UPGRADE_STEPS = (
    RenameMediaVersionTable,
    AddLockObjects,
)

__all__ = ["AddLockObjects", "CMS_UPGRADE_STEPS", "RenameMediaVersionTable"]
