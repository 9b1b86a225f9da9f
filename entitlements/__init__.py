"""
Entitlements - Public API
=========================
Two-tier authorization: free foundation data permissions plus paid
modules gated by company provisioning.
"""

from entitlements.batch import Change, ChangeKind, CommitResult, PendingChanges
from entitlements.catalog import Catalog, CatalogStore, default_catalog
from entitlements.config import EntitlementsConfig
from entitlements.errors import EntitlementError
from entitlements.provisioning import ProvisioningConfig
from entitlements.resolution import EffectivePermissionSet, PermissionSource
from entitlements.roles import Role


def __getattr__(name: str):
    if name in {"EntitlementService", "ActorContext"}:
        from entitlements.service import ActorContext, EntitlementService

        if name == "EntitlementService":
            return EntitlementService
        return ActorContext
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    "Change",
    "ChangeKind",
    "CommitResult",
    "PendingChanges",
    "Catalog",
    "CatalogStore",
    "default_catalog",
    "EntitlementsConfig",
    "EntitlementError",
    "ProvisioningConfig",
    "EffectivePermissionSet",
    "PermissionSource",
    "Role",
    "EntitlementService",
    "ActorContext",
]
