"""
Entitlements Grants - Public API
================================
"""

from entitlements.grants.models import (
    UserDataPermissionGrant,
    UserModuleGrant,
    UserModulePermissionGrant,
)
from entitlements.grants.store import GrantStore, InMemoryGrantStore

__all__ = [
    "UserDataPermissionGrant",
    "UserModuleGrant",
    "UserModulePermissionGrant",
    "GrantStore",
    "InMemoryGrantStore",
]
