"""
Entitlements — Closed Role Enumeration
=======================================
Roles arrive as strings from the session layer. They are parsed once,
at the boundary, into Role; unknown values are rejected, never defaulted.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet

from entitlements.catalog.constants import (
    PERMISSION_ANALYTICS_VIEW,
    PERMISSION_DASHBOARD_VIEW,
    PERMISSION_EXPENSES_CREATE,
    PERMISSION_EXPENSES_VIEW,
    PERMISSION_NOTIFICATIONS_VIEW,
)
from entitlements.catalog.models import Catalog
from entitlements.errors import UnknownRole


class Role(Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"

    @classmethod
    def parse(cls, value) -> "Role":
        if isinstance(value, Role):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip())
            except ValueError:
                pass
        raise UnknownRole(value)

    @property
    def is_operator(self) -> bool:
        return self is Role.SUPER_ADMIN

    @property
    def can_manage_users(self) -> bool:
        return self in (Role.ADMIN, Role.SUPER_ADMIN)


USER_DEFAULT_PERMISSIONS: FrozenSet[str] = frozenset({
    PERMISSION_DASHBOARD_VIEW,
    PERMISSION_ANALYTICS_VIEW,
    PERMISSION_EXPENSES_VIEW,
    PERMISSION_EXPENSES_CREATE,
    PERMISSION_NOTIFICATIONS_VIEW,
})


def role_default_permissions(role: Role, catalog: Catalog) -> FrozenSet[str]:
    """
    Static role → default data permission mapping.

    admin receives every foundation permission; super-admin additionally
    receives every module-derived permission (operator override).
    """
    if role is Role.USER:
        return frozenset(k for k in USER_DEFAULT_PERMISSIONS if catalog.has_permission(k))

    foundation = frozenset(
        p.key for p in catalog.list_permissions() if p.is_foundation
    )
    if role is Role.ADMIN:
        return foundation
    return foundation | catalog.module_derived_permission_keys()
