"""
Entitlements Grants — Per-User Grant Records
=============================================
Three grant kinds, all keyed by (user_id, company_id, ...):

- data permission grants (explicit allow or explicit revoke)
- module grants (user may use a provisioned module)
- module-permission grants (optional sub-features only)

Expiry is terminal and evaluated at read time; an expired grant is
never deleted, it simply stops being active.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


def _check_common(user_id, company_id, granted_by, granted_at, expires_at) -> None:
    if not user_id or not isinstance(user_id, str):
        raise ValueError("user_id must be a non-empty string.")
    if not company_id or not isinstance(company_id, str):
        raise ValueError("company_id must be a non-empty string.")
    if not granted_by or not isinstance(granted_by, str):
        raise ValueError("granted_by must be a non-empty string.")
    if not isinstance(granted_at, datetime):
        raise ValueError("granted_at must be datetime.")
    if expires_at is not None and not isinstance(expires_at, datetime):
        raise ValueError("expires_at must be datetime or None.")


def _not_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    return expires_at is None or expires_at > now


# ══════════════════════════════════════════════════════════════
# DATA PERMISSION GRANT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UserDataPermissionGrant:
    user_id: str
    permission_key: str
    company_id: str
    is_granted: bool
    granted_by: str
    granted_at: datetime
    expires_at: Optional[datetime] = None
    reason: str = ""

    def __post_init__(self):
        _check_common(
            self.user_id, self.company_id, self.granted_by,
            self.granted_at, self.expires_at,
        )
        if not self.permission_key or not isinstance(self.permission_key, str):
            raise ValueError("permission_key must be a non-empty string.")

    def is_active(self, now: datetime) -> bool:
        """True when this is an explicit allow that has not expired."""
        return self.is_granted and _not_expired(self.expires_at, now)

    def is_in_effect(self, now: datetime) -> bool:
        """True when this row (allow or revoke) still overrides the role default."""
        return _not_expired(self.expires_at, now)

    def identity(self) -> Tuple[str, str, str]:
        return (self.user_id, self.company_id, self.permission_key)


# ══════════════════════════════════════════════════════════════
# MODULE GRANT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UserModuleGrant:
    """
    A user's access to a module. May be stored while the company has
    the module switched off; resolution then treats it as inactive.
    """

    user_id: str
    module_id: str
    company_id: str
    is_enabled: bool
    granted_by: str
    granted_at: datetime
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        _check_common(
            self.user_id, self.company_id, self.granted_by,
            self.granted_at, self.expires_at,
        )
        if not self.module_id or not isinstance(self.module_id, str):
            raise ValueError("module_id must be a non-empty string.")

    def is_active(self, now: datetime) -> bool:
        return self.is_enabled and _not_expired(self.expires_at, now)

    def identity(self) -> Tuple[str, str, str]:
        return (self.user_id, self.company_id, self.module_id)


# ══════════════════════════════════════════════════════════════
# MODULE PERMISSION GRANT (optional sub-features)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UserModulePermissionGrant:
    user_id: str
    module_id: str
    permission_key: str
    company_id: str
    is_granted: bool
    granted_by: str
    granted_at: datetime
    expires_at: Optional[datetime] = None

    def __post_init__(self):
        _check_common(
            self.user_id, self.company_id, self.granted_by,
            self.granted_at, self.expires_at,
        )
        if not self.module_id or not isinstance(self.module_id, str):
            raise ValueError("module_id must be a non-empty string.")
        if not self.permission_key or not isinstance(self.permission_key, str):
            raise ValueError("permission_key must be a non-empty string.")

    def is_active(self, now: datetime) -> bool:
        return self.is_granted and _not_expired(self.expires_at, now)

    def identity(self) -> Tuple[str, str, str, str]:
        return (self.user_id, self.company_id, self.module_id, self.permission_key)
