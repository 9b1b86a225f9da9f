"""
Entitlements Grants - Store Protocol and In-Memory Store
========================================================
Single typed repository interface over the three grant kinds.
Saves are upserts keyed by the grant's identity tuple.
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from entitlements.grants.models import (
    UserDataPermissionGrant,
    UserModuleGrant,
    UserModulePermissionGrant,
)


class GrantStore(Protocol):
    def list_data_grants(
        self, user_id: str, company_id: str
    ) -> Tuple[UserDataPermissionGrant, ...]:
        ...

    def get_data_grant(
        self, user_id: str, company_id: str, permission_key: str
    ) -> Optional[UserDataPermissionGrant]:
        ...

    def save_data_grant(self, grant: UserDataPermissionGrant) -> None:
        ...

    def list_module_grants(
        self, user_id: str, company_id: str
    ) -> Tuple[UserModuleGrant, ...]:
        ...

    def get_module_grant(
        self, user_id: str, company_id: str, module_id: str
    ) -> Optional[UserModuleGrant]:
        ...

    def save_module_grant(self, grant: UserModuleGrant) -> None:
        ...

    def list_company_module_grants(
        self, company_id: str, module_id: str
    ) -> Tuple[UserModuleGrant, ...]:
        ...

    def list_module_permission_grants(
        self, user_id: str, company_id: str, module_id: Optional[str] = None
    ) -> Tuple[UserModulePermissionGrant, ...]:
        ...

    def get_module_permission_grant(
        self, user_id: str, company_id: str, module_id: str, permission_key: str
    ) -> Optional[UserModulePermissionGrant]:
        ...

    def save_module_permission_grant(self, grant: UserModulePermissionGrant) -> None:
        ...


class InMemoryGrantStore:
    """
    Deterministic in-memory grant store used for bootstrap/tests.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._data: Dict[Tuple[str, str, str], UserDataPermissionGrant] = {}
        self._modules: Dict[Tuple[str, str, str], UserModuleGrant] = {}
        self._module_perms: Dict[
            Tuple[str, str, str, str], UserModulePermissionGrant
        ] = {}

    # ── Data permissions ──────────────────────────────────────

    def list_data_grants(self, user_id, company_id):
        with self._lock:
            rows = [
                g for (u, c, _), g in self._data.items()
                if u == user_id and c == company_id
            ]
        return tuple(sorted(rows, key=lambda g: g.permission_key))

    def get_data_grant(self, user_id, company_id, permission_key):
        with self._lock:
            return self._data.get((user_id, company_id, permission_key))

    def save_data_grant(self, grant):
        with self._lock:
            self._data[grant.identity()] = grant

    # ── Modules ───────────────────────────────────────────────

    def list_module_grants(self, user_id, company_id):
        with self._lock:
            rows = [
                g for (u, c, _), g in self._modules.items()
                if u == user_id and c == company_id
            ]
        return tuple(sorted(rows, key=lambda g: g.module_id))

    def get_module_grant(self, user_id, company_id, module_id):
        with self._lock:
            return self._modules.get((user_id, company_id, module_id))

    def save_module_grant(self, grant):
        with self._lock:
            self._modules[grant.identity()] = grant

    def list_company_module_grants(self, company_id, module_id):
        with self._lock:
            rows = [
                g for (_, c, m), g in self._modules.items()
                if c == company_id and m == module_id
            ]
        return tuple(sorted(rows, key=lambda g: g.user_id))

    # ── Module permissions ────────────────────────────────────

    def list_module_permission_grants(self, user_id, company_id, module_id=None):
        with self._lock:
            rows = [
                g for (u, c, m, _), g in self._module_perms.items()
                if u == user_id and c == company_id
                and (module_id is None or m == module_id)
            ]
        return tuple(sorted(rows, key=lambda g: (g.module_id, g.permission_key)))

    def get_module_permission_grant(self, user_id, company_id, module_id, permission_key):
        with self._lock:
            return self._module_perms.get(
                (user_id, company_id, module_id, permission_key)
            )

    def save_module_permission_grant(self, grant):
        with self._lock:
            self._module_perms[grant.identity()] = grant
