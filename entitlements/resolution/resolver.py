"""
Entitlements Resolution — Effective Permission Resolver
========================================================
Computes the active permission set for one user in one company:

1. role defaults
2. explicit data grants overlay (revoke beats default)
3. included permissions of user-enabled, company-provisioned modules
4. optional sub-features granted on those same modules
5. drop keys whose dependency chain is unmet, until stable

Provisioning gates steps 3 and 4 regardless of per-user grant state.
Catalog drift (grants naming retired keys or modules) is logged and
ignored; resolution only raises for an unknown role.
"""

from __future__ import annotations

import logging
from typing import Dict, Set

from entitlements.catalog.models import Catalog
from entitlements.dependencies.resolver import DependencyResolver
from entitlements.grants.store import GrantStore
from entitlements.provisioning.store import ProvisioningStore
from entitlements.resolution.models import (
    EffectivePermissionSet,
    PermissionSource,
    SourceInfo,
)
from entitlements.roles import Role, role_default_permissions
from entitlements.time import Clock

logger = logging.getLogger("entitlements.resolution")


class PermissionResolver:
    def __init__(
        self,
        catalog: Catalog,
        grant_store: GrantStore,
        provisioning_store: ProvisioningStore,
        clock: Clock,
        dependencies: DependencyResolver | None = None,
    ) -> None:
        self._catalog = catalog
        self._grants = grant_store
        self._provisioning = provisioning_store
        self._clock = clock
        self._dependencies = dependencies or DependencyResolver(catalog)

    def _company_has_module(self, company_id: str, module_id: str) -> bool:
        record = self._provisioning.get(company_id, module_id)
        return record is not None and record.is_enabled

    def resolve(self, user_id: str, company_id: str, role) -> EffectivePermissionSet:
        role = Role.parse(role)
        now = self._clock.now_utc()
        sources: Dict[str, SourceInfo] = {}

        # 1. role defaults
        for key in role_default_permissions(role, self._catalog):
            sources[key] = SourceInfo(PermissionSource.ROLE)

        # 2. explicit data grants
        for grant in self._grants.list_data_grants(user_id, company_id):
            permission = self._catalog.find_permission(grant.permission_key)
            if permission is None:
                logger.warning(
                    "Ignoring data grant for unknown permission %s (user=%s company=%s)",
                    grant.permission_key, user_id, company_id,
                )
                continue
            if not permission.is_foundation:
                logger.warning(
                    "Ignoring data grant for module-derived permission %s (user=%s)",
                    grant.permission_key, user_id,
                )
                continue
            if not grant.is_in_effect(now):
                logger.debug(
                    "Skipping expired data grant %s for user %s",
                    grant.permission_key, user_id,
                )
                continue
            if grant.is_granted:
                sources.setdefault(grant.permission_key, SourceInfo(PermissionSource.DATA_GRANT))
            else:
                sources.pop(grant.permission_key, None)

        # 3. module included permissions
        active_modules: Set[str] = set()
        for grant in self._grants.list_module_grants(user_id, company_id):
            module = self._catalog.find_module(grant.module_id)
            if module is None:
                logger.warning(
                    "Ignoring grant for unknown module %s (user=%s company=%s)",
                    grant.module_id, user_id, company_id,
                )
                continue
            if not grant.is_active(now):
                if grant.is_enabled:
                    logger.debug(
                        "Skipping expired module grant %s for user %s",
                        grant.module_id, user_id,
                    )
                continue
            if not self._company_has_module(company_id, module.module_id):
                continue
            active_modules.add(module.module_id)
            for key in sorted(module.included_permissions):
                sources.setdefault(
                    key, SourceInfo(PermissionSource.MODULE_INCLUDED, module.module_id)
                )

        # 4. optional sub-features on active modules
        for grant in self._grants.list_module_permission_grants(user_id, company_id):
            if grant.module_id not in active_modules:
                continue
            module = self._catalog.get_module(grant.module_id)
            if grant.permission_key not in module.optional_permission_keys():
                logger.warning(
                    "Ignoring module permission %s: not an optional feature of %s",
                    grant.permission_key, grant.module_id,
                )
                continue
            if not grant.is_active(now):
                if grant.is_granted:
                    logger.debug(
                        "Skipping expired module permission %s for user %s",
                        grant.permission_key, user_id,
                    )
                continue
            sources.setdefault(
                grant.permission_key,
                SourceInfo(PermissionSource.MODULE_OPTIONAL, grant.module_id),
            )

        # 5. dependency soundness
        keys = set(sources)
        dropped: Set[str] = set()
        while True:
            unmet = self._dependencies.unsatisfied(keys)
            if not unmet:
                break
            keys -= unmet
            dropped |= unmet
        if dropped:
            logger.debug(
                "Dropped %s for user %s: dependency chain unmet",
                sorted(dropped), user_id,
            )

        return EffectivePermissionSet(
            user_id=user_id,
            company_id=company_id,
            role=role,
            keys=frozenset(keys),
            sources={k: sources[k] for k in keys},
            resolved_at=now,
            dropped=frozenset(dropped),
            active_modules=frozenset(active_modules),
            catalog_version=self._catalog.version,
        )

    def has_permission(self, user_id: str, company_id: str, role, key: str) -> bool:
        return self.resolve(user_id, company_id, role).has(key)
