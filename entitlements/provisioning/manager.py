"""
Entitlements Provisioning — Company Module Switch
==================================================
Operator-side control of which modules a company has. Every write
runs under the company-level lock and produces one audit record per
module whose state changed.

Rules:
- enabling requires every requires_modules entry enabled for the company
- disabling a module that enabled modules depend on is refused unless
  cascade=True, which disables dependents deepest first
- system-locked modules can only be disabled by the operator role
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import FrozenSet, List, Optional, Set

from entitlements.audit.models import ChangeType, new_record
from entitlements.audit.sink import AuditSink
from entitlements.catalog.constants import PricingTier
from entitlements.catalog.models import Catalog, Module
from entitlements.errors import (
    DependentModulesActive,
    ModuleDependencyUnmet,
    ModuleLocked,
)
from entitlements.locking import UserLockRegistry
from entitlements.provisioning.models import (
    CompanyModuleProvisioning,
    ProvisioningConfig,
)
from entitlements.provisioning.store import ProvisioningStore
from entitlements.roles import Role
from entitlements.time import Clock

logger = logging.getLogger("entitlements.provisioning")


class ProvisioningManager:
    def __init__(
        self,
        catalog: Catalog,
        store: ProvisioningStore,
        audit_sink: AuditSink,
        clock: Clock,
        locks: UserLockRegistry,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._audit = audit_sink
        self._clock = clock
        self._locks = locks

    # ── Queries ───────────────────────────────────────────────

    def is_active(self, company_id: str, module_id: str) -> bool:
        record = self._store.get(company_id, module_id)
        return record is not None and record.is_enabled

    def check_module_dependencies(self, company_id: str, module_id: str) -> FrozenSet[str]:
        """Required modules that are not enabled for the company."""
        module = self._catalog.get_module(module_id)
        return frozenset(
            required for required in module.requires_modules
            if not self.is_active(company_id, required)
        )

    def active_dependents(self, company_id: str, module_id: str) -> List[str]:
        """
        Enabled modules depending on module_id, transitively, ordered
        deepest first so they can be disabled in sequence.
        """
        ordered: List[str] = []
        visited: Set[str] = {module_id}

        def visit(current: str) -> None:
            for dependent in sorted(self._catalog.dependent_modules(current)):
                if dependent in visited:
                    continue
                visited.add(dependent)
                if not self.is_active(company_id, dependent):
                    continue
                visit(dependent)
                ordered.append(dependent)

        visit(module_id)
        return ordered

    def list_company_modules(self, company_id: str):
        return self._store.list_for_company(company_id)

    # ── Commands ──────────────────────────────────────────────

    def provision_module(
        self,
        company_id: str,
        module_id: str,
        config: ProvisioningConfig,
        actor_id: str,
        actor_role: Optional[Role] = None,
        reason: str = "",
    ) -> CompanyModuleProvisioning:
        module = self._catalog.get_module(module_id)

        with self._locks.hold_company(company_id):
            existing = self._store.get(company_id, module_id)
            was_enabled = existing is not None and existing.is_enabled

            if config.is_enabled:
                missing = self.check_module_dependencies(company_id, module_id)
                if missing:
                    raise ModuleDependencyUnmet(module_id, missing)
            elif was_enabled:
                self._check_can_disable(company_id, module, actor_role)
                dependents = self.active_dependents(company_id, module_id)
                if dependents:
                    raise DependentModulesActive(module_id, dependents)

            now = self._clock.now_utc()
            keep_enabled_at = existing is not None and was_enabled == config.is_enabled
            record = CompanyModuleProvisioning(
                company_id=company_id,
                module_id=module_id,
                is_enabled=config.is_enabled,
                pricing_tier=config.pricing_tier,
                monthly_price=(
                    config.monthly_price
                    if config.monthly_price is not None
                    else module.default_monthly_price
                ),
                per_user_price=(
                    config.per_user_price
                    if config.per_user_price is not None
                    else module.default_per_user_price
                ),
                users_licensed=config.users_licensed,
                enabled_by=actor_id,
                enabled_at=existing.enabled_at if keep_enabled_at else now,
                billing_notes=config.billing_notes,
            )
            self._store.save(record)
            self._audit_change(
                record, actor_id,
                old_value=existing.is_enabled if existing is not None else None,
                reason=reason,
                performed_at=now,
            )
            logger.info(
                "Provisioned module %s for company %s (enabled=%s, tier=%s)",
                module_id, company_id, record.is_enabled, record.pricing_tier.value,
            )
            return record

    def set_enabled(
        self,
        company_id: str,
        module_id: str,
        enabled: bool,
        actor_id: str,
        cascade: bool = False,
        actor_role: Optional[Role] = None,
        reason: str = "",
    ) -> Optional[CompanyModuleProvisioning]:
        """
        Toggle a company's module. Returns the resulting record, or None
        when disabling a module that was never provisioned. Toggling to
        the current state writes nothing.
        """
        module = self._catalog.get_module(module_id)

        with self._locks.hold_company(company_id):
            existing = self._store.get(company_id, module_id)
            current = existing is not None and existing.is_enabled
            if current == enabled:
                return existing

            if enabled:
                missing = self.check_module_dependencies(company_id, module_id)
                if missing:
                    raise ModuleDependencyUnmet(module_id, missing)
                return self._write_toggle(module, existing, company_id, True, actor_id, reason)

            self._check_can_disable(company_id, module, actor_role)
            dependents = self.active_dependents(company_id, module_id)
            if dependents and not cascade:
                raise DependentModulesActive(module_id, dependents)

            for dependent_id in dependents:
                self._check_can_disable(
                    company_id, self._catalog.get_module(dependent_id), actor_role
                )
            for dependent_id in dependents:
                self._write_toggle(
                    self._catalog.get_module(dependent_id),
                    self._store.get(company_id, dependent_id),
                    company_id,
                    False,
                    actor_id,
                    reason or f"cascade from {module_id}",
                )
            return self._write_toggle(module, existing, company_id, False, actor_id, reason)

    # ── Internals ─────────────────────────────────────────────

    def _check_can_disable(
        self, company_id: str, module: Module, actor_role: Optional[Role]
    ) -> None:
        if module.is_system_locked and actor_role is not Role.SUPER_ADMIN:
            logger.warning(
                "Refused to disable system-locked module %s for company %s",
                module.module_id, company_id,
            )
            raise ModuleLocked(
                module.module_id,
                f"Module '{module.module_id}' is system-locked and cannot be disabled.",
            )

    def _write_toggle(
        self,
        module: Module,
        existing: Optional[CompanyModuleProvisioning],
        company_id: str,
        enabled: bool,
        actor_id: str,
        reason: str,
    ) -> CompanyModuleProvisioning:
        now = self._clock.now_utc()
        if existing is None:
            record = CompanyModuleProvisioning(
                company_id=company_id,
                module_id=module.module_id,
                is_enabled=enabled,
                pricing_tier=PricingTier.STANDARD,
                monthly_price=module.default_monthly_price,
                per_user_price=module.default_per_user_price,
                users_licensed=0,
                enabled_by=actor_id,
                enabled_at=now,
            )
        else:
            record = CompanyModuleProvisioning(
                company_id=existing.company_id,
                module_id=existing.module_id,
                is_enabled=enabled,
                pricing_tier=existing.pricing_tier,
                monthly_price=existing.monthly_price,
                per_user_price=existing.per_user_price,
                users_licensed=existing.users_licensed,
                enabled_by=actor_id,
                enabled_at=now,
                billing_notes=existing.billing_notes,
            )
        self._store.save(record)
        self._audit_change(
            record, actor_id,
            old_value=existing.is_enabled if existing is not None else None,
            reason=reason,
            performed_at=now,
        )
        logger.info(
            "Module %s %s for company %s by %s",
            module.module_id, "enabled" if enabled else "disabled", company_id, actor_id,
        )
        return record

    def _audit_change(
        self,
        record: CompanyModuleProvisioning,
        actor_id: str,
        old_value: Optional[bool],
        reason: str,
        performed_at: datetime,
    ) -> None:
        self._audit.append(new_record(
            actor_user_id=actor_id,
            affected_user_id=None,
            company_id=record.company_id,
            change_type=(
                ChangeType.PROVISION_MODULE if record.is_enabled
                else ChangeType.DEPROVISION_MODULE
            ),
            key=record.module_id,
            module_id=record.module_id,
            old_value=old_value,
            new_value=record.is_enabled,
            reason=reason,
            performed_at=performed_at,
        ))
