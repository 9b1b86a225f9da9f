"""
Entitlements Batch — Pending-Changes Commit
============================================
Commits a list of proposed toggles for one user in one company.

Each change is validated and applied on its own; a failing item is
reported with its error and never aborts its siblings. The whole batch
runs under the per-(user, company) lock, and a working copy of the
user's state is carried forward so later items validate against the
effect of earlier ones.

Every successful state-changing item produces exactly one audit
record. Items already in the desired state succeed without a write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from entitlements.audit.models import AuditRecord, ChangeType, new_record
from entitlements.audit.sink import AuditSink
from entitlements.batch.changes import Change, ChangeKind
from entitlements.catalog.models import Catalog, Module
from entitlements.dependencies.resolver import DependencyResolver
from entitlements.errors import (
    DependentModulesActive,
    EntitlementError,
    MissingDependency,
    ModuleDependencyUnmet,
    ModuleLocked,
    NotProvisioned,
    Unauthorized,
    UnknownModule,
    UnknownPermission,
)
from entitlements.grants.models import (
    UserDataPermissionGrant,
    UserModuleGrant,
    UserModulePermissionGrant,
)
from entitlements.grants.store import GrantStore
from entitlements.locking import UserLockRegistry
from entitlements.provisioning.store import ProvisioningStore
from entitlements.resolution.models import PermissionSource, SourceInfo
from entitlements.resolution.resolver import PermissionResolver
from entitlements.roles import Role, role_default_permissions
from entitlements.time import Clock

logger = logging.getLogger("entitlements.batch")


# ══════════════════════════════════════════════════════════════
# RESULT MODELS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ItemFailure:
    key: str
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_error(cls, key: str, error: EntitlementError) -> "ItemFailure":
        details = {
            k: v for k, v in error.to_dict().items() if k not in ("code", "message")
        }
        return cls(key=key, code=error.code, message=error.message, details=details)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
        }


@dataclass(frozen=True)
class CommitResult:
    succeeded: Tuple[str, ...] = ()
    failed: Tuple[ItemFailure, ...] = ()
    warnings: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    audit_records: Tuple[AuditRecord, ...] = ()

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def failure_for(self, key: str) -> Optional[ItemFailure]:
        for failure in self.failed:
            if failure.key == key:
                return failure
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": list(self.succeeded),
            "failed": [f.to_dict() for f in self.failed],
            "warnings": {k: list(v) for k, v in self.warnings.items()},
            "audit_record_ids": [str(r.record_id) for r in self.audit_records],
        }


# ══════════════════════════════════════════════════════════════
# WORKING STATE (one per commit)
# ══════════════════════════════════════════════════════════════

class _WorkingState:
    """The user's effective keys and enabled modules as the batch progresses."""

    def __init__(
        self,
        sources: Dict[str, SourceInfo],
        user_modules: Set[str],
        role_defaults: FrozenSet[str],
    ) -> None:
        self.sources = dict(sources)
        self.user_modules = set(user_modules)
        self.role_defaults = role_defaults

    @property
    def keys(self) -> FrozenSet[str]:
        return frozenset(self.sources)

    def add(self, key: str, source: SourceInfo) -> None:
        self.sources.setdefault(key, source)

    def remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.sources.pop(key, None)

    def remove_module(self, module_id: str) -> None:
        self.user_modules.discard(module_id)
        for key in [k for k, s in self.sources.items() if s.module_id == module_id]:
            del self.sources[key]


# ══════════════════════════════════════════════════════════════
# BATCH MUTATOR
# ══════════════════════════════════════════════════════════════

class BatchMutator:
    def __init__(
        self,
        catalog: Catalog,
        grant_store: GrantStore,
        provisioning_store: ProvisioningStore,
        audit_sink: AuditSink,
        clock: Clock,
        locks: UserLockRegistry,
        resolver: Optional[PermissionResolver] = None,
    ) -> None:
        self._catalog = catalog
        self._grants = grant_store
        self._provisioning = provisioning_store
        self._audit = audit_sink
        self._clock = clock
        self._locks = locks
        self._dependencies = DependencyResolver(catalog)
        self._resolver = resolver or PermissionResolver(
            catalog, grant_store, provisioning_store, clock, self._dependencies
        )

    def commit(
        self,
        user_id: str,
        company_id: str,
        actor_id: str,
        changes: Iterable[Change],
        actor_role=None,
        user_role=Role.USER,
    ) -> CommitResult:
        """
        Apply changes independently. actor_role gates system-only keys
        and system-locked modules; user_role is the affected user's role
        and seeds the working set with its defaults.
        """
        changes = list(changes)
        actor_role = Role.parse(actor_role) if actor_role is not None else None
        user_role = Role.parse(user_role)

        succeeded: List[str] = []
        failed: List[ItemFailure] = []
        warnings: Dict[str, Tuple[str, ...]] = {}
        records: List[AuditRecord] = []

        with self._locks.hold(user_id, company_id):
            effective = self._resolver.resolve(user_id, company_id, user_role)
            now = effective.resolved_at
            state = _WorkingState(
                sources=dict(effective.sources),
                user_modules={
                    g.module_id
                    for g in self._grants.list_module_grants(user_id, company_id)
                    if g.is_active(now)
                },
                role_defaults=role_default_permissions(user_role, self._catalog),
            )

            for change in changes:
                try:
                    record, item_warnings = self._apply(
                        change, user_id, company_id, actor_id, actor_role, state, now
                    )
                except EntitlementError as exc:
                    failed.append(ItemFailure.from_error(change.label, exc))
                    logger.warning(
                        "Rejected %s %s=%s for user %s: %s",
                        change.kind.value, change.label, change.desired_state,
                        user_id, exc.code,
                    )
                    continue
                succeeded.append(change.label)
                if item_warnings:
                    warnings[change.label] = item_warnings
                if record is not None:
                    self._audit.append(record)
                    records.append(record)

        logger.info(
            "Committed %d change(s) for user %s in company %s: %d succeeded, %d failed",
            len(changes), user_id, company_id, len(succeeded), len(failed),
        )
        return CommitResult(
            succeeded=tuple(succeeded),
            failed=tuple(failed),
            warnings=warnings,
            audit_records=tuple(records),
        )

    # ── Dispatch ──────────────────────────────────────────────

    def _apply(self, change, user_id, company_id, actor_id, actor_role, state, now):
        if change.kind is ChangeKind.DATA:
            return self._apply_data(change, user_id, company_id, actor_id, actor_role, state, now)
        if change.kind is ChangeKind.MODULE:
            return self._apply_module(change, user_id, company_id, actor_id, actor_role, state, now)
        return self._apply_module_permission(
            change, user_id, company_id, actor_id, actor_role, state, now
        )

    def _check_system_only(self, key: str, actor_role: Optional[Role]) -> None:
        permission = self._catalog.find_permission(key)
        if permission is not None and permission.is_system_only and actor_role is not Role.SUPER_ADMIN:
            raise Unauthorized(f"Permission '{key}' can only be changed by the system operator.")

    def _company_has_module(self, company_id: str, module_id: str) -> bool:
        record = self._provisioning.get(company_id, module_id)
        return record is not None and record.is_enabled

    # ── DATA ──────────────────────────────────────────────────

    def _apply_data(self, change, user_id, company_id, actor_id, actor_role, state, now):
        key = change.key
        permission = self._catalog.find_permission(key)
        if permission is None:
            raise UnknownPermission(key)
        self._check_system_only(key, actor_role)
        if not permission.is_foundation:
            modules = sorted(self._catalog.modules_including(key))
            raise ModuleLocked(
                modules[0] if modules else "",
                f"Permission '{key}' is only available through a module.",
                key=key,
            )

        existing = self._grants.get_data_grant(user_id, company_id, key)
        if self._data_is_noop(existing, change, state, now):
            return None, ()

        item_warnings: Tuple[str, ...] = ()
        if change.desired_state:
            missing = self._dependencies.missing_dependencies(state.keys, key)
            if missing:
                raise MissingDependency(key, missing)
        else:
            affected = self._dependencies.affected_by_revoke(state.keys, key)
            item_warnings = tuple(
                f"Revoking '{key}' deactivates '{dependent}'."
                for dependent in sorted(affected)
            )

        self._grants.save_data_grant(UserDataPermissionGrant(
            user_id=user_id,
            permission_key=key,
            company_id=company_id,
            is_granted=change.desired_state,
            granted_by=actor_id,
            granted_at=now,
            expires_at=change.expires_at,
            reason=change.reason,
        ))

        if change.desired_state:
            state.add(key, SourceInfo(PermissionSource.DATA_GRANT))
        else:
            state.remove({key} | set(self._dependencies.affected_by_revoke(state.keys, key)))

        return self._record(
            ChangeType.GRANT_DATA_PERMISSION if change.desired_state
            else ChangeType.REVOKE_DATA_PERMISSION,
            change, user_id, company_id, actor_id, now,
            old_value=existing.is_granted if existing is not None else None,
        ), item_warnings

    @staticmethod
    def _data_is_noop(existing, change, state, now) -> bool:
        if existing is not None and existing.is_in_effect(now):
            return (
                existing.is_granted == change.desired_state
                and existing.expires_at == change.expires_at
            )
        if change.expires_at is not None:
            return False
        # no overriding row: the role default decides the current state
        return (change.key in state.role_defaults) == change.desired_state

    # ── MODULE ────────────────────────────────────────────────

    def _apply_module(self, change, user_id, company_id, actor_id, actor_role, state, now):
        module_id = change.key
        module = self._catalog.find_module(module_id)
        if module is None:
            raise UnknownModule(module_id)
        existing = self._grants.get_module_grant(user_id, company_id, module_id)
        currently_on = existing is not None and existing.is_active(now)

        if change.desired_state:
            if not self._company_has_module(company_id, module_id):
                raise NotProvisioned(company_id, module_id)
            if currently_on and existing.expires_at == change.expires_at:
                return None, ()
            missing = module.requires_modules - state.user_modules
            if missing:
                raise ModuleDependencyUnmet(module_id, missing)
            self._grants.save_module_grant(UserModuleGrant(
                user_id=user_id,
                module_id=module_id,
                company_id=company_id,
                is_enabled=True,
                granted_by=actor_id,
                granted_at=now,
                expires_at=change.expires_at,
            ))
            state.user_modules.add(module_id)
            for key in module.included_permissions:
                state.add(key, SourceInfo(PermissionSource.MODULE_INCLUDED, module_id))
            return self._record(
                ChangeType.GRANT_MODULE, change, user_id, company_id, actor_id, now,
                old_value=existing.is_enabled if existing is not None else None,
            ), ()

        if not currently_on:
            return None, ()
        dependents = sorted(
            self._catalog.dependent_modules(module_id) & state.user_modules
        )
        if dependents:
            raise DependentModulesActive(module_id, dependents)
        if module.is_system_locked and actor_role is not Role.SUPER_ADMIN:
            raise ModuleLocked(
                module_id, f"Module '{module_id}' is system-locked and cannot be disabled."
            )

        self._grants.save_module_grant(UserModuleGrant(
            user_id=user_id,
            module_id=module_id,
            company_id=company_id,
            is_enabled=False,
            granted_by=actor_id,
            granted_at=now,
        ))
        revoked = self._revoke_optional_grants(module, user_id, company_id, actor_id, now)
        state.remove_module(module_id)
        item_warnings = tuple(
            f"Disabling '{module_id}' revokes '{key}'." for key in revoked
        )
        return self._record(
            ChangeType.REVOKE_MODULE, change, user_id, company_id, actor_id, now,
            old_value=True,
        ), item_warnings

    def _revoke_optional_grants(
        self, module: Module, user_id, company_id, actor_id, now: datetime
    ) -> List[str]:
        revoked = []
        for grant in self._grants.list_module_permission_grants(
            user_id, company_id, module.module_id
        ):
            if not grant.is_active(now):
                continue
            self._grants.save_module_permission_grant(UserModulePermissionGrant(
                user_id=grant.user_id,
                module_id=grant.module_id,
                permission_key=grant.permission_key,
                company_id=grant.company_id,
                is_granted=False,
                granted_by=actor_id,
                granted_at=now,
            ))
            revoked.append(grant.permission_key)
        if revoked:
            logger.info(
                "Revoked optional features %s of module %s for user %s",
                revoked, module.module_id, user_id,
            )
        return revoked

    # ── MODULE_PERMISSION ─────────────────────────────────────

    def _apply_module_permission(
        self, change, user_id, company_id, actor_id, actor_role, state, now
    ):
        module_id, key = change.module_id, change.key
        module = self._catalog.find_module(module_id)
        if module is None:
            raise UnknownModule(module_id)
        if key in module.included_permissions:
            raise ModuleLocked(
                module_id,
                f"'{key}' is included with module '{module_id}' and cannot be toggled.",
                key=key,
            )
        if key not in module.optional_permission_keys():
            raise UnknownPermission(key)
        self._check_system_only(key, actor_role)

        existing = self._grants.get_module_permission_grant(user_id, company_id, module_id, key)
        currently_on = existing is not None and existing.is_active(now)

        if change.desired_state:
            if not self._company_has_module(company_id, module_id):
                raise NotProvisioned(company_id, module_id)
            if module_id not in state.user_modules:
                raise ModuleDependencyUnmet(module_id, {module_id})
            if currently_on and existing.expires_at == change.expires_at:
                return None, ()
            missing = self._dependencies.missing_dependencies(state.keys, key)
            if missing:
                raise MissingDependency(key, missing)
        elif not currently_on:
            return None, ()

        self._grants.save_module_permission_grant(UserModulePermissionGrant(
            user_id=user_id,
            module_id=module_id,
            permission_key=key,
            company_id=company_id,
            is_granted=change.desired_state,
            granted_by=actor_id,
            granted_at=now,
            expires_at=change.expires_at if change.desired_state else None,
        ))
        if change.desired_state:
            state.add(key, SourceInfo(PermissionSource.MODULE_OPTIONAL, module_id))
        else:
            state.remove({key})

        return self._record(
            ChangeType.GRANT_MODULE_PERMISSION if change.desired_state
            else ChangeType.REVOKE_MODULE_PERMISSION,
            change, user_id, company_id, actor_id, now,
            old_value=existing.is_granted if existing is not None else None,
        ), ()

    # ── Audit ─────────────────────────────────────────────────

    @staticmethod
    def _record(
        change_type: ChangeType,
        change: Change,
        user_id: str,
        company_id: str,
        actor_id: str,
        now: datetime,
        old_value: Optional[bool],
    ) -> AuditRecord:
        return new_record(
            actor_user_id=actor_id,
            affected_user_id=user_id,
            company_id=company_id,
            change_type=change_type,
            key=change.key,
            module_id=change.module_id,
            old_value=old_value,
            new_value=change.desired_state,
            reason=change.reason,
            performed_at=now,
        )
