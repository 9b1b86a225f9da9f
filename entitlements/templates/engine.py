"""
Entitlements Templates — Apply and Manage Templates
====================================================
Applying a template is best effort: each data permission and module
is attempted on its own, and anything the company cannot use is
reported under skipped instead of failing the whole operation.

Data permissions go through the same checks as a committed grant:
system-only keys need the system operator, and a key is only written
once its requirements are in effect for the user. Keys are visited
with requirements first, so a template may carry a whole chain.

Re-applying a template is idempotent: items already in place,
including keys the user's role grants by default, are reported as
applied without a write or an audit record.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from entitlements.audit.models import ChangeType, new_record
from entitlements.audit.sink import AuditSink
from entitlements.catalog.models import Catalog
from entitlements.dependencies.resolver import DependencyResolver
from entitlements.errors import (
    MissingDependency,
    ModuleDependencyUnmet,
    ModuleLocked,
    NotProvisioned,
    Unauthorized,
    UnknownModule,
    UnknownPermission,
    UnknownTemplate,
)
from entitlements.grants.models import UserDataPermissionGrant, UserModuleGrant
from entitlements.grants.store import GrantStore
from entitlements.locking import UserLockRegistry
from entitlements.provisioning.store import ProvisioningStore
from entitlements.resolution.resolver import PermissionResolver
from entitlements.roles import Role, role_default_permissions
from entitlements.templates.models import (
    ApplyResult,
    PermissionTemplate,
    SkippedItem,
)
from entitlements.templates.store import TemplateStore
from entitlements.time import Clock

logger = logging.getLogger("entitlements.templates")


class TemplateEngine:
    def __init__(
        self,
        catalog: Catalog,
        grant_store: GrantStore,
        provisioning_store: ProvisioningStore,
        audit_sink: AuditSink,
        clock: Clock,
        locks: UserLockRegistry,
        templates: TemplateStore,
        resolver: Optional[PermissionResolver] = None,
    ) -> None:
        self._catalog = catalog
        self._grants = grant_store
        self._provisioning = provisioning_store
        self._audit = audit_sink
        self._clock = clock
        self._locks = locks
        self._templates = templates
        self._dependencies = DependencyResolver(catalog)
        self._resolver = resolver or PermissionResolver(
            catalog, grant_store, provisioning_store, clock, self._dependencies
        )

    # ══════════════════════════════════════════════════════════
    # APPLY
    # ══════════════════════════════════════════════════════════

    def apply_template(
        self,
        template_id: str,
        user_id: str,
        company_id: str,
        actor_id: str,
        actor_role=None,
        user_role=Role.USER,
    ) -> ApplyResult:
        """
        actor_role gates system-only keys; user_role is the affected
        user's role, whose defaults count as already granted.
        """
        template = self.get_template(template_id)
        actor_role = Role.parse(actor_role) if actor_role is not None else None
        user_role = Role.parse(user_role)
        role_defaults = role_default_permissions(user_role, self._catalog)
        reason = f"template:{template_id}"
        applied: Set[str] = set()
        written: Set[str] = set()
        skipped: List[SkippedItem] = []

        def skip(item: str, error) -> None:
            skipped.append(SkippedItem(item=item, code=error.code, reason=error.message))

        with self._locks.hold(user_id, company_id):
            effective = self._resolver.resolve(user_id, company_id, user_role)
            now = effective.resolved_at
            working: Set[str] = set(effective.keys)

            for key in self._permission_order(template.data_permissions):
                permission = self._catalog.find_permission(key)
                if permission is None:
                    skip(key, UnknownPermission(key))
                    continue
                if permission.is_system_only and actor_role is not Role.SUPER_ADMIN:
                    skip(key, Unauthorized(
                        f"Permission '{key}' can only be granted by the system operator."
                    ))
                    continue
                if not permission.is_foundation:
                    modules = sorted(self._catalog.modules_including(key))
                    skip(key, ModuleLocked(
                        modules[0] if modules else "",
                        f"Permission '{key}' is only available through a module.",
                        key=key,
                    ))
                    continue
                missing = self._dependencies.missing_dependencies(working, key)
                if missing:
                    skip(key, MissingDependency(key, missing))
                    continue
                existing = self._grants.get_data_grant(user_id, company_id, key)
                if self._already_granted(existing, key, role_defaults, now):
                    working.add(key)
                    applied.add(key)
                    continue
                self._grants.save_data_grant(UserDataPermissionGrant(
                    user_id=user_id,
                    permission_key=key,
                    company_id=company_id,
                    is_granted=True,
                    granted_by=actor_id,
                    granted_at=now,
                    reason=reason,
                ))
                self._audit.append(new_record(
                    actor_user_id=actor_id,
                    affected_user_id=user_id,
                    company_id=company_id,
                    change_type=ChangeType.GRANT_DATA_PERMISSION,
                    key=key,
                    old_value=existing.is_granted if existing is not None else None,
                    new_value=True,
                    reason=reason,
                    performed_at=now,
                ))
                working.add(key)
                applied.add(key)
                written.add(key)

            enabled_modules = {
                g.module_id
                for g in self._grants.list_module_grants(user_id, company_id)
                if g.is_active(now)
            }
            for module_id in self._module_order(template.modules):
                module = self._catalog.find_module(module_id)
                if module is None:
                    skip(module_id, UnknownModule(module_id))
                    continue
                record = self._provisioning.get(company_id, module_id)
                if record is None or not record.is_enabled:
                    skip(module_id, NotProvisioned(company_id, module_id))
                    continue
                if module_id in enabled_modules:
                    applied.add(module_id)
                    continue
                missing = module.requires_modules - enabled_modules
                if missing:
                    skip(module_id, ModuleDependencyUnmet(module_id, missing))
                    continue
                existing = self._grants.get_module_grant(user_id, company_id, module_id)
                self._grants.save_module_grant(UserModuleGrant(
                    user_id=user_id,
                    module_id=module_id,
                    company_id=company_id,
                    is_enabled=True,
                    granted_by=actor_id,
                    granted_at=now,
                ))
                self._audit.append(new_record(
                    actor_user_id=actor_id,
                    affected_user_id=user_id,
                    company_id=company_id,
                    change_type=ChangeType.GRANT_MODULE,
                    key=module_id,
                    module_id=module_id,
                    old_value=existing.is_enabled if existing is not None else None,
                    new_value=True,
                    reason=reason,
                    performed_at=now,
                ))
                enabled_modules.add(module_id)
                applied.add(module_id)
                written.add(module_id)

            if written:
                self._audit.append(new_record(
                    actor_user_id=actor_id,
                    affected_user_id=user_id,
                    company_id=company_id,
                    change_type=ChangeType.APPLY_TEMPLATE,
                    key=template_id,
                    old_value=None,
                    new_value=True,
                    reason=f"{len(written)} item(s) written, {len(skipped)} skipped",
                    performed_at=now,
                ))

        for item in skipped:
            logger.warning(
                "Template %s skipped %s for user %s: %s",
                template_id, item.item, user_id, item.code,
            )
        logger.info(
            "Applied template %s to user %s in company %s (%d applied, %d written, %d skipped)",
            template_id, user_id, company_id, len(applied), len(written), len(skipped),
        )
        return ApplyResult(
            template_id=template_id,
            applied=frozenset(applied),
            skipped=tuple(skipped),
            written=frozenset(written),
        )

    @staticmethod
    def _already_granted(existing, key: str, role_defaults, now) -> bool:
        if existing is not None and existing.is_in_effect(now):
            return existing.is_granted
        return key in role_defaults

    def _permission_order(self, keys) -> List[str]:
        """Required keys before the keys that need them."""
        ordered: List[str] = []
        seen: Set[str] = set()
        wanted = set(keys)

        def visit(key: str) -> None:
            if key in seen:
                return
            seen.add(key)
            for required in sorted(self._catalog.requirements_of(key) & wanted):
                visit(required)
            ordered.append(key)

        for key in sorted(wanted):
            visit(key)
        return ordered

    def _module_order(self, module_ids) -> List[str]:
        """Required modules before the modules that need them."""
        ordered: List[str] = []
        seen: Set[str] = set()
        wanted = set(module_ids)

        def visit(module_id: str) -> None:
            if module_id in seen:
                return
            seen.add(module_id)
            module = self._catalog.find_module(module_id)
            if module is not None:
                for required in sorted(module.requires_modules & wanted):
                    visit(required)
            ordered.append(module_id)

        for module_id in sorted(wanted):
            visit(module_id)
        return ordered

    # ══════════════════════════════════════════════════════════
    # MANAGEMENT
    # ══════════════════════════════════════════════════════════

    def get_template(self, template_id: str) -> PermissionTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise UnknownTemplate(template_id)
        return template

    def list_templates(self, target_role=None) -> Tuple[PermissionTemplate, ...]:
        role = Role.parse(target_role) if target_role is not None else None
        return self._templates.list(role)

    def create_template(
        self,
        template_id: str,
        display_name: str,
        target_role,
        data_permissions=(),
        modules=(),
        description: str = "",
        actor_id: str = "",
        actor_role: Optional[Role] = None,
        is_system_template: bool = False,
    ) -> PermissionTemplate:
        if is_system_template and actor_role is not Role.SUPER_ADMIN:
            raise Unauthorized("Only the system operator may create system templates.")
        if self._templates.get(template_id) is not None:
            raise ValueError(f"Template '{template_id}' already exists.")
        template = PermissionTemplate(
            template_id=template_id,
            display_name=display_name,
            target_role=target_role,
            data_permissions=frozenset(data_permissions),
            modules=frozenset(modules),
            description=description,
            is_system_template=is_system_template,
            created_by=actor_id or None,
        )
        self._validate_contents(template)
        self._templates.save(template)
        logger.info("Created template %s by %s", template_id, actor_id)
        return template

    def update_template(
        self,
        template_id: str,
        actor_id: str,
        actor_role: Optional[Role] = None,
        **changes,
    ) -> PermissionTemplate:
        current = self.get_template(template_id)
        self._check_can_modify(current, actor_id, actor_role)
        allowed = {"display_name", "target_role", "data_permissions", "modules", "description"}
        unknown = sorted(set(changes) - allowed)
        if unknown:
            raise ValueError(f"Cannot update template fields: {unknown}")
        values: Dict = current.to_dict()
        values.update(changes)
        template = PermissionTemplate(
            template_id=current.template_id,
            display_name=values["display_name"],
            target_role=values["target_role"],
            data_permissions=frozenset(values["data_permissions"]),
            modules=frozenset(values["modules"]),
            description=values["description"],
            is_system_template=current.is_system_template,
            created_by=current.created_by,
        )
        self._validate_contents(template)
        self._templates.save(template)
        logger.info("Updated template %s by %s", template_id, actor_id)
        return template

    def delete_template(
        self,
        template_id: str,
        actor_id: str,
        actor_role: Optional[Role] = None,
    ) -> None:
        template = self.get_template(template_id)
        if template.is_system_template:
            raise Unauthorized("System templates cannot be deleted.")
        self._check_can_modify(template, actor_id, actor_role)
        self._templates.delete(template_id)
        logger.info("Deleted template %s by %s", template_id, actor_id)

    def _check_can_modify(
        self,
        template: PermissionTemplate,
        actor_id: str,
        actor_role: Optional[Role],
    ) -> None:
        if actor_role is Role.SUPER_ADMIN:
            return
        if template.is_system_template:
            raise Unauthorized("Only the system operator may modify system templates.")
        if template.created_by != actor_id:
            raise Unauthorized("Templates can only be modified by their creator.")

    def _validate_contents(self, template: PermissionTemplate) -> None:
        for key in sorted(template.data_permissions):
            self._catalog.get_permission(key)
        for module_id in sorted(template.modules):
            self._catalog.get_module(module_id)
