"""
Entitlements — Service Facade
==============================
The single entry point for the API layer. It authorizes the caller,
then delegates to the resolver, batch mutator, template engine and
provisioning manager, which share one catalog, one set of stores and
one lock registry.

Caller rules:
- super-admin may act in any company
- admin may act only inside their own company
- user may read but never mutate grants
- company provisioning is super-admin only
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from entitlements.audit.models import AuditFilter, AuditRecord
from entitlements.audit.sink import AuditSink, InMemoryAuditSink, iter_pages
from entitlements.batch.changes import Change
from entitlements.batch.mutator import BatchMutator, CommitResult
from entitlements.catalog.models import Catalog
from entitlements.config import EntitlementsConfig
from entitlements.dependencies.resolver import DependencyResolver
from entitlements.errors import Unauthorized
from entitlements.grants.store import GrantStore, InMemoryGrantStore
from entitlements.locking import UserLockRegistry
from entitlements.provisioning.costs import CompanyCostSummary, company_cost_summary
from entitlements.provisioning.manager import ProvisioningManager
from entitlements.provisioning.models import (
    CompanyModuleProvisioning,
    ProvisioningConfig,
)
from entitlements.provisioning.store import (
    InMemoryProvisioningStore,
    ProvisioningStore,
)
from entitlements.resolution.models import EffectivePermissionSet
from entitlements.resolution.resolver import PermissionResolver
from entitlements.roles import Role
from entitlements.templates.engine import TemplateEngine
from entitlements.templates.models import ApplyResult, PermissionTemplate
from entitlements.templates.store import InMemoryTemplateStore, TemplateStore
from entitlements.time import Clock, SystemClock


@dataclass(frozen=True)
class ActorContext:
    """The already-authenticated caller."""

    user_id: str
    role: Role
    company_id: str

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("user_id must be non-empty.")
        if not self.company_id:
            raise ValueError("company_id must be non-empty.")
        object.__setattr__(self, "role", Role.parse(self.role))


class EntitlementService:
    def __init__(
        self,
        catalog: Catalog,
        grant_store: GrantStore | None = None,
        provisioning_store: ProvisioningStore | None = None,
        audit_sink: AuditSink | None = None,
        clock: Clock | None = None,
        config: EntitlementsConfig | None = None,
        template_store: TemplateStore | None = None,
    ) -> None:
        self.catalog = catalog
        self.config = config or EntitlementsConfig()
        self.clock = clock or SystemClock()
        self.grants = grant_store if grant_store is not None else InMemoryGrantStore()
        self.provisioning_store = (
            provisioning_store if provisioning_store is not None
            else InMemoryProvisioningStore()
        )
        self.audit = audit_sink if audit_sink is not None else InMemoryAuditSink()
        self.locks = UserLockRegistry(self.config.lock_timeout_seconds)

        self.provisioning = ProvisioningManager(
            catalog, self.provisioning_store, self.audit, self.clock, self.locks
        )
        self.dependencies = DependencyResolver(catalog, self.provisioning)
        self.resolver = PermissionResolver(
            catalog, self.grants, self.provisioning_store, self.clock, self.dependencies
        )
        self.mutator = BatchMutator(
            catalog, self.grants, self.provisioning_store, self.audit,
            self.clock, self.locks, self.resolver,
        )
        self.templates = TemplateEngine(
            catalog, self.grants, self.provisioning_store, self.audit,
            self.clock, self.locks,
            template_store if template_store is not None else InMemoryTemplateStore(),
            self.resolver,
        )

    @classmethod
    def from_settings(cls, catalog: Optional[Catalog] = None) -> "EntitlementService":
        """Wire the Django-backed stores using settings.ENTITLEMENTS."""
        from entitlements.catalog.defaults import default_catalog
        from entitlements.catalog.store import CatalogStore
        from entitlements.store.repositories import (
            DbAuditSink,
            DbGrantStore,
            DbProvisioningStore,
        )

        config = EntitlementsConfig.from_django_settings()
        clock = SystemClock()
        if catalog is None:
            catalog = CatalogStore(
                default_catalog, clock=clock, cache_seconds=config.catalog_cache_seconds
            ).get()
        return cls(
            catalog,
            grant_store=DbGrantStore(),
            provisioning_store=DbProvisioningStore(),
            audit_sink=DbAuditSink(),
            clock=clock,
            config=config,
        )

    # ══════════════════════════════════════════════════════════
    # AUTHORIZATION
    # ══════════════════════════════════════════════════════════

    @staticmethod
    def _authorize_company(actor: ActorContext, company_id: str) -> None:
        if actor.role is Role.SUPER_ADMIN:
            return
        if actor.role is Role.ADMIN and actor.company_id == company_id:
            return
        raise Unauthorized(
            f"Actor '{actor.user_id}' cannot manage company '{company_id}'."
        )

    @classmethod
    def _authorize_user_mutation(cls, actor: ActorContext, company_id: str) -> None:
        if not actor.role.can_manage_users:
            raise Unauthorized(f"Actor '{actor.user_id}' cannot modify user access.")
        cls._authorize_company(actor, company_id)

    @staticmethod
    def _authorize_operator(actor: ActorContext) -> None:
        if not actor.role.is_operator:
            raise Unauthorized("Only the system operator may change company provisioning.")

    # ══════════════════════════════════════════════════════════
    # READS
    # ══════════════════════════════════════════════════════════

    def get_effective_permissions(self, user_id: str, company_id: str, role) -> EffectivePermissionSet:
        return self.resolver.resolve(user_id, company_id, role)

    def has_permission(self, user_id: str, company_id: str, role, key: str) -> bool:
        return self.resolver.has_permission(user_id, company_id, role, key)

    def permission_dependencies(self, key: str):
        return self.dependencies.permission_dependencies(key)

    def list_audit_records(
        self,
        audit_filter: Optional[AuditFilter] = None,
        page_size: Optional[int] = None,
        actor: Optional[ActorContext] = None,
    ) -> Iterator[Tuple[AuditRecord, ...]]:
        """Pages of matching records, newest first. Non-operators only see their company."""
        audit_filter = audit_filter or AuditFilter()
        if actor is not None and not actor.role.is_operator:
            if actor.role is not Role.ADMIN:
                raise Unauthorized("Audit records are visible to administrators only.")
            if audit_filter.company_id not in (None, actor.company_id):
                raise Unauthorized(
                    f"Actor '{actor.user_id}' cannot read audit records of "
                    f"company '{audit_filter.company_id}'."
                )
            audit_filter = AuditFilter(
                company_id=actor.company_id,
                affected_user_id=audit_filter.affected_user_id,
                actor_user_id=audit_filter.actor_user_id,
                change_types=audit_filter.change_types,
                since=audit_filter.since,
                until=audit_filter.until,
            )
        return iter_pages(self.audit, audit_filter, page_size or self.config.audit_page_size)

    def company_costs(self, actor: ActorContext, company_id: str) -> CompanyCostSummary:
        self._authorize_company(actor, company_id)
        return company_cost_summary(
            self.catalog, self.provisioning_store, self.grants,
            company_id, self.clock.now_utc(),
        )

    def list_company_modules(self, actor: ActorContext, company_id: str):
        self._authorize_company(actor, company_id)
        return self.provisioning.list_company_modules(company_id)

    # ══════════════════════════════════════════════════════════
    # USER ACCESS WRITES
    # ══════════════════════════════════════════════════════════

    def propose_and_commit(
        self,
        actor: ActorContext,
        user_id: str,
        company_id: str,
        changes: Iterable[Change],
        user_role=Role.USER,
    ) -> CommitResult:
        self._authorize_user_mutation(actor, company_id)
        return self.mutator.commit(
            user_id, company_id, actor.user_id, changes,
            actor_role=actor.role, user_role=user_role,
        )

    def apply_template(
        self,
        actor: ActorContext,
        template_id: str,
        user_id: str,
        company_id: str,
        user_role=Role.USER,
    ) -> ApplyResult:
        self._authorize_user_mutation(actor, company_id)
        return self.templates.apply_template(
            template_id, user_id, company_id, actor.user_id,
            actor_role=actor.role, user_role=user_role,
        )

    # ── Templates ─────────────────────────────────────────────

    def list_templates(self, target_role=None) -> Tuple[PermissionTemplate, ...]:
        return self.templates.list_templates(target_role)

    def create_template(self, actor: ActorContext, template_id: str, display_name: str,
                        target_role, data_permissions=(), modules=(), description="",
                        is_system_template: bool = False) -> PermissionTemplate:
        if not actor.role.can_manage_users:
            raise Unauthorized(f"Actor '{actor.user_id}' cannot manage templates.")
        return self.templates.create_template(
            template_id, display_name, target_role,
            data_permissions=data_permissions,
            modules=modules,
            description=description,
            actor_id=actor.user_id,
            actor_role=actor.role,
            is_system_template=is_system_template,
        )

    def update_template(self, actor: ActorContext, template_id: str, **changes) -> PermissionTemplate:
        if not actor.role.can_manage_users:
            raise Unauthorized(f"Actor '{actor.user_id}' cannot manage templates.")
        return self.templates.update_template(
            template_id, actor.user_id, actor.role, **changes
        )

    def delete_template(self, actor: ActorContext, template_id: str) -> None:
        if not actor.role.can_manage_users:
            raise Unauthorized(f"Actor '{actor.user_id}' cannot manage templates.")
        self.templates.delete_template(template_id, actor.user_id, actor.role)

    # ══════════════════════════════════════════════════════════
    # COMPANY PROVISIONING WRITES
    # ══════════════════════════════════════════════════════════

    def provision_module(
        self,
        actor: ActorContext,
        company_id: str,
        module_id: str,
        config: Optional[ProvisioningConfig] = None,
        reason: str = "",
    ) -> CompanyModuleProvisioning:
        self._authorize_operator(actor)
        return self.provisioning.provision_module(
            company_id, module_id, config or ProvisioningConfig(), actor.user_id,
            actor_role=actor.role, reason=reason,
        )

    def set_company_module_enabled(
        self,
        actor: ActorContext,
        company_id: str,
        module_id: str,
        enabled: bool,
        cascade: bool = False,
        reason: str = "",
    ) -> Optional[CompanyModuleProvisioning]:
        self._authorize_operator(actor)
        return self.provisioning.set_enabled(
            company_id, module_id, enabled, actor.user_id,
            cascade=cascade, actor_role=actor.role, reason=reason,
        )
