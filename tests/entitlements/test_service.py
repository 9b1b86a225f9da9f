"""
Tests for EntitlementService — caller authorization and end-to-end flows
"""

import pytest

from entitlements import ActorContext, Change, EntitlementService
from entitlements.audit.models import AuditFilter, ChangeType
from entitlements.catalog.constants import GROUP_GENERAL
from entitlements.catalog.defaults import (
    MODULE_EXPENSE_MANAGEMENT,
    MODULE_INGRID_AI,
    default_modules,
    default_permissions,
)
from entitlements.catalog.models import Catalog, Permission
from entitlements.config import EntitlementsConfig
from entitlements.errors import ConcurrentModificationRetry, Unauthorized, UnknownRole
from entitlements.provisioning.models import ProvisioningConfig
from entitlements.roles import Role

COMPANY = "co-1"
OTHER_COMPANY = "co-2"
USER = "user-1"

OPERATOR = ActorContext(user_id="op-1", role="super-admin", company_id="operator")
ADMIN = ActorContext(user_id="admin-1", role="admin", company_id=COMPANY)
FOREIGN_ADMIN = ActorContext(user_id="admin-9", role="admin", company_id=OTHER_COMPANY)
PLAIN_USER = ActorContext(user_id=USER, role="user", company_id=COMPANY)


@pytest.fixture
def service(catalog, clock):
    return EntitlementService(
        catalog, clock=clock, config=EntitlementsConfig(audit_page_size=3)
    )


class TestAuthorization:
    def test_admin_limited_to_own_company(self, service):
        with pytest.raises(Unauthorized):
            service.propose_and_commit(
                FOREIGN_ADMIN, USER, COMPANY, [Change.data("customers.view", True)]
            )
        result = service.propose_and_commit(
            ADMIN, USER, COMPANY, [Change.data("customers.view", True)]
        )
        assert result.all_succeeded

    def test_user_cannot_mutate(self, service):
        with pytest.raises(Unauthorized):
            service.propose_and_commit(
                PLAIN_USER, USER, COMPANY, [Change.data("customers.view", True)]
            )
        with pytest.raises(Unauthorized):
            service.apply_template(PLAIN_USER, "basic_user", USER, COMPANY)

    def test_provisioning_is_operator_only(self, service):
        with pytest.raises(Unauthorized):
            service.provision_module(ADMIN, COMPANY, MODULE_EXPENSE_MANAGEMENT)
        with pytest.raises(Unauthorized):
            service.set_company_module_enabled(ADMIN, COMPANY, MODULE_EXPENSE_MANAGEMENT, True)
        record = service.provision_module(OPERATOR, COMPANY, MODULE_EXPENSE_MANAGEMENT)
        assert record.enabled_by == "op-1"

    def test_operator_acts_anywhere(self, service):
        result = service.propose_and_commit(
            OPERATOR, USER, OTHER_COMPANY, [Change.data("customers.view", True)]
        )
        assert result.all_succeeded

    def test_costs_are_company_scoped(self, service):
        with pytest.raises(Unauthorized):
            service.company_costs(FOREIGN_ADMIN, COMPANY)
        assert service.company_costs(ADMIN, COMPANY).modules == ()

    def test_template_management_needs_admin(self, service):
        with pytest.raises(Unauthorized):
            service.create_template(PLAIN_USER, "mine", "Mine", "user")
        created = service.create_template(
            ADMIN, "mine", "Mine", "user", data_permissions=["vendors.view"]
        )
        assert created.created_by == "admin-1"
        service.update_template(ADMIN, "mine", description="vendors only")
        service.delete_template(ADMIN, "mine")
        assert "mine" not in {t.template_id for t in service.list_templates()}

    def test_template_cannot_carry_system_only_key_for_admin(self, clock):
        maintenance = Permission(
            key="system.maintenance",
            name="Maintenance mode",
            group=GROUP_GENERAL,
            is_system_only=True,
        )
        service = EntitlementService(
            Catalog(default_permissions() + (maintenance,), default_modules()), clock=clock
        )
        service.create_template(
            ADMIN, "ops", "Ops", "user", data_permissions=["system.maintenance"]
        )

        result = service.apply_template(ADMIN, "ops", USER, COMPANY)
        assert [s.code for s in result.skipped] == ["UNAUTHORIZED"]
        assert not service.has_permission(USER, COMPANY, "user", "system.maintenance")

        result = service.apply_template(OPERATOR, "ops", USER, COMPANY)
        assert result.written == {"system.maintenance"}

    def test_actor_role_parsed_at_boundary(self):
        with pytest.raises(UnknownRole):
            ActorContext(user_id="x", role="manager", company_id=COMPANY)


class TestPremiumFlow:
    def test_module_access_end_to_end(self, service):
        commit = service.propose_and_commit(
            ADMIN, USER, COMPANY, [Change.module(MODULE_EXPENSE_MANAGEMENT, True)]
        )
        assert commit.failure_for(MODULE_EXPENSE_MANAGEMENT).code == "NOT_PROVISIONED"

        service.provision_module(
            OPERATOR, COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(users_licensed=5)
        )
        commit = service.propose_and_commit(
            ADMIN, USER, COMPANY, [Change.module(MODULE_EXPENSE_MANAGEMENT, True)]
        )
        assert commit.all_succeeded
        assert service.has_permission(USER, COMPANY, "user", "expenses.approve")

        service.set_company_module_enabled(OPERATOR, COMPANY, MODULE_EXPENSE_MANAGEMENT, False)
        assert not service.has_permission(USER, COMPANY, "user", "expenses.approve")

    def test_cascade_through_service(self, service):
        service.provision_module(OPERATOR, COMPANY, MODULE_EXPENSE_MANAGEMENT)
        service.provision_module(OPERATOR, COMPANY, MODULE_INGRID_AI)
        service.set_company_module_enabled(
            OPERATOR, COMPANY, MODULE_EXPENSE_MANAGEMENT, False, cascade=True
        )
        modules = service.list_company_modules(ADMIN, COMPANY)
        assert all(not r.is_enabled for r in modules)

    def test_permission_dependencies(self, service):
        view = service.permission_dependencies("expenses.approve")
        assert view["included_in_modules"] == [MODULE_EXPENSE_MANAGEMENT]

    def test_lock_timeout_surfaces(self, catalog, clock):
        service = EntitlementService(
            catalog, clock=clock, config=EntitlementsConfig(lock_timeout_seconds=0.05)
        )
        with service.locks.hold(USER, COMPANY):
            with pytest.raises(ConcurrentModificationRetry):
                service.apply_template(ADMIN, "basic_user", USER, COMPANY)


class TestAuditListing:
    def _populate(self, service, clock):
        for key in ("customers.view", "vendors.view", "gl_accounts.view", "users.view"):
            service.propose_and_commit(ADMIN, USER, COMPANY, [Change.data(key, True)])
            clock.advance(minutes=1)
        service.propose_and_commit(
            OPERATOR, "user-9", OTHER_COMPANY, [Change.data("customers.view", True)]
        )

    def test_pages_newest_first(self, service, clock):
        self._populate(service, clock)
        pages = list(service.list_audit_records(AuditFilter(company_id=COMPANY)))
        assert [len(p) for p in pages] == [3, 1]
        keys = [r.key for page in pages for r in page]
        assert keys == ["users.view", "gl_accounts.view", "vendors.view", "customers.view"]

    def test_admin_sees_only_own_company(self, service, clock):
        self._populate(service, clock)
        pages = list(service.list_audit_records(actor=ADMIN))
        companies = {r.company_id for page in pages for r in page}
        assert companies == {COMPANY}
        with pytest.raises(Unauthorized):
            list(service.list_audit_records(AuditFilter(company_id=OTHER_COMPANY), actor=ADMIN))

    def test_operator_sees_everything(self, service, clock):
        self._populate(service, clock)
        pages = list(service.list_audit_records(page_size=10, actor=OPERATOR))
        assert sum(len(p) for p in pages) == 5

    def test_users_cannot_read_audit(self, service):
        with pytest.raises(Unauthorized):
            service.list_audit_records(actor=PLAIN_USER)

    def test_filter_by_change_type(self, service, clock):
        self._populate(service, clock)
        service.propose_and_commit(ADMIN, USER, COMPANY, [Change.data("users.view", False)])
        pages = list(service.list_audit_records(
            AuditFilter(change_types={ChangeType.REVOKE_DATA_PERMISSION}), actor=ADMIN
        ))
        assert [r.key for page in pages for r in page] == ["users.view"]

    def test_role_enum_accepted(self, service):
        result = service.propose_and_commit(
            ADMIN, USER, COMPANY, [Change.data("expenses.view", False)], user_role=Role.USER
        )
        assert result.warnings
