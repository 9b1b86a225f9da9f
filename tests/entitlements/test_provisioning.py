"""
Tests for Entitlements Provisioning — company module switch and costs
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from entitlements.audit.models import AuditFilter, ChangeType
from entitlements.catalog.constants import ModuleTier, PricingTier
from entitlements.catalog.defaults import (
    MODULE_ADVANCED_ANALYTICS,
    MODULE_CORE_PLATFORM,
    MODULE_EXPENSE_MANAGEMENT,
    MODULE_INGRID_AI,
    MODULE_PROCESS_AUTOMATION,
)
from entitlements.catalog.models import Catalog, Module
from entitlements.errors import (
    ConcurrentModificationRetry,
    DependentModulesActive,
    ModuleDependencyUnmet,
    ModuleLocked,
    UnknownModule,
)
from entitlements.grants.models import UserModuleGrant
from entitlements.provisioning.costs import company_cost_summary
from entitlements.provisioning.manager import ProvisioningManager
from entitlements.provisioning.models import ProvisioningConfig
from entitlements.roles import Role

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
COMPANY = "co-1"
OPERATOR = "op-1"


def _records(audit_sink):
    # oldest first
    return list(reversed(audit_sink.query(AuditFilter(), limit=1000)))


class TestProvisionModule:
    def test_defaults_prices_from_module(self, provisioning, audit_sink):
        record = provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(users_licensed=10), OPERATOR
        )
        assert record.is_enabled
        assert record.monthly_price == Decimal("9.99")
        assert record.per_user_price == Decimal("2.50")
        assert record.enabled_at == NOW

        (audit,) = _records(audit_sink)
        assert audit.change_type is ChangeType.PROVISION_MODULE
        assert audit.affected_user_id is None
        assert audit.old_value is None
        assert audit.new_value is True
        assert audit.key == MODULE_EXPENSE_MANAGEMENT

    def test_custom_pricing(self, provisioning):
        record = provisioning.provision_module(
            COMPANY,
            MODULE_EXPENSE_MANAGEMENT,
            ProvisioningConfig(
                pricing_tier="enterprise",
                monthly_price="5.00",
                per_user_price=Decimal("1.25"),
                billing_notes="annual contract",
            ),
            OPERATOR,
        )
        assert record.pricing_tier is PricingTier.ENTERPRISE
        assert record.monthly_price == Decimal("5.00")
        assert record.per_user_price == Decimal("1.25")
        assert record.billing_notes == "annual contract"

    def test_unknown_module(self, provisioning):
        with pytest.raises(UnknownModule):
            provisioning.provision_module(COMPANY, "payroll", ProvisioningConfig(), OPERATOR)

    def test_required_module_must_be_enabled(self, provisioning, provisioning_store):
        with pytest.raises(ModuleDependencyUnmet) as exc:
            provisioning.provision_module(
                COMPANY, MODULE_INGRID_AI, ProvisioningConfig(), OPERATOR
            )
        assert exc.value.missing == {MODULE_EXPENSE_MANAGEMENT}
        assert provisioning_store.get(COMPANY, MODULE_INGRID_AI) is None

    def test_reprovision_updates_terms(self, provisioning, clock):
        provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(users_licensed=5), OPERATOR
        )
        clock.advance(days=1)
        record = provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(users_licensed=20), OPERATOR
        )
        assert record.users_licensed == 20
        assert record.enabled_at == NOW

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError):
            ProvisioningConfig(monthly_price="-1")


class TestSetEnabled:
    def test_refuses_while_dependents_enabled(self, provisioning):
        provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(), OPERATOR
        )
        provisioning.provision_module(COMPANY, MODULE_INGRID_AI, ProvisioningConfig(), OPERATOR)

        with pytest.raises(DependentModulesActive) as exc:
            provisioning.set_enabled(COMPANY, MODULE_EXPENSE_MANAGEMENT, False, OPERATOR)
        assert exc.value.dependents == {MODULE_INGRID_AI}
        assert provisioning.is_active(COMPANY, MODULE_EXPENSE_MANAGEMENT)

    def test_cascade_disables_dependents_first(self, provisioning, audit_sink):
        for module_id in (MODULE_EXPENSE_MANAGEMENT, MODULE_INGRID_AI, MODULE_PROCESS_AUTOMATION):
            provisioning.provision_module(COMPANY, module_id, ProvisioningConfig(), OPERATOR)

        provisioning.set_enabled(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, False, OPERATOR, cascade=True
        )

        for module_id in (MODULE_EXPENSE_MANAGEMENT, MODULE_INGRID_AI, MODULE_PROCESS_AUTOMATION):
            assert not provisioning.is_active(COMPANY, module_id)
        deprovisions = [
            r for r in _records(audit_sink) if r.change_type is ChangeType.DEPROVISION_MODULE
        ]
        assert [r.key for r in deprovisions] == [
            MODULE_INGRID_AI, MODULE_PROCESS_AUTOMATION, MODULE_EXPENSE_MANAGEMENT,
        ]
        assert deprovisions[0].reason == f"cascade from {MODULE_EXPENSE_MANAGEMENT}"

    def test_cascade_is_deepest_first(self, provisioning_store, audit_sink, clock, locks):
        def module(module_id, requires=()):
            return Module(
                module_id=module_id,
                name=module_id,
                tier=ModuleTier.STANDARD,
                category="general",
                requires_modules=frozenset(requires),
            )

        chain = Catalog(modules=[module("a"), module("b", ["a"]), module("c", ["b"])])
        manager = ProvisioningManager(chain, provisioning_store, audit_sink, clock, locks)
        for module_id in ("a", "b", "c"):
            manager.provision_module(COMPANY, module_id, ProvisioningConfig(), OPERATOR)

        assert manager.active_dependents(COMPANY, "a") == ["c", "b"]
        manager.set_enabled(COMPANY, "a", False, OPERATOR, cascade=True)
        deprovisions = [
            r.key for r in _records(audit_sink)
            if r.change_type is ChangeType.DEPROVISION_MODULE
        ]
        assert deprovisions == ["c", "b", "a"]

    def test_same_state_writes_nothing(self, provisioning, audit_sink):
        provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(), OPERATOR
        )
        provisioning.set_enabled(COMPANY, MODULE_EXPENSE_MANAGEMENT, True, OPERATOR)
        assert len(audit_sink) == 1
        assert provisioning.set_enabled(COMPANY, MODULE_ADVANCED_ANALYTICS, False, OPERATOR) is None
        assert len(audit_sink) == 1

    def test_enable_without_record_uses_defaults(self, provisioning):
        record = provisioning.set_enabled(COMPANY, MODULE_ADVANCED_ANALYTICS, True, OPERATOR)
        assert record.is_enabled
        assert record.monthly_price == Decimal("29.99")
        assert record.pricing_tier is PricingTier.STANDARD

    def test_reenable_keeps_terms(self, provisioning):
        provisioning.provision_module(
            COMPANY,
            MODULE_EXPENSE_MANAGEMENT,
            ProvisioningConfig(monthly_price="4.00", users_licensed=3),
            OPERATOR,
        )
        provisioning.set_enabled(COMPANY, MODULE_EXPENSE_MANAGEMENT, False, OPERATOR)
        record = provisioning.set_enabled(COMPANY, MODULE_EXPENSE_MANAGEMENT, True, OPERATOR)
        assert record.monthly_price == Decimal("4.00")
        assert record.users_licensed == 3

    def test_system_locked_module(self, provisioning):
        provisioning.provision_module(COMPANY, MODULE_CORE_PLATFORM, ProvisioningConfig(), OPERATOR)
        with pytest.raises(ModuleLocked):
            provisioning.set_enabled(
                COMPANY, MODULE_CORE_PLATFORM, False, "admin-1", actor_role=Role.ADMIN
            )
        provisioning.set_enabled(
            COMPANY, MODULE_CORE_PLATFORM, False, OPERATOR, actor_role=Role.SUPER_ADMIN
        )
        assert not provisioning.is_active(COMPANY, MODULE_CORE_PLATFORM)

    def test_waits_for_company_lock(self, provisioning, locks):
        with locks.hold_company(COMPANY):
            with pytest.raises(ConcurrentModificationRetry):
                provisioning.set_enabled(COMPANY, MODULE_EXPENSE_MANAGEMENT, True, OPERATOR)

    def test_list_company_modules(self, provisioning):
        provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(), OPERATOR
        )
        provisioning.provision_module(
            COMPANY, MODULE_ADVANCED_ANALYTICS, ProvisioningConfig(), OPERATOR
        )
        assert [r.module_id for r in provisioning.list_company_modules(COMPANY)] == [
            MODULE_ADVANCED_ANALYTICS, MODULE_EXPENSE_MANAGEMENT,
        ]
        assert provisioning.list_company_modules("co-2") == ()


class TestCostSummary:
    def _grant(self, grant_store, user_id, module_id, expires_at=None):
        grant_store.save_module_grant(UserModuleGrant(
            user_id=user_id,
            module_id=module_id,
            company_id=COMPANY,
            is_enabled=True,
            granted_by="admin-1",
            granted_at=NOW,
            expires_at=expires_at,
        ))

    def test_licensed_versus_actual(self, catalog, provisioning, provisioning_store, grant_store):
        provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(users_licensed=10), OPERATOR
        )
        self._grant(grant_store, "u1", MODULE_EXPENSE_MANAGEMENT)
        self._grant(grant_store, "u2", MODULE_EXPENSE_MANAGEMENT)
        self._grant(grant_store, "u3", MODULE_EXPENSE_MANAGEMENT, expires_at=NOW - timedelta(days=1))

        summary = company_cost_summary(catalog, provisioning_store, grant_store, COMPANY, NOW)
        (cost,) = summary.modules
        assert cost.users_with_access == 2
        assert cost.licensed_cost == Decimal("34.99")
        assert cost.actual_cost == Decimal("14.99")
        assert summary.difference == Decimal("20.00")
        assert summary.count_by_tier() == {"standard": 1}

    def test_disabled_modules_excluded(self, catalog, provisioning, provisioning_store, grant_store):
        provisioning.provision_module(
            COMPANY, MODULE_ADVANCED_ANALYTICS, ProvisioningConfig(users_licensed=2), OPERATOR
        )
        provisioning.set_enabled(COMPANY, MODULE_ADVANCED_ANALYTICS, False, OPERATOR)

        summary = company_cost_summary(catalog, provisioning_store, grant_store, COMPANY, NOW)
        assert summary.modules == ()
        assert summary.total_licensed_cost == Decimal("0")
        assert summary.to_dict()["total_actual_cost"] == "0"
