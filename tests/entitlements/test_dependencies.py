"""
Tests for Entitlements Dependencies — closures, grant checks, module enablement
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from entitlements.catalog.constants import PricingTier
from entitlements.catalog.defaults import MODULE_EXPENSE_MANAGEMENT, MODULE_INGRID_AI
from entitlements.dependencies.resolver import DependencyResolver
from entitlements.errors import (
    MissingDependency,
    ModuleDependencyUnmet,
    NotProvisioned,
    UnknownModule,
    UnknownPermission,
)
from entitlements.provisioning.models import CompanyModuleProvisioning, ProvisioningConfig

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
COMPANY = "co-1"


@pytest.fixture
def resolver(catalog, provisioning):
    return DependencyResolver(catalog, provisioning)


class TestRequiredClosure:
    def test_transitive(self, resolver):
        assert resolver.required_closure("expenses.delete") == {
            "expenses.edit", "expenses.view",
        }

    def test_root_has_empty_closure(self, resolver):
        assert resolver.required_closure("expenses.view") == frozenset()

    def test_unknown_key_has_empty_closure(self, resolver):
        assert resolver.required_closure("payroll.run") == frozenset()

    def test_crosses_foundation_boundary(self, resolver):
        assert resolver.required_closure("analytics.export") == {
            "analytics.advanced", "analytics.view", "dashboard.view",
        }


class TestPermissionGrantChecks:
    def test_missing_dependency_reports_whole_chain(self, resolver):
        with pytest.raises(MissingDependency) as exc:
            resolver.validate_permission_grant({"expenses.view"}, "expenses.delete")
        assert exc.value.missing == {"expenses.edit"}
        assert exc.value.to_dict()["missing"] == ["expenses.edit"]

    def test_satisfied_grant_passes(self, resolver):
        resolver.validate_permission_grant(
            {"expenses.view", "expenses.edit"}, "expenses.delete"
        )

    def test_unknown_target_rejected(self, resolver):
        with pytest.raises(UnknownPermission):
            resolver.validate_permission_grant(set(), "payroll.run")

    def test_unsatisfied_keys(self, resolver):
        keys = {"customers.create", "vendors.view", "vendors.edit"}
        assert resolver.unsatisfied(keys) == {"customers.create"}

    def test_affected_by_revoke_is_transitive(self, resolver):
        current = {"expenses.view", "expenses.create", "expenses.edit", "expenses.delete"}
        assert resolver.affected_by_revoke(current, "expenses.view") == {
            "expenses.create", "expenses.edit", "expenses.delete",
        }
        assert resolver.affected_by_revoke(current, "expenses.delete") == frozenset()


class TestModuleEnablement:
    def test_not_provisioned(self, resolver):
        with pytest.raises(NotProvisioned):
            resolver.validate_module_enable(COMPANY, MODULE_EXPENSE_MANAGEMENT)

    def test_unknown_module(self, resolver):
        with pytest.raises(UnknownModule):
            resolver.validate_module_enable(COMPANY, "payroll")

    def test_provisioned_module_passes(self, resolver, provisioning):
        provisioning.provision_module(
            COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig(), "op-1"
        )
        resolver.validate_module_enable(COMPANY, MODULE_EXPENSE_MANAGEMENT)

    def test_required_module_switched_off(self, resolver, provisioning_store):
        # a record left behind by an out-of-band change
        provisioning_store.save(CompanyModuleProvisioning(
            company_id=COMPANY,
            module_id=MODULE_INGRID_AI,
            is_enabled=True,
            pricing_tier=PricingTier.STANDARD,
            monthly_price=Decimal("29.99"),
            per_user_price=Decimal("5.99"),
            users_licensed=0,
            enabled_by="op-1",
            enabled_at=NOW,
        ))
        with pytest.raises(ModuleDependencyUnmet) as exc:
            resolver.validate_module_enable(COMPANY, MODULE_INGRID_AI)
        assert exc.value.missing == {MODULE_EXPENSE_MANAGEMENT}

    def test_requires_provisioning_manager(self, catalog):
        with pytest.raises(RuntimeError):
            DependencyResolver(catalog).validate_module_enable(COMPANY, MODULE_INGRID_AI)


class TestPermissionDependencies:
    def test_lookup_view(self, resolver):
        view = resolver.permission_dependencies("expenses.review")
        assert view["requires"] == ["expenses.view"]
        assert view["requires_transitive"] == ["expenses.view"]
        assert view["required_by"] == ["expenses.assign"]
        assert view["included_in_modules"] == [MODULE_EXPENSE_MANAGEMENT]

    def test_unknown_key(self, resolver):
        with pytest.raises(UnknownPermission):
            resolver.permission_dependencies("payroll.run")
