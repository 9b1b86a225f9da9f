from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from entitlements.audit.models import AuditFilter, ChangeType, new_record
from entitlements.batch.changes import Change
from entitlements.catalog.constants import PricingTier
from entitlements.catalog.defaults import MODULE_EXPENSE_MANAGEMENT, default_catalog
from entitlements.grants.models import (
    UserDataPermissionGrant,
    UserModuleGrant,
    UserModulePermissionGrant,
)
from entitlements.provisioning.models import CompanyModuleProvisioning, ProvisioningConfig
from entitlements.service import ActorContext, EntitlementService
from entitlements.store.models import PermissionChangeAudit, UserDataPermission
from entitlements.store.repositories import DbAuditSink, DbGrantStore, DbProvisioningStore
from entitlements.time import FixedClock

pytestmark = pytest.mark.django_db(transaction=True)


NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
COMPANY = "db-company"
USER = "db-user"


def _data_grant(key: str, on: bool = True, expires_at=None) -> UserDataPermissionGrant:
    return UserDataPermissionGrant(
        user_id=USER,
        permission_key=key,
        company_id=COMPANY,
        is_granted=on,
        granted_by="db-admin",
        granted_at=NOW,
        expires_at=expires_at,
        reason="test",
    )


def test_data_grants_upsert_on_identity() -> None:
    store = DbGrantStore()
    store.save_data_grant(_data_grant("customers.view"))
    store.save_data_grant(_data_grant("customers.view", on=False, expires_at=NOW + timedelta(days=1)))

    assert UserDataPermission.objects.count() == 1
    grant = store.get_data_grant(USER, COMPANY, "customers.view")
    assert grant.is_granted is False
    assert grant.expires_at == NOW + timedelta(days=1)
    assert store.get_data_grant(USER, "other-company", "customers.view") is None


def test_data_grants_listed_by_key() -> None:
    store = DbGrantStore()
    for key in ("vendors.view", "customers.view"):
        store.save_data_grant(_data_grant(key))

    keys = [g.permission_key for g in store.list_data_grants(USER, COMPANY)]
    assert keys == ["customers.view", "vendors.view"]


def test_module_and_module_permission_grants_round_trip() -> None:
    store = DbGrantStore()
    store.save_module_grant(UserModuleGrant(
        user_id=USER,
        module_id=MODULE_EXPENSE_MANAGEMENT,
        company_id=COMPANY,
        is_enabled=True,
        granted_by="db-admin",
        granted_at=NOW,
    ))
    store.save_module_permission_grant(UserModulePermissionGrant(
        user_id=USER,
        module_id=MODULE_EXPENSE_MANAGEMENT,
        permission_key="expenses.assign",
        company_id=COMPANY,
        is_granted=True,
        granted_by="db-admin",
        granted_at=NOW,
    ))

    (module_grant,) = store.list_module_grants(USER, COMPANY)
    assert module_grant.is_active(NOW)
    assert store.list_company_module_grants(COMPANY, MODULE_EXPENSE_MANAGEMENT) == (module_grant,)
    (permission_grant,) = store.list_module_permission_grants(
        USER, COMPANY, MODULE_EXPENSE_MANAGEMENT
    )
    assert permission_grant.permission_key == "expenses.assign"
    assert store.list_module_permission_grants(USER, COMPANY, "ingrid-ai") == ()


def test_provisioning_store_keeps_decimal_prices() -> None:
    store = DbProvisioningStore()
    store.save(CompanyModuleProvisioning(
        company_id=COMPANY,
        module_id=MODULE_EXPENSE_MANAGEMENT,
        is_enabled=True,
        pricing_tier=PricingTier.CUSTOM,
        monthly_price=Decimal("12.50"),
        per_user_price=Decimal("1.75"),
        users_licensed=8,
        enabled_by="db-operator",
        enabled_at=NOW,
        billing_notes="pilot",
    ))

    record = store.get(COMPANY, MODULE_EXPENSE_MANAGEMENT)
    assert record.pricing_tier is PricingTier.CUSTOM
    assert record.monthly_price == Decimal("12.50")
    assert record.per_user_price == Decimal("1.75")
    assert record.users_licensed == 8
    assert [r.module_id for r in store.list_for_company(COMPANY)] == [MODULE_EXPENSE_MANAGEMENT]


def test_audit_sink_filters_and_orders_newest_first() -> None:
    sink = DbAuditSink()
    for minutes, change_type in (
        (0, ChangeType.GRANT_DATA_PERMISSION),
        (1, ChangeType.REVOKE_DATA_PERMISSION),
        (2, ChangeType.GRANT_DATA_PERMISSION),
    ):
        sink.append(new_record(
            actor_user_id="db-admin",
            affected_user_id=USER,
            company_id=COMPANY,
            change_type=change_type,
            key=f"k{minutes}",
            old_value=None,
            new_value=True,
            performed_at=NOW + timedelta(minutes=minutes),
        ))
    sink.append(new_record(
        actor_user_id="db-operator",
        affected_user_id=None,
        company_id=COMPANY,
        change_type=ChangeType.PROVISION_MODULE,
        key=MODULE_EXPENSE_MANAGEMENT,
        old_value=None,
        new_value=True,
        performed_at=NOW + timedelta(minutes=3),
    ))

    assert PermissionChangeAudit.objects.count() == 4
    user_rows = sink.query(AuditFilter(affected_user_id=USER))
    assert [r.key for r in user_rows] == ["k2", "k1", "k0"]
    grants = sink.query(AuditFilter(change_types={ChangeType.GRANT_DATA_PERMISSION}))
    assert [r.key for r in grants] == ["k2", "k0"]
    window = sink.query(AuditFilter(since=NOW, until=NOW + timedelta(minutes=2)))
    assert [r.key for r in window] == ["k1", "k0"]
    assert [r.key for r in sink.query(AuditFilter(), offset=1, limit=1)] == ["k2"]
    provision = sink.query(AuditFilter(change_types={ChangeType.PROVISION_MODULE}))[0]
    assert provision.affected_user_id is None


def test_service_end_to_end_on_database() -> None:
    service = EntitlementService(
        default_catalog(),
        grant_store=DbGrantStore(),
        provisioning_store=DbProvisioningStore(),
        audit_sink=DbAuditSink(),
        clock=FixedClock(NOW),
    )
    operator = ActorContext(user_id="db-operator", role="super-admin", company_id="operator")
    admin = ActorContext(user_id="db-admin", role="admin", company_id=COMPANY)

    service.provision_module(operator, COMPANY, MODULE_EXPENSE_MANAGEMENT, ProvisioningConfig())
    result = service.propose_and_commit(admin, USER, COMPANY, [
        Change.module(MODULE_EXPENSE_MANAGEMENT, True),
        Change.data("customers.view", True),
        Change.data("customers.create", True),
    ])

    assert result.all_succeeded
    effective = service.get_effective_permissions(USER, COMPANY, "user")
    assert {"expenses.approve", "customers.view", "customers.create"} <= effective.keys
    assert PermissionChangeAudit.objects.filter(affected_user_id=USER).count() == 3


def test_from_settings_wires_database_stores(settings) -> None:
    settings.ENTITLEMENTS = {"audit_page_size": 7}
    service = EntitlementService.from_settings()

    assert isinstance(service.grants, DbGrantStore)
    assert isinstance(service.audit, DbAuditSink)
    assert service.config.audit_page_size == 7
    assert service.catalog.has_module(MODULE_EXPENSE_MANAGEMENT)
