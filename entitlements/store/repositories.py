"""
Entitlements Store - DB-backed Repositories
===========================================
Django implementations of GrantStore, ProvisioningStore and AuditSink.
Rows are mapped to the frozen domain records at this boundary; nothing
above it sees a model instance.
"""

from __future__ import annotations

import logging

from django.db import transaction

from entitlements.audit.models import AuditFilter, AuditRecord, ChangeType
from entitlements.catalog.constants import PricingTier
from entitlements.grants.models import (
    UserDataPermissionGrant,
    UserModuleGrant,
    UserModulePermissionGrant,
)
from entitlements.provisioning.models import CompanyModuleProvisioning

logger = logging.getLogger("entitlements.audit")


# ══════════════════════════════════════════════════════════════
# ROW MAPPERS
# ══════════════════════════════════════════════════════════════

def _data_grant(row) -> UserDataPermissionGrant:
    return UserDataPermissionGrant(
        user_id=row.user_id,
        permission_key=row.permission_key,
        company_id=row.company_id,
        is_granted=row.is_granted,
        granted_by=row.granted_by,
        granted_at=row.granted_at,
        expires_at=row.expires_at,
        reason=row.reason,
    )


def _module_grant(row) -> UserModuleGrant:
    return UserModuleGrant(
        user_id=row.user_id,
        module_id=row.module_id,
        company_id=row.company_id,
        is_enabled=row.is_enabled,
        granted_by=row.granted_by,
        granted_at=row.granted_at,
        expires_at=row.expires_at,
    )


def _module_permission_grant(row) -> UserModulePermissionGrant:
    return UserModulePermissionGrant(
        user_id=row.user_id,
        module_id=row.module_id,
        permission_key=row.permission_key,
        company_id=row.company_id,
        is_granted=row.is_granted,
        granted_by=row.granted_by,
        granted_at=row.granted_at,
        expires_at=row.expires_at,
    )


def _provisioning(row) -> CompanyModuleProvisioning:
    return CompanyModuleProvisioning(
        company_id=row.company_id,
        module_id=row.module_id,
        is_enabled=row.is_enabled,
        pricing_tier=PricingTier(row.pricing_tier),
        monthly_price=row.monthly_price,
        per_user_price=row.per_user_price,
        users_licensed=row.users_licensed,
        enabled_by=row.enabled_by,
        enabled_at=row.enabled_at,
        billing_notes=row.billing_notes,
    )


def _audit_record(row) -> AuditRecord:
    return AuditRecord(
        record_id=row.record_id,
        actor_user_id=row.actor_user_id,
        affected_user_id=row.affected_user_id,
        company_id=row.company_id,
        change_type=ChangeType(row.change_type),
        key=row.key,
        old_value=row.old_value,
        new_value=row.new_value,
        reason=row.reason,
        performed_at=row.performed_at,
        module_id=row.module_id,
    )


# ══════════════════════════════════════════════════════════════
# GRANTS
# ══════════════════════════════════════════════════════════════

class DbGrantStore:
    def list_data_grants(self, user_id, company_id):
        from entitlements.store.models import UserDataPermission

        rows = UserDataPermission.objects.filter(
            user_id=user_id, company_id=company_id
        ).order_by("permission_key")
        return tuple(_data_grant(row) for row in rows)

    def get_data_grant(self, user_id, company_id, permission_key):
        from entitlements.store.models import UserDataPermission

        row = UserDataPermission.objects.filter(
            user_id=user_id, company_id=company_id, permission_key=permission_key
        ).first()
        return _data_grant(row) if row is not None else None

    def save_data_grant(self, grant):
        from entitlements.store.models import UserDataPermission

        with transaction.atomic():
            UserDataPermission.objects.update_or_create(
                user_id=grant.user_id,
                company_id=grant.company_id,
                permission_key=grant.permission_key,
                defaults={
                    "is_granted": grant.is_granted,
                    "granted_by": grant.granted_by,
                    "granted_at": grant.granted_at,
                    "expires_at": grant.expires_at,
                    "reason": grant.reason,
                },
            )

    def list_module_grants(self, user_id, company_id):
        from entitlements.store.models import UserModule

        rows = UserModule.objects.filter(
            user_id=user_id, company_id=company_id
        ).order_by("module_id")
        return tuple(_module_grant(row) for row in rows)

    def get_module_grant(self, user_id, company_id, module_id):
        from entitlements.store.models import UserModule

        row = UserModule.objects.filter(
            user_id=user_id, company_id=company_id, module_id=module_id
        ).first()
        return _module_grant(row) if row is not None else None

    def save_module_grant(self, grant):
        from entitlements.store.models import UserModule

        with transaction.atomic():
            UserModule.objects.update_or_create(
                user_id=grant.user_id,
                company_id=grant.company_id,
                module_id=grant.module_id,
                defaults={
                    "is_enabled": grant.is_enabled,
                    "granted_by": grant.granted_by,
                    "granted_at": grant.granted_at,
                    "expires_at": grant.expires_at,
                },
            )

    def list_company_module_grants(self, company_id, module_id):
        from entitlements.store.models import UserModule

        rows = UserModule.objects.filter(
            company_id=company_id, module_id=module_id
        ).order_by("user_id")
        return tuple(_module_grant(row) for row in rows)

    def list_module_permission_grants(self, user_id, company_id, module_id=None):
        from entitlements.store.models import UserModulePermission

        rows = UserModulePermission.objects.filter(user_id=user_id, company_id=company_id)
        if module_id is not None:
            rows = rows.filter(module_id=module_id)
        rows = rows.order_by("module_id", "permission_key")
        return tuple(_module_permission_grant(row) for row in rows)

    def get_module_permission_grant(self, user_id, company_id, module_id, permission_key):
        from entitlements.store.models import UserModulePermission

        row = UserModulePermission.objects.filter(
            user_id=user_id,
            company_id=company_id,
            module_id=module_id,
            permission_key=permission_key,
        ).first()
        return _module_permission_grant(row) if row is not None else None

    def save_module_permission_grant(self, grant):
        from entitlements.store.models import UserModulePermission

        with transaction.atomic():
            UserModulePermission.objects.update_or_create(
                user_id=grant.user_id,
                company_id=grant.company_id,
                module_id=grant.module_id,
                permission_key=grant.permission_key,
                defaults={
                    "is_granted": grant.is_granted,
                    "granted_by": grant.granted_by,
                    "granted_at": grant.granted_at,
                    "expires_at": grant.expires_at,
                },
            )


# ══════════════════════════════════════════════════════════════
# PROVISIONING
# ══════════════════════════════════════════════════════════════

class DbProvisioningStore:
    def get(self, company_id, module_id):
        from entitlements.store.models import CompanyModule

        row = CompanyModule.objects.filter(
            company_id=company_id, module_id=module_id
        ).first()
        return _provisioning(row) if row is not None else None

    def list_for_company(self, company_id):
        from entitlements.store.models import CompanyModule

        rows = CompanyModule.objects.filter(company_id=company_id).order_by("module_id")
        return tuple(_provisioning(row) for row in rows)

    def save(self, record):
        from entitlements.store.models import CompanyModule

        with transaction.atomic():
            CompanyModule.objects.update_or_create(
                company_id=record.company_id,
                module_id=record.module_id,
                defaults={
                    "is_enabled": record.is_enabled,
                    "pricing_tier": record.pricing_tier.value,
                    "monthly_price": record.monthly_price,
                    "per_user_price": record.per_user_price,
                    "users_licensed": record.users_licensed,
                    "enabled_by": record.enabled_by,
                    "enabled_at": record.enabled_at,
                    "billing_notes": record.billing_notes,
                },
            )


# ══════════════════════════════════════════════════════════════
# AUDIT
# ══════════════════════════════════════════════════════════════

class DbAuditSink:
    """Insert-only. Existing audit rows are never updated or deleted."""

    def append(self, record: AuditRecord) -> None:
        from entitlements.store.models import PermissionChangeAudit

        with transaction.atomic():
            PermissionChangeAudit.objects.create(
                record_id=record.record_id,
                actor_user_id=record.actor_user_id,
                affected_user_id=record.affected_user_id,
                company_id=record.company_id,
                change_type=record.change_type.value,
                key=record.key,
                module_id=record.module_id,
                old_value=record.old_value,
                new_value=record.new_value,
                reason=record.reason,
                performed_at=record.performed_at,
            )
        logger.info(
            "audit %s key=%s user=%s company=%s by=%s",
            record.change_type.value,
            record.key,
            record.affected_user_id,
            record.company_id,
            record.actor_user_id,
        )

    def query(self, audit_filter: AuditFilter, offset: int = 0, limit: int = 50):
        from entitlements.store.models import PermissionChangeAudit

        rows = PermissionChangeAudit.objects.all()
        if audit_filter.company_id is not None:
            rows = rows.filter(company_id=audit_filter.company_id)
        if audit_filter.affected_user_id is not None:
            rows = rows.filter(affected_user_id=audit_filter.affected_user_id)
        if audit_filter.actor_user_id is not None:
            rows = rows.filter(actor_user_id=audit_filter.actor_user_id)
        if audit_filter.change_types:
            rows = rows.filter(
                change_type__in=sorted(c.value for c in audit_filter.change_types)
            )
        if audit_filter.since is not None:
            rows = rows.filter(performed_at__gte=audit_filter.since)
        if audit_filter.until is not None:
            rows = rows.filter(performed_at__lt=audit_filter.until)
        rows = rows.order_by("-performed_at", "record_id")[offset:offset + limit]
        return tuple(_audit_record(row) for row in rows)
