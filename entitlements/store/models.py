"""
Entitlements Store - Relational Entitlement State
=================================================
Rows mirror the frozen domain records one to one. Upserts are keyed
by the unique constraints below; audit rows are insert-only.
"""

from __future__ import annotations

import uuid

from django.db import models


class PricingTierChoice(models.TextChoices):
    STANDARD = "standard", "Standard"
    CUSTOM = "custom", "Custom"
    ENTERPRISE = "enterprise", "Enterprise"


class ChangeTypeChoice(models.TextChoices):
    GRANT_DATA_PERMISSION = "grant_data_permission", "Grant data permission"
    REVOKE_DATA_PERMISSION = "revoke_data_permission", "Revoke data permission"
    GRANT_MODULE = "grant_module", "Grant module"
    REVOKE_MODULE = "revoke_module", "Revoke module"
    GRANT_MODULE_PERMISSION = "grant_module_permission", "Grant module permission"
    REVOKE_MODULE_PERMISSION = "revoke_module_permission", "Revoke module permission"
    PROVISION_MODULE = "provision_module", "Provision module"
    DEPROVISION_MODULE = "deprovision_module", "Deprovision module"
    APPLY_TEMPLATE = "apply_template", "Apply template"


class CompanyModule(models.Model):
    company_id = models.CharField(max_length=64)
    module_id = models.CharField(max_length=64)
    is_enabled = models.BooleanField(default=False)
    pricing_tier = models.CharField(
        max_length=20,
        choices=PricingTierChoice.choices,
        default=PricingTierChoice.STANDARD,
    )
    monthly_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    per_user_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    users_licensed = models.PositiveIntegerField(default=0)
    enabled_by = models.CharField(max_length=255)
    enabled_at = models.DateTimeField()
    billing_notes = models.TextField(default="", blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "ent_company_modules"
        ordering = ["company_id", "module_id"]
        constraints = [
            models.UniqueConstraint(
                fields=["company_id", "module_id"],
                name="uq_company_module",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.company_id}:{self.module_id} ({'on' if self.is_enabled else 'off'})"


class UserDataPermission(models.Model):
    user_id = models.CharField(max_length=64)
    company_id = models.CharField(max_length=64)
    permission_key = models.CharField(max_length=100)
    is_granted = models.BooleanField(default=True)
    granted_by = models.CharField(max_length=255)
    granted_at = models.DateTimeField()
    expires_at = models.DateTimeField(null=True, blank=True)
    reason = models.TextField(default="", blank=True)

    class Meta:
        db_table = "ent_user_data_permissions"
        ordering = ["company_id", "user_id", "permission_key"]
        indexes = [
            models.Index(fields=["company_id", "user_id"], name="idx_udp_company_user"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "company_id", "permission_key"],
                name="uq_user_data_permission",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}@{self.company_id}:{self.permission_key}"


class UserModule(models.Model):
    user_id = models.CharField(max_length=64)
    company_id = models.CharField(max_length=64)
    module_id = models.CharField(max_length=64)
    is_enabled = models.BooleanField(default=True)
    granted_by = models.CharField(max_length=255)
    granted_at = models.DateTimeField()
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "ent_user_modules"
        ordering = ["company_id", "user_id", "module_id"]
        indexes = [
            models.Index(fields=["company_id", "module_id"], name="idx_um_company_module"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "company_id", "module_id"],
                name="uq_user_module",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}@{self.company_id}:{self.module_id}"


class UserModulePermission(models.Model):
    user_id = models.CharField(max_length=64)
    company_id = models.CharField(max_length=64)
    module_id = models.CharField(max_length=64)
    permission_key = models.CharField(max_length=100)
    is_granted = models.BooleanField(default=True)
    granted_by = models.CharField(max_length=255)
    granted_at = models.DateTimeField()
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "ent_user_module_permissions"
        ordering = ["company_id", "user_id", "module_id", "permission_key"]
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "company_id", "module_id", "permission_key"],
                name="uq_user_module_permission",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}@{self.company_id}:{self.module_id}/{self.permission_key}"


class PermissionChangeAudit(models.Model):
    record_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    actor_user_id = models.CharField(max_length=64)
    affected_user_id = models.CharField(max_length=64, null=True, blank=True)
    company_id = models.CharField(max_length=64)
    change_type = models.CharField(max_length=50, choices=ChangeTypeChoice.choices)
    key = models.CharField(max_length=100)
    module_id = models.CharField(max_length=64, null=True, blank=True)
    old_value = models.BooleanField(null=True)
    new_value = models.BooleanField(null=True)
    reason = models.TextField(default="", blank=True)
    performed_at = models.DateTimeField()

    class Meta:
        db_table = "ent_permission_change_audit"
        ordering = ["-performed_at", "record_id"]
        indexes = [
            models.Index(fields=["company_id", "performed_at"], name="idx_audit_company_time"),
            models.Index(fields=["affected_user_id", "performed_at"], name="idx_audit_user_time"),
        ]

    def __str__(self) -> str:
        return f"{self.change_type}:{self.key} by {self.actor_user_id}"
