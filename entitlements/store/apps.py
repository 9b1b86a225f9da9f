"""
Entitlements Store - App Configuration
======================================
Persistent provisioning, grants and audit records.
"""

from django.apps import AppConfig


class EntitlementsStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "entitlements.store"
    label = "entitlements_store"
    verbose_name = "Entitlements Store"
