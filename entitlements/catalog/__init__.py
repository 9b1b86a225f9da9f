"""
Entitlements Catalog - Public API
=================================
"""

from entitlements.catalog.constants import (
    MODULE_CATEGORIES,
    PERMISSION_GROUPS,
    TIER_ORDER,
    ModuleTier,
    PricingTier,
    group_for_key,
)
from entitlements.catalog.defaults import (
    MODULE_ADVANCED_ANALYTICS,
    MODULE_CORE_PLATFORM,
    MODULE_EXPENSE_MANAGEMENT,
    MODULE_INGRID_AI,
    MODULE_PROCESS_AUTOMATION,
    PRICING_PRESETS,
    default_catalog,
)
from entitlements.catalog.models import Catalog, Module, Permission, SubFeature
from entitlements.catalog.store import CatalogStore, catalog_from_dict

__all__ = [
    "MODULE_CATEGORIES",
    "PERMISSION_GROUPS",
    "TIER_ORDER",
    "ModuleTier",
    "PricingTier",
    "group_for_key",
    "MODULE_CORE_PLATFORM",
    "MODULE_EXPENSE_MANAGEMENT",
    "MODULE_INGRID_AI",
    "MODULE_ADVANCED_ANALYTICS",
    "MODULE_PROCESS_AUTOMATION",
    "PRICING_PRESETS",
    "default_catalog",
    "Catalog",
    "Module",
    "Permission",
    "SubFeature",
    "CatalogStore",
    "catalog_from_dict",
]
