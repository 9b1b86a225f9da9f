"""
Entitlements Catalog — Seeded Expense-Management Catalog
=========================================================
Foundation permissions are free and never tied to a paid module.
Module-derived permissions only become active through a provisioned,
user-enabled module (or the super-admin operator override).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Tuple

from entitlements.catalog.constants import (
    PERMISSION_ANALYTICS_ADVANCED,
    PERMISSION_ANALYTICS_CUSTOM_REPORTS,
    PERMISSION_ANALYTICS_EXPORT,
    PERMISSION_ANALYTICS_VIEW,
    PERMISSION_AUTOMATION_CREATE,
    PERMISSION_AUTOMATION_EDIT,
    PERMISSION_AUTOMATION_EXECUTE,
    PERMISSION_AUTOMATION_VIEW,
    PERMISSION_COMPANY_SETTINGS_EDIT,
    PERMISSION_COMPANY_SETTINGS_VIEW,
    PERMISSION_CUSTOMERS_CREATE,
    PERMISSION_CUSTOMERS_DELETE,
    PERMISSION_CUSTOMERS_EDIT,
    PERMISSION_CUSTOMERS_VIEW,
    PERMISSION_DASHBOARD_VIEW,
    PERMISSION_EXPENSE_CATEGORIES_CREATE,
    PERMISSION_EXPENSE_CATEGORIES_DELETE,
    PERMISSION_EXPENSE_CATEGORIES_EDIT,
    PERMISSION_EXPENSE_CATEGORIES_VIEW,
    PERMISSION_EXPENSES_APPROVE,
    PERMISSION_EXPENSES_ASSIGN,
    PERMISSION_EXPENSES_CREATE,
    PERMISSION_EXPENSES_DELETE,
    PERMISSION_EXPENSES_EDIT,
    PERMISSION_EXPENSES_REVIEW,
    PERMISSION_EXPENSES_VIEW,
    PERMISSION_GL_ACCOUNTS_CREATE,
    PERMISSION_GL_ACCOUNTS_DELETE,
    PERMISSION_GL_ACCOUNTS_EDIT,
    PERMISSION_GL_ACCOUNTS_VIEW,
    PERMISSION_INGRID_ANALYTICS,
    PERMISSION_INGRID_APPROVE,
    PERMISSION_INGRID_CONFIGURE,
    PERMISSION_INGRID_VIEW,
    PERMISSION_NOTIFICATIONS_MANAGE,
    PERMISSION_NOTIFICATIONS_VIEW,
    PERMISSION_USERS_CREATE,
    PERMISSION_USERS_DELETE,
    PERMISSION_USERS_EDIT,
    PERMISSION_USERS_VIEW,
    PERMISSION_VENDORS_CREATE,
    PERMISSION_VENDORS_DELETE,
    PERMISSION_VENDORS_EDIT,
    PERMISSION_VENDORS_VIEW,
    ModuleTier,
    group_for_key,
)
from entitlements.catalog.models import Catalog, Module, Permission, SubFeature

MODULE_CORE_PLATFORM = "core-platform"
MODULE_EXPENSE_MANAGEMENT = "expense-management"
MODULE_INGRID_AI = "ingrid-ai"
MODULE_ADVANCED_ANALYTICS = "advanced-analytics"
MODULE_PROCESS_AUTOMATION = "process-automation"

PRICING_PRESETS = {
    ModuleTier.CORE: (Decimal("0.00"), Decimal("0.00")),
    ModuleTier.STANDARD: (Decimal("9.99"), Decimal("2.50")),
    ModuleTier.PREMIUM: (Decimal("29.99"), Decimal("5.99")),
}


def _perm(key, name, requires=(), foundation=True, system_only=False, order=0):
    return Permission(
        key=key,
        name=name,
        group=group_for_key(key),
        requires_permissions=frozenset(requires),
        is_foundation=foundation,
        is_system_only=system_only,
        display_order=order,
    )


def _crud(view, create, edit, delete, noun):
    return (
        _perm(view, f"View {noun}", order=1),
        _perm(create, f"Create {noun}", requires=(view,), order=2),
        _perm(edit, f"Edit {noun}", requires=(view,), order=3),
        _perm(delete, f"Delete {noun}", requires=(edit,), order=4),
    )


def default_permissions() -> Tuple[Permission, ...]:
    foundation = (
        _perm(PERMISSION_COMPANY_SETTINGS_VIEW, "View company settings", order=1),
        _perm(
            PERMISSION_COMPANY_SETTINGS_EDIT,
            "Edit company settings",
            requires=(PERMISSION_COMPANY_SETTINGS_VIEW,),
            order=2,
        ),
        _perm(PERMISSION_DASHBOARD_VIEW, "View dashboard", order=1),
        _perm(
            PERMISSION_ANALYTICS_VIEW,
            "View basic analytics",
            requires=(PERMISSION_DASHBOARD_VIEW,),
            order=2,
        ),
        *_crud(
            PERMISSION_CUSTOMERS_VIEW, PERMISSION_CUSTOMERS_CREATE,
            PERMISSION_CUSTOMERS_EDIT, PERMISSION_CUSTOMERS_DELETE, "customers",
        ),
        *_crud(
            PERMISSION_VENDORS_VIEW, PERMISSION_VENDORS_CREATE,
            PERMISSION_VENDORS_EDIT, PERMISSION_VENDORS_DELETE, "vendors",
        ),
        *_crud(
            PERMISSION_EXPENSES_VIEW, PERMISSION_EXPENSES_CREATE,
            PERMISSION_EXPENSES_EDIT, PERMISSION_EXPENSES_DELETE, "expenses",
        ),
        *_crud(
            PERMISSION_GL_ACCOUNTS_VIEW, PERMISSION_GL_ACCOUNTS_CREATE,
            PERMISSION_GL_ACCOUNTS_EDIT, PERMISSION_GL_ACCOUNTS_DELETE, "GL accounts",
        ),
        *_crud(
            PERMISSION_EXPENSE_CATEGORIES_VIEW, PERMISSION_EXPENSE_CATEGORIES_CREATE,
            PERMISSION_EXPENSE_CATEGORIES_EDIT, PERMISSION_EXPENSE_CATEGORIES_DELETE,
            "expense categories",
        ),
        *_crud(
            PERMISSION_USERS_VIEW, PERMISSION_USERS_CREATE,
            PERMISSION_USERS_EDIT, PERMISSION_USERS_DELETE, "users",
        ),
        _perm(PERMISSION_NOTIFICATIONS_VIEW, "View notifications", order=1),
        _perm(
            PERMISSION_NOTIFICATIONS_MANAGE,
            "Manage notifications",
            requires=(PERMISSION_NOTIFICATIONS_VIEW,),
            order=2,
        ),
    )

    premium = (
        _perm(PERMISSION_EXPENSES_APPROVE, "Approve expenses",
              requires=(PERMISSION_EXPENSES_VIEW,), foundation=False, order=5),
        _perm(PERMISSION_EXPENSES_REVIEW, "Review expenses",
              requires=(PERMISSION_EXPENSES_VIEW,), foundation=False, order=6),
        _perm(PERMISSION_EXPENSES_ASSIGN, "Assign and delegate expenses",
              requires=(PERMISSION_EXPENSES_REVIEW,), foundation=False, order=7),
        _perm(PERMISSION_INGRID_VIEW, "Use Ingrid assistant", foundation=False, order=1),
        _perm(PERMISSION_INGRID_APPROVE, "Approve Ingrid suggestions",
              requires=(PERMISSION_INGRID_VIEW,), foundation=False, order=2),
        _perm(PERMISSION_INGRID_CONFIGURE, "Configure Ingrid",
              requires=(PERMISSION_INGRID_VIEW,), foundation=False, order=3),
        _perm(PERMISSION_INGRID_ANALYTICS, "Ingrid analytics",
              requires=(PERMISSION_INGRID_VIEW,), foundation=False, order=4),
        _perm(PERMISSION_ANALYTICS_ADVANCED, "Advanced analytics",
              requires=(PERMISSION_ANALYTICS_VIEW,), foundation=False, order=3),
        _perm(PERMISSION_ANALYTICS_EXPORT, "Export reports",
              requires=(PERMISSION_ANALYTICS_ADVANCED,), foundation=False, order=4),
        _perm(PERMISSION_ANALYTICS_CUSTOM_REPORTS, "Custom report builder",
              requires=(PERMISSION_ANALYTICS_ADVANCED,), foundation=False, order=5),
        _perm(PERMISSION_AUTOMATION_VIEW, "View automations", foundation=False, order=1),
        _perm(PERMISSION_AUTOMATION_CREATE, "Create automations",
              requires=(PERMISSION_AUTOMATION_VIEW,), foundation=False, order=2),
        _perm(PERMISSION_AUTOMATION_EDIT, "Edit automations",
              requires=(PERMISSION_AUTOMATION_VIEW,), foundation=False, order=3),
        _perm(PERMISSION_AUTOMATION_EXECUTE, "Execute automations",
              requires=(PERMISSION_AUTOMATION_EDIT,), foundation=False, order=4),
    )
    return foundation + premium


def _module(module_id, name, tier, category, included=(), optional=(), requires=(),
            locked=False, description=""):
    monthly, per_user = PRICING_PRESETS[tier]
    return Module(
        module_id=module_id,
        name=name,
        tier=tier,
        category=category,
        included_permissions=frozenset(included),
        optional_sub_features=tuple(SubFeature(key=k, name=n) for k, n in optional),
        requires_modules=frozenset(requires),
        default_monthly_price=monthly,
        default_per_user_price=per_user,
        is_system_locked=locked,
        description=description,
    )


def default_modules() -> Tuple[Module, ...]:
    return (
        _module(
            MODULE_CORE_PLATFORM, "Core Platform", ModuleTier.CORE, "core",
            locked=True,
            description="Essential system functionality (always included).",
        ),
        _module(
            MODULE_EXPENSE_MANAGEMENT, "Expense Management", ModuleTier.STANDARD, "operations",
            included=(PERMISSION_EXPENSES_APPROVE, PERMISSION_EXPENSES_REVIEW),
            optional=((PERMISSION_EXPENSES_ASSIGN, "Assignment & Delegation"),),
        ),
        _module(
            MODULE_INGRID_AI, "Ingrid AI", ModuleTier.PREMIUM, "ai",
            included=(PERMISSION_INGRID_VIEW, PERMISSION_INGRID_APPROVE),
            optional=(
                (PERMISSION_INGRID_CONFIGURE, "Assistant Configuration"),
                (PERMISSION_INGRID_ANALYTICS, "Assistant Analytics"),
            ),
            requires=(MODULE_EXPENSE_MANAGEMENT,),
        ),
        _module(
            MODULE_ADVANCED_ANALYTICS, "Advanced Analytics", ModuleTier.PREMIUM, "analytics",
            included=(PERMISSION_ANALYTICS_ADVANCED, PERMISSION_ANALYTICS_EXPORT),
            optional=((PERMISSION_ANALYTICS_CUSTOM_REPORTS, "Custom Report Builder"),),
        ),
        _module(
            MODULE_PROCESS_AUTOMATION, "Process Automation", ModuleTier.PREMIUM, "automation",
            included=(
                PERMISSION_AUTOMATION_VIEW,
                PERMISSION_AUTOMATION_CREATE,
                PERMISSION_AUTOMATION_EDIT,
            ),
            optional=((PERMISSION_AUTOMATION_EXECUTE, "Automation Execution"),),
            requires=(MODULE_EXPENSE_MANAGEMENT,),
        ),
    )


def default_catalog() -> Catalog:
    return Catalog(
        permissions=default_permissions(),
        modules=default_modules(),
        version="2025.09-two-tier",
    )
