"""
Entitlements Catalog — Permission Keys, Groups and Tiers
=========================================================
"""

from __future__ import annotations

from enum import Enum


# ══════════════════════════════════════════════════════════════
# PERMISSION GROUPS (fixed enumeration)
# ══════════════════════════════════════════════════════════════

GROUP_COMPANY_CONFIGURATION = "Company Configuration"
GROUP_CRM = "Customer Relationship Management"
GROUP_DASHBOARD_ANALYTICS = "Dashboard & Analytics"
GROUP_EXPENSE_OPERATIONS = "Expense Operations"
GROUP_GL_ACCOUNTS = "GL Account Management"
GROUP_EXPENSE_CATEGORIES = "Expense Category Management"
GROUP_VENDORS = "Vendor and Supplier Management"
GROUP_USER_MANAGEMENT = "User Management"
GROUP_NOTIFICATIONS = "Notification Management"
GROUP_GENERAL = "General"

PERMISSION_GROUPS = frozenset({
    GROUP_COMPANY_CONFIGURATION,
    GROUP_CRM,
    GROUP_DASHBOARD_ANALYTICS,
    GROUP_EXPENSE_OPERATIONS,
    GROUP_GL_ACCOUNTS,
    GROUP_EXPENSE_CATEGORIES,
    GROUP_VENDORS,
    GROUP_USER_MANAGEMENT,
    GROUP_NOTIFICATIONS,
    GROUP_GENERAL,
})


# ══════════════════════════════════════════════════════════════
# MODULE TIERS / PRICING TIERS
# ══════════════════════════════════════════════════════════════

class ModuleTier(Enum):
    CORE = "core"
    STANDARD = "standard"
    PREMIUM = "premium"


TIER_ORDER = {
    ModuleTier.CORE: 0,
    ModuleTier.STANDARD: 1,
    ModuleTier.PREMIUM: 2,
}


class PricingTier(Enum):
    STANDARD = "standard"
    CUSTOM = "custom"
    ENTERPRISE = "enterprise"


MODULE_CATEGORIES = frozenset({
    "core",
    "operations",
    "accounting",
    "ai",
    "automation",
    "analytics",
    "general",
})


# ══════════════════════════════════════════════════════════════
# FOUNDATION (DATA) PERMISSION KEYS
# ══════════════════════════════════════════════════════════════

PERMISSION_COMPANY_SETTINGS_VIEW = "company.settings.view"
PERMISSION_COMPANY_SETTINGS_EDIT = "company.settings.edit"

PERMISSION_DASHBOARD_VIEW = "dashboard.view"
PERMISSION_ANALYTICS_VIEW = "analytics.view"

PERMISSION_CUSTOMERS_VIEW = "customers.view"
PERMISSION_CUSTOMERS_CREATE = "customers.create"
PERMISSION_CUSTOMERS_EDIT = "customers.edit"
PERMISSION_CUSTOMERS_DELETE = "customers.delete"

PERMISSION_VENDORS_VIEW = "vendors.view"
PERMISSION_VENDORS_CREATE = "vendors.create"
PERMISSION_VENDORS_EDIT = "vendors.edit"
PERMISSION_VENDORS_DELETE = "vendors.delete"

PERMISSION_EXPENSES_VIEW = "expenses.view"
PERMISSION_EXPENSES_CREATE = "expenses.create"
PERMISSION_EXPENSES_EDIT = "expenses.edit"
PERMISSION_EXPENSES_DELETE = "expenses.delete"

PERMISSION_GL_ACCOUNTS_VIEW = "gl_accounts.view"
PERMISSION_GL_ACCOUNTS_CREATE = "gl_accounts.create"
PERMISSION_GL_ACCOUNTS_EDIT = "gl_accounts.edit"
PERMISSION_GL_ACCOUNTS_DELETE = "gl_accounts.delete"

PERMISSION_EXPENSE_CATEGORIES_VIEW = "expense_categories.view"
PERMISSION_EXPENSE_CATEGORIES_CREATE = "expense_categories.create"
PERMISSION_EXPENSE_CATEGORIES_EDIT = "expense_categories.edit"
PERMISSION_EXPENSE_CATEGORIES_DELETE = "expense_categories.delete"

PERMISSION_USERS_VIEW = "users.view"
PERMISSION_USERS_CREATE = "users.create"
PERMISSION_USERS_EDIT = "users.edit"
PERMISSION_USERS_DELETE = "users.delete"

PERMISSION_NOTIFICATIONS_VIEW = "notifications.view"
PERMISSION_NOTIFICATIONS_MANAGE = "notifications.manage"


# ══════════════════════════════════════════════════════════════
# MODULE-DERIVED PERMISSION KEYS
# ══════════════════════════════════════════════════════════════

PERMISSION_EXPENSES_APPROVE = "expenses.approve"
PERMISSION_EXPENSES_REVIEW = "expenses.review"
PERMISSION_EXPENSES_ASSIGN = "expenses.assign"

PERMISSION_INGRID_VIEW = "ingrid.view"
PERMISSION_INGRID_APPROVE = "ingrid.approve"
PERMISSION_INGRID_CONFIGURE = "ingrid.configure"
PERMISSION_INGRID_ANALYTICS = "ingrid.analytics"

PERMISSION_ANALYTICS_ADVANCED = "analytics.advanced"
PERMISSION_ANALYTICS_EXPORT = "analytics.export"
PERMISSION_ANALYTICS_CUSTOM_REPORTS = "analytics.custom_reports"

PERMISSION_AUTOMATION_VIEW = "automation.view"
PERMISSION_AUTOMATION_CREATE = "automation.create"
PERMISSION_AUTOMATION_EDIT = "automation.edit"
PERMISSION_AUTOMATION_EXECUTE = "automation.execute"


# ══════════════════════════════════════════════════════════════
# KEY PREFIX → GROUP (used when a static config omits the group)
# ══════════════════════════════════════════════════════════════

GROUP_BY_PREFIX = (
    ("company.", GROUP_COMPANY_CONFIGURATION),
    ("customers.", GROUP_CRM),
    ("vendors.", GROUP_VENDORS),
    ("expenses.", GROUP_EXPENSE_OPERATIONS),
    ("gl_accounts.", GROUP_GL_ACCOUNTS),
    ("expense_categories.", GROUP_EXPENSE_CATEGORIES),
    ("users.", GROUP_USER_MANAGEMENT),
    ("notifications.", GROUP_NOTIFICATIONS),
    ("dashboard.", GROUP_DASHBOARD_ANALYTICS),
    ("analytics.", GROUP_DASHBOARD_ANALYTICS),
)


def group_for_key(key: str) -> str:
    for prefix, group in GROUP_BY_PREFIX:
        if key.startswith(prefix):
            return group
    return GROUP_GENERAL
