"""
Entitlements Templates - Store Protocol and In-Memory Store
===========================================================
The in-memory store is seeded with the system templates unless an
explicit template set is given.
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, Iterable, Optional, Protocol, Tuple

from entitlements.catalog.constants import (
    PERMISSION_ANALYTICS_VIEW,
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
    PERMISSION_EXPENSES_CREATE,
    PERMISSION_EXPENSES_DELETE,
    PERMISSION_EXPENSES_EDIT,
    PERMISSION_EXPENSES_VIEW,
    PERMISSION_GL_ACCOUNTS_CREATE,
    PERMISSION_GL_ACCOUNTS_DELETE,
    PERMISSION_GL_ACCOUNTS_EDIT,
    PERMISSION_GL_ACCOUNTS_VIEW,
    PERMISSION_NOTIFICATIONS_MANAGE,
    PERMISSION_NOTIFICATIONS_VIEW,
    PERMISSION_USERS_CREATE,
    PERMISSION_USERS_EDIT,
    PERMISSION_USERS_VIEW,
    PERMISSION_VENDORS_CREATE,
    PERMISSION_VENDORS_DELETE,
    PERMISSION_VENDORS_EDIT,
    PERMISSION_VENDORS_VIEW,
)
from entitlements.catalog.defaults import (
    MODULE_ADVANCED_ANALYTICS,
    MODULE_EXPENSE_MANAGEMENT,
)
from entitlements.roles import Role
from entitlements.templates.models import PermissionTemplate


class TemplateStore(Protocol):
    def get(self, template_id: str) -> Optional[PermissionTemplate]:
        ...

    def list(self, target_role: Optional[Role] = None) -> Tuple[PermissionTemplate, ...]:
        ...

    def save(self, template: PermissionTemplate) -> None:
        ...

    def delete(self, template_id: str) -> None:
        ...


def default_templates() -> Tuple[PermissionTemplate, ...]:
    # approval/review/export now arrive through modules, not data grants
    return (
        PermissionTemplate(
            template_id="basic_user",
            display_name="Basic User",
            description="Standard employee with basic data access",
            target_role=Role.USER,
            data_permissions=frozenset({
                PERMISSION_DASHBOARD_VIEW,
                PERMISSION_EXPENSES_VIEW,
                PERMISSION_EXPENSES_CREATE,
                PERMISSION_NOTIFICATIONS_VIEW,
            }),
        ),
        PermissionTemplate(
            template_id="expense_reviewer",
            display_name="Expense Reviewer",
            description="Can review and approve expenses",
            target_role=Role.USER,
            data_permissions=frozenset({
                PERMISSION_DASHBOARD_VIEW,
                PERMISSION_EXPENSES_VIEW,
                PERMISSION_EXPENSES_CREATE,
                PERMISSION_ANALYTICS_VIEW,
            }),
            modules=frozenset({MODULE_EXPENSE_MANAGEMENT}),
        ),
        PermissionTemplate(
            template_id="department_manager",
            display_name="Department Manager",
            description="Manager with full operational access",
            target_role=Role.ADMIN,
            data_permissions=frozenset({
                PERMISSION_DASHBOARD_VIEW,
                PERMISSION_ANALYTICS_VIEW,
                PERMISSION_EXPENSES_VIEW,
                PERMISSION_EXPENSES_CREATE,
                PERMISSION_EXPENSES_EDIT,
                PERMISSION_VENDORS_VIEW,
                PERMISSION_VENDORS_CREATE,
                PERMISSION_VENDORS_EDIT,
                PERMISSION_CUSTOMERS_VIEW,
                PERMISSION_CUSTOMERS_CREATE,
                PERMISSION_CUSTOMERS_EDIT,
                PERMISSION_USERS_VIEW,
                PERMISSION_NOTIFICATIONS_VIEW,
                PERMISSION_NOTIFICATIONS_MANAGE,
            }),
            modules=frozenset({MODULE_EXPENSE_MANAGEMENT}),
        ),
        PermissionTemplate(
            template_id="controller",
            display_name="Controller",
            description="Full financial and accounting access",
            target_role=Role.ADMIN,
            data_permissions=frozenset({
                PERMISSION_DASHBOARD_VIEW,
                PERMISSION_ANALYTICS_VIEW,
                PERMISSION_EXPENSES_VIEW,
                PERMISSION_EXPENSES_CREATE,
                PERMISSION_EXPENSES_EDIT,
                PERMISSION_EXPENSES_DELETE,
                PERMISSION_VENDORS_VIEW,
                PERMISSION_VENDORS_CREATE,
                PERMISSION_VENDORS_EDIT,
                PERMISSION_VENDORS_DELETE,
                PERMISSION_CUSTOMERS_VIEW,
                PERMISSION_CUSTOMERS_CREATE,
                PERMISSION_CUSTOMERS_EDIT,
                PERMISSION_CUSTOMERS_DELETE,
                PERMISSION_GL_ACCOUNTS_VIEW,
                PERMISSION_GL_ACCOUNTS_CREATE,
                PERMISSION_GL_ACCOUNTS_EDIT,
                PERMISSION_GL_ACCOUNTS_DELETE,
                PERMISSION_EXPENSE_CATEGORIES_VIEW,
                PERMISSION_EXPENSE_CATEGORIES_CREATE,
                PERMISSION_EXPENSE_CATEGORIES_EDIT,
                PERMISSION_EXPENSE_CATEGORIES_DELETE,
                PERMISSION_USERS_VIEW,
                PERMISSION_USERS_CREATE,
                PERMISSION_USERS_EDIT,
                PERMISSION_COMPANY_SETTINGS_VIEW,
                PERMISSION_COMPANY_SETTINGS_EDIT,
                PERMISSION_NOTIFICATIONS_VIEW,
                PERMISSION_NOTIFICATIONS_MANAGE,
            }),
            modules=frozenset({MODULE_EXPENSE_MANAGEMENT, MODULE_ADVANCED_ANALYTICS}),
        ),
    )


class InMemoryTemplateStore:
    def __init__(self, templates: Iterable[PermissionTemplate] | None = None) -> None:
        self._lock = Lock()
        self._templates: Dict[str, PermissionTemplate] = {}
        for template in default_templates() if templates is None else templates:
            if template.template_id in self._templates:
                raise ValueError(f"Duplicate template_id '{template.template_id}'.")
            self._templates[template.template_id] = template

    def get(self, template_id):
        with self._lock:
            return self._templates.get(template_id)

    def list(self, target_role=None):
        with self._lock:
            rows = [
                t for t in self._templates.values()
                if target_role is None or t.target_role is target_role
            ]
        return tuple(sorted(rows, key=lambda t: t.template_id))

    def save(self, template):
        with self._lock:
            self._templates[template.template_id] = template

    def delete(self, template_id):
        with self._lock:
            self._templates.pop(template_id, None)
