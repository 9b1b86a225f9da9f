"""
Entitlements — Error Taxonomy
==============================
Every failure the engine can report carries a machine-readable code
(SCREAMING_SNAKE_CASE) and a human-readable message.

Commit and template operations attach these to individual items;
only structural errors (unknown role, store unavailable, lock
contention) propagate to the caller as raised exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, FrozenSet, Iterable, Optional


class EntitlementError(Exception):
    """Base error for entitlement decisions and mutations."""

    code = "ENTITLEMENT_ERROR"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        for name, value in self.details.items():
            if isinstance(value, (set, frozenset)):
                value = sorted(value)
            payload[name] = value
        return payload


def _frozen(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(values)


# ══════════════════════════════════════════════════════════════
# BOUNDARY / CATALOG ERRORS
# ══════════════════════════════════════════════════════════════

class UnknownRole(EntitlementError):
    code = "UNKNOWN_ROLE"

    def __init__(self, role: Any):
        self.role = role
        super().__init__(f"Unknown role '{role}'.", role=str(role))


class UnknownPermission(EntitlementError):
    code = "UNKNOWN_PERMISSION"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Permission '{key}' is not in the catalog.", key=key)


class UnknownModule(EntitlementError):
    code = "UNKNOWN_MODULE"

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(
            f"Module '{module_id}' is not in the catalog.", module_id=module_id
        )


class UnknownTemplate(EntitlementError):
    code = "UNKNOWN_TEMPLATE"

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(
            f"Permission template '{template_id}' not found.",
            template_id=template_id,
        )


class CatalogInvariantViolation(EntitlementError):
    """The loaded catalog is structurally invalid (cycle, dangling reference)."""

    code = "CATALOG_INVARIANT_VIOLATION"

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"{invariant}: {detail}", invariant=invariant)


# ══════════════════════════════════════════════════════════════
# DEPENDENCY ERRORS
# ══════════════════════════════════════════════════════════════

class MissingDependency(EntitlementError):
    code = "MISSING_DEPENDENCY"

    def __init__(self, key: str, missing: Iterable[str]):
        self.key = key
        self.missing = _frozen(missing)
        super().__init__(
            f"Cannot grant '{key}': required permissions "
            f"{sorted(self.missing)} are not granted.",
            key=key,
            missing=self.missing,
        )


class ModuleDependencyUnmet(EntitlementError):
    code = "MODULE_DEPENDENCY_UNMET"

    def __init__(self, module_id: str, missing: Iterable[str]):
        self.module_id = module_id
        self.missing = _frozen(missing)
        super().__init__(
            f"Module '{module_id}' requires modules "
            f"{sorted(self.missing)} to be enabled first.",
            module_id=module_id,
            missing=self.missing,
        )


class DependentModulesActive(EntitlementError):
    code = "DEPENDENT_MODULES_ACTIVE"

    def __init__(self, module_id: str, dependents: Iterable[str]):
        self.module_id = module_id
        self.dependents = _frozen(dependents)
        super().__init__(
            f"Module '{module_id}' is required by enabled modules "
            f"{sorted(self.dependents)}.",
            module_id=module_id,
            dependents=self.dependents,
        )


# ══════════════════════════════════════════════════════════════
# PROVISIONING / AUTHORIZATION ERRORS
# ══════════════════════════════════════════════════════════════

class NotProvisioned(EntitlementError):
    code = "NOT_PROVISIONED"

    def __init__(self, company_id: str, module_id: str):
        self.company_id = company_id
        self.module_id = module_id
        super().__init__(
            f"Module '{module_id}' is not provisioned for this company.",
            module_id=module_id,
        )


class ModuleLocked(EntitlementError):
    code = "MODULE_LOCKED"

    def __init__(self, module_id: str, reason: str, key: Optional[str] = None):
        self.module_id = module_id
        self.key = key
        details: Dict[str, Any] = {"module_id": module_id}
        if key is not None:
            details["key"] = key
        super().__init__(reason, **details)


class Unauthorized(EntitlementError):
    code = "UNAUTHORIZED"

    def __init__(self, reason: str):
        super().__init__(reason)


class ConcurrentModificationRetry(EntitlementError):
    """Serialization conflict on a (user, company) pair. Safe to retry."""

    code = "CONCURRENT_MODIFICATION_RETRY"

    def __init__(self, user_id: Optional[str], company_id: str):
        self.user_id = user_id
        self.company_id = company_id
        super().__init__(
            "Another change to these entitlements is in progress; retry.",
            user_id=user_id,
            company_id=company_id,
        )
