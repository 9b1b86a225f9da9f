"""
Entitlements Dependencies — Permission and Module Dependency Checks
====================================================================
Pure functions over the catalog, plus one delegating check against
company provisioning. The resolver is stateless apart from a memo of
computed closures; the catalog it reads is immutable.
"""

from __future__ import annotations

from typing import AbstractSet, Dict, FrozenSet, Iterable, List, Set

from entitlements.catalog.models import Catalog
from entitlements.errors import (
    CatalogInvariantViolation,
    MissingDependency,
    ModuleDependencyUnmet,
    NotProvisioned,
    UnknownPermission,
)


class DependencyResolver:
    def __init__(self, catalog: Catalog, provisioning=None) -> None:
        self._catalog = catalog
        self._provisioning = provisioning
        self._closures: Dict[str, FrozenSet[str]] = {}

    # ── Permission dependencies ───────────────────────────────

    def required_closure(self, key: str) -> FrozenSet[str]:
        """
        Transitive requires_permissions of key (key itself excluded).
        Keys outside the catalog have an empty closure.
        """
        cached = self._closures.get(key)
        if cached is not None:
            return cached

        closure: Set[str] = set()
        path: List[str] = []
        on_path: Set[str] = set()

        def walk(current: str) -> None:
            if current in on_path:
                raise CatalogInvariantViolation(
                    "PERMISSION_DEPENDENCY_CYCLE",
                    " -> ".join(path[path.index(current):] + [current]),
                )
            path.append(current)
            on_path.add(current)
            for required in sorted(self._catalog.requirements_of(current)):
                if required not in closure:
                    closure.add(required)
                    walk(required)
                elif required in on_path:
                    walk(required)
            on_path.discard(current)
            path.pop()

        walk(key)
        result = frozenset(closure)
        self._closures[key] = result
        return result

    def missing_dependencies(
        self, candidate: AbstractSet[str], target: str
    ) -> FrozenSet[str]:
        return frozenset(self.required_closure(target) - set(candidate))

    def validate_permission_grant(
        self, candidate: AbstractSet[str], target: str
    ) -> None:
        """Raise MissingDependency unless target's closure is within candidate."""
        if not self._catalog.has_permission(target):
            raise UnknownPermission(target)
        missing = self.missing_dependencies(candidate, target)
        if missing:
            raise MissingDependency(target, missing)

    def unsatisfied(self, keys: AbstractSet[str]) -> FrozenSet[str]:
        """Keys whose dependency closure is not contained in keys."""
        present = set(keys)
        return frozenset(
            k for k in present if not self.required_closure(k) <= present
        )

    def affected_by_revoke(
        self, current: Iterable[str], key: str
    ) -> FrozenSet[str]:
        """Keys in current that depend, directly or transitively, on key."""
        return frozenset(
            k for k in current
            if k != key and key in self.required_closure(k)
        )

    # ── Module dependencies ───────────────────────────────────

    def validate_module_enable(self, company_id: str, module_id: str) -> None:
        """
        Confirm the company may use module_id: the module itself is
        provisioned and every required module is enabled.
        """
        if self._provisioning is None:
            raise RuntimeError("DependencyResolver has no provisioning manager.")
        self._catalog.get_module(module_id)
        if not self._provisioning.is_active(company_id, module_id):
            raise NotProvisioned(company_id, module_id)
        missing = self._provisioning.check_module_dependencies(company_id, module_id)
        if missing:
            raise ModuleDependencyUnmet(module_id, missing)

    def permission_dependencies(self, key: str) -> Dict[str, List[str]]:
        """Lookup view: what key requires, what requires it, which modules grant it."""
        self._catalog.get_permission(key)
        return {
            "requires": sorted(self._catalog.requirements_of(key)),
            "requires_transitive": sorted(self.required_closure(key)),
            "required_by": sorted(self._catalog.dependents_of(key)),
            "included_in_modules": sorted(self._catalog.modules_including(key)),
        }
