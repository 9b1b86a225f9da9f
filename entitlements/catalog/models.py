"""
Entitlements Catalog — Immutable Permission/Module Definitions
===============================================================
The catalog is versioned with each release and read-only at runtime.
It is built once, validated once, and passed by reference to every
component that needs it.

Integrity is checked at construction: dangling references and
dependency cycles raise CatalogInvariantViolation so that a broken
catalog never reaches resolution.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from entitlements.catalog.constants import (
    MODULE_CATEGORIES,
    PERMISSION_GROUPS,
    TIER_ORDER,
    ModuleTier,
)
from entitlements.errors import (
    CatalogInvariantViolation,
    UnknownModule,
    UnknownPermission,
)


# ══════════════════════════════════════════════════════════════
# PERMISSION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Permission:
    key: str
    name: str
    group: str
    requires_permissions: FrozenSet[str] = frozenset()
    is_foundation: bool = True
    is_system_only: bool = False
    description: str = ""
    display_order: int = 0

    def __post_init__(self):
        if not self.key or not isinstance(self.key, str):
            raise ValueError("key must be a non-empty string.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("name must be a non-empty string.")
        if self.group not in PERMISSION_GROUPS:
            raise ValueError(
                f"group '{self.group}' not valid. "
                f"Must be one of: {sorted(PERMISSION_GROUPS)}"
            )
        requires = frozenset(self.requires_permissions)
        if self.key in requires:
            raise ValueError(f"Permission '{self.key}' cannot require itself.")
        object.__setattr__(self, "requires_permissions", requires)


# ══════════════════════════════════════════════════════════════
# MODULE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SubFeature:
    """Optional, independently toggled capability of a module."""

    key: str
    name: str

    def __post_init__(self):
        if not self.key or not isinstance(self.key, str):
            raise ValueError("sub-feature key must be a non-empty string.")
        if not self.name or not isinstance(self.name, str):
            raise ValueError("sub-feature name must be a non-empty string.")


@dataclass(frozen=True)
class Module:
    module_id: str
    name: str
    tier: ModuleTier
    category: str
    included_permissions: FrozenSet[str] = frozenset()
    optional_sub_features: Tuple[SubFeature, ...] = ()
    requires_modules: FrozenSet[str] = frozenset()
    default_monthly_price: Decimal = Decimal("0")
    default_per_user_price: Decimal = Decimal("0")
    is_system_locked: bool = False
    description: str = ""

    def __post_init__(self):
        if not self.module_id or not isinstance(self.module_id, str):
            raise ValueError("module_id must be a non-empty string.")
        if not isinstance(self.tier, ModuleTier):
            raise ValueError("tier must be ModuleTier.")
        if self.category not in MODULE_CATEGORIES:
            raise ValueError(
                f"category '{self.category}' not valid. "
                f"Must be one of: {sorted(MODULE_CATEGORIES)}"
            )
        if self.default_monthly_price < 0 or self.default_per_user_price < 0:
            raise ValueError("module prices must be non-negative.")

        included = frozenset(self.included_permissions)
        sub_features = tuple(self.optional_sub_features)
        optional_keys = [sf.key for sf in sub_features]
        if len(set(optional_keys)) != len(optional_keys):
            raise ValueError(f"Module '{self.module_id}' has duplicate sub-feature keys.")
        overlap = included & set(optional_keys)
        if overlap:
            raise ValueError(
                f"Module '{self.module_id}' lists {sorted(overlap)} as both "
                "included and optional."
            )
        requires = frozenset(self.requires_modules)
        if self.module_id in requires:
            raise ValueError(f"Module '{self.module_id}' cannot require itself.")

        object.__setattr__(self, "included_permissions", included)
        object.__setattr__(self, "optional_sub_features", sub_features)
        object.__setattr__(self, "requires_modules", requires)

    def optional_permission_keys(self) -> FrozenSet[str]:
        return frozenset(sf.key for sf in self.optional_sub_features)

    def derived_permission_keys(self) -> FrozenSet[str]:
        return self.included_permissions | self.optional_permission_keys()

    def sort_key(self) -> Tuple[int, str, str]:
        return (TIER_ORDER[self.tier], self.name, self.module_id)


# ══════════════════════════════════════════════════════════════
# CATALOG
# ══════════════════════════════════════════════════════════════

def _find_cycle(graph: Mapping[str, Iterable[str]]) -> Optional[List[str]]:
    """Return one dependency cycle as a path, or None if the graph is acyclic."""
    WHITE, GREY, BLACK = 0, 1, 2
    color: Dict[str, int] = {node: WHITE for node in graph}

    for root in sorted(graph):
        if color[root] != WHITE:
            continue
        stack: List[Tuple[str, List[str]]] = [(root, sorted(graph[root]))]
        path = [root]
        color[root] = GREY
        while stack:
            node, pending = stack[-1]
            if not pending:
                color[node] = BLACK
                stack.pop()
                path.pop()
                continue
            nxt = pending.pop(0)
            state = color.get(nxt, BLACK)
            if state == GREY:
                return path[path.index(nxt):] + [nxt]
            if state == WHITE:
                color[nxt] = GREY
                path.append(nxt)
                stack.append((nxt, sorted(graph[nxt])))
    return None


class Catalog:
    """
    Indexed, validated set of Permission and Module definitions.

    Lookups by key/id are O(1). Reverse indexes (dependents, modules
    including a key) are built once at construction.
    """

    def __init__(
        self,
        permissions: Iterable[Permission] = (),
        modules: Iterable[Module] = (),
        version: str = "1",
    ):
        self.version = version
        self._permissions: Dict[str, Permission] = {}
        self._modules: Dict[str, Module] = {}

        for permission in permissions:
            if permission.key in self._permissions:
                raise CatalogInvariantViolation(
                    "DUPLICATE_PERMISSION", f"Permission '{permission.key}' defined twice."
                )
            self._permissions[permission.key] = permission

        for module in modules:
            if module.module_id in self._modules:
                raise CatalogInvariantViolation(
                    "DUPLICATE_MODULE", f"Module '{module.module_id}' defined twice."
                )
            self._modules[module.module_id] = module

        self._check_integrity()

        self._dependents: Dict[str, FrozenSet[str]] = {}
        for permission in self._permissions.values():
            for required in permission.requires_permissions:
                self._dependents[required] = (
                    self._dependents.get(required, frozenset()) | {permission.key}
                )

        self._modules_by_key: Dict[str, FrozenSet[str]] = {}
        self._dependent_modules: Dict[str, FrozenSet[str]] = {}
        for module in self._modules.values():
            for key in module.derived_permission_keys():
                self._modules_by_key[key] = (
                    self._modules_by_key.get(key, frozenset()) | {module.module_id}
                )
            for required in module.requires_modules:
                self._dependent_modules[required] = (
                    self._dependent_modules.get(required, frozenset())
                    | {module.module_id}
                )

    def _check_integrity(self) -> None:
        for permission in self._permissions.values():
            dangling = permission.requires_permissions - self._permissions.keys()
            if dangling:
                raise CatalogInvariantViolation(
                    "DANGLING_PERMISSION_DEPENDENCY",
                    f"Permission '{permission.key}' requires unknown {sorted(dangling)}.",
                )

        for module in self._modules.values():
            dangling = module.included_permissions - self._permissions.keys()
            if dangling:
                raise CatalogInvariantViolation(
                    "DANGLING_INCLUDED_PERMISSION",
                    f"Module '{module.module_id}' includes unknown {sorted(dangling)}.",
                )
            missing_modules = module.requires_modules - self._modules.keys()
            if missing_modules:
                raise CatalogInvariantViolation(
                    "DANGLING_MODULE_DEPENDENCY",
                    f"Module '{module.module_id}' requires unknown {sorted(missing_modules)}.",
                )

        cycle = _find_cycle(
            {k: p.requires_permissions for k, p in self._permissions.items()}
        )
        if cycle:
            raise CatalogInvariantViolation(
                "PERMISSION_DEPENDENCY_CYCLE", " -> ".join(cycle)
            )

        cycle = _find_cycle(
            {m_id: m.requires_modules for m_id, m in self._modules.items()}
        )
        if cycle:
            raise CatalogInvariantViolation(
                "MODULE_DEPENDENCY_CYCLE", " -> ".join(cycle)
            )

    # ── Permission lookups ────────────────────────────────────

    def get_permission(self, key: str) -> Permission:
        permission = self._permissions.get(key)
        if permission is None:
            raise UnknownPermission(key)
        return permission

    def find_permission(self, key: str) -> Optional[Permission]:
        return self._permissions.get(key)

    def has_permission(self, key: str) -> bool:
        return key in self._permissions

    def list_permissions(self, group: Optional[str] = None) -> List[Permission]:
        perms = [
            p for p in self._permissions.values()
            if group is None or p.group == group
        ]
        return sorted(perms, key=lambda p: (p.group, p.display_order, p.key))

    def requirements_of(self, key: str) -> FrozenSet[str]:
        """Direct requires_permissions of key; empty for keys outside the catalog."""
        permission = self._permissions.get(key)
        if permission is None:
            return frozenset()
        return permission.requires_permissions

    def dependents_of(self, key: str) -> FrozenSet[str]:
        """Permissions that directly require key."""
        return self._dependents.get(key, frozenset())

    # ── Module lookups ────────────────────────────────────────

    def get_module(self, module_id: str) -> Module:
        module = self._modules.get(module_id)
        if module is None:
            raise UnknownModule(module_id)
        return module

    def find_module(self, module_id: str) -> Optional[Module]:
        return self._modules.get(module_id)

    def has_module(self, module_id: str) -> bool:
        return module_id in self._modules

    def list_modules(
        self,
        tier: Optional[ModuleTier] = None,
        category: Optional[str] = None,
    ) -> List[Module]:
        modules = [
            m for m in self._modules.values()
            if (tier is None or m.tier == tier)
            and (category is None or m.category == category)
        ]
        return sorted(modules, key=lambda m: m.sort_key())

    def modules_including(self, key: str) -> FrozenSet[str]:
        """Modules whose included or optional permissions contain key."""
        return self._modules_by_key.get(key, frozenset())

    def dependent_modules(self, module_id: str) -> FrozenSet[str]:
        """Modules that directly require module_id."""
        return self._dependent_modules.get(module_id, frozenset())

    def module_derived_permission_keys(self) -> FrozenSet[str]:
        keys: FrozenSet[str] = frozenset()
        for module in self._modules.values():
            keys = keys | module.derived_permission_keys()
        return keys

    def __repr__(self) -> str:
        return (
            f"Catalog(version={self.version!r}, permissions={len(self._permissions)}, "
            f"modules={len(self._modules)})"
        )
