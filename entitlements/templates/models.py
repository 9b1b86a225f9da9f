"""
Entitlements Templates — Role-Targeted Grant Bundles
=====================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional, Tuple

from entitlements.roles import Role


@dataclass(frozen=True)
class PermissionTemplate:
    template_id: str
    display_name: str
    target_role: Role
    data_permissions: FrozenSet[str] = frozenset()
    modules: FrozenSet[str] = frozenset()
    description: str = ""
    is_system_template: bool = True
    created_by: Optional[str] = None

    def __post_init__(self):
        if not self.template_id or not isinstance(self.template_id, str):
            raise ValueError("template_id must be a non-empty string.")
        if not self.display_name:
            raise ValueError("display_name must be non-empty.")
        object.__setattr__(self, "target_role", Role.parse(self.target_role))
        object.__setattr__(self, "data_permissions", frozenset(self.data_permissions))
        object.__setattr__(self, "modules", frozenset(self.modules))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template_id": self.template_id,
            "display_name": self.display_name,
            "target_role": self.target_role.value,
            "data_permissions": sorted(self.data_permissions),
            "modules": sorted(self.modules),
            "description": self.description,
            "is_system_template": self.is_system_template,
            "created_by": self.created_by,
        }


# ══════════════════════════════════════════════════════════════
# APPLY RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SkippedItem:
    item: str
    code: str
    reason: str


@dataclass(frozen=True)
class ApplyResult:
    template_id: str
    applied: FrozenSet[str]
    skipped: Tuple[SkippedItem, ...] = ()
    written: FrozenSet[str] = frozenset()

    @property
    def is_complete(self) -> bool:
        return not self.skipped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template_id": self.template_id,
            "applied": sorted(self.applied),
            "skipped": [
                {"item": s.item, "code": s.code, "reason": s.reason}
                for s in self.skipped
            ],
        }
