"""
Entitlements Resolution — Effective Permission Set
===================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from entitlements.roles import Role


class PermissionSource(Enum):
    ROLE = "ROLE"
    DATA_GRANT = "DATA_GRANT"
    MODULE_INCLUDED = "MODULE_INCLUDED"
    MODULE_OPTIONAL = "MODULE_OPTIONAL"


@dataclass(frozen=True)
class SourceInfo:
    source: PermissionSource
    module_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"source": self.source.value}
        if self.module_id is not None:
            payload["module_id"] = self.module_id
        return payload


@dataclass(frozen=True)
class EffectivePermissionSet:
    """
    Result of one resolve() call.

    sources maps every key in keys to the first source that granted it.
    dropped holds keys removed because their dependency chain was unmet.
    """

    user_id: str
    company_id: str
    role: Role
    keys: FrozenSet[str]
    sources: Mapping[str, SourceInfo]
    resolved_at: datetime
    dropped: FrozenSet[str] = frozenset()
    active_modules: FrozenSet[str] = frozenset()
    catalog_version: str = ""

    def has(self, key: str) -> bool:
        return key in self.keys

    def source_of(self, key: str) -> Optional[SourceInfo]:
        return self.sources.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self.keys

    def __len__(self) -> int:
        return len(self.keys)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "company_id": self.company_id,
            "role": self.role.value,
            "permissions": sorted(self.keys),
            "sources": {k: self.sources[k].to_dict() for k in sorted(self.keys)},
            "dropped": sorted(self.dropped),
            "active_modules": sorted(self.active_modules),
            "catalog_version": self.catalog_version,
            "resolved_at": self.resolved_at.isoformat(),
        }
