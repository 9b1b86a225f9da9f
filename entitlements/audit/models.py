"""
Entitlements Audit — Immutable Change Records
==============================================
One record per successful state-changing item. Records are frozen
once created; the sink is append-only and exposes no update or delete.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


# ══════════════════════════════════════════════════════════════
# CHANGE TYPES
# ══════════════════════════════════════════════════════════════

class ChangeType(Enum):
    GRANT_DATA_PERMISSION = "grant_data_permission"
    REVOKE_DATA_PERMISSION = "revoke_data_permission"
    GRANT_MODULE = "grant_module"
    REVOKE_MODULE = "revoke_module"
    GRANT_MODULE_PERMISSION = "grant_module_permission"
    REVOKE_MODULE_PERMISSION = "revoke_module_permission"
    PROVISION_MODULE = "provision_module"
    DEPROVISION_MODULE = "deprovision_module"
    APPLY_TEMPLATE = "apply_template"


COMPANY_LEVEL_CHANGES: FrozenSet[ChangeType] = frozenset({
    ChangeType.PROVISION_MODULE,
    ChangeType.DEPROVISION_MODULE,
})


# ══════════════════════════════════════════════════════════════
# AUDIT RECORD
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AuditRecord:
    """
    Immutable record of one entitlement change.

    affected_user_id is None only for company-level provisioning changes.
    old_value is None when no prior row existed.
    """

    record_id: uuid.UUID
    actor_user_id: str
    affected_user_id: Optional[str]
    company_id: str
    change_type: ChangeType
    key: str
    old_value: Optional[bool]
    new_value: Optional[bool]
    reason: str
    performed_at: datetime
    module_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.change_type, ChangeType):
            raise ValueError("change_type must be ChangeType.")
        if not self.actor_user_id:
            raise ValueError("actor_user_id must be non-empty.")
        if not self.company_id:
            raise ValueError("company_id must be non-empty.")
        if (
            self.affected_user_id is None
            and self.change_type not in COMPANY_LEVEL_CHANGES
        ):
            raise ValueError(
                f"{self.change_type.value} records require affected_user_id."
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": str(self.record_id),
            "actor_user_id": self.actor_user_id,
            "affected_user_id": self.affected_user_id,
            "company_id": self.company_id,
            "change_type": self.change_type.value,
            "key": self.key,
            "module_id": self.module_id,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "reason": self.reason,
            "performed_at": self.performed_at.isoformat(),
        }


def new_record(
    *,
    actor_user_id: str,
    affected_user_id: Optional[str],
    company_id: str,
    change_type: ChangeType,
    key: str,
    old_value: Optional[bool],
    new_value: Optional[bool],
    performed_at: datetime,
    reason: str = "",
    module_id: Optional[str] = None,
) -> AuditRecord:
    return AuditRecord(
        record_id=uuid.uuid4(),
        actor_user_id=actor_user_id,
        affected_user_id=affected_user_id,
        company_id=company_id,
        change_type=change_type,
        key=key,
        old_value=old_value,
        new_value=new_value,
        reason=reason,
        performed_at=performed_at,
        module_id=module_id,
    )


# ══════════════════════════════════════════════════════════════
# AUDIT QUERY FILTER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AuditFilter:
    company_id: Optional[str] = None
    affected_user_id: Optional[str] = None
    actor_user_id: Optional[str] = None
    change_types: FrozenSet[ChangeType] = frozenset()
    since: Optional[datetime] = None
    until: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "change_types", frozenset(self.change_types))
        if self.since and self.until and self.since > self.until:
            raise ValueError("since must not be after until.")

    def matches(self, record: AuditRecord) -> bool:
        if self.company_id is not None and record.company_id != self.company_id:
            return False
        if (
            self.affected_user_id is not None
            and record.affected_user_id != self.affected_user_id
        ):
            return False
        if (
            self.actor_user_id is not None
            and record.actor_user_id != self.actor_user_id
        ):
            return False
        if self.change_types and record.change_type not in self.change_types:
            return False
        if self.since is not None and record.performed_at < self.since:
            return False
        if self.until is not None and record.performed_at >= self.until:
            return False
        return True
