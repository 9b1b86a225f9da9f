"""
Entitlements Batch — Proposed Changes
======================================
A Change is one desired toggle. PendingChanges is the client-side
staging buffer an administrator builds up before committing; the
server never stores it, it only receives as_changes().
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterator, Optional, Tuple


class ChangeKind(Enum):
    DATA = "DATA"
    MODULE = "MODULE"
    MODULE_PERMISSION = "MODULE_PERMISSION"


@dataclass(frozen=True)
class Change:
    """
    One desired state. For MODULE changes key is the module id; for
    MODULE_PERMISSION changes module_id names the owning module.
    """

    kind: ChangeKind
    key: str
    desired_state: bool
    module_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    reason: str = ""

    def __post_init__(self):
        if not isinstance(self.kind, ChangeKind):
            object.__setattr__(self, "kind", ChangeKind(self.kind))
        if not self.key or not isinstance(self.key, str):
            raise ValueError("key must be a non-empty string.")
        if not isinstance(self.desired_state, bool):
            raise ValueError("desired_state must be bool.")
        if self.kind is ChangeKind.MODULE:
            if self.module_id is not None and self.module_id != self.key:
                raise ValueError("MODULE change module_id must equal key.")
            object.__setattr__(self, "module_id", self.key)
        if self.kind is ChangeKind.MODULE_PERMISSION and not self.module_id:
            raise ValueError("MODULE_PERMISSION change requires module_id.")
        if self.expires_at is not None and self.expires_at.tzinfo is None:
            raise ValueError("expires_at must be timezone-aware.")

    @property
    def label(self) -> str:
        """Identifier used in commit results."""
        if self.kind is ChangeKind.MODULE_PERMISSION:
            return f"{self.module_id}/{self.key}"
        return self.key

    @property
    def slot(self) -> Tuple[ChangeKind, Optional[str], str]:
        return (self.kind, self.module_id, self.key)

    @classmethod
    def data(cls, key: str, on: bool, **kwargs) -> "Change":
        return cls(kind=ChangeKind.DATA, key=key, desired_state=on, **kwargs)

    @classmethod
    def module(cls, module_id: str, on: bool, **kwargs) -> "Change":
        return cls(kind=ChangeKind.MODULE, key=module_id, desired_state=on, **kwargs)

    @classmethod
    def module_permission(cls, module_id: str, key: str, on: bool, **kwargs) -> "Change":
        return cls(
            kind=ChangeKind.MODULE_PERMISSION,
            key=key,
            desired_state=on,
            module_id=module_id,
            **kwargs,
        )


@dataclass(frozen=True)
class PendingChanges:
    """
    Immutable staging buffer. Every operation returns a new buffer.

    Staging a change whose desired state equals the current state
    removes any pending entry for that slot, so toggling twice is a no-op.
    """

    changes: Tuple[Change, ...] = ()

    def stage(self, change: Change, current_state: bool) -> "PendingChanges":
        remaining = tuple(c for c in self.changes if c.slot != change.slot)
        if change.desired_state == current_state:
            return PendingChanges(remaining)
        return PendingChanges(remaining + (change,))

    def unstage(self, change: Change) -> "PendingChanges":
        return PendingChanges(tuple(c for c in self.changes if c.slot != change.slot))

    def clear(self) -> "PendingChanges":
        return PendingChanges()

    def pending_for(self, kind: ChangeKind, key: str, module_id: Optional[str] = None):
        if kind is ChangeKind.MODULE:
            module_id = key
        for change in self.changes:
            if change.slot == (kind, module_id, key):
                return change
        return None

    def as_changes(self) -> Tuple[Change, ...]:
        return self.changes

    def __iter__(self) -> Iterator[Change]:
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __bool__(self) -> bool:
        return bool(self.changes)
