"""
Entitlements Batch - Public API
===============================
"""

from entitlements.batch.changes import Change, ChangeKind, PendingChanges
from entitlements.batch.mutator import BatchMutator, CommitResult, ItemFailure

__all__ = [
    "Change",
    "ChangeKind",
    "PendingChanges",
    "BatchMutator",
    "CommitResult",
    "ItemFailure",
]
