"""
Entitlements Audit - Public API
===============================
"""

from entitlements.audit.models import (
    COMPANY_LEVEL_CHANGES,
    AuditFilter,
    AuditRecord,
    ChangeType,
    new_record,
)
from entitlements.audit.sink import AuditSink, InMemoryAuditSink, iter_pages

__all__ = [
    "COMPANY_LEVEL_CHANGES",
    "AuditFilter",
    "AuditRecord",
    "ChangeType",
    "new_record",
    "AuditSink",
    "InMemoryAuditSink",
    "iter_pages",
]
