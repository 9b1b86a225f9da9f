"""
Entitlements Audit - Sink Protocol and In-Memory Sink
=====================================================
Append-only. Queries return records newest first.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Iterator, List, Protocol, Tuple

from entitlements.audit.models import AuditFilter, AuditRecord

logger = logging.getLogger("entitlements.audit")


class AuditSink(Protocol):
    def append(self, record: AuditRecord) -> None:
        ...

    def query(
        self, audit_filter: AuditFilter, offset: int = 0, limit: int = 50
    ) -> Tuple[AuditRecord, ...]:
        ...


class InMemoryAuditSink:
    def __init__(self) -> None:
        self._lock = Lock()
        self._records: List[AuditRecord] = []

    def append(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)
        logger.info(
            "audit %s key=%s user=%s company=%s by=%s",
            record.change_type.value,
            record.key,
            record.affected_user_id,
            record.company_id,
            record.actor_user_id,
        )

    def query(self, audit_filter, offset=0, limit=50):
        with self._lock:
            matching = [r for r in self._records if audit_filter.matches(r)]
        # stable on append order for identical timestamps
        indexed = sorted(
            enumerate(matching),
            key=lambda pair: (pair[1].performed_at, pair[0]),
            reverse=True,
        )
        return tuple(r for _, r in indexed[offset:offset + limit])

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def iter_pages(
    sink: AuditSink, audit_filter: AuditFilter, page_size: int
) -> Iterator[Tuple[AuditRecord, ...]]:
    """Yield non-empty pages of matching records until the sink is exhausted."""
    if page_size <= 0:
        raise ValueError("page_size must be positive.")
    offset = 0
    while True:
        page = sink.query(audit_filter, offset=offset, limit=page_size)
        if not page:
            return
        yield page
        if len(page) < page_size:
            return
        offset += page_size
