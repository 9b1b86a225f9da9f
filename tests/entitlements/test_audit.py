"""
Tests for Entitlements Audit — records, filters, paging
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from entitlements.audit.models import AuditFilter, AuditRecord, ChangeType, new_record
from entitlements.audit.sink import InMemoryAuditSink, iter_pages

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def _record(minutes=0, change_type=ChangeType.GRANT_DATA_PERMISSION, user="user-1",
            company="co-1", key="customers.view"):
    return new_record(
        actor_user_id="admin-1",
        affected_user_id=user,
        company_id=company,
        change_type=change_type,
        key=key,
        old_value=None,
        new_value=True,
        performed_at=NOW + timedelta(minutes=minutes),
    )


class TestAuditRecord:
    def test_new_record_assigns_uuid(self):
        record = _record()
        assert isinstance(record.record_id, uuid.UUID)
        assert record.record_id != _record().record_id

    def test_user_changes_require_affected_user(self):
        with pytest.raises(ValueError):
            _record(user=None)

    def test_provisioning_changes_have_no_affected_user(self):
        record = _record(user=None, change_type=ChangeType.PROVISION_MODULE, key="ingrid-ai")
        assert record.affected_user_id is None

    def test_records_are_immutable(self):
        record = _record()
        with pytest.raises(AttributeError):
            record.new_value = False

    def test_to_dict(self):
        payload = _record().to_dict()
        assert payload["change_type"] == "grant_data_permission"
        assert payload["performed_at"] == NOW.isoformat()
        assert uuid.UUID(payload["record_id"])

    def test_change_type_checked(self):
        with pytest.raises(ValueError):
            AuditRecord(
                record_id=uuid.uuid4(),
                actor_user_id="admin-1",
                affected_user_id="user-1",
                company_id="co-1",
                change_type="grant_data_permission",
                key="customers.view",
                old_value=None,
                new_value=True,
                reason="",
                performed_at=NOW,
            )


class TestAuditFilter:
    def test_window_is_half_open(self):
        audit_filter = AuditFilter(since=NOW, until=NOW + timedelta(minutes=5))
        assert audit_filter.matches(_record(0))
        assert audit_filter.matches(_record(4))
        assert not audit_filter.matches(_record(5))
        assert not audit_filter.matches(_record(-1))

    def test_inverted_window_rejected(self):
        with pytest.raises(ValueError):
            AuditFilter(since=NOW, until=NOW - timedelta(minutes=1))

    def test_field_filters(self):
        audit_filter = AuditFilter(
            company_id="co-1",
            affected_user_id="user-1",
            change_types={ChangeType.REVOKE_MODULE},
        )
        assert not audit_filter.matches(_record())
        assert audit_filter.matches(_record(change_type=ChangeType.REVOKE_MODULE))
        assert not audit_filter.matches(
            _record(change_type=ChangeType.REVOKE_MODULE, company="co-2")
        )


class TestInMemoryAuditSink:
    def test_newest_first(self):
        sink = InMemoryAuditSink()
        for minutes in (0, 10, 5):
            sink.append(_record(minutes, key=f"k{minutes}"))
        assert [r.key for r in sink.query(AuditFilter())] == ["k10", "k5", "k0"]

    def test_same_timestamp_keeps_append_order(self):
        sink = InMemoryAuditSink()
        sink.append(_record(key="first"))
        sink.append(_record(key="second"))
        assert [r.key for r in sink.query(AuditFilter())] == ["second", "first"]

    def test_offset_and_limit(self):
        sink = InMemoryAuditSink()
        for minutes in range(5):
            sink.append(_record(minutes, key=f"k{minutes}"))
        assert [r.key for r in sink.query(AuditFilter(), offset=1, limit=2)] == ["k3", "k2"]

    def test_iter_pages(self):
        sink = InMemoryAuditSink()
        for minutes in range(5):
            sink.append(_record(minutes))
        pages = list(iter_pages(sink, AuditFilter(), page_size=2))
        assert [len(p) for p in pages] == [2, 2, 1]

    def test_iter_pages_exact_multiple(self):
        sink = InMemoryAuditSink()
        for minutes in range(4):
            sink.append(_record(minutes))
        assert [len(p) for p in iter_pages(sink, AuditFilter(), page_size=2)] == [2, 2]

    def test_iter_pages_rejects_bad_size(self):
        with pytest.raises(ValueError):
            list(iter_pages(InMemoryAuditSink(), AuditFilter(), page_size=0))
