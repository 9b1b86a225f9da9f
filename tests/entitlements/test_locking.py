"""
Tests for per-(user, company) serialization of mutations.
"""

import threading

import pytest

from entitlements.audit.models import AuditFilter
from entitlements.batch.changes import Change
from entitlements.batch.mutator import BatchMutator
from entitlements.errors import ConcurrentModificationRetry
from entitlements.locking import UserLockRegistry
from entitlements.roles import Role

COMPANY = "co-1"


class TestUserLockRegistry:
    def test_contended_key_times_out(self):
        locks = UserLockRegistry(timeout_seconds=0.05)
        with locks.hold("user-1", COMPANY):
            assert locks.is_held("user-1", COMPANY)
            with pytest.raises(ConcurrentModificationRetry) as exc:
                with locks.hold("user-1", COMPANY):
                    pass
        assert exc.value.code == "CONCURRENT_MODIFICATION_RETRY"
        assert not locks.is_held("user-1", COMPANY)

    def test_distinct_keys_do_not_contend(self):
        locks = UserLockRegistry(timeout_seconds=0.05)
        with locks.hold("user-1", COMPANY):
            with locks.hold("user-2", COMPANY):
                pass
            with locks.hold("user-1", "co-2"):
                pass
            with locks.hold_company(COMPANY):
                pass

    def test_released_on_error(self):
        locks = UserLockRegistry(timeout_seconds=0.05)
        with pytest.raises(RuntimeError):
            with locks.hold("user-1", COMPANY):
                raise RuntimeError("boom")
        with locks.hold("user-1", COMPANY):
            pass

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            UserLockRegistry(timeout_seconds=0)


class TestConcurrentCommits:
    def test_commit_waits_then_retries(
        self, catalog, grant_store, provisioning_store, audit_sink, clock
    ):
        locks = UserLockRegistry(timeout_seconds=0.05)
        mutator = BatchMutator(catalog, grant_store, provisioning_store, audit_sink, clock, locks)
        with locks.hold("user-1", COMPANY):
            with pytest.raises(ConcurrentModificationRetry):
                mutator.commit("user-1", COMPANY, "admin-1", [Change.data("customers.view", True)])
        assert len(audit_sink) == 0

    def test_parallel_commits_for_one_user_serialize(
        self, catalog, grant_store, provisioning_store, audit_sink, clock
    ):
        locks = UserLockRegistry(timeout_seconds=5.0)
        mutator = BatchMutator(catalog, grant_store, provisioning_store, audit_sink, clock, locks)
        keys = [
            "customers.view", "vendors.view", "gl_accounts.view",
            "expense_categories.view", "users.view", "company.settings.view",
        ]
        errors = []

        def worker(key):
            try:
                result = mutator.commit(
                    "user-1", COMPANY, "admin-1", [Change.data(key, True)],
                    actor_role=Role.ADMIN,
                )
                assert result.all_succeeded
            except Exception as exc:  # surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(k,)) for k in keys]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(audit_sink.query(AuditFilter(affected_user_id="user-1"), limit=100)) == len(keys)
        assert {g.permission_key for g in grant_store.list_data_grants("user-1", COMPANY)} == set(keys)
