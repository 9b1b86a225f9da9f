from __future__ import annotations

from datetime import datetime, timezone

import pytest

from entitlements.audit.sink import InMemoryAuditSink
from entitlements.catalog.defaults import default_catalog
from entitlements.grants.store import InMemoryGrantStore
from entitlements.locking import UserLockRegistry
from entitlements.provisioning.manager import ProvisioningManager
from entitlements.provisioning.store import InMemoryProvisioningStore
from entitlements.time import FixedClock

NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def grant_store():
    return InMemoryGrantStore()


@pytest.fixture
def provisioning_store():
    return InMemoryProvisioningStore()


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def locks():
    return UserLockRegistry(timeout_seconds=0.5)


@pytest.fixture
def provisioning(catalog, provisioning_store, audit_sink, clock, locks):
    return ProvisioningManager(catalog, provisioning_store, audit_sink, clock, locks)
