"""
Entitlements — Per-(User, Company) Serialization
=================================================
Mutations for the same (user_id, company_id) pair are serialized;
different pairs proceed in parallel. Company-level provisioning uses
the key (None, company_id) from the same registry.

Acquisition is bounded: a holder that does not release within the
timeout surfaces ConcurrentModificationRetry to the caller.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, Optional, Tuple

from entitlements.errors import ConcurrentModificationRetry

LockKey = Tuple[Optional[str], str]


class UserLockRegistry:
    def __init__(self, timeout_seconds: float = 5.0) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive.")
        self._timeout = timeout_seconds
        self._registry_lock = Lock()
        self._locks: Dict[LockKey, Lock] = {}

    def _lock_for(self, key: LockKey) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, user_id: Optional[str], company_id: str) -> Iterator[None]:
        lock = self._lock_for((user_id, company_id))
        if not lock.acquire(timeout=self._timeout):
            raise ConcurrentModificationRetry(user_id, company_id)
        try:
            yield
        finally:
            lock.release()

    def hold_company(self, company_id: str):
        return self.hold(None, company_id)

    def is_held(self, user_id: Optional[str], company_id: str) -> bool:
        with self._registry_lock:
            lock = self._locks.get((user_id, company_id))
        return lock is not None and lock.locked()
