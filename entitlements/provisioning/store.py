"""
Entitlements Provisioning - Store Protocol and In-Memory Store
==============================================================
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, Optional, Protocol, Tuple

from entitlements.provisioning.models import CompanyModuleProvisioning


class ProvisioningStore(Protocol):
    def get(self, company_id: str, module_id: str) -> Optional[CompanyModuleProvisioning]:
        ...

    def list_for_company(self, company_id: str) -> Tuple[CompanyModuleProvisioning, ...]:
        ...

    def save(self, record: CompanyModuleProvisioning) -> None:
        ...


class InMemoryProvisioningStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._records: Dict[Tuple[str, str], CompanyModuleProvisioning] = {}

    def get(self, company_id, module_id):
        with self._lock:
            return self._records.get((company_id, module_id))

    def list_for_company(self, company_id):
        with self._lock:
            rows = [r for (c, _), r in self._records.items() if c == company_id]
        return tuple(sorted(rows, key=lambda r: r.module_id))

    def save(self, record):
        with self._lock:
            self._records[record.identity()] = record
