"""
Entitlements Provisioning - Public API
======================================
"""

from entitlements.provisioning.costs import (
    CompanyCostSummary,
    ModuleCost,
    company_cost_summary,
)
from entitlements.provisioning.manager import ProvisioningManager
from entitlements.provisioning.models import (
    CompanyModuleProvisioning,
    ProvisioningConfig,
)
from entitlements.provisioning.store import (
    InMemoryProvisioningStore,
    ProvisioningStore,
)

__all__ = [
    "CompanyCostSummary",
    "ModuleCost",
    "company_cost_summary",
    "ProvisioningManager",
    "CompanyModuleProvisioning",
    "ProvisioningConfig",
    "InMemoryProvisioningStore",
    "ProvisioningStore",
]
