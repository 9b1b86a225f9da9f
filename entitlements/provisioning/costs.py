"""
Entitlements Provisioning — Company Cost Summary
=================================================
Licensed cost bills the seats a company bought; actual cost bills the
users who currently hold an active grant for the module. Only enabled
modules contribute.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Tuple

from entitlements.catalog.models import Catalog
from entitlements.grants.store import GrantStore
from entitlements.provisioning.store import ProvisioningStore


@dataclass(frozen=True)
class ModuleCost:
    module_id: str
    name: str
    tier: str
    pricing_tier: str
    monthly_price: Decimal
    per_user_price: Decimal
    users_licensed: int
    users_with_access: int

    @property
    def licensed_cost(self) -> Decimal:
        return self.monthly_price + self.per_user_price * self.users_licensed

    @property
    def actual_cost(self) -> Decimal:
        return self.monthly_price + self.per_user_price * self.users_with_access

    @property
    def difference(self) -> Decimal:
        return self.licensed_cost - self.actual_cost


@dataclass(frozen=True)
class CompanyCostSummary:
    company_id: str
    modules: Tuple[ModuleCost, ...]

    @property
    def total_licensed_cost(self) -> Decimal:
        return sum((m.licensed_cost for m in self.modules), Decimal("0"))

    @property
    def total_actual_cost(self) -> Decimal:
        return sum((m.actual_cost for m in self.modules), Decimal("0"))

    @property
    def difference(self) -> Decimal:
        return self.total_licensed_cost - self.total_actual_cost

    def count_by_tier(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for m in self.modules:
            counts[m.tier] = counts.get(m.tier, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company_id": self.company_id,
            "modules": [
                {
                    "module_id": m.module_id,
                    "name": m.name,
                    "tier": m.tier,
                    "pricing_tier": m.pricing_tier,
                    "users_licensed": m.users_licensed,
                    "users_with_access": m.users_with_access,
                    "licensed_cost": str(m.licensed_cost),
                    "actual_cost": str(m.actual_cost),
                }
                for m in self.modules
            ],
            "total_licensed_cost": str(self.total_licensed_cost),
            "total_actual_cost": str(self.total_actual_cost),
            "difference": str(self.difference),
            "count_by_tier": self.count_by_tier(),
        }


def company_cost_summary(
    catalog: Catalog,
    store: ProvisioningStore,
    grant_store: GrantStore,
    company_id: str,
    now: datetime,
) -> CompanyCostSummary:
    costs = []
    for record in store.list_for_company(company_id):
        if not record.is_enabled:
            continue
        module = catalog.find_module(record.module_id)
        if module is None:
            continue
        users = {
            g.user_id
            for g in grant_store.list_company_module_grants(company_id, record.module_id)
            if g.is_active(now)
        }
        costs.append(ModuleCost(
            module_id=module.module_id,
            name=module.name,
            tier=module.tier.value,
            pricing_tier=record.pricing_tier.value,
            monthly_price=record.monthly_price,
            per_user_price=record.per_user_price,
            users_licensed=record.users_licensed,
            users_with_access=len(users),
        ))
    costs.sort(key=lambda m: catalog.get_module(m.module_id).sort_key())
    return CompanyCostSummary(company_id=company_id, modules=tuple(costs))
