"""
Entitlements Provisioning — Company Module Records
===================================================
A company either has a module switched on or it does not. That switch
is a hard gate: module-derived permissions are never active for any
user of a company whose provisioning record is disabled or absent.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from entitlements.catalog.constants import PricingTier


# ══════════════════════════════════════════════════════════════
# PROVISIONING RECORD (frozen)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CompanyModuleProvisioning:
    company_id: str
    module_id: str
    is_enabled: bool
    pricing_tier: PricingTier
    monthly_price: Decimal
    per_user_price: Decimal
    users_licensed: int
    enabled_by: str
    enabled_at: datetime
    billing_notes: str = ""

    def __post_init__(self):
        if not self.company_id or not isinstance(self.company_id, str):
            raise ValueError("company_id must be a non-empty string.")
        if not self.module_id or not isinstance(self.module_id, str):
            raise ValueError("module_id must be a non-empty string.")
        if not isinstance(self.pricing_tier, PricingTier):
            raise ValueError("pricing_tier must be PricingTier.")
        if self.monthly_price < 0 or self.per_user_price < 0:
            raise ValueError("prices must be non-negative.")
        if self.users_licensed < 0:
            raise ValueError("users_licensed must be non-negative.")

    def identity(self) -> Tuple[str, str]:
        return (self.company_id, self.module_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company_id": self.company_id,
            "module_id": self.module_id,
            "is_enabled": self.is_enabled,
            "pricing_tier": self.pricing_tier.value,
            "monthly_price": str(self.monthly_price),
            "per_user_price": str(self.per_user_price),
            "users_licensed": self.users_licensed,
            "enabled_by": self.enabled_by,
            "enabled_at": self.enabled_at.isoformat(),
            "billing_notes": self.billing_notes,
        }


# ══════════════════════════════════════════════════════════════
# PROVISIONING REQUEST
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ProvisioningConfig:
    """Operator input for provision_module; unset prices fall back to module defaults."""

    is_enabled: bool = True
    pricing_tier: PricingTier = PricingTier.STANDARD
    monthly_price: Optional[Decimal] = None
    per_user_price: Optional[Decimal] = None
    users_licensed: int = 0
    billing_notes: str = ""

    def __post_init__(self):
        if not isinstance(self.pricing_tier, PricingTier):
            object.__setattr__(self, "pricing_tier", PricingTier(self.pricing_tier))
        for name in ("monthly_price", "per_user_price"):
            value = getattr(self, name)
            if value is not None:
                value = Decimal(str(value))
                if value < 0:
                    raise ValueError(f"{name} must be non-negative.")
                object.__setattr__(self, name, value)
        if self.users_licensed < 0:
            raise ValueError("users_licensed must be non-negative.")
