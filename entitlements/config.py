"""
Entitlements — Runtime Configuration
=====================================
Tunables for the engine. Defaults are usable without Django; when the
engine is wired from a Django project, values come from the
ENTITLEMENTS dict in settings.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class EntitlementsConfig:
    lock_timeout_seconds: float = 5.0
    audit_page_size: int = 50
    catalog_cache_seconds: Optional[int] = None

    def __post_init__(self):
        if self.lock_timeout_seconds <= 0:
            raise ValueError("lock_timeout_seconds must be positive.")
        if self.audit_page_size <= 0:
            raise ValueError("audit_page_size must be positive.")
        if self.catalog_cache_seconds is not None and self.catalog_cache_seconds <= 0:
            raise ValueError("catalog_cache_seconds must be positive or None.")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "EntitlementsConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown ENTITLEMENTS settings: {unknown}")
        return cls(**dict(values))

    @classmethod
    def from_django_settings(cls) -> "EntitlementsConfig":
        from django.conf import settings

        return cls.from_mapping(getattr(settings, "ENTITLEMENTS", {}))
