"""
Entitlements Catalog — Process-Wide Catalog Cache
==================================================
The catalog is loaded once per process through an injected loader and
served by reference. `invalidate()` is the deploy-time refresh hook.

Time is injected: an optional max age is measured against the clock,
never against the system time.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from threading import Lock
from typing import Any, Callable, Mapping, Optional

from entitlements.catalog.constants import ModuleTier, group_for_key
from entitlements.catalog.models import Catalog, Module, Permission, SubFeature
from entitlements.time import Clock, SystemClock

logger = logging.getLogger("entitlements.catalog")


CatalogLoader = Callable[[], Catalog]


class CatalogStore:
    """
    Thread-safe holder of the loaded Catalog.

    The loader runs at most once per cache period; concurrent readers
    during a reload wait for the same load instead of repeating it.
    """

    def __init__(
        self,
        loader: CatalogLoader,
        clock: Optional[Clock] = None,
        cache_seconds: Optional[int] = None,
    ) -> None:
        self._loader = loader
        self._clock = clock or SystemClock()
        self._max_age = (
            timedelta(seconds=cache_seconds) if cache_seconds else None
        )
        self._lock = Lock()
        self._catalog: Optional[Catalog] = None
        self._loaded_at: Optional[datetime] = None

    def get(self) -> Catalog:
        with self._lock:
            if self._catalog is None or self._is_stale():
                self._catalog = self._loader()
                self._loaded_at = self._clock.now_utc()
                logger.info("Loaded entitlement catalog %r", self._catalog)
            return self._catalog

    def invalidate(self) -> None:
        with self._lock:
            self._catalog = None
            self._loaded_at = None
        logger.info("Entitlement catalog cache invalidated")

    def _is_stale(self) -> bool:
        if self._max_age is None or self._loaded_at is None:
            return False
        return self._clock.now_utc() - self._loaded_at >= self._max_age


# ══════════════════════════════════════════════════════════════
# STATIC CONFIG LOADER
# ══════════════════════════════════════════════════════════════

def _permission_from_dict(data: Mapping[str, Any]) -> Permission:
    key = data["key"]
    return Permission(
        key=key,
        name=data.get("name") or key,
        group=data.get("group") or group_for_key(key),
        requires_permissions=frozenset(data.get("requires_permissions", ())),
        is_foundation=bool(data.get("is_foundation", True)),
        is_system_only=bool(data.get("is_system_only", False)),
        description=data.get("description", ""),
        display_order=int(data.get("display_order", 0)),
    )


def _module_from_dict(data: Mapping[str, Any]) -> Module:
    sub_features = []
    for item in data.get("optional_sub_features", ()):
        if isinstance(item, str):
            sub_features.append(SubFeature(key=item, name=item))
        else:
            sub_features.append(SubFeature(key=item["key"], name=item.get("name") or item["key"]))

    return Module(
        module_id=data["module_id"],
        name=data.get("name") or data["module_id"],
        tier=ModuleTier(data.get("tier", ModuleTier.STANDARD.value)),
        category=data.get("category", "general"),
        included_permissions=frozenset(data.get("included_permissions", ())),
        optional_sub_features=tuple(sub_features),
        requires_modules=frozenset(data.get("requires_modules", ())),
        default_monthly_price=Decimal(str(data.get("default_monthly_price", "0"))),
        default_per_user_price=Decimal(str(data.get("default_per_user_price", "0"))),
        is_system_locked=bool(data.get("is_system_locked", False)),
        description=data.get("description", ""),
    )


def catalog_from_dict(data: Mapping[str, Any]) -> Catalog:
    """
    Build a Catalog from a static config mapping:

        {"version": "...",
         "permissions": [{"key": ..., "requires_permissions": [...]}, ...],
         "modules": [{"module_id": ..., "tier": "premium", ...}, ...]}

    Optional sub-features may be given as bare keys or {key, name} dicts.
    """
    return Catalog(
        permissions=[_permission_from_dict(p) for p in data.get("permissions", ())],
        modules=[_module_from_dict(m) for m in data.get("modules", ())],
        version=str(data.get("version", "1")),
    )
