"""
Entitlements Resolution - Public API
====================================
"""

from entitlements.resolution.models import (
    EffectivePermissionSet,
    PermissionSource,
    SourceInfo,
)
from entitlements.resolution.resolver import PermissionResolver

__all__ = [
    "EffectivePermissionSet",
    "PermissionSource",
    "SourceInfo",
    "PermissionResolver",
]
