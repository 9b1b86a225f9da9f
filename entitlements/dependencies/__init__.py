"""
Entitlements Dependencies - Public API
======================================
"""

from entitlements.dependencies.resolver import DependencyResolver

__all__ = [
    "DependencyResolver",
]
