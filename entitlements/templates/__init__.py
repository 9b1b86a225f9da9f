"""
Entitlements Templates - Public API
===================================
"""

from entitlements.templates.engine import TemplateEngine
from entitlements.templates.models import (
    ApplyResult,
    PermissionTemplate,
    SkippedItem,
)
from entitlements.templates.store import (
    InMemoryTemplateStore,
    TemplateStore,
    default_templates,
)

__all__ = [
    "TemplateEngine",
    "ApplyResult",
    "PermissionTemplate",
    "SkippedItem",
    "InMemoryTemplateStore",
    "TemplateStore",
    "default_templates",
]
