"""
Entitlements Time — Public API
===============================
Explicit clock protocol. Expiry is always evaluated against an
injected clock, never against datetime.now() in engine logic.
"""

from entitlements.time.clock import Clock, FixedClock, SystemClock

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
]
