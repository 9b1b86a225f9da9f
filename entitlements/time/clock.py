"""
Entitlements Time — Explicit Clock Protocol
============================================
Grant expiry is terminal and evaluated at read time, so the
resolver, mutator and provisioning manager all take a Clock.

Tests use FixedClock and advance it past expires_at to observe
resolution changing without any write.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...  # pragma: no cover


class SystemClock:
    """Production clock — real system time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Test clock — returns a fixed timestamp until advanced.

    Usage:
        clock = FixedClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        clock.advance(days=1)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, **delta) -> datetime:
        """Move the clock forward by a timedelta expressed as keyword args."""
        self._fixed_dt = self._fixed_dt + timedelta(**delta)
        return self._fixed_dt

    def set(self, dt: datetime) -> None:
        if dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = dt
