"""Deterministic clock for expiry-boundary tests."""

from __future__ import annotations

from datetime import datetime, timedelta


class FrozenClock:
    """Callable returning a fixed instant until advanced explicitly."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        """Move the clock forward by ``timedelta(**delta)`` and return it."""
        self.current += timedelta(**delta)
        return self.current

    def set(self, instant: datetime) -> None:
        self.current = instant
