"""
Clock implementations.

The store asks a clock for the timestamp of each appended event, and
time-dependent business rules ask the same clock for "now".
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock:
    """
    Manually driven clock.

    In production: not used.
    In tests: pin "now" and advance it explicitly so retention periods and
    expiry windows are exact.
    """

    def __init__(self, current: Optional[datetime] = None) -> None:
        self.current = current or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        """Get current timestamp without advancing."""
        return self.current

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward and return the new time."""
        if delta < timedelta(0):
            raise ValueError("DeterministicClock cannot move backwards")
        self.current = self.current + delta
        return self.current
