"""
Clock abstractions for deterministic cache-age checks.

Cache validation needs to know "how old is this file right now?". Asking a
Clock object instead of calling datetime.now() directly lets tests pin "now"
to a fixed instant and exercise the staleness threshold without touching
real file timestamps or sleeping.
"""

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """
    Abstract time source protocol.

    **Conceptual**: A Clock is any object that can answer "what time is it?".
    Code that compares file modification times against a threshold accepts a
    Clock so that the comparison is reproducible in tests.

    **Usage**: pass a RealClock in production, a FrozenClock in tests.
    """

    def now(self) -> datetime:
        """
        Return the current time according to this clock.

        Returns:
            Timezone-aware datetime (UTC).
        """
        ...


class RealClock:
    """Clock backed by the system wall clock (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """
    Clock that always returns a fixed timestamp.

    **Usage**:
        clock = FrozenClock(datetime(2024, 9, 1, tzinfo=timezone.utc))
        clock.now()  # always 2024-09-01T00:00:00+00:00
    """

    def __init__(self, fixed_now: datetime):
        """
        Args:
            fixed_now: The datetime to return on every call to now().
                       Naive datetimes are interpreted as UTC.
        """
        if fixed_now.tzinfo is None:
            fixed_now = fixed_now.replace(tzinfo=timezone.utc)
        self._fixed_now = fixed_now

    def now(self) -> datetime:
        return self._fixed_now


def from_timestamp(epoch_seconds: float) -> datetime:
    """
    Convert a POSIX timestamp (e.g. os.stat().st_mtime) to an aware UTC datetime.

    Args:
        epoch_seconds: Seconds since the Unix epoch.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        OverflowError, OSError, ValueError: If the platform cannot represent
            the timestamp. Callers that treat this as "unknown age" catch it.
    """
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


def get_real_clock() -> Clock:
    """Factory for the production clock."""
    return RealClock()
