"""
Clock -- injectable time source.

Every timestamp the portal stores (last_saved_at, completed_at, reviewed_at,
acknowledged_at, expires_at, notification and audit created_at) comes from
a ``Clock`` handed to the service.  Nothing in the kernel reads the wall
clock on its own, so debounce windows and expiry dates are testable.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

# Default start for DeterministicClock: a Monday, mid-morning UTC.
PORTAL_EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Manually driven clock for tests and scripted runs.

    ``now()`` is stable until ``advance()`` or ``set_time()`` moves it, so
    two writes in the same test step share a timestamp unless the test says
    otherwise.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or PORTAL_EPOCH

    def now(self) -> datetime:
        return self._current

    def set_time(self, moment: datetime) -> None:
        if moment.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._current = moment

    def advance(self, seconds: float = 1, *, days: int = 0) -> datetime:
        """Move forward and return the new time."""
        self._current = self._current + timedelta(days=days, seconds=seconds)
        return self._current
