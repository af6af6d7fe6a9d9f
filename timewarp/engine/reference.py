"""
Reference time sources for the timewarp clock.

A reference is any zero-argument callable returning a datetime. The clock
only ever asks it for "now"; it never sleeps on it.
"""

from datetime import UTC, datetime, timedelta


class SystemReference:
    """
    The host's wall clock, in UTC.
    """

    def __call__(self) -> datetime:
        return datetime.now(UTC)


class ManualReference:
    """
    A reference that only moves when told to.

    Useful for tests and for replaying scenarios without waiting.
    """

    def __init__(self, start: datetime) -> None:
        self._current: datetime = start

    def __call__(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> datetime:
        self._current += delta
        return self._current

    def set(self, instant: datetime) -> None:
        self._current = instant
