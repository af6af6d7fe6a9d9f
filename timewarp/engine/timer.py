"""
Timers for the timewarp virtual clock.

A timer is passive data owned by the caller. The clock only ever holds a
weak reference to it, reads its fields, and hands it back when it fires.
Identity is the object itself: two timers with the same delay are two
distinct schedule entries.
"""

from dataclasses import dataclass, field
from datetime import timedelta


@dataclass(eq=False)
class Timer:
    """
    A relative delay, an optional repeat, and a cancellation flag.

    Timers are expressed in clock time: a 30 minute timer added at 10:00
    elapses at 10:30, and if it repeats, at 11:00, 11:30 and so on until
    cancelled.
    """

    delay: timedelta
    repeats: bool = False
    cancelled: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if self.repeats and self.delay <= timedelta(0):
            raise ValueError(
                f"A repeating timer needs a positive delay, got {self.delay}"
            )

    def cancel(self) -> None:
        """
        Mark the timer cancelled. The clock sweeps it on the next advance.
        """
        self.cancelled = True
