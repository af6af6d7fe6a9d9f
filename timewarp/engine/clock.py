"""
Virtual clock for the timewarp engine.

The clock sits on top of a reference clock. By default it follows its
reference, but it can change speed, stop, or jump back and forth. At any
given moment it is an affine function of the reference.

It also keeps a schedule of timers expressed in its own time. Back in
the reference world the caller can wait for the next timer to strike, and
after jumping the clock it can find out which timers elapsed during the
jump.

The clock does not sleep and does not read any OS timer by itself. The
caller owns the event loop: it sleeps for the returned snooze and then
calls set() with the new clock time.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from timewarp.engine.reference import SystemReference
from timewarp.engine.schedule import Schedule
from timewarp.engine.timer import Timer
from timewarp.engine.transform import AffineTransform

logger = logging.getLogger(__name__)

# Snooze reported when nothing is scheduled: poll again later.
IDLE_SNOOZE = timedelta(hours=1)


@dataclass
class Ramifications:
    """
    The outcome of moving the clock. See Clock.set().
    """

    elapsed: list[Timer] = field(default_factory=list)
    snooze: timedelta = IDLE_SNOOZE


class Clock:
    """
    A virtual clock with a timer schedule.

    Not thread-safe. One logical owner drives it.
    """

    def __init__(self, reference: Callable[[], datetime] | None = None) -> None:
        self._reference = reference if reference is not None else SystemReference()
        self._transform = AffineTransform.identity()
        self._schedule = Schedule()

    def __copy__(self):
        raise TypeError("Clock instances cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("Clock instances cannot be copied")

    @property
    def transform(self) -> AffineTransform:
        return self._transform

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    def change(self, a: datetime, b: datetime, v: float) -> None:
        """
        Make what is clock time 'a' become 'b', and run at speed 'v'
        (0 for a stopped clock, 1 for normal speed and so on).

        The a->b shift is relative to the current clock, not to the
        reference. The speed is absolute: saying 2 twice does not make the
        clock four times faster than the reference.

        Neither a nor b has to be the current time. They only form a
        duration. Scheduled timers keep their clock-time keys.
        """
        self._transform = AffineTransform.compose(self._transform, b - a, v)
        logger.debug(
            "Clock changed: shift=%s speed=%s offset=%s",
            b - a,
            v,
            self._transform.offset,
        )

    def at(self, reference_instant: datetime) -> datetime:
        """
        Translate reference time to clock time.
        """
        return self._transform.apply_point(reference_instant)

    def now(self) -> datetime:
        """
        Current clock time, as seen through the reference clock.
        """
        return self.at(self._reference())

    def add(self, now: datetime, timer: Timer) -> timedelta:
        """
        Assuming clock time is 'now', schedule 'timer' to elapse after its
        delay.

        The clock does not own the timer and keeps only a weak reference to
        it. A timer may be added several times; every addition is a
        separate occurrence.

        Returns a snooze just like set() does, measured from 'now' to the
        earliest entry in the schedule, since the new timer may elapse
        before anything already scheduled.
        """
        key = self._schedule.insert(now + timer.delay, timer)
        logger.debug("Timer %r scheduled at %s", timer, key)

        head = self._schedule.first_key()
        return self._transform.apply_duration(head - now)

    def remove(self, timer: Timer) -> None:
        """
        Remove a timer from all its occurrences on the schedule.

        Not quite the same thing as cancelling it: the timer itself is left
        untouched, only the schedule lets go of it.
        """
        detached = self._schedule.detach(timer)
        logger.debug("Timer %r detached from %d entries", timer, detached)

    def set(self, t: datetime) -> Ramifications:
        """
        Move the clock to 't'.

        This consumes and returns the timers which elapsed at or before
        't', schedules the next occurrences of repeating timers, and tells
        the caller how long to wait (in reference time) until the next
        timer ought to strike.

        - The elapsed list is sorted by time.
        - Cancelled and removed timers are absent.
        - Repeating timers may be present several times. A once-a-day
          timer is listed ~365 times if the clock moves a year forward.
        - Moving backwards makes nothing elapse. There are no timers in
          the past, since moving forward past them consumed them.
        """
        self._expand_repeats(t)

        schedule = self._schedule
        cut = schedule.upper_bound(t)
        # Cancelled entries right after the cut are swept along with the
        # elapsed ones.
        while cut < len(schedule) and not schedule.entry_at(cut).is_pending():
            cut += 1

        snooze = IDLE_SNOOZE
        if cut < len(schedule):
            snooze = schedule.entry_at(cut).key - t

        elapsed = [
            entry.timer
            for entry in schedule.entries_before(cut)
            if entry.is_pending()
        ]
        schedule.erase_before(cut)

        logger.debug(
            "Clock set to %s: %d elapsed, %d swept, next in %s",
            t,
            len(elapsed),
            cut - len(elapsed),
            snooze,
        )
        return Ramifications(
            elapsed=elapsed, snooze=self._transform.apply_duration(snooze)
        )

    def _expand_repeats(self, t: datetime) -> None:
        """
        Give every repeating timer due at or before 't' occurrences up to
        and including the first one after 't'.

        Occurrences are collected in a side buffer and merged afterwards,
        so the scan never sees its own output.
        """
        schedule = self._schedule
        buffer: dict[datetime, Timer] = {}

        for entry in schedule.entries_before(schedule.upper_bound(t)):
            timer = entry.timer
            if timer is None or not timer.repeats or timer.cancelled:
                continue

            key = entry.key
            while key <= t:
                key = schedule.free_key(key + timer.delay, buffer)
                buffer[key] = timer

        schedule.merge(buffer)
