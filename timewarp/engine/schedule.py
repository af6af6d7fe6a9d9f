"""
Timer schedule for the timewarp virtual clock.

The schedule is an ordered mapping from clock time to an entry. Keys are
strictly unique: an insertion that lands on an occupied instant is moved
one tick later, repeatedly, until it finds a free one. Timers nominally
due at the same instant therefore keep the order in which they were
scheduled.

Entries refer to their timer weakly. An entry is either LIVE or DETACHED,
and every reader goes through ScheduleEntry.timer, which yields None for a
detached entry or for a timer that no longer exists.
"""

from __future__ import annotations

import weakref
from bisect import bisect_right, insort
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from timewarp.engine.timer import Timer

TICK = timedelta(microseconds=1)


class EntryState(Enum):
    LIVE = "live"
    DETACHED = "detached"


@dataclass(eq=False)
class ScheduleEntry:
    """
    One slot in the schedule.
    """

    key: datetime
    state: EntryState
    _ref: weakref.ReferenceType[Timer] | None

    @classmethod
    def live(cls, key: datetime, timer: Timer) -> ScheduleEntry:
        return cls(key=key, state=EntryState.LIVE, _ref=weakref.ref(timer))

    @property
    def timer(self) -> Timer | None:
        """
        The referenced timer, or None if the entry is detached or the
        timer has been collected.
        """
        if self.state is EntryState.DETACHED or self._ref is None:
            return None
        return self._ref()

    def refers_to(self, timer: Timer) -> bool:
        return self.timer is timer

    def detach(self) -> None:
        self.state = EntryState.DETACHED
        self._ref = None

    def is_pending(self) -> bool:
        """
        True if the entry refers to a timer that may still fire.
        """
        timer = self.timer
        return timer is not None and not timer.cancelled


class Schedule:
    """
    Entries ordered by clock time.

    Positions returned by upper_bound() are indices into the key order and
    stay valid until the next insertion or erasure.
    """

    def __init__(self) -> None:
        self._keys: list[datetime] = []
        self._entries: dict[datetime, ScheduleEntry] = {}

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[ScheduleEntry]:
        for key in self._keys:
            yield self._entries[key]

    def keys(self) -> list[datetime]:
        return list(self._keys)

    def first_key(self) -> datetime | None:
        return self._keys[0] if self._keys else None

    def free_key(
        self, key: datetime, *pending: Mapping[datetime, object]
    ) -> datetime:
        """
        Return 'key', or the first instant after it that is occupied
        neither in the schedule nor in any of the 'pending' mappings.
        """
        while key in self._entries or any(key in other for other in pending):
            key += TICK
        return key

    def insert(self, key: datetime, timer: Timer) -> datetime:
        """
        Schedule 'timer' at 'key' or the first free tick after it.
        Returns the key actually used.
        """
        key = self.free_key(key)
        insort(self._keys, key)
        self._entries[key] = ScheduleEntry.live(key, timer)
        return key

    def merge(self, buffer: Mapping[datetime, Timer]) -> None:
        for key, timer in buffer.items():
            self.insert(key, timer)

    def upper_bound(self, t: datetime) -> int:
        """
        Position of the first entry with a key strictly after 't'.
        """
        return bisect_right(self._keys, t)

    def entry_at(self, position: int) -> ScheduleEntry:
        return self._entries[self._keys[position]]

    def entries_before(self, position: int) -> list[ScheduleEntry]:
        return [self._entries[key] for key in self._keys[:position]]

    def erase_before(self, position: int) -> None:
        for key in self._keys[:position]:
            del self._entries[key]
        del self._keys[:position]

    def detach(self, timer: Timer) -> int:
        """
        Detach every entry referring to 'timer'. Keys are left in place.
        Returns the number of entries detached.
        """
        detached = 0
        for entry in self._entries.values():
            if entry.refers_to(timer):
                entry.detach()
                detached += 1
        return detached

    def timers(self) -> Iterable[Timer]:
        """
        Live timers in key order, cancelled ones included.
        """
        for entry in self:
            timer = entry.timer
            if timer is not None:
                yield timer
