"""
Unit tests for timewarp/engine/schedule.py
"""

from datetime import UTC, datetime, timedelta

from timewarp.engine.schedule import TICK, EntryState, Schedule, ScheduleEntry
from timewarp.engine.timer import Timer

T0 = datetime(2024, 2, 11, 10, 0, tzinfo=UTC)


def make_timer():
    return Timer(timedelta(minutes=1))


class TestSchedule:
    """Test suite for the Schedule class."""

    def test_initialization(self):
        schedule = Schedule()
        assert len(schedule) == 0
        assert schedule.first_key() is None
        assert schedule.keys() == []

    def test_insert_keeps_order(self):
        schedule = Schedule()
        late, early = make_timer(), make_timer()
        schedule.insert(T0 + timedelta(minutes=5), late)
        schedule.insert(T0, early)

        assert schedule.keys() == [T0, T0 + timedelta(minutes=5)]
        assert list(schedule.timers()) == [early, late]

    def test_insert_bumps_occupied_key(self):
        schedule = Schedule()
        first, second, third = make_timer(), make_timer(), make_timer()

        assert schedule.insert(T0, first) == T0
        assert schedule.insert(T0, second) == T0 + TICK
        assert schedule.insert(T0, third) == T0 + 2 * TICK
        assert list(schedule.timers()) == [first, second, third]

    def test_free_key_considers_pending_buffers(self):
        schedule = Schedule()
        schedule.insert(T0, make_timer())
        buffer = {T0 + TICK: make_timer()}

        assert schedule.free_key(T0, buffer) == T0 + 2 * TICK

    def test_upper_bound(self):
        schedule = Schedule()
        for minute in (0, 5, 10):
            schedule.insert(T0 + timedelta(minutes=minute), make_timer())

        assert schedule.upper_bound(T0 - TICK) == 0
        assert schedule.upper_bound(T0 + timedelta(minutes=5)) == 2
        assert schedule.upper_bound(T0 + timedelta(hours=1)) == 3

    def test_erase_before(self):
        schedule = Schedule()
        timers = [make_timer() for _ in range(3)]
        for minute, timer in enumerate(timers):
            schedule.insert(T0 + timedelta(minutes=minute), timer)

        schedule.erase_before(2)

        assert schedule.keys() == [T0 + timedelta(minutes=2)]
        assert T0 not in schedule
        assert list(schedule.timers()) == [timers[2]]

    def test_detach_keeps_key(self):
        schedule = Schedule()
        timer = make_timer()
        schedule.insert(T0, timer)
        schedule.insert(T0 + timedelta(minutes=1), timer)

        assert schedule.detach(timer) == 2
        assert len(schedule) == 2
        assert all(entry.state is EntryState.DETACHED for entry in schedule)
        assert all(entry.timer is None for entry in schedule)

    def test_merge(self):
        schedule = Schedule()
        timer = make_timer()
        schedule.merge({T0: timer, T0 + TICK: timer})
        assert schedule.keys() == [T0, T0 + TICK]


class TestScheduleEntry:
    """Test suite for the ScheduleEntry class."""

    def test_live_entry(self):
        timer = make_timer()
        entry = ScheduleEntry.live(T0, timer)
        assert entry.state is EntryState.LIVE
        assert entry.timer is timer
        assert entry.refers_to(timer)
        assert entry.is_pending()

    def test_cancelled_entry_is_not_pending(self):
        timer = make_timer()
        entry = ScheduleEntry.live(T0, timer)
        timer.cancel()
        assert entry.timer is timer
        assert not entry.is_pending()

    def test_detached_entry(self):
        timer = make_timer()
        entry = ScheduleEntry.live(T0, timer)
        entry.detach()
        assert entry.state is EntryState.DETACHED
        assert entry.timer is None
        assert not entry.refers_to(timer)
        assert not entry.is_pending()

    def test_entry_does_not_keep_timer_alive(self):
        import gc

        entry = ScheduleEntry.live(T0, make_timer())
        gc.collect()
        assert entry.timer is None
        assert not entry.is_pending()
