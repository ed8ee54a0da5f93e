"""Tests for time slots and calendar slot derivation."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from production.models import Calendar, Machine, TimeSlot
from production.errors import InvalidIntervalError


def at(hour, minute=0, second=0, microsecond=0):
    return datetime(2024, 8, 7, hour, minute, second, microsecond, tzinfo=timezone.utc)


def slot(start, end):
    return TimeSlot(start=start, end=end)


def make_calendar():
    return Calendar(slots=[
        slot(at(0), at(1)),
        slot(at(2), at(3, 30)),
        slot(at(5, 30), at(8)),
    ])


class TestTimeSlot:
    def test_duration(self):
        assert slot(at(2), at(3, 30)).duration == timedelta(minutes=90)

    def test_end_before_start_rejected(self):
        with pytest.raises(InvalidIntervalError):
            slot(at(3), at(2))

    def test_empty_slot_rejected(self):
        with pytest.raises(InvalidIntervalError):
            slot(at(3), at(3))

    def test_rejected_inside_calendar(self):
        with pytest.raises(InvalidIntervalError):
            Calendar(slots=[{"start": at(4), "end": at(1)}])

    def test_seconds_relative_to_reference(self):
        s = slot(at(1), at(2, 30))
        assert s.start_seconds(at(0)) == 3600
        assert s.end_seconds(at(0)) == 9000

    def test_seconds_truncate_sub_second(self):
        s = slot(at(0, 0, 10, 900000), at(0, 0, 20, 999999))
        assert s.start_seconds(at(0)) == 10
        assert s.end_seconds(at(0)) == 20

    def test_seconds_truncate_toward_zero_before_reference(self):
        s = slot(at(0, 0, 10, 500000), at(1))
        assert s.start_seconds(at(0, 0, 20)) == -9

    def test_naive_and_aware_bounds_rejected(self):
        with pytest.raises(ValidationError):
            TimeSlot(start=datetime(2024, 8, 7, 0), end=at(1))

    def test_immutable(self):
        s = slot(at(0), at(1))
        with pytest.raises(Exception):
            s.start = at(0, 30)


class TestProductiveSlots:
    def test_all_slots_from_calendar_start(self):
        cal = make_calendar()
        assert cal.productive_slots(at(0)) == cal.slots

    def test_first_slot_clamped_and_stored(self):
        cal = make_calendar()
        windows = cal.productive_slots(at(0, 30))
        assert len(windows) == 3
        assert windows[0] == slot(at(0, 30), at(1))
        assert cal.slots[0] == slot(at(0, 30), at(1))

    def test_past_slots_excluded_without_clamp(self):
        cal = make_calendar()
        windows = cal.productive_slots(at(1, 30))
        assert windows == [slot(at(2), at(3, 30)), slot(at(5, 30), at(8))]
        assert cal.slots == make_calendar().slots

    def test_slot_ending_at_start_excluded(self):
        cal = make_calendar()
        assert cal.productive_slots(at(1))[0] == slot(at(2), at(3, 30))

    def test_slot_starting_just_before_start_included(self):
        cal = make_calendar()
        windows = cal.productive_slots(at(2, 0, 1))
        assert windows[0] == slot(at(2, 0, 1), at(3, 30))

    def test_clamp_replaces_first_visible_slot(self):
        cal = make_calendar()
        cal.productive_slots(at(2, 30))
        assert cal.slots[0] == slot(at(0), at(1))
        assert cal.slots[1] == slot(at(2, 30), at(3, 30))

    def test_nothing_after_calendar_end(self):
        assert make_calendar().productive_slots(at(9)) == []

    def test_first_n(self):
        windows = make_calendar().productive_slots(at(0), 2)
        assert windows == [slot(at(0), at(1)), slot(at(2), at(3, 30))]

    def test_n_above_total_slot_count_is_empty(self):
        assert make_calendar().productive_slots(at(0), 4) == []

    def test_n_checked_against_total_then_visible_count(self):
        # 3 stored slots, only 2 still visible at 01:30
        cal = make_calendar()
        assert cal.productive_slots(at(1, 30), 3) == []
        assert len(cal.productive_slots(at(1, 30), 2)) == 2

    def test_empty_result_does_not_clamp(self):
        cal = make_calendar()
        assert cal.productive_slots(at(2, 30), 3) == []
        assert cal.slots[1] == slot(at(2), at(3, 30))

    def test_negative_n_rejected_before_clamp(self):
        cal = make_calendar()
        with pytest.raises(ValueError):
            cal.productive_slots(at(0, 30), -1)
        assert cal.slots == make_calendar().slots


class TestVisibleWindows:
    def test_pure_query(self):
        cal = make_calendar()
        windows = cal.visible_windows(at(0, 30))
        assert windows[0] == slot(at(0, 30), at(1))
        assert cal.slots[0] == slot(at(0), at(1))

    def test_explicit_clamp(self):
        cal = make_calendar()
        cal.clamp_first_window(at(0, 30))
        assert cal.slots[0] == slot(at(0, 30), at(1))

    def test_clamp_noop_when_first_starts_later(self):
        cal = make_calendar()
        cal.clamp_first_window(at(1, 30))
        assert cal.slots == make_calendar().slots

    def test_snapshot_is_independent(self):
        cal = make_calendar()
        copy = cal.snapshot()
        copy.productive_slots(at(0, 30))
        assert cal.slots[0] == slot(at(0), at(1))


class TestNonProductiveSlots:
    def test_gaps_between_slots(self):
        gaps = make_calendar().non_productive_slots(at(0), 2)
        assert gaps == [slot(at(1), at(2)), slot(at(3, 30), at(5, 30))]

    def test_too_many_requested_is_empty(self):
        assert make_calendar().non_productive_slots(at(0), 3) == []

    def test_leading_gap_when_first_slot_opens_later(self):
        gaps = make_calendar().non_productive_slots(at(1, 30))
        assert gaps == [slot(at(1, 30), at(2)), slot(at(3, 30), at(5, 30))]

    def test_no_leading_gap_inside_a_slot(self):
        gaps = make_calendar().non_productive_slots(at(0, 30), 1)
        assert gaps == [slot(at(1), at(2))]

    def test_does_not_mutate(self):
        cal = make_calendar()
        cal.non_productive_slots(at(0, 30))
        assert cal.slots[0] == slot(at(0), at(1))

    def test_single_slot_has_no_gaps(self):
        cal = Calendar(slots=[slot(at(0), at(1))])
        assert cal.non_productive_slots(at(0)) == []

    def test_adjacent_slots_have_no_gap(self):
        cal = Calendar(slots=[slot(at(0), at(1)), slot(at(1), at(2)), slot(at(3), at(4))])
        assert cal.non_productive_slots(at(0)) == [slot(at(2), at(3))]

    def test_empty_calendar(self):
        assert Calendar().non_productive_slots(at(0), 1) == []

    def test_negative_n_rejected(self):
        with pytest.raises(ValueError):
            make_calendar().non_productive_slots(at(0), -1)


class TestCalendarMutation:
    def test_add_slot_keeps_insertion_order(self):
        cal = Calendar()
        cal.add_slot(slot(at(5), at(6)))
        cal.add_slot(slot(at(1), at(2)))
        assert cal.slots == [slot(at(5), at(6)), slot(at(1), at(2))]

    def test_machine_exposes_calendar(self):
        m = Machine(machine_id=1, cycle_time=3600, calendar=make_calendar())
        assert m.calendar_size == 3
        assert m.slots[2] == slot(at(5, 30), at(8))
