"""Unit tests for time parsing, interval overlap, and the slot grid."""

import itertools

import pytest

from photobooking.booking.timeslots import (
    SlotGrid,
    TimeSlot,
    duration_minutes,
    from_minutes,
    normalize_time,
    overlaps,
    to_minutes,
)


class TestNormalizeTime:
    def test_pads_single_digit_hour(self):
        assert normalize_time("9:00") == "09:00"

    def test_keeps_padded_value(self):
        assert normalize_time("18:30") == "18:30"

    def test_strips_whitespace(self):
        assert normalize_time(" 7:05 ") == "07:05"

    @pytest.mark.parametrize("value", ["24:00", "12:60", "9", "09:5", "ab:cd", "", "12:00:00"])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            normalize_time(value)

    def test_rejects_non_string(self):
        with pytest.raises(ValueError):
            normalize_time(900)  # type: ignore[arg-type]


class TestMinuteConversion:
    def test_to_minutes(self):
        assert to_minutes("09:00") == 540
        assert to_minutes("18:00") == 1080
        assert to_minutes("00:00") == 0

    def test_from_minutes(self):
        assert from_minutes(570) == "09:30"
        assert from_minutes(0) == "00:00"

    def test_from_minutes_out_of_range(self):
        with pytest.raises(ValueError):
            from_minutes(24 * 60)
        with pytest.raises(ValueError):
            from_minutes(-1)

    def test_duration(self):
        assert duration_minutes("10:00", "11:30") == 90
        assert duration_minutes("11:00", "10:00") == -60


class TestOverlaps:
    def test_partial_overlap(self):
        assert overlaps("10:00", "11:00", "10:30", "11:30")

    def test_containment(self):
        assert overlaps("09:00", "12:00", "10:00", "11:00")

    def test_identical(self):
        assert overlaps("10:00", "11:00", "10:00", "11:00")

    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps("10:00", "11:00", "11:00", "12:00")
        assert not overlaps("11:00", "12:00", "10:00", "11:00")

    def test_disjoint(self):
        assert not overlaps("09:00", "10:00", "14:00", "15:00")

    def test_symmetry(self):
        """overlaps(A, B) == overlaps(B, A) for every pair on a half-hour grid."""
        points = [from_minutes(m) for m in range(8 * 60, 13 * 60 + 1, 30)]
        intervals = [(a, b) for a, b in itertools.combinations(points, 2)]
        for first, second in itertools.product(intervals, repeat=2):
            assert overlaps(*first, *second) == overlaps(*second, *first)

    def test_timeslot_method(self):
        assert TimeSlot("10:00", "11:00").overlaps(TimeSlot("10:30", "11:30"))
        assert TimeSlot("10:00", "11:00").duration == 60


class TestSlotGrid:
    def test_business_day_hourly(self):
        slots = list(SlotGrid("09:00", "18:00", 60, 30))
        assert slots[0] == TimeSlot("09:00", "10:00")
        assert slots[-1] == TimeSlot("17:00", "18:00")
        # 09:00, 09:30, ..., 17:00
        assert len(slots) == 17

    def test_every_slot_has_requested_duration(self):
        assert all(slot.duration == 90 for slot in SlotGrid("09:00", "18:00", 90))

    def test_ascending_start_times(self):
        starts = [slot.start_time for slot in SlotGrid("09:00", "18:00", 45)]
        assert starts == sorted(starts)

    def test_restartable(self):
        grid = SlotGrid("09:00", "18:00", 60)
        assert list(grid) == list(grid)

    def test_duration_longer_than_window_is_empty(self):
        assert list(SlotGrid("09:00", "18:00", 600)) == []

    def test_duration_equal_to_window(self):
        assert list(SlotGrid("09:00", "18:00", 540)) == [TimeSlot("09:00", "18:00")]

    @pytest.mark.parametrize("duration,step", [(0, 30), (-30, 30), (60, 0)])
    def test_rejects_non_positive(self, duration, step):
        with pytest.raises(ValueError):
            SlotGrid("09:00", "18:00", duration, step)
