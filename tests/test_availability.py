"""
Tests for the availability calculator.
"""

import pendulum
import pytest

from bookingrules.domain.exceptions import ValidationError
from bookingrules.domain.models import TimeSlot
from bookingrules.services.availability import AvailabilityCalculator, merge_slots

TZ = "Asia/Seoul"
DAY = pendulum.date(2025, 3, 10)


def slot(start: str, end: str) -> TimeSlot:
    return TimeSlot.of(pendulum.parse(f"2025-03-10 {start}", tz=TZ), pendulum.parse(f"2025-03-10 {end}", tz=TZ))


class TestAvailabilityCalculator:
    """Tests for AvailabilityCalculator."""

    def test_free_blocks_no_bookings(self):
        """Test that an empty day is one block of opening hours."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=17, timezone=TZ)

        blocks = calculator.free_blocks(DAY, [])

        assert blocks == [slot("09:00", "17:00")]
        assert blocks[0].duration_minutes() == 480

    def test_free_blocks_with_bookings(self):
        """Test subtracting bookings from opening hours."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=17, timezone=TZ)

        # Booked 10:00-11:00 and 14:00-15:00
        blocks = calculator.free_blocks(DAY, [slot("14:00", "15:00"), slot("10:00", "11:00")])

        assert blocks == [
            slot("09:00", "10:00"),
            slot("11:00", "14:00"),
            slot("15:00", "17:00"),
        ]

    def test_bookings_outside_opening_hours_ignored(self):
        """Test clipping to the opening block."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=17, timezone=TZ)

        blocks = calculator.free_blocks(DAY, [slot("07:00", "09:30"), slot("18:00", "19:00")])

        assert blocks == [slot("09:30", "17:00")]

    def test_short_gaps_dropped(self):
        """Test the minimum duration filter."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=12, timezone=TZ)

        blocks = calculator.free_blocks(
            DAY, [slot("09:20", "11:00")], min_duration_minutes=30
        )

        assert blocks == [slot("11:00", "12:00")]

    def test_fully_booked(self):
        """Test a day with no free time."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=12, timezone=TZ)

        assert calculator.free_blocks(DAY, [slot("08:00", "13:00")]) == []

    def test_sub_minute_gap_skipped(self):
        """Test that a gap of a few seconds does not become a slot."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=12, timezone=TZ)
        early = TimeSlot.of(
            pendulum.parse("2025-03-10 09:00", tz=TZ), pendulum.parse("2025-03-10 10:00:30", tz=TZ)
        )
        late = TimeSlot.of(
            pendulum.parse("2025-03-10 10:00:45", tz=TZ), pendulum.parse("2025-03-10 12:00", tz=TZ)
        )

        assert calculator.free_blocks(DAY, [early, late], min_duration_minutes=1) == []

    def test_bookable_slots(self):
        """Test cutting free blocks into fixed-length slots."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=22, timezone=TZ)

        slots = calculator.bookable_slots(
            DAY, [slot("10:00", "11:00"), slot("14:00", "15:00")], duration_minutes=60, step_minutes=30
        )

        assert len(slots) == 19
        assert slots[0] == slot("09:00", "10:00")
        assert slots[1] == slot("11:00", "12:00")
        assert slots[-1] == slot("21:00", "22:00")

    def test_midnight_close(self):
        """Test that a 24:00 close stays on the same date."""
        calculator = AvailabilityCalculator(opening_hour=9, closing_hour=24, timezone=TZ)

        block = calculator.opening_block(DAY)

        assert block.end == pendulum.parse("2025-03-10 23:59", tz=TZ)

    def test_invalid_hours(self):
        """Test constructor validation."""
        with pytest.raises(ValidationError):
            AvailabilityCalculator(opening_hour=18, closing_hour=9)
        with pytest.raises(ValidationError):
            AvailabilityCalculator(opening_hour=9, closing_hour=25)


class TestMergeSlots:
    """Tests for merge_slots."""

    def test_merge_adjacent_and_overlapping(self):
        """Test merging touching and overlapping slots."""
        merged = merge_slots([slot("10:00", "11:00"), slot("09:00", "10:00"), slot("10:30", "12:00")])

        assert merged == [slot("09:00", "12:00")]

    def test_disjoint_slots_kept(self):
        """Test that separate slots stay separate and sorted."""
        merged = merge_slots([slot("14:00", "15:00"), slot("09:00", "10:00")])

        assert merged == [slot("09:00", "10:00"), slot("14:00", "15:00")]

    def test_empty(self):
        """Test the empty input."""
        assert merge_slots([]) == []
