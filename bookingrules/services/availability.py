"""
Free-time calculation for a single bookable resource.

Pure logic over ``TimeSlot`` values: opening hours minus existing bookings
gives the free blocks, which can then be cut into bookable slots.
"""

from datetime import date, timedelta
from typing import List, Sequence

import pendulum

from ..domain.exceptions import ValidationError
from ..domain.models import TimeSlot, time_between, to_date


class AvailabilityCalculator:
    """
    Finds free time inside daily opening hours.

    Algorithm:
    1. Build the opening-hours block for the day
    2. Subtract every booking that overlaps it
    3. Drop free blocks shorter than the minimum duration
    """

    def __init__(self, opening_hour: int = 9, closing_hour: int = 22, timezone: str = "Asia/Seoul"):
        if not 0 <= opening_hour <= 23:
            raise ValidationError(f"opening_hour must be between 0 and 23, got {opening_hour}")
        if not 1 <= closing_hour <= 24:
            raise ValidationError(f"closing_hour must be between 1 and 24, got {closing_hour}")
        if closing_hour <= opening_hour:
            raise ValidationError("closing_hour must be later than opening_hour")
        self.opening_hour = opening_hour
        self.closing_hour = closing_hour
        self.timezone = timezone

    def opening_block(self, day: date) -> TimeSlot:
        """Opening hours of ``day``; a 24:00 close ends at 23:59."""
        value = to_date(day, "day")
        start = pendulum.datetime(value.year, value.month, value.day, self.opening_hour, tz=self.timezone)
        if self.closing_hour == 24:
            end = start.end_of("day").replace(second=0, microsecond=0)
        else:
            end = start.replace(hour=self.closing_hour)
        return TimeSlot(start=start, end=end)

    def free_blocks(
        self,
        day: date,
        bookings: Sequence[TimeSlot],
        min_duration_minutes: int = 30,
    ) -> List[TimeSlot]:
        """
        Maximal free periods of ``day``.

        Example:
        Open: 09:00 - 17:00
        Booked: [10:00-11:00, 14:00-15:00]
        Result: [09:00-10:00, 11:00-14:00, 15:00-17:00]
        """
        if min_duration_minutes <= 0:
            raise ValidationError("min_duration_minutes must be greater than zero")

        block = self.opening_block(day)
        overlapping = merge_slots([booking for booking in bookings if block.overlaps(booking)])

        # measured before building a TimeSlot; sub-minute gaps are not valid slots
        min_gap = timedelta(minutes=min_duration_minutes)
        free: List[TimeSlot] = []
        current_start = block.start
        for booking in overlapping:
            busy_start = max(booking.start, block.start)
            busy_end = min(booking.end, block.end)
            if time_between(current_start, busy_start) >= min_gap:
                free.append(TimeSlot(start=current_start, end=busy_start))
            current_start = max(current_start, busy_end)

        if time_between(current_start, block.end) >= min_gap:
            free.append(TimeSlot(start=current_start, end=block.end))

        return free

    def bookable_slots(
        self,
        day: date,
        bookings: Sequence[TimeSlot],
        duration_minutes: int = 60,
        step_minutes: int = 30,
    ) -> List[TimeSlot]:
        """Fixed-length candidate slots that fit entirely inside the free blocks."""
        if step_minutes <= 0:
            raise ValidationError("step_minutes must be greater than zero")

        candidates: List[TimeSlot] = []
        for block in self.free_blocks(day, bookings, min_duration_minutes=duration_minutes):
            start = block.start
            while start.add(minutes=duration_minutes) <= block.end:
                candidates.append(TimeSlot.of_duration(start, duration_minutes))
                start = start.add(minutes=step_minutes)
        return candidates


def merge_slots(slots: Sequence[TimeSlot]) -> List[TimeSlot]:
    """
    Merge overlapping or adjacent slots.

    Example: [09:00-10:00, 10:00-11:00] -> [09:00-11:00]
    """
    if not slots:
        return []

    ordered = sorted(slots, key=lambda slot: slot.start)
    merged: List[TimeSlot] = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if last.overlaps(current) or last.is_adjacent(current):
            merged[-1] = last.with_end(max(last.end, current.end))
        else:
            merged.append(current)
    return merged
