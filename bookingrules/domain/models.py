"""
Interval value objects for reservation scheduling.

``TimeSlot`` is half-open (``[start, end)``) and confined to one calendar day
so back-to-back bookings never conflict. ``DateRange`` is closed on both
ends because whole-day ranges naturally include both boundary days.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

import pendulum
from pendulum import Date, DateTime

from .exceptions import ValidationError

DISPLAY_FORMAT = "YYYY-MM-DD HH:mm"
DATE_FORMAT = "YYYY-MM-DD"
MINIMUM_DURATION = timedelta(minutes=1)


def to_datetime(value: datetime, field_name: str) -> DateTime:
    """Normalize a datetime-like value to a pendulum ``DateTime``."""
    if value is None:
        raise ValidationError(f"{field_name} must not be None")
    if not isinstance(value, datetime):
        raise ValidationError(f"{field_name} must be a datetime, got {type(value).__name__}")
    # naive values would silently be read as UTC
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationError(f"{field_name} must be timezone-aware, got naive {value.isoformat()}")
    if isinstance(value, DateTime):
        return value
    return pendulum.instance(value)


def to_date(value: date, field_name: str) -> Date:
    """Normalize a date-like value to a pendulum ``Date``."""
    if value is None:
        raise ValidationError(f"{field_name} must not be None")
    if isinstance(value, datetime):
        raise ValidationError(f"{field_name} must be a date, not a datetime")
    if isinstance(value, Date):
        return value
    if isinstance(value, date):
        return pendulum.date(value.year, value.month, value.day)
    raise ValidationError(f"{field_name} must be a date, got {type(value).__name__}")


def time_between(start: datetime, end: datetime) -> timedelta:
    """Signed distance from ``start`` to ``end``; negative when ``end`` is earlier."""
    return timedelta(seconds=(end - start).total_seconds())


@dataclass(frozen=True)
class TimeSlot:
    """
    An immutable time interval within a single calendar day.

    Invariants: start < end, both fall on the same date, and the slot lasts
    at least one minute (durations are counted in whole minutes).
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        start = to_datetime(self.start, "start")
        end = to_datetime(self.end, "end")

        if start >= end:
            raise ValidationError(f"Start time {start} must be before end time {end}")
        if start.date() != end.date():
            raise ValidationError(
                f"Start and end must fall on the same date "
                f"(start date: {start.date()}, end date: {end.date()})"
            )
        if time_between(start, end) < MINIMUM_DURATION:
            raise ValidationError(f"Time slot must last at least one minute ({start} ~ {end})")

        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def of(cls, start: datetime, end: datetime) -> "TimeSlot":
        return cls(start=start, end=end)

    @classmethod
    def of_duration(cls, start: datetime, duration_minutes: int) -> "TimeSlot":
        start_time = to_datetime(start, "start")
        if duration_minutes <= 0:
            raise ValidationError(
                f"Duration must be greater than zero minutes, got {duration_minutes}"
            )
        return cls(start=start_time, end=start_time.add(minutes=duration_minutes))

    @classmethod
    def one_hour(cls, start: datetime) -> "TimeSlot":
        return cls.of_duration(start, 60)

    @classmethod
    def half_hour(cls, start: datetime) -> "TimeSlot":
        return cls.of_duration(start, 30)

    # Relations

    def overlaps(self, other: "TimeSlot | None") -> bool:
        """Check if this slot overlaps another; touching boundaries do not count."""
        if other is None:
            return False
        return self.start < other.end and other.start < self.end

    def is_adjacent(self, other: "TimeSlot | None") -> bool:
        """Check if one slot ends exactly where the other begins."""
        if other is None:
            return False
        return self.end == other.start or other.end == self.start

    def contains_instant(self, instant: datetime | None) -> bool:
        """Half-open containment: the start is included, the end is not."""
        if instant is None:
            return False
        moment = to_datetime(instant, "instant")
        return self.start <= moment < self.end

    def contains_slot(self, other: "TimeSlot | None") -> bool:
        if other is None:
            return False
        return other.start >= self.start and other.end <= self.end

    def is_before(self, other: "TimeSlot | None") -> bool:
        """
        Strictly before ``other``. Adjacent slots count as ordered, overlapping
        slots are never ordered.
        """
        if other is None or self.overlaps(other):
            return False
        return self.end <= other.start

    def is_after(self, other: "TimeSlot | None") -> bool:
        if other is None or self.overlaps(other):
            return False
        return self.start >= other.end

    def intersect(self, other: "TimeSlot") -> "TimeSlot | None":
        """
        Calculate the intersection of two slots.
        Returns None if there is no overlap or it is shorter than a minute.
        """
        if not self.overlaps(other):
            return None
        start, end = max(self.start, other.start), min(self.end, other.end)
        if time_between(start, end) < MINIMUM_DURATION:
            return None
        return TimeSlot(start=start, end=end)

    # Duration

    @property
    def duration(self) -> timedelta:
        return time_between(self.start, self.end)

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int(self.duration.total_seconds() // 60)

    def duration_hours(self) -> int:
        return self.duration_minutes() // 60

    # Status relative to an injected "now"

    def is_past(self, now: datetime) -> bool:
        return self.end < to_datetime(now, "now")

    def is_future(self, now: datetime) -> bool:
        return self.start > to_datetime(now, "now")

    def is_current(self, now: datetime) -> bool:
        return self.contains_instant(now)

    def is_today(self, now: datetime) -> bool:
        return self.start.date() == to_datetime(now, "now").date()

    # Transformations (each returns a re-validated instance)

    def with_start(self, new_start: datetime) -> "TimeSlot":
        return TimeSlot(start=new_start, end=self.end)

    def with_end(self, new_end: datetime) -> "TimeSlot":
        return TimeSlot(start=self.start, end=new_end)

    def move_by(self, minutes: int) -> "TimeSlot":
        return TimeSlot(start=self.start.add(minutes=minutes), end=self.end.add(minutes=minutes))

    def extend(self, minutes: int) -> "TimeSlot":
        if minutes < 0:
            raise ValidationError(f"Extension must not be negative, got {minutes}")
        return TimeSlot(start=self.start, end=self.end.add(minutes=minutes))

    def shorten(self, minutes: int) -> "TimeSlot":
        if minutes < 0:
            raise ValidationError(f"Shortening must not be negative, got {minutes}")
        new_end = self.end.subtract(minutes=minutes)
        if new_end <= self.start:
            raise ValidationError(
                f"Shortening by {minutes} minutes would end the slot at or before its start"
            )
        return TimeSlot(start=self.start, end=new_end)

    def __str__(self) -> str:
        return (
            f"{self.start.format(DISPLAY_FORMAT)} ~ {self.end.format(DISPLAY_FORMAT)} "
            f"({self.duration_minutes()}분)"
        )


@dataclass(frozen=True)
class DateRange:
    """
    An immutable range of whole days, inclusive on both ends.

    Invariant: start <= end (a single-day range is allowed).
    """
    start: Date
    end: Date

    def __post_init__(self):
        start = to_date(self.start, "start")
        end = to_date(self.end, "end")
        if start > end:
            raise ValidationError(f"Start date {start} must not be after end date {end}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def of(cls, start: date, end: date) -> "DateRange":
        return cls(start=start, end=end)

    @classmethod
    def single_day(cls, day: date) -> "DateRange":
        return cls(start=day, end=day)

    @classmethod
    def from_date_for(cls, start: date, days: int) -> "DateRange":
        """Range of ``days`` days beginning on ``start`` (start counts as day one)."""
        first = to_date(start, "start")
        if days < 1:
            raise ValidationError(f"Number of days must be at least 1, got {days}")
        return cls(start=first, end=first.add(days=days - 1))

    @classmethod
    def from_today_for(cls, days: int, today: date) -> "DateRange":
        return cls.from_date_for(today, days)

    # Relations (closed interval semantics)

    def overlaps(self, other: "DateRange | None") -> bool:
        if other is None:
            return False
        return self.start <= other.end and other.start <= self.end

    def contains_date(self, day: date | None) -> bool:
        if day is None:
            return False
        value = to_date(day, "day")
        return self.start <= value <= self.end

    def contains_range(self, other: "DateRange | None") -> bool:
        if other is None:
            return False
        return other.start >= self.start and other.end <= self.end

    def is_contained_by(self, other: "DateRange | None") -> bool:
        return other is not None and other.contains_range(self)

    def is_adjacent(self, other: "DateRange | None") -> bool:
        """Check if one range ends the day before the other begins."""
        if other is None:
            return False
        return self.end.add(days=1) == other.start or other.end.add(days=1) == self.start

    # Information

    def days(self) -> int:
        """Number of days in the range, counting both ends."""
        return self.start.diff(self.end).in_days() + 1

    def is_single_day(self) -> bool:
        return self.start == self.end

    def is_past(self, today: date) -> bool:
        return self.end < to_date(today, "today")

    def is_future(self, today: date) -> bool:
        return self.start > to_date(today, "today")

    def is_current(self, today: date) -> bool:
        return self.contains_date(today)

    # Transformations

    def with_start(self, new_start: date) -> "DateRange":
        return DateRange(start=new_start, end=self.end)

    def with_end(self, new_end: date) -> "DateRange":
        return DateRange(start=self.start, end=new_end)

    def extend(self, days: int) -> "DateRange":
        if days < 0:
            raise ValidationError(f"Extension must not be negative, got {days}")
        return DateRange(start=self.start, end=self.end.add(days=days))

    def shorten(self, days: int) -> "DateRange":
        if days < 0:
            raise ValidationError(f"Shortening must not be negative, got {days}")
        new_end = self.end.subtract(days=days)
        if new_end < self.start:
            raise ValidationError(
                f"Shortening by {days} days would end the range before its start"
            )
        return DateRange(start=self.start, end=new_end)

    def __str__(self) -> str:
        if self.is_single_day():
            return self.start.format(DATE_FORMAT)
        return f"{self.start.format(DATE_FORMAT)} ~ {self.end.format(DATE_FORMAT)} ({self.days()}일)"
