"""
Immutable context objects handed to the policy engines.

Callers build these from whatever persistence or identity services they use;
the policies only read them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import FrozenSet, Optional

from pendulum import Date, DateTime

from .exceptions import ValidationError
from .models import DateRange, TimeSlot, time_between, to_date, to_datetime
from .money import Money, to_decimal
from .types import MemberStatus, ResourceType


@dataclass(frozen=True)
class PlanProfile:
    """Snapshot of the membership plan a member currently holds."""
    name: str
    discount_rate: Decimal = Decimal("0")
    allowed_resource_types: FrozenSet[ResourceType] = frozenset()
    max_simultaneous_reservations: int = 1
    advance_reservation_days: int = 7
    active: bool = True

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Plan name must not be blank")
        rate = to_decimal(self.discount_rate, "discount_rate")
        if not Decimal(0) <= rate <= Decimal(1):
            raise ValidationError(f"Plan discount rate must be between 0 and 1, got {rate}")
        if self.max_simultaneous_reservations < 0:
            raise ValidationError("max_simultaneous_reservations must not be negative")
        if self.advance_reservation_days < 0:
            raise ValidationError("advance_reservation_days must not be negative")
        object.__setattr__(self, "discount_rate", rate)
        object.__setattr__(self, "allowed_resource_types", frozenset(self.allowed_resource_types))

    def has_privilege(self, resource_type: ResourceType) -> bool:
        return resource_type in self.allowed_resource_types


@dataclass(frozen=True)
class MemberProfile:
    """Snapshot of a member as seen by the policy engines."""
    member_id: str
    status: MemberStatus = MemberStatus.ACTIVE
    plan: Optional[PlanProfile] = None
    membership_period: Optional[DateRange] = None

    def __post_init__(self):
        if not self.member_id or not self.member_id.strip():
            raise ValidationError("member_id must not be blank")

    def has_active_membership(self, on: date) -> bool:
        """Active status, an active plan and, if bounded, a period covering ``on``."""
        if not self.status.can_use_service():
            return False
        if self.plan is None or not self.plan.active:
            return False
        if self.membership_period is None:
            return True
        return self.membership_period.contains_date(on)

    def days_since_membership_expired(self, on: date) -> Optional[int]:
        """Whole days between the end of the membership period and ``on``, if it has ended."""
        if self.membership_period is None:
            return None
        today = to_date(on, "on")
        if today <= self.membership_period.end:
            return None
        return self.membership_period.end.diff(today).in_days()


@dataclass(frozen=True)
class ReservationContext:
    """Everything eligibility rules need to judge one reservation request."""
    member: MemberProfile
    resource_id: str
    resource_type: ResourceType
    slot: TimeSlot
    requested_at: DateTime
    current_active_reservations: int = 0
    resource_current_occupancy: int = 0
    resource_capacity: int = 1

    def __post_init__(self):
        if self.member is None:
            raise ValidationError("member must not be None")
        if not self.resource_id or not self.resource_id.strip():
            raise ValidationError("resource_id must not be blank")
        if self.resource_type is None:
            raise ValidationError("resource_type must not be None")
        if self.slot is None:
            raise ValidationError("slot must not be None")
        if self.current_active_reservations < 0:
            raise ValidationError("current_active_reservations must not be negative")
        if self.resource_current_occupancy < 0:
            raise ValidationError("resource_current_occupancy must not be negative")
        if self.resource_capacity <= 0:
            raise ValidationError(
                f"resource_capacity must be greater than zero, got {self.resource_capacity}"
            )
        object.__setattr__(self, "resource_id", self.resource_id.strip())
        object.__setattr__(self, "requested_at", to_datetime(self.requested_at, "requested_at"))

    @property
    def reservation_time(self) -> DateTime:
        return self.slot.start

    @property
    def reservation_date(self) -> Date:
        return self.slot.start.date()

    @property
    def lead_time(self) -> timedelta:
        return time_between(self.requested_at, self.reservation_time)

    @property
    def days_from_today(self) -> int:
        """Calendar days between the request date and the reservation date."""
        return self.requested_at.date().diff(self.reservation_date, False).in_days()

    def is_resource_full(self) -> bool:
        return self.resource_current_occupancy >= self.resource_capacity

    def remaining_capacity(self) -> int:
        return max(0, self.resource_capacity - self.resource_current_occupancy)

    def is_reservation_in_future(self) -> bool:
        return self.reservation_time > self.requested_at


@dataclass(frozen=True)
class DiscountContext:
    """Information discount strategies may consult."""
    purchase_date: Date
    member: Optional[MemberProfile] = None
    coupon_code: Optional[str] = None
    resource_types: FrozenSet[ResourceType] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "purchase_date", to_date(self.purchase_date, "purchase_date"))
        object.__setattr__(self, "resource_types", frozenset(self.resource_types))

    @property
    def plan(self) -> Optional[PlanProfile]:
        return self.member.plan if self.member else None

    def has_coupon(self) -> bool:
        return bool(self.coupon_code and self.coupon_code.strip())


@dataclass(frozen=True)
class CancellationContext:
    """
    Information cancellation policies need.

    ``cancellation_time`` is supplied by the caller so fee calculation stays
    deterministic.
    """
    reservation_time: DateTime
    cancellation_time: DateTime
    original_price: Money
    member: Optional[MemberProfile] = None
    is_first_time_cancellation: bool = False

    def __post_init__(self):
        object.__setattr__(
            self, "reservation_time", to_datetime(self.reservation_time, "reservation_time")
        )
        object.__setattr__(
            self, "cancellation_time", to_datetime(self.cancellation_time, "cancellation_time")
        )
        if self.original_price is None:
            raise ValidationError("original_price must not be None")

    @classmethod
    def create(
        cls,
        reservation_time: datetime,
        cancellation_time: datetime,
        original_price: Money,
        member: Optional[MemberProfile] = None,
        is_first_time_cancellation: bool = False,
    ) -> "CancellationContext":
        return cls(
            reservation_time=reservation_time,
            cancellation_time=cancellation_time,
            original_price=original_price,
            member=member,
            is_first_time_cancellation=is_first_time_cancellation,
        )

    @property
    def lead_time(self) -> timedelta:
        """Signed time left until the reservation; negative once it has started."""
        return time_between(self.cancellation_time, self.reservation_time)

    @property
    def hours_until_reservation(self) -> int:
        """Whole hours until the reservation, truncated toward zero."""
        return int(self.lead_time.total_seconds() / 3600)

    @property
    def minutes_until_reservation(self) -> int:
        return int(self.lead_time.total_seconds() / 60)

    def is_after_reservation_time(self) -> bool:
        return self.cancellation_time > self.reservation_time

    def is_same_day(self) -> bool:
        return self.cancellation_time.date() == self.reservation_time.date()
