"""
Leaf specifications that judge a ``ReservationContext``.

Every rule reads the request instant from ``context.requested_at`` rather
than the wall clock.
"""

from datetime import timedelta
from typing import FrozenSet, Iterable, Mapping, Optional

from ..domain.contexts import ReservationContext
from ..domain.exceptions import ValidationError
from ..domain.types import MemberStatus, ResourceType
from .specification import Specification

SATURDAY = 5
SUNDAY = 6


class ActiveMemberSpecification(Specification[ReservationContext]):
    """The member is active and, optionally, holds a valid membership."""

    def __init__(self, check_membership_validity: bool = True, allow_suspended: bool = False):
        self._check_membership_validity = check_membership_validity
        self._allow_suspended = allow_suspended

    @classmethod
    def standard(cls) -> "ActiveMemberSpecification":
        return cls(check_membership_validity=True, allow_suspended=False)

    @classmethod
    def status_only(cls) -> "ActiveMemberSpecification":
        return cls(check_membership_validity=False, allow_suspended=False)

    @classmethod
    def lenient(cls) -> "ActiveMemberSpecification":
        return cls(check_membership_validity=False, allow_suspended=True)

    def _status_ok(self, status: MemberStatus) -> bool:
        if status is MemberStatus.ACTIVE:
            return True
        return self._allow_suspended and status is MemberStatus.SUSPENDED

    def _membership_ok(self, context: ReservationContext) -> bool:
        member = context.member
        plan = member.plan
        if plan is None or not plan.active:
            return False
        if member.membership_period is None:
            return True
        return member.membership_period.contains_date(context.reservation_date)

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        if not self._status_ok(context.member.status):
            return False
        if self._check_membership_validity and not self._membership_ok(context):
            return False
        return True

    @property
    def description(self) -> str:
        text = "Active member"
        if self._allow_suspended:
            text += " (suspended members allowed)"
        if self._check_membership_validity:
            text += " with a valid membership"
        return text

    def failure_reason(self, context: ReservationContext) -> str:
        member = context.member
        if not self._status_ok(member.status):
            return f"Member {member.member_id} is {member.status.value}"
        if member.plan is None:
            return f"Member {member.member_id} has no membership plan"
        if not member.plan.active:
            return f"Membership plan '{member.plan.name}' is inactive"
        return f"Membership of {member.member_id} is not valid on {context.reservation_date}"


class MembershipPrivilegeSpecification(Specification[ReservationContext]):
    """
    The member's plan grants access to the requested resource type.

    With ``grace_period_days`` a recently expired membership is still accepted.
    """

    def __init__(
        self,
        check_date_validity: bool = True,
        grace_period_days: int = 0,
        required_privileges: Optional[Iterable[ResourceType]] = None,
    ):
        if grace_period_days < 0:
            raise ValidationError(f"Grace period must not be negative, got {grace_period_days}")
        self._check_date_validity = check_date_validity
        self._grace_period_days = grace_period_days
        self._required: Optional[FrozenSet[ResourceType]] = (
            frozenset(required_privileges) if required_privileges is not None else None
        )

    @classmethod
    def with_grace_period(cls, days: int = 7) -> "MembershipPrivilegeSpecification":
        return cls(check_date_validity=True, grace_period_days=days)

    @classmethod
    def privilege_only(cls) -> "MembershipPrivilegeSpecification":
        return cls(check_date_validity=False)

    def _privileges_to_check(self, context: ReservationContext) -> FrozenSet[ResourceType]:
        return self._required if self._required is not None else frozenset({context.resource_type})

    def _missing_privileges(self, context: ReservationContext):
        plan = context.member.plan
        return sorted(
            (rt for rt in self._privileges_to_check(context) if not plan.has_privilege(rt)),
            key=lambda rt: rt.value,
        )

    def _period_ok(self, context: ReservationContext) -> bool:
        member = context.member
        period = member.membership_period
        if period is None or period.contains_date(context.reservation_date):
            return True
        expired_days = member.days_since_membership_expired(context.reservation_date)
        return expired_days is not None and expired_days <= self._grace_period_days

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        plan = context.member.plan
        if plan is None or not plan.active:
            return False
        if self._missing_privileges(context):
            return False
        if self._check_date_validity and not self._period_ok(context):
            return False
        return True

    @property
    def description(self) -> str:
        text = "Membership grants the resource"
        if self._required:
            names = ", ".join(sorted(rt.display_name for rt in self._required))
            text += f" ({names})"
        if self._check_date_validity:
            text += " within the membership period"
        if self._grace_period_days:
            text += f" ({self._grace_period_days}-day grace period)"
        return text

    def failure_reason(self, context: ReservationContext) -> str:
        plan = context.member.plan
        if plan is None:
            return "No membership plan assigned"
        if not plan.active:
            return f"Membership plan '{plan.name}' is inactive"
        missing = self._missing_privileges(context)
        if missing:
            names = ", ".join(rt.display_name for rt in missing)
            return f"Plan '{plan.name}' does not include: {names}"
        return f"Reservation date {context.reservation_date} is outside the membership period"


class ResourceCapacitySpecification(Specification[ReservationContext]):
    """The resource still has room."""

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        return not context.is_resource_full()

    @property
    def description(self) -> str:
        return "Resource has remaining capacity"

    def failure_reason(self, context: ReservationContext) -> str:
        return (
            f"Resource {context.resource_id} is full "
            f"({context.resource_current_occupancy}/{context.resource_capacity})"
        )


class ValidReservationTimeSpecification(Specification[ReservationContext]):
    """The slot starts in the future and within ``max_advance_days``."""

    def __init__(self, max_advance_days: int = 365):
        if max_advance_days <= 0:
            raise ValidationError(
                f"max_advance_days must be greater than zero, got {max_advance_days}"
            )
        self._max_advance_days = max_advance_days

    @property
    def max_advance_days(self) -> int:
        return self._max_advance_days

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        latest = context.requested_at.add(days=self._max_advance_days)
        return context.requested_at < context.reservation_time < latest

    @property
    def description(self) -> str:
        return f"Valid reservation time (at most {self._max_advance_days} days ahead)"

    def failure_reason(self, context: ReservationContext) -> str:
        if not context.is_reservation_in_future():
            return "Reservation time has already passed"
        return f"Reservations open at most {self._max_advance_days} days in advance"


class SimultaneousReservationLimitSpecification(Specification[ReservationContext]):
    """The member stays under the plan's simultaneous reservation limit minus a buffer."""

    def __init__(self, buffer_count: int = 0):
        if buffer_count < 0:
            raise ValidationError(f"buffer_count must not be negative, got {buffer_count}")
        self._buffer_count = buffer_count

    @classmethod
    def strict(cls) -> "SimultaneousReservationLimitSpecification":
        return cls(buffer_count=1)

    def _effective_limit(self, context: ReservationContext) -> Optional[int]:
        plan = context.member.plan
        if plan is None:
            return None
        return plan.max_simultaneous_reservations - self._buffer_count

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        limit = self._effective_limit(context)
        return limit is not None and context.current_active_reservations < limit

    @property
    def description(self) -> str:
        text = "Simultaneous reservation limit"
        if self._buffer_count:
            text += f" (keeping {self._buffer_count} in reserve)"
        return text

    def failure_reason(self, context: ReservationContext) -> str:
        limit = self._effective_limit(context)
        if limit is None:
            return "No membership plan assigned"
        return (
            f"Simultaneous reservation limit reached "
            f"(current: {context.current_active_reservations}, max: {max(limit, 0)})"
        )


class AdvanceReservationLimitSpecification(Specification[ReservationContext]):
    """
    Advance-booking window.

    Checks, in order: minimum lead time, same-day bookings, the plan's
    advance days (plus ``bonus_days``) and optional per-resource-type limits.
    """

    def __init__(
        self,
        minimum_advance_hours: int = 2,
        allow_same_day: bool = True,
        use_plan_limit: bool = True,
        bonus_days: int = 0,
        resource_type_limits: Optional[Mapping[ResourceType, int]] = None,
    ):
        if minimum_advance_hours < 0:
            raise ValidationError(
                f"minimum_advance_hours must not be negative, got {minimum_advance_hours}"
            )
        if bonus_days < 0:
            raise ValidationError(f"bonus_days must not be negative, got {bonus_days}")
        self._minimum_advance = timedelta(hours=minimum_advance_hours)
        self._minimum_advance_hours = minimum_advance_hours
        self._allow_same_day = allow_same_day
        self._use_plan_limit = use_plan_limit
        self._bonus_days = bonus_days
        self._type_limits = dict(resource_type_limits or {})

    @classmethod
    def strict(cls) -> "AdvanceReservationLimitSpecification":
        return cls(minimum_advance_hours=24, allow_same_day=False)

    @classmethod
    def lenient(cls) -> "AdvanceReservationLimitSpecification":
        return cls(minimum_advance_hours=1)

    def _plan_limit(self, context: ReservationContext) -> Optional[int]:
        plan = context.member.plan
        if plan is None:
            return None
        return plan.advance_reservation_days + self._bonus_days

    def _first_failure(self, context: ReservationContext) -> Optional[str]:
        if context.lead_time < self._minimum_advance:
            return (
                f"Reservations must be made at least {self._minimum_advance_hours} hours ahead"
            )
        if not self._allow_same_day and context.days_from_today == 0:
            return "Same-day reservations are not allowed"
        if self._use_plan_limit:
            limit = self._plan_limit(context)
            if limit is None:
                return "No membership plan assigned"
            if context.days_from_today > limit:
                return (
                    f"Reservation is {context.days_from_today} days ahead; "
                    f"the plan allows at most {limit}"
                )
        type_limit = self._type_limits.get(context.resource_type)
        if type_limit is not None and context.days_from_today > type_limit:
            return (
                f"{context.resource_type.display_name} can be reserved at most "
                f"{type_limit} days ahead"
            )
        return None

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        return self._first_failure(context) is None

    @property
    def description(self) -> str:
        parts = ["Advance reservation window"]
        if self._minimum_advance_hours:
            parts.append(f"at least {self._minimum_advance_hours}h ahead")
        if not self._allow_same_day:
            parts.append("no same-day bookings")
        if self._bonus_days:
            parts.append(f"{self._bonus_days} bonus days")
        return ", ".join(parts)

    def failure_reason(self, context: ReservationContext) -> str:
        return self._first_failure(context) or super().failure_reason(context)


class WeekendReservationSpecification(Specification[ReservationContext]):
    """Optionally refuses slots on Saturday or Sunday."""

    def __init__(self, allow_weekend: bool):
        self._allow_weekend = allow_weekend

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        if self._allow_weekend:
            return True
        return context.reservation_date.weekday() not in (SATURDAY, SUNDAY)

    @property
    def description(self) -> str:
        return "Weekend reservations allowed" if self._allow_weekend else "Weekdays only"

    def failure_reason(self, context: ReservationContext) -> str:
        return f"Weekend reservations are not allowed ({context.reservation_date})"


class OperatingHoursSpecification(Specification[ReservationContext]):
    """
    The slot starts inside the operating window ``[earliest_hour, latest_hour)``.

    ``latest_hour`` may go up to 30 to express windows past midnight, e.g.
    ``(18, 30)`` means 18:00 until 06:00 the next morning.
    A same-day window with ``earliest_hour > latest_hour`` is rejected.
    """

    def __init__(self, earliest_hour: int, latest_hour: int):
        if not 0 <= earliest_hour <= 23:
            raise ValidationError(f"earliest_hour must be between 0 and 23, got {earliest_hour}")
        if not 1 <= latest_hour <= 30:
            raise ValidationError(f"latest_hour must be between 1 and 30, got {latest_hour}")
        if earliest_hour == latest_hour:
            raise ValidationError("earliest_hour and latest_hour must differ")
        if latest_hour <= 24 and earliest_hour > latest_hour:
            raise ValidationError(
                f"earliest_hour {earliest_hour} is after latest_hour {latest_hour}; "
                f"use latest_hour > 24 for windows past midnight (e.g. {earliest_hour}, {latest_hour + 24})"
            )
        self._earliest = earliest_hour
        self._latest = latest_hour

    @classmethod
    def normal_operating_hours(cls) -> "OperatingHoursSpecification":
        return cls(9, 22)

    @classmethod
    def business_hours(cls) -> "OperatingHoursSpecification":
        return cls(9, 18)

    @classmethod
    def night_hours(cls) -> "OperatingHoursSpecification":
        return cls(18, 30)

    @classmethod
    def twenty_four_hours(cls) -> "OperatingHoursSpecification":
        return cls(0, 24)

    def is_satisfied_by(self, context: ReservationContext) -> bool:
        hour = context.reservation_time.hour
        if self._latest <= 24:
            return self._earliest <= hour < self._latest
        return hour >= self._earliest or hour < self._latest - 24

    @property
    def description(self) -> str:
        if self._latest <= 24:
            return f"Operating hours {self._earliest:02d}:00 ~ {self._latest:02d}:00"
        return f"Operating hours {self._earliest:02d}:00 ~ {self._latest - 24:02d}:00 (next day)"

    def failure_reason(self, context: ReservationContext) -> str:
        return (
            f"Start time {context.reservation_time.format('HH:mm')} is outside "
            f"{self.description.lower()}"
        )
