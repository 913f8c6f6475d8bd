"""
Reservation eligibility policies assembled from specification trees.
"""

from typing import List, Optional

from ..domain.contexts import ReservationContext
from ..domain.exceptions import ValidationError
from .reservation_rules import (
    ActiveMemberSpecification,
    AdvanceReservationLimitSpecification,
    MembershipPrivilegeSpecification,
    OperatingHoursSpecification,
    ResourceCapacitySpecification,
    SimultaneousReservationLimitSpecification,
    ValidReservationTimeSpecification,
    WeekendReservationSpecification,
)
from .specification import Specification, collect_violations

VIOLATION_SEPARATOR = ", "


class ReservationPolicy:
    """
    Wraps a specification tree and reports every violated rule at once.

    Conjunctions are unrolled so a rejected request lists all failing
    rules, not only the first one.
    """

    def __init__(self, specification: Specification[ReservationContext], description: str):
        if specification is None:
            raise ValidationError("specification must not be None")
        if not description or not description.strip():
            raise ValidationError("description must not be blank")
        self._specification = specification
        self._description = description.strip()

    @property
    def specification(self) -> Specification[ReservationContext]:
        return self._specification

    @property
    def description(self) -> str:
        return self._description

    def can_reserve(self, context: ReservationContext) -> bool:
        return self._specification.is_satisfied_by(context)

    def violations(self, context: ReservationContext) -> List[str]:
        return collect_violations(self._specification, context)

    def violation_reason(self, context: ReservationContext) -> Optional[str]:
        """None when the request is allowed, otherwise all failing reasons joined."""
        if self.can_reserve(context):
            return None
        return VIOLATION_SEPARATOR.join(self.violations(context))

    def __str__(self) -> str:
        return f"{self._description}: {self._specification.description}"


class StandardReservationPolicy(ReservationPolicy):
    """Default rules for ordinary members."""

    def __init__(self):
        specification = (
            ActiveMemberSpecification.standard()
            & MembershipPrivilegeSpecification()
            & ResourceCapacitySpecification()
            & ValidReservationTimeSpecification(max_advance_days=365)
            & SimultaneousReservationLimitSpecification()
            & AdvanceReservationLimitSpecification()
        )
        super().__init__(specification, "Standard reservation policy")


class RestrictiveReservationPolicy(ReservationPolicy):
    """Tighter rules for busy periods: 24h lead time, business hours, weekdays only."""

    def __init__(self):
        specification = (
            ActiveMemberSpecification.standard()
            & MembershipPrivilegeSpecification()
            & ResourceCapacitySpecification()
            & ValidReservationTimeSpecification(max_advance_days=30)
            & SimultaneousReservationLimitSpecification.strict()
            & AdvanceReservationLimitSpecification.strict()
            & OperatingHoursSpecification.business_hours()
            & WeekendReservationSpecification(allow_weekend=False)
        )
        super().__init__(specification, "Restrictive reservation policy")


class FlexibleReservationPolicy(ReservationPolicy):
    """Lenient rules: suspended members, a grace period and short lead times are tolerated."""

    def __init__(self, grace_period_days: int = 7):
        specification = (
            ActiveMemberSpecification.lenient()
            & MembershipPrivilegeSpecification.with_grace_period(grace_period_days)
            & ResourceCapacitySpecification()
            & ValidReservationTimeSpecification(max_advance_days=365)
            & SimultaneousReservationLimitSpecification()
            & AdvanceReservationLimitSpecification.lenient()
        )
        super().__init__(specification, "Flexible reservation policy")


class PremiumReservationPolicy(ReservationPolicy):
    """Premium members: no simultaneous or plan advance limits, bookable up to two years ahead."""

    def __init__(self):
        specification = (
            ActiveMemberSpecification.standard()
            & MembershipPrivilegeSpecification()
            & ResourceCapacitySpecification()
            & ValidReservationTimeSpecification(max_advance_days=730)
        )
        super().__init__(specification, "Premium reservation policy")
