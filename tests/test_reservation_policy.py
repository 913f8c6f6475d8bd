"""
Tests for reservation eligibility rules and policies.
"""

import pendulum
import pytest

from bookingrules.domain.contexts import MemberProfile, PlanProfile, ReservationContext
from bookingrules.domain.exceptions import ValidationError
from bookingrules.domain.models import DateRange, TimeSlot
from bookingrules.domain.types import MemberStatus, ResourceType
from bookingrules.policies.reservation import (
    FlexibleReservationPolicy,
    PremiumReservationPolicy,
    RestrictiveReservationPolicy,
    StandardReservationPolicy,
)
from bookingrules.policies.reservation_rules import (
    ActiveMemberSpecification,
    AdvanceReservationLimitSpecification,
    MembershipPrivilegeSpecification,
    OperatingHoursSpecification,
    ResourceCapacitySpecification,
    SimultaneousReservationLimitSpecification,
    ValidReservationTimeSpecification,
    WeekendReservationSpecification,
)

TZ = "Asia/Seoul"


def at(text: str) -> pendulum.DateTime:
    return pendulum.parse(text, tz=TZ)


def make_plan(**overrides) -> PlanProfile:
    values = dict(
        name="basic",
        allowed_resource_types=frozenset({ResourceType.GYM, ResourceType.POOL}),
        max_simultaneous_reservations=2,
        advance_reservation_days=14,
    )
    values.update(overrides)
    return PlanProfile(**values)


def make_member(status=MemberStatus.ACTIVE, plan="default", period=None) -> MemberProfile:
    if plan == "default":
        plan = make_plan()
    if period is None:
        period = DateRange.of(pendulum.date(2025, 1, 1), pendulum.date(2025, 12, 31))
    return MemberProfile(member_id="M001", status=status, plan=plan, membership_period=period)


def make_context(
    member=None,
    start="2025-03-12 10:00",
    requested_at="2025-03-10 09:00",
    resource_type=ResourceType.GYM,
    active=0,
    occupancy=0,
    capacity=10,
) -> ReservationContext:
    return ReservationContext(
        member=member or make_member(),
        resource_id="R001",
        resource_type=resource_type,
        slot=TimeSlot.one_hour(at(start)),
        requested_at=at(requested_at),
        current_active_reservations=active,
        resource_current_occupancy=occupancy,
        resource_capacity=capacity,
    )


class TestReservationContext:
    """Tests for the context helpers."""

    def test_derived_values(self):
        """Test lead time and day distance."""
        ctx = make_context(start="2025-03-12 10:00", requested_at="2025-03-10 09:00")

        assert ctx.days_from_today == 2
        assert ctx.lead_time.total_seconds() == (2 * 24 + 1) * 3600
        assert ctx.is_reservation_in_future()
        assert ctx.remaining_capacity() == 10

    def test_invalid_capacity_rejected(self):
        """Test context validation."""
        with pytest.raises(ValidationError):
            make_context(capacity=0)


class TestActiveMemberSpecification:
    """Tests for member status checks."""

    def test_active_member_with_valid_membership(self):
        """Test the happy path."""
        assert ActiveMemberSpecification().is_satisfied_by(make_context())

    def test_suspended_member_denied(self):
        """Test that suspended members are refused by default."""
        ctx = make_context(member=make_member(status=MemberStatus.SUSPENDED))
        spec = ActiveMemberSpecification()

        assert not spec.is_satisfied_by(ctx)
        assert spec.denial_reason(ctx) == "Member M001 is suspended"

    def test_lenient_allows_suspended(self):
        """Test the lenient variant."""
        ctx = make_context(member=make_member(status=MemberStatus.SUSPENDED))

        assert ActiveMemberSpecification.lenient().is_satisfied_by(ctx)

    def test_expired_membership_denied(self):
        """Test that the period must cover the reservation date."""
        period = DateRange.of(pendulum.date(2025, 1, 1), pendulum.date(2025, 3, 1))
        ctx = make_context(member=make_member(period=period))

        assert not ActiveMemberSpecification().is_satisfied_by(ctx)
        assert ActiveMemberSpecification.status_only().is_satisfied_by(ctx)


class TestMembershipPrivilegeSpecification:
    """Tests for plan privileges."""

    def test_missing_privilege(self):
        """Test a resource the plan does not include."""
        ctx = make_context(resource_type=ResourceType.SAUNA)
        spec = MembershipPrivilegeSpecification()

        assert not spec.is_satisfied_by(ctx)
        assert "Sauna" in spec.denial_reason(ctx)

    def test_no_plan(self):
        """Test a member without a plan."""
        ctx = make_context(member=make_member(plan=None))

        assert MembershipPrivilegeSpecification().denial_reason(ctx) == "No membership plan assigned"

    def test_grace_period(self):
        """Test that a recently expired membership passes with a grace period."""
        period = DateRange.of(pendulum.date(2025, 1, 1), pendulum.date(2025, 3, 9))
        ctx = make_context(member=make_member(period=period))

        assert not MembershipPrivilegeSpecification().is_satisfied_by(ctx)
        assert MembershipPrivilegeSpecification.with_grace_period(7).is_satisfied_by(ctx)
        assert not MembershipPrivilegeSpecification.with_grace_period(2).is_satisfied_by(ctx)


class TestCapacityAndLimits:
    """Tests for capacity and simultaneous limits."""

    def test_resource_full(self):
        """Test capacity check."""
        ctx = make_context(occupancy=10, capacity=10)
        spec = ResourceCapacitySpecification()

        assert not spec.is_satisfied_by(ctx)
        assert spec.denial_reason(ctx) == "Resource R001 is full (10/10)"

    def test_simultaneous_limit(self):
        """Test the plan's simultaneous limit and the strict buffer."""
        spec = SimultaneousReservationLimitSpecification()

        assert spec.is_satisfied_by(make_context(active=1))
        assert not spec.is_satisfied_by(make_context(active=2))
        assert not SimultaneousReservationLimitSpecification.strict().is_satisfied_by(make_context(active=1))

    def test_valid_reservation_time(self):
        """Test past and too-distant reservations."""
        spec = ValidReservationTimeSpecification(max_advance_days=30)

        past = make_context(start="2025-03-10 08:00", requested_at="2025-03-10 09:00")
        far = make_context(start="2025-05-10 10:00", requested_at="2025-03-10 09:00")

        assert spec.denial_reason(past) == "Reservation time has already passed"
        assert not spec.is_satisfied_by(far)
        assert spec.is_satisfied_by(make_context())

    def test_invalid_max_advance_days(self):
        """Test validation."""
        with pytest.raises(ValidationError):
            ValidReservationTimeSpecification(max_advance_days=0)


class TestAdvanceReservationLimitSpecification:
    """Tests for the advance-booking window."""

    def test_minimum_lead_time(self):
        """Test the default two-hour minimum."""
        spec = AdvanceReservationLimitSpecification()

        too_soon = make_context(start="2025-03-10 10:00", requested_at="2025-03-10 09:00")
        exactly = make_context(start="2025-03-10 11:00", requested_at="2025-03-10 09:00")

        assert not spec.is_satisfied_by(too_soon)
        assert spec.is_satisfied_by(exactly)

    def test_same_day_switch(self):
        """Test that same-day bookings can be disabled."""
        spec = AdvanceReservationLimitSpecification(minimum_advance_hours=0, allow_same_day=False)
        ctx = make_context(start="2025-03-10 18:00", requested_at="2025-03-10 09:00")

        assert spec.denial_reason(ctx) == "Same-day reservations are not allowed"

    def test_plan_advance_days(self):
        """Test the plan's advance limit with bonus days."""
        ctx = make_context(start="2025-03-26 10:00", requested_at="2025-03-10 09:00")

        assert not AdvanceReservationLimitSpecification().is_satisfied_by(ctx)
        assert AdvanceReservationLimitSpecification(bonus_days=2).is_satisfied_by(ctx)

    def test_resource_type_limit(self):
        """Test per-resource-type limits."""
        spec = AdvanceReservationLimitSpecification(resource_type_limits={ResourceType.GYM: 1})

        assert not spec.is_satisfied_by(make_context())


class TestCalendarRules:
    """Tests for weekend and operating-hour rules."""

    def test_weekend(self):
        """Test weekend refusal (2025-03-15 is a Saturday)."""
        saturday = make_context(start="2025-03-15 10:00")

        assert not WeekendReservationSpecification(allow_weekend=False).is_satisfied_by(saturday)
        assert WeekendReservationSpecification(allow_weekend=True).is_satisfied_by(saturday)
        assert WeekendReservationSpecification(allow_weekend=False).is_satisfied_by(make_context())

    def test_operating_hours(self):
        """Test the start hour window."""
        spec = OperatingHoursSpecification.business_hours()

        assert spec.is_satisfied_by(make_context(start="2025-03-12 09:00"))
        assert not spec.is_satisfied_by(make_context(start="2025-03-12 18:00"))
        assert spec.description == "Operating hours 09:00 ~ 18:00"

    def test_operating_hours_past_midnight(self):
        """Test a window crossing midnight."""
        spec = OperatingHoursSpecification.night_hours()

        assert spec.is_satisfied_by(make_context(start="2025-03-12 22:00"))
        assert spec.is_satisfied_by(make_context(start="2025-03-12 05:00"))
        assert not spec.is_satisfied_by(make_context(start="2025-03-12 12:00"))

    def test_invalid_hours(self):
        """Test hour validation."""
        with pytest.raises(ValidationError):
            OperatingHoursSpecification(24, 30)
        with pytest.raises(ValidationError):
            OperatingHoursSpecification(9, 31)

    def test_reversed_same_day_window_rejected(self):
        """Test that a window which could never match is refused."""
        with pytest.raises(ValidationError, match="latest_hour > 24"):
            OperatingHoursSpecification(20, 6)

        spec = OperatingHoursSpecification(20, 30)
        assert spec.is_satisfied_by(make_context(start="2025-03-12 22:00"))
        assert spec.is_satisfied_by(make_context(start="2025-03-12 02:00"))

    def test_twenty_four_hours(self):
        """Test the always-open window."""
        spec = OperatingHoursSpecification.twenty_four_hours()

        assert spec.is_satisfied_by(make_context(start="2025-03-12 00:00"))
        assert spec.is_satisfied_by(make_context(start="2025-03-12 23:00"))
        assert spec.description == "Operating hours 00:00 ~ 24:00"


class TestReservationPolicies:
    """Tests for the assembled policies."""

    def test_standard_allows_valid_request(self):
        """Test the happy path."""
        policy = StandardReservationPolicy()
        ctx = make_context()

        assert policy.can_reserve(ctx)
        assert policy.violation_reason(ctx) is None

    def test_standard_lists_every_violation(self):
        """Test that all failing rules are joined."""
        policy = StandardReservationPolicy()
        ctx = make_context(
            member=make_member(status=MemberStatus.SUSPENDED),
            occupancy=10,
            capacity=10,
        )

        assert not policy.can_reserve(ctx)
        assert policy.violation_reason(ctx) == "Member M001 is suspended, Resource R001 is full (10/10)"

    def test_restrictive_refuses_weekend(self):
        """Test the restrictive variant."""
        saturday = make_context(start="2025-03-15 10:00", requested_at="2025-03-10 09:00")

        assert not RestrictiveReservationPolicy().can_reserve(saturday)
        assert "Weekend" in RestrictiveReservationPolicy().violation_reason(saturday)

    def test_flexible_allows_grace_period(self):
        """Test the flexible variant."""
        period = DateRange.of(pendulum.date(2025, 1, 1), pendulum.date(2025, 3, 9))
        ctx = make_context(member=make_member(period=period))

        assert not StandardReservationPolicy().can_reserve(ctx)
        assert FlexibleReservationPolicy().can_reserve(ctx)

    def test_policy_description(self):
        """Test the description."""
        assert StandardReservationPolicy().description == "Standard reservation policy"

    def test_premium_ignores_plan_limits(self):
        """Test that premium members skip the advance and simultaneous limits."""
        period = DateRange.of(pendulum.date(2025, 1, 1), pendulum.date(2027, 12, 31))
        ctx = make_context(member=make_member(period=period), start="2025-04-30 10:00", active=5)

        assert not StandardReservationPolicy().can_reserve(ctx)
        assert PremiumReservationPolicy().can_reserve(ctx)
        assert PremiumReservationPolicy().description == "Premium reservation policy"

    def test_premium_two_year_horizon(self):
        """Test that premium bookings still stop at 730 days ahead."""
        period = DateRange.of(pendulum.date(2025, 1, 1), pendulum.date(2027, 12, 31))
        member = make_member(period=period)
        policy = PremiumReservationPolicy()

        assert policy.can_reserve(make_context(member=member, start="2027-03-01 10:00"))
        too_far = make_context(member=member, start="2027-03-12 10:00")
        assert policy.violation_reason(too_far) == "Reservations open at most 730 days in advance"
