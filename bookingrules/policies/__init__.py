"""
Policy layer - Eligibility, discount and cancellation rules.
"""

from .cancellation import CancellationFeeCalculator, CancellationResult, FeeRule
from .cancellation_policies import (
    CancellationPolicy,
    NoCancellationPolicy,
    TieredCancellationPolicy,
)
from .discount import (
    AmountDiscountPolicy,
    CouponDiscountPolicy,
    DiscountPolicy,
    MembershipDiscountPolicy,
    NoDiscountPolicy,
    RateDiscountPolicy,
    Season,
    SeasonalDiscountPolicy,
    SeasonalRule,
)
from .discount_chain import (
    CombinationStrategy,
    CompositeDiscountPolicy,
    DiscountBreakdown,
    DiscountChain,
)
from .reservation import (
    FlexibleReservationPolicy,
    PremiumReservationPolicy,
    ReservationPolicy,
    RestrictiveReservationPolicy,
    StandardReservationPolicy,
)
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
from .specification import (
    AndSpecification,
    NotSpecification,
    OrSpecification,
    PredicateSpecification,
    Specification,
)

__all__ = [
    "ActiveMemberSpecification",
    "AdvanceReservationLimitSpecification",
    "AmountDiscountPolicy",
    "AndSpecification",
    "CancellationFeeCalculator",
    "CancellationPolicy",
    "CancellationResult",
    "CombinationStrategy",
    "CompositeDiscountPolicy",
    "CouponDiscountPolicy",
    "DiscountBreakdown",
    "DiscountChain",
    "DiscountPolicy",
    "FeeRule",
    "FlexibleReservationPolicy",
    "MembershipDiscountPolicy",
    "MembershipPrivilegeSpecification",
    "NoCancellationPolicy",
    "NoDiscountPolicy",
    "NotSpecification",
    "OperatingHoursSpecification",
    "OrSpecification",
    "PredicateSpecification",
    "PremiumReservationPolicy",
    "RateDiscountPolicy",
    "ReservationPolicy",
    "ResourceCapacitySpecification",
    "RestrictiveReservationPolicy",
    "Season",
    "SeasonalDiscountPolicy",
    "SeasonalRule",
    "SimultaneousReservationLimitSpecification",
    "Specification",
    "StandardReservationPolicy",
    "TieredCancellationPolicy",
    "ValidReservationTimeSpecification",
    "WeekendReservationSpecification",
]
