"""
Domain layer - Value objects and contexts without external side effects.
"""

from .contexts import (
    CancellationContext,
    DiscountContext,
    MemberProfile,
    PlanProfile,
    ReservationContext,
)
from .exceptions import (
    BookingRulesError,
    ConfigurationError,
    CurrencyMismatchError,
    ValidationError,
)
from .models import DateRange, TimeSlot
from .money import Money
from .types import MemberStatus, ResourceType

__all__ = [
    "BookingRulesError",
    "CancellationContext",
    "ConfigurationError",
    "CurrencyMismatchError",
    "DateRange",
    "DiscountContext",
    "MemberProfile",
    "MemberStatus",
    "Money",
    "PlanProfile",
    "ReservationContext",
    "ResourceType",
    "TimeSlot",
    "ValidationError",
]
