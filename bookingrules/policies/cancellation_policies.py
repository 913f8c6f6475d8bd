"""
Cancellation policies.

All policies share one contract: ``is_cancellation_allowed`` may veto a
cancellation outright, and ``calculate_cancellation_fee`` is always defined
(a vetoed cancellation forfeits the full price).
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from ..domain.contexts import CancellationContext
from ..domain.exceptions import ValidationError
from ..domain.money import Money
from .cancellation import (
    CancellationFeeCalculator,
    CancellationResult,
    FeeRule,
    format_lead_time,
    hours,
)


class CancellationPolicy(ABC):
    """Strategy interface for cancellation rules."""

    @abstractmethod
    def calculate_cancellation_fee(self, original_price: Money, context: CancellationContext) -> Money:
        """Fee kept from ``original_price``; between zero and the full price."""

    @abstractmethod
    def is_cancellation_allowed(self, context: CancellationContext) -> bool:
        pass

    @abstractmethod
    def cancellation_denial_reason(self, context: CancellationContext) -> Optional[str]:
        """None when the cancellation is allowed."""

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    def calculate_fee_with_details(
        self, original_price: Money, context: CancellationContext
    ) -> CancellationResult:
        fee = self.calculate_cancellation_fee(original_price, context)
        if self.is_cancellation_allowed(context):
            rule_description = self.description
        else:
            rule_description = f"Cancellation not allowed: {self.cancellation_denial_reason(context)}"
        return CancellationResult(
            fee=fee,
            refund_amount=original_price.subtract(fee),
            rule_description=rule_description,
            lead_time=context.lead_time,
        )

    def fee_rate_info(self, context: CancellationContext) -> str:
        """One-line summary of what cancelling now would cost."""
        if not self.is_cancellation_allowed(context):
            return f"Cancellation not allowed: {self.cancellation_denial_reason(context)}"
        return f"{self.description} ({format_lead_time(context.lead_time)} before)"

    def __str__(self) -> str:
        return self.description


class TieredCancellationPolicy(CancellationPolicy):
    """
    Cancellation policy driven by fee tables.

    Optional restrictions:
    - ``allow_after_start=False`` refuses cancellations once the reservation began
    - ``same_day_minimum_lead`` refuses same-day cancellations closer than this
    - ``first_time_calculator`` replaces the regular table for a member's first cancellation
    """

    def __init__(
        self,
        calculator: CancellationFeeCalculator,
        description: Optional[str] = None,
        allow_after_start: bool = True,
        same_day_minimum_lead: Optional[timedelta] = None,
        first_time_calculator: Optional[CancellationFeeCalculator] = None,
    ):
        if calculator is None:
            raise ValidationError("calculator must not be None")
        if same_day_minimum_lead is not None and same_day_minimum_lead < timedelta(0):
            raise ValidationError("same_day_minimum_lead must not be negative")
        self._calculator = calculator
        self._description = (description or calculator.description).strip()
        self._allow_after_start = allow_after_start
        self._same_day_minimum_lead = same_day_minimum_lead
        self._first_time_calculator = first_time_calculator

    @property
    def calculator(self) -> CancellationFeeCalculator:
        return self._calculator

    @property
    def first_time_calculator(self) -> Optional[CancellationFeeCalculator]:
        return self._first_time_calculator

    @property
    def description(self) -> str:
        return self._description

    def calculator_for(self, context: CancellationContext) -> CancellationFeeCalculator:
        if context.is_first_time_cancellation and self._first_time_calculator is not None:
            return self._first_time_calculator
        return self._calculator

    def is_cancellation_allowed(self, context: CancellationContext) -> bool:
        return self.cancellation_denial_reason(context) is None

    def cancellation_denial_reason(self, context: CancellationContext) -> Optional[str]:
        if not self._allow_after_start and context.is_after_reservation_time():
            return "The reservation time has already passed"
        if (
            self._same_day_minimum_lead is not None
            and context.is_same_day()
            and context.lead_time < self._same_day_minimum_lead
        ):
            return (
                f"Same-day cancellations must be made at least "
                f"{format_lead_time(self._same_day_minimum_lead)} before the reservation"
            )
        return None

    def calculate_cancellation_fee(self, original_price: Money, context: CancellationContext) -> Money:
        if not self.is_cancellation_allowed(context):
            return original_price
        return self.calculator_for(context).calculate_fee(original_price, context)

    def calculate_fee_with_details(
        self, original_price: Money, context: CancellationContext
    ) -> CancellationResult:
        if not self.is_cancellation_allowed(context):
            return super().calculate_fee_with_details(original_price, context)
        return self.calculator_for(context).calculate_fee_with_details(original_price, context)

    def get_applicable_rule(self, context: CancellationContext) -> Optional[FeeRule]:
        return self.calculator_for(context).get_applicable_rule(context)

    def fee_rate_info(self, context: CancellationContext) -> str:
        if not self.is_cancellation_allowed(context):
            return super().fee_rate_info(context)
        rule = self.get_applicable_rule(context)
        terms = str(rule) if rule is not None else "full price"
        return f"{terms} - {self._description}, {format_lead_time(context.lead_time)} before"

    @classmethod
    def standard(cls) -> "TieredCancellationPolicy":
        return cls(standard_fee_calculator())

    @classmethod
    def strict(cls) -> "TieredCancellationPolicy":
        return cls(
            strict_fee_calculator(),
            allow_after_start=False,
            same_day_minimum_lead=hours(6),
        )

    @classmethod
    def flexible(cls) -> "TieredCancellationPolicy":
        return cls(
            flexible_fee_calculator(),
            first_time_calculator=first_time_fee_calculator(),
        )


class NoCancellationPolicy(CancellationPolicy):
    """
    Non-refundable bookings.

    The fee is always the full price. With ``allow_emergency`` a
    cancellation is still accepted when made at least
    ``emergency_minimum_lead`` ahead.
    """

    def __init__(self, allow_emergency: bool = False, emergency_minimum_lead: timedelta = hours(24)):
        if emergency_minimum_lead < timedelta(0):
            raise ValidationError("emergency_minimum_lead must not be negative")
        self._allow_emergency = allow_emergency
        self._emergency_minimum_lead = emergency_minimum_lead

    @classmethod
    def strict(cls) -> "NoCancellationPolicy":
        return cls(allow_emergency=False)

    @classmethod
    def with_emergency_allowance(cls) -> "NoCancellationPolicy":
        return cls(allow_emergency=True)

    @property
    def allows_emergency(self) -> bool:
        return self._allow_emergency

    @property
    def description(self) -> str:
        if self._allow_emergency:
            return (
                f"No cancellation - emergencies only, up to "
                f"{format_lead_time(self._emergency_minimum_lead)} before"
            )
        return "No cancellation - all cancellations refused"

    def is_cancellation_allowed(self, context: CancellationContext) -> bool:
        return self._allow_emergency and context.lead_time >= self._emergency_minimum_lead

    def cancellation_denial_reason(self, context: CancellationContext) -> Optional[str]:
        if not self._allow_emergency:
            return "This reservation cannot be cancelled"
        if context.lead_time < self._emergency_minimum_lead:
            return (
                f"Emergency cancellations are accepted only up to "
                f"{format_lead_time(self._emergency_minimum_lead)} before the reservation"
            )
        return None

    def calculate_cancellation_fee(self, original_price: Money, context: CancellationContext) -> Money:
        return original_price


def standard_fee_calculator() -> CancellationFeeCalculator:
    return CancellationFeeCalculator(
        [
            FeeRule.no_fee(hours(24), None, "24h or more before"),
            FeeRule.rate_only(hours(6), hours(24), "0.20", "6h to 24h before"),
            FeeRule.rate_only(hours(2), hours(6), "0.50", "2h to 6h before"),
            FeeRule.rate_only(hours(0), hours(2), "0.80", "less than 2h before"),
        ],
        "Standard cancellation policy",
    )


def strict_fee_calculator() -> CancellationFeeCalculator:
    return CancellationFeeCalculator(
        [
            FeeRule.no_fee(hours(48), None, "48h or more before"),
            FeeRule.rate_only(hours(24), hours(48), "0.30", "24h to 48h before"),
            FeeRule.rate_only(hours(6), hours(24), "0.60", "6h to 24h before"),
            FeeRule.rate_only(hours(0), hours(6), "0.90", "less than 6h before"),
        ],
        "Strict cancellation policy",
    )


def flexible_fee_calculator() -> CancellationFeeCalculator:
    return CancellationFeeCalculator(
        [
            FeeRule.no_fee(hours(24), None, "24h or more before"),
            FeeRule.rate_only(hours(6), hours(24), "0.10", "6h to 24h before"),
            FeeRule.rate_only(hours(2), hours(6), "0.30", "2h to 6h before"),
            FeeRule.rate_only(hours(0), hours(2), "0.60", "less than 2h before"),
        ],
        "Flexible cancellation policy",
    )


def first_time_fee_calculator() -> CancellationFeeCalculator:
    return CancellationFeeCalculator(
        [
            FeeRule.no_fee(hours(2), None, "first cancellation, 2h or more before"),
            FeeRule.rate_only(hours(0), hours(2), "0.10", "first cancellation, less than 2h before"),
        ],
        "Flexible cancellation policy (first cancellation)",
    )
