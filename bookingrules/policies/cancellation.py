"""
Tiered cancellation-fee calculation.

A fee table is an ordered list of ``FeeRule`` windows over the lead time
(time left until the reservation starts). The first rule whose window
contains the lead time decides the fee; when none does, or the reservation
has already started, the whole price is forfeited.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from ..domain.contexts import CancellationContext
from ..domain.exceptions import ValidationError
from ..domain.money import Money, Number, min_money
from .discount import validate_rate

NO_MATCHING_RULE = "No matching cancellation rule; the full price is charged"
RESERVATION_STARTED = "Reservation has already started; the full price is charged"


def format_lead_time(lead_time: timedelta) -> str:
    """Render a lead time as ``"26h"`` or ``"1h30m"`` (signed)."""
    total_minutes = int(lead_time.total_seconds() // 60)
    sign = "-" if total_minutes < 0 else ""
    hours, minutes = divmod(abs(total_minutes), 60)
    if minutes:
        return f"{sign}{hours}h{minutes:02d}m"
    return f"{sign}{hours}h"


def hours(value: float) -> timedelta:
    return timedelta(hours=value)


@dataclass(frozen=True)
class FeeRule:
    """
    One lead-time window of a fee table.

    The window is ``[min_before, max_before)``; ``max_before=None`` means
    unbounded. Fee = ``price * rate + fixed_fee``, capped at ``max_fee`` and
    clamped to ``[0, price]``.
    """
    min_before: timedelta
    max_before: Optional[timedelta] = None
    rate: Decimal = Decimal("0")
    fixed_fee: Optional[Money] = None
    max_fee: Optional[Money] = None
    description: str = ""

    def __post_init__(self):
        if self.min_before is None:
            raise ValidationError("min_before must not be None")
        if self.min_before < timedelta(0):
            raise ValidationError(f"min_before must not be negative, got {self.min_before}")
        if self.max_before is not None and self.max_before <= self.min_before:
            raise ValidationError(
                f"max_before ({self.max_before}) must be greater than min_before ({self.min_before})"
            )
        if not self.description or not self.description.strip():
            raise ValidationError("Fee rule description must not be blank")
        object.__setattr__(self, "rate", validate_rate(self.rate, "fee rate"))
        object.__setattr__(self, "description", self.description.strip())

    @classmethod
    def no_fee(cls, min_before: timedelta, max_before: Optional[timedelta], description: str) -> "FeeRule":
        return cls(min_before, max_before, description=description)

    @classmethod
    def rate_only(
        cls,
        min_before: timedelta,
        max_before: Optional[timedelta],
        rate: Number,
        description: str,
    ) -> "FeeRule":
        return cls(min_before, max_before, rate=rate, description=description)

    @classmethod
    def fixed_only(
        cls,
        min_before: timedelta,
        max_before: Optional[timedelta],
        fixed_fee: Money,
        description: str,
    ) -> "FeeRule":
        return cls(min_before, max_before, fixed_fee=fixed_fee, description=description)

    @classmethod
    def combined(
        cls,
        min_before: timedelta,
        max_before: Optional[timedelta],
        rate: Number,
        fixed_fee: Money,
        max_fee: Optional[Money],
        description: str,
    ) -> "FeeRule":
        return cls(min_before, max_before, rate, fixed_fee, max_fee, description)

    def applies(self, lead_time: timedelta) -> bool:
        """Lower bound inclusive, upper bound exclusive."""
        if lead_time < self.min_before:
            return False
        return self.max_before is None or lead_time < self.max_before

    def calculate_fee(self, original_price: Money) -> Money:
        fee = original_price.multiply(self.rate)
        if self.fixed_fee is not None:
            fee = fee.add(self.fixed_fee)
        if self.max_fee is not None:
            fee = min_money(fee, self.max_fee)
        return min_money(fee, original_price)

    def is_free(self) -> bool:
        return self.rate == 0 and (self.fixed_fee is None or self.fixed_fee.is_zero())

    def __str__(self) -> str:
        parts = []
        if self.rate > 0:
            parts.append(f"{(self.rate * 100).normalize():f}% of the price")
        if self.fixed_fee is not None and self.fixed_fee.is_positive():
            parts.append(f"{self.fixed_fee} fixed")
        terms = " + ".join(parts) if parts else "no fee"
        if self.max_fee is not None:
            terms += f", at most {self.max_fee}"
        return f"{self.description} ({terms})"


@dataclass(frozen=True)
class CancellationResult:
    """Fee, refund and the rule that produced them."""
    fee: Money
    refund_amount: Money
    rule_description: str
    lead_time: timedelta

    @property
    def hours_before_reservation(self) -> int:
        return int(self.lead_time.total_seconds() / 3600)

    def has_refund(self) -> bool:
        return self.refund_amount.is_positive()

    def __str__(self) -> str:
        return (
            f"Cancelled {format_lead_time(self.lead_time)} before the reservation | "
            f"fee: {self.fee} | refund: {self.refund_amount} | rule: {self.rule_description}"
        )


class CancellationFeeCalculator:
    """Evaluates an ordered, non-empty fee table; the first matching rule wins."""

    def __init__(self, rules: Iterable[FeeRule], description: str):
        self._rules: Tuple[FeeRule, ...] = tuple(rules or ())
        if not self._rules:
            raise ValidationError("At least one fee rule is required")
        if not description or not description.strip():
            raise ValidationError("description must not be blank")
        self._description = description.strip()

    @property
    def rules(self) -> List[FeeRule]:
        return list(self._rules)

    @property
    def description(self) -> str:
        return self._description

    def rule_for_lead_time(self, lead_time: timedelta) -> Optional[FeeRule]:
        if lead_time < timedelta(0):
            return None
        for rule in self._rules:
            if rule.applies(lead_time):
                return rule
        return None

    def fee_for_lead_time(self, original_price: Money, lead_time: timedelta) -> Money:
        rule = self.rule_for_lead_time(lead_time)
        if rule is None:
            return original_price
        return rule.calculate_fee(original_price)

    def get_applicable_rule(self, context: CancellationContext) -> Optional[FeeRule]:
        return self.rule_for_lead_time(context.lead_time)

    def calculate_fee(self, original_price: Money, context: CancellationContext) -> Money:
        return self.fee_for_lead_time(original_price, context.lead_time)

    def calculate_fee_with_details(
        self, original_price: Money, context: CancellationContext
    ) -> CancellationResult:
        lead_time = context.lead_time
        rule = self.rule_for_lead_time(lead_time)
        if rule is None:
            reason = RESERVATION_STARTED if lead_time < timedelta(0) else NO_MATCHING_RULE
            return CancellationResult(
                fee=original_price,
                refund_amount=Money.zero(original_price.currency),
                rule_description=reason,
                lead_time=lead_time,
            )
        fee = rule.calculate_fee(original_price)
        return CancellationResult(
            fee=fee,
            refund_amount=original_price.subtract(fee),
            rule_description=str(rule),
            lead_time=lead_time,
        )
