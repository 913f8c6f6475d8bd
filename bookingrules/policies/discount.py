"""
Discount strategies.

Every strategy maps an original price to a discounted price and never
raises for business reasons: a strategy that does not apply returns the
price unchanged. Lower ``priority`` values are evaluated first.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from ..domain.contexts import DiscountContext
from ..domain.exceptions import ValidationError
from ..domain.models import to_date
from ..domain.money import Money, Number, to_decimal
from ..domain.types import MemberStatus

DEFAULT_PRIORITY = 100
COUPON_PRIORITY = 10
SEASONAL_PRIORITY = 30
MEMBERSHIP_PRIORITY = 50
LOWEST_PRIORITY = 2**31 - 1


def validate_rate(rate: Number, field_name: str = "rate") -> Decimal:
    value = to_decimal(rate, field_name)
    if not Decimal(0) <= value <= Decimal(1):
        raise ValidationError(f"{field_name} must be between 0 and 1, got {value}")
    return value


def _validate_description(description: str) -> str:
    if not description or not description.strip():
        raise ValidationError("description must not be blank")
    return description.strip()


def _percent(rate: Decimal) -> str:
    return f"{(rate * 100).normalize():f}%"


def _subtract_floored(price: Money, discount: Money) -> Money:
    """Subtract, flooring the result at zero."""
    if discount.is_greater_than(price):
        return Money.zero(price.currency)
    return price.subtract(discount)


def _below_minimum(price: Money, minimum: Optional[Money]) -> bool:
    return minimum is not None and price.is_less_than(minimum)


class DiscountPolicy(ABC):
    """Strategy interface for price discounts."""

    @abstractmethod
    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        """Return the discounted price; never more than ``original_price``."""

    def is_applicable(self, context: DiscountContext) -> bool:
        return True

    @property
    def priority(self) -> int:
        return DEFAULT_PRIORITY

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable summary used on receipts."""

    def discount_amount(self, original_price: Money, context: DiscountContext) -> Money:
        return original_price.subtract(self.apply_discount(original_price, context))

    def __str__(self) -> str:
        return self.description


class RateDiscountPolicy(DiscountPolicy):
    """
    Percentage discount with an optional minimum price and discount cap.

    Apply order:
    1. price below ``minimum_amount``: price unchanged
    2. raw discount = price * rate
    3. raw discount above ``maximum_discount``: exactly the cap
    """

    def __init__(
        self,
        rate: Number,
        description: str,
        minimum_amount: Optional[Money] = None,
        maximum_discount: Optional[Money] = None,
        priority: int = DEFAULT_PRIORITY,
    ):
        self._rate = validate_rate(rate)
        self._description = _validate_description(description)
        if (
            minimum_amount is not None
            and maximum_discount is not None
            and minimum_amount.currency != maximum_discount.currency
        ):
            raise ValidationError("minimum_amount and maximum_discount must share a currency")
        self._minimum_amount = minimum_amount
        self._maximum_discount = maximum_discount
        self._priority = priority

    @classmethod
    def create(cls, rate: Number, description: str) -> "RateDiscountPolicy":
        return cls(rate, description)

    @classmethod
    def with_minimum(cls, rate: Number, description: str, minimum_amount: Money) -> "RateDiscountPolicy":
        return cls(rate, description, minimum_amount=minimum_amount)

    @classmethod
    def with_cap(cls, rate: Number, description: str, maximum_discount: Money) -> "RateDiscountPolicy":
        return cls(rate, description, maximum_discount=maximum_discount)

    @classmethod
    def with_limits(
        cls,
        rate: Number,
        description: str,
        minimum_amount: Money,
        maximum_discount: Money,
    ) -> "RateDiscountPolicy":
        return cls(rate, description, minimum_amount=minimum_amount, maximum_discount=maximum_discount)

    @property
    def rate(self) -> Decimal:
        return self._rate

    @property
    def minimum_amount(self) -> Optional[Money]:
        return self._minimum_amount

    @property
    def maximum_discount(self) -> Optional[Money]:
        return self._maximum_discount

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def description(self) -> str:
        return self._description

    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        if _below_minimum(original_price, self._minimum_amount):
            return original_price
        discount = original_price.multiply(self._rate)
        if self._maximum_discount is not None and discount.is_greater_than(self._maximum_discount):
            discount = self._maximum_discount
        return _subtract_floored(original_price, discount)


class AmountDiscountPolicy(DiscountPolicy):
    """Fixed amount off, floored at zero, with an optional minimum price."""

    def __init__(
        self,
        amount: Money,
        description: str,
        minimum_amount: Optional[Money] = None,
        priority: int = DEFAULT_PRIORITY,
    ):
        if amount is None:
            raise ValidationError("amount must not be None")
        if not amount.is_positive():
            raise ValidationError(f"Discount amount must be greater than zero, got {amount}")
        self._amount = amount
        self._description = _validate_description(description)
        self._minimum_amount = minimum_amount
        self._priority = priority

    @property
    def amount(self) -> Money:
        return self._amount

    @property
    def minimum_amount(self) -> Optional[Money]:
        return self._minimum_amount

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def description(self) -> str:
        return self._description

    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        if _below_minimum(original_price, self._minimum_amount):
            return original_price
        return _subtract_floored(original_price, self._amount)


class MembershipDiscountPolicy(DiscountPolicy):
    """Applies the member's plan discount rate to active members on active plans."""

    def __init__(self, description: str = "Membership discount", priority: int = MEMBERSHIP_PRIORITY):
        self._description = _validate_description(description)
        self._priority = priority

    def is_applicable(self, context: DiscountContext) -> bool:
        member = context.member
        return (
            member is not None
            and member.status is MemberStatus.ACTIVE
            and member.plan is not None
            and member.plan.active
        )

    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        if not self.is_applicable(context):
            return original_price
        rate = context.plan.discount_rate
        if rate == 0:
            return original_price
        return _subtract_floored(original_price, original_price.multiply(rate))

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def description(self) -> str:
        return self._description


class CouponDiscountPolicy(DiscountPolicy):
    """
    Coupon redeemable by code within an optional validity window.

    Exactly one of ``rate`` or ``amount`` must be given. A non-empty
    ``target_member_ids`` restricts the coupon to those members.
    """

    def __init__(
        self,
        code: str,
        rate: Optional[Number] = None,
        amount: Optional[Money] = None,
        valid_from: Optional[date] = None,
        valid_until: Optional[date] = None,
        minimum_amount: Optional[Money] = None,
        target_member_ids: Optional[Iterable[str]] = None,
    ):
        if not code or not code.strip():
            raise ValidationError("Coupon code must not be blank")
        if (rate is None) == (amount is None):
            raise ValidationError("Exactly one of rate or amount must be given")
        if amount is not None and not amount.is_positive():
            raise ValidationError(f"Coupon amount must be greater than zero, got {amount}")
        self._code = code.strip()
        self._rate = validate_rate(rate) if rate is not None else None
        self._amount = amount
        self._valid_from = to_date(valid_from, "valid_from") if valid_from is not None else None
        self._valid_until = to_date(valid_until, "valid_until") if valid_until is not None else None
        self._minimum_amount = minimum_amount
        self._target_member_ids: FrozenSet[str] = frozenset(target_member_ids or ())

    @classmethod
    def rate_coupon(cls, code: str, rate: Number, valid_from: date, valid_until: date) -> "CouponDiscountPolicy":
        return cls(code, rate=rate, valid_from=valid_from, valid_until=valid_until)

    @classmethod
    def amount_coupon(cls, code: str, amount: Money, valid_from: date, valid_until: date) -> "CouponDiscountPolicy":
        return cls(code, amount=amount, valid_from=valid_from, valid_until=valid_until)

    @classmethod
    def targeted_coupon(
        cls,
        code: str,
        amount: Money,
        valid_from: date,
        valid_until: date,
        target_member_ids: Iterable[str],
    ) -> "CouponDiscountPolicy":
        return cls(
            code,
            amount=amount,
            valid_from=valid_from,
            valid_until=valid_until,
            target_member_ids=target_member_ids,
        )

    @property
    def code(self) -> str:
        return self._code

    @property
    def is_rate_discount(self) -> bool:
        return self._rate is not None

    def _within_validity(self, day: date) -> bool:
        if self._valid_from is not None and day < self._valid_from:
            return False
        if self._valid_until is not None and day > self._valid_until:
            return False
        return True

    def is_applicable(self, context: DiscountContext) -> bool:
        if not context.has_coupon() or context.coupon_code.strip() != self._code:
            return False
        if not self._within_validity(context.purchase_date):
            return False
        if self._target_member_ids:
            return context.member is not None and context.member.member_id in self._target_member_ids
        return True

    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        if not self.is_applicable(context):
            return original_price
        if _below_minimum(original_price, self._minimum_amount):
            return original_price
        if self._rate is not None:
            return _subtract_floored(original_price, original_price.multiply(self._rate))
        return _subtract_floored(original_price, self._amount)

    @property
    def priority(self) -> int:
        return COUPON_PRIORITY

    @property
    def description(self) -> str:
        kind = f"{_percent(self._rate)} off" if self._rate is not None else f"{self._amount} off"
        return f"Coupon [{self._code}] - {kind}"


class Season(str, Enum):
    """Named pricing seasons. The last three are fixed holiday periods."""
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"
    HOLIDAY_SEASON = "holiday_season"
    BACK_TO_SCHOOL = "back_to_school"
    SUMMER_VACATION = "summer_vacation"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


# (start month, start day, end month, end day); periods may wrap the year end
SPECIAL_PERIODS = {
    Season.HOLIDAY_SEASON: (12, 20, 1, 10),
    Season.BACK_TO_SCHOOL: (2, 25, 3, 10),
    Season.SUMMER_VACATION: (7, 25, 8, 31),
}

MONTH_SEASONS = {
    3: Season.SPRING, 4: Season.SPRING, 5: Season.SPRING,
    6: Season.SUMMER, 7: Season.SUMMER, 8: Season.SUMMER,
    9: Season.AUTUMN, 10: Season.AUTUMN, 11: Season.AUTUMN,
    12: Season.WINTER, 1: Season.WINTER, 2: Season.WINTER,
}


def _in_period(day: date, period) -> bool:
    start_month, start_day, end_month, end_day = period
    key = (day.month, day.day)
    start, end = (start_month, start_day), (end_month, end_day)
    if start <= end:
        return start <= key <= end
    return key >= start or key <= end


def special_period_for(day: date) -> Optional[Season]:
    for season, period in SPECIAL_PERIODS.items():
        if _in_period(day, period):
            return season
    return None


def season_for(day: date) -> Season:
    """Calendar season of ``day`` by month."""
    return MONTH_SEASONS[day.month]


@dataclass(frozen=True)
class SeasonalRule:
    """Discount applied during one season: a rate or a fixed amount."""
    description: str
    rate: Optional[Decimal] = None
    amount: Optional[Money] = None
    minimum_purchase: Optional[Money] = None

    def __post_init__(self):
        if (self.rate is None) == (self.amount is None):
            raise ValidationError("A seasonal rule needs exactly one of rate or amount")
        if self.rate is not None:
            object.__setattr__(self, "rate", validate_rate(self.rate))

    @classmethod
    def of_rate(cls, rate: Number, description: str) -> "SeasonalRule":
        return cls(description=description, rate=to_decimal(rate, "rate"))

    @classmethod
    def of_amount(cls, amount: Money, description: str) -> "SeasonalRule":
        return cls(description=description, amount=amount)

    def apply(self, original_price: Money) -> Money:
        if _below_minimum(original_price, self.minimum_purchase):
            return original_price
        if self.rate is not None:
            return _subtract_floored(original_price, original_price.multiply(self.rate))
        return _subtract_floored(original_price, self.amount)


class SeasonalDiscountPolicy(DiscountPolicy):
    """
    Discount keyed on the purchase date.

    Special periods (year-end holidays, back to school, summer vacation) win
    over the plain calendar season when a rule exists for them.
    """

    def __init__(
        self,
        rules: Mapping[Season, SeasonalRule],
        description: str = "Seasonal discount",
        priority: int = SEASONAL_PRIORITY,
    ):
        if not rules:
            raise ValidationError("At least one seasonal rule is required")
        self._rules: Dict[Season, SeasonalRule] = dict(rules)
        self._description = _validate_description(description)
        self._priority = priority

    @classmethod
    def standard(cls) -> "SeasonalDiscountPolicy":
        return cls(
            {
                Season.SPRING: SeasonalRule.of_rate("0.10", "Spring 10% off"),
                Season.SUMMER: SeasonalRule.of_rate("0.15", "Summer peak 15% off"),
                Season.AUTUMN: SeasonalRule.of_rate("0.05", "Autumn 5% off"),
                Season.WINTER: SeasonalRule.of_rate("0.12", "Winter 12% off"),
            },
            description="Standard four-season discount",
        )

    @classmethod
    def holiday_special(cls) -> "SeasonalDiscountPolicy":
        return cls(
            {Season.HOLIDAY_SEASON: SeasonalRule.of_rate("0.20", "Year-end holiday 20% off")},
            description="Holiday special",
            priority=COUPON_PRIORITY,
        )

    @property
    def rules(self) -> Dict[Season, SeasonalRule]:
        return dict(self._rules)

    def rule_for(self, day: date) -> Optional[SeasonalRule]:
        special = special_period_for(day)
        if special is not None and special in self._rules:
            return self._rules[special]
        return self._rules.get(season_for(day))

    def is_applicable(self, context: DiscountContext) -> bool:
        return self.rule_for(context.purchase_date) is not None

    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        rule = self.rule_for(context.purchase_date)
        if rule is None:
            return original_price
        return rule.apply(original_price)

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def description(self) -> str:
        return self._description


class NoDiscountPolicy(DiscountPolicy):
    """Null object: never applies and never changes the price."""

    def is_applicable(self, context: DiscountContext) -> bool:
        return False

    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        return original_price

    @property
    def priority(self) -> int:
        return LOWEST_PRIORITY

    @property
    def description(self) -> str:
        return "No discount"
