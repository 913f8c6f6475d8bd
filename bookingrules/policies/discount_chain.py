"""
Combining several discount strategies.

``CompositeDiscountPolicy`` is itself a ``DiscountPolicy`` so composites can
nest. ``DiscountChain`` is the orchestrator used by the pricing service: it
orders strategies by priority and records what each one contributed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from ..domain.contexts import DiscountContext
from ..domain.exceptions import ValidationError
from ..domain.money import Money, min_money
from .discount import LOWEST_PRIORITY, DiscountPolicy


class CombinationStrategy(str, Enum):
    """How a composite combines its children."""
    SEQUENTIAL = "sequential"
    BEST_DISCOUNT = "best_discount"
    PRIORITY_FIRST = "priority_first"

    @property
    def summary(self) -> str:
        return {
            CombinationStrategy.SEQUENTIAL: "apply every discount in turn",
            CombinationStrategy.BEST_DISCOUNT: "apply only the largest discount",
            CombinationStrategy.PRIORITY_FIRST: "apply only the highest-priority discount",
        }[self]


def sort_by_priority(policies: Iterable[DiscountPolicy]) -> List[DiscountPolicy]:
    """Order by ascending priority; equal priorities keep their insertion order."""
    return sorted(policies, key=lambda policy: policy.priority)


class CompositeDiscountPolicy(DiscountPolicy):
    """
    Group of discount policies combined with a ``CombinationStrategy``.

    Optional guards run after combination:
    - ``maximum_total_discount`` caps the overall discount
    - ``minimum_final_amount`` keeps the final price from dropping below a
      floor (never above the original price)
    """

    def __init__(
        self,
        policies: Iterable[DiscountPolicy],
        strategy: CombinationStrategy = CombinationStrategy.SEQUENTIAL,
        description: str = "Combined discount",
        maximum_total_discount: Optional[Money] = None,
        minimum_final_amount: Optional[Money] = None,
    ):
        self._policies: Tuple[DiscountPolicy, ...] = tuple(policies or ())
        if not self._policies:
            raise ValidationError("A composite discount needs at least one policy")
        self._strategy = CombinationStrategy(strategy)
        self._description = description.strip() if description and description.strip() else "Combined discount"
        self._maximum_total_discount = maximum_total_discount
        self._minimum_final_amount = minimum_final_amount

    @classmethod
    def sequential(cls, policies: Iterable[DiscountPolicy], description: str = "Combined discount"):
        return cls(policies, CombinationStrategy.SEQUENTIAL, description)

    @classmethod
    def best_discount(cls, policies: Iterable[DiscountPolicy], description: str = "Best discount"):
        return cls(policies, CombinationStrategy.BEST_DISCOUNT, description)

    @classmethod
    def priority_first(cls, policies: Iterable[DiscountPolicy], description: str = "Priority discount"):
        return cls(policies, CombinationStrategy.PRIORITY_FIRST, description)

    @property
    def policies(self) -> List[DiscountPolicy]:
        return list(self._policies)

    @property
    def strategy(self) -> CombinationStrategy:
        return self._strategy

    @property
    def priority(self) -> int:
        return min((policy.priority for policy in self._policies), default=LOWEST_PRIORITY)

    @property
    def description(self) -> str:
        return f"{self._description} ({self._strategy.summary})"

    def is_applicable(self, context: DiscountContext) -> bool:
        return any(policy.is_applicable(context) for policy in self._policies)

    def apply_discount(self, original_price: Money, context: DiscountContext) -> Money:
        if not self.is_applicable(context):
            return original_price
        if self._strategy is CombinationStrategy.SEQUENTIAL:
            discounted = self._apply_sequential(original_price, context)
        elif self._strategy is CombinationStrategy.BEST_DISCOUNT:
            discounted = self._apply_best(original_price, context)
        else:
            discounted = self._apply_priority_first(original_price, context)
        return self._apply_limits(original_price, discounted)

    def _apply_sequential(self, price: Money, context: DiscountContext) -> Money:
        current = price
        for policy in self._policies:
            if policy.is_applicable(context):
                current = policy.apply_discount(current, context)
        return current

    def _apply_best(self, price: Money, context: DiscountContext) -> Money:
        best = price
        for policy in self._policies:
            if policy.is_applicable(context):
                candidate = policy.apply_discount(price, context)
                if candidate.is_less_than(best):
                    best = candidate
        return best

    def _apply_priority_first(self, price: Money, context: DiscountContext) -> Money:
        for policy in sort_by_priority(self._policies):
            if policy.is_applicable(context):
                return policy.apply_discount(price, context)
        return price

    def _apply_limits(self, original_price: Money, discounted: Money) -> Money:
        result = discounted
        if self._maximum_total_discount is not None:
            floor = original_price.subtract(min_money(self._maximum_total_discount, original_price))
            if result.is_less_than(floor):
                result = floor
        if self._minimum_final_amount is not None and result.is_less_than(self._minimum_final_amount):
            # never above the original price
            result = min_money(self._minimum_final_amount, original_price)
        return result


@dataclass(frozen=True)
class AppliedDiscount:
    """One step of a discount chain."""
    description: str
    priority: int
    price_before: Money
    price_after: Money

    @property
    def amount(self) -> Money:
        return self.price_before.subtract(self.price_after)


@dataclass(frozen=True)
class DiscountBreakdown:
    """Result of running a ``DiscountChain``."""
    original_price: Money
    final_price: Money
    applied: Tuple[AppliedDiscount, ...] = field(default_factory=tuple)
    skipped: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def total_discount(self) -> Money:
        return self.original_price.subtract(self.final_price)

    def has_discount(self) -> bool:
        return self.total_discount.is_positive()


class DiscountChain:
    """
    Applies discount policies one after another in priority order.

    Each applicable policy receives the price left by the previous one.
    Policies with equal priority run in the order they were given.
    """

    def __init__(self, policies: Iterable[DiscountPolicy] = ()):
        self._policies: Tuple[DiscountPolicy, ...] = tuple(sort_by_priority(policies))

    @property
    def policies(self) -> List[DiscountPolicy]:
        return list(self._policies)

    def with_policy(self, policy: DiscountPolicy) -> "DiscountChain":
        if policy is None:
            raise ValidationError("policy must not be None")
        # stable sort: earlier equal-priority policies stay first
        return DiscountChain(self._policies + (policy,))

    def apply(self, original_price: Money, context: DiscountContext) -> DiscountBreakdown:
        if original_price is None:
            raise ValidationError("original_price must not be None")
        if context is None:
            raise ValidationError("context must not be None")

        current = original_price
        applied: List[AppliedDiscount] = []
        skipped: List[str] = []
        for policy in self._policies:
            if not policy.is_applicable(context):
                skipped.append(policy.description)
                continue
            discounted = policy.apply_discount(current, context)
            applied.append(
                AppliedDiscount(
                    description=policy.description,
                    priority=policy.priority,
                    price_before=current,
                    price_after=discounted,
                )
            )
            current = discounted

        return DiscountBreakdown(
            original_price=original_price,
            final_price=current,
            applied=tuple(applied),
            skipped=tuple(skipped),
        )

    def final_price(self, original_price: Money, context: DiscountContext) -> Money:
        return self.apply(original_price, context).final_price

    def __len__(self) -> int:
        return len(self._policies)
