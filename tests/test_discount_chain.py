"""
Tests for composite discounts and the discount chain.
"""

import pendulum
import pytest

from bookingrules.domain.contexts import DiscountContext
from bookingrules.domain.exceptions import ValidationError
from bookingrules.domain.money import Money
from bookingrules.policies.discount import (
    AmountDiscountPolicy,
    CouponDiscountPolicy,
    NoDiscountPolicy,
    RateDiscountPolicy,
)
from bookingrules.policies.discount_chain import (
    CombinationStrategy,
    CompositeDiscountPolicy,
    DiscountChain,
    sort_by_priority,
)


@pytest.fixture
def ctx():
    return DiscountContext(purchase_date=pendulum.date(2025, 4, 15), coupon_code="SPRING")


def rate(value, name, priority=100):
    return RateDiscountPolicy(value, name, priority=priority)


class TestSortByPriority:
    """Tests for ordering."""

    def test_ties_keep_insertion_order(self):
        """Test that the sort is stable."""
        first, second, urgent = rate("0.1", "first"), rate("0.1", "second"), rate("0.1", "urgent", 5)

        ordered = sort_by_priority([first, second, urgent])

        assert [p.description for p in ordered] == ["urgent", "first", "second"]


class TestCompositeDiscountPolicy:
    """Tests for the three combination strategies."""

    def test_sequential(self, ctx):
        """Test that each discount sees the previous result."""
        policy = CompositeDiscountPolicy.sequential(
            [rate("0.1", "10%"), AmountDiscountPolicy(Money.won(1000), "1000 off")]
        )

        assert policy.apply_discount(Money.won(10000), ctx) == Money.won(8000)

    def test_best_discount(self, ctx):
        """Test that only the largest discount is kept."""
        policy = CompositeDiscountPolicy.best_discount(
            [rate("0.1", "10%"), AmountDiscountPolicy(Money.won(3000), "3000 off")]
        )

        assert policy.apply_discount(Money.won(10000), ctx) == Money.won(7000)
        assert policy.apply_discount(Money.won(50000), ctx) == Money.won(45000)

    def test_priority_first(self, ctx):
        """Test that the lowest priority value wins."""
        policy = CompositeDiscountPolicy.priority_first(
            [rate("0.5", "half", priority=90), rate("0.1", "urgent", priority=1)]
        )

        assert policy.apply_discount(Money.won(10000), ctx) == Money.won(9000)
        assert policy.priority == 1

    def test_inapplicable_children_skipped(self, ctx):
        """Test that inapplicable children do not contribute."""
        policy = CompositeDiscountPolicy.priority_first([NoDiscountPolicy(), rate("0.1", "10%")])

        assert policy.apply_discount(Money.won(10000), ctx) == Money.won(9000)

    def test_not_applicable_when_no_child_is(self, ctx):
        """Test composite applicability."""
        policy = CompositeDiscountPolicy.sequential([NoDiscountPolicy()])

        assert not policy.is_applicable(ctx)
        assert policy.apply_discount(Money.won(10000), ctx) == Money.won(10000)

    def test_maximum_total_discount(self, ctx):
        """Test the overall cap."""
        policy = CompositeDiscountPolicy(
            [rate("0.5", "half"), rate("0.5", "half again")],
            maximum_total_discount=Money.won(6000),
        )

        assert policy.apply_discount(Money.won(10000), ctx) == Money.won(4000)

    def test_minimum_final_amount(self, ctx):
        """Test the floor and that it never exceeds the original price."""
        policy = CompositeDiscountPolicy(
            [rate("0.9", "90%")],
            minimum_final_amount=Money.won(3000),
        )

        assert policy.apply_discount(Money.won(10000), ctx) == Money.won(3000)
        assert policy.apply_discount(Money.won(2000), ctx) == Money.won(2000)

    def test_description(self):
        """Test the strategy summary in the description."""
        policy = CompositeDiscountPolicy.best_discount([rate("0.1", "10%")], "Spring deal")

        assert policy.description == "Spring deal (apply only the largest discount)"
        assert policy.strategy is CombinationStrategy.BEST_DISCOUNT

    def test_empty_rejected(self):
        """Test that a composite needs children."""
        with pytest.raises(ValidationError):
            CompositeDiscountPolicy([])


class TestDiscountChain:
    """Tests for the priority-ordered chain."""

    def test_applies_in_priority_order(self, ctx):
        """Test ordering and the per-step breakdown."""
        coupon = CouponDiscountPolicy("SPRING", amount=Money.won(1000))
        chain = DiscountChain([rate("0.1", "10%"), coupon])

        breakdown = chain.apply(Money.won(10000), ctx)

        assert [step.description for step in breakdown.applied] == [coupon.description, "10%"]
        assert breakdown.applied[0].amount == Money.won(1000)
        assert breakdown.applied[1].price_before == Money.won(9000)
        assert breakdown.final_price == Money.won(8100)
        assert breakdown.total_discount == Money.won(1900)
        assert breakdown.has_discount()

    def test_skipped_policies_recorded(self, ctx):
        """Test that inapplicable policies are listed as skipped."""
        chain = DiscountChain([NoDiscountPolicy(), rate("0.1", "10%")])

        breakdown = chain.apply(Money.won(10000), ctx)

        assert breakdown.skipped == ("No discount",)
        assert len(breakdown.applied) == 1

    def test_equal_priorities_keep_order(self, ctx):
        """Test stable ordering for ties, including policies added later."""
        chain = DiscountChain([rate("0.1", "a")]).with_policy(rate("0.1", "b")).with_policy(rate("0.1", "c", 1))

        assert [p.description for p in chain.policies] == ["c", "a", "b"]
        assert len(chain) == 3

    def test_empty_chain(self, ctx):
        """Test that an empty chain returns the original price."""
        breakdown = DiscountChain().apply(Money.won(5000), ctx)

        assert breakdown.final_price == Money.won(5000)
        assert not breakdown.has_discount()

    def test_final_price(self, ctx):
        """Test the shortcut."""
        assert DiscountChain([rate("0.2", "20%")]).final_price(Money.won(20000), ctx) == Money.won(16000)

    def test_none_arguments_rejected(self, ctx):
        """Test argument validation."""
        with pytest.raises(ValidationError):
            DiscountChain().apply(None, ctx)
        with pytest.raises(ValidationError):
            DiscountChain().with_policy(None)
