"""
Application service that prices reservations and cancellations.

The service wires together the three policy engines: an eligibility
policy decides whether a reservation is allowed, a discount chain prices
it, and a cancellation policy computes refunds. Business denials come back
inside the quote objects; only invalid input raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..domain.contexts import CancellationContext, DiscountContext, ReservationContext
from ..domain.exceptions import ValidationError
from ..domain.money import Money
from ..policies.cancellation import CancellationResult
from ..policies.cancellation_policies import CancellationPolicy, TieredCancellationPolicy
from ..policies.discount_chain import DiscountBreakdown, DiscountChain
from ..policies.reservation import ReservationPolicy, StandardReservationPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationQuote:
    """Eligibility decision plus, when allowed, the discounted price."""
    allowed: bool
    base_price: Money
    violation_reason: Optional[str] = None
    breakdown: Optional[DiscountBreakdown] = None

    @property
    def final_price(self) -> Optional[Money]:
        return self.breakdown.final_price if self.breakdown is not None else None


@dataclass(frozen=True)
class CancellationQuote:
    """What cancelling now would cost."""
    allowed: bool
    result: CancellationResult
    denial_reason: Optional[str] = None
    policy_description: str = ""

    @property
    def fee(self) -> Money:
        return self.result.fee

    @property
    def refund_amount(self) -> Money:
        return self.result.refund_amount


class PricingService:
    """
    Orchestrates eligibility, discounts and cancellation fees.

    Policies are injected so callers (and tests) can swap in any
    combination; the defaults are the standard variants.
    """

    def __init__(
        self,
        reservation_policy: Optional[ReservationPolicy] = None,
        discount_chain: Optional[DiscountChain] = None,
        cancellation_policy: Optional[CancellationPolicy] = None,
    ) -> None:
        self._reservation_policy = reservation_policy or StandardReservationPolicy()
        self._discount_chain = discount_chain if discount_chain is not None else DiscountChain()
        self._cancellation_policy = cancellation_policy or TieredCancellationPolicy.standard()

    @property
    def reservation_policy(self) -> ReservationPolicy:
        return self._reservation_policy

    @property
    def discount_chain(self) -> DiscountChain:
        return self._discount_chain

    @property
    def cancellation_policy(self) -> CancellationPolicy:
        return self._cancellation_policy

    def price(self, base_price: Money, discount_context: DiscountContext) -> DiscountBreakdown:
        """Run the discount chain without an eligibility check."""
        breakdown = self._discount_chain.apply(base_price, discount_context)
        for step in breakdown.applied:
            logger.debug(
                "Applied discount '%s' (priority %s): %s -> %s",
                step.description,
                step.priority,
                step.price_before,
                step.price_after,
            )
        return breakdown

    def quote_reservation(
        self,
        context: ReservationContext,
        base_price: Money,
        discount_context: Optional[DiscountContext] = None,
    ) -> ReservationQuote:
        if context is None:
            raise ValidationError("context must not be None")
        if base_price is None:
            raise ValidationError("base_price must not be None")

        reason = self._reservation_policy.violation_reason(context)
        if reason is not None:
            logger.info(
                "Reservation of %s by %s denied: %s",
                context.resource_id,
                context.member.member_id,
                reason,
            )
            return ReservationQuote(allowed=False, base_price=base_price, violation_reason=reason)

        if discount_context is None:
            discount_context = DiscountContext(
                purchase_date=context.requested_at.date(),
                member=context.member,
                resource_types=frozenset({context.resource_type}),
            )

        breakdown = self.price(base_price, discount_context)
        logger.info(
            "Reservation of %s by %s quoted at %s (base %s)",
            context.resource_id,
            context.member.member_id,
            breakdown.final_price,
            base_price,
        )
        return ReservationQuote(allowed=True, base_price=base_price, breakdown=breakdown)

    def quote_cancellation(self, context: CancellationContext) -> CancellationQuote:
        if context is None:
            raise ValidationError("context must not be None")

        policy = self._cancellation_policy
        allowed = policy.is_cancellation_allowed(context)
        result = policy.calculate_fee_with_details(context.original_price, context)
        denial_reason = None if allowed else policy.cancellation_denial_reason(context)

        if allowed:
            logger.info(
                "Cancellation %s before the reservation: fee %s, refund %s",
                context.lead_time,
                result.fee,
                result.refund_amount,
            )
        else:
            logger.info("Cancellation refused by '%s': %s", policy.description, denial_reason)

        return CancellationQuote(
            allowed=allowed,
            result=result,
            denial_reason=denial_reason,
            policy_description=policy.description,
        )
