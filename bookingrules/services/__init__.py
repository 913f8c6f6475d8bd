"""
Service layer - Orchestrates the policy engines for callers such as the CLI.
"""

from .availability import AvailabilityCalculator, merge_slots
from .pricing import CancellationQuote, PricingService, ReservationQuote

__all__ = [
    "AvailabilityCalculator",
    "CancellationQuote",
    "PricingService",
    "ReservationQuote",
    "merge_slots",
]
