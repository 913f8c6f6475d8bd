"""
Domain-specific exception hierarchy for the booking rules package.

Only construction and argument failures are exceptions. Business denials
(cancellation refused, discount not applicable, unmatched lead time) are
returned as plain values.
"""


class BookingRulesError(Exception):
    """Base class for all package-level errors."""


class ValidationError(BookingRulesError, ValueError):
    """Raised when a value object or policy is built from invalid input."""


class CurrencyMismatchError(ValidationError):
    """Raised when money in two different currencies is combined or compared."""


class ConfigurationError(BookingRulesError):
    """Raised when a policy configuration cannot be turned into domain objects."""
