"""
Currency-safe monetary amounts.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import total_ordering
from typing import Union

from .exceptions import CurrencyMismatchError, ValidationError

Number = Union[Decimal, int, float, str]

KRW = "KRW"
USD = "USD"
EUR = "EUR"

# Fractional digits kept by division
DIVISION_QUANTUM = Decimal("0.01")


def to_decimal(value: Number, field_name: str = "value") -> Decimal:
    """Convert a number-like value to ``Decimal`` without going through binary floats."""
    if value is None:
        raise ValidationError(f"{field_name} must not be None")
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValidationError(f"{field_name} is not a valid number: {value!r}") from exc
    else:
        raise ValidationError(f"{field_name} must be a number, got {type(value).__name__}")

    if not result.is_finite():
        raise ValidationError(f"{field_name} must be finite, got {value!r}")
    return result


@total_ordering
@dataclass(frozen=True)
class Money:
    """
    An immutable, non-negative amount in a single currency.

    Invariants:
    - amount >= 0; operations that would go negative raise instead of clamping.
    - binary operations and comparisons require the same currency code.
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        amount = to_decimal(self.amount, "amount")
        if amount < 0:
            raise ValidationError(f"amount must not be negative, got {amount}")

        if not isinstance(self.currency, str) or not self.currency.strip():
            raise ValidationError("currency code must be a non-empty string")
        currency = self.currency.strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError(f"currency code must be three letters, got {self.currency!r}")

        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", currency)

    # Factories

    @classmethod
    def of(cls, amount: Number, currency: str) -> "Money":
        return cls(amount=to_decimal(amount, "amount"), currency=currency)

    @classmethod
    def won(cls, amount: Number) -> "Money":
        return cls.of(amount, KRW)

    @classmethod
    def usd(cls, amount: Number) -> "Money":
        return cls.of(amount, USD)

    @classmethod
    def eur(cls, amount: Number) -> "Money":
        return cls.of(amount, EUR)

    @classmethod
    def zero(cls, currency: str = KRW) -> "Money":
        return cls(amount=Decimal(0), currency=currency)

    # Arithmetic

    def add(self, other: "Money") -> "Money":
        self._require_same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._require_same_currency(other, "subtract")
        if other.amount > self.amount:
            raise ValidationError(
                f"Subtracting {other} from {self} would produce a negative amount"
            )
        return Money(self.amount - other.amount, self.currency)

    def multiply(self, multiplier: Number) -> "Money":
        factor = to_decimal(multiplier, "multiplier")
        if factor < 0:
            raise ValidationError(f"multiplier must not be negative, got {factor}")
        return Money(self.amount * factor, self.currency)

    def divide(self, divisor: Number) -> "Money":
        """Divide and round half-up to two fractional digits."""
        value = to_decimal(divisor, "divisor")
        if value <= 0:
            raise ValidationError(f"divisor must be greater than zero, got {value}")
        quotient = (self.amount / value).quantize(DIVISION_QUANTUM, rounding=ROUND_HALF_UP)
        return Money(quotient, self.currency)

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    # Comparison

    def is_greater_than(self, other: "Money") -> bool:
        self._require_same_currency(other, "compare")
        return self.amount > other.amount

    def is_less_than(self, other: "Money") -> bool:
        self._require_same_currency(other, "compare")
        return self.amount < other.amount

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def __lt__(self, other: "Money") -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.is_less_than(other)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"

    def _require_same_currency(self, other: "Money", operation: str) -> None:
        if other is None:
            raise ValidationError(f"Cannot {operation} with None")
        if not isinstance(other, Money):
            raise ValidationError(f"Cannot {operation} Money with {type(other).__name__}")
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot {operation} different currencies ({self.currency} vs {other.currency})"
            )


def min_money(first: Money, second: Money) -> Money:
    return second if second.is_less_than(first) else first


def max_money(first: Money, second: Money) -> Money:
    return second if second.is_greater_than(first) else first
