"""
Configuration management using Pydantic models loaded from YAML.

The configuration names the policies to use and may declare extra fee
tables and discounts; ``AppConfig`` turns them into domain strategies.
"""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import ConfigurationError, ValidationError
from .domain.money import Money
from .policies.cancellation import CancellationFeeCalculator, FeeRule, hours
from .policies.cancellation_policies import (
    CancellationPolicy,
    NoCancellationPolicy,
    TieredCancellationPolicy,
)
from .policies.discount import (
    DEFAULT_PRIORITY,
    MEMBERSHIP_PRIORITY,
    AmountDiscountPolicy,
    CouponDiscountPolicy,
    DiscountPolicy,
    MembershipDiscountPolicy,
    RateDiscountPolicy,
    SeasonalDiscountPolicy,
)
from .policies.discount_chain import DiscountChain
from .policies.reservation import (
    FlexibleReservationPolicy,
    PremiumReservationPolicy,
    ReservationPolicy,
    RestrictiveReservationPolicy,
    StandardReservationPolicy,
)
from .services.availability import AvailabilityCalculator
from .services.pricing import PricingService

CONFIG_FILENAME = "bookingrules.yaml"

BUILTIN_CANCELLATION_POLICIES: Dict[str, Callable[[], CancellationPolicy]] = {
    "standard": TieredCancellationPolicy.standard,
    "strict": TieredCancellationPolicy.strict,
    "flexible": TieredCancellationPolicy.flexible,
    "no_cancellation": NoCancellationPolicy.strict,
    "no_cancellation_emergency": NoCancellationPolicy.with_emergency_allowance,
}

RESERVATION_POLICIES: Dict[str, Callable[[], ReservationPolicy]] = {
    "standard": StandardReservationPolicy,
    "restrictive": RestrictiveReservationPolicy,
    "flexible": FlexibleReservationPolicy,
    "premium": PremiumReservationPolicy,
}


def _check_rate(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is not None and not Decimal(0) <= value <= Decimal(1):
        raise ValueError(f"rate must be between 0 and 1, got {value}")
    return value


def _check_non_negative(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is not None and value < 0:
        raise ValueError(f"amount must not be negative, got {value}")
    return value


class DefaultsConfig(BaseModel):
    """Defaults for availability searches."""
    slot_duration_minutes: int = 60
    step_minutes: int = 30
    opening_hour: int = 9
    closing_hour: int = 22

    @field_validator("slot_duration_minutes", "step_minutes")
    @classmethod
    def validate_minutes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("minutes must be greater than zero")
        return value

    @field_validator("opening_hour")
    @classmethod
    def validate_opening_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @field_validator("closing_hour")
    @classmethod
    def validate_closing_hour(cls, v: int) -> int:
        if not 1 <= v <= 24:
            raise ValueError(f"Hour must be between 1 and 24, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DefaultsConfig":
        """Ensure the configured window opens before it closes."""
        if self.closing_hour <= self.opening_hour:
            raise ValueError("closing_hour must be later than opening_hour")
        return self


class FeeTierConfig(BaseModel):
    """One row of a cancellation fee table, bounds in hours."""
    description: str
    min_hours: float = 0
    max_hours: Optional[float] = None
    rate: Decimal = Decimal("0")
    fixed_fee: Decimal = Decimal("0")
    max_fee: Optional[Decimal] = None

    @field_validator("rate")
    @classmethod
    def validate_rate(cls, value: Decimal) -> Decimal:
        return _check_rate(value)

    @field_validator("fixed_fee", "max_fee")
    @classmethod
    def validate_amounts(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        return _check_non_negative(value)

    @model_validator(mode="after")
    def validate_bounds(self) -> "FeeTierConfig":
        if self.min_hours < 0:
            raise ValueError("min_hours must not be negative")
        if self.max_hours is not None and self.max_hours <= self.min_hours:
            raise ValueError("max_hours must be greater than min_hours")
        return self

    def to_fee_rule(self, currency: str) -> FeeRule:
        return FeeRule(
            min_before=hours(self.min_hours),
            max_before=hours(self.max_hours) if self.max_hours is not None else None,
            rate=self.rate,
            fixed_fee=Money.of(self.fixed_fee, currency) if self.fixed_fee else None,
            max_fee=Money.of(self.max_fee, currency) if self.max_fee is not None else None,
            description=self.description,
        )


class CancellationPolicyConfig(BaseModel):
    """A custom tiered cancellation policy."""
    name: str
    description: str = ""
    tiers: List[FeeTierConfig]
    first_time_tiers: List[FeeTierConfig] = Field(default_factory=list)
    allow_after_start: bool = True
    same_day_minimum_hours: Optional[float] = None

    @field_validator("tiers")
    @classmethod
    def validate_tiers(cls, value: List[FeeTierConfig]) -> List[FeeTierConfig]:
        if not value:
            raise ValueError("A cancellation policy needs at least one fee tier")
        return value

    @field_validator("same_day_minimum_hours")
    @classmethod
    def validate_same_day_minimum(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value < 0:
            raise ValueError("same_day_minimum_hours must not be negative")
        return value

    def build(self, currency: str) -> TieredCancellationPolicy:
        description = self.description or f"{self.name} cancellation policy"
        calculator = CancellationFeeCalculator(
            [tier.to_fee_rule(currency) for tier in self.tiers], description
        )
        first_time = None
        if self.first_time_tiers:
            first_time = CancellationFeeCalculator(
                [tier.to_fee_rule(currency) for tier in self.first_time_tiers],
                f"{description} (first cancellation)",
            )
        return TieredCancellationPolicy(
            calculator,
            description=description,
            allow_after_start=self.allow_after_start,
            same_day_minimum_lead=(
                hours(self.same_day_minimum_hours) if self.same_day_minimum_hours is not None else None
            ),
            first_time_calculator=first_time,
        )


class DiscountPolicyConfig(BaseModel):
    """A discount strategy declared in YAML."""
    name: str
    kind: Literal["rate", "amount", "membership", "coupon", "seasonal"]
    enabled: bool = True
    description: str = ""
    rate: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    minimum_amount: Optional[Decimal] = None
    maximum_discount: Optional[Decimal] = None
    priority: Optional[int] = None
    code: Optional[str] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    target_member_ids: List[str] = Field(default_factory=list)

    @field_validator("rate")
    @classmethod
    def validate_rate(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        return _check_rate(value)

    @field_validator("amount", "minimum_amount", "maximum_discount")
    @classmethod
    def validate_amounts(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        return _check_non_negative(value)

    @model_validator(mode="after")
    def validate_kind_fields(self) -> "DiscountPolicyConfig":
        """Each kind needs its own parameters."""
        if self.kind == "rate" and self.rate is None:
            raise ValueError(f"Discount '{self.name}': rate discounts need a rate")
        if self.kind == "amount" and not self.amount:
            raise ValueError(f"Discount '{self.name}': amount discounts need a positive amount")
        if self.kind == "coupon":
            if not self.code:
                raise ValueError(f"Discount '{self.name}': coupons need a code")
            if (self.rate is None) == (self.amount is None):
                raise ValueError(f"Discount '{self.name}': coupons need exactly one of rate or amount")
            if self.priority is not None:
                raise ValueError(f"Discount '{self.name}': coupons always run at coupon priority")
        if self.kind in ("membership", "seasonal"):
            ignored = [
                field
                for field in ("rate", "amount", "minimum_amount", "maximum_discount", "code")
                if getattr(self, field) is not None
            ]
            if ignored:
                raise ValueError(
                    f"Discount '{self.name}': {self.kind} discounts do not take {', '.join(ignored)}"
                )
        if self.valid_from and self.valid_until and self.valid_until < self.valid_from:
            raise ValueError(f"Discount '{self.name}': valid_until is before valid_from")
        return self

    def _money(self, value: Optional[Decimal], currency: str) -> Optional[Money]:
        return Money.of(value, currency) if value is not None else None

    def _priority_or(self, default: int) -> int:
        return default if self.priority is None else self.priority

    def build(self, currency: str) -> DiscountPolicy:
        description = self.description or self.name
        if self.kind == "rate":
            return RateDiscountPolicy(
                self.rate,
                description,
                minimum_amount=self._money(self.minimum_amount, currency),
                maximum_discount=self._money(self.maximum_discount, currency),
                priority=self._priority_or(DEFAULT_PRIORITY),
            )
        if self.kind == "amount":
            return AmountDiscountPolicy(
                Money.of(self.amount, currency),
                description,
                minimum_amount=self._money(self.minimum_amount, currency),
                priority=self._priority_or(DEFAULT_PRIORITY),
            )
        if self.kind == "coupon":
            return CouponDiscountPolicy(
                self.code,
                rate=self.rate,
                amount=self._money(self.amount, currency),
                valid_from=self.valid_from,
                valid_until=self.valid_until,
                minimum_amount=self._money(self.minimum_amount, currency),
                target_member_ids=self.target_member_ids,
            )
        if self.kind == "seasonal":
            standard = SeasonalDiscountPolicy.standard()
            return SeasonalDiscountPolicy(
                standard.rules,
                description=self.description or standard.description,
                priority=self._priority_or(standard.priority),
            )
        return MembershipDiscountPolicy(
            description=self.description or "Membership discount",
            priority=self._priority_or(MEMBERSHIP_PRIORITY),
        )


class AppConfig(BaseModel):
    """Application configuration."""
    currency: str = "KRW"
    timezone: str = "Asia/Seoul"
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    reservation_policy: str = "standard"
    cancellation_policy: str = "standard"
    cancellation_policies: List[CancellationPolicyConfig] = Field(default_factory=list)
    discounts: List[DiscountPolicyConfig] = Field(default_factory=list)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, value: str) -> str:
        code = value.strip().upper()
        if len(code) != 3 or not code.isalpha():
            raise ValueError(f"currency must be a three-letter code, got {value!r}")
        return code

    @field_validator("reservation_policy")
    @classmethod
    def validate_reservation_policy(cls, value: str) -> str:
        if value not in RESERVATION_POLICIES:
            known = ", ".join(sorted(RESERVATION_POLICIES))
            raise ValueError(f"Unknown reservation policy '{value}' (known: {known})")
        return value

    @field_validator("cancellation_policies")
    @classmethod
    def validate_cancellation_policies(
        cls, value: List[CancellationPolicyConfig]
    ) -> List[CancellationPolicyConfig]:
        """Ensure custom policy names are unique and do not shadow built-ins."""
        seen: set[str] = set()
        for policy in value:
            key = policy.name.lower()
            if key in BUILTIN_CANCELLATION_POLICIES:
                raise ValueError(f"Cancellation policy name is reserved: {policy.name}")
            if key in seen:
                raise ValueError(f"Duplicate cancellation policy name detected: {policy.name}")
            seen.add(key)
        return value

    @field_validator("discounts")
    @classmethod
    def validate_discounts(cls, value: List[DiscountPolicyConfig]) -> List[DiscountPolicyConfig]:
        seen: set[str] = set()
        for discount in value:
            key = discount.name.lower()
            if key in seen:
                raise ValueError(f"Duplicate discount name detected: {discount.name}")
            seen.add(key)
        return value

    @model_validator(mode="after")
    def validate_default_policy(self) -> "AppConfig":
        if self.cancellation_policy.lower() not in self.cancellation_policy_names():
            raise ValueError(f"Unknown cancellation policy '{self.cancellation_policy}'")
        return self

    def cancellation_policy_names(self) -> List[str]:
        return list(BUILTIN_CANCELLATION_POLICIES) + [p.name.lower() for p in self.cancellation_policies]

    def build_cancellation_policy(self, name: str | None = None) -> CancellationPolicy:
        """
        Build a cancellation policy by name.

        Raises:
            ConfigurationError: If the name is unknown or its tiers are invalid
        """
        key = (name or self.cancellation_policy).strip().lower()
        factory = BUILTIN_CANCELLATION_POLICIES.get(key)
        if factory is not None:
            return factory()
        for policy in self.cancellation_policies:
            if policy.name.lower() == key:
                try:
                    return policy.build(self.currency)
                except ValidationError as exc:
                    raise ConfigurationError(f"Invalid cancellation policy '{policy.name}': {exc}") from exc
        known = ", ".join(self.cancellation_policy_names())
        raise ConfigurationError(f"Unknown cancellation policy '{name}' (known: {known})")

    def build_discount_policies(self) -> List[DiscountPolicy]:
        policies: List[DiscountPolicy] = []
        for discount in self.discounts:
            if not discount.enabled:
                continue
            try:
                policies.append(discount.build(self.currency))
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid discount '{discount.name}': {exc}") from exc
        return policies

    def build_discount_chain(self, include_membership: bool = False) -> DiscountChain:
        """
        Chain of the enabled discounts.

        With ``include_membership`` the plan discount is added when the file
        declares no membership discount at all; a disabled one stays off.
        """
        chain = DiscountChain(self.build_discount_policies())
        if include_membership and not any(d.kind == "membership" for d in self.discounts):
            chain = chain.with_policy(MembershipDiscountPolicy())
        return chain

    def build_reservation_policy(self) -> ReservationPolicy:
        return RESERVATION_POLICIES[self.reservation_policy]()

    def build_pricing_service(
        self, cancellation_policy: str | None = None, include_membership: bool = False
    ) -> PricingService:
        return PricingService(
            reservation_policy=self.build_reservation_policy(),
            discount_chain=self.build_discount_chain(include_membership),
            cancellation_policy=self.build_cancellation_policy(cancellation_policy),
        )

    def build_availability_calculator(self) -> AvailabilityCalculator:
        return AvailabilityCalculator(
            opening_hour=self.defaults.opening_hour,
            closing_hour=self.defaults.closing_hour,
            timezone=self.timezone,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    @classmethod
    def load_or_default(cls, config_path: Path | None = None) -> "AppConfig":
        """Load ``config_path`` (or the default location); fall back to defaults if absent."""
        path = config_path or get_default_config_path()
        if config_path is None and not path.exists():
            return cls()
        return cls.load_from_yaml(path)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / CONFIG_FILENAME

    return config_path
