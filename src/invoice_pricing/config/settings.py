"""
Centralized settings and pricing rule defaults for the invoice pricing tool.
"""
import math
import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional


ENV_PREFIX = "INVOICE_PRICING_"

PAYMENT_METHODS = ('card', 'ach', 'offline')


@dataclass(frozen=True)
class PricingRules:
    """Default adjustment rules applied when a call does not override them."""
    ach_auto_pay_discount_cents: int = 500
    card_processing_fee_rate: float = 0.029
    card_processing_fee_fixed_cents: int = 30
    show_explicit_processing_fee: bool = True

    def __post_init__(self):
        for name in ('ach_auto_pay_discount_cents', 'card_processing_fee_fixed_cents'):
            value = getattr(self, name)
            # bool is an int subclass; True must not pass as 1 cent
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
        rate = self.card_processing_fee_rate
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or not math.isfinite(rate):
            raise ValueError(f"card_processing_fee_rate must be a finite number, got {rate!r}")
        if rate < 0:
            raise ValueError(f"card_processing_fee_rate must not be negative, got {rate!r}")
        if self.card_processing_fee_fixed_cents < 0:
            raise ValueError(
                f"card_processing_fee_fixed_cents must not be negative, "
                f"got {self.card_processing_fee_fixed_cents}"
            )

    def to_dict(self) -> dict:
        return {
            "ach_auto_pay_discount_cents": self.ach_auto_pay_discount_cents,
            "card_processing_fee_rate": self.card_processing_fee_rate,
            "card_processing_fee_fixed_cents": self.card_processing_fee_fixed_cents,
            "show_explicit_processing_fee": self.show_explicit_processing_fee,
        }


DEFAULT_PRICING_RULES = PricingRules()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in ('1', 'true', 'yes', 'on'):
        return True
    if value in ('0', 'false', 'no', 'off'):
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _parse_float(name: str, raw: str) -> float:
    try:
        value = float(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {raw!r}")
    return value


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    pricing_rules: PricingRules = field(default_factory=PricingRules)

    # Used by draft assembly when a project has no payment method on record
    default_payment_method: str = 'card'

    # Invoice numbers look like INV-202601-AB12
    invoice_prefix: str = 'INV'

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Load settings, applying INVOICE_PRICING_* environment overrides."""
        env = os.environ if environ is None else environ
        rules = DEFAULT_PRICING_RULES
        overrides = {}

        key = ENV_PREFIX + 'ACH_DISCOUNT_CENTS'
        if env.get(key):
            overrides['ach_auto_pay_discount_cents'] = _parse_int(key, env[key])

        key = ENV_PREFIX + 'CARD_FEE_RATE'
        if env.get(key):
            overrides['card_processing_fee_rate'] = _parse_float(key, env[key])

        key = ENV_PREFIX + 'CARD_FEE_FIXED_CENTS'
        if env.get(key):
            overrides['card_processing_fee_fixed_cents'] = _parse_int(key, env[key])

        key = ENV_PREFIX + 'SHOW_FEE_LINE'
        if env.get(key):
            overrides['show_explicit_processing_fee'] = _parse_bool(key, env[key])

        if overrides:
            rules = replace(rules, **overrides)

        default_method = env.get(ENV_PREFIX + 'DEFAULT_PAYMENT_METHOD', 'card').strip().lower()
        if default_method not in PAYMENT_METHODS:
            raise ValueError(
                f"{ENV_PREFIX}DEFAULT_PAYMENT_METHOD must be one of {', '.join(PAYMENT_METHODS)}"
            )

        return cls(
            pricing_rules=rules,
            default_payment_method=default_method,
            invoice_prefix=env.get(ENV_PREFIX + 'INVOICE_PREFIX', 'INV').strip() or 'INV',
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
