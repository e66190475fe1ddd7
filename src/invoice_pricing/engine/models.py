"""
Data models for the invoice pricing engine.

Uses dataclasses for structured, type-safe data representation.
All money values are integer minor units (cents).
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class PricingContractError(ValueError):
    """Raised when a caller hands the engine values it must never receive."""


class PaymentMethodType(str, Enum):
    CARD = 'card'
    ACH = 'ach'
    OFFLINE = 'offline'


class LineType(str, Enum):
    BASE_SUBSCRIPTION = 'base_subscription'
    USAGE = 'usage'
    PROJECT = 'project'
    PROCESSING_FEE = 'processing_fee'
    DISCOUNT = 'discount'

    @property
    def storage_value(self) -> str:
        """Value written to invoice line storage, which has no discount type."""
        if self is LineType.DISCOUNT:
            return LineType.PROCESSING_FEE.value
        return self.value


def _check_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
        raise PricingContractError(f"quantity must be a number, got {quantity!r}")
    if not math.isfinite(quantity):
        raise PricingContractError(f"quantity must be finite, got {quantity!r}")
    if quantity < 0:
        raise PricingContractError(f"quantity must not be negative, got {quantity!r}")


def _check_unit_price(unit_price_cents) -> None:
    if isinstance(unit_price_cents, bool) or not isinstance(unit_price_cents, int):
        raise PricingContractError(
            f"unit_price_cents must be an integer number of cents, got {unit_price_cents!r}"
        )
    # Only lines the engine synthesizes (CalculatedLine) may carry a negative price
    if unit_price_cents < 0:
        raise PricingContractError(
            f"unit_price_cents must not be negative on caller lines, got {unit_price_cents}"
        )


@dataclass(frozen=True)
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class DraftLine:
    """A billable entry before any adjustment is applied."""
    line_type: LineType
    description: str
    quantity: float
    unit_price_cents: int
    metadata: Optional[dict[str, Any]] = None

    def __post_init__(self):
        # Accept plain strings such as "usage" for convenience
        if not isinstance(self.line_type, LineType):
            try:
                object.__setattr__(self, 'line_type', LineType(self.line_type))
            except ValueError:
                raise PricingContractError(f"unknown line type {self.line_type!r}") from None
        _check_quantity(self.quantity)
        _check_unit_price(self.unit_price_cents)


@dataclass(frozen=True)
class CalculatedLine:
    """A draft line with its rounded amount attached."""
    line_type: LineType
    description: str
    quantity: float
    unit_price_cents: int
    amount_cents: int
    metadata: Optional[dict[str, Any]] = None

    def get_trace_text(self) -> str:
        """Get the extension of this line as human-readable text."""
        return f"→ {self.description}: {self.quantity:g} × {self.unit_price_cents}¢ = {self.amount_cents}¢"

    def to_record_dict(self) -> dict:
        """Row shape expected by the invoice line item store."""
        return {
            "line_type": self.line_type.storage_value,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "amount_cents": self.amount_cents,
            "metadata": dict(self.metadata) if self.metadata else {},
        }


@dataclass(frozen=True)
class PricingAdjustments:
    """Payment-method configuration for a single pricing call.

    Any value left as None falls back to the active PricingRules.
    """
    payment_method_type: PaymentMethodType
    auto_pay_enabled: bool = False
    ach_discount_cents: Optional[int] = None
    processing_fee_rate: Optional[float] = None
    processing_fee_fixed_cents: Optional[int] = None
    show_processing_fee_line: Optional[bool] = None

    def __post_init__(self):
        if not isinstance(self.payment_method_type, PaymentMethodType):
            try:
                object.__setattr__(
                    self, 'payment_method_type', PaymentMethodType(self.payment_method_type)
                )
            except ValueError:
                raise PricingContractError(
                    f"unknown payment method {self.payment_method_type!r}"
                ) from None
        for name in ('ach_discount_cents', 'processing_fee_fixed_cents'):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise PricingContractError(f"{name} must be an integer, got {value!r}")
        fixed = self.processing_fee_fixed_cents
        if fixed is not None and fixed < 0:
            raise PricingContractError(f"processing_fee_fixed_cents must not be negative, got {fixed}")
        rate = self.processing_fee_rate
        if rate is not None and (isinstance(rate, bool) or not math.isfinite(rate)):
            raise PricingContractError(f"processing_fee_rate must be finite, got {rate!r}")
        if rate is not None and rate < 0:
            raise PricingContractError(f"processing_fee_rate must not be negative, got {rate!r}")


@dataclass
class PricingResult:
    """Complete result of a pricing calculation."""
    lines: list[CalculatedLine]
    subtotal_cents: int
    total_cents: int

    # Adjustment amounts, both non-negative; the discount line carries -discount_cents
    discount_cents: int = 0
    processing_fee_cents: int = 0
    fee_folded: bool = False

    trace: list[TraceStep] = field(default_factory=list)

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the result-level trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable result trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"• {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"• {t.step}: {t.description}")
        return "\n".join(lines)

    def to_record_dict(self) -> dict:
        """Convert to the invoice + line item payload the persistence layer writes."""
        return {
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "discount_cents": self.discount_cents,
            "processing_fee_cents": self.processing_fee_cents,
            "fee_folded": self.fee_folded,
            "lines": [line.to_record_dict() for line in self.lines],
        }
