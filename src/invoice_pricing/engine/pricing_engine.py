"""
Invoice Pricing Engine - payment-method adjustments for billing drafts.

Takes the draft lines of an invoice and the client's payment-method
configuration and produces:
- A calculated amount for every line (quantity × unit price, rounded per line)
- An ACH auto-pay discount line when the client pays by ACH with auto-pay on
- A card processing fee, shown as its own line or folded into the total
- The base subtotal and the final total

Rounding is ROUND_HALF_UP on the exact decimal product, so 0.5¢ rounds away
from zero. Floats are converted through repr() so 1.005 stays 1.005 rather
than its binary approximation.

Everything here is pure: no I/O and no shared mutable state.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from ..config.settings import DEFAULT_PRICING_RULES, PricingRules
from .models import (
    CalculatedLine,
    DraftLine,
    LineType,
    PaymentMethodType,
    PricingAdjustments,
    PricingContractError,
    PricingResult,
)

logger = logging.getLogger(__name__)

ACH_DISCOUNT_DESCRIPTION = "ACH Auto-Pay Discount"
CARD_FEE_DESCRIPTION = "Card Processing Fee"

Number = Union[int, float]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, int):
        return Decimal(value)
    return Decimal(repr(value))


def round_cents(value: Union[Number, Decimal]) -> int:
    """Round to a whole number of cents, halves away from zero."""
    if not isinstance(value, Decimal):
        value = _to_decimal(value)
    if not value.is_finite():
        raise PricingContractError(f"cannot round non-finite amount {value}")
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def calculate_line_amount(line: DraftLine) -> CalculatedLine:
    """Attach amount_cents = round(quantity × unit_price_cents) to a draft line."""
    amount = round_cents(_to_decimal(line.quantity) * line.unit_price_cents)
    return CalculatedLine(
        line_type=line.line_type,
        description=line.description,
        quantity=line.quantity,
        unit_price_cents=line.unit_price_cents,
        amount_cents=amount,
        metadata=line.metadata,
    )


def calculate_subtotal(lines: Iterable[DraftLine]) -> int:
    """Sum of per-line rounded amounts (rounded per line, then summed)."""
    return sum(calculate_line_amount(line).amount_cents for line in lines)


def get_ach_discount(
    auto_pay_enabled: bool,
    discount_cents: int = DEFAULT_PRICING_RULES.ach_auto_pay_discount_cents,
) -> int:
    """
    Resolve the ACH auto-pay discount.

    Returns 0 when auto-pay is off. A negative configured discount is
    treated as 0, never as a surcharge.
    """
    if not auto_pay_enabled:
        return 0
    return max(0, discount_cents)


def calculate_processing_fee(
    subtotal_cents: int,
    payment_method: Union[PaymentMethodType, str],
    rate: Optional[float] = None,
    fixed_cents: Optional[int] = None,
) -> int:
    """
    Card processing fee for a subtotal: round(subtotal × rate) + fixed.

    Only card payments carry a fee, and only on a positive subtotal.
    A rate or fixed fee of None falls back to the default rules.
    """
    if rate is None:
        rate = DEFAULT_PRICING_RULES.card_processing_fee_rate
    if fixed_cents is None:
        fixed_cents = DEFAULT_PRICING_RULES.card_processing_fee_fixed_cents

    try:
        method = PaymentMethodType(payment_method)
    except ValueError:
        raise PricingContractError(f"unknown payment method {payment_method!r}") from None
    if rate < 0 or fixed_cents < 0:
        raise PricingContractError(
            f"processing fee rate and fixed fee must not be negative, got {rate!r} and {fixed_cents!r}"
        )

    if method is not PaymentMethodType.CARD:
        return 0
    if subtotal_cents <= 0:
        return 0
    return round_cents(Decimal(subtotal_cents) * _to_decimal(rate)) + fixed_cents


def apply_payment_method_adjustments(
    lines: Iterable[DraftLine],
    adjustments: PricingAdjustments,
    rules: Optional[PricingRules] = None,
) -> PricingResult:
    """
    Price a billing draft for the client's payment method.

    Resolution order:
    1. Calculate every draft line; their sum is the base subtotal
    2. ACH: append an "ACH Auto-Pay Discount" line when auto-pay earns one
    3. Card: compute the processing fee from the base subtotal
    4. Append the fee as a "Card Processing Fee" line unless the fee line
       is explicitly hidden, in which case it is folded into the total
    5. Total = sum of returned lines + folded fee

    The subtotal only ever reflects the caller's lines. The fee never sees
    the discount; card and ACH adjustments cannot both apply to one call.
    """
    rules = rules or DEFAULT_PRICING_RULES

    calculated = [calculate_line_amount(line) for line in lines]
    subtotal = sum(line.amount_cents for line in calculated)

    result = PricingResult(lines=calculated, subtotal_cents=subtotal, total_cents=0)
    result.add_trace("Subtotal", f"{len(calculated)} draft lines", str(subtotal))

    # 1. ACH auto-pay discount
    discount = 0
    if adjustments.payment_method_type is PaymentMethodType.ACH:
        configured = adjustments.ach_discount_cents
        if configured is None:
            configured = rules.ach_auto_pay_discount_cents
        discount = get_ach_discount(bool(adjustments.auto_pay_enabled), configured)
        if discount > 0:
            calculated.append(CalculatedLine(
                line_type=LineType.DISCOUNT,
                description=ACH_DISCOUNT_DESCRIPTION,
                quantity=1,
                unit_price_cents=-discount,
                amount_cents=-discount,
            ))
            result.add_trace("ACH Discount", "Auto-pay discount applied", str(-discount))
        else:
            result.add_trace("ACH Discount", "No auto-pay discount")
    result.discount_cents = discount

    # 2. Card processing fee, always from the pre-discount subtotal
    rate = adjustments.processing_fee_rate
    if rate is None:
        rate = rules.card_processing_fee_rate
    fixed = adjustments.processing_fee_fixed_cents
    if fixed is None:
        fixed = rules.card_processing_fee_fixed_cents

    fee = calculate_processing_fee(subtotal, adjustments.payment_method_type, rate, fixed)
    result.processing_fee_cents = fee

    show_line = adjustments.show_processing_fee_line
    if show_line is None:
        show_line = rules.show_explicit_processing_fee
    fold_fee = fee > 0 and not show_line

    if fee > 0 and not fold_fee:
        calculated.append(CalculatedLine(
            line_type=LineType.PROCESSING_FEE,
            description=CARD_FEE_DESCRIPTION,
            quantity=1,
            unit_price_cents=fee,
            amount_cents=fee,
        ))
        result.add_trace("Processing Fee", f"{rate:.2%} + {fixed}¢ shown as line", str(fee))
    elif fold_fee:
        result.add_trace("Processing Fee", f"{rate:.2%} + {fixed}¢ folded into total", str(fee))
    result.fee_folded = fold_fee

    # 3. Total
    result.total_cents = sum(line.amount_cents for line in calculated) + (fee if fold_fee else 0)
    result.add_trace("Total", f"Payment method {adjustments.payment_method_type.value}", str(result.total_cents))

    logger.debug(
        "priced %d lines via %s: subtotal=%d discount=%d fee=%d folded=%s total=%d",
        len(calculated),
        adjustments.payment_method_type.value,
        subtotal, discount, fee, fold_fee, result.total_cents,
    )
    return result


class PricingEngine:
    """
    Pricing engine bound to one set of PricingRules.

    Thin wrapper over the module functions so callers can carry their rule
    defaults around instead of passing them on every call.
    """

    def __init__(self, rules: Optional[PricingRules] = None):
        self.rules = rules or DEFAULT_PRICING_RULES

    def get_ach_discount(self, auto_pay_enabled: bool, discount_cents: Optional[int] = None) -> int:
        if discount_cents is None:
            discount_cents = self.rules.ach_auto_pay_discount_cents
        return get_ach_discount(auto_pay_enabled, discount_cents)

    def calculate_processing_fee(
        self,
        subtotal_cents: int,
        payment_method: Union[PaymentMethodType, str],
        rate: Optional[float] = None,
        fixed_cents: Optional[int] = None,
    ) -> int:
        if rate is None:
            rate = self.rules.card_processing_fee_rate
        if fixed_cents is None:
            fixed_cents = self.rules.card_processing_fee_fixed_cents
        return calculate_processing_fee(subtotal_cents, payment_method, rate, fixed_cents)

    def calculate(self, lines: Iterable[DraftLine], adjustments: PricingAdjustments) -> PricingResult:
        """Calculate a priced invoice with full traceability."""
        return apply_payment_method_adjustments(lines, adjustments, self.rules)
