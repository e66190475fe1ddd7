"""Engine subpackage - core pricing and adjustment logic."""
from .pricing_engine import (
    PricingEngine,
    apply_payment_method_adjustments,
    calculate_line_amount,
    calculate_processing_fee,
    calculate_subtotal,
    get_ach_discount,
    round_cents,
)
from .models import (
    CalculatedLine,
    DraftLine,
    LineType,
    PaymentMethodType,
    PricingAdjustments,
    PricingContractError,
    PricingResult,
)

__all__ = [
    'PricingEngine', 'apply_payment_method_adjustments', 'calculate_line_amount',
    'calculate_processing_fee', 'calculate_subtotal', 'get_ach_discount', 'round_cents',
    'CalculatedLine', 'DraftLine', 'LineType', 'PaymentMethodType', 'PricingAdjustments',
    'PricingContractError', 'PricingResult',
]
