"""
Draft Builder - Assembles the draft lines of an invoice from raw billing inputs.

Line order on the invoice:
1. Monthly retainer (when requested and the project has one)
2. Pending items queued for the period (usage imports, project work)
3. Manual lines typed in for this invoice
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from ..engine.models import DraftLine, LineType, PaymentMethodType, PricingAdjustments
from ..engine.pricing_engine import round_cents
from .utils import DraftInputError, map_pending_to_line_type, to_number

logger = logging.getLogger(__name__)


@dataclass
class PendingItem:
    """An uninvoiced charge queued against a project."""
    id: str
    unit_price_cents: Any
    description: Optional[str] = None
    quantity: Any = None
    source_type: Optional[str] = None  # "usage", "manual", ...


@dataclass
class ManualLine:
    """A one-off line entered by hand on the invoice form."""
    description: Optional[str]
    unit_price_cents: Any
    quantity: Any = None


def _retainer_line(project_name: Optional[str], base_retainer_cents: int) -> DraftLine:
    return DraftLine(
        line_type=LineType.BASE_SUBSCRIPTION,
        description=f"{project_name or 'Client'} Monthly Retainer",
        quantity=1,
        unit_price_cents=int(base_retainer_cents),
        metadata={"source": "retainer"},
    )


def _pending_line(item: PendingItem) -> DraftLine:
    quantity = to_number(item.quantity, 1)
    if not (quantity > 0):
        quantity = 1

    unit_price = to_number(item.unit_price_cents, 0)
    if not math.isfinite(unit_price):
        unit_price = 0
    unit_price = round_cents(unit_price)
    if unit_price < 0:
        raise DraftInputError(f"Pending item {item.id} has a negative unit price.")

    return DraftLine(
        line_type=map_pending_to_line_type(item.source_type),
        description=item.description or "Service line item",
        quantity=quantity,
        unit_price_cents=unit_price,
        metadata={
            "pending_item_id": item.id,
            "source_type": item.source_type or "manual",
        },
    )


def _manual_line(line: ManualLine) -> Optional[DraftLine]:
    quantity = 1 if line.quantity is None else to_number(line.quantity, math.nan)
    unit_price = to_number(line.unit_price_cents, 0)
    if not line.description or not line.description.strip():
        return None
    if not math.isfinite(quantity) or not math.isfinite(unit_price):
        return None

    unit_price = round_cents(unit_price)
    if quantity < 0 or unit_price < 0:
        raise DraftInputError(
            f"Manual line '{line.description.strip()}' must have a non-negative quantity and price."
        )

    return DraftLine(
        line_type=LineType.PROJECT,
        description=line.description.strip(),
        quantity=quantity,
        unit_price_cents=unit_price,
        metadata={"manual_entry": "true"},
    )


def build_draft_lines(
    pending_items: Sequence[PendingItem] = (),
    manual_lines: Sequence[ManualLine] = (),
    project_name: Optional[str] = None,
    base_retainer_cents: Optional[int] = None,
    include_retainer: bool = False,
) -> list[DraftLine]:
    """
    Build the ordered draft lines for an invoice.

    Manual lines without a description or with unusable numbers are dropped.
    Raises DraftInputError when nothing billable remains.
    """
    lines = []

    retainer = int(to_number(base_retainer_cents, 0))
    if include_retainer and retainer > 0:
        lines.append(_retainer_line(project_name, retainer))

    for item in pending_items:
        lines.append(_pending_line(item))

    for manual in manual_lines:
        line = _manual_line(manual)
        if line is None:
            logger.info("Skipping manual line without a usable description or amount: %r", manual)
            continue
        lines.append(line)

    if not lines:
        raise DraftInputError("Select pending items, add manual lines, or include the retainer.")

    return lines


def resolve_adjustments(
    payment_method_type: Optional[str] = None,
    auto_pay_enabled: bool = False,
    ach_discount_cents: Optional[int] = None,
    include_processing_fee: Optional[bool] = None,
    default_payment_method: str = 'card',
) -> PricingAdjustments:
    """
    Resolve a project's billing configuration into PricingAdjustments.

    Projects without a payment method bill as the default (card). Unless
    the caller says otherwise, the fee line is shown for card payments only.
    """
    try:
        method = PaymentMethodType(payment_method_type or default_payment_method)
    except ValueError:
        raise DraftInputError(f"Unknown payment method {payment_method_type!r}.") from None
    if include_processing_fee is None:
        include_processing_fee = method is PaymentMethodType.CARD

    return PricingAdjustments(
        payment_method_type=method,
        auto_pay_enabled=bool(auto_pay_enabled),
        ach_discount_cents=ach_discount_cents,
        show_processing_fee_line=include_processing_fee,
    )
