import os
import random
import re
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from invoice_pricing.engine import LineType, PaymentMethodType, PricingEngine
from invoice_pricing.invoicing import (
    DraftInputError,
    ManualLine,
    PendingItem,
    build_draft_lines,
    generate_invoice_number,
    map_pending_to_line_type,
    parse_due_date,
    resolve_adjustments,
    to_number,
)


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------

@pytest.mark.parametrize("value,expected", [
    (3, 3),
    (2.5, 2.5),
    ("4", 4.0),
    (" 12.5 units", 12.5),
    ("1e2", 100.0),
    ("", 7),
    ("   ", 7),
    ("abc", 7),
    (None, 7),
    (True, 7),
    ({"qty": 1}, 7),
])
def test_to_number(value, expected):
    assert to_number(value, 7) == expected


def test_to_number_default_fallback_is_zero():
    assert to_number(None) == 0


def test_map_pending_to_line_type():
    assert map_pending_to_line_type('usage') is LineType.USAGE
    assert map_pending_to_line_type('manual') is LineType.PROJECT
    assert map_pending_to_line_type(None) is LineType.PROJECT


def test_parse_due_date_empty():
    assert parse_due_date(None) == (None, None)
    assert parse_due_date("") == (None, None)


def test_parse_due_date_local_midnight():
    ymd, unix = parse_due_date("2026-01-15")
    assert ymd == "2026-01-15"
    assert unix == int(datetime(2026, 1, 15).timestamp())


@pytest.mark.parametrize("raw", ["15/01/2026", "2026-1-15", "2026-01-15T00:00", "tomorrow"])
def test_parse_due_date_rejects_bad_format(raw):
    with pytest.raises(DraftInputError, match="YYYY-MM-DD"):
        parse_due_date(raw)


def test_parse_due_date_rejects_impossible_date():
    with pytest.raises(DraftInputError, match="invalid"):
        parse_due_date("2026-02-30")


def test_generate_invoice_number_format():
    number = generate_invoice_number(now=datetime(2026, 1, 5, 12, tzinfo=timezone.utc))
    assert re.fullmatch(r"INV-202601-[0-9A-Z]{4}", number)


def test_generate_invoice_number_uses_utc_month():
    # 23:30 on Jan 31 in UTC-5 is already February in UTC
    local = datetime(2026, 1, 31, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert generate_invoice_number(now=local).startswith("INV-202602-")


def test_generate_invoice_number_is_reproducible_with_seeded_rng():
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    first = generate_invoice_number(now=now, rng=random.Random(42), prefix="ACME")
    second = generate_invoice_number(now=now, rng=random.Random(42), prefix="ACME")
    assert first == second
    assert first.startswith("ACME-202603-")


# ----------------------------------------------------------------------------
# Draft assembly
# ----------------------------------------------------------------------------

def test_build_orders_retainer_pending_manual():
    lines = build_draft_lines(
        pending_items=[PendingItem(id="p1", unit_price_cents=1200, description="Rows", quantity=3, source_type="usage")],
        manual_lines=[ManualLine(description="  Workshop ", unit_price_cents=50000)],
        project_name="Acme",
        base_retainer_cents=150000,
        include_retainer=True,
    )
    assert [l.line_type for l in lines] == [LineType.BASE_SUBSCRIPTION, LineType.USAGE, LineType.PROJECT]

    retainer, pending, manual = lines
    assert retainer.description == "Acme Monthly Retainer"
    assert retainer.unit_price_cents == 150000
    assert retainer.metadata == {"source": "retainer"}

    assert pending.quantity == 3
    assert pending.metadata == {"pending_item_id": "p1", "source_type": "usage"}

    assert manual.description == "Workshop"
    assert manual.quantity == 1
    assert manual.metadata == {"manual_entry": "true"}


def test_retainer_defaults_and_skips():
    lines = build_draft_lines(base_retainer_cents=9900, include_retainer=True)
    assert lines[0].description == "Client Monthly Retainer"

    with pytest.raises(DraftInputError):
        build_draft_lines(base_retainer_cents=9900, include_retainer=False)
    with pytest.raises(DraftInputError):
        build_draft_lines(base_retainer_cents=0, include_retainer=True)


@pytest.mark.parametrize("raw_qty,expected", [(None, 1), ("abc", 1), (0, 1), (-2, 1), ("2.5", 2.5), (4, 4)])
def test_pending_quantity_normalized(raw_qty, expected):
    lines = build_draft_lines(pending_items=[PendingItem(id="p", unit_price_cents=100, quantity=raw_qty)])
    assert lines[0].quantity == expected


def test_pending_defaults():
    line = build_draft_lines(pending_items=[PendingItem(id="p", unit_price_cents="1999.5")])[0]
    assert line.description == "Service line item"
    assert line.line_type is LineType.PROJECT
    assert line.unit_price_cents == 2000
    assert line.metadata["source_type"] == "manual"


def test_pending_negative_price_rejected():
    with pytest.raises(DraftInputError, match="p9"):
        build_draft_lines(pending_items=[PendingItem(id="p9", unit_price_cents=-100)])


def test_manual_lines_without_description_or_numbers_are_dropped():
    lines = build_draft_lines(manual_lines=[
        ManualLine(description="", unit_price_cents=100),
        ManualLine(description=None, unit_price_cents=100),
        ManualLine(description="Bad qty", unit_price_cents=100, quantity="lots"),
        ManualLine(description="Good", unit_price_cents=250.4, quantity="2"),
    ])
    assert len(lines) == 1
    assert lines[0].description == "Good"
    assert lines[0].quantity == 2.0
    assert lines[0].unit_price_cents == 250


def test_manual_negative_amount_rejected():
    with pytest.raises(DraftInputError, match="Refund"):
        build_draft_lines(manual_lines=[ManualLine(description="Refund", unit_price_cents=-500)])


def test_empty_draft_rejected():
    with pytest.raises(DraftInputError, match="Select pending items"):
        build_draft_lines()


# ----------------------------------------------------------------------------
# Adjustment resolution
# ----------------------------------------------------------------------------

def test_resolve_adjustments_defaults_to_card_with_fee_line():
    adjustments = resolve_adjustments()
    assert adjustments.payment_method_type is PaymentMethodType.CARD
    assert adjustments.show_processing_fee_line is True
    assert adjustments.ach_discount_cents is None


def test_resolve_adjustments_hides_fee_line_off_card():
    adjustments = resolve_adjustments('ach', auto_pay_enabled=True, ach_discount_cents=700)
    assert adjustments.payment_method_type is PaymentMethodType.ACH
    assert adjustments.show_processing_fee_line is False
    assert adjustments.auto_pay_enabled is True
    assert adjustments.ach_discount_cents == 700


def test_resolve_adjustments_explicit_fee_choice_wins():
    assert resolve_adjustments('card', include_processing_fee=False).show_processing_fee_line is False


def test_resolve_adjustments_uses_default_method():
    assert resolve_adjustments(None, default_payment_method='offline').payment_method_type is PaymentMethodType.OFFLINE


def test_resolve_adjustments_unknown_method():
    with pytest.raises(DraftInputError):
        resolve_adjustments('crypto')


def test_built_draft_prices_end_to_end():
    lines = build_draft_lines(
        manual_lines=[ManualLine(description="Sprint", unit_price_cents=4000, quantity=2.5)],
        project_name="Acme",
        base_retainer_cents=100000,
        include_retainer=True,
    )
    result = PricingEngine().calculate(lines, resolve_adjustments('card', include_processing_fee=False))
    assert result.subtotal_cents == 110000
    # 110000 × 0.029 = 3190, + 30
    assert result.total_cents == 110000 + 3220
    assert len(result.lines) == 2
