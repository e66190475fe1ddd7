"""
Streamlit UI for invoice pricing previews.

Features:
- Sidebar payment-method configuration (card / ACH / offline)
- Editable draft-line grid
- Subtotal, adjustment and total metrics
- Resolution trace for the priced invoice
"""
import streamlit as st
import pandas as pd
import sys
from pathlib import Path
from datetime import datetime

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from invoice_pricing.engine import (
    LineType,
    PaymentMethodType,
    PricingAdjustments,
    PricingContractError,
    PricingEngine,
)
from invoice_pricing.config.settings import get_settings
from invoice_pricing.ui.draft_grid import DRAFT_COLUMNS, frame_to_draft_lines


st.set_page_config(
    page_title="Invoice Pricing",
    layout="wide",
    initial_sidebar_state="expanded"
)

CALLER_LINE_TYPES = [
    LineType.BASE_SUBSCRIPTION.value,
    LineType.USAGE.value,
    LineType.PROJECT.value,
]


@st.cache_resource
def get_engine():
    """Get cached engine instance."""
    return PricingEngine(get_settings().pricing_rules)


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"


try:
    engine = get_engine()
except Exception as e:
    st.error(f"System Error: {e}")
    st.stop()


# ============================================================================
# SIDEBAR: Payment Configuration
# ============================================================================
with st.sidebar:
    st.header("💳 Payment Method")

    with st.container(border=True):
        method = st.radio(
            "Payment rail",
            [m.value for m in PaymentMethodType],
            format_func=lambda m: {"card": "Card", "ach": "ACH", "offline": "Offline"}[m],
        )
        auto_pay = st.toggle("Auto-pay enabled", value=False, disabled=method != "ach")
        show_fee_line = st.toggle(
            "Show processing fee as a line",
            value=engine.rules.show_explicit_processing_fee,
            disabled=method != "card",
        )

    with st.expander("⚙️ Overrides"):
        ach_discount = st.number_input(
            "ACH discount (¢)", min_value=0, step=50,
            value=engine.rules.ach_auto_pay_discount_cents,
        )
        fee_rate_pct = st.number_input(
            "Card fee rate (%)", min_value=0.0, step=0.1, format="%.2f",
            value=engine.rules.card_processing_fee_rate * 100,
        )
        fee_fixed = st.number_input(
            "Card fixed fee (¢)", min_value=0, step=5,
            value=engine.rules.card_processing_fee_fixed_cents,
        )


# ============================================================================
# MAIN CONTENT
# ============================================================================
st.title("Invoice Pricing")
st.caption(f"Pricing Engine Active | {datetime.now().strftime('%Y-%m-%d')}")

if 'draft' not in st.session_state:
    st.session_state.draft = pd.DataFrame(
        [["base_subscription", "Monthly Retainer", 1.0, 150000]],
        columns=DRAFT_COLUMNS,
    )

col1, col2 = st.columns([1.8, 1.2], gap="large")

with col1:
    st.subheader("📝 Draft Lines")
    edited = st.data_editor(
        st.session_state.draft,
        num_rows="dynamic",
        use_container_width=True,
        column_config={
            "Type": st.column_config.SelectboxColumn(options=CALLER_LINE_TYPES, required=True),
            "Quantity": st.column_config.NumberColumn(min_value=0.0, step=0.5),
            "Unit Price (¢)": st.column_config.NumberColumn(min_value=0, step=100),
        },
        key="draft_editor",
    )

try:
    adjustments = PricingAdjustments(
        payment_method_type=method,
        auto_pay_enabled=auto_pay,
        ach_discount_cents=int(ach_discount),
        processing_fee_rate=fee_rate_pct / 100,
        processing_fee_fixed_cents=int(fee_fixed),
        show_processing_fee_line=show_fee_line,
    )
    result = engine.calculate(frame_to_draft_lines(edited), adjustments)
except PricingContractError as e:
    st.error(f"Invalid draft: {e}")
    st.stop()

with col2:
    st.subheader("🧾 Invoice")
    m1, m2 = st.columns(2)
    m1.metric("Subtotal", format_cents(result.subtotal_cents))
    m2.metric("Total", format_cents(result.total_cents),
              delta=format_cents(result.total_cents - result.subtotal_cents))

    if result.discount_cents:
        st.success(f"ACH auto-pay discount: {format_cents(-result.discount_cents)}")
    if result.processing_fee_cents:
        where = "folded into total" if result.fee_folded else "shown as line"
        st.info(f"Card processing fee: {format_cents(result.processing_fee_cents)} ({where})")

    priced = pd.DataFrame([
        {
            "Type": line.line_type.value,
            "Description": line.description,
            "Qty": line.quantity,
            "Unit": format_cents(line.unit_price_cents),
            "Amount": format_cents(line.amount_cents),
        }
        for line in result.lines
    ])
    st.dataframe(priced, use_container_width=True, hide_index=True)

    with st.expander("🔍 Resolution Details"):
        for t in result.trace:
            if t.value:
                st.caption(f"**{t.step}**: {t.description} = `{t.value}`")
            else:
                st.caption(f"**{t.step}**: {t.description}")
