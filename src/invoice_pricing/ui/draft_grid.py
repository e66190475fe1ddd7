"""
Conversion between the editable draft grid and engine draft lines.

Kept free of streamlit so the grid handling can be tested on its own.
"""
import pandas as pd

from invoice_pricing.engine import DraftLine, LineType, round_cents


DRAFT_COLUMNS = ["Type", "Description", "Quantity", "Unit Price (¢)"]


def _is_blank(value) -> bool:
    return pd.isna(value) or not str(value).strip()


def frame_to_draft_lines(df: pd.DataFrame) -> list[DraftLine]:
    """Turn the edited grid into draft lines, skipping incomplete rows.

    A new row's Type cell is None or NaN until a value is picked, so it
    falls back to a project line. Prices are rounded half up to whole cents.
    """
    lines = []
    for _, row in df.iterrows():
        if _is_blank(row["Description"]):
            continue
        if pd.isna(row["Quantity"]) or pd.isna(row["Unit Price (¢)"]):
            continue
        line_type = LineType.PROJECT.value if _is_blank(row["Type"]) else str(row["Type"]).strip()
        lines.append(DraftLine(
            line_type=line_type,
            description=str(row["Description"]).strip(),
            quantity=float(row["Quantity"]),
            unit_price_cents=round_cents(float(row["Unit Price (¢)"])),
        ))
    return lines
