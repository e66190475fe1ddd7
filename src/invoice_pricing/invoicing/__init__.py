"""Invoicing subpackage - turns raw billing inputs into engine draft lines."""
from .draft_builder import ManualLine, PendingItem, build_draft_lines, resolve_adjustments
from .utils import (
    DraftInputError,
    generate_invoice_number,
    map_pending_to_line_type,
    parse_due_date,
    to_number,
)

__all__ = [
    'ManualLine', 'PendingItem', 'build_draft_lines', 'resolve_adjustments',
    'DraftInputError', 'generate_invoice_number', 'map_pending_to_line_type',
    'parse_due_date', 'to_number',
]
