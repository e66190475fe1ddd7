"""
Helpers shared by the invoice drafting flows.
"""
import math
import random
import re
from datetime import datetime, timezone
from typing import Any, Optional

from ..engine.models import LineType


BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

_YMD_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_LEADING_NUMBER = re.compile(r'^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


class DraftInputError(ValueError):
    """Raised when raw invoice input cannot be turned into draft lines."""


def to_number(value: Any, fallback: float = 0) -> float:
    """
    Coerce a loosely typed value to a number.

    Numbers pass through. Strings use their leading numeric part
    ("12.5 units" -> 12.5). Anything else, blank or non-finite, gives fallback.
    """
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and value.strip():
        match = _LEADING_NUMBER.match(value)
        if match:
            parsed = float(match.group(0))
            if math.isfinite(parsed):
                return parsed
    return fallback


def map_pending_to_line_type(source_type: Optional[str]) -> LineType:
    """Usage imports bill as usage; every other pending source is project work."""
    if source_type == 'usage':
        return LineType.USAGE
    return LineType.PROJECT


def parse_due_date(raw: Optional[str]) -> tuple[Optional[str], Optional[int]]:
    """
    Parse a YYYY-MM-DD due date.

    Returns (ymd, unix) where unix is local midnight of that day in epoch
    seconds, or (None, None) when no date was given.
    """
    if not raw:
        return None, None
    if not _YMD_PATTERN.match(raw):
        raise DraftInputError("dueDate must follow YYYY-MM-DD format.")
    year, month, day = (int(part) for part in raw.split('-'))
    try:
        local_midnight = datetime(year, month, day)
    except ValueError:
        raise DraftInputError("dueDate is invalid.") from None
    return raw, int(local_midnight.timestamp())


def generate_invoice_number(
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    prefix: str = 'INV',
) -> str:
    """Build an invoice number such as INV-202601-7KQ2 (UTC year and month)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    rng = rng or random
    suffix = ''.join(rng.choice(BASE36_ALPHABET) for _ in range(4))
    return f"{prefix}-{now.year}{now.month:02d}-{suffix}"
