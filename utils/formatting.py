"""Output formatting utilities for the Chanda dashboard.

Provides reusable functions for:
- Formatting rupee amounts with Indian digit grouping
- Percent and percent-difference display
- CSS class selection for payment/collection badges
- Chart axis scaling
"""

import math
from typing import Iterable, Optional

RUPEE = "₹"
MASKED_AMOUNT = f"{RUPEE} *****"


def _group_indian(digits: str) -> str:
    """Insert Indian-style separators: last three digits, then pairs."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_inr(value: Optional[float], precision: Optional[int] = None,
               symbol: bool = True) -> str:
    """Format a rupee amount for display.

    Args:
        value: Amount in rupees (None renders as "-")
        precision: Decimal places; by default whole amounts show none and
            fractional amounts show two
        symbol: Prefix with the rupee sign (default: True)

    Returns:
        Formatted string like "₹ 12,34,567"

    Examples:
        format_inr(1234567) -> "₹ 12,34,567"
        format_inr(500.5) -> "₹ 500.50"
        format_inr(2500, precision=2) -> "₹ 2,500.00"
        format_inr(None) -> "-"
    """
    if value is None:
        return "-"
    try:
        v = float(value)
    except (TypeError, ValueError):
        return "-"
    if math.isnan(v):
        return "-"
    if precision is None:
        precision = 0 if v.is_integer() else 2

    text = f"{abs(v):.{precision}f}"
    whole, _, frac = text.partition(".")
    body = _group_indian(whole) + (f".{frac}" if frac else "")
    sign = "-" if v < 0 and float(text) != 0 else ""
    return f"{RUPEE} {sign}{body}" if symbol else f"{sign}{body}"


def format_percent(value: Optional[float], precision: int = 1) -> str:
    """Format a percentage for display.

    Examples:
        format_percent(42.5) -> "42.5%"
        format_percent(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value:.{precision}f}%"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


# ── Payment reconciliation ────────────────────────────────────────────────────

def percent_diff_label(diff: Optional[float]) -> str:
    """Label for a paid-vs-pledged percent difference.

    Exactly zero means the pledge is settled.
    """
    if diff is None:
        return "-"
    if diff == 0:
        return "✔ Fully Paid"
    return f"{diff:g} %"


def percent_diff_class(diff: Optional[float]) -> str:
    """CSS class for a percent difference: ahead, behind or settled."""
    if diff is None or diff == 0:
        return "diff-settled"
    return "diff-ahead" if diff > 0 else "diff-behind"


# ── Collection progress ───────────────────────────────────────────────────────

def collection_percent(collected: Optional[float], pledged: Optional[float]) -> int:
    """Percent of the pledged total collected, rounded; 0 if nothing pledged."""
    if not pledged or pledged <= 0:
        return 0
    return round_half_up((collected or 0) / pledged * 100)


def collection_class(percent: int) -> str:
    """CSS class for a collection progress bar."""
    if percent >= 100:
        return "progress-full"
    if percent > 0:
        return "progress-partial"
    return "progress-none"


def collection_label(percent: int) -> str:
    if percent == 100:
        return "✔ Fully Collected"
    return f"{percent}% Collected"


# ── Badges ────────────────────────────────────────────────────────────────────

_MODE_BADGES = {
    "cash": "badge-cash",
    "upi": "badge-upi",
    "bank transfer": "badge-bank",
    "cheque": "badge-cheque",
}


def payment_mode_badge(mode: Optional[str]) -> str:
    """CSS class for a payment-mode badge (case-insensitive)."""
    return _MODE_BADGES.get((mode or "").strip().lower(), "badge-other")


# ── Charts ────────────────────────────────────────────────────────────────────

def rounded_axis_max(values: Iterable[float], step: int = 10_000) -> int:
    """Round the largest value up to the next multiple of *step* (min 0)."""
    top = max([v for v in values if v is not None] + [0])
    return int(math.ceil(top / step) * step)
