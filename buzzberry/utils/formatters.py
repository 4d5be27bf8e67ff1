"""
Display formatting for creator metrics.

Shared by the CLI tables; values come from normalized Creator records and
CreatorMetrics.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from ..services.creator_query import BUZZ_SCORE_BUCKETS
from ..services.models import BuzzScoreBucket, ChangeType


def _fixed(value: float, digits: int) -> str:
    """Fixed-point string, rounding half away from zero."""
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_number(num: Optional[float]) -> str:
    """
    Compact count: 1.2M, 45K, 980.

    Args:
        num: Raw count (followers, views)

    Returns:
        Short display string; "0" for None
    """
    if num is None:
        return "0"
    if num >= 1_000_000:
        return f"{_fixed(num / 1_000_000, 1)}M"
    if num >= 1000:
        return f"{_fixed(num / 1000, 0)}K"
    if float(num).is_integer():
        return str(int(num))
    return str(num)


def format_number_full(num: Optional[float]) -> str:
    """Thousands-separated count for the metrics header."""
    if num is None:
        return "0"
    return f"{num:,}"


def format_percentage(num: float) -> str:
    """Signed change percentage, e.g. +1.25% / -0.40%."""
    sign = "+" if num >= 0 else ""
    return f"{sign}{_fixed(num, 2)}%"


def format_engagement(num: float) -> str:
    return f"{_fixed(num, 1)}%"


def buzz_score_tier(score: float) -> str:
    """Bucket label a buzz score falls in (matches the filter dropdown)."""
    for label, (low, high) in BUZZ_SCORE_BUCKETS.items():
        if (low is None or score >= low) and (high is None or score < high):
            return label
    return BuzzScoreBucket.LESS_THAN_SIXTY.value


def buzz_score_color(score: float) -> str:
    """click color name for a buzz score."""
    if score >= 90:
        return "green"
    if score >= 80:
        return "blue"
    if score >= 70:
        return "yellow"
    if score >= 60:
        return "magenta"
    return "red"


def match_score_color(score: Optional[int]) -> str:
    if score is None:
        return "white"
    if score >= 80:
        return "green"
    if score >= 50:
        return "yellow"
    if score >= 30:
        return "magenta"
    return "red"


def trend_symbol(change_type: str) -> str:
    return "▲" if change_type == ChangeType.POSITIVE else "▼"


def trend_color(change_type: str) -> str:
    return "green" if change_type == ChangeType.POSITIVE else "red"


def truncate_text(text: str, max_length: int = 50) -> str:
    """Truncate text with ellipsis."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."
