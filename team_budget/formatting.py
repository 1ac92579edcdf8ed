"""Formatting utilities for currency, dates and file names.

Amounts are formatted only when they are displayed or exported; nothing in
the calculation or report code rounds.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from .weeks import to_utc

FRENCH_MONTH_ABBREVIATIONS = (
    'janv.', 'févr.', 'mars', 'avr.', 'mai', 'juin',
    'juil.', 'août', 'sept.', 'oct.', 'nov.', 'déc.',
)


def format_currency(amount: Union[float, int], include_sign: bool = True) -> str:
    """Format an amount the way the calculator displays it.

    Args:
        amount: The amount to format
        include_sign: Whether to append the dollar sign

    Returns:
        Formatted currency string (e.g. "4 095,00 $" or "4 095,00")

    Example:
        >>> format_currency(8902)
        '8 902,00 $'
        >>> format_currency(1234.5, include_sign=False)
        '1 234,50'
    """
    formatted = f"{amount:,.2f}".replace(",", " ").replace(".", ",")
    return f"{formatted} $" if include_sign else formatted


def format_whole_currency(amount: Union[float, int]) -> str:
    """Format an amount rounded half-up to the nearest dollar, e.g. "12 346 $"."""
    rounded = int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return f"{rounded:,} $".replace(",", " ")


def escape_dollar_for_markdown(text: str) -> str:
    """Escape dollar signs so Streamlit markdown does not start LaTeX math.

    Example:
        >>> escape_dollar_for_markdown('4 095,00 $')
        '4 095,00 \\\\$'
    """
    return text.replace("$", "\\$")


def format_date(value: Union[date, datetime]) -> str:
    """Format a date as ``14 sept. 2025`` (UTC calendar day)."""
    day = to_utc(value)
    return f"{day.day} {FRENCH_MONTH_ABBREVIATIONS[day.month - 1]} {day.year}"


def format_date_range(
    start: Optional[Union[date, datetime]],
    end: Optional[Union[date, datetime]],
) -> str:
    """Format a period for display; ``N/A`` when either bound is missing."""
    if start is None or end is None:
        return "N/A"
    return f"{format_date(start)} - {format_date(end)}"


def safe_filename(name: str, default: str = 'budget', max_length: Optional[int] = None) -> str:
    """Create a safe filename from a model name.

    Keeps alphanumeric characters (accents included), underscores and
    hyphens, and converts spaces to underscores.

    Example:
        >>> safe_filename("2025-2026 Handball Féminin D4")
        '2025-2026_Handball_Féminin_D4'
        >>> safe_filename("", default="budget")
        'budget'
    """
    if not name:
        return default

    cleaned = ''.join(c for c in name if c.isalnum() or c in {' ', '_', '-'})
    cleaned = cleaned.strip().replace(' ', '_')

    while '__' in cleaned:
        cleaned = cleaned.replace('__', '_')

    if max_length is not None and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    cleaned = cleaned.rstrip('_')

    return cleaned if cleaned else default
