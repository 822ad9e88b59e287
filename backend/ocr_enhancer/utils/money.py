"""
Money normalization for amounts restated by the language model.

Handles the separator conventions seen on receipts:
- US: 1,234.56
- European: 1.234,56 or 12,50
- Space thousands: 1 234,56

The result is either a plain dotted decimal string ("1234.56") or None.
Nothing is guessed: irregular grouping or leftover symbols give None.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
import re


class MoneyFormat(Enum):
    """Money format locale hints."""
    US = "US"  # 1,234.56
    EUROPEAN = "EUROPEAN"  # 1.234,56 or 12,50


_NON_NUMERIC = re.compile(r'[^\d.,\-]')
_US_GROUPED = re.compile(r'^-?\d{1,3}(?:,\d{3})+(?:\.\d*)?$')
_EUROPEAN_GROUPED = re.compile(r'^-?\d{1,3}(?:\.\d{3})+(?:,\d*)?$')


def normalize_money(amount_str: str) -> Optional[str]:
    """
    Normalize a money string to a dotted decimal string.

    Args:
        amount_str: Raw value (e.g., "12,50 EUR", "$1,234.56", "n/a")

    Returns:
        Numeric-looking string, or None if the value is not a finite number

    Examples:
        >>> normalize_money("12,50 €")
        '12.50'
        >>> normalize_money("1,234.56")
        '1234.56'
        >>> normalize_money("n/a") is None
        True
    """
    if not amount_str or not isinstance(amount_str, str):
        return None

    # Currency symbols, letters and spaces all go
    cleaned = _NON_NUMERIC.sub('', amount_str)
    if not cleaned:
        return None

    if _detect_money_format(cleaned) == MoneyFormat.EUROPEAN:
        result = _parse_european_format(cleaned)
    else:
        result = _parse_us_format(cleaned)

    if result is None:
        return None

    try:
        value = Decimal(result)
    except (InvalidOperation, ValueError):
        return None

    if not value.is_finite():
        return None

    return result


def _detect_money_format(amount_str: str) -> MoneyFormat:
    """
    Detect the separator convention.

    Heuristics:
    - Both separators present: whichever comes last is the decimal mark
    - A single comma is a decimal comma ("12,50")
    - Several dots are dot thousands ("1.234.567")
    - Otherwise assume US
    """
    if ',' in amount_str and '.' in amount_str:
        if amount_str.rindex('.') < amount_str.rindex(','):
            return MoneyFormat.EUROPEAN
        return MoneyFormat.US

    if amount_str.count(',') == 1:
        return MoneyFormat.EUROPEAN

    if amount_str.count('.') > 1:
        return MoneyFormat.EUROPEAN

    return MoneyFormat.US


def _parse_us_format(amount_str: str) -> Optional[str]:
    """
    Parse US format: 1,234.56

    Commas are only accepted as proper three-digit groups.
    """
    if ',' not in amount_str:
        return amount_str

    if not _US_GROUPED.match(amount_str):
        return None

    return amount_str.replace(',', '')


def _parse_european_format(amount_str: str) -> Optional[str]:
    """
    Parse European format: 1.234,56 or 12,50

    Dots are only accepted as proper three-digit groups.
    """
    if '.' in amount_str:
        if not _EUROPEAN_GROUPED.match(amount_str):
            return None
        amount_str = amount_str.replace('.', '')

    return amount_str.replace(',', '.')
