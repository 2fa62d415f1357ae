"""Vendor price normalization.

The vendor stores prices as ``{"value": <minor units>, "unit": "EUR"}``.
Everything written to the database is in major units.
"""

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from shared.constants import ZERO_DECIMAL_CURRENCIES

_TWO_PLACES = Decimal("0.01")
_ZERO_PLACES = Decimal("1")


def price_currency(price: Any) -> str | None:
    """Return the upper-cased currency code of a vendor price, if any."""
    if not isinstance(price, Mapping):
        return None
    code = price.get("unit") or price.get("currency")
    if not isinstance(code, str) or not code.strip():
        return None
    return code.strip().upper()


def normalize_price(price: Any) -> Decimal | None:
    """Convert a vendor minor-unit price into a major-unit Decimal.

    Returns None when there is no numeric value or the amount does not fit
    the decimal context.
    """
    if not isinstance(price, Mapping):
        return None

    value = price.get("value")
    # bool is an int subclass but never a price
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return None

    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None

    try:
        if price_currency(price) in ZERO_DECIMAL_CURRENCIES:
            return amount.quantize(_ZERO_PLACES, rounding=ROUND_HALF_UP)
        return (amount / 100).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def min_price(prices: Iterable[Decimal | None]) -> Decimal | None:
    """Lowest non-null price, or None when nothing is priced."""
    present = [p for p in prices if p is not None]
    return min(present) if present else None
