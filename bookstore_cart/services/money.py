"""
Money helpers.

All prices are stored as integer cents. Conversions go through Decimal so no
binary floating point ever touches an amount.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

PLACEHOLDER = "—"
NBSP = "\u00a0"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "CAD": "CA$",
    "AUD": "A$",
}

Amount = Union[Decimal, int, float, str]


def _to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 12.34 as "12.34" instead of its binary expansion
    return Decimal(str(value))


def format_money_from_cents(cents: Optional[int], currency: str = "USD") -> str:
    """Format cents as a display string, e.g. 1299 -> "$12.99".

    ``None`` gives an em-dash placeholder.
    """
    if cents is None:
        return PLACEHOLDER

    amount = cents_to_dollars(cents)
    sign = "-" if amount < 0 else ""
    code = currency.upper()
    body = f"{abs(amount):,.2f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code}{NBSP}{body}"
    return f"{sign}{symbol}{body}"


def dollars_to_cents(dollars: Amount) -> int:
    """Convert a major-unit amount to cents, rounding half away from zero."""
    cents = _to_decimal(dollars) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_dollars(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))
