"""Money helpers.

All amounts are ``Decimal`` rounded half-up to cents. Display formatting
renders ``$X.XX`` style strings for user-facing messages.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "C$",
    "AUD": "A$",
}

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Coerce ``value`` to a Decimal rounded to cents. Floats go through ``str``."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Number, currency: str = "USD") -> str:
    """Render ``amount`` as e.g. ``$1,250.00``."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    money = to_money(amount)
    sign = "-" if money < 0 else ""
    return f"{sign}{symbol}{abs(money):,.2f}"
