"""
Currency Formatting Module.

Display formatting for amounts: rounds to the currency's minor unit
(half away from zero) and adds grouping and the currency symbol.
Symbols and minor units come from the ``currency`` section of the
configuration.

Author: Invoice Composer Team
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from config import get_config


def minor_units(currency: str) -> int:
    """Number of decimal places used by a currency."""
    table = get_config("currency.minor_units", {}) or {}
    return int(table.get(currency.upper(), get_config("currency.default_minor_units", 2)))


def round_to_minor_unit(amount: float, currency: str) -> Decimal:
    """
    Round an amount to the currency's minor unit.

    Example:
        >>> round_to_minor_unit(10.005, "USD")
        Decimal('10.01')
    """
    places = minor_units(currency)
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(amount)).quantize(quantum, rounding=ROUND_HALF_UP)


def format_currency(amount: float, currency: Optional[str] = None) -> str:
    """
    Format an amount for display.

    Args:
        amount: Amount in currency units.
        currency: ISO-4217 code; defaults to ``currency.default``.

    Returns:
        Formatted string such as ``$1,234.50`` or ``-€10.00``. Codes without
        a configured symbol are shown as a prefix (``CHF 12.00``).

    Example:
        >>> format_currency(1234.5, "USD")
        "$1,234.50"
        >>> format_currency(1500, "JPY")
        "¥1,500"
    """
    currency = (currency or get_config("currency.default", "USD")).upper()
    rounded = round_to_minor_unit(amount, currency)
    places = minor_units(currency)

    sign = "-" if rounded < 0 else ""
    number = f"{abs(rounded):,.{places}f}"

    symbols = get_config("currency.symbols", {}) or {}
    symbol = symbols.get(currency)
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{currency} {number}"
