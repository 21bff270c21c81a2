"""Display formatting for amounts. No conversion happens here, only labels."""

from decimal import Decimal, ROUND_HALF_UP


CURRENCY_SYMBOLS = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}

CENT = Decimal("0.01")


def format_currency(amount: Decimal, currency: str) -> str:
    """
    Format an amount like "₦1,234.50".

    Unknown codes fall back to a "XYZ " prefix. Negative amounts keep the
    sign in front of the symbol.
    """
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    rounded = Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,.2f}"


def format_percent(value: Decimal) -> str:
    return f"{Decimal(value).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}%"
