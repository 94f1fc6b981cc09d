"""
Unified money formatting and rounding for the whole project.

Usage:
    from app.utils.money import format_money, round2

    format_money(15000, "INR")     -> "15 000.00 ₹"
    format_money(1200.5, "USD")    -> "1 200.50 USD"
    round2(Decimal("10.005"))      -> 10.01
"""
from decimal import Decimal, ROUND_HALF_UP

DEFAULT_CURRENCY = "INR"

# Symbol for well-known currencies, ISO code for the rest
_CURRENCY_SUFFIX = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "RUB": "руб.",
}

_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


def currency_label(code: str) -> str:
    """Human-readable currency suffix."""
    return _CURRENCY_SUFFIX.get(code.upper(), code.upper())


def format_money(amount, currency: str = DEFAULT_CURRENCY, decimals: int = 2) -> str:
    """
    Format an amount with space thousand separators and a currency suffix.

    Args:
        amount: int / float / Decimal / str
        currency: ISO currency code (INR, USD, EUR ...)
        decimals: digits after the decimal point
    """
    if isinstance(amount, str):
        amount = Decimal(amount)
    fmt = f"{{:,.{decimals}f}}"
    formatted = fmt.format(amount).replace(",", " ")
    return f"{formatted} {currency_label(currency)}"


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so that floats like 0.1 do not carry binary noise
    return Decimal(str(value))


def round2(value) -> float:
    """Round half-up to cents and return a JSON-friendly float."""
    return float(to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def round1(value) -> float:
    return float(to_decimal(value).quantize(_TENTH, rounding=ROUND_HALF_UP))
