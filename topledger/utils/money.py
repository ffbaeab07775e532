"""
Money helpers: minor-unit conversion and display formatting.

Everything persisted is integer minor units (cents). Conversion happens only
at the API boundary, in both directions through Decimal so that
to_minor_units(from_minor_units(x)) == x for every integer x.

Usage:
    from topledger.utils.money import to_minor_units, from_minor_units, format_money

    to_minor_units("10.005")   -> 1001
    from_minor_units(1050)     -> Decimal("10.50")
    format_money(150000, "GBP") -> "£1 500.00"
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

_CURRENCY_SYMBOL = {
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
}

_CENT = Decimal("0.01")


def to_minor_units(amount) -> int:
    """
    Convert a major-unit amount (int / float / Decimal / str) to cents.

    Rounds half-up to the nearest cent. Floats go through str() first so
    10.1 becomes 1010, not 1009.

    Raises:
        ValueError: if amount is not a number
    """
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    """Cents -> Decimal major units with two places."""
    return (Decimal(minor) / 100).quantize(_CENT)


def currency_symbol(code: str) -> str:
    return _CURRENCY_SYMBOL.get(code, code)


def format_money(minor: int, currency: str) -> str:
    """
    Format cents with space thousands separators and the currency symbol.

    Returns:
        "£1 500.00" / "€0.00"
    """
    formatted = "{:,.2f}".format(from_minor_units(minor)).replace(",", " ")
    return f"{currency_symbol(currency)}{formatted}"
