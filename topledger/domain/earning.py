"""
Earning domain rules - enumerations and the three-column amount layout
"""
from dataclasses import dataclass

from topledger.domain.errors import ValidationError
from topledger.utils.money import to_minor_units

CURRENCIES = ("GBP", "EUR", "USD")

PAYMENT_METHODS = ("Cash", "Revolut", "PayPal", "Wise", "AIB", "Crypto")

# Currency code -> Earning column
AMOUNT_COLUMNS = {
    "GBP": "gbp_amount",
    "EUR": "eur_amount",
    "USD": "usd_amount",
}


@dataclass(frozen=True)
class CurrencyAmounts:
    """Minor units split across the three currency columns."""
    gbp_amount: int = 0
    eur_amount: int = 0
    usd_amount: int = 0

    def as_columns(self) -> dict[str, int]:
        return {
            "gbp_amount": self.gbp_amount,
            "eur_amount": self.eur_amount,
            "usd_amount": self.usd_amount,
        }


def validate_currency(currency: str) -> str:
    if currency not in CURRENCIES:
        raise ValidationError(
            f"currency: must be one of {', '.join(CURRENCIES)}"
        )
    return currency


def validate_payment_method(payment_method: str) -> str:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(
            f"paymentMethod: must be one of {', '.join(PAYMENT_METHODS)}"
        )
    return payment_method


def validate_duration(duration_minutes) -> int:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("durationMinutes: must be a whole number of minutes")
    if duration_minutes <= 0:
        raise ValidationError("durationMinutes: must be greater than 0")
    return duration_minutes


def split_amount(amount, currency: str) -> CurrencyAmounts:
    """
    Convert a positive major-unit amount into the column layout.

    Raises:
        ValidationError: non-numeric or non-positive amount, unknown currency

    Example:
        >>> split_amount("10.00", "EUR")
        CurrencyAmounts(gbp_amount=0, eur_amount=1000, usd_amount=0)
    """
    validate_currency(currency)
    try:
        minor = to_minor_units(amount)
    except ValueError:
        raise ValidationError("amount: must be a number")
    if minor <= 0:
        raise ValidationError("amount: must be greater than 0")
    return CurrencyAmounts(**{AMOUNT_COLUMNS[currency]: minor})
