"""Money value object and percentage helpers.

Amounts stay unrounded through a computation and are quantized once,
at the edge, with banker's rounding (ROUND_HALF_EVEN).
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Union

from django_offers.exceptions import CurrencyMismatchError, MoneyOverflowError


# Currency precision rules for settlement/display
CURRENCY_DECIMALS = {
    'NOK': 2, 'SEK': 2, 'DKK': 2, 'EUR': 2,
    'USD': 2, 'GBP': 2, 'CHF': 2,
    'ISK': 0, 'JPY': 0,  # No decimal currencies
}

# Matches DecimalField(max_digits=14, decimal_places=2) on Offer totals
MAX_AMOUNT = Decimal('999999999999.99')

HUNDRED = Decimal('100')

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Normalize a number to Decimal, going through str for floats."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal('0')
    return Decimal(str(value))


def percent_of(amount: Number, percent: Number) -> Decimal:
    """Return ``amount * percent / 100`` without rounding."""
    return to_decimal(amount) * to_decimal(percent) / HUNDRED


@dataclass(frozen=True)
class Money:
    """
    Immutable money value object.

    Usage:
        price = Money(Decimal("1500"), "NOK")
        total = price * 3 + Money("250", "NOK")
        display = total.quantized()
    """
    amount: Decimal
    currency: str

    def __post_init__(self):
        """Normalize amount to Decimal."""
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))

    @classmethod
    def zero(cls, currency: str) -> 'Money':
        return cls(Decimal('0'), currency)

    def quantized(self) -> 'Money':
        """
        Return quantized to currency decimals for persistence/display.

        Raises:
            MoneyOverflowError: If the amount does not fit the persisted precision
        """
        decimals = CURRENCY_DECIMALS.get(self.currency, 2)
        quantized_amount = self.amount.quantize(
            Decimal(10) ** -decimals,
            rounding=ROUND_HALF_EVEN
        )
        if abs(quantized_amount) > MAX_AMOUNT:
            raise MoneyOverflowError(
                f"{quantized_amount} {self.currency} exceeds {MAX_AMOUNT}"
            )
        return Money(quantized_amount, self.currency)

    def percent(self, percent: Number) -> 'Money':
        """Return ``percent`` percent of this amount (unrounded)."""
        return Money(percent_of(self.amount, percent), self.currency)

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot add {self.currency} to {other.currency}"
            )
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise CurrencyMismatchError(
                f"Cannot subtract {other.currency} from {self.currency}"
            )
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Number) -> 'Money':
        return Money(self.amount * to_decimal(factor), self.currency)

    def __rmul__(self, factor: Number) -> 'Money':
        return self.__mul__(factor)

    def __neg__(self) -> 'Money':
        return Money(-self.amount, self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __str__(self):
        return f"{self.amount} {self.currency}"
