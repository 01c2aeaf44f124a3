"""Offer pricing.

compute_totals() is the single rollup used both for live recomputation
while editing and for the persisted recompute after a line-item write,
so it must stay pure: no queries, no clock, no writes.

Rollup:
    equipment = sum(unit_price * quantity)          (groups are display only)
    crew      = sum(daily_rate * crew_count * days(line))
    transport = sum(daily_rate * days(line) [+ distance cost if enabled])
    before    = equipment + crew + transport
    after     = before - before * discount% / 100
    with_vat  = after + after * vat% / 100

days(line) is the line's own span in started days, minimum 1.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_CEILING
from typing import Iterable, Optional

from django_offers.conf import get_currency, get_setting
from django_offers.money import Money, to_decimal


ONE_DAY = timedelta(days=1)


def billable_days(start_at: datetime, end_at: datetime) -> int:
    """Started days between start and end, never less than 1.

    Exactly 24h is 1 day, 25h is 2 days.
    """
    days, remainder = divmod(end_at - start_at, ONE_DAY)
    if remainder:
        days += 1
    return max(1, days)


def equipment_line_total(unit_price, quantity) -> Decimal:
    return to_decimal(unit_price) * to_decimal(quantity)


def crew_line_total(daily_rate, crew_count, start_at, end_at) -> Decimal:
    days = billable_days(start_at, end_at)
    return to_decimal(daily_rate) * to_decimal(crew_count) * days


def distance_cost(distance_km, distance_rate, distance_increment=None) -> Decimal:
    """Rate per started distance increment; zero when any input is missing."""
    if not distance_km or not distance_rate:
        return Decimal('0')
    increment = to_decimal(
        distance_increment or get_setting('DEFAULT_DISTANCE_INCREMENT')
    )
    increments = (to_decimal(distance_km) / increment).to_integral_value(
        rounding=ROUND_CEILING
    )
    return to_decimal(distance_rate) * increments


def transport_line_total(
    daily_rate,
    start_at,
    end_at,
    distance_km=None,
    distance_rate=None,
    distance_increment=None,
    include_distance: bool = False,
) -> Decimal:
    total = to_decimal(daily_rate) * billable_days(start_at, end_at)
    if include_distance:
        total += distance_cost(distance_km, distance_rate, distance_increment)
    return total


@dataclass(frozen=True)
class Totals:
    """Immutable pricing breakdown for one offer, quantized to the currency."""

    equipment_subtotal: Money
    crew_subtotal: Money
    transport_subtotal: Money
    total_before_discount: Money
    discount_amount: Money
    total_after_discount: Money
    vat_amount: Money
    total_with_vat: Money
    days_of_use: int
    discount_percent: Decimal
    vat_percent: Decimal

    MONEY_FIELDS = (
        'equipment_subtotal',
        'crew_subtotal',
        'transport_subtotal',
        'total_before_discount',
        'discount_amount',
        'total_after_discount',
        'vat_amount',
        'total_with_vat',
    )

    def as_amounts(self) -> dict:
        """Return {field: Decimal} for the money fields."""
        return {name: getattr(self, name).amount for name in self.MONEY_FIELDS}


def compute_totals(
    equipment_items: Iterable,
    crew_items: Iterable,
    transport_items: Iterable,
    days_of_use: int,
    discount_percent,
    vat_percent,
    distance_rate=None,
    distance_increment: Optional[int] = None,
    *,
    currency: Optional[str] = None,
    include_distance: bool = False,
) -> Totals:
    """
    Roll line items up into an offer total.

    Line items are read by attribute (model instances or any object with
    the same fields). Stored line totals are ignored and recomputed.
    Negative inputs are not rejected here; see validators.validate_offer.

    Args:
        equipment_items: Objects with unit_price and quantity
        crew_items: Objects with daily_rate, crew_count, start_at, end_at
        transport_items: Objects with daily_rate, start_at, end_at
            and optionally distance_km
        days_of_use: Carried into the breakdown, not a multiplier
        discount_percent: 0-100
        vat_percent: VAT applied after discount
        distance_rate: Price per started distance increment
        distance_increment: Increment in km
        currency: Defaults to OFFERS_CURRENCY
        include_distance: Fold distance cost into transport lines

    Returns:
        Totals with every amount quantized to the currency
    """
    currency = currency or get_currency()

    equipment = Money.zero(currency)
    for item in equipment_items:
        equipment += Money(
            equipment_line_total(item.unit_price, item.quantity), currency
        )

    crew = Money.zero(currency)
    for item in crew_items:
        crew += Money(
            crew_line_total(
                item.daily_rate, item.crew_count, item.start_at, item.end_at
            ),
            currency,
        )

    transport = Money.zero(currency)
    for item in transport_items:
        transport += Money(
            transport_line_total(
                item.daily_rate,
                item.start_at,
                item.end_at,
                distance_km=getattr(item, 'distance_km', None),
                distance_rate=distance_rate,
                distance_increment=distance_increment,
                include_distance=include_distance,
            ),
            currency,
        )

    before_discount = equipment + crew + transport
    discount = before_discount.percent(discount_percent)
    after_discount = before_discount - discount
    vat = after_discount.percent(vat_percent)
    with_vat = after_discount + vat

    return Totals(
        equipment_subtotal=equipment.quantized(),
        crew_subtotal=crew.quantized(),
        transport_subtotal=transport.quantized(),
        total_before_discount=before_discount.quantized(),
        discount_amount=discount.quantized(),
        total_after_discount=after_discount.quantized(),
        vat_amount=vat.quantized(),
        total_with_vat=with_vat.quantized(),
        days_of_use=days_of_use,
        discount_percent=to_decimal(discount_percent),
        vat_percent=to_decimal(vat_percent),
    )
