"""Offer validation, run as a gate before persistence.

Pricing accepts any input; these checks decide what may be saved or sent.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django_offers.conf import get_allowed_vat_percents
from django_offers.exceptions import OfferValidationError
from django_offers.models import Offer


@dataclass
class ValidationResult:
    """Outcome of validate_offer(); errors are collected, not fail-fast."""

    errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def raise_if_invalid(self) -> None:
        if self.errors:
            raise OfferValidationError(self.errors)


def _as_decimal(value):
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None


def validate_offer_fields(
    *,
    title,
    days_of_use,
    discount_percent,
    vat_percent,
) -> ValidationResult:
    """Check the offer-level fields that gate create and update."""
    result = ValidationResult()

    if not title or not str(title).strip():
        result.errors.append("Offer title is required")

    if days_of_use is None or int(days_of_use) < 1:
        result.errors.append("Days of use must be at least 1")

    discount = _as_decimal(discount_percent)
    if discount is None or discount < 0 or discount > 100:
        result.errors.append("Discount must be between 0 and 100 percent")

    vat = _as_decimal(vat_percent)
    allowed = get_allowed_vat_percents()
    if vat is None or vat not in allowed:
        allowed_str = " or ".join(str(v) for v in allowed)
        result.errors.append(f"VAT must be {allowed_str} percent")

    return result


def validate_offer(offer: Offer) -> ValidationResult:
    """
    Full validation of a saved offer, including its line items.

    Used as the gate before an offer is sent.
    """
    result = validate_offer_fields(
        title=offer.title,
        days_of_use=offer.days_of_use,
        discount_percent=offer.discount_percent,
        vat_percent=offer.vat_percent,
    )

    has_equipment = offer.groups.filter(items__isnull=False).exists()
    has_crew = offer.crew_items.exists()
    has_transport = offer.transport_items.exists()
    if not (has_equipment or has_crew or has_transport):
        result.errors.insert(
            0, "Offer must have at least one item (equipment, crew, or transport)"
        )

    if not offer.access_token or not offer.access_token.strip():
        result.errors.append("Access token is required")

    return result


def _check_count(result, value, message):
    try:
        if value is None or int(value) < 1:
            result.errors.append(message)
    except (TypeError, ValueError):
        result.errors.append(message)


def _check_price(result, value, label):
    price = _as_decimal(value)
    if price is None or price < 0:
        result.errors.append(f"{label} must be zero or more")


def validate_line_item(line) -> ValidationResult:
    """
    Check a priced line before it is saved.

    Works on any object with the line's fields; only the fields the line
    has are checked (quantity and unit_price for equipment, crew_count,
    role_title, dates and daily_rate for crew, dates and daily_rate for
    transport).
    """
    result = ValidationResult()

    if hasattr(line, 'quantity'):
        _check_count(result, line.quantity, "Quantity must be at least 1")
    if hasattr(line, 'unit_price'):
        _check_price(result, line.unit_price, "Unit price")

    if hasattr(line, 'role_title') and not (line.role_title or '').strip():
        result.errors.append("Role title is required")
    if hasattr(line, 'crew_count'):
        _check_count(result, line.crew_count, "Crew count must be at least 1")

    if hasattr(line, 'start_at'):
        if line.start_at is None or line.end_at is None:
            result.errors.append("Start and end time are required")
        elif line.end_at < line.start_at:
            result.errors.append("End time must not be before start time")
    if hasattr(line, 'daily_rate'):
        _check_price(result, line.daily_rate, "Daily rate")

    return result


def can_lock_offer(offer: Offer) -> bool:
    return not offer.locked and offer.status == Offer.Status.DRAFT


def can_edit_offer(offer: Offer) -> bool:
    return offer.is_editable


def can_accept_offer(offer: Offer) -> bool:
    return offer.status == Offer.Status.SENT


def can_create_pretty_offer(offer: Offer) -> bool:
    """Pretty offers are built on top of a technical offer."""
    return offer.offer_type == Offer.OfferType.TECHNICAL
