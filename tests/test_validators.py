"""Tests for offer validation."""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from django_offers.exceptions import OfferValidationError
from django_offers.models import (
    CrewItem,
    EquipmentGroup,
    EquipmentItem,
    Offer,
    TransportItem,
)
from django_offers.services import add_equipment_group, add_equipment_item
from django_offers.validators import (
    can_accept_offer,
    can_create_pretty_offer,
    can_edit_offer,
    can_lock_offer,
    validate_line_item,
    validate_offer,
    validate_offer_fields,
)


START = datetime(2025, 6, 1, 8, 0, tzinfo=dt_timezone.utc)


def fields(**overrides):
    values = {
        'title': "Festival rig",
        'days_of_use': 1,
        'discount_percent': 0,
        'vat_percent': 25,
    }
    values.update(overrides)
    return values


class TestValidateOfferFields:
    """Tests for validate_offer_fields."""

    def test_valid_fields(self, settings):
        """Valid fields give no errors."""
        assert validate_offer_fields(**fields()).valid

    def test_blank_title(self, settings):
        """A blank title is an error."""
        result = validate_offer_fields(**fields(title="   "))
        assert result.errors == ["Offer title is required"]

    def test_days_below_one(self, settings):
        """days_of_use below 1 is an error."""
        result = validate_offer_fields(**fields(days_of_use=0))
        assert result.errors == ["Days of use must be at least 1"]

    @pytest.mark.parametrize("discount", [-1, Decimal("100.01"), None, "abc"])
    def test_discount_out_of_range(self, settings, discount):
        """Discounts outside 0-100 or not numeric are errors."""
        result = validate_offer_fields(**fields(discount_percent=discount))
        assert result.errors == ["Discount must be between 0 and 100 percent"]

    @pytest.mark.parametrize("discount", [0, 100, Decimal("12.5")])
    def test_discount_bounds_inclusive(self, settings, discount):
        """0 and 100 percent are allowed."""
        assert validate_offer_fields(**fields(discount_percent=discount)).valid

    def test_vat_must_be_allowed(self, settings):
        """VAT must be one of the allowed values."""
        result = validate_offer_fields(**fields(vat_percent=15))
        assert result.errors == ["VAT must be 0 or 25 percent"]

    def test_vat_zero_allowed(self, settings):
        """Zero VAT is allowed."""
        assert validate_offer_fields(**fields(vat_percent=0)).valid

    def test_allowed_vat_is_configurable(self, settings):
        """OFFERS_ALLOWED_VAT_PERCENTS extends the allowed values."""
        settings.OFFERS_ALLOWED_VAT_PERCENTS = (0, 12, 25)
        assert validate_offer_fields(**fields(vat_percent=12)).valid

    def test_errors_are_collected(self, settings):
        """All errors are reported together."""
        result = validate_offer_fields(
            title="", days_of_use=0, discount_percent=150, vat_percent=7,
        )
        assert len(result.errors) == 4

    def test_raise_if_invalid(self, settings):
        """raise_if_invalid carries the errors."""
        with pytest.raises(OfferValidationError) as exc_info:
            validate_offer_fields(**fields(title="")).raise_if_invalid()
        assert exc_info.value.errors == ["Offer title is required"]


@pytest.mark.django_db
class TestValidateOffer:
    """Tests for validate_offer."""

    def test_offer_without_lines_is_invalid(self, offer):
        """An offer needs at least one line."""
        result = validate_offer(offer)
        assert result.errors == [
            "Offer must have at least one item (equipment, crew, or transport)"
        ]

    def test_empty_group_does_not_count(self, offer):
        """An empty group is not a line."""
        add_equipment_group(offer, "Audio")
        assert not validate_offer(offer).valid

    def test_equipment_line_is_enough(self, offer, mixer):
        """One equipment line makes the offer valid."""
        group = add_equipment_group(offer, "Audio")
        add_equipment_item(group, item=mixer, unit_price=Decimal("1500"))
        assert validate_offer(offer).valid

    def test_missing_token(self, offer, mixer):
        """A blank access token is an error."""
        group = add_equipment_group(offer, "Audio")
        add_equipment_item(group, item=mixer, unit_price=Decimal("1500"))
        offer.access_token = ""
        assert validate_offer(offer).errors == ["Access token is required"]


@pytest.mark.django_db
class TestCanHelpers:
    """Tests for the can_* helpers."""

    def test_draft(self, offer):
        """Drafts can be locked and edited but not accepted."""
        assert can_lock_offer(offer)
        assert can_edit_offer(offer)
        assert not can_accept_offer(offer)

    def test_sent(self, sent_offer):
        """Sent offers can be accepted only."""
        assert not can_lock_offer(sent_offer)
        assert not can_edit_offer(sent_offer)
        assert can_accept_offer(sent_offer)

    def test_pretty_offer_needs_technical_base(self, offer):
        """Pretty offers are built from technical ones."""
        assert can_create_pretty_offer(offer)
        offer.offer_type = Offer.OfferType.PRETTY
        assert not can_create_pretty_offer(offer)


class TestValidateLineItem:
    """Tests for validate_line_item."""

    def test_valid_lines(self, settings):
        """Well-formed equipment, crew and transport lines pass."""
        assert validate_line_item(EquipmentItem(quantity=2, unit_price=Decimal("100"))).valid
        assert validate_line_item(CrewItem(
            role_title="Rigger", crew_count=1, start_at=START, end_at=START,
            daily_rate=Decimal("3000"),
        )).valid
        assert validate_line_item(TransportItem(
            start_at=START, end_at=START + timedelta(hours=4), daily_rate=Decimal("0"),
        )).valid

    def test_zero_quantity(self, settings):
        """Equipment quantity must be at least 1."""
        result = validate_line_item(EquipmentItem(quantity=0, unit_price=Decimal("100")))
        assert result.errors == ["Quantity must be at least 1"]

    def test_negative_unit_price(self, settings):
        """Equipment unit price cannot be negative."""
        result = validate_line_item(EquipmentItem(quantity=1, unit_price=Decimal("-1")))
        assert result.errors == ["Unit price must be zero or more"]

    def test_zero_crew_count(self, settings):
        """Crew count must be at least 1."""
        result = validate_line_item(CrewItem(
            role_title="Rigger", crew_count=0, start_at=START,
            end_at=START + timedelta(hours=8), daily_rate=Decimal("3000"),
        ))
        assert result.errors == ["Crew count must be at least 1"]

    def test_blank_role_title(self, settings):
        """Crew lines need a role title."""
        result = validate_line_item(CrewItem(
            role_title=" ", crew_count=1, start_at=START,
            end_at=START + timedelta(hours=8), daily_rate=Decimal("3000"),
        ))
        assert result.errors == ["Role title is required"]

    def test_end_before_start(self, settings):
        """A line cannot end before it starts."""
        result = validate_line_item(TransportItem(
            start_at=START, end_at=START - timedelta(hours=5), daily_rate=Decimal("1000"),
        ))
        assert result.errors == ["End time must not be before start time"]

    def test_missing_dates(self, settings):
        """Crew and transport lines need both dates."""
        result = validate_line_item(TransportItem(start_at=START, daily_rate=Decimal("1000")))
        assert result.errors == ["Start and end time are required"]

    def test_groups_have_nothing_to_check(self, settings):
        """Groups carry no priced fields."""
        assert validate_line_item(EquipmentGroup(group_name="Audio")).valid
