"""Pytest configuration for django-offers tests."""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest


JOB_START = datetime(2025, 6, 1, 8, 0, tzinfo=dt_timezone.utc)
JOB_END = datetime(2025, 6, 3, 20, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def user(db, django_user_model):
    """Create a test user."""
    return django_user_model.objects.create_user(
        username="planner",
        password="testpass123",
    )


@pytest.fixture
def company(db):
    from django_offers.models import Company
    return Company.objects.create(
        name="Stage & Sound AS",
        vehicle_distance_rate=Decimal("500"),
        vehicle_distance_increment=150,
    )


@pytest.fixture
def customer(company):
    from django_offers.models import Partner
    return Partner.objects.create(company=company, name="Festival Corp")


@pytest.fixture
def contact(customer):
    from django_offers.models import Contact
    return Contact.objects.create(
        partner=customer,
        name="Kari Nordmann",
        email="kari@example.com",
        phone="+4712345678",
    )


@pytest.fixture
def rental_partner(company):
    """External owner for rented-in equipment and vehicles."""
    from django_offers.models import Partner
    return Partner.objects.create(company=company, name="Rent-A-Rig")


@pytest.fixture
def job(company, customer, contact):
    from django_offers.models import Job
    return Job.objects.create(
        company=company,
        title="Summer Festival",
        customer=customer,
        customer_contact=contact,
        start_at=JOB_START,
        end_at=JOB_END,
    )


@pytest.fixture
def mixer(company):
    from django_offers.models import InventoryItem
    return InventoryItem.objects.create(company=company, name="Mixing Desk")


@pytest.fixture
def rented_speaker(company, rental_partner):
    from django_offers.models import InventoryItem
    return InventoryItem.objects.create(
        company=company,
        name="Line Array",
        external_owner=rental_partner,
    )


@pytest.fixture
def vans(company, rental_partner):
    """Two internal big vans and one rented-in big van.

    The rented van sorts first by name, so internal-first ordering is visible.
    """
    from django_offers.models import Vehicle
    return {
        'alpha': Vehicle.objects.create(
            company=company, name="Van Alpha", vehicle_category=Vehicle.Category.VAN_BIG,
        ),
        'bravo': Vehicle.objects.create(
            company=company, name="Van Bravo", vehicle_category=Vehicle.Category.VAN_BIG,
        ),
        'rented': Vehicle.objects.create(
            company=company,
            name="Van Aardvark Rental",
            vehicle_category=Vehicle.Category.VAN_BIG,
            external_owner=rental_partner,
        ),
    }


@pytest.fixture
def offer(job):
    """A draft technical offer with no lines."""
    from django_offers.lifecycle import create_offer
    return create_offer(job, title="Festival rig")


@pytest.fixture
def sent_offer(offer):
    """The draft offer with one crew line, locked and sent."""
    from django_offers.lifecycle import lock_offer
    from django_offers.services import add_crew_item
    add_crew_item(
        offer,
        role_title="Sound Engineer",
        start_at=JOB_START,
        end_at=JOB_START + timedelta(hours=24),
        daily_rate=Decimal("5000"),
    )
    return lock_offer(offer)
