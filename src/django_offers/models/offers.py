"""Offer and line-item models.

Offers are versioned per job and move through a one-way lifecycle:

    draft -> sent -> accepted | rejected
                  -> viewed (revision requested)
    sent/viewed -> superseded

Totals on Offer are a projection of the line items. They are written
only by services.recalculate_offer_totals(), never by hand.
"""

from decimal import Decimal

from django.db import models

from .base import BaseModel, TimeStampedModel
from .resources import Company, InventoryItem, Job, Vehicle


def _money_field(**kwargs):
    return models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0'),
        **kwargs,
    )


class Offer(BaseModel):
    """
    A versioned, priced proposal for a job.

    Write through services only:
        from django_offers.lifecycle import create_offer, lock_offer
        from django_offers.services import add_crew_item, duplicate_offer
    """

    class OfferType(models.TextChoices):
        TECHNICAL = 'technical', 'Technical'
        PRETTY = 'pretty', 'Pretty'

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        SENT = 'sent', 'Sent'
        VIEWED = 'viewed', 'Viewed'
        ACCEPTED = 'accepted', 'Accepted'
        REJECTED = 'rejected', 'Rejected'
        REVISION_REQUESTED = 'revision_requested', 'Revision requested'
        SUPERSEDED = 'superseded', 'Superseded'

    job = models.ForeignKey(
        Job,
        on_delete=models.PROTECT,
        related_name='offers',
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.PROTECT,
        related_name='offers',
    )
    offer_type = models.CharField(
        max_length=20,
        choices=OfferType.choices,
        default=OfferType.TECHNICAL,
    )
    version_number = models.PositiveIntegerField(
        help_text="Sequential per job, assigned at creation, never reused",
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
    )
    locked = models.BooleanField(
        default=False,
        help_text="Set when the offer is sent. There is no unlock.",
    )
    access_token = models.CharField(
        max_length=128,
        unique=True,
        help_text="Opaque credential for the public offer page",
    )
    title = models.CharField(max_length=200)
    currency = models.CharField(max_length=3)

    # Pricing inputs
    days_of_use = models.PositiveIntegerField(default=1)
    discount_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('0'),
    )
    vat_percent = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('25'),
    )

    # Pricing projection (synced by services)
    equipment_subtotal = _money_field()
    crew_subtotal = _money_field()
    transport_subtotal = _money_field()
    total_before_discount = _money_field()
    discount_amount = _money_field()
    total_after_discount = _money_field()
    vat_amount = _money_field()
    total_with_vat = _money_field()

    # Lifecycle timestamps
    sent_at = models.DateTimeField(null=True, blank=True)
    viewed_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    revision_requested_at = models.DateTimeField(null=True, blank=True)

    # Counterparty actions
    accepted_by_name = models.CharField(max_length=200, blank=True)
    accepted_by_phone = models.CharField(max_length=50, blank=True)
    accepted_by_email = models.EmailField(blank=True)
    rejected_by_name = models.CharField(max_length=200, blank=True)
    rejected_by_phone = models.CharField(max_length=50, blank=True)
    rejection_comment = models.TextField(blank=True)
    revision_requested_by_name = models.CharField(max_length=200, blank=True)
    revision_requested_by_phone = models.CharField(max_length=50, blank=True)
    revision_comment = models.TextField(blank=True)

    based_on_offer = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='derived_offers',
        help_text="Offer this one was duplicated or revised from",
    )

    class Meta:
        app_label = 'django_offers'
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'version_number'],
                name='offers_unique_job_version',
            ),
        ]
        indexes = [
            models.Index(fields=['job', 'status']),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} (v{self.version_number}, {self.status})"

    @property
    def is_editable(self) -> bool:
        return self.status == self.Status.DRAFT and not self.locked

    def apply_totals(self, totals) -> list[str]:
        """Copy a pricing.Totals onto the projection fields.

        Returns the names of the fields that were set.
        """
        values = totals.as_amounts()
        for name, amount in values.items():
            setattr(self, name, amount)
        return list(values)


class EquipmentGroup(TimeStampedModel):
    """Display grouping of equipment lines. Pricing ignores grouping."""

    offer = models.ForeignKey(
        Offer,
        on_delete=models.CASCADE,
        related_name='groups',
    )
    group_name = models.CharField(max_length=200)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = 'django_offers'
        ordering = ['sort_order', 'created_at']

    def __str__(self):
        return self.group_name


class EquipmentItem(TimeStampedModel):
    """Equipment line. A null item is a placeholder line."""

    group = models.ForeignKey(
        EquipmentGroup,
        on_delete=models.CASCADE,
        related_name='items',
    )
    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='offer_lines',
    )
    quantity = models.PositiveIntegerField(default=1)
    unit_price = _money_field()
    total_price = _money_field()
    is_internal = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = 'django_offers'
        ordering = ['sort_order', 'created_at']

    def __str__(self):
        name = self.item.name if self.item_id else "Placeholder"
        return f"{name} x{self.quantity}"

    @property
    def offer(self) -> Offer:
        return self.group.offer


class CrewItem(TimeStampedModel):
    """Crew demand line: a role, a head count and a date span."""

    offer = models.ForeignKey(
        Offer,
        on_delete=models.CASCADE,
        related_name='crew_items',
    )
    role_title = models.CharField(max_length=200)
    crew_count = models.PositiveIntegerField(default=1)
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    daily_rate = _money_field()
    total_price = _money_field()
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = 'django_offers'
        ordering = ['sort_order', 'created_at']

    def __str__(self):
        return f"{self.role_title} x{self.crew_count}"


class TransportItem(TimeStampedModel):
    """Transport line, either a named vehicle or just a category."""

    offer = models.ForeignKey(
        Offer,
        on_delete=models.CASCADE,
        related_name='transport_items',
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='offer_lines',
    )
    vehicle_name = models.CharField(
        max_length=200,
        blank=True,
        help_text="Cached vehicle name, used when the vehicle is unavailable",
    )
    vehicle_category = models.CharField(
        max_length=30,
        choices=Vehicle.Category.choices,
        blank=True,
    )
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    daily_rate = _money_field()
    distance_km = models.DecimalField(
        max_digits=10, decimal_places=1, null=True, blank=True,
    )
    total_price = _money_field()
    is_internal = models.BooleanField(default=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = 'django_offers'
        ordering = ['sort_order', 'created_at']

    def __str__(self):
        return self.display_name

    @property
    def display_name(self) -> str:
        if self.vehicle_name:
            return self.vehicle_name
        if self.vehicle_category:
            return self.get_vehicle_category_display()
        return "Vehicle"


class PrettySection(TimeStampedModel):
    """Presentation block for pretty offers. No pricing role."""

    class SectionType(models.TextChoices):
        HERO = 'hero', 'Hero'
        PROBLEM = 'problem', 'Problem'
        SOLUTION = 'solution', 'Solution'
        BENEFITS = 'benefits', 'Benefits'
        TESTIMONIAL = 'testimonial', 'Testimonial'

    offer = models.ForeignKey(
        Offer,
        on_delete=models.CASCADE,
        related_name='pretty_sections',
    )
    section_type = models.CharField(max_length=20, choices=SectionType.choices)
    title = models.CharField(max_length=200, blank=True)
    content = models.TextField(blank=True)
    image_url = models.URLField(blank=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        app_label = 'django_offers'
        ordering = ['sort_order', 'created_at']

    def __str__(self):
        return f"{self.get_section_type_display()}: {self.title}"
