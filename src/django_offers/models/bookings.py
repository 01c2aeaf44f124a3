"""Time periods and the reservations pinned to them.

A TimePeriod is the unit of booking within a job. Materialization
creates periods with get-or-create semantics keyed on
(job, category, title, start_at, end_at), so the tuple is unique
across live and soft-deleted rows.
"""

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from .base import BaseModel, TimeStampedModel
from .offers import EquipmentItem
from .resources import Company, InventoryItem, Job, Vehicle


class ExternalStatus(models.TextChoices):
    """Request status towards an external owner."""

    PLANNED = 'planned', 'Planned'
    REQUESTED = 'requested', 'Requested'
    CONFIRMED = 'confirmed', 'Confirmed'


class TimePeriod(BaseModel):
    """A named, dated window scoped to a job and category."""

    class Category(models.TextChoices):
        PROGRAM = 'program', 'Program'
        EQUIPMENT = 'equipment', 'Equipment'
        CREW = 'crew', 'Crew'
        TRANSPORT = 'transport', 'Transport'

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name='time_periods',
    )
    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='time_periods',
    )
    category = models.CharField(max_length=20, choices=Category.choices)
    title = models.CharField(max_length=300)
    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    reserved_by_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )

    # Crew demand (fulfillment lives in ReservedCrew)
    needed_count = models.PositiveIntegerField(null=True, blank=True)
    role_category = models.CharField(max_length=200, blank=True)
    is_role = models.BooleanField(default=False)

    notes = models.TextField(blank=True)

    class Meta:
        app_label = 'django_offers'
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'category', 'title', 'start_at', 'end_at'],
                name='offers_unique_time_period_window',
            ),
            models.CheckConstraint(
                condition=Q(end_at__gte=F('start_at')),
                name='offers_time_period_end_after_start',
            ),
        ]
        indexes = [
            models.Index(fields=['job', 'category']),
        ]
        ordering = ['start_at', 'title']

    def __str__(self):
        return f"{self.title} ({self.category})"


class ReservedItem(TimeStampedModel):
    """Equipment reserved inside a time period."""

    class SourceKind(models.TextChoices):
        DIRECT = 'direct', 'Direct'
        GROUP = 'group', 'Group'

    time_period = models.ForeignKey(
        TimePeriod,
        on_delete=models.CASCADE,
        related_name='reserved_items',
    )
    item = models.ForeignKey(
        InventoryItem,
        on_delete=models.PROTECT,
        related_name='reservations',
    )
    quantity = models.PositiveIntegerField(default=1)
    source_kind = models.CharField(
        max_length=10,
        choices=SourceKind.choices,
        default=SourceKind.DIRECT,
    )
    source_offer_item = models.ForeignKey(
        EquipmentItem,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reservations',
        help_text="Offer line this reservation was materialized from",
    )
    forced = models.BooleanField(default=False)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    external_status = models.CharField(
        max_length=20,
        choices=ExternalStatus.choices,
        null=True,
        blank=True,
    )
    external_note = models.TextField(blank=True)

    class Meta:
        app_label = 'django_offers'
        constraints = [
            models.UniqueConstraint(
                fields=['time_period', 'source_offer_item'],
                name='offers_unique_reserved_item_source',
            ),
        ]

    def __str__(self):
        return f"{self.item} x{self.quantity}"


class ReservedCrew(TimeStampedModel):
    """A person assigned to a crew time period.

    Created by the user-driven assignment flow, never by materialization.
    """

    class Status(models.TextChoices):
        PLANNED = 'planned', 'Planned'
        REQUESTED = 'requested', 'Requested'
        DECLINED = 'declined', 'Declined'
        ACCEPTED = 'accepted', 'Accepted'

    time_period = models.ForeignKey(
        TimePeriod,
        on_delete=models.CASCADE,
        related_name='reserved_crew',
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='crew_reservations',
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PLANNED,
    )
    requested_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        app_label = 'django_offers'
        constraints = [
            models.UniqueConstraint(
                fields=['time_period', 'user'],
                name='offers_unique_reserved_crew',
            ),
        ]

    def __str__(self):
        return f"{self.user} ({self.status})"


class ReservedVehicle(TimeStampedModel):
    """A concrete vehicle reserved inside a transport time period."""

    time_period = models.ForeignKey(
        TimePeriod,
        on_delete=models.CASCADE,
        related_name='reserved_vehicles',
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name='reservations',
    )
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    external_status = models.CharField(
        max_length=20,
        choices=ExternalStatus.choices,
        null=True,
        blank=True,
    )
    external_note = models.TextField(blank=True)

    class Meta:
        app_label = 'django_offers'
        constraints = [
            models.UniqueConstraint(
                fields=['time_period', 'vehicle'],
                name='offers_unique_reserved_vehicle',
            ),
        ]

    def __str__(self):
        return f"{self.vehicle} @ {self.time_period}"
