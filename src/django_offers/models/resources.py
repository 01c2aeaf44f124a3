"""Companies, jobs and the resources offers are priced against.

These are the minimal collaborator records the pricing and booking
engine reads. Their general CRUD belongs to the host application.
"""

from django.db import models

from .base import BaseModel


class Company(BaseModel):
    """Rental/production company that owns jobs, inventory and vehicles."""

    name = models.CharField(max_length=200)
    vehicle_distance_rate = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Price per started distance increment for transport lines",
    )
    vehicle_distance_increment = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Distance increment in km (OFFERS_DEFAULT_DISTANCE_INCREMENT if unset)",
    )

    class Meta:
        app_label = 'django_offers'
        verbose_name_plural = 'companies'

    def __str__(self):
        return self.name


class Partner(BaseModel):
    """Customer or external owner of equipment and vehicles."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name='partners',
    )
    name = models.CharField(max_length=200)

    class Meta:
        app_label = 'django_offers'

    def __str__(self):
        return self.name


class Contact(BaseModel):
    """Contact person at a partner."""

    partner = models.ForeignKey(
        Partner,
        on_delete=models.CASCADE,
        related_name='contacts',
    )
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)

    class Meta:
        app_label = 'django_offers'

    def __str__(self):
        return self.name


class Job(BaseModel):
    """A production job that offers are priced for and bookings attach to."""

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        PLANNED = 'planned', 'Planned'
        REQUESTED = 'requested', 'Requested'
        CONFIRMED = 'confirmed', 'Confirmed'
        IN_PROGRESS = 'in_progress', 'In progress'
        COMPLETED = 'completed', 'Completed'
        CANCELED = 'canceled', 'Canceled'
        INVOICED = 'invoiced', 'Invoiced'
        PAID = 'paid', 'Paid'

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name='jobs',
    )
    title = models.CharField(max_length=200)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.DRAFT,
    )
    customer = models.ForeignKey(
        Partner,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='jobs',
    )
    customer_contact = models.ForeignKey(
        Contact,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='jobs',
    )
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = 'django_offers'

    def __str__(self):
        return self.title


class InventoryItem(BaseModel):
    """Catalog item that equipment lines can reference."""

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name='inventory_items',
    )
    name = models.CharField(max_length=200)
    external_owner = models.ForeignKey(
        Partner,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='owned_items',
        help_text="Owner for rented-in equipment (null = internally owned)",
    )

    class Meta:
        app_label = 'django_offers'

    def __str__(self):
        return self.name

    @property
    def is_external(self) -> bool:
        return self.external_owner_id is not None


class Vehicle(BaseModel):
    """Vehicle in a company's fleet, internally owned or rented in."""

    class Category(models.TextChoices):
        PASSENGER_CAR_SMALL = 'passenger_car_small', 'Passenger Car - Small'
        PASSENGER_CAR_MEDIUM = 'passenger_car_medium', 'Passenger Car - Medium'
        PASSENGER_CAR_BIG = 'passenger_car_big', 'Passenger Car - Big'
        VAN_SMALL = 'van_small', 'Van - Small'
        VAN_MEDIUM = 'van_medium', 'Van - Medium'
        VAN_BIG = 'van_big', 'Van - Big'
        C1 = 'C1', 'Truck - C1'
        C1E = 'C1E', 'Truck - C1E'
        C = 'C', 'Truck - C'
        CE = 'CE', 'Truck - CE'

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name='vehicles',
    )
    name = models.CharField(max_length=200)
    registration_no = models.CharField(max_length=20, blank=True)
    vehicle_category = models.CharField(
        max_length=30,
        choices=Category.choices,
        blank=True,
    )
    external_owner = models.ForeignKey(
        Partner,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='owned_vehicles',
    )
    active = models.BooleanField(default=True)

    class Meta:
        app_label = 'django_offers'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_internal(self) -> bool:
        return self.external_owner_id is None
