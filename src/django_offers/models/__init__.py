"""django-offers models."""

from .base import BaseModel, SoftDeleteManager, TimeStampedModel
from .resources import Company, Contact, InventoryItem, Job, Partner, Vehicle
from .offers import (
    CrewItem,
    EquipmentGroup,
    EquipmentItem,
    Offer,
    PrettySection,
    TransportItem,
)
from .bookings import (
    ExternalStatus,
    ReservedCrew,
    ReservedItem,
    ReservedVehicle,
    TimePeriod,
)

__all__ = [
    "BaseModel",
    "SoftDeleteManager",
    "TimeStampedModel",
    "Company",
    "Contact",
    "InventoryItem",
    "Job",
    "Partner",
    "Vehicle",
    "CrewItem",
    "EquipmentGroup",
    "EquipmentItem",
    "Offer",
    "PrettySection",
    "TransportItem",
    "ExternalStatus",
    "ReservedCrew",
    "ReservedItem",
    "ReservedVehicle",
    "TimePeriod",
]
