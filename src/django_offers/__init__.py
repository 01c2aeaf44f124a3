"""Django Offers - Offer pricing, approval lifecycle and booking materialization.

Models:
    Offer, EquipmentGroup, EquipmentItem, CrewItem, TransportItem, PrettySection
    TimePeriod, ReservedItem, ReservedCrew, ReservedVehicle

Services (the only supported write path):
    create_offer, update_offer, duplicate_offer, delete_offer
    lock_offer, mark_offer_viewed, accept_offer, reject_offer,
    request_offer_revision, supersede_offer
    materialize_offer_bookings

Pure functions:
    compute_totals, validate_offer
"""

__version__ = "0.1.0"

__all__ = [
    # Pricing
    "compute_totals",
    "Totals",
    # Validation
    "validate_offer",
    # Lifecycle
    "create_offer",
    "lock_offer",
    "mark_offer_viewed",
    "accept_offer",
    "reject_offer",
    "request_offer_revision",
    "supersede_offer",
    # Editing
    "update_offer",
    "duplicate_offer",
    "delete_offer",
    "recalculate_offer_totals",
    # Materialization
    "materialize_offer_bookings",
    # Public access
    "get_public_offer",
]

_LAZY = {
    "compute_totals": "django_offers.pricing",
    "Totals": "django_offers.pricing",
    "validate_offer": "django_offers.validators",
    "create_offer": "django_offers.lifecycle",
    "lock_offer": "django_offers.lifecycle",
    "mark_offer_viewed": "django_offers.lifecycle",
    "accept_offer": "django_offers.lifecycle",
    "reject_offer": "django_offers.lifecycle",
    "request_offer_revision": "django_offers.lifecycle",
    "supersede_offer": "django_offers.lifecycle",
    "update_offer": "django_offers.services",
    "duplicate_offer": "django_offers.services",
    "delete_offer": "django_offers.services",
    "recalculate_offer_totals": "django_offers.services",
    "materialize_offer_bookings": "django_offers.materialize",
    "get_public_offer": "django_offers.selectors",
}


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in _LAZY:
        import importlib
        module = importlib.import_module(_LAZY[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
