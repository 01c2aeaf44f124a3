"""Read side for offers: detail graphs, public token lookup, job listings."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from django.db import DatabaseError
from django.db.models import Prefetch

from django_offers.conf import get_setting
from django_offers.exceptions import OfferReadLagError
from django_offers.models import EquipmentGroup, EquipmentItem, Offer, TransportItem

logger = logging.getLogger(__name__)


@dataclass
class OfferDetail:
    """An offer with its full line-item graph and a job snapshot."""

    offer: Offer
    groups: list = field(default_factory=list)
    crew_items: list = field(default_factory=list)
    transport_items: list = field(default_factory=list)
    pretty_sections: list = field(default_factory=list)
    snapshot: dict = field(default_factory=dict)

    @property
    def equipment_items(self) -> list:
        """Equipment lines across all groups, in display order."""
        return [item for group in self.groups for item in group.items.all()]

    @property
    def has_line_items(self) -> bool:
        return bool(self.equipment_items or self.crew_items or self.transport_items)


def _snapshot(offer: Offer) -> dict:
    """Denormalized job/customer/company/contact view for the public page."""
    job = offer.job
    customer = job.customer
    contact = job.customer_contact
    return {
        'job': {
            'id': str(job.pk),
            'title': job.title,
            'start_at': job.start_at,
            'end_at': job.end_at,
        },
        'company': {
            'id': str(offer.company_id),
            'name': offer.company.name,
        },
        'customer': (
            {'id': str(customer.pk), 'name': customer.name} if customer else None
        ),
        'contact': (
            {'name': contact.name, 'email': contact.email, 'phone': contact.phone}
            if contact else None
        ),
    }


def _detail_queryset():
    return Offer.objects.select_related(
        'job',
        'job__customer',
        'job__customer_contact',
        'company',
    ).prefetch_related(
        Prefetch(
            'groups',
            queryset=EquipmentGroup.objects.prefetch_related(
                Prefetch(
                    'items',
                    queryset=EquipmentItem.objects.select_related(
                        'item', 'item__external_owner'
                    ),
                )
            ),
        ),
        'crew_items',
        Prefetch(
            'transport_items',
            queryset=TransportItem.objects.select_related('vehicle'),
        ),
        'pretty_sections',
    )


def _build_detail(offer: Offer) -> OfferDetail:
    return OfferDetail(
        offer=offer,
        groups=list(offer.groups.all()),
        crew_items=list(offer.crew_items.all()),
        transport_items=list(offer.transport_items.all()),
        pretty_sections=list(offer.pretty_sections.all()),
        snapshot=_snapshot(offer),
    )


def get_offer_detail(offer_id) -> Optional[OfferDetail]:
    """Return the full offer graph, or None if the offer does not exist."""
    offer = _detail_queryset().filter(pk=offer_id).first()
    if offer is None:
        return None
    return _build_detail(offer)


def get_public_offer(access_token: str) -> Optional[OfferDetail]:
    """
    Look up an offer for unauthenticated viewing.

    Returns None (never raises) for unknown tokens and for drafts, so the
    response does not reveal whether a token exists.
    """
    if not access_token:
        return None
    offer = (
        _detail_queryset()
        .filter(access_token=access_token)
        .exclude(status=Offer.Status.DRAFT)
        .first()
    )
    if offer is None:
        return None
    return _build_detail(offer)


def offers_for_job(job):
    """Offers for a job, newest version first."""
    return Offer.objects.filter(job=job).order_by('-version_number')


def fetch_with_retry(
    fetch: Callable[[], Optional[object]],
    *,
    key,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
):
    """
    Call ``fetch`` until it returns a value, tolerating read-after-write lag.

    A None result or a DatabaseError counts as a miss. Between attempts the
    call sleeps ``delay * attempt`` seconds.

    Raises:
        OfferReadLagError: If every attempt misses
    """
    attempts = attempts or get_setting('READ_RETRY_ATTEMPTS')
    delay = get_setting('READ_RETRY_DELAY') if delay is None else delay
    last_error = None

    for attempt in range(1, attempts + 1):
        try:
            result = fetch()
            if result is not None:
                return result
        except DatabaseError as e:
            last_error = e
            logger.warning(
                f"Read of offer {key} failed (attempt {attempt}/{attempts}): {e}"
            )
        if attempt < attempts and delay:
            time.sleep(delay * attempt)

    raise OfferReadLagError(key, attempts, last_error)
