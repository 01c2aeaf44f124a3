"""Offer lifecycle service layer.

All status changes go through these functions.

States:
    draft -> sent            lock_offer()
    sent  -> accepted        accept_offer()            (public, token)
    sent  -> rejected        reject_offer()            (public, token)
    sent  -> viewed          request_offer_revision()  (public, token)
    sent/viewed -> superseded  supersede_offer()

Public actions write with a ``status = sent`` predicate, so concurrent
accept/reject resolve first-writer-wins. The loser affects zero rows and
gets False back, never an exception.
"""

import logging

from django.db import DatabaseError, transaction
from django.db.models import Max
from django.utils import timezone

from django_offers.conf import get_currency, get_default_vat_percent
from django_offers.exceptions import InvalidOfferState
from django_offers.models import Job, Offer
from django_offers.tokens import new_access_token
from django_offers.validators import (
    can_lock_offer,
    validate_offer,
    validate_offer_fields,
)

logger = logging.getLogger(__name__)


def next_version_number(job: Job) -> int:
    """Next version for a job, counting soft-deleted offers so numbers are never reused.

    Call inside a transaction that holds the job row lock.
    """
    current = Offer.all_objects.filter(job=job).aggregate(
        max_version=Max('version_number')
    )['max_version']
    return (current or 0) + 1


def create_offer(
    job: Job,
    *,
    title: str,
    offer_type: str = Offer.OfferType.TECHNICAL,
    days_of_use: int = 1,
    discount_percent=0,
    vat_percent=None,
    based_on_offer: Offer | None = None,
) -> Offer:
    """
    Create a draft offer with the next version number for its job.

    The job row is locked while the version is read and the offer is
    inserted; the (job, version_number) unique constraint backs it up.

    Raises:
        OfferValidationError: If title, days, discount or VAT are invalid
    """
    if vat_percent is None:
        vat_percent = get_default_vat_percent()

    validate_offer_fields(
        title=title,
        days_of_use=days_of_use,
        discount_percent=discount_percent,
        vat_percent=vat_percent,
    ).raise_if_invalid()

    with transaction.atomic():
        locked_job = Job.all_objects.select_for_update().get(pk=job.pk)
        offer = Offer.objects.create(
            job=locked_job,
            company_id=locked_job.company_id,
            offer_type=offer_type,
            version_number=next_version_number(locked_job),
            status=Offer.Status.DRAFT,
            locked=False,
            access_token=new_access_token(),
            title=title.strip(),
            currency=get_currency(),
            days_of_use=days_of_use,
            discount_percent=discount_percent,
            vat_percent=vat_percent,
            based_on_offer=based_on_offer,
        )

    logger.info(
        f"Created offer {offer.pk} v{offer.version_number} for job {job.pk}"
    )
    return offer


def lock_offer(offer: Offer, *, now=None) -> Offer:
    """
    Send a draft offer: lock it, set status sent and stamp sent_at.

    Totals are recomputed once more and then frozen. There is no unlock.

    Raises:
        InvalidOfferState: If the offer is not an unlocked draft
        OfferValidationError: If the offer fails full validation
    """
    from django_offers.services import recalculate_offer_totals

    if not can_lock_offer(offer):
        raise InvalidOfferState(offer.pk, offer.status, "send")

    validate_offer(offer).raise_if_invalid()
    recalculate_offer_totals(offer.pk)

    now = now or timezone.now()
    rows = Offer.objects.filter(
        pk=offer.pk,
        status=Offer.Status.DRAFT,
        locked=False,
    ).update(
        locked=True,
        status=Offer.Status.SENT,
        sent_at=now,
        updated_at=now,
    )
    if rows == 0:
        offer.refresh_from_db()
        raise InvalidOfferState(offer.pk, offer.status, "send")

    offer.refresh_from_db()
    logger.info(f"Offer {offer.pk} locked and sent")
    return offer


def mark_offer_viewed(access_token: str, *, now=None) -> bool:
    """
    Record the first public view of a sent offer.

    Called on every public page load: idempotent, and it never raises.
    Only viewed_at is set; the status stays ``sent`` so the counterparty
    can still accept or reject.

    Returns:
        True if this call recorded the view
    """
    if not access_token:
        return False
    now = now or timezone.now()
    try:
        rows = Offer.objects.filter(
            access_token=access_token,
            status=Offer.Status.SENT,
            viewed_at__isnull=True,
        ).update(viewed_at=now, updated_at=now)
    except DatabaseError:
        logger.exception("Failed to mark offer as viewed")
        return False
    return rows > 0


def _public_transition(access_token: str, action: str, **changes) -> bool:
    """Apply a token-guarded transition that only succeeds from ``sent``."""
    if not access_token:
        return False
    rows = Offer.objects.filter(
        access_token=access_token,
        status=Offer.Status.SENT,
    ).update(**changes)
    if rows == 0:
        logger.info(f"Offer {action} ignored: token not found or offer not sent")
        return False
    logger.info(f"Offer {action} recorded")
    return True


def accept_offer(
    access_token: str,
    *,
    name: str,
    phone: str = '',
    email: str = '',
    now=None,
) -> bool:
    """Accept a sent offer through its access token. False if nothing changed."""
    now = now or timezone.now()
    return _public_transition(
        access_token,
        "acceptance",
        status=Offer.Status.ACCEPTED,
        accepted_at=now,
        accepted_by_name=name,
        accepted_by_phone=phone,
        accepted_by_email=email,
        updated_at=now,
    )


def reject_offer(
    access_token: str,
    *,
    name: str,
    phone: str = '',
    comment: str = '',
    now=None,
) -> bool:
    """Reject a sent offer through its access token. False if nothing changed."""
    now = now or timezone.now()
    return _public_transition(
        access_token,
        "rejection",
        status=Offer.Status.REJECTED,
        rejected_at=now,
        rejected_by_name=name,
        rejected_by_phone=phone,
        rejection_comment=comment,
        updated_at=now,
    )


def request_offer_revision(
    access_token: str,
    *,
    name: str,
    phone: str = '',
    comment: str = '',
    now=None,
) -> bool:
    """
    Ask for changes to a sent offer.

    Moves the offer to ``viewed`` and records who asked and why. No new
    version is created; the company duplicates the offer for that.
    """
    now = now or timezone.now()
    return _public_transition(
        access_token,
        "revision request",
        status=Offer.Status.VIEWED,
        revision_requested_at=now,
        revision_requested_by_name=name,
        revision_requested_by_phone=phone,
        revision_comment=comment,
        updated_at=now,
    )


def supersede_offer(offer: Offer, *, now=None) -> Offer:
    """
    Mark a sent or revision-requested offer as displaced by a newer version.

    Raises:
        InvalidOfferState: If the offer is not sent or viewed
    """
    rows = Offer.objects.filter(
        pk=offer.pk,
        status__in=[Offer.Status.SENT, Offer.Status.VIEWED],
    ).update(status=Offer.Status.SUPERSEDED, updated_at=now or timezone.now())
    offer.refresh_from_db()
    if rows == 0:
        raise InvalidOfferState(offer.pk, offer.status, "supersede")
    logger.info(f"Offer {offer.pk} superseded")
    return offer
