"""Turn an accepted offer into bookings.

Equipment, crew and transport are materialized independently, each in
its own transaction. A failing category is rolled back, logged and
reported in the result while the others still commit. Every step uses
get-or-create, so a run can be repeated after a partial failure without
duplicating periods or reservations.

Equipment:  one period per owner ("<Owner> Equipment period"), spanning
            the job, with one ReservedItem per catalog-backed line.
Crew:       one period per (role, start, end) holding the summed head
            count as demand. People are assigned elsewhere.
Transport:  one period per line, plus a ReservedVehicle when a vehicle
            can be allocated. Otherwise the period gets a gap note.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field

from django.db import transaction
from django.utils import timezone

from django_offers.allocation import VehicleAllocator, load_vehicle_pool
from django_offers.exceptions import (
    InvalidOfferState,
    JobNotFound,
    OfferNotFound,
    PartialMaterializationError,
)
from django_offers.models import (
    ExternalStatus,
    Job,
    Offer,
    ReservedItem,
    ReservedVehicle,
    TimePeriod,
)
from django_offers.periods import CREATED, get_or_create_time_period
from django_offers.selectors import get_offer_detail

logger = logging.getLogger(__name__)

INTERNAL_OWNER_NAME = "Internal"
NO_VEHICLE_NOTE = "No available vehicles found"

EQUIPMENT = TimePeriod.Category.EQUIPMENT
CREW = TimePeriod.Category.CREW
TRANSPORT = TimePeriod.Category.TRANSPORT


@dataclass
class MaterializationResult:
    """What one materialization run touched, per category."""

    offer_id: object
    equipment_periods: list = field(default_factory=list)
    crew_periods: list = field(default_factory=list)
    transport_periods: list = field(default_factory=list)
    reserved_items: list = field(default_factory=list)
    reserved_vehicles: list = field(default_factory=list)
    gaps: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def merge(self, other: 'MaterializationResult') -> None:
        self.equipment_periods += other.equipment_periods
        self.crew_periods += other.crew_periods
        self.transport_periods += other.transport_periods
        self.reserved_items += other.reserved_items
        self.reserved_vehicles += other.reserved_vehicles
        self.gaps += other.gaps

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PartialMaterializationError(self.offer_id, self.failures)


def job_window(job: Job, fallback=None):
    """
    Job start/end with end never before start.

    A job without a start uses ``fallback`` (the offer's acceptance time),
    so repeated runs produce the same window and reuse the same periods.
    """
    start_at = job.start_at or fallback or timezone.now()
    end_at = job.end_at or start_at
    if end_at < start_at:
        end_at = start_at
    return start_at, end_at


def transport_period_title(line) -> str:
    start = timezone.localtime(line.start_at)
    return f"Transport - {line.display_name} ({start:%Y-%m-%d %H:%M})"


def _materialize_equipment(offer, job, lines, window, user) -> MaterializationResult:
    partial = MaterializationResult(offer_id=offer.pk)
    start_at, end_at = window

    buckets = OrderedDict()
    for line in lines:
        if line.item_id is None:
            continue
        owner = line.item.external_owner
        owner_id = owner.pk if owner else None
        if owner_id not in buckets:
            buckets[owner_id] = (owner, [])
        buckets[owner_id][1].append(line)

    for owner, owner_lines in buckets.values():
        owner_name = owner.name if owner else INTERNAL_OWNER_NAME
        period, _ = get_or_create_time_period(
            job=job,
            category=EQUIPMENT,
            title=f"{owner_name} Equipment period",
            start_at=start_at,
            end_at=end_at,
            user=user,
        )
        partial.equipment_periods.append(period.pk)

        for line in owner_lines:
            reserved, _ = ReservedItem.objects.get_or_create(
                time_period=period,
                source_offer_item=line,
                defaults={
                    'item': line.item,
                    'quantity': line.quantity,
                    'source_kind': ReservedItem.SourceKind.DIRECT,
                    'start_at': start_at,
                    'end_at': end_at,
                    'external_status': ExternalStatus.PLANNED if owner else None,
                },
            )
            partial.reserved_items.append(reserved.pk)

    return partial


def _materialize_crew(offer, job, lines, user) -> MaterializationResult:
    partial = MaterializationResult(offer_id=offer.pk)

    demand = OrderedDict()
    for line in lines:
        key = (line.role_title, line.start_at, line.end_at)
        demand[key] = demand.get(key, 0) + line.crew_count

    for (role_title, start_at, end_at), needed in demand.items():
        fields = {
            'needed_count': needed,
            'role_category': role_title,
            'is_role': True,
        }
        period, outcome = get_or_create_time_period(
            job=job,
            category=CREW,
            title=role_title,
            start_at=start_at,
            end_at=end_at,
            user=user,
            defaults=fields,
        )
        if outcome != CREATED:
            for name, value in fields.items():
                setattr(period, name, value)
            period.save(update_fields=list(fields) + ['updated_at'])
        partial.crew_periods.append(period.pk)

    return partial


def _reusable_reservation(period, line, used_ids, reserved_ids):
    """
    A reservation already in the period that this line may keep.

    A line naming a vehicle only keeps a reservation of that vehicle.
    Other lines skip vehicles used earlier in this run and vehicles that
    some line names.
    """
    existing = period.reserved_vehicles.select_related('vehicle').order_by('created_at', 'pk')
    for reservation in existing:
        if line.vehicle_id is not None:
            if reservation.vehicle_id == line.vehicle_id:
                return reservation
            continue
        if reservation.vehicle_id in used_ids or reservation.vehicle_id in reserved_ids:
            continue
        return reservation
    return None


def _materialize_transport(offer, job, lines, user) -> MaterializationResult:
    partial = MaterializationResult(offer_id=offer.pk)
    named_ids = {line.vehicle_id for line in lines if line.vehicle_id is not None}
    allocator = VehicleAllocator(load_vehicle_pool(offer.company), reserved_ids=named_ids)
    used_ids = set()

    for line in lines:
        label = line.display_name
        period, _ = get_or_create_time_period(
            job=job,
            category=TRANSPORT,
            title=transport_period_title(line),
            start_at=line.start_at,
            end_at=line.end_at,
            user=user,
        )
        partial.transport_periods.append(period.pk)

        reservation = _reusable_reservation(period, line, used_ids, named_ids)
        if reservation is not None:
            used_ids.add(reservation.vehicle_id)
        else:
            vehicle = allocator.allocate(
                line.vehicle_category,
                used_ids,
                explicit_vehicle=line.vehicle,
            )
            if vehicle is None:
                note = f"{NO_VEHICLE_NOTE} for {label}"
                if period.notes != note:
                    period.notes = note
                    period.save(update_fields=['notes', 'updated_at'])
                partial.gaps.append(note)
                logger.warning(f"Offer {offer.pk}: {note}")
                continue

            reservation, _ = ReservedVehicle.objects.get_or_create(
                time_period=period,
                vehicle=vehicle,
                defaults={
                    'start_at': line.start_at,
                    'end_at': line.end_at,
                    'external_status': (
                        None if vehicle.is_internal else ExternalStatus.PLANNED
                    ),
                },
            )

        if period.notes.startswith(NO_VEHICLE_NOTE):
            period.notes = ''
            period.save(update_fields=['notes', 'updated_at'])
        partial.reserved_vehicles.append(reservation.pk)

    return partial


def materialize_offer_bookings(offer_id, acting_user=None, *, now=None) -> MaterializationResult:
    """
    Create the bookings for an accepted offer.

    Safe to call again: existing periods are reused (or revived when soft
    deleted), reserved items are keyed by their source line and vehicle
    reservations by (period, vehicle).

    Args:
        offer_id: Offer to materialize
        acting_user: Recorded as reserved_by_user on new or revived periods
        now: Window for a dateless job when the offer has no accepted_at

    Returns:
        MaterializationResult; check ``ok`` or call raise_for_failures()

    Raises:
        OfferNotFound: If the offer does not exist
        JobNotFound: If the offer's job does not exist
        InvalidOfferState: If the offer is not accepted
    """
    detail = get_offer_detail(offer_id)
    if detail is None:
        raise OfferNotFound(offer_id)
    offer = detail.offer

    job = Job.objects.filter(pk=offer.job_id).first()
    if job is None:
        raise JobNotFound(offer.job_id)

    if offer.status != Offer.Status.ACCEPTED:
        raise InvalidOfferState(offer.pk, offer.status, "materialize")

    result = MaterializationResult(offer_id=offer.pk)
    if not detail.has_line_items:
        logger.info(f"Offer {offer.pk} has no line items to materialize")
        return result

    window = job_window(job, offer.accepted_at or now)
    steps = [
        (EQUIPMENT, lambda: _materialize_equipment(
            offer, job, detail.equipment_items, window, acting_user
        )),
        (CREW, lambda: _materialize_crew(offer, job, detail.crew_items, acting_user)),
        (TRANSPORT, lambda: _materialize_transport(
            offer, job, detail.transport_items, acting_user
        )),
    ]

    for category, step in steps:
        try:
            with transaction.atomic():
                partial = step()
        except Exception as e:
            logger.exception(f"Materializing {category} for offer {offer.pk} failed")
            result.failures[str(category)] = str(e)
            continue
        result.merge(partial)

    logger.info(
        f"Materialized offer {offer.pk}: "
        f"{len(result.equipment_periods)} equipment, "
        f"{len(result.crew_periods)} crew, "
        f"{len(result.transport_periods)} transport periods, "
        f"{len(result.gaps)} gaps"
    )
    return result
