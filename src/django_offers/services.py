"""Offer editing service layer.

All writes to draft offers and their line items go through these
functions. Each line-item write recomputes that line's total from its
inputs and then the offer totals, so the offer projection always matches
pricing.compute_totals() over the current lines.

Functions:
- update_offer(): Edit offer-level fields
- add_equipment_group(), add_equipment_item(), add_crew_item(),
  add_transport_item(), add_pretty_section(): Add lines
- update_line_item(), remove_line_item(): Edit or drop a line
- recalculate_offer_totals(): Persist totals from current lines
- duplicate_offer(): Deep copy into a new draft version
- delete_offer(): Soft delete a draft
"""

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction

from django_offers.conf import get_currency, is_distance_pricing_enabled
from django_offers.exceptions import (
    InvalidOfferState,
    OfferError,
    OfferLockedError,
    OfferNotFound,
)
from django_offers.lifecycle import create_offer, supersede_offer
from django_offers.models import (
    CrewItem,
    EquipmentGroup,
    EquipmentItem,
    Offer,
    PrettySection,
    TransportItem,
)
from django_offers.money import Money
from django_offers.pricing import (
    Totals,
    compute_totals,
    crew_line_total,
    equipment_line_total,
    transport_line_total,
)
from django_offers.selectors import fetch_with_retry, get_offer_detail
from django_offers.validators import validate_line_item, validate_offer_fields

logger = logging.getLogger(__name__)


OFFER_EDITABLE_FIELDS = ('title', 'days_of_use', 'discount_percent', 'vat_percent', 'offer_type')

LINE_EDITABLE_FIELDS = {
    EquipmentItem: ('item', 'quantity', 'unit_price', 'is_internal', 'sort_order'),
    CrewItem: ('role_title', 'crew_count', 'start_at', 'end_at', 'daily_rate', 'sort_order'),
    TransportItem: (
        'vehicle', 'vehicle_name', 'vehicle_category', 'start_at', 'end_at',
        'daily_rate', 'distance_km', 'is_internal', 'sort_order',
    ),
    EquipmentGroup: ('group_name', 'sort_order'),
    PrettySection: ('section_type', 'title', 'content', 'image_url', 'sort_order'),
}


@dataclass
class DuplicationResult:
    """A duplicated offer plus soft warnings raised after the copy."""

    offer: Offer
    warnings: list[str] = field(default_factory=list)


def _ensure_editable(offer_id, action: str = "edit") -> Offer:
    """Re-read the offer and refuse anything but an unlocked draft."""
    offer = Offer.objects.filter(pk=offer_id).first()
    if offer is None:
        raise OfferNotFound(offer_id)
    if not offer.is_editable:
        raise OfferLockedError(offer.pk, offer.status, action)
    return offer


def _offer_id_for(line):
    if isinstance(line, EquipmentItem):
        return line.group.offer_id
    return line.offer_id


def _distance_settings(offer: Offer):
    company = offer.company
    return company.vehicle_distance_rate, company.vehicle_distance_increment


def _priced(amount, offer: Offer):
    return Money(amount, offer.currency or get_currency()).quantized().amount


def _price_line(line, offer: Offer) -> None:
    """Recompute a line's total_price from its own inputs."""
    if isinstance(line, EquipmentItem):
        total = equipment_line_total(line.unit_price, line.quantity)
    elif isinstance(line, CrewItem):
        total = crew_line_total(line.daily_rate, line.crew_count, line.start_at, line.end_at)
    elif isinstance(line, TransportItem):
        rate, increment = _distance_settings(offer)
        total = transport_line_total(
            line.daily_rate,
            line.start_at,
            line.end_at,
            distance_km=line.distance_km,
            distance_rate=rate,
            distance_increment=increment,
            include_distance=is_distance_pricing_enabled(),
        )
    else:
        return
    line.total_price = _priced(total, offer)


def _next_sort_order(queryset) -> int:
    return queryset.count()


def recalculate_offer_totals(offer_id) -> Totals:
    """
    Recompute and persist an offer's totals from its current line items.

    The read is retried (OFFERS_READ_RETRY_ATTEMPTS) to ride out
    read-after-write lag right after lines were inserted.

    Raises:
        OfferReadLagError: If the offer cannot be read after retries
        OfferLockedError: If the offer is no longer a draft
    """
    detail = fetch_with_retry(lambda: get_offer_detail(offer_id), key=offer_id)
    offer = detail.offer
    rate, increment = _distance_settings(offer)

    totals = compute_totals(
        detail.equipment_items,
        detail.crew_items,
        detail.transport_items,
        offer.days_of_use,
        offer.discount_percent,
        offer.vat_percent,
        rate,
        increment,
        currency=offer.currency or get_currency(),
        include_distance=is_distance_pricing_enabled(),
    )

    rows = Offer.objects.filter(
        pk=offer.pk,
        status=Offer.Status.DRAFT,
        locked=False,
    ).update(**totals.as_amounts())
    if rows == 0:
        raise OfferLockedError(offer.pk, offer.status, "recalculate")

    logger.debug(f"Offer {offer.pk} totals: {totals.total_with_vat}")
    return totals


@transaction.atomic
def update_offer(offer: Offer, **fields) -> Offer:
    """
    Edit offer-level fields of a draft and recompute totals.

    Raises:
        OfferLockedError: If the offer is not a draft
        OfferValidationError: If the merged fields are invalid
        TypeError: If a field is not editable
    """
    unknown = set(fields) - set(OFFER_EDITABLE_FIELDS)
    if unknown:
        raise TypeError(f"Not editable on offer: {', '.join(sorted(unknown))}")

    offer = _ensure_editable(offer.pk)
    for name, value in fields.items():
        setattr(offer, name, value)

    validate_offer_fields(
        title=offer.title,
        days_of_use=offer.days_of_use,
        discount_percent=offer.discount_percent,
        vat_percent=offer.vat_percent,
    ).raise_if_invalid()

    offer.save(update_fields=list(fields) + ['updated_at'])
    recalculate_offer_totals(offer.pk)
    offer.refresh_from_db()
    return offer


@transaction.atomic
def add_equipment_group(offer: Offer, group_name: str, sort_order=None) -> EquipmentGroup:
    offer = _ensure_editable(offer.pk)
    if sort_order is None:
        sort_order = _next_sort_order(offer.groups.all())
    return EquipmentGroup.objects.create(
        offer=offer,
        group_name=group_name,
        sort_order=sort_order,
    )


@transaction.atomic
def add_equipment_item(
    group: EquipmentGroup,
    *,
    unit_price,
    quantity: int = 1,
    item=None,
    is_internal=None,
    sort_order=None,
) -> EquipmentItem:
    """Add an equipment line; a null item makes a placeholder line."""
    offer = _ensure_editable(group.offer_id)
    if is_internal is None:
        is_internal = item is None or not item.is_external
    if sort_order is None:
        sort_order = _next_sort_order(group.items.all())

    line = EquipmentItem(
        group=group,
        item=item,
        quantity=quantity,
        unit_price=unit_price,
        is_internal=is_internal,
        sort_order=sort_order,
    )
    validate_line_item(line).raise_if_invalid()
    _price_line(line, offer)
    line.save()
    recalculate_offer_totals(offer.pk)
    return line


@transaction.atomic
def add_crew_item(
    offer: Offer,
    *,
    role_title: str,
    start_at,
    end_at,
    daily_rate,
    crew_count: int = 1,
    sort_order=None,
) -> CrewItem:
    offer = _ensure_editable(offer.pk)
    if sort_order is None:
        sort_order = _next_sort_order(offer.crew_items.all())

    line = CrewItem(
        offer=offer,
        role_title=role_title,
        crew_count=crew_count,
        start_at=start_at,
        end_at=end_at,
        daily_rate=daily_rate,
        sort_order=sort_order,
    )
    validate_line_item(line).raise_if_invalid()
    _price_line(line, offer)
    line.save()
    recalculate_offer_totals(offer.pk)
    return line


@transaction.atomic
def add_transport_item(
    offer: Offer,
    *,
    start_at,
    end_at,
    daily_rate,
    vehicle=None,
    vehicle_name: str = '',
    vehicle_category: str = '',
    distance_km=None,
    is_internal=None,
    sort_order=None,
) -> TransportItem:
    """Add a transport line for a named vehicle or just a vehicle category."""
    offer = _ensure_editable(offer.pk)
    if vehicle is not None:
        vehicle_name = vehicle_name or vehicle.name
        vehicle_category = vehicle_category or vehicle.vehicle_category
        if is_internal is None:
            is_internal = vehicle.is_internal
    if is_internal is None:
        is_internal = True
    if sort_order is None:
        sort_order = _next_sort_order(offer.transport_items.all())

    line = TransportItem(
        offer=offer,
        vehicle=vehicle,
        vehicle_name=vehicle_name,
        vehicle_category=vehicle_category,
        start_at=start_at,
        end_at=end_at,
        daily_rate=daily_rate,
        distance_km=distance_km,
        is_internal=is_internal,
        sort_order=sort_order,
    )
    validate_line_item(line).raise_if_invalid()
    _price_line(line, offer)
    line.save()
    recalculate_offer_totals(offer.pk)
    return line


@transaction.atomic
def add_pretty_section(
    offer: Offer,
    *,
    section_type: str,
    title: str = '',
    content: str = '',
    image_url: str = '',
    sort_order=None,
) -> PrettySection:
    """Add a presentation block. Sections do not affect pricing."""
    offer = _ensure_editable(offer.pk)
    if sort_order is None:
        sort_order = _next_sort_order(offer.pretty_sections.all())
    return PrettySection.objects.create(
        offer=offer,
        section_type=section_type,
        title=title,
        content=content,
        image_url=image_url,
        sort_order=sort_order,
    )


@transaction.atomic
def update_line_item(line, **fields):
    """
    Edit a line item (or group/section) of a draft offer.

    The line total is recomputed from the new inputs; a caller-supplied
    total_price is not accepted.

    Raises:
        OfferLockedError: If the offer is not a draft
        OfferValidationError: If the edited line is invalid
    """
    allowed = LINE_EDITABLE_FIELDS[type(line)]
    unknown = set(fields) - set(allowed)
    if unknown:
        raise TypeError(
            f"Not editable on {type(line).__name__}: {', '.join(sorted(unknown))}"
        )

    offer = _ensure_editable(_offer_id_for(line))
    for name, value in fields.items():
        setattr(line, name, value)
    validate_line_item(line).raise_if_invalid()
    _price_line(line, offer)
    line.save()
    recalculate_offer_totals(offer.pk)
    return line


@transaction.atomic
def remove_line_item(line) -> None:
    """Delete a line item, group (with its lines) or section of a draft offer."""
    offer = _ensure_editable(_offer_id_for(line), action="remove lines from")
    line.delete()
    recalculate_offer_totals(offer.pk)


def _copy_lines(source: Offer, target: Offer) -> None:
    for group in source.groups.prefetch_related('items'):
        new_group = EquipmentGroup.objects.create(
            offer=target,
            group_name=group.group_name,
            sort_order=group.sort_order,
        )
        EquipmentItem.objects.bulk_create([
            EquipmentItem(
                group=new_group,
                item_id=line.item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
                is_internal=line.is_internal,
                sort_order=line.sort_order,
            )
            for line in group.items.all()
        ])

    CrewItem.objects.bulk_create([
        CrewItem(
            offer=target,
            role_title=line.role_title,
            crew_count=line.crew_count,
            start_at=line.start_at,
            end_at=line.end_at,
            daily_rate=line.daily_rate,
            total_price=line.total_price,
            sort_order=line.sort_order,
        )
        for line in source.crew_items.all()
    ])

    TransportItem.objects.bulk_create([
        TransportItem(
            offer=target,
            vehicle_id=line.vehicle_id,
            vehicle_name=line.vehicle_name,
            vehicle_category=line.vehicle_category,
            start_at=line.start_at,
            end_at=line.end_at,
            daily_rate=line.daily_rate,
            distance_km=line.distance_km,
            total_price=line.total_price,
            is_internal=line.is_internal,
            sort_order=line.sort_order,
        )
        for line in source.transport_items.all()
    ])

    PrettySection.objects.bulk_create([
        PrettySection(
            offer=target,
            section_type=section.section_type,
            title=section.title,
            content=section.content,
            image_url=section.image_url,
            sort_order=section.sort_order,
        )
        for section in source.pretty_sections.all()
    ])


def duplicate_offer(
    offer: Offer,
    *,
    title: str | None = None,
    offer_type: str | None = None,
    record_provenance: bool = True,
    supersede_source: bool = False,
) -> DuplicationResult:
    """
    Deep copy an offer into a new draft with the next version number.

    Works from any status. Groups, equipment, crew, transport and pretty
    sections are copied and totals recomputed on the copy. Steps after the
    copy (recompute, superseding the source) do not roll the copy back;
    their failures come back as warnings.

    Args:
        offer: Offer to copy
        title: Title of the copy (defaults to "<title> (Copy)")
        offer_type: Type of the copy (defaults to the source type)
        record_provenance: Set based_on_offer to the source
        supersede_source: Mark the source superseded after copying

    Raises:
        OfferNotFound: If the source offer does not exist
    """
    source = Offer.objects.filter(pk=offer.pk).first()
    if source is None:
        raise OfferNotFound(offer.pk)

    with transaction.atomic():
        copy = create_offer(
            source.job,
            title=title or f"{source.title} (Copy)",
            offer_type=offer_type or source.offer_type,
            days_of_use=source.days_of_use,
            discount_percent=source.discount_percent,
            vat_percent=source.vat_percent,
            based_on_offer=source if record_provenance else None,
        )
        _copy_lines(source, copy)

    result = DuplicationResult(offer=copy)

    try:
        recalculate_offer_totals(copy.pk)
    except (OfferError, DatabaseError) as e:
        logger.warning(f"Offer {copy.pk} copied but totals not recalculated: {e}")
        result.warnings.append(f"Totals could not be recalculated: {e}")

    if supersede_source:
        try:
            supersede_offer(source)
        except InvalidOfferState as e:
            logger.warning(f"Offer {source.pk} not superseded: {e}")
            result.warnings.append(str(e))

    copy.refresh_from_db()
    logger.info(f"Offer {source.pk} duplicated as {copy.pk} v{copy.version_number}")
    return result


@transaction.atomic
def delete_offer(offer: Offer) -> None:
    """
    Soft delete a draft offer. Its version number is never reused.

    Raises:
        OfferLockedError: If the offer is not a draft
    """
    offer = _ensure_editable(offer.pk, action="delete")
    offer.delete()
    logger.info(f"Offer {offer.pk} deleted")
