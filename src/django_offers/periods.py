"""TimePeriod get-or-create keyed on (job, category, title, start_at, end_at).

Lookups include soft-deleted rows: a deleted period with the same tuple
is revived instead of inserting a second row. The unique constraint on
the tuple settles concurrent inserts; the loser re-fetches the winner.
"""

import logging

from django.db import IntegrityError, transaction

from django_offers.models import TimePeriod

logger = logging.getLogger(__name__)

CREATED = 'created'
REVIVED = 'revived'
REUSED = 'reused'


def _lookup(job, category, title, start_at, end_at):
    return TimePeriod.all_objects.filter(
        job=job,
        category=category,
        title=title,
        start_at=start_at,
        end_at=end_at,
    ).first()


def get_or_create_time_period(
    *,
    job,
    category: str,
    title: str,
    start_at,
    end_at,
    user=None,
    defaults: dict | None = None,
) -> tuple[TimePeriod, str]:
    """
    Find or create the period for a natural key.

    Args:
        job: Job the period belongs to
        category: TimePeriod.Category value
        title: Period title
        start_at: Window start
        end_at: Window end
        user: Recorded as reserved_by_user on create and revive
        defaults: Extra fields for a newly created period

    Returns:
        (period, outcome) where outcome is CREATED, REVIVED or REUSED
    """
    period = _lookup(job, category, title, start_at, end_at)

    if period is None:
        try:
            with transaction.atomic():
                period = TimePeriod.objects.create(
                    company_id=job.company_id,
                    job=job,
                    category=category,
                    title=title,
                    start_at=start_at,
                    end_at=end_at,
                    reserved_by_user=user,
                    **(defaults or {}),
                )
            logger.debug(f"Created {category} period '{title}' for job {job.pk}")
            return period, CREATED
        except IntegrityError:
            period = _lookup(job, category, title, start_at, end_at)
            if period is None:
                raise

    if period.deleted_at is not None:
        period.deleted_at = None
        period.reserved_by_user = user
        period.save(update_fields=['deleted_at', 'reserved_by_user', 'updated_at'])
        logger.info(f"Revived {category} period '{title}' for job {job.pk}")
        return period, REVIVED

    return period, REUSED
