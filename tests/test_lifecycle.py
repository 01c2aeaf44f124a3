"""Tests for the offer lifecycle."""

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from freezegun import freeze_time

from django_offers.exceptions import InvalidOfferState, OfferValidationError
from django_offers.lifecycle import (
    accept_offer,
    create_offer,
    lock_offer,
    mark_offer_viewed,
    reject_offer,
    request_offer_revision,
    supersede_offer,
)
from django_offers.models import Offer
from django_offers.services import add_crew_item, delete_offer, duplicate_offer


@pytest.mark.django_db
class TestCreateOffer:
    """Tests for create_offer."""

    def test_creates_draft_with_token(self, job):
        """create_offer makes an unlocked draft with a token and defaults."""
        offer = create_offer(job, title="  Festival rig  ")

        assert offer.status == Offer.Status.DRAFT
        assert offer.locked is False
        assert offer.title == "Festival rig"
        assert offer.company_id == job.company_id
        assert len(offer.access_token) == 64
        assert offer.currency == "NOK"
        assert offer.vat_percent == Decimal("25")

    def test_tokens_are_unique(self, job):
        """Each offer gets its own access token."""
        first = create_offer(job, title="A")
        second = create_offer(job, title="B")
        assert first.access_token != second.access_token

    def test_versions_are_sequential(self, job):
        """Offers for one job are numbered 1, 2, 3."""
        offers = [create_offer(job, title=f"Offer {i}") for i in range(3)]
        assert [o.version_number for o in offers] == [1, 2, 3]

    def test_versions_count_duplicates(self, job):
        """Duplicates take a version number in sequence."""
        first = create_offer(job, title="First")
        copy = duplicate_offer(first).offer
        third = create_offer(job, title="Third")

        assert (first.version_number, copy.version_number, third.version_number) == (1, 2, 3)

    def test_versions_are_not_reused_after_delete(self, job):
        """A deleted offer's version number is not handed out again."""
        create_offer(job, title="First")
        second = create_offer(job, title="Second")
        delete_offer(second)

        assert create_offer(job, title="Third").version_number == 3

    def test_versions_are_per_job(self, job, company):
        """Version numbers restart for each job."""
        from django_offers.models import Job
        other_job = Job.objects.create(company=company, title="Winter Gala")
        create_offer(job, title="A")

        assert create_offer(other_job, title="B").version_number == 1

    def test_invalid_fields_rejected_before_insert(self, job):
        """Invalid fields raise before any row is written."""
        with pytest.raises(OfferValidationError) as exc_info:
            create_offer(job, title="", vat_percent=10)

        assert len(exc_info.value.errors) == 2
        assert not Offer.all_objects.filter(job=job).exists()

    def test_version_unique_per_job(self, offer):
        """The database rejects a repeated version for a job."""
        with pytest.raises(IntegrityError), transaction.atomic():
            Offer.objects.create(
                job=offer.job,
                company=offer.company,
                version_number=offer.version_number,
                access_token="another-token",
                title="Clash",
            )


@pytest.mark.django_db
class TestLockOffer:
    """Tests for lock_offer."""

    def test_lock_sets_sent(self, offer):
        """Locking sets status sent, locked and sent_at."""
        add_crew_item(
            offer,
            role_title="Rigger",
            start_at=datetime(2025, 6, 1, 8, 0, tzinfo=dt_timezone.utc),
            end_at=datetime(2025, 6, 2, 8, 0, tzinfo=dt_timezone.utc),
            daily_rate=Decimal("4000"),
        )
        with freeze_time("2025-05-20 09:00:00"):
            offer = lock_offer(offer)

        assert offer.status == Offer.Status.SENT
        assert offer.locked is True
        assert offer.sent_at == datetime(2025, 5, 20, 9, 0, tzinfo=dt_timezone.utc)

    def test_lock_freezes_totals(self, sent_offer):
        """Totals are recomputed when the offer is locked."""
        # 5000/day crew line, 25% VAT
        assert sent_offer.total_with_vat == Decimal("6250.00")

    def test_lock_requires_line_items(self, offer):
        """An offer without lines cannot be sent."""
        with pytest.raises(OfferValidationError):
            lock_offer(offer)

        offer.refresh_from_db()
        assert offer.status == Offer.Status.DRAFT

    def test_lock_twice_raises(self, sent_offer):
        """A sent offer cannot be locked again."""
        with pytest.raises(InvalidOfferState):
            lock_offer(sent_offer)


@pytest.mark.django_db
class TestPublicActions:
    """Tests for token-guarded accept, reject and revision."""

    def test_accept_sent_offer(self, sent_offer):
        """Accepting records status, time and who accepted."""
        with freeze_time("2025-05-21 10:00:00"):
            assert accept_offer(
                sent_offer.access_token,
                name="Kari Nordmann",
                phone="+4712345678",
                email="kari@example.com",
            )

        sent_offer.refresh_from_db()
        assert sent_offer.status == Offer.Status.ACCEPTED
        assert sent_offer.accepted_by_name == "Kari Nordmann"
        assert sent_offer.accepted_by_email == "kari@example.com"
        assert sent_offer.accepted_at == datetime(2025, 5, 21, 10, 0, tzinfo=dt_timezone.utc)

    def test_accept_draft_is_noop(self, offer):
        """Accepting a draft changes nothing and returns False."""
        assert accept_offer(offer.access_token, name="Kari") is False

        offer.refresh_from_db()
        assert offer.status == Offer.Status.DRAFT
        assert offer.accepted_at is None

    def test_unknown_token_is_noop(self, sent_offer):
        """Unknown or blank tokens return False."""
        assert accept_offer("not-a-token", name="Kari") is False
        assert reject_offer("", name="Kari") is False

    def test_accept_then_reject_only_first_wins(self, sent_offer):
        """A reject after an accept has no effect."""
        assert accept_offer(sent_offer.access_token, name="Kari") is True
        assert reject_offer(sent_offer.access_token, name="Ola", comment="Too pricey") is False

        sent_offer.refresh_from_db()
        assert sent_offer.status == Offer.Status.ACCEPTED
        assert sent_offer.rejected_at is None
        assert sent_offer.rejection_comment == ""

    def test_reject_then_accept_only_first_wins(self, sent_offer):
        """An accept after a reject has no effect."""
        assert reject_offer(sent_offer.access_token, name="Ola", comment="Too pricey") is True
        assert accept_offer(sent_offer.access_token, name="Kari") is False

        sent_offer.refresh_from_db()
        assert sent_offer.status == Offer.Status.REJECTED
        assert sent_offer.rejection_comment == "Too pricey"
        assert sent_offer.accepted_at is None

    def test_request_revision(self, sent_offer):
        """A revision request sets viewed and records the comment."""
        assert request_offer_revision(
            sent_offer.access_token, name="Kari", comment="Add a second engineer",
        )

        sent_offer.refresh_from_db()
        assert sent_offer.status == Offer.Status.VIEWED
        assert sent_offer.revision_comment == "Add a second engineer"
        assert sent_offer.revision_requested_at is not None
        assert Offer.objects.filter(job=sent_offer.job).count() == 1

    def test_revision_blocks_accept(self, sent_offer):
        """An offer waiting for revision cannot be accepted."""
        request_offer_revision(sent_offer.access_token, name="Kari")
        assert accept_offer(sent_offer.access_token, name="Kari") is False


@pytest.mark.django_db
class TestMarkViewed:
    """Tests for mark_offer_viewed."""

    def test_first_view_recorded_once(self, sent_offer):
        """Only the first view sets viewed_at."""
        with freeze_time("2025-05-21 10:00:00"):
            assert mark_offer_viewed(sent_offer.access_token) is True
        with freeze_time("2025-05-22 10:00:00"):
            assert mark_offer_viewed(sent_offer.access_token) is False

        sent_offer.refresh_from_db()
        assert sent_offer.viewed_at == datetime(2025, 5, 21, 10, 0, tzinfo=dt_timezone.utc)

    def test_viewed_offer_can_still_be_accepted(self, sent_offer):
        """Viewing keeps the status sent."""
        mark_offer_viewed(sent_offer.access_token)

        sent_offer.refresh_from_db()
        assert sent_offer.status == Offer.Status.SENT
        assert accept_offer(sent_offer.access_token, name="Kari") is True

    def test_draft_not_marked(self, offer):
        """Drafts and blank tokens are not marked."""
        assert mark_offer_viewed(offer.access_token) is False
        assert mark_offer_viewed("") is False


@pytest.mark.django_db
class TestSupersede:
    """Tests for supersede_offer."""

    def test_supersede_sent(self, sent_offer):
        """A sent offer can be superseded."""
        offer = supersede_offer(sent_offer)
        assert offer.status == Offer.Status.SUPERSEDED

    def test_supersede_revision_requested(self, sent_offer):
        """An offer waiting for revision can be superseded."""
        request_offer_revision(sent_offer.access_token, name="Kari")
        assert supersede_offer(sent_offer).status == Offer.Status.SUPERSEDED

    def test_supersede_draft_raises(self, offer):
        """Drafts cannot be superseded."""
        with pytest.raises(InvalidOfferState):
            supersede_offer(offer)

    def test_supersede_accepted_raises(self, sent_offer):
        """Accepted offers cannot be superseded."""
        accept_offer(sent_offer.access_token, name="Kari")
        with pytest.raises(InvalidOfferState):
            supersede_offer(sent_offer)
