"""
Tests for TransactionService.

Covers:
- Recording succeeded payments (idempotency, escrow date, listing sold,
  competing offers, duplicate-sale conflicts)
- Applying refunds reported by Stripe
- Participant refund requests and staff-issued refunds
- Participant-scoped reads
"""

import dataclasses
import uuid
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from freezegun import freeze_time

from authentication.tests.factories import UserFactory
from listings.models import Listing, ListingStatus, OfferStatus
from listings.tests.factories import ListingOfferFactory
from notifications.models import Notification, NotificationType
from payments.exceptions import StripeAPIUnavailableError
from payments.models import RefundRequest, Transaction, TransactionEvent
from payments.services import TransactionService
from payments.state_machines import (
    PENDING,
    RefundRequestStatus,
    TransactionEventType,
    TransactionStatus,
)
from payments.tests.factories import RefundRequestFactory, TransactionFactory


def _fresh(txn: Transaction) -> Transaction:
    # refresh_from_db() trips the protected FSM field
    return Transaction.objects.get(pk=txn.pk)


# =============================================================================
# record_payment_succeeded
# =============================================================================


@pytest.mark.django_db
class TestRecordPaymentSucceeded:
    def test_creates_held_transaction(self, payment_metadata, listing, buyer, seller):
        result = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
            charge_id="ch_paid",
        )

        assert result.success
        txn = result.data
        assert txn.status == TransactionStatus.PAYMENT_HELD
        assert txn.listing == listing
        assert txn.buyer == buyer
        assert txn.seller == seller
        assert txn.offer is None
        assert txn.final_price_cents == 1000000
        assert txn.platform_fee_cents == 50000
        assert txn.processor_fee_cents == 29030
        assert txn.seller_receives_cents == 920970
        assert txn.stripe_charge_id == "ch_paid"
        assert txn.refunded_amount_cents == 0

    def test_escrow_release_date_is_hold_days_after_payment(
        self, payment_metadata, settings
    ):
        settings.ESCROW_HOLD_DAYS = 7
        paid_at = datetime(2026, 1, 1, 12, 0, tzinfo=dt_timezone.utc)

        result = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
            occurred_at=paid_at,
        )

        assert result.data.escrow_release_date == paid_at + timedelta(days=7)

    @freeze_time("2026-03-10 09:30:00")
    def test_escrow_release_date_defaults_to_now(self, payment_metadata, settings):
        settings.ESCROW_HOLD_DAYS = 7

        result = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
        )

        assert result.data.escrow_release_date == datetime(
            2026, 3, 17, 9, 30, tzinfo=dt_timezone.utc
        )

    def test_marks_listing_sold(self, payment_metadata, listing):
        paid_at = datetime(2026, 1, 1, 12, 0, tzinfo=dt_timezone.utc)

        TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
            occurred_at=paid_at,
        )

        listing.refresh_from_db()
        assert listing.status == ListingStatus.SOLD
        assert listing.sold_price == Decimal("10000.00")
        assert listing.sold_date == paid_at

    def test_records_payment_event(self, payment_metadata, buyer):
        result = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
            charge_id="ch_paid",
        )

        event = TransactionEvent.objects.get(transaction=result.data)
        assert event.event_type == TransactionEventType.PAYMENT_SUCCEEDED
        assert event.previous_status == PENDING
        assert event.new_status == TransactionStatus.PAYMENT_HELD
        assert event.amount_cents == 1000000
        assert event.triggered_by == buyer
        assert event.metadata["stripe_payment_intent_id"] == "pi_paid"
        assert "listing_conflict" not in event.metadata

    def test_notifies_seller_and_buyer(self, payment_metadata, buyer, seller):
        result = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
        )
        txn = result.data

        seller_note = Notification.objects.get(recipient=seller)
        assert seller_note.notification_type == NotificationType.SALE_COMPLETED
        assert seller_note.title == "Horse Sold!"
        assert "Thunder" in seller_note.body
        assert seller_note.link == f"/transactions/{txn.id}"

        buyer_note = Notification.objects.get(recipient=buyer)
        assert buyer_note.notification_type == NotificationType.PURCHASE_COMPLETED
        assert buyer_note.title == "Purchase Complete"
        assert buyer_note.idempotency_key == f"purchase_completed:{txn.id}"

    def test_replay_is_idempotent(self, payment_metadata):
        first = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
        )
        second = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
        )

        assert second.success
        assert second.data.pk == first.data.pk
        assert Transaction.objects.count() == 1
        assert TransactionEvent.objects.count() == 1
        assert Notification.objects.count() == 2

    def test_rejects_competing_pending_offers(
        self, payment_metadata, listing, buyer, accepted_offer
    ):
        competing = ListingOfferFactory(listing=listing, status=OfferStatus.PENDING)
        offer_metadata = dataclasses.replace(
            payment_metadata, offer_id=accepted_offer.id, final_price_cents=900000
        )

        TransactionService.record_payment_succeeded(
            metadata=offer_metadata,
            payment_intent_id="pi_paid",
        )

        competing.refresh_from_db()
        accepted_offer.refresh_from_db()
        assert competing.status == OfferStatus.REJECTED
        assert accepted_offer.status == OfferStatus.ACCEPTED

    def test_offers_on_other_listings_untouched(self, payment_metadata):
        other_offer = ListingOfferFactory(status=OfferStatus.PENDING)

        TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_paid",
        )

        other_offer.refresh_from_db()
        assert other_offer.status == OfferStatus.PENDING

    def test_listing_already_sold_records_conflict(
        self, payment_metadata, listing, buyer
    ):
        TransactionFactory(listing=listing)
        Listing.objects.filter(id=listing.id).update(status=ListingStatus.SOLD)
        pending_offer = ListingOfferFactory(listing=listing, status=OfferStatus.PENDING)

        result = TransactionService.record_payment_succeeded(
            metadata=payment_metadata,
            payment_intent_id="pi_second_buyer",
        )

        assert result.success
        assert Transaction.objects.filter(listing=listing).count() == 2
        event = TransactionEvent.objects.get(transaction=result.data)
        assert event.metadata["listing_conflict"] is True
        pending_offer.refresh_from_db()
        assert pending_offer.status == OfferStatus.PENDING

    def test_unknown_buyer(self, payment_metadata):
        metadata = dataclasses.replace(payment_metadata, buyer_id=999999)

        result = TransactionService.record_payment_succeeded(
            metadata=metadata,
            payment_intent_id="pi_paid",
        )

        assert result.error_code == "INVALID_PAYMENT_METADATA"
        assert not Transaction.objects.exists()

    def test_unknown_listing(self, payment_metadata):
        metadata = dataclasses.replace(payment_metadata, listing_id=uuid.uuid4())

        result = TransactionService.record_payment_succeeded(
            metadata=metadata,
            payment_intent_id="pi_paid",
        )

        assert result.error_code == "LISTING_NOT_FOUND"


# =============================================================================
# apply_refund
# =============================================================================


@pytest.mark.django_db
class TestApplyRefund:
    @pytest.fixture
    def sold_transaction(self, listing, buyer):
        Listing.objects.filter(id=listing.id).update(
            status=ListingStatus.SOLD,
            sold_price=Decimal("10000.00"),
        )
        return TransactionFactory(
            listing=listing,
            buyer=buyer,
            stripe_payment_intent_id="pi_refund",
            stripe_charge_id="",
        )

    def test_full_refund(self, sold_transaction, listing):
        result = TransactionService.apply_refund(
            payment_intent_id="pi_refund",
            amount_refunded_cents=1000000,
            charge_amount_cents=1000000,
            charge_id="ch_refund",
        )

        assert result.success
        txn = _fresh(sold_transaction)
        assert txn.status == TransactionStatus.REFUNDED
        assert txn.refunded_amount_cents == 1000000
        assert txn.refunded_at is not None
        assert txn.stripe_charge_id == "ch_refund"

        listing.refresh_from_db()
        assert listing.status == ListingStatus.ACTIVE
        assert listing.sold_price is None
        assert listing.sold_date is None

    def test_partial_refund_keeps_listing_sold(self, sold_transaction, listing):
        TransactionService.apply_refund(
            payment_intent_id="pi_refund",
            amount_refunded_cents=250000,
            charge_amount_cents=1000000,
        )

        txn = _fresh(sold_transaction)
        assert txn.status == TransactionStatus.PARTIALLY_REFUNDED
        assert txn.refunded_amount_cents == 250000
        listing.refresh_from_db()
        assert listing.status == ListingStatus.SOLD

    def test_refund_event_records_delta(self, sold_transaction):
        TransactionService.apply_refund("pi_refund", 250000, 1000000)
        TransactionService.apply_refund("pi_refund", 400000, 1000000)

        events = TransactionEvent.objects.filter(
            transaction=sold_transaction,
            event_type=TransactionEventType.REFUND_COMPLETED,
        ).order_by("created_at")
        assert [e.amount_cents for e in events] == [250000, 150000]
        assert events[0].previous_status == TransactionStatus.PAYMENT_HELD
        assert events[1].previous_status == TransactionStatus.PARTIALLY_REFUNDED
        assert events[1].note == "Refund of 1,500.00 USD processed"

    def test_partial_then_remaining_completes_refund(self, sold_transaction):
        TransactionService.apply_refund("pi_refund", 250000, 1000000)
        TransactionService.apply_refund("pi_refund", 1000000, 1000000)

        txn = _fresh(sold_transaction)
        assert txn.status == TransactionStatus.REFUNDED
        assert txn.refunded_amount_cents == 1000000

    def test_replayed_refund_is_ignored(self, sold_transaction):
        TransactionService.apply_refund("pi_refund", 250000, 1000000)
        result = TransactionService.apply_refund("pi_refund", 250000, 1000000)

        assert result.success
        assert _fresh(sold_transaction).refunded_amount_cents == 250000
        assert (
            TransactionEvent.objects.filter(
                event_type=TransactionEventType.REFUND_COMPLETED
            ).count()
            == 1
        )

    def test_refund_notifies_both_parties(self, sold_transaction, buyer, seller):
        TransactionService.apply_refund("pi_refund", 250000, 1000000)

        buyer_note = Notification.objects.get(recipient=buyer)
        assert buyer_note.notification_type == NotificationType.REFUND_PROCESSED
        assert buyer_note.title == "Refund Processed"
        assert "2,500.00 USD" in buyer_note.body
        assert buyer_note.link == f"/transactions/{sold_transaction.id}"

        seller_note = Notification.objects.get(recipient=seller)
        assert seller_note.title == "Refund Issued"
        assert seller_note.body == (
            "A refund of 2,500.00 USD has been issued for this transaction."
        )

    def test_replayed_refund_does_not_notify_twice(self, sold_transaction):
        TransactionService.apply_refund("pi_refund", 250000, 1000000)
        TransactionService.apply_refund("pi_refund", 250000, 1000000)
        TransactionService.apply_refund("pi_refund", 1000000, 1000000)

        assert (
            Notification.objects.filter(
                notification_type=NotificationType.REFUND_PROCESSED
            ).count()
            == 4
        )

    def test_stale_refund_is_ignored(self, sold_transaction):
        TransactionService.apply_refund("pi_refund", 400000, 1000000)
        TransactionService.apply_refund("pi_refund", 250000, 1000000)

        assert _fresh(sold_transaction).refunded_amount_cents == 400000

    def test_unknown_payment_intent(self):
        result = TransactionService.apply_refund("pi_unknown", 1000, 1000)

        assert result.success
        assert result.data is None

    def test_refunded_transaction_cannot_be_refunded_again(self, listing):
        TransactionFactory(
            listing=listing,
            stripe_payment_intent_id="pi_done",
            status=TransactionStatus.REFUNDED,
            refunded_amount_cents=500000,
        )

        result = TransactionService.apply_refund("pi_done", 900000, 1000000)

        assert result.error_code == "INVALID_STATE_TRANSITION"

    def test_full_refund_leaves_resold_listing_alone(self, sold_transaction, listing):
        Listing.objects.filter(id=listing.id).update(status=ListingStatus.REMOVED)

        TransactionService.apply_refund("pi_refund", 1000000, 1000000)

        listing.refresh_from_db()
        assert listing.status == ListingStatus.REMOVED


# =============================================================================
# request_refund
# =============================================================================


@pytest.mark.django_db
class TestRequestRefund:
    @pytest.fixture
    def transaction(self, listing, buyer):
        return TransactionFactory(listing=listing, buyer=buyer)

    def test_buyer_requests_full_refund(self, transaction, buyer, seller):
        result = TransactionService.request_refund(
            transaction.id, buyer, reason="Horse is lame"
        )

        assert result.success
        refund_request = result.data
        assert refund_request.amount_cents == 1000000
        assert refund_request.status == RefundRequestStatus.PENDING
        assert refund_request.requested_by == buyer

        event = TransactionEvent.objects.get(
            transaction=transaction,
            event_type=TransactionEventType.REFUND_REQUESTED,
        )
        assert event.previous_status == event.new_status == TransactionStatus.PAYMENT_HELD
        assert event.note == "Horse is lame"

        notification = Notification.objects.get(recipient=seller)
        assert notification.title == "Refund Requested"
        assert notification.body == (
            "A full refund has been requested for transaction. Reason: Horse is lame"
        )

    def test_status_does_not_change(self, transaction, buyer):
        TransactionService.request_refund(transaction.id, buyer, reason="Changed mind")

        assert _fresh(transaction).status == TransactionStatus.PAYMENT_HELD

    def test_seller_request_notifies_buyer(self, transaction, buyer, seller):
        TransactionService.request_refund(
            transaction.id, seller, reason="Cannot deliver", amount_cents=100000
        )

        notification = Notification.objects.get(recipient=buyer)
        assert "partial refund" in notification.body

    def test_non_participant_denied(self, transaction):
        result = TransactionService.request_refund(
            transaction.id, UserFactory(), reason="Nope"
        )

        assert result.error_code == "PERMISSION_DENIED"

    def test_unknown_transaction(self, buyer):
        result = TransactionService.request_refund(uuid.uuid4(), buyer, reason="?")

        assert result.error_code == "NOT_FOUND"

    def test_refunded_transaction(self, listing, buyer):
        txn = TransactionFactory(
            listing=listing,
            buyer=buyer,
            status=TransactionStatus.REFUNDED,
            refunded_amount_cents=1000000,
        )

        result = TransactionService.request_refund(txn.id, buyer, reason="Again")

        assert result.error_code == "INVALID_STATUS"

    def test_amount_above_remaining(self, listing, buyer):
        txn = TransactionFactory(
            listing=listing,
            buyer=buyer,
            status=TransactionStatus.PARTIALLY_REFUNDED,
            refunded_amount_cents=800000,
        )

        result = TransactionService.request_refund(
            txn.id, buyer, reason="More", amount_cents=300000
        )

        assert result.error_code == "INVALID_AMOUNT"

    def test_pending_request_blocks_another(self, transaction, buyer):
        RefundRequestFactory(transaction=transaction)

        result = TransactionService.request_refund(transaction.id, buyer, reason="Again")

        assert result.error_code == "REFUND_ALREADY_REQUESTED"
        assert RefundRequest.objects.count() == 1


# =============================================================================
# issue_refund
# =============================================================================


@pytest.mark.django_db
class TestIssueRefund:
    @pytest.fixture
    def staff(self, db):
        return UserFactory(is_staff=True)

    @pytest.fixture
    def transaction(self, listing, buyer):
        return TransactionFactory(
            listing=listing,
            buyer=buyer,
            stripe_payment_intent_id="pi_issue",
        )

    def test_issues_remaining_amount(self, transaction, staff, stripe_adapter):
        result = TransactionService.issue_refund(
            transaction.id, staff, stripe_adapter=stripe_adapter
        )

        assert result.success
        assert result.data.amount_cents == 1000000
        kwargs = stripe_adapter.create_refund.call_args.kwargs
        assert kwargs["payment_intent_id"] == "pi_issue"
        assert kwargs["amount_cents"] == 1000000
        assert kwargs["reason"] == "requested_by_customer"
        assert kwargs["idempotency_key"].startswith("refund:")
        assert kwargs["metadata"]["transaction_id"] == str(transaction.id)

    def test_status_waits_for_webhook(self, transaction, staff, stripe_adapter):
        TransactionService.issue_refund(
            transaction.id, staff, stripe_adapter=stripe_adapter
        )

        assert _fresh(transaction).status == TransactionStatus.PAYMENT_HELD

    def test_approves_pending_requests(self, transaction, staff, stripe_adapter):
        refund_request = RefundRequestFactory(transaction=transaction)

        TransactionService.issue_refund(
            transaction.id, staff, stripe_adapter=stripe_adapter
        )

        refund_request.refresh_from_db()
        assert refund_request.status == RefundRequestStatus.APPROVED
        assert refund_request.processed_by == staff
        assert refund_request.processed_at is not None

    def test_non_staff_denied(self, transaction, buyer, stripe_adapter):
        result = TransactionService.issue_refund(
            transaction.id, buyer, stripe_adapter=stripe_adapter
        )

        assert result.error_code == "PERMISSION_DENIED"
        stripe_adapter.create_refund.assert_not_called()

    def test_amount_above_remaining(self, transaction, staff, stripe_adapter):
        result = TransactionService.issue_refund(
            transaction.id, staff, amount_cents=1000001, stripe_adapter=stripe_adapter
        )

        assert result.error_code == "INVALID_AMOUNT"

    def test_provider_error(self, transaction, staff, stripe_adapter):
        stripe_adapter.create_refund.side_effect = StripeAPIUnavailableError("down")
        refund_request = RefundRequestFactory(transaction=transaction)

        result = TransactionService.issue_refund(
            transaction.id, staff, stripe_adapter=stripe_adapter
        )

        assert result.error_code == "PAYMENT_PROVIDER_ERROR"
        refund_request.refresh_from_db()
        assert refund_request.status == RefundRequestStatus.PENDING


# =============================================================================
# Reads
# =============================================================================


@pytest.mark.django_db
class TestReads:
    def test_list_for_user_covers_purchases_and_sales(self, buyer, seller, listing):
        purchase = TransactionFactory(listing=listing, buyer=buyer)
        TransactionFactory()

        assert list(TransactionService.list_for_user(buyer)) == [purchase]
        assert list(TransactionService.list_for_user(seller)) == [purchase]

    def test_get_for_user_rejects_invalid_id(self, buyer):
        result = TransactionService.get_for_user("not-a-uuid", buyer)

        assert result.error_code == "NOT_FOUND"

    def test_get_events_ordered_oldest_first(self, payment_metadata, buyer):
        txn = TransactionService.record_payment_succeeded(
            metadata=payment_metadata, payment_intent_id="pi_paid"
        ).data
        TransactionService.apply_refund("pi_paid", 100000, 1000000)

        result = TransactionService.get_events(txn.id, buyer)

        assert [e.event_type for e in result.data] == [
            TransactionEventType.PAYMENT_SUCCEEDED,
            TransactionEventType.REFUND_COMPLETED,
        ]

    def test_get_refund_requests_denied_for_outsider(self):
        txn = TransactionFactory()

        result = TransactionService.get_refund_requests(txn.id, UserFactory())

        assert result.error_code == "PERMISSION_DENIED"
