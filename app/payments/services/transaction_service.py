"""
Escrow transaction lifecycle.

TransactionService owns every write to Transaction and TransactionEvent:

- record_payment_succeeded: create the escrow transaction once per
  PaymentIntent and mark the listing sold
- apply_refund: move the transaction to partially_refunded / refunded
  from Stripe's cumulative refunded amount
- request_refund / issue_refund: participant refund requests and the
  staff action that sends the refund to Stripe

Every status change appends a TransactionEvent inside the same database
transaction.

Usage:
    from payments.services import TransactionService

    result = TransactionService.record_payment_succeeded(
        metadata=PaymentMetadata.from_stripe_metadata(intent["metadata"]),
        payment_intent_id=intent["id"],
        charge_id=intent.get("latest_charge") or "",
    )
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.db.models import Q, QuerySet
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from core.services import BaseService, ServiceResult
from listings.models import Listing, ListingOffer, ListingStatus, OfferStatus
from notifications.models import NotificationType
from notifications.services import NotificationService
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import InvalidStateTransitionError, StripeError
from payments.fees import format_cents, from_cents
from payments.metadata import PaymentMetadata
from payments.models import RefundRequest, Transaction, TransactionEvent
from payments.state_machines import (
    PENDING,
    RefundRequestStatus,
    TransactionEventType,
    TransactionStatus,
)

if TYPE_CHECKING:
    from authentication.models import User
    from payments.adapters import RefundResult


class TransactionService(BaseService):
    """
    Service for escrow transactions.

    Methods:
        record_payment_succeeded: Create the transaction for a paid intent
        apply_refund: Apply a refund reported by Stripe
        request_refund: Buyer or seller asks for a refund
        issue_refund: Staff sends a refund to Stripe
        list_for_user: Transactions the user bought or sold
        get_for_user: A single transaction, participants only
        get_events: Audit trail, participants only
        get_refund_requests: Refund requests, participants only
    """

    # =========================================================================
    # Payment
    # =========================================================================

    @classmethod
    def record_payment_succeeded(
        cls,
        metadata: PaymentMetadata,
        payment_intent_id: str,
        charge_id: str = "",
        occurred_at: datetime | None = None,
        currency: str | None = None,
    ) -> ServiceResult[Transaction]:
        """
        Create the escrow transaction for a succeeded PaymentIntent.

        Safe to call repeatedly for the same intent: the second call finds
        the existing transaction and returns it without side effects.

        If the listing is no longer ACTIVE or PENDING when the payment
        lands, another buyer got there first. The transaction is still
        created because the money has been captured and must stay
        refundable; the conflict is logged and recorded on the event.

        Args:
            metadata: Sale snapshot parsed from the intent
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
            charge_id: Stripe Charge ID (ch_xxx), if known
            occurred_at: When the payment succeeded (defaults to now)
            currency: Charge currency (defaults to PAYMENT_CURRENCY)

        Returns:
            ServiceResult with the Transaction

        Error codes:
            INVALID_PAYMENT_METADATA: Buyer or seller does not exist
            LISTING_NOT_FOUND: Listing in the metadata does not exist
        """
        logger = cls.get_logger()

        existing = Transaction.objects.filter(
            stripe_payment_intent_id=payment_intent_id
        ).first()
        if existing:
            logger.info(
                "Transaction already recorded for payment intent",
                extra={
                    "payment_intent_id": payment_intent_id,
                    "transaction_id": str(existing.id),
                },
            )
            return ServiceResult.success(existing)

        user_model = get_user_model()
        users = user_model.objects.in_bulk([metadata.buyer_id, metadata.seller_id])
        buyer = users.get(metadata.buyer_id)
        seller = users.get(metadata.seller_id)
        if buyer is None or seller is None:
            return ServiceResult.failure(
                "Buyer or seller in payment metadata does not exist",
                error_code="INVALID_PAYMENT_METADATA",
            )

        listing = Listing.objects.filter(id=metadata.listing_id).first()
        if listing is None:
            return ServiceResult.failure(
                f"Listing {metadata.listing_id} not found",
                error_code="LISTING_NOT_FOUND",
            )

        occurred_at = occurred_at or timezone.now()

        with cls.atomic():
            try:
                with cls.atomic():
                    txn = Transaction.objects.create(
                        listing=listing,
                        buyer=buyer,
                        seller=seller,
                        offer_id=metadata.offer_id,
                        listing_price_cents=metadata.listing_price_cents,
                        final_price_cents=metadata.final_price_cents,
                        platform_fee_cents=metadata.platform_fee_cents,
                        processor_fee_cents=metadata.processor_fee_cents,
                        seller_receives_cents=metadata.seller_receives_cents,
                        currency=currency or settings.PAYMENT_CURRENCY,
                        stripe_payment_intent_id=payment_intent_id,
                        stripe_charge_id=charge_id or "",
                        escrow_release_date=occurred_at
                        + timedelta(days=settings.ESCROW_HOLD_DAYS),
                    )
            except IntegrityError:
                # Concurrent delivery of the same event won the insert
                existing = Transaction.objects.filter(
                    stripe_payment_intent_id=payment_intent_id
                ).first()
                if existing is None:
                    raise
                return ServiceResult.success(existing)

            sold_count = Listing.objects.filter(
                id=listing.id,
                status__in=ListingStatus.purchasable(),
            ).update(
                status=ListingStatus.SOLD,
                sold_price=from_cents(metadata.final_price_cents),
                sold_date=occurred_at,
                updated_at=timezone.now(),
            )
            listing_conflict = sold_count == 0

            event_metadata = {
                "stripe_payment_intent_id": payment_intent_id,
                "stripe_charge_id": charge_id or "",
            }
            if listing_conflict:
                event_metadata["listing_conflict"] = True
                logger.error(
                    "Payment captured for a listing that is no longer available",
                    extra={
                        "transaction_id": str(txn.id),
                        "listing_id": str(listing.id),
                        "payment_intent_id": payment_intent_id,
                    },
                )

            TransactionEvent.objects.create(
                transaction=txn,
                event_type=TransactionEventType.PAYMENT_SUCCEEDED,
                previous_status=PENDING,
                new_status=TransactionStatus.PAYMENT_HELD,
                amount_cents=metadata.final_price_cents,
                triggered_by=buyer,
                metadata=event_metadata,
                note="Payment successfully processed and funds held in escrow",
            )

            if not listing_conflict:
                competing = ListingOffer.objects.filter(
                    listing_id=listing.id,
                    status=OfferStatus.PENDING,
                )
                if metadata.offer_id:
                    competing = competing.exclude(id=metadata.offer_id)
                competing.update(status=OfferStatus.REJECTED, updated_at=timezone.now())

            cls._notify_sale(txn, metadata.listing_name)

        logger.info(
            "Escrow transaction created",
            extra={
                "transaction_id": str(txn.id),
                "payment_intent_id": payment_intent_id,
                "listing_id": str(listing.id),
                "amount_cents": metadata.final_price_cents,
            },
        )
        return ServiceResult.success(txn)

    @classmethod
    def _notify_sale(cls, txn: Transaction, listing_name: str) -> None:
        link = f"/transactions/{txn.id}"
        data = {"transaction_id": str(txn.id), "listing_id": str(txn.listing_id)}

        NotificationService.create_notification(
            recipient=txn.seller,
            notification_type=NotificationType.SALE_COMPLETED,
            title="Horse Sold!",
            body=(
                f"Your horse {listing_name} has been sold. Funds will be "
                f"released after {settings.ESCROW_HOLD_DAYS} days."
            ),
            link=link,
            data=data,
            idempotency_key=f"sale_completed:{txn.id}",
        )
        NotificationService.create_notification(
            recipient=txn.buyer,
            notification_type=NotificationType.PURCHASE_COMPLETED,
            title="Purchase Complete",
            body=(
                f"You have successfully purchased {listing_name}. "
                "The seller has been notified."
            ),
            link=link,
            data=data,
            idempotency_key=f"purchase_completed:{txn.id}",
        )

    # =========================================================================
    # Refunds
    # =========================================================================

    @classmethod
    def apply_refund(
        cls,
        payment_intent_id: str,
        amount_refunded_cents: int,
        charge_amount_cents: int,
        charge_id: str = "",
    ) -> ServiceResult[Transaction | None]:
        """
        Apply a refund reported by Stripe's charge.refunded event.

        ``amount_refunded_cents`` is the charge's cumulative refunded
        amount, not the size of the latest refund. A value that does not
        exceed what is already recorded is a replayed or out-of-order event
        and changes nothing.

        A full refund puts a SOLD listing back on the market.

        Returns:
            ServiceResult with the Transaction, or None if no transaction
            exists for the intent

        Error codes:
            INVALID_STATE_TRANSITION: Transaction cannot be refunded
        """
        logger = cls.get_logger()

        with cls.atomic():
            txn = (
                Transaction.objects.select_for_update()
                .filter(stripe_payment_intent_id=payment_intent_id)
                .first()
            )
            if txn is None:
                logger.warning(
                    "Refund for unknown payment intent ignored",
                    extra={"payment_intent_id": payment_intent_id},
                )
                return ServiceResult.success(None)

            if amount_refunded_cents <= txn.refunded_amount_cents:
                logger.info(
                    "Refund already applied",
                    extra={
                        "transaction_id": str(txn.id),
                        "amount_refunded_cents": amount_refunded_cents,
                        "recorded_cents": txn.refunded_amount_cents,
                    },
                )
                return ServiceResult.success(txn)

            delta_cents = amount_refunded_cents - txn.refunded_amount_cents
            previous_status = txn.status
            is_full = amount_refunded_cents >= charge_amount_cents

            try:
                if is_full:
                    txn.refund_full(refunded_amount_cents=amount_refunded_cents)
                else:
                    txn.refund_partial(refunded_amount_cents=amount_refunded_cents)
            except TransitionNotAllowed:
                error = InvalidStateTransitionError(
                    f"Cannot refund transaction in '{previous_status}' state",
                    details={
                        "current_state": previous_status,
                        "transition": "refund_full" if is_full else "refund_partial",
                    },
                )
                logger.error(
                    str(error),
                    extra={"transaction_id": str(txn.id), **error.details},
                )
                return ServiceResult.from_exception(error)

            if charge_id and not txn.stripe_charge_id:
                txn.stripe_charge_id = charge_id
            txn.save()

            TransactionEvent.objects.create(
                transaction=txn,
                event_type=TransactionEventType.REFUND_COMPLETED,
                previous_status=previous_status,
                new_status=txn.status,
                amount_cents=delta_cents,
                metadata={
                    "stripe_charge_id": charge_id,
                    "amount_refunded_cents": amount_refunded_cents,
                },
                note=f"Refund of {format_cents(delta_cents, txn.currency)} processed",
            )
            cls._notify_refund(txn, delta_cents, amount_refunded_cents)

            if is_full:
                Listing.objects.filter(
                    id=txn.listing_id,
                    status=ListingStatus.SOLD,
                ).update(
                    status=ListingStatus.ACTIVE,
                    sold_price=None,
                    sold_date=None,
                    updated_at=timezone.now(),
                )

        logger.info(
            "Refund applied",
            extra={
                "transaction_id": str(txn.id),
                "status": txn.status,
                "delta_cents": delta_cents,
            },
        )
        return ServiceResult.success(txn)

    @classmethod
    def _notify_refund(
        cls, txn: Transaction, delta_cents: int, amount_refunded_cents: int
    ) -> None:
        # Keyed on the cumulative amount: one pair per distinct refund
        link = f"/transactions/{txn.id}"
        data = {"transaction_id": str(txn.id), "amount_cents": delta_cents}
        amount = format_cents(delta_cents, txn.currency)

        NotificationService.create_notification(
            recipient=txn.buyer,
            notification_type=NotificationType.REFUND_PROCESSED,
            title="Refund Processed",
            body=(
                f"Your refund of {amount} has been processed and will appear "
                "in your account within 5-10 business days."
            ),
            link=link,
            data=data,
            idempotency_key=f"refund_processed:{txn.id}:{amount_refunded_cents}",
        )
        NotificationService.create_notification(
            recipient=txn.seller,
            notification_type=NotificationType.REFUND_PROCESSED,
            title="Refund Issued",
            body=f"A refund of {amount} has been issued for this transaction.",
            link=link,
            data=data,
            idempotency_key=f"refund_issued:{txn.id}:{amount_refunded_cents}",
        )

    @classmethod
    def request_refund(
        cls,
        transaction_id: uuid.UUID | str,
        user: User,
        reason: str,
        amount_cents: int | None = None,
    ) -> ServiceResult[RefundRequest]:
        """
        Record a refund request from the buyer or the seller.

        The transaction status does not change; staff act on the request
        with issue_refund().

        Args:
            transaction_id: Transaction to refund
            user: Requesting participant
            reason: Free-text reason shown to staff and the other party
            amount_cents: Partial amount (defaults to the full price)

        Error codes:
            NOT_FOUND, PERMISSION_DENIED, INVALID_STATUS, INVALID_AMOUNT,
            REFUND_ALREADY_REQUESTED
        """
        lookup = cls.get_for_user(transaction_id, user)
        if not lookup.success:
            return lookup
        txn = lookup.data

        if txn.status not in TransactionStatus.refundable():
            return ServiceResult.failure(
                "Transaction cannot be refunded in its current status",
                error_code="INVALID_STATUS",
            )

        if amount_cents is None:
            amount_cents = txn.final_price_cents
        if amount_cents <= 0 or amount_cents > txn.remaining_refundable_cents:
            return ServiceResult.failure(
                "Refund amount exceeds the refundable amount",
                error_code="INVALID_AMOUNT",
            )

        if txn.refund_requests.filter(status=RefundRequestStatus.PENDING).exists():
            return ServiceResult.failure(
                "A refund request is already pending for this transaction",
                error_code="REFUND_ALREADY_REQUESTED",
            )

        is_full = amount_cents >= txn.final_price_cents

        with cls.atomic():
            refund_request = RefundRequest.objects.create(
                transaction=txn,
                requested_by=user,
                reason=reason,
                amount_cents=amount_cents,
            )
            TransactionEvent.objects.create(
                transaction=txn,
                event_type=TransactionEventType.REFUND_REQUESTED,
                previous_status=txn.status,
                new_status=txn.status,
                amount_cents=amount_cents,
                triggered_by=user,
                metadata={"refund_request_id": str(refund_request.id)},
                note=reason,
            )

            other_party = txn.seller if user.pk == txn.buyer_id else txn.buyer
            NotificationService.create_notification(
                recipient=other_party,
                notification_type=NotificationType.REFUND_REQUESTED,
                title="Refund Requested",
                body=(
                    f"A {'full' if is_full else 'partial'} refund has been "
                    f"requested for transaction. Reason: {reason}"
                ),
                link=f"/transactions/{txn.id}",
                data={
                    "transaction_id": str(txn.id),
                    "refund_request_id": str(refund_request.id),
                },
                idempotency_key=f"refund_requested:{refund_request.id}",
            )

        cls.get_logger().info(
            "Refund requested",
            extra={
                "transaction_id": str(txn.id),
                "refund_request_id": str(refund_request.id),
                "amount_cents": amount_cents,
            },
        )
        return ServiceResult.success(refund_request)

    @classmethod
    def issue_refund(
        cls,
        transaction_id: uuid.UUID | str,
        staff_user: User,
        amount_cents: int | None = None,
        stripe_adapter: type[StripeAdapter] = StripeAdapter,
    ) -> ServiceResult[RefundResult]:
        """
        Send a refund to Stripe on behalf of staff.

        Only the provider call happens here. The status change and listing
        reactivation follow when Stripe delivers charge.refunded, so a
        refund issued from the Stripe dashboard takes the same path.

        Args:
            transaction_id: Transaction to refund
            staff_user: Staff member issuing the refund
            amount_cents: Partial amount (defaults to the remaining amount)
            stripe_adapter: Adapter used to reach Stripe

        Error codes:
            PERMISSION_DENIED, NOT_FOUND, INVALID_STATUS, INVALID_AMOUNT,
            PAYMENT_PROVIDER_ERROR
        """
        logger = cls.get_logger()

        if not staff_user.is_staff:
            return ServiceResult.failure(
                "Only staff can issue refunds",
                error_code="PERMISSION_DENIED",
            )

        txn = cls._get_transaction(transaction_id)
        if txn is None:
            return ServiceResult.failure(
                "Transaction not found",
                error_code="NOT_FOUND",
            )

        if txn.status not in TransactionStatus.refundable():
            return ServiceResult.failure(
                "Transaction cannot be refunded in its current status",
                error_code="INVALID_STATUS",
            )

        remaining = txn.remaining_refundable_cents
        if amount_cents is None:
            amount_cents = remaining
        if amount_cents <= 0 or amount_cents > remaining:
            return ServiceResult.failure(
                "Refund amount exceeds the refundable amount",
                error_code="INVALID_AMOUNT",
            )

        idempotency_key = IdempotencyKeyGenerator.generate(
            operation="refund",
            entity_id=f"{txn.id}:{txn.refunded_amount_cents}:{amount_cents}",
        )

        try:
            refund = stripe_adapter.create_refund(
                payment_intent_id=txn.stripe_payment_intent_id,
                idempotency_key=idempotency_key,
                amount_cents=amount_cents,
                reason="requested_by_customer",
                metadata={
                    "transaction_id": str(txn.id),
                    "issued_by": str(staff_user.pk),
                },
            )
        except StripeError as e:
            logger.error(
                "Refund creation failed",
                extra={
                    "transaction_id": str(txn.id),
                    "error_code": e.error_code,
                },
            )
            return ServiceResult.failure(
                "Payment provider error. Please try again.",
                error_code="PAYMENT_PROVIDER_ERROR",
            )

        txn.refund_requests.filter(status=RefundRequestStatus.PENDING).update(
            status=RefundRequestStatus.APPROVED,
            processed_at=timezone.now(),
            processed_by=staff_user,
            updated_at=timezone.now(),
        )

        logger.info(
            "Refund issued",
            extra={
                "transaction_id": str(txn.id),
                "refund_id": refund.id,
                "amount_cents": amount_cents,
            },
        )
        return ServiceResult.success(refund)

    # =========================================================================
    # Reads
    # =========================================================================

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet[Transaction]:
        """Transactions where ``user`` is the buyer or the seller."""
        return Transaction.objects.filter(
            Q(buyer=user) | Q(seller=user)
        ).select_related("listing")

    @classmethod
    def get_for_user(
        cls, transaction_id: uuid.UUID | str, user: User
    ) -> ServiceResult[Transaction]:
        txn = cls._get_transaction(transaction_id)
        if txn is None:
            return ServiceResult.failure(
                "Transaction not found",
                error_code="NOT_FOUND",
            )
        if not txn.is_participant(user):
            return ServiceResult.failure(
                "You do not have access to this transaction",
                error_code="PERMISSION_DENIED",
            )
        return ServiceResult.success(txn)

    @classmethod
    def get_events(
        cls, transaction_id: uuid.UUID | str, user: User
    ) -> ServiceResult[QuerySet[TransactionEvent]]:
        return cls.get_for_user(transaction_id, user).map(
            lambda txn: txn.events.all()
        )

    @classmethod
    def get_refund_requests(
        cls, transaction_id: uuid.UUID | str, user: User
    ) -> ServiceResult[QuerySet[RefundRequest]]:
        return cls.get_for_user(transaction_id, user).map(
            lambda txn: txn.refund_requests.all()
        )

    @staticmethod
    def _get_transaction(transaction_id: uuid.UUID | str) -> Transaction | None:
        try:
            return (
                Transaction.objects.select_related("listing", "buyer", "seller")
                .filter(id=transaction_id)
                .first()
            )
        except (DjangoValidationError, ValueError):
            return None
