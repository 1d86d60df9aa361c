"""
Checkout: issue a Stripe PaymentIntent for a listing purchase.

The service validates that the listing can be bought by this buyer at this
price, prices the sale, asks Stripe for a PaymentIntent carrying the full
sale snapshot in its metadata, and records the intent locally.

Usage:
    from payments.services import PaymentIntentService

    result = PaymentIntentService.create_payment_intent(
        buyer=request.user,
        listing_id=listing.id,
        offer_id=offer.id,
    )
    if result.success:
        client_secret = result.data.client_secret
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError

from core.services import BaseService, ServiceResult
from listings.models import Listing, ListingOffer, OfferStatus
from payments.adapters import (
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
)
from payments.exceptions import FeeCalculationError, StripeError
from payments.fees import FeeBreakdown, FeeSchedule, calculate_fees, to_cents
from payments.metadata import PaymentMetadata
from payments.models import PaymentIntentRecord, SellerPayoutAccount, Transaction

if TYPE_CHECKING:
    from authentication.models import User


@dataclass
class CheckoutSession:
    """
    What the client needs to confirm a payment.

    Attributes:
        client_secret: Secret passed to Stripe.js
        payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
        fees: Fee breakdown the buyer was quoted
        currency: ISO 4217 currency code
    """

    client_secret: str
    payment_intent_id: str
    fees: FeeBreakdown
    currency: str


class PaymentIntentService(BaseService):
    """
    Service for creating listing checkout payment intents.

    Methods:
        create_payment_intent: Validate, price and create a PaymentIntent
        record_from_metadata: Create the local record for an existing intent
    """

    @classmethod
    def create_payment_intent(
        cls,
        buyer: User,
        listing_id: uuid.UUID | str,
        offer_id: uuid.UUID | str | None = None,
        stripe_adapter: type[StripeAdapter] = StripeAdapter,
        fee_schedule: FeeSchedule | None = None,
    ) -> ServiceResult[CheckoutSession]:
        """
        Create a PaymentIntent for ``buyer`` to purchase a listing.

        Validation runs in this order and stops at the first failure:
            1. The listing exists
            2. The buyer is not the seller, whatever the listing status
            3. The listing is ACTIVE or PENDING
            4. If an offer is given, it belongs to this listing and buyer, is
               accepted, and has not already been paid for
            5. The seller's payout account has charges and payouts enabled

        The price is the accepted offer's amount when an offer is given,
        otherwise the listing price.

        If Stripe fails nothing is written. If Stripe succeeds but the local
        PaymentIntentRecord cannot be saved, the failure is logged, a
        reconciliation task is queued (a broker outage is only logged), and
        the checkout still succeeds: the intent exists at Stripe and the
        webhook can rebuild everything it needs from the intent's metadata.

        Repeating a checkout with nothing changed reuses the same intent
        through the idempotency key, and its existing record.

        Args:
            buyer: Authenticated user paying
            listing_id: Listing to purchase
            offer_id: Accepted offer to honour, if any
            stripe_adapter: Adapter used to reach Stripe
            fee_schedule: Rates to apply (defaults to settings)

        Returns:
            ServiceResult with CheckoutSession if successful

        Error codes:
            LISTING_NOT_FOUND: No listing with this id
            LISTING_UNAVAILABLE: Listing is sold or removed
            SELF_PURCHASE: Buyer owns the listing
            INVALID_OFFER: Offer missing, for another listing or buyer, or not accepted
            OFFER_ALREADY_PAID: A transaction already exists for the offer
            SELLER_SETUP_INCOMPLETE: Seller cannot receive payments yet
            INVALID_AMOUNT: Price cannot be charged
            PAYMENT_PROVIDER_ERROR: Stripe rejected or failed the request
        """
        logger = cls.get_logger()

        # 1. Listing exists
        try:
            listing = Listing.objects.select_related("seller").get(id=listing_id)
        except (Listing.DoesNotExist, DjangoValidationError, ValueError):
            return ServiceResult.failure(
                "Listing not found",
                error_code="LISTING_NOT_FOUND",
            )

        # 2. Buyer is not the seller, whatever the listing status
        if listing.seller_id == buyer.pk:
            return ServiceResult.failure(
                "You cannot purchase your own listing",
                error_code="SELF_PURCHASE",
            )

        # 3. Listing can still be bought
        if not listing.is_purchasable:
            return ServiceResult.failure(
                "Listing is not available for purchase",
                error_code="LISTING_UNAVAILABLE",
            )

        # 4. Offer price takes precedence over the list price
        listing_price_cents = to_cents(listing.price)
        final_price_cents = listing_price_cents
        offer = None
        if offer_id:
            offer_result = cls._validate_offer(offer_id, listing, buyer)
            if not offer_result.success:
                return offer_result
            offer = offer_result.data
            final_price_cents = to_cents(offer.amount)

        # 5. Seller can receive the money
        payout_account = SellerPayoutAccount.objects.filter(
            user_id=listing.seller_id
        ).first()
        if payout_account is None or not payout_account.is_fully_enabled:
            logger.info(
                "Checkout blocked by incomplete seller setup",
                extra={
                    "listing_id": str(listing.id),
                    "seller_id": listing.seller_id,
                },
            )
            return ServiceResult.failure(
                "Seller has not completed payment setup",
                error_code="SELLER_SETUP_INCOMPLETE",
            )

        try:
            fees = calculate_fees(final_price_cents, fee_schedule)
        except FeeCalculationError as e:
            return ServiceResult.failure(e.message, error_code=e.error_code)

        metadata = PaymentMetadata(
            listing_id=listing.id,
            listing_name=listing.name,
            buyer_id=buyer.pk,
            seller_id=listing.seller_id,
            seller_stripe_account=payout_account.stripe_account_id,
            offer_id=offer.id if offer else None,
            listing_price_cents=listing_price_cents,
            final_price_cents=final_price_cents,
            platform_fee_cents=fees.platform_fee_cents,
            processor_fee_cents=fees.processor_fee_cents,
            seller_receives_cents=fees.seller_receives_cents,
        )
        currency = settings.PAYMENT_CURRENCY

        idempotency_key = cls._checkout_idempotency_key(
            listing, buyer, offer, fees
        )

        try:
            intent = stripe_adapter.create_payment_intent(
                CreatePaymentIntentParams(
                    amount_cents=final_price_cents,
                    currency=currency,
                    idempotency_key=idempotency_key,
                    description=f"Purchase of {listing.name} (Escrow)",
                    metadata=metadata.to_stripe_metadata(),
                )
            )
        except StripeError as e:
            logger.error(
                "Payment intent creation failed",
                extra={
                    "listing_id": str(listing.id),
                    "buyer_id": buyer.pk,
                    "error_code": e.error_code,
                    "retryable": e.is_retryable,
                },
            )
            return ServiceResult.failure(
                "Payment provider error. Please try again.",
                error_code="PAYMENT_PROVIDER_ERROR",
            )

        # A repeated checkout gets the same intent back from Stripe, so the
        # record may already exist.
        created = True
        try:
            with cls.atomic():
                _, created = PaymentIntentRecord.objects.get_or_create(
                    stripe_payment_intent_id=intent.id,
                    defaults={
                        "listing": listing,
                        "buyer": buyer,
                        "seller_id": listing.seller_id,
                        "offer": offer,
                        "amount_cents": final_price_cents,
                        "platform_fee_cents": fees.platform_fee_cents,
                        "processor_fee_cents": fees.processor_fee_cents,
                        "seller_amount_cents": fees.seller_receives_cents,
                        "currency": currency,
                        "status": intent.status,
                        "client_secret": intent.client_secret or "",
                    },
                )
        except DatabaseError:
            logger.error(
                "Failed to store payment intent record, scheduling reconciliation",
                extra={"payment_intent_id": intent.id},
                exc_info=True,
            )
            cls._schedule_reconciliation(intent.id)

        logger.info(
            "Payment intent created" if created else "Payment intent reused",
            extra={
                "payment_intent_id": intent.id,
                "listing_id": str(listing.id),
                "buyer_id": buyer.pk,
                "amount_cents": final_price_cents,
            },
        )

        return ServiceResult.success(
            CheckoutSession(
                client_secret=intent.client_secret or "",
                payment_intent_id=intent.id,
                fees=fees,
                currency=currency,
            )
        )

    @classmethod
    def _checkout_idempotency_key(
        cls,
        listing: Listing,
        buyer: User,
        offer: ListingOffer | None,
        fees: FeeBreakdown,
    ) -> str:
        """
        Key a checkout so a double submit reuses the same PaymentIntent.

        The key changes whenever a new intent is legitimately needed: a
        previous purchase of the listing by this buyer (refunded and
        relisted), any edit to the listing, or different fee figures.
        """
        attempt = (
            Transaction.objects.filter(listing=listing, buyer=buyer).count() + 1
        )
        return IdempotencyKeyGenerator.generate(
            operation="create_intent",
            entity_id=(
                f"{listing.id}:{buyer.pk}:{offer.id if offer else 'list'}"
                f":{fees.amount_cents}:{fees.platform_fee_cents}"
                f":{fees.processor_fee_cents}:{int(listing.updated_at.timestamp())}"
            ),
            attempt=attempt,
        )

    @classmethod
    def _schedule_reconciliation(cls, payment_intent_id: str) -> None:
        from payments.tasks import reconcile_payment_intent_record

        try:
            reconcile_payment_intent_record.delay(payment_intent_id)
        except Exception as e:
            # The succeeded webhook rebuilds the record from metadata too
            cls.get_logger().error(
                f"Failed to queue reconciliation: {type(e).__name__}",
                extra={"payment_intent_id": payment_intent_id},
                exc_info=True,
            )

    @classmethod
    def _validate_offer(
        cls,
        offer_id: uuid.UUID | str,
        listing: Listing,
        buyer: User,
    ) -> ServiceResult[ListingOffer]:
        try:
            offer = ListingOffer.objects.filter(id=offer_id).first()
        except (DjangoValidationError, ValueError):
            offer = None

        if (
            offer is None
            or offer.listing_id != listing.id
            or offer.buyer_id != buyer.pk
            or offer.status != OfferStatus.ACCEPTED
        ):
            return ServiceResult.failure(
                "Invalid or unaccepted offer",
                error_code="INVALID_OFFER",
            )

        if Transaction.objects.filter(offer=offer).exists():
            return ServiceResult.failure(
                "This offer has already been paid for",
                error_code="OFFER_ALREADY_PAID",
            )

        return ServiceResult.success(offer)

    @classmethod
    def record_from_metadata(
        cls,
        payment_intent_id: str,
        metadata: PaymentMetadata,
        status: str,
        currency: str | None = None,
        client_secret: str = "",
    ) -> tuple[PaymentIntentRecord, bool]:
        """
        Get or create the local record for an intent that exists at Stripe.

        Used by the webhook and the reconciliation task when checkout could
        not save the record. Amounts come from the intent's metadata, which
        is the quote the buyer paid.

        Returns:
            (record, created)
        """
        record, created = PaymentIntentRecord.objects.get_or_create(
            stripe_payment_intent_id=payment_intent_id,
            defaults={
                "listing_id": metadata.listing_id,
                "buyer_id": metadata.buyer_id,
                "seller_id": metadata.seller_id,
                "offer_id": metadata.offer_id,
                "amount_cents": metadata.final_price_cents,
                "platform_fee_cents": metadata.platform_fee_cents,
                "processor_fee_cents": metadata.processor_fee_cents,
                "seller_amount_cents": metadata.seller_receives_cents,
                "currency": currency or settings.PAYMENT_CURRENCY,
                "status": status,
                "client_secret": client_secret,
            },
        )
        if created:
            cls.get_logger().warning(
                "Rebuilt missing payment intent record from metadata",
                extra={"payment_intent_id": payment_intent_id},
            )
        return record, created
