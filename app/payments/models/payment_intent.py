"""
PaymentIntentRecord model.

Local mirror of a Stripe PaymentIntent created at checkout. The fee split is
snapshotted here at creation so later fee-setting changes never alter what a
buyer was quoted.

Usage:
    from payments.models import PaymentIntentRecord

    record = PaymentIntentRecord.objects.get(stripe_payment_intent_id="pi_123")
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class PaymentIntentRecord(UUIDPrimaryKeyMixin, BaseModel):
    """
    Record of a payment intent issued for a listing purchase.

    Written by the checkout service. Afterwards only the webhook handlers and
    the reconciliation task update it, and only its status fields. Records
    are never deleted.

    Fields:
        stripe_payment_intent_id: Stripe PaymentIntent ID (pi_xxx)
        listing / buyer / seller / offer: Parties to the purchase
        amount_cents: Amount charged to the buyer
        platform_fee_cents / processor_fee_cents / seller_amount_cents: Fee split
        currency: ISO 4217 code (lowercase)
        status: Stripe's status string (requires_payment_method, succeeded, ...)
        client_secret: Secret handed to the client to confirm the payment
        last_error: Provider message from the most recent failed attempt
    """

    # ==========================================================================
    # Stripe Reference
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    # ==========================================================================
    # Parties
    # ==========================================================================

    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="payment_intents",
        help_text="Listing being purchased",
    )

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payment_intents_as_buyer",
        help_text="User paying for the listing",
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payment_intents_as_seller",
        help_text="User selling the listing",
    )

    offer = models.ForeignKey(
        "listings.ListingOffer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_intents",
        help_text="Accepted offer this payment honours, if any",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount charged to the buyer, in cents",
    )

    platform_fee_cents = models.PositiveBigIntegerField(
        help_text="Platform commission, in cents",
    )

    processor_fee_cents = models.PositiveBigIntegerField(
        help_text="Estimated payment processor fee, in cents",
    )

    seller_amount_cents = models.BigIntegerField(
        help_text="Amount the seller receives after fees, in cents",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Provider State
    # ==========================================================================

    status = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Stripe PaymentIntent status",
    )

    client_secret = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Client secret used to confirm the payment",
    )

    last_error = models.TextField(
        blank=True,
        default="",
        help_text="Provider error message from the last failed attempt",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Intent"
        verbose_name_plural = "Payment Intents"
        indexes = [
            models.Index(fields=["buyer", "created_at"], name="pi_buyer_created_idx"),
            models.Index(fields=["listing", "status"], name="pi_listing_status_idx"),
        ]

    def __str__(self) -> str:
        return f"PaymentIntentRecord({self.stripe_payment_intent_id}, {self.status})"
