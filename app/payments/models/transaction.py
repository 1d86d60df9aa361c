"""
Transaction and TransactionEvent models.

A Transaction is created once a buyer's payment has been captured and the
funds are held in escrow. Its status is a django-fsm state machine; every
change is recorded as a TransactionEvent in the same database transaction.

Usage:
    from payments.models import Transaction

    # After Stripe reports a partial refund
    transaction.refund_partial(refunded_amount_cents=2500)
    transaction.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import TransactionEventType, TransactionStatus


class Transaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    Escrow transaction for a completed listing purchase.

    Fields:
        listing / buyer / seller / offer: Parties to the sale
        listing_price_cents: Asking price at checkout
        final_price_cents: Amount actually charged (offer or asking price)
        platform_fee_cents / processor_fee_cents / seller_receives_cents: Fee split
        stripe_payment_intent_id: One transaction per succeeded intent
        stripe_charge_id: Charge the refunds are issued against
        status: Current FSM state
        escrow_release_date: Earliest date funds may be released to the seller
        refunded_amount_cents: Cumulative amount refunded so far
        refunded_at: When the first refund landed
        version: Optimistic locking version

    State Transitions:
        PAYMENT_HELD/PARTIALLY_REFUNDED -> PARTIALLY_REFUNDED (refund_partial)
        PAYMENT_HELD/PARTIALLY_REFUNDED -> REFUNDED (refund_full)
    """

    # ==========================================================================
    # Parties
    # ==========================================================================

    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="transactions",
        help_text="Listing that was sold",
    )

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="purchases",
        help_text="User who paid",
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sales",
        help_text="User who sold the listing",
    )

    offer = models.ForeignKey(
        "listings.ListingOffer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="Accepted offer fulfilled by this sale, if any",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    listing_price_cents = models.PositiveBigIntegerField(
        help_text="Listing asking price at checkout, in cents",
    )

    final_price_cents = models.PositiveBigIntegerField(
        help_text="Amount charged to the buyer, in cents",
    )

    platform_fee_cents = models.PositiveBigIntegerField(
        help_text="Platform commission, in cents",
    )

    processor_fee_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Estimated payment processor fee, in cents",
    )

    seller_receives_cents = models.BigIntegerField(
        help_text="Amount the seller receives on release, in cents",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    stripe_payment_intent_id = models.CharField(
        max_length=255,
        unique=True,
        db_index=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )

    stripe_charge_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Charge ID (ch_xxx)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=TransactionStatus.PAYMENT_HELD,
        choices=TransactionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current escrow state (managed by FSM)",
    )

    escrow_release_date = models.DateTimeField(
        help_text="Earliest date escrowed funds may be released",
    )

    refunded_amount_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Cumulative amount refunded, in cents",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the first refund was processed (full or partial)",
    )

    # ==========================================================================
    # Concurrency Control
    # ==========================================================================

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["buyer", "created_at"], name="txn_buyer_created_idx"),
            models.Index(fields=["seller", "created_at"], name="txn_seller_created_idx"),
            models.Index(fields=["status", "escrow_release_date"], name="txn_status_release_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(final_price_cents__gt=0),
                name="transaction_final_price_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    refunded_amount_cents__lte=models.F("final_price_cents")
                ),
                name="transaction_refund_within_price",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.final_price_cents / 100:.2f} {self.currency.upper()}"
        return f"Transaction({self.id}, {self.status}, {amount_display})"

    def save(self, *args, **kwargs):
        """
        Save with version auto-increment for optimistic locking.

        On update, atomically increments the version field so concurrent
        writers can be detected.
        """
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def remaining_refundable_cents(self) -> int:
        return self.final_price_cents - self.refunded_amount_cents

    def is_participant(self, user) -> bool:
        """Whether ``user`` is the buyer or the seller."""
        return user.pk in (self.buyer_id, self.seller_id)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=TransactionStatus.refundable(),
        target=TransactionStatus.PARTIALLY_REFUNDED,
    )
    def refund_partial(self, refunded_amount_cents: int):
        """
        Record a partial refund.

        Transition: PAYMENT_HELD/PARTIALLY_REFUNDED -> PARTIALLY_REFUNDED

        Args:
            refunded_amount_cents: New cumulative refunded amount
        """
        self.refunded_amount_cents = refunded_amount_cents
        if self.refunded_at is None:
            self.refunded_at = timezone.now()

    @transition(
        field=status,
        source=TransactionStatus.refundable(),
        target=TransactionStatus.REFUNDED,
    )
    def refund_full(self, refunded_amount_cents: int):
        """
        Record a full refund.

        Transition: PAYMENT_HELD/PARTIALLY_REFUNDED -> REFUNDED

        Called when the cumulative refunded amount reaches the charge.
        """
        self.refunded_amount_cents = min(refunded_amount_cents, self.final_price_cents)
        if self.refunded_at is None:
            self.refunded_at = timezone.now()


class TransactionEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Append-only audit entry for a Transaction.

    Events are never edited or deleted. Corrections are made by appending
    another event.

    Fields:
        transaction: Transaction this event belongs to
        event_type: TransactionEventType value
        previous_status: Status before the event ("pending" for the first one)
        new_status: Status after the event
        amount_cents: Money moved by this event, if any
        triggered_by: User who caused the event (null for provider webhooks)
        metadata: Provider ids and other context
        note: Human-readable description
    """

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.PROTECT,
        related_name="events",
        help_text="Transaction this event belongs to",
    )

    event_type = models.CharField(
        max_length=50,
        choices=TransactionEventType.choices,
        db_index=True,
        help_text="Kind of event",
    )

    previous_status = models.CharField(
        max_length=30,
        help_text="Transaction status before this event",
    )

    new_status = models.CharField(
        max_length=30,
        help_text="Transaction status after this event",
    )

    amount_cents = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="Amount involved in this event, in cents",
    )

    triggered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="User who triggered this event (null for system events)",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Provider references and other context",
    )

    note = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Transaction Event"
        verbose_name_plural = "Transaction Events"
        indexes = [
            models.Index(fields=["transaction", "created_at"], name="txn_event_txn_created_idx"),
        ]

    def __str__(self) -> str:
        return (
            f"TransactionEvent({self.event_type}: "
            f"{self.previous_status} -> {self.new_status})"
        )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Transaction events are append-only and cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Transaction events are append-only and cannot be deleted")
