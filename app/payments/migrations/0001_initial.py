import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4,
                editable=False,
                help_text="Unique identifier for this record",
                primary_key=True,
                serialize=False,
            ),
        ),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("listings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="SellerPayoutAccount",
            fields=_timestamps()
            + [
                (
                    "stripe_account_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Account ID (acct_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "charges_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled charges for this account",
                    ),
                ),
                (
                    "payouts_enabled",
                    models.BooleanField(
                        default=False,
                        help_text="Whether Stripe has enabled payouts for this account",
                    ),
                ),
                (
                    "details_submitted",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the seller has submitted onboarding details",
                    ),
                ),
                (
                    "country",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="ISO 3166-1 alpha-2 country of the account",
                        max_length=2,
                    ),
                ),
                (
                    "default_currency",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Account default currency (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "email",
                    models.EmailField(
                        blank=True,
                        default="",
                        help_text="Email registered on the Stripe account",
                        max_length=254,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        help_text="Seller this account belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payout_account",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Seller Payout Account",
                "verbose_name_plural": "Seller Payout Accounts",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentIntentRecord",
            fields=_timestamps()
            + [
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount charged to the buyer, in cents"
                    ),
                ),
                (
                    "platform_fee_cents",
                    models.PositiveBigIntegerField(
                        help_text="Platform commission, in cents"
                    ),
                ),
                (
                    "processor_fee_cents",
                    models.PositiveBigIntegerField(
                        help_text="Estimated payment processor fee, in cents"
                    ),
                ),
                (
                    "seller_amount_cents",
                    models.BigIntegerField(
                        help_text="Amount the seller receives after fees, in cents"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe PaymentIntent status",
                        max_length=50,
                    ),
                ),
                (
                    "client_secret",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Client secret used to confirm the payment",
                        max_length=255,
                    ),
                ),
                (
                    "last_error",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Provider error message from the last failed attempt",
                    ),
                ),
                (
                    "buyer",
                    models.ForeignKey(
                        help_text="User paying for the listing",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_intents_as_buyer",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        help_text="Listing being purchased",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_intents",
                        to="listings.listing",
                    ),
                ),
                (
                    "offer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Accepted offer this payment honours, if any",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_intents",
                        to="listings.listingoffer",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="User selling the listing",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment_intents_as_seller",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment Intent",
                "verbose_name_plural": "Payment Intents",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["buyer", "created_at"], name="pi_buyer_created_idx"
                    ),
                    models.Index(
                        fields=["listing", "status"], name="pi_listing_status_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=_timestamps()
            + [
                (
                    "listing_price_cents",
                    models.PositiveBigIntegerField(
                        help_text="Listing asking price at checkout, in cents"
                    ),
                ),
                (
                    "final_price_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount charged to the buyer, in cents"
                    ),
                ),
                (
                    "platform_fee_cents",
                    models.PositiveBigIntegerField(
                        help_text="Platform commission, in cents"
                    ),
                ),
                (
                    "processor_fee_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Estimated payment processor fee, in cents",
                    ),
                ),
                (
                    "seller_receives_cents",
                    models.BigIntegerField(
                        help_text="Amount the seller receives on release, in cents"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="usd",
                        help_text="ISO 4217 currency code (lowercase)",
                        max_length=3,
                    ),
                ),
                (
                    "stripe_payment_intent_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "stripe_charge_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        default="",
                        help_text="Stripe Charge ID (ch_xxx)",
                        max_length=255,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("payment_held", "Payment Held"),
                            ("partially_refunded", "Partially Refunded"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="payment_held",
                        help_text="Current escrow state (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "escrow_release_date",
                    models.DateTimeField(
                        help_text="Earliest date escrowed funds may be released"
                    ),
                ),
                (
                    "refunded_amount_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Cumulative amount refunded, in cents",
                    ),
                ),
                (
                    "refunded_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the first refund was processed (full or partial)",
                        null=True,
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "buyer",
                    models.ForeignKey(
                        help_text="User who paid",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchases",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        help_text="Listing that was sold",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="listings.listing",
                    ),
                ),
                (
                    "offer",
                    models.ForeignKey(
                        blank=True,
                        help_text="Accepted offer fulfilled by this sale, if any",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="transactions",
                        to="listings.listingoffer",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="User who sold the listing",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["buyer", "created_at"], name="txn_buyer_created_idx"
                    ),
                    models.Index(
                        fields=["seller", "created_at"], name="txn_seller_created_idx"
                    ),
                    models.Index(
                        fields=["status", "escrow_release_date"],
                        name="txn_status_release_idx",
                    ),
                ],
                "constraints": [
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
                ],
            },
        ),
        migrations.CreateModel(
            name="TransactionEvent",
            fields=_timestamps()
            + [
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("payment_succeeded", "Payment Succeeded"),
                            ("refund_requested", "Refund Requested"),
                            ("refund_completed", "Refund Completed"),
                        ],
                        db_index=True,
                        help_text="Kind of event",
                        max_length=50,
                    ),
                ),
                (
                    "previous_status",
                    models.CharField(
                        help_text="Transaction status before this event",
                        max_length=30,
                    ),
                ),
                (
                    "new_status",
                    models.CharField(
                        help_text="Transaction status after this event",
                        max_length=30,
                    ),
                ),
                (
                    "amount_cents",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Amount involved in this event, in cents",
                        null=True,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Provider references and other context",
                    ),
                ),
                (
                    "note",
                    models.TextField(
                        blank=True, default="", help_text="Human-readable description"
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        help_text="Transaction this event belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="events",
                        to="payments.transaction",
                    ),
                ),
                (
                    "triggered_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="User who triggered this event (null for system events)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Transaction Event",
                "verbose_name_plural": "Transaction Events",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["transaction", "created_at"],
                        name="txn_event_txn_created_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="RefundRequest",
            fields=_timestamps()
            + [
                ("reason", models.TextField(help_text="Why the refund was requested")),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Amount requested, in cents"
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("approved", "Approved"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Review status",
                        max_length=20,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When staff approved the request",
                        null=True,
                    ),
                ),
                (
                    "processed_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Staff user who processed the request",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "requested_by",
                    models.ForeignKey(
                        help_text="User who requested the refund",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "transaction",
                    models.ForeignKey(
                        help_text="Transaction to refund",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_requests",
                        to="payments.transaction",
                    ),
                ),
            ],
            options={
                "verbose_name": "Refund Request",
                "verbose_name_plural": "Refund Requests",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["transaction", "status"],
                        name="refund_req_txn_status_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=_timestamps()
            + [
                (
                    "stripe_event_id",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Stripe event type (e.g., 'payment_intent.succeeded')",
                        max_length=100,
                    ),
                ),
                (
                    "payload",
                    models.JSONField(help_text="Full webhook payload from Stripe (JSON)"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current processing status",
                        max_length=20,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When event was successfully processed",
                        null=True,
                    ),
                ),
                (
                    "error_message",
                    models.TextField(
                        blank=True,
                        help_text="Error message if processing failed",
                        null=True,
                    ),
                ),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Number of processing attempts"
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="webhook_status_created_idx",
                    ),
                    models.Index(
                        fields=["event_type", "created_at"],
                        name="webhook_type_created_idx",
                    ),
                ],
            },
        ),
    ]
