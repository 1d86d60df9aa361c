"""
Payment admin configuration.

Money moves only through the service layer and Stripe webhooks, so the
transaction, event and webhook admins are read-only views.
"""

from django.contrib import admin

from payments.fees import format_cents
from payments.models import (
    PaymentIntentRecord,
    RefundRequest,
    SellerPayoutAccount,
    Transaction,
    TransactionEvent,
    WebhookEvent,
)


class ReadOnlyAdminMixin:
    """Disable add, change and delete in the admin."""

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(SellerPayoutAccount)
class SellerPayoutAccountAdmin(admin.ModelAdmin):
    """
    Admin configuration for SellerPayoutAccount.

    Provides visibility into Stripe Connect account status.
    """

    list_display = [
        "id",
        "user",
        "stripe_account_id",
        "charges_enabled",
        "payouts_enabled",
        "details_submitted",
        "created_at",
    ]
    list_filter = ["charges_enabled", "payouts_enabled", "details_submitted"]
    search_fields = ["id", "stripe_account_id", "user__email"]
    readonly_fields = ["id", "created_at", "updated_at", "version"]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "user", "stripe_account_id"),
            },
        ),
        (
            "Status",
            {
                "fields": ("charges_enabled", "payouts_enabled", "details_submitted"),
            },
        ),
        (
            "Details",
            {
                "fields": ("country", "default_currency", "email", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )


@admin.register(PaymentIntentRecord)
class PaymentIntentRecordAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = [
        "stripe_payment_intent_id",
        "listing",
        "buyer",
        "amount_display",
        "status",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["stripe_payment_intent_id", "buyer__email", "seller__email"]
    exclude = ["client_secret"]

    @admin.display(description="Amount")
    def amount_display(self, obj: PaymentIntentRecord) -> str:
        return format_cents(obj.amount_cents, obj.currency)


class TransactionEventInline(admin.TabularInline):
    """Inline display of the audit trail for a transaction."""

    model = TransactionEvent
    extra = 0
    can_delete = False
    fields = [
        "event_type",
        "previous_status",
        "new_status",
        "amount_cents",
        "triggered_by",
        "note",
        "created_at",
    ]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


class RefundRequestInline(admin.TabularInline):
    model = RefundRequest
    extra = 0
    can_delete = False
    fields = ["requested_by", "amount_cents", "status", "reason", "processed_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for Transaction.

    Refunds are issued through the API so Stripe stays the source of truth.
    """

    list_display = [
        "id",
        "listing",
        "buyer",
        "seller",
        "amount_display",
        "status",
        "escrow_release_date",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = [
        "id",
        "stripe_payment_intent_id",
        "stripe_charge_id",
        "buyer__email",
        "seller__email",
        "listing__name",
    ]
    inlines = [TransactionEventInline, RefundRequestInline]

    @admin.display(description="Amount")
    def amount_display(self, obj: Transaction) -> str:
        return format_cents(obj.final_price_cents, obj.currency)


@admin.register(RefundRequest)
class RefundRequestAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "transaction",
        "requested_by",
        "amount_cents",
        "status",
        "created_at",
    ]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "transaction__id", "requested_by__email"]
    readonly_fields = [
        "id",
        "transaction",
        "requested_by",
        "reason",
        "amount_cents",
        "processed_at",
        "processed_by",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "stripe_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "stripe_event_id", "event_type"]
