"""
DRF serializers for payments app.

This module provides serializers for:
- Checkout requests and responses
- Transaction history and audit events
- Refund requests
- Seller payout accounts

The checkout contract is consumed by the web client in camelCase; field
names map onto snake_case attributes with ``source``.

Related files:
    - models/: Transaction, TransactionEvent, RefundRequest, SellerPayoutAccount
    - views.py: Payment API views

Usage:
    serializer = CreatePaymentIntentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    listing_id = serializer.validated_data["listing_id"]
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import (
    RefundRequest,
    SellerPayoutAccount,
    Transaction,
    TransactionEvent,
)


# =============================================================================
# Checkout
# =============================================================================


class CreatePaymentIntentSerializer(serializers.Serializer):
    """
    Request body for POST /api/v1/payments/create-intent/.

    Fields:
        listingId: Listing to purchase
        offerId: Accepted offer to pay for (optional)
    """

    listingId = serializers.UUIDField(source="listing_id")
    offerId = serializers.UUIDField(source="offer_id", required=False, allow_null=True)


class CheckoutSessionSerializer(serializers.Serializer):
    """Response body for a created PaymentIntent."""

    clientSecret = serializers.CharField(source="client_secret")
    paymentIntentId = serializers.CharField(source="payment_intent_id")
    amount = serializers.IntegerField(source="fees.amount_cents")
    platformFee = serializers.IntegerField(source="fees.platform_fee_cents")
    processorFee = serializers.IntegerField(source="fees.processor_fee_cents")
    sellerReceives = serializers.IntegerField(source="fees.seller_receives_cents")
    currency = serializers.CharField()


# =============================================================================
# Transactions
# =============================================================================


class TransactionSerializer(serializers.ModelSerializer):
    """
    Transaction serializer for purchase and sale history.

    Usage:
        transactions = TransactionService.list_for_user(user)
        serializer = TransactionSerializer(transactions, many=True)
    """

    listing_name = serializers.CharField(source="listing.name", read_only=True)
    remaining_refundable_cents = serializers.IntegerField(read_only=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "listing",
            "listing_name",
            "buyer",
            "seller",
            "offer",
            "listing_price_cents",
            "final_price_cents",
            "platform_fee_cents",
            "processor_fee_cents",
            "seller_receives_cents",
            "currency",
            "status",
            "escrow_release_date",
            "refunded_amount_cents",
            "remaining_refundable_cents",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransactionEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = TransactionEvent
        fields = [
            "id",
            "event_type",
            "previous_status",
            "new_status",
            "amount_cents",
            "triggered_by",
            "metadata",
            "note",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Refunds
# =============================================================================


class RefundRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = RefundRequest
        fields = [
            "id",
            "transaction",
            "requested_by",
            "reason",
            "amount_cents",
            "status",
            "processed_at",
            "processed_by",
            "created_at",
        ]
        read_only_fields = fields


class CreateRefundRequestSerializer(serializers.Serializer):
    """
    Request body for a participant refund request.

    Fields:
        reason: Why the refund is needed (required)
        amount_cents: Partial amount; omit for a full refund
    """

    reason = serializers.CharField(max_length=2000, trim_whitespace=True)
    amount_cents = serializers.IntegerField(required=False, min_value=1)


class IssueRefundSerializer(serializers.Serializer):
    amount_cents = serializers.IntegerField(required=False, min_value=1)


class RefundResultSerializer(serializers.Serializer):
    id = serializers.CharField()
    amount_cents = serializers.IntegerField()
    currency = serializers.CharField()
    status = serializers.CharField()


# =============================================================================
# Seller Payout Accounts
# =============================================================================


class SellerPayoutAccountSerializer(serializers.ModelSerializer):
    is_fully_enabled = serializers.BooleanField(read_only=True)
    can_receive_payments = serializers.BooleanField(read_only=True)

    class Meta:
        model = SellerPayoutAccount
        fields = [
            "id",
            "stripe_account_id",
            "charges_enabled",
            "payouts_enabled",
            "details_submitted",
            "country",
            "default_currency",
            "is_fully_enabled",
            "can_receive_payments",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class LinkSerializer(serializers.Serializer):
    """Hosted Stripe URL (onboarding or dashboard)."""

    url = serializers.URLField()
    expires_at = serializers.IntegerField(allow_null=True, required=False)
