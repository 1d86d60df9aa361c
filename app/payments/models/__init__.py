"""
Payment domain models.

- PaymentIntentRecord: Local mirror of a Stripe PaymentIntent
- Transaction: Escrow transaction created when a payment succeeds
- TransactionEvent: Append-only audit trail of transaction changes
- SellerPayoutAccount: Stripe Connect account a seller is paid into
- WebhookEvent: Stripe webhook event tracking for idempotent processing
- RefundRequest: Buyer or seller request for a refund
"""

from payments.models.payment_intent import PaymentIntentRecord
from payments.models.payout_account import SellerPayoutAccount
from payments.models.refund_request import RefundRequest
from payments.models.transaction import Transaction, TransactionEvent
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "PaymentIntentRecord",
    "RefundRequest",
    "SellerPayoutAccount",
    "Transaction",
    "TransactionEvent",
    "WebhookEvent",
]
