"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.
Transaction status is driven by django-fsm transitions on the model.

State Machines Overview:

Transaction States:
    (pending) → payment_held → partially_refunded → refunded
    payment_held → refunded
    partially_refunded → partially_refunded (further partial refund)

    "pending" is never stored on a Transaction. The row is created when the
    payment succeeds, so "pending" only appears as the previous status of
    the first audit event.

WebhookEvent States:
    pending → processing → processed
    pending → processing → failed (redelivery retries)

RefundRequest States:
    pending → approved (staff issued the refund)
"""

from django.db import models


class TransactionStatus(models.TextChoices):
    """
    States for the Transaction escrow lifecycle.

    Terminal states: REFUNDED

    Released, disputed and cancelled states belong to payout and dispute
    flows that are not implemented.
    """

    PAYMENT_HELD = "payment_held", "Payment Held"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially Refunded"
    REFUNDED = "refunded", "Refunded"

    @classmethod
    def refundable(cls) -> list[str]:
        """States from which a refund may still be requested or applied."""
        return [cls.PAYMENT_HELD, cls.PARTIALLY_REFUNDED]


# Previous status recorded on the first TransactionEvent of every transaction.
PENDING = "pending"


class TransactionEventType(models.TextChoices):
    """Kinds of entry in the transaction audit trail."""

    PAYMENT_SUCCEEDED = "payment_succeeded", "Payment Succeeded"
    REFUND_REQUESTED = "refund_requested", "Refund Requested"
    REFUND_COMPLETED = "refund_completed", "Refund Completed"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class RefundRequestStatus(models.TextChoices):
    """Review status of a buyer or seller refund request."""

    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"


__all__ = [
    "PENDING",
    "RefundRequestStatus",
    "TransactionEventType",
    "TransactionStatus",
    "WebhookEventStatus",
]
