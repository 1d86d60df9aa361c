"""
Celery tasks for payment processing.

This module provides async tasks for:
- Rebuilding a PaymentIntentRecord that checkout failed to store

Usage:
    from payments.tasks import reconcile_payment_intent_record

    reconcile_payment_intent_record.delay("pi_xxx")
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.exceptions import (
    MetadataParseError,
    StripeAPIUnavailableError,
    StripeRateLimitError,
    StripeTimeoutError,
)
from payments.models import PaymentIntentRecord

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_RECONCILIATION_RETRIES = 5

# Transient Stripe errors worth retrying with backoff
RETRYABLE_STRIPE_ERRORS = (
    StripeRateLimitError,
    StripeAPIUnavailableError,
    StripeTimeoutError,
)


# =============================================================================
# Reconciliation Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=RETRYABLE_STRIPE_ERRORS,
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_RECONCILIATION_RETRIES},
    acks_late=True,
)
def reconcile_payment_intent_record(self, payment_intent_id: str) -> dict:
    """
    Create the local record for a PaymentIntent that exists only at Stripe.

    Queued by checkout when the intent was created but the database write
    failed. The intent's metadata carries the full sale snapshot, so the
    record can be rebuilt without the original request.

    Args:
        payment_intent_id: Stripe PaymentIntent ID (pi_xxx)

    Returns:
        Dict with reconciliation status
    """
    # Import here to avoid circular imports
    from payments.adapters import StripeAdapter
    from payments.metadata import PaymentMetadata
    from payments.services import PaymentIntentService

    log_context = {
        "payment_intent_id": payment_intent_id,
        "attempt": self.request.retries + 1,
    }

    if PaymentIntentRecord.objects.filter(
        stripe_payment_intent_id=payment_intent_id
    ).exists():
        logger.info("Payment intent record already exists", extra=log_context)
        return {"status": "exists", "payment_intent_id": payment_intent_id}

    intent = StripeAdapter.retrieve_payment_intent(payment_intent_id)

    try:
        metadata = PaymentMetadata.from_stripe_metadata(intent.metadata)
    except MetadataParseError as e:
        logger.error(
            "Cannot reconcile payment intent with unreadable metadata",
            extra={**log_context, **e.details},
        )
        return {
            "status": "invalid_metadata",
            "payment_intent_id": payment_intent_id,
            "error": e.message,
        }

    _, created = PaymentIntentService.record_from_metadata(
        payment_intent_id,
        metadata,
        status=intent.status,
        currency=intent.currency,
        client_secret=intent.client_secret or "",
    )

    logger.info(
        "Payment intent record reconciled",
        extra={**log_context, "created": created},
    )
    return {
        "status": "created" if created else "exists",
        "payment_intent_id": payment_intent_id,
    }
