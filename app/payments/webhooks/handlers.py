"""
Webhook event handlers for Stripe events.

This module provides a handler registry and implementations for the Stripe
events the marketplace reacts to. Every handler is idempotent: Stripe
delivers at least once, and a replay must leave the database unchanged.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone as dt_timezone
from typing import Callable

from django.utils import timezone

from core.services import ServiceResult
from payments.exceptions import MetadataParseError
from payments.metadata import PaymentMetadata
from payments.models import PaymentIntentRecord, WebhookEvent
from payments.services import (
    PaymentIntentService,
    SellerPayoutAccountService,
    TransactionService,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("payment_intent.succeeded")
        def handle_payment_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
            ...
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Events without a handler are acknowledged with a success result so
    Stripe stops redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(webhook_event)


def _missing_object_id(webhook_event: WebhookEvent) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: Could not extract object id",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return ServiceResult.failure(
        "Could not extract object id from webhook",
        error_code="INVALID_WEBHOOK_PAYLOAD",
    )


def _event_time(webhook_event: WebhookEvent) -> datetime:
    created = webhook_event.payload.get("created")
    if isinstance(created, int):
        return datetime.fromtimestamp(created, tz=dt_timezone.utc)
    return timezone.now()


def _object_id(value) -> str:
    """Stripe fields may hold an id string or an expanded object."""
    if isinstance(value, dict):
        return value.get("id") or ""
    return value or ""


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Handle successful payment confirmation.

    Updates the local intent record (rebuilding it from metadata if checkout
    never stored it) and creates the escrow transaction.
    """
    intent = webhook_event.get_object()
    payment_intent_id = intent.get("id")

    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    try:
        metadata = PaymentMetadata.from_stripe_metadata(intent.get("metadata"))
    except MetadataParseError as e:
        logger.error(
            "payment_intent.succeeded: Unreadable metadata",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
                **e.details,
            },
        )
        return ServiceResult.from_exception(e)

    logger.info(
        "Processing payment_intent.succeeded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "payment_intent_id": payment_intent_id,
        },
    )

    status = intent.get("status") or "succeeded"
    record, created = PaymentIntentService.record_from_metadata(
        payment_intent_id,
        metadata,
        status=status,
        currency=intent.get("currency"),
    )
    if not created and record.status != status:
        record.status = status
        record.save(update_fields=["status", "updated_at"])

    return TransactionService.record_payment_succeeded(
        metadata=metadata,
        payment_intent_id=payment_intent_id,
        charge_id=_object_id(intent.get("latest_charge")),
        occurred_at=_event_time(webhook_event),
        currency=intent.get("currency"),
    )


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Handle payment failure notification.

    Only the intent record changes. No transaction exists yet and the
    listing stays available.
    """
    intent = webhook_event.get_object()
    payment_intent_id = intent.get("id")

    if not payment_intent_id:
        return _missing_object_id(webhook_event)

    last_error = intent.get("last_payment_error")
    error_message = ""
    if isinstance(last_error, dict):
        error_message = last_error.get("message") or ""

    updated = PaymentIntentRecord.objects.filter(
        stripe_payment_intent_id=payment_intent_id
    ).update(
        status="failed",
        last_error=error_message,
        updated_at=timezone.now(),
    )

    if not updated:
        logger.warning(
            "payment_intent.payment_failed for unknown intent",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
    else:
        logger.info(
            "Payment failed",
            extra={
                "payment_intent_id": payment_intent_id,
                "error": error_message,
            },
        )

    return ServiceResult.success(None)


# =============================================================================
# Connect Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """Copy capability flags onto the seller payout account."""
    account = webhook_event.get_object()

    if not account.get("id"):
        return _missing_object_id(webhook_event)

    return SellerPayoutAccountService.apply_account_update(account)


# =============================================================================
# Refund Handlers
# =============================================================================


@register_handler("charge.refunded")
def handle_charge_refunded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Apply a refund to the escrow transaction.

    ``amount_refunded`` on the charge is cumulative across every refund,
    so a replay of an older event carries a smaller or equal value and is
    ignored by the service.
    """
    charge = webhook_event.get_object()
    charge_id = charge.get("id")
    payment_intent_id = _object_id(charge.get("payment_intent"))

    if not charge_id or not payment_intent_id:
        return _missing_object_id(webhook_event)

    try:
        amount_refunded = int(charge.get("amount_refunded") or 0)
        charge_amount = int(charge.get("amount") or 0)
    except (TypeError, ValueError):
        return ServiceResult.failure(
            "Charge amounts are not integers",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    if charge_amount <= 0:
        logger.warning(
            "charge.refunded without a charge amount",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "charge_id": charge_id,
            },
        )
        return ServiceResult.failure(
            "Charge amount missing from charge.refunded",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    logger.info(
        "Processing charge.refunded",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "charge_id": charge_id,
            "amount_refunded": amount_refunded,
        },
    )

    return TransactionService.apply_refund(
        payment_intent_id=payment_intent_id,
        amount_refunded_cents=amount_refunded,
        charge_amount_cents=charge_amount,
        charge_id=charge_id,
    )
