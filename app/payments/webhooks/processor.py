"""
Synchronous webhook processing.

WebhookProcessor drives a stored WebhookEvent through its lifecycle:
PENDING/FAILED -> PROCESSING -> PROCESSED or FAILED. The handler runs in a
single database transaction, so an exception leaves no partial writes and
Stripe's redelivery starts from a clean slate.

Usage:
    from payments.webhooks.processor import WebhookProcessor

    result = WebhookProcessor.process(webhook_event)
"""

from __future__ import annotations

from core.services import BaseService, ServiceResult
from payments.models import WebhookEvent
from payments.webhooks.handlers import dispatch_webhook


class WebhookProcessor(BaseService):
    """Runs a stored webhook event through its registered handler."""

    @classmethod
    def process(cls, webhook_event: WebhookEvent) -> ServiceResult:
        """
        Process a webhook event once.

        Returns:
            ServiceResult from the handler. A failure result means the
            payload can never be processed (bad ids, unreadable metadata)
            and the event is marked failed.

        Raises:
            Exception: Anything the handler raises, after marking the event
                failed. The caller answers 5xx so Stripe redelivers.
        """
        logger = cls.get_logger()
        log_context = {
            "webhook_event_id": str(webhook_event.id),
            "stripe_event_id": webhook_event.stripe_event_id,
            "event_type": webhook_event.event_type,
        }

        if webhook_event.is_processed:
            logger.info("WebhookEvent already processed, skipping", extra=log_context)
            return ServiceResult.success(None)

        webhook_event.mark_processing()
        webhook_event.save(update_fields=["status", "retry_count", "updated_at"])

        try:
            with cls.atomic():
                result = dispatch_webhook(webhook_event)
        except Exception as e:
            webhook_event.mark_failed(f"{type(e).__name__}: {e}")
            webhook_event.save(update_fields=["status", "error_message", "updated_at"])
            logger.exception(
                "Webhook processing failed with exception",
                extra=log_context,
            )
            raise

        if result.success:
            webhook_event.mark_processed()
            webhook_event.save(
                update_fields=["status", "processed_at", "error_message", "updated_at"]
            )
            logger.info("Webhook processed successfully", extra=log_context)
        else:
            error_msg = result.error or "Handler returned failure"
            webhook_event.mark_failed(error_msg)
            webhook_event.save(update_fields=["status", "error_message", "updated_at"])
            logger.warning(
                f"Webhook handler failed: {error_msg}",
                extra={**log_context, "error_code": result.error_code},
            )

        return result
