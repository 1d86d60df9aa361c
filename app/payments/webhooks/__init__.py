"""
Webhook handling for payment events from Stripe.

Webhooks are verified, stored idempotently, and processed in the request
that delivers them.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/payments/", stripe_webhook, name="stripe-webhook"),
    ]
"""

from payments.webhooks.handlers import (
    WEBHOOK_HANDLERS,
    dispatch_webhook,
    register_handler,
)
from payments.webhooks.processor import WebhookProcessor
from payments.webhooks.views import stripe_webhook

__all__ = [
    "WEBHOOK_HANDLERS",
    "WebhookProcessor",
    "dispatch_webhook",
    "register_handler",
    "stripe_webhook",
]
