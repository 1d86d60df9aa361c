"""
Pytest fixtures for webhook tests.

Provides Stripe object payloads and stored WebhookEvent records in the
states the processor and view care about. Parties (buyer, seller, listing)
come from payments/conftest.py.
"""

import pytest

from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory


# =============================================================================
# Stripe Object Fixtures
# =============================================================================


@pytest.fixture
def succeeded_intent(payment_metadata):
    """PaymentIntent object as delivered with payment_intent.succeeded."""
    return {
        "id": "pi_webhook123",
        "object": "payment_intent",
        "amount": 1000000,
        "currency": "usd",
        "status": "succeeded",
        "latest_charge": "ch_webhook123",
        "metadata": payment_metadata.to_stripe_metadata(),
    }


@pytest.fixture
def refunded_charge():
    """Build a charge object as delivered with charge.refunded."""

    def _create(amount_refunded: int, amount: int = 1000000) -> dict:
        return {
            "id": "ch_webhook123",
            "object": "charge",
            "amount": amount,
            "amount_refunded": amount_refunded,
            "currency": "usd",
            "payment_intent": "pi_webhook123",
            "refunded": amount_refunded >= amount,
        }

    return _create


# =============================================================================
# Webhook Event Fixtures
# =============================================================================


@pytest.fixture
def succeeded_event(succeeded_intent):
    return WebhookEventFactory(
        stripe_event_id="evt_succeeded123",
        event_type="payment_intent.succeeded",
        data_object=succeeded_intent,
    )


@pytest.fixture
def processed_webhook_event(db):
    return WebhookEventFactory(
        stripe_event_id="evt_processed123",
        event_type="payment_intent.succeeded",
        data_object={"id": "pi_done"},
        status=WebhookEventStatus.PROCESSED,
    )


@pytest.fixture
def failed_webhook_event(db):
    return WebhookEventFactory(
        stripe_event_id="evt_failed123",
        event_type="payment_intent.payment_failed",
        data_object={"id": "pi_failed"},
        status=WebhookEventStatus.FAILED,
        error_message="RuntimeError: database went away",
        retry_count=1,
    )
