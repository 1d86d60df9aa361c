"""
Tests for Stripe adapter.

Tests cover:
- Parameter validation and idempotency key generation
- Error translation for each Stripe exception type
- Successful API operations
- Webhook signature verification against a real HMAC signature
"""

import hashlib
import hmac
import json
import time
import uuid

import pytest
import stripe
from django.test import override_settings

from payments.adapters import (
    ConnectedAccountResult,
    CreatePaymentIntentParams,
    IdempotencyKeyGenerator,
    PaymentIntentResult,
    RefundResult,
    StripeAdapter,
)
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


def _params(**overrides):
    values = {
        "amount_cents": 1000000,
        "currency": "usd",
        "idempotency_key": "test-key",
    }
    values.update(overrides)
    return CreatePaymentIntentParams(**values)


# =============================================================================
# Data Types and Helpers
# =============================================================================


class TestCreatePaymentIntentParams:
    def test_defaults(self):
        params = _params()

        assert params.description == ""
        assert params.metadata == {}

    @pytest.mark.parametrize("amount", [0, -100])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValueError, match="amount_cents must be positive"):
            _params(amount_cents=amount)

    def test_idempotency_key_required(self):
        with pytest.raises(ValueError, match="idempotency_key is required"):
            _params(idempotency_key="")

    def test_currency_required(self):
        with pytest.raises(ValueError, match="currency is required"):
            _params(currency="")


class TestIdempotencyKeyGenerator:
    def test_generate_key_format(self):
        entity_id = uuid.uuid4()

        key = IdempotencyKeyGenerator.generate("refund", entity_id, attempt=2)

        operation, entity, attempt, short_hash = key.split(":")
        assert operation == "refund"
        assert entity == str(entity_id)
        assert attempt == "2"
        assert len(short_hash) == 8

    def test_same_inputs_produce_same_key(self):
        assert IdempotencyKeyGenerator.generate(
            "create_intent", "listing:buyer"
        ) == IdempotencyKeyGenerator.generate("create_intent", "listing:buyer")

    def test_different_attempts_produce_different_keys(self):
        assert IdempotencyKeyGenerator.generate(
            "refund", "tx", attempt=1
        ) != IdempotencyKeyGenerator.generate("refund", "tx", attempt=2)


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_card_declined_error(self, mock_stripe_payment_intent, card_error):
        mock_stripe_payment_intent.create.side_effect = card_error

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.create_payment_intent(_params())

        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.is_retryable is False

    def test_invalid_request_error(
        self, mock_stripe_payment_intent, invalid_request_error
    ):
        mock_stripe_payment_intent.retrieve.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.retrieve_payment_intent("pi_missing")

        assert exc_info.value.stripe_code == "resource_missing"

    def test_invalid_account_error(self, mock_stripe_account, invalid_request_error):
        mock_stripe_account.retrieve.side_effect = invalid_request_error(
            message="No such account: 'acct_missing'",
            param="account",
        )

        with pytest.raises(StripeInvalidAccountError):
            StripeAdapter.retrieve_account("acct_missing")

    def test_rate_limit_error(self, mock_stripe_payment_intent, rate_limit_error):
        mock_stripe_payment_intent.create.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError) as exc_info:
            StripeAdapter.create_payment_intent(_params())

        assert exc_info.value.is_retryable is True

    def test_api_connection_error(
        self, mock_stripe_payment_intent, api_connection_error
    ):
        mock_stripe_payment_intent.create.side_effect = api_connection_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.create_payment_intent(_params())

    def test_timeout_error(self, mock_stripe_payment_intent, timeout_error):
        mock_stripe_payment_intent.create.side_effect = timeout_error

        with pytest.raises(StripeTimeoutError) as exc_info:
            StripeAdapter.create_payment_intent(_params())

        assert exc_info.value.is_retryable is True

    def test_api_error(self, mock_stripe_payment_intent, api_error):
        mock_stripe_payment_intent.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.create_payment_intent(_params())

    def test_authentication_error(
        self, mock_stripe_payment_intent, authentication_error
    ):
        mock_stripe_payment_intent.create.side_effect = authentication_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.create_payment_intent(_params())

        assert exc_info.value.stripe_code == "authentication_error"

    def test_unknown_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = RuntimeError("Unexpected")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.create_payment_intent(_params())

        assert "Unexpected" in str(exc_info.value)


# =============================================================================
# Operation Tests
# =============================================================================


class TestStripeAdapterPaymentIntents:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_create_payment_intent_success(
        self, mock_stripe_payment_intent, mock_payment_intent
    ):
        mock_stripe_payment_intent.create.return_value = mock_payment_intent(
            id="pi_test123", metadata={"listingId": "abc"}
        )

        result = StripeAdapter.create_payment_intent(
            _params(
                idempotency_key="test-key-123",
                description="Purchase of Thunder (Escrow)",
                metadata={"listingId": "abc"},
            )
        )

        assert isinstance(result, PaymentIntentResult)
        assert result.id == "pi_test123"
        assert result.status == "requires_payment_method"
        assert result.client_secret == "pi_test123456_secret_abc123"
        assert result.metadata == {"listingId": "abc"}

        call_kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert call_kwargs["amount"] == 1000000
        assert call_kwargs["currency"] == "usd"
        assert call_kwargs["description"] == "Purchase of Thunder (Escrow)"
        assert call_kwargs["automatic_payment_methods"] == {"enabled": True}
        assert call_kwargs["idempotency_key"] == "test-key-123"

    def test_retrieve_payment_intent_returns_latest_charge(
        self, mock_stripe_payment_intent, mock_payment_intent
    ):
        mock_stripe_payment_intent.retrieve.return_value = mock_payment_intent(
            status="succeeded", latest_charge="ch_123"
        )

        result = StripeAdapter.retrieve_payment_intent("pi_test123456")

        mock_stripe_payment_intent.retrieve.assert_called_once_with("pi_test123456")
        assert result.status == "succeeded"
        assert result.latest_charge_id == "ch_123"


class TestStripeAdapterCreateRefund:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_create_full_refund(self, mock_stripe_refund):
        result = StripeAdapter.create_refund(
            payment_intent_id="pi_test123456",
            idempotency_key="refund-key",
        )

        assert isinstance(result, RefundResult)
        assert result.id == "re_test123456"
        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert call_kwargs["payment_intent"] == "pi_test123456"
        assert call_kwargs["idempotency_key"] == "refund-key"
        assert "amount" not in call_kwargs

    def test_create_partial_refund_with_reason(self, mock_stripe_refund):
        StripeAdapter.create_refund(
            payment_intent_id="pi_test123456",
            idempotency_key="refund-key",
            amount_cents=2500,
            reason="requested_by_customer",
        )

        call_kwargs = mock_stripe_refund.create.call_args.kwargs
        assert call_kwargs["amount"] == 2500
        assert call_kwargs["reason"] == "requested_by_customer"


class TestStripeAdapterConnectedAccounts:
    @pytest.fixture(autouse=True)
    def setup_mocks(self, mock_stripe_http_client):
        pass

    def test_create_connected_account(self, mock_stripe_account):
        result = StripeAdapter.create_connected_account(
            email="seller@example.com",
            idempotency_key="account-key",
            metadata={"userId": "1"},
        )

        assert isinstance(result, ConnectedAccountResult)
        assert result.id == "acct_test123"
        call_kwargs = mock_stripe_account.create.call_args.kwargs
        assert call_kwargs["type"] == "express"
        assert call_kwargs["country"] == "US"
        assert call_kwargs["capabilities"] == {
            "card_payments": {"requested": True},
            "transfers": {"requested": True},
        }

    def test_retrieve_account_copies_flags(self, mock_stripe_account, mock_account):
        mock_stripe_account.retrieve.return_value = mock_account(
            charges_enabled=True, payouts_enabled=True, details_submitted=True
        )

        result = StripeAdapter.retrieve_account("acct_test123")

        assert result.charges_enabled is True
        assert result.payouts_enabled is True
        assert result.details_submitted is True
        assert result.country == "US"

    def test_create_account_link(self, mock_stripe_account):
        result = StripeAdapter.create_account_link(
            "acct_test123",
            refresh_url="http://localhost:3000/seller/stripe/refresh",
            return_url="http://localhost:3000/seller/stripe/return",
        )

        assert result.url.startswith("https://connect.stripe.com/")
        call_kwargs = mock_stripe_account.link.create.call_args.kwargs
        assert call_kwargs["type"] == "account_onboarding"

    def test_create_login_link(self, mock_stripe_account):
        result = StripeAdapter.create_login_link("acct_test123")

        mock_stripe_account.create_login_link.assert_called_once_with("acct_test123")
        assert result.url == "https://connect.stripe.com/express/login"


# =============================================================================
# Webhook Verification Tests
# =============================================================================


def _sign(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


class TestStripeAdapterVerifyWebhookSignature:
    payload = json.dumps(
        {
            "id": "evt_test123",
            "object": "event",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_test123", "object": "payment_intent"}},
        }
    ).encode()

    @override_settings(STRIPE_WEBHOOK_SECRET="whsec_test_secret")
    def test_valid_signature_returns_plain_event(self):
        header = _sign(self.payload, "whsec_test_secret")

        event = StripeAdapter.verify_webhook_signature(self.payload, header)

        assert event["id"] == "evt_test123"
        assert event["type"] == "payment_intent.succeeded"
        assert event["data"]["object"]["id"] == "pi_test123"
        assert type(event) is dict

    @override_settings(STRIPE_WEBHOOK_SECRET="whsec_test_secret")
    def test_wrong_secret_rejected(self):
        header = _sign(self.payload, "whsec_other")

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(self.payload, header)

        assert exc_info.value.stripe_code == "signature_verification_failed"

    @override_settings(STRIPE_WEBHOOK_SECRET="whsec_test_secret")
    def test_tampered_payload_rejected(self):
        header = _sign(self.payload, "whsec_test_secret")

        with pytest.raises(StripeInvalidRequestError):
            StripeAdapter.verify_webhook_signature(
                self.payload.replace(b"pi_test123", b"pi_forged"), header
            )

    @override_settings(STRIPE_WEBHOOK_SECRET="whsec_test_secret")
    def test_stale_timestamp_rejected(self):
        header = _sign(self.payload, "whsec_test_secret", int(time.time()) - 3600)

        with pytest.raises(StripeInvalidRequestError):
            StripeAdapter.verify_webhook_signature(self.payload, header)


# =============================================================================
# Configuration Tests
# =============================================================================


class TestStripeAdapterConfiguration:
    @override_settings(STRIPE_SECRET_KEY="sk_test_custom")
    def test_uses_settings_api_key(
        self, mock_stripe_http_client, mock_stripe_payment_intent
    ):
        StripeAdapter.create_payment_intent(_params())

        assert stripe.api_key == "sk_test_custom"

    @override_settings(STRIPE_API_TIMEOUT_SECONDS=30)
    def test_uses_settings_timeout(
        self, mock_stripe_http_client, mock_stripe_payment_intent
    ):
        StripeAdapter.create_payment_intent(_params())

        mock_stripe_http_client.assert_called_with(timeout=30)
