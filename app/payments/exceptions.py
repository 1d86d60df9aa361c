"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentValidationError - Payment validation failures
    │   ├── FeeCalculationError - Amount cannot be priced
    │   └── MetadataParseError - Provider metadata is missing or malformed
    └── PaymentProcessingError - Payment processing failures
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (permanent)
            ├── StripeInvalidAccountError - Invalid connected account (permanent)
            ├── StripeInvalidRequestError - Invalid request or signature (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (transient, retry)
            └── StripeTimeoutError - Request timeout (transient, retry)

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Usage:
    from payments.exceptions import FeeCalculationError, StripeError

    try:
        StripeAdapter.create_refund(params, idempotency_key=key)
    except StripeError as e:
        if e.is_retryable:
            raise
        return ServiceResult.failure(e.message, error_code=e.error_code)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Inherits from BaseApplicationError so views can serialize it with
    to_dict() like any other application error.
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentValidationError(PaymentError):
    """Raised when a payment amount or payload fails validation."""

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class FeeCalculationError(PaymentValidationError):
    """
    Raised when an amount cannot be priced.

    Only positive integer cent amounts are accepted. Booleans are rejected
    even though bool is an int subclass.
    """

    default_error_code: str = "INVALID_AMOUNT"


class MetadataParseError(PaymentValidationError):
    """
    Raised when payment intent metadata cannot be read back.

    The metadata is written by this service, so a parse failure means the
    intent was not created here or was edited in the Stripe dashboard.
    Redelivering the webhook will not fix it.
    """

    default_error_code: str = "INVALID_PAYMENT_METADATA"


class PaymentProcessingError(PaymentError):
    """Raised when the payment provider rejects or fails an operation."""

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the same request can be retried

    Celery tasks retry on the transient subclasses only; permanent errors
    are surfaced to the caller.
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    The buyer sees this on the client when confirming the intent; server
    side it only appears on refunds to a closed card.
    """

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False


class StripeInvalidAccountError(StripeError):
    """
    Invalid Stripe Connect account.

    Raised when a seller's connected account is missing, disabled or
    restricted. Requires the seller to finish onboarding.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe, or a webhook whose
    signature does not verify.

    Usually indicates a bug or a forged request, not a user error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers connection failures and Stripe 5xx responses.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out (STRIPE_API_TIMEOUT_SECONDS).

    The operation may have succeeded on Stripe's side. Retries must reuse
    the same idempotency key so Stripe returns the original result.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# State Machine Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a transaction state transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with our error format.

    Example:
        try:
            transaction.refund_partial()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot refund transaction in '{transaction.status}' state",
                details={
                    "current_state": transaction.status,
                    "transition": "refund_partial",
                },
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentValidationError",
    "FeeCalculationError",
    "MetadataParseError",
    "PaymentProcessingError",
    # Stripe-specific
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    # State machine
    "InvalidStateTransitionError",
]
